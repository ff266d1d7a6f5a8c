from .doctor import run_doctor_checks

__all__ = ["run_doctor_checks"]
