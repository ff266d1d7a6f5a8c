from __future__ import annotations

import uuid
from pathlib import Path

import typer
from rich import print, print_json

from sutprobe.config import Settings
from sutprobe.core.logging import REQUESTS_LOGGER_NAME, configure_logging, get_logger
from sutprobe.errors import SutProbeError
from sutprobe.harness import ServerHarness
from sutprobe.services import run_doctor_checks

app = typer.Typer(no_args_is_help=True, help="sutprobe CLI: talk to the server under test by hand")


def _load_settings(base_dir: Path | None = None) -> Settings:
    settings = Settings.load(base_dir=base_dir)
    settings.ensure_directories()
    return settings


def _harness(command: str) -> ServerHarness:
    settings = _load_settings()
    correlation_id = uuid.uuid4().hex
    configure_logging(settings.logs_dir, correlation_id=correlation_id, level=settings.log_level)
    logger = get_logger(f"sutprobe.{command}", correlation_id)
    try:
        return ServerHarness.create(
            settings,
            logger=logger,
            request_logger=get_logger(REQUESTS_LOGGER_NAME, correlation_id),
        )
    except SutProbeError as exc:
        print(f"[red]Handshake failed[/red]: {exc}")
        raise typer.Exit(1) from exc


@app.command("doctor")
def doctor_command() -> None:
    settings = _load_settings()
    checks = run_doctor_checks(settings)

    print("Doctor results:")
    for check in checks:
        status = check["status"].upper()
        print(f"- \\[{status}] {check['check']}: {check['detail']}")


@app.command("counters")
def counters_command() -> None:
    harness = _harness("counters")
    counters = harness.server.get_test_counters()
    print_json(data=counters)


@app.command("last-email")
def last_email_command(
    site_id: str = typer.Option(..., help="Site id"),
    to: str = typer.Option(..., help="Recipient address"),
    wait: bool = typer.Option(False, "--wait/--no-wait", help="Poll until an email arrives"),
) -> None:
    harness = _harness("emails")
    email = harness.emails.get_last(site_id, to, wait=wait)
    if email is None:
        print(f"[yellow]No email sent to {to} yet[/yellow]")
        raise typer.Exit(1)
    print(f"[green]{email.subject}[/green]")
    print(email.body_html_text)


@app.command("emails-sent")
def emails_sent_command(site_id: str = typer.Option(..., help="Site id")) -> None:
    harness = _harness("emails")
    summary = harness.emails.get_emails_sent_to_addrs(site_id)
    print(f"Emails sent: {summary.num}")
    for address in summary.addrs_by_time_asc:
        print(f"- {address}")


@app.command("play-time")
def play_time_command(seconds: float = typer.Option(..., help="Seconds to move the server clock forward")) -> None:
    harness = _harness("play-time")
    harness.server.play_time_seconds(seconds)
    print(f"[green]Server time moved forward {seconds}s[/green]")


if __name__ == "__main__":
    app()
