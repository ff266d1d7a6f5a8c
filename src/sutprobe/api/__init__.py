from .server import ServerApi, SiteIdAddress
from .v0 import ApiV0

__all__ = ["ApiV0", "ServerApi", "SiteIdAddress"]
