"""HTTP Basic credentials checked against the local netrc file."""

import logging
import netrc
from pathlib import Path
from typing import Annotated, NamedTuple, Optional, Tuple

from fastapi import Depends, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from snipbin.config import get_settings

security = HTTPBasic(auto_error=False)
log = logging.getLogger(__name__)


class Credentials(NamedTuple):
    """Caller identity as handed to the store. Empty strings = anonymous."""

    username: str
    password: str
    authenticated: bool


ANONYMOUS = Credentials("", "", False)


def _netrc_file() -> Path:
    settings = get_settings()
    if settings.netrc_path.strip():
        return Path(settings.netrc_path)
    return Path.home() / ".netrc"


def lookup_host(host: str, path: Optional[Path] = None) -> Optional[Tuple[str, str]]:
    """Return (login, password) configured for host in the netrc file, or None."""
    path = path or _netrc_file()
    try:
        entry = netrc.netrc(str(path)).authenticators(host)
    except FileNotFoundError:
        log.debug("No netrc file at %s", path)
        return None
    except (netrc.NetrcParseError, OSError) as e:
        log.warning("Could not read netrc file %s: %s", path, e)
        return None
    if entry is None:
        return None
    login, _account, password = entry
    return (login or "", password or "")


def authenticate(host: str, username: str, password: str) -> bool:
    """True if username/password match the netrc entry for host."""
    expected = lookup_host(host)
    if expected is None:
        return False
    return (username, password) == expected


async def get_credentials(
    request: Request,
    basic: Annotated[Optional[HTTPBasicCredentials], Depends(security)],
) -> Credentials:
    """Resolve Basic auth to Credentials; anything not validated acts as anonymous."""
    if not basic:
        return ANONYMOUS
    host = request.headers.get("host", "")
    if not authenticate(host, basic.username, basic.password):
        log.warning("Basic auth rejected for user=%s host=%s", basic.username, host)
        return ANONYMOUS
    return Credentials(basic.username, basic.password, True)
