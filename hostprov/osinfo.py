"""Detect which Linux distribution we are running on."""
import logging
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Union

import sh

from hostprov.utils import PreconditionError

logger = logging.getLogger(__name__)

OS_RELEASE_PATH = Path("/etc/os-release")


@dataclass(frozen=True)
class OSInfo:
    """Identity fields from os-release."""

    id: str
    version_id: str = ""
    codename: Optional[str] = None

    @property
    def release(self) -> str:
        """Major.minor part of the version, e.g. ``3.19`` for ``3.19.1``."""
        return ".".join(self.version_id.split(".")[:2])


def parse_os_release(text: str) -> Dict[str, str]:
    """Parse os-release ``KEY=value`` lines, unquoting values."""
    fields = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, raw = line.split("=", 1)
        try:
            parts = shlex.split(raw)
        except ValueError:
            parts = [raw.strip("\"'")]
        fields[key.strip()] = parts[0] if parts else ""
    return fields


def read_os_release(path: Union[str, Path] = OS_RELEASE_PATH) -> OSInfo:
    """Read the OS id, version and codename."""
    try:
        text = Path(path).read_text()
    except OSError as exc:
        raise PreconditionError(f"Failed to read {path}: {exc}") from exc

    fields = parse_os_release(text)
    os_id = fields.get("ID", "").lower()
    if not os_id:
        raise PreconditionError(f"No ID field in {path}")
    info = OSInfo(
        id=os_id,
        version_id=fields.get("VERSION_ID", ""),
        codename=fields.get("VERSION_CODENAME") or None,
    )
    logger.debug("Detected OS %s", info)
    return info


def resolve_codename(info: OSInfo) -> str:
    """Return the release codename, asking lsb_release when os-release lacks it."""
    if info.codename:
        return info.codename
    try:
        codename = str(sh.lsb_release("-cs")).strip()
    except (sh.ErrorReturnCode, sh.CommandNotFound) as exc:
        raise PreconditionError(f"Failed to determine OS codename: {exc}") from exc
    if not codename:
        raise PreconditionError("lsb_release returned an empty codename")
    return codename
