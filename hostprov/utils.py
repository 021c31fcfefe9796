"""Utility functions for the provisioning tool."""
import logging
import os
import shutil
import sys
from pathlib import Path
from typing import Union

import typer


class ProvisionError(RuntimeError):
    """Base class for errors reported to the operator."""


class ConfigurationError(ProvisionError):
    """Raised when supplied parameters are inconsistent or malformed."""


class PreconditionError(ProvisionError):
    """Raised when the host is not in a state we can act on."""


class UnsupportedOSError(PreconditionError):
    """Raised when no installation procedure exists for the detected OS."""


class CommandError(ProvisionError):
    """Raised when an external command fails to start or exits non-zero."""


class PromptError(ProvisionError):
    """Raised when reading interactive input fails."""


def command_exists(command: str) -> bool:
    """Check if a command exists in the system PATH."""
    return shutil.which(command) is not None


def is_root() -> bool:
    """Check if the script is running as root."""
    return os.geteuid() == 0


def require_root() -> None:
    """Fail unless running with root privileges."""
    if not is_root():
        raise PreconditionError("This command requires root. Run it with sudo.")


def write_file(path: Union[str, Path], content: str, append: bool = False) -> None:
    """Write ``content`` to ``path``, creating parent directories."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a" if append else "w") as f:
            f.write(content)
    except OSError as exc:
        raise ProvisionError(f"Failed to write {path}: {exc}") from exc


def log_info(message: str) -> None:
    """Log an informational message."""
    typer.secho(f"[INFO] {message}", fg=typer.colors.CYAN)


def log_action(message: str) -> None:
    """Log an action being performed."""
    typer.echo(f"  -> {message}")


def log_error(message: str) -> None:
    """Report a fatal error on stderr."""
    typer.secho(f"❗ {message}", fg=typer.colors.RED, err=True)


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )
