"""Provisioning workflow steps."""
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import sh

from hostprov import osinfo
from hostprov.linux import Platform, platform_for
from hostprov.prompt import DEFAULT_TIMEOUT, confirm_with_timeout
from hostprov.utils import CommandError, command_exists, log_action, log_info

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstallStep:
    """A capability that is installed when its executable is missing."""

    name: str
    executable: str
    confirm: bool = False


ZSH = InstallStep("zsh", "zsh", confirm=True)
CRON = InstallStep("cron", "crontab")
NGINX = InstallStep("nginx", "nginx")


def format_elapsed(seconds: float) -> str:
    """Format a duration as minutes and seconds."""
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}m {secs:02d}s"


@dataclass
class Provisioner:
    """Runs install steps in order and records what changed."""

    dry_run: bool = False
    confirm_timeout: float = DEFAULT_TIMEOUT
    changes: List[str] = field(default_factory=list)
    started: float = field(default_factory=time.monotonic)
    _platform: Optional[Platform] = field(default=None, repr=False)

    @property
    def platform(self) -> Platform:
        """Install procedure for this host, detected on first use."""
        if self._platform is None:
            self._platform = platform_for(osinfo.read_os_release())
        return self._platform

    def record(self, name: str) -> None:
        self.changes.append(f"Would install {name}" if self.dry_run else f"Installed {name}")

    def run_step(self, step: InstallStep) -> bool:
        """Install ``step`` unless it already exists. Returns True when it acted."""
        if command_exists(step.executable):
            log_info(f"{step.name} is already installed.")
            return False

        if step.confirm and not confirm_with_timeout(
            f"{step.name} not found. Install {step.name}?", self.confirm_timeout
        ):
            log_info(f"Skipping {step.name}.")
            return False

        log_info(f"{step.name} not found. Installing...")
        try:
            self.platform.install(step.name, dry_run=self.dry_run)
        except sh.ErrorReturnCode as exc:
            status = getattr(exc, "exit_code", "non-zero")
            raise CommandError(f"Installing {step.name} failed: {exc.full_cmd} exited with {status}") from exc
        except sh.CommandNotFound as exc:
            raise CommandError(f"Installing {step.name} failed: command not found: {exc}") from exc
        self.record(step.name)
        return True

    def summary(self) -> List[str]:
        if self.changes:
            lines = ["Changes:"] + [f"  - {change}" for change in self.changes]
        else:
            lines = ["No changes were made."]
        lines.append(f"Elapsed: {format_elapsed(time.monotonic() - self.started)}")
        return lines

    def report(self) -> None:
        for line in self.summary():
            log_info(line)


def select_steps(install_zsh: bool = True, install_cron: bool = True, install_nginx: bool = True) -> List[InstallStep]:
    """Return the enabled steps in run order."""
    selected = [(install_zsh, ZSH), (install_cron, CRON), (install_nginx, NGINX)]
    return [step for enabled, step in selected if enabled]


def provision_system(steps: Sequence[InstallStep], dry_run: bool = False) -> Provisioner:
    """Main provisioning workflow; aborts on the first failing step."""
    provisioner = Provisioner(dry_run=dry_run)
    if dry_run:
        log_action("[DRY RUN] No changes will be applied")
    for step in steps:
        logger.debug("Running step %s", step.name)
        provisioner.run_step(step)
    provisioner.report()
    return provisioner
