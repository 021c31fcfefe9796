"""Linux distribution specific installation procedures."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Sequence, Tuple, Union

import sh

from hostprov.osinfo import OSInfo, resolve_codename
from hostprov.utils import ProvisionError, UnsupportedOSError, log_action, log_info, write_file

NGINX_SIGNING_KEY_URL = "https://nginx.org/keys/nginx_signing.key"
NGINX_RSA_KEY_URL = "https://nginx.org/keys/nginx_signing.rsa.pub"

APT_KEYRING = Path("/usr/share/keyrings/nginx-archive-keyring.gpg")
APT_SOURCE_LIST = Path("/etc/apt/sources.list.d/nginx.list")
APT_PIN_FILE = Path("/etc/apt/preferences.d/99nginx")
APT_PIN_CONTENT = "Package: *\nPin: origin nginx.org\nPin: release o=nginx\nPin-Priority: 900\n"

APK_REPOSITORIES = Path("/etc/apk/repositories")
APK_NGINX_KEY = Path("/etc/apk/keys/nginx_signing.rsa.pub")

DEBIAN_FAMILY = ("debian", "ubuntu")


@dataclass(frozen=True)
class DebianFamily:
    """Debian and Ubuntu hosts, installed through apt."""

    info: OSInfo

    PACKAGES = {"zsh": ("zsh",), "cron": ("cron",)}

    @property
    def distro(self) -> str:
        return self.info.id

    def install(self, capability: str, dry_run: bool = False) -> None:
        """Install ``capability`` using this distribution's procedure."""
        if capability == "nginx":
            self.install_nginx(dry_run=dry_run)
        else:
            self.install_packages(_packages_for(self.PACKAGES, capability, self.distro), dry_run=dry_run)

    def install_packages(self, packages: Sequence[str], dry_run: bool = False) -> None:
        if dry_run:
            log_action(f"[DRY RUN] Would run: apt install -y {' '.join(packages)}")
            return
        log_action(f"Installing {' '.join(packages)} with apt...")
        env = {**os.environ, "DEBIAN_FRONTEND": "noninteractive"}
        sh.apt("update", _env=env, _fg=True)
        sh.apt("install", "-y", *packages, _env=env, _fg=True)

    def nginx_source_line(self, codename: str) -> str:
        return (
            f"deb [signed-by={APT_KEYRING}] "
            f"http://nginx.org/packages/{self.distro} {codename} nginx\n"
        )

    def install_nginx(self, dry_run: bool = False) -> None:
        """Install nginx from the nginx.org apt repository."""
        keyring_package = "ubuntu-keyring" if self.distro == "ubuntu" else "debian-archive-keyring"
        codename = resolve_codename(self.info)
        source_line = self.nginx_source_line(codename)

        if dry_run:
            log_action("[DRY RUN] Would install curl gnupg2 ca-certificates lsb-release " + keyring_package)
            log_action(f"[DRY RUN] Would fetch the nginx signing key into {APT_KEYRING}")
            log_action(f"[DRY RUN] Would write {APT_SOURCE_LIST}: {source_line.strip()}")
            log_action(f"[DRY RUN] Would write pin file {APT_PIN_FILE}")
            log_action("[DRY RUN] Would run: apt update && apt install -y nginx")
            return

        self.install_packages(["curl", "gnupg2", "ca-certificates", "lsb-release", keyring_package])

        log_action(f"Fetching nginx signing key into {APT_KEYRING}...")
        key = sh.curl("-fsSL", NGINX_SIGNING_KEY_URL)
        sh.gpg("--dearmor", "--yes", "-o", str(APT_KEYRING), _in=str(key))

        log_action(f"Writing {APT_SOURCE_LIST}...")
        write_file(APT_SOURCE_LIST, source_line)
        log_action(f"Writing {APT_PIN_FILE}...")
        write_file(APT_PIN_FILE, APT_PIN_CONTENT)

        self.install_packages(["nginx"])


@dataclass(frozen=True)
class Alpine:
    """Alpine hosts, installed through apk."""

    info: OSInfo

    PACKAGES = {"zsh": ("zsh",), "cron": ("cronie",)}

    def install(self, capability: str, dry_run: bool = False) -> None:
        """Install ``capability`` using this distribution's procedure."""
        if capability == "nginx":
            self.install_nginx(dry_run=dry_run)
        else:
            self.install_packages(_packages_for(self.PACKAGES, capability, self.info.id), dry_run=dry_run)

    def install_packages(self, packages: Sequence[str], dry_run: bool = False) -> None:
        if dry_run:
            log_action(f"[DRY RUN] Would run: apk add --no-cache {' '.join(packages)}")
            return
        log_action(f"Installing {' '.join(packages)} with apk...")
        sh.apk("add", "--no-cache", *packages, _fg=True)

    def nginx_repository_line(self) -> str:
        if not self.info.release:
            raise UnsupportedOSError("Cannot determine the Alpine release from VERSION_ID")
        return f"@nginx http://nginx.org/packages/alpine/v{self.info.release}/main"

    def install_nginx(self, dry_run: bool = False) -> None:
        """Install nginx from the nginx.org apk repository."""
        repo_line = self.nginx_repository_line()
        try:
            current = APK_REPOSITORIES.read_text()
        except FileNotFoundError:
            current = ""
        except OSError as exc:
            raise ProvisionError(f"Failed to read {APK_REPOSITORIES}: {exc}") from exc

        configured = repo_line in current.splitlines()

        if dry_run:
            log_action("[DRY RUN] Would install openssl curl ca-certificates")
            if not configured:
                log_action(f"[DRY RUN] Would append to {APK_REPOSITORIES}: {repo_line}")
            log_action(f"[DRY RUN] Would fetch the nginx signing key into {APK_NGINX_KEY}")
            log_action("[DRY RUN] Would run: apk add nginx@nginx")
            return

        self.install_packages(["openssl", "curl", "ca-certificates"])

        if configured:
            log_info(f"nginx repository already present in {APK_REPOSITORIES}.")
        else:
            log_action(f"Adding nginx repository to {APK_REPOSITORIES}...")
            separator = "" if not current or current.endswith("\n") else "\n"
            write_file(APK_REPOSITORIES, separator + repo_line + "\n", append=True)

        log_action(f"Fetching nginx signing key into {APK_NGINX_KEY}...")
        sh.curl("-fsSL", "-o", str(APK_NGINX_KEY), NGINX_RSA_KEY_URL)

        self.install_packages(["nginx@nginx"])


Platform = Union[DebianFamily, Alpine]


def _packages_for(table: Dict[str, Tuple[str, ...]], capability: str, distro: str) -> Tuple[str, ...]:
    try:
        return table[capability]
    except KeyError:
        raise UnsupportedOSError(f"Don't know how to install {capability} on {distro}") from None


def platform_for(info: OSInfo) -> Platform:
    """Pick the installation procedure for the detected OS."""
    if info.id in DEBIAN_FAMILY:
        return DebianFamily(info)
    if info.id == "alpine":
        return Alpine(info)
    raise UnsupportedOSError(f"OS {info.id} is not supported")
