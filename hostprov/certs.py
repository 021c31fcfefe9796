"""Issue certificates with acme.sh and keep them renewed."""
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

import sh

from hostprov import nginx
from hostprov.assemble import CertPair, resolve_cert_dir
from hostprov.env import Resolver
from hostprov.utils import CommandError, ConfigurationError, ProvisionError, log_action, log_info

logger = logging.getLogger(__name__)

DEFAULT_ACME_BIN = "/root/.acme.sh/acme.sh"
DEFAULT_ACME_HOME = "/root/.acme.sh"
DEFAULT_NGINX_BIN = "nginx"
RENEWAL_SCHEDULE = "0 3 * * *"


@dataclass
class IssueCertArgs:
    """Values given on the command line for ``issue-cert``; ``None`` means not given."""

    cf_token: Optional[str] = None
    cf_account_id: Optional[str] = None
    cf_zone_id: Optional[str] = None
    domain: Optional[str] = None
    wildcard_domain: Optional[str] = None
    acme_bin: Optional[Path] = None
    acme_home: Optional[Path] = None
    cert_dir: Optional[Path] = None
    cert_dir_name: Optional[str] = None
    cert_input_path: Optional[Path] = None
    key_input_path: Optional[Path] = None
    cert_output_path: Optional[Path] = None
    key_output_path: Optional[Path] = None
    nginx_bin: Optional[Path] = None


def _optional_pair(
    resolver: Resolver, cert: Optional[Path], key: Optional[Path], cert_key: str, key_key: str
) -> Optional[CertPair]:
    cert_path = resolver.optional_path(cert, cert_key)
    key_path = resolver.optional_path(key, key_key)
    if (cert_path is None) != (key_path is None):
        raise ConfigurationError(f"Both {cert_key} and {key_key} must be set together")
    if cert_path is None:
        return None
    return CertPair(cert_path, key_path)


def acme_issue_args(domain: str, wildcard_domain: str) -> List[str]:
    return [
        "--issue", "--force",
        "-d", domain,
        "-d", wildcard_domain,
        "--dns", "dns_cf",
        "--keylength", "ec-256",
    ]


def renewal_cron_line(acme_bin: Union[str, Path], acme_home: Union[str, Path]) -> str:
    return f'{RENEWAL_SCHEDULE} "{acme_bin}" --cron --home "{acme_home}" > /dev/null'


def read_crontab() -> str:
    """Return root's crontab, or an empty string when there is none yet."""
    try:
        return str(sh.crontab("-l"))
    except sh.ErrorReturnCode_1:
        # crontab -l exits 1 when the user has no crontab
        return ""
    except sh.ErrorReturnCode as exc:
        raise CommandError(f"Failed to read crontab: crontab -l exited with {exc.exit_code}") from exc
    except sh.CommandNotFound as exc:
        raise CommandError("crontab not found; run setup to install cron") from exc


def schedule_renewal(acme_bin: Path, acme_home: Path, dry_run: bool = False) -> bool:
    """Add the acme.sh renewal job to the crontab unless it is already there."""
    line = renewal_cron_line(acme_bin, acme_home)
    current = read_crontab()
    if line in current.splitlines():
        log_info("Renewal job already scheduled.")
        return False

    if dry_run:
        log_action(f"[DRY RUN] Would add crontab entry: {line}")
        return True

    table = current.rstrip("\n") + "\n" + line + "\n" if current.strip() else line + "\n"
    log_action(f"Adding crontab entry: {line}")
    try:
        sh.crontab("-", _in=table)
    except sh.ErrorReturnCode as exc:
        raise CommandError("Failed to update crontab") from exc
    return True


def run_acme(acme_bin: Path, args: List[str], credentials: dict, dry_run: bool = False) -> None:
    if dry_run:
        log_action(f"[DRY RUN] Would run: {acme_bin} {' '.join(args)}")
        return
    log_action("Issuing certificate with acme.sh...")
    try:
        sh.Command(str(acme_bin))(*args, _env={**os.environ, **credentials}, _fg=True)
    except sh.CommandNotFound as exc:
        raise CommandError(f"Failed to run acme.sh: {acme_bin} not found") from exc
    except sh.ErrorReturnCode as exc:
        raise CommandError("Certificate issuance failed") from exc


def copy_file(src: Path, dst: Path, what: str, dry_run: bool = False) -> None:
    if dry_run:
        log_action(f"[DRY RUN] Would copy {what}: {src} -> {dst}")
        return
    try:
        dst.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(src, dst)
    except OSError as exc:
        raise ProvisionError(f"Failed to copy {what} from {src} to {dst}: {exc}") from exc
    log_action(f"Copied {what} to {dst}")


def issue_cert(
    resolver: Resolver,
    args: IssueCertArgs,
    reload: bool = True,
    renew: bool = True,
    dry_run: bool = False,
) -> CertPair:
    """Issue a certificate for a domain and its wildcard and install it."""
    output_pair = _optional_pair(
        resolver, args.cert_output_path, args.key_output_path, "CERT_OUTPUT_PATH", "KEY_OUTPUT_PATH"
    )
    input_pair = _optional_pair(
        resolver, args.cert_input_path, args.key_input_path, "CERT_INPUT_PATH", "KEY_INPUT_PATH"
    )

    cf_token = resolver.value(args.cf_token, "CF_TOKEN", "Cloudflare token", secret=True)
    cf_account_id = resolver.value(args.cf_account_id, "CF_ACCOUNT_ID", "Cloudflare account ID")
    cf_zone_id = resolver.value(args.cf_zone_id, "CF_ZONE_ID", "Cloudflare zone ID")
    domain = resolver.value(args.domain, "DOMAIN", "Primary domain (e.g., example.com)")
    if not domain.strip():
        raise ConfigurationError("A domain is required to issue a certificate")
    wildcard_domain = resolver.optional_value(
        args.wildcard_domain, "WILDCARD_DOMAIN", "Wildcard domain (e.g., *.example.com)"
    ) or f"*.{domain}"

    acme_bin = resolver.path(args.acme_bin, "ACME_BIN", DEFAULT_ACME_BIN, "acme.sh path")
    acme_home = resolver.path(args.acme_home, "ACME_HOME", DEFAULT_ACME_HOME, "acme home directory")
    if output_pair is None:
        cert_dir = resolve_cert_dir(
            resolver, resolver.optional_path(args.cert_dir, "CERT_DIR"), args.cert_dir_name, ["CERT_DIR_NAME"]
        )
        output_pair = CertPair.for_domain(cert_dir, domain)
    nginx_bin = None
    if reload:
        nginx_bin = resolver.path(args.nginx_bin, "NGINX_BIN", DEFAULT_NGINX_BIN, "nginx binary")

    cache_dir = acme_home / f"{domain}_ecc"
    if dry_run:
        log_action(f"[DRY RUN] Would remove cache dir if it exists: {cache_dir}")
    elif cache_dir.exists():
        try:
            shutil.rmtree(cache_dir)
        except OSError as exc:
            raise ProvisionError(f"Failed to remove cache dir {cache_dir}: {exc}") from exc

    credentials = {"CF_Token": cf_token, "CF_Account_ID": cf_account_id, "CF_Zone_ID": cf_zone_id}
    run_acme(acme_bin, acme_issue_args(domain, wildcard_domain), credentials, dry_run=dry_run)

    source = input_pair or CertPair(cache_dir / "fullchain.cer", cache_dir / f"{domain}.key")
    copy_file(source.cert, output_pair.cert, "cert", dry_run=dry_run)
    copy_file(source.key, output_pair.key, "key", dry_run=dry_run)

    if reload:
        nginx.reload_nginx(nginx_bin, dry_run=dry_run)
    if renew:
        schedule_renewal(acme_bin, acme_home, dry_run=dry_run)

    log_info(f"Certificate for {domain} installed at {output_pair.cert}")
    return output_pair
