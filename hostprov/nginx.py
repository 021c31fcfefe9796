"""Render nginx configuration files and drive the nginx binary."""
import logging
from pathlib import Path
from typing import Optional, Sequence, Union

import sh

from hostprov.assemble import (
    CertPair, check_cert_pair, resolve_cert_dir, resolve_cert_pair, resolve_resolver_list,
)
from hostprov.env import Resolver
from hostprov.utils import CommandError, ProvisionError, log_action, log_info, write_file

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "configs"
DEFAULT_TEMPLATE = "nginx-default.conf"
PROXY_TEMPLATE = "nginx-proxy.conf"

DEFAULT_NGINX_OUTPUT = "/etc/nginx/conf.d/default/00-default.conf"
DEFAULT_PROXY_OUTPUT_DIR = "/etc/nginx/conf.d/proxy"
CERT_DIR_NAME_KEYS = ("NGINX_CERT_DIR_NAME", "CERT_DIR_NAME")
DOMAIN_LABEL = "Primary domain (e.g., example.com)"


def render_template(name: str, **tokens: str) -> str:
    """Substitute ``{{TOKEN}}`` placeholders in a shipped template."""
    template_path = TEMPLATE_DIR / name
    try:
        with open(template_path, "r") as f:
            content = f.read()
    except OSError as exc:
        raise ProvisionError(f"Failed to read template {template_path}: {exc}") from exc
    for token, value in tokens.items():
        content = content.replace("{{" + token + "}}", value)
    return content


def proxy_config_name(proxy_domain: str) -> str:
    """File name for a proxy config, e.g. ``a-example-com.conf``."""
    return f"{proxy_domain.replace('.', '-')}.conf"


def write_config(output_path: Path, content: str, dry_run: bool = False) -> None:
    if dry_run:
        log_action(f"[DRY RUN] Would create directory: {output_path.parent}")
        log_action(f"[DRY RUN] Would write nginx config to: {output_path}")
        return
    log_action(f"Writing {output_path}...")
    write_file(output_path, content)


def write_nginx_default(
    resolver: Resolver,
    cert_path: Optional[Path] = None,
    key_path: Optional[Path] = None,
    cert_dir_name: Optional[str] = None,
    domain: Optional[str] = None,
    output_path: Optional[Path] = None,
    dry_run: bool = False,
) -> Path:
    """Write the catch-all default server that answers unknown hosts with 444."""

    def derive():
        cert_domain = resolver.value(domain, "DOMAIN", DOMAIN_LABEL)
        cert_dir = resolve_cert_dir(resolver, None, cert_dir_name, CERT_DIR_NAME_KEYS)
        return cert_dir, cert_domain

    pair = resolve_cert_pair(
        resolver.optional_path(cert_path, "NGINX_CERT_PATH"),
        resolver.optional_path(key_path, "NGINX_KEY_PATH"),
        derive,
        cert_label="NGINX_CERT_PATH (--cert-path)",
        key_label="NGINX_KEY_PATH (--key-path)",
    )
    output = resolver.path(output_path, "NGINX_DEFAULT_OUTPUT", DEFAULT_NGINX_OUTPUT, "nginx default output path")

    content = render_template(DEFAULT_TEMPLATE, CERT_PATH=str(pair.cert), KEY_PATH=str(pair.key))
    write_config(output, content, dry_run=dry_run)
    return output


def write_proxy_config(
    resolver: Resolver,
    proxy_domain: Optional[str] = None,
    backend_url: Optional[str] = None,
    resolvers: Sequence[str] = (),
    cert_path: Optional[Path] = None,
    key_path: Optional[Path] = None,
    domain: Optional[str] = None,
    cert_dir: Optional[Path] = None,
    cert_dir_name: Optional[str] = None,
    output_dir: Optional[Path] = None,
    dry_run: bool = False,
) -> Path:
    """Write a reverse proxy server block for ``proxy_domain``."""
    explicit_pair = check_cert_pair(
        resolver.optional_path(cert_path, "NGINX_CERT_PATH"),
        resolver.optional_path(key_path, "NGINX_KEY_PATH"),
        cert_label="NGINX_CERT_PATH (--cert-path)",
        key_label="NGINX_KEY_PATH (--key-path)",
    )
    proxy = resolver.value(proxy_domain, "PROXY_DOMAIN", "Proxy domain (e.g., proxy.example.com)")
    backend = resolver.value(backend_url, "BACKEND_URL", "Backend URL (e.g., https://emby.example.com:443)")
    resolver_line = resolve_resolver_list(resolver, resolvers)

    pair: Optional[CertPair] = explicit_pair
    if pair is None:
        cert_domain = resolver.name_with_default(domain, ["DOMAIN"], proxy, "Certificate domain")
        cert_directory = resolve_cert_dir(
            resolver, resolver.optional_path(cert_dir, "CERT_DIR"), cert_dir_name, CERT_DIR_NAME_KEYS
        )
        pair = CertPair.for_domain(cert_directory, cert_domain)
    directory = resolver.path(output_dir, "PROXY_OUTPUT_DIR", DEFAULT_PROXY_OUTPUT_DIR, "proxy config output dir")
    output = directory / proxy_config_name(proxy)

    content = render_template(
        PROXY_TEMPLATE,
        PROXY_DOMAIN=proxy,
        BACKEND_URL=backend,
        CERT_PATH=str(pair.cert),
        KEY_PATH=str(pair.key),
        RESOLVER=resolver_line,
    )
    write_config(output, content, dry_run=dry_run)
    return output


def reload_nginx(nginx_bin: Union[str, Path], dry_run: bool = False) -> None:
    """Validate the configuration with ``nginx -t`` and then reload."""
    if dry_run:
        log_action(f"[DRY RUN] Would run {nginx_bin} -t and {nginx_bin} -s reload")
        return

    for args, what in ((("-t",), "nginx -t"), (("-s", "reload"), "nginx reload")):
        log_action(f"Running {what}...")
        try:
            sh.Command(str(nginx_bin))(*args, _fg=True)
        except sh.ErrorReturnCode as exc:
            raise CommandError(f"{what} failed") from exc
        except sh.CommandNotFound as exc:
            raise CommandError(f"Failed to run {what}: {nginx_bin} not found") from exc
    log_info("nginx reloaded.")
