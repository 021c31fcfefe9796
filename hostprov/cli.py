"""CLI interface for the provisioning tool."""
import os
from contextlib import contextmanager
from pathlib import Path
from typing import List, Optional

import typer

from . import certs, nginx, params, steps, utils
from .env import Resolver, parse_key_val, to_env_map

app = typer.Typer(
    name="hostprov",
    help="Host provisioning tool: packages, TLS certificates and nginx configs.",
    add_completion=False,
    no_args_is_help=True,
)

DRY_RUN_HELP = "Preview changes without applying them"


def _parse_overrides(values: Optional[List[str]]):
    return [parse_key_val(value) for value in values or []]


@contextmanager
def _reporting_errors():
    try:
        yield
    except utils.ProvisionError as exc:
        utils.log_error(str(exc))
        raise typer.Exit(1)


@app.callback()
def main(
    ctx: typer.Context,
    env: Optional[List[str]] = typer.Option(
        None, "--env", metavar="KEY=VALUE", callback=_parse_overrides,
        help="Provide environment overrides as KEY=VALUE (repeatable)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
):
    """Host provisioning tool: packages, TLS certificates and nginx configs."""
    utils.setup_logging(verbose)
    ctx.obj = Resolver(overrides=to_env_map(env or []), environ=dict(os.environ))


@app.command()
def setup(
    install_zsh: bool = typer.Option(True, "--install-zsh/--skip-zsh", help="Install zsh (asks first)"),
    install_cron: bool = typer.Option(True, "--install-cron/--skip-cron", help="Install cron"),
    install_nginx: bool = typer.Option(True, "--install-nginx/--skip-nginx", help="Install nginx"),
    dry_run: bool = typer.Option(False, "--dry-run", help=DRY_RUN_HELP),
):
    """Install zsh, cron and nginx when they are missing."""
    with _reporting_errors():
        utils.require_root()
        steps.provision_system(steps.select_steps(install_zsh, install_cron, install_nginx), dry_run=dry_run)
    typer.echo("✅ Provisioning complete!")


@app.command("issue-cert")
def issue_cert(
    ctx: typer.Context,
    cf_token: Optional[str] = typer.Option(None, "--cf-token", help="Cloudflare token"),
    cf_account_id: Optional[str] = typer.Option(None, "--cf-account-id", help="Cloudflare account ID"),
    cf_zone_id: Optional[str] = typer.Option(None, "--cf-zone-id", help="Cloudflare zone ID"),
    domain: Optional[str] = typer.Option(None, "--domain", help="Primary domain"),
    wildcard_domain: Optional[str] = typer.Option(None, "--wildcard-domain", help="Wildcard domain"),
    acme_bin: Optional[Path] = typer.Option(None, "--acme-bin", help="acme.sh path"),
    acme_home: Optional[Path] = typer.Option(None, "--acme-home", help="acme home directory"),
    cert_dir: Optional[Path] = typer.Option(None, "--cert-dir", help="Certificate directory"),
    cert_dir_name: Optional[str] = typer.Option(None, "--cert-dir-name", help="Certificate directory name"),
    cert_input_path: Optional[Path] = typer.Option(None, "--cert-input-path", help="Issued cert to install"),
    key_input_path: Optional[Path] = typer.Option(None, "--key-input-path", help="Issued key to install"),
    cert_output_path: Optional[Path] = typer.Option(None, "--cert-output-path", help="Certificate output path"),
    key_output_path: Optional[Path] = typer.Option(None, "--key-output-path", help="Key output path"),
    nginx_bin: Optional[Path] = typer.Option(None, "--nginx-bin", help="nginx binary"),
    reload_nginx: bool = typer.Option(True, "--reload-nginx/--no-reload-nginx", help="Reload nginx afterwards"),
    schedule_renewal: bool = typer.Option(
        True, "--schedule-renewal/--no-schedule-renewal", help="Add the acme.sh renewal job to crontab"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help=DRY_RUN_HELP),
):
    """Issue a certificate via acme.sh (Cloudflare DNS) and install it."""
    args = certs.IssueCertArgs(
        cf_token=cf_token,
        cf_account_id=cf_account_id,
        cf_zone_id=cf_zone_id,
        domain=domain,
        wildcard_domain=wildcard_domain,
        acme_bin=acme_bin,
        acme_home=acme_home,
        cert_dir=cert_dir,
        cert_dir_name=cert_dir_name,
        cert_input_path=cert_input_path,
        key_input_path=key_input_path,
        cert_output_path=cert_output_path,
        key_output_path=key_output_path,
        nginx_bin=nginx_bin,
    )
    with _reporting_errors():
        utils.require_root()
        certs.issue_cert(ctx.obj, args, reload=reload_nginx, renew=schedule_renewal, dry_run=dry_run)


@app.command("write-nginx-default")
def write_nginx_default(
    ctx: typer.Context,
    cert_path: Optional[Path] = typer.Option(None, "--cert-path", help="Nginx cert path"),
    key_path: Optional[Path] = typer.Option(None, "--key-path", help="Nginx key path"),
    cert_dir_name: Optional[str] = typer.Option(None, "--cert-dir-name", help="Certificate directory name"),
    domain: Optional[str] = typer.Option(None, "--domain", help="Primary domain"),
    output_path: Optional[Path] = typer.Option(None, "--output-path", help="Output path for default config"),
    dry_run: bool = typer.Option(False, "--dry-run", help=DRY_RUN_HELP),
):
    """Write the default nginx server that drops unknown hosts."""
    with _reporting_errors():
        nginx.write_nginx_default(
            ctx.obj,
            cert_path=cert_path,
            key_path=key_path,
            cert_dir_name=cert_dir_name,
            domain=domain,
            output_path=output_path,
            dry_run=dry_run,
        )


@app.command("write-proxy-config")
def write_proxy_config(
    ctx: typer.Context,
    proxy_domain: Optional[str] = typer.Option(None, "--proxy-domain", help="Proxy domain"),
    backend_url: Optional[str] = typer.Option(None, "--backend-url", help="Backend URL"),
    resolver: Optional[List[str]] = typer.Option(None, "--resolver", help="DNS resolver (repeatable)"),
    cert_path: Optional[Path] = typer.Option(None, "--cert-path", help="Nginx cert path"),
    key_path: Optional[Path] = typer.Option(None, "--key-path", help="Nginx key path"),
    domain: Optional[str] = typer.Option(None, "--domain", help="Certificate domain"),
    cert_dir: Optional[Path] = typer.Option(None, "--cert-dir", help="Certificate directory"),
    cert_dir_name: Optional[str] = typer.Option(None, "--cert-dir-name", help="Certificate directory name"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", help="Proxy config output dir"),
    dry_run: bool = typer.Option(False, "--dry-run", help=DRY_RUN_HELP),
):
    """Write an nginx reverse proxy config for one domain."""
    with _reporting_errors():
        nginx.write_proxy_config(
            ctx.obj,
            proxy_domain=proxy_domain,
            backend_url=backend_url,
            resolvers=resolver or [],
            cert_path=cert_path,
            key_path=key_path,
            domain=domain,
            cert_dir=cert_dir,
            cert_dir_name=cert_dir_name,
            output_dir=output_dir,
            dry_run=dry_run,
        )


@app.command("print-params")
def print_params():
    """Print every parameter and its environment key."""
    for line in params.format_table(params.PARAMS):
        typer.echo(line)


if __name__ == "__main__":
    app()
