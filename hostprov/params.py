"""Reference table of every command-line parameter and environment key."""
from typing import List, Sequence, Tuple

HEADER = ("Parameter/ENV", "Description")

_DRY_RUN = ("--dry-run", "Simulate actions without changes")

PARAMS: List[Tuple[str, str]] = [
    ("--env KEY=VALUE", "Override environment values (repeatable)"),
    ("--verbose", "Enable debug logging"),
    ("setup", "Install zsh, cron and nginx"),
    ("--install-zsh/--skip-zsh", "Install zsh (asks for confirmation)"),
    ("--install-cron/--skip-cron", "Install cron"),
    ("--install-nginx/--skip-nginx", "Install nginx from nginx.org"),
    _DRY_RUN,
    ("issue-cert", "Issue certs and optionally reload nginx"),
    ("--cf-token", "Cloudflare token"),
    ("CF_TOKEN", "Cloudflare token (env)"),
    ("--cf-account-id", "Cloudflare account ID"),
    ("CF_ACCOUNT_ID", "Cloudflare account ID (env)"),
    ("--cf-zone-id", "Cloudflare zone ID"),
    ("CF_ZONE_ID", "Cloudflare zone ID (env)"),
    ("--domain", "Primary domain"),
    ("DOMAIN", "Primary domain (env)"),
    ("--wildcard-domain", "Wildcard domain"),
    ("WILDCARD_DOMAIN", "Wildcard domain (env)"),
    ("--acme-bin", "acme.sh path"),
    ("ACME_BIN", "acme.sh path (env)"),
    ("--acme-home", "acme home directory"),
    ("ACME_HOME", "acme home directory (env)"),
    ("--cert-dir", "Certificate directory (absolute path)"),
    ("CERT_DIR", "Certificate directory (env)"),
    ("--cert-dir-name", "Certificate directory name"),
    ("CERT_DIR_NAME", "Certificate directory name (env)"),
    ("--cert-input-path", "Issued cert to install instead of acme output"),
    ("CERT_INPUT_PATH", "Issued cert path (env)"),
    ("--key-input-path", "Issued key to install instead of acme output"),
    ("KEY_INPUT_PATH", "Issued key path (env)"),
    ("--cert-output-path", "Certificate output path"),
    ("CERT_OUTPUT_PATH", "Certificate output path (env)"),
    ("--key-output-path", "Key output path"),
    ("KEY_OUTPUT_PATH", "Key output path (env)"),
    ("--nginx-bin", "nginx binary"),
    ("NGINX_BIN", "nginx binary (env)"),
    ("--reload-nginx", "Reload nginx after issuance"),
    ("--schedule-renewal", "Add acme.sh renewal job to crontab"),
    _DRY_RUN,
    ("write-nginx-default", "Write default nginx 444 config"),
    ("--cert-path", "Nginx cert path (absolute)"),
    ("NGINX_CERT_PATH", "Nginx cert path (env)"),
    ("--key-path", "Nginx key path (absolute)"),
    ("NGINX_KEY_PATH", "Nginx key path (env)"),
    ("--cert-dir-name", "Certificate directory name"),
    ("NGINX_CERT_DIR_NAME", "Certificate dir name (env)"),
    ("--domain", "Primary domain (used for default cert/key)"),
    ("DOMAIN", "Primary domain (env)"),
    ("--output-path", "Output path for default config"),
    ("NGINX_DEFAULT_OUTPUT", "Output path for default config (env)"),
    _DRY_RUN,
    ("write-proxy-config", "Write reverse proxy config"),
    ("--proxy-domain", "Proxy domain"),
    ("PROXY_DOMAIN", "Proxy domain (env)"),
    ("--backend-url", "Backend URL"),
    ("BACKEND_URL", "Backend URL (env)"),
    ("--resolver", "DNS resolver (repeatable)"),
    ("RESOLVER", "DNS resolver list (env or interactive)"),
    ("--cert-path", "Nginx cert path (absolute)"),
    ("NGINX_CERT_PATH", "Nginx cert path (env)"),
    ("--key-path", "Nginx key path (absolute)"),
    ("NGINX_KEY_PATH", "Nginx key path (env)"),
    ("--domain", "Certificate domain (defaults to proxy domain)"),
    ("DOMAIN", "Certificate domain (env)"),
    ("--cert-dir", "Certificate directory (absolute path)"),
    ("CERT_DIR", "Certificate directory (env)"),
    ("--cert-dir-name", "Certificate directory name"),
    ("CERT_DIR_NAME", "Certificate directory name (env)"),
    ("--output-dir", "Proxy config output dir"),
    ("PROXY_OUTPUT_DIR", "Proxy config output dir (env)"),
    _DRY_RUN,
    ("print-params", "Show this table"),
]


def format_table(rows: Sequence[Tuple[str, str]], header: Tuple[str, str] = HEADER) -> List[str]:
    """Render rows as a bordered two-column table."""
    name_width = max(len(name) for name, _ in [header, *rows])
    desc_width = max(len(desc) for _, desc in [header, *rows])
    border = f"+-{'-' * name_width}-+-{'-' * desc_width}-+"

    def line(name: str, desc: str) -> str:
        return f"| {name:<{name_width}} | {desc:<{desc_width}} |"

    return [border, line(*header), border, *(line(n, d) for n, d in rows), border]
