"""Derived values built from several resolver calls."""
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence, Tuple

from hostprov.env import Resolver
from hostprov.prompt import RESOLVER_CLOUDFLARE
from hostprov.utils import ConfigurationError

CERT_BASE_DIR = Path("/etc/ca-certificates")
DEFAULT_CERT_DIR_NAME = "custom"


@dataclass(frozen=True)
class CertPair:
    """A certificate file and its private key."""

    cert: Path
    key: Path

    @classmethod
    def for_domain(cls, cert_dir: Path, domain: str) -> "CertPair":
        return cls(cert_dir / f"{domain}.cer", cert_dir / f"{domain}.key")


def resolve_cert_dir(
    resolver: Resolver,
    cert_dir: Optional[Path],
    cert_dir_name: Optional[str],
    env_keys: Sequence[str],
    default_name: str = DEFAULT_CERT_DIR_NAME,
) -> Path:
    """Use ``cert_dir`` as given, or place a resolved name under the base directory."""
    if cert_dir is not None:
        return cert_dir
    name = resolver.name_with_default(
        cert_dir_name, env_keys, default_name, "certificate directory name"
    )
    return CERT_BASE_DIR / name


def check_cert_pair(
    cert_path: Optional[Path],
    key_path: Optional[Path],
    cert_label: str = "cert path",
    key_label: str = "key path",
) -> Optional[CertPair]:
    """Return the pair when both halves are given, ``None`` when neither is.

    Supplying exactly one half is an error.
    """
    if cert_path is not None and key_path is not None:
        return CertPair(cert_path, key_path)
    if cert_path is not None or key_path is not None:
        raise ConfigurationError(f"Both {cert_label} and {key_label} must be set together")
    return None


def resolve_cert_pair(
    cert_path: Optional[Path],
    key_path: Optional[Path],
    derive: Callable[[], Tuple[Path, str]],
    cert_label: str = "cert path",
    key_label: str = "key path",
) -> CertPair:
    """Return the explicit pair, or derive both halves from ``derive()``.

    ``derive`` returns ``(cert_dir, domain)`` and is only called when neither
    half was supplied. Supplying exactly one half is an error.
    """
    pair = check_cert_pair(cert_path, key_path, cert_label, key_label)
    if pair is not None:
        return pair
    cert_dir, domain = derive()
    return CertPair.for_domain(cert_dir, domain)


def resolve_resolver_list(
    resolver: Resolver, values: Sequence[str], env_key: str = "RESOLVER"
) -> str:
    """Resolve the nginx ``resolver`` directive, defaulting to Cloudflare."""
    return resolver.resolvers(values, env_key, RESOLVER_CLOUDFLARE)
