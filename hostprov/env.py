"""Layered value resolution: explicit flag, --env overrides, environment, prompt."""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple, Union

import typer

from hostprov import prompt
from hostprov.prompt import RESOLVER_CLOUDFLARE

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def parse_key_val(text: str) -> Tuple[str, str]:
    """Parse a ``KEY=VALUE`` override; the value may be empty."""
    if "=" not in text:
        raise typer.BadParameter(f"--env expects KEY=VALUE, got {text!r}")
    key, value = text.split("=", 1)
    key = key.strip()
    if not key:
        raise typer.BadParameter(f"--env expects a non-empty KEY, got {text!r}")
    return key, value


def to_env_map(pairs: Iterable[Tuple[str, str]]) -> Dict[str, str]:
    """Build the override map; later pairs win."""
    return {key: value for key, value in pairs}


def _present(value: Optional[str]) -> bool:
    return value is not None and value.strip() != ""


@dataclass(frozen=True)
class Resolver:
    """Resolves parameters against --env overrides and an environment snapshot.

    Every call walks its precedence chain from scratch; nothing is cached.
    """

    overrides: Mapping[str, str] = field(default_factory=dict)
    environ: Mapping[str, str] = field(default_factory=dict)

    def lookup(self, env_key: str) -> Optional[str]:
        """Return the first non-blank value from the overrides or the environment."""
        value = self.overrides.get(env_key)
        if _present(value):
            logger.debug("%s resolved from --env override", env_key)
            return value
        value = self.environ.get(env_key)
        if _present(value):
            logger.debug("%s resolved from environment", env_key)
            return value
        return None

    def from_envs(self, env_keys: Sequence[str]) -> Optional[str]:
        """Check each alias in order; the first non-blank value wins."""
        for key in env_keys:
            value = self.lookup(key)
            if value is not None:
                return value
        return None

    def value(self, explicit: Optional[str], env_key: str, label: str, secret: bool = False) -> str:
        """Resolve a required string; a blank prompt answer is returned as is."""
        if explicit is not None:
            logger.debug("%s given explicitly", env_key)
            return explicit
        found = self.lookup(env_key)
        if found is not None:
            return found
        logger.debug("%s not set, prompting", env_key)
        return prompt.prompt_value(label, secret=secret)

    def optional_value(
        self, explicit: Optional[str], env_key: str, label: str, secret: bool = False
    ) -> Optional[str]:
        """Resolve an optional string; a blank prompt answer means unset."""
        if explicit is not None:
            return explicit
        found = self.lookup(env_key)
        if found is not None:
            return found
        answer = prompt.prompt_value(label, secret=secret)
        return answer or None

    def path(self, explicit: Optional[PathLike], env_key: str, default: PathLike, label: str) -> Path:
        """Resolve a path, falling back to ``default`` on a blank prompt answer."""
        if explicit is not None:
            return Path(explicit)
        found = self.lookup(env_key)
        if found is not None:
            return Path(found)
        return Path(prompt.prompt_value(label, default=str(default)) or default)

    def optional_path(self, explicit: Optional[PathLike], env_key: str) -> Optional[Path]:
        """Resolve a path without prompting; ``None`` when nothing supplies one."""
        if explicit is not None:
            return Path(explicit)
        found = self.lookup(env_key)
        return Path(found) if found is not None else None

    def name_with_default(
        self, explicit: Optional[str], env_keys: Sequence[str], default: str, label: str
    ) -> str:
        """Resolve a name through several env aliases, then prompt showing ``default``."""
        if explicit is not None:
            return explicit
        found = self.from_envs(env_keys)
        if found is not None:
            return found
        return prompt.prompt_value(label, default=default) or default

    def resolvers(
        self,
        values: Sequence[str],
        env_key: str = "RESOLVER",
        default: str = RESOLVER_CLOUDFLARE,
        timeout: float = prompt.DEFAULT_TIMEOUT,
    ) -> str:
        """Resolve a space-separated list; falls back to the timed resolver menu."""
        if values:
            return " ".join(values)
        found = self.lookup(env_key)
        if found is not None:
            return found
        return prompt.select_resolver_with_timeout(default, timeout)
