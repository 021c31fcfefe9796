"""Interactive prompts, some of them bounded by a timeout."""
import logging
import queue
import sys
import threading
from typing import IO, Optional

import typer

from hostprov.utils import PromptError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10

RESOLVER_CLOUDFLARE = "1.1.1.1 1.0.0.1 [2606:4700:4700::1111] [2606:4700:4700::1064]"
RESOLVER_TENCENT = "119.29.29.29 182.254.116.116"
RESOLVER_ALI = "223.5.5.5 223.6.6.6"
RESOLVER_GOOGLE = "8.8.8.8 8.8.4.4"

RESOLVER_CHOICES = {
    "1": ("Cloudflare", RESOLVER_CLOUDFLARE),
    "2": ("Tencent", RESOLVER_TENCENT),
    "3": ("Aliyun", RESOLVER_ALI),
    "4": ("Google", RESOLVER_GOOGLE),
}
CUSTOM_CHOICE = "5"


def prompt_value(label: str, secret: bool = False, default: Optional[str] = None) -> str:
    """Ask for a value and block until a line is entered.

    The answer is trimmed. A blank answer is returned as ``default`` when one
    is given and as an empty string otherwise; it is never re-prompted.
    """
    try:
        if default is None:
            answer = typer.prompt(label, default="", show_default=False, hide_input=secret)
        else:
            answer = typer.prompt(label, default=default, hide_input=secret)
    except typer.Abort as exc:
        raise PromptError(f"Prompt failed: no input for {label}") from exc
    return str(answer).strip()


def read_line_with_timeout(timeout: float, stream: Optional[IO[str]] = None) -> Optional[str]:
    """Read one line from ``stream``, giving up after ``timeout`` seconds.

    Returns ``None`` on timeout. The reader thread is a daemon and is left
    running when the wait expires.
    """
    source = stream if stream is not None else sys.stdin
    channel: "queue.Queue[object]" = queue.Queue(maxsize=1)

    def _reader() -> None:
        try:
            channel.put(source.readline())
        except (OSError, ValueError) as exc:
            channel.put(exc)

    threading.Thread(target=_reader, name="timed-prompt", daemon=True).start()

    try:
        result = channel.get(timeout=timeout)
    except queue.Empty:
        logger.debug("No input within %ss", timeout)
        return None
    if isinstance(result, Exception):
        raise PromptError(f"Failed to read input: {result}") from result
    return str(result)


def confirm_with_timeout(
    question: str, timeout: float = DEFAULT_TIMEOUT, stream: Optional[IO[str]] = None
) -> bool:
    """Ask a yes/no question; anything but an explicit yes means no."""
    typer.echo(f"{question} [y/N] (auto-no in {timeout}s): ", nl=False)
    answer = read_line_with_timeout(timeout, stream)
    if answer is None:
        typer.echo()
        return False
    return answer.strip().lower() in ("y", "yes")


def select_resolver_with_timeout(
    default: str, timeout: float = DEFAULT_TIMEOUT, stream: Optional[IO[str]] = None
) -> str:
    """Let the operator pick a DNS resolver from a numbered menu."""
    typer.echo("Select DNS resolver (default: Cloudflare):")
    for number, (name, _) in RESOLVER_CHOICES.items():
        typer.echo(f"  {number}) {name}")
    typer.echo(f"  {CUSTOM_CHOICE}) Custom")
    typer.echo(f"Enter choice [1-5] within {timeout}s: ", nl=False)

    answer = read_line_with_timeout(timeout, stream)
    if answer is None:
        typer.echo()
        return default

    choice = answer.strip()
    if choice in RESOLVER_CHOICES:
        return RESOLVER_CHOICES[choice][1]
    if choice == CUSTOM_CHOICE:
        custom = prompt_value("Custom resolver (space-separated)")
        return custom or default
    return default
