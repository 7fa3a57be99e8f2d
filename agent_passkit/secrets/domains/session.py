"""Terminal state of the current invocation."""
import logging
import sys
from dataclasses import dataclass
from typing import BinaryIO, Optional, TextIO

logger = logging.getLogger(__name__)

TTY_PATH = "/dev/tty"


@dataclass(frozen=True)
class Session:
    """Where input comes from and whether the user can be asked questions.

    ``tty`` is the controlling terminal, opened when stdin is piped so
    prompts don't read from the already consumed pipe.
    """
    stdin: BinaryIO
    is_stdin: bool = False
    is_interactive: bool = True
    is_terminal: bool = True
    tty: Optional[TextIO] = None


def _open_tty() -> TextIO:
    return open(TTY_PATH, "r+")


def detect_session(interactive: bool = True) -> Session:
    """
    Inspect the standard streams of this process.

    With piped stdin, prompts go to the controlling terminal. Without one
    the session is not interactive.

    Args:
        interactive: False when prompting has been disabled explicitly

    Returns:
        Session describing piped input and terminal attachment
    """
    is_stdin = not sys.stdin.isatty()
    tty = None
    if is_stdin and interactive:
        try:
            tty = _open_tty()
        except OSError as e:
            logger.debug(f"No controlling terminal, not prompting: {e}")
            interactive = False

    return Session(
        stdin=getattr(sys.stdin, "buffer", sys.stdin),
        is_stdin=is_stdin,
        is_interactive=interactive,
        is_terminal=sys.stdout.isatty(),
        tty=tty,
    )
