"""Interactive terminal prompts."""
import getpass
import logging
import sys
from typing import Optional, TextIO

logger = logging.getLogger(__name__)

MAX_TRIES = 3


class PromptError(Exception):
    """The user could not be asked, or gave no usable answer."""
    pass


class Prompter:
    """Asks the user for strings, passwords and confirmations on the terminal.

    With ``echo`` enabled, passwords are read like ordinary strings so the
    typed characters stay visible. When ``stream`` is given (the
    controlling terminal), questions are written to and answered from it
    instead of stdin.
    """

    def __init__(self, echo: bool = False, stream: Optional[TextIO] = None):
        self.echo = echo
        self.stream = stream

    def echoing(self) -> "Prompter":
        """Return a prompter that reads passwords with visible input."""
        return Prompter(echo=True, stream=self.stream)

    def _read_line(self, prompt: str) -> str:
        if self.stream is None:
            return input(prompt)
        self.stream.write(prompt)
        self.stream.flush()
        line = self.stream.readline()
        if not line:
            raise EOFError
        return line.rstrip("\n")

    def ask_for_string(self, prompt: str, default: str = "") -> str:
        suffix = f" [{default}]" if default else ""
        try:
            answer = self._read_line(f"{prompt}{suffix}: ")
        except EOFError as e:
            raise PromptError(f"no input available for '{prompt}'") from e
        return answer.strip() or default

    def _read_password(self, prompt: str) -> str:
        if self.echo:
            return self.ask_for_string(prompt)
        try:
            return getpass.getpass(f"{prompt}: ", stream=self.stream)
        except EOFError as e:
            raise PromptError(f"no input available for '{prompt}'") from e

    def ask_for_password(self, name: str) -> str:
        """
        Ask for a password twice and return it once both entries match.

        Raises:
            PromptError: After MAX_TRIES mismatched attempts
        """
        for attempt in range(1, MAX_TRIES + 1):
            first = self._read_password(f"Enter password for {name}")
            second = self._read_password(f"Retype password for {name}")
            if first == second:
                return first
            print(f"Error: the entered passwords do not match ({attempt}/{MAX_TRIES})", file=sys.stderr)
        raise PromptError(f"passwords did not match after {MAX_TRIES} attempts")

    def ask_for_confirmation(self, prompt: str) -> bool:
        """Ask a yes/no question. Returns False when no valid answer is given."""
        for _ in range(MAX_TRIES):
            try:
                answer = self.ask_for_string(f"{prompt} [y/N]").lower()
            except PromptError:
                logger.debug(f"no answer for confirmation '{prompt}'")
                return False
            if answer in ("y", "yes"):
                return True
            if answer in ("", "n", "no"):
                return False
            print("Please answer 'y' or 'n'.", file=sys.stderr)
        return False
