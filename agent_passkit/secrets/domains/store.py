"""Store gateway interface and recipient resolution strategies."""
import logging
import re
from typing import Callable, List, Protocol

from .models import Secret
from .options import Options

logger = logging.getLogger(__name__)

# (prompt, requested recipients) -> recipients to use for the write
RecipientFunc = Callable[[str, List[str]], List[str]]

# IAM member forms that are trusted without further checks
TRUSTED_MEMBER = re.compile(r"^(user|group|serviceAccount|domain):[^\s:]+$")


class StoreError(Exception):
    """Store read or write failed."""
    pass


class SecretStore(Protocol):
    """Persistence gateway for secrets. Implementations serialize concurrent access."""

    def exists(self, name: str) -> bool:
        ...

    def get(self, name: str) -> Secret:
        ...

    def set(self, name: str, secret: Secret, message: str, recipients: RecipientFunc) -> None:
        ...


def accept_all_recipients(prompt: str, recipients: List[str]) -> List[str]:
    """Accept every requested recipient unconditionally."""
    return list(recipients)


class TrustCheckingRecipients:
    """
    Accept recipients in IAM member form, offer the rest to the import handler.

    An unset import handler asks the user whether to accept each untrusted
    recipient; a disabled one rejects them.
    """

    def __init__(self, options: Options, confirm: Callable[[str], bool]):
        self.options = options
        self.confirm = confirm

    def _import(self, recipient: str) -> bool:
        if self.options.import_func is None:
            return self.confirm(f"Recipient '{recipient}' is not a known principal. Use it anyway?")
        return self.options.import_func(recipient)

    def __call__(self, prompt: str, recipients: List[str]) -> List[str]:
        accepted = []
        for recipient in recipients:
            if TRUSTED_MEMBER.match(recipient) or self._import(recipient):
                accepted.append(recipient)
            else:
                logger.warning(f"{prompt}: skipping untrusted recipient '{recipient}'")
        return accepted
