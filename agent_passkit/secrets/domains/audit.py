"""Password strength checks. Findings are logged, never enforced."""
import logging
import string
from typing import List

logger = logging.getLogger(__name__)

MIN_LENGTH = 12
MIN_CLASSES = 3

SEQUENCES = (
    string.ascii_lowercase,
    string.digits,
    "qwertyuiopasdfghjklzxcvbnm",
)

COMMON_PASSWORDS = frozenset({
    "password", "passw0rd", "123456", "12345678", "123456789", "qwerty",
    "letmein", "welcome", "admin", "iloveyou", "monkey", "dragon",
    "abc123", "trustno1", "changeme", "secret",
})


def _contains_sequence(password: str, length: int = 4) -> bool:
    lowered = password.lower()
    for seq in SEQUENCES:
        for i in range(len(seq) - length + 1):
            if seq[i:i + length] in lowered or seq[i:i + length][::-1] in lowered:
                return True
    return False


def check_password(password: str) -> List[str]:
    """Return a list of weaknesses found in password (empty if none)."""
    findings = []
    if not password:
        return ["password is empty"]

    if password.lower() in COMMON_PASSWORDS:
        findings.append("password is a commonly used password")
    if len(password) < MIN_LENGTH:
        findings.append(f"password is shorter than {MIN_LENGTH} characters")

    classes = sum((
        any(c.islower() for c in password),
        any(c.isupper() for c in password),
        any(c.isdigit() for c in password),
        any(not c.isalnum() for c in password),
    ))
    if classes < MIN_CLASSES:
        findings.append(f"password uses only {classes} of 4 character classes")

    if len(set(password)) == 1 and len(password) > 1:
        findings.append("password repeats a single character")
    if _contains_sequence(password):
        findings.append("password contains a common sequence")
    return findings


def audit_single(password: str) -> None:
    """Warn about a weak password. Does not affect the caller."""
    for finding in check_password(password):
        logger.warning(f"Weak password: {finding}")
