"""Domain models for secret management.

A secret is stored as plain text:

    <password>
    <free-form notes>
    ---
    <YAML mapping of key/value fields>

Notes and the YAML section are both optional.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import yaml

YAML_SEPARATOR = "---"


class SecretError(Exception):
    """Secret could not be modified."""
    pass


class SecretParseError(SecretError):
    """Secret body is not valid structured data.

    Carries the best-effort secret recovered from the input in ``secret``.
    """

    def __init__(self, message: str, secret: "Secret"):
        super().__init__(message)
        self.secret = secret


def _has_separator(text: str) -> bool:
    return any(line.strip() == YAML_SEPARATOR for line in text.splitlines())


@dataclass
class Secret:
    """Represents a secret: password, structured fields and free-form notes."""
    password: str = ""
    body: Dict[str, str] = field(default_factory=dict)
    notes: str = ""

    def set_password(self, password: str) -> None:
        self.password = password

    def get(self, key: str) -> Optional[str]:
        return self.body.get(key)

    def keys(self) -> List[str]:
        return list(self.body.keys())

    def set_value(self, key: str, value: str) -> None:
        """
        Set a structured field, overwriting any previous value.

        Raises:
            SecretError: If the key is invalid or the secret holds a
                structured section that could not be parsed
        """
        if not key:
            raise SecretError("key must not be empty")
        if key == "password":
            raise SecretError("'password' is reserved, use set_password instead")
        if _has_separator(self.notes):
            raise SecretError("secret contains an unparsable YAML section, refusing to add keys")
        self.body[key] = value

    def to_bytes(self) -> bytes:
        """Serialize the secret to its stored byte representation."""
        out = self.password + "\n"
        if self.notes:
            out += self.notes
            if self.body and not self.notes.endswith("\n"):
                out += "\n"
        if self.body:
            out += YAML_SEPARATOR + "\n"
            out += yaml.safe_dump(
                dict(self.body),
                sort_keys=False,
                default_flow_style=False,
                allow_unicode=True,
            )
        return out.encode("utf-8")


def parse(content: bytes) -> Secret:
    """
    Parse stored bytes into a Secret.

    Parsing is lenient: when the YAML section is malformed a
    SecretParseError is raised carrying a best-effort secret (password kept,
    the raw remainder kept as notes) that callers may continue with.

    Args:
        content: Raw secret bytes

    Returns:
        Parsed secret

    Raises:
        SecretParseError: If the structured section is not a YAML mapping
    """
    text = content.decode("utf-8", errors="replace")
    password, _, rest = text.partition("\n")
    password = password.rstrip("\r")

    lines = rest.splitlines(keepends=True)
    for idx, line in enumerate(lines):
        if line.strip() == YAML_SEPARATOR:
            notes = "".join(lines[:idx])
            document = "".join(lines[idx + 1:])
            break
    else:
        return Secret(password=password, notes=rest)

    fallback = Secret(password=password, notes=rest)
    try:
        data = yaml.safe_load(document)
    except yaml.YAMLError as e:
        raise SecretParseError(f"failed to parse YAML: {e}", fallback) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise SecretParseError(f"expected a YAML mapping, got {type(data).__name__}", fallback)

    body = {}
    for k, v in data.items():
        body[str(k)] = "" if v is None else str(v)
    return Secret(password=password, body=body, notes=notes)
