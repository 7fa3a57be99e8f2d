"""Workflow for inserting a secret from piped input, prompts or an editor."""
import logging
from typing import BinaryIO, Callable, Dict, Optional, Tuple

from ..domains.audit import audit_single
from ..domains.editor import EditorLaunchError, invoke_editor
from ..domains.errors import (
    AbortedError,
    DecryptError,
    EditorError,
    EncryptError,
    InputError,
    NoNameError,
)
from ..domains.models import Secret, SecretError, SecretParseError, parse
from ..domains.options import Options
from ..domains.prompts import Prompter, PromptError
from ..domains.session import Session
from ..domains.store import (
    RecipientFunc,
    SecretStore,
    StoreError,
    TrustCheckingRecipients,
    accept_all_recipients,
)

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 64 * 1024

MSG_YAML = "Inserted YAML value from STDIN"
MSG_STDIN = "Read secret from STDIN"
MSG_SINGLE = "Inserted user supplied password"
MSG_EDITOR = "Inserted user supplied password with {editor}"

EditorFunc = Callable[[str, bytes], bytes]
TemplateFunc = Callable[[str, bytes], Tuple[bytes, bool]]


def _no_template(name: str, content: bytes) -> Tuple[bytes, bool]:
    return b"", False


def read_stdin(stream: BinaryIO) -> bytes:
    """
    Read piped input to completion.

    Raises:
        InputError: On read failure, reporting how many bytes were read
    """
    buf = bytearray()
    try:
        while True:
            chunk = stream.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            buf.extend(chunk)
    except OSError as e:
        raise InputError(f"failed to copy after {len(buf)} bytes: {e}") from e
    return bytes(buf)


def set_metadata(secret: Secret, kvps: Optional[Dict[str, str]]) -> None:
    """Overwrite structured fields of secret with kvps. Keys that can't be set are skipped."""
    for key, value in (kvps or {}).items():
        try:
            secret.set_value(key, value)
        except SecretError as e:
            logger.warning(f"Skipping metadata '{key}': {e}")


def parse_lenient(content: bytes) -> Secret:
    """Parse content, falling back to the best-effort secret on invalid YAML."""
    try:
        return parse(content)
    except SecretParseError as e:
        logger.warning(f"WARNING: Invalid YAML: {e}")
        return e.secret


class Inserter:
    """
    Creates or updates a single secret.

    Collaborators are injected so each input source can be driven without a
    terminal: the store gateway, the session's terminal state, the layered
    options, a prompter, an editor and a template renderer.
    """

    def __init__(
        self,
        store: SecretStore,
        session: Session,
        options: Options,
        prompter: Prompter,
        editor: str = "vi",
        edit: EditorFunc = invoke_editor,
        render_template: TemplateFunc = _no_template,
        audit: Callable[[str], None] = audit_single,
    ):
        self.store = store
        self.session = session
        self.options = options
        self.prompter = prompter
        self.editor = editor
        self.edit = edit
        self.render_template = render_template
        self.audit = audit

    def insert(
        self,
        name: str,
        key: str = "",
        echo: bool = False,
        multiline: bool = False,
        force: bool = False,
        append: bool = False,
        metadata: Optional[Dict[str, str]] = None,
    ) -> None:
        """
        Insert a secret, choosing the input source by precedence.

        Order of precedence:
        1. A key updates a single YAML field, whatever else was requested
        2. Piped input becomes the whole secret (or is appended to it)
        3. Overwriting an existing secret requires --force or confirmation
        4. --multiline opens an editor when the session is interactive
        5. Otherwise the password is prompted for

        Raises:
            InsertError: Subclass matching the failure; see domains.errors
        """
        if not name:
            raise NoNameError("Usage: passkit secrets insert name")

        if force:
            recipients: RecipientFunc = accept_all_recipients
        else:
            recipients = TrustCheckingRecipients(self.options, self.prompter.ask_for_confirmation)

        content = b""
        if self.session.is_stdin:
            content = read_stdin(self.session.stdin)

        if key:
            return self._insert_yaml(name, key, content, metadata, recipients)

        if self.session.is_stdin:
            if not force and not append and self.store.exists(name):
                raise AbortedError("not overwriting your current secret")
            return self._insert_stdin(name, content, append, recipients)

        if not force and self.store.exists(name):
            question = f"An entry already exists for {name}. Overwrite it?"
            if not self.prompter.ask_for_confirmation(question):
                raise AbortedError("not overwriting your current secret")

        if multiline and self.session.is_interactive:
            return self._insert_multiline(name, recipients)

        prompter = self.prompter.echoing() if echo else self.prompter
        try:
            password = prompter.ask_for_password(name)
        except PromptError as e:
            raise InputError(f"failed to ask for password: {e}") from e

        return self._insert_single(name, password, metadata, recipients)

    def _write(self, name: str, secret: Secret, message: str, recipients: RecipientFunc, error: str) -> None:
        try:
            self.store.set(name, secret, message, recipients)
        except StoreError as e:
            raise EncryptError(f"{error}: {e}") from e

    def _insert_yaml(self, name, key, content, metadata, recipients) -> None:
        if self.session.is_interactive:
            try:
                value = self.prompter.ask_for_string(f"{name}:{key}")
            except PromptError as e:
                raise InputError(f"failed to ask for user input: {e}") from e
        else:
            value = content.decode("utf-8", errors="replace")

        context = f"failed to set key '{key}' of '{name}'"
        secret = Secret()
        if self.store.exists(name):
            try:
                secret = self.store.get(name)
            except StoreError as e:
                raise EncryptError(f"{context}: {e}") from e

        set_metadata(secret, metadata)
        try:
            secret.set_value(key, value)
        except SecretError as e:
            raise EncryptError(f"{context}: {e}") from e

        self._write(name, secret, MSG_YAML, recipients, context)

    def _insert_stdin(self, name, content, append, recipients) -> None:
        if append and self.store.exists(name):
            try:
                existing = self.store.get(name)
            except StoreError as e:
                raise DecryptError(f"failed to decrypt existing secret: {e}") from e
            try:
                content = existing.to_bytes() + content
            except (SecretError, UnicodeError) as e:
                raise DecryptError(f"failed to decode existing secret: {e}") from e

        secret = parse_lenient(content)
        self._write(name, secret, MSG_STDIN, recipients, f"failed to set '{name}'")

    def _insert_single(self, name, password, metadata, recipients) -> None:
        if self.store.exists(name):
            try:
                secret = self.store.get(name)
            except StoreError as e:
                raise DecryptError(f"failed to decrypt existing secret: {e}") from e
        else:
            secret = Secret()
            rendered, found = self.render_template(name, password.encode("utf-8"))
            if found:
                try:
                    secret = parse(rendered)
                except SecretParseError as e:
                    logger.debug(f"Ignoring template output for '{name}': {e}")

        set_metadata(secret, metadata)
        secret.set_password(password)
        self.audit(secret.password)

        self._write(name, secret, MSG_SINGLE, recipients, f"failed to write secret '{name}'")

    def _insert_multiline(self, name, recipients) -> None:
        seed = b""
        if self.store.exists(name):
            try:
                existing = self.store.get(name)
            except StoreError as e:
                raise DecryptError(f"failed to decrypt existing secret: {e}") from e
            try:
                seed = existing.to_bytes()
            except (SecretError, UnicodeError) as e:
                raise EditorError(f"failed to encode secret: {e}") from e

        try:
            content = self.edit(self.editor, seed)
        except EditorLaunchError as e:
            raise EditorError(f"failed to start editor: {e}") from e

        secret = parse_lenient(content)
        message = MSG_EDITOR.format(editor=self.editor)
        self._write(name, secret, message, recipients, f"failed to store secret '{name}'")
