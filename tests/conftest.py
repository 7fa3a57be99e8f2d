"""Shared fixtures: temporary HOME, in-memory store and scripted prompts."""
import copy
import io
from pathlib import Path

import pytest

from agent_passkit.secrets.domains import preferences
from agent_passkit.secrets.domains import session as session_module
from agent_passkit.secrets.domains.models import Secret
from agent_passkit.secrets.domains.options import Options
from agent_passkit.secrets.domains.prompts import PromptError
from agent_passkit.secrets.domains.session import Session
from agent_passkit.secrets.domains.store import StoreError
from agent_passkit.secrets.workflows import secret_operations
from agent_passkit.secrets.workflows.insert import Inserter


class FakeStore:
    """In-memory store gateway recording every write."""

    def __init__(self, secrets=None):
        self.secrets = {name: copy.deepcopy(sec) for name, sec in (secrets or {}).items()}
        self.writes = []
        self.fail_get = False
        self.fail_set = False

    def exists(self, name):
        return name in self.secrets

    def get(self, name):
        if self.fail_get:
            raise StoreError("decryption failed")
        return copy.deepcopy(self.secrets[name])

    def set(self, name, secret, message, recipients):
        if self.fail_set:
            raise StoreError("encryption failed")
        self.writes.append((name, copy.deepcopy(secret), message, recipients))
        self.secrets[name] = copy.deepcopy(secret)


class ScriptedPrompter:
    """Prompter answering from prepared lists."""

    def __init__(self, strings=(), passwords=(), confirm=True):
        self.strings = list(strings)
        self.passwords = list(passwords)
        self.confirm = confirm
        self.echo = False
        self.asked = []
        self.confirmations = []

    def echoing(self):
        self.echo = True
        return self

    def ask_for_string(self, prompt, default=""):
        self.asked.append(prompt)
        if not self.strings:
            raise PromptError("no input")
        return self.strings.pop(0)

    def ask_for_password(self, name):
        self.asked.append(name)
        if not self.passwords:
            raise PromptError("no input")
        return self.passwords.pop(0)

    def ask_for_confirmation(self, prompt):
        self.confirmations.append(prompt)
        return self.confirm


class FakeTerminal:
    """Controlling terminal with scripted answers; records what was written to it."""

    def __init__(self, *lines):
        self.lines = list(lines)
        self.written = []

    def write(self, text):
        self.written.append(text)

    def flush(self):
        pass

    def readline(self):
        return self.lines.pop(0) if self.lines else ""


@pytest.fixture
def temp_home(tmp_path, monkeypatch):
    """Fixture to create a temporary home directory for testing."""
    fake_home = tmp_path / "home"
    fake_home.mkdir()
    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setattr(Path, "home", lambda: fake_home)

    fake_config_dir = fake_home / ".config" / "agent-passkit"
    monkeypatch.setattr(preferences, "PREFERENCES_DIR", fake_config_dir)
    monkeypatch.setattr(preferences, "PREFERENCES_FILE", fake_config_dir / "preferences.json")

    return fake_home


@pytest.fixture(autouse=True)
def clean_config():
    """Reset the per-process config cache between tests."""
    secret_operations.reset_config()
    yield
    secret_operations.reset_config()


@pytest.fixture(autouse=True)
def no_terminal(monkeypatch):
    """Keep tests away from the real controlling terminal."""
    def unavailable():
        raise OSError("no controlling terminal in tests")

    monkeypatch.setattr(session_module, "_open_tty", unavailable)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def existing_store():
    """Store holding one structured secret under 'web/github'."""
    return FakeStore({
        "web/github": Secret(password="old-pass", body={"user": "octocat", "url": "https://github.com"}),
    })


@pytest.fixture
def make_inserter():
    """Factory building an Inserter around fakes.

    stdin=None means nothing is piped.
    """
    def _make(store, stdin=None, interactive=True, prompter=None, **kwargs):
        session = Session(
            stdin=stdin if hasattr(stdin, "read") else io.BytesIO(stdin or b""),
            is_stdin=stdin is not None,
            is_interactive=interactive,
            is_terminal=True,
        )
        kwargs.setdefault("audit", lambda password: None)
        return Inserter(
            store=store,
            session=session,
            options=Options(),
            prompter=prompter or ScriptedPrompter(),
            **kwargs,
        )
    return _make
