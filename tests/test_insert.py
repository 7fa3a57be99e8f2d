"""Tests for the insert workflow.

Covers input-source precedence, the four mutation paths (YAML key, stdin,
single password, editor) and the error each failure maps to.
"""
import io
import logging

import pytest

from conftest import FakeStore, ScriptedPrompter

from agent_passkit.secrets.domains.editor import EditorLaunchError
from agent_passkit.secrets.domains.errors import (
    AbortedError,
    DecryptError,
    EditorError,
    EncryptError,
    ExitCode,
    InputError,
    NoNameError,
)
from agent_passkit.secrets.domains.models import Secret, parse
from agent_passkit.secrets.domains.store import TrustCheckingRecipients, accept_all_recipients
from agent_passkit.secrets.workflows.insert import (
    MSG_SINGLE,
    MSG_STDIN,
    MSG_YAML,
    read_stdin,
)


class BrokenStream:
    """Stream that yields one chunk, then fails."""

    def __init__(self, first):
        self.first = first
        self.calls = 0

    def read(self, size):
        self.calls += 1
        if self.calls == 1:
            return self.first
        raise OSError("broken pipe")


class TestPreconditions:

    def test_empty_name_fails_without_side_effects(self, store, make_inserter):
        """Test that a missing name is rejected before anything is read or written."""
        prompter = ScriptedPrompter(passwords=["secret"])
        inserter = make_inserter(store, prompter=prompter)

        with pytest.raises(NoNameError) as exc_info:
            inserter.insert("")

        assert exc_info.value.exit_code == ExitCode.NO_NAME
        assert store.writes == []
        assert prompter.asked == []

    def test_stdin_read_failure_reports_bytes_read(self, store, make_inserter):
        """Test that a failing pipe is an I/O error mentioning the bytes consumed."""
        inserter = make_inserter(store, stdin=BrokenStream(b"hello"))

        with pytest.raises(InputError) as exc_info:
            inserter.insert("new")

        assert "after 5 bytes" in str(exc_info.value)
        assert exc_info.value.exit_code == ExitCode.IO
        assert store.writes == []

    def test_read_stdin_reads_everything(self):
        data = b"x" * 200000
        assert read_stdin(io.BytesIO(data)) == data


class TestSinglePassword:

    def test_new_secret_with_metadata(self, store, make_inserter):
        """Test that a new secret gets the prompted password and metadata fields."""
        prompter = ScriptedPrompter(passwords=["s3cr3t"])
        inserter = make_inserter(store, prompter=prompter)

        inserter.insert("web/new", metadata={"user": "alice"})

        name, secret, message, _ = store.writes[0]
        assert name == "web/new"
        assert secret.password == "s3cr3t"
        assert secret.get("user") == "alice"
        assert message == MSG_SINGLE
        assert len(store.writes) == 1

    def test_echo_uses_visible_prompt(self, store, make_inserter):
        prompter = ScriptedPrompter(passwords=["visible"])
        inserter = make_inserter(store, prompter=prompter)

        inserter.insert("web/new", echo=True)

        assert prompter.echo is True
        assert store.secrets["web/new"].password == "visible"

    def test_no_echo_keeps_masked_prompt(self, store, make_inserter):
        prompter = ScriptedPrompter(passwords=["masked"])
        make_inserter(store, prompter=prompter).insert("web/new")
        assert prompter.echo is False

    def test_prompt_failure_is_io_error(self, store, make_inserter):
        """Test that failing to read a password is reported as an I/O error."""
        inserter = make_inserter(store, prompter=ScriptedPrompter())

        with pytest.raises(InputError):
            inserter.insert("web/new")
        assert store.writes == []

    def test_existing_declined_confirmation_aborts_without_write(self, existing_store, make_inserter):
        """Test that declining the overwrite question never reaches the store."""
        prompter = ScriptedPrompter(passwords=["new-pass"], confirm=False)
        inserter = make_inserter(existing_store, prompter=prompter)

        with pytest.raises(AbortedError) as exc_info:
            inserter.insert("web/github")

        assert exc_info.value.exit_code == ExitCode.ABORTED
        assert existing_store.writes == []
        assert prompter.confirmations == ["An entry already exists for web/github. Overwrite it?"]
        assert existing_store.secrets["web/github"].password == "old-pass"

    def test_existing_confirmed_keeps_fields(self, existing_store, make_inserter):
        """Test that an overwrite replaces the password but keeps existing fields."""
        prompter = ScriptedPrompter(passwords=["new-pass"], confirm=True)
        inserter = make_inserter(existing_store, prompter=prompter)

        inserter.insert("web/github", metadata={"user": "hubot"})

        secret = existing_store.secrets["web/github"]
        assert secret.password == "new-pass"
        assert secret.get("user") == "hubot"
        assert secret.get("url") == "https://github.com"

    def test_force_skips_confirmation(self, existing_store, make_inserter):
        prompter = ScriptedPrompter(passwords=["forced"], confirm=False)
        inserter = make_inserter(existing_store, prompter=prompter)

        inserter.insert("web/github", force=True)

        assert prompter.confirmations == []
        assert existing_store.secrets["web/github"].password == "forced"

    def test_existing_unreadable_is_decrypt_error(self, existing_store, make_inserter):
        existing_store.fail_get = True
        inserter = make_inserter(existing_store, prompter=ScriptedPrompter(passwords=["x"]))

        with pytest.raises(DecryptError) as exc_info:
            inserter.insert("web/github", force=True)

        assert exc_info.value.exit_code == ExitCode.DECRYPT
        assert existing_store.writes == []

    def test_write_failure_is_encrypt_error(self, store, make_inserter):
        store.fail_set = True
        inserter = make_inserter(store, prompter=ScriptedPrompter(passwords=["x"]))

        with pytest.raises(EncryptError) as exc_info:
            inserter.insert("web/new")

        assert exc_info.value.exit_code == ExitCode.ENCRYPT
        assert isinstance(exc_info.value.__cause__, Exception)

    def test_audit_receives_password(self, store, make_inserter):
        audited = []
        inserter = make_inserter(
            store,
            prompter=ScriptedPrompter(passwords=["hunter2"]),
            audit=audited.append,
        )

        inserter.insert("web/new")

        assert audited == ["hunter2"]


class TestTemplates:

    @staticmethod
    def render(name, content):
        return b"placeholder\n---\nurl: https://example.com\nowner: " + content + b"\n", True

    def test_template_used_for_new_secret(self, store, make_inserter):
        """Test that template output becomes the base of a newly created secret."""
        inserter = make_inserter(
            store,
            prompter=ScriptedPrompter(passwords=["pw123"]),
            render_template=self.render,
        )

        inserter.insert("web/new", metadata={"user": "alice"})

        secret = store.secrets["web/new"]
        assert secret.password == "pw123"
        assert secret.get("url") == "https://example.com"
        assert secret.get("owner") == "pw123"
        assert secret.get("user") == "alice"

    def test_template_ignored_for_existing_secret(self, existing_store, make_inserter):
        """Test that templates only apply when a secret is created."""
        inserter = make_inserter(
            existing_store,
            prompter=ScriptedPrompter(passwords=["pw123"]),
            render_template=self.render,
        )

        inserter.insert("web/github", force=True)

        assert existing_store.secrets["web/github"].get("url") == "https://github.com"
        assert existing_store.secrets["web/github"].get("owner") is None

    def test_unparsable_template_output_falls_back_to_empty(self, store, make_inserter):
        inserter = make_inserter(
            store,
            prompter=ScriptedPrompter(passwords=["pw123"]),
            render_template=lambda name, content: (b"x\n---\n[broken: yaml\n", True),
        )

        inserter.insert("web/new")

        assert store.secrets["web/new"] == Secret(password="pw123")

    def test_template_not_found(self, store, make_inserter):
        inserter = make_inserter(
            store,
            prompter=ScriptedPrompter(passwords=["pw123"]),
            render_template=lambda name, content: (b"ignored\n---\na: b\n", False),
        )

        inserter.insert("web/new")

        assert store.secrets["web/new"].keys() == []


class TestStdin:

    def test_piped_content_stored(self, store, make_inserter):
        inserter = make_inserter(store, stdin=b"pw\n---\nuser: bob\n")

        inserter.insert("web/new")

        name, secret, message, _ = store.writes[0]
        assert secret.password == "pw"
        assert secret.get("user") == "bob"
        assert message == MSG_STDIN

    def test_existing_without_force_or_append_aborts(self, existing_store, make_inserter):
        """Test that piping onto an existing secret never overwrites it silently."""
        inserter = make_inserter(existing_store, stdin=b"replacement\n")

        with pytest.raises(AbortedError):
            inserter.insert("web/github")

        assert existing_store.writes == []
        assert existing_store.secrets["web/github"].password == "old-pass"

    def test_force_overwrites_existing(self, existing_store, make_inserter):
        inserter = make_inserter(existing_store, stdin=b"replacement\n")

        inserter.insert("web/github", force=True)

        assert existing_store.secrets["web/github"] == Secret(password="replacement")

    def test_append_concatenates_bytes(self, existing_store, make_inserter):
        """Test that append stores parse(existing bytes + piped bytes)."""
        existing_bytes = existing_store.secrets["web/github"].to_bytes()
        piped = b"token: abc123\n"
        inserter = make_inserter(existing_store, stdin=piped)

        inserter.insert("web/github", append=True)

        assert existing_store.secrets["web/github"] == parse(existing_bytes + piped)
        assert existing_store.secrets["web/github"].get("token") == "abc123"
        assert existing_store.secrets["web/github"].get("user") == "octocat"

    def test_append_to_missing_secret_stores_content(self, store, make_inserter):
        inserter = make_inserter(store, stdin=b"fresh\n")

        inserter.insert("web/new", append=True)

        assert store.secrets["web/new"].password == "fresh"

    def test_append_unreadable_existing_is_decrypt_error(self, existing_store, make_inserter):
        existing_store.fail_get = True
        inserter = make_inserter(existing_store, stdin=b"more\n")

        with pytest.raises(DecryptError):
            inserter.insert("web/github", append=True)
        assert existing_store.writes == []

    def test_malformed_yaml_is_stored_with_warning(self, store, make_inserter, caplog):
        """Test that invalid structured content still gets persisted."""
        content = b"pw\n---\nkey: [unclosed\n"
        inserter = make_inserter(store, stdin=content)

        with caplog.at_level(logging.WARNING):
            inserter.insert("web/new")

        secret = store.secrets["web/new"]
        assert secret.password == "pw"
        assert secret.notes == "---\nkey: [unclosed\n"
        assert "Invalid YAML" in caplog.text

    def test_write_failure_is_encrypt_error(self, store, make_inserter):
        store.fail_set = True
        with pytest.raises(EncryptError):
            make_inserter(store, stdin=b"pw\n").insert("web/new")


class TestYAMLKey:

    def test_key_wins_over_other_flags(self, store, make_inserter):
        """Test that a key routes to the single-field path whatever else is set."""
        prompter = ScriptedPrompter(passwords=["unused"])
        inserter = make_inserter(store, stdin=b"value-from-pipe", interactive=False, prompter=prompter)

        inserter.insert("web/new", key="token", echo=True, multiline=True)

        name, secret, message, _ = store.writes[0]
        assert message == MSG_YAML
        assert secret.get("token") == "value-from-pipe"
        assert secret.password == ""
        assert prompter.asked == []
        assert prompter.echo is False

    def test_interactive_entry_overrides_piped_content(self, store, make_inserter):
        """Test that the prompted value is stored, not the piped bytes."""
        prompter = ScriptedPrompter(strings=["typed-value"])
        inserter = make_inserter(store, stdin=b"piped-value", interactive=True, prompter=prompter)

        inserter.insert("web/new", key="token")

        assert store.secrets["web/new"].get("token") == "typed-value"
        assert prompter.asked == ["web/new:token"]

    def test_existing_secret_keeps_other_fields(self, existing_store, make_inserter):
        """Test that setting a key leaves the password and other fields alone."""
        inserter = make_inserter(existing_store, prompter=ScriptedPrompter(strings=["hubot"]))

        inserter.insert("web/github", key="user", metadata={"team": "core"})

        secret = existing_store.secrets["web/github"]
        assert secret.password == "old-pass"
        assert secret.get("user") == "hubot"
        assert secret.get("url") == "https://github.com"
        assert secret.get("team") == "core"

    def test_no_confirmation_for_existing(self, existing_store, make_inserter):
        prompter = ScriptedPrompter(strings=["v"], confirm=False)
        make_inserter(existing_store, prompter=prompter).insert("web/github", key="k")
        assert prompter.confirmations == []

    def test_key_wins_over_metadata_of_same_name(self, store, make_inserter):
        inserter = make_inserter(store, prompter=ScriptedPrompter(strings=["from-key"]))

        inserter.insert("web/new", key="user", metadata={"user": "from-metadata"})

        assert store.secrets["web/new"].get("user") == "from-key"

    def test_unparsable_existing_body_fails_with_context(self, make_inserter):
        """Test that a key can't be added to a secret with a broken YAML section."""
        store = FakeStore({"web/broken": Secret(password="pw", notes="---\n[broken\n")})
        inserter = make_inserter(store, prompter=ScriptedPrompter(strings=["v"]))

        with pytest.raises(EncryptError) as exc_info:
            inserter.insert("web/broken", key="token")

        assert "'token'" in str(exc_info.value)
        assert "'web/broken'" in str(exc_info.value)
        assert store.writes == []

    def test_load_failure_is_encrypt_error(self, existing_store, make_inserter):
        existing_store.fail_get = True
        inserter = make_inserter(existing_store, prompter=ScriptedPrompter(strings=["v"]))

        with pytest.raises(EncryptError) as exc_info:
            inserter.insert("web/github", key="user")
        assert "failed to set key 'user' of 'web/github'" in str(exc_info.value)

    def test_prompt_failure_is_io_error(self, store, make_inserter):
        with pytest.raises(InputError):
            make_inserter(store, prompter=ScriptedPrompter()).insert("web/new", key="k")


class TestMultiline:

    def test_editor_seeded_with_existing_secret(self, existing_store, make_inserter):
        """Test that the editor receives the stored bytes and its output is saved."""
        seen = {}

        def edit(editor, seed):
            seen["editor"] = editor
            seen["seed"] = seed
            return b"edited\n---\nuser: someone\n"

        inserter = make_inserter(
            existing_store,
            prompter=ScriptedPrompter(confirm=True),
            editor="nano",
            edit=edit,
        )
        expected_seed = existing_store.secrets["web/github"].to_bytes()

        inserter.insert("web/github", multiline=True)

        assert seen == {"editor": "nano", "seed": expected_seed}
        name, secret, message, _ = existing_store.writes[0]
        assert secret == Secret(password="edited", body={"user": "someone"})
        assert message == "Inserted user supplied password with nano"

    def test_new_secret_starts_from_empty_buffer(self, store, make_inserter):
        seeds = []

        def edit(editor, seed):
            seeds.append(seed)
            return b"pw\n"

        make_inserter(store, edit=edit).insert("web/new", multiline=True)

        assert seeds == [b""]
        assert store.secrets["web/new"].password == "pw"

    def test_non_interactive_falls_back_to_password_prompt(self, store, make_inserter):
        def edit(editor, seed):
            raise AssertionError("editor must not be started")

        prompter = ScriptedPrompter(passwords=["typed"])
        inserter = make_inserter(store, interactive=False, prompter=prompter, edit=edit)

        inserter.insert("web/new", multiline=True)

        assert store.writes[0][2] == MSG_SINGLE

    def test_editor_failure(self, store, make_inserter):
        def edit(editor, seed):
            raise EditorLaunchError("editor 'nano' not found")

        with pytest.raises(EditorError) as exc_info:
            make_inserter(store, edit=edit).insert("web/new", multiline=True)

        assert exc_info.value.exit_code == ExitCode.UNKNOWN
        assert store.writes == []

    def test_malformed_editor_output_is_saved(self, store, make_inserter, caplog):
        with caplog.at_level(logging.WARNING):
            make_inserter(store, edit=lambda e, s: b"pw\n---\n- a list\n").insert("web/new", multiline=True)

        assert store.secrets["web/new"].password == "pw"
        assert "Invalid YAML" in caplog.text

    def test_declined_overwrite_never_opens_editor(self, existing_store, make_inserter):
        def edit(editor, seed):
            raise AssertionError("editor must not be started")

        inserter = make_inserter(existing_store, prompter=ScriptedPrompter(confirm=False), edit=edit)

        with pytest.raises(AbortedError):
            inserter.insert("web/github", multiline=True)


class TestRecipients:

    def test_force_accepts_all_recipients(self, store, make_inserter):
        make_inserter(store, stdin=b"pw\n").insert("web/new", force=True)
        assert store.writes[0][3] is accept_all_recipients

    def test_default_checks_recipients(self, store, make_inserter):
        make_inserter(store, stdin=b"pw\n").insert("web/new")
        assert isinstance(store.writes[0][3], TrustCheckingRecipients)
