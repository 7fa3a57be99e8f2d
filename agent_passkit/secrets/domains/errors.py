"""Errors surfaced by secret workflows, each mapped to a CLI exit code."""
from enum import IntEnum


class ExitCode(IntEnum):
    """Process exit codes.

    0 and 1 follow the usual success/runtime-error convention, 2 is reserved
    for argparse usage errors.
    """
    OK = 0
    UNKNOWN = 1
    USAGE = 2
    ABORTED = 3
    NO_NAME = 9
    DECRYPT = 11
    ENCRYPT = 12
    CONFIG = 16
    IO = 18


class InsertError(Exception):
    """Base class for failures while creating or updating a secret."""
    exit_code = ExitCode.UNKNOWN


class NoNameError(InsertError):
    """No secret name was given."""
    exit_code = ExitCode.NO_NAME


class InputError(InsertError):
    """Reading piped input or prompting the user failed."""
    exit_code = ExitCode.IO


class DecryptError(InsertError):
    """An existing secret could not be read or decoded."""
    exit_code = ExitCode.DECRYPT


class EncryptError(InsertError):
    """A secret could not be built or written to the store."""
    exit_code = ExitCode.ENCRYPT


class AbortedError(InsertError):
    """The user declined, or the operation would overwrite without consent."""
    exit_code = ExitCode.ABORTED


class EditorError(InsertError):
    """The editor could not be started or its seed could not be prepared."""
    exit_code = ExitCode.UNKNOWN
