"""External editor invocation."""
import os
import shlex
import logging
import subprocess
import tempfile
from typing import Optional

from .preferences import get_preference

logger = logging.getLogger(__name__)

DEFAULT_EDITOR = "vi"


class EditorLaunchError(Exception):
    """Editor could not be started or exited unsuccessfully."""
    pass


def editor_path(explicit: Optional[str] = None) -> str:
    """
    Pick the editor command.

    Priority order:
    1. Explicit --editor flag
    2. 'editor' preference
    3. EDITOR, then VISUAL environment variables
    4. vi
    """
    for candidate in (explicit, get_preference("editor"), os.getenv("EDITOR"), os.getenv("VISUAL")):
        if candidate:
            return candidate
    return DEFAULT_EDITOR


def invoke_editor(editor: str, content: bytes) -> bytes:
    """
    Open content in the editor and return what the user saved.

    The buffer is written to a private temporary file which is removed
    afterwards.

    Raises:
        EditorLaunchError: If the editor can't be run or exits non-zero
    """
    fd, path = tempfile.mkstemp(prefix="passkit-", suffix=".txt")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)

        cmd = shlex.split(editor) + [path]
        logger.debug(f"Running editor: {cmd}")
        try:
            subprocess.run(cmd, check=True)
        except FileNotFoundError as e:
            raise EditorLaunchError(f"editor '{editor}' not found") from e
        except subprocess.CalledProcessError as e:
            raise EditorLaunchError(f"editor '{editor}' exited with status {e.returncode}") from e

        with open(path, "rb") as f:
            return f.read()
    finally:
        os.unlink(path)
