"""Templates for newly created secrets.

A template named ``.pass-template`` in a directory applies to every secret
below that directory; the nearest one wins. Templates are jinja2 and see:

    content  the password the user entered
    name     the full secret name
    path     the secret name with a leading slash
    dir      the directory part of the name

Filters md5sum, sha1sum and sha256sum hash a string.
"""
import hashlib
import logging
import posixpath
from pathlib import Path
from typing import List, Optional, Tuple

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

logger = logging.getLogger(__name__)

TEMPLATE_NAME = ".pass-template"


def _hasher(algorithm: str):
    def digest(value: str) -> str:
        return hashlib.new(algorithm, str(value).encode("utf-8")).hexdigest()
    return digest


def _candidates(name: str) -> List[str]:
    """Template paths to try for a secret, nearest first."""
    result = []
    directory = posixpath.dirname(name.strip("/"))
    while directory:
        result.append(f"{directory}/{TEMPLATE_NAME}")
        directory = posixpath.dirname(directory)
    result.append(TEMPLATE_NAME)
    return result


class TemplateRenderer:
    """Render the nearest template for a secret name."""

    def __init__(self, templates_dir: Optional[str]):
        self.templates_dir = Path(templates_dir) if templates_dir else None
        self._env = None

    @property
    def env(self) -> Environment:
        if self._env is None:
            self._env = Environment(
                loader=FileSystemLoader(str(self.templates_dir)),
                undefined=StrictUndefined,
                keep_trailing_newline=True,
                autoescape=False,
            )
            for algorithm in ("md5", "sha1", "sha256"):
                self._env.filters[f"{algorithm}sum"] = _hasher(algorithm)
        return self._env

    def lookup(self, name: str) -> Optional[str]:
        """Return the template path (relative to templates_dir) for name, if any."""
        if self.templates_dir is None or not self.templates_dir.is_dir():
            return None
        for candidate in _candidates(name):
            if (self.templates_dir / candidate).is_file():
                return candidate
        return None

    def render(self, name: str, content: bytes) -> Tuple[bytes, bool]:
        """
        Render the template that applies to name.

        Returns:
            Tuple of (rendered bytes, found). found is False when no template
            applies or rendering failed; failures are logged, never raised.
        """
        template_path = self.lookup(name)
        if template_path is None:
            return b"", False

        clean = name.strip("/")
        try:
            rendered = self.env.get_template(template_path).render(
                content=content.decode("utf-8", errors="replace"),
                name=clean,
                path="/" + clean,
                dir=posixpath.dirname(clean),
            )
        except TemplateError as e:
            logger.warning(f"Failed to render template {template_path} for '{name}': {e}")
            return b"", False

        logger.debug(f"Rendered template {template_path} for '{name}'")
        return rendered.encode("utf-8"), True
