"""Workflow wiring: config, store gateway and options for secret operations."""
import os
import logging
from typing import Any, Dict, Optional

from ..domains.config_loader import ConfigError, load_config
from ..domains.editor import editor_path
from ..domains.gcp_client import GCPSecretStore, get_project_id
from ..domains.options import Options, StoreConfig, with_defaults
from ..domains.prompts import Prompter
from ..domains.session import Session
from ..domains.templates import TemplateRenderer
from .insert import Inserter

logger = logging.getLogger(__name__)

# Lazy loading: config is read once per process, on first use, so that
# commands like --help work without a config file
_CONFIG: Optional[Dict[str, Any]] = None


def _get_config() -> Dict[str, Any]:
    """
    Load configuration on first use.

    Raises:
        ConfigError: If config file is invalid
        FileNotFoundError: If no config file exists
    """
    global _CONFIG

    if _CONFIG is None:
        _CONFIG = load_config()

        auth = _CONFIG.get('authentication')
        if auth and 'service_account_path' in auth:
            os.environ['GOOGLE_APPLICATION_CREDENTIALS'] = auth['service_account_path']
            logger.info(f"Set GOOGLE_APPLICATION_CREDENTIALS from config: {auth['service_account_path']}")

    return _CONFIG


def reset_config() -> None:
    """Forget the cached configuration."""
    global _CONFIG
    _CONFIG = None


def get_store_config() -> StoreConfig:
    return _get_config()['store']


def get_store() -> GCPSecretStore:
    """
    Build the store gateway from configuration.

    Raises:
        ConfigError: If no project ID is available
    """
    config = _get_config()
    project_id = get_project_id(config['gcp'].get('project_id'))
    if not project_id:
        raise ConfigError("No GCP project configured")
    return GCPSecretStore(project_id, recipients=config['recipients'])


def effective_options(overrides: Options) -> Options:
    """Layer the store configuration onto options set on the command line."""
    return with_defaults(get_store_config(), overrides)


def build_inserter(session: Session, overrides: Options, editor: Optional[str] = None) -> Inserter:
    """Assemble an Inserter backed by the configured store."""
    config = _get_config()
    options = effective_options(overrides)
    logger.debug(f"Effective options: {options}")
    renderer = TemplateRenderer(config.get('templates_dir'))

    return Inserter(
        store=get_store(),
        session=session,
        options=options,
        prompter=Prompter(stream=session.tty),
        editor=editor_path(editor),
        render_template=renderer.render,
    )


def get_secret(name: str, key: Optional[str] = None) -> Optional[str]:
    """
    Fetch a secret's password, or one of its fields.

    Returns:
        The value, or None if the secret or field doesn't exist
    """
    store = get_store()
    if not store.exists(name):
        return None
    secret = store.get(name)
    if key:
        return secret.get(key)
    return secret.password
