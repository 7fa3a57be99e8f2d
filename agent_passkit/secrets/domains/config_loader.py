"""Configuration loader for agent-passkit."""
import os
import logging
from datetime import timedelta
from pathlib import Path
from typing import Dict, Any, List, Optional
import yaml

from .options import StoreConfig
from .preferences import get_preference

logger = logging.getLogger(__name__)

BOOL_STORE_KEYS = (
    "ask_for_more",
    "auto_clip",
    "auto_import",
    "auto_sync",
    "edit_recipients",
    "export_keys",
    "no_confirm",
    "no_pager",
    "notifications",
    "safe_content",
    "use_symbols",
)


def default_config_path() -> Path:
    return Path.home() / ".config" / "agent-passkit" / "config.yml"


def _get_config_path() -> str:
    """
    Get config file path using XDG Base Directory standard.

    Priority order:
    1. User preference (stored in ~/.config/agent-passkit/preferences.json)
    2. Default location: ~/.config/agent-passkit/config.yml

    Returns:
        Absolute path to config file

    Raises:
        FileNotFoundError: If config file doesn't exist in any location
    """
    config_path_pref = get_preference("config_path")
    if config_path_pref:
        config_path = Path(config_path_pref)
        if config_path.exists():
            logger.info(f"Using config from preference: {config_path}")
            return str(config_path)
        else:
            logger.warning(f"Config path from preference doesn't exist: {config_path}")

    default_config = default_config_path()
    if default_config.exists():
        logger.info(f"Using default config location: {default_config}")
        return str(default_config)

    raise FileNotFoundError(
        "Configuration file not found. Please set up your config file using one of these methods:\n\n"
        "1. Use the default location:\n"
        f"   mkdir -p {default_config.parent}\n"
        f"   cp /path/to/your/config.yml {default_config}\n\n"
        "2. Point to an existing config file:\n"
        "   passkit config set-path /path/to/your/config.yml\n"
    )


class ConfigError(Exception):
    """Configuration error exception."""
    pass


def _validate_authentication(auth: Any, config_path: str) -> None:
    if not isinstance(auth, dict):
        raise ConfigError(f"'authentication' in {config_path} must be a mapping")

    if 'type' not in auth:
        raise ConfigError("Missing 'authentication.type' in config")

    if auth['type'] != 'service_account':
        raise ConfigError(
            f"Unsupported authentication type: {auth['type']}\n"
            f"Only 'service_account' is supported."
        )

    if 'service_account_path' not in auth:
        raise ConfigError(
            "Missing 'authentication.service_account_path' in config\n"
            "Please specify the absolute path to your service account JSON file."
        )

    service_account_path = auth['service_account_path']
    if not os.path.isfile(service_account_path):
        raise ConfigError(
            f"Service account file not found at: {service_account_path}\n"
            f"Please ensure the file exists or update the path in {config_path}"
        )


def parse_store_config(section: Optional[Dict[str, Any]]) -> StoreConfig:
    """
    Build a StoreConfig from the 'store' section of the config file.

    Missing keys keep their defaults.

    Raises:
        ConfigError: On unknown keys or values of the wrong type
    """
    if not section:
        return StoreConfig()
    if not isinstance(section, dict):
        raise ConfigError("'store' section must be a mapping")

    values: Dict[str, Any] = {}
    for key, value in section.items():
        if key in BOOL_STORE_KEYS:
            if not isinstance(value, bool):
                raise ConfigError(f"'store.{key}' must be true or false, got: {value!r}")
            values[key] = value
        elif key == "clip_timeout":
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigError(f"'store.clip_timeout' must be a non-negative number of seconds, got: {value!r}")
            values[key] = timedelta(seconds=value)
        elif key == "concurrency":
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigError(f"'store.concurrency' must be a positive integer, got: {value!r}")
            values[key] = value
        else:
            raise ConfigError(f"Unknown store option: 'store.{key}'")

    return StoreConfig(**values)


def _validate_recipients(recipients: Any) -> List[str]:
    if recipients is None:
        return []
    if not isinstance(recipients, list) or not all(isinstance(r, str) for r in recipients):
        raise ConfigError("'recipients' must be a list of strings")
    return recipients


def load_config() -> Dict[str, Any]:
    """
    Load and validate configuration from YAML file.

    Returns:
        Dict containing configuration with keys:
        - authentication: optional dict with type and service_account_path
        - gcp: dict with project_id
        - store: StoreConfig
        - recipients: list of IAM principals
        - templates_dir: optional path to secret templates

    Raises:
        ConfigError: If config file is invalid or service account file doesn't exist
        FileNotFoundError: If no config file can be located
    """
    # Get config path dynamically each time (not cached at module level)
    config_path = _get_config_path()

    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file at {config_path}: {e}")

    if not config:
        raise ConfigError(f"Config file at {config_path} is empty")

    if not isinstance(config, dict):
        raise ConfigError(f"Config file at {config_path} must contain a YAML mapping")

    if 'authentication' in config:
        _validate_authentication(config['authentication'], config_path)

    if 'gcp' not in config:
        raise ConfigError(
            f"Missing 'gcp' section in config at {config_path}\n"
            f"Required format:\n"
            f"gcp:\n"
            f"  project_id: your-project-id"
        )

    if not isinstance(config['gcp'], dict) or 'project_id' not in config['gcp']:
        raise ConfigError("Missing 'gcp.project_id' in config")

    config['store'] = parse_store_config(config.get('store'))
    config['recipients'] = _validate_recipients(config.get('recipients'))

    templates_dir = config.get('templates_dir')
    if templates_dir is not None:
        config['templates_dir'] = str(Path(templates_dir).expanduser())

    logger.info(f"Configuration loaded successfully from {config_path}")
    logger.debug(f"Using project ID: {config['gcp']['project_id']}")

    return config
