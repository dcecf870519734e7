"""Configuration loader for ksecret."""
import os
import logging
from dataclasses import replace
from pathlib import Path
from typing import Dict, Any, Optional
import yaml

from .errors import ConfigError, ConfigMissingError
from .models import Config, DEFAULT_SECRET_PREFIX

logger = logging.getLogger(__name__)

CONFIG_FILE_ENV = "KSECRET_CONFIG_FILE"


def get_config_dir() -> Path:
    """Directory holding ksecret's config and cache files (~/.config/ksecret)."""
    return Path.home() / ".config" / "ksecret"


def get_config_path() -> Path:
    """
    Get config file path.

    Priority order:
    1. KSECRET_CONFIG_FILE environment variable
    2. Default location: ~/.config/ksecret/config.yml

    Resolved on every call, never cached at module level.
    """
    override = os.getenv(CONFIG_FILE_ENV)
    if override:
        return Path(override)
    return get_config_dir() / "config.yml"


def _read_config_file(config_path: Path) -> Dict[str, Any]:
    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config file at {config_path}: {e}") from e

    if not config:
        raise ConfigError(f"Config file at {config_path} is empty")

    if not isinstance(config, dict):
        raise ConfigError(
            f"Config file at {config_path} must be a mapping\n"
            f"Required format:\n"
            f"gcp_project_id: your-project-id\n"
            f"secret_prefix: {DEFAULT_SECRET_PREFIX}"
        )

    return config


def _validate_authentication(auth: Any, config_path: Path) -> str:
    """Validate the optional authentication section; return the service account path."""
    if not isinstance(auth, dict) or 'type' not in auth:
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

    service_account_path = str(auth['service_account_path'])

    if not os.path.exists(service_account_path):
        raise ConfigError(
            f"Service account file not found at: {service_account_path}\n"
            f"Please ensure the file exists or update the path in {config_path}"
        )

    if not os.path.isfile(service_account_path):
        raise ConfigError(
            f"Service account path is not a file: {service_account_path}"
        )

    return service_account_path


def load_config(project_override: Optional[str] = None) -> Config:
    """
    Load and validate configuration from YAML file.

    Args:
        project_override: GCP project ID replacing the one from the file
            (from --project or KSECRET_GCP_PROJECT)

    Returns:
        Immutable Config

    Raises:
        ConfigMissingError: If there is no config file and no project override,
            or the file has no gcp_project_id and no override is given
        ConfigError: If the config file is unreadable or invalid
    """
    config_path = get_config_path()

    if not config_path.exists():
        if not project_override:
            raise ConfigMissingError(
                f"No configuration found at {config_path}\n"
                f"Run 'ksecret init --project <PROJECT_ID>' to initialize."
            )
        logger.debug(f"No config file at {config_path}, using project override only")
        return Config(gcp_project_id=project_override)

    raw = _read_config_file(config_path)

    service_account_path = None
    if 'authentication' in raw:
        service_account_path = _validate_authentication(raw['authentication'], config_path)

    secret_prefix = raw.get('secret_prefix') or DEFAULT_SECRET_PREFIX
    project_id = raw.get('gcp_project_id')

    if not project_id and not project_override:
        raise ConfigMissingError(
            f"Missing 'gcp_project_id' in config at {config_path}\n"
            f"Run 'ksecret init --project <PROJECT_ID>' or pass --project."
        )

    config = Config(
        gcp_project_id=str(project_id or ""),
        secret_prefix=str(secret_prefix),
        service_account_path=service_account_path,
    )

    if project_override:
        config = replace(config, gcp_project_id=project_override)

    logger.info(f"Configuration loaded successfully from {config_path}")
    logger.debug(f"Using project ID: {config.gcp_project_id}")
    logger.debug(f"Using secret prefix: {config.secret_prefix}")

    return config


def save_config(project_id: str) -> Path:
    """
    Write the config file for `ksecret init`.

    An existing file keeps its secret_prefix and authentication section; only
    gcp_project_id is replaced.

    Returns:
        Path the config was written to
    """
    config_path = get_config_path()

    document: Dict[str, Any] = {}
    if config_path.exists():
        try:
            document = _read_config_file(config_path)
        except ConfigError as e:
            logger.warning(f"Ignoring unreadable existing config: {e}")
            document = {}

    document['gcp_project_id'] = project_id
    document.setdefault('secret_prefix', DEFAULT_SECRET_PREFIX)

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, 'w') as f:
            yaml.safe_dump(document, f, default_flow_style=False, sort_keys=False)
    except OSError as e:
        raise ConfigError(f"Failed to write config file at {config_path}: {e}") from e

    logger.info(f"Configuration saved to {config_path}")
    return config_path
