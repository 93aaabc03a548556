# octane_sdk/config/loader.py
"""
Settings file loading.

Bridges YAML files on disk and the OctaneSettings model: reads the file,
parses it with PyYAML, validates it, and logs failures with context before
raising them.
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from octane_sdk.config.config_models import OctaneSettings
from octane_sdk.errors import ConfigurationError

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH: Path = Path('config/octane_config.yaml')


def load_config(config_path: Path | str | None = None) -> OctaneSettings:
    """Load and validate SDK settings from a YAML file.

    Args:
        config_path: Path to the YAML settings file (relative or absolute).
            If None, defaults to 'config/octane_config.yaml' relative to the
            current working directory.

    Returns:
        Validated OctaneSettings instance.

    Raises:
        FileNotFoundError: If the file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        ConfigurationError: If the settings fail validation.

    Example:
        >>> settings = load_config('config/octane_config.yaml')
        >>> settings.client.host
        'octane.example.com'
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
        logger.debug('No config path provided, using default: %s', DEFAULT_CONFIG_PATH)
    else:
        config_path = Path(config_path)

    logger.info('Loading Octane configuration from: %s', config_path)

    if not config_path.exists():
        error_message: str = f'Configuration file not found: {config_path}'
        logger.error(error_message)
        raise FileNotFoundError(error_message)

    try:
        with config_path.open(encoding='utf-8') as config_file:
            raw_config_data: Any = yaml.safe_load(config_file)
    except yaml.YAMLError as error:
        error_message = f'Failed to parse YAML configuration: {error}'
        logger.error(error_message)
        raise yaml.YAMLError(error_message) from error

    try:
        validated_config = OctaneSettings.model_validate(raw_config_data or {})
    except ValidationError as error:
        error_message = f'Configuration validation failed: {error}'
        logger.error(error_message)
        raise ConfigurationError(error_message) from error

    logger.info('Configuration loaded and validated successfully')
    return validated_config
