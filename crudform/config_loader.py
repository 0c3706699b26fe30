"""
Configuration loading utilities for CrudForm.

Loads config.yaml over built-in defaults and sets up logging from the
configured level.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging
from copy import deepcopy

logger = logging.getLogger(__name__)

DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def deep_merge(base_dict: Dict[str, Any], update_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries, with update_dict taking precedence.

    Args:
        base_dict: Base dictionary (defaults)
        update_dict: Dictionary to merge in (user config)

    Returns:
        Merged dictionary
    """
    result = deepcopy(base_dict)

    for key, value in update_dict.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = deepcopy(value)

    return result


def get_default_config() -> Dict[str, Any]:
    """
    Get default configuration.

    Returns:
        Dictionary with default configuration
    """
    return {
        'app': {
            'name': 'CrudForm',
            'version': '1.0.0',
            'debug': False
        },
        'schema': {
            'directory': 'schemas',
            'primary_schema': 'default_schema.yaml'
        },
        'logging': {
            'level': 'INFO',
            'format': DEFAULT_LOG_FORMAT
        },
        'forms': {
            'log_validation_failures': True,
            'submit_label': 'Submit',
            'cancel_label': 'Cancel'
        }
    }


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load application configuration.

    Args:
        config_path: Optional path to config file (defaults to config.yaml)

    Returns:
        Complete configuration dictionary; defaults when the file is missing
        or unreadable
    """
    if config_path is None:
        config_path = Path("config.yaml")

    default_config = get_default_config()

    if not config_path.exists():
        logger.warning(f"Configuration file not found: {config_path}")
        logger.info("Using default configuration")
        return default_config

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            user_config = yaml.safe_load(f)

        if user_config is None:
            logger.warning(f"Configuration file is empty: {config_path}")
            return default_config

        if not isinstance(user_config, dict):
            logger.error(f"Configuration file is not a valid dictionary: {config_path}")
            logger.info("Using default configuration")
            return default_config

        config = deep_merge(default_config, user_config)

        logger.info(f"Successfully loaded configuration from {config_path}")
        return config

    except yaml.YAMLError as e:
        logger.error(f"YAML parsing error in {config_path}: {e}")
        logger.info("Using default configuration")
        return default_config

    except (IOError, OSError) as e:
        logger.error(f"Failed to read configuration file {config_path}: {e}")
        logger.info("Using default configuration")
        return default_config


def get_config_value(config: Dict[str, Any], section: str, key: str, default: Any = None) -> Any:
    """
    Get a specific configuration value.

    Args:
        config: Configuration dictionary
        section: Configuration section (e.g., 'schema', 'forms')
        key: Configuration key within section
        default: Default value if not found

    Returns:
        Configuration value or default
    """
    section_values = config.get(section)
    if not isinstance(section_values, dict):
        return default
    return section_values.get(key, default)


def get_logging_level(level_str: Any) -> int:
    """Map string logging level to logging constant."""
    level_map = {
        'DEBUG': logging.DEBUG,
        'INFO': logging.INFO,
        'WARNING': logging.WARNING,
        'ERROR': logging.ERROR,
        'CRITICAL': logging.CRITICAL
    }
    return level_map.get(str(level_str).upper(), logging.INFO)


def configure_logging(config: Dict[str, Any]) -> int:
    """
    Configure root logging from the ``logging`` config section.

    Returns:
        The logging level that was applied
    """
    level_str = get_config_value(config, 'logging', 'level', 'INFO')
    log_format = get_config_value(config, 'logging', 'format', DEFAULT_LOG_FORMAT)
    level = get_logging_level(level_str)
    logging.basicConfig(level=level, format=log_format)
    logger.info(f"Logging configured to level: {level_str}")
    return level


def get_form_options(config: Dict[str, Any]) -> Dict[str, Any]:
    """Keyword options for CrudForm taken from the ``forms`` section."""
    forms = get_default_config()['forms']
    forms.update(config.get('forms') or {})
    return {
        'log_validation_failures': bool(forms.get('log_validation_failures', True)),
        'submit_label': forms.get('submit_label', 'Submit'),
        'cancel_label': forms.get('cancel_label', 'Cancel'),
    }
