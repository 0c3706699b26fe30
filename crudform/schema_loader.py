"""
Schema loader for CrudForm.
Handles loading and structural validation of YAML/JSON form schema files.
"""

import json
import re
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, List
import logging

from .crud_form import CrudForm
from .exceptions import SchemaLoadError, log_error_with_context

logger = logging.getLogger(__name__)

# Default schema directory, relative to the working directory
SCHEMAS_DIR = Path("schemas")

# Supported field types
SUPPORTED_FIELD_TYPES = {'string', 'number', 'boolean'}

NUMERIC_PROPERTIES = ('min', 'max', 'numberStep', 'number_step')
POLICY_FLAGS = ('required', 'hidden')


def _schemas_dir(schemas_dir: Optional[Path]) -> Path:
    return Path(schemas_dir) if schemas_dir is not None else SCHEMAS_DIR


def _read_schema_file(full_path: Path) -> Any:
    with open(full_path, 'r', encoding='utf-8') as f:
        if full_path.suffix.lower() in ['.yaml', '.yml']:
            return yaml.safe_load(f)
        if full_path.suffix.lower() == '.json':
            return json.load(f)
    raise ValueError(f"Unsupported schema file format: {full_path.suffix}")


def load_schema(schema_path: str, schemas_dir: Optional[Path] = None) -> Optional[Dict[str, Any]]:
    """
    Load a schema from a YAML or JSON file.

    Args:
        schema_path: Path to schema file (relative to the schemas directory)
        schemas_dir: Schemas directory, defaults to SCHEMAS_DIR

    Returns:
        Schema dictionary or None if loading fails
    """
    full_path = _schemas_dir(schemas_dir) / schema_path

    if not full_path.exists():
        logger.error(f"Schema file not found: {full_path}")
        return None

    try:
        schema = _read_schema_file(full_path)

        if not validate_schema(schema):
            logger.error(f"Invalid schema structure in {schema_path}")
            return None

        logger.info(f"Successfully loaded schema: {schema_path}")
        return schema

    except yaml.YAMLError as e:
        logger.error(f"YAML parsing error in {schema_path}: {e}")
        return None
    except json.JSONDecodeError as e:
        logger.error(f"JSON parsing error in {schema_path}: {e}")
        return None
    except Exception as e:
        logger.error(f"Error loading schema {schema_path}: {e}")
        return None


def load_schema_or_raise(schema_path: str, schemas_dir: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load a schema, raising instead of returning None.

    Raises:
        SchemaLoadError: If the file is missing, unreadable or invalid
    """
    full_path = _schemas_dir(schemas_dir) / schema_path

    if not full_path.exists():
        error = SchemaLoadError(full_path, "file not found")
        log_error_with_context(error, "schema loading")
        raise error

    try:
        schema = _read_schema_file(full_path)
    except (yaml.YAMLError, json.JSONDecodeError, ValueError, OSError) as e:
        error = SchemaLoadError(full_path, "file could not be parsed", e)
        log_error_with_context(error, "schema loading")
        raise error from e

    if not validate_schema(schema):
        error = SchemaLoadError(full_path, "invalid schema structure")
        log_error_with_context(error, "schema loading")
        raise error

    return schema


def load_form(schema_path: str, schemas_dir: Optional[Path] = None, **options: Any) -> CrudForm:
    """Load a schema file and build its CrudForm."""
    schema = load_schema_or_raise(schema_path, schemas_dir)
    return CrudForm.from_schema(schema, **options)


def validate_schema(schema: Dict[str, Any]) -> bool:
    """
    Validate schema structure and field definitions.

    Args:
        schema: Schema dictionary to validate

    Returns:
        True if schema is valid, False otherwise
    """
    if not isinstance(schema, dict):
        logger.error("Schema must be a dictionary")
        return False

    if 'fields' not in schema:
        logger.error("Schema must contain 'fields' key")
        return False

    if not (schema.get('name') or schema.get('title')):
        logger.error("Schema must contain a 'name' or 'title'")
        return False

    fields = schema['fields']
    if not isinstance(fields, dict):
        logger.error("Schema 'fields' must be a dictionary")
        return False

    for field_name, field_config in fields.items():
        if not validate_field_config(field_name, field_config):
            return False

    return True


def validate_field_config(field_name: str, field_config: Dict[str, Any]) -> bool:
    """
    Validate individual field configuration.

    Every key is optional; present keys must have usable values.

    Args:
        field_name: Name of the field
        field_config: Field configuration dictionary

    Returns:
        True if field config is valid, False otherwise
    """
    if field_config is None:
        return True

    if not isinstance(field_config, dict):
        logger.error(f"Field '{field_name}' config must be a dictionary")
        return False

    field_type = field_config.get('type', 'string')
    if field_type not in SUPPORTED_FIELD_TYPES:
        logger.error(f"Field '{field_name}' has unsupported type '{field_type}'. "
                     f"Supported types: {SUPPORTED_FIELD_TYPES}")
        return False

    for constraint in NUMERIC_PROPERTIES:
        value = field_config.get(constraint)
        if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float))):
            logger.error(f"Field '{field_name}' {constraint} must be a number")
            return False

    for flag in POLICY_FLAGS:
        if flag in field_config and not isinstance(field_config[flag], bool):
            logger.error(f"Field '{field_name}' {flag} must be true or false")
            return False

    pattern = field_config.get('regEx', field_config.get('reg_ex'))
    if pattern is not None:
        try:
            re.compile(pattern)
        except (re.error, TypeError) as e:
            logger.error(f"Field '{field_name}' has invalid regex pattern: {e}")
            return False

    options = field_config.get('options')
    if options is not None:
        if not isinstance(options, list):
            logger.error(f"Field '{field_name}' options must be a list")
            return False
        if field_type == 'boolean' and len(options) > 2:
            logger.error(f"Boolean field '{field_name}' can only have two options")
            return False

    widget = field_config.get('widget')
    if widget is not None and not isinstance(widget, str):
        logger.error(f"Field '{field_name}' widget must be a string")
        return False

    return True


def create_fallback_schema() -> Dict[str, Any]:
    """
    Create a minimal schema used when no schema file can be loaded.

    Returns:
        Basic contacts schema exercising the common widgets
    """
    return {
        "name": "contacts",
        "title": "Fallback Schema",
        "fields": {
            "name": {
                "type": "string",
                "min": 1,
                "max": 200
            },
            "age": {
                "type": "number",
                "required": False,
                "min": 0,
                "max": 150,
                "widget": "number"
            },
            "subscribed": {
                "type": "boolean",
                "required": False
            },
            "profile.bio": {
                "type": "string",
                "widget": "textarea",
                "required": False
            },
            "tags": {
                "type": "string",
                "widget": "list",
                "required": False
            }
        }
    }


def get_configured_form(config: Dict[str, Any], **options: Any) -> CrudForm:
    """
    Build the form named by the ``schema`` config section.

    Falls back to create_fallback_schema() when the configured schema
    cannot be loaded.
    """
    schema_config = config.get('schema', {})
    schemas_dir = Path(schema_config.get('directory', SCHEMAS_DIR))
    primary_schema = schema_config.get('primary_schema', 'default_schema.yaml')

    schema = load_schema(primary_schema, schemas_dir)
    if schema:
        logger.info(f"Using primary schema: {primary_schema}")
    else:
        logger.warning(f"Primary schema {primary_schema} not found, using fallback schema")
        schema = create_fallback_schema()

    return CrudForm.from_schema(schema, **options)


def list_available_schemas(schemas_dir: Optional[Path] = None) -> List[str]:
    """
    List all available schema files in the schemas directory.

    Returns:
        Sorted list of schema filenames
    """
    directory = _schemas_dir(schemas_dir)
    if not directory.exists():
        logger.warning(f"Schemas directory not found: {directory}")
        return []

    schema_files = []
    for pattern in ['*.yaml', '*.yml', '*.json']:
        schema_files.extend([f.name for f in directory.glob(pattern)])

    return sorted(schema_files)


def get_schema_info(schema_path: str, schemas_dir: Optional[Path] = None) -> Optional[Dict[str, Any]]:
    """
    Get metadata information about a schema.

    Args:
        schema_path: Path to schema file
        schemas_dir: Schemas directory, defaults to SCHEMAS_DIR

    Returns:
        Dictionary with schema metadata or None if schema not found
    """
    schema = load_schema(schema_path, schemas_dir)
    if not schema:
        return None

    fields = schema.get('fields', {})

    return {
        "title": schema.get('title', 'Untitled Schema'),
        "name": schema.get('name') or schema.get('title'),
        "field_count": len(fields),
        "required_fields": [
            name for name, config in fields.items()
            if (config or {}).get('required', True)
        ],
        "field_types": {
            name: (config or {}).get('type', 'string')
            for name, config in fields.items()
        }
    }
