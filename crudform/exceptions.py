"""
Exception classes for form schema construction errors.

Schema problems are programming mistakes, so they are raised immediately.
Field validation failures are never raised; they travel as error strings
in validation results.
"""

import logging
from typing import Optional, Dict, Any, List
from pathlib import Path

logger = logging.getLogger(__name__)


class CrudFormError(Exception):
    """
    Base exception for form schema errors.

    Attributes:
        message: Error message
        context: Additional context information
        recovery_suggestions: List of suggested recovery actions
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None,
                 recovery_suggestions: Optional[List[str]] = None):
        self.message = message
        self.context = context or {}
        self.recovery_suggestions = recovery_suggestions or []
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    def get_full_details(self) -> Dict[str, Any]:
        """Get complete error details including context and suggestions."""
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'context': self.context,
            'recovery_suggestions': self.recovery_suggestions
        }


class BooleanOptionsError(CrudFormError):
    """Raised when a boolean field declares more than two options."""

    def __init__(self, field_name: str, option_count: int):
        self.field_name = field_name
        self.option_count = option_count

        context = {
            'field_name': field_name,
            'option_count': option_count
        }

        recovery_suggestions = [
            f"Reduce the options of '{field_name}' to a true and a false entry",
            "Use type 'string' with a select widget for multi-choice fields"
        ]

        super().__init__("Boolean can only have two options", context, recovery_suggestions)


class MissingSchemaArgumentError(CrudFormError):
    """Raised when a form or schema is built without a required argument."""

    def __init__(self, argument: str, message: Optional[str] = None):
        self.argument = argument

        if message is None:
            message = f"Must provide {argument}"

        super().__init__(message, {'argument': argument}, [
            f"Pass '{argument}' when defining the form"
        ])


class SchemaLoadError(CrudFormError):
    """
    Raised when a schema file cannot be read or has an invalid structure.
    """

    def __init__(self, schema_path: Path, reason: str,
                 original_error: Optional[Exception] = None):
        self.schema_path = schema_path
        self.reason = reason
        self.original_error = original_error

        context = {
            'schema_path': str(schema_path),
            'reason': reason
        }
        if original_error is not None:
            context['original_error_type'] = type(original_error).__name__
            context['original_error_message'] = str(original_error)

        recovery_suggestions = [
            "Check that the schema file exists in the configured schema directory",
            "Verify YAML/JSON syntax is correct",
            "Ensure the schema has a 'fields' mapping"
        ]

        super().__init__(f"Failed to load schema {schema_path}: {reason}",
                         context, recovery_suggestions)


def log_error_with_context(error: CrudFormError, operation: str) -> None:
    """
    Log error with full context information.

    Args:
        error: CrudFormError instance
        operation: Description of the operation that failed
    """
    logger.error(f"Form error during {operation}")
    logger.error(f"Error type: {type(error).__name__}")
    logger.error(f"Error message: {error.message}")

    if error.context:
        logger.error("Error context:")
        for key, value in error.context.items():
            logger.error(f"  {key}: {value}")

    if error.recovery_suggestions:
        logger.info("Recovery suggestions:")
        for i, suggestion in enumerate(error.recovery_suggestions, 1):
            logger.info(f"  {i}. {suggestion}")
