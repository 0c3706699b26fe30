"""
Field and document validation for CrudForm.

Validation never raises for bad data: every check produces a
``(value, error)`` pair and an empty error string means the value passed.
"""

import math
import re
import logging
from typing import Any, Dict, Mapping, NamedTuple, Optional

from .cleaning import is_blank, loose_equals
from .context import Context, resolve, resolve_options

logger = logging.getLogger(__name__)

REQUIRED_MESSAGE = 'This field is required'
NOT_FOUND_MESSAGE = 'Field not found'
PATTERN_MESSAGE = 'Does not match pattern'
OPTION_MESSAGE = 'Not a valid option'
NUMBER_MESSAGE = 'Must be a number'


class ValidationResult(NamedTuple):
    value: Any
    error: str


class DocumentValidationResult(NamedTuple):
    found_fields: Dict[str, Any]
    errors: Dict[str, str]

    @property
    def is_valid(self) -> bool:
        return not self.errors


def _matches(pattern: Any, value: Any) -> bool:
    if isinstance(pattern, re.Pattern):
        return pattern.search(str(value)) is not None
    return re.search(pattern, str(value)) is not None


def _is_number(value: Any) -> bool:
    return not isinstance(value, bool) and isinstance(value, (int, float)) and not math.isnan(value)


def _check_bounds(field: Any, value: Any) -> str:
    """Numeric bounds for plain numbers, length bounds for plain strings. List bounds count items."""
    if field.widget == 'list':
        return ''
    if field.type == 'number':
        if not _is_number(value):
            return NUMBER_MESSAGE
        if field.min is not None and value < field.min:
            return f"Minimum value is {field.min}"
        if field.max is not None and value > field.max:
            return f"Maximum value is {field.max}"
    elif field.type == 'string':
        length = len(value) if hasattr(value, '__len__') else len(str(value))
        if field.min is not None and length < field.min:
            return f"Minimum length is {field.min}"
        if field.max is not None and length > field.max:
            return f"Maximum length is {field.max}"
    return ''


def _check_pattern(context: Context, field: Any, value: Any) -> str:
    reg_ex = resolve(context, field.reg_ex)
    if not reg_ex:
        return ''

    entries = value if isinstance(value, (list, tuple)) else [value]
    if all(_matches(reg_ex, entry) for entry in entries if not is_blank(entry)):
        return ''

    reg_ex_message = resolve(context, field.reg_ex_message)
    return reg_ex_message or PATTERN_MESSAGE


def validate_field(context: Context, field: Any, value: Any) -> ValidationResult:
    """
    Validate one cleaned value against one field descriptor.

    Checks run in order and the first failure wins: required, bounds,
    pattern, list item count, options. When the field has a custom
    validation function it receives the value after the built-in checks and
    its ``(value, error)`` result is returned as-is.

    Args:
        context: Edit context (identity, value, document, update instruction)
        field: Field descriptor
        value: Cleaned value

    Returns:
        ValidationResult of the (possibly filtered) value and error message
    """
    context = context.with_value(value)

    if resolve(context, field.required) and is_blank(value):
        return ValidationResult(value, REQUIRED_MESSAGE)

    if is_blank(value):
        return ValidationResult(value, '')

    error = _check_bounds(field, value)
    if error:
        return ValidationResult(value, error)

    if field.type == 'string':
        error = _check_pattern(context, field, value)
        if error:
            return ValidationResult(value, error)

    if field.widget == 'list':
        if not isinstance(value, (list, tuple)):
            value = [value]
        items = [item for item in value if item]
        if field.min is not None and len(items) < field.min:
            return ValidationResult(value, f"List must have at least {field.min} items")
        if field.max is not None and len(items) > field.max:
            return ValidationResult(value, f"List has too many items (max {field.max})")
        if field.type == 'number' and not all(_is_number(item) for item in items):
            return ValidationResult(value, NUMBER_MESSAGE)
        value = items

    options = resolve_options(context, field, value)
    if options is not None:
        candidates = value if isinstance(value, list) else [value]
        for candidate in candidates:
            if not any(loose_equals(candidate, option.value) for option in options):
                return ValidationResult(value, OPTION_MESSAGE)

    if field.custom_validation:
        result = field.custom_validation(field, value, context.document, context.update_instruction)
        return ValidationResult(*result)

    return ValidationResult(value, '')


def find_fields(fields: Mapping[str, Any], document: Optional[Mapping[str, Any]],
                update_instruction: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Collect the fields present in a document or update instruction.

    An update instruction contributes exactly its ``$set`` entries. A document
    is flattened one level: a dict value contributes one entry per sub-key,
    named after the matching descriptor path.

    Returns:
        Mapping of field name to raw value
    """
    found: Dict[str, Any] = {}

    if update_instruction is not None:
        for name, item in (update_instruction.get('$set') or {}).items():
            found[name] = item
        return found

    names_by_path = {field.path: name for name, field in fields.items()}

    for key, item in (document or {}).items():
        if isinstance(item, dict):
            for sub_key, sub_item in item.items():
                path = (key, sub_key)
                found[names_by_path.get(path, '.'.join(path))] = sub_item
        else:
            found[names_by_path.get((key,), key)] = item

    return found


def validate(context: Context, fields: Mapping[str, Any], document: Optional[Mapping[str, Any]] = None,
             update_instruction: Optional[Mapping[str, Any]] = None) -> DocumentValidationResult:
    """
    Validate a whole document or an update instruction against a schema.

    Args:
        context: Edit context; its document and update instruction are
            replaced by the ones given here
        fields: Mapping of field name to descriptor
        document: Full document, used when no update instruction is given
        update_instruction: ``{'$set': {...}}`` partial update

    Returns:
        DocumentValidationResult(found_fields, errors). The input is valid
        iff ``errors`` is empty.
    """
    context = context._replace(document=document, update_instruction=update_instruction)
    found_fields = find_fields(fields, document, update_instruction)

    errors: Dict[str, str] = {}
    for name, item in found_fields.items():
        if name not in fields:
            continue
        result = validate_field(context, fields[name], item)
        if result.error:
            errors[name] = result.error

    for name, field in fields.items():
        if name in found_fields:
            continue
        missing_context = context.with_value(None)
        if not resolve(missing_context, field.required):
            continue
        if resolve(missing_context, field.hidden):
            continue
        errors[name] = NOT_FOUND_MESSAGE

    if errors:
        logger.debug(f"Validation found {len(errors)} error(s): {errors}")
    return DocumentValidationResult(found_fields, errors)
