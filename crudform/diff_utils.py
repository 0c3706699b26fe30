"""
Diff utilities for CrudForm edits.
Compares an existing document with a submitted form using DeepDiff so updates
only carry the fields that actually changed.
"""

from typing import Any, Dict, Mapping, Optional, Tuple
from deepdiff import DeepDiff
import logging

from .field_descriptor import field_path
from .form_extractor import FormObject

logger = logging.getLogger(__name__)

_MISSING = object()

CHANGE_TYPES = (
    'values_changed',
    'dictionary_item_added',
    'dictionary_item_removed',
    'iterable_item_added',
    'iterable_item_removed',
    'type_changes',
)


def calculate_diff(original: Optional[Mapping[str, Any]], modified: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Calculate differences between two documents.

    List order is significant since list fields are reorderable.

    Args:
        original: Document as currently stored
        modified: Document rebuilt from the submitted form

    Returns:
        DeepDiff result as a plain dictionary keyed by change type
    """
    diff = DeepDiff(dict(original or {}), dict(modified or {}), verbose_level=2)
    diff_dict = diff.to_dict() if hasattr(diff, 'to_dict') else dict(diff)
    return {change_type: changes for change_type, changes in diff_dict.items() if change_type in CHANGE_TYPES}


def has_changes(diff: Dict[str, Any]) -> bool:
    """
    Check if there are any changes in the diff.

    Args:
        diff: Diff dictionary from calculate_diff

    Returns:
        True if there are changes, False otherwise
    """
    if not diff:
        return False
    return any(change_type in diff and diff[change_type] for change_type in CHANGE_TYPES)


def _value_at_path(document: Mapping[str, Any], path: Tuple[str, ...]) -> Any:
    current: Any = document
    for key in path:
        if not isinstance(current, Mapping) or key not in current:
            return _MISSING
        current = current[key]
    return current


def changed_update_instruction(original_document: Optional[Mapping[str, Any]], form_object: FormObject,
                               fields: Optional[Mapping[str, Any]] = None) -> Dict[str, Dict[str, Any]]:
    """
    Reduce a form's update instruction to the fields that differ from the stored document.

    Args:
        original_document: Document being edited
        form_object: Extracted submission
        fields: Optional descriptor mapping used to find each field's path;
            names are split on the first '.' when omitted

    Returns:
        ``{'$set': {...}}`` holding only changed entries
    """
    original_document = original_document or {}
    changed: Dict[str, Any] = {}

    for name, value in form_object.update_instruction.get('$set', {}).items():
        field = fields.get(name) if fields else None
        path = field.path if field is not None else field_path(name)
        previous = _value_at_path(original_document, path)

        if previous is _MISSING or DeepDiff(previous, value):
            changed[name] = value

    logger.debug(f"{len(changed)} of {len(form_object.update_instruction.get('$set', {}))} field(s) changed")
    return {'$set': changed}
