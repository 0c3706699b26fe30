"""
Form submission extraction for CrudForm.
Rebuilds a document and an update instruction from submitted widget values.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple

from bs4 import BeautifulSoup

from .cleaning import clean_field

logger = logging.getLogger(__name__)

LIST_MARKER = '[]'


class SubmittedElement(NamedTuple):
    """One submitted control: its wire name and raw value."""
    name: str
    value: Any


class FormObject(NamedTuple):
    document: Dict[str, Any]
    update_instruction: Dict[str, Dict[str, Any]]


def _set_or_append(existing: Any, is_list: bool, value: Any) -> Any:
    """List-marked names accumulate truthy values; plain names overwrite."""
    if not is_list:
        return value
    if not isinstance(existing, list):
        existing = []
    if value:
        existing.append(value)
    return existing


def form_to_object(elements: Iterable[Any], fields: Mapping[str, Any]) -> FormObject:
    """
    Build the document and update instruction for submitted form values.

    Args:
        elements: SubmittedElement instances or ``(name, value)`` pairs, in
            form order
        fields: Mapping of field name to descriptor used for lookups

    Returns:
        FormObject(document, update_instruction). Both views carry the same
        cleaned values; nested fields are grouped under their parent key in
        the document and keep their dotted name in ``$set``.
    """
    document: Dict[str, Any] = {}
    set_clause: Dict[str, Any] = {}

    for element in elements:
        name, raw_value = element
        single_name = name.replace(LIST_MARKER, '')
        field = fields.get(single_name)
        if field is None:
            logger.warning(f"Submitted element '{name}' does not match any field, skipping")
            continue

        value = clean_field(field, raw_value)
        is_list = name.find('[') > 0

        set_clause[single_name] = _set_or_append(set_clause.get(single_name), is_list, value)

        if field.is_nested:
            parent_key, child_key = field.path[0], field.path[1]
            parent = document.get(parent_key)
            if not isinstance(parent, dict):
                parent = {}
                document[parent_key] = parent
            parent[child_key] = _set_or_append(parent.get(child_key), is_list, value)
        else:
            document[single_name] = _set_or_append(document.get(single_name), is_list, value)

    logger.debug(f"Extracted {len(set_clause)} field(s) from submitted form")
    return FormObject(document, {'$set': set_clause})


def read_submitted_elements(markup: str) -> List[SubmittedElement]:
    """
    Read the values a browser would submit for rendered form markup.

    Only ``form-control`` elements take part. Checkboxes submit their checked
    state, selects their selected option (the first option when none is
    marked), textareas their text and a radio group its checked value or an
    empty string.

    Args:
        markup: HTML produced by the widget renderer

    Returns:
        List of SubmittedElement in document order
    """
    soup = BeautifulSoup(markup, 'html.parser')
    elements: List[SubmittedElement] = []
    radio_positions: Dict[str, int] = {}

    for control in soup.select('.form-control'):
        name = control.get('name')
        if not name:
            continue

        if control.name == 'select':
            selected = control.find('option', selected=True) or control.find('option')
            value = selected.get('value', selected.get_text()) if selected else ''
        elif control.name == 'textarea':
            value = control.get_text()
        else:
            input_type = (control.get('type') or 'text').lower()
            if input_type == 'checkbox':
                value = control.has_attr('checked')
            elif input_type == 'radio':
                checked_value = control.get('value', '') if control.has_attr('checked') else None
                if name in radio_positions:
                    if checked_value is not None:
                        elements[radio_positions[name]] = SubmittedElement(name, checked_value)
                    continue
                radio_positions[name] = len(elements)
                value = checked_value if checked_value is not None else ''
            else:
                value = control.get('value', '')

        elements.append(SubmittedElement(name, value))

    return elements
