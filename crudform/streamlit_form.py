"""
Streamlit rendering surface for CrudForm.
Draws descriptors as Streamlit widgets and returns the submitted elements
that feed form_to_object.
"""

import math
import streamlit as st
import pandas as pd
import logging
from typing import Any, Dict, List, Mapping, Optional

from .cleaning import loose_equals
from .context import Context, resolve, resolve_options
from .form_extractor import LIST_MARKER, SubmittedElement
from .validation import validate
from .widgets import prepare_widget_value, to_text

logger = logging.getLogger(__name__)

LIST_COLUMN = 'value'


def _widget_key(form: Any, field: Any) -> str:
    return f"{form.form_name}_{field.name}"


def _option_index(options: List[Any], value: Any) -> Optional[int]:
    for index, option in enumerate(options):
        if loose_equals(value, option.value):
            return index
    return None


def _list_entries(edited: Any) -> List[Any]:
    """Read list entries back from the data editor, dropping blank rows."""
    if hasattr(edited, 'to_dict'):
        records = edited.to_dict('records')
    elif isinstance(edited, list):
        records = edited
    else:
        logger.warning(f"Unexpected list editor value: {type(edited)}")
        return []

    entries = []
    for record in records:
        entry = record.get(LIST_COLUMN) if isinstance(record, dict) else record
        if entry is None or pd.isna(entry):
            continue
        entries.append(entry)
    return entries


def _number_input_kwargs(field: Any, value: Any) -> Dict[str, Any]:
    """
    Value and bounds for st.number_input, all of one numeric type.

    Streamlit rejects a mix of int and float arguments, so everything becomes
    float as soon as one of them is a float. Missing, NaN or non-numeric values
    start the widget empty.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
        value = None

    number_kwargs: Dict[str, Any] = {'value': value}
    if field.min is not None:
        number_kwargs['min_value'] = field.min
    if field.max is not None:
        number_kwargs['max_value'] = field.max
    if field.number_step:
        number_kwargs['step'] = field.number_step

    if any(isinstance(argument, float) for argument in number_kwargs.values()):
        number_kwargs = {name: (float(argument) if argument is not None else None)
                         for name, argument in number_kwargs.items()}
    return number_kwargs


def _render_choice(context: Context, field: Any, value: Any, key: str) -> Any:
    options = resolve_options(context, field, value) or []
    if field.widget == 'select' and not resolve(context.with_value(value), field.required):
        options = [None] + list(options)

    labels = {index: ('(none)' if option is None else to_text(option.label)) for index, option in enumerate(options)}
    index = _option_index([o for o in options if o is not None], value)
    if index is not None and options and options[0] is None:
        index += 1

    if field.widget == 'radio':
        choice = st.radio(field.label, list(range(len(options))), index=index, key=key,
                          format_func=lambda i: labels[i])
    else:
        choice = st.selectbox(field.label, list(range(len(options))), index=index or 0, key=key,
                              format_func=lambda i: labels[i])

    if choice is None or options[choice] is None:
        return ''
    return options[choice].value


def _render_field(context: Context, form: Any, field: Any, value: Any, error: Optional[str]) -> List[SubmittedElement]:
    """Draw one field and return the elements it submits."""
    key = _widget_key(form, field)
    value = prepare_widget_value(context, field, value)

    if field.widget == 'hidden':
        return [SubmittedElement(field.name, value)]

    if field.widget == 'list':
        rows = value if isinstance(value, (list, tuple)) else []
        edited = st.data_editor(
            pd.DataFrame({LIST_COLUMN: list(rows)}, dtype=object),
            key=key,
            num_rows="dynamic",
            use_container_width=True,
        )
        submitted = [SubmittedElement(field.name + LIST_MARKER, entry) for entry in _list_entries(edited)]
    elif field.widget in ('select', 'radio'):
        submitted = [SubmittedElement(field.name, _render_choice(context, field, value, key))]
    elif field.widget == 'checkbox':
        submitted = [SubmittedElement(field.name, st.checkbox(field.label, value=bool(value), key=key))]
    elif field.widget == 'textarea':
        submitted = [SubmittedElement(field.name, st.text_area(field.label, value=to_text(value), key=key))]
    elif field.widget == 'number':
        submitted = [SubmittedElement(field.name, st.number_input(field.label, key=key,
                                                                  **_number_input_kwargs(field, value)))]
    else:
        placeholder = field.label if field.placeholder is None else (field.placeholder or None)
        submitted = [SubmittedElement(field.name, st.text_input(field.label, value=to_text(value), key=key,
                                                                placeholder=placeholder))]

    if error:
        st.error(error)

    return submitted


def render_streamlit_form(form: Any, document: Optional[Mapping[str, Any]] = None,
                          identity: Any = None) -> Optional[List[SubmittedElement]]:
    """
    Render a CrudForm with Streamlit widgets.

    Args:
        form: CrudForm to render
        document: Existing document for edit mode
        identity: Caller identity passed to computed policies

    Returns:
        Submitted elements when the submit button was pressed, otherwise None
    """
    context = Context(identity=identity)
    values: Dict[str, Any] = {}
    errors: Dict[str, str] = {}
    if document is not None:
        values, errors = validate(context, form.fields, document)
    context = context._replace(document=document)

    elements: List[SubmittedElement] = []
    with st.form(form.form_name, clear_on_submit=False):
        for name, field in form.fields.items():
            value = values.get(name)
            if resolve(context.with_value(value), field.hidden):
                continue
            elements.extend(_render_field(context, form, field, value, errors.get(name)))

        submitted = st.form_submit_button(form.submit_label, type="primary")

    if not submitted:
        return None

    logger.info(f"Form {form.form_name} submitted with {len(elements)} element(s)")
    return elements
