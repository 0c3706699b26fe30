"""
HTML widget rendering for CrudForm fields.
Renders descriptors into form markup and composes fields into full and modal forms.
"""

import re
import logging
from html import escape
from typing import Any, Callable, Dict, List, Mapping, Optional

from .cleaning import clean_field, loose_equals
from .context import Computed, Context, FieldOption, resolve, resolve_options
from .validation import validate

logger = logging.getLogger(__name__)

WidgetRenderer = Callable[[Context, Any, Any, Optional[List[FieldOption]]], str]


def to_text(value: Any) -> str:
    """Stringify a value the way it travels through form controls."""
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def _attr(name: str, value: Any) -> str:
    return f' {name}="{escape(to_text(value), quote=True)}"'


def _pattern_source(reg_ex: Any) -> Optional[str]:
    if reg_ex is None or isinstance(reg_ex, Computed):
        return None
    if isinstance(reg_ex, re.Pattern):
        return reg_ex.pattern
    return str(reg_ex)


def render_list_entry(field: Any, value: Any = '') -> str:
    """One removable, reorderable entry of a list widget."""
    html = '<div class="crud-field-list-entry">'
    html += '<span class="handle glyphicon glyphicon-resize-vertical"></span>'
    html += '<input type="text" class="form-control"' + _attr('name', f"{field.name}[]") + _attr('value', value) + ' />'
    html += '<button type="button" class="btn btn-danger" data-crud-action="remove-list-entry">'
    html += '<span class="glyphicon glyphicon-remove"></span></button>'
    html += '</div>'
    return html


def _render_hidden(context: Context, field: Any, value: Any, options: Optional[List[FieldOption]]) -> str:
    return '<input type="hidden" class="form-control"' + _attr('name', field.name) + _attr('value', value) + ' />'


def _render_radio(context: Context, field: Any, value: Any, options: Optional[List[FieldOption]]) -> str:
    html = ''
    for option in options or []:
        html += '<input type="radio" class="form-control"' + _attr('name', field.name) + _attr('value', option.value)
        if loose_equals(value, option.value):
            html += ' checked="checked"'
        html += f'>{escape(to_text(option.label))}</input>'
    return html


def _render_list(context: Context, field: Any, value: Any, options: Optional[List[FieldOption]]) -> str:
    html = '<br /><button type="button" class="btn btn-default" data-crud-action="add-list-entry"'
    html += _attr('name', field.name) + f'>New {escape(field.label)}</button>'
    html += '<div class="crud-field-list">'
    if isinstance(value, (list, tuple)):
        for entry in value:
            html += render_list_entry(field, entry)
    html += '</div>'
    return html


def _render_select(context: Context, field: Any, value: Any, options: Optional[List[FieldOption]]) -> str:
    html = '<select class="form-control"' + _attr('name', field.name) + '>'
    if not resolve(context.with_value(value), field.required):
        html += '<option value="">(none)</option>'
    for option in options or []:
        html += '<option' + _attr('value', option.value)
        if loose_equals(value, option.value):
            html += ' selected="selected"'
        html += f'>{escape(to_text(option.label))}</option>'
    html += '</select>'
    return html


def _render_textarea(context: Context, field: Any, value: Any, options: Optional[List[FieldOption]]) -> str:
    return '<textarea class="form-control"' + _attr('name', field.name) + f'>{escape(to_text(value))}</textarea>'


def _render_checkbox(context: Context, field: Any, value: Any, options: Optional[List[FieldOption]]) -> str:
    html = '<input type="checkbox" class="form-control"' + _attr('name', field.name)
    if value:
        html += ' checked="checked"'
    return html + ' />'


def _render_input(context: Context, field: Any, value: Any, options: Optional[List[FieldOption]]) -> str:
    html = '<input' + _attr('type', field.widget) + ' class="form-control"' + _attr('name', field.name)

    if field.type == 'number' and field.min is not None and field.max is not None:
        html += _attr('min', field.min) + _attr('max', field.max)
        if field.number_step:
            html += _attr('step', field.number_step)

    pattern = _pattern_source(field.reg_ex)
    if pattern:
        html += _attr('pattern', pattern)

    if field.placeholder is None:
        html += _attr('placeholder', field.label)
    elif field.placeholder:
        html += _attr('placeholder', field.placeholder)

    return html + _attr('value', value) + ' />'


WIDGET_RENDERERS: Dict[str, WidgetRenderer] = {
    'hidden': _render_hidden,
    'radio': _render_radio,
    'list': _render_list,
    'select': _render_select,
    'textarea': _render_textarea,
    'checkbox': _render_checkbox,
}


def prepare_widget_value(context: Context, field: Any, value: Any) -> Any:
    """
    Clean a value for display.

    None becomes an empty string. When the context carries neither a document
    nor an update instruction (a blank "new" form), a falsy value is replaced
    by the field's resolved default.
    """
    value = clean_field(field, value)
    if value is None:
        value = ''
    if (not value and context.document is None and context.update_instruction is None
            and field.default is not None):
        value = resolve(context.with_value(value), field.default)
    return value


def render_field_widget(context: Context, field: Any, value: Any) -> str:
    """
    Render the control for one field.

    Widget names without a dedicated renderer are emitted as
    ``<input type="<widget>">``.
    """
    value = prepare_widget_value(context, field, value)
    options = resolve_options(context, field, value)
    renderer = WIDGET_RENDERERS.get(field.widget, _render_input)
    return renderer(context, field, value, options)


def render_label(field: Any) -> str:
    if field.widget == 'hidden':
        return ''
    return '<label' + _attr('for', field.name) + f'>{escape(field.label)}</label>'


def render_field(context: Context, field: Any, value: Any, error: Optional[str] = None) -> str:
    """
    Render a field with its label and error slot.

    Fields whose resolved ``hidden`` policy is true render nothing; the
    ``hidden`` widget renders its bare input. The help-block is always
    emitted so client-side validation can fill it in place.
    """
    if resolve(context.with_value(value), field.hidden):
        return ''
    if field.widget == 'hidden':
        return render_field_widget(context, field, value)

    html = '<div' + _attr('class', f"form-group crudField{field.name}" + (' has-error' if error else '')) + '>'
    html += render_label(field)
    html += render_field_widget(context, field, value)
    html += f'<p class="help-block">{escape(error) if error else ""}</p>'
    html += '</div>'
    return html


def render_fields(context: Context, fields: Mapping[str, Any], document: Optional[Mapping[str, Any]] = None,
                  update_instruction: Optional[Mapping[str, Any]] = None) -> str:
    """Render every field in schema order, pre-populated from the document or instruction."""
    values: Dict[str, Any] = {}
    errors: Dict[str, str] = {}
    if document is not None or update_instruction is not None:
        values, errors = validate(context, fields, document, update_instruction)

    context = context._replace(document=document, update_instruction=update_instruction)
    html = ''
    for name, field in fields.items():
        html += render_field(context, field, values.get(name), errors.get(name))
    return html


def render_form(context: Context, form: Any, document: Optional[Mapping[str, Any]] = None,
                update_instruction: Optional[Mapping[str, Any]] = None, submit_label: str = 'Submit') -> str:
    """
    Render a complete form for a CrudForm-like object.

    Args:
        context: Edit context carrying the caller identity
        form: Object with ``fields`` and ``form_name``
        document: Existing document for edit mode
        update_instruction: Pending update instruction for edit mode
        submit_label: Text of the submit button

    Returns:
        Form markup
    """
    html = '<form method="post"' + _attr('data-form-name', form.form_name) + '>'
    html += render_fields(context, form.fields, document, update_instruction)
    html += f'<button type="submit" class="btn btn-primary btn-block">{escape(submit_label)}</button>'
    return html + '</form>'


def render_modal_form(context: Context, form: Any, document: Optional[Mapping[str, Any]] = None,
                      update_instruction: Optional[Mapping[str, Any]] = None, submit_label: str = 'Submit',
                      cancel_label: str = 'Cancel') -> str:
    """Same contract as render_form, wrapped in modal dialog markup titled with the form label."""
    html = '<div' + _attr('class', f"modal {form.modal_name}") + '>'
    html += '<div class="modal-dialog"><div class="modal-content">'
    html += '<form method="post"' + _attr('data-form-name', form.form_name) + '>'
    html += '<div class="modal-header">'
    html += '<button type="button" class="close" data-dismiss="modal" aria-hidden="true">&times;</button>'
    html += f'<h4 class="modal-title">{escape(form.label)}</h4></div>'
    html += '<div class="modal-body">'
    html += render_fields(context, form.fields, document, update_instruction)
    html += '</div>'
    html += '<div class="modal-footer">'
    html += f'<button type="button" class="btn btn-default" data-dismiss="modal">{escape(cancel_label)}</button>'
    html += f'<button type="submit" class="btn btn-primary">{escape(submit_label)}</button>'
    html += '</div></form></div></div></div>'

    logger.debug(f"Rendered modal form {form.modal_name}")
    return html
