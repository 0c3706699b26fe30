"""
Field descriptor normalization for CrudForm schemas.
Turns raw field specs into frozen Pydantic descriptors with every default resolved.
"""

import re
import logging
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .context import Context, as_policy
from .exceptions import BooleanOptionsError, MissingSchemaArgumentError

logger = logging.getLogger(__name__)

Number = Union[int, float]

# Properties that may hold either a literal or a context function
POLICY_PROPERTIES = ('required', 'hidden', 'options', 'default', 'reg_ex', 'reg_ex_message')

BOOLEAN_OPTIONS = [
    {'value': True, 'label': 'Yes'},
    {'value': False, 'label': 'No'},
]


def camel_case_to_label(name: str) -> str:
    """
    Derive a display label from a field name.

    Only the part after the first '.' is used for nested names, a space is
    inserted before every capital and the first letter is upper-cased.

    Example:
        camel_case_to_label('profile.firstName') -> 'First Name'
    """
    if name.find('.') > 0:
        name = name.split('.')[1]
    name = re.sub(r'([A-Z])', r' \1', name)
    return name[:1].upper() + name[1:]


def singularize(label: str) -> str:
    """Very simplistic singular form: drops one trailing 's'."""
    label = camel_case_to_label(label)
    if label.endswith('s'):
        return label[:-1]
    return label


def id_from_label(label: str) -> str:
    """Strip every non-word character so the label can be used as an id."""
    return re.sub(r'\W', '', label)


def field_path(name: str) -> Tuple[str, ...]:
    """Split a wire name into its structured path (at most two levels)."""
    if name.find('.') > 0:
        return tuple(name.split('.', 1))
    return (name,)


class FieldDescriptor(BaseModel):
    """Canonical, read-only description of one form field."""

    model_config = ConfigDict(
        frozen=True,
        extra='ignore',
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    name: str
    path: Tuple[str, ...]
    label: str

    # basic validation
    type: str = 'string'
    required: Any = True
    min: Optional[Number] = None
    max: Optional[Number] = None
    number_step: Optional[Number] = Field(default=None, alias='numberStep')
    reg_ex: Any = Field(default=None, alias='regEx')
    reg_ex_message: Any = Field(default=None, alias='regExMessage')
    custom_validation: Any = Field(default=None, alias='customValidation')

    # display-related options
    placeholder: Optional[str] = ''
    options: Any = None
    widget: str = 'text'
    hidden: Any = False
    default: Any = None

    @field_validator(*POLICY_PROPERTIES, mode='before')
    @classmethod
    def _wrap_policy(cls, value: Any) -> Any:
        return as_policy(value)

    @field_validator('custom_validation')
    @classmethod
    def _check_custom_validation(cls, value: Any) -> Any:
        if value is not None and not callable(value):
            raise ValueError('customValidation must be callable')
        return value

    @property
    def is_nested(self) -> bool:
        return len(self.path) > 1

    def validate_value(self, value: Any, context: Optional[Context] = None):
        """
        Validate a value against this descriptor.

        Convenience wrapper around ``validation.validate_field``; the context
        defaults to one without identity, document or update instruction.
        """
        from .validation import validate_field

        if context is None:
            context = Context(value=value)
        return validate_field(context, self, value)


def get_field(field: Optional[Mapping[str, Any]], name: str) -> FieldDescriptor:
    """
    Build a descriptor from a raw field spec.

    Args:
        field: Partial field spec (camelCase or snake_case keys)
        name: Field name, ``parent.child`` for nested fields

    Returns:
        FieldDescriptor with all defaults applied

    Raises:
        MissingSchemaArgumentError: If the name is empty
        BooleanOptionsError: If a boolean field has more than two options
    """
    if not name:
        raise MissingSchemaArgumentError('field name')

    spec: Dict[str, Any] = dict(field or {})
    explicit_widget = spec.get('widget') is not None
    explicit_options = spec.get('options') is not None

    if spec.get('path'):
        path = tuple(str(part) for part in spec['path'])
    else:
        path = field_path(name)

    spec['name'] = name
    spec['path'] = path
    spec.setdefault('label', camel_case_to_label(path[-1]))

    field_type = spec.get('type', 'string')
    if explicit_options and not explicit_widget:
        spec['widget'] = 'select'
    if field_type == 'boolean' and not explicit_widget:
        spec['widget'] = 'checkbox'
    if field_type == 'boolean' and not explicit_options:
        spec['options'] = BOOLEAN_OPTIONS
    if field_type == 'boolean' and isinstance(spec['options'], (list, tuple)) and len(spec['options']) > 2:
        raise BooleanOptionsError(name, len(spec['options']))

    descriptor = FieldDescriptor.model_validate(spec)
    logger.debug(f"Normalized field '{name}' (type={descriptor.type}, widget={descriptor.widget})")
    return descriptor


def build_descriptors(fields: Optional[Mapping[str, Any]]) -> Dict[str, FieldDescriptor]:
    """
    Normalize a ``{name: spec}`` mapping into descriptors, keeping insertion order.

    Raises:
        MissingSchemaArgumentError: If ``fields`` is not a mapping
    """
    if fields is None or not isinstance(fields, Mapping):
        raise MissingSchemaArgumentError('fields', "Must provide a mapping of field names to field specs")

    descriptors: Dict[str, FieldDescriptor] = {}
    for name, field in fields.items():
        if isinstance(field, FieldDescriptor):
            descriptors[name] = field
        else:
            descriptors[name] = get_field(field, name)

    return descriptors
