"""
CrudForm: a named schema of field descriptors plus the operations that use it.

The host application keeps its own references to CrudForm instances; there is
no process-wide registry to look forms up by name.
"""

import logging
from typing import Any, Dict, Iterable, Mapping, NamedTuple, Optional

from .context import Context
from .exceptions import MissingSchemaArgumentError
from .field_descriptor import FieldDescriptor, build_descriptors, id_from_label, singularize
from .form_extractor import FormObject, form_to_object
from .validation import DocumentValidationResult, ValidationResult, validate, validate_field
from .widgets import render_form, render_modal_form

logger = logging.getLogger(__name__)

INSERT = 'insert'
UPDATE = 'update'


class Submission(NamedTuple):
    """What a submitted form asks the persistence layer to do."""
    action: str
    document: Dict[str, Any]
    update_instruction: Dict[str, Dict[str, Any]]
    edit_id: Any
    errors: Dict[str, str]

    @property
    def is_valid(self) -> bool:
        return not self.errors


class CrudForm:
    """A form definition bound to one collection of documents."""

    def __init__(self, name: str, fields: Optional[Mapping[str, Any]], label: Optional[str] = None,
                 log_validation_failures: bool = True, submit_label: str = 'Submit',
                 cancel_label: str = 'Cancel'):
        """
        Args:
            name: Collection name, e.g. ``'users'``
            fields: Mapping of field name to raw field spec
            label: Display label; defaults to the singular of ``name``
            log_validation_failures: Log rejected submissions at info level
            submit_label: Submit button text
            cancel_label: Modal cancel button text

        Raises:
            MissingSchemaArgumentError: If the name or the fields are missing
            BooleanOptionsError: If a boolean field has more than two options
        """
        if not name:
            raise MissingSchemaArgumentError('name', "Must provide collection name")
        if fields is None:
            raise MissingSchemaArgumentError('fields', "Must provide options")

        self.name = name
        self.fields: Dict[str, FieldDescriptor] = build_descriptors(fields)
        self.label = label or singularize(name)
        self.form_name = id_from_label('crudForm' + self.label)
        self.modal_name = id_from_label('modal' + self.label)
        self.log_validation_failures = log_validation_failures
        self.submit_label = submit_label
        self.cancel_label = cancel_label

        logger.info(f"Created form '{self.form_name}' with {len(self.fields)} fields")

    @classmethod
    def from_schema(cls, schema: Mapping[str, Any], **options: Any) -> 'CrudForm':
        """
        Create a form from a loaded schema dictionary.

        The collection name comes from ``schema['name']``, falling back to
        ``schema['title']``.
        """
        if not isinstance(schema, Mapping) or 'fields' not in schema:
            raise MissingSchemaArgumentError('fields', "Schema must contain 'fields' key")

        name = schema.get('name') or schema.get('title')
        return cls(name, schema['fields'], label=schema.get('label'), **options)

    def __repr__(self) -> str:
        return f"CrudForm(name={self.name!r}, fields={list(self.fields)!r})"

    def _context(self, identity: Any) -> Context:
        return Context(identity=identity)

    def validate_field(self, identity: Any, field_name: str, value: Any,
                       document: Optional[Mapping[str, Any]] = None,
                       update_instruction: Optional[Mapping[str, Any]] = None) -> ValidationResult:
        context = Context(identity, value, document, update_instruction)
        return validate_field(context, self.fields[field_name], value)

    def validate(self, identity: Any, document: Optional[Mapping[str, Any]] = None,
                 update_instruction: Optional[Mapping[str, Any]] = None) -> DocumentValidationResult:
        return validate(self._context(identity), self.fields, document, update_instruction)

    def render_form(self, identity: Any = None, document: Optional[Mapping[str, Any]] = None,
                    update_instruction: Optional[Mapping[str, Any]] = None) -> str:
        return render_form(self._context(identity), self, document, update_instruction,
                           submit_label=self.submit_label)

    def render_modal_form(self, identity: Any = None, document: Optional[Mapping[str, Any]] = None,
                          update_instruction: Optional[Mapping[str, Any]] = None) -> str:
        return render_modal_form(self._context(identity), self, document, update_instruction,
                                 submit_label=self.submit_label, cancel_label=self.cancel_label)

    def form_to_object(self, elements: Iterable[Any]) -> FormObject:
        return form_to_object(elements, self.fields)

    def prepare_submission(self, identity: Any, elements: Iterable[Any], edit_id: Any = None) -> Submission:
        """
        Turn submitted elements into an insert or update request.

        The extracted payload is validated the way the persistence layer
        would: the document for inserts, the update instruction for updates.

        Args:
            identity: Caller identity passed to computed policies
            elements: Submitted form elements
            edit_id: Id of the document being edited, None for a new one

        Returns:
            Submission with the action, both payload views and any errors
        """
        form_object = self.form_to_object(elements)
        action = UPDATE if edit_id is not None else INSERT

        if action == UPDATE:
            result = self.validate(identity, update_instruction=form_object.update_instruction)
        else:
            result = self.validate(identity, document=form_object.document)

        if result.errors and self.log_validation_failures:
            logger.info(f"Form validation failed for {self.form_name} ({action}): {result.errors}")

        return Submission(action, form_object.document, form_object.update_instruction, edit_id, result.errors)
