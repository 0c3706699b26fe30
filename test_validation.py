"""
Unit tests for validation module.
"""

import math
import re

import pytest

from crudform.context import Context
from crudform.field_descriptor import build_descriptors, get_field
from crudform.validation import (
    NOT_FOUND_MESSAGE,
    NUMBER_MESSAGE,
    OPTION_MESSAGE,
    PATTERN_MESSAGE,
    REQUIRED_MESSAGE,
    find_fields,
    validate,
    validate_field,
)


def check(spec, value, context=None, name='field'):
    field = get_field(spec, name)
    return validate_field(context or Context(), field, value)


class TestRequired:
    """Test the required check."""

    @pytest.mark.parametrize('value', [None, ''])
    def test_required_missing_value(self, value):
        """Test required fields without a value."""
        assert check({}, value).error == REQUIRED_MESSAGE

    @pytest.mark.parametrize('value', [None, ''])
    def test_optional_missing_value_passes(self, value):
        """Test optional fields without a value."""
        result = check({'required': False}, value)

        assert result.error == ''
        assert result.value == value

    def test_optional_missing_value_skips_other_checks(self):
        """Test that optional empty values skip the other checks."""
        result = check({'required': False, 'min': 3, 'regEx': '^x'}, '')
        assert result.error == ''

    def test_computed_required(self):
        """Test a computed required policy."""
        def required_for_admins(identity, value, document, update_instruction):
            return identity == 'admin'

        assert check({'required': required_for_admins}, '', Context(identity='admin')).error == REQUIRED_MESSAGE
        assert check({'required': required_for_admins}, '', Context(identity='guest')).error == ''


class TestBounds:
    """Test numeric and length bounds."""

    def test_number_bounds(self):
        """Test number min and max."""
        spec = {'type': 'number', 'min': 1, 'max': 10}

        assert check(spec, 0).error == 'Minimum value is 1'
        assert check(spec, 11).error == 'Maximum value is 10'
        assert check(spec, 5).error == ''

    def test_zero_bound_is_enforced(self):
        """Test that a bound of zero is enforced."""
        assert check({'type': 'number', 'min': 0}, -1).error == 'Minimum value is 0'
        assert check({'type': 'number', 'max': 0}, 1).error == 'Maximum value is 0'

    def test_number_nan_rejected(self):
        """Test that NaN is rejected."""
        assert check({'type': 'number'}, math.nan).error == NUMBER_MESSAGE

    def test_zero_is_a_value(self):
        """Test that zero counts as a value."""
        result = check({'type': 'number'}, 0)
        assert result.error == ''
        assert result.value == 0

    def test_string_length(self):
        """Test string length bounds."""
        spec = {'min': 2, 'max': 4}

        assert check(spec, 'a').error == 'Minimum length is 2'
        assert check(spec, 'abcde').error == 'Maximum length is 4'
        assert check(spec, 'abc').error == ''


class TestPattern:
    """Test regular expression checks."""

    def test_pattern_mismatch_generic_message(self):
        """Test the generic pattern message."""
        assert check({'regEx': '^[0-9]+$'}, 'abc').error == PATTERN_MESSAGE

    def test_pattern_custom_message(self):
        """Test a custom pattern message."""
        assert check({'regEx': '^[0-9]+$', 'regExMessage': 'Digits only'}, 'abc').error == 'Digits only'

    def test_pattern_match(self):
        """Test a matching pattern."""
        assert check({'regEx': '^[0-9]+$'}, '123').error == ''

    def test_pattern_searches(self):
        """Test that patterns match anywhere in the value."""
        assert check({'regEx': '@'}, 'me@example.com').error == ''

    def test_compiled_pattern(self):
        """Test a precompiled pattern."""
        assert check({'regEx': re.compile(r'^a', re.I)}, 'Apple').error == ''

    def test_computed_pattern(self):
        """Test a computed pattern."""
        def pattern(identity, value, document, update_instruction):
            return '^' + identity

        assert check({'regEx': pattern}, 'bob-1', Context(identity='bob')).error == ''
        assert check({'regEx': pattern}, 'alice-1', Context(identity='bob')).error == PATTERN_MESSAGE

    def test_pattern_not_applied_to_numbers(self):
        """Test that patterns are ignored on numbers."""
        assert check({'type': 'number', 'regEx': '^x'}, 5).error == ''


class TestList:
    """Test list widget validation."""

    def test_list_strips_empty_entries(self):
        """Test that empty list entries are dropped."""
        result = check({'widget': 'list'}, ['a', '', 'b'])

        assert result.error == ''
        assert result.value == ['a', 'b']

    def test_list_validation_is_idempotent(self):
        """Test validating an already validated list."""
        first = check({'widget': 'list'}, ['a', '', 'b'])
        second = check({'widget': 'list'}, first.value)

        assert second.value == first.value == ['a', 'b']
        assert second.error == ''

    def test_list_item_count_bounds(self):
        """Test list item count bounds."""
        spec = {'widget': 'list', 'min': 2, 'max': 3}

        assert check(spec, ['a', '']).error == 'List must have at least 2 items'
        assert check(spec, ['a', 'b', 'c', 'd']).error == 'List has too many items (max 3)'
        assert check(spec, ['abcdef', 'b']).error == ''

    def test_list_entries_match_pattern(self):
        """Test patterns on list entries."""
        spec = {'widget': 'list', 'regEx': '^[a-z]+$'}

        assert check(spec, ['abc', 'def']).error == ''
        assert check(spec, ['abc', '123']).error == PATTERN_MESSAGE

    def test_list_entries_are_options(self):
        """Test options on list entries."""
        spec = {'widget': 'list', 'options': ['a', 'b']}

        assert check(spec, ['a', 'b']).error == ''
        assert check(spec, ['a', 'c']).error == OPTION_MESSAGE

    def test_number_list(self):
        """Test that number lists are checked per entry, not as one number."""
        spec = {'type': 'number', 'widget': 'list'}

        assert check(spec, [1, 2]).error == ''
        assert check(spec, [1, 2.5]).value == [1, 2.5]
        assert check(spec, [1, math.nan]).error == NUMBER_MESSAGE
        assert check(spec, [1, 'x']).error == NUMBER_MESSAGE

    def test_number_list_item_count_bounds(self):
        """Test that min and max count entries on number lists."""
        spec = {'type': 'number', 'widget': 'list', 'min': 2, 'max': 3}

        assert check(spec, [100, 200]).error == ''
        assert check(spec, [100]).error == 'List must have at least 2 items'
        assert check(spec, [1, 2, 3, 4]).error == 'List has too many items (max 3)'


class TestOptions:
    """Test option set validation."""

    OPTIONS = [{'value': 1, 'label': 'One'}, {'value': 2, 'label': 'Two'}]

    @pytest.mark.parametrize('value', [1, 2, 2.0])
    def test_valid_options(self, value):
        """Test values in the option set."""
        assert check({'type': 'number', 'options': self.OPTIONS}, value).error == ''

    def test_invalid_option(self):
        """Test a value outside the option set."""
        assert check({'type': 'number', 'options': self.OPTIONS}, 3).error == OPTION_MESSAGE

    def test_empty_option_set_rejects_everything(self):
        """Test that an empty option set rejects every value."""
        assert check({'options': []}, 'x').error == OPTION_MESSAGE

    def test_boolean_default_options(self):
        """Test the default boolean options."""
        assert check({'type': 'boolean'}, True).error == ''
        assert check({'type': 'boolean'}, False).error == ''


class TestCustomValidation:
    """Test custom validation functions."""

    def test_custom_result_returned(self):
        """Test that the custom result is returned."""
        def no_bob(field, value, document, update_instruction):
            return value, 'No Bobs' if value == 'Bob' else ''

        assert check({'customValidation': no_bob}, 'Bob').error == 'No Bobs'
        assert check({'customValidation': no_bob}, 'Al').error == ''

    def test_custom_can_transform_value(self):
        """Test that custom validation can change the value."""
        def upper(field, value, document, update_instruction):
            return value.upper(), ''

        result = check({'customValidation': upper}, 'abc')
        assert result.value == 'ABC'

    def test_custom_receives_document(self):
        """Test that custom validation receives the document."""
        seen = {}

        def record(field, value, document, update_instruction):
            seen['name'] = field.name
            seen['document'] = document
            return value, ''

        context = Context(document={'x': 1})
        check({'customValidation': record}, 'v', context, name='code')

        assert seen == {'name': 'code', 'document': {'x': 1}}

    def test_custom_not_called_after_failure(self):
        """Test that custom validation is skipped after a failure."""
        def never_called(field, value, document, update_instruction):
            raise AssertionError("should not be called")

        assert check({'min': 5, 'customValidation': never_called}, 'abc').error == 'Minimum length is 5'


class TestFindFields:
    """Test field discovery."""

    def test_document_mode_flattens_one_level(self):
        """Test finding nested fields in a document."""
        fields = build_descriptors({'name': {}, 'profile.bio': {}})

        found = find_fields(fields, {'name': 'Al', 'profile': {'bio': 'x'}}, None)

        assert found == {'name': 'Al', 'profile.bio': 'x'}

    def test_document_mode_keeps_lists(self):
        """Test that lists are not flattened."""
        fields = build_descriptors({'tags': {'widget': 'list'}})
        assert find_fields(fields, {'tags': ['a']}, None) == {'tags': ['a']}

    def test_update_mode_uses_set_clause(self):
        """Test finding fields in the $set clause."""
        fields = build_descriptors({'name': {}, 'age': {'type': 'number'}})

        found = find_fields(fields, {'name': 'ignored'}, {'$set': {'age': 3}})

        assert found == {'age': 3}

    def test_update_mode_without_set(self):
        """Test an update instruction without $set."""
        fields = build_descriptors({'name': {}})
        assert find_fields(fields, None, {}) == {}


class TestValidate:
    """Test whole-document validation."""

    def setup_method(self):
        self.fields = build_descriptors({
            'name': {'min': 2},
            'age': {'type': 'number', 'required': False},
            'profile.bio': {},
        })

    def test_valid_document(self):
        """Test validating a valid document."""
        result = validate(Context(), self.fields, {'name': 'Al', 'age': 30, 'profile': {'bio': 'x'}})

        assert result.is_valid
        assert result.found_fields == {'name': 'Al', 'age': 30, 'profile.bio': 'x'}

    def test_nested_field_found(self):
        """Test that nested fields are found in documents."""
        result = validate(Context(), self.fields, {'profile': {'bio': 'x'}})

        assert result.found_fields['profile.bio'] == 'x'
        assert 'profile.bio' not in result.errors

    def test_missing_required_field(self):
        """Test that a missing required field is reported."""
        result = validate(Context(), self.fields, {'name': 'Al'})

        assert result.errors == {'profile.bio': NOT_FOUND_MESSAGE}

    def test_missing_optional_field_not_an_error(self):
        """Test that a missing optional field is not reported."""
        result = validate(Context(), self.fields, {'name': 'Al', 'profile': {'bio': 'x'}})
        assert 'age' not in result.errors

    def test_field_errors_collected(self):
        """Test that errors are collected per field."""
        result = validate(Context(), self.fields, {'name': 'A', 'profile': {'bio': ''}})

        assert result.errors == {'name': 'Minimum length is 2', 'profile.bio': REQUIRED_MESSAGE}
        assert not result.is_valid

    def test_unknown_fields_ignored(self):
        """Test that unknown keys are ignored."""
        result = validate(Context(), self.fields, {'name': 'Al', 'profile': {'bio': 'x'}, 'extra': 1})

        assert result.is_valid
        assert result.found_fields['extra'] == 1

    def test_update_instruction_only_checks_set_fields(self):
        """Test validating only the fields an update sets."""
        result = validate(Context(), self.fields, update_instruction={'$set': {'age': 5}})

        assert result.errors == {'name': NOT_FOUND_MESSAGE, 'profile.bio': NOT_FOUND_MESSAGE}

    def test_required_hidden_field_exempt(self):
        """Test that required hidden fields are not reported missing."""
        def hidden_for_guests(identity, value, document, update_instruction):
            return identity == 'guest'

        fields = build_descriptors({'secret': {'hidden': hidden_for_guests}})

        assert validate(Context(identity='guest'), fields, {}).errors == {}
        assert validate(Context(identity='admin'), fields, {}).errors == {'secret': NOT_FOUND_MESSAGE}

    def test_context_carries_document(self):
        """Test that policies see the document being validated."""
        seen = []

        def required(identity, value, document, update_instruction):
            seen.append(document)
            return False

        fields = build_descriptors({'note': {'required': required}})
        document = {'note': 'x'}
        validate(Context(), fields, document)

        assert seen and all(item is document for item in seen)
