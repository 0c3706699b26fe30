"""
Context-option resolution for form fields.

Field policies (required, hidden, options, default, regEx, regExMessage) are
either literal values or functions of the current edit context. Everything
that reads a policy goes through resolve() so validation and rendering never
need to know which kind they hold.
"""

import logging
from typing import Any, Callable, List, NamedTuple, Optional

logger = logging.getLogger(__name__)


class Context(NamedTuple):
    """Ephemeral per-call context handed to computed policies."""
    identity: Any = None
    value: Any = None
    document: Optional[dict] = None
    update_instruction: Optional[dict] = None

    def with_value(self, value: Any) -> 'Context':
        return self._replace(value=value)


class Computed:
    """
    A policy computed from the edit context.

    The wrapped function is called as
    ``fn(identity, value, document, update_instruction)``.
    """

    __slots__ = ('fn',)

    def __init__(self, fn: Callable[..., Any]):
        if isinstance(fn, Computed):
            fn = fn.fn
        if not callable(fn):
            raise TypeError(f"Computed policy must be callable, got {type(fn).__name__}")
        self.fn = fn

    def __call__(self, context: Context) -> Any:
        return self.fn(context.identity, context.value, context.document, context.update_instruction)

    def __repr__(self) -> str:
        name = getattr(self.fn, '__name__', repr(self.fn))
        return f"Computed({name})"


class FieldOption(NamedTuple):
    value: Any
    label: Any


def as_policy(option: Any) -> Any:
    """Wrap bare callables in Computed; literals pass through."""
    if option is None or isinstance(option, Computed):
        return option
    if callable(option):
        return Computed(option)
    return option


def resolve(context: Context, option: Any) -> Any:
    """
    Resolve a policy against the context.

    Args:
        context: Current edit context
        option: Literal value, Computed policy or bare callable

    Returns:
        The computed result for Computed/callable policies, otherwise the
        literal unchanged
    """
    if isinstance(option, Computed):
        return option(context)
    if callable(option):
        return Computed(option)(context)
    return option


def resolve_options(context: Context, descriptor: Any, value: Any) -> Optional[List[FieldOption]]:
    """
    Resolve a field's option set into ``FieldOption`` pairs.

    ``None`` means "no constraint" and is returned unchanged. An empty list
    stays an empty choice set, which no value satisfies.

    Args:
        context: Current edit context
        descriptor: Field descriptor whose options are resolved
        value: Value the options are resolved for

    Returns:
        List of FieldOption, or None when the field has no options
    """
    options = resolve(context.with_value(value), descriptor.options)
    if options is None:
        return None

    resolved = []
    for option in options:
        if isinstance(option, FieldOption):
            resolved.append(option)
        elif isinstance(option, dict):
            option_value = option.get('value')
            resolved.append(FieldOption(option_value, option.get('label', option_value)))
        else:
            resolved.append(FieldOption(option, option))

    logger.debug(f"Resolved {len(resolved)} options for {descriptor.name}")
    return resolved
