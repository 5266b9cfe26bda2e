"""Validation strategy for form fields on the client and the server.

A schema bundles rule expressions, custom messages and a hook that may
customize each validator before it runs (for example by setting its
language). Two schema variants exist:

- AlwaysActiveSchema: every field is validated as soon as it is checked.
- GatedSchema: a field's rules only apply once the field has been activated
  with ``activate_rule``, so a form can hold back errors until the user has
  interacted with a field. Whole-form checks still evaluate every field.

Client-side validation (``validate``) is synchronous and reports errors as data
through a callback. Server-side validation (``validate_server``) is a coroutine
that checks every rule and raises ValidationFailedError on failure.

Usage:
    >>> schema = create_inactive_schema({"email": "required|email"})
    >>> validate({"email": "nope"}, schema, {"key": "email"}, print)
    {'email': []}
    >>> activate_rule(schema, "email")
    >>> validate({"email": "nope"}, schema, {"key": "email"}, print)
    {'email': ['The email format is invalid.']}
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Optional, Union

from typing_extensions import TypeAlias

from formstrategy.errors import ValidationFailedError
from formstrategy.messages import Template
from formstrategy.types import ErrorMap, RuleSet, SchemaCallback, ValidationContext
from formstrategy.validation import RuleValidator

logger = logging.getLogger(__name__)

# The error raised by validate_server, under the name callers catch it by
Error = ValidationFailedError


@dataclass
class _BaseSchema:
    """Fields shared by both schema variants.

    Attributes:
        rules: Mapping of field name -> rule expression
        messages: Optional custom messages keyed ``"field.rule"`` or ``"rule"``
        callback: Optional hook called with each validator before it runs
        lang: Optional language code the validator is constructed with
    """
    rules: RuleSet
    messages: Optional[Mapping[str, Template]] = None
    callback: Optional[SchemaCallback] = None
    lang: Optional[str] = None


@dataclass
class AlwaysActiveSchema(_BaseSchema):
    """Schema whose rules are all active from the start."""

    def is_active(self, field_name: str) -> bool:
        return True


@dataclass
class GatedSchema(_BaseSchema):
    """Schema whose rules only apply to fields listed in ``active_rules``.

    Attributes:
        active_rules: Activated field names in activation order, each at most once
    """
    active_rules: List[str] = field(default_factory=list)

    def is_active(self, field_name: str) -> bool:
        return field_name in self.active_rules


Schema: TypeAlias = Union[AlwaysActiveSchema, GatedSchema]
ValidateCallback: TypeAlias = Callable[[ErrorMap], Any]


def create_schema(
    rules: RuleSet,
    messages: Optional[Mapping[str, Template]] = None,
    callback: Optional[SchemaCallback] = None,
    lang: Optional[str] = None,
) -> AlwaysActiveSchema:
    """Create a schema whose rules are always active.

    Examples:
        >>> schema = create_schema({"name": "required"})
        >>> hasattr(schema, "active_rules")
        False
    """
    logger.debug("Creating schema for fields: %s", ", ".join(rules))
    return AlwaysActiveSchema(rules=rules, messages=messages, callback=callback, lang=lang)


def create_inactive_schema(
    rules: RuleSet,
    messages: Optional[Mapping[str, Template]] = None,
    callback: Optional[SchemaCallback] = None,
    lang: Optional[str] = None,
) -> GatedSchema:
    """Create a schema with no active rules; activate fields with ``activate_rule``.

    Examples:
        >>> create_inactive_schema({"name": "required"}).active_rules
        []
    """
    logger.debug("Creating inactive schema for fields: %s", ", ".join(rules))
    return GatedSchema(rules=rules, messages=messages, callback=callback, lang=lang)


def activate_rule(schema: GatedSchema, field_name: str) -> None:
    """Mark ``field_name`` as active on a gated schema.

    Activation is idempotent: a field already active keeps its position.

    Raises:
        TypeError: If ``schema`` is not a GatedSchema
    """
    if not isinstance(schema, GatedSchema):
        raise TypeError(f"Cannot activate rules on {type(schema).__name__}; rules are always active")
    if field_name in schema.active_rules:
        return
    schema.active_rules.append(field_name)
    logger.debug("Activated rule for field '%s'", field_name)


def _make_validator(data: Optional[Mapping[str, Any]], schema: Schema, rules: RuleSet) -> RuleValidator:
    validator = RuleValidator(data, rules, schema.messages, lang=schema.lang)
    if schema.callback is not None:
        schema.callback(validator)
    return validator


def validate(
    data: Optional[Mapping[str, Any]],
    schema: Schema,
    context: Union[ValidationContext, Mapping[str, Any], None],
    callback: ValidateCallback,
) -> None:
    """Validate one field or the whole form and hand the errors to ``callback``.

    With ``context.key`` set, only that field is checked and the result always
    has exactly that key, mapped to an empty list when the field is clean or
    not yet active. Without a key every field is checked, whatever its
    activation state, and only failing fields appear in the result.

    Args:
        data: Field values
        schema: Schema created by ``create_schema`` or ``create_inactive_schema``
        context: ValidationContext or a dict with ``key`` (and optionally
            ``prevErrors``/``prev_errors``)
        callback: Called synchronously with the error mapping

    Raises:
        RuleNotFoundError: If a rule expression names an unknown rule
        UnknownLanguageError: If the validator's language has no messages
    """
    if not isinstance(context, ValidationContext):
        context = ValidationContext.from_dict(context)

    key = context.key
    if key is None:
        validator = _make_validator(data, schema, schema.rules)
        validator.passes()
        result = validator.errors.all()
    else:
        active = key in schema.rules and schema.is_active(key)
        rules = {key: schema.rules[key]} if active else {}
        validator = _make_validator(data, schema, rules)
        validator.passes()
        result = {key: validator.errors.get(key)}

    logger.debug("Client validation (key=%s): %d field(s) with errors", key, sum(1 for m in result.values() if m))
    callback(result)


async def validate_server(data: Optional[Mapping[str, Any]], schema: Schema) -> None:
    """Validate every field, ignoring activation state.

    Raises:
        ValidationFailedError: If any field fails; ``errors`` holds only the
            failing fields
        RuleNotFoundError: If a rule expression names an unknown rule
        UnknownLanguageError: If the validator's language has no messages
    """
    validator = _make_validator(data, schema, schema.rules)
    if validator.fails():
        errors = validator.errors.all()
        logger.debug("Server validation failed for: %s", ", ".join(errors))
        raise ValidationFailedError(errors)
    logger.debug("Server validation passed")


__all__ = [
    "Error",
    "AlwaysActiveSchema",
    "GatedSchema",
    "Schema",
    "create_schema",
    "create_inactive_schema",
    "activate_rule",
    "validate",
    "validate_server",
]
