"""Rule-expression validator backed by JSON Schema.

This module provides RuleValidator, the validator the strategy layer drives.
Fields are described with compact rule expressions such as
``"required|email"`` or ``"numeric|between:1,10"``. Each rule is compiled to a
small JSON Schema fragment and evaluated with an extended Draft 7 validator,
so rule semantics come from jsonschema keywords (``minLength``, ``pattern``,
``enum``, ``format``...) plus one custom keyword, ``filled``, for "required".

Failures are rendered as human-readable messages in the validator's current
language (see formstrategy.messages). Like the JavaScript validatorjs API it
mirrors, the language is a plain mutable attribute that may be changed between
construction and ``passes()``.
"""

import logging
import re
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from jsonschema import Draft7Validator, FormatChecker, ValidationError
from jsonschema.validators import extend

from formstrategy.errors import RuleNotFoundError
from formstrategy.messages import Template, get_default_lang, get_messages, render
from formstrategy.types import ErrorMap, RuleExpression, RuleSet, RuleSpec

logger = logging.getLogger(__name__)

# "$" also matches before a trailing newline, so patterns end in \Z (or use fullmatch)
EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
URL_PATTERN = re.compile(r"https?://[^\s/$.?#][^\s]*", re.IGNORECASE)
NUMERIC_PATTERN = r"^[-+]?(\d+(\.\d*)?|\.\d+)([eE][-+]?\d+)?\Z"
INTEGER_PATTERN = r"^[-+]?\d+\Z"

# Rules evaluated even when the value is missing or empty
IMPLICIT_RULES = frozenset({"required", "accepted"})
# Rules whose presence makes size rules compare numeric strings as numbers
NUMERIC_RULES = frozenset({"numeric", "integer"})
SIZE_RULES = frozenset({"min", "max", "between", "size"})

FORMAT_CHECKER = FormatChecker(formats=())


@FORMAT_CHECKER.checks("email")
def _is_email(instance: Any) -> bool:
    if not isinstance(instance, str):
        return True
    return EMAIL_PATTERN.fullmatch(instance) is not None


@FORMAT_CHECKER.checks("url")
def _is_url(instance: Any) -> bool:
    if not isinstance(instance, str):
        return True
    return URL_PATTERN.fullmatch(instance) is not None


def _filled(validator: Any, filled: bool, instance: Any, schema: Dict[str, Any]) -> Iterator[ValidationError]:
    """``filled`` keyword: reject None, blank strings and empty lists."""
    if not filled:
        return
    if instance is None:
        yield ValidationError("value is missing")
    elif isinstance(instance, str) and not instance.strip():
        yield ValidationError("value is blank")
    elif isinstance(instance, (list, tuple)) and not instance:
        yield ValidationError("value is an empty list")


RuleSchemaValidator = extend(Draft7Validator, {"filled": _filled})


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_text(value: Any) -> Any:
    """Numbers are checked as their string form by the text-pattern rules."""
    return str(value) if _is_number(value) else value


def _parse_number(raw: str) -> float:
    number = float(raw)
    return int(number) if number.is_integer() else number


def _parse_regex(raw: str) -> str:
    """Turn ``/pattern/flags`` into a Python pattern; bare patterns pass through."""
    match = re.match(r"^/(.*)/([a-z]*)$", raw, re.DOTALL)
    if not match:
        return raw
    pattern, flags = match.groups()
    inline = "".join(f for f in flags if f in "imsx")
    return f"(?{inline}){pattern}" if inline else pattern


def _size_bounds(minimum: Optional[float], maximum: Optional[float], numeric: bool) -> Dict[str, Any]:
    schema: Dict[str, Any] = {}
    if numeric:
        if minimum is not None:
            schema["minimum"] = minimum
        if maximum is not None:
            schema["maximum"] = maximum
        return schema
    if minimum is not None:
        schema["minLength"] = schema["minItems"] = int(minimum)
    if maximum is not None:
        schema["maxLength"] = schema["maxItems"] = int(maximum)
    return schema


def _options(rule: RuleSpec) -> List[str]:
    return list(rule.args)


# Builders take the parsed rule and whether size comparisons are numeric, and
# return the JSON Schema fragment for that rule.
_BUILDERS: Dict[str, Callable[[RuleSpec, bool], Dict[str, Any]]] = {
    "required": lambda rule, numeric: {"filled": True},
    "accepted": lambda rule, numeric: {"enum": ["on", "yes", 1, "1", True, "true"]},
    "email": lambda rule, numeric: {"type": "string", "format": "email"},
    "url": lambda rule, numeric: {"type": "string", "format": "url"},
    "string": lambda rule, numeric: {"type": "string"},
    "numeric": lambda rule, numeric: {
        "anyOf": [{"type": "number"}, {"type": "string", "pattern": NUMERIC_PATTERN}]
    },
    "integer": lambda rule, numeric: {
        "anyOf": [{"type": "integer"}, {"type": "string", "pattern": INTEGER_PATTERN}]
    },
    "boolean": lambda rule, numeric: {"enum": [True, False, 0, 1, "0", "1", "true", "false"]},
    "array": lambda rule, numeric: {"type": "array"},
    "alpha": lambda rule, numeric: {"type": "string", "pattern": "^[a-zA-Z]+\\Z"},
    "alpha_num": lambda rule, numeric: {"type": "string", "pattern": "^[a-zA-Z0-9]+\\Z"},
    "alpha_dash": lambda rule, numeric: {"type": "string", "pattern": "^[a-zA-Z0-9_\\-]+\\Z"},
    "min": lambda rule, numeric: _size_bounds(_parse_number(rule.args[0]), None, numeric),
    "max": lambda rule, numeric: _size_bounds(None, _parse_number(rule.args[0]), numeric),
    "between": lambda rule, numeric: _size_bounds(
        _parse_number(rule.args[0]), _parse_number(rule.args[1]), numeric
    ),
    "size": lambda rule, numeric: _size_bounds(
        _parse_number(rule.args[0]), _parse_number(rule.args[0]), numeric
    ),
    "digits": lambda rule, numeric: {"type": "string", "pattern": f"^\\d{{{int(rule.args[0])}}}\\Z"},
    "in": lambda rule, numeric: {"enum": _options(rule)},
    "not_in": lambda rule, numeric: {"not": {"enum": _options(rule)}},
    "regex": lambda rule, numeric: {"type": "string", "pattern": _parse_regex(rule.args[0])},
}

# Rules compared against another field's value; compiled per run
CROSS_FIELD_RULES = frozenset({"same", "different", "confirmed"})
# Rules that check the string form of numeric values
TEXT_RULES = frozenset({"alpha_num", "alpha_dash", "digits", "in", "not_in", "regex"})

KNOWN_RULES = frozenset(_BUILDERS) | CROSS_FIELD_RULES


def parse_rules(expression: RuleExpression, attribute: Optional[str] = None) -> List[RuleSpec]:
    """Parse a rule expression into RuleSpecs.

    Args:
        expression: ``"required|email"`` or a list such as ``["required", "regex:/a|b/"]``.
            Use the list form when a regex contains a pipe.
        attribute: Field name, used in error messages only

    Raises:
        RuleNotFoundError: If a rule name is not known

    Examples:
        >>> [r.name for r in parse_rules("required|min:3")]
        ['required', 'min']
    """
    parts: Sequence[str] = expression.split("|") if isinstance(expression, str) else expression
    specs = [RuleSpec.parse(part) for part in parts if part.strip()]
    for spec in specs:
        if spec.name not in KNOWN_RULES:
            raise RuleNotFoundError(spec.name, attribute)
    return specs


def default_attribute_formatter(attribute: str) -> str:
    """Render a field name for messages: ``confirm_email`` -> ``confirm email``."""
    return re.sub(r"[_\[]", " ", attribute).replace("]", "")


class ErrorBag:
    """Ordered per-field error messages collected by a validation run.

    Examples:
        >>> bag = ErrorBag()
        >>> bag.add("email", "The email format is invalid.")
        >>> bag.get("email")
        ['The email format is invalid.']
        >>> bag.get("name")
        []
    """

    def __init__(self) -> None:
        self._errors: ErrorMap = {}

    def add(self, attribute: str, message: str) -> None:
        self._errors.setdefault(attribute, []).append(message)

    def get(self, attribute: str) -> List[str]:
        """Messages for ``attribute``, empty if it has none."""
        return list(self._errors.get(attribute, []))

    def first(self, attribute: str) -> Optional[str]:
        messages = self._errors.get(attribute)
        return messages[0] if messages else None

    def has(self, attribute: str) -> bool:
        return bool(self._errors.get(attribute))

    def all(self) -> ErrorMap:
        """Every field with at least one message."""
        return {name: list(msgs) for name, msgs in self._errors.items() if msgs}

    def count(self) -> int:
        return sum(len(msgs) for msgs in self._errors.values())

    def __bool__(self) -> bool:
        return self.count() > 0

    def __repr__(self) -> str:
        return f"ErrorBag({self._errors!r})"


class RuleValidator:
    """Validates a data mapping against per-field rule expressions.

    Attributes:
        input: The data being validated
        rules: Parsed rules per field
        messages: Custom messages keyed ``"field.rule"`` or ``"rule"``
        lang: Language code used to render default messages
        errors: ErrorBag filled by the last ``passes()``/``fails()`` call

    Examples:
        >>> v = RuleValidator({"email": "nope"}, {"email": "required|email"})
        >>> v.fails()
        True
        >>> v.errors.get("email")
        ['The email format is invalid.']
        >>> v.lang = "de"
        >>> v.fails() and v.errors.first("email")
        'Das email Format ist ungültig.'
    """

    def __init__(
        self,
        data: Optional[Mapping[str, Any]],
        rules: RuleSet,
        messages: Optional[Mapping[str, Template]] = None,
        lang: Optional[str] = None,
    ) -> None:
        """Initialize the validator.

        Args:
            data: Mapping of field values; dotted field names reach nested mappings
            rules: Mapping of field name -> rule expression
            messages: Optional custom messages; None uses the language defaults
            lang: Optional language code; defaults to the process default language

        Raises:
            RuleNotFoundError: If any rule expression names an unknown rule
        """
        self.input: Mapping[str, Any] = data if data is not None else {}
        self.rules: Dict[str, List[RuleSpec]] = {
            attribute: parse_rules(expression, attribute) for attribute, expression in rules.items()
        }
        self.messages: Dict[str, Template] = dict(messages or {})
        self.lang = lang or get_default_lang()
        self.errors = ErrorBag()
        self._attribute_names: Dict[str, str] = {}
        self._attribute_formatter: Callable[[str], str] = default_attribute_formatter
        self._checkers: Dict[Tuple[RuleSpec, bool], Any] = {}

    def set_attribute_names(self, names: Mapping[str, str]) -> None:
        """Use custom display names for ``:attribute`` in messages."""
        self._attribute_names = dict(names)

    def set_attribute_formatter(self, formatter: Callable[[str], str]) -> None:
        self._attribute_formatter = formatter

    def passes(self) -> bool:
        """Run every rule against the input. Returns True when nothing failed.

        Raises:
            UnknownLanguageError: If ``lang`` has no registered message pack
            jsonschema.SchemaError: If a rule compiles to an invalid schema
                (e.g. a malformed ``regex`` pattern)
        """
        templates = get_messages(self.lang)
        self.errors = ErrorBag()

        for attribute, specs in self.rules.items():
            value = self._lookup(attribute)
            numeric_rules = any(spec.name in NUMERIC_RULES for spec in specs)
            for spec in specs:
                if spec.name not in IMPLICIT_RULES and _is_empty(value):
                    continue
                subject, numeric = self._subject(spec, value, numeric_rules)
                checker = self._checker(attribute, spec, numeric)
                if not checker.is_valid(subject):
                    self.errors.add(attribute, self._message(templates, attribute, spec, numeric))

        logger.debug(
            "Validated %d field(s) in '%s': %d failing",
            len(self.rules),
            self.lang,
            len(self.errors.all()),
        )
        return not self.errors

    def fails(self) -> bool:
        return not self.passes()

    def _lookup(self, attribute: str) -> Any:
        if attribute in self.input:
            return self.input[attribute]
        value: Any = self.input
        for part in attribute.split("."):
            if not isinstance(value, Mapping) or part not in value:
                return None
            value = value[part]
        return value

    def _subject(self, spec: RuleSpec, value: Any, numeric_rules: bool) -> Tuple[Any, bool]:
        """Return the instance to check and whether size rules compare numerically."""
        if spec.name in TEXT_RULES:
            return _as_text(value), False
        if spec.name in SIZE_RULES:
            if _is_number(value):
                return value, True
            if numeric_rules and isinstance(value, str) and re.match(NUMERIC_PATTERN, value):
                return _parse_number(value), True
        return value, False

    def _checker(self, attribute: str, spec: RuleSpec, numeric: bool) -> Any:
        """Return a schema validator for one rule.

        Cross-field rules embed another field's current value and are rebuilt
        on every run; all other rules are compiled once per validator.
        """
        cache_key = (spec, numeric)
        if spec.name not in CROSS_FIELD_RULES and cache_key in self._checkers:
            return self._checkers[cache_key]
        schema = self._compile(attribute, spec, numeric)
        RuleSchemaValidator.check_schema(schema)
        checker = RuleSchemaValidator(schema, format_checker=FORMAT_CHECKER)
        if spec.name not in CROSS_FIELD_RULES:
            self._checkers[cache_key] = checker
        return checker

    def _compile(self, attribute: str, spec: RuleSpec, numeric: bool) -> Dict[str, Any]:
        if spec.name in CROSS_FIELD_RULES:
            other = f"{attribute}_confirmation" if spec.name == "confirmed" else spec.args[0]
            expected = {"const": self._lookup(other)}
            return {"not": expected} if spec.name == "different" else expected
        return _BUILDERS[spec.name](spec, numeric)

    def _attribute_name(self, attribute: str) -> str:
        if attribute in self._attribute_names:
            return self._attribute_names[attribute]
        return self._attribute_formatter(attribute)

    def _message(self, templates: Mapping[str, Template], attribute: str, spec: RuleSpec, numeric: bool) -> str:
        template = self.messages.get(f"{attribute}.{spec.name}")
        if template is None:
            template = self.messages.get(spec.name, templates[spec.name])
        if isinstance(template, Mapping):
            template = template["numeric" if numeric else "string"]

        replacements: Dict[str, Any] = {"attribute": self._attribute_name(attribute)}
        if spec.name in ("min", "between"):
            replacements["min"] = spec.args[0]
        if spec.name == "max":
            replacements["max"] = spec.args[0]
        if spec.name == "between":
            replacements["max"] = spec.args[1]
        if spec.name in ("size", "digits"):
            replacements[spec.name] = spec.args[0]
        if spec.name in ("same", "different"):
            replacements[spec.name] = self._attribute_name(spec.args[0])
        return render(template, replacements)


__all__ = [
    "RuleValidator",
    "ErrorBag",
    "parse_rules",
    "default_attribute_formatter",
    "FORMAT_CHECKER",
]
