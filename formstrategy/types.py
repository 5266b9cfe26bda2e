"""Core type definitions for formstrategy.

This module defines the small set of types shared by the strategy core and the
rule validator:
- ErrorMap: field name -> ordered list of messages
- RuleSpec: a single parsed rule, e.g. ``min:3`` -> RuleSpec("min", ("3",))
- ValidationContext: per-call context for client-side validation
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from typing_extensions import TypeAlias

ErrorMap: TypeAlias = Dict[str, List[str]]
RuleExpression: TypeAlias = Union[str, Sequence[str]]
RuleSet: TypeAlias = Mapping[str, RuleExpression]
SchemaCallback: TypeAlias = Callable[[Any], None]


@dataclass(frozen=True)
class RuleSpec:
    """A single parsed validation rule.

    Attributes:
        name: Rule name (e.g. "required", "min", "regex")
        args: Positional arguments given after the colon

    Examples:
        >>> RuleSpec.parse("between:1,10")
        RuleSpec(name='between', args=('1', '10'))
        >>> RuleSpec.parse("regex:/^a,b$/").args
        ('/^a,b$/',)
    """
    name: str
    args: Tuple[str, ...] = ()

    @classmethod
    def parse(cls, text: str) -> "RuleSpec":
        """Parse ``name`` or ``name:arg1,arg2`` into a RuleSpec."""
        name, sep, raw_args = text.strip().partition(":")
        if not sep:
            return cls(name=name)
        # regex patterns may legitimately contain commas
        if name == "regex":
            return cls(name=name, args=(raw_args,))
        return cls(name=name, args=tuple(a.strip() for a in raw_args.split(",")))


@dataclass
class ValidationContext:
    """Context for a single client-side validation call.

    Attributes:
        key: The field that just changed, or None to validate every field
        prev_errors: Error mapping from the previous validation pass
    """
    key: Optional[str] = None
    prev_errors: ErrorMap = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "ValidationContext":
        """Create a ValidationContext from a dict.

        Accepts both ``prevErrors`` and ``prev_errors`` spellings; a missing or
        empty dict means "validate all fields".
        """
        if not data:
            return cls()
        prev_errors = data.get("prev_errors", data.get("prevErrors")) or {}
        return cls(key=data.get("key"), prev_errors=dict(prev_errors))


__all__ = [
    "ErrorMap",
    "RuleExpression",
    "RuleSet",
    "SchemaCallback",
    "RuleSpec",
    "ValidationContext",
]
