"""Error types for formstrategy.

Invalid input is only an exception on the server path: ``validate_server``
raises ValidationFailedError carrying the per-field error mapping. The client
path reports invalid input as data and never raises for it.

RuleNotFoundError and UnknownLanguageError signal a misconfigured schema and
propagate unchanged through both validation paths.
"""

from typing import Any, Dict, List, Optional


class FormStrategyError(Exception):
    """Base class for all formstrategy errors."""


class ValidationFailedError(FormStrategyError):
    """Raised by server-side validation when at least one field fails.

    Attributes:
        errors: Mapping of failing field name -> ordered list of messages.
            Fields without errors are omitted.

    Examples:
        >>> err = ValidationFailedError({"email": ["The email format is invalid."]})
        >>> err.errors["email"]
        ['The email format is invalid.']
        >>> err.fields
        ['email']
    """

    def __init__(self, errors: Dict[str, List[str]], message: Optional[str] = None) -> None:
        self.errors = {name: list(msgs) for name, msgs in errors.items()}
        if message is None:
            message = f"Validation failed for {len(self.errors)} field(s): {', '.join(self.errors)}"
        super().__init__(message)

    @property
    def fields(self) -> List[str]:
        """Names of the fields that failed, in the order they were reported."""
        return list(self.errors)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "message": str(self),
            "errors": {name: list(msgs) for name, msgs in self.errors.items()},
        }


class RuleNotFoundError(FormStrategyError, ValueError):
    """Raised when a rule expression names a rule that does not exist."""

    def __init__(self, rule: str, attribute: Optional[str] = None) -> None:
        self.rule = rule
        self.attribute = attribute
        where = f" (field '{attribute}')" if attribute else ""
        super().__init__(f"Validator rule '{rule}' is not defined{where}")


class UnknownLanguageError(FormStrategyError, LookupError):
    """Raised when a validator is asked to use a language with no message pack."""

    def __init__(self, lang: str) -> None:
        self.lang = lang
        super().__init__(f"No messages registered for language '{lang}'")


__all__ = [
    "FormStrategyError",
    "ValidationFailedError",
    "RuleNotFoundError",
    "UnknownLanguageError",
]
