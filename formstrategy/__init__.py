"""formstrategy: client and server validation strategy for form fields.

formstrategy wraps a rule-expression validator to provide:
- Schemas that are either always active or gated per field, so errors only
  appear for fields the user has touched
- Synchronous client-side validation of one field or the whole form
- Asynchronous server-side validation that raises with per-field errors
- Localized default messages (en, ru, de, es, fr, it) and custom messages

Basic usage:
    >>> from formstrategy import create_schema, validate
    >>> schema = create_schema({"email": "required|email"})
    >>> validate({"email": "nope"}, schema, {"key": None}, print)
    {'email': ['The email format is invalid.']}
"""

__version__ = "0.1.0"
__author__ = "formstrategy contributors"

# Version info
VERSION = (0, 1, 0)

# Core exports
from formstrategy.errors import ValidationFailedError
from formstrategy.strategy import (
    AlwaysActiveSchema,
    GatedSchema,
    activate_rule,
    create_inactive_schema,
    create_schema,
    validate,
    validate_server,
)
from formstrategy.types import ValidationContext
from formstrategy.validation import RuleValidator

# Package metadata
__all__ = [
    "__version__",
    "VERSION",
    "AlwaysActiveSchema",
    "GatedSchema",
    "ValidationContext",
    "ValidationFailedError",
    "RuleValidator",
    "activate_rule",
    "create_inactive_schema",
    "create_schema",
    "validate",
    "validate_server",
]
