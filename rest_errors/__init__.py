"""Public API for REST error formatting."""

from rest_errors.core.codes import ErrorCodeRegistry
from rest_errors.core.codes import list_error_codes
from rest_errors.core.codes import register_error_code
from rest_errors.core.codes import register_error_codes
from rest_errors.core.config import ErrorSettings
from rest_errors.core.config import get_error_settings
from rest_errors.core.errors import register_error_handlers
from rest_errors.core.exceptions import RestError
from rest_errors.core.formatters import FormatterChain
from rest_errors.core.formatters import format_error
from rest_errors.core.formatters import register_formatter
from rest_errors.schemas.error import ErrorEnvelope

__all__ = [
    "ErrorCodeRegistry",
    "ErrorEnvelope",
    "ErrorSettings",
    "FormatterChain",
    "RestError",
    "format_error",
    "get_error_settings",
    "list_error_codes",
    "register_error_code",
    "register_error_codes",
    "register_error_handlers",
    "register_formatter",
]
