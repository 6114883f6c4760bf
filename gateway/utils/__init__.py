"""Gateway utilities package for shared functionality
"""

from .error_handling import handle_errors, log_and_wrap_error
from .security import mask_sensitive_keys, sanitize_for_logging

__all__ = [
    "handle_errors",
    "log_and_wrap_error",
    "mask_sensitive_keys",
    "sanitize_for_logging",
]
