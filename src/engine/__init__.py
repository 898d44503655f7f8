"""Pure computation layer.

Side-effect-free building blocks shared by the business layer:

- keys: prefixed opaque identifier generation and validation
- rate_limit: fixed-window rate limiting
- codes: numeric result codes and their HTTP mapping
"""

from src.engine.codes import ResultCode, error_response, http_status, success_response
from src.engine.keys import KeyPrefix, is_valid, is_valid_push_key, new_id, new_push_key
from src.engine.rate_limit import RateDecision, RateLimiter, RateWindow

__all__ = [
    "ResultCode",
    "error_response",
    "http_status",
    "success_response",
    "KeyPrefix",
    "is_valid",
    "is_valid_push_key",
    "new_id",
    "new_push_key",
    "RateDecision",
    "RateLimiter",
    "RateWindow",
]
