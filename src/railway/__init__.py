"""
Railway-Oriented Programming (ROP) primitives.

Explicit, composable error handling — adapters return Result, never raise.

    from railway import Result, ErrorCode

    def require_token(token: str | None) -> Result[str]:
        if not token:
            return Result.failure(ErrorCode.AUTHORIZATION_ERROR, "Authorize first")
        return Result.success(token)
"""

from railway.assertions import ResultAssertions
from railway.failure import ErrorCode, FailureDescription
from railway.result import Failure, Result, Success

__all__ = [
    "Result",
    "Success",
    "Failure",
    "ErrorCode",
    "FailureDescription",
    "ResultAssertions",
]

__version__ = "1.1.0"
