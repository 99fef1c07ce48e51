"""
Failures raised by the access engine.

Policy denials are not exceptions; they travel as ``Deny`` values with a
reason code. Only malformed input and infrastructure failures are raised.
"""
from typing import Optional


class AccessControlError(Exception):
    code = "ACCESS_CONTROL_ERROR"

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class InvalidCredential(AccessControlError):
    """The scanned payload is malformed or incomplete."""

    code = "INVALID_CREDENTIAL"


class StoreUnavailable(AccessControlError):
    """The store could not be read or written; admission fails closed."""

    code = "STORE_UNAVAILABLE"


class PartialCommitFailure(AccessControlError):
    """A multi-write commit may have been partially applied."""

    code = "PARTIAL_COMMIT_FAILURE"
