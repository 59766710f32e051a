"""Error taxonomy shared by the workflow core, the repository and the outer surfaces.

Every error carries an HTTP-ish ``status_code`` and a stable ``error_code`` so the
API layer can render it without knowing the concrete class.
"""

from __future__ import annotations

from typing import Any


class SignoffError(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(SignoffError):
    """Missing field, out-of-range score or missing signature. Raised before any store call."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, status_code=422, error_code="VALIDATION_FAILED", details=details)


class AuthorizationError(SignoffError):
    def __init__(self, message: str = "Insufficient permissions", details: dict[str, Any] | None = None):
        super().__init__(message, status_code=403, error_code="PERMISSION_DENIED", details=details)


class NotFoundError(SignoffError):
    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, status_code=404, error_code="NOT_FOUND", details=details)


class ConstraintError(SignoffError):
    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, status_code=400, error_code="CONSTRAINT_VIOLATION", details=details)


class TransientError(SignoffError):
    def __init__(self, message: str = "Storage temporarily unavailable", details: dict[str, Any] | None = None):
        super().__init__(message, status_code=503, error_code="STORE_UNAVAILABLE", details=details)


class PartialApprovalError(SignoffError):
    """A signature was recorded but the status advance failed.

    The appraisal is left in its prior status; an operator has to reconcile it.
    """

    def __init__(self, appraisal_id: str, signature_id: str, cause: Exception):
        super().__init__(
            f"Signature {signature_id} was recorded for appraisal {appraisal_id} but the status "
            f"update failed ({cause}). The appraisal is unchanged and needs operator reconciliation.",
            status_code=409,
            error_code="PARTIAL_APPROVAL",
            details={"appraisal_id": appraisal_id, "signature_id": signature_id},
        )
        self.appraisal_id = appraisal_id
        self.signature_id = signature_id
        self.cause = cause
