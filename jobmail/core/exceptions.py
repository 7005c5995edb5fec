"""
Domain errors raised by the service layer.

Routes translate these into HTTPException responses via to_http_exception().
"""
from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class JobMailError(Exception):
    """Base class for expected, user-facing failures."""
    error_code = "jobmail_error"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Request could not be processed"
    retryable = False

    def __init__(self, message: Optional[str] = None, **context: Any):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.context = context

    def to_detail(self) -> Dict[str, Any]:
        detail = {"error": self.error_code, "message": self.message}
        detail.update(self.context)
        return detail


class InsufficientCreditsError(JobMailError):
    error_code = "insufficient_credits"
    status_code = status.HTTP_403_FORBIDDEN
    message = "Insufficient credits. Please purchase more credits to continue."


class ApplicationNotFoundError(JobMailError):
    error_code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    message = "Job application not found"


class ApplicationStateError(JobMailError):
    error_code = "invalid_transition"
    status_code = status.HTTP_409_CONFLICT
    message = "Job application cannot change to the requested state"


class InvalidPlanError(JobMailError):
    error_code = "invalid_plan"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid plan selected"


class InvalidSignatureError(JobMailError):
    error_code = "invalid_signature"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid payment signature"


class PaymentAlreadyProcessedError(JobMailError):
    """Not a failure: the payment was credited by an earlier call."""
    error_code = "already_processed"
    status_code = status.HTTP_200_OK
    message = "Payment has already been processed"


class SubscriptionStateError(JobMailError):
    error_code = "no_active_subscription"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "No active subscription to cancel"


class ExternalServiceError(JobMailError):
    error_code = "external_service_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    message = "External service unavailable"
    retryable = True


class PaymentGatewayError(ExternalServiceError):
    """Retryable by default; rejected requests and bad order data are not."""
    error_code = "payment_gateway_error"
    message = "Payment gateway unavailable. Please retry."


class PaymentConflictError(JobMailError):
    """The payment transaction lost a write race and was rolled back."""
    error_code = "payment_conflict"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    message = "Payment could not be recorded. Please retry."
    retryable = True


class MirrorError(ExternalServiceError):
    message = "Record mirror unavailable"


def to_http_exception(error: JobMailError) -> HTTPException:
    """
    Convert a domain error into the structured HTTPException the API returns.

    Retryable errors carry Retry-After. An external service that answered
    but refused the request is a 502, not a 503.
    """
    headers = None
    status_code = error.status_code
    if error.retryable:
        headers = {"Retry-After": "5"}
    elif isinstance(error, ExternalServiceError):
        status_code = status.HTTP_502_BAD_GATEWAY
    return HTTPException(
        status_code=status_code,
        detail=error.to_detail(),
        headers=headers,
    )
