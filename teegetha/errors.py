"""
Error hierarchy for the TeeGetha order wizard.

Provides specific exception types for the different failure modes
(vendor authorization, vendor transient, validation, resolution) and
the context needed to turn them into user feedback.
"""

from typing import Dict, List, Optional, Any


class TeeGethaError(Exception):
    """Base exception for all TeeGetha errors."""

    status_code = 500

    def __init__(self, message: str, details: Dict[str, Any] = None, suggestions: List[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.suggestions = suggestions or []

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'details': self.details,
            'suggestions': self.suggestions
        }


class ValidationError(TeeGethaError):
    """Raised when user input validation fails."""
    status_code = 400


class ConfigurationError(TeeGethaError):
    """Raised when configuration is invalid or missing."""
    status_code = 500


class ImageProcessingError(TeeGethaError):
    """Raised when an image reference cannot be decoded or rendered."""
    status_code = 400


class VendorError(TeeGethaError):
    """Raised when an external vendor call fails."""

    def __init__(self, vendor: str, message: str, details: Dict[str, Any] = None,
                 suggestions: List[str] = None):
        super().__init__(message, details={'vendor': vendor, **(details or {})},
                         suggestions=suggestions)
        self.vendor = vendor


class VendorAuthorizationError(VendorError):
    """Raised when vendor credentials are missing, invalid or lack permission."""

    status_code = 401

    def __init__(self, vendor: str, message: str = None, details: Dict[str, Any] = None):
        super().__init__(
            vendor,
            message or f"Authorization failed for {vendor}",
            details=details,
            suggestions=[
                "Select your API key or project again",
                "Check that the key has billing and the required permissions enabled"
            ]
        )


class VendorTransientError(VendorError):
    """Raised on timeouts, non-2xx responses or malformed vendor payloads."""

    status_code = 502

    def __init__(self, vendor: str, message: str, details: Dict[str, Any] = None):
        super().__init__(vendor, message, details=details,
                         suggestions=["Please try again in a moment"])


class BackgroundRemovalError(VendorTransientError):
    """Raised when the background removal prediction fails or times out."""

    status_code = 500

    def __init__(self, message: str, status: Optional[str] = None):
        super().__init__('replicate', message, details={'status': status})


class PrintifyOrderError(VendorError):
    """Raised when Printify rejects an order submission."""

    def __init__(self, status_code: int, body: Any):
        super().__init__(
            'printify',
            'Printify order failed',
            details={'status_code': status_code, 'body': body}
        )
        self.status_code = status_code
        self.body = body


class PaymentDeclinedError(TeeGethaError):
    """Raised when the card processor rejects the charge."""
    status_code = 402

    def __init__(self, message: str = "Invalid card number", details: Dict[str, Any] = None):
        super().__init__(
            message,
            details=details,
            suggestions=["Payment failed or invalid details. Please check your card info."]
        )


class OrderError(TeeGethaError):
    """Raised when an order cannot be built or submitted."""
    status_code = 400


class NoValidLineItemsError(OrderError):
    """Raised when no member resolves to an orderable line item."""

    def __init__(self, requested: int = 0, dropped: List[str] = None):
        super().__init__(
            "No valid line items could be created from input",
            details={
                'requested_items': requested,
                'dropped_members': dropped or []
            },
            suggestions=[
                "Check that every member has a quantity above zero",
                "Choose a size and color available for the selected shirt type"
            ]
        )


class InvalidTransitionError(TeeGethaError):
    """Raised when a wizard step transition is not allowed."""
    status_code = 409

    def __init__(self, current: str, target: str, reason: str):
        super().__init__(
            f"Cannot move from {current} to {target}: {reason}",
            details={'current': current, 'target': target, 'reason': reason}
        )


class MemberBusyError(TeeGethaError):
    """Raised when a generation is already in flight for a member."""
    status_code = 409

    def __init__(self, member_id: str):
        super().__init__(
            f"A design is already being generated for member {member_id}",
            details={'member_id': member_id}
        )


class WebhookSignatureError(ValidationError):
    """Raised when a payment webhook fails signature verification."""

    def __init__(self, reason: str):
        super().__init__(f"Webhook Error: {reason}")


class MemberNotFoundError(ValidationError):
    """Raised when a roster operation names an unknown member."""

    def __init__(self, member_id: str):
        super().__init__(f"Unknown member: {member_id}", details={'member_id': member_id})


def is_authorization_failure(error: Exception) -> bool:
    """Return True if a raw vendor error message signals a permission problem."""
    if isinstance(error, VendorAuthorizationError):
        return True
    if getattr(error, 'code', None) in (401, 403) or getattr(error, 'status', None) in (401, 403):
        return True
    text = str(error)
    return 'PERMISSION_DENIED' in text or 'Requested entity was not found' in text


def create_error_recovery_suggestions(error: Exception) -> List[str]:
    """Generate recovery suggestions for any error surfaced to the user."""
    if isinstance(error, TeeGethaError) and error.suggestions:
        return list(error.suggestions)
    if is_authorization_failure(error):
        return ["Authorization failed or API key invalid. Please select your Google Cloud Project again."]
    return ["Please try again", "Contact support if the problem persists"]
