"""
Unit tests for the error hierarchy.

Tests custom exception classes, error context, suggestions,
and authorization-failure detection.
"""

import pytest
from teegetha.errors import (
    TeeGethaError, ValidationError, VendorAuthorizationError, VendorTransientError,
    BackgroundRemovalError, PrintifyOrderError, PaymentDeclinedError,
    NoValidLineItemsError, InvalidTransitionError, MemberBusyError,
    WebhookSignatureError, is_authorization_failure, create_error_recovery_suggestions
)


class TestTeeGethaError:
    """Test the base TeeGethaError class."""

    def test_basic_error_creation(self):
        error = TeeGethaError("Test error message")

        assert str(error) == "Test error message"
        assert error.message == "Test error message"
        assert error.details == {}
        assert error.suggestions == []
        assert error.status_code == 500

    def test_error_to_dict(self):
        error = TeeGethaError("Test", details={'key': 'value'}, suggestions=['suggestion'])

        result = error.to_dict()

        assert result['error_type'] == 'TeeGethaError'
        assert result['message'] == 'Test'
        assert result['details'] == {'key': 'value'}
        assert result['suggestions'] == ['suggestion']


class TestSpecificErrorTypes:
    """Test specific error type implementations."""

    def test_vendor_errors_carry_vendor_name(self):
        error = VendorTransientError('printify', "timed out")

        assert error.vendor == 'printify'
        assert error.details['vendor'] == 'printify'
        assert error.status_code == 502

    def test_authorization_error_default_message(self):
        error = VendorAuthorizationError('gemini')

        assert "gemini" in error.message
        assert error.status_code == 401
        assert len(error.suggestions) > 0

    def test_background_removal_error_is_transient(self):
        error = BackgroundRemovalError("Replicate prediction timeout", status='processing')

        assert isinstance(error, VendorTransientError)
        assert error.details['status'] == 'processing'
        assert error.status_code == 500

    def test_printify_order_error_keeps_vendor_status(self):
        error = PrintifyOrderError(422, {'errors': {'reason': 'bad variant'}})

        assert error.status_code == 422
        assert error.body == {'errors': {'reason': 'bad variant'}}
        assert error.message == 'Printify order failed'

    def test_payment_declined(self):
        error = PaymentDeclinedError()

        assert error.message == "Invalid card number"
        assert error.status_code == 402

    def test_no_valid_line_items(self):
        error = NoValidLineItemsError(requested=3, dropped=['a', 'b', 'c'])

        assert "No valid line items" in str(error)
        assert error.details['requested_items'] == 3
        assert error.details['dropped_members'] == ['a', 'b', 'c']
        assert error.status_code == 400

    def test_invalid_transition(self):
        error = InvalidTransitionError('ROSTER', 'SHOP', 'steps must be completed in order')

        assert error.details == {'current': 'ROSTER', 'target': 'SHOP',
                                 'reason': 'steps must be completed in order'}
        assert error.status_code == 409

    def test_member_busy(self):
        assert MemberBusyError('mem-1').details['member_id'] == 'mem-1'

    def test_webhook_signature_error_is_validation_error(self):
        error = WebhookSignatureError("No signatures found")

        assert isinstance(error, ValidationError)
        assert error.message == "Webhook Error: No signatures found"
        assert error.status_code == 400


class TestAuthorizationDetection:

    @pytest.mark.parametrize('message', [
        "403 PERMISSION_DENIED. The caller does not have permission",
        "404 Requested entity was not found.",
    ])
    def test_vendor_messages(self, message):
        assert is_authorization_failure(Exception(message))

    def test_status_attribute(self):
        error = Exception("forbidden")
        error.code = 403
        assert is_authorization_failure(error)

    def test_generic_failure_is_not_authorization(self):
        assert not is_authorization_failure(Exception("500 INTERNAL"))
        assert not is_authorization_failure(VendorTransientError('gemini', "boom"))

    def test_authorization_error_instance(self):
        assert is_authorization_failure(VendorAuthorizationError('stripe'))


class TestRecoverySuggestions:

    def test_uses_error_suggestions(self):
        error = ValidationError("bad", suggestions=["Fix the thing"])
        assert create_error_recovery_suggestions(error) == ["Fix the thing"]

    def test_authorization_prompt(self):
        suggestions = create_error_recovery_suggestions(Exception("PERMISSION_DENIED"))
        assert any("API key" in s for s in suggestions)

    def test_generic_retry(self):
        suggestions = create_error_recovery_suggestions(RuntimeError("oops"))
        assert "Please try again" in suggestions
