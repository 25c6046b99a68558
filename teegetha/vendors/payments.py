"""
Payment adapters.

``SimulatedCardProcessor`` captures in-wizard checkouts without a real
charge; ``StripeGateway`` creates PaymentIntents and verifies webhooks.
Card data is never logged.
"""

import time
from typing import Any, Dict, Optional

import stripe
from loguru import logger

from teegetha.errors import (
    ConfigurationError, PaymentDeclinedError, VendorAuthorizationError,
    VendorTransientError, WebhookSignatureError
)
from teegetha.models import PaymentDetails


MIN_CARD_NUMBER_LENGTH = 13


def _base36(value: int) -> str:
    digits = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    out = ""
    while value:
        value, rem = divmod(value, 36)
        out = digits[rem] + out
    return out or "0"


class SimulatedCardProcessor:
    """Accepts any card number of plausible length"""

    def capture(self, amount: float, payment: Optional[PaymentDetails]) -> str:
        """Charge ``amount``; returns a ``TX-...`` transaction id."""
        if payment is None:
            raise PaymentDeclinedError("Missing payment details")

        card_number = payment.card_number.get_secret_value().strip()
        if len(card_number) < MIN_CARD_NUMBER_LENGTH:
            raise PaymentDeclinedError("Invalid card number")

        transaction_id = f"TX-{_base36(int(time.time() * 1000))}"
        logger.info(f"Captured payment of ${amount:.2f} as {transaction_id}")
        return transaction_id


class StripeGateway:
    """PaymentIntent creation and webhook verification through the stripe SDK"""

    WEBHOOK_TOLERANCE = 300

    def __init__(self, secret_key: Optional[str], webhook_secret: Optional[str] = None):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret

    def create_payment_intent(self, amount: int, currency: str = "usd",
                              metadata: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """Create a PaymentIntent for ``amount`` minor units."""
        if not self.secret_key:
            raise ConfigurationError("STRIPE_SECRET_KEY is not set")

        try:
            intent = stripe.PaymentIntent.create(
                amount=amount,
                currency=currency,
                metadata=metadata or {},
                automatic_payment_methods={"enabled": True},
                api_key=self.secret_key,
            )
        except (stripe.AuthenticationError, stripe.PermissionError) as e:
            raise VendorAuthorizationError('stripe', f"Stripe rejected credentials: {e.user_message or e}")
        except stripe.CardError as e:
            raise PaymentDeclinedError(e.user_message or str(e))
        except stripe.StripeError as e:
            logger.error(f"PaymentIntent creation error: {e}")
            raise VendorTransientError('stripe', e.user_message or str(e) or "Failed to create PaymentIntent")

        logger.info(f"Created PaymentIntent {intent.id} for {amount} {currency}")
        return {"clientSecret": intent.client_secret, "paymentIntentId": intent.id}

    def construct_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """Verify a webhook delivery and return the event as plain JSON data."""
        if not self.webhook_secret:
            raise ConfigurationError("Webhook secret not configured")

        body = payload.decode('utf-8') if isinstance(payload, bytes) else payload
        try:
            event = stripe.Webhook.construct_event(
                body, signature or "", self.webhook_secret, self.WEBHOOK_TOLERANCE,
                api_key=self.secret_key,
            )
        except stripe.SignatureVerificationError as e:
            logger.warning(f"Webhook signature verification failed: {e}")
            raise WebhookSignatureError(str(e))
        except ValueError as e:
            logger.warning(f"Webhook payload could not be parsed: {e}")
            raise WebhookSignatureError(str(e))

        return event.to_dict()
