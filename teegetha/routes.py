"""
Flask routes for the TeeGetha backend proxy
Background removal, Printify order planning/submission and Stripe payments
"""

import json
from typing import Any, Dict, List, Tuple

from flask import Blueprint, current_app, jsonify, request
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from .errors import (
    PrintifyOrderError, TeeGethaError, ValidationError, create_error_recovery_suggestions
)
from .models import Member, ShippingDetails


bp = Blueprint('main', __name__)


def get_services():
    return current_app.extensions['teegetha']


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _parse_order_request(body: Dict[str, Any]) -> Tuple[List[Member], ShippingDetails]:
    """Validate the items/shipping pair shared by the Printify endpoints"""
    items = body.get('items')
    shipping = body.get('shipping')
    if not isinstance(items, list) or not shipping:
        raise ValidationError("Missing items or shipping")

    try:
        members = [Member.model_validate(raw) for raw in items]
        shipping_details = ShippingDetails.model_validate(shipping)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid order request",
            details={'errors': [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]}
        )
    return members, shipping_details


@bp.errorhandler(PrintifyOrderError)
def handle_printify_error(error):
    return jsonify({'error': error.message, 'details': error.body}), error.status_code


@bp.errorhandler(TeeGethaError)
def handle_app_error(error):
    if error.status_code >= 500:
        logger.error(f"{error.__class__.__name__}: {error.message}")
    else:
        logger.warning(f"{error.__class__.__name__}: {error.message}")

    payload = error.to_dict()
    payload['error'] = error.message
    payload['suggestions'] = create_error_recovery_suggestions(error)
    return jsonify(payload), error.status_code


@bp.route('/health', methods=['GET'])
def health():
    return jsonify({'ok': True})


@bp.route('/api/remove-background', methods=['POST'])
def remove_background():
    """Proxy a background removal request to Replicate"""
    image = _json_body().get('image')
    if not image:
        return jsonify({'error': 'Missing image in body'}), 400

    remover = get_services().remover
    if remover is None:
        return jsonify({'error': 'BACKGROUND_REMOVAL_API_KEY is not set'}), 500

    try:
        url = remover.remove_background(image)
    except TeeGethaError as e:
        logger.error(f"Background removal error: {e}")
        return jsonify({'error': e.message or 'Background removal failed'}), 500

    return jsonify({'url': url})


@bp.route('/api/printify/order-plan', methods=['POST'])
def order_plan():
    """Resolve blueprint/variant ids per line item without submitting anything"""
    body = _json_body()
    members, shipping = _parse_order_request(body)

    plan = get_services().orchestrator.plan_order(members, shipping, body.get('shirtColorName'))
    return jsonify(plan.to_dict())


@bp.route('/api/printify/order-test', methods=['POST'])
def order_test():
    """
    Create a real Printify order with send_to_production=false so it shows
    in the dashboard but is never printed or charged.
    """
    body = _json_body()
    members, shipping = _parse_order_request(body)

    orchestrator = get_services().orchestrator
    orchestrator.ensure_live()

    confirmation = orchestrator.submit_order(
        members,
        shipping,
        color=body.get('shirtColorName'),
        family_image=body.get('familyImage'),
        send_to_production=False,
    )
    return jsonify({
        'orderId': confirmation.order_id,
        'printifyResponse': confirmation.vendor_response,
    })


@bp.route('/api/stripe/create-payment-intent', methods=['POST'])
def create_payment_intent():
    body = _json_body()
    amount = body.get('amount')
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        return jsonify({'error': 'Invalid amount'}), 400

    currency = body.get('currency') or current_app.config.get('CURRENCY', 'usd')
    metadata = body.get('metadata') or {}
    if not isinstance(metadata, dict):
        raise ValidationError("metadata must be an object")

    result = get_services().stripe.create_payment_intent(amount, currency, metadata)
    return jsonify(result)


def _fulfill_paid_intent(intent: Dict[str, Any]) -> None:
    """Submit the Printify order carried in a succeeded PaymentIntent's metadata"""
    metadata = intent.get('metadata') or {}
    if not (metadata.get('items') and metadata.get('shipping')):
        logger.info(f"PaymentIntent {intent.get('id')} carries no order metadata")
        return

    services = get_services()
    try:
        members, shipping = _parse_order_request({
            'items': json.loads(metadata['items']),
            'shipping': json.loads(metadata['shipping']),
        })
        services.orchestrator.ensure_live()
        confirmation = services.orchestrator.submit_order(
            members,
            shipping,
            color=metadata.get('shirtColorName') or 'Black',
            family_image=metadata.get('familyImage') or None,
            send_to_production=not current_app.config.get('TEST_MODE', False),
            paid=True,
        )
        logger.info(f"Order {confirmation.order_id} sent for payment {intent.get('id')}")
    except (TeeGethaError, ValueError) as e:
        logger.error(f"Failed to create order after successful payment {intent.get('id')}: {e}")


@bp.route('/webhooks/stripe', methods=['POST'])
def stripe_webhook():
    event = get_services().stripe.construct_event(
        request.get_data(),
        request.headers.get('Stripe-Signature'),
    )

    event_type = event.get('type')
    data_object = (event.get('data') or {}).get('object') or {}

    if event_type == 'payment_intent.succeeded':
        logger.info(f"PaymentIntent was successful: {data_object.get('id')}")
        _fulfill_paid_intent(data_object)
    elif event_type == 'payment_intent.payment_failed':
        logger.warning(f"PaymentIntent failed: {data_object.get('id')}")
    elif event_type == 'checkout.session.completed':
        logger.info(f"Checkout session completed: {data_object.get('id')}")
    else:
        logger.info(f"Unhandled event type {event_type}")

    return jsonify({'received': True})
