"""
Order orchestration: payment capture, artwork uploads, line items and
submission to the fulfillment backend.

Upload failures degrade to placeholder artwork; members that do not
resolve to a catalog variant are dropped with a warning. Only an order
with no line items at all is rejected.
"""

import random
import time
from datetime import date, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from loguru import logger

from teegetha.config import GarmentCatalog
from teegetha.errors import ConfigurationError, NoValidLineItemsError, OrderError, ValidationError, VendorError
from teegetha.garments import DEFAULT_COLOR, resolve_line
from teegetha.models import LineItem, Member, OrderConfirmation, OrderDraft, OrderPlan, ShippingDetails


class OrderOrchestrator:
    """Turns a roster into a fulfillment order."""

    def __init__(self, catalog: GarmentCatalog, fulfillment, payments=None,
                 shop_id: Optional[str] = None, placeholder_image: str = "",
                 unit_price: float = 25.0, delivery_days: int = 14,
                 today: Callable[[], date] = date.today):
        self.catalog = catalog
        self.fulfillment = fulfillment
        self.payments = payments
        self.shop_id = shop_id
        self.placeholder_image = placeholder_image
        self.unit_price = unit_price
        self.delivery_days = delivery_days
        self._today = today

    def estimated_delivery(self) -> str:
        return (self._today() + timedelta(days=self.delivery_days)).isoformat()

    def ensure_live(self) -> None:
        """Raise unless a real fulfillment vendor is fully configured."""
        if not getattr(self.fulfillment, 'is_live', False) or not self.shop_id or not self.catalog.print_provider_id:
            raise ConfigurationError("Printify auth/env not fully configured")

    def build_line_items(self, members: Iterable[Member],
                         color: Optional[str] = None) -> Tuple[List[Tuple[Member, LineItem]], List[str]]:
        """
        Resolve each billable member to a line item without artwork.

        Returns the (member, item) pairs plus a warning for every member that
        was dropped because no catalog variant matched.
        """
        resolved = []
        warnings = []
        for member in members:
            if member.quantity <= 0:
                continue

            line = resolve_line(self.catalog, member, color)
            if line is None:
                warnings.append(f"No matching product for {member.name} "
                                f"(size {member.size.value}); item skipped")
                continue

            blueprint_id, variant_id = line
            resolved.append((member, LineItem(
                name=member.name or 'Member',
                size=member.size.value,
                color=member.shirt_color_name or color or DEFAULT_COLOR,
                quantity=member.quantity,
                blueprint_id=blueprint_id,
                variant_id=variant_id,
                print_provider_id=self.catalog.print_provider_id,
            )))
        return resolved, warnings

    def plan_order(self, members: List[Member], shipping: ShippingDetails,
                   color: Optional[str] = None) -> OrderPlan:
        """Dry run: resolve line items without uploading or charging anything."""
        if not self.shop_id or not self.catalog.print_provider_id:
            raise ConfigurationError("Printify env not fully configured")

        resolved, warnings = self.build_line_items(members, color)
        if not resolved:
            raise NoValidLineItemsError(requested=len(members), dropped=warnings)

        plan = OrderPlan(
            order_id=f"KC-PLAN-{random.randint(0, 999_999)}",
            estimated_delivery=self.estimated_delivery(),
            shop_id=self.shop_id,
            provider_id=self.catalog.print_provider_id,
            line_items=[item for _, item in resolved],
            shipping_summary=shipping.summary(),
        )
        logger.info(f"Built order plan {plan.order_id} with {len(plan.line_items)} line items")
        return plan

    def _upload(self, image: str, file_name: str, fallback: str) -> str:
        try:
            return self.fulfillment.upload_image(image, file_name)
        except VendorError as e:
            logger.error(f"Failed to upload {file_name}, using fallback artwork: {e}")
            return fallback

    def _upload_front(self, family_image: Optional[str]) -> str:
        source = family_image or self.placeholder_image
        if not source:
            return self.placeholder_image
        return self._upload(source, 'family-front.png', self.placeholder_image)

    def _shipping_address(self, shipping: ShippingDetails) -> Dict[str, Any]:
        first_name, last_name = shipping.split_name()
        return {
            'first_name': first_name,
            'last_name': last_name,
            'email': shipping.email,
            'phone': shipping.phone or '',
            'country': shipping.country or 'US',
            'region': shipping.state,
            'address1': shipping.address_line1,
            'city': shipping.city,
            'zip': shipping.zip,
        }

    def submit_order(self, members: List[Member], shipping: ShippingDetails,
                     color: Optional[str] = None, family_image: Optional[str] = None,
                     send_to_production: bool = False, paid: bool = False) -> OrderConfirmation:
        """
        Upload artwork and submit one multi-line-item order.

        The shared front is uploaded once; each member's back is uploaded
        separately and falls back to the front when its upload fails.
        """
        if getattr(self.fulfillment, 'is_live', False):
            self.ensure_live()

        resolved, warnings = self.build_line_items(members, color)
        if not resolved:
            raise NoValidLineItemsError(requested=len(members), dropped=warnings)

        front_src = self._upload_front(family_image)

        items = []
        for member, item in resolved:
            item.front_src = front_src
            candidate = member.generated_image or member.original_image or self.placeholder_image
            if candidate:
                item.back_src = self._upload(candidate, f"{member.name or 'member'}-back.png", front_src)
            else:
                item.back_src = front_src
            items.append(item)

        prefix = 'kinconnect-paid' if paid else 'kinconnect-test'
        payload = {
            'external_id': f"{prefix}-{int(time.time() * 1000)}",
            'label': 'KinConnect Order' if send_to_production else 'KinConnect Test Order',
            'line_items': [item.to_printify() for item in items],
            'shipping_method': self.catalog.shipping_method or 1,
            'send_shipping_notification': send_to_production,
            'send_to_production': send_to_production,
            'address_to': self._shipping_address(shipping),
        }

        body = self.fulfillment.submit_order(payload)
        for warning in warnings:
            logger.warning(warning)

        return OrderConfirmation(
            order_id=str(body.get('id') or body.get('external_id') or payload['external_id']),
            estimated_delivery=body.get('estimated_delivery') or self.estimated_delivery(),
            line_items=items,
            warnings=warnings,
            vendor_response=body,
        )

    def place_order(self, draft: OrderDraft, send_to_production: bool = False) -> OrderConfirmation:
        """Capture payment for the draft, then fulfill it."""
        if draft.shipping is None:
            raise ValidationError("Shipping details are required")
        if self.payments is None:
            raise ConfigurationError("No payment processor configured")

        total = draft.total_cost(self.unit_price)
        if total <= 0:
            raise OrderError("Order total must be greater than zero")

        # Never charge for a draft that cannot produce a single line item
        resolved, warnings = self.build_line_items(draft.members, draft.shirt_color_name)
        if not resolved:
            raise NoValidLineItemsError(requested=len(draft.members), dropped=warnings)

        transaction_id = self.payments.capture(total, draft.payment)

        confirmation = self.submit_order(
            draft.members,
            draft.shipping,
            color=draft.shirt_color_name,
            family_image=draft.front_artwork,
            send_to_production=send_to_production,
            paid=True,
        )
        confirmation.transaction_id = transaction_id
        logger.info(f"Order {confirmation.order_id} placed for ${total:.2f} "
                    f"({len(confirmation.line_items)} line items)")
        return confirmation
