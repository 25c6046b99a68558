"""
Printify adapter: artwork uploads and order submission.

``PrintifyClient`` talks to the real API; ``OfflineFulfillment`` stands in
when no API token is configured and fabricates ``POD-<n>`` order ids.
"""

import random
from typing import Any, Dict, Optional

import httpx
from loguru import logger

from teegetha.errors import ConfigurationError, PrintifyOrderError, VendorAuthorizationError, VendorTransientError
from teegetha.geometry import is_data_url, is_http_url


class PrintifyClient:
    """Minimal client for the Printify v1 REST API"""

    BASE_URL = "https://api.printify.com/v1"
    is_live = True

    def __init__(self, api_token: str, shop_id: Optional[str],
                 transport: Optional[httpx.BaseTransport] = None, timeout: float = 60.0):
        if not api_token:
            raise ConfigurationError("PRINTIFY_API_TOKEN is not set")
        self.shop_id = shop_id
        self._session = httpx.Client(
            base_url=self.BASE_URL,
            headers={
                "Authorization": f"Bearer {api_token}",
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    def close(self) -> None:
        self._session.close()

    def upload_image(self, image: str, file_name: str = "kinconnect-image.png") -> str:
        """
        Upload artwork and return the URL Printify will print from.

        Data URLs are sent as base64 ``contents``; anything else is passed
        through as ``url`` for Printify to fetch.
        """
        payload: Dict[str, Any] = {"file_name": file_name}
        if is_data_url(image):
            payload["contents"] = image.split(',', 1)[1] if ',' in image else ''
        else:
            if not is_http_url(image):
                logger.debug(f"Treating image reference for {file_name} as a URL")
            payload["url"] = image

        try:
            response = self._session.post("/uploads/images.json", json=payload)
        except httpx.HTTPError as e:
            raise VendorTransientError('printify', f"Printify upload failed: {e}")

        if response.status_code in (401, 403):
            raise VendorAuthorizationError('printify', f"Printify upload rejected: {response.status_code}")
        if response.is_error:
            raise VendorTransientError('printify', f"Printify upload failed: {response.status_code} {response.text}")

        try:
            body = response.json()
        except ValueError:
            raise VendorTransientError('printify', f"Printify upload returned non-JSON body: {response.text[:200]}")
        if not isinstance(body, dict):
            raise VendorTransientError('printify', f"Unexpected Printify upload response: {body!r}")

        return body.get("preview_url") or body.get("src") or image

    def submit_order(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Create an order in the configured shop; returns the vendor's JSON body."""
        if not self.shop_id:
            raise ConfigurationError("PRINTIFY_SHOP_ID is not set")

        try:
            response = self._session.post(f"/shops/{self.shop_id}/orders.json", json=payload)
        except httpx.HTTPError as e:
            raise VendorTransientError('printify', f"Printify order request failed: {e}")

        try:
            body = response.json()
        except ValueError:
            body = {"raw": response.text}

        if response.is_error:
            logger.error(f"Printify order error: {body}")
            raise PrintifyOrderError(response.status_code, body)

        logger.info(f"Printify order created: {body.get('id') or payload.get('external_id')}")
        return body


class OfflineFulfillment:
    """Fulfillment backend used when Printify is not configured; makes no network calls."""

    is_live = False

    def upload_image(self, image: str, file_name: str = "kinconnect-image.png") -> str:
        return image

    def submit_order(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        order_id = f"POD-{random.randint(0, 999_999)}"
        logger.info(f"Offline fulfillment accepted order {order_id} "
                    f"with {len(payload.get('line_items', []))} line items")
        return {"id": order_id, "external_id": payload.get("external_id")}
