"""
Pytest configuration and fixtures for TeeGetha tests.

Provides sample images, a small garment catalog, in-memory stand-ins for
every vendor boundary, and a Flask app wired to them.
"""

import hashlib
import hmac
import io
import time
from datetime import date
from typing import Any, Dict, List, Optional

import pytest
from PIL import Image

from teegetha import create_app
from teegetha.config import AppConfig, GarmentCatalog
from teegetha.errors import VendorTransientError
from teegetha.geometry import encode_data_url
from teegetha.models import DetectedPerson
from teegetha.orchestrator import OrderOrchestrator
from teegetha.services import Services
from teegetha.stylize import StylizationPipeline
from teegetha.vendors import SimulatedCardProcessor, StripeGateway


WEBHOOK_SECRET = 'whsec_test_secret'


def make_image(size=(200, 100), color=(200, 30, 30), mode='RGB') -> Image.Image:
    return Image.new(mode, size, color)


def image_data_url(size=(200, 100), color=(200, 30, 30), fmt='PNG') -> str:
    buffer = io.BytesIO()
    make_image(size, color).save(buffer, format=fmt)
    mime = 'image/png' if fmt == 'PNG' else 'image/jpeg'
    return encode_data_url(buffer.getvalue(), mime)


class FakeVision:
    """Records calls; returns canned detections and artwork."""

    def __init__(self, people: Optional[List[DetectedPerson]] = None, artwork: Optional[str] = None,
                 error: Optional[Exception] = None):
        self.people = people if people is not None else []
        self.artwork = artwork or image_data_url((64, 64), (255, 255, 255))
        self.error = error
        self.analyze_calls: List[str] = []
        self.stylize_calls: List[Dict[str, Any]] = []
        self.preview_calls: List[Dict[str, Any]] = []

    def analyze_group_photo(self, image):
        self.analyze_calls.append(image)
        if self.error:
            raise self.error
        return list(self.people)

    def generate_stylized(self, reference_image, description, style_prompt):
        self.stylize_calls.append({'reference': reference_image, 'description': description,
                                   'style': style_prompt})
        if self.error:
            raise self.error
        return self.artwork

    def generate_family_preview(self, group_photo, front_design, label):
        self.preview_calls.append({'photo': group_photo, 'front': front_design, 'label': label})
        return 'data:image/png;base64,cHJldmlldw=='


class FakeRemover:
    """Background remover that echoes its input, or fails on demand."""

    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls: List[str] = []

    def remove_background(self, image):
        self.calls.append(image)
        if self.error:
            raise self.error
        return image


class RecordingFulfillment:
    """Live-looking fulfillment backend that keeps every upload and order."""

    is_live = True

    def __init__(self, failing_uploads=(), response: Optional[Dict[str, Any]] = None):
        self.failing_uploads = set(failing_uploads)
        self.response = response or {'id': 'printify-123'}
        self.uploads: List[Dict[str, str]] = []
        self.orders: List[Dict[str, Any]] = []

    def upload_image(self, image, file_name='kinconnect-image.png'):
        self.uploads.append({'image': image, 'file_name': file_name})
        if image in self.failing_uploads or file_name in self.failing_uploads:
            raise VendorTransientError('printify', f"upload failed for {file_name}")
        return f"https://cdn.printify.test/{file_name}"

    def submit_order(self, payload):
        self.orders.append(payload)
        return dict(self.response)


class RecordingPayments(SimulatedCardProcessor):
    def __init__(self):
        self.captures: List[float] = []

    def capture(self, amount, payment):
        transaction_id = super().capture(amount, payment)
        self.captures.append(amount)
        return transaction_id


@pytest.fixture
def catalog():
    return GarmentCatalog(
        print_provider_id=29,
        shipping_method=1,
        blueprint_men=12,
        blueprint_women=9,
        blueprint_kids=81,
        variants_men={
            'Black': {'S': 101, 'M': 102, 'L': 103},
            'Solid Athletic Grey': {'M': 202},
        },
        variants_women={
            'Black': {'M': 302},
            'White': {'M': 402, 'L': 403},
        },
        variants_kids={'S': 501, 'M': 502},
    )


@pytest.fixture
def group_photo():
    return image_data_url((400, 300), (90, 140, 200), fmt='JPEG')


@pytest.fixture
def vision():
    return FakeVision()


@pytest.fixture
def remover():
    return FakeRemover()


@pytest.fixture
def fulfillment():
    return RecordingFulfillment()


@pytest.fixture
def payments():
    return RecordingPayments()


@pytest.fixture
def app_config(tmp_path):
    return AppConfig(
        SECRET_KEY='test-key',
        TESTING=True,
        LOG_FILE=str(tmp_path / 'logs' / 'test.log'),
        PRINTIFY_API_TOKEN='printify-token',
        PRINTIFY_SHOP_ID='shop-1',
        PRINTIFY_TEST_IMAGE_URL='https://example.test/placeholder.png',
        STRIPE_SECRET_KEY='sk_test_123',
        STRIPE_WEBHOOK_SECRET=WEBHOOK_SECRET,
    )


@pytest.fixture
def orchestrator(catalog, fulfillment, payments, app_config):
    return OrderOrchestrator(
        catalog,
        fulfillment,
        payments=payments,
        shop_id=app_config.PRINTIFY_SHOP_ID,
        placeholder_image=app_config.PRINTIFY_TEST_IMAGE_URL,
        today=lambda: date(2025, 3, 1),
    )


@pytest.fixture
def services(app_config, catalog, vision, remover, orchestrator):
    return Services(
        config=app_config,
        catalog=catalog,
        vision=vision,
        remover=remover,
        orchestrator=orchestrator,
        pipeline=StylizationPipeline(vision, remover),
        stripe=StripeGateway(app_config.STRIPE_SECRET_KEY, app_config.STRIPE_WEBHOOK_SECRET),
    )


@pytest.fixture
def app(app_config, services):
    """Create and configure a test Flask application."""
    app = create_app('testing', config_overrides=app_config.model_dump(), services=services)
    yield app


@pytest.fixture
def client(app):
    """Create a test client for the Flask application."""
    return app.test_client()


@pytest.fixture
def shipping_payload():
    return {
        'fullName': 'Jane Q Miller',
        'addressLine1': '1 Main St',
        'city': 'Springfield',
        'state': 'IL',
        'zip': '62701',
        'email': 'jane@example.com',
    }


def stripe_signature(payload: str, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """Build a Stripe-Signature header the way Stripe signs webhook deliveries."""
    timestamp = timestamp or int(time.time())
    digest = hmac.new(secret.encode('utf-8'), f"{timestamp}.{payload}".encode('utf-8'), hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"
