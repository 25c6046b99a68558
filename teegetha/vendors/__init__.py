"""
Vendor adapters. Each module owns request shaping and error translation
for one external service.
"""

from .gemini import GeminiVisionClient, StubVisionClient
from .payments import SimulatedCardProcessor, StripeGateway
from .printify import OfflineFulfillment, PrintifyClient
from .replicate import ReplicateBackgroundRemover

__all__ = [
    'GeminiVisionClient', 'StubVisionClient',
    'SimulatedCardProcessor', 'StripeGateway',
    'OfflineFulfillment', 'PrintifyClient',
    'ReplicateBackgroundRemover',
]
