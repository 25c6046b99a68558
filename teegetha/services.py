"""
Wires vendor adapters, the orchestrator and the stylization pipeline
from configuration.
"""

from dataclasses import dataclass
from typing import Any, Optional

from loguru import logger

from teegetha.config import AppConfig, GarmentCatalog
from teegetha.errors import ConfigurationError
from teegetha.orchestrator import OrderOrchestrator
from teegetha.stylize import StylizationPipeline
from teegetha.vendors import (
    GeminiVisionClient, OfflineFulfillment, PrintifyClient, ReplicateBackgroundRemover,
    SimulatedCardProcessor, StripeGateway, StubVisionClient
)


@dataclass
class Services:
    """Process-wide collaborators shared by every request and session"""
    config: AppConfig
    catalog: GarmentCatalog
    vision: Any
    remover: Optional[ReplicateBackgroundRemover]
    orchestrator: OrderOrchestrator
    pipeline: StylizationPipeline
    stripe: StripeGateway

    @property
    def fulfillment(self):
        return self.orchestrator.fulfillment


def build_vision_client(config: AppConfig):
    if config.TEST_MODE:
        logger.info("TEST_MODE enabled: using stub vision client")
        return StubVisionClient()
    try:
        return GeminiVisionClient(
            config.GEMINI_API_KEY,
            analysis_model=config.GEMINI_ANALYSIS_MODEL,
            image_model=config.GEMINI_IMAGE_MODEL,
        )
    except ConfigurationError as e:
        logger.warning(f"Vision client unavailable: {e}")
        return None


def build_services(config: AppConfig, catalog: GarmentCatalog) -> Services:
    vision = build_vision_client(config)

    remover = None
    if config.BACKGROUND_REMOVAL_API_KEY and config.BACKGROUND_REMOVAL_MODEL_VERSION:
        remover = ReplicateBackgroundRemover(
            config.BACKGROUND_REMOVAL_API_KEY,
            config.BACKGROUND_REMOVAL_MODEL_VERSION,
            poll_interval=config.BACKGROUND_REMOVAL_POLL_INTERVAL,
            timeout=config.BACKGROUND_REMOVAL_TIMEOUT,
        )
    else:
        logger.warning("Background removal not configured; local heuristic will be used")

    if config.PRINTIFY_API_TOKEN:
        fulfillment = PrintifyClient(config.PRINTIFY_API_TOKEN, config.PRINTIFY_SHOP_ID)
    else:
        logger.warning("PRINTIFY_API_TOKEN not set; orders use offline fulfillment")
        fulfillment = OfflineFulfillment()

    orchestrator = OrderOrchestrator(
        catalog,
        fulfillment,
        payments=SimulatedCardProcessor(),
        shop_id=config.PRINTIFY_SHOP_ID,
        placeholder_image=config.PRINTIFY_TEST_IMAGE_URL,
        unit_price=config.UNIT_PRICE,
        delivery_days=config.DELIVERY_ESTIMATE_DAYS,
    )

    return Services(
        config=config,
        catalog=catalog,
        vision=vision,
        remover=remover,
        orchestrator=orchestrator,
        pipeline=StylizationPipeline(vision, remover),
        stripe=StripeGateway(config.STRIPE_SECRET_KEY, config.STRIPE_WEBHOOK_SECRET),
    )
