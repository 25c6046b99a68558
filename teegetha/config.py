"""
Configuration management for TeeGetha
Loads settings from YAML files with environment variable overrides
"""

import json
import os
import yaml
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from loguru import logger


class AppConfig(BaseModel):
    """Main application configuration"""

    # Flask settings
    SECRET_KEY: str = Field(default_factory=lambda: os.urandom(24).hex())
    FLASK_ENV: str = "development"
    DEBUG: bool = True
    TESTING: bool = False
    TEST_MODE: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/app.log"

    # HTTP
    MAX_CONTENT_LENGTH: int = 10 * 1024 * 1024  # 10MB JSON bodies (data URLs)
    CORS_ORIGIN: str = "*"

    # Pricing
    UNIT_PRICE: float = 25.0
    CURRENCY: str = "usd"
    DELIVERY_ESTIMATE_DAYS: int = 14

    # Gemini (photo analysis + stylization)
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_ANALYSIS_MODEL: str = "gemini-2.5-flash"
    GEMINI_IMAGE_MODEL: str = "gemini-3-pro-image-preview"

    # Replicate background removal
    BACKGROUND_REMOVAL_API_KEY: Optional[str] = None
    BACKGROUND_REMOVAL_MODEL_VERSION: Optional[str] = None
    BACKGROUND_REMOVAL_POLL_INTERVAL: float = Field(default=1.5, ge=0.0, le=30.0)
    BACKGROUND_REMOVAL_TIMEOUT: float = Field(default=60.0, ge=1.0, le=600.0)

    # Printify
    PRINTIFY_API_TOKEN: Optional[str] = None
    PRINTIFY_SHOP_ID: Optional[str] = None
    PRINTIFY_TEST_IMAGE_URL: str = ""

    # Stripe
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None


class GarmentCatalog(BaseModel):
    """Printify blueprint/variant mapping, read-only after load.

    ``variants_men`` and ``variants_women`` map color -> size -> variant id,
    ``variants_kids`` maps size -> variant id (kids shirts ignore color).
    A blueprint or provider id of 0 means "not configured".
    """

    model_config = ConfigDict(frozen=True)

    print_provider_id: int = 0
    shipping_method: int = 1
    blueprint_men: int = 0
    blueprint_women: int = 0
    blueprint_kids: int = 0
    variants_men: Mapping[str, Mapping[str, int]] = Field(default_factory=dict)
    variants_women: Mapping[str, Mapping[str, int]] = Field(default_factory=dict)
    variants_kids: Mapping[str, int] = Field(default_factory=dict)

    @field_validator('variants_men', 'variants_women', mode='after')
    @classmethod
    def _freeze_color_tables(cls, value):
        return MappingProxyType({
            color: MappingProxyType(dict(sizes)) for color, sizes in value.items()
        })

    @field_validator('variants_kids', mode='after')
    @classmethod
    def _freeze_size_table(cls, value):
        return MappingProxyType(dict(value))


def load_yaml_config(file_path: str) -> Dict:
    """Load configuration from YAML file"""
    path = Path(file_path)
    if not path.exists():
        logger.warning(f"Config file not found: {file_path}")
        return {}

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error loading config file {file_path}: {e}")
        return {}


def _bool_from_env(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _json_from_env(name: str) -> Optional[Any]:
    raw = os.getenv(name)
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse JSON env {name}: {e}")
        return None


def _int_from_env(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        logger.error(f"Invalid integer in env {name}: {raw}")
        return None


ENV_KEYS = [
    'SECRET_KEY', 'LOG_LEVEL', 'LOG_FILE', 'CORS_ORIGIN', 'CURRENCY', 'UNIT_PRICE',
    'GEMINI_API_KEY', 'GEMINI_ANALYSIS_MODEL', 'GEMINI_IMAGE_MODEL',
    'BACKGROUND_REMOVAL_API_KEY', 'BACKGROUND_REMOVAL_MODEL_VERSION',
    'BACKGROUND_REMOVAL_POLL_INTERVAL', 'BACKGROUND_REMOVAL_TIMEOUT',
    'PRINTIFY_API_TOKEN', 'PRINTIFY_SHOP_ID', 'PRINTIFY_TEST_IMAGE_URL',
    'STRIPE_SECRET_KEY', 'STRIPE_WEBHOOK_SECRET',
]


def load_config(environment: str = "development", config_dir: str = "config") -> AppConfig:
    """Load configuration with environment-specific overrides"""

    # Load base settings
    base_config = load_yaml_config(f"{config_dir}/settings.yaml")

    # Load environment-specific settings
    env_config = load_yaml_config(f"{config_dir}/settings_{environment}.yaml")

    # Merge configurations (env overrides base)
    config_dict = {**base_config, **env_config}

    # Apply environment variable overrides
    env_overrides = {key: os.getenv(key) for key in ENV_KEYS}
    env_overrides['FLASK_ENV'] = os.getenv('FLASK_ENV', environment)
    env_overrides['TEST_MODE'] = _bool_from_env(os.getenv('TEST_MODE'))
    if not env_overrides['GEMINI_API_KEY']:
        env_overrides['GEMINI_API_KEY'] = os.getenv('API_KEY')

    # Only include non-None values
    env_overrides = {k: v for k, v in env_overrides.items() if v is not None}
    config_dict.update(env_overrides)

    # Special handling for boolean DEBUG flag
    if 'FLASK_ENV' in config_dict:
        config_dict['DEBUG'] = config_dict['FLASK_ENV'] == 'development'

    try:
        return AppConfig(**config_dict)
    except ValueError as e:
        logger.error(f"Configuration validation error: {e}")
        # Return default config on validation error
        return AppConfig()


def load_catalog(file_path: str = "config/catalog.yaml") -> GarmentCatalog:
    """Load the garment catalog mapping once at process start.

    Values from ``catalog.yaml`` are overridden by the ``PRINTIFY_*``
    environment variables (JSON for variant maps, integers for ids).
    """
    data = load_yaml_config(file_path)

    env_overrides = {
        'print_provider_id': _int_from_env('PRINTIFY_PRINT_PROVIDER_ID'),
        'shipping_method': _int_from_env('PRINTIFY_SHIPPING_METHOD'),
        'blueprint_men': _int_from_env('PRINTIFY_BLUEPRINT_ID_MEN'),
        'blueprint_women': _int_from_env('PRINTIFY_BLUEPRINT_ID_WOMEN'),
        'blueprint_kids': _int_from_env('PRINTIFY_BLUEPRINT_ID_KIDS'),
        'variants_men': _json_from_env('PRINTIFY_VARIANTS_MEN'),
        'variants_women': _json_from_env('PRINTIFY_VARIANTS_WOMEN'),
        'variants_kids': _json_from_env('PRINTIFY_VARIANT_MAP_KIDS'),
    }
    data.update({k: v for k, v in env_overrides.items() if v is not None})

    catalog = GarmentCatalog(**data)
    logger.info(
        f"Loaded garment catalog: provider={catalog.print_provider_id}, "
        f"men colors={len(catalog.variants_men)}, women colors={len(catalog.variants_women)}, "
        f"kids sizes={len(catalog.variants_kids)}"
    )
    return catalog
