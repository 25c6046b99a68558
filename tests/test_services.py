"""
Tests for configuration loading and vendor wiring.
"""

import pytest

from teegetha.config import ENV_KEYS, AppConfig, load_config
from teegetha.services import build_services, build_vision_client
from teegetha.vendors import (
    GeminiVisionClient, OfflineFulfillment, PrintifyClient, ReplicateBackgroundRemover, StubVisionClient
)


@pytest.fixture
def clean_env(monkeypatch):
    for key in ENV_KEYS + ['FLASK_ENV', 'TEST_MODE', 'API_KEY']:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


class TestLoadConfig:

    def test_layers_yaml_and_environment(self, tmp_path, clean_env):
        (tmp_path / 'settings.yaml').write_text('LOG_LEVEL: DEBUG\nUNIT_PRICE: 20\n')
        (tmp_path / 'settings_staging.yaml').write_text('UNIT_PRICE: 30\n')
        clean_env.setenv('STRIPE_SECRET_KEY', 'sk_env')
        clean_env.setenv('TEST_MODE', 'true')
        clean_env.setenv('API_KEY', 'legacy-gemini-key')

        config = load_config('staging', config_dir=str(tmp_path))

        assert config.LOG_LEVEL == 'DEBUG'
        assert config.UNIT_PRICE == 30
        assert config.STRIPE_SECRET_KEY == 'sk_env'
        assert config.TEST_MODE is True
        assert config.GEMINI_API_KEY == 'legacy-gemini-key'
        assert config.FLASK_ENV == 'staging'
        assert config.DEBUG is False

    def test_missing_files_use_defaults(self, tmp_path, clean_env):
        config = load_config('development', config_dir=str(tmp_path / 'nowhere'))

        assert config.UNIT_PRICE == 25.0
        assert config.DEBUG is True
        assert config.PRINTIFY_API_TOKEN is None


class TestBuildServices:

    def test_test_mode_uses_stub_vision(self):
        assert isinstance(build_vision_client(AppConfig(TEST_MODE=True)), StubVisionClient)

    def test_missing_gemini_key_disables_vision(self):
        assert build_vision_client(AppConfig()) is None

    def test_gemini_client_when_key_present(self):
        assert isinstance(build_vision_client(AppConfig(GEMINI_API_KEY='key')), GeminiVisionClient)

    def test_unconfigured_vendors(self, catalog):
        services = build_services(AppConfig(), catalog)

        assert services.remover is None
        assert isinstance(services.fulfillment, OfflineFulfillment)
        assert services.pipeline.remover is None

    def test_configured_vendors(self, catalog):
        config = AppConfig(
            TEST_MODE=True,
            BACKGROUND_REMOVAL_API_KEY='r8',
            BACKGROUND_REMOVAL_MODEL_VERSION='v1',
            PRINTIFY_API_TOKEN='token',
            PRINTIFY_SHOP_ID='shop-1',
            UNIT_PRICE=30.0,
        )
        services = build_services(config, catalog)

        assert isinstance(services.remover, ReplicateBackgroundRemover)
        assert isinstance(services.fulfillment, PrintifyClient)
        assert services.orchestrator.shop_id == 'shop-1'
        assert services.orchestrator.unit_price == 30.0
        assert services.stripe.secret_key is None
