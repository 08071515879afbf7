import pytest
from django.core.exceptions import ImproperlyConfigured

from modules.payments.config import GatewayConfig, get_gateway_config

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def _fresh_config():
    get_gateway_config.cache_clear()
    yield
    get_gateway_config.cache_clear()


def test_reads_credentials_from_settings():
    config = get_gateway_config()

    assert config.key_id == "rzp_test_key"
    assert config.key_secret == "rzp_test_secret"
    assert config.webhook_secret == "whsec_test"
    assert config.currency == "INR"


def test_config_is_cached():
    assert get_gateway_config() is get_gateway_config()


def test_webhook_secret_falls_back_to_key_secret(settings):
    settings.RAZORPAY_WEBHOOK_SECRET = ""
    assert get_gateway_config().webhook_secret == "rzp_test_secret"


@pytest.mark.parametrize("missing", ["RAZORPAY_KEY_ID", "RAZORPAY_KEY_SECRET"])
def test_missing_credentials_are_refused(settings, missing):
    setattr(settings, missing, "")
    with pytest.raises(ImproperlyConfigured):
        get_gateway_config()


def test_repr_hides_secrets():
    config = GatewayConfig(key_id="rzp_live", key_secret="s3cret", webhook_secret="wh")
    assert "s3cret" not in repr(config)
    assert "wh'" not in repr(config)
