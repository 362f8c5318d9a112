# tests/test_config.py
import pytest
from pydantic import ValidationError

from config import AppConfig
from ngsi2_api.config import Ngsi2ApiConfig


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in (
        "NGSI2_BROKER_URL",
        "NGSI2_TIMEOUT_SECONDS",
        "NGSI2_FIWARE_SERVICE",
        "NGSI2_FIWARE_SERVICE_PATH",
        "NGSI2_ROUTE_PREFIX",
        "NGSI2_HANDLERS_MODULE",
        "NGSI2_MAX_FIELD_LENGTH",
    ):
        monkeypatch.delenv(name, raising=False)


class TestAppConfig:

    def test_defaults(self):
        config = AppConfig(_env_file=None)
        assert config.ngsi2_broker_url == ""
        assert config.ngsi2_timeout_seconds == 10.0
        assert config.tenant_headers() == {}

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("NGSI2_BROKER_URL", "http://orion:1026")
        monkeypatch.setenv("NGSI2_TIMEOUT_SECONDS", "2.5")
        monkeypatch.setenv("NGSI2_FIWARE_SERVICE", "smartcity")
        monkeypatch.setenv("NGSI2_FIWARE_SERVICE_PATH", "/barcelona")
        config = AppConfig(_env_file=None)
        assert config.ngsi2_broker_url == "http://orion:1026"
        assert config.ngsi2_timeout_seconds == 2.5
        assert config.tenant_headers() == {
            "Fiware-Service": "smartcity",
            "Fiware-ServicePath": "/barcelona",
        }

    def test_relative_service_path_rejected(self, monkeypatch):
        monkeypatch.setenv("NGSI2_FIWARE_SERVICE_PATH", "barcelona")
        with pytest.raises(ValidationError):
            AppConfig(_env_file=None)

    def test_timeout_must_be_positive(self, monkeypatch):
        monkeypatch.setenv("NGSI2_TIMEOUT_SECONDS", "0")
        with pytest.raises(ValidationError):
            AppConfig(_env_file=None)


class TestNgsi2ApiConfig:

    def test_defaults(self):
        config = Ngsi2ApiConfig()
        assert config.route_prefix == "v2"
        assert config.handlers_module is None
        assert config.max_field_length == 256

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("NGSI2_ROUTE_PREFIX", "/context/v2/")
        monkeypatch.setenv("NGSI2_HANDLERS_MODULE", "handlers.rooms")
        monkeypatch.setenv("NGSI2_MAX_FIELD_LENGTH", "64")
        config = Ngsi2ApiConfig()
        assert config.route_prefix == "context/v2"
        assert config.handlers_module == "handlers.rooms"
        assert config.max_field_length == 64

    def test_empty_prefix_rejected(self):
        with pytest.raises(ValidationError):
            Ngsi2ApiConfig(route_prefix="/")

    def test_resource_path(self, api_config):
        assert api_config.resource_path("entities", "room1") == "/v2/entities/room1"
        assert api_config.resource_path() == "/v2"

    def test_environment_prefix_of_slashes_rejected(self, monkeypatch):
        monkeypatch.setenv("NGSI2_ROUTE_PREFIX", "/")
        with pytest.raises(ValidationError):
            Ngsi2ApiConfig()

    @pytest.mark.parametrize("value", ["0", "-3", "many"])
    def test_environment_field_length_validated(self, monkeypatch, value):
        monkeypatch.setenv("NGSI2_MAX_FIELD_LENGTH", value)
        with pytest.raises(ValidationError):
            Ngsi2ApiConfig()

    def test_environment_prefix_used_in_resource_paths(self, monkeypatch):
        monkeypatch.setenv("NGSI2_ROUTE_PREFIX", "/ngsi/v2/")
        assert Ngsi2ApiConfig().resource_path("entities", "e1") == "/ngsi/v2/entities/e1"
