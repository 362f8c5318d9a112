# tests/conftest.py
import pytest

from ngsi2.models import Attribute, Entity, Metadata
from ngsi2_api.config import Ngsi2ApiConfig
from ngsi2_api.registry import Ngsi2HandlerRegistry


@pytest.fixture
def api_config():
    """Configuration with explicit values (independent of the environment)."""
    return Ngsi2ApiConfig(route_prefix="v2", handlers_module=None, max_field_length=256)


@pytest.fixture
def registry():
    """Empty registry: every operation unsupported."""
    return Ngsi2HandlerRegistry()


@pytest.fixture
def room_entity():
    """A Room entity with one typed attribute carrying metadata."""
    return Entity(
        id="Bcn-Welt",
        type="Room",
        attributes={
            "temperature": Attribute(
                value=21.7,
                type="float",
                metadata={"unit": Metadata(value="celsius", type="mesure")}
            ),
            "humidity": Attribute(value=54),
        }
    )


@pytest.fixture
def room_payload():
    """Wire form of a Room entity as a broker sends it."""
    return {
        "id": "Bcn-Welt",
        "type": "Room",
        "temperature": {"value": 21.7, "metadata": {}},
        "pressure": {"value": 720, "type": "mmHg"},
    }
