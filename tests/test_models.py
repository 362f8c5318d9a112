# tests/test_models.py
import pytest
from pydantic import ValidationError

from ngsi2.models import (
    Attribute,
    Coordinate,
    Entity,
    EntityType,
    Error,
    Geometry,
    GeoQuery,
    Georel,
    Metadata,
    Modifier,
    Paginated,
    Relation,
)


class TestAttribute:

    def test_untyped_attribute_omits_type_and_keeps_empty_metadata(self):
        assert Attribute(value=21.7).to_json() == {"value": 21.7, "metadata": {}}

    def test_typed_attribute_with_metadata(self):
        attribute = Attribute(
            value=23.5,
            type="float",
            metadata={"metadata1": Metadata(value="celsius", type="mesure")}
        )
        assert attribute.to_json() == {
            "value": 23.5,
            "type": "float",
            "metadata": {"metadata1": {"value": "celsius", "type": "mesure"}}
        }

    def test_null_value_is_written(self):
        assert Attribute(value=None).to_json() == {"value": None, "metadata": {}}

    def test_missing_metadata_decodes_to_empty_map(self):
        attribute = Attribute.model_validate({"value": 1})
        assert attribute.metadata == {}

    def test_null_metadata_decodes_to_empty_map(self):
        attribute = Attribute.model_validate({"value": 1, "metadata": None})
        assert attribute.metadata == {}
        assert attribute.to_json()["metadata"] == {}

    def test_missing_value_is_a_decoding_failure(self):
        with pytest.raises(ValidationError):
            Attribute.model_validate({"type": "float"})

    def test_structured_value(self):
        attribute = Attribute.model_validate({"value": {"street": "Ronda", "number": [1, 2]}})
        assert attribute.value == {"street": "Ronda", "number": [1, 2]}

    def test_metadata_without_type(self):
        assert Metadata(value="x").to_json() == {"value": "x"}


class TestEntity:

    def test_flat_wire_form(self, room_entity):
        assert room_entity.to_json() == {
            "id": "Bcn-Welt",
            "type": "Room",
            "temperature": {
                "value": 21.7,
                "type": "float",
                "metadata": {"unit": {"value": "celsius", "type": "mesure"}}
            },
            "humidity": {"value": 54, "metadata": {}},
        }

    def test_decode_routes_other_keys_to_attributes(self, room_payload):
        entity = Entity.from_wire(room_payload)
        assert entity.id == "Bcn-Welt"
        assert entity.type == "Room"
        assert set(entity.attributes) == {"temperature", "pressure"}
        assert entity.attributes["pressure"].type == "mmHg"
        assert entity.attributes["temperature"].type is None

    def test_model_validate_accepts_flat_form(self, room_payload):
        entity = Entity.model_validate(room_payload)
        assert entity.attributes["temperature"].value == 21.7

    def test_round_trip_keeps_value_and_empty_metadata(self):
        entity = Entity(id="Bcn-Welt", type="Room", attributes={"temperature": Attribute(value=21.7)})
        decoded = Entity.from_wire(entity.to_json())
        assert decoded.id == "Bcn-Welt"
        assert decoded.type == "Room"
        assert decoded.attributes["temperature"].value == 21.7
        assert decoded.attributes["temperature"].metadata == {}

    def test_attribute_named_attributes(self):
        entity = Entity.from_wire({"id": "e1", "attributes": {"value": 3}})
        assert entity.attributes["attributes"].value == 3

    def test_missing_type_is_omitted(self):
        assert Entity(id="e1").to_json() == {"id": "e1"}

    def test_empty_id_rejected(self):
        with pytest.raises(ValidationError):
            Entity(id="")

    def test_missing_id_rejected(self):
        with pytest.raises(ValidationError):
            Entity.from_wire({"type": "Room"})

    def test_reserved_attribute_names_rejected(self):
        with pytest.raises(ValidationError):
            Entity(id="e1", attributes={"type": Attribute(value="x")})

    def test_malformed_attribute_is_a_decoding_failure(self):
        with pytest.raises(ValidationError):
            Entity.from_wire({"id": "e1", "temperature": {"type": "float"}})

    def test_non_object_payload(self):
        with pytest.raises(TypeError):
            Entity.from_wire(["e1"])

    def test_key_values(self, room_entity):
        assert room_entity.to_key_values() == {
            "id": "Bcn-Welt",
            "type": "Room",
            "temperature": 21.7,
            "humidity": 54,
        }

    def test_values_follow_attrs_order(self, room_entity):
        assert room_entity.to_values(["humidity", "temperature", "missing"]) == [54, 21.7]
        assert room_entity.to_values() == [21.7, 54]


class TestGeoQuery:

    def test_near_requires_modifier_and_distance(self):
        with pytest.raises(ValidationError):
            GeoQuery(
                relation=Relation.NEAR,
                geometry=Geometry.POINT,
                coordinates=[Coordinate(latitude=1, longitude=2)]
            )

    def test_other_relations_reject_distance(self):
        with pytest.raises(ValidationError):
            GeoQuery(
                relation=Relation.COVERED_BY,
                geometry=Geometry.POLYGON,
                coordinates=[Coordinate(latitude=1, longitude=2)],
                modifier=Modifier.MAX_DISTANCE,
                distance=10
            )

    def test_coordinates_required(self):
        with pytest.raises(ValidationError):
            GeoQuery(relation=Relation.EQUALS, geometry=Geometry.POINT, coordinates=[])

    def test_negative_distance_rejected(self):
        with pytest.raises(ValidationError):
            Georel(relation=Relation.NEAR, modifier=Modifier.MIN_DISTANCE, distance=-1)

    def test_query_params(self):
        query = GeoQuery(
            relation=Relation.NEAR,
            modifier=Modifier.MAX_DISTANCE,
            distance=1000.0,
            geometry=Geometry.POINT,
            coordinates=[
                Coordinate(latitude=-10.5, longitude=30.5),
                Coordinate(latitude=-15.5, longitude=35.5),
            ]
        )
        assert query.to_query_params() == {
            "georel": "near;maxDistance:1000.0",
            "geometry": "point",
            "coords": "-10.5,30.5;-15.5,35.5",
        }

    def test_georel_without_modifier(self):
        assert str(Georel(relation=Relation.COVERED_BY)) == "coveredBy"


class TestError:

    def test_optional_fields_omitted(self):
        assert Error(error="400").to_json() == {"error": "400"}

    def test_full_payload(self):
        error = Error(error="400", description="Syntax invalid", affectedItems=["a b", "c$"])
        assert error.to_json() == {
            "error": "400",
            "description": "Syntax invalid",
            "affectedItems": ["a b", "c$"],
        }

    def test_text_form(self):
        error = Error(error="400", description="Syntax invalid", affectedItems=["item1", "item2"])
        assert str(error) == "error: 400 | description: Syntax invalid | affectedItems: [item1, item2]"

    def test_text_form_without_items(self):
        assert str(Error(error="406", description="x")) == "error: 406 | description: x | affectedItems: []"


def test_entity_type_defaults():
    entity_type = EntityType.model_validate({"attrs": {"temperature": {"type": "urn:phenomenum:temperature"}}, "count": 7})
    assert entity_type.attrs["temperature"].type == "urn:phenomenum:temperature"
    assert entity_type.to_json() == {
        "attrs": {"temperature": {"type": "urn:phenomenum:temperature"}},
        "count": 7,
    }


def test_paginated_defaults():
    page = Paginated(items=["a"])
    assert (page.offset, page.limit, page.total) == (0, 0, 0)
