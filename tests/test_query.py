# tests/test_query.py
from ngsi2.parsing import parse_geo_query
from ngsi2.query import EntityQuery, build_query_params, join_values, pagination_params


def test_empty_query_has_no_parameters():
    assert build_query_params() == []


def test_offset_and_limit_omitted_when_zero():
    params = build_query_params(types=["Room"], offset=0, limit=0)
    assert params == [("type", "Room")]


def test_empty_id_list_omitted():
    params = build_query_params(ids=[], types=["Room"])
    assert all(name != "id" for name, _ in params)


def test_full_parameter_order():
    geo = parse_geo_query("near;maxDistance:1000", "point", "-10.5,30.5;-15.5,35.5")
    params = build_query_params(
        ids=["room1", "house1"],
        id_patterns=["room.*"],
        types=["Room", "House"],
        attrs=["temp", "pressure", "humidity"],
        query="temp<24",
        geo_query=geo,
        order_by=["temp", "!humidity"],
        offset=2,
        limit=10,
        count=True
    )
    assert params == [
        ("id", "room1,house1"),
        ("idPattern", "room.*"),
        ("type", "Room,House"),
        ("attrs", "temp,pressure,humidity"),
        ("query", "temp<24"),
        ("georel", "near;maxDistance:1000.0"),
        ("geometry", "point"),
        ("coords", "-10.5,30.5;-15.5,35.5"),
        ("orderBy", "temp,!humidity"),
        ("offset", "2"),
        ("limit", "10"),
        ("options", "count"),
    ]


def test_id_and_id_pattern_not_checked_by_builder():
    params = build_query_params(ids=["room1"], id_patterns=["room.*"])
    assert params == [("id", "room1"), ("idPattern", "room.*")]


def test_single_string_counts_as_one_element():
    assert build_query_params(types="Room") == [("type", "Room")]


def test_negative_paging_values_omitted():
    assert build_query_params(offset=-1, limit=-5) == []


def test_count_combined_with_other_options():
    params = EntityQuery(count=True, options=["keyValues"]).to_params()
    assert params == [("options", "count,keyValues")]


def test_pagination_params():
    assert pagination_params(offset=5, limit=20, count=True) == [
        ("offset", "5"),
        ("limit", "20"),
        ("options", "count"),
    ]
    assert pagination_params() == []


def test_join_values():
    assert join_values(None) is None
    assert join_values([]) is None
    assert join_values("") is None
    assert join_values(["a", "b"]) == "a,b"
    assert join_values("a,b") == "a,b"
