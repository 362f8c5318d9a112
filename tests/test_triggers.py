# tests/test_triggers.py
"""
HTTP trigger tests with azure.functions request/response objects.
"""

import json

import azure.functions as func
import pytest

from ngsi2.exceptions import ConflictingEntitiesError
from ngsi2.models import Attribute, Paginated
from ngsi2_api import config as api_config_module
from ngsi2_api.registry import Operation
from ngsi2_api.triggers import get_ngsi2_triggers


@pytest.fixture(autouse=True)
def default_api_config(monkeypatch):
    for name in ("NGSI2_ROUTE_PREFIX", "NGSI2_HANDLERS_MODULE", "NGSI2_MAX_FIELD_LENGTH"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(api_config_module, "_config_cache", None)


@pytest.fixture
def triggers(registry):
    return {trigger['name']: trigger for trigger in get_ngsi2_triggers(registry)}


def call(triggers, name, method, url, params=None, route_params=None, body=b"", headers=None):
    req = func.HttpRequest(
        method=method,
        url=url,
        headers=headers or {},
        params=params or {},
        route_params=route_params or {},
        body=body
    )
    return triggers[name]['handler'](req)


def test_routes(triggers):
    assert {name: t['route'] for name, t in triggers.items()} == {
        'resources': 'v2',
        'entities': 'v2/entities',
        'entity': 'v2/entities/{entity_id}',
        'attribute': 'v2/entities/{entity_id}/attrs/{attr_name}',
        'attribute_value': 'v2/entities/{entity_id}/attrs/{attr_name}/value',
        'types': 'v2/types',
        'type': 'v2/types/{entity_type}',
        'registrations': 'v2/registrations',
        'registration': 'v2/registrations/{registration_id}',
        'subscriptions': 'v2/subscriptions',
        'subscription': 'v2/subscriptions/{subscription_id}',
        'bulk_update': 'v2/op/update',
        'bulk_query': 'v2/op/query',
    }
    assert triggers['entity']['methods'] == ['GET', 'POST', 'PATCH', 'PUT', 'DELETE']


def test_route_prefix_from_environment(monkeypatch, registry):
    monkeypatch.setenv("NGSI2_ROUTE_PREFIX", "/ngsi/v2/")
    routes = [t['route'] for t in get_ngsi2_triggers(registry)]
    assert routes[0] == 'ngsi/v2'
    assert 'ngsi/v2/entities' in routes


def test_list_entities(triggers, registry, room_entity):
    registry.register(Operation.LIST_ENTITIES, lambda query: Paginated(items=[room_entity], total=1))
    resp = call(triggers, 'entities', 'GET', '/v2/entities', params={'type': 'Room', 'options': 'count'})
    assert resp.status_code == 200
    assert resp.mimetype == 'application/json'
    assert resp.headers['X-Total-Count'] == '1'
    assert json.loads(resp.get_body()) == [room_entity.to_json()]


def test_create_entity(triggers, registry):
    registry.register(Operation.CREATE_ENTITY, lambda entity: None)
    body = json.dumps({"id": "room1", "type": "Room", "temperature": {"value": 23}}).encode()
    resp = call(triggers, 'entities', 'POST', '/v2/entities', body=body)
    assert resp.status_code == 201
    assert resp.headers['Location'] == '/v2/entities/room1'
    assert resp.get_body() == b''


def test_incompatible_parameters(triggers, registry):
    registry.register(Operation.LIST_ENTITIES, lambda query: Paginated())
    resp = call(triggers, 'entities', 'GET', '/v2/entities', params={'id': 'room1', 'idPattern': 'room.*'})
    assert resp.status_code == 400
    assert json.loads(resp.get_body())['error'] == '400'


def test_unsupported_operation(triggers):
    resp = call(triggers, 'types', 'GET', '/v2/types')
    assert resp.status_code == 501
    assert json.loads(resp.get_body()) == {
        "error": "501",
        "description": "this operation 'Retrieve Entity Types' is not implemented"
    }


def test_conflict_from_handler(triggers, registry):
    def retrieve(entity_id, entity_type, attrs):
        raise ConflictingEntitiesError(entity_id, f"GET /v2/entities/{entity_id}?type=Room")
    registry.register(Operation.RETRIEVE_ENTITY, retrieve)
    resp = call(triggers, 'entity', 'GET', '/v2/entities/Bcn-Welt', route_params={'entity_id': 'Bcn-Welt'})
    assert resp.status_code == 409
    assert "GET /v2/entities/Bcn-Welt?type=Room" in json.loads(resp.get_body())['description']


def test_error_as_text(triggers):
    resp = call(triggers, 'subscriptions', 'GET', '/v2/subscriptions', headers={'Accept': 'text/plain'})
    assert resp.status_code == 501
    assert resp.mimetype == 'text/plain'
    assert resp.get_body().decode() == (
        "error: 501 | description: this operation 'Retrieve Subscriptions' is not implemented | affectedItems: []"
    )


def test_unexpected_handler_failure(triggers, registry):
    def broken(entity_id, entity_type):
        raise RuntimeError("store unavailable")
    registry.register(Operation.REMOVE_ENTITY, broken)
    resp = call(triggers, 'entity', 'DELETE', '/v2/entities/room1', route_params={'entity_id': 'room1'})
    assert resp.status_code == 500
    assert json.loads(resp.get_body()) == {"error": "500", "description": "Internal Error: store unavailable."}


def test_method_not_allowed(triggers):
    resp = call(triggers, 'entities', 'DELETE', '/v2/entities')
    assert resp.status_code == 405
    assert resp.headers['Allow'] == 'GET, POST'


def test_attribute_value_text_round(triggers, registry):
    received = []
    registry.register(Operation.UPDATE_ATTRIBUTE_VALUE, lambda *args: received.append(args))
    registry.register(Operation.RETRIEVE_ATTRIBUTE_VALUE, lambda entity_id, attr_name, entity_type: 21.7)
    route = {'entity_id': 'room1', 'attr_name': 'temperature'}

    put = call(triggers, 'attribute_value', 'PUT', '/v2/entities/room1/attrs/temperature/value',
               route_params=route, body=b'22.5', headers={'Content-Type': 'text/plain'})
    assert put.status_code == 204
    assert received == [('room1', 'temperature', None, 22.5)]

    get = call(triggers, 'attribute_value', 'GET', '/v2/entities/room1/attrs/temperature/value',
               route_params=route, headers={'Accept': 'text/plain'})
    assert get.status_code == 200
    assert get.get_body() == b'21.7'

    as_json = call(triggers, 'attribute_value', 'GET', '/v2/entities/room1/attrs/temperature/value',
                   route_params=route, headers={'Accept': 'application/json'})
    assert as_json.status_code == 406


def test_retrieve_attribute(triggers, registry):
    registry.register(Operation.RETRIEVE_ATTRIBUTE,
                      lambda entity_id, attr_name, entity_type: Attribute(value=21.7, type="float"))
    resp = call(triggers, 'attribute', 'GET', '/v2/entities/room1/attrs/temperature',
                route_params={'entity_id': 'room1', 'attr_name': 'temperature'})
    assert json.loads(resp.get_body()) == {"value": 21.7, "type": "float", "metadata": {}}


def test_resources(triggers):
    resp = call(triggers, 'resources', 'GET', '/v2')
    assert json.loads(resp.get_body())['entities_url'] == '/v2/entities'


def test_bulk_query_paging(triggers, registry):
    received = []

    def bulk_query(request, offset, limit):
        received.append((offset, limit))
        return Paginated(items=[], offset=offset, limit=limit, total=0)
    registry.register(Operation.BULK_QUERY, bulk_query)
    body = json.dumps({"entities": [{"idPattern": ".*", "type": "Room"}]}).encode()
    resp = call(triggers, 'bulk_query', 'POST', '/v2/op/query', params={'offset': '20', 'limit': '10'}, body=body)
    assert resp.status_code == 200
    assert json.loads(resp.get_body()) == []
    assert received == [(20, 10)]
