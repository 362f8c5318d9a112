# tests/test_decoding.py
import json

import pytest
from pydantic import ValidationError

from ngsi2.decoding import (
    decode_error,
    decode_paginated,
    decode_response,
    location_id,
    read_total_count,
)
from ngsi2.exceptions import (
    BadRequestError,
    ConflictingEntitiesError,
    InternalError,
    InvalidSyntaxError,
    Ngsi2Error,
    NotAcceptableError,
    UnsupportedOperationError,
)
from ngsi2.models import Entity, Paginated


def entities_decoder(body):
    return [Entity.from_wire(item) for item in json.loads(body)]


class TestTotalCount:

    def test_present(self):
        assert read_total_count({"X-Total-Count": "12"}) == 12

    def test_header_name_is_case_insensitive(self):
        assert read_total_count({"x-total-count": "3"}) == 3

    @pytest.mark.parametrize("headers", [{}, {"X-Total-Count": "abc"}, {"X-Total-Count": ""}, {"X-Total-Count": "1.5"}])
    def test_missing_or_invalid_is_zero(self, headers):
        assert read_total_count(headers) == 0

    @pytest.mark.parametrize("raw", ["1_000", "\u0661\u0662", "\uff11\uff12", "+ 5", "0x10"])
    def test_only_ascii_digits_count(self, raw):
        assert read_total_count({"X-Total-Count": raw}) == 0

    def test_signed_and_padded(self):
        assert read_total_count({"X-Total-Count": " +7 "}) == 7


class TestSuccess:

    def test_paginated_list(self, room_payload):
        result = decode_paginated(
            200, "OK", {"X-Total-Count": "37"}, json.dumps([room_payload]).encode(),
            entities_decoder, offset=2, limit=10
        )
        assert result.success
        assert isinstance(result.data, Paginated)
        assert result.data.total == 37
        assert (result.data.offset, result.data.limit) == (2, 10)
        assert result.data.items[0].id == "Bcn-Welt"

    def test_paginated_without_count_header(self):
        result = decode_paginated(200, "OK", {}, b"[]", entities_decoder)
        assert result.data.total == 0
        assert result.data.items == []

    def test_no_content(self):
        result = decode_response(204, "No Content", {}, b"")
        assert result.success
        assert result.data is None
        assert result.error is None

    def test_decoder_failure_propagates(self):
        with pytest.raises(ValidationError):
            decode_response(200, "OK", {}, b'{"id": "e1", "temperature": {}}',
                            lambda body: Entity.model_validate_json(body))

    def test_unwrap_returns_data(self):
        assert decode_response(200, "OK", {}, b"[1]", json.loads).unwrap() == [1]


class TestFailure:

    def test_conflict_keeps_broker_description(self):
        body = b'{"error":"409","description":"Too many results. Use type"}'
        result = decode_response(409, "Conflict", {}, body)
        assert not result.success
        assert isinstance(result.error, ConflictingEntitiesError)
        assert result.error.error == "409"
        assert result.error.description == "Too many results. Use type"
        assert result.error.status_code == 409

    def test_unparseable_body_falls_back_to_status_text(self):
        result = decode_response(500, "Internal Server Error", {}, b"<html>oops</html>")
        error = result.error
        assert type(error) is Ngsi2Error
        assert error.error == "500"
        assert error.description == "Internal Server Error"
        assert error.affected_items is None
        assert error.status_code == 500

    def test_empty_body_falls_back_to_status_text(self):
        error = decode_error(404, "Not Found", b"")
        assert (error.error, error.description) == ("404", "Not Found")

    @pytest.mark.parametrize("status, kind", [
        (400, BadRequestError),
        (406, NotAcceptableError),
        (409, ConflictingEntitiesError),
        (500, InternalError),
        (501, UnsupportedOperationError),
    ])
    def test_status_mapping(self, status, kind):
        error = decode_error(status, "", json.dumps({"error": str(status), "description": "d"}))
        assert isinstance(error, kind)
        assert error.description == "d"

    def test_bad_request_with_affected_items_is_invalid_syntax(self):
        body = {"error": "400", "description": "Syntax invalid", "affectedItems": ["a b"]}
        error = decode_error(400, "Bad Request", json.dumps(body))
        assert isinstance(error, InvalidSyntaxError)
        assert error.affected_items == ["a b"]

    def test_unmapped_status_is_generic(self):
        body = {"error": "NotFound", "description": "The requested entity has not been found"}
        error = decode_error(404, "Not Found", json.dumps(body))
        assert type(error) is Ngsi2Error
        assert error.error == "NotFound"
        assert error.status_code == 404

    def test_unwrap_raises(self):
        result = decode_response(501, "Not Implemented", {}, b'{"error":"501","description":"nope"}')
        with pytest.raises(UnsupportedOperationError):
            result.unwrap()


def test_location_id():
    assert location_id({"Location": "/v2/subscriptions/abcde98765"}) == "abcde98765"
    assert location_id({"location": "/v2/entities/room1?type=Room"}) == "room1"
    assert location_id({}) is None
