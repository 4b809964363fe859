"""Unit tests for the Response envelope."""

import json

import pytest

from jsonsmd.rpc.protocol import METHOD_NOT_FOUND, SERVER_ERROR, Error, ParseError
from jsonsmd.rpc.types import Response


class TestSerialization:
    """Wire form of responses."""

    def test_result_v1(self):
        """A 1.0 response has no jsonrpc member."""
        response = Response(id=1, result=3)
        assert json.loads(response.to_json()) == {"id": 1, "result": 3}

    def test_result_v2(self):
        """A 2.0 response carries jsonrpc."""
        response = Response(id=1, result=3, version="2.0")
        assert json.loads(response.to_json()) == {"id": 1, "result": 3, "jsonrpc": "2.0"}

    def test_id_always_present(self):
        """The id member is present even when null."""
        assert json.loads(Response(result="x").to_json()) == {"id": None, "result": "x"}

    def test_error_suppresses_result(self):
        """An error hides the result."""
        response = Response(id=2, result="ignored", error=Error("Method not found", METHOD_NOT_FOUND))
        data = json.loads(response.to_json())
        assert "result" not in data
        assert data["error"] == {"code": METHOD_NOT_FOUND, "message": "Method not found", "data": None}

    def test_null_result_is_serialized(self):
        """A None result is still written."""
        assert "result" in json.loads(Response(id=1).to_json())

    def test_unknown_version_dropped(self):
        """Only version 2.0 is kept on a response."""
        assert Response(version="1.0").version is None
        assert Response(version="2.0").version == "2.0"


class TestIsError:
    """Tests for Response.is_error."""

    def test_is_error(self):
        """Only an Error instance marks a response as an error."""
        assert Response(error=Error("x")).is_error is True
        assert Response(result=1).is_error is False


class TestLoadJson:
    """Decoding responses received by a client."""

    def test_from_json_result(self):
        """A result response is decoded."""
        response = Response.from_json('{"jsonrpc":"2.0","id":5,"result":[1,2]}')
        assert response.id == 5
        assert response.result == [1, 2]
        assert response.version == "2.0"
        assert response.is_error is False

    def test_from_json_error(self):
        """An error object is decoded into Error."""
        response = Response.from_json(
            '{"id":1,"error":{"code":-32601,"message":"Method not found","data":{"m":"x"}}}'
        )
        assert response.is_error is True
        assert response.error.code == METHOD_NOT_FOUND
        assert response.error.message == "Method not found"
        assert response.error.data == {"m": "x"}

    def test_non_int_error_code_becomes_server_error(self):
        """Non-integer error codes decode as SERVER_ERROR."""
        response = Response.from_json('{"id":1,"error":{"code":"bad","message":"m"}}')
        assert response.error.code == SERVER_ERROR

    def test_null_error_is_not_error(self):
        """A null error member is not an error."""
        response = Response.from_json('{"id":1,"result":2,"error":null}')
        assert response.is_error is False
        assert response.result == 2

    def test_invalid_json_raises(self):
        """Malformed JSON raises ParseError."""
        with pytest.raises(ParseError):
            Response.from_json("<html>")

    @pytest.mark.parametrize("text", ["[1]", "true", "3", '"x"', "null"])
    def test_non_object_raises(self, text):
        """Documents that are not objects raise ParseError."""
        with pytest.raises(ParseError, match="object expected"):
            Response.from_json(text)

    def test_empty_text_raises(self):
        """Empty text raises ParseError."""
        with pytest.raises(ParseError):
            Response.from_json("")

    def test_round_trip_preserves_fields(self):
        """Decoding the wire form gives back the same fields."""
        original = Response(id="abc", error=Error("bad", -5, [1]), version="2.0")
        decoded = Response.from_json(original.to_json())
        assert decoded.to_dict() == original.to_dict()
