"""Unit tests for the Request envelope."""

import json

from jsonsmd.rpc.protocol import VERSION_1, VERSION_2
from jsonsmd.rpc.types import Request


class TestMethodName:
    """Method names are validated on assignment without raising."""

    def test_valid_names(self):
        """Dotted and underscored names are accepted."""
        for name in ("add", "math.add", "user_get", "a1", "ns\\call", "A.b_c"):
            request = Request()
            request.method = name
            assert request.method == name
            assert request.is_method_error is False

    def test_invalid_name_flags_error(self):
        """A bad name sets is_method_error."""
        request = Request()
        request.method = "1bad"
        assert request.method == ""
        assert request.is_method_error is True

    def test_invalid_name_keeps_previous_value(self):
        """A rejected name leaves the old method in place."""
        request = Request(method="good")
        request.method = "bad name"
        assert request.method == "good"
        assert request.is_method_error is True

    def test_non_string_method_flags_error(self):
        """Non-string methods are rejected."""
        request = Request()
        request.method = 42
        assert request.is_method_error is True
        assert request.method == ""


class TestParams:
    """Positional and named param handling."""

    def test_positional_appends(self):
        """add_param appends without a key."""
        request = Request()
        request.add_param(1)
        request.add_param(2)
        assert request.params == [1, 2]
        assert request.is_associative is False

    def test_named_makes_associative(self):
        """A string key switches to named params."""
        request = Request()
        request.add_param("x", "name")
        assert request.params == {"name": "x"}
        assert request.is_associative is True

    def test_int_key_appends_at_next_index(self):
        """Integer keys append at the next free index."""
        request = Request()
        request.add_param("a", 5)
        request.add_param("b", 0)
        assert request.params == ["a", "b"]

    def test_unusable_keys_ignored(self):
        """Keys that are neither int nor str are dropped."""
        request = Request()
        request.add_param("a", 1.5)
        request.add_param("b", ("t",))
        request.add_param("c", True)
        assert request.params == []

    def test_empty_string_key_appends(self):
        """An empty key appends positionally."""
        request = Request()
        request.add_param("a", "")
        assert request.params == ["a"]

    def test_set_params_replaces(self):
        """set_params discards earlier params."""
        request = Request(params=[1, 2, 3])
        request.set_params({"a": 1})
        assert request.params == {"a": 1}

    def test_add_params_list_and_mapping(self):
        """add_params accepts lists and mappings."""
        request = Request()
        request.add_params([1, 2])
        assert request.params == [1, 2]
        request.add_params({"x": 3})
        assert request.params == {0: 1, 1: 2, "x": 3}

    def test_get_param(self):
        """Params are looked up by index or name."""
        request = Request(params={"a": 1})
        assert request.get_param("a") == 1
        assert request.get_param("missing") is None

    def test_params_setter(self):
        """Assigning params replaces them."""
        request = Request()
        request.params = ("a", "b")
        assert request.params == ["a", "b"]


class TestVersion:
    """Tests for the protocol version field."""

    def test_default_version(self):
        """Requests default to version 1.0."""
        assert Request().version == VERSION_1

    def test_only_two_point_oh_is_kept(self):
        """Any version other than 2.0 is treated as 1.0."""
        request = Request(version="2.0")
        assert request.version == VERSION_2
        request.version = "3.0"
        assert request.version == VERSION_1


class TestLoadJson:
    """Decoding a request from JSON text."""

    def test_load_full_request(self):
        """Every member of the document is loaded."""
        request = Request()
        request.load_json('{"jsonrpc":"2.0","method":"add","params":[1,2],"id":7}')
        assert request.method == "add"
        assert request.params == [1, 2]
        assert request.id == 7
        assert request.version == VERSION_2
        assert request.is_parse_error is False

    def test_named_params(self):
        """A params object is loaded as named params."""
        request = Request()
        request.load_json('{"method":"greet","params":{"name":"Bob"}}')
        assert request.params == {"name": "Bob"}
        assert request.id is None

    def test_invalid_json_sets_parse_error(self):
        """Malformed JSON sets is_parse_error."""
        request = Request()
        request.load_json("{broken")
        assert request.is_parse_error is True
        assert request.method == ""

    def test_non_object_leaves_request_empty(self):
        """A JSON array is not a request."""
        request = Request()
        request.load_json("[1, 2, 3]")
        assert request.is_parse_error is False
        assert request.method == ""

    def test_scalar_params_ignored(self):
        """Scalar params are dropped."""
        request = Request()
        request.load_json('{"method":"add","params":5}')
        assert request.params == []

    def test_invalid_method_in_document(self):
        """A bad method name in the document flags an error."""
        request = Request()
        request.load_json('{"method":"9lives","id":1}')
        assert request.is_method_error is True


class TestToJson:
    """Tests for the request wire form."""

    def test_minimal_v1(self):
        """A 1.0 request without id or params has only a method."""
        data = json.loads(Request(method="ping").to_json())
        assert data == {"method": "ping"}

    def test_full_v2(self):
        """A 2.0 request carries jsonrpc, id and params."""
        request = Request(method="add", params=[1, 2], id=1, version="2.0")
        assert json.loads(request.to_json()) == {
            "method": "add",
            "id": 1,
            "params": [1, 2],
            "jsonrpc": "2.0",
        }

    def test_str_is_json(self):
        """str() returns the JSON text."""
        request = Request(method="ping", id="x")
        assert str(request) == request.to_json()

    def test_set_options(self):
        """Known keys are assigned by set_options."""
        request = Request()
        request.set_options({"method": "m", "id": 3, "params": {"a": 1}, "jsonrpc": "2.0"})
        assert request.to_dict() == {
            "method": "m",
            "id": 3,
            "params": {"a": 1},
            "jsonrpc": "2.0",
        }
