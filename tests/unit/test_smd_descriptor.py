"""Unit tests for the ServiceDescriptor (SMD document)."""

import json

import pytest

from jsonsmd.rpc.smd import (
    ENV_JSONRPC_1,
    ENV_JSONRPC_2,
    SMD_VERSION,
    DuplicateServiceError,
    Service,
    ServiceDefinitionError,
    ServiceDescriptor,
)


def _add_service() -> dict:
    return {
        "name": "add",
        "params": [{"type": "int", "name": "a"}, {"type": "int", "name": "b"}],
        "return": "int",
    }


class TestFields:
    """Tests for descriptor fields and their validation."""

    def test_defaults(self):
        """A new descriptor has the documented defaults."""
        smd = ServiceDescriptor()
        assert smd.transport == "POST"
        assert smd.envelope == ENV_JSONRPC_1
        assert smd.content_type == "application/json"
        assert smd.dojo_compatible is False

    def test_options_accept_wire_and_attribute_keys(self):
        """Both contentType and content_type are accepted."""
        smd = ServiceDescriptor(contentType="text/json", dojo_compatible=True, target="/rpc")
        assert smd.content_type == "text/json"
        assert smd.dojo_compatible is True
        assert smd.target == "/rpc"

    @pytest.mark.parametrize("value", ["json", "application/", 5])
    def test_invalid_content_type(self, value):
        """Malformed content types are rejected."""
        with pytest.raises(ServiceDefinitionError, match="content type"):
            ServiceDescriptor().content_type = value

    def test_invalid_envelope(self):
        """Unknown envelopes are rejected."""
        with pytest.raises(ServiceDefinitionError):
            ServiceDescriptor(envelope="XML-RPC")

    def test_invalid_transport(self):
        """Only POST is a valid transport."""
        with pytest.raises(ServiceDefinitionError):
            ServiceDescriptor(transport="PUT")


class TestServices:
    """Tests for adding and removing services."""

    def test_add_and_get(self):
        """Added services are found by name."""
        smd = ServiceDescriptor()
        smd.add_service(_add_service())
        assert isinstance(smd.get_service("add"), Service)
        assert smd.get_service("missing") is None

    def test_duplicate_rejected(self):
        """Adding a name twice raises DuplicateServiceError."""
        smd = ServiceDescriptor()
        smd.add_service(_add_service())
        with pytest.raises(DuplicateServiceError, match="already registered"):
            smd.add_service(Service("add"))

    def test_invalid_service(self):
        """Service definitions of the wrong type are rejected."""
        with pytest.raises(ServiceDefinitionError):
            ServiceDescriptor().add_service(42)

    def test_remove(self):
        """Removing reports whether the service existed."""
        smd = ServiceDescriptor()
        smd.add_service(Service("a"))
        assert smd.remove_service("a") is True
        assert smd.remove_service("a") is False
        assert smd.get_services() == {}

    def test_set_services_replaces(self):
        """set_services discards earlier services."""
        smd = ServiceDescriptor()
        smd.add_services([Service("a"), Service("b")])
        smd.set_services([Service("c")])
        assert list(smd.get_services()) == ["c"]

    def test_get_services_is_copy(self):
        """Mutating the returned dict leaves the descriptor alone."""
        smd = ServiceDescriptor()
        smd.add_service(Service("a"))
        smd.get_services().clear()
        assert smd.get_service("a") is not None


class TestToDict:
    """Tests for the SMD document form."""

    def test_empty_document(self):
        """Without services only the header fields are written."""
        data = ServiceDescriptor(id="/svc", description="Math").to_dict()
        assert data == {
            "transport": "POST",
            "envelope": ENV_JSONRPC_1,
            "contentType": "application/json",
            "SMDVersion": SMD_VERSION,
            "description": "Math",
            "target": "",
            "id": "/svc",
        }

    def test_services_and_methods_alias(self):
        """services and methods hold the same entries."""
        smd = ServiceDescriptor(envelope=ENV_JSONRPC_2)
        smd.add_service(_add_service())
        data = smd.to_dict()
        assert data["services"] == data["methods"]
        service = data["services"]["add"]
        assert service["envelope"] == ENV_JSONRPC_2
        assert service["parameters"] == [
            {"type": "integer", "name": "a"},
            {"type": "integer", "name": "b"},
        ]
        assert service["returns"] == "integer"

    def test_to_json_round_trip(self):
        """to_json() encodes to_dict()."""
        smd = ServiceDescriptor(target="/rpc", envelope=ENV_JSONRPC_2, description="d")
        smd.add_service(_add_service())
        rebuilt = ServiceDescriptor(**json.loads(smd.to_json()))
        assert rebuilt.to_dict() == smd.to_dict()
        assert str(rebuilt) == smd.to_json()


class TestDojo:
    """Tests for the Dojo-compatible document form."""

    def test_empty(self):
        """An empty Dojo document has only the header."""
        assert ServiceDescriptor().to_dojo_dict() == {"SMDVersion": ".1", "serviceType": "JSON-RPC"}

    def test_methods(self):
        """Each service becomes a Dojo method entry."""
        smd = ServiceDescriptor(target="/rpc")
        smd.add_service(_add_service())
        smd.add_service(Service("ping"))
        assert smd.to_dojo_dict()["methods"] == [
            {
                "name": "add",
                "serviceURL": "/rpc",
                "parameters": [
                    {"name": "a", "type": "integer"},
                    {"name": "b", "type": "integer"},
                ],
            },
            {"name": "ping", "serviceURL": "/rpc"},
        ]

    def test_unnamed_param_uses_type(self):
        """A param without a name is labeled by its type."""
        smd = ServiceDescriptor()
        smd.add_service({"name": "f", "params": [{"type": "str"}]})
        assert smd.to_dojo_dict()["methods"][0]["parameters"] == [
            {"name": "string", "type": "string"}
        ]

    def test_to_dict_switches_when_compatible(self):
        """dojo_compatible makes to_dict() emit the Dojo form."""
        smd = ServiceDescriptor(dojo_compatible=True)
        assert smd.to_dict()["SMDVersion"] == ".1"
