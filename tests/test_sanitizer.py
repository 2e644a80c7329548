"""Tests for the field sanitizer and the model registry."""

import pytest

from recordlayer.exceptions import RecordLayerError, UnknownModelError
from recordlayer.registry import ModelRegistry
from recordlayer.sanitizer import FieldSanitizer, sanitize


class TestFieldSanitizer:
    def test_static_model_drops_unknown_fields(self, registry):
        payload = {"firstName": "Bob", "lastName": "Wilson", "foo": "bar"}
        assert sanitize(payload, "user", registry) == {"firstName": "Bob", "lastName": "Wilson"}

    def test_system_fields_are_accepted(self, registry):
        payload = {"firstName": "Bob", "accessRead": ["*"], "updatedBy": "john@example.com", "isAdmin": True}
        assert sanitize(payload, "user", registry) == {
            "firstName": "Bob",
            "accessRead": ["*"],
            "updatedBy": "john@example.com",
        }

    def test_key_order_is_preserved(self, registry):
        cleaned = sanitize({"lastName": "W", "junk": 1, "email": "e", "firstName": "B"}, "user", registry)
        assert list(cleaned) == ["lastName", "email", "firstName"]

    def test_dynamic_model_passes_through(self, registry, dynamic_model_id):
        payload = {"anything": 1, "at": "all"}
        assert sanitize(payload, dynamic_model_id, registry) == payload

    def test_result_is_a_copy(self, registry, dynamic_model_id):
        payload = {"firstName": "Bob"}
        assert sanitize(payload, dynamic_model_id, registry) is not payload
        cleaned = sanitize(payload, "user", registry)
        cleaned["firstName"] = "Alice"
        assert payload == {"firstName": "Bob"}

    def test_unknown_static_model_raises(self, registry):
        with pytest.raises(UnknownModelError) as exc:
            sanitize({"a": 1}, "invoice", registry)
        assert exc.value.details["model_id"] == "invoice"

    def test_non_mapping_payload_raises(self, registry):
        with pytest.raises(RecordLayerError):
            FieldSanitizer(registry).sanitize(["firstName"], "user")


class TestModelRegistry:
    def test_register_adds_default_fields(self):
        reg = ModelRegistry()
        reg.register("user", ["email"])
        accepted = reg.accepted_fields("user")
        assert {"email", "id", "createdAt", "deletedBy"} <= accepted

    def test_register_without_defaults(self):
        reg = ModelRegistry()
        reg.register("user", ["email"], include_defaults=False)
        assert reg.accepted_fields("user") == {"email"}

    def test_accepted_fields_is_a_copy(self, registry):
        registry.accepted_fields("user").add("isAdmin")
        assert "isAdmin" not in registry.accepted_fields("user")

    def test_membership_and_unregister(self, registry):
        assert "user" in registry
        registry.unregister("user")
        assert "user" not in registry
        assert "user" not in registry.models()

    def test_dynamic_models_are_uids(self, registry, dynamic_model_id):
        assert registry.is_dynamic_model(dynamic_model_id)
        assert not registry.is_dynamic_model("user")

    def test_custom_dynamic_model_pattern(self):
        reg = ModelRegistry(dynamic_model_pattern=r"^dyn_")
        assert reg.is_dynamic_model("dyn_orders")
        assert not reg.is_dynamic_model("01f6c940-e247-4d85-9f35-e3d59ea49289")
