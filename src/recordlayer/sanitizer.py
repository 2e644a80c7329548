"""Field sanitizer.

Whitelists inbound record payloads against the accepted fields of their
model before they are written. Static system models are protected from
arbitrary field injection; user-defined dynamic models have no fixed field
list, so their payloads pass through unchanged.
"""

from typing import Any, Dict, Mapping

from .abc import Schema
from .exceptions import RecordLayerError
from .logger import Logger

__all__ = (
    "FieldSanitizer",
    "sanitize",
)


class FieldSanitizer:
    """Clean payloads according to a `Schema`."""

    def __init__(self, schema: Schema) -> None:
        self.schema = schema
        self.logger = Logger(self.__class__.__name__)

    def sanitize(self, payload: Mapping[str, Any], model_id: str) -> Dict[str, Any]:
        """Return the subset of `payload` the model accepts.

        Args:
            payload: Inbound record fields
            model_id: Target model

        Returns:
            A new dict; the input is never modified

        Raises:
            UnknownModelError: If the model is static and not registered
        """
        if not isinstance(payload, Mapping):
            raise RecordLayerError("Payload must be a mapping", model_id=model_id, payload=payload)

        if self.schema.is_dynamic_model(model_id):
            return dict(payload)

        accepted = self.schema.accepted_fields(model_id)
        cleaned = {key: value for key, value in payload.items() if key in accepted}
        dropped = len(payload) - len(cleaned)
        if dropped:
            self.logger.debug(
                "Dropped %d field(s) not accepted by model=%s: %s",
                dropped,
                model_id,
                sorted(key for key in payload if key not in accepted),
            )
        return cleaned


def sanitize(payload: Mapping[str, Any], model_id: str, schema: Schema) -> Dict[str, Any]:
    """Functional form of `FieldSanitizer.sanitize`."""
    return FieldSanitizer(schema).sanitize(payload, model_id)
