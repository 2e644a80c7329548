"""In-process model registry implementing the `Schema` boundary."""

from typing import Dict, Iterable, List, Optional, Set

from .abc import Schema
from .constants import DEFAULT_ACCEPTED_FIELDS
from .exceptions import UnknownModelError
from .logger import Logger
from .utils import is_uid


class ModelRegistry(Schema):
    """Registry of statically declared models and their accepted fields.

    Static models get their declared fields plus the system fields every
    record carries (ids, access lists, audit stamps). Models whose id is a
    generated uid are dynamic: they have no whitelist at all.

    Examples:
        >>> registry = ModelRegistry()
        >>> registry.register("user", ["email", "firstName", "lastName"])
        >>> "firstName" in registry.accepted_fields("user")
        True
        >>> registry.is_dynamic_model("01f6c940-e247-4d85-9f35-e3d59ea49289")
        True
    """

    def __init__(self, dynamic_model_pattern: Optional[str] = None) -> None:
        self._models: Dict[str, Set[str]] = {}
        self._dynamic_model_pattern = dynamic_model_pattern
        self.logger = Logger(self.__class__.__name__)

    def register(self, model_id: str, fields: Iterable[str], include_defaults: bool = True) -> None:
        accepted: Set[str] = set(DEFAULT_ACCEPTED_FIELDS) if include_defaults else set()
        accepted.update(fields)
        self._models[model_id] = accepted
        self.logger.debug("Registered model=%s fields=%d", model_id, len(accepted))

    def unregister(self, model_id: str) -> None:
        self._models.pop(model_id, None)

    def models(self) -> List[str]:
        return list(self._models)

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._models

    def accepted_fields(self, model_id: str) -> Set[str]:
        try:
            return set(self._models[model_id])
        except KeyError:
            raise UnknownModelError("Model is not registered", model_id=model_id) from None

    def is_dynamic_model(self, model_id: str) -> bool:
        return is_uid(model_id, self._dynamic_model_pattern)
