"""Settings for the recordlayer persistence layer."""

from typing import List, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class RecordLayerSettings(BaseSettings):
    """recordlayer configuration settings."""

    # MongoDB
    MONGO_URI: Optional[str] = None
    MONGO_DB_NAME: Optional[str] = None
    MONGO_CONNECT_TIMEOUT_MS: int = 5000

    # Query compilation
    # Fields stored as full ISO-8601 timestamps but filtered by calendar date
    TIMESTAMP_FIELDS: List[str] = ["createdAt", "updatedAt"]
    SEARCH_LIMIT: int = 0  # 0 means no limit, as in MongoDB

    # Audit stamping applied by transactions carrying a user id
    AUDIT_UPDATED_AT_FIELD: str = "updatedAt"
    AUDIT_UPDATED_BY_FIELD: str = "updatedBy"

    # Dynamic (user-defined) models are identified by an RFC 4122 uid
    DYNAMIC_MODEL_ID_PATTERN: str = r"\b[0-9a-f]{8}\b-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-\b[0-9a-f]{12}\b"

    DEFAULT_DB_MODE: Literal["online", "offline", "memory"] = "online"
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = RecordLayerSettings()
