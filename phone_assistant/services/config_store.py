import os
import json
import logging
from typing import Any, Optional, Protocol, Union
from pydantic import ValidationError
from phone_assistant.core.errors import InvalidStructureError
from phone_assistant.models.assistant import AssistantConfig

logger = logging.getLogger(__name__)

class ConfigStore(Protocol):
    def load(self) -> Optional[AssistantConfig]: ...
    def save(self, assistant_config: AssistantConfig) -> None: ...


def parse_config(payload: Union[str, bytes, dict, Any]) -> AssistantConfig:
    """
    Validates a serialized configuration (JSON text or decoded mapping).
    Raises InvalidStructureError when it cannot be used as a working set.
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError as e:
            raise InvalidStructureError(f"Configuration is not valid JSON: {e}")

    if not isinstance(payload, dict):
        raise InvalidStructureError("Configuration must be a JSON object")
    if not payload.get("id"):
        raise InvalidStructureError("Configuration has no id")
    if not isinstance(payload.get("nodes"), list):
        raise InvalidStructureError("Configuration has no node collection")

    try:
        return AssistantConfig.model_validate(payload)
    except ValidationError as e:
        raise InvalidStructureError(f"Invalid configuration: {e.error_count()} field error(s)") from e


class JsonConfigStore:
    """Keeps the configuration as a single JSON document on disk."""

    def __init__(self, path: str):
        self.path = path

    def load(self) -> Optional[AssistantConfig]:
        if not os.path.exists(self.path):
            return None
        try:
            # json.loads decodes; invalid UTF-8 becomes InvalidStructureError
            with open(self.path, "rb") as f:
                return parse_config(f.read())
        except (OSError, InvalidStructureError) as e:
            logger.warning(f"Ignoring stored configuration at {self.path}: {e}")
            return None

    def save(self, assistant_config: AssistantConfig) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            f.write(assistant_config.to_json())


class MemoryConfigStore:
    def __init__(self, assistant_config: Optional[AssistantConfig] = None):
        self.saved = assistant_config

    def load(self) -> Optional[AssistantConfig]:
        return self.saved

    def save(self, assistant_config: AssistantConfig) -> None:
        self.saved = assistant_config
