import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Dict
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class NodeType(str, Enum):
    GREETING = "greeting"
    QUESTION = "question"
    ACTION = "action"
    END = "end"
    FORWARD = "forward"

class AnswerFormat(str, Enum):
    SYNTHETIC = "synthetic"
    AUDIOFILE = "audiofile"

class InputMode(str, Enum):
    KEYPRESS = "keypress"
    KEYWORD = "keyword"
    BOTH = "both"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def new_id() -> str:
    return str(uuid.uuid4())


class CamelModel(BaseModel):
    """Wire format uses camelCase keys; Python code uses snake_case attributes."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class KeyOption(CamelModel):
    key: str = ""
    label: str = ""
    ai_keywords: List[str] = []
    # Empty means "unset"; a non-empty id is not checked against the tree
    target_node_id: str = ""


class AssistantNode(CamelModel):
    id: str
    parent_id: Optional[str] = None
    type: NodeType = NodeType.QUESTION
    title: str = ""
    announcement_text: str = Field(
        default="",
        alias="announcementText",
        validation_alias=AliasChoices("announcementText", "announcement_text", "ansageText"),
    )
    localized_titles: Dict[str, str] = {}
    localized_announcement_texts: Dict[str, str] = Field(
        default_factory=dict,
        alias="localizedAnnouncementTexts",
        validation_alias=AliasChoices(
            "localizedAnnouncementTexts", "localized_announcement_texts", "localizedAnsageTexts"
        ),
    )
    format: AnswerFormat = AnswerFormat.SYNTHETIC
    audio_file_name: Optional[str] = None
    tag: Optional[str] = None
    has_options: bool = False
    input_mode: InputMode = InputMode.KEYPRESS
    options: List[KeyOption] = []
    forward_number: Optional[str] = None
    forward_fallback_text: Optional[str] = None
    forward_retrieve_after_seconds: Optional[int] = None
    is_important: bool = False
    order: int = 0

    @field_validator("input_mode", mode="before")
    @classmethod
    def legacy_input_mode(cls, value):
        # Older exports spell the keyword mode "ai_keyword"
        return InputMode.KEYWORD if value == "ai_keyword" else value

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def active_languages(self) -> List[str]:
        """Language codes with at least one translated field, sorted."""
        return sorted(set(self.localized_titles) | set(self.localized_announcement_texts))


class AssistantConfig(CamelModel):
    id: str
    praxis_name: str = ""
    nodes: List[AssistantNode] = []
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)
