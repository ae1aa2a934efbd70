# campus_mentor/models/conversation.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict
from datetime import datetime
from enum import Enum

from campus_mentor.models.student import utcnow


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class MessageLogEntry(BaseModel):
    """One line of the write-only chat audit trail"""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    email: str
    role: MessageRole
    content: str
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
