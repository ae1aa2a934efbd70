# campus_mentor/models/student.py
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Dict
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StudentSummary(BaseModel):
    """Rolling summary of what the mentor knows about one student"""

    model_config = ConfigDict(populate_by_name=True)

    email: str
    summary: str = ""
    updated_at: datetime = Field(default_factory=utcnow, alias="updatedAt")

    # Older writers stored the raw completion, which may be null
    @field_validator("summary", mode="before")
    @classmethod
    def _lenient_summary(cls, value: Any) -> str:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    @field_validator("updated_at", mode="before")
    @classmethod
    def _missing_timestamp(cls, value: Any) -> Any:
        return datetime.fromtimestamp(0, timezone.utc) if value is None else value

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
