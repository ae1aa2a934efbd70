# campus_mentor/services/memory.py
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from campus_mentor.errors import StorageUnavailable
from campus_mentor.models.conversation import MessageLogEntry, MessageRole
from campus_mentor.models.student import StudentSummary, utcnow

logger = logging.getLogger(__name__)

SUMMARY_COLLECTION = "student_summaries"
MESSAGE_COLLECTION = "student_messages"


@dataclass
class FakeDatabase:
    """In-process stand-in for the Mongo database (demos and tests)"""

    summaries: Dict[str, Dict[str, Any]] = field(default_factory=dict)  # key = email
    messages: List[Dict[str, Any]] = field(default_factory=list)


def get_db(use_fake: bool, uri: str, db_name: str):
    """
    use_fake=True -> FakeDatabase.
    Otherwise -> (AsyncMongoClient, AsyncDatabase); the client connects lazily.
    """
    if use_fake:
        return None, FakeDatabase()

    client = AsyncMongoClient(uri, serverSelectionTimeoutMS=5000)
    return client, client[db_name]


def _is_fake(db) -> bool:
    return isinstance(db, FakeDatabase)


class MemoryService:
    """Reads and upserts the current summary of each student"""

    def __init__(self, db):
        self.db = db
        self.summaries = None if _is_fake(db) else db[SUMMARY_COLLECTION]

    async def get_summary_record(self, email: str) -> Optional[StudentSummary]:
        """Get the stored summary document for a student, if any"""
        if _is_fake(self.db):
            doc = self.db.summaries.get(email)
        else:
            try:
                doc = await self.summaries.find_one({"email": email})
            except PyMongoError as e:
                raise StorageUnavailable(f"summary lookup failed: {e}") from e
        if not doc:
            return None
        try:
            return StudentSummary.model_validate(doc)
        except ValidationError as e:
            # Treated as absent so the next update overwrites it
            logger.warning("Unreadable summary document for %s: %s", email, e)
            return None

    async def get_summary(self, email: str) -> str:
        """Get the current summary text, empty when none exists"""
        record = await self.get_summary_record(email)
        return record.summary if record else ""

    async def upsert_summary(self, email: str, summary: str) -> StudentSummary:
        """Overwrite the student's summary. Last writer wins."""
        record = StudentSummary(email=email, summary=summary, updated_at=utcnow())
        document = record.to_document()

        if _is_fake(self.db):
            self.db.summaries[email] = document
            return record

        try:
            await self.summaries.update_one(
                {"email": email},
                {"$set": document},
                upsert=True,
            )
        except PyMongoError as e:
            raise StorageUnavailable(f"summary upsert failed: {e}") from e
        return record

    async def ping(self) -> bool:
        """Check that the storage backend answers"""
        if _is_fake(self.db):
            return True
        try:
            await self.db.command("ping")
        except PyMongoError as e:
            logger.warning("MongoDB ping failed: %s", e)
            return False
        return True


class MessageLogService:
    """Append-only audit trail of chat messages, disabled unless configured"""

    def __init__(self, db, enabled: bool = False):
        self.db = db
        self.enabled = enabled
        self.messages = None if _is_fake(db) else db[MESSAGE_COLLECTION]

    async def log_message(self, email: str, role: MessageRole, content: str) -> None:
        if not self.enabled:
            return

        document = MessageLogEntry(email=email, role=role, content=content).to_document()
        if _is_fake(self.db):
            self.db.messages.append(document)
            return

        try:
            await self.messages.insert_one(document)
        except PyMongoError as e:
            raise StorageUnavailable(f"message log insert failed: {e}") from e
