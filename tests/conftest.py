"""Shared fakes: a recording completion client and service wiring over FakeDatabase."""
from __future__ import annotations

import asyncio
from typing import Any, Callable, List, Optional, Tuple

import pytest

from campus_mentor.api.server import Services
from campus_mentor.models.mentor import MentorConfig, ProgramCatalog
from campus_mentor.services.intelligence import IntelligenceService
from campus_mentor.services.memory import FakeDatabase, MemoryService, MessageLogService
from campus_mentor.services.mentor import MentorService


class RecordingLLM:
    """Stand-in for CompletionClient that remembers every call."""

    model = "recording"

    def __init__(
        self,
        replies: Optional[List[str]] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
        responder: Optional[Callable[[str, str], str]] = None,
        available: bool = True,
    ) -> None:
        self.replies = list(replies or [])
        self.error = error
        self.delay = delay
        self.responder = responder
        self.available = available
        self.calls: List[Tuple[str, str]] = []

    async def generate(self, instructions: str, user_input: str) -> str:
        self.calls.append((instructions, user_input))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.responder is not None:
            return self.responder(instructions, user_input)
        if self.replies:
            return self.replies.pop(0)
        return f"reply {len(self.calls)}"

    async def ready(self) -> bool:
        return self.available


def wire_services(
    db: Optional[FakeDatabase] = None,
    reply_llm: Any = None,
    summary_llm: Any = None,
    memory: Optional[MemoryService] = None,
    log_messages: bool = False,
    **mentor_kwargs: Any,
) -> Services:
    db = db if db is not None else FakeDatabase()
    memory = memory or MemoryService(db)
    reply_llm = reply_llm or RecordingLLM()
    summary_llm = summary_llm or RecordingLLM(responder=lambda _, __: "- résumé à jour")
    intelligence = IntelligenceService(memory, summary_llm)
    mentor = MentorService(
        memory_service=memory,
        message_log=MessageLogService(db, enabled=log_messages),
        intelligence=intelligence,
        llm=reply_llm,
        mentor_config=mentor_kwargs.pop("mentor_config", MentorConfig()),
        programs=mentor_kwargs.pop(
            "programs", ProgramCatalog(contexts={"A1": "Bachelor web, 1re année"})
        ),
        **mentor_kwargs,
    )
    return Services(mentor=mentor, memory=memory, llm=reply_llm)


@pytest.fixture
def db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def make_services(db):
    def factory(**kwargs: Any) -> Services:
        kwargs.setdefault("db", db)
        return wire_services(**kwargs)

    return factory
