# campus_mentor/api/server.py
"""FastAPI surface: the chat endpoint and the health check."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, Field, ValidationError

from campus_mentor.config import Settings, settings as default_settings
from campus_mentor.errors import (
    GENERIC_FAILURE_MESSAGE,
    BadRequest,
    ConfigurationError,
    MentorError,
)
from campus_mentor.models.mentor import MentorConfig, ProgramCatalog
from campus_mentor.services.completion import (
    CompletionClient,
    MockCompletionClient,
    mock_mentor_reply,
    mock_summary_update,
)
from campus_mentor.services.intelligence import IntelligenceService
from campus_mentor.services.memory import MemoryService, MessageLogService, get_db
from campus_mentor.services.mentor import MentorService
from campus_mentor.utils.prompts import (
    MENTOR_SYSTEM_TEMPLATE,
    SUMMARY_UPDATE_TEMPLATE,
    load_template,
)

logger = logging.getLogger(__name__)


class ChatRequest(BaseModel):
    """Body payload sent by the chat page."""

    email: Optional[str] = None
    message: Optional[str] = None
    program_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("programId", "programID", "program_id"),
    )


class ChatResponse(BaseModel):
    reply: str


@dataclass
class Services:
    """Everything the routes need, built once per process"""

    mentor: MentorService
    memory: MemoryService
    llm: Any
    mongo_client: Any = None


async def build_services(settings: Settings) -> Services:
    """Connect storage, load mentor content and create the completion clients"""
    mongo_client, db = get_db(
        use_fake=settings.use_memory_store,
        uri=settings.mongodb_uri,
        db_name=settings.mongodb_db,
    )
    memory = MemoryService(db)
    if await memory.ping():
        logger.info("Storage ready (%s)", "in-memory" if settings.use_memory_store else settings.mongodb_db)
    else:
        logger.error("MongoDB unreachable at startup; summaries are disabled until it answers")

    mentor_config = MentorConfig.from_file(settings.mentor_config_path)
    programs = ProgramCatalog.from_file(settings.program_contexts_path)
    mentor_template = load_template(settings.mentor_prompt_path, MENTOR_SYSTEM_TEMPLATE)
    summary_template = load_template(settings.summary_prompt_path, SUMMARY_UPDATE_TEMPLATE)

    if settings.mock_mode:
        logger.warning("MOCK_MODE enabled: replies are generated locally")
        reply_llm = MockCompletionClient(mock_mentor_reply)
        summary_llm = MockCompletionClient(mock_summary_update)
    else:
        reply_llm = CompletionClient(
            base_url=settings.ollama_base_url,
            model=settings.ollama_model,
            max_tokens=settings.reply_max_tokens,
            temperature=0.7,
            timeout=settings.completion_timeout,
        )
        summary_llm = CompletionClient(
            base_url=settings.ollama_base_url,
            model=settings.summary_model,
            max_tokens=settings.summary_max_tokens,
            temperature=0.2,
            timeout=settings.completion_timeout,
        )

    intelligence = IntelligenceService(
        memory,
        summary_llm,
        template=summary_template,
        strict_templates=settings.strict_templates,
    )
    mentor = MentorService(
        memory_service=memory,
        message_log=MessageLogService(db, enabled=settings.log_messages),
        intelligence=intelligence,
        llm=reply_llm,
        mentor_config=mentor_config,
        programs=programs,
        template=mentor_template,
        fallback_llm=MockCompletionClient(mock_mentor_reply) if settings.fallback_on_rate_limit else None,
        background_logging=settings.message_log_background,
        strict_templates=settings.strict_templates,
    )
    return Services(mentor=mentor, memory=memory, llm=reply_llm, mongo_client=mongo_client)


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    """Build the FastAPI app. Pass services to bypass the real backends."""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.services = services or await build_services(settings)
        try:
            yield
        finally:
            current: Services = app.state.services
            if not await current.mentor.drain(settings.shutdown_drain_timeout):
                logger.warning("Shutting down with background work still pending")
            if current.mongo_client is not None:
                await current.mongo_client.close()

    app = FastAPI(title="Campus Mentor", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(MentorError)
    async def handle_mentor_error(request: Request, exc: MentorError) -> JSONResponse:
        if isinstance(exc, ConfigurationError):
            logger.error("Configuration error on %s: %s", request.url.path, exc)
        elif exc.status_code >= 500:
            logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content={"reply": exc.public_message})

    @app.exception_handler(Exception)
    async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unexpected error on %s", request.url.path)
        return JSONResponse(status_code=500, content={"reply": GENERIC_FAILURE_MESSAGE})

    @app.post("/api/chat", response_model=ChatResponse)
    async def chat(request: Request) -> ChatResponse:
        try:
            body = await request.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            raise BadRequest("body must be a JSON object")
        try:
            payload = ChatRequest.model_validate(body)
        except ValidationError as exc:
            raise BadRequest(str(exc)) from exc

        mentor: MentorService = request.app.state.services.mentor
        reply = await mentor.respond(payload.email, payload.message, payload.program_id)
        return ChatResponse(reply=reply)

    @app.get("/api/health")
    async def health(request: Request) -> JSONResponse:
        current: Services = request.app.state.services
        llm_ready = await current.llm.ready()
        storage_ready = await current.memory.ping()
        healthy = llm_ready and storage_ready
        return JSONResponse(status_code=200 if healthy else 503, content=healthy)

    return app


app = create_app()
