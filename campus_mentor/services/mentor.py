# campus_mentor/services/mentor.py
import asyncio
import logging
from typing import Optional, Set

from campus_mentor.errors import BadRequest, ConfigurationError, RateLimited, StorageUnavailable
from campus_mentor.models.conversation import MessageRole
from campus_mentor.models.mentor import MentorConfig, ProgramCatalog
from campus_mentor.services.intelligence import IntelligenceService
from campus_mentor.services.memory import MemoryService, MessageLogService
from campus_mentor.utils.prompts import MENTOR_SYSTEM_TEMPLATE, NO_SUMMARY_PLACEHOLDER
from campus_mentor.utils.templating import render_template

logger = logging.getLogger(__name__)


class MentorService:
    """Answers a student's message with the mentor persona and their summary as context"""

    def __init__(
        self,
        memory_service: MemoryService,
        message_log: MessageLogService,
        intelligence: IntelligenceService,
        llm,
        mentor_config: MentorConfig,
        programs: Optional[ProgramCatalog] = None,
        template: str = MENTOR_SYSTEM_TEMPLATE,
        fallback_llm=None,
        background_logging: bool = False,
        strict_templates: bool = False,
    ):
        self.memory_service = memory_service
        self.message_log = message_log
        self.intelligence = intelligence
        self.llm = llm
        self.mentor_config = mentor_config
        self.programs = programs or ProgramCatalog()
        self.template = template
        self.fallback_llm = fallback_llm
        self.background_logging = background_logging
        self.strict_templates = strict_templates
        self._log_tasks: Set[asyncio.Task] = set()

    async def respond(self, email: str, message: str, program_id: Optional[str] = None) -> str:
        """Generate the mentor's reply and schedule the summary refresh"""
        email = (email or "").strip()
        if not email or not message or not message.strip():
            raise BadRequest("email and message are required")

        await self._log(email, MessageRole.USER, message)

        try:
            summary = await self.memory_service.get_summary(email)
        except StorageUnavailable as e:
            # Personalization is optional; answer without it
            logger.warning("Summary unavailable for %s, answering without it: %s", email, e)
            summary = ""

        system_prompt = self.build_system_prompt(email, summary, program_id)

        try:
            reply = await self.llm.generate(system_prompt, message)
        except RateLimited:
            if self.fallback_llm is None:
                raise
            logger.warning("Completion rate limited for %s, using fallback reply", email)
            reply = await self.fallback_llm.generate(system_prompt, message)

        await self._log(email, MessageRole.ASSISTANT, reply)
        self.intelligence.schedule_summary_update(email, message, reply)
        return reply

    def build_system_prompt(self, email: str, summary: str, program_id: Optional[str] = None) -> str:
        """Render the mentor system prompt for one request"""
        prompt = render_template(
            self.template,
            {
                "email": email,
                "identifier": email,
                "school_name": self.mentor_config.school_name,
                "tone": self.mentor_config.tone,
                "rules": self.mentor_config.rules_block(),
                "summary": summary or NO_SUMMARY_PLACEHOLDER,
                "program_context": self.programs.context_for(program_id),
            },
            strict=self.strict_templates,
        )
        if not prompt.strip():
            logger.error("Mentor system prompt rendered empty; is the template loaded?")
            raise ConfigurationError("mentor system prompt is empty")
        return prompt

    async def drain(self, timeout: Optional[float] = None) -> bool:
        """Wait for background log writes and summary updates to finish.

        Both share one deadline. Returns False if anything is still running
        when it passes.
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout

        logs_done = True
        if self._log_tasks:
            _, pending = await asyncio.wait(set(self._log_tasks), timeout=timeout)
            if pending:
                logger.warning("%d message log writes still running", len(pending))
            logs_done = not pending

        remaining = None if deadline is None else max(0.0, deadline - loop.time())
        updates_done = await self.intelligence.drain(remaining)
        return logs_done and updates_done

    async def _log(self, email: str, role: MessageRole, content: str) -> None:
        if not self.message_log.enabled:
            return
        if self.background_logging:
            task = asyncio.create_task(self._write_log(email, role, content))
            self._log_tasks.add(task)
            task.add_done_callback(self._log_tasks.discard)
        else:
            await self._write_log(email, role, content)

    async def _write_log(self, email: str, role: MessageRole, content: str) -> None:
        try:
            await self.message_log.log_message(email, role, content)
        except Exception as e:
            logger.error("Error logging %s message for %s: %s", role.value, email, e)
