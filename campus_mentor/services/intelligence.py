# campus_mentor/services/intelligence.py
import logging
from typing import Optional

from campus_mentor.services.memory import MemoryService
from campus_mentor.utils.keyed_queue import KeyedTaskQueue
from campus_mentor.utils.prompts import (
    NO_PREVIOUS_SUMMARY,
    SUMMARY_SYSTEM_INSTRUCTIONS,
    SUMMARY_UPDATE_TEMPLATE,
)
from campus_mentor.utils.templating import render_template

logger = logging.getLogger(__name__)


class IntelligenceService:
    """Keeps each student's rolling summary up to date after every exchange.

    Updates run detached from the HTTP response. They are serialized per
    student, so an update always reads the summary committed by the previous
    one instead of racing it.
    """

    def __init__(
        self,
        memory_service: MemoryService,
        llm,
        template: str = SUMMARY_UPDATE_TEMPLATE,
        strict_templates: bool = False,
        queue: Optional[KeyedTaskQueue] = None,
    ):
        self.memory_service = memory_service
        self.llm = llm
        self.template = template
        self.strict_templates = strict_templates
        self.queue = queue or KeyedTaskQueue()

    def schedule_summary_update(self, email: str, message: str, reply: str):
        """Queue a summary update without waiting for it"""
        return self.queue.submit(email, lambda: self.update_summary(email, message, reply))

    async def update_summary(self, email: str, message: str, reply: str) -> Optional[str]:
        """Fold the latest exchange into the stored summary.

        Never raises: there is no caller left to report to, so every failure
        is logged and the previous summary stays in place.
        """
        try:
            previous = await self.memory_service.get_summary(email)

            prompt = render_template(
                self.template,
                {
                    "previous_summary": previous or NO_PREVIOUS_SUMMARY,
                    "last_user_message": message,
                    "last_assistant_reply": reply,
                },
                strict=self.strict_templates,
            )
            if not prompt.strip():
                logger.warning("Summary update template is empty, skipping update for %s", email)
                return None

            summary = (await self.llm.generate(SUMMARY_SYSTEM_INSTRUCTIONS, prompt)).strip()
            if not summary:
                logger.warning("Empty summary generated for %s, keeping the previous one", email)
                return None

            await self.memory_service.upsert_summary(email, summary)
            logger.info("Summary updated for %s (%d chars)", email, len(summary))
            return summary

        except Exception as e:
            logger.error("Error updating summary for %s: %s", email, e)
            return None

    async def drain(self, timeout: Optional[float] = None) -> bool:
        return await self.queue.drain(timeout)
