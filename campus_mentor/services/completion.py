# campus_mentor/services/completion.py
import asyncio
import logging
import re
from datetime import datetime
from typing import Callable

from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import ChatPromptTemplate
from langchain_ollama import ChatOllama
from ollama import AsyncClient, ResponseError

from campus_mentor.errors import RateLimited, UpstreamFailure

logger = logging.getLogger(__name__)

# Status codes the upstream uses to say "slow down" (Ollama answers 503 when its queue is full)
RATE_LIMIT_STATUS_CODES = (429, 503)

MOCK_SUMMARY_MAX_BULLETS = 5
_PREVIOUS_SUMMARY_PATTERN = re.compile(r"Résumé actuel :(.*?)(?:^Dernier message étudiant :|\Z)", re.S | re.M)
_LAST_MESSAGE_PATTERN = re.compile(r"^Dernier message étudiant :(.*?)(?:^Dernière réponse mentor :|\Z)", re.S | re.M)


class CompletionClient:
    """Single-turn text generation: system instructions plus one user input"""

    def __init__(
        self,
        base_url: str,
        model: str,
        max_tokens: int,
        temperature: float = 0.7,
        timeout: float = 60.0,
    ):
        self.model = model
        self.timeout = timeout
        self.llm = ChatOllama(
            base_url=base_url,
            model=model,
            temperature=temperature,
            num_predict=max_tokens,
        )

        # Instructions go in as a variable so braces in them are never parsed
        prompt = ChatPromptTemplate.from_messages([
            ("system", "{instructions}"),
            ("human", "{input}"),
        ])
        self.chain = prompt | self.llm | StrOutputParser()
        self.ollama = AsyncClient(host=base_url)

    async def generate(self, instructions: str, user_input: str) -> str:
        try:
            text = await asyncio.wait_for(
                self.chain.ainvoke({"instructions": instructions, "input": user_input}),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise UpstreamFailure(f"{self.model} did not answer within {self.timeout}s") from e
        except ResponseError as e:
            if e.status_code in RATE_LIMIT_STATUS_CODES:
                raise RateLimited(f"{self.model} rate limited: {e.error}") from e
            raise UpstreamFailure(f"{self.model} failed with {e.status_code}: {e.error}") from e
        except Exception as e:
            raise UpstreamFailure(f"{self.model} call failed: {e!r}") from e

        text = (text or "").strip()
        if not text:
            raise UpstreamFailure(f"{self.model} returned an empty completion")
        return text

    async def ready(self) -> bool:
        """Check that Ollama answers and has the configured model pulled"""
        try:
            listing = await asyncio.wait_for(self.ollama.list(), timeout=min(self.timeout, 5.0))
        except Exception as e:
            logger.warning("Ollama not reachable for %s: %s", self.model, e)
            return False

        names = {getattr(entry, "model", None) for entry in getattr(listing, "models", None) or []}
        if self.model in names or any(name and name.startswith(self.model + ":") for name in names):
            return True
        logger.warning("Model %s is not available on the Ollama server", self.model)
        return False


class MockCompletionClient:
    """Local stand-in used in mock mode and as the rate-limit fallback"""

    model = "mock"

    def __init__(self, responder: Callable[[str, str], str]):
        self.responder = responder

    async def generate(self, instructions: str, user_input: str) -> str:
        return self.responder(instructions, user_input).strip()

    async def ready(self) -> bool:
        return True


def mock_mentor_reply(instructions: str, user_input: str) -> str:
    excerpt = " ".join(user_input.split())[:200]
    return (
        "*(Mode démo : le mentor n'est pas relié au service de génération.)*\n\n"
        f"Tu m'as écrit : « {excerpt} »\n\n"
        "Quelques pistes pour avancer :\n"
        "- Note précisément ce qui te bloque en ce moment.\n"
        "- Découpe ton travail en petites étapes réalistes pour la semaine.\n"
        "- N'hésite pas à en parler à ton référent pédagogique."
    )


def mock_summary_update(instructions: str, user_input: str) -> str:
    """Keep the previous bullets and add one for the latest message, 5 at most"""
    previous = _PREVIOUS_SUMMARY_PATTERN.search(user_input)
    bullets = []
    if previous:
        bullets = [
            line.strip() for line in previous.group(1).splitlines()
            if line.strip().startswith("- ")
        ]

    last_message = _LAST_MESSAGE_PATTERN.search(user_input)
    excerpt = " ".join(last_message.group(1).split())[:120] if last_message else ""
    stamp = datetime.now().strftime("%Y-%m-%d %H:%M")
    bullets.append(f"- {stamp} (mode démo) : {excerpt or 'échange enregistré'}")
    return "\n".join(bullets[-MOCK_SUMMARY_MAX_BULLETS:])
