# campus_mentor/models/mentor.py
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from campus_mentor.errors import ConfigurationError

logger = logging.getLogger(__name__)


class MentorConfig(BaseModel):
    """School identity and house rules injected into the mentor prompt"""

    model_config = ConfigDict(frozen=True)

    school_name: str = "École Démo"
    tone: str = "bienveillant, concret, structuré"
    rules: List[str] = [
        "Ne jamais conseiller à l'étudiant de quitter l'école.",
        "Ne pas remettre en cause le programme officiel.",
        "Toujours encourager des stratégies de travail réalistes.",
        "Rediriger vers un humain en cas de détresse ou problème grave.",
    ]

    @field_validator("rules")
    @classmethod
    def _drop_blank_rules(cls, value: List[str]) -> List[str]:
        return [rule.strip() for rule in value if rule and rule.strip()]

    def rules_block(self) -> str:
        """Render the rules as a bulleted block"""
        return "\n".join(f"- {rule}" for rule in self.rules)

    @classmethod
    def from_file(cls, path: str) -> "MentorConfig":
        """Load the mentor config, falling back to defaults if the file is absent"""
        raw = _read_json(path)
        if raw is None:
            logger.warning("Mentor config %s not found, using defaults", path)
            return cls()
        try:
            config = cls.model_validate(raw)
        except ValidationError as e:
            raise ConfigurationError(f"invalid mentor config {path}: {e}") from e
        logger.info("Mentor config loaded from %s (%d rules)", path, len(config.rules))
        return config


class ProgramCatalog(BaseModel):
    """Per-program context text, looked up by the client's programId"""

    model_config = ConfigDict(frozen=True)

    contexts: Dict[str, str] = {}

    def context_for(self, program_id: Optional[str]) -> str:
        if not program_id:
            return ""
        return self.contexts.get(program_id, "")

    @classmethod
    def from_file(cls, path: str) -> "ProgramCatalog":
        raw = _read_json(path)
        if raw is None:
            logger.warning("Program contexts %s not found, no program context will be injected", path)
            return cls()
        try:
            catalog = cls(contexts=raw)
        except ValidationError as e:
            raise ConfigurationError(f"invalid program contexts {path}: {e}") from e
        logger.info("Program contexts loaded for %d programs", len(catalog.contexts))
        return catalog


def _read_json(path: str):
    if not path:
        return None
    try:
        text = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        raise ConfigurationError(f"cannot read {path}: {e}") from e
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"{path} is not valid JSON: {e}") from e
