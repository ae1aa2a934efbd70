# campus_mentor/config.py
import os
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

# Load environment variables
load_dotenv()


def _env_flag(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).lower() == "true"


class Settings(BaseModel):
    """Process-wide settings, read once from the environment"""

    model_config = ConfigDict(frozen=True)

    # MongoDB Configuration
    mongodb_uri: str = os.getenv("MONGODB_URI", "mongodb://localhost:27017/")
    mongodb_db: str = os.getenv("MONGODB_DB", "campus_mentor")
    use_memory_store: bool = _env_flag("USE_MEMORY_STORE")

    # Ollama Configuration
    ollama_base_url: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
    ollama_model: str = os.getenv("OLLAMA_MODEL", "llama3")
    summary_model: str = os.getenv("SUMMARY_MODEL", os.getenv("OLLAMA_MODEL", "llama3"))
    reply_max_tokens: int = int(os.getenv("REPLY_MAX_TOKENS", "400"))
    summary_max_tokens: int = int(os.getenv("SUMMARY_MAX_TOKENS", "200"))
    completion_timeout: float = float(os.getenv("COMPLETION_TIMEOUT", "60"))

    # Mentor content
    mentor_config_path: str = os.getenv("MENTOR_CONFIG_PATH", "config/mentor-config.json")
    program_contexts_path: str = os.getenv("PROGRAM_CONTEXTS_PATH", "config/program-contexts.json")
    mentor_prompt_path: str = os.getenv("MENTOR_PROMPT_PATH", "")
    summary_prompt_path: str = os.getenv("SUMMARY_PROMPT_PATH", "")

    # Feature flags
    mock_mode: bool = _env_flag("MOCK_MODE")
    log_messages: bool = _env_flag("LOG_MESSAGES")
    message_log_background: bool = _env_flag("MESSAGE_LOG_BACKGROUND")
    fallback_on_rate_limit: bool = _env_flag("FALLBACK_ON_RATE_LIMIT")
    strict_templates: bool = _env_flag("STRICT_TEMPLATES")

    # System Configuration
    shutdown_drain_timeout: float = float(os.getenv("SHUTDOWN_DRAIN_TIMEOUT", "10"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    debug: bool = _env_flag("DEBUG")
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "3000"))


settings = Settings()
