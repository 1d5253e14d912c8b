import logging
import os
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from core.errors import ConfigError, MissingAPIKeyError

logger = logging.getLogger(__name__)

# Environment variable -> Settings field
_ENV_FIELDS = {
    "GEMINI_API_KEY": "gemini_api_key",
    "PARALEGAL_MODEL": "model",
    "PARALEGAL_TEMPERATURE": "temperature",
    "PARALEGAL_MAX_OUTPUT_TOKENS": "max_output_tokens",
    "PARALEGAL_TIMEOUT": "timeout",
    "PARALEGAL_SUCCESS_TASK_TTL": "success_task_ttl",
    "PARALEGAL_ERROR_TASK_TTL": "error_task_ttl",
    "PARALEGAL_LOG_LEVEL": "log_level",
    "PARALEGAL_LOG_FILE": "log_file",
}


class Settings(BaseModel):
    gemini_api_key: Optional[str] = None
    model: str = "gemini-1.5-flash"
    temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=2048, gt=0)
    timeout: float = Field(default=30.0, gt=0)
    # Seconds a finished background task stays visible before removal
    success_task_ttl: float = Field(default=5.0, ge=0)
    error_task_ttl: float = Field(default=15.0, ge=0)
    log_level: str = "INFO"
    log_file: Optional[str] = "paralegal_dispatch.log"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, dotenv: bool = True) -> "Settings":
        """Build settings from the process environment (and `.env` when present)."""
        if environ is None:
            if dotenv:
                load_dotenv()
            environ = os.environ

        values = {}
        for env_name, field_name in _ENV_FIELDS.items():
            raw = environ.get(env_name)
            if raw is None or raw.strip() == "":
                continue
            values[field_name] = raw.strip()

        if values.get("log_file", "").lower() in ("none", "off"):
            values["log_file"] = None

        try:
            return cls(**values)
        except ValidationError as e:
            logger.error("Invalid configuration: %s", e)
            raise ConfigError(f"Invalid configuration: {e}") from e

    def require_api_key(self) -> str:
        """Ensure required API key exists"""
        if not self.gemini_api_key:
            logger.error("Missing GEMINI_API_KEY in environment")
            raise MissingAPIKeyError("GEMINI_API_KEY not found in environment variables")
        return self.gemini_api_key
