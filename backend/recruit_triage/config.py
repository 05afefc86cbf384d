"""Application configuration. All sensitive config from .env."""
import logging
from typing import Optional

from pydantic import ValidationError
from pydantic_settings import BaseSettings

from .exceptions import ConfigurationError

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Settings(BaseSettings):
    """App settings from environment. Built once by load_settings() and passed to components."""

    # Mailboxes - RECRUITMENT_MAIL is the inbox we triage; CONSULTING_MAIL is the relay
    # address whose messages carry the candidate in Reply-To.
    recruitment_mail: str
    consulting_mail: Optional[str] = None
    company_name: str = "Ocode Technologies"
    # Sender domains the direct source accepts, e.g. ["gmail.com"]; empty accepts any
    direct_sender_domains: list[str] = []

    # Gmail - paths relative to backend/ or set absolute
    credentials_path: str = "credentials.json"
    token_path: str = "token.pickle"
    gmail_messages_max_results: int = 50

    # AI - set OPENAI_API_KEY for the LLM fallback
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_temperature: float = 0.1
    llm_max_tokens: int = 100
    # Transient LLM errors ("rate limit", "unavailable tool"): sleep then retry once
    llm_retry_delay_s: float = 60.0
    # Sleep after an LLM failure before the pipeline continues
    llm_failure_backoff_s: float = 60.0

    # Redis (dedupe cache and Celery broker)
    redis_url: str = "redis://localhost:6379/0"
    dedupe_ttl_s: int = 3600

    # Celery
    celery_broker_url: Optional[str] = None  # defaults to redis_url if not set
    pipeline_retry_attempts: int = 5
    pipeline_retry_delay_s: int = 5
    # Five-field crontab (minute hour day-of-month month day-of-week)
    pipeline_schedule: str = "0 */2 * * *"
    pipeline_sources: list[str] = ["direct"]

    # Pipeline tuning
    # Width of the extraction foreach (1 = sequential)
    extraction_workers: int = 1
    # Read reply templates from Gmail drafts labelled with the template id
    templates_from_drafts: bool = False
    dry_run: bool = False

    # Trigger endpoint auth - optional static API key
    api_key_header: str = "X-API-Key"
    api_key: str = ""

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def celery_broker(self) -> str:
        return self.celery_broker_url or self.redis_url


def load_settings(**overrides) -> Settings:
    """
    Build and validate settings. Missing required values are fatal:
    raises ConfigurationError so the process fails at startup.
    """
    try:
        settings = Settings(**overrides)
    except ValidationError as e:
        missing = [".".join(str(p) for p in err["loc"]).upper() for err in e.errors()]
        raise ConfigurationError(f"Invalid or missing configuration: {', '.join(missing)}") from e
    if "direct" in settings.pipeline_sources and not settings.consulting_mail:
        raise ConfigurationError("CONSULTING_MAIL environment variable is not set")
    if not settings.openai_api_key:
        raise ConfigurationError("OPENAI_API_KEY not set. Add to .env or environment.")
    return settings


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO), format=LOG_FORMAT)
