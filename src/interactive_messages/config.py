"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with the
INTERACTIVE_MESSAGES_ prefix. No config files, just env vars.

Learn: the adapter reads its defaults from here, but every value can also
be passed explicitly to create_message_adapter(), which is what the tests
do to keep timeouts short.
"""

from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All adapter + transport configuration. Set via INTERACTIVE_MESSAGES_* env vars."""

    # Request signing (used by the HTTP transport, not by dispatch)
    signing_secret: Optional[str] = None
    request_max_age_seconds: int = 300  # reject signed requests older than 5 min

    # Response arbitration
    sync_response_timeout: float = 2.5  # seconds the caller waits for a body
    options_response_limit: float = 30.0  # options handlers have no timer, only this hard cap

    # Outbound webhook deliveries to response_url
    webhook_timeout: float = 10.0

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3000
    actions_path: str = "/slack/actions"

    model_config = {"env_prefix": "INTERACTIVE_MESSAGES_"}

    @model_validator(mode="after")
    def validate_timeouts(self):
        """Timeouts must be positive; a zero budget would never answer synchronously."""
        if self.sync_response_timeout <= 0:
            raise ValueError("INTERACTIVE_MESSAGES_SYNC_RESPONSE_TIMEOUT must be positive")
        if self.webhook_timeout <= 0:
            raise ValueError("INTERACTIVE_MESSAGES_WEBHOOK_TIMEOUT must be positive")
        if self.options_response_limit <= 0:
            raise ValueError("INTERACTIVE_MESSAGES_OPTIONS_RESPONSE_LIMIT must be positive")
        return self

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


# Singleton: import this everywhere
settings = Settings()
