"""Configuration for the IndieAuth client."""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0
# Some sites serve different markup to non-browser user agents
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36 indieauth-client/0.1.0"
)
MIN_STATE_BYTES = 8


@dataclass
class ClientConfig:
    """Settings shared by every flow a client runs.

    ``client_id`` and ``redirect_uri`` may be left unset here; starting a flow
    without them fails with ``not_configured``.
    """

    client_id: Optional[str] = None
    redirect_uri: Optional[str] = None
    user_agent: str = DEFAULT_USER_AGENT
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    state_byte_count: int = MIN_STATE_BYTES

    def __post_init__(self):
        """Validate settings after initialization."""
        if self.timeout_seconds <= 0:
            raise ConfigurationError("timeout_seconds must be positive")
        if self.state_byte_count < MIN_STATE_BYTES:
            raise ConfigurationError(
                f"state_byte_count must be at least {MIN_STATE_BYTES}"
            )

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.redirect_uri)


def load_config(env_file: Optional[str] = None) -> ClientConfig:
    """
    Build a ClientConfig from environment variables.

    Values from a ``.env`` file are loaded first without overriding variables
    already set in the environment.

    Environment variables:
        INDIEAUTH_CLIENT_ID: The client_id URL of this application
        INDIEAUTH_REDIRECT_URI: The callback URL registered for the client
        INDIEAUTH_USER_AGENT: Overrides the default User-Agent
        INDIEAUTH_HTTP_TIMEOUT: Request timeout in seconds
        INDIEAUTH_STATE_BYTES: Random bytes used for the state parameter

    Args:
        env_file: Optional path to a ``.env`` file

    Returns:
        The loaded configuration

    Raises:
        ConfigurationError: If a numeric setting cannot be parsed
    """
    load_dotenv(env_file)

    try:
        timeout_seconds = float(
            os.getenv("INDIEAUTH_HTTP_TIMEOUT", DEFAULT_TIMEOUT_SECONDS)
        )
        state_byte_count = int(os.getenv("INDIEAUTH_STATE_BYTES", MIN_STATE_BYTES))
    except ValueError as e:
        raise ConfigurationError(f"Invalid numeric setting: {e}") from e

    config = ClientConfig(
        client_id=os.getenv("INDIEAUTH_CLIENT_ID"),
        redirect_uri=os.getenv("INDIEAUTH_REDIRECT_URI"),
        user_agent=os.getenv("INDIEAUTH_USER_AGENT", DEFAULT_USER_AGENT),
        timeout_seconds=timeout_seconds,
        state_byte_count=state_byte_count,
    )

    if not config.is_configured:
        logger.warning(
            "INDIEAUTH_CLIENT_ID or INDIEAUTH_REDIRECT_URI is not set; "
            "flows will fail with not_configured"
        )

    return config
