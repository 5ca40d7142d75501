"""Per-user flow state kept in the host application's session."""

import logging
from dataclasses import asdict, dataclass, fields
from typing import Any, MutableMapping, Optional

logger = logging.getLogger(__name__)

SESSION_PREFIX = "indieauth_"
REQUIRED_KEYS = ("entered_url", "state", "authorization_endpoint")


@dataclass
class SessionState:
    """The data one authorization flow needs between ``begin`` and ``complete``."""

    entered_url: str
    state: str
    authorization_endpoint: str
    code_verifier: Optional[str] = None
    token_endpoint: Optional[str] = None
    issuer: Optional[str] = None

    def save(self, session: MutableMapping[str, Any]):
        for key, value in asdict(self).items():
            if value is not None:
                session[SESSION_PREFIX + key] = value

    @classmethod
    def load(cls, session: MutableMapping[str, Any]) -> Optional["SessionState"]:
        """
        Read the flow state from ``session``.

        Returns:
            The state, or None if any required key is missing
        """
        for key in REQUIRED_KEYS:
            if session.get(SESSION_PREFIX + key) is None:
                logger.warning("Session is missing %s", SESSION_PREFIX + key)
                return None

        return cls(
            **{f.name: session.get(SESSION_PREFIX + f.name) for f in fields(cls)}
        )


def clear_session(session: MutableMapping[str, Any]):
    for f in fields(SessionState):
        session.pop(SESSION_PREFIX + f.name, None)
