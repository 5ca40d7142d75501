"""Structured error values returned by the IndieAuth flow."""

from dataclasses import dataclass
from typing import Any, Dict

NOT_CONFIGURED = "not_configured"
INVALID_URL = "invalid_url"
MISSING_AUTHORIZATION_ENDPOINT = "missing_authorization_endpoint"
MISSING_TOKEN_ENDPOINT = "missing_token_endpoint"
INVALID_SESSION = "invalid_session"
INVALID_RESPONSE = "invalid_response"
INDIEAUTH_ERROR = "indieauth_error"
MISSING_STATE = "missing_state"
INVALID_STATE = "invalid_state"
MISSING_ISS = "missing_iss"
INVALID_ISS = "invalid_iss"
INVALID_ISSUER = "invalid_issuer"
INVALID_AUTHORIZATION_ENDPOINT = "invalid_authorization_endpoint"


@dataclass(frozen=True)
class ErrorResult:
    """A terminal failure of an IndieAuth operation.

    ``code`` is either one of the constants in this module or an ``error``
    value echoed verbatim from the authorization server.
    """

    code: str
    description: str = ""
    debug: Any = None

    def as_dict(self) -> Dict[str, Any]:
        response = {
            "error": self.code,
            "error_description": self.description,
        }
        if self.debug:
            response["debug"] = self.debug
        return response
