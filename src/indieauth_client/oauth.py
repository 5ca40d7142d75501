"""OAuth functionality for IndieAuth."""

import json
import logging
import secrets
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit

import httpx
from authlib.oauth2.rfc7636 import create_s256_code_challenge

from .config import MIN_STATE_BYTES
from .exceptions import InvalidParameterError
from .identity import build_url

logger = logging.getLogger(__name__)

PROFILE_SCOPES = ("profile", "email")
TOKEN_ACCEPT_HEADER = "application/json, application/x-www-form-urlencoded;q=0.8"
MIN_CODE_VERIFIER_BYTES = 32


@dataclass
class TokenRequest:
    """Parameters for redeeming an authorization code."""

    code: str
    redirect_uri: str
    client_id: str
    code_verifier: Optional[str] = None

    def __post_init__(self):
        """Validate required parameters after initialization."""
        if not self.code:
            raise InvalidParameterError("code is required")
        if not self.redirect_uri:
            raise InvalidParameterError("redirect_uri is required")
        if not self.client_id:
            raise InvalidParameterError("client_id is required")

    def token_request_body(self) -> Dict[str, str]:
        body = {
            "grant_type": "authorization_code",
            "code": self.code,
            "redirect_uri": self.redirect_uri,
            "client_id": self.client_id,
        }
        if self.code_verifier:
            body["code_verifier"] = self.code_verifier
        return body


@dataclass
class TokenExchangeResult:
    """The raw outcome of an authorization code exchange.

    ``response`` is the decoded body. ``response_details`` carries
    transport-level information, including ``error`` and
    ``error_description`` when the request itself failed.
    """

    response: Dict[str, Any]
    raw_response: str = ""
    response_code: Optional[int] = None
    response_details: Dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "response": self.response,
            "raw_response": self.raw_response,
            "response_code": self.response_code,
            "response_details": self.response_details,
        }


def generate_state_parameter(byte_count: int = MIN_STATE_BYTES) -> str:
    """
    Generate a random state value for an authorization request.

    Args:
        byte_count: Number of random bytes, at least 8

    Returns:
        The random bytes, hex-encoded
    """
    if byte_count < MIN_STATE_BYTES:
        raise InvalidParameterError(
            f"State must use at least {MIN_STATE_BYTES} random bytes"
        )

    state = secrets.token_hex(byte_count)
    logger.debug("Generated OAuth state parameter (%d characters)", len(state))
    return state


def generate_code_verifier(byte_count: int = MIN_CODE_VERIFIER_BYTES) -> str:
    """
    Generate a PKCE code_verifier.

    Hex-encoding 32 bytes gives 64 characters, inside the 43 to 128
    characters allowed by RFC 7636.

    Args:
        byte_count: Number of random bytes, 32 to 64

    Returns:
        The random bytes, hex-encoded
    """
    if byte_count < MIN_CODE_VERIFIER_BYTES or byte_count > 64:
        raise InvalidParameterError(
            "Code verifier must use between 32 and 64 random bytes"
        )

    code_verifier = secrets.token_hex(byte_count)
    logger.debug("Generated code_verifier (%d characters)", len(code_verifier))
    return code_verifier


def generate_code_challenge(code_verifier: str) -> str:
    """
    Generate the S256 code_challenge for a code_verifier.

    Returns:
        The base64url-encoded SHA-256 digest of the verifier, without padding
    """
    return create_s256_code_challenge(code_verifier)


def parse_non_profile_scopes(scope: Optional[str]) -> List[str]:
    """
    Return the requested scopes other than ``profile`` and ``email``.

    Any scope in this list means an access token is being requested, so a
    token endpoint is required.
    """
    if not scope:
        return []
    return [s for s in scope.split() if s not in PROFILE_SCOPES]


def build_authorization_url(
    authorization_endpoint: str,
    me: str,
    redirect_uri: str,
    client_id: str,
    state: str,
    scope: Optional[str] = None,
    code_verifier: Optional[str] = None,
) -> str:
    """
    Build the URL the user is redirected to for authorization.

    Query parameters already present on the authorization endpoint are
    preserved unless they collide with a protocol parameter.

    Args:
        authorization_endpoint: The discovered authorization endpoint
        me: The normalized profile URL
        redirect_uri: The client's redirect URI
        client_id: The client ID
        state: The state parameter for this flow
        scope: Optional space-separated scopes
        code_verifier: Optional PKCE code_verifier; its S256 challenge is sent

    Returns:
        The authorization URL

    Raises:
        InvalidParameterError: If any required parameter is missing
    """
    required = {
        "authorization_endpoint": authorization_endpoint,
        "me": me,
        "redirect_uri": redirect_uri,
        "client_id": client_id,
        "state": state,
    }
    for name, value in required.items():
        if not value:
            error_msg = f"Cannot build authorization URL: {name} is required"
            logger.error(error_msg)
            raise InvalidParameterError(error_msg)

    parts = urlsplit(authorization_endpoint)

    request = dict(parse_qsl(parts.query, keep_blank_values=True))
    request["response_type"] = "code"
    request["me"] = me
    request["redirect_uri"] = redirect_uri
    request["client_id"] = client_id
    request["state"] = state
    if scope:
        request["scope"] = scope
    if code_verifier:
        request["code_challenge"] = generate_code_challenge(code_verifier)
        request["code_challenge_method"] = "S256"

    try:
        port = parts.port
    except ValueError as e:
        raise InvalidParameterError(
            f"Invalid authorization endpoint: {authorization_endpoint}"
        ) from e

    auth_url = build_url(
        scheme=parts.scheme,
        host=parts.hostname or "",
        port=port,
        username=parts.username,
        password=parts.password,
        path=parts.path,
        query=urlencode(request),
    )
    logger.info("Built authorization URL for %s", authorization_endpoint)
    return auth_url


def _decode_token_response(body: str) -> Dict[str, Any]:
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        data = None

    if isinstance(data, dict) and data:
        return data

    # Legacy servers respond form-encoded
    return dict(parse_qsl(body))


def exchange_authorization_code(
    http_client: httpx.Client, endpoint: str, request: TokenRequest
) -> TokenExchangeResult:
    """
    Redeem an authorization code at the token or authorization endpoint.

    Args:
        http_client: The HTTP client to send the request with
        endpoint: The token endpoint, or the authorization endpoint when only
                  authenticating the user
        request: The code and client parameters

    Returns:
        The decoded response. Transport failures are reported through
        ``response_details`` instead of being raised.
    """
    logger.info("Exchanging authorization code at %s", endpoint)

    try:
        response = http_client.post(
            endpoint,
            data=request.token_request_body(),
            headers={"Accept": TOKEN_ACCEPT_HEADER},
        )
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.error("Request error exchanging authorization code: %s", e)
        return TokenExchangeResult(
            response={},
            response_details={
                "error": "http_error",
                "error_description": str(e),
            },
        )

    body = response.text
    logger.debug(
        "Token response status %d (%d bytes)", response.status_code, len(body)
    )

    return TokenExchangeResult(
        response=_decode_token_response(body),
        raw_response=body,
        response_code=response.status_code,
        response_details={
            "url": str(response.url),
            "headers": dict(response.headers),
        },
    )
