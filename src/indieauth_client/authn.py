"""IndieAuth authentication flow.

:class:`IndieAuthClient` runs the two halves of the flow: ``begin`` discovers
the user's endpoints and returns the URL to redirect them to, and
``complete`` verifies the callback and redeems the authorization code.

Both return ``(result, None)`` on success and ``(None, ErrorResult)`` on
failure. Flow state lives in a session mapping owned by the caller, e.g. a
Flask or Starlette session, and is removed whenever a flow ends.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, MutableMapping, Optional, Tuple

import httpx

from .config import ClientConfig
from .discovery import DiscoveryContext
from .errors import (
    INDIEAUTH_ERROR,
    INVALID_AUTHORIZATION_ENDPOINT,
    INVALID_RESPONSE,
    INVALID_SESSION,
    INVALID_URL,
    MISSING_AUTHORIZATION_ENDPOINT,
    MISSING_TOKEN_ENDPOINT,
    NOT_CONFIGURED,
    ErrorResult,
)
from .identity import normalize_me_url
from .metadata import discover_issuer
from .oauth import (
    TokenExchangeResult,
    TokenRequest,
    build_authorization_url,
    exchange_authorization_code,
    generate_code_verifier,
    generate_state_parameter,
    parse_non_profile_scopes,
)
from .security import (
    create_hardened_client,
    validate_issuer_match,
    validate_state_match,
)
from .session import SessionState, clear_session

logger = logging.getLogger(__name__)


@dataclass
class TokenResponse:
    """A successful authorization code exchange."""

    me: str
    response: Dict[str, Any] = field(default_factory=dict)
    raw_response: str = ""
    response_code: Optional[int] = None

    @property
    def access_token(self) -> Optional[str]:
        return self.response.get("access_token")

    @property
    def token_type(self) -> Optional[str]:
        return self.response.get("token_type")

    @property
    def scope(self) -> Optional[str]:
        return self.response.get("scope")

    @property
    def refresh_token(self) -> Optional[str]:
        return self.response.get("refresh_token")

    @property
    def expires_in(self) -> Optional[Any]:
        return self.response.get("expires_in")

    @property
    def profile(self) -> Optional[Dict[str, Any]]:
        return self.response.get("profile")


class IndieAuthClient:
    """Client side of the IndieAuth authorization code flow."""

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.config = config or ClientConfig()
        self.http_client = http_client or create_hardened_client(
            timeout_seconds=self.config.timeout_seconds,
            user_agent=self.config.user_agent,
        )

    def _error_response(
        self,
        session: MutableMapping[str, Any],
        code: str,
        description: str,
        debug: Any = None,
    ) -> Tuple[None, ErrorResult]:
        clear_session(session)
        return None, ErrorResult(code, description, debug)

    def begin(
        self,
        session: MutableMapping[str, Any],
        url: str,
        scope: Optional[str] = None,
        authorization_endpoint: Optional[str] = None,
    ) -> Tuple[Optional[str], Optional[ErrorResult]]:
        """
        Start an authorization flow for the profile URL a user entered.

        Args:
            session: The caller's session mapping for this user
            url: The profile URL as entered, e.g. ``example.com``
            scope: Optional space-separated scopes to request
            authorization_endpoint: Use this authorization endpoint instead of
                                    discovering one (for delegated login
                                    services)

        Returns:
            ``(authorization_url, None)`` or ``(None, ErrorResult)``
        """
        clear_session(session)

        if not self.config.is_configured:
            return self._error_response(
                session,
                NOT_CONFIGURED,
                "Before you can begin, you need to configure the client_id "
                "and redirect_uri of the IndieAuth client",
            )

        me = normalize_me_url(url)
        if not me:
            logger.warning("Rejected invalid profile URL: %s", url)
            return self._error_response(
                session, INVALID_URL, "The URL provided was invalid"
            )

        context = DiscoveryContext(self.http_client)

        issuer = None
        metadata_endpoint = context.discover_metadata_endpoint(me)
        if metadata_endpoint:
            issuer, error = discover_issuer(context.metadata, metadata_endpoint)
            if error:
                clear_session(session)
                return None, error

        if not authorization_endpoint:
            authorization_endpoint = context.discover_authorization_endpoint(me)

        if not authorization_endpoint:
            return self._error_response(
                session,
                MISSING_AUTHORIZATION_ENDPOINT,
                "Could not find your authorization endpoint",
            )

        token_endpoint = None
        if parse_non_profile_scopes(scope):
            token_endpoint = context.discover_token_endpoint(me)
            if not token_endpoint:
                return self._error_response(
                    session,
                    MISSING_TOKEN_ENDPOINT,
                    "Could not find your token endpoint. The token endpoint is "
                    "required when requesting non-profile scopes",
                )

        state = generate_state_parameter(self.config.state_byte_count)
        code_verifier = generate_code_verifier()

        SessionState(
            entered_url=me,
            state=state,
            code_verifier=code_verifier,
            authorization_endpoint=authorization_endpoint,
            token_endpoint=token_endpoint,
            issuer=issuer,
        ).save(session)

        authorization_url = build_authorization_url(
            authorization_endpoint,
            me=me,
            redirect_uri=self.config.redirect_uri,
            client_id=self.config.client_id,
            state=state,
            scope=scope,
            code_verifier=code_verifier,
        )

        logger.info("Began IndieAuth flow for %s", me)
        return authorization_url, None

    def complete(
        self, session: MutableMapping[str, Any], params: Dict[str, str]
    ) -> Tuple[Optional[TokenResponse], Optional[ErrorResult]]:
        """
        Finish the flow with the query parameters of the redirect callback.

        The session is cleared whatever the outcome, so a callback can be
        completed at most once.

        Args:
            session: The caller's session mapping for this user
            params: The callback query parameters (``code``, ``state``,
                    ``iss``, or ``error``/``error_description``)

        Returns:
            ``(TokenResponse, None)`` or ``(None, ErrorResult)``
        """
        flow = SessionState.load(session)
        if flow is None:
            return self._error_response(
                session,
                INVALID_SESSION,
                "The session was missing data. Ensure that you are "
                "initializing the session before using this library",
            )

        if params.get("error"):
            logger.warning("Authorization server returned %s", params["error"])
            return self._error_response(
                session, params["error"], params.get("error_description", "")
            )

        if not params.get("code"):
            return self._error_response(
                session,
                INVALID_RESPONSE,
                "The response from the authorization server did not return an "
                "authorization code or error information",
            )

        error = validate_state_match(params, flow.state)
        if error is None:
            error = validate_issuer_match(params, flow.issuer)
        if error:
            clear_session(session)
            return None, error

        exchange = exchange_authorization_code(
            self.http_client,
            flow.token_endpoint or flow.authorization_endpoint,
            TokenRequest(
                code=params["code"],
                redirect_uri=self.config.redirect_uri,
                client_id=self.config.client_id,
                code_verifier=flow.code_verifier,
            ),
        )

        me = exchange.response.get("me")
        if not me:
            code, description = self._exchange_error(exchange)
            return self._error_response(session, code, description, exchange.as_dict())

        if not isinstance(me, str):
            logger.error("Token response returned a non-string me: %r", me)
            return self._error_response(
                session,
                INVALID_RESPONSE,
                "The authorization server returned an invalid profile URL",
                exchange.as_dict(),
            )

        # A server may only vouch for profiles that delegate to it
        if me != flow.entered_url:
            context = DiscoveryContext(self.http_client)
            context.discover_metadata_endpoint(me)
            authorization_endpoint = context.discover_authorization_endpoint(me)

            if authorization_endpoint != flow.authorization_endpoint:
                logger.error(
                    "Returned profile %s uses authorization endpoint %s, not %s",
                    me,
                    authorization_endpoint,
                    flow.authorization_endpoint,
                )
                return self._error_response(
                    session,
                    INVALID_AUTHORIZATION_ENDPOINT,
                    "The authorization server of the returned profile URL did "
                    "not match the initial authorization server",
                    exchange.as_dict(),
                )

        normalized_me = normalize_me_url(me)
        if not normalized_me:
            return self._error_response(
                session,
                INVALID_RESPONSE,
                "The authorization server returned an invalid profile URL",
                exchange.as_dict(),
            )

        clear_session(session)
        logger.info("Completed IndieAuth flow for %s", normalized_me)

        return (
            TokenResponse(
                me=normalized_me,
                response=exchange.response,
                raw_response=exchange.raw_response,
                response_code=exchange.response_code,
            ),
            None,
        )

    @staticmethod
    def _exchange_error(exchange: TokenExchangeResult) -> Tuple[str, str]:
        details = exchange.response_details
        response = exchange.response

        code = details.get("error") or response.get("error") or INDIEAUTH_ERROR
        description = (
            details.get("error_description")
            or response.get("error_description")
            or "The authorization server did not return a valid response"
        )
        return code, description

    def discover(self, url: str, name: str) -> Optional[str]:
        """
        Discover one endpoint of a profile URL, e.g. ``micropub``.

        The profile's metadata document is consulted first when it has one.
        """
        me = normalize_me_url(url)
        if not me:
            return None

        context = DiscoveryContext(self.http_client)
        context.discover_metadata_endpoint(me)
        return context.discover_endpoint(me, name)

    def discover_metadata(self, url: str) -> Optional[Dict[str, Any]]:
        """Return the decoded metadata document of a profile URL, if any."""
        me = normalize_me_url(url)
        if not me:
            return None

        context = DiscoveryContext(self.http_client)
        context.discover_metadata_endpoint(me)
        return context.metadata
