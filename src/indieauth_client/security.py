"""Security functions for the IndieAuth client."""

import logging
import secrets
from typing import Mapping, Optional
from urllib.parse import urlsplit

import httpx
import validators

from .config import DEFAULT_TIMEOUT_SECONDS, DEFAULT_USER_AGENT
from .errors import (
    INVALID_ISS,
    INVALID_STATE,
    MISSING_ISS,
    MISSING_STATE,
    ErrorResult,
)

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = ("http", "https")


def create_hardened_client(
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    user_agent: str = DEFAULT_USER_AGENT,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """Create the HTTP client used for discovery and code exchange.

    Profile pages commonly sit behind redirects (http to https, bare domain
    to www), so redirects are followed.

    Args:
        timeout_seconds: Request timeout in seconds
        user_agent: The User-Agent header sent with every request
        transport: Optional transport, mainly for tests

    Returns:
        Configured httpx.Client instance
    """
    return httpx.Client(
        timeout=httpx.Timeout(
            connect=timeout_seconds,
            read=timeout_seconds,
            write=timeout_seconds,
            pool=5.0,
        ),
        limits=httpx.Limits(
            max_keepalive_connections=5, max_connections=10, keepalive_expiry=30.0
        ),
        headers={"User-Agent": user_agent},
        follow_redirects=True,
        verify=True,
        http2=True,
        transport=transport,
    )


def validate_scheme(scheme: str) -> bool:
    return scheme in ALLOWED_SCHEMES


def url_is_valid(url: str) -> bool:
    """
    Check that a URL can be used for endpoint discovery.

    The URL must be an http or https URL with a host. Single-label hosts such
    as ``localhost`` are allowed.

    Args:
        url: The URL to check

    Returns:
        True if discovery may be attempted against the URL
    """
    if not url or not isinstance(url, str):
        return False

    try:
        if not urlsplit(url).hostname:
            return False
    except ValueError:
        logger.debug("URL could not be parsed: %s", url)
        return False

    result = validators.url(
        url,
        simple_host=True,
        strict_query=False,
        may_have_port=True,
        validate_scheme=validate_scheme,
    )
    if isinstance(result, validators.ValidationError):
        logger.debug("URL failed validation: %s", url)
        return False
    return True


def validate_state_match(
    params: Mapping[str, str], expected_state: str = ""
) -> Optional[ErrorResult]:
    """
    Compare the ``state`` returned to the callback with the stored one.

    The comparison is exact and case-sensitive.

    Args:
        params: The callback query parameters
        expected_state: The state generated when the flow began

    Returns:
        None if the state matches, otherwise an ErrorResult
    """
    if params.get("state") is None:
        logger.error("Authorization response is missing the state parameter")
        return ErrorResult(
            MISSING_STATE,
            "The authorization server did not return the state parameter",
        )

    if not secrets.compare_digest(
        params["state"].encode(), expected_state.encode()
    ):
        logger.error("Authorization response state does not match the session")
        return ErrorResult(
            INVALID_STATE,
            "The authorization server returned an invalid state parameter",
        )

    return None


def validate_issuer_match(
    params: Mapping[str, str], expected_issuer: Optional[str] = None
) -> Optional[ErrorResult]:
    """
    Compare the ``iss`` returned to the callback with the validated issuer.

    Args:
        params: The callback query parameters
        expected_issuer: The issuer validated when the flow began, if any

    Returns:
        None if no issuer is expected or it matches, otherwise an ErrorResult
    """
    if not expected_issuer:
        return None

    if params.get("iss") is None:
        logger.error("Authorization response is missing the iss parameter")
        return ErrorResult(
            MISSING_ISS,
            "The authorization server did not return the iss parameter",
        )

    if params["iss"] != expected_issuer:
        logger.error(
            "Authorization response iss %s does not match issuer %s",
            params["iss"],
            expected_issuer,
        )
        return ErrorResult(
            INVALID_ISS,
            "The authorization server returned an invalid iss parameter",
        )

    return None
