"""IndieAuth Client.

This package implements the client side of IndieAuth, the OAuth 2.0 profile
in which a user's own URL is both their identity and the way to find their
authorization server. It handles profile URL normalization, endpoint and
metadata discovery, the PKCE authorization code flow, and the security
checks that bind the returned identity to the server that issued it.

Key features:
- Profile URL normalization
- Endpoint discovery from metadata, HTTP Link headers and HTML
- IndieAuth server metadata and issuer validation
- OAuth 2.0 authorization code flow with PKCE (S256)
- State, issuer and authorization endpoint verification on callback

Example usage:
    >>> import indieauth_client
    >>> client = indieauth_client.IndieAuthClient(indieauth_client.load_config())
    >>> url, error = client.begin(session, "example.com", scope="profile create")
"""

import logging

from .authn import IndieAuthClient, TokenResponse
from .config import ClientConfig, load_config
from .discovery import DiscoveryContext
from .errors import ErrorResult
from .exceptions import (
    ConfigurationError,
    IndieAuthClientError,
    InvalidParameterError,
)
from .identity import build_url, normalize_me_url
from .metadata import decode_metadata, discover_issuer, is_issuer_valid
from .oauth import (
    TokenExchangeResult,
    TokenRequest,
    build_authorization_url,
    exchange_authorization_code,
    generate_code_challenge,
    generate_code_verifier,
    generate_state_parameter,
    parse_non_profile_scopes,
)
from .rels import parse_html_rels, parse_link_header_rels
from .security import (
    create_hardened_client,
    url_is_valid,
    validate_issuer_match,
    validate_state_match,
)
from .session import SessionState, clear_session

# Set up null handler to prevent "No handler found" warnings
logging.getLogger(__name__).addHandler(logging.NullHandler())

# Version information
__version__ = "0.1.0"


__all__ = [
    # Core functionality
    "IndieAuthClient",
    "TokenResponse",
    "DiscoveryContext",
    "normalize_me_url",
    "build_url",
    "decode_metadata",
    "discover_issuer",
    "is_issuer_valid",
    "generate_state_parameter",
    "generate_code_verifier",
    "generate_code_challenge",
    "parse_non_profile_scopes",
    "build_authorization_url",
    "exchange_authorization_code",
    "TokenRequest",
    "TokenExchangeResult",
    "parse_link_header_rels",
    "parse_html_rels",
    "create_hardened_client",
    "url_is_valid",
    "validate_state_match",
    "validate_issuer_match",
    "SessionState",
    "clear_session",
    # Configuration
    "ClientConfig",
    "load_config",
    # Errors
    "ErrorResult",
    "IndieAuthClientError",
    "InvalidParameterError",
    "ConfigurationError",
]
