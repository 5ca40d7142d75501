"""IndieAuth server metadata decoding and issuer validation.

See https://indieauth.spec.indieweb.org/#indieauth-server-metadata
"""

import json
import logging
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlsplit

from .errors import INVALID_ISSUER, ErrorResult
from .identity import normalize_me_url

logger = logging.getLogger(__name__)

METADATA_KEYS = (
    "issuer",
    "authorization_endpoint",
    "token_endpoint",
    "revocation_endpoint",
    "introspection_endpoint",
    "userinfo_endpoint",
    "micropub",
    "microsub",
)


def decode_metadata(body: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Decode a metadata document.

    Args:
        body: The raw response body of the metadata endpoint

    Returns:
        The metadata as a dictionary, or None if the body is not a JSON object
    """
    if not body:
        return None

    try:
        metadata = json.loads(body)
    except json.JSONDecodeError:
        logger.warning("Metadata endpoint did not return valid JSON")
        return None

    if not isinstance(metadata, dict):
        logger.warning("Metadata endpoint did not return a JSON object")
        return None

    logger.debug(
        "Metadata provides %s", ", ".join(k for k in METADATA_KEYS if k in metadata)
    )
    return metadata


def is_issuer_valid(issuer: Any, metadata_endpoint: str) -> bool:
    """
    Check an ``issuer`` claim against the metadata endpoint it was served from.

    The issuer must be an https URL without a query string or fragment, and
    the metadata endpoint must live at or below it.

    Args:
        issuer: The ``issuer`` value from the metadata document
        metadata_endpoint: The URL the metadata document was fetched from

    Returns:
        True if the issuer is valid
    """
    if not isinstance(issuer, str):
        return False

    issuer = normalize_me_url(issuer)
    if not issuer:
        return False

    parts = urlsplit(issuer)

    if parts.scheme != "https":
        return False

    if parts.query or parts.fragment:
        return False

    if not metadata_endpoint.startswith(issuer):
        return False

    return True


def discover_issuer(
    metadata: Optional[Dict[str, Any]], metadata_endpoint: str
) -> Tuple[Optional[str], Optional[ErrorResult]]:
    """
    Read and validate the issuer from already-fetched metadata.

    Args:
        metadata: The decoded metadata document, if any
        metadata_endpoint: The URL the metadata document was fetched from

    Returns:
        ``(issuer, None)`` if the issuer is valid, else ``(None, error)``
    """
    issuer = metadata.get("issuer") if metadata else None
    if not issuer:
        logger.error("No issuer found in metadata from %s", metadata_endpoint)
        return None, ErrorResult(
            INVALID_ISSUER, "No issuer found in metadata endpoint"
        )

    if not is_issuer_valid(issuer, metadata_endpoint):
        logger.error(
            "Issuer %s is not valid for metadata endpoint %s",
            issuer,
            metadata_endpoint,
        )
        return None, ErrorResult(
            INVALID_ISSUER, "Issuer in metadata endpoint is not valid"
        )

    logger.info("Validated issuer %s", issuer)
    return issuer, None
