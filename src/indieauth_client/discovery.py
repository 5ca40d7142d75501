"""Endpoint discovery for IndieAuth profile URLs.

Endpoints are looked up in three places, in order: the server metadata
document (if one was discovered), HTTP ``Link`` headers of the profile URL,
and ``rel`` links in its HTML. Each fetch is made at most once per
:class:`DiscoveryContext`.
"""

import hashlib
import logging
from typing import Any, Dict, List, Optional

import httpx

from .metadata import decode_metadata
from .rels import parse_html_rels, parse_link_header_rels
from .security import url_is_valid

logger = logging.getLogger(__name__)

METADATA_REL = "indieauth-metadata"


class DiscoveryContext:
    """Caches the fetches and parsed documents of a single flow.

    Keep one context per flow. Nothing is shared between contexts, so a
    metadata document discovered for one user never leaks into another
    user's discovery.
    """

    def __init__(self, http_client: httpx.Client):
        self.http_client = http_client
        self._headers: Dict[str, List[str]] = {}
        self._bodies: Dict[str, str] = {}
        self._parsed: Dict[str, Dict[str, List[str]]] = {}
        self._metadata_bodies: Dict[str, str] = {}
        self._metadata: Optional[Dict[str, Any]] = None

    @property
    def metadata(self) -> Optional[Dict[str, Any]]:
        return self._metadata

    def reset_metadata(self):
        self._metadata_bodies = {}
        self._metadata = None

    def set_metadata(self, url: str, body: str):
        """
        Replace the current metadata with the document fetched from ``url``.

        A body that is not a JSON object leaves the metadata unset.
        """
        self.reset_metadata()
        self._metadata_bodies[url] = body
        self._metadata = decode_metadata(body)

    def _fetch_head(self, url: str) -> List[str]:
        if url not in self._headers:
            logger.debug("HEAD %s", url)
            try:
                response = self.http_client.head(url)
                self._headers[url] = response.headers.get_list("link")
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                logger.warning("Request error fetching headers of %s: %s", url, e)
                self._headers[url] = []
        return self._headers[url]

    def _fetch_body(self, url: str) -> str:
        if url not in self._bodies:
            logger.debug("GET %s", url)
            try:
                self._bodies[url] = self.http_client.get(url).text
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                logger.warning("Request error fetching %s: %s", url, e)
                self._bodies[url] = ""
        return self._bodies[url]

    def _fetch_metadata(self, url: str) -> str:
        if url not in self._metadata_bodies:
            logger.info("Fetching metadata from %s", url)
            try:
                body = self.http_client.get(url).text
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                logger.warning("Request error fetching metadata %s: %s", url, e)
                body = ""
            self.set_metadata(url, body)
        return self._metadata_bodies[url]

    def _discover_from_metadata(self, name: str) -> Optional[str]:
        if not self._metadata:
            return None

        value = self._metadata.get(name)
        if isinstance(value, str) and value:
            return value
        return None

    def _extract_endpoint_from_headers(self, url: str, name: str) -> Optional[str]:
        rels = parse_link_header_rels(self._fetch_head(url), url)
        if rels.get(name):
            return rels[name][0]
        return None

    def _extract_endpoint_from_html(self, url: str, name: str) -> Optional[str]:
        html = self._fetch_body(url)
        if not html:
            return None

        key = f"{hashlib.sha256(html.encode('utf-8')).hexdigest()} {url}"
        if key not in self._parsed:
            self._parsed[key] = parse_html_rels(html, url)

        rels = self._parsed[key]
        if rels.get(name):
            return rels[name][0]
        return None

    def discover_endpoint(self, url: str, name: str) -> Optional[str]:
        """
        Discover the endpoint for the relation ``name`` of ``url``.

        Args:
            url: The profile URL
            name: The relation name, e.g. ``authorization_endpoint``

        Returns:
            The absolute endpoint URL, or None if none was found
        """
        if not url_is_valid(url):
            logger.warning("Not discovering %s for invalid URL %s", name, url)
            return None

        endpoint = self._discover_from_metadata(name)
        if endpoint:
            logger.info("Found %s in metadata: %s", name, endpoint)
            return endpoint

        endpoint = self._extract_endpoint_from_headers(url, name)
        if endpoint:
            logger.info("Found %s in HTTP headers: %s", name, endpoint)
            return endpoint

        endpoint = self._extract_endpoint_from_html(url, name)
        if endpoint:
            logger.info("Found %s in HTML: %s", name, endpoint)
            return endpoint

        logger.info("No %s found for %s", name, url)
        return None

    def discover_metadata_endpoint(self, url: str) -> Optional[str]:
        """
        Discover the metadata endpoint of ``url`` and load its document.

        Returns:
            The metadata endpoint URL, or None if the profile has none
        """
        endpoint = self.discover_endpoint(url, METADATA_REL)
        if endpoint:
            self._fetch_metadata(endpoint)
        return endpoint

    def discover_authorization_endpoint(self, url: str) -> Optional[str]:
        return self.discover_endpoint(url, "authorization_endpoint")

    def discover_token_endpoint(self, url: str) -> Optional[str]:
        return self.discover_endpoint(url, "token_endpoint")

    def discover_revocation_endpoint(self, url: str) -> Optional[str]:
        return self.discover_endpoint(url, "revocation_endpoint")

    def discover_introspection_endpoint(self, url: str) -> Optional[str]:
        return self.discover_endpoint(url, "introspection_endpoint")

    def discover_userinfo_endpoint(self, url: str) -> Optional[str]:
        return self.discover_endpoint(url, "userinfo_endpoint")

    def discover_micropub_endpoint(self, url: str) -> Optional[str]:
        return self.discover_endpoint(url, "micropub")

    def discover_microsub_endpoint(self, url: str) -> Optional[str]:
        return self.discover_endpoint(url, "microsub")
