"""Rel-link extraction from HTTP Link headers and HTML documents."""

import logging
import urllib.request
from typing import Dict, Iterable, List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)


def _resolve(base_url: str, target: str) -> Optional[str]:
    try:
        return urljoin(base_url, target)
    except ValueError:
        logger.debug("Skipping unresolvable link target: %s", target)
        return None


def _add_rels(rels: Dict[str, List[str]], rel_value: Iterable[str], target: str):
    for name in rel_value:
        name = name.strip().lower()
        if name:
            rels.setdefault(name, []).append(target)


def parse_link_header_rels(
    header_values: Iterable[str], base_url: str
) -> Dict[str, List[str]]:
    """
    Parse HTTP ``Link`` header values into a mapping of rel to target URLs.

    Args:
        header_values: Raw ``Link`` header values, each possibly holding
                       several comma-separated links
        base_url: The URL the headers were fetched from, used to resolve
                  relative targets

    Returns:
        Relation names mapped to their absolute target URLs, in header order
    """
    rels: Dict[str, List[str]] = {}

    for header_value in header_values:
        for link in urllib.request.parse_http_list(header_value):
            target, _, params = link.strip().partition(";")
            target = target.strip()
            if not (target.startswith("<") and target.endswith(">")):
                logger.debug("Skipping malformed Link header value: %s", link)
                continue

            target = _resolve(base_url, target[1:-1].strip())
            if target is None:
                continue

            for param in params.split(";"):
                key, _, value = param.partition("=")
                if key.strip().lower() == "rel":
                    _add_rels(rels, value.strip().strip('"').split(), target)

    return rels


def parse_html_rels(html: str, base_url: str) -> Dict[str, List[str]]:
    """
    Parse ``<link>`` and ``<a>`` elements with a ``rel`` attribute.

    A ``<base href>`` in the document takes part in resolving relative
    targets, as it would in a browser.

    Args:
        html: The HTML document
        base_url: The URL the document was fetched from

    Returns:
        Relation names mapped to their absolute target URLs, in document order
    """
    soup = BeautifulSoup(html, "html.parser")

    base = soup.find("base", href=True)
    if base is not None:
        base_url = _resolve(base_url, base["href"]) or base_url

    rels: Dict[str, List[str]] = {}
    for element in soup.find_all(["link", "a"], rel=True):
        href = element.get("href")
        if href is None:
            continue

        rel_value = element["rel"]
        if isinstance(rel_value, str):
            rel_value = rel_value.split()

        target = _resolve(base_url, href.strip())
        if target is not None:
            _add_rels(rels, rel_value, target)

    return rels
