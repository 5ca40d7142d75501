"""Tests for endpoint discovery."""

import json
from unittest.mock import patch

import httpx

from indieauth_client.discovery import DiscoveryContext
from indieauth_client.rels import parse_html_rels

PROFILE = "https://example.com/"
METADATA_URL = "https://example.com/.well-known/oauth-authorization-server"


def test_discover_from_link_header(fake_web):
    """Test discovery from HTTP Link headers."""
    fake_web.add_page(PROFILE, links=['</auth>; rel="authorization_endpoint"'])
    context = DiscoveryContext(fake_web.client())

    assert context.discover_authorization_endpoint(PROFILE) == "https://example.com/auth"
    assert fake_web.calls("GET") == []


def test_discover_from_html(fake_web):
    """Test falling back to HTML when headers have no match."""
    fake_web.add_page(
        PROFILE,
        html='<html><head><link rel="token_endpoint" href="/token"></head></html>',
    )
    context = DiscoveryContext(fake_web.client())

    assert context.discover_token_endpoint(PROFILE) == "https://example.com/token"


def test_header_wins_over_html(fake_web):
    """Test that a Link header match takes priority over an HTML match."""
    fake_web.add_page(
        PROFILE,
        html='<link rel="micropub" href="https://html.example.net/micropub">',
        links=['<https://header.example.net/micropub>; rel="micropub"'],
    )
    context = DiscoveryContext(fake_web.client())

    assert context.discover_micropub_endpoint(PROFILE) == "https://header.example.net/micropub"


def test_first_match_wins(fake_web):
    """Test that the first matching link is used."""
    fake_web.add_page(
        PROFILE,
        html='<link rel="microsub" href="/one"><link rel="microsub" href="/two">',
    )
    context = DiscoveryContext(fake_web.client())

    assert context.discover_microsub_endpoint(PROFILE) == "https://example.com/one"


def test_not_found(fake_web):
    """Test that a missing relation gives None."""
    fake_web.add_page(PROFILE, html="<html><body>Hello</body></html>")
    context = DiscoveryContext(fake_web.client())

    assert context.discover_userinfo_endpoint(PROFILE) is None


def test_invalid_url_is_not_fetched(fake_web):
    """Test that invalid URLs are rejected without any request."""
    context = DiscoveryContext(fake_web.client())

    assert context.discover_authorization_endpoint("mailto:me@example.com") is None
    assert fake_web.requests == []


def test_fetches_are_memoized(fake_web):
    """Test that HEAD and GET are issued once per URL for a context."""
    fake_web.add_page(
        PROFILE,
        html='<link rel="authorization_endpoint" href="/auth"><link rel="token_endpoint" href="/token">',
    )
    context = DiscoveryContext(fake_web.client())

    assert context.discover_authorization_endpoint(PROFILE) == "https://example.com/auth"
    assert context.discover_token_endpoint(PROFILE) == "https://example.com/token"
    assert context.discover_revocation_endpoint(PROFILE) is None

    assert len(fake_web.calls("HEAD", PROFILE)) == 1
    assert len(fake_web.calls("GET", PROFILE)) == 1


def test_parsed_html_is_memoized(fake_web):
    """Test that an already parsed body is not parsed again."""
    fake_web.add_page(
        PROFILE,
        html='<link rel="authorization_endpoint" href="/auth"><link rel="token_endpoint" href="/token">',
    )
    context = DiscoveryContext(fake_web.client())

    with patch(
        "indieauth_client.discovery.parse_html_rels",
        wraps=parse_html_rels,
    ) as mock_parse:
        context.discover_authorization_endpoint(PROFILE)
        context.discover_token_endpoint(PROFILE)

    assert mock_parse.call_count == 1


def test_contexts_do_not_share_state(fake_web):
    """Test that a new context fetches again."""
    fake_web.add_page(PROFILE, links=['</auth>; rel="authorization_endpoint"'])
    client = fake_web.client()

    DiscoveryContext(client).discover_authorization_endpoint(PROFILE)
    DiscoveryContext(client).discover_authorization_endpoint(PROFILE)

    assert len(fake_web.calls("HEAD", PROFILE)) == 2


def test_transport_error_is_treated_as_absent():
    """Test that a failed fetch means the endpoint is absent."""

    def handler(request):
        raise httpx.ConnectError("Name or service not known", request=request)

    context = DiscoveryContext(httpx.Client(transport=httpx.MockTransport(handler)))

    assert context.discover_authorization_endpoint(PROFILE) is None


def test_invalid_url_error_is_treated_as_absent():
    """Test that a URL httpx refuses to request means the endpoint is absent."""

    def handler(request):
        raise httpx.InvalidURL("Invalid non-printable ASCII character in URL")

    context = DiscoveryContext(httpx.Client(transport=httpx.MockTransport(handler)))

    assert context.discover_metadata_endpoint(PROFILE) is None
    assert context.discover_authorization_endpoint(PROFILE) is None


def test_metadata_discovery(fake_web, sample_metadata):
    """Test loading the metadata document and discovering from it."""
    fake_web.add_page(PROFILE, links=[f'<{METADATA_URL}>; rel="indieauth-metadata"'])
    fake_web.add("GET", METADATA_URL, json_data=sample_metadata)
    context = DiscoveryContext(fake_web.client())

    assert context.discover_metadata_endpoint(PROFILE) == METADATA_URL
    assert context.metadata == sample_metadata
    requests_before = len(fake_web.requests)

    assert context.discover_authorization_endpoint(PROFILE) == "https://example.com/auth"
    assert context.discover_token_endpoint(PROFILE) == "https://example.com/token"
    assert context.discover_revocation_endpoint(PROFILE) == "https://example.com/revoke"
    assert len(fake_web.requests) == requests_before


def test_metadata_overrides_headers_without_requests(fake_web, sample_metadata):
    """Test that a metadata key is used without any HEAD or GET."""
    context = DiscoveryContext(fake_web.client())
    context.set_metadata(METADATA_URL, json.dumps(sample_metadata))

    assert context.discover_token_endpoint("https://other.example/") == "https://example.com/token"
    assert fake_web.requests == []


def test_malformed_metadata_falls_back(fake_web):
    """Test that malformed metadata is ignored in favour of headers and HTML."""
    fake_web.add_page(
        PROFILE,
        html='<link rel="authorization_endpoint" href="/html-auth">',
        links=[f'<{METADATA_URL}>; rel="indieauth-metadata"'],
    )
    fake_web.add("GET", METADATA_URL, text="{not json")
    context = DiscoveryContext(fake_web.client())

    assert context.discover_metadata_endpoint(PROFILE) == METADATA_URL
    assert context.metadata is None
    assert context.discover_authorization_endpoint(PROFILE) == "https://example.com/html-auth"


def test_set_metadata_resets_previous(sample_metadata):
    """Test that setting metadata replaces what was there."""
    context = DiscoveryContext(httpx.Client())
    context.set_metadata(METADATA_URL, json.dumps(sample_metadata))
    context.set_metadata("https://example.org/md", "<html></html>")

    assert context.metadata is None
