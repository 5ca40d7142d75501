"""Custom exceptions for the IndieAuth client.

Protocol failures are reported as :class:`~indieauth_client.errors.ErrorResult`
values. These exceptions only signal incorrect use of the library.
"""


class IndieAuthClientError(Exception):
    """Base exception for all indieauth-client errors."""


class InvalidParameterError(IndieAuthClientError):
    """Invalid parameter provided to a function."""


class ConfigurationError(IndieAuthClientError):
    """Client configuration could not be loaded or is malformed."""
