"""Exceptions for Rollcall."""

from __future__ import annotations

from fastapi import status
from safir.fastapi import ClientRequestError
from safir.slack.blockkit import (
    SlackException,
    SlackMessage,
    SlackTextField,
)

__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "DirectoryError",
    "NotFoundError",
]


class AuthenticationError(ClientRequestError):
    """The directory server rejected a bind."""

    error = "authentication_failed"
    status_code = status.HTTP_401_UNAUTHORIZED


class ConfigurationError(ClientRequestError):
    """A directory configuration is missing or malformed.

    Also raised if the requested directory is not configured at all.
    """

    error = "not_configured"
    status_code = status.HTTP_404_NOT_FOUND


class NotFoundError(ClientRequestError):
    """A search returned no entries where one was required."""

    error = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class DirectoryError(SlackException):
    """An LDAP operation failed.

    This covers every failure that isn't a rejected bind: a non-zero result
    code, a transport error, a timeout, or an exceeded size limit. Any entries
    already received by a failed search are discarded.

    Parameters
    ----------
    message
        Summary of the failure.
    directory
        Identifier of the directory configuration, if known.
    """

    def __init__(self, message: str, directory: str | None = None) -> None:
        super().__init__(message)
        self.directory = directory

    def to_slack(self) -> SlackMessage:
        """Format the error as a Slack Block Kit message."""
        message = super().to_slack()
        if self.directory:
            field = SlackTextField(heading="Directory", text=self.directory)
            message.fields.append(field)
        return message
