# SPDX-License-Identifier: GPL-3.0-or-later
#
# This file is part of boardpy, distributed under the terms of the GNU GPLv3.
from dataclasses import dataclass

import httpx
from rich import traceback

from boardpy.interfaces import ApiClient


@dataclass
class BoardpyException(Exception):
    """
    Base exception class for all boardpy exceptions.
    """

    message: str = ""

    def __post_init__(self):
        traceback.install()

    def __str__(self) -> str:
        return self.message


@dataclass
class ConfigurationMissing(BoardpyException):
    """
    Raised when no GitLab token or no GitLab base URL is available.

    Read operations never raise this exception, they return an empty list
    instead. Write operations raise it so that a change is never silently
    dropped.
    """

    missing: list[str] | None = None
    """Names of the missing configuration values, i.e. `["token"]`."""

    def __str__(self) -> str:
        msg = self.message or "GitLab connection is not configured"

        if self.missing:
            msg += f"\nMissing: {', '.join(self.missing)}"

        return msg


@dataclass
class TransportFailure(BoardpyException):
    """
    Raised when the GitLab server could not be reached.

    The original `httpx.RequestError` is available as `__cause__`.
    """

    request: httpx.Request | None = None
    """The HTTP request that failed."""

    def __str__(self) -> str:
        msg = self.message

        if self.request is not None:
            msg += f"\nRequest: {self.request.method} {self.request.url}"

        return msg


@dataclass
class RemoteError(BoardpyException):
    """
    Raised when the GitLab server responds with a non-2xx status code.
    """

    response: httpx.Response | None = None
    """The HTTP response returned by the API."""

    @property
    def status_code(self) -> int | None:
        if self.response is None:
            return None
        return self.response.status_code

    def __str__(self) -> str:
        msg = self.message

        if self.response is not None:
            code = self.response.status_code
            reason = self.response.reason_phrase
            msg += f"\nRequest failed with status code: {code} {reason}"
            msg += f"\nResponse content: {self.response.text}"

        return msg


@dataclass
class UnexpectedPayloadError(BoardpyException):
    """
    Raised when the API returned payload with unexpected data structure.
    """

    response: httpx.Response | None = None
    """The HTTP response returned by the API."""

    def __str__(self) -> str:
        msg = self.message

        if self.response is not None:
            msg += f"\nUnexpected response: {self.response.text}"

        return msg


@dataclass
class InvalidEndpointError(BoardpyException):
    """
    Raised when the specified API endpoint path is not valid for use in a URL.
    """

    client: ApiClient | None = None
    """The client class that is making the request."""

    endpoint_path: str | None = None
    """The invalid endpoint path."""

    def __str__(self) -> str:
        msg = self.message

        if isinstance(self.client, ApiClient):
            client_name = self.client.__class__.__name__
            msg += f"\n{client_name}: Invalid endpoint path provided."

        if self.endpoint_path:
            msg += f"\nEndpoint path: {self.endpoint_path}"

        return msg


@dataclass
class InvalidRequestError(BoardpyException):
    """
    Raised when a request can not be built from the current credentials,
    i.e. an invalid port in the GitLab URL or a token with non-ASCII characters.

    The original error is available as `__cause__`.
    """

    endpoint_path: str | None = None
    """The endpoint path of the request."""

    def __str__(self) -> str:
        msg = self.message

        if self.endpoint_path:
            msg += f"\nEndpoint path: {self.endpoint_path}"

        return msg


@dataclass
class URLSchemaError(BoardpyException):
    """
    Raised when the provided base URL does not include a valid schema (http or https).
    """

    base_url: str | None = None
    """The invalid base URL."""

    def __str__(self) -> str:
        msg = self.message

        if self.base_url:
            msg += f"\nInvalid base URL: {self.base_url}"
            msg += "\nThe base URL must start with 'http://' or 'https://'."

        return msg


@dataclass
class URLNetlocError(BoardpyException):
    """
    Raised when the provided base URL does not include a valid network location.
    """

    base_url: str | None = None
    """The invalid base URL."""

    def __str__(self) -> str:
        msg = self.message

        if self.base_url:
            msg += f"\nInvalid base URL: {self.base_url}"
            msg += "\nThe base URL must include a valid network location."

        return msg


@dataclass
class URLPathError(BoardpyException):
    """
    Raised when the provided base URL ends with a forward slash (/).
    """

    base_url: str | None = None
    """The invalid base URL."""

    def __str__(self) -> str:
        msg = self.message

        if self.base_url:
            msg += f"Invalid base URL. Must not end with a '/': {self.base_url}"

        return msg


@dataclass
class MissingPathParameterError(BoardpyException):
    """
    Raised when a required path parameter is missing for URL construction.
    """

    parameter: str | None = None
    """The missing path parameter."""

    available_params: str | None = None
    """The available path parameters."""

    client: ApiClient | None = None
    """The client class that is making the request."""

    endpoint_path: str | None = None
    """The endpoint path where the parameter is missing."""

    def __str__(self) -> str:
        msg = self.message

        if isinstance(self.client, ApiClient):
            client_name = self.client.__class__.__name__
            msg += f"{client_name}: Missing path parameter."

        if self.parameter:
            msg += f"\nMissing path parameter: {self.parameter}"
        if self.available_params:
            msg += f"\nAvailable parameters: {self.available_params}"
        if self.endpoint_path:
            msg += f"\nEndpoint path: {self.endpoint_path}"

        return msg
