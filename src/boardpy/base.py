# SPDX-License-Identifier: GPL-3.0-or-later
#
# This file is part of boardpy, distributed under the terms of the GNU GPLv3.

import json
from abc import ABCMeta
from dataclasses import dataclass
from ssl import SSLContext
from typing import ClassVar, get_type_hints
from urllib.parse import quote, urlparse

import arrow
import httpx

from boardpy.exceptions import (
    InvalidEndpointError,
    InvalidRequestError,
    MissingPathParameterError,
    RemoteError,
    TransportFailure,
    URLNetlocError,
    URLPathError,
    URLSchemaError,
)
from boardpy.interfaces import ApiClient
from boardpy.logger import log_exception, logger


@dataclass
class RequestLogEntry:
    """
    Log entry for a received response.
    """

    method: str
    """The HTTP method of the request."""

    url: str
    """The URL of the request."""

    status_code: int
    """The HTTP status code of the response."""

    timestamp: arrow.Arrow
    """The timestamp of when the response was received."""


class RequireClassVarsMeta(ABCMeta):
    """
    This metaclass ensures that all concrete subclasses of
    AsyncRestApiBaseClass define the required class variables.

    It collects the class variable annotations from the whole class
    hierarchy and raises a TypeError if any of them has no value, similar
    to the behavior of the @abstractmethod decorator for methods.

    Examples
    --------
    class MyBaseClass(ABC, metaclass=RequireClassVarsMeta):
        REQUIRED_VAR: ClassVar[str]
        OPTIONAL_VAR: ClassVar[str] = "default_value"

    class MyClass(MyBaseClass):
        REQUIRED_VAR = "value"
    # This works because MyClass defines REQUIRED_VAR.

    class MyClassWithoutRequiredVar(MyBaseClass):
        OPTIONAL_VAR = "new_value"
    # This raises a TypeError.
    """

    def __init__(cls, name, bases, namespace):
        super().__init__(name, bases, namespace)

        # Abstract classes are allowed to leave class variables undefined
        if getattr(cls, "__abstractmethods__", None):
            return

        required = {}

        for base in cls.__mro__:
            if base is object:
                continue
            required.update(get_type_hints(base))

        for var_name in required:
            if not hasattr(cls, var_name):
                raise TypeError(f"{name} must define class variable '{var_name}'")


class AsyncRestApiBaseClass(ApiClient, metaclass=RequireClassVarsMeta):
    """
    An abstract base class for asynchronous REST API clients.

    Handles URL construction, headers, path parameters, payload
    serialization, logging, error classification and session lifetime.

    Every request is sent exactly once. Failures are never retried and no
    timeout is enforced beyond the one configured on the client.
    """

    API_PATH: ClassVar[str]
    """
    Path appended to the instance URL to reach the root of the REST API.
    """

    AUTH_HEADER: ClassVar[str]
    """
    Name of the HTTP header carrying the API token.
    """

    def __init__(
        self,
        *,
        verify: SSLContext | bool = True,
        timeout: int | None = None,
        headers: dict | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.verify: SSLContext | bool = verify
        """
        Controls the verification of the API server SSL certificate.

        Examples
        --------

        - `True`: Verify the server's SSL certificate using the system's CA certificates.
        - `False`: Disable SSL certificate verification.
        - `ssl.create_default_context(cafile="my-custom-ca.pem")`: Use a custom CA certificate for verification.
        """

        self.timeout: int | None = timeout
        """
        The timeout in seconds for each request. `None` keeps the httpx default.
        """

        self.headers: dict = headers or {}
        """
        A dictionary of HTTP headers to be sent with each request.
        These headers will be merged with any `headers` dict passed to an individual request.
        """

        self.path_params: dict = {}
        """
        Reusable path parameters merged with the `path_params` of each request.
        """

        self.transport: httpx.AsyncBaseTransport | None = transport
        """
        Custom httpx transport, i.e. `httpx.MockTransport` in tests.
        """

        self.client: httpx.AsyncClient | None = None
        """
        An httpx AsyncClient instance used to send requests to the API server.

        Created when the first request is made and reused for all subsequent requests.
        """

        self.request_index: int = 0
        """
        An index to keep track of the number of requests made.
        """

        self.request_log: list[RequestLogEntry] = []
        """
        A list of responses received from the API server.
        """

    async def request(
        self,
        method: str,
        path: str,
        *,
        base_url: str,
        data: dict | list | str | None = None,
        params: dict | None = None,
        path_params: dict | None = None,
        headers: dict | None = None,
        timeout: int | None = None,
    ) -> httpx.Response:
        """
        Send any type of HTTP request and receive response.

        Parameters
        ----------
        method
            The HTTP method to use for the request (`GET`, `POST`, `PUT`, `PATCH`, `DELETE`).

        path
            URL endpoint path, may contain `{placeholders}` for path parameters.

        base_url
            API root the path is appended to. Verified before use.

        data
            Request payload as JSON string or Python list/dict object.

        params
            Query parameters to include in the request.

        path_params
            Values for the placeholders in `path`. Merged with `self.path_params`.

        headers
            HTTP headers for this request only. Merged with `self.headers`.

        timeout
            Override the client timeout for a single request.

        Returns
        -------
        httpx.Response
            The successful (2xx) response.

        Raises
        ------
        TransportFailure
            If the server could not be reached.
        RemoteError
            If the server responded with any status code outside 2xx,
            including redirects, which are not followed.
        """

        self._verify_base_url(base_url)
        self._ensure_client(base_url)

        request = self._prepare_request(
            method,
            path,
            base_url=base_url,
            params=params,
            path_params=path_params,
            headers=headers,
            timeout=timeout,
            data=data,
        )

        self.request_index += 1
        request_log_prefix = f"Request #{self.request_index}"
        response_log_prefix = f"Response #{self.request_index}"

        response = await self._send_single_request(
            request=request,
            request_log_prefix=request_log_prefix,
            response_log_prefix=response_log_prefix,
        )

        if not response.is_success:
            logger.error(
                f"{request_log_prefix} failed: {response.status_code} "
                f"{response.reason_phrase} {response.text}"
            )
            error = RemoteError(
                f"{request_log_prefix}: {request.method} {request.url}",
                response=response,
            )
            log_exception(error, severity="DEBUG")
            raise error

        return response

    def _prepare_request(
        self,
        method: str,
        path: str,
        *,
        base_url: str,
        params: dict | None,
        path_params: dict | None,
        headers: dict | None,
        timeout: int | None,
        data: dict | list | str | None,
    ) -> httpx.Request:
        """
        Merge headers, copy query parameters, replace path parameters and build the request.
        """

        if not path.startswith("/"):
            error = InvalidEndpointError(
                "Endpoint paths must begin with /", client=self, endpoint_path=path
            )
            log_exception(error)
            raise error

        if isinstance(params, dict):
            params = params.copy()

        merged_headers = self.headers.copy()
        if isinstance(headers, dict):
            merged_headers.update(headers)

        if path_params is not None and not isinstance(path_params, dict):
            raise TypeError("path_params must be dictionary")

        if not isinstance(timeout, int):
            timeout = httpx.USE_CLIENT_DEFAULT

        url = self.build_url(base_url, path, path_params=path_params)

        try:
            return self.client.build_request(
                method,
                url,
                content=self.serialize_payload(data=data),
                headers=merged_headers,
                params=params,
                timeout=timeout,
            )
        except (httpx.InvalidURL, UnicodeEncodeError) as error:
            # Header values must be ASCII, so a non-ASCII token ends up here too
            failure = InvalidRequestError(
                f"Unable to build {method} request for {path}: "
                f"{error.__class__.__name__}: {error}",
                endpoint_path=path,
            )
            log_exception(failure)
            raise failure from error

    async def _send_single_request(
        self,
        *,
        request: httpx.Request,
        request_log_prefix: str,
        response_log_prefix: str,
    ) -> httpx.Response:
        """
        Send a request once with logging and transport error handling.
        """

        logger.trace(f"Prepared {request_log_prefix}: {request.method} {request.url}")
        logger.trace(
            f"Prepared {request_log_prefix} headers: {json.dumps(self._masked_headers(request.headers))}"
        )
        logger.trace(f"Prepared {request_log_prefix} body: {request.content}")

        try:
            response = await self.client.send(request)
        except httpx.RequestError as error:
            failure = TransportFailure(
                f"{request_log_prefix}: {error.__class__.__name__}: {error}",
                request=request,
            )
            log_exception(failure, severity="CRITICAL")
            raise failure from error

        self.request_log.append(
            RequestLogEntry(
                method=request.method,
                url=str(response.url),
                status_code=response.status_code,
                timestamp=arrow.utcnow(),
            )
        )

        logger.debug(f"{request_log_prefix}: {request.method} {request.url}")
        logger.trace(
            f"{response_log_prefix} status code: {response.status_code} {response.reason_phrase}"
        )
        logger.trace(
            f"{response_log_prefix} headers: {json.dumps(dict(response.headers))}"
        )
        logger.trace(f"{response_log_prefix} body: {response.text}")

        return response

    def _masked_headers(self, headers: httpx.Headers) -> dict:
        masked = dict(headers)
        for name in masked:
            if name.lower() == self.AUTH_HEADER.lower():
                masked[name] = "********"
        return masked

    def _verify_base_url(self, base_url: str) -> None:
        """
        Verifies the base URL contains a scheme, hostname, and does not end with a `/`.

        Raises
        ------
        URLSchemaError
            If the base URL does not contain a scheme (http or https).
        URLNetlocError
            If the base URL does not contain a hostname or IP address.
        URLPathError
            If the base URL path ends with a `/`.
        """
        parsed_url = urlparse(base_url)
        if parsed_url.scheme.lower() not in ("http", "https"):
            error = URLSchemaError(base_url=base_url)
            log_exception(error, severity="ERROR")
            raise error
        if not parsed_url.netloc:
            error = URLNetlocError(base_url=base_url)
            log_exception(error, severity="ERROR")
            raise error
        if parsed_url.path and parsed_url.path[-1] == "/":
            error = URLPathError(base_url=base_url)
            log_exception(error, severity="ERROR")
            raise error

    def build_url(self, base_url: str, path: str, path_params: dict | None) -> str:
        """
        Constructs the full URL for a request.

        Combines the base URL with the path, substituting path parameters.
        Path parameters are variables embedded into the URL path using {} braces.
        __Example:__ /projects/{projectId}/boards/{boardId}/lists

        Values are percent-encoded, so a project path such as `group/project`
        can be used in place of a numeric project ID.

        Raises
        ------
        MissingPathParameterError
            If the resulting URL contains unsubstituted path parameters.
        """

        merged_path_params = self.path_params.copy()
        merged_path_params.update(path_params or {})

        encoded_path_params = {
            key: quote(str(value), safe="") for key, value in merged_path_params.items()
        }

        try:
            url = base_url + path.format(**encoded_path_params)
        except KeyError as e:
            missing_param = e.args[0]
            available_params = ", ".join(merged_path_params.keys())
            error = MissingPathParameterError(
                parameter=missing_param,
                available_params=available_params,
                endpoint_path=path,
                client=self,
            )
            log_exception(error, severity="ERROR")
            raise error

        return url

    def _ensure_client(self, base_url: str):
        """
        Instantiate a new `httpx` async client if needed.

        Issues a warning if SSL verification is disabled.
        """

        if not self.client:
            if not self.verify:
                logger.warning(f"Disabling SSL verification for {base_url} session")

            client_args = {"verify": self.verify, "transport": self.transport}
            if self.timeout is not None:
                client_args["timeout"] = self.timeout

            self.client = httpx.AsyncClient(**client_args)

    async def aclose(self) -> None:
        """
        Close the httpx client and release any resources.

        It is automatically called when exiting the async context manager.
        """
        if self.client:
            await self.client.aclose()
            logger.debug("Closed API client")
            self.client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> bool:
        """
        Close the client and propagate any exception raised in the context.
        """
        await self.aclose()
        if exc_type is not None:
            logger.error(f"Exception occurred: {exc_value}")
        return False

    def serialize_payload(self, *, data: dict | list | str | None) -> str | None:
        if isinstance(data, (dict, list)):
            return json.dumps(data)
        elif isinstance(data, str):
            return data
        elif data is None:
            return None
        else:
            raise ValueError(
                "Data for request payload must be provided as string, dict or list"
            )
