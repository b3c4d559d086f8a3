# SPDX-License-Identifier: GPL-3.0-or-later
#
# This file is part of boardpy, distributed under the terms of the GNU GPLv3.

from ssl import SSLContext
from typing import Literal

import httpx

from boardpy.base import AsyncRestApiBaseClass
from boardpy.credentials import ClientConfig, CredentialProvider, EnvironmentCredentials
from boardpy.exceptions import (
    BoardpyException,
    ConfigurationMissing,
    UnexpectedPayloadError,
)
from boardpy.logger import log_exception, logger


class GitLab(AsyncRestApiBaseClass):
    """
    Interact with the GitLab REST API v4.

    Credentials are loaded from the credential provider on every call and
    are never cached, so rotating them takes effect with the next call.

    Parameters
    ----------
    credentials : CredentialProvider | None, default=None
        Source of the GitLab URL and personal access token.

        Defaults to `EnvironmentCredentials()`, reading `BOARDPY_GITLAB_URL`
        and `BOARDPY_GITLAB_TOKEN`.

    verify : bool | SSLContext, default=True
        Boolean values will enable or disable the default SSL verification.

        Use an ssl.SSLContext to specify custom Certificate Authority.

    timeout : int | None, default=None
        Number of seconds to wait for HTTP responses. `None` keeps the httpx default.

    board_lists_errors : "suppress" | "raise", default="suppress"
        Failure policy of `get_project_board_lists()`.

        With `"suppress"` any failure is logged and an empty list returned.
        With `"raise"` failures propagate like in every other operation.

    transport : httpx.AsyncBaseTransport | None, default=None
        Custom httpx transport.

    Examples
    --------
    ```python
    from boardpy import GitLab, StaticCredentials
    async with GitLab(
        credentials=StaticCredentials(
            base_url="https://gitlab.example.com",
            token="glpat-0123456789abcdef",
        )
    ) as gitlab:
        projects = await gitlab.get_projects()
    ```
    """

    API_PATH = "/api/v4"

    AUTH_HEADER = "PRIVATE-TOKEN"

    PAGE_SIZE = 100
    """
    Page size requested from list endpoints. 100 is the maximum GitLab accepts.
    """

    def __init__(
        self,
        *,
        credentials: CredentialProvider | None = None,
        verify: SSLContext | bool = True,
        timeout: int | None = None,
        board_lists_errors: Literal["suppress", "raise"] = "suppress",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if board_lists_errors not in ("suppress", "raise"):
            raise ValueError(
                f"board_lists_errors must be 'suppress' or 'raise', not '{board_lists_errors}'"
            )

        self.credentials: CredentialProvider = credentials or EnvironmentCredentials()
        """
        The credential provider queried on every call.
        """

        self.board_lists_errors = board_lists_errors
        """
        Failure policy of `get_project_board_lists()`.
        """

        super().__init__(
            verify=verify,
            timeout=timeout,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            transport=transport,
        )

    @property
    def config(self) -> ClientConfig | None:
        """
        The current credentials, freshly loaded from the provider.
        """
        return self.credentials.load()

    @property
    def is_configured(self) -> bool:
        """
        Check if both a GitLab URL and a token are currently available.
        """
        return self.config is not None

    def _require_config(self, config: ClientConfig | None) -> ClientConfig:
        if config is None:
            config = self.config
        if config is None:
            error = ConfigurationMissing(
                missing=self._missing_values(),
            )
            log_exception(error)
            raise error
        return config

    def _missing_values(self) -> list[str]:
        missing = []
        if not self.credentials.get_base_url():
            missing.append("base_url")
        if not self.credentials.get_token():
            missing.append("token")
        return missing

    async def get(
        self,
        path: str,
        *,
        params: dict | None = None,
        path_params: dict | None = None,
        headers: dict | None = None,
        timeout: int | None = None,
        config: ClientConfig | None = None,
    ) -> httpx.Response:
        """
        Send an HTTP `GET` request to the specified path.

        Parameters
        ----------
        path : str
            The API endpoint path relative to `/api/v4`, i.e. `/projects/{projectId}/boards`.

        params : dict | None, default=None
            URL query parameters to include in the request.

        path_params : dict | None, default=None
            Replace placeholders like `{projectId}` in the URL path with actual values.

        headers : dict | None, default=None
            HTTP headers to be sent with the request.

            Will be combined with `self.headers` before sending request.

        timeout : int | None, default=None
            Override the standard timeout for a single request.

        config : ClientConfig | None, default=None
            Credentials to use. Loaded from the provider when omitted.

        Returns
        -------
        httpx.Response
            The [`httpx.Response`](https://www.python-httpx.org/api/#response) object from the request.

        Raises
        ------
        ConfigurationMissing
            If no URL or token is available.
        """

        return await self._send(
            "GET",
            path,
            config=config,
            params=params,
            path_params=path_params,
            headers=headers,
            timeout=timeout,
        )

    async def put(
        self,
        path: str,
        *,
        data: str | dict | list,
        path_params: dict | None = None,
        headers: dict | None = None,
        timeout: int | None = None,
        config: ClientConfig | None = None,
    ) -> httpx.Response:
        """
        Send an HTTP `PUT` request to the specified path.

        Parameters
        ----------
        path : str
            The API endpoint path relative to `/api/v4`.

        data : str | dict | list
            Request payload as JSON string or Python list/dict object.

        path_params : dict | None, default=None
            Replace placeholders like `{issueIid}` in the URL path with actual values.

        headers : dict | None, default=None
            HTTP headers to be sent with the request.

        timeout : int | None, default=None
            Override the standard timeout for a single request.

        config : ClientConfig | None, default=None
            Credentials to use. Loaded from the provider when omitted.

        Returns
        -------
        httpx.Response
            The [`httpx.Response`](https://www.python-httpx.org/api/#response) object from the request.

        Raises
        ------
        ConfigurationMissing
            If no URL or token is available.
        """

        return await self._send(
            "PUT",
            path,
            config=config,
            data=data,
            path_params=path_params,
            headers=headers,
            timeout=timeout,
        )

    async def _send(
        self,
        method: str,
        path: str,
        *,
        config: ClientConfig | None,
        headers: dict | None = None,
        **kwargs,
    ) -> httpx.Response:
        config = self._require_config(config)

        merged_headers = {self.AUTH_HEADER: config.token}
        if isinstance(headers, dict):
            merged_headers.update(headers)

        return await self.request(
            method,
            path,
            base_url=config.base_url + self.API_PATH,
            headers=merged_headers,
            **kwargs,
        )

    async def get_list(
        self,
        path: str,
        *,
        params: dict | None = None,
        path_params: dict | None = None,
        config: ClientConfig | None = None,
    ) -> list:
        """
        Retrieve a single page from a list endpoint.

        Returns
        -------
        list[dict]
            The decoded JSON array, passed through verbatim.

        Raises
        ------
        UnexpectedPayloadError
            If the response body is not a JSON array.
        """

        response = await self.get(
            path, params=params, path_params=path_params, config=config
        )

        try:
            result = response.json()
        except ValueError:
            result = None

        if not isinstance(result, list):
            error = UnexpectedPayloadError(
                f"Expected a JSON list from {path}", response=response
            )
            log_exception(error)
            raise error

        logger.debug(f"Received {len(result)} items from {path}")
        return result

    async def get_projects(self) -> list[dict]:
        """
        List the projects the token owner is a member of.

        Returns
        -------
        list[dict]
            Up to 100 projects. Empty if no credentials are configured.
        """

        config = self.config
        if config is None:
            logger.debug("Not configured, returning no projects")
            return []

        return await self.get_list(
            "/projects",
            params={"membership": "true", "per_page": self.PAGE_SIZE},
            config=config,
        )

    async def get_project_issues(self, project_id: int | str) -> list[dict]:
        """
        List the issues of a project including label details.

        Parameters
        ----------
        project_id : int | str
            Numeric ID or URL path (`group/project`) of the project.

        Returns
        -------
        list[dict]
            Up to 100 issues. Empty if no credentials are configured.
        """

        config = self.config
        if config is None:
            logger.debug(f"Not configured, returning no issues for project {project_id}")
            return []

        return await self.get_list(
            "/projects/{projectId}/issues",
            params={"per_page": self.PAGE_SIZE, "with_labels_details": "true"},
            path_params={"projectId": project_id},
            config=config,
        )

    async def update_issue_labels(
        self, project_id: int | str, issue_iid: int, labels: list[str]
    ) -> dict:
        """
        Replace the complete label set of an issue.

        Parameters
        ----------
        project_id : int | str
            Numeric ID or URL path of the project.

        issue_iid : int
            Project-scoped issue ID (`iid`).

        labels : list[str]
            Label names. Sent as one comma-separated string.

        Returns
        -------
        dict
            The updated issue.

        Raises
        ------
        ConfigurationMissing
            If no URL or token is available. The update is never dropped silently.
        TransportFailure
            If GitLab could not be reached.
        RemoteError
            If GitLab rejected the update.
        InvalidRequestError
            If the stored URL or token can not be used in a request.
        UnexpectedPayloadError
            If GitLab accepted the update but returned a body that is not JSON.
        """

        config = self._require_config(None)

        response = await self.put(
            "/projects/{projectId}/issues/{issueIid}",
            data={"labels": ",".join(labels)},
            path_params={"projectId": project_id, "issueIid": issue_iid},
            config=config,
        )

        logger.info(f"Updated labels of issue {issue_iid} in project {project_id}")

        try:
            return response.json()
        except ValueError as error:
            failure = UnexpectedPayloadError(
                f"Labels of issue {issue_iid} were updated, but the response is not JSON",
                response=response,
            )
            log_exception(failure)
            raise failure from error

    async def get_project_board_lists(self, project_id: int | str) -> list[dict]:
        """
        List the columns of the first board of a project.

        Boards are requested first, then the lists of the first board GitLab
        returns. Other boards are ignored.

        Parameters
        ----------
        project_id : int | str
            Numeric ID or URL path of the project.

        Returns
        -------
        list[dict]
            The board lists. Empty if no credentials are configured or the
            project has no boards. With the default `"suppress"` policy it is
            also empty when any of the two requests fails.
        """

        config = self.config
        if config is None:
            logger.debug(
                f"Not configured, returning no board lists for project {project_id}"
            )
            return []

        try:
            boards = await self.get_list(
                "/projects/{projectId}/boards",
                path_params={"projectId": project_id},
                config=config,
            )

            if not boards:
                logger.debug(f"Project {project_id} has no boards")
                return []

            board_id = boards[0].get("id") if isinstance(boards[0], dict) else None
            if board_id is None:
                error = UnexpectedPayloadError(
                    f"First board of project {project_id} has no id"
                )
                log_exception(error)
                raise error

            return await self.get_list(
                "/projects/{projectId}/boards/{boardId}/lists",
                path_params={"projectId": project_id, "boardId": board_id},
                config=config,
            )
        except BoardpyException as error:
            if self.board_lists_errors == "raise":
                raise
            logger.error(f"Failed to get board lists for project {project_id}: {error}")

        return []
