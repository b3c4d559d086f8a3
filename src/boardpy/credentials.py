# SPDX-License-Identifier: GPL-3.0-or-later
#
# This file is part of boardpy, distributed under the terms of the GNU GPLv3.
"""
Credential providers supply the GitLab base URL and personal access token.

A provider is injected into the client at construction and is queried on
every API call, so credentials changed at runtime are picked up by the next
call without restarting anything. Pick the provider matching the execution
environment at startup:

- `EnvironmentCredentials` for scripts and services.
- `JsonFileCredentials` for interactive tools persisting settings locally.
- `StaticCredentials` when the caller already holds the values.
- `NullCredentials` for contexts that must not touch storage or the network.
"""

import json
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from boardpy.logger import logger

URL_KEY = "gitlab-url"
TOKEN_KEY = "gitlab-token"


@dataclass(frozen=True)
class ClientConfig:
    """
    A complete set of connection credentials.
    """

    base_url: str
    """URL of the GitLab instance, without trailing `/` and without API path."""

    token: str
    """Personal access token sent in the `PRIVATE-TOKEN` header."""


class CredentialProvider(ABC):
    """
    Source of the GitLab connection credentials.

    Implementations must read the current values on every call.
    """

    @abstractmethod
    def get_token(self) -> str | None:
        """Return the personal access token, or `None` when absent."""
        raise NotImplementedError

    @abstractmethod
    def get_base_url(self) -> str | None:
        """Return the GitLab instance URL, or `None` when absent."""
        raise NotImplementedError

    def load(self) -> ClientConfig | None:
        """
        Read both values and combine them into a `ClientConfig`.

        Returns
        -------
        ClientConfig | None
            `None` if the token or the base URL is absent or empty.
        """
        return self._combine(base_url=self.get_base_url(), token=self.get_token())

    def _combine(
        self, *, base_url: str | None, token: str | None
    ) -> ClientConfig | None:
        if not base_url:
            logger.warning(f"GitLab URL not found in {self.__class__.__name__}")
        if not token:
            logger.warning(f"GitLab token not found in {self.__class__.__name__}")
        if not base_url or not token:
            return None

        return ClientConfig(base_url=base_url.rstrip("/"), token=token)


class StaticCredentials(CredentialProvider):
    """
    Credentials held in memory.

    Parameters
    ----------
    base_url : str | None, default=None
        URL of the GitLab instance, i.e. `https://gitlab.example.com`.

    token : str | None, default=None
        Personal access token.
    """

    def __init__(self, base_url: str | None = None, token: str | None = None):
        self.base_url = base_url
        self.token = token

    def update(self, *, base_url: str | None = None, token: str | None = None):
        """
        Rotate one or both values. Omitted values are kept.
        """
        if base_url is not None:
            self.base_url = base_url
        if token is not None:
            self.token = token
        logger.debug("Static credentials updated")

    def get_token(self) -> str | None:
        return self.token

    def get_base_url(self) -> str | None:
        return self.base_url


class EnvironmentCredentials(CredentialProvider):
    """
    Credentials read from environment variables on every call.

    Parameters
    ----------
    url_var : str, default="BOARDPY_GITLAB_URL"
        Name of the variable holding the GitLab instance URL.

    token_var : str, default="BOARDPY_GITLAB_TOKEN"
        Name of the variable holding the personal access token.
    """

    def __init__(
        self,
        url_var: str = "BOARDPY_GITLAB_URL",
        token_var: str = "BOARDPY_GITLAB_TOKEN",
    ):
        self.url_var = url_var
        self.token_var = token_var

    def get_token(self) -> str | None:
        return os.getenv(self.token_var)

    def get_base_url(self) -> str | None:
        return os.getenv(self.url_var)


class JsonFileCredentials(CredentialProvider):
    """
    Credentials persisted in a local JSON key/value file.

    The file holds an object with the keys `gitlab-url` and `gitlab-token`.
    A missing or unreadable file is treated as "not configured".

    Parameters
    ----------
    path : str | Path
        Location of the JSON file.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()

    def _read(self) -> dict:
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.debug(f"Credential file {self.path} does not exist")
            return {}
        except (OSError, json.JSONDecodeError) as error:
            logger.error(f"Unable to read credential file {self.path}: {error}")
            return {}

        if not isinstance(data, dict):
            logger.error(f"Credential file {self.path} does not hold a JSON object")
            return {}

        return data

    def save(self, *, base_url: str, token: str) -> None:
        """
        Persist both values, replacing any previous content.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump({URL_KEY: base_url, TOKEN_KEY: token}, f, indent=2)
        logger.info(f"Saved GitLab credentials to {self.path}")

    def load(self) -> ClientConfig | None:
        # Single read, so a concurrent save() can't mix old and new values
        data = self._read()
        return self._combine(base_url=data.get(URL_KEY), token=data.get(TOKEN_KEY))

    def get_token(self) -> str | None:
        return self._read().get(TOKEN_KEY)

    def get_base_url(self) -> str | None:
        return self._read().get(URL_KEY)


class NullCredentials(CredentialProvider):
    """
    A provider that never has credentials.

    Use it in execution contexts that must not access local storage or the
    network, such as a server-side rendering pass. Every read operation then
    returns an empty list and every write raises `ConfigurationMissing`.
    """

    def get_token(self) -> None:
        return None

    def get_base_url(self) -> None:
        return None

    def load(self) -> None:
        return None
