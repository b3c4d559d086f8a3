# SPDX-License-Identifier: GPL-3.0-or-later
#
# This file is part of boardpy, distributed under the terms of the GNU GPLv3.

from importlib import metadata

from boardpy.base import AsyncRestApiBaseClass
from boardpy.credentials import (
    ClientConfig,
    CredentialProvider,
    EnvironmentCredentials,
    JsonFileCredentials,
    NullCredentials,
    StaticCredentials,
)
from boardpy.exceptions import (
    BoardpyException,
    ConfigurationMissing,
    InvalidRequestError,
    RemoteError,
    TransportFailure,
    UnexpectedPayloadError,
)
from boardpy.gitlab import GitLab
from boardpy.logging import log_to_file, set_logging_level

__version__ = metadata.version("boardpy")

__all__ = [
    "AsyncRestApiBaseClass",
    "BoardpyException",
    "ClientConfig",
    "ConfigurationMissing",
    "CredentialProvider",
    "EnvironmentCredentials",
    "GitLab",
    "InvalidRequestError",
    "JsonFileCredentials",
    "NullCredentials",
    "RemoteError",
    "StaticCredentials",
    "TransportFailure",
    "UnexpectedPayloadError",
    "set_logging_level",
    "log_to_file",
]
