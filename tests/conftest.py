import json

import httpx
import pytest

from boardpy import GitLab, StaticCredentials

BASE_URL = "https://gitlab.example.com"
TOKEN = "glpat-test-token"


class FakeGitLabServer:
    """
    Callable handler for `httpx.MockTransport` that records every request.

    Routes map `(method, path)` to a response, a JSON-serializable body or a
    callable taking the request. Unknown routes answer 404.
    """

    def __init__(self, routes: dict | None = None):
        self.routes = routes or {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))

        if route is None:
            return httpx.Response(404, json={"message": "404 Not Found"})
        if callable(route):
            return route(request)
        if isinstance(route, httpx.Response):
            return route
        return httpx.Response(200, json=route)

    @property
    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]

    def body(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)


@pytest.fixture
def credentials():
    return StaticCredentials(base_url=BASE_URL, token=TOKEN)


@pytest.fixture
def server():
    return FakeGitLabServer()


@pytest.fixture
def make_client(credentials, server):
    def _make_client(**kwargs):
        kwargs.setdefault("credentials", credentials)
        return GitLab(transport=httpx.MockTransport(server), **kwargs)

    return _make_client
