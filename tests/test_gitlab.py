import httpx
import pytest

from boardpy import (
    ConfigurationMissing,
    GitLab,
    InvalidRequestError,
    NullCredentials,
    RemoteError,
    StaticCredentials,
    TransportFailure,
    UnexpectedPayloadError,
)

from .conftest import TOKEN

PROJECTS = [{"id": 42, "name": "board"}, {"id": 43, "name": "wiki"}]
ISSUES = [
    {"iid": 7, "labels": [{"name": "bug", "color": "#ff0000"}]},
    {"iid": 8, "labels": []},
]
LISTS = [{"id": 1, "label": {"name": "Doing"}}, {"id": 2, "label": {"name": "Done"}}]

NOT_CONFIGURED = [
    NullCredentials(),
    StaticCredentials(),
    StaticCredentials(base_url="https://gitlab.example.com"),
    StaticCredentials(token=TOKEN),
    StaticCredentials(base_url="", token=""),
]


@pytest.mark.asyncio
@pytest.mark.parametrize("credentials", NOT_CONFIGURED)
async def test_reads_without_configuration_return_empty(make_client, server):
    async with make_client() as gitlab:
        assert gitlab.is_configured is False
        assert await gitlab.get_projects() == []
        assert await gitlab.get_project_issues(42) == []
        assert await gitlab.get_project_board_lists(42) == []

    assert server.requests == []


@pytest.mark.asyncio
@pytest.mark.parametrize("credentials", NOT_CONFIGURED)
async def test_update_without_configuration_raises(make_client, server):
    async with make_client() as gitlab:
        with pytest.raises(ConfigurationMissing):
            await gitlab.update_issue_labels(42, 7, ["bug"])

    assert server.requests == []


@pytest.mark.asyncio
async def test_configuration_missing_names_missing_values(make_client):
    gitlab = make_client(credentials=StaticCredentials(token=TOKEN))

    with pytest.raises(ConfigurationMissing) as excinfo:
        await gitlab.update_issue_labels(42, 7, ["bug"])

    assert excinfo.value.missing == ["base_url"]
    assert "base_url" in str(excinfo.value)


@pytest.mark.asyncio
async def test_get_projects(make_client, server):
    server.routes[("GET", "/api/v4/projects")] = PROJECTS

    async with make_client() as gitlab:
        projects = await gitlab.get_projects()

    assert projects == PROJECTS
    request = server.requests[0]
    assert request.url.host == "gitlab.example.com"
    assert request.url.params["membership"] == "true"
    assert request.url.params["per_page"] == "100"
    assert request.headers["PRIVATE-TOKEN"] == TOKEN
    assert request.headers["Accept"] == "application/json"


@pytest.mark.asyncio
async def test_get_project_issues(make_client, server):
    server.routes[("GET", "/api/v4/projects/42/issues")] = ISSUES

    async with make_client() as gitlab:
        issues = await gitlab.get_project_issues(42)

    assert issues == ISSUES
    params = server.requests[0].url.params
    assert params["per_page"] == "100"
    assert params["with_labels_details"] == "true"


@pytest.mark.asyncio
async def test_project_path_is_url_encoded(make_client, server):
    server.routes[("GET", "/api/v4/projects/group/project/issues")] = ISSUES

    async with make_client() as gitlab:
        assert await gitlab.get_project_issues("group/project") == ISSUES

    assert b"/api/v4/projects/group%2Fproject/issues" in server.requests[0].url.raw_path


@pytest.mark.asyncio
async def test_update_issue_labels(make_client, server):
    updated = {"iid": 7, "labels": ["bug", "urgent"]}
    server.routes[("PUT", "/api/v4/projects/42/issues/7")] = updated

    async with make_client() as gitlab:
        result = await gitlab.update_issue_labels(42, 7, ["bug", "urgent"])

    assert result == updated
    assert len(server.requests) == 1
    assert server.requests[0].method == "PUT"
    assert server.requests[0].url.path == "/api/v4/projects/42/issues/7"
    assert server.body() == {"labels": "bug,urgent"}


@pytest.mark.asyncio
async def test_update_issue_labels_empty_set_clears_labels(make_client, server):
    server.routes[("PUT", "/api/v4/projects/42/issues/7")] = {"iid": 7, "labels": []}

    async with make_client() as gitlab:
        await gitlab.update_issue_labels(42, 7, [])

    assert server.body() == {"labels": ""}


@pytest.mark.asyncio
async def test_update_issue_labels_propagates_remote_error(make_client, server):
    server.routes[("PUT", "/api/v4/projects/42/issues/7")] = httpx.Response(
        403, json={"message": "403 Forbidden"}
    )

    async with make_client() as gitlab:
        with pytest.raises(RemoteError) as excinfo:
            await gitlab.update_issue_labels(42, 7, ["bug"])

    assert excinfo.value.status_code == 403
    assert "403 Forbidden" in str(excinfo.value)


@pytest.mark.asyncio
async def test_update_issue_labels_propagates_transport_failure(make_client, server):
    def refuse(request):
        raise httpx.ConnectError("Connection refused", request=request)

    server.routes[("PUT", "/api/v4/projects/42/issues/7")] = refuse

    async with make_client() as gitlab:
        with pytest.raises(TransportFailure) as excinfo:
            await gitlab.update_issue_labels(42, 7, ["bug"])

    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_update_issue_labels_redirect_is_an_error(make_client, server):
    server.routes[("PUT", "/api/v4/projects/42/issues/7")] = httpx.Response(
        301,
        json={"message": "moved"},
        headers={"Location": "https://gitlab.example.com/api/v4/projects/43/issues/7"},
    )

    async with make_client() as gitlab:
        with pytest.raises(RemoteError) as excinfo:
            await gitlab.update_issue_labels(42, 7, ["bug"])

    assert excinfo.value.status_code == 301
    assert len(server.requests) == 1


@pytest.mark.asyncio
async def test_update_issue_labels_non_json_response(make_client, server):
    server.routes[("PUT", "/api/v4/projects/42/issues/7")] = httpx.Response(
        200, text="ok"
    )

    async with make_client() as gitlab:
        with pytest.raises(UnexpectedPayloadError) as excinfo:
            await gitlab.update_issue_labels(42, 7, ["bug"])

    assert isinstance(excinfo.value.__cause__, ValueError)
    assert "ok" in str(excinfo.value)


@pytest.mark.asyncio
async def test_read_errors_propagate(make_client, server):
    server.routes[("GET", "/api/v4/projects")] = httpx.Response(500, text="boom")

    async with make_client() as gitlab:
        with pytest.raises(RemoteError):
            await gitlab.get_projects()


@pytest.mark.asyncio
async def test_read_redirect_is_an_error(make_client, server):
    server.routes[("GET", "/api/v4/projects")] = httpx.Response(
        302, headers={"Location": "https://gitlab.example.com/users/sign_in"}
    )

    async with make_client() as gitlab:
        with pytest.raises(RemoteError) as excinfo:
            await gitlab.get_projects()

    assert excinfo.value.status_code == 302
    assert server.paths == ["/api/v4/projects"]


@pytest.mark.asyncio
async def test_invalid_port_in_url(make_client, server):
    credentials = StaticCredentials(
        base_url="https://gitlab.example.com:notaport", token=TOKEN
    )

    async with make_client(credentials=credentials) as gitlab:
        assert await gitlab.get_project_board_lists(42) == []

        with pytest.raises(InvalidRequestError) as excinfo:
            await gitlab.get_projects()

    assert isinstance(excinfo.value.__cause__, httpx.InvalidURL)
    assert server.requests == []


@pytest.mark.asyncio
async def test_non_ascii_token(make_client, server):
    credentials = StaticCredentials(base_url="https://gitlab.example.com", token="tökén☃")

    async with make_client(credentials=credentials) as gitlab:
        assert await gitlab.get_project_board_lists(42) == []

        with pytest.raises(InvalidRequestError) as excinfo:
            await gitlab.update_issue_labels(42, 7, ["bug"])

    assert excinfo.value.endpoint_path == "/projects/{projectId}/issues/{issueIid}"
    assert server.requests == []


@pytest.mark.asyncio
async def test_list_endpoint_returning_object_is_rejected(make_client, server):
    server.routes[("GET", "/api/v4/projects")] = {"message": "not a list"}

    async with make_client() as gitlab:
        with pytest.raises(UnexpectedPayloadError):
            await gitlab.get_projects()


@pytest.mark.asyncio
async def test_board_lists_without_boards(make_client, server):
    server.routes[("GET", "/api/v4/projects/42/boards")] = []

    async with make_client() as gitlab:
        assert await gitlab.get_project_board_lists(42) == []

    assert server.paths == ["/api/v4/projects/42/boards"]


@pytest.mark.asyncio
async def test_board_lists_uses_first_board_only(make_client, server):
    server.routes[("GET", "/api/v4/projects/42/boards")] = [{"id": 9}, {"id": 10}]
    server.routes[("GET", "/api/v4/projects/42/boards/9/lists")] = LISTS

    async with make_client() as gitlab:
        assert await gitlab.get_project_board_lists(42) == LISTS

    assert server.paths == [
        "/api/v4/projects/42/boards",
        "/api/v4/projects/42/boards/9/lists",
    ]


@pytest.mark.asyncio
async def test_board_lists_failure_is_suppressed(make_client, server):
    server.routes[("GET", "/api/v4/projects/42/boards")] = [{"id": 9}]

    async with make_client() as gitlab:
        assert await gitlab.get_project_board_lists(42) == []

    assert server.paths[-1] == "/api/v4/projects/42/boards/9/lists"


@pytest.mark.asyncio
async def test_board_lists_transport_failure_is_suppressed(make_client, server):
    def refuse(request):
        raise httpx.ConnectError("Connection refused", request=request)

    server.routes[("GET", "/api/v4/projects/42/boards")] = refuse

    async with make_client() as gitlab:
        assert await gitlab.get_project_board_lists(42) == []


@pytest.mark.asyncio
async def test_board_without_id_is_suppressed(make_client, server):
    server.routes[("GET", "/api/v4/projects/42/boards")] = [{"name": "Development"}]

    async with make_client() as gitlab:
        assert await gitlab.get_project_board_lists(42) == []

    assert len(server.requests) == 1


@pytest.mark.asyncio
async def test_board_lists_failure_raises_with_raise_policy(make_client, server):
    server.routes[("GET", "/api/v4/projects/42/boards")] = [{"id": 9}]

    async with make_client(board_lists_errors="raise") as gitlab:
        with pytest.raises(RemoteError) as excinfo:
            await gitlab.get_project_board_lists(42)

    assert excinfo.value.status_code == 404


def test_invalid_board_lists_policy():
    with pytest.raises(ValueError):
        GitLab(credentials=NullCredentials(), board_lists_errors="ignore")


@pytest.mark.asyncio
async def test_credentials_are_read_on_every_call(make_client, server, credentials):
    server.routes[("GET", "/api/v4/projects")] = PROJECTS
    server.routes[("GET", "/api/v4/projects/42/issues")] = ISSUES

    async with make_client() as gitlab:
        await gitlab.get_projects()
        credentials.update(base_url="https://other.example.com/", token="rotated")
        await gitlab.get_project_issues(42)

    assert server.requests[0].headers["PRIVATE-TOKEN"] == TOKEN
    assert server.requests[1].headers["PRIVATE-TOKEN"] == "rotated"
    assert server.requests[1].url.host == "other.example.com"
    assert not hasattr(gitlab, "base_url")


@pytest.mark.asyncio
async def test_request_log_records_responses(make_client, server):
    server.routes[("GET", "/api/v4/projects")] = PROJECTS

    async with make_client() as gitlab:
        await gitlab.get_projects()
        with pytest.raises(RemoteError):
            await gitlab.get_project_issues(99)

    assert [entry.status_code for entry in gitlab.request_log] == [200, 404]
    assert gitlab.request_log[0].method == "GET"
    assert gitlab.request_index == 2


@pytest.mark.asyncio
async def test_client_is_closed_after_context(make_client, server):
    server.routes[("GET", "/api/v4/projects")] = PROJECTS

    async with make_client() as gitlab:
        await gitlab.get_projects()
        assert gitlab.client is not None

    assert gitlab.client is None
