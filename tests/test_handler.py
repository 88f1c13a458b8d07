import json
import threading
import urllib.error
import urllib.request
from http import HTTPStatus

import pytest

from iotasks.handler import TaskApi, error_response, json_response, make_server
from iotasks.models import TaskStatus
from iotasks.processor import Processor
from iotasks.repository import Repository


@pytest.fixture
def api():
    return TaskApi(Repository(), Processor())


def _create(api, title, description=""):
    body = json.dumps({"title": title, "description": description}).encode()
    return api.dispatch("POST", "/tasks", None, body)


def test_create_returns_task_and_queues_it(api):
    response = _create(api, "report", "weekly")
    assert response.status == HTTPStatus.CREATED
    data = response.json()
    assert data["title"] == "report"
    assert data["description"] == "weekly"
    assert data["status"] == "created"
    assert [task.id for task in api.processor.queued_tasks()] == [data["id"]]


def test_create_requires_title(api):
    response = api.dispatch("POST", "/tasks", None, b'{"description": "x"}')
    assert response.status == HTTPStatus.BAD_REQUEST
    assert response.body == b'"title" value is required\n'


def test_create_rejects_bad_json(api):
    response = api.dispatch("POST", "/tasks", None, b"{not json")
    assert response.status == HTTPStatus.BAD_REQUEST
    assert response.body.startswith(b"bad create query: ")


def test_create_rejects_empty_body(api):
    response = api.dispatch("POST", "/tasks", None, b"")
    assert response.body == b"bad create query: EOF\n"


def test_find_by_id(api):
    created = _create(api, "a").json()
    response = api.dispatch("GET", f"/tasks/{created['id']}")
    assert response.status == HTTPStatus.OK
    assert response.json()["title"] == "a"
    assert response.headers["Content-Type"] == "application/json"


def test_find_with_bad_id(api):
    response = api.dispatch("GET", "/tasks/abc")
    assert response.status == HTTPStatus.BAD_REQUEST
    assert response.body.startswith(b"wrong id format: ")
    assert response.body.endswith(b", get abc\n")


def test_find_missing(api):
    response = api.dispatch("GET", "/tasks/99")
    assert response.status == HTTPStatus.BAD_REQUEST
    assert response.body == b"task with ID 99 not found\n"


def test_list_empty_gives_null(api):
    response = api.dispatch("GET", "/tasks")
    assert response.json() == {"tasks": None}


def test_list_ordered(api):
    for title in ("a", "b", "c"):
        _create(api, title)
    response = api.dispatch("GET", "/tasks", "ordered=true")
    assert [task["title"] for task in response.json()["tasks"]] == ["a", "b", "c"]


def test_list_filters_by_status(api):
    _create(api, "a")
    _create(api, "b")
    api.repository.find_by_id(2).status = TaskStatus.RUNNING
    response = api.dispatch("GET", "/tasks?running=1")
    assert [task["id"] for task in response.json()["tasks"]] == [2]


def test_delete_then_find(api):
    _create(api, "a")
    response = api.dispatch("DELETE", "/tasks/1")
    assert response.status == HTTPStatus.NO_CONTENT
    assert response.body == b""
    assert api.processor.queued_tasks() == []
    assert api.dispatch("GET", "/tasks/1").status == HTTPStatus.BAD_REQUEST


def test_delete_missing(api):
    response = api.dispatch("DELETE", "/tasks/5")
    assert response.status == HTTPStatus.BAD_REQUEST


def test_update(api):
    _create(api, "a", "first")
    response = api.dispatch("PUT", "/tasks/1", None, b'{"title": "b"}')
    assert response.status == HTTPStatus.OK
    data = response.json()
    assert (data["title"], data["description"]) == ("b", "first")


def test_update_missing_is_server_error(api):
    response = api.dispatch("PUT", "/tasks/8", None, b'{"title": "b"}')
    assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
    assert response.body == b"task with ID 8 not found\n"


def test_update_rejects_bad_json(api):
    _create(api, "a")
    response = api.dispatch("PUT", "/tasks/1", None, b"[")
    assert response.body.startswith(b"bad update query: ")


def test_unknown_path_and_method(api):
    assert api.dispatch("GET", "/other").status == HTTPStatus.NOT_FOUND
    response = api.dispatch("PATCH", "/tasks")
    assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
    assert response.headers["Allow"] == "GET, HEAD, POST"


def test_json_response_escapes_html():
    response = json_response({"a": "<b>"}, HTTPStatus.OK)
    assert response.body == b'{"a":"\\u003cb\\u003e"}\n'
    assert json.loads(response.body) == {"a": "<b>"}


def test_error_response_is_plain_text():
    response = error_response("boom", HTTPStatus.BAD_REQUEST)
    assert response.headers["Content-Type"] == "text/plain; charset=utf-8"
    assert response.body == b"boom\n"


def test_server_round_trip(api):
    server = make_server("127.0.0.1", 0, api)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        base = f"http://127.0.0.1:{server.server_address[1]}"
        request = urllib.request.Request(
            base + "/tasks", data=b'{"title": "net"}', method="POST"
        )
        with urllib.request.urlopen(request) as reply:
            assert reply.status == HTTPStatus.CREATED
            created = json.loads(reply.read())
        with urllib.request.urlopen(f"{base}/tasks/{created['id']}") as reply:
            assert json.loads(reply.read())["title"] == "net"
        with pytest.raises(urllib.error.HTTPError) as info:
            urllib.request.urlopen(base + "/tasks/404404")
        assert info.value.code == HTTPStatus.BAD_REQUEST
    finally:
        server.shutdown()
        server.server_close()