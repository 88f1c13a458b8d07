"""HTTP routes for the task API and the server that exposes them."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Union
from urllib.parse import parse_qs, unquote, urlsplit

from .models import TaskRequest
from .processor import Processor
from .query import Query, is_ordered, valid_query_params
from .repository import Repository, TaskNotFoundError

_log = logging.getLogger(__name__)

_MAX_ID = 2**64 - 1
_JSON_ESCAPES = (
    ("&", "\\u0026"),
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("\u2028", "\\u2028"),
    ("\u2029", "\\u2029"),
)


@dataclass
class Response:
    """Status, headers and body of an HTTP reply."""

    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def json(self) -> Any:
        """Decode the body as JSON."""
        return json.loads(self.body)


def _encode_json(data: Any) -> str:
    text = json.dumps(data, ensure_ascii=False, separators=(",", ":"))
    for raw, escaped in _JSON_ESCAPES:
        text = text.replace(raw, escaped)
    return text + "\n"


def json_response(data: Any, status: int) -> Response:
    """Build a JSON reply; a 204 reply carries no body."""
    headers = {"Content-Type": "application/json"}
    if status == HTTPStatus.NO_CONTENT:
        return Response(status, headers)
    return Response(status, headers, _encode_json(data).encode("utf-8"))


def error_response(message: str, status: int) -> Response:
    """Build a plain-text error reply."""
    headers = {
        "Content-Type": "text/plain; charset=utf-8",
        "X-Content-Type-Options": "nosniff",
    }
    return Response(status, headers, (message + "\n").encode("utf-8"))


def _parse_id(text: str) -> int:
    if not text or not text.isascii() or not text.isdigit():
        raise ValueError(f"parsing {json.dumps(text, ensure_ascii=False)}: invalid syntax")
    value = int(text)
    if value > _MAX_ID:
        raise ValueError(f"parsing {json.dumps(text)}: value out of range")
    return value


class _BadId(Exception):
    def __init__(self, response: Response) -> None:
        super().__init__(response.body.decode("utf-8", "replace"))
        self.response = response


def _task_id(text: str) -> int:
    try:
        return _parse_id(text)
    except ValueError as exc:
        raise _BadId(
            error_response(f"wrong id format: {exc}, get {text}", HTTPStatus.BAD_REQUEST)
        ) from exc


Route = Callable[[Query, str, bytes], Response]


class TaskApi:
    """Routes task requests to the repository and the processor."""

    def __init__(self, repository: Repository, processor: Processor) -> None:
        self.repository = repository
        self.processor = processor

    def dispatch(
        self,
        method: str,
        path: str,
        query: Union[str, Query, None] = None,
        body: bytes = b"",
    ) -> Response:
        """Answer one request and return the reply."""
        if query is None and "?" in path:
            path, query = path.split("?", 1)
        if query is None:
            query = {}
        elif isinstance(query, str):
            query = parse_qs(query, keep_blank_values=True)

        routes, path_id = self._routes_for(path)
        if routes is None:
            return error_response("404 page not found", HTTPStatus.NOT_FOUND)
        route = routes.get("GET" if method == "HEAD" else method)
        if route is None:
            allowed = set(routes)
            if "GET" in allowed:
                allowed.add("HEAD")
            response = error_response("Method Not Allowed", HTTPStatus.METHOD_NOT_ALLOWED)
            response.headers["Allow"] = ", ".join(sorted(allowed))
            return response
        try:
            return route(query, path_id, body)
        except _BadId as exc:
            return exc.response

    def _routes_for(self, path: str) -> tuple[dict[str, Route] | None, str]:
        if path == "/tasks":
            return {"GET": self._list, "POST": self._create}, ""
        prefix = "/tasks/"
        if path.startswith(prefix):
            rest = path[len(prefix):]
            if rest and "/" not in rest:
                return (
                    {"GET": self._find, "PUT": self._update, "DELETE": self._delete},
                    unquote(rest),
                )
        return None, ""

    def _list(self, query: Query, _path_id: str, _body: bytes) -> Response:
        params = valid_query_params(query)
        if is_ordered(query):
            tasks = self.repository.get_tasks_in_order(params)
        else:
            tasks = self.repository.get_tasks(params)
        payload = [task.to_dict() for task in tasks] or None
        return json_response({"tasks": payload}, HTTPStatus.OK)

    def _find(self, _query: Query, path_id: str, _body: bytes) -> Response:
        task_id = _task_id(path_id)
        try:
            task = self.repository.find_by_id(task_id)
        except TaskNotFoundError as exc:
            return error_response(str(exc), HTTPStatus.BAD_REQUEST)
        return json_response(task.to_dict(), HTTPStatus.OK)

    def _delete(self, _query: Query, path_id: str, _body: bytes) -> Response:
        task_id = _task_id(path_id)
        try:
            self.repository.delete(task_id, self.processor)
        except TaskNotFoundError as exc:
            return error_response(str(exc), HTTPStatus.BAD_REQUEST)
        return json_response(None, HTTPStatus.NO_CONTENT)

    def _create(self, _query: Query, _path_id: str, body: bytes) -> Response:
        try:
            request = TaskRequest.from_json(body)
        except ValueError as exc:
            return error_response(f"bad create query: {exc}", HTTPStatus.BAD_REQUEST)
        if not request.title:
            return error_response('"title" value is required', HTTPStatus.BAD_REQUEST)
        task = self.repository.create(request)
        self.processor.add_task(task)
        return json_response(task.to_dict(), HTTPStatus.CREATED)

    def _update(self, _query: Query, path_id: str, body: bytes) -> Response:
        task_id = _task_id(path_id)
        try:
            request = TaskRequest.from_json(body)
        except ValueError as exc:
            return error_response(f"bad update query: {exc}", HTTPStatus.BAD_REQUEST)
        if not request.title:
            return error_response('"title" value is required', HTTPStatus.BAD_REQUEST)
        try:
            task = self.repository.update(request, task_id)
        except TaskNotFoundError as exc:
            return error_response(str(exc), HTTPStatus.INTERNAL_SERVER_ERROR)
        return json_response(task.to_dict(), HTTPStatus.OK)


class _TaskServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address: tuple[str, int], api: TaskApi) -> None:
        self.api = api
        super().__init__(address, _RequestHandler)


class _RequestHandler(BaseHTTPRequestHandler):
    server: _TaskServer

    def _handle(self) -> None:
        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            self.send_error(HTTPStatus.BAD_REQUEST, "bad Content-Length")
            return
        body = self.rfile.read(length) if length > 0 else b""
        parts = urlsplit(self.path)
        response = self.server.api.dispatch(self.command, parts.path, parts.query, body)
        self.send_response(response.status)
        for name, value in response.headers.items():
            self.send_header(name, value)
        if response.status != HTTPStatus.NO_CONTENT:
            self.send_header("Content-Length", str(len(response.body)))
        self.end_headers()
        if self.command != "HEAD" and response.body:
            self.wfile.write(response.body)

    do_GET = do_HEAD = do_POST = do_PUT = do_DELETE = do_PATCH = do_OPTIONS = _handle

    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
        """Send access messages to the module logger instead of stderr."""
        _log.debug("%s - %s", self.address_string(), format % args)


def make_server(host: str, port: int, api: TaskApi) -> ThreadingHTTPServer:
    """Bind a threaded HTTP server that answers with ``api``."""
    return _TaskServer((host, port), api)


__all__ = [
    "Response",
    "TaskApi",
    "error_response",
    "json_response",
    "make_server",
]