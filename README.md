# iotasks

iotasks is a small HTTP service for long-running, I/O-bound jobs. A client
creates a task with a title and an optional description. The service queues the
task and runs it on a pool of up to ten workers. The client can then fetch a
task, list tasks, update a task or delete it. Replies are JSON, and errors are
plain text.

By default each task takes two minutes to process, and one task in four fails at
random with the error `unable to complete the task`. This stands in for real
work that can go wrong.

## Installation

```
pip install .
```

To run the test suite, install the test extra too:

```
pip install ".[test]"
pytest
```

## Running

The server reads its port from the `PORT` variable in a `.env` file. By default
it reads the file from the current directory:

```
PORT=8080
```

Start the server:

```
iotasks
```

Use `--env-file PATH` to load a different settings file. Variables that are
already set in the environment are kept, not overwritten. The server listens on
all interfaces and prints `App is listening on port <PORT>...`. Stop it with
Ctrl-C.

The command exits quietly, without serving, if the settings file is missing or
`PORT` cannot be bound.

## API

| Method   | Path          | Description                              | Success status |
|----------|---------------|------------------------------------------|----------------|
| `GET`    | `/tasks`      | List tasks                               | 200            |
| `GET`    | `/tasks/{id}` | Fetch one task                           | 200            |
| `POST`   | `/tasks`      | Create a task and queue it for running   | 201            |
| `PUT`    | `/tasks/{id}` | Change a task's title and description    | 200            |
| `DELETE` | `/tasks/{id}` | Delete a task, cancelling it if it runs  | 204            |

`HEAD` is answered like `GET`. Any other path gets `404 page not found`. A known
path with a method it does not support gets 405, with an `Allow` header.

### Request body

`POST` and `PUT` take a JSON object:

```json
{"title": "fetch report", "description": "nightly export"}
```

`title` is required and must not be empty. Unknown fields are ignored. Field
names match without regard to case, and `null` counts as empty. On update, an
empty `description` leaves the stored description unchanged.

### Task object

```json
{
  "id": 1,
  "title": "fetch report",
  "description": "nightly export",
  "created_at": "2024-05-01T12:00:00.5Z",
  "updated_at": "2024-05-01T12:00:00.5Z",
  "finished_at": "0001-01-01T00:00:00Z",
  "duration": 12,
  "status": "running",
  "error": ""
}
```

Ids start at 1 and go up by one. Timestamps are RFC 3339 in UTC.
`finished_at` is `0001-01-01T00:00:00Z` until the task finishes.

`status` takes one of four values:

- `created`: the task is waiting in the queue.
- `running`: a worker is processing the task.
- `completed`: the task finished without error, or it was cancelled while it ran.
- `failed`: the task finished with an error, given in `error`.

`duration` is in whole seconds. For a finished task it runs from creation to
finish. For any other task it runs from creation to the request.

Deleting a running task cancels it. Deleting a queued task takes it out of the
queue.

### Listing and filtering

`GET /tasks` returns `{"tasks": [...]}`, or `{"tasks": null}` when no task
matches. These query parameters change the result:

- `ordered=true` lists tasks in the order they were created. Without it, the
  order is not defined.
- `created`, `running`, `completed` and `failed` filter by status. A task is
  listed only if the parameter for its status is true, for example
  `?running=true&failed=true`. With no valid filter parameter, every task is
  listed.

Boolean parameters accept `1`, `t`, `T`, `TRUE`, `true`, `True`, `0`, `f`, `F`,
`FALSE`, `false` and `False`. Any other value is logged as a warning and
ignored.

### Errors

- **400**: a malformed id, a malformed body, a missing title, or an id that does
  not exist. `PUT` is the exception: it answers **500** for an unknown id.

## Using it from Python

The server's parts can also be used directly:

```python
from iotasks.handler import TaskApi, make_server
from iotasks.processor import Processor
from iotasks.repository import Repository

processor = Processor(max_machines=4, work_duration=5.0, failure_rate=0.0)
api = TaskApi(Repository(), processor)

reply = api.dispatch("POST", "/tasks", body=b'{"title": "demo"}')
print(reply.status, reply.json())
```

- `TaskApi.dispatch(method, path, query, body)` answers a single request without a
  network and returns a `Response` with `status`, `headers` and `body`.
- `make_server(host, port, api)` binds a threaded HTTP server for `api`.
- `Processor.start()` blocks and hands queued tasks to workers until
  `Processor.stop()` is called. Run it on its own thread.
- `Repository` stores tasks. `find_by_id`, `update` and `delete` raise
  `TaskNotFoundError` for an unknown id.

## Limitations

Tasks live only in memory. Nothing is written to disk, so every task is lost
when the server stops. The service has no authentication, and the work each task
does is simulated.