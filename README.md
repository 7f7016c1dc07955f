# comandad

`comandad` is a small WSGI server that exposes a data directory over HTTP.
Clients can list, create, update, delete, read, upload and download files,
and store YAML workflow documents, while every path stays confined to the
configured data directory.

## Installation

```
pip install .
```

For running the test suite:

```
pip install ".[test]"
pytest
```

## Running the server

```
comandad --help
```

Options:

| Option            | Default                                   | Meaning                                              |
|-------------------|-------------------------------------------|------------------------------------------------------|
| `--port`          | `8080`                                    | Port to listen on (all interfaces)                   |
| `--data-dir`      | `data`                                    | Directory holding the served files; created if absent |
| `--bearer-token`  | value of `COMANDAD_BEARER_TOKEN`, or empty | Token required in the `Authorization` header         |
| `-v`, `--verbose` | off                                       | Log debug details                                    |

Authentication is switched on whenever a bearer token is given. On start-up
the server prints its port, its data directory and an example `curl` request
(with the token masked).

## Endpoints

| Path              | Methods            | Purpose                                        |
|-------------------|--------------------|------------------------------------------------|
| `/health`         | any                | Health check with a timestamp; no token needed |
| `/list`           | GET                | List every file and directory with metadata    |
| `/files`          | POST, PUT, DELETE  | Create, update or delete a file                |
| `/files/content`  | GET                | Return a file's raw content                    |
| `/files/upload`   | POST               | Upload a file as `multipart/form-data`         |
| `/files/download` | GET                | Download a file as an attachment               |
| `/yaml/upload`    | POST               | Store a YAML document under a generated name   |

- `/files` takes a JSON body `{"path": ..., "content": ...}` for `POST`
  (create; `409` if the file exists) and `PUT` (update; `404` if missing).
  `DELETE` takes the path in the `path` query parameter.
- `/files/content` sets `Content-Type` from the extension: `.json` gives
  `application/json`, `.yaml`/`.yml` give `application/yaml`, anything else
  `text/plain`.
- `/files/upload` stores the `file` field at the `path` field, or under the
  uploaded file's own name when `path` is absent.
- `/yaml/upload` takes a JSON body with a `content` field and writes it to
  `upload_<nanoseconds>.yaml`.
- `/list` reports `"files": null` when the directory is empty. YAML files are
  listed with `"methods": "POST"`.

Responses other than raw content and downloads are JSON objects with a
`success` field and either a `message` or an `error`. Unknown paths get a
plain-text `404`.

When authentication is enabled, every request except `OPTIONS` and `/health`
must carry the bearer token, or it is answered with `401`:

```
curl -H 'Authorization: Bearer token' 'http://localhost:8080/list'
```

CORS headers are added to every response, and `OPTIONS` requests are answered
at once with `200`. Each request is logged with its method, path, query,
masked `Authorization` value, status and duration.

### Path rules

Paths are always relative to the data directory. Absolute paths and any form
of `..` traversal are refused with `403`. An empty path when creating a file
falls back to `file.txt`.

## Using it from Python

```python
from comandad.models import ServerConfig
from comandad.app import build_server

config = ServerConfig(port=8080, data_dir="./data", bearer_token="token", enabled=True)
server = build_server(config)
```

`build_server` creates the data directory and returns a `Server` with the
default CORS settings (any origin, the usual methods and headers, max age
3600). A `Server` built directly from a `ServerConfig` uses that config's
`cors` field, which is disabled by default. `Server` is a WSGI application
and can be served by any WSGI server or exercised with `werkzeug.test.Client`;
`comandad.app.run(config)` serves it with werkzeug's development server.

Lower-level helpers:

- `comandad.paths.validate_path(data_dir, path)` returns the full path inside
  the data directory or raises `PathError`.
- `comandad.paths.list_files(data_dir)` and
  `comandad.paths.file_info(data_dir, path)` return `FileInfo` records.
- `comandad.models.SSEWriter` formats server-sent events (`data`, `progress`,
  `spinner`, `complete`, `error`, heartbeats) on a binary stream, and
  `FilteringWriter` splits `[DEBUG]`/`[VERBOSE]` lines from other output.
- `comandad.request_log.RequestLogger` is the request-logging WSGI middleware;
  `mask_authorization(header)` hides the credentials in a header value.
- `comandad.utils.mask_token(token)` hides all but the ends of a token, and
  `truncate_string(s, max_len)` shortens text with an ellipsis.

## What it does not do

The server stores YAML workflow documents but never runs them: there is no
endpoint that processes a workflow, and no streamed progress over
server-sent events, although `SSEWriter` can format such events. It has no
endpoints for managing model providers or their API keys, nor for encrypting
or decrypting an environment file, and no bulk file, backup or restore
operations. Configuration comes only from the command-line options above.