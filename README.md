# crakit

A toolkit for full-stack web applications with a server-rendered backend and a
Vite-built frontend. It is a library: it has no command of its own.

## What is in it

- `crakit.workspace` – where the frontend directory, the Vite
  `manifest.json` and the view templates live (`frontend_dir()`,
  `manifest_path()`, `views_glob()`), plus `locate_workspace()`, which asks
  `cargo locate-project --workspace` for the workspace root, and
  `fallback()`, which picks between a workspace-member path and a default.
- `crakit.net` – `is_port_free(port)` and `find_free_port(ports)`.
- `crakit.mailer` – `Mailer`, an SMTP mailer configured from the
  environment, and `check_environment_variables()`.
- `crakit.templates` – `to_template_name()`, `load_manifest()`,
  `bundle_markup()` and `create_environment()`, which loads the view
  templates into a Jinja environment with a `bundle(name=...)` function.
- `crakit.views` – `ViewRenderer`, `Response`, `template_response()` and
  `file_response()` for answering requests with views, assets and single
  page applications.
- `crakit.qsync` – `params.to_typescript_type()` and
  `params.is_primitive_type()`, `naming.to_pascal_case()` and
  `naming.file_path_to_vec_string()`, and `hook.Hook` / `hook.HookParam`,
  which render typed React Query hooks as TypeScript.
- `crakit.dev` – `events` (`DevServerEvent`, `EventKind`, `DevState`,
  `Migration`, `MigrationStatus`, `merge_migrations()`, `get_features()`)
  and `servers` (`BackendServer`, `FrontendServer`, `compile_backend()`,
  `parse_cargo_messages()`, `classify_changes()`, `notify_dev_server()`).

## Configuration

| Variable | Used by | Meaning |
| --- | --- | --- |
| `CRA_FRONTEND_DIR` | `workspace.frontend_dir()` | frontend directory |
| `CRA_MANIFEST_PATH` | `workspace.manifest_path()` | Vite manifest file |
| `CRA_VIEWS_GLOB` | `workspace.views_glob()` | glob of view templates |
| `CARGO` | `workspace.locate_workspace()` | cargo executable (default `cargo`) |
| `SMTP_FROM_ADDRESS`, `SMTP_SERVER`, `SMTP_USERNAME`, `SMTP_PASSWORD` | `Mailer.from_env()` | SMTP settings |
| `SEND_MAIL` | `Mailer.from_env()` | `true` to send, anything else to only log |
| `DEV_SERVER_PORT` | `servers.notify_dev_server()` | port of the development server |

Without the `CRA_*` variables the paths are `./frontend`,
`./frontend/dist/manifest.json` and `backend/views/**/*.html`. Each value is
worked out once and then cached for the life of the process.

## Views

```python
from crakit.templates import create_environment, to_template_name
from crakit.views import ViewRenderer

to_template_name("/")           # "index.html"
to_template_name("/foo/bar")    # "foo/bar"

environment = create_environment("backend/views/**/*.html", dev=True)
renderer = ViewRenderer(environment, frontend_dir="./frontend", dev=True)
response = renderer.render_views("/", host="localhost:3000")
response.status, response.headers["Content-Type"]   # 200, "text/html"
```

`render_views(path, host)` renders the template named after the path. If
there is none it serves a matching file from the frontend directory (in
development from the directory itself or its `public/`, otherwise from
`dist/`), and failing that renders `index.html`; with no `index.html` the
response is a 404. In development mode it also answers `/__vite_ping` with a
temporary redirect to `.` up to three times in a row, then with a 404, and
injects the react-refresh preamble after `<body>`.

Templates call `{{ bundle(name="index.tsx") }}`. In development this emits a
script that loads the bundle from the Vite dev server on port 21012; in
production it emits the script, stylesheet and dynamic-import tags listed
for `bundles/<name>` in the manifest. `dev` defaults to `__debug__`.

## Ports

```python
from crakit.net import find_free_port, is_port_free

port = find_free_port(range(60012, 65535))
assert port is None or is_port_free(port)
```

A port counts as free only if it can be bound on both `::` and `0.0.0.0`.

## Mail

```python
from crakit.mailer import Mailer

mailer = Mailer.from_env({
    "SMTP_FROM_ADDRESS": "app@example.com",
    "SEND_MAIL": "false",
})
mailer.send("someone@example.com", "Welcome", "Hello!", "<p>Hello!</p>")
```

`from_env()` prints a warning naming any unset mail variables, and another if
`SEND_MAIL` is neither `true` nor `false`. `send()` always builds a
plain-text/HTML message (raising `InvalidAddressError` for an unparsable
address) and prints a log of it; only when `actually_send` is true does it log
in to `smtp_server` over SSL on port 465 and deliver it. It returns whether
delivery succeeded (always true when not sending).

## Query hooks

```python
from crakit.qsync.hook import Hook, HookParam
from crakit.qsync.params import is_primitive_type, to_typescript_type

is_primitive_type("String")        # True
to_typescript_type("Vec<i32>")     # "Array<number>"
to_typescript_type("Option<bool>") # "boolean | undefined"

hook = Hook(
    hook_name="useTodo",
    endpoint_url="/api/todos/{id}",
    endpoint_verb="get",
    uses_auth=False,
    return_type="Todo",
    is_mutation=False,
    path_params=[HookParam("id", "number")],
)
print(hook.render())
```

Queries render as `useQuery` hooks taking the parameters plus an optional
`options` argument; mutations render as `useMutation` hooks that take one
`params` object and invalidate their query key on success.

## Development server pieces

`DevServerEvent` values are built with class methods such as
`DevServerEvent.backend_status(True)` and serialised for the browser client
with `.json()` (compact JSON with sorted keys). `merge_migrations(file_versions,
pending_versions, applied_versions)` combines local migration directory names
with pending and applied versions into `Migration` entries, marking applied
versions with no local directory as `APPLIED_BUT_MISSING_LOCALLY`.
`get_features(project_dir)` reads the features the project's `Cargo.toml`
enables on its framework dependency, including `[workspace.dependencies]`.

`BackendServer` runs `cargo run` and `FrontendServer` runs
`npm run start:dev` in `frontend/`, both with `DEV_SERVER_PORT` set; they
record their state in a shared `DevState` and call `on_all_stopped` once
everything has stopped. `compile_backend(project_dir, publish)` runs
`cargo build` with JSON diagnostics and publishes the compiler messages as
they arrive. `classify_changes()` tells whether a batch of changed paths
calls for a rebuild and whether it touched the migrations directory.

## What it does not do

- It does not run an HTTP server or bind to a web framework: `ViewRenderer`
  returns `Response` objects for the caller's server to send.
- It does not watch files, listen for signals or wire the development
  processes together; the caller drives `BackendServer`, `FrontendServer`
  and `compile_backend()` and delivers the published events.
- It does not talk to a database or run migrations; `merge_migrations()`
  works only on the version lists it is given.
- It has no file storage, background task queue or account e-mail templates.