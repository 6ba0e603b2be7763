# datastacks

A small in-memory key-value server that speaks a plain-text protocol over TCP.
Values are either a single string or a list of strings, and a key can be given
a time-to-live in seconds. A client's first message carries the server
password; when it matches, the client is marked as authorized.

## Installing

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Starting a server

The package installs a `datastacks` command:

```
datastacks PORT PASSWORD [--host HOST]
datastacks --help
```

`PORT` is the TCP port to listen on, `PASSWORD` the password clients must
send, and `--host` the address to bind (all addresses by default). The server
logs to standard error at INFO level and runs until interrupted with Ctrl-C.
`python -m datastacks.app` does the same.

The same can be done from Python with `datastacks.app.App`:

```python
from datastacks.app import App

password = "password"
app = App(port=6380, password=password, host="127.0.0.1")
try:
    app.run()          # blocks, accepting clients
finally:
    app.server.close()
```

The password is kept only as its SHA-256 hex digest (see
`datastacks.server.sha256`). `App.run` returns once `app.server.close()` has
been called, for example from another thread.

## Protocol

Each read of up to 1024 bytes from a client is taken as one message; the text
up to the first NUL byte is used. Replies are sent as plain text with no line
terminator.

After connecting, a client first sends a JSON object holding the password:

```
{"password": "password"}
```

If it matches, the server answers `OK` and marks the client as authorized. A
wrong password gets no reply. A payload that is not valid JSON, is not an
object, has no `password` field, or whose `password` is not a string makes
the server shut down its side of the connection.

Every later message is one command. Words are separated by spaces, and double
quotes group words containing spaces into one value (the quotes themselves are
dropped):

| Command | Meaning | Reply |
|---|---|---|
| `SET key value` | store a string | `OK` |
| `SET key v1 v2 ...` | store a list | `OK` |
| `SETEX key seconds value` | store a one-item list with a time-to-live | `OK` |
| `SETEX key seconds v1 v2 ...` | store a list with a time-to-live | `OK` |
| `SETEX key seconds` | store the text `seconds` itself as a string with that time-to-live | `OK` |
| `GET key` | read a value | `"value"`, `"v1" "v2" ...`, or `NULL` if missing or expired |
| `PUSHBACK key v1 ...` | append `v1` to a list; a missing key is created holding all given values | `OK`, or `ERROR` if the key holds a string or no value is given |
| `PUSHFRONT key v1 ...` | prepend `v1` to a list; a missing key is created holding all given values | `OK`, or `ERROR` if the key holds a string or no value is given |
| `DEL key` | remove a key (missing keys are fine) | `OK` |
| `PING x` | check the server is alive | `PONG` |
| `DROPALL x` | remove every key | `OK` |

`SETEX` answers `ERROR` when `seconds` does not start with a 32-bit integer.
A value with a time-to-live of 0 never expires; otherwise `GET` returns `NULL`
once more than that many whole seconds have passed since it was set. Expired
values are not removed, only hidden from `GET`.

A message with fewer than two words is answered with `ERROR`, so `PING` and
`DROPALL` need a second word. Unknown commands get no reply.

Example session:

```
> SET greeting "hello world"
OK
> GET greeting
"hello world"
> PUSHBACK queue a
OK
> PUSHBACK queue b
OK
> GET queue
"a" "b"
```

## Using the pieces directly

The command parser and the command executor work without any client
connected:

```python
from datastacks.app import App, parse_string_template

parse_string_template('GET key "abc 123"')
# ['GET', 'key', 'abc 123']

password = "password"
app = App(port=0, password=password, host="127.0.0.1")
app.execute('SET name "value"')   # 'OK'
app.execute("GET name")           # '"value"'
app.authenticate('{"password": "password"}')  # True
app.server.close()
```

Stored values live in `app.data`, a dict of `Entry` objects with `array_val`,
`string_val`, `ttl` and `when_set`.

`datastacks.server.Server` is the TCP layer on its own: it binds in its
constructor, `run()` accepts clients and serves each on a daemon thread,
calling `on_new_client(client)` once per connection and
`on_message(message, client)` for each message. `send_string`,
`disconnect_client` and `close` are available, and a `Server` can be used as a
context manager that closes it on exit. Each connection is a `Client` holding
the socket, an `authorized` flag and a `commands_executed` counter.

## What it does not do

- Data is held in memory only; nothing is saved to disk, and everything is
  lost when the server stops.
- The `authorized` flag is recorded but not checked: commands from a client
  that sent a wrong password are still executed.
- There is no client library; any TCP client that sends the messages above
  will do.
- Connections are plain TCP without encryption.