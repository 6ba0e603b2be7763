import json
import socket

import pytest

from datastacks.app import App, Entry, parse_string_template
from datastacks.server import Client

PASSWORD = "password"


@pytest.fixture
def app():
    password = PASSWORD
    instance = App(0, password, "127.0.0.1")
    yield instance
    instance.server.close()


@pytest.fixture
def pair():
    left, right = socket.socketpair()
    left.settimeout(2)
    right.settimeout(2)
    yield left, right
    left.close()
    right.close()


def test_parse_string_template_keeps_quoted_runs():
    assert parse_string_template('GET key "abc 123"') == ["GET", "key", "abc 123"]


def test_parse_string_template_collapses_spaces():
    assert parse_string_template("  SET   a  b  ") == ["SET", "a", "b"]


def test_parse_string_template_empty():
    assert parse_string_template("") == []


def test_entry_kinds():
    assert Entry(string_val="x").is_string()
    assert not Entry(string_val="x").is_array()
    assert Entry(array_val=[]).is_array()
    assert not Entry(array_val=[]).is_string()


def test_entry_without_ttl_never_expires():
    entry = Entry(string_val="x", ttl=0, when_set=100.0)
    assert entry.expired(1_000_000.0) is False


def test_entry_expiry_boundary():
    entry = Entry(string_val="x", ttl=10, when_set=100.0)
    assert entry.expired(110.0) is False
    assert entry.expired(111.0) is True


def test_set_and_get_string(app):
    assert app.execute('SET name "hello world"') == "OK"
    assert app.execute("GET name") == '"hello world"'


def test_set_and_get_array(app):
    assert app.execute("SET list a b c") == "OK"
    assert app.data["list"].array_val == ["a", "b", "c"]
    assert parse_string_template(app.execute("GET list")) == ["a", "b", "c"]


def test_get_missing_is_null(app):
    assert app.execute("GET nothing") == "NULL"


def test_too_few_parts_is_error(app):
    assert app.execute("GET") == "ERROR"
    assert app.execute("") == "ERROR"


def test_unknown_command_has_no_reply(app):
    assert app.execute("FROB key") is None


def test_ping(app):
    assert app.execute("PING now") == "PONG"


def test_setex_array_and_ttl(app):
    assert app.execute("SETEX k 100 a b") == "OK"
    assert app.data["k"].ttl == 100
    assert app.data["k"].array_val == ["a", "b"]
    assert parse_string_template(app.execute("GET k")) == ["a", "b"]


def test_setex_negative_ttl_is_expired(app):
    assert app.execute("SETEX k -1 a") == "OK"
    assert app.execute("GET k") == "NULL"


def test_setex_bad_seconds(app):
    assert app.execute("SETEX k abc v") == "ERROR"
    assert app.execute("SETEX k 99999999999 v") == "ERROR"
    assert "k" not in app.data


def test_setex_requires_seconds(app):
    assert app.execute("SETEX k") == "ERROR"


def test_pushback_and_pushfront(app):
    assert app.execute("PUSHBACK q b") == "OK"
    assert app.execute("PUSHBACK q c") == "OK"
    assert app.execute("PUSHFRONT q a") == "OK"
    assert app.data["q"].array_val == ["a", "b", "c"]


def test_pushfront_creates_array(app):
    assert app.execute("PUSHFRONT q x y") == "OK"
    assert app.data["q"].array_val == ["x", "y"]


def test_push_onto_string_is_error(app):
    app.execute("SET s v")
    assert app.execute("PUSHBACK s x") == "ERROR"
    assert app.execute("PUSHFRONT s x") == "ERROR"
    assert app.data["s"].string_val == "v"


def test_delete(app):
    app.execute("SET s v")
    assert app.execute("DEL s") == "OK"
    assert app.execute("GET s") == "NULL"
    assert app.execute("DEL s") == "OK"


def test_dropall(app):
    app.execute("SET a 1")
    app.execute("SET b 2")
    assert app.execute("DROPALL now") == "OK"
    assert app.data == {}


def test_authenticate(app):
    assert app.authenticate(json.dumps({"password": PASSWORD})) is True
    assert app.authenticate(json.dumps({"password": "secret"})) is False


def test_authenticate_rejects_bad_payloads(app):
    with pytest.raises(ValueError):
        app.authenticate("not json")
    with pytest.raises(ValueError):
        app.authenticate(json.dumps({"user": "x"}))
    with pytest.raises(ValueError):
        app.authenticate(json.dumps({"password": 5}))


def test_handle_new_client_authorizes(app, pair):
    server_side, client_side = pair
    client = Client(server_side)
    client_side.sendall(json.dumps({"password": PASSWORD}).encode())
    app.handle_new_client(client)
    assert client.authorized is True
    assert client_side.recv(1024) == b"OK"


def test_handle_new_client_wrong_password(app, pair):
    server_side, client_side = pair
    client = Client(server_side)
    client_side.sendall(json.dumps({"password": "secret"}).encode())
    app.handle_new_client(client)
    assert client.authorized is False


def test_handle_new_client_bad_payload_disconnects(app, pair):
    server_side, client_side = pair
    client = Client(server_side)
    client_side.sendall(b"garbage")
    app.handle_new_client(client)
    assert client.authorized is False
    assert client_side.recv(1024) == b""


def test_handle_client_message_replies(app, pair):
    server_side, client_side = pair
    client = Client(server_side)
    app.handle_client_message(client, "SET k v")
    assert client_side.recv(1024) == b"OK"
    assert app.data["k"].string_val == "v"
    app.handle_client_message(client, "GET k")
    reply = client_side.recv(1024)
    assert reply == b'"v"'
    assert reply.decode() == app.execute("GET k")