"""
Tests for MemcachedClient against scripted sockets. No network required.

Run with: python -m pytest tests/test_client.py -v
"""

import pytest

from conftest import ScriptedSocket
from mcclient import MemcachedClient
from mcclient.errors import (
    InvalidKeyError,
    MemcachedConnectionError,
    ProtocolError,
    SerializationError,
    UnsupportedCommandError,
)
from mcclient.network.connection import Session
from mcclient.protocol.commands import CommandType, ItemMetadata, ResponseCode


class TestConstruction:
    """Test defaults and session ownership."""

    def test_defaults(self):
        client = MemcachedClient("127.0.0.1")
        assert client.port == 11211
        assert client.timeout is None
        assert client.compression is False
        assert client.last_response == ResponseCode.SUCCESS

    def test_each_client_owns_a_session(self):
        assert MemcachedClient().session_id != MemcachedClient().session_id

    def test_explicit_session_id(self):
        assert MemcachedClient(session_id="fixed").session_id == "fixed"

    def test_injected_session(self):
        session = Session()
        assert MemcachedClient(session=session).session is session

    def test_no_connection_until_first_operation(self, scripted):
        _, _, connector = scripted()
        assert connector.calls == []


class TestSet:
    """Test set through the client."""

    def test_set_writes_exact_request(self, scripted):
        client, sock, _ = scripted(b"STORED\r\n")
        assert client.set("key", "value", 30) is True
        assert sock.sent == [b"set key 0 30 5\r\nvalue\r\n"]
        assert client.last_response == ResponseCode.SUCCESS

    def test_multibyte_length_on_the_wire(self, scripted):
        client, sock, _ = scripted(b"STORED\r\n")
        client.set("k", "ü✓")
        assert sock.sent[0] == b"set k 0 0 5\r\n" + "ü✓".encode() + b"\r\n"

    @pytest.mark.parametrize("reply, code", [
        (b"NOT_STORED\r\n", ResponseCode.NOT_STORED),
        (b"EXISTS\r\n", ResponseCode.DATA_EXISTS),
        (b"NOT_FOUND\r\n", ResponseCode.NOT_FOUND),
    ])
    def test_negative_outcomes_return_false(self, scripted, reply, code):
        client, _, _ = scripted(reply)
        assert client.set("key", "value") is False
        assert client.last_response == code

    def test_store_returns_result(self, scripted):
        client, _, _ = scripted(b"NOT_STORED\r\n")
        result = client.store("key", 1)
        assert result.command == CommandType.SET
        assert result.code == ResponseCode.NOT_STORED
        assert result.message == "NOT_STORED"

    def test_unencodable_value_sends_nothing(self, scripted):
        client, sock, connector = scripted(b"STORED\r\n")
        with pytest.raises(SerializationError):
            client.set("key", object())
        assert sock.sent == []
        assert connector.calls == []


class TestGet:
    """Test get through the client."""

    def test_values_only(self, scripted):
        client, sock, _ = scripted(b"VALUE key 2 4\r\n5.23\r\nEND\r\n")
        value = client.get("key")
        assert value == 5.23
        assert isinstance(value, float)
        assert sock.sent == [b"get key\r\n"]

    def test_with_metadata(self, scripted):
        client, _, _ = scripted(b"VALUE key 0 5 42\r\nhello\r\nEND\r\n")
        result = client.get("key", with_metadata=True)
        assert result == {
            "key": ItemMetadata(key="key", value="hello", flags=0, length=5, cas=42, frames=1),
        }

    def test_miss_is_not_an_error(self, scripted):
        client, _, _ = scripted(b"END\r\n")
        assert client.get("missing") is None
        assert client.last_response == ResponseCode.NOT_FOUND

    def test_miss_returns_default(self, scripted):
        client, _, _ = scripted(b"END\r\n")
        assert client.get("missing", default=False) is False

    def test_stored_none_is_told_apart_by_fetch(self, scripted):
        client, _, _ = scripted(b"VALUE key 4 2\r\n\x01\xc0\r\nEND\r\n")
        result = client.fetch("key")
        assert result.ok
        assert result.value["key"].value is None


class TestDelete:
    """Test delete through the client."""

    def test_deleted(self, scripted):
        client, sock, _ = scripted(b"DELETED\r\n")
        assert client.delete("key") is True
        assert sock.sent == [b"delete key\r\n"]

    def test_not_found(self, scripted):
        client, _, _ = scripted(b"NOT_FOUND\r\n")
        assert client.delete("key") is False
        assert client.last_response == ResponseCode.NOT_FOUND


class TestErrors:
    """Hard failures raise; the socket is never touched for invalid input."""

    def test_unsupported_command_performs_no_io(self, scripted):
        client, sock, connector = scripted(b"OK\r\n")
        with pytest.raises(UnsupportedCommandError):
            client.send("flush_all", b"flush_all\r\n")
        assert sock.sent == []
        assert connector.calls == []

    def test_invalid_key_performs_no_io(self, scripted):
        client, sock, _ = scripted(b"STORED\r\n")
        with pytest.raises(InvalidKeyError):
            client.set("bad key", "v")
        assert sock.sent == []

    @pytest.mark.parametrize("reply, code", [
        (b"ERROR\r\n", ResponseCode.FAILURE),
        (b"CLIENT_ERROR bad data chunk\r\n", ResponseCode.CLIENT_ERROR),
        (b"SERVER_ERROR out of memory storing object\r\n", ResponseCode.SERVER_ERROR),
    ])
    def test_error_replies_raise_protocol_error(self, scripted, reply, code):
        client, _, _ = scripted(reply)
        with pytest.raises(ProtocolError) as info:
            client.set("key", "value")

        error = info.value
        assert error.command == "set"
        assert error.endpoint == "cache.test:11211"
        assert error.message == reply.decode().rstrip("\r\n")
        assert error.code == code
        assert client.last_response == code

    def test_last_response_is_reset_per_operation(self, scripted):
        client, _, _ = scripted(b"END\r\n", b"STORED\r\n")
        client.get("missing")
        assert client.last_response == ResponseCode.NOT_FOUND
        client.set("key", 1)
        assert client.last_response == ResponseCode.SUCCESS

    def test_connection_failure(self):
        def connector(address, timeout=None):
            raise ConnectionRefusedError(111, "Connection refused")

        client = MemcachedClient("cache.test", 11211, session=Session(connector=connector))
        with pytest.raises(MemcachedConnectionError):
            client.get("key")

    def test_broken_socket_is_dropped_from_session(self, scripted):
        client, sock, connector = scripted()
        with pytest.raises(MemcachedConnectionError):
            client.get("key")
        assert sock.closed
        assert len(client.session) == 0

    def _reopening_client(self, *scripts):
        """Client whose connector opens a fresh socket per call, one script each."""
        pending = [ScriptedSocket(list(replies)) for replies in scripts]
        opened = []

        def connector(address, timeout=None):
            opened.append(pending.pop(0))
            return opened[-1]

        client = MemcachedClient("cache.test", 11211, session=Session(connector=connector))
        return client, opened

    def test_framing_error_drops_socket(self):
        """Bytes left unread by a bad frame must not answer the next request."""
        bad = b"VALUE k 0 3\r\nabcX\r\n" + b"x" * 300 + b"\r\nEND\r\n"
        client, opened = self._reopening_client([bad], [b"STORED\r\n"])

        with pytest.raises(ProtocolError):
            client.get("k")
        assert client.last_response == ResponseCode.FAILURE
        assert opened[0].closed
        assert len(client.session) == 0

        assert client.set("k", "v") is True
        assert client.last_response == ResponseCode.SUCCESS
        assert len(opened) == 2
        assert opened[1].sent == [b"set k 0 0 1\r\nv\r\n"]

    def test_extra_reply_bytes_drop_socket(self):
        client, opened = self._reopening_client([b"STORED\r\nSTORED\r\n"], [b"DELETED\r\n"])

        with pytest.raises(ProtocolError, match="after response frame"):
            client.set("k", "v")
        assert opened[0].closed

        assert client.delete("k") is True
        assert len(opened) == 2


class TestConnectionReuse:
    """Operations on one client share one socket."""

    def test_single_open_for_many_operations(self, scripted):
        client, sock, connector = scripted(
            b"STORED\r\n",
            b"VALUE key 1 1\r\n7\r\nEND\r\n",
            b"DELETED\r\n",
        )
        assert client.set("key", 7)
        assert client.get("key") == 7
        assert client.delete("key")

        assert len(connector.calls) == 1
        assert len(sock.sent) == 3

    def test_connect_uses_client_timeout(self, scripted):
        client, sock, connector = scripted(timeout=2.5)
        assert client.connect("cache.test", 11211) is sock
        assert connector.calls == [(("cache.test", 11211), 2.5)]

    def test_context_manager_closes_sockets(self, scripted):
        client, sock, _ = scripted(b"STORED\r\n")
        with client:
            client.set("key", "value")
        assert sock.closed
