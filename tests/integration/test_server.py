"""
End-to-end tests against a live server on a loopback port.
"""

import gzip
import time

from rawhttpd.http.router import Router


class TestEndpoints:
    """One request per endpoint, checked on the wire."""

    def test_root_exact_bytes(self, client):
        """Test the exact bytes of the root response."""
        c = client()
        c.send(b"GET / HTTP/1.1\r\nHost: localhost\r\n\r\n")

        assert c.raw_head() == b"HTTP/1.1 200 OK\r\nContent-Length: 0\r\n\r\n"

    def test_echo(self, client):
        """Test the echo endpoint."""
        c = client()
        c.request("GET", "/echo/abc")
        status, headers, body = c.read_response()

        assert status == "HTTP/1.1 200 OK"
        assert headers["content-type"] == "text/plain"
        assert headers["content-length"] == "3"
        assert body == b"abc"

    def test_echo_gzip(self, client):
        """Test gzip negotiation on the echo endpoint."""
        c = client()
        c.request("GET", "/echo/hello", {"Accept-Encoding": "invalid-1, gzip, invalid-2"})
        status, headers, body = c.read_response()

        assert status == "HTTP/1.1 200 OK"
        assert headers["content-encoding"] == "gzip"
        assert int(headers["content-length"]) == len(body)
        assert gzip.decompress(body) == b"hello"

    def test_user_agent(self, client):
        """Test the user-agent endpoint."""
        c = client()
        c.request("GET", "/user-agent", {"User-Agent": "foobar/1.2.3"})
        status, headers, body = c.read_response()

        assert status == "HTTP/1.1 200 OK"
        assert body == b"foobar/1.2.3"

    def test_not_found(self, client):
        """Test 404 for an unknown path."""
        c = client()
        c.request("GET", "/nope")
        status, headers, body = c.read_response()

        assert status == "HTTP/1.1 404 Not Found"
        assert headers["content-length"] == "0"
        assert body == b""

    def test_method_not_allowed(self, client):
        """Test 405 for an unsupported method."""
        c = client()
        c.request("DELETE", "/files/x")
        status, _, _ = c.read_response()

        assert status == "HTTP/1.1 405 Method Not Allowed"


class TestFiles:
    """Upload and download through /files/."""

    def test_get_existing(self, client, serve_dir):
        """Test downloading an existing file."""
        (serve_dir / "foo").write_bytes(b"Hello, World!")

        c = client()
        c.request("GET", "/files/foo")
        status, headers, body = c.read_response()

        assert status == "HTTP/1.1 200 OK"
        assert headers["content-type"] == "application/octet-stream"
        assert headers["content-length"] == "13"
        assert body == b"Hello, World!"

    def test_get_missing(self, client):
        """Test 404 for a missing file."""
        c = client()
        c.request("GET", "/files/non_existent")

        assert c.read_response()[0] == "HTTP/1.1 404 Not Found"

    def test_post_then_get(self, client, serve_dir):
        """Test uploading a file and downloading it on the same connection."""
        c = client()
        c.request("POST", "/files/upload", body=b"12345")
        status, headers, body = c.read_response()

        assert status == "HTTP/1.1 201 Created"
        assert body == b""
        assert (serve_dir / "upload").read_bytes() == b"12345"

        c.request("GET", "/files/upload")
        assert c.read_response()[2] == b"12345"

    def test_large_upload(self, client, serve_dir):
        """Test an upload larger than one read."""
        data = bytes(range(256)) * 1024

        c = client()
        c.request("POST", "/files/big", body=data)

        assert c.read_response()[0] == "HTTP/1.1 201 Created"
        assert (serve_dir / "big").read_bytes() == data

    def test_traversal_rejected(self, client, serve_dir):
        """Test that a file outside the directory is not served."""
        (serve_dir.parent / "secret").write_bytes(b"private")

        c = client()
        c.request("GET", "/files/../secret")
        status, _, body = c.read_response()

        assert status == "HTTP/1.1 404 Not Found"
        assert body == b""


class TestKeepAlive:
    """Connection reuse and close behavior."""

    def test_two_requests_one_connection(self, client):
        """Test two sequential requests on one connection."""
        c = client()
        c.request("GET", "/echo/one")
        assert c.read_response()[2] == b"one"

        c.request("GET", "/echo/two")
        status, headers, body = c.read_response()

        assert body == b"two"
        assert "connection" not in headers

    def test_pipelined_requests_in_order(self, client):
        """Test that pipelined requests are answered in order."""
        c = client()
        c.send(
            b"GET /echo/first HTTP/1.1\r\n\r\n"
            b"GET /echo/second HTTP/1.1\r\n\r\n"
        )

        assert c.read_response()[2] == b"first"
        assert c.read_response()[2] == b"second"

    def test_connection_close(self, client):
        """Test that Connection: close is echoed and the socket closed."""
        c = client()
        c.request("GET", "/echo/a")
        c.read_response()

        c.request("GET", "/echo/b", {"Connection": "close"})
        status, headers, body = c.read_response()

        assert body == b"b"
        assert headers["connection"] == "close"
        assert c.is_closed_by_server()

    def test_unread_body_skipped(self, client):
        """Test that a body no handler reads does not corrupt the next request."""
        c = client()
        c.request("POST", "/", body=b"GET /echo/smuggled HTTP/1.1\r\n\r\n")
        assert c.read_response()[0] == "HTTP/1.1 404 Not Found"

        c.request("GET", "/echo/next")
        assert c.read_response()[2] == b"next"

    def test_idle_connection_closed(self, client, running_server):
        """Test that a silent client is disconnected after the read deadline."""
        c = client()
        start = time.monotonic()

        assert c.is_closed_by_server()
        elapsed = time.monotonic() - start
        assert running_server.server.config.read_timeout * 0.5 < elapsed < 4.0

    def test_idle_after_response_closed(self, client):
        """Test that a connection idle after a response is closed."""
        c = client()
        c.request("GET", "/")
        c.read_response()

        assert c.is_closed_by_server()


class TestErrors:
    """Error responses on the wire."""

    def test_malformed_request_line(self, client):
        """Test 400 with Connection: close for a malformed request line."""
        c = client()
        c.send(b"GARBAGE\r\n\r\n")

        assert c.raw_head() == (
            b"HTTP/1.1 400 Bad Request\r\n"
            b"Content-Length: 0\r\n"
            b"Connection: close\r\n"
            b"\r\n"
        )
        c.read_response()
        assert c.is_closed_by_server()

    def test_over_long_request_line(self, client):
        """Test that a request line past the line limit gets 400 and a close."""
        c = client()
        c.send(f"GET /echo/{'a' * 70000} HTTP/1.1\r\nHost: x\r\n\r\n".encode())

        status, headers, body = c.read_response()

        assert status == "HTTP/1.1 400 Bad Request"
        assert headers["connection"] == "close"
        assert body == b""
        assert c.is_closed_by_server()

    def test_over_long_header_line(self, client):
        """Test that a header line past the line limit gets 400 and a close."""
        c = client()
        c.send(f"GET / HTTP/1.1\r\nX-Big: {'b' * 70000}\r\n\r\n".encode())

        status, headers, _ = c.read_response()

        assert status == "HTTP/1.1 400 Bad Request"
        assert headers["connection"] == "close"

    def test_options_asterisk_is_405(self, client):
        """Test that OPTIONS * is refused by method and the connection stays open."""
        c = client()
        c.send(b"OPTIONS * HTTP/1.1\r\n\r\n")

        status, headers, _ = c.read_response()
        assert status == "HTTP/1.1 405 Method Not Allowed"
        assert "connection" not in headers

        c.request("GET", "/echo/still-open")
        assert c.read_response()[2] == b"still-open"

    def test_handler_exception_is_500(self, client, running_server):
        """Test that a failing handler gets 500 and the connection survives."""
        router = Router()

        @router.get("/boom")
        def boom(request):
            raise RuntimeError("handler failure")

        router.add_route("GET", "/", running_server.server.router.resolve("GET", "/"))
        running_server.server.router = router

        c = client()
        c.request("GET", "/boom")
        status, _, body = c.read_response()

        assert status == "HTTP/1.1 500 Internal Server Error"
        assert body == b""

        # connection stays usable
        c.request("GET", "/")
        assert c.read_response()[0] == "HTTP/1.1 200 OK"


class TestConcurrency:
    """Several clients at once."""

    def test_idle_client_does_not_block_others(self, client):
        """Test that one stalled client does not block another."""
        idle = client()
        idle.send(b"GET /echo/slow HTTP/1.1\r\n")

        busy = client()
        busy.request("GET", "/echo/fast")

        assert busy.read_response()[2] == b"fast"

    def test_many_clients(self, client):
        """Test several concurrent clients."""
        clients = [client() for _ in range(10)]
        for i, c in enumerate(clients):
            c.request("GET", f"/echo/{i}")

        for i, c in enumerate(clients):
            assert c.read_response()[2] == str(i).encode()
