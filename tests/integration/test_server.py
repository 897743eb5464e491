"""
End-to-end tests: a real server on a real port, raw sockets as clients.
"""

import socket
import threading
import time

import pytest

from vhttpd import HTTPServer, ServerConfig


def get(url: str = "/", host: str = "website1", close: bool = True) -> bytes:
    request = f"GET {url} HTTP/1.1\r\nHost: {host}\r\n"
    if close:
        request += "Connection: close\r\n"
    return (request + "\r\n").encode("utf-8")


class TestServing:
    """Tests for successful and not-found responses."""

    def test_serves_index(self, running_server, docroot_dirs):
        status, headers, body = running_server.parse_response(
            running_server.fetch(get("/"))
        )

        assert status == 200
        assert body == (docroot_dirs / "htdocs1" / "index.html").read_bytes()
        assert headers["Content-Type"] == "text/html; charset=utf-8"
        assert headers["Connection"] == "close"
        assert "Date" in headers
        assert "Last-Modified" in headers

    def test_serves_binary(self, running_server, docroot_dirs):
        status, headers, body = running_server.parse_response(
            running_server.fetch(get("/kitten.jpg"))
        )

        assert status == 200
        assert headers["Content-Type"] == "image/jpeg"
        assert body == (docroot_dirs / "htdocs1" / "kitten.jpg").read_bytes()

    def test_virtual_host_selects_site(self, running_server):
        status, _, body = running_server.parse_response(
            running_server.fetch(get("/", host="website2"))
        )
        assert status == 200
        assert b"website2" in body

    @pytest.mark.parametrize("url, host", [
        ("/missing.html", "website1"),
        ("/secret.txt", "website1"),
        ("/../htdocs2/secret.txt", "website1"),
        ("/subdir", "website1"),
        ("/index.html", "nobody-home"),
        ("/index.html", "website1 "),
    ])
    def test_not_found(self, running_server, url, host):
        status, headers, body = running_server.parse_response(
            running_server.fetch(get(url, host=host))
        )

        assert status == 404
        assert headers["Content-Length"] == "0"
        assert "Date" in headers
        assert body == b""

    def test_nul_byte_in_url_is_404(self, running_server):
        raw = b"GET /a\x00b.html HTTP/1.1\r\nHost: website1\r\nConnection: close\r\n\r\n"
        status, headers, body = running_server.parse_response(running_server.fetch(raw))

        assert status == 404
        assert headers["Connection"] == "close"
        assert body == b""


class TestBadRequests:
    """Tests for input answered with 400 and a close."""

    @pytest.mark.parametrize("raw", [
        b"GET /\r\nHost: website1\r\n\r\n",
        b"GET / HTTP/1.1\r\nHost website1\r\n\r\n",
        b"GET / HTTP/1.1\r\n Host: website1\r\n\r\n",
        b"GET / HTTP/2.0\r\nHost: website1\r\n\r\n",
        b"PATCH / HTTP/1.1\r\nHost: website1\r\n\r\n",
        b"GET index.html HTTP/1.1\r\nHost: website1\r\n\r\n",
        b"GET / HTTP/1.1\r\nUser-Agent: test\r\n\r\n",
    ])
    def test_malformed_request(self, running_server, raw):
        status, headers, body = running_server.parse_response(running_server.fetch(raw))

        assert status == 400
        assert headers["Connection"] == "close"
        assert "Date" in headers
        assert body == b""

    def test_bad_request_ends_connection_even_with_more_queued(self, running_server):
        raw = b"PATCH / HTTP/1.1\r\nHost: website1\r\n\r\n" + get("/", close=False)
        responses = running_server.parse_responses(running_server.fetch(raw))

        assert [status for status, _, _ in responses] == [400]

    def test_partial_request_then_silence_gets_400(self, running_server):
        with running_server.connect() as sock:
            sock.sendall(b"GET / HTTP/1.1\r\nHost: web")
            data = running_server.recv_until_closed(sock)

        status, headers, _ = running_server.parse_response(data)
        assert status == 400
        assert headers["Connection"] == "close"

    def test_partial_request_then_eof_gets_400(self, running_server):
        with running_server.connect() as sock:
            sock.sendall(b"GET / HTTP/1.1\r\n")
            sock.shutdown(socket.SHUT_WR)
            data = running_server.recv_until_closed(sock)

        status, _, _ = running_server.parse_response(data)
        assert status == 400


class TestKeepAlive:
    """Tests for persistent connections and pipelining."""

    def test_two_requests_on_one_connection(self, running_server):
        with running_server.connect() as sock:
            sock.sendall(get("/", close=False))
            time.sleep(0.1)
            sock.sendall(get("/subdir/page.txt", close=True))
            data = running_server.recv_until_closed(sock)

        responses = running_server.parse_responses(data)
        assert [status for status, _, _ in responses] == [200, 200]
        assert "Connection" not in responses[0][1]
        assert responses[1][1]["Connection"] == "close"
        assert responses[1][2] == b"sub page\n"

    def test_pipelined_requests_answered_in_order(self, running_server):
        raw = (
            get("/kitten.jpg", close=False)
            + get("/missing", close=False)
            + get("/", host="website2", close=True)
        )
        responses = running_server.parse_responses(running_server.fetch(raw))

        assert [status for status, _, _ in responses] == [200, 404, 200]
        assert len(responses[0][2]) == 2048
        assert b"website2" in responses[2][2]

    def test_idle_connection_closed_silently(self, running_server):
        with running_server.connect() as sock:
            start = time.monotonic()
            data = running_server.recv_until_closed(sock)
            elapsed = time.monotonic() - start

        assert data == b""
        assert elapsed < 3.0

    def test_idle_after_response_closed_silently(self, running_server):
        with running_server.connect() as sock:
            sock.sendall(get("/", close=False))
            data = running_server.recv_until_closed(sock)

        responses = running_server.parse_responses(data)
        assert [status for status, _, _ in responses] == [200]

    def test_connection_header_is_case_sensitive(self, running_server):
        raw = b"GET / HTTP/1.1\r\nHost: website1\r\nConnection: ClOSe\r\n\r\n"
        with running_server.connect() as sock:
            sock.sendall(raw)
            data = running_server.recv_until_closed(sock)

        status, headers, _ = running_server.parse_response(data)
        assert status == 200
        assert "Connection" not in headers


class TestConcurrency:
    """Tests for many clients at once."""

    def test_concurrent_clients(self, running_server, docroot_dirs):
        expected = (docroot_dirs / "htdocs1" / "kitten.jpg").read_bytes()
        results = [None] * 10
        errors = []

        def client(i: int):
            try:
                status, _, body = running_server.parse_response(
                    running_server.fetch(get("/kitten.jpg"))
                )
                results[i] = (status, body == expected)
            except Exception as e:  # surfaced by the assertion below
                errors.append(e)

        threads = [threading.Thread(target=client, args=(i,)) for i in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert errors == []
        assert results == [(200, True)] * 10

    def test_idle_client_does_not_block_others(self, running_server):
        with running_server.connect() as idle:
            status, _, _ = running_server.parse_response(
                running_server.fetch(get("/"))
            )
            assert status == 200
            idle.sendall(b"GET")


class TestLifecycle:
    """Tests for starting and stopping the server."""

    def test_port_zero_reports_real_port(self, running_server):
        assert running_server.port > 0

    def test_bind_failure_raises(self, virtual_hosts, running_server):
        other = HTTPServer(virtual_hosts, ServerConfig(
            host="127.0.0.1",
            port=running_server.port,
            log_level="WARNING",
        ))
        with pytest.raises(OSError):
            other.run()

    def test_shutdown_stops_accepting(self, virtual_hosts):
        server = HTTPServer(virtual_hosts, ServerConfig(
            host="127.0.0.1", port=0, accept_timeout=0.1, log_level="WARNING",
        ))
        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        assert server.wait_until_ready(timeout=5.0)
        port = server.address[1]

        server.shutdown()
        thread.join(timeout=5.0)

        assert not thread.is_alive()
        with pytest.raises(OSError):
            socket.create_connection(("127.0.0.1", port), timeout=1.0).close()
