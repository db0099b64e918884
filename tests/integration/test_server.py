"""
End-to-end tests: a real FileServer on a loopback port, raw socket clients.
"""

import logging
import socket
import ssl
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from conftest import ServerRunner, header_value, http_get, make_config, raw_request
from tinyhttpd import FileServer
from tinyhttpd.http.response import ResponseMessage


class TestFiles:

    def test_text_file(self, running_server: ServerRunner):
        head, body = http_get(running_server.port, "/hello.txt")

        assert head.startswith(b"HTTP/1.1 200 OK\r\n")
        assert header_value(head, "Content-Type") == "text/plain"
        assert header_value(head, "Content-Length") == "12"
        assert header_value(head, "Content-Disposition") is None
        assert body == b"hello world\n"

    def test_binary_file_is_attachment(self, running_server: ServerRunner, served_root: Path):
        head, body = http_get(running_server.port, "/photo.png")

        assert header_value(head, "Content-Type") == "image/png"
        assert header_value(head, "Content-Disposition") == 'attachment; filename="photo.png"'
        assert body == (served_root / "photo.png").read_bytes()

    def test_unknown_type(self, running_server: ServerRunner):
        head, body = http_get(running_server.port, "/archive.bin")

        assert header_value(head, "Content-Type") == "application/octet-stream"
        assert body == b"\x00\x01\x02\x03"

    def test_percent_encoded_name(self, running_server: ServerRunner):
        _, body = http_get(running_server.port, "/my%20file%2B1.txt")
        assert body == b"spaces and plus"

    def test_dot_dot_prefixed_name(self, running_server: ServerRunner):
        _, body = http_get(running_server.port, "/%2E%2Ehidden")
        assert body == b"dot dot hidden"

    def test_directory_index(self, running_server: ServerRunner):
        via_dir = raw_request(running_server.port, b"GET /site/ HTTP/1.1\r\n\r\n")
        direct = raw_request(running_server.port, b"GET /site/index.html HTTP/1.1\r\n\r\n")

        assert via_dir == direct
        assert b"site index" in via_dir


class TestListings:

    def test_listing_order(self, running_server: ServerRunner):
        head, body = http_get(running_server.port, "/docs")
        page = body.decode("utf-8")

        assert head.startswith(b"HTTP/1.1 200 OK\r\n")
        assert header_value(head, "Content-Type") == "text/html"
        assert int(header_value(head, "Content-Length")) == len(body)
        assert "Index of /docs/" in page

        hrefs = ['href="/docs/alpha"', 'href="/docs/zeta"', 'href="/docs/a.txt"', 'href="/docs/b.txt"']
        positions = [page.index(h) for h in hrefs]
        assert positions == sorted(positions)

    def test_body_starts_with_crlf(self, running_server: ServerRunner):
        response = raw_request(running_server.port, b"GET / HTTP/1.1\r\n\r\n")
        head, _, rest = response.partition(b"\r\n\r\n")

        # The extra CRLF is part of the counted body.
        assert rest.startswith(b"\r\n<html>")
        assert int(header_value(head, "Content-Length")) == len(rest)

    def test_miss_serves_root_listing_and_logs_404(self, running_server: ServerRunner, caplog):
        caplog.set_level(logging.INFO, logger="tinyhttpd")

        head, body = http_get(running_server.port, "/no/such/file")

        assert head.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"Index of /</h1>" in body
        assert b'href="/hello.txt"' in body
        assert '"GET /no/such/file HTTP/1.1" 404' in caplog.text

    def test_encoded_nul_serves_root_listing_and_logs_404(self, running_server: ServerRunner, caplog):
        caplog.set_level(logging.INFO, logger="tinyhttpd")

        head, body = http_get(running_server.port, "/hello.txt%00")

        assert head.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"Index of /</h1>" in body
        assert '"GET /hello.txt\x00 HTTP/1.1" 404' in caplog.text


class TestProtocolEdges:

    def test_malformed_request_gets_no_response(self, running_server: ServerRunner, caplog):
        caplog.set_level(logging.INFO, logger="tinyhttpd.access")

        assert raw_request(running_server.port, b"GARBAGE\r\n\r\n") == b""
        assert raw_request(running_server.port, b"GET / HTTP/1.1") == b""
        assert not [r for r in caplog.records if r.name == "tinyhttpd.access"]

    def test_client_that_sends_nothing(self, running_server: ServerRunner):
        with socket.create_connection(("127.0.0.1", running_server.port), timeout=5) as s:
            s.shutdown(socket.SHUT_WR)
            assert s.recv(1024) == b""

    def test_forwarded_for_in_access_log(self, running_server: ServerRunner, caplog):
        caplog.set_level(logging.INFO, logger="tinyhttpd")

        http_get(running_server.port, "/hello.txt", headers="X-Forwarded-For: 203.0.113.9\r\n")

        assert '203.0.113.9 - - [' in caplog.text
        assert '"GET /hello.txt HTTP/1.1" 200' in caplog.text

    def test_other_methods_behave_like_get(self, running_server: ServerRunner):
        response = raw_request(running_server.port, b"POST /hello.txt HTTP/1.0\r\n\r\n")
        assert response.endswith(b"\r\n\r\nhello world\n")


class TestConcurrency:

    def test_parallel_clients(self, running_server: ServerRunner, served_root: Path):
        expected = {}
        for i in range(8):
            content = bytes([i]) * (4096 + i)
            (served_root / f"client{i}.bin").write_bytes(content)
            expected[i] = content

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda i: http_get(running_server.port, f"/client{i}.bin"), range(8)))

        for i, (head, body) in enumerate(results):
            assert header_value(head, "Content-Length") == str(len(expected[i]))
            assert body == expected[i]

    def test_slow_client_does_not_block_others(self, running_server: ServerRunner):
        with socket.create_connection(("127.0.0.1", running_server.port), timeout=5):
            # The idle connection holds its own worker; a second client is still served.
            _, body = http_get(running_server.port, "/hello.txt")

        assert body == b"hello world\n"


class TestLifecycle:

    def test_graceful_shutdown(self, served_root: Path, free_port: int):
        runner = ServerRunner(FileServer(make_config(served_root, free_port)))
        runner.start()

        _, body = http_get(free_port, "/hello.txt")
        assert body == b"hello world\n"

        runner.stop()
        assert runner.stopped
        assert runner.server.is_running is False

        with pytest.raises(OSError):
            socket.create_connection(("127.0.0.1", free_port), timeout=1).close()

    def test_startup_is_logged(self, served_root: Path, free_port: int, caplog):
        caplog.set_level(logging.INFO, logger="tinyhttpd")

        runner = ServerRunner(FileServer(make_config(served_root, free_port)))
        runner.start()
        runner.stop()

        assert f"Starting tinyhttpd server on port {free_port}" in caplog.text

    def test_debug_mode_dumps_request_and_response(self, served_root: Path, free_port: int, caplog):
        caplog.set_level(logging.DEBUG, logger="tinyhttpd")

        runner = ServerRunner(FileServer(make_config(served_root, free_port, debug=True)))
        runner.start()
        try:
            http_get(free_port, "/hello.txt")
        finally:
            runner.stop()

        messages = [r.getMessage() for r in caplog.records]
        assert any(m.startswith("Request: GET /hello.txt HTTP/1.1") for m in messages)
        assert any(m.startswith("Response: HTTP/1.1 200 OK") for m in messages)

    def test_response_not_reserialized_without_debug(self, served_root: Path, free_port: int, monkeypatch):
        calls = []
        original = ResponseMessage.to_bytes

        def counting_to_bytes(self):
            calls.append(self)
            return original(self)

        monkeypatch.setattr(ResponseMessage, "to_bytes", counting_to_bytes)

        runner = ServerRunner(FileServer(make_config(served_root, free_port)))
        runner.start()
        try:
            _, body = http_get(free_port, "/photo.png")
        finally:
            runner.stop()

        assert body == (served_root / "photo.png").read_bytes()
        assert calls == []


class TestTLS:

    def test_https_request(self, served_root: Path, free_port: int, tls_cert: Path):
        config = make_config(served_root, free_port, tls_cert_path=str(tls_cert))
        runner = ServerRunner(FileServer(config))
        runner.start()

        context = ssl.create_default_context()
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

        try:
            with socket.create_connection(("127.0.0.1", free_port), timeout=5) as raw:
                with context.wrap_socket(raw, server_hostname="localhost") as tls:
                    tls.sendall(b"GET /hello.txt HTTP/1.1\r\nHost: localhost\r\n\r\n")
                    chunks = []
                    while True:
                        try:
                            chunk = tls.recv(65536)
                        except ssl.SSLError:
                            break
                        if not chunk:
                            break
                        chunks.append(chunk)
        finally:
            runner.stop()

        response = b"".join(chunks)
        assert response.startswith(b"HTTP/1.1 200 OK\r\n")
        assert response.endswith(b"\r\n\r\nhello world\n")

    def test_plain_client_on_tls_port_is_dropped(self, served_root: Path, free_port: int, tls_cert: Path):
        config = make_config(served_root, free_port, tls_cert_path=str(tls_cert))
        runner = ServerRunner(FileServer(config))
        runner.start()
        try:
            try:
                response = raw_request(free_port, b"GET / HTTP/1.1\r\n\r\n")
            except ConnectionResetError:
                response = b""
            assert b"200 OK" not in response

            # Still accepting after the failed handshake.
            with socket.create_connection(("127.0.0.1", free_port), timeout=5):
                pass
        finally:
            runner.stop()


def test_many_sequential_requests(running_server: ServerRunner):
    bodies = [http_get(running_server.port, "/hello.txt")[1] for _ in range(20)]
    assert bodies == [b"hello world\n"] * 20
