import gzip
import json
import socketserver
import threading
import time
import zlib
from urllib.parse import urlsplit

import brotli
import pytest

CONTENT = b"CONTENT"


def _head(status: str, headers: list[tuple[str, str]]) -> bytes:
    lines = [f"HTTP/1.1 {status}", *(f"{name}: {value}" for name, value in headers)]
    return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")


def _response(status: str, headers: list[tuple[str, str]], body: bytes = b"") -> bytes:
    headers = [*headers, ("Content-Length", str(len(body))), ("Connection", "close")]
    return _head(status, headers) + body


def _chunk(data: bytes) -> bytes:
    return b"%x\r\n%s\r\n" % (len(data), data)


class BrowserTestHandler(socketserver.StreamRequestHandler):
    """Minimal HTTP/1.1 origin (and forward proxy) writing raw responses."""

    def handle(self) -> None:
        request_line = self.rfile.readline().decode("latin-1").rstrip("\r\n")
        if not request_line:
            return
        method, target, _ = request_line.split(" ", 2)
        headers: list[tuple[str, str]] = []
        while True:
            line = self.rfile.readline().decode("latin-1")
            if line in ("\r\n", "\n", ""):
                break
            name, _, value = line.rstrip("\r\n").partition(":")
            headers.append((name, value.strip()))
        self.method = method
        self.target = target
        self.headers = headers
        self.body = self._read_body()
        path = urlsplit(target).path
        try:
            self.route(path)
        except OSError:
            # the client gave up (timeouts, abandoned streams)
            pass

    def header(self, name: str) -> str:
        for key, value in self.headers:
            if key.lower() == name.lower():
                return value
        return ""

    def _read_body(self) -> bytes:
        if "chunked" in self.header("transfer-encoding").lower():
            body = b""
            while True:
                size = int(self.rfile.readline().split(b";")[0].strip(), 16)
                if size == 0:
                    self.rfile.readline()
                    return body
                body += self.rfile.read(size)
                self.rfile.readline()
        length = self.header("content-length")
        return self.rfile.read(int(length)) if length else b""

    def send(self, data: bytes) -> None:
        self.wfile.write(data)

    def route(self, path: str) -> None:
        if path == "/echo":
            payload = {
                "method": self.method,
                "target": self.target,
                "headers": [[name, value] for name, value in self.headers],
                "body": self.body.decode("latin-1"),
            }
            self.send(_response("200 OK", [("Content-Type", "application/json")], json.dumps(payload).encode()))
        elif path == "/406":
            self.send(_response("406 Not Acceptable", [("content-type", "text/html; charset=utf-8")], CONTENT))
        elif path == "/invalidContentType":
            self.send(_response("200 OK", [("content-type", "application/json")], CONTENT))
        elif path == "/invalidContentHeader":
            self.send(_response("200 OK", [("Content-Type", "non-existent-content-type")], CONTENT))
        elif path == "/invalidBody":
            self.send(_response("500 Internal Server Error", [("content-encoding", "deflate")], CONTENT))
        elif path == "/empty":
            self.send(_response("200 OK", [("Content-Type", "text/html; charset=utf-8")]))
        elif path == "/echo-body":
            self.send(_head("200 OK", [("Content-Type", "text/html; charset=utf-8"), ("Transfer-Encoding", "chunked")]))
            self.send(_chunk(self.body) + b"0\r\n\r\n")
        elif path == "/invalidHeaderChar":
            self.send(
                b"HTTP/1.1 200 OK\r\n"
                b"Invalid Header With Space: some\x0bvalue\r\n"
                b"X-Normal-Header: HeaderValue2\r\n"
                b"\r\n" + CONTENT
            )
        elif path == "/bareLineFeeds":
            self.send(b"HTTP/1.1 200 OK\nContent-Length: 2\nX-Test: yes\n\nok")
        elif path == "/duplicate":
            self.send(_response("200 OK", [("X-Dup", "first"), ("x-dup", "second")], b"dup"))
        elif path == "/gzip":
            self.send(_response("200 OK", [("Content-Encoding", "gzip")], gzip.compress(b"gzip body")))
        elif path == "/gzip-truncated":
            data = gzip.compress(b"gzip body" * 50)
            self.send(_response("200 OK", [("Content-Encoding", "gzip")], data[: len(data) // 2]))
        elif path == "/deflate":
            self.send(_response("200 OK", [("Content-Encoding", "deflate")], zlib.compress(b"deflate body")))
        elif path == "/rawdeflate":
            compressor = zlib.compressobj(wbits=-zlib.MAX_WBITS)
            data = compressor.compress(b"raw deflate body") + compressor.flush()
            self.send(_response("200 OK", [("Content-Encoding", "deflate")], data))
        elif path == "/br":
            self.send(_response("200 OK", [("Content-Encoding", "br")], brotli.compress(b"brotli body")))
        elif path == "/latin1":
            self.send(_response("200 OK", [("Content-Type", "text/plain; charset=iso-8859-1")], "café".encode("latin-1")))
        elif path == "/redirect/loop":
            self.send(_response("302 Found", [("Location", "/redirect/loop")]))
        elif path.startswith("/redirect/chain/"):
            remaining = int(path.rsplit("/", 1)[1])
            if remaining:
                self.send(_response("302 Found", [("Location", f"/redirect/chain/{remaining - 1}")]))
            else:
                self.send(_response("200 OK", [("Content-Type", "text/plain")], b"done"))
        elif path == "/redirect/cookie":
            if "visited=1" in self.header("cookie"):
                self.send(_response("200 OK", [("Content-Type", "text/plain")], b"cookie ok"))
            else:
                self.send(
                    _response(
                        "302 Found",
                        [("Location", "/redirect/cookie"), ("Set-Cookie", "visited=1; Path=/")],
                    )
                )
        elif path == "/slow":
            time.sleep(1.5)
            self.send(_response("200 OK", [], b"slow"))
        elif path == "/drip":
            self.send(_head("200 OK", [("Content-Type", "text/plain"), ("Transfer-Encoding", "chunked")]))
            for part in (b"one", b"two", b"three"):
                self.send(_chunk(part))
                time.sleep(0.05)
            self.send(b"0\r\n\r\n")
        else:
            self.send(_response("404 Not Found", [], b"not found"))


class BrowserTestServer(socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    daemon_threads = True
    block_on_close = False


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(scope="session")
def server_url():
    server = BrowserTestServer(("127.0.0.1", 0), BrowserTestHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    yield f"http://{host}:{port}"
    server.shutdown()
    server.server_close()
