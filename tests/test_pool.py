"""Client against real local sockets: pool checkout, timeouts and connection release."""

import socket
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from fluxer.client import FluxerClient
from fluxer.config import FluxerConfig
from fluxer.errors import TransportTimeout, UnexpectedStatus


class _Handler(BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.1"

    def _reply(self):
        n = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(n) if n else b""
        self.server.seen.append((self.command, self.path, body, self.client_address[1]))
        status, payload = self.server.reply
        self.send_response(status)
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        if payload:
            self.wfile.write(payload)

    do_GET = _reply
    do_POST = _reply

    def log_message(self, *args):
        pass


@pytest.fixture()
def server():
    srv = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    srv.seen = []
    srv.reply = (204, b"")
    t = threading.Thread(target=srv.serve_forever, daemon=True)
    t.start()
    yield srv
    srv.shutdown()
    srv.server_close()


@pytest.fixture()
def silent_port():
    # Connections land in the backlog and are never answered.
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(16)
    yield sock.getsockname()[1]
    sock.close()


def test_write_and_query_over_http(server):
    cfg = FluxerConfig(port=server.server_address[1], pool_size=1, timeout=2.0)
    with FluxerClient(cfg) as client:
        client.write("mydb", "cpu", {"load": 0.5}, tags={"host": "a"})
        server.reply = (200, b'{"results":[]}')
        assert client.query("SELECT * FROM cpu", db="mydb") == {"results": []}

    assert server.seen[0][:3] == ("POST", "/write?db=mydb", b"cpu,host=a load=0.5")
    assert server.seen[1][:2] == ("GET", "/query?db=mydb&q=SELECT%20*%20FROM%20cpu")


def test_connection_is_released_after_error_status(server):
    server.reply = (400, b'{"error":"unable to parse"}')
    cfg = FluxerConfig(port=server.server_address[1], pool_size=1, timeout=2.0)
    with FluxerClient(cfg) as client:
        for _ in range(3):
            with pytest.raises(UnexpectedStatus) as exc:
                client.write_lines("mydb", "cpu value=1i")
            assert exc.value.status == 400
        server.reply = (204, b"")
        client.write_lines("mydb", "cpu value=2i")

    assert len(server.seen) == 4
    # One pooled connection, reused for every request.
    assert len({port for *_, port in server.seen}) == 1


def test_waiting_for_a_connection_is_bounded_by_timeout(silent_port):
    cfg = FluxerConfig(port=silent_port, pool_size=1, timeout=0.5)
    client = FluxerClient(cfg)

    def _timed_write():
        start = time.monotonic()
        try:
            client.write_lines("mydb", "cpu value=1i")
        except TransportTimeout as e:
            return time.monotonic() - start, str(e)
        return time.monotonic() - start, None

    with ThreadPoolExecutor(max_workers=4) as pool:
        outcomes = list(pool.map(lambda _: _timed_write(), range(4)))
    client.close()

    assert all(err is not None for _, err in outcomes)
    assert any("no pooled connection" in err for _, err in outcomes)
    # At most one checkout wait plus one read timeout, never a queue of them.
    assert max(elapsed for elapsed, _ in outcomes) < 1.6
