import sys
import pathlib
import threading
import time

import pytest
from flask import Flask, Response, redirect
from werkzeug.serving import make_server

# Ensure project root is on sys.path so 'import urlsweep' works when pytest runs from
# different working directories or when running individual tests.
_ROOT = pathlib.Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from urlsweep import create_app
from urlsweep.logging_utils import reset_suppressed_state

SLOW_SECONDS = 3.0

HOME_HTML = ('<!doctype html><html><head><title>Home</title>'
             '<meta name="generator" content="WordPress 6.0"></head>'
             '<body><script src="/wp-content/app.js"></script> next.js</body></html>')


def _build_site() -> Flask:
    site = Flask('fixture_site')

    @site.route('/home')
    def home():
        return Response(HOME_HTML, headers={'X-Powered-By': 'PHP/8.2', 'Server': 'nginx/1.25'})

    @site.route('/plain')
    def plain():
        return Response('no markup here', mimetype='text/plain')

    @site.route('/slow')
    def slow():
        time.sleep(SLOW_SECONDS)
        return '<title>Too late</title>'

    @site.route('/missing')
    def missing():
        return Response('<title>Not Found</title>', status=404)

    @site.route('/bad')
    def bad():
        return Response('error', status=500)

    @site.route('/redirect')
    def to_home():
        return redirect('/home', code=302)

    @site.route('/moved')
    def moved():
        return Response('<title>Moved</title>', status=301, headers={'Location': '/home'})

    @site.route('/loop')
    def loop():
        return redirect('/loop', code=302)

    @site.route('/pause/<int:ms>')
    def pause(ms):
        time.sleep(ms / 1000.0)
        return f'<title>paused {ms}</title>'

    return site


@pytest.fixture(scope='session')
def site_url():
    """Base URL of a local Flask site served from a background thread."""
    server = make_server('127.0.0.1', 0, _build_site(), threaded=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f'http://127.0.0.1:{server.server_port}'
    finally:
        server.shutdown()


@pytest.fixture
def closed_port_url():
    """URL pointing at a local port nobody listens on."""
    import socket
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(('127.0.0.1', 0))
    port = s.getsockname()[1]
    s.close()
    return f'http://127.0.0.1:{port}/'


@pytest.fixture
def write_input(tmp_path):
    def _write(lines, name='source.txt'):
        path = tmp_path / name
        path.write_text('\n'.join(lines) + '\n', encoding='utf-8')
        return path
    return _write


@pytest.fixture(autouse=True)
def _reset_log_suppression():
    reset_suppressed_state()
    yield


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setenv('URLSWEEP_RATE_LIMIT', '1000 per minute')
    app = create_app()
    app.testing = True
    app.extensions['limiter'].enabled = False
    return app.test_client()


TRICKLE_INTERVAL = 0.3
TRICKLE_PREFIX = {
    # status line arrives, then one header that never ends
    '/headers': b'HTTP/1.1 200 OK\r\nX-Slow: ',
    '/body': (b'HTTP/1.1 200 OK\r\nContent-Type: text/html\r\n'
              b'Content-Length: 100000\r\n\r\n<title>Slow</title>'),
}


@pytest.fixture
def trickle_url():
    """Raw socket server that sends one byte every TRICKLE_INTERVAL, forever."""
    import socket
    stop = threading.Event()
    srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    srv.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    srv.bind(('127.0.0.1', 0))
    srv.listen(8)
    srv.settimeout(0.2)

    def handle(conn):
        with conn:
            try:
                request_line = conn.recv(4096).split(b'\r\n', 1)[0].decode('latin-1')
                path = request_line.split(' ')[1] if ' ' in request_line else '/'
                conn.sendall(TRICKLE_PREFIX.get(path, TRICKLE_PREFIX['/body']))
                while not stop.wait(TRICKLE_INTERVAL):
                    conn.sendall(b'a')
            except OSError:
                return

    def accept_loop():
        while not stop.is_set():
            try:
                conn, _ = srv.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            threading.Thread(target=handle, args=(conn,), daemon=True).start()

    threading.Thread(target=accept_loop, daemon=True).start()
    yield f'http://127.0.0.1:{srv.getsockname()[1]}'
    stop.set()
    srv.close()
