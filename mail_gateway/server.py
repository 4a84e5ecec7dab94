"""Threaded WSGI server with request deadlines and graceful draining."""
from __future__ import annotations

import io
import logging
import socket
import threading
import time
from http import HTTPStatus
from typing import Callable

from flask import Flask
from werkzeug.serving import ThreadedWSGIServer, WSGIRequestHandler


access_logger = logging.getLogger("mail_gateway.access")


class _DeadlineReader(io.RawIOBase):
    """Socket reader that re-arms the socket timeout before every recv."""

    def __init__(self, sock: socket.socket, arm: Callable[[], None]) -> None:
        self._sock = sock
        self._arm = arm

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        self._arm()
        return self._sock.recv_into(buffer)

    def fileno(self) -> int:
        return self._sock.fileno()


class _DeadlineWriter(io.BufferedIOBase):
    """Unbuffered socket writer bounded by the response deadline."""

    def __init__(self, sock: socket.socket, arm: Callable[[], None]) -> None:
        self._sock = sock
        self._arm = arm

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        self._arm()
        self._sock.sendall(data)
        with memoryview(data) as view:
            return view.nbytes

    def fileno(self) -> int:
        return self._sock.fileno()


class GatewayRequestHandler(WSGIRequestHandler):
    """Request handler that enforces deadlines and tracks in-flight requests.

    Reading the request line is bounded by the read timeout on a fresh
    connection and by the idle timeout on a kept-alive one. Once the request
    line is in, headers and body must arrive within the read timeout and the
    response must be written within the write timeout.
    """

    server: "GatewayServer"

    def setup(self) -> None:
        super().setup()
        self.rfile.close()
        self.wfile.close()
        self.rfile = io.BufferedReader(_DeadlineReader(self.connection, self._arm_read))
        self.wfile = _DeadlineWriter(self.connection, self._arm_write)
        self._requests_served = 0
        self._read_deadline = self._write_deadline = 0.0

    def _arm(self, deadline: float, what: str) -> None:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise socket.timeout(f"{what} deadline exceeded")
        self.connection.settimeout(remaining)

    def _arm_read(self) -> None:
        self._arm(self._read_deadline, "read")

    def _arm_write(self) -> None:
        self._arm(self._write_deadline, "write")

    def _start_deadlines(self, timeout: float) -> None:
        self._read_deadline = time.monotonic() + timeout
        self._write_deadline = self._read_deadline

    def parse_request(self) -> bool:
        self._start_deadlines(self.server.read_timeout)
        ok = super().parse_request()
        self._write_deadline = time.monotonic() + self.server.write_timeout
        if ok:
            self._tracked = True
            self.server.request_started()
        return ok

    def handle_one_request(self) -> None:
        self._tracked = False
        if self._requests_served:
            self._start_deadlines(self.server.idle_timeout)
        else:
            self._start_deadlines(self.server.read_timeout)
        try:
            super().handle_one_request()
        finally:
            self._requests_served += 1
            if self._tracked:
                self.server.request_finished()

        if self.server.draining:
            self.close_connection = True

    def log_request(self, code="-", size="-") -> None:
        if isinstance(code, HTTPStatus):
            code = code.value
        headers = getattr(self, "headers", None)
        referer = headers.get("Referer", "-") if headers else "-"
        user_agent = headers.get("User-Agent", "-") if headers else "-"
        access_logger.info(
            '%s - - [%s] "%s" %s %s "%s" "%s"',
            self.address_string(),
            self.log_date_time_string(),
            self.requestline,
            code,
            size,
            referer,
            user_agent,
        )


class GatewayServer(ThreadedWSGIServer):
    """One thread per connection; request threads never block process exit."""

    daemon_threads = True
    # Draining is bounded by shutdown_gracefully, not by joining threads.
    block_on_close = False

    def __init__(
        self,
        host: str,
        port: int,
        app: Flask,
        read_timeout: float = 15,
        write_timeout: float = 15,
        idle_timeout: float = 60,
    ) -> None:
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout
        self.idle_timeout = idle_timeout
        self.draining = False
        self._active = 0
        self._idle = threading.Condition()
        super().__init__(host, port, app, handler=GatewayRequestHandler)

    @property
    def active_requests(self) -> int:
        with self._idle:
            return self._active

    def request_started(self) -> None:
        with self._idle:
            self._active += 1

    def request_finished(self) -> None:
        with self._idle:
            self._active -= 1
            if self._active == 0:
                self._idle.notify_all()

    def shutdown_gracefully(self, grace_period: float) -> bool:
        """Stop accepting connections and wait for in-flight requests.

        Must be called from a thread other than the one running
        :meth:`serve_forever`. Returns ``False`` if requests were still
        running when ``grace_period`` expired.
        """
        self.draining = True
        self.shutdown()
        self.server_close()
        with self._idle:
            return self._idle.wait_for(lambda: self._active == 0, timeout=grace_period)


def make_gateway_server(app: Flask, host: str, port: int) -> GatewayServer:
    return GatewayServer(
        host,
        port,
        app,
        read_timeout=app.config["READ_TIMEOUT"],
        write_timeout=app.config["WRITE_TIMEOUT"],
        idle_timeout=app.config["IDLE_TIMEOUT"],
    )
