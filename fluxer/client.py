from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterable, Mapping

import requests
from requests.adapters import HTTPAdapter

from .config import FluxerConfig
from .errors import DecodeError, TransportError, TransportTimeout, UnexpectedStatus
from .line_protocol import build_batch, build_line_with_timestamp, build_simple_line
from .paths import (
    build_query_path,
    build_write_path,
    create_database_query,
    select_query,
    show_databases_query,
)


log = logging.getLogger(__name__)

WRITE_OK = 204
QUERY_OK = 200


class FluxerClient:
    """Blocking client for the InfluxDB 1.x HTTP API.

    Connections come from a bounded pool owned by the session: at most
    ``config.pool_size`` requests are in flight, further callers wait up to
    ``config.timeout`` for a free connection. Nothing is retried; every failure
    is raised as a :class:`~fluxer.errors.FluxerError` subclass.
    """

    def __init__(self, cfg: FluxerConfig, session: requests.Session | None = None) -> None:
        self._cfg = cfg
        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(pool_connections=1, pool_maxsize=cfg.pool_size, pool_block=True)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        self._session = session
        # Checkout slots; waiting for one is bounded by the same request timeout.
        self._slots = threading.BoundedSemaphore(cfg.pool_size)

    @property
    def config(self) -> FluxerConfig:
        return self._cfg

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "FluxerClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # -- request executor --------------------------------------------------

    def _request(self, method: str, path: str, headers: dict[str, str], body: bytes | None = None) -> tuple[int, bytes]:
        url = self._cfg.base_url + path
        hdrs = {**self._cfg.auth_headers(), **headers}
        if not self._slots.acquire(timeout=self._cfg.timeout):
            raise TransportTimeout(f"{method} {path}: no pooled connection free after {self._cfg.timeout}s")
        try:
            # Leaving the block reads the body and hands the connection back to the pool.
            with self._session.request(method, url, headers=hdrs, data=body, timeout=self._cfg.timeout) as resp:
                return resp.status_code, resp.content
        except requests.Timeout as e:
            raise TransportTimeout(f"{method} {path} timed out after {self._cfg.timeout}s") from e
        except requests.RequestException as e:
            raise TransportError(f"{method} {path} failed: {e}") from e
        finally:
            self._slots.release()

    def write_lines(self, db, payload: str, precision: str | None = None) -> None:
        """POST a line-protocol payload. Returns on 204, raises otherwise."""
        if not payload:
            log.debug("Empty payload for db=%s; nothing to write", db)
            return
        path = build_write_path(db, precision)
        log.debug("fluxer write: %s (%d bytes)", path, len(payload))
        status, body = self._request("POST", path, {"Content-Type": "text/plain"}, payload.encode("utf-8"))
        if status != WRITE_OK:
            raise UnexpectedStatus(status, body.decode("utf-8", errors="replace"), WRITE_OK)

    def read_query(self, path: str):
        """GET an already-built query path and return the decoded JSON body."""
        log.debug("fluxer query: %s", path)
        status, body = self._request("GET", path, {})
        if status != QUERY_OK:
            raise UnexpectedStatus(status, body.decode("utf-8", errors="replace"), QUERY_OK)
        try:
            return json.loads(body)
        except ValueError as e:
            raise DecodeError(f"Malformed JSON in response to {path}: {e}", body) from e

    # -- writes ------------------------------------------------------------

    def write(
        self,
        db,
        measurement,
        values,
        tags: Mapping | Iterable | None = None,
        timestamp=None,
        precision: str | None = None,
    ) -> None:
        """Write one point.

        A scalar *values* with no tags and no timestamp is written as a single
        ``value`` field. Otherwise *values* is a field mapping (or a scalar,
        which becomes the ``value`` field).
        """
        if not isinstance(values, (Mapping, list, tuple)):
            if not tags and timestamp is None:
                self.write_lines(db, build_simple_line(measurement, values))
                return
            values = {"value": values}
        line = build_line_with_timestamp(measurement, tags, values, timestamp, precision)
        self.write_lines(db, line, precision)

    def write_batch(self, db, records: Iterable[tuple], precision: str | None = None) -> None:
        """Write ``(measurement, tags, fields, timestamp)`` records in one request."""
        self.write_lines(db, build_batch(records, precision), precision)

    # -- queries -----------------------------------------------------------

    def query(self, query, db=None):
        return self.read_query(build_query_path(query, db=db))

    def query_epoch_ms(self, db, query):
        return self.read_query(build_query_path(query, db=db, epoch="ms"))

    def select(self, db, measurement, columns: Iterable | None = None):
        return self.query(select_query(measurement, columns), db=db)

    def create_database(self, name, if_not_exists: bool = False) -> None:
        self.query(create_database_query(name, if_not_exists))

    def show_databases(self):
        return self.query(show_databases_query())
