"""URL paths and query strings for the /write and /query endpoints.

Escaping is deliberately minimal: only spaces in a query path become ``%20``.
Callers embedding ``&``, ``=``, ``%`` or other reserved characters in names or
query text must escape them beforehand. A raw ``#`` is read as the start of a
URL fragment and everything after it is dropped, so it must be sent as ``%23``.
"""

from __future__ import annotations

from collections.abc import Iterable

from .line_protocol import to_text


def escape_spaces(path: str) -> str:
    return path.replace(" ", "%20")


def build_write_path(db, precision: str | None = None) -> str:
    path = f"/write?db={to_text(db)}"
    if precision:
        path += f"&precision={precision}"
    return path


def build_query_path(query, db=None, epoch: str | None = None) -> str:
    params = []
    if epoch:
        params.append(f"epoch={epoch}")
    if db is not None:
        params.append(f"db={to_text(db)}")
    params.append(f"q={to_text(query)}")
    return escape_spaces("/query?" + "&".join(params))


def create_database_query(name, if_not_exists: bool = False) -> str:
    if if_not_exists:
        return f"CREATE DATABASE IF NOT EXISTS {to_text(name)}"
    return f"CREATE DATABASE {to_text(name)}"


def show_databases_query() -> str:
    return "SHOW DATABASES"


def select_query(measurement, columns: Iterable | None = None) -> str:
    # Columns keep caller order, unlike tag and field sets.
    cols = ",".join(to_text(c) for c in columns) if columns else "*"
    return f"SELECT {cols} FROM {to_text(measurement)}"
