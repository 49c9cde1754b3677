from __future__ import annotations

from collections.abc import Iterator


def iter_series(decoded) -> Iterator[dict]:
    if not isinstance(decoded, dict):
        return
    for res in decoded.get("results") or []:
        yield from res.get("series") or []


def iter_rows(decoded) -> Iterator[dict]:
    """Flatten a decoded /query response into one dict per value row.

    Each row carries the series name under ``"name"``, the series tags, and
    the columns zipped with the row's values (columns win on key clashes).
    """
    for series in iter_series(decoded):
        base = {"name": series.get("name")}
        base.update(series.get("tags") or {})
        cols = series.get("columns") or []
        for vals in series.get("values") or []:
            row = dict(base)
            row.update(zip(cols, vals, strict=False))
            yield row


def result_errors(decoded) -> list[str]:
    # Statement errors arrive inside a 200 response, e.g. {"results":[{"error":"..."}]}.
    if not isinstance(decoded, dict):
        return []
    out = [res["error"] for res in decoded.get("results") or [] if res.get("error")]
    if decoded.get("error"):
        out.append(decoded["error"])
    return out
