from __future__ import annotations

import argparse
import json
import logging
import os
import sys

from dotenv import load_dotenv

from .client import FluxerClient
from .config import FluxerConfig
from .errors import FluxerError
from .results import iter_rows, result_errors


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="fluxer", description="InfluxDB 1.x HTTP client")
    sub = ap.add_subparsers(dest="cmd", required=True)

    p = sub.add_parser("create-db", help="CREATE DATABASE")
    p.add_argument("name")
    p.add_argument("--if-not-exists", action="store_true")

    sub.add_parser("show-databases", help="SHOW DATABASES")

    p = sub.add_parser("query", help="Run a query and print the JSON response")
    p.add_argument("q")
    p.add_argument("--db")
    p.add_argument("--epoch-ms", action="store_true", help="Render timestamps as epoch milliseconds (needs --db)")
    p.add_argument("--rows", action="store_true", help="Print one JSON object per row")

    p = sub.add_parser("write", help="Write line protocol read from stdin")
    p.add_argument("db")
    p.add_argument("--precision")
    return ap


def _write_stdin(client: FluxerClient, db: str, precision: str | None) -> int:
    log = logging.getLogger("fluxer")
    batch_max = int(os.getenv("FLUXER_BATCH_MAX", "250"))

    batch: list[str] = []
    total = 0
    for raw in sys.stdin:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        batch.append(line)
        if len(batch) >= batch_max:
            client.write_lines(db, "\n".join(batch), precision)
            total += len(batch)
            batch = []
    if batch:
        client.write_lines(db, "\n".join(batch), precision)
        total += len(batch)
    log.info("Wrote %d line(s) to db=%s", total, db)
    return 0


def _print_result(decoded, rows: bool) -> int:
    if rows:
        for row in iter_rows(decoded):
            print(json.dumps(row, separators=(",", ":")))
    else:
        print(json.dumps(decoded, indent=2))
    errors = result_errors(decoded)
    for err in errors:
        print(f"ERROR {err}", file=sys.stderr)
    return 1 if errors else 0


def run(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    log = logging.getLogger("fluxer")

    if args.cmd == "query" and args.epoch_ms and not args.db:
        print("--epoch-ms requires --db", file=sys.stderr)
        return 2

    with FluxerClient(FluxerConfig.from_env()) as client:
        try:
            if args.cmd == "create-db":
                client.create_database(args.name, args.if_not_exists)
                return 0
            if args.cmd == "show-databases":
                return _print_result(client.show_databases(), rows=True)
            if args.cmd == "query":
                if args.epoch_ms:
                    decoded = client.query_epoch_ms(args.db, args.q)
                else:
                    decoded = client.query(args.q, db=args.db)
                return _print_result(decoded, args.rows)
            return _write_stdin(client, args.db, args.precision)
        except FluxerError:
            log.exception("fluxer %s failed", args.cmd)
            return 1


def main() -> int:
    # Avoid python-dotenv's find_dotenv() heuristics (can assert in some contexts).
    load_dotenv(dotenv_path=os.path.join(os.getcwd(), ".env"))

    _setup_logging(os.getenv("LOG_LEVEL", "INFO"))
    return run()


if __name__ == "__main__":
    raise SystemExit(main())
