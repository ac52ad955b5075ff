from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional

import typer
from loguru import logger

from .errors import InvalidRecordError
from .existence import ExistenceCache
from .models import Record, record_from_dict
from .settings import SinkSettings
from .task import BatchStatus, build_task
from .transports import OpenSearchAdminTransport, create_client
from .utils import chunked, iter_ndjson

app = typer.Typer(help="search-sink operational CLI")

EXIT_RETRIABLE = 75  # EX_TEMPFAIL


class TransportKind(str, Enum):
    direct = "direct"
    buffered = "buffered"


# ---------------------------
# Common options
# ---------------------------


def hosts_opt() -> Optional[str]:
    return typer.Option(
        None, "--hosts", help="Comma-separated cluster URLs (default: SEARCH_SINK_HOSTS)"
    )


def _read_records(path: Path) -> Iterator[Record]:
    try:
        for row in iter_ndjson(path):
            yield record_from_dict(row)
    except ValueError as e:
        raise InvalidRecordError(str(e)) from e


def _settings(hosts: Optional[str], **overrides) -> SinkSettings:
    if hosts:
        overrides["hosts"] = [h.strip() for h in hosts.split(",") if h.strip()]
    return SinkSettings(**{k: v for k, v in overrides.items() if v is not None})


# ---------------------------
# Commands
# ---------------------------


@app.command("ping")
def ping(hosts: Optional[str] = hosts_opt()):
    client = create_client(_settings(hosts))
    ok = bool(client.ping())
    typer.echo(json.dumps({"ok": ok}, indent=2))
    if not ok:
        raise typer.Exit(code=1)


@app.command("ensure")
def ensure(
    destination: str = typer.Argument(..., help="Collection name"),
    num_shards: Optional[int] = typer.Option(None, "--num-shards"),
    replication_factor: Optional[int] = typer.Option(None, "--replication-factor"),
    hosts: Optional[str] = hosts_opt(),
):
    """Create DESTINATION if it does not exist yet."""
    settings = _settings(
        hosts, num_shards=num_shards, replication_factor=replication_factor, auto_create=True
    )
    admin = OpenSearchAdminTransport(create_client(settings))
    ExistenceCache().assure(admin, destination, settings.collection_policy())
    typer.echo("ok")


@app.command("ingest")
def ingest(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="NDJSON records file"),
    batch_size: int = typer.Option(1000, "--batch-size", min=1),
    auto_create: Optional[bool] = typer.Option(None, "--auto-create/--no-auto-create"),
    transport: Optional[TransportKind] = typer.Option(None, "--transport"),
    hosts: Optional[str] = hosts_opt(),
):
    """Apply every record in PATH ({destination|topic, key, value} per line)."""
    settings = _settings(
        hosts, auto_create=auto_create, transport=transport.value if transport else None
    )
    task = build_task(settings)

    totals = {"records": 0, "requests": 0, "batches": 0}
    with task:
        try:
            for records in chunked(_read_records(path), batch_size):
                result = task.process_batch(records)
                if not result.ok:
                    logger.error(
                        f"Batch {totals['batches'] + 1} {result.status.value}: {result.error}"
                    )
                    typer.echo(json.dumps({**totals, "status": result.status.value}, indent=2))
                    code = EXIT_RETRIABLE if result.status is BatchStatus.RETRIABLE else 1
                    raise typer.Exit(code=code)
                totals["records"] += result.records
                totals["requests"] += result.requests
                totals["batches"] += 1
        except InvalidRecordError as e:
            logger.error(f"Malformed row in {path}: {e}")
            raise typer.Exit(code=1)

    typer.echo(json.dumps({**totals, "status": BatchStatus.SUCCESS.value}, indent=2))


if __name__ == "__main__":
    app()
