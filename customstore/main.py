from __future__ import annotations

import json
import sys
from typing import List, Optional

import typer

from customstore.config import get_settings
from customstore.domain.models import Record, new_record
from customstore.domain.query import RecordQuery
from customstore.exceptions import CustomStoreError
from customstore.store import RecordStore
from customstore.utils.logging import configure_logging

app = typer.Typer(help="customstore CLI: JSON records in a single SQL table.")


def _store() -> RecordStore:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    return RecordStore.from_settings()


def _record_json(record: Record) -> dict:
    return record.model_dump(mode="json", by_alias=True)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    if settings.db_driver == "postgres":
        target = f"{settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    else:
        target = settings.sqlite_path
    typer.echo(
        f"DB={settings.db_driver}:{target} | table={settings.store_table} "
        f"automigrate={settings.store_automigrate}"
    )


@app.command()
def migrate() -> None:
    """
    Create the record table if it does not exist.
    """
    store = _store()
    store.migrate()
    typer.echo(f"Table '{store.table_name}' is ready.")


@app.command()
def create(
    record_type: str = typer.Argument(..., help="Record type, e.g. analysis_report."),
    payload: str = typer.Option("", "--payload", "-p", help="JSON payload."),
    memo: str = typer.Option("", "--memo", "-m", help="Free-text memo."),
    record_id: Optional[str] = typer.Option(None, "--id", help="Explicit record id."),
) -> None:
    """
    Create a record and print it as JSON.
    """
    record = new_record(record_type, id=record_id, memo=memo, payload=payload)
    created = _store().create(record)
    typer.echo(json.dumps(_record_json(created), indent=2))


@app.command()
def get(record_id: str = typer.Argument(..., help="Record id.")) -> None:
    """
    Print one record as JSON.
    """
    typer.echo(json.dumps(_record_json(_store().find_by_id(record_id)), indent=2))


def _query(
    record_type: Optional[str],
    ids: Optional[List[str]],
    search: Optional[List[str]],
    exclude: Optional[List[str]],
    include_deleted: bool,
) -> RecordQuery:
    query = RecordQuery().set_soft_deleted_included(include_deleted)
    if record_type is not None:
        query.set_type(record_type)
    if ids:
        query.set_id_list(ids)
    for needle in search or []:
        query.add_payload_search(needle)
    for needle in exclude or []:
        query.add_payload_search_not(needle)
    return query


@app.command("list")
def list_records(
    record_type: Optional[str] = typer.Option(None, "--type", "-t", help="Filter by type."),
    ids: Optional[List[str]] = typer.Option(None, "--id", help="Filter by id (repeatable)."),
    search: Optional[List[str]] = typer.Option(
        None, "--search", "-s", help="Payload must contain (repeatable, any matches)."
    ),
    exclude: Optional[List[str]] = typer.Option(
        None, "--exclude", "-x", help="Payload must not contain (repeatable)."
    ),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Maximum rows."),
    offset: Optional[int] = typer.Option(None, "--offset", "-o", help="Rows to skip."),
    order_by: str = typer.Option("created_at", "--order-by", help="Column to sort by."),
    sort_order: str = typer.Option("desc", "--sort", help="asc or desc."),
    include_deleted: bool = typer.Option(False, "--include-deleted", help="Show soft-deleted records."),
) -> None:
    """
    List records as a JSON array.
    """
    query = _query(record_type, ids, search, exclude, include_deleted)
    query.set_order_by(order_by).set_sort_order(sort_order)
    if limit is not None:
        query.set_limit(limit)
    if offset is not None:
        query.set_offset(offset)
    records = _store().list(query)
    typer.echo(json.dumps([_record_json(r) for r in records], indent=2))


@app.command()
def count(
    record_type: Optional[str] = typer.Option(None, "--type", "-t", help="Filter by type."),
    search: Optional[List[str]] = typer.Option(None, "--search", "-s", help="Payload must contain."),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude", "-x", help="Payload must not contain."),
    include_deleted: bool = typer.Option(False, "--include-deleted", help="Count soft-deleted records."),
) -> None:
    """
    Print the number of matching records.
    """
    typer.echo(_store().count(_query(record_type, None, search, exclude, include_deleted)))


@app.command()
def delete(
    record_id: str = typer.Argument(..., help="Record id."),
    soft: bool = typer.Option(False, "--soft", help="Soft-delete instead of removing the row."),
) -> None:
    """
    Delete a record (permanently unless --soft).
    """
    store = _store()
    if soft:
        store.soft_delete_by_id(record_id)
        typer.echo(f"Soft-deleted {record_id}.")
    else:
        store.delete_by_id(record_id)
        typer.echo(f"Deleted {record_id}.")


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
    except CustomStoreError as exc:
        typer.echo(f"Error: {exc}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
