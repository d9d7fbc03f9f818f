"""CLI utilities for bulk CSV import and export of text entries."""

# purpose: let administrators load or dump spreadsheets without going through the HTTP API
# status: active
# depends_on: forest.database, forest.services.ingestion

from __future__ import annotations

import json
from pathlib import Path

import typer
from sqlalchemy.orm import Session

from .. import models
from ..database import SessionLocal
from ..errors import ForestError
from ..rbac import Permission, has_permission
from ..services import ingestion

app = typer.Typer(help="Text entry import/export commands")


def _resolve_actor(session: Session, actor_email: str) -> models.User:
    actor = session.query(models.User).filter(models.User.email == actor_email).first()
    if actor is None:
        raise ValueError("Actor email does not correspond to a known user")
    if not has_permission(actor.role, Permission.IMPORT_EXPORT_FILES):
        raise PermissionError(f"{actor.username} may not import or export files")
    return actor


def import_csv(path: Path | str, *, actor_email: str, update_existing: bool = False) -> dict[str, object]:
    """Import a CSV file as one batch and return the batch summary."""

    source = Path(path)
    text = source.read_text(encoding="utf-8-sig")
    session = SessionLocal()
    try:
        actor = _resolve_actor(session, actor_email)
        rows = ingestion.parse_csv(text)
        summary = ingestion.import_batch(
            session,
            rows,
            actor.id,
            actor_role=actor.role,
            update_existing=update_existing,
            filename=source.name,
        )
        result = summary.as_dict()
        result["file_history_id"] = str(summary.file_history_id) if summary.file_history_id else None
        return result
    finally:
        session.close()


def export_csv(
    path: Path | str,
    *,
    actor_email: str,
    status: str | None = None,
    category: str | None = None,
    include_translations: bool = True,
) -> dict[str, object]:
    target = Path(path)
    session = SessionLocal()
    try:
        actor = _resolve_actor(session, actor_email)
        filename, content, count = ingestion.export_batch(
            session,
            actor.id,
            status=status,
            category=category,
            include_translations=include_translations,
        )
        target.write_text(content, encoding="utf-8")
        session.commit()
        return {"path": str(target), "filename": filename, "rows": count}
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@app.command("import-csv")
def import_csv_command(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
    actor_email: str = typer.Option(..., "--actor-email", help="Email of the importing user"),
    update_existing: bool = typer.Option(False, help="Update entries matched by id or label"),
) -> None:
    """CLI wrapper for :func:`import_csv`."""

    try:
        summary = import_csv(path, actor_email=actor_email, update_existing=update_existing)
    except (ForestError, ValueError, PermissionError) as exc:
        typer.echo(json.dumps({"error": str(exc)}), err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(json.dumps(summary, ensure_ascii=False))
    if not summary["success"]:
        raise typer.Exit(code=1)


@app.command("export-csv")
def export_csv_command(
    path: Path = typer.Argument(..., dir_okay=False),
    actor_email: str = typer.Option(..., "--actor-email", help="Email of the exporting user"),
    status: str | None = typer.Option(None, help="Only entries with this status"),
    category: str | None = typer.Option(None, help="Only entries in this file category"),
    translations: bool = typer.Option(True, "--translations/--no-translations"),
) -> None:
    """CLI wrapper for :func:`export_csv`."""

    try:
        summary = export_csv(
            path,
            actor_email=actor_email,
            status=status,
            category=category,
            include_translations=translations,
        )
    except (ForestError, ValueError, PermissionError) as exc:
        typer.echo(json.dumps({"error": str(exc)}), err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(json.dumps(summary, ensure_ascii=False))


if __name__ == "__main__":
    app()
