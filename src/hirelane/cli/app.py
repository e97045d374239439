from __future__ import annotations

import json

import typer
import uvicorn

from hirelane.api.app import create_app
from hirelane.config import get_settings
from hirelane.core.auth import issue_token
from hirelane.core.errors import HirelaneError
from hirelane.core.lifecycle import ApplicationLifecycleService
from hirelane.core.reconcile import reconcile_pending_deletions
from hirelane.db.init import init_database
from hirelane.db.repositories import Repository
from hirelane.db.session import SessionLocal
from hirelane.logging_config import configure_logging
from hirelane.storage.drive import get_document_storage
from hirelane.types import ADMIN_ROLES, POSTING_STATUSES, AdminListFilters

app = typer.Typer(help="hirelane CLI")
users_app = typer.Typer(help="Manage user accounts")
postings_app = typer.Typer(help="Manage job postings")
applications_app = typer.Typer(help="Review applications")
storage_app = typer.Typer(help="Document storage maintenance")

app.add_typer(users_app, name="users")
app.add_typer(postings_app, name="postings")
app.add_typer(applications_app, name="applications")
app.add_typer(storage_app, name="storage")

_INITIALIZED = False


def ensure_initialized() -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return
    init_database()
    _INITIALIZED = True


def _echo(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


@app.command("init")
def init_cmd() -> None:
    """Create the database schema."""
    configure_logging()
    result = init_database()
    _echo({"ok": True, **result})


@users_app.command("create")
def users_create(
    email: str = typer.Option(..., "--email"),
    name: str = typer.Option("", "--name"),
    surname: str = typer.Option("", "--surname"),
    role: str = typer.Option("candidate", "--role"),
) -> None:
    configure_logging()
    ensure_initialized()
    if role not in ADMIN_ROLES | {"candidate"}:
        raise typer.BadParameter(f"role must be one of candidate, {', '.join(sorted(ADMIN_ROLES))}")
    with SessionLocal() as db:
        try:
            user = Repository(db).create_user(name=name, surname=surname, email=email, role=role)
        except HirelaneError as exc:
            raise typer.BadParameter(str(exc)) from exc
        _echo({"id": user.id, "email": user.email, "role": user.role})


@users_app.command("token")
def users_token(user_id: int = typer.Option(..., "--user-id")) -> None:
    """Print a bearer token for an existing user."""
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        if not Repository(db).get_user(user_id):
            raise typer.BadParameter(f"user {user_id} not found")
    _echo({"user_id": user_id, "token": issue_token(user_id, get_settings().secret_key)})


@users_app.command("list")
def users_list() -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        users = Repository(db).list_users()
        _echo([{"id": user.id, "email": user.email, "role": user.role} for user in users])


@postings_app.command("create")
def postings_create(
    title: str = typer.Option(..., "--title"),
    area: str = typer.Option("", "--area"),
    location: str = typer.Option("", "--location"),
    description: str = typer.Option("", "--description"),
    status: str = typer.Option("open", "--status"),
) -> None:
    configure_logging()
    ensure_initialized()
    if status not in POSTING_STATUSES:
        raise typer.BadParameter(f"status must be one of {', '.join(POSTING_STATUSES)}")
    with SessionLocal() as db:
        posting = Repository(db).create_job_posting(
            title=title,
            area=area,
            location=location,
            description=description,
            status=status,
        )
        _echo({"id": posting.id, "title": posting.title, "status": posting.status})


@postings_app.command("set-status")
def postings_set_status(
    posting_id: int = typer.Option(..., "--posting-id"),
    status: str = typer.Option(..., "--status"),
) -> None:
    configure_logging()
    ensure_initialized()
    if status not in POSTING_STATUSES:
        raise typer.BadParameter(f"status must be one of {', '.join(POSTING_STATUSES)}")
    with SessionLocal() as db:
        try:
            posting = Repository(db).set_job_posting_status(posting_id, status)
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
        _echo({"id": posting.id, "status": posting.status})


@postings_app.command("list")
def postings_list(status: str | None = typer.Option(None, "--status")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        postings = Repository(db).list_job_postings(status=status)
        _echo(
            [
                {
                    "id": posting.id,
                    "title": posting.title,
                    "area": posting.area,
                    "status": posting.status,
                    "location": posting.location,
                }
                for posting in postings
            ]
        )


@applications_app.command("list")
def applications_list(
    state: str | None = typer.Option(None, "--state"),
    posting: str | None = typer.Option(None, "--posting"),
    query: str | None = typer.Option(None, "--query"),
    limit: int | None = typer.Option(None, "--limit", min=1),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        service = ApplicationLifecycleService(db)
        try:
            rows = service.admin_list(AdminListFilters(state=state, job_posting_id=posting, q=query, limit=limit))
        except HirelaneError as exc:
            raise typer.BadParameter(str(exc)) from exc
        _echo(rows)


@applications_app.command("transition")
def applications_transition(
    application_id: int = typer.Option(..., "--application-id"),
    state: str = typer.Option(..., "--state"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        try:
            data = ApplicationLifecycleService(db).transition(application_id, state)
        except HirelaneError as exc:
            raise typer.BadParameter(str(exc)) from exc
        _echo(data)


@storage_app.command("reconcile")
def storage_reconcile(limit: int | None = typer.Option(None, "--limit", min=1)) -> None:
    """Retry remote document deletions that failed earlier."""
    configure_logging()
    ensure_initialized()
    settings = get_settings()
    with SessionLocal() as db:
        result = reconcile_pending_deletions(
            db,
            get_document_storage(),
            limit=limit or settings.reconcile_batch_size,
        )
    _echo(result)


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
) -> None:
    configure_logging()
    ensure_initialized()
    settings = get_settings()
    app_instance = create_app()
    uvicorn.run(app_instance, host=host or settings.app_host, port=port or settings.app_port)
