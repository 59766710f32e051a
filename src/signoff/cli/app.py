from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer
import uvicorn
from pydantic import ValidationError as PydanticValidationError

from signoff.api.app import create_app
from signoff.config import get_settings
from signoff.core.artifacts import LocalArtifactStore, SignatureArtifact
from signoff.core.catalog import question_catalog, role_name
from signoff.core.reports import summary_to_csv
from signoff.core.service import AppraisalWorkflow
from signoff.core.session import ActorSession, IdentityProvider
from signoff.core.workflow import Role
from signoff.db.init import init_database
from signoff.db.repositories import Repository
from signoff.db.seed import describe_demo_profiles
from signoff.db.session import SessionLocal
from signoff.errors import SignoffError, ValidationError
from signoff.logging_config import configure_logging
from signoff.types import AppraisalDraft

app = typer.Typer(help="Signoff CLI")
profile_app = typer.Typer(help="Manage actor profiles")
appraisal_app = typer.Typer(help="Submit, approve and inspect appraisals")

app.add_typer(profile_app, name="profile")
app.add_typer(appraisal_app, name="appraisal")

_INITIALIZED = False


def ensure_initialized() -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return
    init_database()
    _INITIALIZED = True


def _echo(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def _fail(exc: SignoffError) -> None:
    typer.echo(json.dumps({"ok": False, "code": exc.error_code, "error": exc.message}, indent=2), err=True)
    raise typer.Exit(code=1)


def _read_signature(value: str) -> str | SignatureArtifact:
    """A ``data:`` URL is used as-is; anything else is read as a PNG file."""
    if value.startswith("data:"):
        return value
    path = Path(value)
    if not path.is_file():
        raise typer.BadParameter(f"signature file {value} not found")
    return SignatureArtifact(content=path.read_bytes())


def _describe_error(error: dict) -> str:
    location = ".".join(str(part) for part in error["loc"]) or "draft"
    return f"{location}: {error['msg']}"


def _load_draft(path: Path) -> AppraisalDraft:
    try:
        return AppraisalDraft.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except json.JSONDecodeError as exc:
        raise ValidationError(f"draft file {path} is not valid JSON: {exc.msg}", details={"line": exc.lineno}) from exc
    except PydanticValidationError as exc:
        problems = [_describe_error(error) for error in exc.errors()]
        raise ValidationError(f"draft file {path} is malformed", details={"problems": problems}) from exc


def _open_session(repo: Repository, actor_id: str) -> ActorSession:
    provider = IdentityProvider(repo)
    return asyncio.run(provider.sign_in(ActorSession(), actor_id))


@app.command("init")
def init_cmd(seed: bool = typer.Option(False, "--seed", help="Insert demo profiles for each role")) -> None:
    """Initialize database, directories, and optional demo profiles."""
    configure_logging()
    result = init_database(seed=seed or None)
    payload: dict[str, object] = {"ok": True, **result}
    if seed:
        payload["demo_profiles"] = describe_demo_profiles()
    _echo(payload)


@app.command("questions")
def questions_cmd() -> None:
    _echo(question_catalog())


@profile_app.command("create")
def profile_create(
    name: str = typer.Option(..., "--name"),
    role: Role = typer.Option(..., "--role"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        repo = Repository(db)
        try:
            profile = repo.create_profile(full_name=name, role=role)
        except SignoffError as exc:
            _fail(exc)
        _echo({"id": profile.id, "full_name": profile.full_name, "role": profile.role})


@profile_app.command("list")
def profile_list() -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        rows = Repository(db).list_profiles()
        _echo(
            [
                {"id": row.id, "full_name": row.full_name, "role": row.role, "role_name": role_name(row.role)}
                for row in rows
            ]
        )


@appraisal_app.command("list")
def appraisal_list(
    department: str | None = typer.Option(None, "--department"),
    search: str | None = typer.Option(None, "--search"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        workflow = AppraisalWorkflow(Repository(db), LocalArtifactStore())
        try:
            rows = asyncio.run(workflow.list_appraisals(department=department, search=search))
        except SignoffError as exc:
            _fail(exc)
        _echo(rows)


@appraisal_app.command("show")
def appraisal_show(appraisal_id: str = typer.Option(..., "--id")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        workflow = AppraisalWorkflow(Repository(db), LocalArtifactStore())
        try:
            data = asyncio.run(workflow.get_details(appraisal_id))
        except SignoffError as exc:
            _fail(exc)
        _echo(data)


@appraisal_app.command("submit")
def appraisal_submit(
    actor: str = typer.Option(..., "--actor", help="Profile id of the submitting appraiser"),
    file: Path = typer.Option(..., "--file", exists=True, readable=True),
    signature: str = typer.Option(..., "--signature", help="PNG file path or data URL"),
) -> None:
    """Submit an appraisal from a JSON file with employee_name, department, hod_name, scores and comments."""
    configure_logging()
    ensure_initialized()
    artifact = _read_signature(signature)

    with SessionLocal() as db:
        repo = Repository(db)
        workflow = AppraisalWorkflow(repo, LocalArtifactStore())
        try:
            draft = _load_draft(file)
            session = _open_session(repo, actor)
            data = asyncio.run(workflow.submit(session, draft, artifact))
        except SignoffError as exc:
            _fail(exc)
        _echo(data)


@appraisal_app.command("approve")
def appraisal_approve(
    appraisal_id: str = typer.Option(..., "--id"),
    actor: str = typer.Option(..., "--actor", help="Profile id of the approving actor"),
    signature: str = typer.Option(..., "--signature", help="PNG file path or data URL"),
    comment: str | None = typer.Option(None, "--comment"),
) -> None:
    configure_logging()
    ensure_initialized()
    artifact = _read_signature(signature)

    with SessionLocal() as db:
        repo = Repository(db)
        workflow = AppraisalWorkflow(repo, LocalArtifactStore())
        try:
            session = _open_session(repo, actor)
            data = asyncio.run(workflow.approve(session, appraisal_id, artifact, comment=comment))
        except SignoffError as exc:
            _fail(exc)
        _echo(data)


@appraisal_app.command("reconcile")
def appraisal_reconcile(
    actor: str = typer.Option(..., "--actor", help="Profile id of an HR actor"),
    appraisal_id: str | None = typer.Option(None, "--id", help="Reconcile one appraisal; default is all"),
) -> None:
    """Advance appraisals that hold a signature for their current step but never moved past it."""
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        repo = Repository(db)
        workflow = AppraisalWorkflow(repo, LocalArtifactStore())
        try:
            session = _open_session(repo, actor)
            if appraisal_id:
                targets = [appraisal_id]
            else:
                targets = [appraisal.id for appraisal, _ in repo.find_orphaned_signatures()]
            results = [asyncio.run(workflow.reconcile(session, item)) for item in targets]
        except SignoffError as exc:
            _fail(exc)
        _echo({"reconciled": sum(1 for item in results if item["changed"]), "results": results})


@appraisal_app.command("summary")
def appraisal_summary(
    department: str = typer.Option(..., "--department"),
    actor: str = typer.Option(..., "--actor", help="Profile id of an HR or Chairman actor"),
    output: Path | None = typer.Option(None, "--output", help="Write CSV here instead of printing JSON"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        repo = Repository(db)
        workflow = AppraisalWorkflow(repo, LocalArtifactStore())
        try:
            session = _open_session(repo, actor)
            summary = asyncio.run(workflow.department_summary(session, department))
        except SignoffError as exc:
            _fail(exc)

    if output is None:
        _echo(summary.model_dump())
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(summary_to_csv(summary), encoding="utf-8")
    _echo({"ok": True, "output": str(output), "count": summary.count})


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


if __name__ == "__main__":
    app()
