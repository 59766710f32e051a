from __future__ import annotations

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from signoff.api.deps import get_actor_session, get_repository, get_workflow
from signoff.api.schemas import (
    AppraisalDetailResponse,
    AppraisalResponse,
    AppraisalSubmitRequest,
    ApprovalRequest,
    PermissionResponse,
    ProfileCreateRequest,
    ProfileResponse,
    ReconcileResponse,
    ScorePreviewRequest,
    ScorePreviewResponse,
    SessionResponse,
)
from signoff.core.catalog import question_catalog, role_name
from signoff.core.events import APPRAISALS_TOPIC, get_event_bus
from signoff.core.service import AppraisalWorkflow, compute_scores
from signoff.core.session import ActorSession
from signoff.core.workflow import AppraisalStatus, required_role
from signoff.db.repositories import Repository
from signoff.errors import NotFoundError
from signoff.types import AppraisalDraft, DepartmentSummary

router = APIRouter(prefix="/api", tags=["api"])


@router.get("/questions")
def get_questions() -> dict:
    return question_catalog()


@router.post("/profiles", response_model=ProfileResponse)
def create_profile(payload: ProfileCreateRequest, repo: Repository = Depends(get_repository)) -> ProfileResponse:
    profile = repo.create_profile(full_name=payload.full_name, role=payload.role)
    return ProfileResponse(
        id=profile.id,
        full_name=profile.full_name,
        role=profile.role,
        role_name=role_name(profile.role),
    )


@router.get("/profiles", response_model=list[ProfileResponse])
def list_profiles(repo: Repository = Depends(get_repository)) -> list[ProfileResponse]:
    return [
        ProfileResponse(id=row.id, full_name=row.full_name, role=row.role, role_name=role_name(row.role))
        for row in repo.list_profiles()
    ]


@router.get("/session", response_model=SessionResponse)
def get_session(session: ActorSession = Depends(get_actor_session)) -> SessionResponse:
    if not session.is_authenticated:
        return SessionResponse(authenticated=False)
    identity = session.current_actor()
    return SessionResponse(
        authenticated=True,
        actor_id=identity.id,
        role=identity.role,
        role_name=role_name(identity.role),
    )


@router.post("/scores/preview", response_model=ScorePreviewResponse)
def preview_scores(payload: ScorePreviewRequest) -> ScorePreviewResponse:
    summary = compute_scores(payload.scores)
    return ScorePreviewResponse(average=summary.average, percentage=summary.percentage, rating=summary.rating)


@router.get("/appraisals", response_model=list[AppraisalResponse])
async def list_appraisals(
    department: str | None = None,
    search: str | None = None,
    workflow: AppraisalWorkflow = Depends(get_workflow),
    session: ActorSession = Depends(get_actor_session),
) -> list[AppraisalResponse]:
    session.require_actor()
    rows = await workflow.list_appraisals(department=department, search=search)
    return [AppraisalResponse.model_validate(row) for row in rows]


@router.post("/appraisals", response_model=AppraisalResponse)
async def submit_appraisal(
    payload: AppraisalSubmitRequest,
    workflow: AppraisalWorkflow = Depends(get_workflow),
    session: ActorSession = Depends(get_actor_session),
) -> AppraisalResponse:
    draft = AppraisalDraft.model_validate(payload.model_dump(exclude={"signature"}))
    data = await workflow.submit(session, draft, payload.signature)
    return AppraisalResponse.model_validate(data)


@router.get("/appraisals/{appraisal_id}", response_model=AppraisalDetailResponse)
async def get_appraisal(
    appraisal_id: str,
    workflow: AppraisalWorkflow = Depends(get_workflow),
    session: ActorSession = Depends(get_actor_session),
) -> AppraisalDetailResponse:
    session.require_actor()
    return AppraisalDetailResponse.model_validate(await workflow.get_details(appraisal_id))


@router.get("/appraisals/{appraisal_id}/permissions", response_model=PermissionResponse)
def get_permissions(
    appraisal_id: str,
    repo: Repository = Depends(get_repository),
    session: ActorSession = Depends(get_actor_session),
) -> PermissionResponse:
    row = repo.fetch_appraisal(appraisal_id)
    if row is None:
        raise NotFoundError(f"appraisal {appraisal_id} not found")
    status = AppraisalStatus(row.status)
    awaiting = required_role(status)
    return PermissionResponse(
        appraisal_id=row.id,
        status=status.value,
        awaiting_role=awaiting.value if awaiting else None,
        can_act=AppraisalWorkflow.can_act(status, session),
    )


@router.post("/appraisals/{appraisal_id}/approve", response_model=AppraisalResponse)
async def approve_appraisal(
    appraisal_id: str,
    payload: ApprovalRequest,
    workflow: AppraisalWorkflow = Depends(get_workflow),
    session: ActorSession = Depends(get_actor_session),
) -> AppraisalResponse:
    data = await workflow.approve(session, appraisal_id, payload.signature, comment=payload.comment)
    return AppraisalResponse.model_validate(data)


@router.post("/appraisals/{appraisal_id}/reconcile", response_model=ReconcileResponse)
async def reconcile_appraisal(
    appraisal_id: str,
    workflow: AppraisalWorkflow = Depends(get_workflow),
    session: ActorSession = Depends(get_actor_session),
) -> ReconcileResponse:
    return ReconcileResponse.model_validate(await workflow.reconcile(session, appraisal_id))


@router.get("/departments/{department}/summary", response_model=DepartmentSummary)
async def department_summary(
    department: str,
    workflow: AppraisalWorkflow = Depends(get_workflow),
    session: ActorSession = Depends(get_actor_session),
) -> DepartmentSummary:
    return await workflow.department_summary(session, department)


@router.websocket("/appraisals/stream")
async def stream_appraisal_events(websocket: WebSocket) -> None:
    await websocket.accept()
    event_bus = get_event_bus()
    try:
        async for event in event_bus.subscribe(APPRAISALS_TOPIC):
            await websocket.send_json(event)
    except WebSocketDisconnect:
        return
