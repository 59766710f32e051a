import asyncio

import pytest

from signoff.config import Settings
from signoff.core.artifacts import LocalArtifactStore
from signoff.core.events import EventBus
from signoff.core.service import AppraisalWorkflow
from signoff.core.workflow import APPROVAL_CHAIN, Role
from signoff.errors import AuthorizationError, PartialApprovalError, TransientError
from signoff.types import AppraisalDraft


@pytest.fixture
def workflow(repo, tmp_path):
    return AppraisalWorkflow(repo, LocalArtifactStore(Settings(artifact_dir=tmp_path)), event_bus=EventBus())


@pytest.fixture
def submitted(workflow, session_for, draft_payload, signature_data_url) -> dict:
    draft = AppraisalDraft.model_validate(draft_payload())
    return asyncio.run(workflow.submit(session_for(Role.APPRAISER), draft, signature_data_url))


def test_four_approvals_complete_the_appraisal(workflow, repo, submitted, session_for, signature_data_url) -> None:
    appraisal_id = submitted["id"]
    assert submitted["status"] == "PENDING_HR_APPROVAL"
    assert repo.fetch_signatures(appraisal_id) == []

    first = asyncio.run(workflow.approve(session_for(Role.HR), appraisal_id, signature_data_url))
    assert first["status"] == "PENDING_DOCS_APPROVAL"
    assert [item.signer_role for item in repo.fetch_signatures(appraisal_id)] == ["hr"]

    for role in APPROVAL_CHAIN[1:]:
        asyncio.run(workflow.approve(session_for(role), appraisal_id, signature_data_url, comment=f"ok from {role.value}"))

    details = asyncio.run(workflow.get_details(appraisal_id))
    assert details["status"] == "COMPLETED"
    assert details["awaiting_role"] is None
    assert [item["signer_role"] for item in details["signatures"]] == ["hr", "docs", "md", "chairman"]
    assert [item["step"] for item in details["signatures"]] == [
        "PENDING_HR_APPROVAL",
        "PENDING_DOCS_APPROVAL",
        "PENDING_MD_APPROVAL",
        "PENDING_CHAIRMAN_APPROVAL",
    ]

    with pytest.raises(AuthorizationError, match="no further approvals"):
        asyncio.run(workflow.approve(session_for(Role.CHAIRMAN), appraisal_id, signature_data_url))
    assert len(repo.fetch_signatures(appraisal_id)) == 4


def test_out_of_order_roles_write_nothing(workflow, repo, submitted, session_for, signature_data_url, tmp_path) -> None:
    appraisal_id = submitted["id"]
    uploads_before = len(list(tmp_path.iterdir()))

    for role in (Role.APPRAISER, Role.DOCS, Role.MD, Role.CHAIRMAN):
        with pytest.raises(AuthorizationError):
            asyncio.run(workflow.approve(session_for(role), appraisal_id, signature_data_url))

    assert repo.fetch_appraisal(appraisal_id).status == "PENDING_HR_APPROVAL"
    assert repo.fetch_signatures(appraisal_id) == []
    assert len(list(tmp_path.iterdir())) == uploads_before


def test_partial_failure_is_reported_and_reconciled(
    workflow, repo, submitted, session_for, signature_data_url, monkeypatch
) -> None:
    appraisal_id = submitted["id"]

    def broken_update(*args, **kwargs):
        raise TransientError("database is locked")

    with monkeypatch.context() as patch:
        patch.setattr(repo, "update_appraisal_status", broken_update)
        with pytest.raises(PartialApprovalError) as excinfo:
            asyncio.run(workflow.approve(session_for(Role.HR), appraisal_id, signature_data_url))

    assert excinfo.value.appraisal_id == appraisal_id
    assert excinfo.value.status_code == 409
    assert repo.fetch_appraisal(appraisal_id).status == "PENDING_HR_APPROVAL"
    assert len(repo.fetch_signatures(appraisal_id)) == 1

    with pytest.raises(AuthorizationError):
        asyncio.run(workflow.reconcile(session_for(Role.MD), appraisal_id))

    result = asyncio.run(workflow.reconcile(session_for(Role.HR), appraisal_id))
    assert result["changed"] is True
    assert result["orphaned_signatures"] == 1
    assert result["appraisal"]["status"] == "PENDING_DOCS_APPROVAL"

    again = asyncio.run(workflow.reconcile(session_for(Role.HR), appraisal_id))
    assert again["changed"] is False

    asyncio.run(workflow.approve(session_for(Role.DOCS), appraisal_id, signature_data_url))
    assert repo.fetch_appraisal(appraisal_id).status == "PENDING_MD_APPROVAL"
    assert workflow._locks == {}


def test_reconcile_after_a_retried_approval_does_not_skip_docs(
    workflow, repo, submitted, session_for, signature_data_url, monkeypatch
) -> None:
    appraisal_id = submitted["id"]

    def broken_update(*args, **kwargs):
        raise TransientError("database is locked")

    with monkeypatch.context() as patch:
        patch.setattr(repo, "update_appraisal_status", broken_update)
        with pytest.raises(PartialApprovalError):
            asyncio.run(workflow.approve(session_for(Role.HR), appraisal_id, signature_data_url))

    retried = asyncio.run(workflow.approve(session_for(Role.HR), appraisal_id, signature_data_url))
    assert retried["status"] == "PENDING_DOCS_APPROVAL"
    assert [item.signer_role for item in repo.fetch_signatures(appraisal_id)] == ["hr", "hr"]
    assert repo.find_orphaned_signatures() == []

    result = asyncio.run(workflow.reconcile(session_for(Role.HR), appraisal_id))
    assert result["changed"] is False
    assert result["appraisal"]["status"] == "PENDING_DOCS_APPROVAL"
    assert repo.fetch_appraisal(appraisal_id).status == "PENDING_DOCS_APPROVAL"

    approved = asyncio.run(workflow.approve(session_for(Role.DOCS), appraisal_id, signature_data_url))
    assert approved["status"] == "PENDING_MD_APPROVAL"


def test_concurrent_approvals_record_one_signature(workflow, repo, submitted, session_for, signature_data_url) -> None:
    appraisal_id = submitted["id"]

    async def race() -> list:
        return await asyncio.gather(
            workflow.approve(session_for(Role.HR), appraisal_id, signature_data_url),
            workflow.approve(session_for(Role.HR), appraisal_id, signature_data_url),
            return_exceptions=True,
        )

    results = asyncio.run(race())
    successes = [item for item in results if isinstance(item, dict)]
    failures = [item for item in results if isinstance(item, Exception)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], AuthorizationError)
    assert len(repo.fetch_signatures(appraisal_id)) == 1
    assert workflow._locks == {}
