from signoff.core.workflow import (
    APPROVAL_CHAIN,
    STATUS_ORDER,
    AppraisalStatus,
    Role,
    TransitionPolicy,
    advance,
    can_act,
    is_terminal,
    required_role,
    step_is_signed,
)


def test_each_pending_state_has_exactly_one_role() -> None:
    for status in STATUS_ORDER:
        allowed = [role for role in Role if can_act(status, role)]
        if status is AppraisalStatus.COMPLETED:
            assert allowed == []
        else:
            assert allowed == [required_role(status)]


def test_approval_chain_order() -> None:
    pending = [status for status in STATUS_ORDER if status.value.startswith("PENDING_")]
    assert [required_role(status) for status in pending] == list(APPROVAL_CHAIN)
    assert required_role(AppraisalStatus.DRAFT) is Role.APPRAISER


def test_wrong_role_and_anonymous_cannot_act() -> None:
    assert not can_act(AppraisalStatus.PENDING_HR_APPROVAL, Role.DOCS)
    assert not can_act(AppraisalStatus.PENDING_MD_APPROVAL, Role.CHAIRMAN)
    assert not can_act(AppraisalStatus.PENDING_HR_APPROVAL, None)


def test_advance_moves_one_step_and_stops_at_completed() -> None:
    assert advance(AppraisalStatus.DRAFT) is AppraisalStatus.PENDING_HR_APPROVAL
    assert advance(AppraisalStatus.PENDING_CHAIRMAN_APPROVAL) is AppraisalStatus.COMPLETED
    assert advance(AppraisalStatus.COMPLETED) is AppraisalStatus.COMPLETED
    assert is_terminal(AppraisalStatus.COMPLETED)
    assert not is_terminal(AppraisalStatus.PENDING_MD_APPROVAL)


def test_status_never_moves_backward() -> None:
    for status in STATUS_ORDER:
        assert advance(status).position >= status.position


def test_step_is_signed_only_for_the_current_step() -> None:
    assert step_is_signed(AppraisalStatus.PENDING_HR_APPROVAL, ["PENDING_HR_APPROVAL"])
    assert not step_is_signed(AppraisalStatus.PENDING_HR_APPROVAL, [])
    # two HR signatures after a retried approval still owe nothing once Docs is pending
    assert not step_is_signed(
        AppraisalStatus.PENDING_DOCS_APPROVAL, ["PENDING_HR_APPROVAL", "PENDING_HR_APPROVAL"]
    )
    assert not step_is_signed(AppraisalStatus.COMPLETED, ["PENDING_CHAIRMAN_APPROVAL", "COMPLETED"])


def test_transition_policy_explains_denials() -> None:
    policy = TransitionPolicy(status=AppraisalStatus.PENDING_DOCS_APPROVAL)
    assert policy.allows(Role.DOCS)
    assert not policy.allows(Role.HR)
    assert policy.next_status() is AppraisalStatus.PENDING_MD_APPROVAL
    assert "requires role 'docs'" in policy.denial_reason(Role.HR)

    done = TransitionPolicy(status=AppraisalStatus.COMPLETED)
    assert not done.allows(Role.CHAIRMAN)
    assert "no further approvals" in done.denial_reason(Role.CHAIRMAN)


def test_status_labels() -> None:
    assert AppraisalStatus.PENDING_HR_APPROVAL.label == "Pending HR Approval"
    assert AppraisalStatus.COMPLETED.label == "Completed"
