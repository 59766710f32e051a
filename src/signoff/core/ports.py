from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Protocol

from signoff.core.session import Actor
from signoff.core.workflow import AppraisalStatus
from signoff.types import NewAppraisal, NewSignature


class AppraisalStore(Protocol):
    def fetch_appraisals(
        self,
        *,
        department: str | None = None,
        search: str | None = None,
        created_by: str | None = None,
        limit: int | None = None,
    ) -> list[Any]: ...

    def fetch_appraisal(self, appraisal_id: str) -> Any | None: ...

    def insert_appraisal(self, actor: Actor, record: NewAppraisal) -> Any: ...

    def update_appraisal_status(
        self,
        actor: Actor,
        appraisal_id: str,
        new_status: AppraisalStatus,
        *,
        expected_status: AppraisalStatus,
    ) -> Any: ...

    def reconcile_appraisal_status(
        self,
        actor: Actor,
        appraisal_id: str,
        new_status: AppraisalStatus,
        *,
        expected_status: AppraisalStatus,
    ) -> Any: ...

    def insert_signature(self, actor: Actor, record: NewSignature) -> Any: ...

    def fetch_signatures(self, appraisal_id: str) -> list[Any]: ...

    def fetch_profile(self, profile_id: str) -> Any | None: ...

    def fetch_profiles(self, profile_ids: Iterable[str]) -> list[Any]: ...


class ArtifactStore(Protocol):
    def upload_artifact(self, content: bytes, filename: str) -> str: ...
