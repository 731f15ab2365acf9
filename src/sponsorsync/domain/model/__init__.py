"""Public domain model surface."""

from __future__ import annotations

from sponsorsync.domain.model.entity import new_id
from sponsorsync.domain.model.organisation import Organisation, OrganisationSnapshot
from sponsorsync.domain.model.run_record import (
    AddedRecords,
    DeletedRecords,
    RunError,
    RunRecord,
    RunStatus,
    UpdatedRecords,
    UpdateDetail,
    utcnow,
)

__all__ = [
    "AddedRecords",
    "DeletedRecords",
    "Organisation",
    "OrganisationSnapshot",
    "RunError",
    "RunRecord",
    "RunStatus",
    "UpdateDetail",
    "UpdatedRecords",
    "new_id",
    "utcnow",
]
