# caseload_calendar/schemas/mutation.py
from enum import Enum

from pydantic import BaseModel, Field


class MutationStatus(str, Enum):
    APPLIED = "applied"
    NOOP = "noop"
    REJECTED = "rejected"


class MutationResult(BaseModel):
    """
    Outcome of a calendar mutation (cancel, reschedule, template edit).

    The derived view is never patched in place: when `reload_required` is true
    the caller reloads the full dataset and recomputes occurrences.
    """

    status: MutationStatus = Field(..., examples=["applied"])
    updated_template_ids: list[str] = Field(
        default_factory=list,
        description="Templates written to the Schedule Store, one write each.",
    )
    reason: str | None = Field(
        default=None,
        description="Why the mutation was rejected or skipped.",
        examples=["Occurrence has already been logged."],
    )

    @property
    def reload_required(self) -> bool:
        return self.status == MutationStatus.APPLIED
