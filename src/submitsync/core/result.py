"""Result types reported by the CLI workflows."""

from datetime import datetime

from pydantic import BaseModel


class ChangeReport(BaseModel):
    """Outcome of one submitted change."""

    change_id: int | None
    patch_set: int | None
    commit_id: str
    outcome: str
    merged: bool


class SubmitReport(BaseModel):
    """Result of a submit run."""

    project: str
    branch: str
    strategy: str
    old_tip: str | None
    new_tip: str | None
    branch_updated: bool
    ref_log_ident: str | None
    changes: list[ChangeReport]
    timestamp: datetime

    @property
    def success(self) -> bool:
        return all(c.merged for c in self.changes)
