"""Persistence for bake runs and their step logs.

Stores never commit; the caller owns the transaction (see db.unit_of_work).
Every bake query is scoped by the owning user id.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.orm import Session, joinedload, selectinload

from ..core.ids import is_valid_id
from ..models import BakeLog, BakeStepLog, RecipeStep, StepSnapshot, utcnow


@dataclass(frozen=True)
class BakeLogPatch:
    """Partial update for a bake log.

    Each field travels with a presence flag, so "set to NULL" and
    "leave alone" stay distinct.
    """
    status: Optional[str] = None
    has_status: bool = False
    bake_end_timestamp: Optional[datetime] = None
    has_bake_end_timestamp: bool = False
    user_overall_notes: Optional[str] = None
    has_user_overall_notes: bool = False

    def with_status(self, status: str) -> "BakeLogPatch":
        return replace(self, status=status, has_status=True)

    def with_end_timestamp(self, value: Optional[datetime]) -> "BakeLogPatch":
        return replace(self, bake_end_timestamp=value, has_bake_end_timestamp=True)

    def with_notes(self, notes: Optional[str]) -> "BakeLogPatch":
        return replace(self, user_overall_notes=notes, has_user_overall_notes=True)

    @property
    def is_empty(self) -> bool:
        return not (self.has_status or self.has_bake_end_timestamp or self.has_user_overall_notes)

    def assignments(self) -> dict[str, Any]:
        """Column assignments for the fields that are present."""
        values: dict[str, Any] = {}
        if self.has_status:
            values["status"] = self.status
        if self.has_bake_end_timestamp:
            values["bake_end_timestamp"] = self.bake_end_timestamp
        if self.has_user_overall_notes:
            values["user_overall_notes"] = self.user_overall_notes
        return values


class BakeLogStore:
    def __init__(self, db: Session):
        self.db = db

    def insert(self, *, user_id: int, recipe_id: str, started_at: datetime) -> BakeLog:
        bake = BakeLog(
            user_id=user_id,
            recipe_id=recipe_id,
            status="active",
            bake_start_timestamp=started_at,
            updated_at=started_at,
        )
        self.db.add(bake)
        self.db.flush()
        return bake

    def find_by_id(self, bake_log_id: str, user_id: int) -> Optional[BakeLog]:
        if not is_valid_id(bake_log_id):
            return None
        return self.db.scalar(
            select(BakeLog)
            .options(joinedload(BakeLog.recipe))
            .where(BakeLog.id == bake_log_id, BakeLog.user_id == user_id)
            .execution_options(populate_existing=True)
        )

    def list_by_user(self, user_id: int, statuses: Optional[Sequence[str]] = None) -> list[BakeLog]:
        stmt = (
            select(BakeLog)
            .options(joinedload(BakeLog.recipe))
            .where(BakeLog.user_id == user_id)
        )
        if statuses:
            stmt = stmt.where(BakeLog.status.in_(statuses))
        stmt = stmt.order_by(BakeLog.bake_start_timestamp.desc())
        return list(self.db.scalars(stmt))

    def apply_patch(
        self,
        bake_log_id: str,
        user_id: int,
        patch: BakeLogPatch,
        *,
        only_statuses: Optional[Sequence[str]] = None,
    ) -> Optional[BakeLog]:
        """Write the patch in one UPDATE and return the fresh row.

        `only_statuses` turns the write into a compare-and-swap on status.
        Returns None when no row matched.
        """
        if patch.is_empty:
            return self.find_by_id(bake_log_id, user_id)

        stmt = (
            update(BakeLog)
            .where(BakeLog.id == bake_log_id, BakeLog.user_id == user_id)
            .values(**patch.assignments(), updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        if only_statuses:
            stmt = stmt.where(BakeLog.status.in_(only_statuses))

        result = self.db.execute(stmt)
        if result.rowcount == 0:
            return None
        return self.find_by_id(bake_log_id, user_id)

    def update_status(
        self,
        bake_log_id: str,
        user_id: int,
        status: str,
        end_timestamp: Optional[datetime],
        *,
        only_statuses: Optional[Sequence[str]] = None,
    ) -> Optional[BakeLog]:
        patch = BakeLogPatch().with_status(status).with_end_timestamp(end_timestamp)
        return self.apply_patch(bake_log_id, user_id, patch, only_statuses=only_statuses)


class BakeStepLogStore:
    def __init__(self, db: Session):
        self.db = db

    def insert(self, bake_log_id: str, recipe_step: RecipeStep, *, started_at: datetime) -> BakeStepLog:
        """Open a step log, freezing the recipe step's name, order and duration."""
        step_log = BakeStepLog(
            bake_log_id=bake_log_id,
            recipe_step_id=recipe_step.id,
            snapshot=StepSnapshot(
                step_order=recipe_step.step_order,
                step_name=recipe_step.step.step_name,
                planned_duration_minutes=recipe_step.planned_duration_minutes,
            ),
            actual_start_timestamp=started_at,
            updated_at=started_at,
        )
        self.db.add(step_log)
        self.db.flush()
        return step_log

    def close(
        self,
        step_log_id: str,
        bake_log_id: str,
        *,
        notes: Optional[str],
        ended_at: datetime,
    ) -> bool:
        """Set the end timestamp and notes only if the step is still open.

        Returns False when another request closed it first.
        """
        result = self.db.execute(
            update(BakeStepLog)
            .where(
                BakeStepLog.id == step_log_id,
                BakeStepLog.bake_log_id == bake_log_id,
                BakeStepLog.actual_end_timestamp.is_(None),
            )
            .values(actual_end_timestamp=ended_at, user_step_notes=notes, updated_at=ended_at)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount == 1

    def find_for_user(
        self, step_log_id: str, bake_log_id: str, user_id: int
    ) -> Optional[tuple[BakeStepLog, BakeLog]]:
        row = self.db.execute(
            select(BakeStepLog, BakeLog)
            .join(BakeLog, BakeLog.id == BakeStepLog.bake_log_id)
            .where(
                BakeStepLog.id == step_log_id,
                BakeLog.id == bake_log_id,
                BakeLog.user_id == user_id,
            )
            .execution_options(populate_existing=True)
        ).first()
        if row is None:
            return None
        return row[0], row[1]

    def find_open_step(self, bake_log_id: str) -> Optional[BakeStepLog]:
        return self.db.scalar(
            select(BakeStepLog)
            .options(
                selectinload(BakeStepLog.recipe_step).selectinload(RecipeStep.stage_ingredients)
            )
            .where(
                BakeStepLog.bake_log_id == bake_log_id,
                BakeStepLog.actual_end_timestamp.is_(None),
            )
            .order_by(BakeStepLog.step_order.asc())
            .limit(1)
        )

    def list_for_bake(self, bake_log_id: str) -> list[BakeStepLog]:
        return list(self.db.scalars(
            select(BakeStepLog)
            .where(BakeStepLog.bake_log_id == bake_log_id)
            .order_by(BakeStepLog.step_order.asc())
        ))
