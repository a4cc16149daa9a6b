"""Guided bake state machine.

Statuses: active <-> paused, and either of them -> completed | abandoned.
Finished bakes (completed, abandoned) never change status again.

Every command runs as one unit of work: all of its writes commit together
or none do.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.ids import is_valid_id
from ..db import unit_of_work
from ..errors import Conflict, InvalidInput, InvalidState, NotFound
from ..models import (
    BAKE_STATUSES,
    OPEN_STATUSES,
    TERMINAL_STATUSES,
    BakeLog,
    BakeStepLog,
    RecipeStep,
    utcnow,
)
from ..schemas import (
    ActiveBake,
    BakeDetail,
    BakeSummary,
    CompleteStepResponse,
    HistoryStep,
    StartBakeResponse,
    StatusUpdateResponse,
    StepDetails,
)
from .bake_store import BakeLogPatch, BakeLogStore, BakeStepLogStore
from .recipe_reader import RecipeSnapshotReader, recipe_to_out, stage_ingredients_out

logger = logging.getLogger("sourdough.bakes")


def step_details(step_log: BakeStepLog, recipe_step: Optional[RecipeStep]) -> StepDetails:
    """Merge a step log's frozen snapshot with the live recipe step definition."""
    snapshot = step_log.snapshot
    details = StepDetails(
        bake_step_log_id=step_log.id,
        recipe_step_id=step_log.recipe_step_id,
        step_id=None,
        step_name=snapshot.step_name,
        step_order=snapshot.step_order,
        planned_duration_minutes=snapshot.planned_duration_minutes,
        actual_start_timestamp=step_log.actual_start_timestamp,
        user_step_notes=step_log.user_step_notes,
    )
    if recipe_step is None:
        return details

    return details.model_copy(update={
        "step_id": recipe_step.step_id,
        "duration_override": recipe_step.duration_override,
        "notes": recipe_step.notes,
        "description": recipe_step.step.description,
        "target_temperature_celsius": recipe_step.target_temperature_celsius,
        "stretch_fold_interval_minutes": recipe_step.stretch_fold_interval_minutes,
        "number_of_sf_sets": recipe_step.number_of_sf_sets,
        "stage_ingredients": stage_ingredients_out(recipe_step),
    })


def history_step(step_log: BakeStepLog) -> HistoryStep:
    return HistoryStep(
        bake_step_log_id=step_log.id,
        recipe_step_id=step_log.recipe_step_id,
        step_name=step_log.step_name,
        step_order=step_log.step_order,
        planned_duration_minutes=step_log.planned_duration_minutes,
        actual_start_timestamp=step_log.actual_start_timestamp,
        actual_end_timestamp=step_log.actual_end_timestamp,
        user_step_notes=step_log.user_step_notes,
    )


def bake_summary(bake: BakeLog) -> BakeSummary:
    return BakeSummary(
        bake_log_id=bake.id,
        recipe_id=bake.recipe_id,
        recipe_name=bake.recipe.recipe_name,
        status=bake.status,
        bake_start_timestamp=bake.bake_start_timestamp,
        bake_end_timestamp=bake.bake_end_timestamp,
        user_overall_notes=bake.user_overall_notes,
    )


class BakeSessionOrchestrator:
    def __init__(self, db: Session):
        self.db = db
        self.recipes = RecipeSnapshotReader(db)
        self.bakes = BakeLogStore(db)
        self.step_logs = BakeStepLogStore(db)

    # --- Commands ---

    def start(self, user_id: int, recipe_id: str) -> StartBakeResponse:
        """Open a bake on the recipe's first step."""
        if not is_valid_id(recipe_id):
            raise InvalidInput("Valid Recipe ID is required.")

        with unit_of_work(self.db):
            recipe, first_step = self.recipes.first_step(recipe_id, user_id)
            now = utcnow()
            bake = self.bakes.insert(user_id=user_id, recipe_id=recipe.id, started_at=now)
            step_log = self.step_logs.insert(bake.id, first_step, started_at=now)

            response = StartBakeResponse(
                message="Bake session started.",
                bake_log_id=bake.id,
                current_bake_step_log_id=step_log.id,
                first_step_details=step_details(step_log, first_step),
                bake_start_timestamp=bake.bake_start_timestamp,
                recipe_name=recipe.recipe_name,
                status=bake.status,
            )

        logger.info(
            f"User {user_id} started bake {response.bake_log_id} for recipe "
            f"'{response.recipe_name}', first step log {response.current_bake_step_log_id}"
        )
        return response

    def complete_current_step(
        self,
        user_id: int,
        bake_log_id: str,
        step_log_id: str,
        notes: Optional[str] = None,
    ) -> CompleteStepResponse:
        """Close the open step and open the next one, or finish the bake."""
        if not (is_valid_id(bake_log_id) and is_valid_id(step_log_id)):
            raise InvalidInput("Valid bakeLogId and currentBakeStepLogId required.")

        with unit_of_work(self.db):
            found = self.step_logs.find_for_user(step_log_id, bake_log_id, user_id)
            if found is None:
                raise NotFound("Active bake or step log not found for current user.")
            step_log, bake = found

            if bake.status != "active":
                raise InvalidState(f"Cannot complete step: bake status is '{bake.status}'.")
            if step_log.actual_end_timestamp is not None:
                raise Conflict("Step already completed.")

            now = utcnow()
            completed_order = step_log.step_order
            if not self.step_logs.close(step_log_id, bake_log_id, notes=notes or None, ended_at=now):
                raise Conflict("Step already completed or not found.")

            next_step = self.recipes.step_after(bake.recipe_id, completed_order)
            if next_step is not None:
                next_log = self.step_logs.insert(bake_log_id, next_step, started_at=now)
                response = CompleteStepResponse(
                    message="Step completed, next initiated.",
                    bake_log_id=bake_log_id,
                    current_step_details=step_details(next_log, next_step),
                )
            else:
                finished = self.bakes.update_status(
                    bake_log_id, user_id, "completed", now, only_statuses=("active",)
                )
                if finished is None:
                    raise Conflict("Bake status changed while completing the final step.")
                response = CompleteStepResponse(
                    message="Final step completed. Bake finished!",
                    bake_log_id=bake_log_id,
                    current_step_details=None,
                )

        if response.current_step_details is None:
            logger.info(f"Bake {bake_log_id} completed (all steps done)")
        else:
            logger.info(
                f"Bake {bake_log_id}: step log {step_log_id} closed, "
                f"step log {response.current_step_details.bake_step_log_id} opened"
            )
        return response

    def set_status(self, user_id: int, bake_log_id: str, status: str) -> StatusUpdateResponse:
        """Move a bake between statuses.

        Finishing (completed/abandoned) stamps the end time; pausing or resuming
        clears it. Finished bakes reject any further change.
        """
        if not is_valid_id(bake_log_id):
            raise InvalidInput("Valid bakeLogId required.")
        if status not in BAKE_STATUSES:
            raise InvalidInput(f"Invalid status. Use: {', '.join(BAKE_STATUSES)}")

        end_timestamp = utcnow() if status in TERMINAL_STATUSES else None

        with unit_of_work(self.db):
            bake = self.bakes.update_status(
                bake_log_id, user_id, status, end_timestamp, only_statuses=OPEN_STATUSES
            )
            if bake is None:
                existing = self.bakes.find_by_id(bake_log_id, user_id)
                if existing is None:
                    raise NotFound("Bake session not found or not authorized to update.")
                raise InvalidState(
                    f"Bake is already '{existing.status}'; finished bakes cannot change status."
                )
            response = StatusUpdateResponse(
                message="Bake status updated.",
                new_status=bake.status,
                bake_end_timestamp=bake.bake_end_timestamp,
            )

        logger.info(f"Bake {bake_log_id} status updated to {response.new_status}")
        return response

    def update_notes(self, user_id: int, bake_log_id: str, notes: Optional[str]) -> BakeSummary:
        if not is_valid_id(bake_log_id):
            raise InvalidInput("Valid bakeLogId required.")

        with unit_of_work(self.db):
            bake = self.bakes.apply_patch(bake_log_id, user_id, BakeLogPatch().with_notes(notes))
            if bake is None:
                raise NotFound("Bake session not found or not authorized to update.")
            summary = bake_summary(bake)

        logger.info(f"Bake {bake_log_id} overall notes updated")
        return summary

    # --- Queries ---

    def get_active(self, user_id: int) -> list[ActiveBake]:
        """Active and paused bakes, newest first, each with its open step."""
        result = []
        for bake in self.bakes.list_by_user(user_id, OPEN_STATUSES):
            open_step = self.step_logs.find_open_step(bake.id)
            current = step_details(open_step, open_step.recipe_step) if open_step else None
            result.append(ActiveBake(
                **bake_summary(bake).model_dump(),
                current_step_details=current,
            ))
        logger.info(f"Found {len(result)} active/paused bake(s) for user {user_id}")
        return result

    def list_history(self, user_id: int) -> list[BakeSummary]:
        return [bake_summary(b) for b in self.bakes.list_by_user(user_id)]

    def get_history_detail(self, user_id: int, bake_log_id: str) -> BakeDetail:
        if not is_valid_id(bake_log_id):
            raise InvalidInput("Valid Bake Log ID is required.")

        bake = self.bakes.find_by_id(bake_log_id, user_id)
        if bake is None:
            raise NotFound("Bake log not found or not authorized.")

        step_logs = self.step_logs.list_for_bake(bake.id)
        open_step = next((s for s in step_logs if s.actual_end_timestamp is None), None)
        current = None
        if open_step is not None:
            current = step_details(open_step, self.recipes.get_step(open_step.recipe_step_id))

        recipe = self.recipes.full_recipe(bake.recipe_id, user_id)
        return BakeDetail(
            **bake_summary(bake).model_dump(),
            current_step_details=current,
            history_step_details=[history_step(s) for s in step_logs],
            recipe=recipe_to_out(recipe) if recipe else None,
        )
