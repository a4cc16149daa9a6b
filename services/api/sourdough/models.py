"""SQLAlchemy ORM models for the sourdough planner.

Tables:
- users: Owners of recipes and bakes (identity is issued elsewhere)
- ingredients / steps: Shared catalogues used to build recipes
- recipes, recipe_steps, stage_ingredients: Recipe definitions (read-only to bakes)
- bake_logs: One row per guided bake run
- bake_step_logs: Execution record for each recipe step within a bake
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, composite, mapped_column, relationship
from sqlalchemy.sql import func, text

from .db import Base


def generate_uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


BAKE_STATUSES = ("active", "paused", "completed", "abandoned")
OPEN_STATUSES = ("active", "paused")
TERMINAL_STATUSES = ("completed", "abandoned")


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(150), unique=True, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class Ingredient(Base):
    """Catalogue ingredient (flour, water, salt, levain...)."""
    __tablename__ = "ingredients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ingredient_name: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    is_wet: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class Step(Base):
    """Reusable step definition (Levain Build, Autolyse, Bulk Ferment...)."""
    __tablename__ = "steps"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    step_name: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    step_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    duration_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_predefined: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Recipe(Base):
    """Recipe owned by a user, or a base template when user_id is NULL."""
    __tablename__ = "recipes"
    __table_args__ = (
        Index("ix_recipes_user_id", "user_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=True
    )
    recipe_name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Bakers' percentage targets, stored as supplied by the client
    target_weight: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    target_hydration: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    target_salt_pct: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    is_base_recipe: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    steps: Mapped[list["RecipeStep"]] = relationship(
        "RecipeStep", back_populates="recipe", cascade="all, delete-orphan",
        order_by="RecipeStep.step_order"
    )


class RecipeStep(Base):
    """A step definition placed at a given order within a recipe.

    Orders are unique per recipe but need not be contiguous.
    """
    __tablename__ = "recipe_steps"
    __table_args__ = (
        UniqueConstraint("recipe_id", "step_order", name="uq_recipe_step_order"),
        Index("ix_recipe_steps_recipe_id", "recipe_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    recipe_id: Mapped[str] = mapped_column(
        ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False
    )
    step_id: Mapped[int] = mapped_column(ForeignKey("steps.id"), nullable=False)
    step_order: Mapped[int] = mapped_column(Integer, nullable=False)

    # Overrides of the step definition
    duration_override: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    target_temperature_celsius: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    stretch_fold_interval_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    number_of_sf_sets: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    contribution_pct: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    target_hydration: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    recipe: Mapped["Recipe"] = relationship("Recipe", back_populates="steps")
    step: Mapped["Step"] = relationship("Step", lazy="joined")
    stage_ingredients: Mapped[list["StageIngredient"]] = relationship(
        "StageIngredient", back_populates="recipe_step", cascade="all, delete-orphan",
        order_by="StageIngredient.id"
    )

    @property
    def planned_duration_minutes(self) -> Optional[int]:
        if self.duration_override is not None:
            return self.duration_override
        return self.step.duration_minutes if self.step else None


class StageIngredient(Base):
    """Ingredient used in one recipe step, expressed as a bakers' percentage."""
    __tablename__ = "stage_ingredients"
    __table_args__ = (
        Index("ix_stage_ingredients_recipe_step_id", "recipe_step_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recipe_step_id: Mapped[str] = mapped_column(
        ForeignKey("recipe_steps.id", ondelete="CASCADE"), nullable=False
    )
    ingredient_id: Mapped[int] = mapped_column(ForeignKey("ingredients.id"), nullable=False)
    percentage: Mapped[float] = mapped_column(Float, nullable=False)
    is_wet: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    calculated_weight: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    recipe_step: Mapped["RecipeStep"] = relationship("RecipeStep", back_populates="stage_ingredients")
    ingredient: Mapped["Ingredient"] = relationship("Ingredient", lazy="joined")


@dataclass
class StepSnapshot:
    """Recipe step fields frozen into a step log when the step begins."""
    step_order: int
    step_name: str
    planned_duration_minutes: Optional[int]


class BakeLog(Base):
    """One guided bake run of a recipe by its owner."""
    __tablename__ = "bake_logs"
    __table_args__ = (
        Index("ix_bake_logs_user_status_started", "user_id", "status", "bake_start_timestamp"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    recipe_id: Mapped[str] = mapped_column(ForeignKey("recipes.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    bake_start_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    bake_end_timestamp: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    user_overall_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    recipe: Mapped["Recipe"] = relationship("Recipe")
    step_logs: Mapped[list["BakeStepLog"]] = relationship(
        "BakeStepLog", back_populates="bake_log", cascade="all, delete-orphan",
        order_by="BakeStepLog.step_order"
    )


class BakeStepLog(Base):
    """Execution of one recipe step within a bake.

    At most one row per bake has a NULL actual_end_timestamp: the current step.
    """
    __tablename__ = "bake_step_logs"
    __table_args__ = (
        Index("ix_bake_step_logs_bake_log_id", "bake_log_id"),
        Index(
            "uq_bake_step_logs_one_open", "bake_log_id", unique=True,
            postgresql_where=text("actual_end_timestamp IS NULL"),
            sqlite_where=text("actual_end_timestamp IS NULL"),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    bake_log_id: Mapped[str] = mapped_column(
        ForeignKey("bake_logs.id", ondelete="CASCADE"), nullable=False
    )
    recipe_step_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("recipe_steps.id", ondelete="SET NULL"), nullable=True
    )

    step_order: Mapped[int] = mapped_column(Integer, nullable=False)
    step_name: Mapped[str] = mapped_column(String(120), nullable=False)
    planned_duration_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    snapshot: Mapped[StepSnapshot] = composite("step_order", "step_name", "planned_duration_minutes")

    actual_start_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    actual_end_timestamp: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    user_step_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    bake_log: Mapped["BakeLog"] = relationship("BakeLog", back_populates="step_logs")
    recipe_step: Mapped[Optional["RecipeStep"]] = relationship("RecipeStep")
