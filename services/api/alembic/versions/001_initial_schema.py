"""Initial schema: users, catalogues, recipes, bake logs

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(150), unique=True, nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # Catalogues
    op.create_table(
        "ingredients",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("ingredient_name", sa.String(120), unique=True, nullable=False),
        sa.Column("is_wet", sa.Boolean, nullable=False, server_default=sa.false()),
    )
    op.create_table(
        "steps",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("step_name", sa.String(120), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("step_type", sa.String(50), nullable=True),
        sa.Column("duration_minutes", sa.Integer, nullable=True),
        sa.Column("is_predefined", sa.Boolean, nullable=False, server_default=sa.true()),
    )

    # Recipes
    op.create_table(
        "recipes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=True),
        sa.Column("recipe_name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("target_weight", sa.Float, nullable=True),
        sa.Column("target_hydration", sa.Float, nullable=True),
        sa.Column("target_salt_pct", sa.Float, nullable=True),
        sa.Column("is_base_recipe", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_recipes_user_id", "recipes", ["user_id"])

    op.create_table(
        "recipe_steps",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("recipe_id", sa.String(36), sa.ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("step_id", sa.Integer, sa.ForeignKey("steps.id"), nullable=False),
        sa.Column("step_order", sa.Integer, nullable=False),
        sa.Column("duration_override", sa.Integer, nullable=True),
        sa.Column("target_temperature_celsius", sa.Float, nullable=True),
        sa.Column("stretch_fold_interval_minutes", sa.Integer, nullable=True),
        sa.Column("number_of_sf_sets", sa.Integer, nullable=True),
        sa.Column("contribution_pct", sa.Float, nullable=True),
        sa.Column("target_hydration", sa.Float, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.UniqueConstraint("recipe_id", "step_order", name="uq_recipe_step_order"),
    )
    op.create_index("ix_recipe_steps_recipe_id", "recipe_steps", ["recipe_id"])

    op.create_table(
        "stage_ingredients",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("recipe_step_id", sa.String(36), sa.ForeignKey("recipe_steps.id", ondelete="CASCADE"), nullable=False),
        sa.Column("ingredient_id", sa.Integer, sa.ForeignKey("ingredients.id"), nullable=False),
        sa.Column("percentage", sa.Float, nullable=False),
        sa.Column("is_wet", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("calculated_weight", sa.Float, nullable=True),
    )
    op.create_index("ix_stage_ingredients_recipe_step_id", "stage_ingredients", ["recipe_step_id"])

    # Bakes
    op.create_table(
        "bake_logs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("recipe_id", sa.String(36), sa.ForeignKey("recipes.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("bake_start_timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("bake_end_timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.Column("user_overall_notes", sa.Text, nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        "ix_bake_logs_user_status_started", "bake_logs", ["user_id", "status", "bake_start_timestamp"]
    )

    op.create_table(
        "bake_step_logs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("bake_log_id", sa.String(36), sa.ForeignKey("bake_logs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("recipe_step_id", sa.String(36), sa.ForeignKey("recipe_steps.id", ondelete="SET NULL"), nullable=True),
        sa.Column("step_order", sa.Integer, nullable=False),
        sa.Column("step_name", sa.String(120), nullable=False),
        sa.Column("planned_duration_minutes", sa.Integer, nullable=True),
        sa.Column("actual_start_timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("actual_end_timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.Column("user_step_notes", sa.Text, nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_bake_step_logs_bake_log_id", "bake_step_logs", ["bake_log_id"])
    # At most one open step per bake
    op.create_index(
        "uq_bake_step_logs_one_open",
        "bake_step_logs",
        ["bake_log_id"],
        unique=True,
        postgresql_where=sa.text("actual_end_timestamp IS NULL"),
    )


def downgrade() -> None:
    op.drop_index("uq_bake_step_logs_one_open", table_name="bake_step_logs")
    op.drop_index("ix_bake_step_logs_bake_log_id", table_name="bake_step_logs")
    op.drop_table("bake_step_logs")
    op.drop_index("ix_bake_logs_user_status_started", table_name="bake_logs")
    op.drop_table("bake_logs")
    op.drop_index("ix_stage_ingredients_recipe_step_id", table_name="stage_ingredients")
    op.drop_table("stage_ingredients")
    op.drop_index("ix_recipe_steps_recipe_id", table_name="recipe_steps")
    op.drop_table("recipe_steps")
    op.drop_index("ix_recipes_user_id", table_name="recipes")
    op.drop_table("recipes")
    op.drop_table("steps")
    op.drop_table("ingredients")
    op.drop_table("users")
