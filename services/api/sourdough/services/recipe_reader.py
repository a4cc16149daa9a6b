"""Read-only access to recipe definitions for bakes and recipe routes.

A recipe is visible to a user when the user owns it, or when it is a base
template without an owner.
"""

from typing import Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session, selectinload

from ..core.ids import is_valid_id
from ..errors import InvalidInput, NotFound
from ..models import Recipe, RecipeStep
from ..schemas import RecipeOut, RecipeStepOut, StageIngredientOut


def _visible_to(user_id: Optional[int]):
    template = and_(Recipe.is_base_recipe.is_(True), Recipe.user_id.is_(None))
    if user_id is None:
        return template
    return or_(Recipe.user_id == user_id, template)


def _with_ingredients(stmt):
    return stmt.options(selectinload(RecipeStep.stage_ingredients))


def _with_steps(stmt):
    return stmt.options(
        selectinload(Recipe.steps).selectinload(RecipeStep.stage_ingredients)
    )


class RecipeSnapshotReader:
    def __init__(self, db: Session):
        self.db = db

    def find_recipe(self, recipe_id: str, user_id: Optional[int]) -> Optional[Recipe]:
        if not is_valid_id(recipe_id):
            return None
        return self.db.scalar(
            select(Recipe).where(Recipe.id == recipe_id, _visible_to(user_id))
        )

    def first_step(self, recipe_id: str, user_id: int) -> tuple[Recipe, RecipeStep]:
        """Return the recipe and its lowest-order step.

        Raises NotFound when the recipe is missing or not visible, and
        InvalidInput when it has no steps.
        """
        recipe = self.find_recipe(recipe_id, user_id)
        if recipe is None:
            raise NotFound("Recipe not found or not accessible.")

        step = self.db.scalar(
            _with_ingredients(
                select(RecipeStep)
                .where(RecipeStep.recipe_id == recipe.id)
                .order_by(RecipeStep.step_order.asc())
                .limit(1)
            )
        )
        if step is None:
            raise InvalidInput("Recipe has no steps.")
        return recipe, step

    def step_after(self, recipe_id: str, order: int) -> Optional[RecipeStep]:
        """Smallest-order step strictly after `order`, or None at the end of the recipe."""
        return self.db.scalar(
            _with_ingredients(
                select(RecipeStep)
                .where(RecipeStep.recipe_id == recipe_id, RecipeStep.step_order > order)
                .order_by(RecipeStep.step_order.asc())
                .limit(1)
            )
        )

    def get_step(self, recipe_step_id: Optional[str]) -> Optional[RecipeStep]:
        if recipe_step_id is None:
            return None
        return self.db.scalar(
            _with_ingredients(select(RecipeStep).where(RecipeStep.id == recipe_step_id))
        )

    def full_recipe(self, recipe_id: str, user_id: Optional[int]) -> Optional[Recipe]:
        if not is_valid_id(recipe_id):
            return None
        return self.db.scalar(
            _with_steps(select(Recipe).where(Recipe.id == recipe_id, _visible_to(user_id)))
        )

    def list_templates(self) -> list[Recipe]:
        return list(self.db.scalars(
            _with_steps(
                select(Recipe)
                .where(_visible_to(None))
                .order_by(Recipe.recipe_name.asc())
            )
        ))

    def list_for_user(self, user_id: int) -> list[Recipe]:
        return list(self.db.scalars(
            _with_steps(
                select(Recipe)
                .where(Recipe.user_id == user_id)
                .order_by(Recipe.created_at.desc())
            )
        ))


# --- Conversions ---

def stage_ingredients_out(step: Optional[RecipeStep]) -> list[StageIngredientOut]:
    if step is None:
        return []
    return [
        StageIngredientOut(
            stage_ingredient_id=si.id,
            ingredient_id=si.ingredient_id,
            ingredient_name=si.ingredient.ingredient_name,
            percentage=si.percentage,
            is_wet=si.is_wet,
            calculated_weight=si.calculated_weight,
        )
        for si in step.stage_ingredients
    ]


def recipe_step_to_out(step: RecipeStep) -> RecipeStepOut:
    return RecipeStepOut(
        recipe_step_id=step.id,
        step_id=step.step_id,
        step_name=step.step.step_name,
        step_type=step.step.step_type,
        step_general_description=step.step.description,
        step_default_duration_minutes=step.step.duration_minutes,
        step_order=step.step_order,
        duration_override=step.duration_override,
        notes=step.notes,
        target_temperature_celsius=step.target_temperature_celsius,
        contribution_pct=step.contribution_pct,
        target_hydration=step.target_hydration,
        stretch_fold_interval_minutes=step.stretch_fold_interval_minutes,
        number_of_sf_sets=step.number_of_sf_sets,
        stage_ingredients=stage_ingredients_out(step),
    )


def recipe_to_out(recipe: Recipe) -> RecipeOut:
    return RecipeOut(
        recipe_id=recipe.id,
        user_id=recipe.user_id,
        recipe_name=recipe.recipe_name,
        description=recipe.description,
        target_dough_weight=recipe.target_weight,
        hydration_percentage=recipe.target_hydration,
        salt_percentage=recipe.target_salt_pct,
        is_base_recipe=recipe.is_base_recipe,
        created_at=recipe.created_at,
        updated_at=recipe.updated_at,
        steps=[recipe_step_to_out(s) for s in recipe.steps],
    )
