"""Recipe and catalogue writes: create and delete recipes, list catalogues."""

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..core.ids import is_valid_id
from ..db import unit_of_work
from ..errors import Conflict, Forbidden, InvalidInput, NotFound
from ..models import BakeLog, Ingredient, Recipe, RecipeStep, StageIngredient, Step
from ..schemas import IngredientOut, PredefinedStepOut, RecipeCreate, RecipeOut
from .recipe_reader import RecipeSnapshotReader, recipe_to_out

logger = logging.getLogger("sourdough.recipes")


def list_ingredients(db: Session) -> list[IngredientOut]:
    rows = db.scalars(select(Ingredient).order_by(Ingredient.ingredient_name.asc()))
    return [
        IngredientOut(ingredient_id=i.id, ingredient_name=i.ingredient_name, is_wet=i.is_wet)
        for i in rows
    ]


def list_predefined_steps(db: Session) -> list[PredefinedStepOut]:
    rows = db.scalars(
        select(Step).where(Step.is_predefined.is_(True)).order_by(Step.id.asc())
    )
    return [
        PredefinedStepOut(
            step_id=s.id,
            step_name=s.step_name,
            description=s.description,
            step_type=s.step_type,
            default_duration_minutes=s.duration_minutes,
        )
        for s in rows
    ]


def _missing_ids(db: Session, model, ids: set[int]) -> set[int]:
    if not ids:
        return set()
    found = set(db.scalars(select(model.id).where(model.id.in_(ids))))
    return ids - found


def create_recipe(db: Session, user_id: int, payload: RecipeCreate) -> RecipeOut:
    """Insert a user-owned recipe with its steps and stage ingredients."""
    step_ids = {s.step_id for s in payload.steps}
    ingredient_ids = {si.ingredient_id for s in payload.steps for si in s.stage_ingredients}

    missing_steps = _missing_ids(db, Step, step_ids)
    if missing_steps:
        raise InvalidInput(f"Unknown step id(s): {sorted(missing_steps)}")
    missing_ingredients = _missing_ids(db, Ingredient, ingredient_ids)
    if missing_ingredients:
        raise InvalidInput(f"Unknown ingredient id(s): {sorted(missing_ingredients)}")

    with unit_of_work(db):
        recipe = Recipe(
            user_id=user_id,
            recipe_name=payload.recipe_name.strip(),
            description=payload.description,
            target_weight=payload.target_dough_weight,
            target_hydration=payload.hydration_percentage,
            target_salt_pct=payload.salt_percentage,
            is_base_recipe=False,
        )
        for step_data in sorted(payload.steps, key=lambda s: s.step_order):
            recipe.steps.append(RecipeStep(
                step_id=step_data.step_id,
                step_order=step_data.step_order,
                duration_override=step_data.duration_override,
                notes=step_data.notes,
                target_temperature_celsius=step_data.target_temperature_celsius,
                contribution_pct=step_data.contribution_pct,
                target_hydration=step_data.target_hydration,
                stretch_fold_interval_minutes=step_data.stretch_fold_interval_minutes,
                number_of_sf_sets=step_data.number_of_sf_sets,
                stage_ingredients=[
                    StageIngredient(
                        ingredient_id=si.ingredient_id,
                        percentage=si.percentage,
                        is_wet=si.is_wet,
                    )
                    for si in step_data.stage_ingredients
                ],
            ))
        db.add(recipe)
        db.flush()
        recipe_id = recipe.id

    created = RecipeSnapshotReader(db).full_recipe(recipe_id, user_id)
    logger.info(f"User {user_id} created recipe {recipe_id} with {len(created.steps)} step(s)")
    return recipe_to_out(created)


def delete_recipe(db: Session, user_id: int, recipe_id: str) -> str:
    """Delete a recipe owned by the user and return its name.

    Recipes that bakes still reference cannot be deleted.
    """
    if not is_valid_id(recipe_id):
        raise InvalidInput("Invalid recipe ID format.")

    with unit_of_work(db):
        recipe = db.get(Recipe, recipe_id)
        if recipe is None:
            raise NotFound("Recipe not found.")
        if recipe.user_id != user_id:
            raise Forbidden("Not authorized to delete this recipe.")

        bake_count = db.scalar(
            select(func.count()).select_from(BakeLog).where(BakeLog.recipe_id == recipe_id)
        )
        if bake_count:
            raise Conflict(f"Recipe is used by {bake_count} bake(s) and cannot be deleted.")

        name = recipe.recipe_name
        db.delete(recipe)

    logger.info(f"User {user_id} deleted recipe {recipe_id}")
    return name
