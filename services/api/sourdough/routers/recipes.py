"""Recipe API router.

Endpoints:
- GET /recipes/templates - Base templates (public)
- GET /recipes/steps - Predefined step catalogue
- GET /recipes - Caller's own recipes
- GET /recipes/{id} - One recipe visible to the caller
- POST /recipes - Create a recipe
- DELETE /recipes/{id} - Delete an unused recipe
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.dependencies import get_current_user
from ..auth.models import CurrentUser
from ..core.ids import is_valid_id
from ..db import get_db
from ..errors import InvalidInput, NotFound
from ..schemas import (
    MessageResponse,
    PredefinedStepOut,
    RecipeCreate,
    RecipeCreatedResponse,
    RecipeOut,
)
from ..services import recipe_catalog
from ..services.recipe_reader import RecipeSnapshotReader, recipe_to_out

router = APIRouter(prefix="/recipes", tags=["recipes"])


@router.get("/templates", response_model=list[RecipeOut])
def list_recipe_templates(db: Session = Depends(get_db)):
    return [recipe_to_out(r) for r in RecipeSnapshotReader(db).list_templates()]


@router.get("/steps", response_model=list[PredefinedStepOut])
def list_predefined_steps(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return recipe_catalog.list_predefined_steps(db)


@router.get("", response_model=list[RecipeOut])
def list_my_recipes(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return [recipe_to_out(r) for r in RecipeSnapshotReader(db).list_for_user(user.user_id)]


@router.get("/{recipe_id}", response_model=RecipeOut)
def get_recipe(
    recipe_id: str,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    if not is_valid_id(recipe_id):
        raise InvalidInput("Invalid recipe ID format.")
    recipe = RecipeSnapshotReader(db).full_recipe(recipe_id, user.user_id)
    if recipe is None:
        raise NotFound("Recipe not found or not authorized.")
    return recipe_to_out(recipe)


@router.post("", response_model=RecipeCreatedResponse, status_code=201)
def create_recipe(
    payload: RecipeCreate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    recipe = recipe_catalog.create_recipe(db, user.user_id, payload)
    return RecipeCreatedResponse(message="Recipe created successfully!", recipe=recipe)


@router.delete("/{recipe_id}", response_model=MessageResponse)
def delete_recipe(
    recipe_id: str,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    name = recipe_catalog.delete_recipe(db, user.user_id, recipe_id)
    return MessageResponse(message=f'Recipe "{name}" deleted successfully.')
