from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.dependencies import get_current_user
from ..auth.models import CurrentUser
from ..db import get_db
from ..schemas import IngredientOut
from ..services.recipe_catalog import list_ingredients

router = APIRouter(tags=["ingredients"])


@router.get("/ingredients", response_model=list[IngredientOut])
def get_ingredients(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return list_ingredients(db)
