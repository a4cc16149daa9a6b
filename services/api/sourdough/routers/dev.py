"""Dev-only endpoints for seeding local data.

Endpoints:
- POST /api/dev/seed - Create a demo baker, catalogues and a base template
"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth.tokens import create_access_token
from ..db import get_db, unit_of_work
from ..errors import Forbidden
from ..models import Ingredient, Recipe, RecipeStep, StageIngredient, Step, User
from ..schemas import SeedResponse

router = APIRouter()
logger = logging.getLogger("sourdough.dev")

DEMO_USERNAME = "demo_baker"

SEED_INGREDIENTS = [
    ("Bread Flour", False),
    ("Whole Wheat Flour", False),
    ("Rye Flour", False),
    ("Water", True),
    ("Salt", False),
    ("Sourdough Starter", True),
]

SEED_STEPS = [
    {"step_name": "Levain Build", "step_type": "Levain",
     "description": "Mix starter, flour and water; leave until bubbly and peaked.", "duration_minutes": 240},
    {"step_name": "Autolyse", "step_type": "Rest",
     "description": "Mix flour and water only and let the dough rest.", "duration_minutes": 60},
    {"step_name": "Mix Final Dough", "step_type": "Mixing",
     "description": "Add levain and salt to the autolysed dough and mix until combined.", "duration_minutes": 15},
    {"step_name": "Bulk Fermentation with Stretch and Folds", "step_type": "Bulk",
     "description": "Ferment the dough, strengthening it with sets of stretch and folds.", "duration_minutes": 240},
    {"step_name": "Shape", "step_type": "Shaping",
     "description": "Pre-shape, bench rest, then final shape into a boule or batard.", "duration_minutes": 30},
    {"step_name": "Cold Retard", "step_type": "Proofing",
     "description": "Proof the shaped loaf in the fridge overnight.", "duration_minutes": 720},
    {"step_name": "Bake", "step_type": "Baking",
     "description": "Bake covered, then uncovered until deeply browned.", "duration_minutes": 45},
]

TEMPLATE_NAME = "Classic Country Sourdough"

# (step name, order, overrides, [(ingredient name, percentage)])
TEMPLATE_STEPS = [
    ("Levain Build", 1, {"contribution_pct": 20, "target_hydration": 100},
     [("Bread Flour", 50), ("Water", 50), ("Sourdough Starter", 10)]),
    ("Mix Final Dough", 2, {}, [("Bread Flour", 90), ("Whole Wheat Flour", 10), ("Water", 75), ("Salt", 2)]),
    ("Bulk Fermentation with Stretch and Folds", 3,
     {"target_temperature_celsius": 25, "stretch_fold_interval_minutes": 30, "number_of_sf_sets": 4}, []),
    ("Shape", 4, {}, []),
    ("Cold Retard", 5, {"target_temperature_celsius": 4}, []),
    ("Bake", 6, {"target_temperature_celsius": 250}, []),
]


@router.post("/dev/seed", response_model=SeedResponse)
def seed_dev_data(request: Request, db: Session = Depends(get_db)):
    """Create the demo baker, catalogues and one base template.

    Idempotent: running it again creates only what is missing.
    """
    settings = request.app.state.settings
    if not settings.debug:
        raise Forbidden("Dev endpoints are disabled in production.")

    with unit_of_work(db):
        user = db.scalar(select(User).where(User.username == DEMO_USERNAME))
        if user is None:
            user = User(username=DEMO_USERNAME, email="demo@example.com")
            db.add(user)

        ingredients = {i.ingredient_name: i for i in db.scalars(select(Ingredient))}
        ingredients_created = 0
        for name, is_wet in SEED_INGREDIENTS:
            if name not in ingredients:
                ingredients[name] = Ingredient(ingredient_name=name, is_wet=is_wet)
                db.add(ingredients[name])
                ingredients_created += 1

        steps = {s.step_name: s for s in db.scalars(select(Step).where(Step.is_predefined.is_(True)))}
        steps_created = 0
        for data in SEED_STEPS:
            if data["step_name"] not in steps:
                steps[data["step_name"]] = Step(is_predefined=True, **data)
                db.add(steps[data["step_name"]])
                steps_created += 1
        db.flush()

        recipes_created = 0
        template = db.scalar(
            select(Recipe).where(Recipe.recipe_name == TEMPLATE_NAME, Recipe.user_id.is_(None))
        )
        if template is None:
            template = Recipe(
                user_id=None,
                recipe_name=TEMPLATE_NAME,
                description="A 75% hydration country loaf with a touch of whole wheat.",
                target_weight=900,
                target_hydration=75,
                target_salt_pct=2,
                is_base_recipe=True,
            )
            for step_name, order, overrides, stage in TEMPLATE_STEPS:
                template.steps.append(RecipeStep(
                    step_id=steps[step_name].id,
                    step_order=order,
                    stage_ingredients=[
                        StageIngredient(
                            ingredient_id=ingredients[name].id,
                            percentage=pct,
                            is_wet=ingredients[name].is_wet,
                        )
                        for name, pct in stage
                    ],
                    **overrides,
                ))
            db.add(template)
            recipes_created = 1
        db.flush()
        user_id, username = user.id, user.username

    token = create_access_token(settings, user_id=user_id, username=username)
    logger.info(
        f"Seeded {ingredients_created} ingredient(s), {steps_created} step(s), "
        f"{recipes_created} template(s)"
    )
    return SeedResponse(
        user_id=user_id,
        username=username,
        access_token=token,
        ingredients_created=ingredients_created,
        steps_created=steps_created,
        recipes_created=recipes_created,
        message=f"Seed complete. Use the access token as 'Bearer' for user {username}.",
    )
