import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

import fakeredis
import fakeredis.aioredis

from sourdough.auth.tokens import create_access_token
from sourdough.db import Base, Database
from sourdough.infra import redis_client
from sourdough.limiter import limiter
from sourdough.main import create_app
from sourdough.models import Ingredient, Recipe, RecipeStep, StageIngredient, Step, User
from sourdough.settings import Settings

# --- Test Database Setup ---

SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

test_settings = Settings(
    environment="test",
    database_url=SQLALCHEMY_DATABASE_URL,
    jwt_secret="test-secret",
    ai_mode="mock",
)

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,  # one shared connection so every session sees the same in-memory db
)
database = Database(test_settings, engine=engine)
app = create_app(test_settings, database=database)


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def mock_redis():
    server = fakeredis.FakeServer()
    redis_client._redis_async = fakeredis.aioredis.FakeRedis(server=server, decode_responses=True)
    yield
    redis_client._redis_async = None


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    yield


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def db_session():
    """Direct database session for setup and assertions."""
    session = database.session()
    yield session
    session.close()


# --- Domain fixtures ---

def _make_user(db, username):
    user = User(username=username, email=f"{username}@example.com")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def user(db_session):
    return _make_user(db_session, "alice")


@pytest.fixture
def other_user(db_session):
    return _make_user(db_session, "bob")


def auth_headers_for(user):
    token = create_access_token(test_settings, user_id=user.id, username=user.username)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(user):
    return auth_headers_for(user)


@pytest.fixture
def other_auth_headers(other_user):
    return auth_headers_for(other_user)


@pytest.fixture
def catalog(db_session):
    """Ingredients and predefined steps, keyed by name."""
    ingredients = {
        "Bread Flour": Ingredient(ingredient_name="Bread Flour", is_wet=False),
        "Water": Ingredient(ingredient_name="Water", is_wet=True),
        "Salt": Ingredient(ingredient_name="Salt", is_wet=False),
    }
    steps = {
        "Autolyse": Step(step_name="Autolyse", step_type="Rest", description="Flour and water rest.", duration_minutes=60),
        "Bulk Ferment": Step(step_name="Bulk Ferment", step_type="Bulk", description="First rise.", duration_minutes=240),
        "Bake": Step(step_name="Bake", step_type="Baking", description="Into the oven.", duration_minutes=45),
    }
    db_session.add_all(list(ingredients.values()) + list(steps.values()))
    db_session.commit()
    return {"ingredients": ingredients, "steps": steps}


@pytest.fixture
def make_recipe(db_session, catalog):
    """Build a recipe from (step name, order, duration override) tuples."""

    def _make(owner=None, steps=(("Autolyse", 1, None),), name="Country Loaf", is_base=False):
        recipe = Recipe(
            user_id=owner.id if owner else None,
            recipe_name=name,
            target_weight=900,
            target_hydration=75,
            target_salt_pct=2,
            is_base_recipe=is_base,
        )
        for step_name, order, override in steps:
            recipe.steps.append(RecipeStep(
                step_id=catalog["steps"][step_name].id,
                step_order=order,
                duration_override=override,
                stage_ingredients=[
                    StageIngredient(
                        ingredient_id=catalog["ingredients"]["Bread Flour"].id,
                        percentage=100,
                        is_wet=False,
                    ),
                    StageIngredient(
                        ingredient_id=catalog["ingredients"]["Water"].id,
                        percentage=75,
                        is_wet=True,
                    ),
                ],
            ))
        db_session.add(recipe)
        db_session.commit()
        db_session.refresh(recipe)
        return recipe

    return _make
