from unittest.mock import MagicMock

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError

from sourdough.db import Database
from sourdough.main import create_app
from sourdough.routers.ready import check_database
from sourdough.settings import Settings


def test_ready(client):
    response = client.get("/api/ready")

    assert response.status_code == 200
    assert response.json() == {"ok": True, "db_ok": True, "redis_ok": True}


def test_database_check_reports_failure(db_session):
    broken = MagicMock()
    broken.execute.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))

    assert check_database(db_session) is True
    assert check_database(broken) is False


def test_seed_is_idempotent_and_usable(client):
    first = client.post("/api/dev/seed")
    assert first.status_code == 200
    data = first.json()
    assert data["ingredients_created"] == 6
    assert data["steps_created"] == 7
    assert data["recipes_created"] == 1

    second = client.post("/api/dev/seed").json()
    assert second["ingredients_created"] == 0
    assert second["recipes_created"] == 0
    assert second["user_id"] == data["user_id"]

    headers = {"Authorization": f"Bearer {data['access_token']}"}
    templates = client.get("/api/recipes/templates").json()
    assert [t["recipe_name"] for t in templates] == ["Classic Country Sourdough"]

    started = client.post("/api/bakes/start", json={"recipeId": templates[0]["recipe_id"]}, headers=headers)
    assert started.status_code == 201
    assert started.json()["firstStepDetails"]["step_name"] == "Levain Build"


def test_seed_disabled_in_production():
    prod_settings = Settings(environment="production", jwt_secret="x")
    prod = create_app(prod_settings, database=Database(prod_settings, engine=create_engine("sqlite://")))
    with TestClient(prod) as c:
        response = c.post("/api/dev/seed")
    assert response.status_code == 403
