from sqlalchemy import select

from sourdough.models import BakeLog, BakeStepLog

THREE_STEPS = (("Autolyse", 1, None), ("Bulk Ferment", 2, 300), ("Bake", 3, None))


def _start(client, headers, recipe_id):
    response = client.post("/api/bakes/start", json={"recipeId": recipe_id}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def _complete(client, headers, bake_id, step_log_id, notes=None):
    body = {"currentBakeStepLogId": step_log_id}
    if notes is not None:
        body["userNotesForCompletedStep"] = notes
    return client.post(f"/api/bakes/{bake_id}/steps/complete", json=body, headers=headers)


def test_start_bake_opens_first_step(client, user, auth_headers, make_recipe):
    recipe = make_recipe(owner=user, steps=THREE_STEPS)

    data = _start(client, auth_headers, recipe.id)

    assert data["message"] == "Bake session started."
    assert data["status"] == "active"
    assert data["recipeName"] == "Country Loaf"
    first = data["firstStepDetails"]
    assert first["bake_step_log_id"] == data["currentBakeStepLogId"]
    assert first["step_name"] == "Autolyse"
    assert first["step_order"] == 1
    assert first["planned_duration_minutes"] == 60
    assert first["description"] == "Flour and water rest."
    assert [i["ingredient_name"] for i in first["stageIngredients"]] == ["Bread Flour", "Water"]


def test_start_bake_from_base_template(client, auth_headers, make_recipe):
    template = make_recipe(owner=None, is_base=True, name="Template Loaf")

    data = _start(client, auth_headers, template.id)

    assert data["recipeName"] == "Template Loaf"


def test_start_bake_rejects_other_users_recipe(client, other_user, auth_headers, make_recipe):
    recipe = make_recipe(owner=other_user)

    response = client.post("/api/bakes/start", json={"recipeId": recipe.id}, headers=auth_headers)

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_start_bake_rejects_malformed_recipe_id(client, auth_headers):
    response = client.post("/api/bakes/start", json={"recipeId": "not-a-uuid"}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_input"


def test_start_bake_rejects_uppercase_recipe_id(client, user, auth_headers, make_recipe):
    recipe = make_recipe(owner=user)

    response = client.post("/api/bakes/start", json={"recipeId": recipe.id.upper()}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_input"


def test_start_bake_rejects_recipe_without_steps(client, user, auth_headers, make_recipe):
    recipe = make_recipe(owner=user, steps=())

    response = client.post("/api/bakes/start", json={"recipeId": recipe.id}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "Recipe has no steps."


def test_single_step_recipe_finishes_on_first_completion(client, db_session, user, auth_headers, make_recipe):
    recipe = make_recipe(owner=user)
    started = _start(client, auth_headers, recipe.id)

    response = _complete(client, auth_headers, started["bakeLogId"], started["currentBakeStepLogId"], "smelled great")

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Final step completed. Bake finished!"
    assert data["currentStepDetails"] is None

    bake = db_session.get(BakeLog, started["bakeLogId"])
    assert bake.status == "completed"
    assert bake.bake_end_timestamp is not None
    step_log = db_session.get(BakeStepLog, started["currentBakeStepLogId"])
    assert step_log.actual_end_timestamp is not None
    assert step_log.user_step_notes == "smelled great"


def test_completion_skips_gaps_in_step_order(client, user, auth_headers, make_recipe):
    recipe = make_recipe(owner=user, steps=(("Autolyse", 10, None), ("Bake", 30, None)))
    started = _start(client, auth_headers, recipe.id)

    response = _complete(client, auth_headers, started["bakeLogId"], started["currentBakeStepLogId"])

    assert response.status_code == 200
    current = response.json()["currentStepDetails"]
    assert current["step_order"] == 30
    assert current["step_name"] == "Bake"

    response = _complete(client, auth_headers, started["bakeLogId"], current["bake_step_log_id"])
    assert response.json()["currentStepDetails"] is None


def test_full_bake_keeps_one_open_step_in_increasing_order(client, db_session, user, auth_headers, make_recipe):
    recipe = make_recipe(owner=user, steps=THREE_STEPS)
    started = _start(client, auth_headers, recipe.id)
    bake_id = started["bakeLogId"]
    step_log_id = started["currentBakeStepLogId"]

    seen_orders = [1]
    while True:
        response = _complete(client, auth_headers, bake_id, step_log_id)
        assert response.status_code == 200
        current = response.json()["currentStepDetails"]
        logs = db_session.scalars(select(BakeStepLog).where(BakeStepLog.bake_log_id == bake_id)).all()
        open_logs = [log for log in logs if log.actual_end_timestamp is None]
        db_session.expire_all()
        if current is None:
            assert open_logs == []
            break
        assert len(open_logs) == 1
        seen_orders.append(current["step_order"])
        step_log_id = current["bake_step_log_id"]

    assert seen_orders == [1, 2, 3]
    assert seen_orders == sorted(set(seen_orders))


def test_override_duration_is_frozen_into_step_log(client, user, auth_headers, make_recipe):
    recipe = make_recipe(owner=user, steps=THREE_STEPS)
    started = _start(client, auth_headers, recipe.id)

    current = _complete(client, auth_headers, started["bakeLogId"], started["currentBakeStepLogId"]).json()

    assert current["currentStepDetails"]["planned_duration_minutes"] == 300
    assert current["currentStepDetails"]["duration_override"] == 300


def test_completing_same_step_twice_conflicts(client, user, auth_headers, make_recipe):
    recipe = make_recipe(owner=user, steps=THREE_STEPS)
    started = _start(client, auth_headers, recipe.id)

    first = _complete(client, auth_headers, started["bakeLogId"], started["currentBakeStepLogId"])
    second = _complete(client, auth_headers, started["bakeLogId"], started["currentBakeStepLogId"])

    assert first.status_code == 200
    assert second.status_code == 409
    assert second.json()["error"] == "conflict"


def test_complete_step_while_paused_is_rejected(client, user, auth_headers, make_recipe):
    recipe = make_recipe(owner=user, steps=THREE_STEPS)
    started = _start(client, auth_headers, recipe.id)
    client.put(f"/api/bakes/{started['bakeLogId']}/status", json={"status": "paused"}, headers=auth_headers)

    response = _complete(client, auth_headers, started["bakeLogId"], started["currentBakeStepLogId"])

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_state"
    assert "paused" in response.json()["detail"]


def test_pause_and_resume(client, user, auth_headers, make_recipe):
    recipe = make_recipe(owner=user, steps=THREE_STEPS)
    started = _start(client, auth_headers, recipe.id)
    bake_id = started["bakeLogId"]

    paused = client.put(f"/api/bakes/{bake_id}/status", json={"status": "paused"}, headers=auth_headers)
    assert paused.status_code == 200
    assert paused.json() == {"message": "Bake status updated.", "newStatus": "paused", "bakeEndTimestamp": None}

    listed = client.get("/api/bakes/active", headers=auth_headers).json()["activeBakes"]
    assert [b["bakeLogId"] for b in listed] == [bake_id]
    assert listed[0]["status"] == "paused"
    assert listed[0]["currentStepDetails"]["bake_step_log_id"] == started["currentBakeStepLogId"]

    resumed = client.put(f"/api/bakes/{bake_id}/status", json={"status": "active"}, headers=auth_headers)
    assert resumed.json()["newStatus"] == "active"
    listed = client.get("/api/bakes/active", headers=auth_headers).json()["activeBakes"]
    assert listed[0]["status"] == "active"

    response = _complete(client, auth_headers, bake_id, started["currentBakeStepLogId"])
    assert response.status_code == 200
    assert response.json()["currentStepDetails"]["step_order"] == 2


def test_abandon_stamps_end_time_and_freezes_bake(client, user, auth_headers, make_recipe):
    recipe = make_recipe(owner=user, steps=THREE_STEPS)
    started = _start(client, auth_headers, recipe.id)
    bake_id = started["bakeLogId"]

    abandoned = client.put(f"/api/bakes/{bake_id}/status", json={"status": "abandoned"}, headers=auth_headers)
    assert abandoned.status_code == 200
    assert abandoned.json()["bakeEndTimestamp"] is not None

    revived = client.put(f"/api/bakes/{bake_id}/status", json={"status": "active"}, headers=auth_headers)
    assert revived.status_code == 400
    assert revived.json()["error"] == "invalid_state"

    detail = client.get(f"/api/bakes/{bake_id}", headers=auth_headers).json()
    assert detail["status"] == "abandoned"


def test_invalid_status_is_rejected(client, user, auth_headers, make_recipe):
    recipe = make_recipe(owner=user)
    started = _start(client, auth_headers, recipe.id)

    response = client.put(
        f"/api/bakes/{started['bakeLogId']}/status", json={"status": "burnt"}, headers=auth_headers
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid status. Use: active, paused, completed, abandoned"


def test_other_user_cannot_touch_bake(client, user, auth_headers, other_auth_headers, make_recipe):
    recipe = make_recipe(owner=user, steps=THREE_STEPS)
    started = _start(client, auth_headers, recipe.id)
    bake_id = started["bakeLogId"]

    assert _complete(client, other_auth_headers, bake_id, started["currentBakeStepLogId"]).status_code == 404
    status_resp = client.put(f"/api/bakes/{bake_id}/status", json={"status": "paused"}, headers=other_auth_headers)
    assert status_resp.status_code == 404
    assert client.get(f"/api/bakes/{bake_id}", headers=other_auth_headers).status_code == 404
    assert client.get("/api/bakes/active", headers=other_auth_headers).json() == {"activeBakes": []}

    # Owner's bake is untouched
    assert client.get(f"/api/bakes/{bake_id}", headers=auth_headers).json()["status"] == "active"


def test_active_bakes_lists_open_step(client, user, auth_headers, make_recipe):
    recipe = make_recipe(owner=user, steps=THREE_STEPS)
    started = _start(client, auth_headers, recipe.id)
    finished_recipe = make_recipe(owner=user, name="Quick Loaf")
    finished = _start(client, auth_headers, finished_recipe.id)
    _complete(client, auth_headers, finished["bakeLogId"], finished["currentBakeStepLogId"])

    data = client.get("/api/bakes/active", headers=auth_headers).json()

    assert [b["bakeLogId"] for b in data["activeBakes"]] == [started["bakeLogId"]]
    active = data["activeBakes"][0]
    assert active["recipeName"] == "Country Loaf"
    assert active["currentStepDetails"]["bake_step_log_id"] == started["currentBakeStepLogId"]


def test_history_and_detail(client, user, auth_headers, make_recipe):
    recipe = make_recipe(owner=user, steps=THREE_STEPS)
    started = _start(client, auth_headers, recipe.id)
    bake_id = started["bakeLogId"]
    _complete(client, auth_headers, bake_id, started["currentBakeStepLogId"], "firm dough")

    history = client.get("/api/bakes/history", headers=auth_headers).json()
    assert [b["bakeLogId"] for b in history["bakes"]] == [bake_id]

    detail = client.get(f"/api/bakes/{bake_id}", headers=auth_headers).json()
    steps = detail["historyStepDetails"]
    assert [s["step_order"] for s in steps] == [1, 2]
    assert steps[0]["user_step_notes"] == "firm dough"
    assert steps[0]["actual_end_timestamp"] is not None
    assert steps[1]["actual_end_timestamp"] is None
    assert detail["currentStepDetails"]["step_order"] == 2
    assert [s["step_order"] for s in detail["recipe"]["steps"]] == [1, 2, 3]


def test_update_overall_notes(client, user, auth_headers, make_recipe):
    recipe = make_recipe(owner=user)
    started = _start(client, auth_headers, recipe.id)

    response = client.patch(
        f"/api/bakes/{started['bakeLogId']}",
        json={"userOverallNotes": "Great oven spring"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert response.json()["userOverallNotes"] == "Great oven spring"


def test_bake_routes_require_token(client):
    missing = client.get("/api/bakes/active")
    assert missing.status_code == 401
    assert missing.json() == {"detail": "Access token is required.", "error": "unauthorized"}

    bad = client.get("/api/bakes/active", headers={"Authorization": "Bearer nonsense"})
    assert bad.status_code == 403
    assert bad.json() == {"detail": "Token is invalid or expired.", "error": "forbidden"}
