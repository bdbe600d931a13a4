from datetime import timedelta

from helpers import load_assignment, set_running

MISSING_ID = "00000000-0000-4000-8000-000000000000"


async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


async def test_auto_close_dry_run(client, make_assignment):
    a = await make_assignment()

    resp = await client.post(
        "/api/assignments/scheduler/auto-close", json={"dryRun": True, "batchSize": 10}
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert body["data"]["processedCount"] == 1
    assert body["data"]["processedAssignments"] == [a.id]
    assert body["data"]["dryRun"] is True
    assert (await load_assignment(a.id)).status == "published"


async def test_auto_close_defaults(client, make_assignment):
    a = await make_assignment()

    resp = await client.post("/api/assignments/scheduler/auto-close", json={})

    assert resp.status_code == 200
    assert resp.json()["data"]["processedAssignments"] == [a.id]
    assert (await load_assignment(a.id)).status == "closed"


async def test_auto_close_rejects_large_batch(client):
    resp = await client.post("/api/assignments/scheduler/auto-close", json={"batchSize": 5000})

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_auto_close_conflict_when_running(client):
    await set_running(True)

    resp = await client.post("/api/assignments/scheduler/auto-close", json={})

    assert resp.status_code == 409
    assert resp.json() == {
        "ok": False,
        "error": {
            "code": "ASSIGNMENT_SCHEDULER_ALREADY_RUNNING",
            "message": "Scheduler is already running.",
        },
    }


async def test_trigger_by_operator(client, make_user, make_assignment):
    operator = await make_user("operator")
    await make_assignment(due_in=timedelta(minutes=-5))

    resp = await client.post(
        "/api/assignments/scheduler/trigger", json={"adminId": operator.id}
    )

    assert resp.status_code == 200
    assert resp.json()["data"]["processedCount"] == 1


async def test_trigger_by_learner_is_forbidden(client, make_user):
    learner = await make_user("learner")

    resp = await client.post(
        "/api/assignments/scheduler/trigger", json={"adminId": learner.id, "force": True}
    )

    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "ASSIGNMENT_SCHEDULER_NOT_AUTHORIZED"


async def test_trigger_requires_admin_id(client):
    resp = await client.post("/api/assignments/scheduler/trigger", json={})

    assert resp.status_code == 400
    assert resp.json()["ok"] is False


async def test_status_endpoint(client):
    resp = await client.get("/api/assignments/scheduler/status")

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["schedulerName"] == "auto_close_assignments"
    assert data["isRunning"] is False
    assert data["runCount"] == 0
    assert data["successRate"] == 0


async def test_stats_endpoint(client, make_assignment):
    await make_assignment()
    await client.post("/api/assignments/scheduler/auto-close", json={})

    resp = await client.get("/api/assignments/scheduler/stats", params={"days": 7})

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["totalProcessed"] == 1
    assert data["totalErrors"] == 0
    assert len(data["dailyActivity"]) == 1


async def test_stats_days_out_of_range(client):
    resp = await client.get("/api/assignments/scheduler/stats", params={"days": 400})

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_assignment_logs_endpoint(client, make_assignment):
    a = await make_assignment()
    await client.post("/api/assignments/scheduler/auto-close", json={})

    resp = await client.get(
        f"/api/assignments/logs/{a.id}", params={"changeReason": "auto_close", "limit": 5}
    )

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["pagination"] == {"page": 1, "limit": 5, "total": 1, "totalPages": 1}
    log = data["logs"][0]
    assert log["changeReason"] == "auto_close"
    assert log["changedByName"] == "Instructor"
    assert log["metadata"]["kind"] == "auto_close"
    assert log["metadata"]["schedulerName"] == "auto_close_assignments"


async def test_assignment_logs_bad_id(client):
    resp = await client.get("/api/assignments/logs/not-a-uuid")
    assert resp.status_code == 400


async def test_assignment_logs_unknown_assignment(client):
    resp = await client.get(f"/api/assignments/logs/{MISSING_ID}")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "ASSIGNMENT_NOT_FOUND"


async def test_assignment_log_stats_endpoint(client, make_assignment):
    a = await make_assignment()
    await client.post("/api/assignments/scheduler/auto-close", json={})

    resp = await client.get(f"/api/assignments/logs/{a.id}/stats")

    assert resp.status_code == 200
    assert resp.json()["data"]["autoCloseChanges"] == 1


async def test_instructor_logs_endpoint(client, make_user, make_course, make_assignment):
    instructor = await make_user("instructor")
    await make_assignment(await make_course(instructor))
    await client.post("/api/assignments/scheduler/auto-close", json={})

    resp = await client.get(f"/api/assignments/logs/instructor/{instructor.id}")

    assert resp.status_code == 200
    assert resp.json()["data"]["pagination"]["total"] == 1


async def test_patch_status(client, make_user, make_course, make_assignment):
    owner = await make_user("instructor")
    a = await make_assignment(await make_course(owner), status="draft", due_in=timedelta(days=2))

    resp = await client.patch(
        f"/api/instructor/assignments/{a.id}/status",
        json={"actorId": owner.id, "status": "published"},
    )

    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "published"

    resp = await client.patch(
        f"/api/instructor/assignments/{a.id}/status",
        json={"actorId": owner.id, "status": "draft"},
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_STATUS_TRANSITION"
