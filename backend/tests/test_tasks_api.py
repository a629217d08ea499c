import logging

import pytest
from sqlalchemy import select

from app.core.security import create_access_token
from app.db.enums import TaskPriority, TaskStatus, TaskVisibility, UserRole
from app.db.models import Task, TaskActivity, TaskAllowedUser, TaskBlockedUser, Wedding

pytestmark = pytest.mark.integration


@pytest.mark.anyio
async def test_list_applies_visibility(client, make_user, make_task, auth_headers):
    bride = await make_user(UserRole.bride)
    planner = await make_user(UserRole.planner)
    helper = await make_user(UserRole.family_helper)

    private = await make_task("Surprise for the groom", TaskVisibility.private, created_by=bride)
    team = await make_task("Confirm venue deposit", TaskVisibility.internal_team, created_by=bride)
    everyone = await make_task("Fold programs", TaskVisibility.everyone_internal, created_by=bride)
    hidden = await make_task("Seating chart", TaskVisibility.everyone_internal, created_by=bride, blocked=[helper])

    res = await client.get("/api/tasks/", headers=auth_headers(bride))
    assert res.status_code == 200
    assert {t["id"] for t in res.json()} == {private.id, team.id, everyone.id, hidden.id}

    res = await client.get("/api/tasks/", headers=auth_headers(planner))
    assert {t["id"] for t in res.json()} == {team.id, everyone.id, hidden.id}

    res = await client.get("/api/tasks/", headers=auth_headers(helper))
    assert {t["id"] for t in res.json()} == {everyone.id}


@pytest.mark.anyio
async def test_list_filters_and_orders_by_priority(client, make_user, auth_headers, test_session, wedding):
    bride = await make_user(UserRole.bride)
    test_session.add_all([
        Task(wedding_id=wedding.id, title="Pick cake flavour", priority=TaskPriority.low, status=TaskStatus.todo),
        Task(wedding_id=wedding.id, title="Book photographer", priority=TaskPriority.critical, status=TaskStatus.todo),
        Task(wedding_id=wedding.id, title="Send invitations", priority=TaskPriority.high, status=TaskStatus.done),
    ])
    await test_session.commit()

    res = await client.get("/api/tasks/", headers=auth_headers(bride))
    assert [t["title"] for t in res.json()] == ["Book photographer", "Send invitations", "Pick cake flavour"]

    res = await client.get("/api/tasks/?status=TODO&search=cake", headers=auth_headers(bride))
    assert [t["title"] for t in res.json()] == ["Pick cake flavour"]


@pytest.mark.anyio
async def test_get_task_denied_outside_audience(client, make_user, make_task, auth_headers, caplog):
    helper = await make_user(UserRole.family_helper)
    task = await make_task(visibility=TaskVisibility.internal_team)

    caplog.set_level(logging.INFO, logger="wedding-planner.permissions")
    res = await client.get(f"/api/tasks/{task.id}", headers=auth_headers(helper))
    assert res.status_code == 403
    assert res.json()["detail"] == "You don't have permission to view this task"
    assert any("[PERMS_DENIED]" in r.getMessage() for r in caplog.records)


@pytest.mark.anyio
async def test_get_task_from_another_wedding_is_not_found(client, make_user, make_task, auth_headers, test_session):
    other = Wedding(name="Other couple")
    test_session.add(other)
    await test_session.commit()

    bride = await make_user(UserRole.bride)
    task = await make_task(visibility=TaskVisibility.everyone_internal, wedding_id=other.id)

    res = await client.get(f"/api/tasks/{task.id}", headers=auth_headers(bride))
    assert res.status_code == 404


@pytest.mark.anyio
async def test_vendor_sees_only_linked_vendor_tasks(client, make_user, make_vendor, make_task, auth_headers):
    florist_user = await make_user(UserRole.vendor)
    baker_user = await make_user(UserRole.vendor)
    florist = await make_vendor(florist_user, "Bloom Florals")
    baker = await make_vendor(baker_user, "Sugar & Crumb")

    flowers = await make_task("Deliver centrepieces", TaskVisibility.vendors, vendor=florist)
    await make_task("Deliver cake", TaskVisibility.vendors, vendor=baker)
    await make_task("Florist budget notes", TaskVisibility.internal_team, vendor=florist)

    res = await client.get("/api/tasks/", headers=auth_headers(florist_user))
    assert res.status_code == 200
    assert [t["id"] for t in res.json()] == [flowers.id]


@pytest.mark.anyio
async def test_vendor_cannot_create_tasks(client, make_user, auth_headers):
    vendor = await make_user(UserRole.vendor)
    res = await client.post("/api/tasks/", json={"title": "Add more roses"}, headers=auth_headers(vendor))
    assert res.status_code == 403
    assert res.json()["detail"] == "You don't have permission to create tasks"


@pytest.mark.anyio
async def test_parent_cannot_assign_on_create(client, make_user, auth_headers):
    parent = await make_user(UserRole.bride_parent)
    helper = await make_user(UserRole.family_helper)

    res = await client.post(
        "/api/tasks/",
        json={"title": "Pick up linens", "assigned_to_user_id": helper.id},
        headers=auth_headers(parent),
    )
    assert res.status_code == 403
    assert res.json()["detail"] == "You don't have permission to assign tasks"


@pytest.mark.anyio
async def test_couple_sets_acl_on_create(client, make_user, auth_headers, test_session):
    bride = await make_user(UserRole.bride)
    groom = await make_user(UserRole.groom)
    helper = await make_user(UserRole.family_helper)

    res = await client.post(
        "/api/tasks/",
        json={
            "title": "Plan the groom's surprise",
            "visibility": "PRIVATE",
            "priority": "HIGH",
            "due_date": "2026-11-01",
            "tags": ["surprise"],
            "allowed_user_ids": [helper.id],
            "blocked_user_ids": [groom.id],
        },
        headers=auth_headers(bride),
    )
    assert res.status_code == 201
    body = res.json()
    assert body["allowed_user_ids"] == [helper.id]
    assert body["blocked_user_ids"] == [groom.id]
    assert body["tags"] == ["surprise"]
    assert body["created_by_user_id"] == bride.id

    res = await client.get(f"/api/tasks/{body['id']}", headers=auth_headers(groom))
    assert res.status_code == 403

    res = await client.get(f"/api/tasks/{body['id']}", headers=auth_headers(helper))
    assert res.status_code == 200
    assert "allowed_user_ids" not in res.json()

    activity = await test_session.execute(select(TaskActivity).where(TaskActivity.task_id == body["id"]))
    assert [a.action for a in activity.scalars().all()] == ["created"]


@pytest.mark.anyio
async def test_planner_acl_lists_are_ignored(client, make_user, auth_headers):
    planner = await make_user(UserRole.planner)
    helper = await make_user(UserRole.family_helper)

    res = await client.post(
        "/api/tasks/",
        json={"title": "Hide from helper", "visibility": "EVERYONE_INTERNAL", "blocked_user_ids": [helper.id]},
        headers=auth_headers(planner),
    )
    assert res.status_code == 201

    res = await client.get(f"/api/tasks/{res.json()['id']}", headers=auth_headers(helper))
    assert res.status_code == 200


@pytest.mark.anyio
async def test_create_with_unknown_vendor(client, make_user, auth_headers):
    bride = await make_user(UserRole.bride)
    res = await client.post("/api/tasks/", json={"title": "Cake", "vendor_id": 9999}, headers=auth_headers(bride))
    assert res.status_code == 404
    assert res.json()["detail"] == "Vendor not found"


@pytest.mark.anyio
async def test_parent_edits_only_assigned_tasks(client, make_user, make_task, auth_headers, test_session):
    parent = await make_user(UserRole.groom_parent)
    mine = await make_task("Rehearsal dinner menu", TaskVisibility.parents, assigned_to=parent)
    other = await make_task("Hotel block", TaskVisibility.parents)

    res = await client.patch(f"/api/tasks/{mine.id}", json={"status": "DONE"}, headers=auth_headers(parent))
    assert res.status_code == 200
    assert res.json()["status"] == "DONE"

    res = await client.patch(f"/api/tasks/{other.id}", json={"status": "DONE"}, headers=auth_headers(parent))
    assert res.status_code == 403
    assert res.json()["detail"] == "You don't have permission to edit this task"

    activity = await test_session.execute(select(TaskActivity.action).where(TaskActivity.task_id == mine.id))
    assert activity.scalars().all() == ["status_changed"]


@pytest.mark.anyio
async def test_reassignment_needs_assign_capability(client, make_user, make_task, auth_headers):
    parent = await make_user(UserRole.bride_parent)
    planner = await make_user(UserRole.planner)
    task = await make_task("Guest shuttle", TaskVisibility.parents, assigned_to=parent)

    res = await client.patch(
        f"/api/tasks/{task.id}", json={"assigned_to_user_id": planner.id}, headers=auth_headers(parent)
    )
    assert res.status_code == 403

    res = await client.patch(
        f"/api/tasks/{task.id}", json={"assigned_to_user_id": parent.id, "title": "Guest shuttle times"},
        headers=auth_headers(parent),
    )
    assert res.status_code == 200
    assert res.json()["title"] == "Guest shuttle times"


@pytest.mark.anyio
async def test_couple_rewrites_acl_lists(client, make_user, make_task, auth_headers, test_session):
    bride = await make_user(UserRole.bride)
    helper = await make_user(UserRole.family_helper)
    task = await make_task("Vendor tip envelopes", TaskVisibility.internal_team, created_by=bride, blocked=[helper])

    res = await client.get(f"/api/tasks/{task.id}", headers=auth_headers(helper))
    assert res.status_code == 403

    # swap the helper from blocked to allowed; the grant widens the team-only audience
    res = await client.patch(
        f"/api/tasks/{task.id}",
        json={"blocked_user_ids": [], "allowed_user_ids": [helper.id]},
        headers=auth_headers(bride),
    )
    assert res.status_code == 200
    assert res.json()["allowed_user_ids"] == [helper.id]
    assert res.json()["blocked_user_ids"] == []

    res = await client.get(f"/api/tasks/{task.id}", headers=auth_headers(helper))
    assert res.status_code == 200
    res = await client.get("/api/tasks/", headers=auth_headers(helper))
    assert [t["id"] for t in res.json()] == [task.id]

    # and back: the block wins over the grant that is still in place
    res = await client.patch(
        f"/api/tasks/{task.id}", json={"blocked_user_ids": [helper.id]}, headers=auth_headers(bride)
    )
    assert res.status_code == 200
    assert res.json()["allowed_user_ids"] == [helper.id]
    assert res.json()["blocked_user_ids"] == [helper.id]

    res = await client.get(f"/api/tasks/{task.id}", headers=auth_headers(helper))
    assert res.status_code == 403
    res = await client.get("/api/tasks/", headers=auth_headers(helper))
    assert res.json() == []

    blocked = await test_session.execute(select(TaskBlockedUser.user_id).where(TaskBlockedUser.task_id == task.id))
    assert blocked.scalars().all() == [helper.id]
    allowed = await test_session.execute(select(TaskAllowedUser.user_id).where(TaskAllowedUser.task_id == task.id))
    assert allowed.scalars().all() == [helper.id]


@pytest.mark.anyio
async def test_editor_acl_fields_are_ignored_on_patch(client, make_user, make_task, auth_headers):
    parent = await make_user(UserRole.bride_parent)
    helper = await make_user(UserRole.family_helper)
    task = await make_task(
        "Welcome bags", TaskVisibility.everyone_internal, assigned_to=parent, blocked=[helper]
    )

    res = await client.patch(
        f"/api/tasks/{task.id}",
        json={"title": "Welcome bags for hotel guests", "blocked_user_ids": [], "allowed_user_ids": [helper.id]},
        headers=auth_headers(parent),
    )
    assert res.status_code == 200
    body = res.json()
    assert body["title"] == "Welcome bags for hotel guests"
    assert "blocked_user_ids" not in body

    res = await client.get(f"/api/tasks/{task.id}", headers=auth_headers(helper))
    assert res.status_code == 403
    res = await client.get("/api/tasks/", headers=auth_headers(helper))
    assert res.json() == []


@pytest.mark.anyio
async def test_watcher_replacement_controls_edit_rights(client, make_user, make_task, auth_headers):
    bride = await make_user(UserRole.bride)
    parent = await make_user(UserRole.groom_parent)
    task = await make_task("Order the boutonnieres", TaskVisibility.parents, created_by=bride)

    res = await client.patch(f"/api/tasks/{task.id}", json={"status": "IN_PROGRESS"}, headers=auth_headers(parent))
    assert res.status_code == 403

    res = await client.patch(
        f"/api/tasks/{task.id}", json={"watcher_user_ids": [parent.id]}, headers=auth_headers(bride)
    )
    assert res.json()["watcher_user_ids"] == [parent.id]

    res = await client.patch(f"/api/tasks/{task.id}", json={"status": "IN_PROGRESS"}, headers=auth_headers(parent))
    assert res.status_code == 200
    assert res.json()["status"] == "IN_PROGRESS"

    res = await client.patch(f"/api/tasks/{task.id}", json={"watcher_user_ids": []}, headers=auth_headers(bride))
    assert res.json()["watcher_user_ids"] == []

    res = await client.patch(f"/api/tasks/{task.id}", json={"status": "DONE"}, headers=auth_headers(parent))
    assert res.status_code == 403


@pytest.mark.anyio
async def test_delete_by_creator_only(client, make_user, make_task, auth_headers, test_session):
    helper = await make_user(UserRole.family_helper)
    planner = await make_user(UserRole.planner)
    task = await make_task("Buy guest book", TaskVisibility.everyone_internal, created_by=helper)

    res = await client.delete(f"/api/tasks/{task.id}", headers=auth_headers(planner))
    assert res.status_code == 403

    res = await client.post(f"/api/tasks/{task.id}/comments", json={"text": "Got a blue one"}, headers=auth_headers(helper))
    assert res.status_code == 201

    res = await client.delete(f"/api/tasks/{task.id}", headers=auth_headers(helper))
    assert res.status_code == 200
    assert res.json() == {"success": True}

    res = await client.get(f"/api/tasks/{task.id}", headers=auth_headers(helper))
    assert res.status_code == 404


@pytest.mark.anyio
async def test_comments_follow_view_rules(client, make_user, make_task, auth_headers):
    helper = await make_user(UserRole.family_helper)
    vendor_user = await make_user(UserRole.vendor)
    task = await make_task("Welcome bags", TaskVisibility.everyone_internal)

    res = await client.post(f"/api/tasks/{task.id}/comments", json={"text": "Bags ordered"}, headers=auth_headers(helper))
    assert res.status_code == 201
    assert res.json()["author_user_id"] == helper.id

    res = await client.get(f"/api/tasks/{task.id}/comments", headers=auth_headers(helper))
    assert [c["text"] for c in res.json()] == ["Bags ordered"]

    # vendor without a link to this task
    res = await client.post(f"/api/tasks/{task.id}/comments", json={"text": "hi"}, headers=auth_headers(vendor_user))
    assert res.status_code == 403
    res = await client.get(f"/api/tasks/{task.id}/comments", headers=auth_headers(vendor_user))
    assert res.status_code == 403


@pytest.mark.anyio
async def test_requests_need_valid_token(client, make_user):
    inactive = await make_user(UserRole.planner, is_active=False)

    res = await client.get("/api/tasks/")
    assert res.status_code in (401, 403)

    res = await client.get("/api/tasks/", headers={"Authorization": "Bearer not-a-token"})
    assert res.status_code == 401

    token = create_access_token({"sub": str(inactive.id)})
    res = await client.get("/api/tasks/", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401
