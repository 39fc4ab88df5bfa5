"""Tests for notes CRUD, ownership and the free-plan quota."""

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.note import Note


async def _bootstrap(client: AsyncClient, slug: str):
    resp = await client.post("/v1/tenants", json={
        "tenant_name": f"{slug} Co",
        "tenant_slug": slug,
        "admin_email": f"admin@{slug}.com",
        "admin_password": "testpass123",
    })
    assert resp.status_code == 201, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


async def _member(client: AsyncClient, admin_headers: dict, email: str) -> dict:
    resp = await client.post("/v1/auth/invite", json={"email": email}, headers=admin_headers)
    assert resp.status_code == 201
    resp = await client.post("/v1/auth/login", json={"email": email, "password": "password"})
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


async def _create(client: AsyncClient, headers: dict, title: str = "A note", **extra):
    return await client.post("/v1/notes", json={
        "title": title,
        "content": extra.pop("content", "Some content"),
        **extra,
    }, headers=headers)


@pytest.mark.asyncio
async def test_create_and_get_note(client: AsyncClient):
    headers = await _bootstrap(client, "notes-crud")

    resp = await _create(client, headers, "  Groceries  ", tags=["Home", " errands ", "home"])
    assert resp.status_code == 201, resp.text
    note = resp.json()
    assert note["title"] == "Groceries"
    assert note["tags"] == ["home", "errands"]
    assert note["author"]["email"] == "admin@notes-crud.com"
    assert note["is_archived"] is False

    resp = await client.get(f"/v1/notes/{note['id']}", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["id"] == note["id"]


@pytest.mark.asyncio
async def test_validation_errors(client: AsyncClient):
    headers = await _bootstrap(client, "notes-validate")

    assert (await _create(client, headers, "")).status_code == 422
    assert (await _create(client, headers, "x" * 201)).status_code == 422
    assert (await _create(client, headers, content="y" * 10001)).status_code == 422
    assert (await _create(client, headers, tags=["  "])).status_code == 422
    assert (await _create(client, headers, tags=["t" * 51])).status_code == 422


@pytest.mark.asyncio
async def test_free_plan_quota(client: AsyncClient):
    """Three notes fit on the free plan; the fourth is rejected until upgrade."""
    headers = await _bootstrap(client, "notes-quota")

    for i in range(3):
        assert (await _create(client, headers, f"Note {i}")).status_code == 201

    resp = await _create(client, headers, "One too many")
    assert resp.status_code == 403
    body = resp.json()
    assert "limit" in body["detail"]
    assert body["upgrade_url"] == "/tenants/notes-quota/upgrade"

    resp = await client.get("/v1/notes/stats", headers=headers)
    assert resp.json()["subscription"]["can_create_more"] is False

    resp = await client.post("/v1/tenants/notes-quota/upgrade", headers=headers)
    assert resp.status_code == 200

    for i in range(3):
        assert (await _create(client, headers, f"Pro note {i}")).status_code == 201


@pytest.mark.asyncio
async def test_deleting_frees_quota(client: AsyncClient):
    headers = await _bootstrap(client, "notes-free-slot")
    ids = [(await _create(client, headers, f"N{i}")).json()["id"] for i in range(3)]
    assert (await _create(client, headers)).status_code == 403

    assert (await client.delete(f"/v1/notes/{ids[0]}", headers=headers)).status_code == 204
    assert (await _create(client, headers)).status_code == 201


@pytest.mark.asyncio
async def test_member_can_only_modify_own_notes(client: AsyncClient):
    admin = await _bootstrap(client, "notes-owner")
    alice = await _member(client, admin, "alice@notes-owner.com")
    bob = await _member(client, admin, "bob@notes-owner.com")

    note_id = (await _create(client, alice, "Alice's")).json()["id"]

    resp = await client.put(f"/v1/notes/{note_id}", json={"title": "Hijacked"}, headers=bob)
    assert resp.status_code == 403
    resp = await client.delete(f"/v1/notes/{note_id}", headers=bob)
    assert resp.status_code == 403

    # Reading is tenant-wide
    assert (await client.get(f"/v1/notes/{note_id}", headers=bob)).status_code == 200

    resp = await client.put(f"/v1/notes/{note_id}", json={"title": "Edited", "tags": ["x"]}, headers=alice)
    assert resp.status_code == 200
    assert resp.json()["title"] == "Edited"
    assert resp.json()["tags"] == ["x"]
    assert resp.json()["content"] == "Some content"


@pytest.mark.asyncio
async def test_admin_can_modify_any_note_in_tenant(client: AsyncClient):
    admin = await _bootstrap(client, "notes-admin")
    member = await _member(client, admin, "writer@notes-admin.com")
    note_id = (await _create(client, member, "Member note")).json()["id"]

    resp = await client.put(f"/v1/notes/{note_id}", json={"content": "Moderated"}, headers=admin)
    assert resp.status_code == 200
    assert resp.json()["content"] == "Moderated"
    assert resp.json()["author"]["email"] == "writer@notes-admin.com"

    assert (await client.delete(f"/v1/notes/{note_id}", headers=admin)).status_code == 204
    assert (await client.get(f"/v1/notes/{note_id}", headers=admin)).status_code == 404


@pytest.mark.asyncio
async def test_notes_of_other_tenant_are_invisible(client: AsyncClient):
    acme = await _bootstrap(client, "notes-iso-acme")
    globex = await _bootstrap(client, "notes-iso-globex")
    note_id = (await _create(client, acme, "Acme secret")).json()["id"]

    assert (await client.get(f"/v1/notes/{note_id}", headers=globex)).status_code == 404
    resp = await client.put(f"/v1/notes/{note_id}", json={"title": "x"}, headers=globex)
    assert resp.status_code == 404
    assert (await client.delete(f"/v1/notes/{note_id}", headers=globex)).status_code == 404

    resp = await client.get("/v1/notes", headers=globex)
    assert resp.json()["notes"] == []


@pytest.mark.asyncio
async def test_list_filters_and_sorting(client: AsyncClient):
    headers = await _bootstrap(client, "notes-list")
    await client.post("/v1/tenants/notes-list/upgrade", headers=headers)

    await _create(client, headers, "Banana bread", content="Bake at 180", tags=["food"])
    await _create(client, headers, "Apple pie", content="Needs apples", tags=["food", "dessert"])
    await _create(client, headers, "Quarterly report", content="Finance numbers", tags=["work"])

    resp = await client.get("/v1/notes?sort_by=title&sort_order=asc", headers=headers)
    assert resp.status_code == 200
    titles = [n["title"] for n in resp.json()["notes"]]
    assert titles == ["Apple pie", "Banana bread", "Quarterly report"]

    resp = await client.get("/v1/notes?search=APPLE", headers=headers)
    assert [n["title"] for n in resp.json()["notes"]] == ["Apple pie"]

    resp = await client.get("/v1/notes?tags=work,dessert&sort_by=title&sort_order=asc", headers=headers)
    assert [n["title"] for n in resp.json()["notes"]] == ["Apple pie", "Quarterly report"]

    resp = await client.get("/v1/notes?limit=2&page=2&sort_by=title&sort_order=asc", headers=headers)
    body = resp.json()
    assert [n["title"] for n in body["notes"]] == ["Quarterly report"]
    assert body["pagination"] == {
        "current_page": 2,
        "total_pages": 2,
        "total": 3,
        "has_next_page": False,
        "has_prev_page": True,
        "limit": 2,
    }

    too_many = ",".join(f"t{i}" for i in range(11))
    assert (await client.get(f"/v1/notes?tags={too_many}", headers=headers)).status_code == 400
    assert (await client.get("/v1/notes?limit=101", headers=headers)).status_code == 422
    assert (await client.get("/v1/notes?sort_by=author", headers=headers)).status_code == 422


@pytest.mark.asyncio
async def test_stats(client: AsyncClient):
    admin = await _bootstrap(client, "notes-stats")
    member = await _member(client, admin, "member@notes-stats.com")
    await _create(client, admin, "One")
    await _create(client, member, "Two")

    resp = await client.get("/v1/notes/stats", headers=member)
    assert resp.status_code == 200
    body = resp.json()
    assert body["total_notes"] == 2
    assert body["recent_notes"] == 2
    assert body["notes_by_user"] == [
        {"author": "admin@notes-stats.com", "count": 1},
        {"author": "member@notes-stats.com", "count": 1},
    ]
    assert body["subscription"] == {
        "plan": "free",
        "max_notes": 3,
        "current_notes": 2,
        "can_create_more": True,
        "is_pro": False,
    }


@pytest.mark.asyncio
async def test_stats_quota_counts_archived_notes(client: AsyncClient, session: AsyncSession):
    """Archived notes are hidden from totals but still use a plan slot."""
    headers = await _bootstrap(client, "notes-archived")
    await _create(client, headers, "Visible")
    archived_id = (await _create(client, headers, "Archived")).json()["id"]

    note = await session.get(Note, uuid.UUID(archived_id))
    note.is_archived = True
    session.add(note)
    await session.commit()

    body = (await client.get("/v1/notes/stats", headers=headers)).json()
    assert body["total_notes"] == 1
    assert body["subscription"]["current_notes"] == 2
    assert body["subscription"]["can_create_more"] is True

    await _create(client, headers, "Last slot")
    body = (await client.get("/v1/notes/stats", headers=headers)).json()
    assert body["total_notes"] == 2
    assert body["subscription"]["current_notes"] == 3
    assert body["subscription"]["can_create_more"] is False


@pytest.mark.asyncio
async def test_tag_filter_treats_underscore_literally(client: AsyncClient):
    headers = await _bootstrap(client, "notes-tag-literal")
    await _create(client, headers, "Underscore", tags=["to_do"])
    await _create(client, headers, "Lookalike", tags=["toxdo"])

    resp = await client.get("/v1/notes", params={"tags": "to_do"}, headers=headers)
    assert resp.status_code == 200
    assert [n["title"] for n in resp.json()["notes"]] == ["Underscore"]

    resp = await client.get("/v1/notes", params={"tags": "to%"}, headers=headers)
    assert resp.json()["notes"] == []


@pytest.mark.asyncio
async def test_search_treats_percent_literally(client: AsyncClient):
    headers = await _bootstrap(client, "notes-search-literal")
    await _create(client, headers, "50% off", content="Sale")
    await _create(client, headers, "500 items", content="Stock")

    resp = await client.get("/v1/notes", params={"search": "50%"}, headers=headers)
    assert resp.status_code == 200
    assert [n["title"] for n in resp.json()["notes"]] == ["50% off"]

    resp = await client.get("/v1/notes", params={"search": "5_0"}, headers=headers)
    assert resp.json()["notes"] == []


@pytest.mark.asyncio
async def test_notes_require_authentication(client: AsyncClient):
    assert (await client.get("/v1/notes")).status_code == 401
    resp = await client.post("/v1/notes", json={"title": "x", "content": "y"})
    assert resp.status_code == 401
