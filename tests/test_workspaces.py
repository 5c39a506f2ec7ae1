"""Tests for workspace and member management routes."""

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from schoolcal_api.models import (
    Attendance,
    Discipline,
    Event,
    MemberRole,
    Task,
    TaskCompletion,
    User,
    Vote,
    VoteOption,
    VoteResponse,
    Workspace,
    WorkspaceMember,
)

from tests.conftest import add_member, auth_headers, create_user


async def _member_row(session_maker, workspace_id: str, user_id: str):
    async with session_maker() as session:
        result = await session.execute(
            select(WorkspaceMember).where(
                WorkspaceMember.workspace_id == workspace_id,
                WorkspaceMember.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()


# --- Workspace CRUD tests ---


@pytest.mark.asyncio
async def test_create_workspace(client: AsyncClient, owner: User, session_maker):
    response = await client.post(
        "/api/workspaces",
        json={"name": "Class 6A", "description": "Autumn term"},
        headers=auth_headers(owner),
    )

    assert response.status_code == 201
    data = response.json()["workspace"]
    assert data["name"] == "Class 6A"
    assert data["type"] == "CLASS"
    assert data["votingEnabled"] is False
    assert data["ownerId"] == owner.id

    membership = await _member_row(session_maker, data["id"], owner.id)
    assert membership is not None
    assert membership.role == MemberRole.ADMIN


@pytest.mark.asyncio
async def test_create_workspace_requires_name(client: AsyncClient, owner: User):
    response = await client.post(
        "/api/workspaces", json={"name": ""}, headers=auth_headers(owner)
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_workspaces(
    client: AsyncClient, async_session, workspace: Workspace, member: User, outsider
):
    response = await client.get("/api/workspaces", headers=auth_headers(member))

    assert response.status_code == 200
    workspaces = response.json()["workspaces"]
    assert [w["id"] for w in workspaces] == [workspace.id]
    assert workspaces[0]["memberCount"] == 2

    response = await client.get("/api/workspaces", headers=auth_headers(outsider))
    assert response.json()["workspaces"] == []


@pytest.mark.asyncio
async def test_get_workspace(
    client: AsyncClient, workspace: Workspace, owner: User, member: User
):
    response = await client.get(
        f"/api/workspaces/{workspace.id}", headers=auth_headers(member)
    )

    assert response.status_code == 200
    data = response.json()["workspace"]
    assert data["role"] == "USER"
    assert {m["userId"] for m in data["members"]} == {owner.id, member.id}

    response = await client.get(
        f"/api/workspaces/{workspace.id}", headers=auth_headers(owner)
    )
    assert response.json()["workspace"]["role"] == "OWNER"


@pytest.mark.asyncio
async def test_get_workspace_outsider_and_missing(
    client: AsyncClient, workspace: Workspace, outsider: User
):
    response = await client.get(
        f"/api/workspaces/{workspace.id}", headers=auth_headers(outsider)
    )
    assert response.status_code == 403

    response = await client.get(
        "/api/workspaces/does-not-exist", headers=auth_headers(outsider)
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_workspace_admin_only(
    client: AsyncClient, workspace: Workspace, owner: User, member: User
):
    response = await client.put(
        f"/api/workspaces/{workspace.id}",
        json={"name": "Renamed"},
        headers=auth_headers(member),
    )
    assert response.status_code == 403

    response = await client.put(
        f"/api/workspaces/{workspace.id}",
        json={"name": "Renamed", "votingEnabled": True},
        headers=auth_headers(owner),
    )
    assert response.status_code == 200
    data = response.json()["workspace"]
    assert data["name"] == "Renamed"
    assert data["votingEnabled"] is True
    assert data["description"] == "Spring term"


@pytest.mark.asyncio
async def test_update_workspace_clears_description(
    client: AsyncClient, workspace: Workspace, owner: User
):
    response = await client.put(
        f"/api/workspaces/{workspace.id}",
        json={"description": None},
        headers=auth_headers(owner),
    )

    assert response.status_code == 200
    data = response.json()["workspace"]
    assert data["description"] is None
    assert data["name"] == "Class 5B"


@pytest.mark.asyncio
async def test_delete_workspace_owner_only(
    client: AsyncClient, async_session, workspace: Workspace, owner: User, session_maker
):
    admin = await create_user(async_session, "admin@example.com")
    await add_member(async_session, workspace, admin, role=MemberRole.ADMIN)

    response = await client.delete(
        f"/api/workspaces/{workspace.id}", headers=auth_headers(admin)
    )
    assert response.status_code == 403

    response = await client.delete(
        f"/api/workspaces/{workspace.id}", headers=auth_headers(owner)
    )
    assert response.status_code == 200

    async with session_maker() as session:
        assert await session.get(Workspace, workspace.id) is None
        remaining = await session.scalar(
            select(func.count(WorkspaceMember.id)).where(
                WorkspaceMember.workspace_id == workspace.id
            )
        )
        assert remaining == 0


@pytest.mark.asyncio
async def test_delete_workspace_removes_its_content(
    client: AsyncClient, async_session, workspace: Workspace, owner: User, member: User,
    session_maker,
):
    workspace.voting_enabled = True
    await async_session.commit()
    base = f"/api/workspaces/{workspace.id}"
    headers = auth_headers(owner)
    discipline = await client.post(
        f"{base}/disciplines", json={"name": "Maths"}, headers=headers
    )
    task = await client.post(
        f"{base}/tasks",
        json={
            "title": "Essay",
            "type": "TRABALHO",
            "dueDate": "2026-11-10T09:00:00Z",
            "disciplineId": discipline.json()["discipline"]["id"],
        },
        headers=headers,
    )
    await client.post(
        f"{base}/tasks/{task.json()['task']['id']}/complete",
        headers=auth_headers(member),
    )
    event = await client.post(
        f"{base}/events",
        json={"title": "Trip", "startDate": "2026-11-12T08:00:00Z"},
        headers=headers,
    )
    await client.post(
        f"{base}/events/{event.json()['event']['id']}/attendance",
        json={"status": "PRESENT"},
        headers=auth_headers(member),
    )
    vote = await client.post(
        f"{base}/votes", json={"title": "Snacks", "options": ["Fruit", "Cake"]},
        headers=headers,
    )
    await client.post(
        f"{base}/votes/{vote.json()['vote']['id']}/respond",
        json={"optionId": vote.json()["vote"]["options"][0]["id"]},
        headers=auth_headers(member),
    )

    response = await client.delete(base, headers=headers)

    assert response.status_code == 200
    async with session_maker() as session:
        for model in (
            Discipline, Task, TaskCompletion, Event, Attendance, Vote, VoteOption,
            VoteResponse,
        ):
            assert await session.scalar(select(func.count(model.id))) == 0, model


# --- Member tests ---


@pytest.mark.asyncio
async def test_list_members(
    client: AsyncClient, workspace: Workspace, owner: User, member: User, outsider
):
    response = await client.get(
        f"/api/workspaces/{workspace.id}/members", headers=auth_headers(member)
    )

    assert response.status_code == 200
    data = response.json()
    assert data["ownerId"] == owner.id
    # Join order
    assert [m["userId"] for m in data["members"]] == [owner.id, member.id]
    assert data["members"][1]["user"]["email"] == "member@example.com"

    response = await client.get(
        f"/api/workspaces/{workspace.id}/members", headers=auth_headers(outsider)
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_add_member(
    client: AsyncClient, workspace: Workspace, owner: User, outsider: User
):
    response = await client.post(
        f"/api/workspaces/{workspace.id}/members",
        json={"email": outsider.email},
        headers=auth_headers(owner),
    )

    assert response.status_code == 201
    data = response.json()["member"]
    assert data["userId"] == outsider.id
    assert data["role"] == "USER"

    duplicate = await client.post(
        f"/api/workspaces/{workspace.id}/members",
        json={"email": outsider.email},
        headers=auth_headers(owner),
    )
    assert duplicate.status_code == 400


@pytest.mark.asyncio
async def test_add_member_unknown_user(
    client: AsyncClient, workspace: Workspace, owner: User
):
    response = await client.post(
        f"/api/workspaces/{workspace.id}/members",
        json={"email": "nobody@example.com"},
        headers=auth_headers(owner),
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_add_member_requires_admin(
    client: AsyncClient, workspace: Workspace, member: User, outsider: User
):
    response = await client.post(
        f"/api/workspaces/{workspace.id}/members",
        json={"email": outsider.email},
        headers=auth_headers(member),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_update_member_role(
    client: AsyncClient, async_session, workspace: Workspace, owner: User, member: User
):
    membership = await _member_id(async_session, workspace.id, member.id)

    response = await client.put(
        f"/api/workspaces/{workspace.id}/members/{membership}",
        json={"role": "ADMIN"},
        headers=auth_headers(owner),
    )

    assert response.status_code == 200
    assert response.json()["member"]["role"] == "ADMIN"


@pytest.mark.asyncio
async def test_owner_row_cannot_be_changed_or_removed(
    client: AsyncClient, async_session, workspace: Workspace, owner: User
):
    admin = await create_user(async_session, "admin@example.com")
    await add_member(async_session, workspace, admin, role=MemberRole.ADMIN)
    owner_row = await _member_id(async_session, workspace.id, owner.id)

    response = await client.put(
        f"/api/workspaces/{workspace.id}/members/{owner_row}",
        json={"role": "USER"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 400

    response = await client.delete(
        f"/api/workspaces/{workspace.id}/members/{owner_row}",
        headers=auth_headers(admin),
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_member_not_in_workspace(
    client: AsyncClient, async_session, workspace: Workspace, owner: User
):
    other_owner = await create_user(async_session, "other@example.com")
    other = Workspace(name="Other class", owner_id=other_owner.id)
    async_session.add(other)
    await async_session.commit()
    foreign_row = await add_member(async_session, other, other_owner)

    response = await client.delete(
        f"/api/workspaces/{workspace.id}/members/{foreign_row.id}",
        headers=auth_headers(owner),
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_remove_member(
    client: AsyncClient,
    async_session,
    workspace: Workspace,
    owner: User,
    member: User,
    session_maker,
):
    other = await create_user(async_session, "other@example.com")
    other_row = await add_member(async_session, workspace, other)
    member_row = await _member_id(async_session, workspace.id, member.id)

    # A plain member can't remove someone else...
    response = await client.delete(
        f"/api/workspaces/{workspace.id}/members/{other_row.id}",
        headers=auth_headers(member),
    )
    assert response.status_code == 403

    # ...but can leave
    response = await client.delete(
        f"/api/workspaces/{workspace.id}/members/{member_row}",
        headers=auth_headers(member),
    )
    assert response.status_code == 200
    assert await _member_row(session_maker, workspace.id, member.id) is None

    response = await client.delete(
        f"/api/workspaces/{workspace.id}/members/{other_row.id}",
        headers=auth_headers(owner),
    )
    assert response.status_code == 200
    assert await _member_row(session_maker, workspace.id, other.id) is None


async def _member_id(session, workspace_id: str, user_id: str) -> str:
    result = await session.execute(
        select(WorkspaceMember.id).where(
            WorkspaceMember.workspace_id == workspace_id,
            WorkspaceMember.user_id == user_id,
        )
    )
    return result.scalar_one()
