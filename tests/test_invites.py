"""Tests for directed email invites."""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from schoolcal_api.models import (
    InviteStatus,
    Notification,
    NotificationType,
    User,
    Workspace,
    WorkspaceInvite,
)

from tests.conftest import auth_headers, create_user


async def _invite(client: AsyncClient, workspace: Workspace, admin: User, email: str):
    return await client.post(
        f"/api/workspaces/{workspace.id}/invites",
        json={"email": email},
        headers=auth_headers(admin),
    )


async def _notifications_for(session_maker, user_id: str) -> list[Notification]:
    async with session_maker() as session:
        result = await session.execute(
            select(Notification).where(Notification.user_id == user_id)
        )
        return list(result.scalars().all())


@pytest.mark.asyncio
async def test_invite_existing_user_creates_one_notification(
    client: AsyncClient, workspace: Workspace, owner: User, outsider: User, session_maker
):
    response = await _invite(client, workspace, owner, outsider.email)

    assert response.status_code == 201
    data = response.json()
    assert data["userExists"] is True
    assert data["invite"]["status"] == "PENDING"
    assert data["invite"]["invitedById"] == owner.id

    notifications = await _notifications_for(session_maker, outsider.id)
    assert len(notifications) == 1
    notification = notifications[0]
    assert notification.type == NotificationType.WORKSPACE_INVITE
    assert notification.reference_id == data["invite"]["id"]
    assert notification.read is False
    assert "PUSH" in notification.channels
    assert "Class 5B" in notification.message


@pytest.mark.asyncio
async def test_invite_unknown_email_has_no_notification(
    client: AsyncClient, workspace: Workspace, owner: User, session_maker
):
    response = await _invite(client, workspace, owner, "newcomer@example.com")

    assert response.status_code == 201
    assert response.json()["userExists"] is False

    async with session_maker() as session:
        count = len((await session.execute(select(Notification))).scalars().all())
    assert count == 0


@pytest.mark.asyncio
async def test_duplicate_pending_invite_rejected(
    client: AsyncClient, workspace: Workspace, owner: User
):
    assert (await _invite(client, workspace, owner, "x@example.com")).status_code == 201

    response = await _invite(client, workspace, owner, "x@example.com")

    assert response.status_code == 400
    assert response.json()["error"] == "An invite is already pending for this email"


@pytest.mark.asyncio
async def test_invite_existing_member_rejected(
    client: AsyncClient, workspace: Workspace, owner: User, member: User
):
    response = await _invite(client, workspace, owner, member.email)

    assert response.status_code == 400
    assert response.json()["error"] == "This user is already a member of the workspace"


@pytest.mark.asyncio
async def test_reinvite_after_decline_resets_to_pending(
    client: AsyncClient,
    async_session,
    workspace: Workspace,
    owner: User,
    outsider: User,
    session_maker,
):
    first = await _invite(client, workspace, owner, outsider.email)
    invite_id = first.json()["invite"]["id"]
    notification_id = (await _notifications_for(session_maker, outsider.id))[0].id

    decline = await client.post(
        f"/api/notifications/{notification_id}",
        json={"action": "decline"},
        headers=auth_headers(outsider),
    )
    assert decline.status_code == 200

    again = await _invite(client, workspace, owner, outsider.email)

    assert again.status_code == 201
    assert again.json()["invite"]["id"] == invite_id
    assert again.json()["invite"]["status"] == "PENDING"

    async with session_maker() as session:
        invites = (
            await session.execute(
                select(WorkspaceInvite).where(WorkspaceInvite.workspace_id == workspace.id)
            )
        ).scalars().all()
    assert [invite.status for invite in invites] == [InviteStatus.PENDING]


@pytest.mark.asyncio
async def test_invite_requires_admin(
    client: AsyncClient, workspace: Workspace, member: User, outsider: User
):
    response = await _invite(client, workspace, member, outsider.email)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_invite_rejects_malformed_email(
    client: AsyncClient, workspace: Workspace, owner: User
):
    response = await _invite(client, workspace, owner, "not-an-email")
    assert response.status_code == 400
    assert response.json()["details"][0]["field"] == "email"


@pytest.mark.asyncio
async def test_list_invites_newest_first(
    client: AsyncClient, workspace: Workspace, owner: User
):
    await _invite(client, workspace, owner, "first@example.com")
    await _invite(client, workspace, owner, "second@example.com")

    response = await client.get(
        f"/api/workspaces/{workspace.id}/invites", headers=auth_headers(owner)
    )

    assert response.status_code == 200
    emails = [invite["email"] for invite in response.json()["invites"]]
    assert emails == ["second@example.com", "first@example.com"]


@pytest.mark.asyncio
async def test_delete_invite(
    client: AsyncClient, async_session, workspace: Workspace, owner: User, session_maker
):
    invite_id = (await _invite(client, workspace, owner, "x@example.com")).json()[
        "invite"
    ]["id"]

    missing_id = await client.delete(
        f"/api/workspaces/{workspace.id}/invites", headers=auth_headers(owner)
    )
    assert missing_id.status_code == 400
    assert missing_id.json()["error"] == "Invite ID required"

    response = await client.delete(
        f"/api/workspaces/{workspace.id}/invites",
        params={"inviteId": invite_id},
        headers=auth_headers(owner),
    )
    assert response.status_code == 200

    async with session_maker() as session:
        assert await session.get(WorkspaceInvite, invite_id) is None


@pytest.mark.asyncio
async def test_delete_invite_from_other_workspace(
    client: AsyncClient, async_session, workspace: Workspace, owner: User
):
    other_owner = await create_user(async_session, "other@example.com")
    other = Workspace(name="Other class", owner_id=other_owner.id)
    async_session.add(other)
    await async_session.commit()
    invite_id = (await _invite(client, other, other_owner, "x@example.com")).json()[
        "invite"
    ]["id"]

    response = await client.delete(
        f"/api/workspaces/{workspace.id}/invites",
        params={"inviteId": invite_id},
        headers=auth_headers(owner),
    )
    assert response.status_code == 404
