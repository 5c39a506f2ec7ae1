"""Tests for votes (polls)."""

from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from schoolcal_api.models import (
    Notification,
    NotificationType,
    User,
    Vote,
    VoteResponse,
    Workspace,
)
from schoolcal_api.models.base import utc_now

from tests.conftest import auth_headers


@pytest.fixture
async def voting_workspace(async_session, workspace: Workspace) -> Workspace:
    workspace.voting_enabled = True
    await async_session.commit()
    return workspace


async def _create_vote(
    client: AsyncClient, workspace: Workspace, admin: User, **overrides
) -> dict:
    body = {
        "title": "Where should the class trip go?",
        "options": ["Zoo", "Science museum", "Botanical garden"],
        **overrides,
    }
    response = await client.post(
        f"/api/workspaces/{workspace.id}/votes", json=body, headers=auth_headers(admin)
    )
    assert response.status_code == 201, response.text
    return response.json()["vote"]


@pytest.mark.asyncio
async def test_votes_need_voting_enabled(
    client: AsyncClient, workspace: Workspace, owner: User, member: User
):
    url = f"/api/workspaces/{workspace.id}/votes"

    listed = await client.get(url, headers=auth_headers(member))
    created = await client.post(
        url,
        json={"title": "Trip", "options": ["Zoo", "Museum"]},
        headers=auth_headers(owner),
    )

    for response in (listed, created):
        assert response.status_code == 400
        assert response.json() == {"error": "Voting is not enabled for this workspace"}


@pytest.mark.asyncio
async def test_create_vote_keeps_option_order(
    client: AsyncClient, voting_workspace: Workspace, owner: User
):
    vote = await _create_vote(client, voting_workspace, owner)

    assert [o["text"] for o in vote["options"]] == [
        "Zoo",
        "Science museum",
        "Botanical garden",
    ]
    assert all(o["count"] == 0 for o in vote["options"])
    assert vote["totalResponses"] == 0
    assert vote["isExpired"] is False
    assert vote["createdBy"] == {"id": owner.id, "name": "Olivia Owner"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "options",
    [["Only one"], ["Zoo", "   "], [f"Option {i}" for i in range(11)]],
)
async def test_create_vote_option_rules(
    client: AsyncClient, voting_workspace: Workspace, owner: User, options
):
    response = await client.post(
        f"/api/workspaces/{voting_workspace.id}/votes",
        json={"title": "Trip", "options": options},
        headers=auth_headers(owner),
    )

    assert response.status_code == 400
    assert response.json()["details"][0]["field"] == "options"


@pytest.mark.asyncio
async def test_member_cannot_create_vote(
    client: AsyncClient, voting_workspace: Workspace, member: User
):
    response = await client.post(
        f"/api/workspaces/{voting_workspace.id}/votes",
        json={"title": "Trip", "options": ["Zoo", "Museum"]},
        headers=auth_headers(member),
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_vote_notifies_other_members(
    client: AsyncClient,
    voting_workspace: Workspace,
    owner: User,
    member: User,
    session_maker,
):
    vote = await _create_vote(client, voting_workspace, owner)

    async with session_maker() as session:
        result = await session.execute(
            select(Notification).where(
                Notification.type == NotificationType.VOTE_CREATED
            )
        )
        notifications = list(result.scalars().all())
    assert [n.user_id for n in notifications] == [member.id]
    assert notifications[0].reference_id == vote["id"]


@pytest.mark.asyncio
async def test_respond_then_change(
    client: AsyncClient,
    voting_workspace: Workspace,
    owner: User,
    member: User,
    session_maker,
):
    vote = await _create_vote(client, voting_workspace, owner)
    zoo, museum = vote["options"][0], vote["options"][1]
    url = f"/api/workspaces/{voting_workspace.id}/votes/{vote['id']}"

    first = await client.post(
        f"{url}/respond", json={"optionId": zoo["id"]}, headers=auth_headers(member)
    )
    assert first.status_code == 200
    assert first.json()["message"] == "Vote submitted"
    assert first.json()["response"]["option"] == {"id": zoo["id"], "text": "Zoo"}

    second = await client.post(
        f"{url}/respond", json={"optionId": museum["id"]}, headers=auth_headers(member)
    )
    assert second.status_code == 200
    assert second.json()["message"] == "Vote changed"

    async with session_maker() as session:
        count = await session.scalar(
            select(func.count(VoteResponse.id)).where(
                VoteResponse.vote_id == vote["id"]
            )
        )
    assert count == 1

    detail = await client.get(url, headers=auth_headers(member))
    data = detail.json()
    assert data["userVotedOptionId"] == museum["id"]
    counts = {o["text"]: o["count"] for o in data["vote"]["options"]}
    assert counts == {"Zoo": 0, "Science museum": 1, "Botanical garden": 0}
    assert data["vote"]["options"][1]["voters"] == [
        {"id": member.id, "name": "Max Member"}
    ]


@pytest.mark.asyncio
async def test_respond_with_option_of_another_vote(
    client: AsyncClient, voting_workspace: Workspace, owner: User, member: User
):
    vote = await _create_vote(client, voting_workspace, owner)
    other = await _create_vote(client, voting_workspace, owner, title="Snacks")

    response = await client.post(
        f"/api/workspaces/{voting_workspace.id}/votes/{vote['id']}/respond",
        json={"optionId": other["options"][0]["id"]},
        headers=auth_headers(member),
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid option"}


@pytest.mark.asyncio
async def test_respond_to_expired_vote(
    client: AsyncClient,
    voting_workspace: Workspace,
    owner: User,
    member: User,
    session_maker,
):
    vote = await _create_vote(client, voting_workspace, owner)
    async with session_maker() as session:
        stored = await session.get(Vote, vote["id"])
        stored.expires_at = utc_now() - timedelta(minutes=1)
        await session.commit()

    response = await client.post(
        f"/api/workspaces/{voting_workspace.id}/votes/{vote['id']}/respond",
        json={"optionId": vote["options"][0]["id"]},
        headers=auth_headers(member),
    )

    assert response.status_code == 400
    assert response.json() == {"error": "This vote has expired"}


@pytest.mark.asyncio
async def test_disabling_voting_hides_votes_but_allows_delete(
    client: AsyncClient, voting_workspace: Workspace, owner: User, member: User
):
    vote = await _create_vote(client, voting_workspace, owner)
    await client.put(
        f"/api/workspaces/{voting_workspace.id}",
        json={"votingEnabled": False},
        headers=auth_headers(owner),
    )
    url = f"/api/workspaces/{voting_workspace.id}/votes/{vote['id']}"

    respond = await client.post(
        f"{url}/respond",
        json={"optionId": vote["options"][0]["id"]},
        headers=auth_headers(member),
    )
    assert respond.status_code == 400
    assert respond.json() == {"error": "Voting is not enabled for this workspace"}

    deleted = await client.delete(url, headers=auth_headers(owner))
    assert deleted.status_code == 200
    assert deleted.json() == {"message": "Vote deleted"}


@pytest.mark.asyncio
async def test_delete_vote_removes_options_and_responses(
    client: AsyncClient,
    voting_workspace: Workspace,
    owner: User,
    member: User,
    session_maker,
):
    vote = await _create_vote(client, voting_workspace, owner)
    url = f"/api/workspaces/{voting_workspace.id}/votes/{vote['id']}"
    await client.post(
        f"{url}/respond",
        json={"optionId": vote["options"][0]["id"]},
        headers=auth_headers(member),
    )

    response = await client.delete(url, headers=auth_headers(owner))

    assert response.status_code == 200
    async with session_maker() as session:
        assert await session.scalar(select(func.count(VoteResponse.id))) == 0
    missing = await client.get(url, headers=auth_headers(member))
    assert missing.status_code == 404
    assert missing.json() == {"error": "Vote not found"}


@pytest.mark.asyncio
async def test_list_votes_shows_callers_choice(
    client: AsyncClient, voting_workspace: Workspace, owner: User, member: User
):
    vote = await _create_vote(client, voting_workspace, owner)
    option_id = vote["options"][2]["id"]
    await client.post(
        f"/api/workspaces/{voting_workspace.id}/votes/{vote['id']}/respond",
        json={"optionId": option_id},
        headers=auth_headers(member),
    )

    mine = await client.get(
        f"/api/workspaces/{voting_workspace.id}/votes", headers=auth_headers(member)
    )
    theirs = await client.get(
        f"/api/workspaces/{voting_workspace.id}/votes", headers=auth_headers(owner)
    )

    assert mine.json()["votes"][0]["userVotedOptionId"] == option_id
    assert mine.json()["votes"][0]["totalResponses"] == 1
    assert theirs.json()["votes"][0]["userVotedOptionId"] is None
