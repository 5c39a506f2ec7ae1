"""Tests for the merged calendar view."""

import pytest
from httpx import AsyncClient

from schoolcal_api.models import User, Workspace

from tests.conftest import auth_headers


async def _post(client: AsyncClient, url: str, admin: User, body: dict) -> dict:
    response = await client.post(url, json=body, headers=auth_headers(admin))
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
async def timeline(client: AsyncClient, workspace: Workspace, owner: User) -> dict:
    base = f"/api/workspaces/{workspace.id}"
    maths = (
        await _post(client, f"{base}/disciplines", owner, {"name": "Maths", "color": "#112233"})
    )["discipline"]
    essay = (
        await _post(
            client,
            f"{base}/tasks",
            owner,
            {
                "title": "Essay",
                "type": "TRABALHO",
                "dueDate": "2026-11-10T09:00:00Z",
                "disciplineId": maths["id"],
            },
        )
    )["task"]
    trip = (
        await _post(
            client,
            f"{base}/events",
            owner,
            {"title": "Trip", "startDate": "2026-11-10T10:00:00Z", "location": "Zoo"},
        )
    )["event"]
    assembly = (
        await _post(
            client,
            f"{base}/events",
            owner,
            {"title": "Assembly", "startDate": "2026-11-02T08:00:00Z"},
        )
    )["event"]
    quiz = (
        await _post(
            client,
            f"{base}/tasks",
            owner,
            {"title": "Quiz", "type": "TESTE", "dueDate": "2026-12-15T09:00:00Z"},
        )
    )["task"]
    return {"essay": essay, "trip": trip, "assembly": assembly, "quiz": quiz}


@pytest.mark.asyncio
async def test_calendar_merges_events_and_tasks_by_date(
    client: AsyncClient, workspace: Workspace, member: User, timeline: dict
):
    response = await client.get(
        f"/api/workspaces/{workspace.id}/calendar", headers=auth_headers(member)
    )

    assert response.status_code == 200
    data = response.json()
    assert [(item["type"], item["title"]) for item in data["items"]] == [
        ("event", "Assembly"),
        ("task", "Essay"),
        ("event", "Trip"),
        ("task", "Quiz"),
    ]
    assert data["eventCount"] == 2
    assert data["taskCount"] == 2

    essay = data["items"][1]
    assert essay["taskType"] == "TRABALHO"
    assert essay["discipline"]["name"] == "Maths"
    assert essay["isCompleted"] is False
    assert essay["location"] is None

    trip = data["items"][2]
    assert trip["location"] == "Zoo"
    assert trip["attendanceCount"] == 0
    assert trip["taskType"] is None


@pytest.mark.asyncio
async def test_calendar_window(
    client: AsyncClient, workspace: Workspace, member: User, timeline: dict
):
    response = await client.get(
        f"/api/workspaces/{workspace.id}/calendar",
        params={"startDate": "2026-11-05T00:00:00Z", "endDate": "2026-11-30T00:00:00Z"},
        headers=auth_headers(member),
    )

    assert response.status_code == 200
    assert [item["title"] for item in response.json()["items"]] == ["Essay", "Trip"]


@pytest.mark.asyncio
async def test_calendar_shows_callers_completion(
    client: AsyncClient, workspace: Workspace, member: User, timeline: dict
):
    await client.post(
        f"/api/workspaces/{workspace.id}/tasks/{timeline['essay']['id']}/complete",
        headers=auth_headers(member),
    )

    response = await client.get(
        f"/api/workspaces/{workspace.id}/calendar", headers=auth_headers(member)
    )

    done = {
        item["title"]: item["isCompleted"]
        for item in response.json()["items"]
        if item["type"] == "task"
    }
    assert done == {"Essay": True, "Quiz": False}


@pytest.mark.asyncio
async def test_calendar_requires_membership(
    client: AsyncClient, workspace: Workspace, outsider: User
):
    response = await client.get(
        f"/api/workspaces/{workspace.id}/calendar", headers=auth_headers(outsider)
    )

    assert response.status_code == 403
    assert response.json() == {"error": "Access denied"}
