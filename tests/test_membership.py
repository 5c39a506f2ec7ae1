"""Tests for workspace role resolution."""

import pytest

from schoolcal_api.exceptions import Forbidden
from schoolcal_api.models import MemberRole, Workspace, WorkspaceRole
from schoolcal_api.services.membership import (
    get_workspace_role,
    is_admin,
    is_member,
    require_admin,
    require_member,
)

from tests.conftest import add_member, create_user


@pytest.fixture
async def rowless_workspace(async_session, owner) -> Workspace:
    """Workspace whose owner has no membership row."""
    workspace = Workspace(name="Owner only", owner_id=owner.id)
    async_session.add(workspace)
    await async_session.commit()
    await async_session.refresh(workspace)
    return workspace


@pytest.mark.asyncio
async def test_owner_is_admin_without_membership_row(
    async_session, owner, rowless_workspace
):
    assert await is_member(async_session, owner.id, rowless_workspace.id) is False
    assert await is_admin(async_session, owner.id, rowless_workspace.id) is True
    assert (
        await get_workspace_role(async_session, owner.id, rowless_workspace.id)
        == WorkspaceRole.OWNER
    )
    assert (
        await require_member(async_session, owner.id, rowless_workspace.id)
        == WorkspaceRole.OWNER
    )


@pytest.mark.asyncio
async def test_owner_role_beats_membership_row(async_session, owner, workspace):
    # The fixture gives the owner an ADMIN row; OWNER still wins
    assert (
        await get_workspace_role(async_session, owner.id, workspace.id)
        == WorkspaceRole.OWNER
    )


@pytest.mark.asyncio
async def test_member_roles(async_session, workspace, member):
    admin = await create_user(async_session, "admin@example.com")
    await add_member(async_session, workspace, admin, role=MemberRole.ADMIN)

    assert await get_workspace_role(async_session, member.id, workspace.id) == (
        WorkspaceRole.USER
    )
    assert await is_admin(async_session, member.id, workspace.id) is False
    assert await is_admin(async_session, admin.id, workspace.id) is True
    assert await require_admin(async_session, admin.id, workspace.id) == (
        WorkspaceRole.ADMIN
    )

    with pytest.raises(Forbidden) as exc_info:
        await require_admin(async_session, member.id, workspace.id)
    assert exc_info.value.message == "Admin access required"


@pytest.mark.asyncio
async def test_outsider_has_no_role(async_session, workspace, outsider):
    assert await is_member(async_session, outsider.id, workspace.id) is False
    assert await get_workspace_role(async_session, outsider.id, workspace.id) is None

    with pytest.raises(Forbidden) as exc_info:
        await require_member(async_session, outsider.id, workspace.id)
    assert exc_info.value.message == "Access denied"


@pytest.mark.asyncio
async def test_unknown_workspace(async_session, owner):
    assert await is_member(async_session, owner.id, "no-such-workspace") is False
    assert await is_admin(async_session, owner.id, "no-such-workspace") is False
    assert await get_workspace_role(async_session, owner.id, "no-such-workspace") is None
