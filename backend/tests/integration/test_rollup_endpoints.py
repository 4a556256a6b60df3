"""
Integration tests for rollup endpoints.

Tests the rollup API endpoints at /api/v1/rollups including:
- Creating rollups and listing source candidates
- Aggregated task listings with filters
- Invitations and responses
- Ownership transfer
"""

import pytest
from httpx import AsyncClient
from sqlmodel.ext.asyncio.session import AsyncSession

from clientboard.models.board import AccessLevel
from clientboard.models.rollup import RollupInvitationStatus
from clientboard.models.user import UserRole
from clientboard.testing import (
    create_board,
    create_board_access,
    create_client,
    create_invitation,
    create_rollup,
    create_task,
    create_team,
    create_user,
    get_auth_headers,
)


@pytest.mark.integration
async def test_create_and_read_rollup(client: AsyncClient, session: AsyncSession):
    user = await create_user(session)
    client_row = await create_client(session, name="Acme")
    first = await create_board(session, client_row, name="Web")
    second = await create_board(session, name="Ops")
    headers = get_auth_headers(user)

    created = await client.post(
        "/api/v1/rollups/",
        json={"name": "Everything", "source_board_ids": [first.id, second.id]},
        headers=headers,
    )
    rollup_id = created.json()["id"]
    listed = await client.get("/api/v1/rollups/", headers=headers)
    detail = await client.get(f"/api/v1/rollups/{rollup_id}", headers=headers)
    owners = await client.get(f"/api/v1/rollups/{rollup_id}/owners", headers=headers)

    assert created.status_code == 201
    assert listed.json() == [{"id": rollup_id, "name": "Everything", "source_count": 2}]
    assert [source["board_name"] for source in detail.json()["sources"]] == ["Web", "Ops"]
    assert detail.json()["sources"][0]["client_name"] == "Acme"
    assert [(owner["user_id"], owner["is_primary"]) for owner in owners.json()] == [(user.id, True)]


@pytest.mark.integration
async def test_create_rollup_needs_sources(client: AsyncClient, session: AsyncSession):
    user = await create_user(session)

    response = await client.post(
        "/api/v1/rollups/",
        json={"name": "Empty", "source_board_ids": []},
        headers=get_auth_headers(user),
    )

    assert response.status_code == 422


@pytest.mark.integration
async def test_available_sources_for_contractor(client: AsyncClient, session: AsyncSession):
    contractor = await create_user(session)
    team = await create_team(session, members=[contractor], exclude_from_public=True)
    granted = await create_board(session, name="Granted")
    await create_board(session, name="Hidden")
    await create_board_access(session, granted, team=team)

    response = await client.get("/api/v1/rollups/sources", headers=get_auth_headers(contractor))

    assert response.status_code == 200
    assert [board["board_name"] for board in response.json()] == ["Granted"]


@pytest.mark.integration
async def test_rollup_tasks_merge_sources(client: AsyncClient, session: AsyncSession):
    contractor = await create_user(session)
    await create_team(session, members=[contractor], exclude_from_public=True)
    owner = await create_user(session)
    first = await create_board(session, name="Web")
    second = await create_board(session, name="Ops")
    await create_board_access(session, first, user=contractor)
    await create_board_access(session, second, user=contractor, access_level=AccessLevel.assigned_only)
    web_task = await create_task(session, first, title="Hero image")
    ops_task = await create_task(session, second, title="Rotate keys", assignees=[contractor])
    await create_task(session, second, title="Someone else's")
    rollup = await create_rollup(session, owner, sources=[first, second])

    response = await client.get(
        f"/api/v1/rollups/{rollup.id}/tasks",
        params={"sort_field": "title", "sort_direction": "asc"},
        headers=get_auth_headers(contractor),
    )

    assert response.status_code == 200
    data = response.json()
    assert [(task["id"], task["board_name"]) for task in data["tasks"]] == [
        (web_task.id, "Web"),
        (ops_task.id, "Ops"),
    ]
    assert [option["id"] for option in data["status_options"]] == ["todo", "in-progress", "review", "complete"]


@pytest.mark.integration
async def test_rollup_tasks_fail_when_a_source_is_revoked(client: AsyncClient, session: AsyncSession):
    contractor = await create_user(session)
    await create_team(session, members=[contractor], exclude_from_public=True)
    first = await create_board(session)
    second = await create_board(session)
    await create_board_access(session, first, user=contractor)
    rollup = await create_rollup(session, await create_user(session), sources=[first, second])

    response = await client.get(f"/api/v1/rollups/{rollup.id}/tasks", headers=get_auth_headers(contractor))

    assert response.status_code == 403


@pytest.mark.integration
async def test_admin_cannot_read_unshared_rollup(client: AsyncClient, session: AsyncSession):
    admin = await create_user(session, role=UserRole.admin)
    rollup = await create_rollup(session, await create_user(session), sources=[await create_board(session)])

    detail = await client.get(f"/api/v1/rollups/{rollup.id}", headers=get_auth_headers(admin))
    tasks = await client.get(f"/api/v1/rollups/{rollup.id}/tasks", headers=get_auth_headers(admin))

    assert detail.status_code == 403
    assert tasks.status_code == 403


@pytest.mark.integration
async def test_invite_respond_and_list(client: AsyncClient, session: AsyncSession):
    owner = await create_user(session)
    guest = await create_user(session, name="Quinn")
    rollup = await create_rollup(session, owner, sources=[await create_board(session)])

    invited = await client.post(
        f"/api/v1/rollups/{rollup.id}/invitations/users",
        json={"user_id": guest.id},
        headers=get_auth_headers(owner),
    )
    invitation_id = invited.json()["invitation_id"]
    hidden = await client.get(f"/api/v1/rollups/{rollup.id}", headers=get_auth_headers(guest))
    responded = await client.post(
        f"/api/v1/rollups/invitations/{invitation_id}/respond",
        json={"accept": True},
        headers=get_auth_headers(guest),
    )
    visible = await client.get(f"/api/v1/rollups/{rollup.id}", headers=get_auth_headers(guest))
    invitations = await client.get(f"/api/v1/rollups/{rollup.id}/invitations", headers=get_auth_headers(guest))

    assert invited.status_code == 201
    assert hidden.status_code == 403
    assert responded.status_code == 204
    assert visible.status_code == 200
    [row] = invitations.json()
    assert (row["user_name"], row["status"]) == ("Quinn", "accepted")


@pytest.mark.integration
async def test_duplicate_and_foreign_invitations(client: AsyncClient, session: AsyncSession):
    owner = await create_user(session)
    guest = await create_user(session)
    other = await create_user(session)
    rollup = await create_rollup(session, owner)
    invitation = await create_invitation(session, rollup, owner, user=guest, status=RollupInvitationStatus.pending)

    duplicate = await client.post(
        f"/api/v1/rollups/{rollup.id}/invitations/users",
        json={"user_id": guest.id},
        headers=get_auth_headers(owner),
    )
    foreign = await client.post(
        f"/api/v1/rollups/invitations/{invitation.id}/respond",
        json={"accept": True},
        headers=get_auth_headers(other),
    )
    removed = await client.delete(f"/api/v1/rollups/invitations/{invitation.id}", headers=get_auth_headers(owner))

    assert duplicate.status_code == 422
    assert foreign.status_code == 403
    assert removed.status_code == 204


@pytest.mark.integration
async def test_share_with_all_users_is_admin_only(client: AsyncClient, session: AsyncSession):
    owner = await create_user(session)
    admin = await create_user(session, role=UserRole.admin)
    rollup = await create_rollup(session, owner)

    refused = await client.post(f"/api/v1/rollups/{rollup.id}/invitations/all", headers=get_auth_headers(owner))
    shared = await client.post(f"/api/v1/rollups/{rollup.id}/invitations/all", headers=get_auth_headers(admin))

    assert refused.status_code == 403
    assert shared.status_code == 201


@pytest.mark.integration
async def test_transfer_and_delete(client: AsyncClient, session: AsyncSession):
    owner = await create_user(session)
    successor = await create_user(session)
    rollup = await create_rollup(session, owner, sources=[await create_board(session)])

    transferred = await client.post(
        f"/api/v1/rollups/{rollup.id}/transfer",
        json={"new_owner_id": successor.id},
        headers=get_auth_headers(owner),
    )
    owners = await client.get(f"/api/v1/rollups/{rollup.id}/owners", headers=get_auth_headers(successor))
    deleted = await client.delete(f"/api/v1/rollups/{rollup.id}", headers=get_auth_headers(owner))
    after = await client.get(f"/api/v1/rollups/{rollup.id}", headers=get_auth_headers(owner))

    assert transferred.status_code == 204
    assert [(owner_row["user_id"], owner_row["is_primary"]) for owner_row in owners.json()] == [
        (successor.id, True),
        (owner.id, False),
    ]
    assert deleted.status_code == 204
    assert after.status_code == 403


@pytest.mark.integration
async def test_rollup_access_check(client: AsyncClient, session: AsyncSession):
    owner = await create_user(session)
    outsider = await create_user(session)
    rollup = await create_rollup(session, owner, sources=[await create_board(session)])

    allowed = await client.get(f"/api/v1/rollups/{rollup.id}/access", headers=get_auth_headers(owner))
    refused = await client.get(f"/api/v1/rollups/{rollup.id}/access", headers=get_auth_headers(outsider))
    missing = await client.get("/api/v1/rollups/99999/access", headers=get_auth_headers(owner))
    anonymous = await client.get(f"/api/v1/rollups/{rollup.id}/access")

    assert (allowed.status_code, allowed.json()) == (200, True)
    assert (refused.status_code, refused.json()) == (200, False)
    assert (missing.status_code, missing.json()) == (200, False)
    assert anonymous.status_code == 401


@pytest.mark.integration
async def test_private_rollup_management_matches_missing_rollup(client: AsyncClient, session: AsyncSession):
    owner = await create_user(session)
    outsider = await create_user(session)
    rollup = await create_rollup(session, owner, sources=[await create_board(session)])
    headers = get_auth_headers(outsider)

    async def attempts(rollup_id: int):
        return [
            await client.patch(f"/api/v1/rollups/{rollup_id}", json={"name": "Mine"}, headers=headers),
            await client.delete(f"/api/v1/rollups/{rollup_id}", headers=headers),
            await client.post(
                f"/api/v1/rollups/{rollup_id}/invitations/users",
                json={"user_id": outsider.id},
                headers=headers,
            ),
            await client.post(
                f"/api/v1/rollups/{rollup_id}/transfer",
                json={"new_owner_id": outsider.id},
                headers=headers,
            ),
        ]

    existing = await attempts(rollup.id)
    missing = await attempts(99999)

    assert [(response.status_code, response.json()) for response in existing] == [
        (response.status_code, response.json()) for response in missing
    ]
    assert {response.status_code for response in existing} == {403}
