"""HTTP tests for item, participation and progress endpoints."""

from fastapi.testclient import TestClient

from commons_stage.models import PersonalGoal
from commons_stage.models.enums import ParticipationType


def _items(community_id: int) -> str:
    return f"/api/v1/communities/{community_id}/items"


def test_member_cannot_create_item_in_restricted_community(
    client: TestClient, community, other_auth_token
) -> None:
    client.post(f"/api/v1/communities/{community.id}/join", headers=other_auth_token)

    response = client.post(
        _items(community.id),
        json={"type": "goal", "title": "Read more"},
        headers=other_auth_token,
    )

    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"
    assert response.json()["detail"] == "only admins can add goals here"


def test_admin_creates_item_and_reads_progress(client: TestClient, community, auth_token) -> None:
    created = client.post(
        _items(community.id),
        json={"type": "habit", "title": "Stretch", "frequency": "daily"},
        headers=auth_token,
    )

    assert created.status_code == 201
    item = created.json()["item"]
    assert item["status"] == "approved"
    assert item["participation_type"] == "individual"
    assert item["participant_count"] == 1

    progress = client.get(f"{_items(community.id)}/{item['id']}/progress", headers=auth_token)
    assert progress.status_code == 200
    assert progress.json() == {"personal": 0, "community": 0}

    listed = client.get(_items(community.id), headers=auth_token).json()
    assert [row["id"] for row in listed] == [item["id"]]


def test_suggest_then_approve(
    client: TestClient, community, other_user, make_goal, auth_token, other_auth_token
) -> None:
    client.post(f"/api/v1/communities/{community.id}/join", headers=other_auth_token)
    goal = make_goal(other_user, title="Learn guitar")

    suggested = client.post(
        f"{_items(community.id)}/suggest",
        json={"type": "goal", "source_id": goal.id},
        headers=other_auth_token,
    )
    assert suggested.status_code == 201
    item = suggested.json()["item"]
    assert item["status"] == "pending"
    assert item["title"] == "Learn guitar"

    assert client.get(f"{_items(community.id)}/pending", headers=other_auth_token).status_code == 403
    pending = client.get(f"{_items(community.id)}/pending", headers=auth_token).json()
    assert [row["id"] for row in pending] == [item["id"]]

    approved = client.patch(
        f"{_items(community.id)}/{item['id']}/approve",
        json={"approve": True},
        headers=auth_token,
    )
    assert approved.status_code == 200
    assert approved.json()["item"]["status"] == "approved"


def test_join_leave_and_joined_feed(
    client: TestClient, community, make_item, auth_token, other_auth_token
) -> None:
    item = make_item(community, title="Drink water")
    client.post(f"/api/v1/communities/{community.id}/join", headers=other_auth_token)

    joined = client.post(f"{_items(community.id)}/{item.id}/join", headers=other_auth_token)
    assert joined.status_code == 200
    assert joined.json()["participation"]["status"] == "joined"

    feed = client.get("/api/v1/communities/items/joined", headers=other_auth_token).json()
    assert [row["title"] for row in feed] == ["Drink water"]
    assert feed[0]["community_name"] == community.name

    left = client.post(f"{_items(community.id)}/{item.id}/leave", headers=other_auth_token)
    assert left.json() == {"ok": True}
    assert client.get("/api/v1/communities/items/joined", headers=other_auth_token).json() == []


def test_leave_with_delete_option_removes_personal_copy(
    client: TestClient, db_session, community, make_item, other_user, other_auth_token
) -> None:
    item = make_item(community, title="Journal")
    client.post(f"/api/v1/communities/{community.id}/join", headers=other_auth_token)
    client.post(f"{_items(community.id)}/{item.id}/join", headers=other_auth_token)
    assert db_session.query(PersonalGoal).filter_by(user_id=other_user.id).count() == 1

    left = client.post(
        f"{_items(community.id)}/{item.id}/leave",
        json={"delete_personal_copy": True},
        headers=other_auth_token,
    )

    assert left.status_code == 200
    assert db_session.query(PersonalGoal).filter_by(user_id=other_user.id).count() == 0


def test_joined_feed_rejects_non_positive_limit(client: TestClient, auth_token) -> None:
    response = client.get("/api/v1/communities/items/joined?limit=-1", headers=auth_token)

    assert response.status_code == 422


def test_activity_feed_lists_item_events(
    client: TestClient, community, make_item, auth_token, other_auth_token
) -> None:
    item = make_item(community, title="Walk")
    client.post(f"/api/v1/communities/{community.id}/join", headers=other_auth_token)
    client.post(f"{_items(community.id)}/{item.id}/join", headers=other_auth_token)
    client.post(f"{_items(community.id)}/{item.id}/leave", headers=other_auth_token)

    response = client.get(f"/api/v1/communities/{community.id}/activity", headers=auth_token)

    assert response.status_code == 200
    rows = response.json()
    assert [row["type"] for row in rows] == ["item_left", "item_joined", "item_added"]
    assert {row["title"] for row in rows} == {"Walk"}
    assert all(row["item_id"] == item.id for row in rows)


def test_contribution_endpoint(client: TestClient, make_community, make_item, auth_token) -> None:
    community = make_community(only_admins_can_add_items=False)
    item = make_item(community, participation_type=ParticipationType.COLLABORATIVE)

    recorded = client.put(
        f"{_items(community.id)}/{item.id}/contribution",
        json={"percent": 60},
        headers=auth_token,
    )
    assert recorded.status_code == 200
    assert recorded.json()["participation"]["progress_percent"] == 60

    progress = client.get(f"{_items(community.id)}/{item.id}/progress", headers=auth_token).json()
    assert progress == {"personal": 60, "community": 60}

    invalid = client.put(
        f"{_items(community.id)}/{item.id}/contribution",
        json={"percent": 101},
        headers=auth_token,
    )
    assert invalid.status_code == 422


def test_remove_item(client: TestClient, community, make_item, auth_token) -> None:
    item = make_item(community)

    response = client.delete(f"{_items(community.id)}/{item.id}", headers=auth_token)

    assert response.json() == {"ok": True}
    assert client.get(_items(community.id), headers=auth_token).json() == []
    missing = client.get(f"{_items(community.id)}/{item.id}/progress", headers=auth_token)
    assert missing.status_code == 404


def test_system_endpoints(client: TestClient) -> None:
    health = client.get("/api/v1/system/health")
    assert health.status_code == 200
    assert health.json()["components"]["database"] == "healthy"

    config = client.get("/api/v1/system/config").json()
    assert config["communities"]["member_cap"] == 100
    assert "secret_key" not in str(config)

    assert client.get("/health").json() == {"status": "ok"}
