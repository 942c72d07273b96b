from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient


def test_put_then_get_profile(client: TestClient) -> None:
    user_id = uuid4()
    resp = client.put(f"/v1/profiles/{user_id}", json={"name": "  Ada Lovelace "})
    assert resp.status_code == 200
    assert resp.json() == {"userId": str(user_id), "name": "Ada Lovelace"}

    resp = client.get(f"/v1/profiles/{user_id}")
    assert resp.status_code == 200
    assert resp.json()["name"] == "Ada Lovelace"


def test_put_profile_overwrites_name(client: TestClient) -> None:
    user_id = uuid4()
    client.put(f"/v1/profiles/{user_id}", json={"name": "Ada"})
    client.put(f"/v1/profiles/{user_id}", json={"name": "Ada King"})
    assert client.get(f"/v1/profiles/{user_id}").json()["name"] == "Ada King"


def test_put_profile_rejects_blank_name(client: TestClient) -> None:
    resp = client.put(f"/v1/profiles/{uuid4()}", json={"name": "   "})
    assert resp.status_code == 400
    assert resp.json() == {"error": "name must not be empty"}


def test_get_missing_profile_is_404(client: TestClient) -> None:
    resp = client.get(f"/v1/profiles/{uuid4()}")
    assert resp.status_code == 404
    assert resp.json() == {"error": "User profile not found"}


def test_invalid_user_id_is_400(client: TestClient) -> None:
    resp = client.get("/v1/profiles/not-a-uuid")
    assert resp.status_code == 400
    assert "error" in resp.json()
