from fastapi.testclient import TestClient


def _me(client: TestClient, headers: dict[str, str]) -> dict:
    rows = client.get("/api/users", headers=headers).json()
    assert len(rows) == 1
    return rows[0]


def test_list_returns_only_the_caller(client: TestClient, login) -> None:
    alice = login("alice@x.com")
    login("bob@x.com")
    rows = client.get("/api/users", headers=alice).json()
    assert [row["email"] for row in rows] == ["alice@x.com"]
    assert "passwordHash" not in rows[0]


def test_other_users_are_not_found(client: TestClient, login) -> None:
    alice = login("alice@x.com")
    bob = login("bob@x.com")
    bob_id = _me(client, bob)["id"]
    assert client.get(f"/api/users/{bob_id}", headers=alice).status_code == 404
    assert client.put(f"/api/users/{bob_id}", json={"email": "mine@x.com"}, headers=alice).status_code == 404
    assert client.delete(f"/api/users/{bob_id}", headers=alice).status_code == 404
    assert client.get(f"/api/users/{bob_id}", headers=bob).status_code == 200


def test_update_email_and_password(client: TestClient, login) -> None:
    headers = login("alice@x.com", "old-secret")
    me = _me(client, headers)
    res = client.put(f"/api/users/{me['id']}", json={"email": "alice@y.com", "password": "new-secret"}, headers=headers)
    assert res.status_code == 200
    assert res.json()["email"] == "alice@y.com"
    assert res.json()["createdAt"] == me["createdAt"]

    assert client.post("/api/auth/login", json={"email": "alice@x.com", "password": "old-secret"}).status_code == 401
    assert client.post("/api/auth/login", json={"email": "alice@y.com", "password": "old-secret"}).status_code == 401
    assert client.post("/api/auth/login", json={"email": "alice@y.com", "password": "new-secret"}).status_code == 200


def test_update_to_taken_email_conflicts(client: TestClient, login) -> None:
    alice = login("alice@x.com")
    login("bob@x.com")
    me = _me(client, alice)
    res = client.put(f"/api/users/{me['id']}", json={"email": "BOB@x.com"}, headers=alice)
    assert res.status_code == 409
    assert _me(client, alice)["email"] == "alice@x.com"


def test_update_without_fields(client: TestClient, login) -> None:
    headers = login()
    me = _me(client, headers)
    res = client.put(f"/api/users/{me['id']}", json={}, headers=headers)
    assert res.status_code == 400
    assert _me(client, headers) == me


def test_delete_self(client: TestClient, login) -> None:
    headers = login("alice@x.com", "secret")
    me = _me(client, headers)
    assert client.delete(f"/api/users/{me['id']}", headers=headers).status_code == 204
    assert client.get(f"/api/users/{me['id']}", headers=headers).status_code == 404
    assert client.delete(f"/api/users/{me['id']}", headers=headers).status_code == 404
    assert client.post("/api/auth/login", json={"email": "alice@x.com", "password": "secret"}).status_code == 401


def test_update_with_overlong_password_keeps_old_one(client: TestClient, login) -> None:
    headers = login("alice@x.com", "secret")
    me = _me(client, headers)
    res = client.put(f"/api/users/{me['id']}", json={"password": "x" * 73}, headers=headers)
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"
    assert client.post("/api/auth/login", json={"email": "alice@x.com", "password": "secret"}).status_code == 200


def test_timestamps_are_utc(client: TestClient, login) -> None:
    me = _me(client, login())
    for key in ("createdAt", "updatedAt"):
        assert me[key].endswith("Z") or me[key].endswith("+00:00"), me[key]


def test_out_of_range_user_id_is_not_found(client: TestClient, login) -> None:
    headers = login()
    assert client.get("/api/users/99999999999999999999", headers=headers).status_code == 404
    assert client.delete("/api/users/99999999999999999999", headers=headers).status_code == 404
