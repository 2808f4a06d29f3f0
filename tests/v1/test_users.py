"""Tests for user account endpoints."""

from unittest.mock import patch

import pytest
from fastapi import status
from sqlalchemy.exc import OperationalError

from usermanager.models import Role
from usermanager.repositories.user_repo import UserRepository


def test_get_user_by_id(client, test_user) -> None:
    response = client.get(f"/api/v1/users/{test_user.id}")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["message"] == f"There is user with ID {test_user.id}"
    user = data["user"]
    assert user["user_name"] == "testuser"
    assert user["role"] == "user"
    assert user["rating"] == 0
    assert user["votes"] == []
    assert "password_hash" not in user


def test_get_unknown_user(client) -> None:
    response = client.get("/api/v1/users/99999")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["code"] == "USER_NOT_FOUND"


def test_get_me(client, auth_token, test_user) -> None:
    response = client.get("/api/v1/users/me", headers=auth_token)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["user"]["id"] == test_user.id


class TestListUsers:
    def test_plain_user_is_forbidden(self, client, auth_token) -> None:
        response = client.get("/api/v1/users", headers=auth_token)
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["code"] == "WRONG_ROLE"

    def test_requires_authentication(self, client) -> None:
        response = client.get("/api/v1/users")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_moderator_pages_with_links(
        self, client, moderator_user, moderator_auth_token, make_user
    ) -> None:
        for _ in range(4):
            make_user()

        response = client.get(
            "/api/v1/users",
            params={"limit": 2, "page": 2},
            headers=moderator_auth_token,
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["message"] == "Hello, moderator. You are in the restricted zone."
        users = data["users"]
        assert users["total_rows"] == 5
        assert users["total_pages"] == 3
        assert users["sort"] == "id desc"
        assert users["first_page"] == "/api/v1/users?limit=2&page=1&sort=id+desc"
        assert users["last_page"] == "/api/v1/users?limit=2&page=3&sort=id+desc"
        assert users["previous_page"] == "/api/v1/users?limit=2&page=1&sort=id+desc"
        assert users["next_page"] == "/api/v1/users?limit=2&page=3&sort=id+desc"
        assert (users["from_row"], users["to_row"]) == (3, 4)
        ids = [row["id"] for row in users["rows"]]
        assert ids == sorted(ids, reverse=True)

    def test_next_page_link_is_followable(
        self, client, moderator_user, moderator_auth_token, make_user
    ) -> None:
        for _ in range(2):
            make_user()
        first = client.get(
            "/api/v1/users",
            params={"limit": 2, "sort": "user_name asc"},
            headers=moderator_auth_token,
        ).json()["users"]

        response = client.get(first["next_page"], headers=moderator_auth_token)

        assert response.status_code == status.HTTP_200_OK
        second = response.json()["users"]
        assert second["page"] == 2
        assert second["sort"] == "user_name asc"
        assert second["rows"][0]["user_name"] > first["rows"][-1]["user_name"]

    def test_default_page_size(self, client, admin_auth_token, make_user) -> None:
        for _ in range(6):
            make_user()

        response = client.get("/api/v1/users", headers=admin_auth_token)

        users = response.json()["users"]
        assert users["limit"] == 5
        assert len(users["rows"]) == 5
        assert users["previous_page"] is None

    def test_sort_by_rating(self, client, admin_auth_token, make_user) -> None:
        make_user("lowrated", rating=-3)
        make_user("highrated", rating=7)

        response = client.get(
            "/api/v1/users", params={"sort": "rating desc"}, headers=admin_auth_token
        )

        rows = response.json()["users"]["rows"]
        assert rows[0]["user_name"] == "highrated"
        assert rows[-1]["user_name"] == "lowrated"

    @pytest.mark.parametrize(
        "params", [{"sort": "password_hash"}, {"limit": 0}, {"limit": 500}, {"page": 0}]
    )
    def test_invalid_pagination(self, client, admin_auth_token, params) -> None:
        response = client.get("/api/v1/users", params=params, headers=admin_auth_token)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["code"] == "INVALID_PAGINATION"


class TestUpdateUser:
    def test_update_me(self, client, auth_token, test_user) -> None:
        response = client.patch(
            "/api/v1/users/me",
            json={"first_name": "Changed", "last_name": None},
            headers=auth_token,
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["message"] == f"There is updated user with id: {test_user.id}"
        assert data["user"]["first_name"] == "Changed"
        assert data["user"]["last_name"] == "User"

    def test_update_me_new_password(self, client, auth_token, test_user) -> None:
        response = client.patch(
            "/api/v1/users/me", json={"password": "N3w!secret"}, headers=auth_token
        )
        assert response.status_code == status.HTTP_200_OK

        sign_in = client.post(
            "/api/v1/auth/sign-in", json={"user_name": "testuser", "password": "N3w!secret"}
        )
        assert sign_in.status_code == status.HTTP_200_OK

    def test_weak_password_rejected(self, client, auth_token) -> None:
        response = client.patch("/api/v1/users/me", json={"password": "weak"}, headers=auth_token)
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_user_cannot_promote_self(self, client, auth_token) -> None:
        response = client.patch("/api/v1/users/me", json={"role": "admin"}, headers=auth_token)
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_user_cannot_update_other(self, client, auth_token, other_user) -> None:
        response = client.patch(
            f"/api/v1/users/{other_user.id}", json={"first_name": "Hacked"}, headers=auth_token
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_admin_updates_other(self, client, admin_auth_token, other_user) -> None:
        response = client.patch(
            f"/api/v1/users/{other_user.id}",
            json={"role": Role.MODERATOR.value, "first_name": "Promoted"},
            headers=admin_auth_token,
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["user"]["role"] == "moderator"
        assert response.json()["user"]["first_name"] == "Promoted"

    def test_rename_to_taken_username(self, client, auth_token, other_user) -> None:
        response = client.patch(
            "/api/v1/users/me", json={"user_name": "otheruser"}, headers=auth_token
        )
        assert response.status_code == status.HTTP_409_CONFLICT


class TestDeleteUser:
    def test_delete_me(self, client, auth_token, test_user) -> None:
        response = client.delete("/api/v1/users/me", headers=auth_token)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["message"] == f"User with id: {test_user.id} is deleted"
        assert client.get(f"/api/v1/users/{test_user.id}").status_code == 404
        assert client.get("/api/v1/users/me", headers=auth_token).status_code == 401

    def test_plain_user_cannot_delete_other(self, client, auth_token, other_user) -> None:
        response = client.delete(f"/api/v1/users/{other_user.id}", headers=auth_token)
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_moderator_cannot_delete_other(
        self, client, moderator_auth_token, other_user
    ) -> None:
        response = client.delete(f"/api/v1/users/{other_user.id}", headers=moderator_auth_token)
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_admin_deletes_user(self, client, admin_auth_token, other_user) -> None:
        response = client.delete(f"/api/v1/users/{other_user.id}", headers=admin_auth_token)
        assert response.status_code == status.HTTP_200_OK
        assert client.get(f"/api/v1/users/{other_user.id}").status_code == 404

    def test_admin_cannot_delete_admin(
        self, client, admin_auth_token, make_user
    ) -> None:
        other_admin = make_user("otheradmin", role=Role.ADMIN)
        response = client.delete(f"/api/v1/users/{other_admin.id}", headers=admin_auth_token)
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["code"] == "ADMIN_NOT_DELETABLE"

    def test_admin_cannot_delete_self_by_id(self, client, admin_auth_token, admin_user) -> None:
        response = client.delete(f"/api/v1/users/{admin_user.id}", headers=admin_auth_token)
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["code"] == "ADMIN_NOT_DELETABLE"
        assert client.get(f"/api/v1/users/{admin_user.id}").status_code == 200

    def test_admin_can_delete_me(self, client, admin_auth_token, admin_user) -> None:
        response = client.delete("/api/v1/users/me", headers=admin_auth_token)
        assert response.status_code == status.HTTP_200_OK
        assert client.get(f"/api/v1/users/{admin_user.id}").status_code == 404

    def test_username_reusable_after_delete(self, client, auth_token) -> None:
        client.delete("/api/v1/users/me", headers=auth_token)

        response = client.post(
            "/api/v1/auth/sign-up",
            json={
                "user_name": "testuser",
                "first_name": "Second",
                "last_name": "Life",
                "password": "Str0ng!pw",
            },
        )
        assert response.status_code == status.HTTP_201_CREATED


def test_database_error_is_reported_as_persistence_failure(client, test_user) -> None:
    failure = OperationalError("SELECT", {}, Exception("db gone"))
    with patch.object(UserRepository, "get_by_id", side_effect=failure):
        response = client.get(f"/api/v1/users/{test_user.id}")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {
        "detail": "Could not persist changes",
        "code": "PERSISTENCE_FAILURE",
    }
