# tests/test_categories.py
"""Tests for category endpoints and permission sets."""

import pytest
from fastapi import status

from parley.core.constants import AccessLevel
from parley.models import Category
from parley.services.permissions import Decision, PermissionEvaluator


def test_list_hides_unreadable_categories(
    client, auth_token, moderator_auth_token, category, staff_category
):
    slugs = [c["slug"] for c in client.get("/api/v1/categories/").json()]
    assert slugs == ["general"]

    slugs = [c["slug"] for c in client.get("/api/v1/categories/", headers=auth_token).json()]
    assert slugs == ["general"]

    response = client.get("/api/v1/categories/", headers=moderator_auth_token)
    listed = {c["slug"]: c for c in response.json()}
    assert set(listed) == {"general", "staff-lounge"}
    assert listed["staff-lounge"]["read_restricted"] is True
    assert listed["general"]["permissions"] == {"everyone": AccessLevel.FULL}


def test_staff_creates_category(client, db_session, moderator_auth_token):
    response = client.post(
        "/api/v1/categories/",
        json={
            "name": "Site Feedback",
            "permissions": {"everyone": 2, "staff": 1},
        },
        headers=moderator_auth_token,
    )
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["slug"] == "site-feedback"
    assert data["permissions"] == {"everyone": 2, "staff": 1}
    assert data["read_restricted"] is False

    category = db_session.get(Category, data["id"])
    assert category.permission_map == {
        "everyone": AccessLevel.CREATE_POST,
        "staff": AccessLevel.FULL,
    }


def test_regular_user_cannot_create_category(client, auth_token):
    response = client.post("/api/v1/categories/", json={"name": "Mine"}, headers=auth_token)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_category_management_is_decided_by_evaluator(
    client, mocker, moderator_auth_token, category
):
    check = mocker.patch.object(
        PermissionEvaluator, "_check_manage_category", return_value=Decision.denied()
    )
    response = client.put(
        f"/api/v1/categories/{category.id}/permissions",
        json={"permissions": {"staff": 1}},
        headers=moderator_auth_token,
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["detail"] == "Only staff can manage categories"
    check.assert_called_once()


def test_duplicate_category(client, admin_auth_token, category):
    response = client.post(
        "/api/v1/categories/",
        json={"name": "Another", "slug": "general"},
        headers=admin_auth_token,
    )
    assert response.status_code == status.HTTP_409_CONFLICT


def test_unknown_group_is_rejected(client, admin_auth_token):
    response = client.post(
        "/api/v1/categories/",
        json={"name": "Odd", "permissions": {"trust_level_4": 1}},
        headers=admin_auth_token,
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_replace_permissions(client, db_session, admin_auth_token, auth_token, category):
    response = client.put(
        f"/api/v1/categories/{category.id}/permissions",
        json={"permissions": {"staff": 1}},
        headers=admin_auth_token,
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["permissions"] == {"staff": 1}

    response = client.post(
        "/api/v1/posts/",
        json={
            "raw": "this is the test body of the post",
            "title": "this is the test title for the topic",
            "category": category.id,
        },
        headers=auth_token,
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_replace_permissions_requires_staff(client, auth_token, category):
    response = client.put(
        f"/api/v1/categories/{category.id}/permissions",
        json={"permissions": {"everyone": 3}},
        headers=auth_token,
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_replace_permissions_missing_category(client, admin_auth_token):
    response = client.put(
        "/api/v1/categories/999/permissions",
        json={"permissions": {"everyone": 3}},
        headers=admin_auth_token,
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND


class TestSetPermissions:
    def test_accepts_names_and_numbers(self):
        category = Category(name="Mixed", slug="mixed")
        category.set_permissions(everyone="readonly", staff=1)
        assert category.permission_map == {
            "everyone": AccessLevel.READONLY,
            "staff": AccessLevel.FULL,
        }

    def test_empty_set_means_open(self):
        category = Category(name="Open", slug="open")
        category.set_permissions()
        assert category.permission_map == {"everyone": AccessLevel.FULL}
        assert not category.read_restricted

    @pytest.mark.parametrize("levels", [{"nobody": 1}, {"everyone": "superuser"}, {"everyone": 7}])
    def test_rejects_unknown_values(self, levels):
        with pytest.raises(ValueError):
            Category(name="Bad", slug="bad").set_permissions(**levels)
