"""Tests for department and category endpoints."""

import pytest
from sqlalchemy import select

from medstock.models.audit_log import ActivityType, AuditLog


@pytest.mark.parametrize("resource, label", [("departments", "Department"), ("categories", "Category")])
class TestReferenceData:
    def test_admin_create_and_list(self, client, admin_headers, auth_headers, resource, label, db_session):
        response = client.post(
            f"/api/{resource}/", json={"name": "Oncology", "description": "Cancer care"}, headers=admin_headers
        )
        assert response.status_code == 201
        assert response.json()["name"] == "Oncology"

        listing = client.get(f"/api/{resource}/", headers=auth_headers).json()
        assert [row["name"] for row in listing] == ["Oncology"]

        entry = db_session.scalars(select(AuditLog)).one()
        assert entry.activity_type == ActivityType.CREATED
        assert entry.item_id is None
        assert entry.details == f"Created {label.lower()}: Oncology"

    def test_staff_cannot_write(self, client, auth_headers, resource, label):
        response = client.post(f"/api/{resource}/", json={"name": "Oncology"}, headers=auth_headers)
        assert response.status_code == 403

    def test_duplicate_name(self, client, admin_headers, resource, label):
        client.post(f"/api/{resource}/", json={"name": "Oncology"}, headers=admin_headers)
        response = client.post(f"/api/{resource}/", json={"name": "oncology"}, headers=admin_headers)
        assert response.status_code == 422
        assert response.json()["detail"] == f"{label} 'oncology' already exists"

    def test_update(self, client, admin_headers, resource, label):
        row_id = client.post(f"/api/{resource}/", json={"name": "Onco"}, headers=admin_headers).json()["id"]
        response = client.put(f"/api/{resource}/{row_id}", json={"name": "Oncology"}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["name"] == "Oncology"

    def test_get_missing(self, client, auth_headers, resource, label):
        response = client.get(f"/api/{resource}/9999", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["detail"] == f"{label} not found"

    def test_delete_unused(self, client, admin_headers, resource, label):
        row_id = client.post(f"/api/{resource}/", json={"name": "Oncology"}, headers=admin_headers).json()["id"]
        assert client.delete(f"/api/{resource}/{row_id}", headers=admin_headers).status_code == 204
        assert client.get(f"/api/{resource}/{row_id}", headers=admin_headers).status_code == 404


class TestDeleteInUse:
    def test_department_in_use(self, client, admin_headers, make_item, department):
        make_item()
        response = client.delete(f"/api/departments/{department.id}", headers=admin_headers)
        assert response.status_code == 409
        assert "cannot be deleted" in response.json()["detail"]

    def test_category_in_use(self, client, admin_headers, make_item, category):
        make_item()
        response = client.delete(f"/api/categories/{category.id}", headers=admin_headers)
        assert response.status_code == 409
