import uuid

import pytest
from fastapi import status


@pytest.mark.parametrize(
    "method, endpoint, payload",
    [
        ("get", "/api/admin/dashboard/stats", None),
        ("get", "/api/admin/orders", None),
        ("get", "/api/admin/orders/{id}", None),
        ("patch", "/api/admin/orders/{id}/status", {"status": "cancelled"}),
        ("get", "/api/admin/users", None),
        ("patch", "/api/admin/users/{id}/role", {"role": "admin"}),
        ("post", "/api/admin/pharmacies", {"name": "Rogue Pharmacy"}),
        ("get", "/api/prescriptions/all", None),
        ("get", "/api/prescriptions/{id}", None),
        ("put", "/api/prescriptions/{id}/status", {"status": "approved"}),
        ("delete", "/api/medications/{id}", None),
    ],
)
async def test_admin_endpoints_access_denied_for_customers(
    client, customer_token, method, endpoint, payload
):
    """Verify that a CUSTOMER cannot access any admin routes."""
    url = endpoint.format(id=uuid.uuid4())

    kwargs = {"headers": customer_token}
    if payload and method not in ["get", "delete"]:
        kwargs["json"] = payload

    func = getattr(client, method)
    response = await func(url, **kwargs)

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["message"] == "Admin access required"


@pytest.mark.parametrize(
    "method, endpoint",
    [
        ("get", "/api/admin/dashboard/stats"),
        ("patch", "/api/admin/users/{id}/role"),
    ],
)
async def test_pharmacists_are_not_admins(client, pharmacist_token, method, endpoint):
    url = endpoint.format(id=uuid.uuid4())
    kwargs = {"headers": pharmacist_token}
    if method == "patch":
        kwargs["json"] = {"role": "admin"}

    response = await getattr(client, method)(url, **kwargs)

    assert response.status_code == status.HTTP_403_FORBIDDEN


async def test_admin_routes_require_a_token(client):
    response = await client.get("/api/admin/dashboard/stats")

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
