import uuid
from urllib.parse import quote

import pytest
from fastapi import status

from app.core.security import hash_password
from app.db.enums import UserRole
from app.models.user import User
from app.storage.local_storage import LocalStorage

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n<< /Root 1 0 R >>\n%%EOF\n"


async def _upload(client, headers, medication_id, filename="prescription.pdf", content=PDF_BYTES):
    return await client.post(
        "/api/prescriptions/upload",
        data={"medication_id": str(medication_id)},
        files={"file": (filename, content, "application/pdf")},
        headers=headers,
    )


@pytest.fixture
async def other_customer_token(client, db_session):
    db_session.add(
        User(
            full_name="Bola Customer",
            email="bola@example.com",
            hashed_password=hash_password("Str0ng!Pass"),
            role=UserRole.CUSTOMER,
            is_active=True,
            is_email_verified=True,
        )
    )
    await db_session.commit()
    response = await client.post(
        "/api/auth/login", json={"email": "bola@example.com", "password": "Str0ng!Pass"}
    )
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.mark.asyncio
async def test_upload_prescription_success(client, customer_token, test_customer, rx_medication, mock_storage):
    customer_id = str(test_customer.id)

    response = await _upload(client, customer_token, rx_medication.id)

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["status"] == "pending"
    assert data["user_id"] == customer_id
    assert data["medication_name"] == "Amoxicillin 500mg"
    assert data["content_type"] == "application/pdf"

    [key] = mock_storage.files
    assert key.startswith("prescriptions/")
    assert key.endswith(".pdf")


async def test_upload_rules(client, customer_token, otc_medication, rx_medication):
    unknown = await _upload(client, customer_token, uuid.uuid4())
    assert unknown.status_code == status.HTTP_404_NOT_FOUND

    not_needed = await _upload(client, customer_token, otc_medication.id)
    assert not_needed.status_code == status.HTTP_400_BAD_REQUEST
    assert not_needed.json()["message"] == "This medication does not require a prescription"

    not_a_pdf = await _upload(client, customer_token, rx_medication.id, content=b"plain text, not a scan")
    assert not_a_pdf.status_code == status.HTTP_415_UNSUPPORTED_MEDIA_TYPE

    wrong_extension = await _upload(client, customer_token, rx_medication.id, filename="scan.png")
    assert wrong_extension.status_code == status.HTTP_400_BAD_REQUEST

    empty = await _upload(client, customer_token, rx_medication.id, content=b"")
    assert empty.status_code == status.HTTP_400_BAD_REQUEST


async def test_only_customers_upload(client, admin_token, rx_medication):
    response = await _upload(client, admin_token, rx_medication.id)

    assert response.status_code == status.HTTP_403_FORBIDDEN


async def test_my_prescriptions(client, customer_token, other_customer_token, rx_medication):
    await _upload(client, customer_token, rx_medication.id)
    await _upload(client, other_customer_token, rx_medication.id)

    response = await client.get("/api/prescriptions/my", headers=customer_token)

    assert response.status_code == status.HTTP_200_OK
    assert len(response.json()) == 1
    assert response.json()[0]["medication_name"] == "Amoxicillin 500mg"


async def test_admin_lists_and_filters(client, customer_token, admin_token, rx_medication):
    await _upload(client, customer_token, rx_medication.id)

    all_rx = await client.get("/api/prescriptions/all", headers=admin_token)
    assert all_rx.status_code == status.HTTP_200_OK
    assert all_rx.json()[0]["customer_email"] == "ada@example.com"

    approved = await client.get(
        "/api/prescriptions/all", params={"status": "approved"}, headers=admin_token
    )
    assert approved.json() == []

    forbidden = await client.get("/api/prescriptions/all", headers=customer_token)
    assert forbidden.status_code == status.HTTP_403_FORBIDDEN


async def test_review_happens_once(
    client, customer_token, admin_token, rx_medication, mock_notification
):
    uploaded = await _upload(client, customer_token, rx_medication.id)
    prescription_id = uploaded.json()["id"]

    approved = await client.put(
        f"/api/prescriptions/{prescription_id}/status",
        json={"status": "approved", "notes": "Valid until March"},
        headers=admin_token,
    )
    assert approved.status_code == status.HTTP_200_OK
    body = approved.json()
    assert body["status"] == "approved"
    assert body["reviewer_name"] == "Admin User"
    assert body["reviewed_at"] is not None

    mock_notification.notify.assert_awaited_once()
    assert mock_notification.notify.await_args.kwargs["email"] == "ada@example.com"

    again = await client.put(
        f"/api/prescriptions/{prescription_id}/status",
        json={"status": "rejected"},
        headers=admin_token,
    )
    assert again.status_code == status.HTTP_400_BAD_REQUEST
    assert again.json()["message"] == "Prescription already reviewed"

    detail = await client.get(f"/api/prescriptions/{prescription_id}", headers=admin_token)
    assert detail.json()["status"] == "approved"


async def test_review_rejects_pending_and_unknown(client, customer_token, admin_token, rx_medication):
    uploaded = await _upload(client, customer_token, rx_medication.id)

    pending = await client.put(
        f"/api/prescriptions/{uploaded.json()['id']}/status",
        json={"status": "pending"},
        headers=admin_token,
    )
    assert pending.status_code == status.HTTP_400_BAD_REQUEST

    unknown = await client.put(
        f"/api/prescriptions/{uuid.uuid4()}/status",
        json={"status": "approved"},
        headers=admin_token,
    )
    assert unknown.status_code == status.HTTP_404_NOT_FOUND


async def test_file_access_owner_or_admin(
    client, customer_token, other_customer_token, admin_token, rx_medication
):
    uploaded = await _upload(client, customer_token, rx_medication.id, filename="scan.pdf")
    prescription_id = uploaded.json()["id"]

    view = await client.get(f"/api/prescriptions/file/{prescription_id}/view", headers=customer_token)
    assert view.status_code == status.HTTP_200_OK
    assert view.content == PDF_BYTES
    assert view.headers["content-type"] == "application/pdf"
    assert view.headers["content-disposition"].startswith("inline")

    download = await client.get(
        f"/api/prescriptions/file/{prescription_id}/download", headers=admin_token
    )
    assert download.status_code == status.HTTP_200_OK
    assert download.headers["content-disposition"] == 'attachment; filename="scan.pdf"'

    stranger = await client.get(
        f"/api/prescriptions/file/{prescription_id}/view", headers=other_customer_token
    )
    assert stranger.status_code == status.HTTP_403_FORBIDDEN


async def test_missing_stored_file(client, customer_token, approved_prescription, mock_storage):
    prescription_id = approved_prescription.id
    mock_storage.files.clear()

    response = await client.get(
        f"/api/prescriptions/file/{prescription_id}/view", headers=customer_token
    )

    assert response.status_code == status.HTTP_404_NOT_FOUND


async def test_non_ascii_filename_is_served(client, customer_token, rx_medication):
    filename = "处方.pdf"
    uploaded = await _upload(client, customer_token, rx_medication.id, filename=filename)
    assert uploaded.status_code == status.HTTP_201_CREATED
    prescription_id = uploaded.json()["id"]

    view = await client.get(f"/api/prescriptions/file/{prescription_id}/view", headers=customer_token)
    assert view.status_code == status.HTTP_200_OK
    assert view.headers["content-disposition"] == f"inline; filename*=utf-8''{quote(filename)}"

    download = await client.get(
        f"/api/prescriptions/file/{prescription_id}/download", headers=customer_token
    )
    assert download.status_code == status.HTTP_200_OK
    assert download.headers["content-disposition"].startswith("attachment; filename*=utf-8''")
    assert download.content == PDF_BYTES


async def test_stored_prescriptions_are_not_published(client):
    """Only medication images are reachable under /uploads."""
    storage = LocalStorage()
    await storage.upload("prescriptions/private-scan.pdf", PDF_BYTES, "application/pdf")
    await storage.upload("medications/med-public.pdf", PDF_BYTES, "application/pdf")

    private = await client.get("/uploads/prescriptions/private-scan.pdf")
    assert private.status_code == status.HTTP_404_NOT_FOUND

    public = await client.get(storage.generate_url("medications/med-public.pdf"))
    assert public.status_code == status.HTTP_200_OK
    assert public.content == PDF_BYTES
