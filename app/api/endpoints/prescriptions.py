from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, Response, UploadFile
from starlette import status

from app.core.deps import get_current_admin, get_current_customer, get_current_user, get_service
from app.db.enums import PrescriptionStatus
from app.models.user import User
from app.schemas.prescription import PrescriptionAdminRead, PrescriptionRead, PrescriptionStatusUpdate
from app.services.prescription_service import PrescriptionService

router = APIRouter(prefix="/prescriptions", tags=["Prescriptions"])


# -------------------------------------------------
# UPLOAD PRESCRIPTION (CUSTOMER)
# -------------------------------------------------
@router.post("/upload", status_code=status.HTTP_201_CREATED, response_model=PrescriptionRead)
async def upload_prescription(
    medication_id: UUID = Form(...),
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_customer),
    prescription_service: PrescriptionService = Depends(get_service(PrescriptionService)),
):
    """
    Customer uploads a prescription (pdf, jpeg or png) for a medication.
    """
    return await prescription_service.upload_prescription(
        file=file,
        user=current_user,
        medication_id=medication_id,
    )


@router.get("/my", response_model=list[PrescriptionRead])
async def my_prescriptions(
    current_user: User = Depends(get_current_customer),
    prescription_service: PrescriptionService = Depends(get_service(PrescriptionService)),
):
    return await prescription_service.list_for_user(current_user.id)


# -------------------------------------------------
# REVIEW (ADMIN)
# -------------------------------------------------
@router.get("/all", response_model=list[PrescriptionAdminRead])
async def all_prescriptions(
    status_filter: PrescriptionStatus | None = Query(None, alias="status"),
    admin: User = Depends(get_current_admin),
    prescription_service: PrescriptionService = Depends(get_service(PrescriptionService)),
):
    return await prescription_service.list_all(status_filter)


@router.get("/{prescription_id}", response_model=PrescriptionAdminRead)
async def prescription_details(
    prescription_id: UUID,
    admin: User = Depends(get_current_admin),
    prescription_service: PrescriptionService = Depends(get_service(PrescriptionService)),
):
    return await prescription_service.get_prescription(prescription_id)


@router.put("/{prescription_id}/status", response_model=PrescriptionAdminRead)
async def review_prescription(
    prescription_id: UUID,
    body: PrescriptionStatusUpdate,
    background_tasks: BackgroundTasks,
    admin: User = Depends(get_current_admin),
    prescription_service: PrescriptionService = Depends(get_service(PrescriptionService)),
):
    """
    Approve or reject a pending prescription. The customer is emailed the outcome.
    """
    return await prescription_service.review(
        prescription_id=prescription_id,
        decision=body.status,
        notes=body.notes,
        reviewer=admin,
        background_tasks=background_tasks,
    )


# -------------------------------------------------
# FILE ACCESS (OWNER OR ADMIN)
# -------------------------------------------------
async def _file_response(
    prescription_id: UUID,
    user: User,
    prescription_service: PrescriptionService,
    disposition: str,
) -> Response:
    prescription, content = await prescription_service.get_file(
        prescription_id=prescription_id, user=user
    )
    # Same encoding rules as starlette.responses.FileResponse
    quoted = quote(prescription.filename)
    if quoted != prescription.filename:
        content_disposition = f"{disposition}; filename*=utf-8''{quoted}"
    else:
        content_disposition = f'{disposition}; filename="{prescription.filename}"'

    return Response(
        content=content,
        media_type=prescription.content_type,
        headers={"Content-Disposition": content_disposition},
    )


@router.get("/file/{prescription_id}/view")
async def view_prescription_file(
    prescription_id: UUID,
    current_user: User = Depends(get_current_user),
    prescription_service: PrescriptionService = Depends(get_service(PrescriptionService)),
):
    return await _file_response(prescription_id, current_user, prescription_service, "inline")


@router.get("/file/{prescription_id}/download")
async def download_prescription_file(
    prescription_id: UUID,
    current_user: User = Depends(get_current_user),
    prescription_service: PrescriptionService = Depends(get_service(PrescriptionService)),
):
    return await _file_response(prescription_id, current_user, prescription_service, "attachment")
