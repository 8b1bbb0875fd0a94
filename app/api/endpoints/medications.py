import logging
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile
from starlette import status

from app.core.deps import get_current_admin, get_current_staff, get_current_user, get_service
from app.models.user import User
from app.schemas.medication import PrescriptionCheckResponse, StockUpdateRequest
from app.services.medication_service import MedicationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/medications", tags=["Medications"])


# -------------------------------------------------
# CATALOG (ANY SIGNED-IN USER)
# -------------------------------------------------
@router.get("")
async def list_medications(
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    search: str | None = None,
    category: str | None = None,
    requires_prescription: bool | None = None,
    pharmacy_id: UUID | None = None,
    current_user: User = Depends(get_current_user),
    medication_service: MedicationService = Depends(get_service(MedicationService)),
):
    """
    Paginated catalog. Admins also see out-of-stock medications.
    """
    return await medication_service.list_medications(
        page=page,
        limit=limit,
        search=search,
        category=category,
        requires_prescription=requires_prescription,
        pharmacy_id=pharmacy_id,
        viewer=current_user,
    )


@router.get("/{medication_id}")
async def get_medication(
    medication_id: UUID,
    current_user: User = Depends(get_current_user),
    medication_service: MedicationService = Depends(get_service(MedicationService)),
):
    return await medication_service.get_medication(medication_id, viewer=current_user)


@router.get("/{medication_id}/prescription-check", response_model=PrescriptionCheckResponse)
async def prescription_check(
    medication_id: UUID,
    current_user: User = Depends(get_current_user),
    medication_service: MedicationService = Depends(get_service(MedicationService)),
):
    return await medication_service.prescription_check(medication_id)


# -------------------------------------------------
# MANAGEMENT (ADMIN)
# -------------------------------------------------
@router.post("", status_code=status.HTTP_201_CREATED)
async def create_medication(
    name: str = Form(..., min_length=1, max_length=255),
    price: Decimal = Form(..., gt=0),
    stock_quantity: int = Form(..., ge=0),
    category: str | None = Form(None),
    dosage: str | None = Form(None),
    description: str | None = Form(None),
    requires_prescription: bool = Form(False),
    pharmacy_id: UUID | None = Form(None),
    image: UploadFile | None = File(None),
    admin: User = Depends(get_current_admin),
    medication_service: MedicationService = Depends(get_service(MedicationService)),
):
    data = {
        "name": name.strip(),
        "price": price,
        "stock_quantity": stock_quantity,
        "category": category,
        "dosage": dosage,
        "description": description,
        "requires_prescription": requires_prescription,
        "pharmacy_id": pharmacy_id,
    }
    return await medication_service.create_medication(data=data, image=image, admin=admin)


@router.put("/{medication_id}")
async def update_medication(
    medication_id: UUID,
    name: str | None = Form(None, min_length=1, max_length=255),
    price: Decimal | None = Form(None, gt=0),
    stock_quantity: int | None = Form(None, ge=0),
    category: str | None = Form(None),
    dosage: str | None = Form(None),
    description: str | None = Form(None),
    requires_prescription: bool | None = Form(None),
    pharmacy_id: UUID | None = Form(None),
    image: UploadFile | None = File(None),
    admin: User = Depends(get_current_admin),
    medication_service: MedicationService = Depends(get_service(MedicationService)),
):
    """
    Partial update; only the fields sent are changed.
    """
    data = {
        "name": name.strip() if name else None,
        "price": price,
        "stock_quantity": stock_quantity,
        "category": category,
        "dosage": dosage,
        "description": description,
        "requires_prescription": requires_prescription,
        "pharmacy_id": pharmacy_id,
    }
    return await medication_service.update_medication(
        medication_id, data=data, image=image, admin=admin
    )


@router.delete("/{medication_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_medication(
    medication_id: UUID,
    admin: User = Depends(get_current_admin),
    medication_service: MedicationService = Depends(get_service(MedicationService)),
):
    await medication_service.delete_medication(medication_id, admin=admin)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{medication_id}/stock")
async def update_stock(
    medication_id: UUID,
    stock_in: StockUpdateRequest,
    current_user: User = Depends(get_current_staff),
    medication_service: MedicationService = Depends(get_service(MedicationService)),
):
    return await medication_service.update_stock(medication_id, stock_in, user=current_user)
