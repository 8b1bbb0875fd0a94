from uuid import UUID
from fastapi import APIRouter, Depends, Query, Request
from starlette import status

from app.core.deps import get_service
from app.core.limiter import limiter
from app.schemas.medication import PrescriptionCheckResponse
from app.schemas.order import OrderRead
from app.schemas.pharmacy import PharmacyPublic
from app.schemas.user import GuestInitiateRequest, GuestInitiateResponse
from app.services.admin_service import AdminService
from app.services.auth_service import AuthService
from app.services.medication_service import MedicationService
from app.services.order_service import OrderService

router = APIRouter(prefix="/guest", tags=["Guest"])


@router.post("/initiate", status_code=status.HTTP_200_OK, response_model=GuestInitiateResponse)
@limiter.limit("20/hour")
async def initiate_guest_checkout(
    request: Request,
    guest_in: GuestInitiateRequest,
    auth_service: AuthService = Depends(get_service(AuthService)),
):
    """
    Issues a 24h guest token. Registered emails are told to log in instead.
    """
    return await auth_service.initiate_guest_checkout(guest_in)


@router.get("/pharmacies", response_model=list[PharmacyPublic])
async def list_pharmacies(admin_service: AdminService = Depends(get_service(AdminService))):
    return await admin_service.list_pharmacies()


@router.get("/order/{confirmation_code}", response_model=OrderRead)
async def track_guest_order(
    confirmation_code: str,
    order_service: OrderService = Depends(get_service(OrderService)),
):
    """
    Guest order lookup. Orders placed from an account are not visible here.
    """
    return await order_service.get_by_confirmation_code(confirmation_code, guest_only=True)


@router.get("/medications")
async def browse_medications(
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    search: str | None = None,
    category: str | None = None,
    requires_prescription: bool | None = None,
    pharmacy_id: UUID | None = None,
    medication_service: MedicationService = Depends(get_service(MedicationService)),
):
    return await medication_service.list_medications(
        page=page,
        limit=limit,
        search=search,
        category=category,
        requires_prescription=requires_prescription,
        pharmacy_id=pharmacy_id,
        viewer=None,
    )


@router.get("/medications/{medication_id}")
async def get_medication(
    medication_id: UUID,
    medication_service: MedicationService = Depends(get_service(MedicationService)),
):
    return await medication_service.get_medication(medication_id, viewer=None, in_stock_only=True)


@router.get("/medications/{medication_id}/prescription-check", response_model=PrescriptionCheckResponse)
async def prescription_check(
    medication_id: UUID,
    medication_service: MedicationService = Depends(get_service(MedicationService)),
):
    return await medication_service.prescription_check(medication_id, in_stock_only=True)
