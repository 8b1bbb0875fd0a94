from fastapi import APIRouter

from app.api.endpoints import admin, auth, cart, guest, medications, orders, prescriptions

router = APIRouter()

router.include_router(auth.router)
router.include_router(guest.router)

router.include_router(medications.router)
router.include_router(orders.router)
router.include_router(prescriptions.router)
router.include_router(cart.router)

router.include_router(admin.router)
