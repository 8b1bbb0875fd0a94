import logging
import math
from uuid import UUID, uuid4

from fastapi import HTTPException, UploadFile, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud.medication import MedicationCRUD
from app.crud.pharmacy import PharmacyCRUD
from app.db.enums import UserRole
from app.models.medication import Medication
from app.models.user import User
from app.schemas.medication import (
    MedicationListResponse,
    MedicationPublicRead,
    MedicationRead,
    StockUpdateRequest,
)
from app.services.validation_service import (
    IMAGE_MAX_SIZE,
    IMAGE_MIME_TYPES,
    file_extension,
    validate_file_content,
)
from app.storage.base import StorageInterface

logger = logging.getLogger(__name__)

# Columns an admin may edit through the general update
UPDATABLE_FIELDS = {
    "name",
    "description",
    "category",
    "dosage",
    "price",
    "requires_prescription",
    "pharmacy_id",
}


class MedicationService:

    def __init__(self, session: AsyncSession, storage: StorageInterface):
        self.session = session
        self.storage = storage
        self.medication_crud = MedicationCRUD(session)
        self.pharmacy_crud = PharmacyCRUD(session)

    # SERIALIZATION
    def to_schema(self, medication: Medication, *, staff_view: bool):
        """Staff see pharmacy contact details, customers and guests do not."""
        schema = MedicationRead if staff_view else MedicationPublicRead
        image_url = (
            self.storage.generate_url(medication.image_key) if medication.image_key else None
        )
        return schema.model_validate(medication).model_copy(update={"image_url": image_url})

    # READS
    async def get_or_404(self, medication_id: UUID, *, in_stock_only: bool = False) -> Medication:
        medication = await self.medication_crud.get(medication_id)
        # The public catalog hides sold-out items entirely
        if not medication or (in_stock_only and medication.stock_quantity <= 0):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Medication not found",
            )
        return medication

    async def list_medications(
        self,
        *,
        page: int,
        limit: int,
        search: str | None,
        category: str | None,
        requires_prescription: bool | None,
        pharmacy_id: UUID | None,
        viewer: User | None,
    ) -> MedicationListResponse:
        is_admin = viewer is not None and viewer.role == UserRole.ADMIN
        staff_view = viewer is not None and viewer.role in (UserRole.ADMIN, UserRole.PHARMACIST)

        medications, total = await self.medication_crud.search(
            skip=(page - 1) * limit,
            limit=limit,
            search=search,
            category=category,
            requires_prescription=requires_prescription,
            pharmacy_id=pharmacy_id,
            in_stock_only=not is_admin,
        )

        return MedicationListResponse(
            medications=[self.to_schema(m, staff_view=staff_view) for m in medications],
            total_count=total,
            current_page=page,
            total_pages=math.ceil(total / limit) if total else 0,
        )

    async def get_medication(
        self, medication_id: UUID, *, viewer: User | None, in_stock_only: bool = False
    ):
        medication = await self.get_or_404(medication_id, in_stock_only=in_stock_only)

        staff_view = viewer is not None and viewer.role in (UserRole.ADMIN, UserRole.PHARMACIST)
        return self.to_schema(medication, staff_view=staff_view)

    async def prescription_check(self, medication_id: UUID, *, in_stock_only: bool = False) -> dict:
        medication = await self.get_or_404(medication_id, in_stock_only=in_stock_only)
        return {
            "medication_id": medication.id,
            "requires_prescription": medication.requires_prescription,
        }

    # WRITES
    async def _store_image(self, image: UploadFile) -> str:
        content_type = await validate_file_content(
            image, allowed_mime_types=IMAGE_MIME_TYPES, max_size=IMAGE_MAX_SIZE
        )
        key = f"medications/med-{uuid4()}{file_extension(image.filename)}"
        await self.storage.upload(key, await image.read(), content_type)
        return key

    async def _ensure_pharmacy(self, pharmacy_id: UUID) -> None:
        if not await self.pharmacy_crud.get_by_id(pharmacy_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Pharmacy not found",
            )

    async def create_medication(
        self,
        *,
        data: dict,
        image: UploadFile | None,
        admin: User,
    ) -> MedicationRead:
        """
        New stock starts out entirely online; in-person stock is set through the stock update.
        """
        pharmacy_id = data.pop("pharmacy_id", None) or admin.pharmacy_id
        if not pharmacy_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="pharmacy_id is required for admins without a pharmacy",
            )
        await self._ensure_pharmacy(pharmacy_id)

        stock_quantity = data.pop("stock_quantity")
        medication = Medication(
            **data,
            pharmacy_id=pharmacy_id,
            stock_quantity=stock_quantity,
            online_stock=stock_quantity,
            in_person_stock=0,
        )

        if image is not None:
            medication.image_key = await self._store_image(image)

        self.session.add(medication)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            logger.error(f"Medication creation failed: {e.orig}")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Medication could not be created with the given data",
            )

        logger.info(f"Medication created: {medication.id} ({medication.name}) by admin {admin.id}")
        return self.to_schema(await self.get_or_404(medication.id), staff_view=True)

    async def update_medication(
        self,
        medication_id: UUID,
        *,
        data: dict,
        image: UploadFile | None,
        admin: User,
    ) -> MedicationRead:
        medication = await self.get_or_404(medication_id)

        updates = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS and v is not None}
        stock_quantity = data.get("stock_quantity")

        if not updates and stock_quantity is None and image is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No valid fields to update",
            )

        if "pharmacy_id" in updates:
            await self._ensure_pharmacy(updates["pharmacy_id"])

        # A new total keeps the in-person count and moves the difference online
        if stock_quantity is not None and stock_quantity < medication.in_person_stock:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="stock_quantity cannot be lower than in_person_stock",
            )

        image_key = await self._store_image(image) if image is not None else None

        for field, value in updates.items():
            setattr(medication, field, value)

        if stock_quantity is not None:
            medication.online_stock = stock_quantity - medication.in_person_stock
            medication.stock_quantity = stock_quantity

        if image_key:
            medication.image_key = image_key

        await self.session.commit()
        logger.info(f"Medication {medication_id} updated by admin {admin.id}: {sorted(updates)}")
        return self.to_schema(await self.get_or_404(medication_id), staff_view=True)

    async def delete_medication(self, medication_id: UUID, *, admin: User) -> None:
        medication = await self.get_or_404(medication_id)

        if await self.medication_crud.is_ordered(medication_id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Medication has orders and cannot be deleted",
            )

        await self.session.delete(medication)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            logger.error(f"Medication delete failed for {medication_id}: {e.orig}")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Medication is still referenced and cannot be deleted",
            )

        logger.warning(f"AUDIT: Medication {medication_id} deleted by admin {admin.email}")

    async def update_stock(
        self,
        medication_id: UUID,
        stock_in: StockUpdateRequest,
        *,
        user: User,
    ) -> MedicationRead:
        """
        Sets the online and/or in-person counts; stock_quantity is always their sum.
        """
        medication = await self.get_or_404(medication_id)

        if user.role == UserRole.PHARMACIST and medication.pharmacy_id != user.pharmacy_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only manage stock for your own pharmacy",
            )

        if stock_in.online_stock is not None:
            medication.online_stock = stock_in.online_stock
        if stock_in.in_person_stock is not None:
            medication.in_person_stock = stock_in.in_person_stock
        medication.stock_quantity = medication.online_stock + medication.in_person_stock

        await self.session.commit()
        logger.info(
            f"Stock updated for {medication_id} by {user.role.value} {user.id}: "
            f"online={medication.online_stock} in_person={medication.in_person_stock}"
        )
        return self.to_schema(await self.get_or_404(medication_id), staff_view=True)
