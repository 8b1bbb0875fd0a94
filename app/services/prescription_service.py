import logging
from uuid import UUID, uuid4
from datetime import datetime, timezone
from fastapi import BackgroundTasks, HTTPException, UploadFile
from starlette import status
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.exceptions import NotAuthorized
from app.crud.medication import MedicationCRUD
from app.crud.prescription import PrescriptionCRUD
from app.db.enums import PrescriptionStatus, UserRole
from app.models.prescription import Prescription
from app.models.user import User
from app.services.notification.notification_service import NotificationService
from app.services.validation_service import file_extension, validate_file_content
from app.storage.base import StorageInterface

logger = logging.getLogger(__name__)

class PrescriptionService:
    def __init__(
        self,
        session: AsyncSession,
        notification_service: NotificationService,
        storage: StorageInterface,
    ):
        self.session = session
        self.storage = storage
        self.notification_service = notification_service
        self.prescription_crud = PrescriptionCRUD(session)
        self.medication_crud = MedicationCRUD(session)

    async def upload_prescription(
        self,
        *,
        file: UploadFile,
        user: User,
        medication_id: UUID,
    ) -> Prescription:
        medication = await self.medication_crud.get(medication_id)
        if not medication:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Medication not found")

        if not medication.requires_prescription:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="This medication does not require a prescription",
            )

        content_type = await validate_file_content(file)

        storage_key = f"prescriptions/{uuid4()}{file_extension(file.filename)}"
        file_bytes = await file.read()
        await self.storage.upload(storage_key, file_bytes, content_type)

        prescription = Prescription(
            user_id=user.id,
            medication_id=medication_id,
            file_path=storage_key,
            filename=file.filename,
            content_type=content_type,
            status=PrescriptionStatus.PENDING,
        )

        self.session.add(prescription)
        await self.session.commit()

        logger.info(f"Prescription {prescription.id} uploaded by user {user.id} for medication {medication_id}")
        return await self.get_prescription(prescription.id)

    async def get_prescription(self, prescription_id: UUID) -> Prescription:
        prescription = await self.prescription_crud.get(prescription_id)

        if not prescription:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Prescription not found")

        return prescription

    async def list_for_user(self, user_id: UUID):
        return await self.prescription_crud.list_for_user(user_id)

    async def list_all(self, prescription_status: PrescriptionStatus | None = None):
        return await self.prescription_crud.list_all(prescription_status)

    async def review(
        self,
        *,
        prescription_id: UUID,
        decision: PrescriptionStatus,
        notes: str | None,
        reviewer: User,
        background_tasks: BackgroundTasks
    ) -> Prescription:
        """
        The one-time pending -> approved|rejected transition.
        """
        prescription = await self.get_prescription(prescription_id)

        if prescription.status != PrescriptionStatus.PENDING:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Prescription already reviewed",
            )

        prescription.status = decision
        prescription.pharmacist_id = reviewer.id
        prescription.reviewed_at = datetime.now(timezone.utc)
        prescription.notes = notes

        await self.session.commit()
        prescription = await self.get_prescription(prescription_id)

        if decision == PrescriptionStatus.APPROVED:
            message = (
                f"Your prescription for {prescription.medication_name} has been approved. "
                "You can now add it to your cart."
            )
        else:
            message = f"Your prescription for {prescription.medication_name} was rejected."
            if notes:
                message += f" Reason: {notes}"

        background_tasks.add_task(
            self.notification_service.notify,
            email=prescription.customer_email,
            subject=f"Prescription {decision.value}",
            message=message,
        )

        logger.info(f"Prescription {prescription_id} {decision.value} by {reviewer.role.value} {reviewer.id}")
        return prescription

    async def get_file(self, *, prescription_id: UUID, user: User) -> tuple[Prescription, bytes]:
        """
        Owner or admin only.
        """
        prescription = await self.get_prescription(prescription_id)

        if user.role != UserRole.ADMIN and prescription.user_id != user.id:
            logger.warning(f"User {user.id} denied access to prescription file {prescription_id}")
            raise NotAuthorized("You do not have access to this prescription")

        try:
            content = await self.storage.read(prescription.file_path)
        except FileNotFoundError:
            logger.error(f"Prescription file missing in storage: {prescription.file_path}")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Prescription file not found")

        return prescription, content
