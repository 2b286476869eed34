"""
School Directory Backend — School Service (Upsert Workflow)
=============================================================

What:  Coordinates the Blob Store and the Record Store for every school
       mutation, plus the read paths.
Why:   The two stores are independent and non-transactional; the order of
       side effects and the cleanup rules live here and nowhere else.
Who:   Called by routes/schools.py.

Create:
    ┌──────────┐    ┌──────────────┐    ┌──────────────┐
    │ Validate │───▶│ Store image  │───▶│ Insert+commit│
    └──────────┘    └──────────────┘    └──────┬───────┘
                                               │ fails
                                        ┌──────▼───────┐
                                        │ Discard image│ (logged, never raised)
                                        └──────────────┘

Update (with image):  lookup → discard old image → store new image → commit
Update (no image):    lookup → commit field changes
Delete:               lookup → delete+commit row → discard image

    Only the create path compensates. Cleanup of stale images on update and
    delete is best-effort; its outcome never changes the response.
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from school_directory.exceptions import NotFoundError, RecordStoreError
from school_directory.models.school import School
from school_directory.schemas.school import (
    MessageResponse,
    SchoolCreate,
    SchoolResponse,
    SchoolUpdate,
)
from school_directory.services.file_service import FileService, ImageUpload, file_service

logger = logging.getLogger(__name__)


def _db_details(e: Exception) -> str:
    return f"{type(e).__name__}: {getattr(e, 'orig', None) or e}"


class SchoolService:
    """
    Business logic for school records.

    Stateless apart from the FileService it is built with; the database
    session is passed to every call.
    """

    def __init__(self, files: FileService):
        self.files = files

    # ── Reads ─────────────────────────────────────────────────────────────

    async def list_schools(self, db: AsyncSession) -> List[SchoolResponse]:
        try:
            result = await db.execute(select(School).order_by(School.id))
            schools = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing schools: %s", str(e), exc_info=True)
            raise RecordStoreError(
                message="Failed to fetch schools",
                details=_db_details(e),
            )
        return [SchoolResponse.model_validate(school) for school in schools]

    async def get_school(self, db: AsyncSession, school_id: int) -> SchoolResponse:
        school = await self._load(db, school_id)
        return SchoolResponse.model_validate(school)

    async def _load(self, db: AsyncSession, school_id: int) -> School:
        try:
            result = await db.execute(select(School).where(School.id == school_id))
            school = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching school %s: %s", school_id, str(e))
            raise RecordStoreError(
                message="Failed to fetch school",
                details=_db_details(e),
                context={"school_id": school_id},
            )
        if school is None:
            raise NotFoundError(resource="School", resource_id=str(school_id))
        return school

    # ── Create ────────────────────────────────────────────────────────────

    async def create_school(
        self,
        db: AsyncSession,
        fields: SchoolCreate,
        image: Optional[ImageUpload],
    ) -> MessageResponse:
        """
        Store the image, then insert the row; remove the image if the insert fails.

        Raises:
            ValidationError: image missing, wrong type or too large (no writes made)
            StorageWriteError: the image could not be stored (no row written)
            RecordStoreError: the insert/commit failed (image discarded)
        """
        image = self.files.validate_image(image, required=True)

        stored = await self.files.store(image)

        school = School(
            name=fields.name,
            address=fields.address,
            city=fields.city,
            state=fields.state,
            contact=fields.contact_as_int(),
            email_id=str(fields.email_id),
            image=stored.url,
            image_key=stored.key,
        )
        try:
            db.add(school)
            await db.commit()
        except SQLAlchemyError as e:
            logger.error("Database error creating school: %s", str(e))
            await db.rollback()
            await self.files.discard(stored.key, reason="create compensation")
            raise RecordStoreError(
                message="Failed to save school to database",
                details=_db_details(e),
            )

        logger.info("School %s created with image %s", school.id, stored.key)
        return MessageResponse(message="School added successfully", id=school.id)

    # ── Update ────────────────────────────────────────────────────────────

    async def update_school(
        self,
        db: AsyncSession,
        school_id: int,
        fields: SchoolUpdate,
        image: Optional[ImageUpload] = None,
    ) -> MessageResponse:
        """
        Apply supplied fields and, optionally, replace the image.

        Raises:
            ValidationError: replacement image invalid (no writes made)
            NotFoundError: no school with this id
            StorageWriteError: the replacement image could not be stored
            RecordStoreError: the update/commit failed
        """
        image = self.files.validate_image(image, required=False)
        changes = fields.changes()

        school = await self._load(db, school_id)

        if image is not None:
            await self.files.discard(school.image_key, reason=f"replace image of school {school_id}")
            stored = await self.files.store(image)
            changes["image"] = stored.url
            changes["image_key"] = stored.key

        for attr, value in changes.items():
            setattr(school, attr, value)

        try:
            await db.commit()
        except SQLAlchemyError as e:
            logger.error("Database error updating school %s: %s", school_id, str(e))
            await db.rollback()
            raise RecordStoreError(
                message="Failed to update school",
                details=_db_details(e),
                context={"school_id": school_id},
            )

        logger.info("School %s updated: %s", school_id, sorted(changes))
        return MessageResponse(message="School updated successfully")

    # ── Delete ────────────────────────────────────────────────────────────

    async def delete_school(
        self,
        db: AsyncSession,
        school_id: int,
        image_path: Optional[str] = None,
    ) -> MessageResponse:
        """
        Delete the row, then clean up its image.

        The image is located by the persisted key. `image_path` is what the
        client believes the reference is; a mismatch is only logged.

        Raises:
            NotFoundError: no school with this id
            RecordStoreError: the delete/commit failed (image left in place)
        """
        school = await self._load(db, school_id)
        image_key = school.image_key

        if image_path and image_path != school.image:
            logger.warning(
                "Delete of school %s: imagePath %r does not match stored image %r; using stored key",
                school_id, image_path, school.image,
            )

        try:
            await db.delete(school)
            await db.commit()
        except SQLAlchemyError as e:
            logger.error("Database error deleting school %s: %s", school_id, str(e))
            await db.rollback()
            raise RecordStoreError(
                message="Failed to delete school",
                details=_db_details(e),
                context={"school_id": school_id},
            )

        await self.files.discard(image_key, reason=f"delete school {school_id}")
        logger.info("School %s deleted", school_id)
        return MessageResponse(message="School deleted successfully")


school_service = SchoolService(file_service)
