"""
School Directory Backend — School Route Handlers
==================================================

What:  GET/POST/PUT/DELETE /api/schools and the local image file route.
Why:   Thin HTTP layer: turns multipart form data into validated schemas and
       an ImageUpload, then hands everything to SchoolService.
Who:   Called by the browser forms (add, edit, list pages).

Request Flow (POST/PUT):
    1. FastAPI parses multipart/form-data (python-multipart)
    2. Supplied fields are validated into SchoolCreate / SchoolUpdate
    3. The image part, if any, is read into an ImageUpload and closed
    4. SchoolService runs the upsert workflow
    5. Errors are formatted by the global handlers in main.py
"""

import logging
from typing import List, Optional, Type, TypeVar

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import FileResponse
from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from school_directory.config import settings
from school_directory.database import get_db_session
from school_directory.exceptions import NotFoundError, StorageWriteError, ValidationError
from school_directory.schemas.school import (
    ErrorResponse,
    MessageResponse,
    SchoolCreate,
    SchoolResponse,
    SchoolUpdate,
)
from school_directory.services.file_service import ImageUpload
from school_directory.services.local_store import LocalBlobStore
from school_directory.services.school_service import school_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Schools"])

# Served at the site root so stored references like /schoolImages/<name> resolve
images_router = APIRouter(tags=["Images"])

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def _validate_fields(schema: Type[SchemaT], **values: Optional[str]) -> SchemaT:
    """
    Build a request schema from form values, dropping fields not supplied.

    Pydantic errors are re-raised as our ValidationError so every 400 has
    the same body shape.
    """
    supplied = {key: value for key, value in values.items() if value is not None}
    try:
        return schema(**supplied)
    except PydanticValidationError as e:
        problems = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        field = str(e.errors()[0]["loc"][0]) if e.errors() else None
        raise ValidationError(
            message=f"Invalid value for '{field}'" if field else "Invalid form data",
            field=field,
            details="; ".join(problems),
        )


async def _read_upload(upload: Optional[UploadFile]) -> Optional[ImageUpload]:
    """
    Read an uploaded image part into memory.

    Browsers submit an empty, nameless part when no file was chosen; that is
    treated the same as no image at all. An oversized part is refused from
    its reported size, before it is pulled into memory.
    """
    if upload is None:
        return None
    try:
        school_service.files.validate_declared_size(upload.size)
        content = await upload.read()
        if not upload.filename and not content:
            return None
        logger.info(
            "Received image: filename=%s, content_type=%s, size=%d bytes",
            upload.filename or "unknown",
            upload.content_type,
            len(content),
        )
        return ImageUpload(
            filename=upload.filename or "",
            content=content,
            content_type=upload.content_type or "",
        )
    finally:
        await upload.close()


@router.get(
    "/schools",
    response_model=List[SchoolResponse],
    responses={
        404: {"description": "School not found", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="List schools, or fetch one by id",
    description=(
        "Without `id`, returns every school. With `id`, returns a one-element "
        "array holding that school, or 404."
    ),
)
async def get_schools(
    school_id: Optional[int] = Query(default=None, alias="id", description="School ID"),
    db: AsyncSession = Depends(get_db_session),
) -> List[SchoolResponse]:
    if school_id is not None:
        return [await school_service.get_school(db, school_id)]
    return await school_service.list_schools(db)


@router.post(
    "/schools",
    response_model=MessageResponse,
    response_model_exclude_none=True,
    responses={
        400: {"description": "Missing or invalid field or image", "model": ErrorResponse},
        500: {"description": "Storage or database failure", "model": ErrorResponse},
    },
    summary="Create a school",
)
async def create_school(
    name: Optional[str] = Form(default=None),
    address: Optional[str] = Form(default=None),
    city: Optional[str] = Form(default=None),
    state: Optional[str] = Form(default=None),
    contact: Optional[str] = Form(default=None, description="10-digit phone number"),
    email_id: Optional[str] = Form(default=None),
    image: Optional[UploadFile] = File(default=None, description="JPEG or PNG image, max 5MB"),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    upload = await _read_upload(image)
    fields = _validate_fields(
        SchoolCreate,
        name=name,
        address=address,
        city=city,
        state=state,
        contact=contact,
        email_id=email_id,
    )
    return await school_service.create_school(db, fields, upload)


@router.put(
    "/schools",
    response_model=MessageResponse,
    response_model_exclude_none=True,
    responses={
        400: {"description": "Invalid field or image", "model": ErrorResponse},
        404: {"description": "School not found", "model": ErrorResponse},
        500: {"description": "Storage or database failure", "model": ErrorResponse},
    },
    summary="Update a school",
    description="Only the supplied fields change. A new image replaces the stored one.",
)
async def update_school(
    school_id: int = Query(alias="id", description="School ID"),
    name: Optional[str] = Form(default=None),
    address: Optional[str] = Form(default=None),
    city: Optional[str] = Form(default=None),
    state: Optional[str] = Form(default=None),
    contact: Optional[str] = Form(default=None),
    email_id: Optional[str] = Form(default=None),
    image: Optional[UploadFile] = File(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    upload = await _read_upload(image)
    fields = _validate_fields(
        SchoolUpdate,
        name=name,
        address=address,
        city=city,
        state=state,
        contact=contact,
        email_id=email_id,
    )
    return await school_service.update_school(db, school_id, fields, upload)


@router.delete(
    "/schools",
    response_model=MessageResponse,
    response_model_exclude_none=True,
    responses={
        404: {"description": "School not found", "model": ErrorResponse},
        500: {"description": "Database failure", "model": ErrorResponse},
    },
    summary="Delete a school and its image",
)
async def delete_school(
    school_id: int = Query(alias="id", description="School ID"),
    image_path: Optional[str] = Query(default=None, alias="imagePath"),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return await school_service.delete_school(db, school_id, image_path)


@images_router.get(
    f"{settings.image_url_prefix}/{{filename}}",
    summary="Serve a locally stored school image",
    responses={
        200: {"description": "Image file"},
        404: {"description": "Image not found", "model": ErrorResponse},
    },
)
async def serve_image(filename: str) -> FileResponse:
    """
    Serve images written by the local Blob Store.

    With the S3 backend, image references are absolute URLs and this route
    always answers 404.
    """
    store = school_service.files.blob_store
    if not isinstance(store, LocalBlobStore):
        raise NotFoundError(resource="image", resource_id=filename)

    try:
        path = store.path_for(filename)
    except StorageWriteError:
        raise NotFoundError(resource="image", resource_id=filename)

    if not path.is_file():
        raise NotFoundError(resource="image", resource_id=filename)

    # media type is guessed from the extension
    return FileResponse(
        path=str(path),
        headers={"Cache-Control": "public, max-age=86400"},
    )
