import logging

import magic
from fastapi import HTTPException, UploadFile, status

logger = logging.getLogger(__name__)

# Allowed MIME types mapped to valid extensions
PRESCRIPTION_MIME_TYPES = {
    "application/pdf": [".pdf"],
    "image/jpeg": [".jpg", ".jpeg"],
    "image/png": [".png"],
}

IMAGE_MIME_TYPES = {
    "image/jpeg": [".jpg", ".jpeg"],
    "image/png": [".png"],
}

PRESCRIPTION_MAX_SIZE = 10 * 1024 * 1024  # 10MB
IMAGE_MAX_SIZE = 2 * 1024 * 1024  # 2MB


def file_extension(filename: str | None) -> str:
    if not filename or "." not in filename:
        return ""
    return "." + filename.rsplit(".", 1)[-1].lower()


async def validate_file_content(
    file: UploadFile,
    allowed_mime_types: dict[str, list[str]] = PRESCRIPTION_MIME_TYPES,
    max_size: int = PRESCRIPTION_MAX_SIZE,
) -> str:
    """
    Validates an uploaded file and returns its detected MIME type:
    1. Size Check
    2. MIME type check via magic bytes
    3. Extension consistency check
    """

    # SIZE VALIDATION
    if file.size is not None:
        file_size = file.size
    else:
        file.file.seek(0, 2)
        file_size = file.file.tell()
        await file.seek(0)

    if file_size == 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file is empty.",
        )

    if file_size > max_size:
        logger.warning(f"Security: Blocked oversized file ({file_size} bytes)")
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Maximum size is {max_size // (1024 * 1024)}MB.",
        )

    # CONTENT VALIDATION
    header = await file.read(2048)
    await file.seek(0)
    file_mime_type = magic.from_buffer(header, mime=True)

    if file_mime_type not in allowed_mime_types:
        logger.warning(
            f"File validation failed: {file.filename} detected as {file_mime_type}"
        )
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail="Unsupported file type",
        )

    # EXTENSION CONSISTENCY
    file_ext = file_extension(file.filename)
    if file_ext not in allowed_mime_types[file_mime_type]:
        logger.error(f"Extension mismatch: {file_ext} vs {file_mime_type}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File extension does not match the actual file content.",
        )

    logger.info(f"Security: File {file.filename} passed validation ({file_mime_type})")
    return file_mime_type
