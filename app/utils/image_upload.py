import os
import time
import uuid
from io import BytesIO

from fastapi import UploadFile
from PIL import Image
from pydantic import ValidationError as PydanticValidationError
import structlog

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.schemas.image import ImageUploadValidation

logger = structlog.get_logger()

MAX_IMAGE_PIXELS = 50_000_000


def _first_error_message(exc: PydanticValidationError) -> str:
    message = exc.errors()[0].get("msg", "Invalid image file")
    return message.removeprefix("Value error, ")


def validate_image_upload(file: UploadFile) -> tuple[bytes, str]:
    """Validate image upload and return raw bytes plus normalized extension."""
    filename = getattr(file, "filename", "") or ""
    max_size = settings.MAX_UPLOAD_SIZE
    file.file.seek(0)
    try:
        data = file.file.read(max_size + 1)
        try:
            validated = ImageUploadValidation.model_validate(
                {
                    "filename": filename,
                    "content_type": getattr(file, "content_type", None),
                    "data": data,
                    "max_size": max_size,
                    "allowed_extensions": set(settings.ALLOWED_EXTENSIONS),
                }
            )
        except PydanticValidationError as exc:
            raise ValidationError(_first_error_message(exc)) from exc

        try:
            with Image.open(BytesIO(validated.data)) as img:
                img.verify()  # will raise if broken
                width, height = img.size
        except Exception as exc:
            logger.warning("invalid_image_upload", filename=filename, error=str(exc))
            raise ValidationError("Invalid image file") from exc

        # Prevent decompression bomb by limiting pixel count
        if width * height > MAX_IMAGE_PIXELS:
            raise ValidationError("Image too large")

        return validated.data, validated.detected_extension or ""
    finally:
        file.file.seek(0)


def generate_secure_filename(extension: str) -> str:
    """Never trust the client filename: ``<ms timestamp>-<uuid4>.<ext>``."""
    return f"{int(time.time() * 1000)}-{uuid.uuid4()}.{extension}"


def save_product_image(file: UploadFile) -> str:
    """Validate an uploaded image, store it under UPLOAD_DIR and return its public path."""
    data, file_extension = validate_image_upload(file)

    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)

    file_path = os.path.join(settings.UPLOAD_DIR, generate_secure_filename(file_extension))
    with open(file_path, 'wb') as out:
        out.write(data)

    logger.info("product_image_saved", path=file_path, size=len(data))
    return f"/{file_path}"


def delete_product_image(image_path: str):
    """Delete image file from filesystem"""
    try:
        path = image_path.lstrip('/')
        if os.path.exists(path):
            os.remove(path)
    except OSError:
        logger.exception("product_image_delete_failed", path=image_path)
