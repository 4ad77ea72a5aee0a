from io import BytesIO
from typing import Optional, Set

from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, field_validator, model_validator


IMAGE_MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
}

# Leading magic bytes per format
FILE_SIGNATURES = {
    "jpg": (
        b"\xff\xd8\xff\xe0",
        b"\xff\xd8\xff\xe1",
        b"\xff\xd8\xff\xe2",
        b"\xff\xd8\xff\xe3",
        b"\xff\xd8\xff\xdb",
    ),
    "png": (b"\x89PNG\r\n\x1a\n",),
    "gif": (b"GIF87a", b"GIF89a"),
}


def detect_signature(data: bytes) -> str:
    """Return the extension implied by the file's magic bytes, or ''."""
    for extension, signatures in FILE_SIGNATURES.items():
        if any(data.startswith(signature) for signature in signatures):
            return extension
    if data.startswith(b"RIFF") and data[8:12] == b"WEBP":
        return "webp"
    return ""


class ImageUploadValidation(BaseModel):
    filename: str
    content_type: Optional[str] = None
    data: bytes
    max_size: int
    allowed_extensions: Set[str]
    detected_extension: Optional[str] = None

    @field_validator("allowed_extensions", mode="before")
    @classmethod
    def normalize_extensions(cls, value):
        return {str(ext).lower() for ext in value}

    @model_validator(mode="after")
    def validate_image(self):
        if not self.data:
            raise ValueError("File is empty")
        if len(self.data) > self.max_size:
            max_size_mb = self.max_size / (1024 * 1024)
            raise ValueError(f"File size exceeds maximum limit of {max_size_mb:g}MB")

        if not self.content_type or self.content_type.lower() not in set(IMAGE_MIME_TYPES.values()):
            raise ValueError("Invalid file type. Only image files (JPEG, PNG, GIF, WebP) are allowed")

        parts = self.filename.split(".")
        if len(parts) < 2 or not parts[-1]:
            raise ValueError("File must have an extension")
        # shell.php.jpg
        if len(parts) > 2 and parts[-2]:
            raise ValueError("Invalid file name. Files with double extensions are not allowed")

        filename_extension = parts[-1].lower()
        if filename_extension not in self.allowed_extensions:
            raise ValueError("File extension not allowed")

        signature_extension = detect_signature(self.data)
        if not signature_extension:
            raise ValueError(
                "File content does not match allowed image formats. "
                "The file may be corrupted or is not a valid image"
            )

        try:
            with Image.open(BytesIO(self.data)) as image:
                detected = (image.format or "").lower()
        except UnidentifiedImageError:
            detected = ""

        detected_extension = "jpg" if detected == "jpeg" else detected
        if not detected_extension or detected_extension != signature_extension:
            raise ValueError("Invalid file type")

        detected_mime = IMAGE_MIME_TYPES.get(detected_extension)
        if detected_mime and self.content_type.lower() != detected_mime:
            raise ValueError("Invalid image MIME type")

        if filename_extension != detected_extension and not (
            filename_extension in {"jpg", "jpeg"} and detected_extension == "jpg"
        ):
            raise ValueError("File extension does not match content")

        self.detected_extension = detected_extension
        return self
