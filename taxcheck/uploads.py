from __future__ import annotations

from dataclasses import dataclass

DOCUMENT_FIELDS = ("salarySlip", "form26as")
MAX_FILES = 2
MAX_FILE_SIZE = 5 * 1024 * 1024

ALLOWED_MIME_TYPES = {"application/pdf", "image/png", "image/jpeg"}
MIME_ALIASES = {"image/jpg": "image/jpeg", "image/pjpeg": "image/jpeg"}

FILE_TOO_LARGE_MESSAGE = "File size exceeds the maximum limit of 5MB"
TOO_MANY_FILES_MESSAGE = "Too many files. Maximum 2 files allowed."


@dataclass(frozen=True)
class DocumentUpload:
    field_name: str
    filename: str
    content: bytes
    mime_type: str


@dataclass(frozen=True)
class UploadValidationResult:
    status: str
    message: str
    document: DocumentUpload | None = None


def normalize_mime_type(content_type: str | None) -> str:
    mime = (content_type or "").split(";", 1)[0].strip().lower()
    return MIME_ALIASES.get(mime, mime)


def validate_document_upload(
    field_name: str,
    filename: str,
    content: bytes,
    content_type: str | None,
) -> UploadValidationResult:
    if field_name not in DOCUMENT_FIELDS:
        return UploadValidationResult(status="error", message=f"Unexpected file field '{field_name}'.")

    if not content:
        return UploadValidationResult(status="skipped", message="Empty upload ignored.")

    if len(content) > MAX_FILE_SIZE:
        return UploadValidationResult(status="error", message=FILE_TOO_LARGE_MESSAGE)

    mime_type = normalize_mime_type(content_type)
    if mime_type not in ALLOWED_MIME_TYPES:
        return UploadValidationResult(
            status="error",
            message=(
                "Invalid file type. Only PDF, PNG, and JPG files are allowed. "
                f"Received: {content_type or 'unknown'}"
            ),
        )

    return UploadValidationResult(
        status="success",
        message="File accepted for analysis.",
        document=DocumentUpload(
            field_name=field_name,
            filename=filename,
            content=content,
            mime_type=mime_type,
        ),
    )


def collect_document_uploads(
    parts: list[tuple[str, str, bytes, str | None]],
) -> tuple[list[DocumentUpload], str | None]:
    """Validate uploaded parts in submission order.

    Returns the accepted documents, or an error message for the first part
    that breaks the upload contract.
    """

    documents: list[DocumentUpload] = []
    seen_fields: set[str] = set()
    for field_name, filename, content, content_type in parts:
        result = validate_document_upload(field_name, filename, content, content_type)
        if result.status == "error":
            return [], result.message
        if result.document is None:
            continue
        if field_name in seen_fields or len(documents) >= MAX_FILES:
            return [], TOO_MANY_FILES_MESSAGE
        seen_fields.add(field_name)
        documents.append(result.document)
    return documents, None
