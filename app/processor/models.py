from dataclasses import dataclass
from enum import StrEnum

from app.database.models import JobRecord


class DocumentFormat(StrEnum):
    """File formats accepted by the upload boundary."""

    PDF = "pdf"
    DOCX = "docx"
    JPG = "jpg"
    JPEG = "jpeg"
    PNG = "png"

    @property
    def is_image(self) -> bool:
        return self in (DocumentFormat.JPG, DocumentFormat.JPEG, DocumentFormat.PNG)


@dataclass(frozen=True)
class UploadedDocument:
    """An upload handed to the pipeline. Owned by a single run.

    declared_format stays a plain string when the upload boundary passed an
    extension the worker does not know; the extractor rejects it.
    """

    storage_key: str
    original_name: str
    declared_format: DocumentFormat | str
    public_image_path: str | None = None

    @classmethod
    def from_job(cls, job: JobRecord) -> "UploadedDocument":
        extension = job.declared_format.lower().lstrip(".")
        declared: DocumentFormat | str
        try:
            declared = DocumentFormat(extension)
        except ValueError:
            declared = extension
        return cls(
            storage_key=job.storage_key,
            original_name=job.original_name,
            declared_format=declared,
            public_image_path=job.public_image_path,
        )
