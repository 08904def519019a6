from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr


class ApplicationDocumentOut(BaseModel):
    document_key: str
    kind: str
    display_name: Optional[str] = None
    file_name: str

    class Config:
        from_attributes = True


class ApplicationResponse(BaseModel):
    id: int
    offer_id: int
    full_name: str
    email: str
    created_at: Optional[datetime] = None
    archived_at: Optional[datetime] = None
    documents: List[ApplicationDocumentOut] = []

    class Config:
        from_attributes = True


class ArchiveResponse(BaseModel):
    offer_id: int
    archive_key: Optional[str] = None
    total_applications: int
    newly_archived: int
    skipped_documents: int = 0
    message: str


class ApplicantCreate(BaseModel):
    offer_id: int
    full_name: str
    email: EmailStr
    tel_number: str
    country: str
