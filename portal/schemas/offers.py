import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, TypeAdapter, field_validator
from pydantic import ValidationError as SchemaValidationError

from portal.core.config import settings
from portal.models.enums import ArchiveWindowStatus, OfferMethod, OfferStatus, OfferType

EMAIL_ADAPTER = TypeAdapter(EmailStr)


class CustomDocument(BaseModel):
    key: str
    name: str
    required: bool = True

    @field_validator("key")
    @classmethod
    def key_is_slug(cls, value: str) -> str:
        value = value.strip()
        if not re.fullmatch(r"[a-z0-9_]+", value):
            raise ValueError("document key must contain only lowercase letters, digits and underscores")
        return value


class OfferCreate(BaseModel):
    title: str
    reference: Optional[str] = None
    description: Optional[str] = None
    type: OfferType
    method: OfferMethod
    deadline: datetime
    notification_emails: List[str] = []
    removed_default_documents: List[str] = []
    custom_documents: List[CustomDocument] = []

    @field_validator("deadline")
    @classmethod
    def deadline_is_local(cls, value: datetime) -> datetime:
        # Дедлайны хранятся в локальном времени портала без tzinfo
        return value.replace(tzinfo=None)

    @field_validator("notification_emails")
    @classmethod
    def keep_valid_emails(cls, value: List[str]) -> List[str]:
        emails = []
        for email in value:
            try:
                email = EMAIL_ADAPTER.validate_python(email.strip())
            except SchemaValidationError:
                # Неверные адреса отбрасываются, оффер всё равно создаётся
                continue
            if email.lower() not in {e.lower() for e in emails}:
                emails.append(email)
        return emails[:settings.MAX_NOTIFICATION_RECIPIENTS]

    @field_validator("removed_default_documents")
    @classmethod
    def unique_removed(cls, value: List[str]) -> List[str]:
        return list(dict.fromkeys(key.strip() for key in value if key.strip()))

    @field_validator("custom_documents")
    @classmethod
    def unique_custom_keys(cls, value: List[CustomDocument]) -> List[CustomDocument]:
        keys = [doc.key for doc in value]
        if len(keys) != len(set(keys)):
            raise ValueError("custom document keys must be unique per offer")
        return value


class DocumentRequirementOut(BaseModel):
    key: str
    name: str
    mandatory: bool
    custom: bool = False

    class Config:
        from_attributes = True


class OfferDetail(BaseModel):
    id: int
    title: str
    reference: Optional[str] = None
    description: Optional[str] = None
    type: OfferType
    method: OfferMethod
    deadline: datetime
    status: OfferStatus
    winner_name: Optional[str] = None
    notification_emails: List[str] = []
    removed_default_documents: List[str] = []
    archive_window_status: ArchiveWindowStatus
    can_archive: bool
    required_documents: List[DocumentRequirementOut] = []

    class Config:
        from_attributes = True


class WinnerRequest(BaseModel):
    winner_name: str


class OfferStatusResponse(BaseModel):
    status: str
    offer_id: int
    state: OfferStatus
    winner_name: Optional[str] = None
    message: Optional[str] = None


class ExpiryCheckResponse(BaseModel):
    offer_id: int
    state: OfferStatus
    transitioned: bool
    notified: List[str] = []
