from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Text, UniqueConstraint, func
from sqlalchemy.orm import relationship
from portal.models.base import Base
from portal.models.enums import OfferMethod, OfferStatus, OfferType, Threshold


class Offer(Base):
    __tablename__ = "offers"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    title = Column(String, nullable=False)
    reference = Column(String)
    description = Column(Text)
    type = Column(String, nullable=False)
    method = Column(String, nullable=False)
    deadline = Column(DateTime, nullable=False, index=True)
    status = Column(String, nullable=False, default=OfferStatus.ACTIVE.value)
    winner_name = Column(String, nullable=True)
    creator_name = Column(String)
    creator_email = Column(String)
    notification_emails = Column(JSON, default=list)  # дополнительные получатели, до 10 адресов
    removed_default_documents = Column(JSON, default=list)
    created_at = Column(DateTime, server_default=func.now())

    custom_documents = relationship(
        "CustomRequiredDocument",
        back_populates="offer",
        order_by="CustomRequiredDocument.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    ledger_entries = relationship("OfferNotification", back_populates="offer", lazy="selectin")

    @property
    def offer_type(self) -> OfferType:
        return OfferType(self.type)

    @property
    def offer_method(self) -> OfferMethod:
        return OfferMethod(self.method)

    @property
    def offer_status(self) -> OfferStatus:
        return OfferStatus(self.status)

    @property
    def notification_recipients(self) -> list[str]:
        return list(self.notification_emails or [])

    @property
    def removed_documents(self) -> frozenset[str]:
        return frozenset(self.removed_default_documents or [])

    @property
    def notification_ledger(self) -> frozenset[Threshold]:
        return frozenset(Threshold(entry.threshold) for entry in self.ledger_entries)


class CustomRequiredDocument(Base):
    __tablename__ = "custom_required_documents"
    __table_args__ = (UniqueConstraint("offer_id", "document_key", name="uq_offer_custom_document"),)

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    offer_id = Column(Integer, ForeignKey("offers.id", ondelete="CASCADE"), nullable=False)
    document_key = Column(String, nullable=False)
    document_name = Column(String, nullable=False)
    required = Column(Boolean, nullable=False, default=True)
    position = Column(Integer, nullable=False, default=0)

    offer = relationship("Offer", back_populates="custom_documents")
