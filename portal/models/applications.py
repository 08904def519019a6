from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import relationship
from portal.models.base import Base


class Application(Base):
    __tablename__ = "applications"
    __table_args__ = (UniqueConstraint("offer_id", "email", name="uq_offer_applicant"),)

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    offer_id = Column(Integer, ForeignKey("offers.id"), nullable=False, index=True)
    full_name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    tel_number = Column(String)
    country = Column(String)
    created_at = Column(DateTime, server_default=func.now())
    archived_at = Column(DateTime, nullable=True)

    documents = relationship(
        "ApplicationDocument",
        back_populates="application",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class ApplicationDocument(Base):
    """A submitted file occupying one document slot of an application."""

    __tablename__ = "application_documents"
    __table_args__ = (UniqueConstraint("application_id", "document_key", name="uq_application_document"),)

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    application_id = Column(Integer, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False)
    document_key = Column(String, nullable=False)
    kind = Column(String, nullable=False, default="standard")  # standard | custom | other
    display_name = Column(String)
    file_name = Column(String, nullable=False)
    storage_key = Column(String, nullable=False)

    application = relationship("Application", back_populates="documents")
