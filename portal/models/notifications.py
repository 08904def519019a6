from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import relationship
from portal.models.base import Base


class OfferNotification(Base):
    """One fired threshold of an offer's notification ledger."""

    __tablename__ = "offer_notifications"
    __table_args__ = (UniqueConstraint("offer_id", "threshold", name="uq_offer_threshold"),)

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    offer_id = Column(Integer, ForeignKey("offers.id", ondelete="CASCADE"), nullable=False, index=True)
    threshold = Column(String, nullable=False)
    recipients_count = Column(Integer, default=0)
    fired_at = Column(DateTime, server_default=func.now())

    offer = relationship("Offer", back_populates="ledger_entries")
