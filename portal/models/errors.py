from sqlalchemy import Column, Integer, String, Text, DateTime, func, ForeignKey
from portal.models.base import Base

class Error(Base):
    __tablename__ = "errors"

    id = Column(Integer, primary_key=True, index=True)
    offer_id = Column(Integer, ForeignKey("offers.id", ondelete="CASCADE"), nullable=True)
    module = Column(String, nullable=False)
    error_message = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
