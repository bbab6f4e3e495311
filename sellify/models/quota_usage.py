from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from sellify.database import Base


class QuotaUsageRecord(Base):
    __tablename__ = "quota_usage"

    tenant_id = Column(String(255), primary_key=True)
    messages_today = Column(Integer, nullable=False, default=0)
    messages_this_week = Column(Integer, nullable=False, default=0)
    images_today = Column(Integer, nullable=False, default=0)
    videos_this_week = Column(Integer, nullable=False, default=0)
    last_reset = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
