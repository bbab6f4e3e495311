from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.sql import func

from sellify.database import Base


class ConversationStateRecord(Base):
    __tablename__ = "conversation_states"

    conversation_id = Column(String(255), primary_key=True)
    tenant_id = Column(String(255), nullable=False, index=True)
    state = Column(String(32), nullable=False, default="Discovery")
    automation_stopped = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
