from sqlalchemy import JSON, Column, DateTime, String, Text

from sellify.database import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
    conversation_id = Column(String(255), nullable=False, index=True)
    incoming_message = Column(Text, nullable=False)
    state = Column(String(32), nullable=False)
    chosen_action = Column(String(32), nullable=False)  # RespondText, Ignore, Delay, ...
    action_details = Column(Text)
    ai_prompt = Column(Text)
    ai_response = Column(Text)
    sent_message = Column(Text)
    quotas_before = Column(JSON, nullable=False)
    quotas_after = Column(JSON, nullable=False)
