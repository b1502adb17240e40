import uuid
from sqlalchemy import Column, Text, TIMESTAMP, ForeignKey, JSON, Index, Uuid
from sqlalchemy.orm import relationship

from utils.clock import utcnow
from .base import Base

class Message(Base):
    __tablename__ = "messages"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    list_id = Column(Uuid(as_uuid=True), ForeignKey("lists.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    text = Column(Text, nullable=False)
    mentions_users = Column(JSON, nullable=False, default=list)
    mentions_items = Column(JSON, nullable=False, default=list)
    created_at = Column(TIMESTAMP, default=utcnow)

    __table_args__ = (
        Index("ix_messages_list_id_created_at", "list_id", "created_at"),
    )

    list = relationship("ShoppingList", back_populates="messages")
    sender = relationship("User", back_populates="messages_sent")
