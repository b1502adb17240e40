import uuid
import secrets
from sqlalchemy import Column, Text, TIMESTAMP, Boolean, Integer, ForeignKey, Uuid
from sqlalchemy.orm import relationship

from utils.clock import utcnow
from .base import Base

def generate_invite_token() -> str:
    return secrets.token_urlsafe(32)

class Invite(Base):
    """Shareable join link for one list. The token is a capability."""
    __tablename__ = "invites"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    list_id = Column(Uuid(as_uuid=True), ForeignKey("lists.id", ondelete="CASCADE"), nullable=False)
    created_by_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token = Column(Text, unique=True, nullable=False, default=generate_invite_token)
    expires_at = Column(TIMESTAMP, nullable=False)
    max_uses = Column(Integer, nullable=True)  # None = unlimited
    used_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(TIMESTAMP, default=utcnow)

    list = relationship("ShoppingList", back_populates="invites")
    created_by = relationship("User", back_populates="invites_created")

    @property
    def is_at_capacity(self) -> bool:
        return self.max_uses is not None and self.used_count >= self.max_uses

    def is_expired(self, now) -> bool:
        return now >= self.expires_at
