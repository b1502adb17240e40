import uuid
from sqlalchemy import Column, Text, TIMESTAMP, String, Boolean, ForeignKey, Index, Uuid
from sqlalchemy.orm import relationship

from utils.clock import utcnow
from .base import Base

class OtpCode(Base):
    __tablename__ = "otp_codes"

    id         = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id    = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    email      = Column(Text, nullable=False)  # may be the user's pending address
    code       = Column(String(6), nullable=False)
    expires_at = Column(TIMESTAMP, nullable=False)
    used       = Column(Boolean, nullable=False, default=False)
    created_at = Column(TIMESTAMP, default=utcnow)

    user = relationship("User", back_populates="otp_codes")

    __table_args__ = (
        Index("ix_otp_codes_user_id_used_code", "user_id", "used", "code"),
    )

    def is_expired(self, now) -> bool:
        return now > self.expires_at
