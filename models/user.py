import uuid
from sqlalchemy import Column, Text, TIMESTAMP, Boolean, String, Uuid
from sqlalchemy.orm import relationship

from utils.clock import utcnow
from .base import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    username = Column(String(20), unique=True, nullable=False)
    email = Column(Text, unique=True, nullable=False)
    password_hash = Column(Text, nullable=False)
    avatar_url = Column(Text, nullable=True)  # opaque URL handed back by the upload provider
    is_email_verified = Column(Boolean, nullable=False, default=False)
    pending_email = Column(Text, nullable=True)
    verification_sent_at = Column(TIMESTAMP, nullable=True)
    created_at = Column(TIMESTAMP, default=utcnow)
    updated_at = Column(TIMESTAMP, default=utcnow, onupdate=utcnow)

    otp_codes = relationship("OtpCode", back_populates="user", cascade="all, delete-orphan")
    memberships = relationship("ListMember", back_populates="user", cascade="all, delete-orphan")
    lists_created = relationship("ShoppingList", back_populates="creator", cascade="all, delete-orphan")
    invites_created = relationship("Invite", back_populates="created_by", cascade="all, delete-orphan")
    messages_sent = relationship("Message", back_populates="sender", cascade="all, delete-orphan")
    items_created = relationship(
        "Item", back_populates="created_by", cascade="all, delete-orphan",
        foreign_keys="Item.created_by_id",
    )
