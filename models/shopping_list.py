import uuid
import enum
from sqlalchemy import Column, Integer, String, TIMESTAMP, ForeignKey, Enum, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from utils.clock import utcnow
from .base import Base

class MemberRole(enum.Enum):
    CREATOR = "CREATOR"
    EDITOR = "EDITOR"
    VIEWER = "VIEWER"

class ShoppingList(Base):
    __tablename__ = "lists"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    creator_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    member_cap = Column(Integer, nullable=True)  # None means unlimited
    created_at = Column(TIMESTAMP, default=utcnow)
    updated_at = Column(TIMESTAMP, default=utcnow, onupdate=utcnow)

    creator = relationship("User", back_populates="lists_created")
    members = relationship("ListMember", back_populates="list", cascade="all, delete-orphan",
                           order_by="ListMember.joined_at")
    items = relationship("Item", back_populates="list", cascade="all, delete-orphan")
    messages = relationship("Message", back_populates="list", cascade="all, delete-orphan")
    invites = relationship("Invite", back_populates="list", cascade="all, delete-orphan")

class ListMember(Base):
    __tablename__ = "list_members"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    list_id = Column(Uuid(as_uuid=True), ForeignKey("lists.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role = Column(Enum(MemberRole), nullable=False, default=MemberRole.VIEWER)
    joined_at = Column(TIMESTAMP, default=utcnow)

    list = relationship("ShoppingList", back_populates="members")
    user = relationship("User", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint("list_id", "user_id", name="uq_list_members_list_user"),
    )

    @property
    def is_creator(self) -> bool:
        return self.role == MemberRole.CREATOR
