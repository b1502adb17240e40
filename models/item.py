import uuid
import enum
from sqlalchemy import Column, Text, String, TIMESTAMP, Boolean, Integer, ForeignKey, Enum, JSON, Uuid
from sqlalchemy.orm import relationship

from utils.clock import utcnow
from .base import Base

class ItemStatus(enum.Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    PURCHASED = "PURCHASED"
    CANCELLED = "CANCELLED"

class ItemPriority(enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"

class ItemUnit(enum.Enum):
    PIECE = "PIECE"
    PACK = "PACK"
    DOZEN = "DOZEN"
    G = "G"
    KG = "KG"
    OZ = "OZ"
    ML = "ML"
    L = "L"
    CUSTOM = "CUSTOM"

class ItemCategory(enum.Enum):
    DAIRY = "DAIRY"
    GRAINS = "GRAINS"
    PRODUCE = "PRODUCE"
    MEAT = "MEAT"
    BEVERAGE = "BEVERAGE"
    HOUSEHOLD = "HOUSEHOLD"
    OTHER = "OTHER"

# sort weight for list views: open work first, urgent first within it
PRIORITY_RANK = {
    ItemPriority.URGENT: 0,
    ItemPriority.HIGH: 1,
    ItemPriority.MEDIUM: 2,
    ItemPriority.LOW: 3,
}

class Item(Base):
    __tablename__ = "items"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    list_id = Column(Uuid(as_uuid=True), ForeignKey("lists.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(200), nullable=False)
    quantity = Column(String(50), nullable=False, default="1")
    unit = Column(Enum(ItemUnit), nullable=False, default=ItemUnit.PIECE)
    custom_unit = Column(String(20), nullable=True)
    status = Column(Enum(ItemStatus), nullable=False, default=ItemStatus.TODO)
    priority = Column(Enum(ItemPriority), nullable=False, default=ItemPriority.MEDIUM)
    category = Column(Enum(ItemCategory), nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=True)
    price_cents = Column(Integer, nullable=True)
    currency = Column(String(3), nullable=True)
    done = Column(Boolean, nullable=False, default=False)

    created_by_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    assigned_to_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    purchased_by_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    purchased_at = Column(TIMESTAMP, nullable=True)

    created_at = Column(TIMESTAMP, default=utcnow)
    updated_at = Column(TIMESTAMP, default=utcnow, onupdate=utcnow)

    list = relationship("ShoppingList", back_populates="items")
    created_by = relationship("User", back_populates="items_created", foreign_keys=[created_by_id])
    assigned_to = relationship("User", foreign_keys=[assigned_to_id])
    purchased_by = relationship("User", foreign_keys=[purchased_by_id])
