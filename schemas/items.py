from typing import Any, Optional, List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from models import ItemStatus, ItemPriority, ItemUnit, ItemCategory

ITEM_FIELDS = (
    "name", "quantity", "unit", "custom_unit", "status", "priority", "category",
    "tags", "notes", "price_cents", "currency", "assigned_to_id", "done",
)
REQUIRED_FIELDS = ("name", "quantity", "unit", "status", "priority", "tags", "done")


def check_tags(tags: Optional[List[str]]) -> List[str]:
    tags = [t.strip() for t in (tags or [])]
    if len(tags) > 15:
        raise ValueError("Maximum 15 tags allowed")
    if any(len(t) > 20 for t in tags):
        raise ValueError("Each tag must be at most 20 characters")
    return tags


class _ItemFields(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    quantity: Optional[str] = Field(None, min_length=1, max_length=50)
    unit: Optional[ItemUnit] = None
    custom_unit: Optional[str] = Field(None, alias="customUnit", max_length=20)
    status: Optional[ItemStatus] = None
    priority: Optional[ItemPriority] = None
    category: Optional[ItemCategory] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = Field(None, max_length=500)
    price_cents: Optional[int] = Field(None, alias="priceCents", ge=0, le=99_999_999)
    currency: Optional[str] = Field(None, pattern=r"^[A-Z]{3}$")
    assigned_to_id: Optional[str] = Field(None, alias="assignedToId")
    done: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def trimmed_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Item name is required")
        if len(v) > 200:
            raise ValueError("Item name must be at most 200 characters")
        return v

    @field_validator("tags")
    @classmethod
    def valid_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return None if v is None else check_tags(v)


class CreateItemIn(_ItemFields):
    name: str

    @model_validator(mode="after")
    def custom_unit_named(self):
        if self.unit == ItemUnit.CUSTOM and not self.custom_unit:
            raise ValueError("Custom unit name is required when unit is CUSTOM")
        return self

    def values(self) -> dict[str, Any]:
        data = {f: getattr(self, f) for f in ITEM_FIELDS}
        data["quantity"] = data["quantity"] or "1"
        data["unit"] = data["unit"] or ItemUnit.PIECE
        data["status"] = data["status"] or ItemStatus.TODO
        data["priority"] = data["priority"] or ItemPriority.MEDIUM
        data["tags"] = data["tags"] or []
        data["done"] = bool(data["done"])
        return data


class ItemPatch(_ItemFields):
    """Only fields present in the request body are applied."""

    @model_validator(mode="after")
    def at_least_one_field(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update")
        cleared = [f for f in REQUIRED_FIELDS if f in self.model_fields_set and getattr(self, f) is None]
        if cleared:
            raise ValueError(f"Cannot clear required fields: {', '.join(cleared)}")
        return self

    def changes(self) -> dict[str, Any]:
        return {f: getattr(self, f) for f in ITEM_FIELDS if f in self.model_fields_set}
