from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, field_validator


class ListNameIn(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def trimmed_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("List name is required")
        if len(v) > 100:
            raise ValueError("List name must be at most 100 characters")
        return v


class CreateInviteIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    expires_in_hours: Optional[StrictInt] = Field(None, alias="expiresInHours")
    max_uses: Optional[StrictInt] = Field(None, alias="maxUses")


class UpdateInviteIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_active: StrictBool = Field(alias="isActive")
