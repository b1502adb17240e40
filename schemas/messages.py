from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CreateMessageIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    mentions_users: List[str] = Field(default_factory=list, alias="mentionsUsers")
    mentions_items: List[str] = Field(default_factory=list, alias="mentionsItems")

    @field_validator("text")
    @classmethod
    def trimmed_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Message cannot be empty")
        if len(v) > 2000:
            raise ValueError("Message must be at most 2000 characters")
        return v
