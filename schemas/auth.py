import re
from typing import Annotated, Optional

from pydantic import (
    AfterValidator, BaseModel, ConfigDict, EmailStr, Field, ValidationInfo,
    field_validator, model_validator,
)

USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")


def check_username(value: str) -> str:
    value = value.strip()
    if len(value) < 3:
        raise ValueError("Username must be at least 3 characters")
    if len(value) > 20:
        raise ValueError("Username must be at most 20 characters")
    if not USERNAME_RE.match(value):
        raise ValueError("Username can only contain letters, numbers, and underscores")
    return value


def check_password(value: str) -> str:
    if len(value) < 8:
        raise ValueError("Password must be at least 8 characters")
    if not re.search(r"[a-zA-Z]", value):
        raise ValueError("Password must contain at least one letter")
    if not re.search(r"[0-9]", value):
        raise ValueError("Password must contain at least one number")
    return value


Username = Annotated[str, AfterValidator(check_username)]
Password = Annotated[str, AfterValidator(check_password)]


class RegisterIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: Username
    email: EmailStr
    password: Password
    confirm_password: Optional[str] = Field(None, alias="confirmPassword")

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        if v is not None and "password" in info.data and v != info.data["password"]:
            raise ValueError("Passwords do not match")
        return v


class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class SendOtpIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    user_id: Optional[str] = Field(None, alias="userId")

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class VerifyOtpIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: str = Field(min_length=1)
    user_id: Optional[str] = Field(None, alias="userId")


class ProfilePatch(BaseModel):
    """
    Partial profile update. Presence is tracked through `model_fields_set`:
    an omitted field is left alone, an explicit null clears it (avatarUrl only).
    """
    model_config = ConfigDict(populate_by_name=True)

    username: Optional[str] = None
    email: Optional[EmailStr] = None
    avatar_url: Optional[str] = Field(None, alias="avatarUrl")

    @field_validator("username")
    @classmethod
    def username_not_null(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            raise ValueError("Username cannot be null")
        return check_username(v)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            raise ValueError("Email cannot be null")
        return v.lower()

    @model_validator(mode="after")
    def at_least_one_field(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self

    def provided(self, field: str) -> bool:
        return field in self.model_fields_set


class ChangePasswordIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(alias="currentPassword", min_length=1)
    new_password: Password = Field(alias="newPassword")


class DeleteAccountIn(BaseModel):
    password: str = Field(min_length=1)
