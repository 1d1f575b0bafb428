"""
Pydantic models for user data.

Users own projects, follow them and create events.  Only the fields
needed to display a user next to the records they own are exposed.
"""

from typing import Optional

from pydantic import BaseModel, Field, computed_field


class UserBase(BaseModel):
    email: str = Field(..., example="jane@example.com")
    first_name: Optional[str] = Field(None, example="Jane")
    last_name: Optional[str] = Field(None, example="Doe")


class UserCreate(UserBase):
    """Schema for registering a user."""
    pass


class UserRead(UserBase):
    """Schema for reading a user from the API."""

    id: int

    model_config = {
        "from_attributes": True,
    }

    @computed_field
    @property
    def display_name(self) -> str:
        """Full name when known, otherwise the local part of the e-mail."""
        full_name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return full_name or self.email.split("@", 1)[0]
