from datetime import date as calendar_date
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator


class ItemReport(BaseModel):
    title: str = Field(min_length=2, max_length=120)
    description: Optional[str] = Field(default=None, max_length=1000)
    location: str = Field(min_length=2, max_length=120)
    date: calendar_date
    contact: Optional[str] = Field(default=None, max_length=200)
    is_anonymous: bool = False
    image_url: Optional[str] = None

    @field_validator("title", "location", mode="before")
    @classmethod
    def strip_required(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("description", "contact", mode="before")
    @classmethod
    def strip_optional(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @model_validator(mode="after")
    def drop_contact_when_anonymous(self):
        # anonymous reports never keep contact details
        if self.is_anonymous:
            self.contact = None
        return self
