"""Pydantic schemas for link categories."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Taxonomy namespace of blogroll link categories
LINK_CATEGORY = "link_category"


class CategoryRef(BaseModel):
    """Reference to an existing category."""

    id: int
    name: str

    model_config = ConfigDict(frozen=True, from_attributes=True)


class CategoryCreate(BaseModel):
    """Category creation request."""

    name: str = Field(..., min_length=1, max_length=200)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Category name cannot be blank")
        return value
