"""Pydantic schemas for the product catalog."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    price: float = Field(..., ge=0)
    category: str = Field(default="general", min_length=1, max_length=50)
    description: str = Field(default="")
    image_url: Optional[str] = Field(None, max_length=500, pattern=r"^https?://")
    is_available: bool = True


class ProductUpdate(BaseModel):
    """Partial update — only fields that were sent are applied."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    price: Optional[float] = Field(None, ge=0)
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=500, pattern=r"^https?://")
    is_available: Optional[bool] = None


class AvailabilityChange(BaseModel):
    is_available: bool


class ProductRead(BaseModel):
    id: str
    name: str
    price: float
    category: str
    description: str
    image_url: Optional[str]
    is_available: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class MenuCategory(BaseModel):
    category: str
    products: list[ProductRead]
