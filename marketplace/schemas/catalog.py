"""
Pydantic schemas for data read from the catalog
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from decimal import Decimal


class ProductSnapshot(BaseModel):
    """Product as seen at checkout time"""
    id: str
    seller_id: str
    name: str
    price: Decimal = Field(..., ge=0)
    stock: int = Field(..., ge=0)
    image_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True, frozen=True)


class SellerRecord(BaseModel):
    """Seller account and the user owning it"""
    id: str
    user_id: str
    shop_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True, frozen=True)
