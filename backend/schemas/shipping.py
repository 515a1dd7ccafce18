from pydantic import BaseModel, Field
from typing import List, Optional

class ShippingQuoteRequest(BaseModel):
    cep: str
    product_ids: Optional[List[int]] = None
    plan_id: Optional[int] = None
    shipping_profile_id: Optional[int] = None

class ShippingOption(BaseModel):
    id: str
    carrier: str
    service: str
    price: float
    delivery_days: int
    delivery_range: Optional[dict] = None
    recommended: bool = False
    source: str = "fallback"

class ShippingQuote(BaseModel):
    success: bool
    options: List[ShippingOption] = []
    error: Optional[str] = None
    destination_cep: Optional[str] = None
    origin_cep: Optional[str] = None
    state: Optional[str] = None

# Option chosen by the buyer at checkout; its price is added to the order total
class ShippingOptionSelection(BaseModel):
    option_id: str
    carrier: str
    service: str
    price: float = Field(ge=0, allow_inf_nan=False)
    delivery_days: int = Field(ge=0)

# Package used for a quote: a stored ShippingProfile or several combined into one
class PackageProfile(BaseModel):
    name: str
    weight_kg: float
    width_cm: float
    height_cm: float
    length_cm: float

    class Config:
        from_attributes = True
