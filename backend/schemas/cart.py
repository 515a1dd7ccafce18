from pydantic import BaseModel, Field, computed_field
from typing import List, Literal, Optional

# Request schema for adding an item to the cart
class CartAddItem(BaseModel):
    product_id: int
    variant_id: Optional[int] = None
    quantity: int = Field(default=1, gt=0, le=99)

# Request schema for updating cart item quantity
class CartUpdateItem(BaseModel):
    quantity: int = Field(gt=0, le=99)

class CartItemOut(BaseModel):
    id: int
    product_id: int
    variant_id: Optional[int] = None
    name: str
    variant_name: Optional[str] = None
    quantity: int
    unit_price: float
    current_price: Optional[float] = None
    line_total: float
    available_stock: int
    available: bool

class CartOut(BaseModel):
    id: int
    items: List[CartItemOut]
    item_count: int
    subtotal: float

IssueKind = Literal["out_of_stock", "insufficient_stock", "price_changed", "unavailable"]

class CartIssue(BaseModel):
    item_id: int
    product_id: int
    variant_id: Optional[int] = None
    product_name: str
    kind: IssueKind
    details: Optional[str] = None

    @computed_field
    @property
    def message(self) -> str:
        labels = {
            "out_of_stock": "sem estoque",
            "insufficient_stock": "estoque insuficiente",
            "price_changed": "preço alterado",
            "unavailable": "indisponível",
        }
        text = f"{self.product_name}: {labels[self.kind]}"
        return f"{text} ({self.details})" if self.details else text

class CartValidation(BaseModel):
    valid: bool
    issues: List[CartIssue] = []
