from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import datetime

from models.subscription import CycleStatus, SubscriptionStatus

class PlanOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    description: Optional[str] = None
    price: float
    discount_percent: float
    billing_cycle: str
    color_scheme: Optional[str] = None
    benefits: Optional[List[str]] = None
    is_featured: bool

class CycleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: CycleStatus
    cycle_start: datetime
    cycle_end: datetime
    amount: float

class SubscriptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: SubscriptionStatus
    started_at: datetime
    next_billing_at: Optional[datetime] = None
    canceled_at: Optional[datetime] = None
    auto_renew: bool = False
    plan: PlanOut
    cycles: List[CycleOut] = []
