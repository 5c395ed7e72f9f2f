import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from api.models.coins import EarningRuleType


class EarningRuleCreate(BaseModel):
    rule_name: str
    rule_type: EarningRuleType
    coin_amount: int
    calculation_type: str = "fixed"
    conditions: Optional[dict[str, Any]] = None
    is_active: bool = True
    priority: int = 0


class EarningRuleUpdate(BaseModel):
    """Only these fields can change; the rule type is fixed once created."""
    rule_name: Optional[str] = None
    coin_amount: Optional[int] = None
    calculation_type: Optional[str] = None
    conditions: Optional[dict[str, Any]] = None
    is_active: Optional[bool] = None
    priority: Optional[int] = None


class EarningRuleRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    rule_name: str
    rule_type: EarningRuleType
    coin_amount: int
    calculation_type: str
    conditions: Optional[dict[str, Any]] = None
    is_active: bool
    priority: int
    created_at: datetime
    updated_at: datetime
