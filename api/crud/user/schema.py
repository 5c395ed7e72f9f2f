from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
import uuid
from api.models.user import UserRole, UserStatus


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    full_name: str | None = None
    role: UserRole
    status: UserStatus


class BankAccountCreate(BaseModel):
    bank_name: str = Field(..., min_length=1)
    account_number: str = Field(..., min_length=1)
    account_name: str = Field(..., min_length=1)
    is_default: bool = False


class BankAccountRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    seller_id: uuid.UUID
    bank_name: str
    account_number: str
    account_name: str
    is_default: bool
    created_at: datetime
