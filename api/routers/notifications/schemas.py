from pydantic import BaseModel


class NewSellerNotice(BaseModel):
    email: str
    full_name: str | None = None
    registration_method: str = "email"


class ProfileCompletedNotice(BaseModel):
    email: str
    full_name: str | None = None
    phone: str | None = None


class NoticeAccepted(BaseModel):
    queued: bool
