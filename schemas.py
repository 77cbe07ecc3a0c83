from datetime import datetime
from decimal import Decimal
from typing import Literal, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from models import PaymentProvider, RequestStatus, Role, Urgency


class Notice(BaseModel):
    kind: Literal["success", "error", "info"]
    text: str


class RegisterData(BaseModel):
    email: EmailStr
    password: str
    name: str
    role: str
    phone: Optional[str] = None
    address: Optional[str] = None
    organization: Optional[str] = None


class LoginData(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    organization: Optional[str] = None
    bio: Optional[str] = None


class UserRead(BaseModel):
    id: str
    email: EmailStr
    role: Role
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    organization: Optional[str] = None
    bio: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class IdentityRead(BaseModel):
    id: str
    email: EmailStr


class AuthResponse(BaseModel):
    identity: IdentityRead
    profile: Optional[UserRead] = None
    notices: List[Notice] = []


class RequestCreate(BaseModel):
    description: str = ""
    food_type: Optional[str] = None
    quantity_needed: Optional[int] = Field(default=None, gt=0)
    urgency_level: Urgency = Urgency.medium
    location: Optional[str] = None
    notes: Optional[str] = None


class RequestUpdate(BaseModel):
    description: Optional[str] = None
    food_type: Optional[str] = None
    quantity_needed: Optional[int] = Field(default=None, gt=0)
    urgency_level: Optional[Urgency] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[RequestStatus] = None
    ngo_id: Optional[int] = None


class RequestStatusUpdate(BaseModel):
    status: RequestStatus
    ngo_id: Optional[int] = None


class PartyRead(BaseModel):
    name: str
    email: Optional[str] = None


class NGOSummary(BaseModel):
    name: str
    location: Optional[str] = None


class RequestRead(BaseModel):
    id: int
    user_id: str
    ngo_id: Optional[int] = None
    description: str
    food_type: Optional[str] = None
    quantity_needed: Optional[int] = None
    urgency_level: Urgency
    location: Optional[str] = None
    notes: Optional[str] = None
    status: RequestStatus
    created_at: datetime
    user: Optional[PartyRead] = None
    ngo: Optional[NGOSummary] = None

    model_config = ConfigDict(from_attributes=True)


class NGORead(BaseModel):
    id: int
    name: str
    location: Optional[str] = None
    verified: bool

    model_config = ConfigDict(from_attributes=True)


class CheckoutCreate(BaseModel):
    amount: Decimal
    provider: PaymentProvider = PaymentProvider.flutterwave
    request_id: Optional[int] = None
    general: bool = False
    idempotency_key: Optional[str] = None


class CheckoutRead(BaseModel):
    reference: str
    provider: PaymentProvider
    amount: Decimal
    request_id: Optional[int] = None
    status: str
    widget: dict = {}

    model_config = ConfigDict(from_attributes=True)


class CheckoutCallback(BaseModel):
    """The payload the checkout widget handed to its callback."""

    response: dict = {}


class DonationRead(BaseModel):
    id: int
    donor_id: str
    request_id: Optional[int] = None
    donation_type: Literal["request", "general"]
    amount: Decimal
    currency: str
    payment_status: Literal["pending", "completed", "failed"]
    transaction_id: str
    payment_reference: str
    payment_provider: PaymentProvider
    created_at: datetime
    donor: Optional[PartyRead] = None
    request: Optional[dict] = None

    model_config = ConfigDict(from_attributes=True)


class DonationOptions(BaseModel):
    presets: List[int]
    minimum: int
    step: int
    currency: str
    providers: List[PaymentProvider]


class DashboardRead(BaseModel):
    role: Role
    stats: dict
    recent_requests: List[RequestRead] = []
