from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    donor = "donor"
    ngo = "ngo"
    beneficiary = "beneficiary"


class RequestStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    fulfilled = "fulfilled"


class Urgency(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class PaymentProvider(str, Enum):
    flutterwave = "flutterwave"
    paystack = "paystack"


class CheckoutStatus(str, Enum):
    open = "open"
    authorized = "authorized"
    completed = "completed"
    failed = "failed"
    cancelled = "cancelled"


class Credential(SQLModel, table=True):
    __tablename__ = "credentials"

    id: str = Field(primary_key=True)
    email: str = Field(index=True, unique=True)
    password_hash: str
    session_version: int = 0
    created_at: datetime = Field(default_factory=utcnow)


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(primary_key=True)
    email: str = Field(index=True)
    role: str
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    organization: Optional[str] = None
    bio: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class NGO(SQLModel, table=True):
    __tablename__ = "ngos"

    id: Optional[int] = Field(default=None, primary_key=True)
    account_id: Optional[str] = Field(default=None, foreign_key="users.id", unique=True)

    name: str
    location: Optional[str] = None
    verified: bool = False
    created_at: datetime = Field(default_factory=utcnow)


class Request(SQLModel, table=True):
    __tablename__ = "requests"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    ngo_id: Optional[int] = Field(default=None, foreign_key="ngos.id", index=True)

    description: str
    food_type: Optional[str] = None
    quantity_needed: Optional[int] = None
    urgency_level: str = Urgency.medium.value
    location: Optional[str] = None
    notes: Optional[str] = None
    status: str = Field(default=RequestStatus.pending.value, index=True)  # pending | approved | fulfilled
    created_at: datetime = Field(default_factory=utcnow, index=True)


class Donation(SQLModel, table=True):
    __tablename__ = "donations"

    id: Optional[int] = Field(default=None, primary_key=True)
    donor_id: str = Field(foreign_key="users.id", index=True)
    request_id: Optional[int] = Field(default=None, foreign_key="requests.id", index=True)

    donation_type: str = "request"  # request | general
    amount: Decimal = Field(max_digits=12, decimal_places=2)
    currency: str = "NGN"
    payment_status: str = "completed"  # pending | completed | failed
    transaction_id: str
    payment_reference: str = Field(unique=True)
    payment_provider: str
    created_at: datetime = Field(default_factory=utcnow, index=True)


class Checkout(SQLModel, table=True):
    __tablename__ = "checkouts"
    __table_args__ = (UniqueConstraint("donor_id", "idempotency_key"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    reference: str = Field(unique=True, index=True)
    donor_id: str = Field(foreign_key="users.id", index=True)
    request_id: Optional[int] = Field(default=None, foreign_key="requests.id")

    amount: Decimal = Field(max_digits=12, decimal_places=2)
    provider: str
    idempotency_key: Optional[str] = Field(default=None, index=True)
    status: str = CheckoutStatus.open.value
    transaction_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
