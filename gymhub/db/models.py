from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class MemberStatus(str, Enum):
    ACTIVE = "Active"
    EXPIRED = "Expired"
    INACTIVE = "Inactive"


class PaymentMethod(str, Enum):
    CASH = "Cash"
    BANK = "Bank"


class TransactionKind(str, Enum):
    NEW_MEMBER = "new_member"
    RENEWAL = "renewal"


class ActionType(str, Enum):
    ADD = "add"
    RENEWAL = "renewal"
    STATUS_CHANGE = "status_change"
    EDIT = "edit"
    DELETE = "delete"


class AdminUser(BaseModel):
    id: str
    email: str
    name: str
    # SHA-256 hex (legacy rows) or bcrypt hash
    password: str
    created_at: datetime


class Member(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    package: str
    status: MemberStatus
    join_date: datetime
    subscription_start_date: Optional[datetime] = None
    subscription_end_date: Optional[datetime] = None
    payment_method: str
    amount: Decimal
    discount: Optional[Decimal] = None
    notes: Optional[str] = None
    body_weight: Optional[float] = None
    height: Optional[float] = None
    added_by: Optional[str] = None


class Payment(BaseModel):
    id: str
    member_id: Optional[str] = None
    package: str
    amount: Decimal
    discount: Optional[Decimal] = None
    payment_method: str
    notes: Optional[str] = None
    added_by: Optional[str] = None
    payment_date: Optional[datetime] = None
    # Stamped on insert by the services; older rows have none
    transaction_kind: Optional[TransactionKind] = None


class ActivityLog(BaseModel):
    id: str
    action_type: str
    description: str
    performed_by: Optional[str] = None  # None for system actions (expiry sweep)
    member_id: Optional[str] = None
    created_at: datetime


class ContactSubmission(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    message: str
    contacted: Optional[bool] = False
    created_at: datetime
