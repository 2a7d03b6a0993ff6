"""Pydantic schemas for API.

Request bodies of the counting endpoints keep the camelCase wire names used by
the counting client (``sessionId``, ``qtyCountedWorker`` ...); responses
mirror the table columns.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import date as DateType, datetime
from uuid import UUID


class _WireModel(BaseModel):
    """Accepts both the camelCase wire name and the Python field name."""
    model_config = ConfigDict(populate_by_name=True)


# User schemas
class UserBase(BaseModel):
    user_id: str
    role: str
    email: Optional[str] = None
    warehouse_name: Optional[str] = None


class UserCreate(UserBase):
    user_id: str = Field(min_length=1, max_length=100)
    role: str = Field(pattern="^(vendor|team_leader|worker)$")
    password: str = Field(min_length=6, max_length=256)
    vendor_id: Optional[UUID] = None
    team_leader_id: Optional[UUID] = None


class UserResponse(UserBase):
    id: UUID
    vendor_id: Optional[UUID] = None
    team_leader_id: Optional[UUID] = None
    is_approved: bool
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class UserApprovalUpdate(_WireModel):
    is_approved: bool = Field(alias="isApproved")


# Auth schemas
class LoginRequest(_WireModel):
    user_id: str = Field(alias="userId", min_length=1)
    password: str = Field(min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


# Bin master schemas
class BinRecordCreate(BaseModel):
    bin_no: str = Field(min_length=1, max_length=100)
    warehouse_name: str = Field(min_length=1, max_length=255)
    qty_as_per_books: int = Field(default=0, ge=0)


class BinBookQuantityUpdate(BaseModel):
    qty_as_per_books: int = Field(ge=0)


class BinRecordResponse(BaseModel):
    id: UUID
    bin_no: str
    warehouse_name: str
    qty_as_per_books: int
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# Counting session schemas
class CountingSessionStart(_WireModel):
    worker_id: UUID = Field(alias="workerId")
    team_leader_id: UUID = Field(alias="teamLeaderId")
    warehouse_name: str = Field(alias="warehouseName", min_length=1, max_length=255)


class CountingSessionResponse(BaseModel):
    id: UUID
    worker_id: UUID
    team_leader_id: UUID
    warehouse_name: str
    start_time: datetime
    end_time: Optional[datetime] = None
    status: str
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# Counting data schemas
class CountingDataCreate(_WireModel):
    # No ``difference``: it is a generated column.
    session_id: UUID = Field(alias="sessionId")
    bin_no: str = Field(alias="binNo", min_length=1, max_length=100)
    qty_counted: int = Field(alias="qtyCountedWorker", ge=0)
    qty_as_per_books: Optional[int] = Field(default=None, alias="qtyAsPerBooks", ge=0)


class RecountRequest(_WireModel):
    qty_recounted_tl: int = Field(alias="qtyRecountedTl", ge=0)
    reason_for_difference: Optional[str] = Field(default=None, alias="reasonForDifference", max_length=2000)


class CountingRecordResponse(BaseModel):
    id: UUID
    session_id: UUID
    wh_name: str
    date: DateType
    tl_name: str
    username: str
    bin_no: str
    qty_counted: int
    qty_recounted_tl: Optional[int] = None
    qty_as_per_books: int
    difference: int
    reason_for_difference: Optional[str] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# Worker performance schemas
class WorkerPerformanceUpsert(BaseModel):
    wh_name: str = Field(min_length=1, max_length=255)
    date: Optional[DateType] = None
    username: str = Field(min_length=1, max_length=100)
    no_of_bins_counted: int = Field(default=0, ge=0)
    no_of_qty_counted: int = Field(default=0, ge=0)
    time_taken_minutes: int = Field(default=0, ge=0)


class WorkerPerformanceResponse(BaseModel):
    id: UUID
    wh_name: str
    date: DateType
    username: str
    no_of_bins_counted: int
    no_of_qty_counted: int
    time_taken_minutes: int
    efficiency: float
    ranking: Optional[int] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class TodayStatsResponse(BaseModel):
    """Dashboard card for one worker; zeros when nothing was counted today."""
    todayBins: int = 0
    todayQuantity: int = 0
    todayTime: int = 0
    efficiency: float = 0.0
    ranking: int = 0


# OTP schemas
class OTPRequestResponse(BaseModel):
    id: UUID
    worker_id: UUID
    team_leader_id: UUID
    is_approved: bool
    expires_at: datetime
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class OTPPendingResponse(OTPRequestResponse):
    """Team-leader view: includes the code to read out to the worker."""
    otp_code: str
    worker_user_id: Optional[str] = None


class OTPVerifyRequest(BaseModel):
    code: str = Field(min_length=4, max_length=16)


class OTPVerifyResponse(BaseModel):
    valid: bool


# Audit schemas
class AuditLogResponse(BaseModel):
    id: UUID
    user_id: Optional[UUID] = None
    action: str
    details: str
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)
