"""
Pydantic 模式定义
用于 API 请求/响应验证，日期统一为 ISO 日历日期 YYYY-MM-DD
"""
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional, List, Union, Dict, Any
from pydantic import BaseModel, Field, ConfigDict, computed_field, model_validator
from frontdesk.models.ontology import RoomType, RoomStatus, BookingStatus, CreationSource


# ============== 房间 Schemas ==============

class RoomCreate(BaseModel):
    number: str = Field(..., min_length=1, max_length=10)
    room_type: RoomType
    price: Decimal = Field(..., ge=0)


class RoomUpdate(BaseModel):
    room_type: Optional[RoomType] = None
    status: Optional[RoomStatus] = None
    price: Optional[Decimal] = Field(None, ge=0)


class RoomResponse(BaseModel):
    id: int
    number: str
    room_type: RoomType
    status: RoomStatus
    price: Decimal
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class RoomAvailabilityResponse(RoomResponse):
    is_available: bool


class AvailabilityMode(str, Enum):
    """available: 只返回可订房间；all: 返回全部房间并标注 is_available"""
    AVAILABLE = "available"
    ALL = "all"


# ============== 预订 Schemas ==============

class BookingCreate(BaseModel):
    """员工代客预订"""
    room_id: int
    guest_name: str
    check_in_date: date
    check_out_date: date
    price: Optional[Decimal] = Field(None, ge=0)


class GuestBookingCreate(BaseModel):
    """客人自助预订，姓名取自账号"""
    room_id: int
    check_in_date: date
    check_out_date: date


class CheckInRequest(BaseModel):
    confirm_early: bool = False


class BookingResponse(BaseModel):
    id: int
    reference: str
    guest_name: str
    guest_user_id: Optional[int] = None
    room_id: int
    room_number: Optional[str] = None
    room_type: Optional[RoomType] = None
    check_in_date: date
    check_out_date: date
    nights: int
    status: BookingStatus
    display_status: str
    is_overstay: bool
    creation_source: CreationSource
    created_by: Optional[int] = None
    price: Decimal
    created_at: datetime
    updated_at: Optional[datetime] = None
    checked_in_at: Optional[datetime] = None
    checked_out_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class BookingActionResponse(BaseModel):
    message: str
    booking: BookingResponse


# ============== 聊天预订提议 ==============

class BookingProposal(BaseModel):
    """
    聊天消息中携带的预订提议（不持久化）
    nights 与 total_price 始终由日期和单价推导
    """
    room_id: int
    room_number: Optional[str] = None
    room_type: Optional[RoomType] = None
    check_in_date: date
    check_out_date: date
    price_per_night: Decimal = Field(..., ge=0)

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="after")
    def _check_dates(self):
        if self.check_out_date <= self.check_in_date:
            raise ValueError("check_out_date must be after check_in_date")
        return self

    @computed_field
    @property
    def nights(self) -> int:
        return (self.check_out_date - self.check_in_date).days

    @computed_field
    @property
    def total_price(self) -> Decimal:
        return self.price_per_night * self.nights

    @property
    def key(self) -> str:
        return f"{self.room_id}-{self.check_in_date.isoformat()}-{self.check_out_date.isoformat()}"


class ProposalStatus(str, Enum):
    PENDING = "pending"
    BOOKED = "booked"
    DECLINED = "declined"


class ProposalResolveRequest(BaseModel):
    payloads: List[Any]


class ProposalResolution(BaseModel):
    index: int
    proposal: Optional[BookingProposal] = None
    status: Optional[ProposalStatus] = None


class ProposalAcceptRequest(BaseModel):
    payload: Union[str, Dict[str, Any]]
