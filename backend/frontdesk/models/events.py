"""
领域事件定义
预订引擎在事务提交后发布，供审计日志等订阅者消费
"""
from enum import Enum
from dataclasses import dataclass, field, asdict
from datetime import datetime, date
from typing import Optional, Dict, Any


class EventType(str, Enum):
    """事件类型枚举"""
    ROOM_STATUS_CHANGED = "room.status_changed"

    BOOKING_CREATED = "booking.created"
    BOOKING_CANCELLED = "booking.cancelled"

    GUEST_CHECKED_IN = "guest.checked_in"
    GUEST_CHECKED_OUT = "guest.checked_out"


@dataclass
class BaseEventData:
    """事件数据基类"""
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        for key, value in result.items():
            if isinstance(value, (datetime, date)):
                result[key] = value.isoformat()
        return result


@dataclass
class RoomStatusChangedData(BaseEventData):
    """房间状态变更事件数据"""
    room_id: int = 0
    room_number: str = ""
    old_status: str = ""
    new_status: str = ""
    reason: str = ""


@dataclass
class BookingEventData(BaseEventData):
    """预订生命周期事件数据"""
    booking_id: int = 0
    reference: str = ""
    room_id: int = 0
    guest_name: str = ""
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    status: str = ""
    creation_source: str = ""
    actor_id: Optional[int] = None
