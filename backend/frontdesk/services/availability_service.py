"""
可用性计算
纯读操作：房间不在维修中，且在 [check_in, check_out) 内没有占用中（待入住/已入住）的重叠预订即为可用。
采用半开区间，同日退房与入住不冲突。
"""
from dataclasses import dataclass
from datetime import date
from typing import List, Optional
from sqlalchemy.orm import Session

from frontdesk.errors import ValidationError
from frontdesk.models.ontology import BLOCKING_STATUSES, Booking, Room, RoomStatus, RoomType


def overlaps(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """[a_start, a_end) 与 [b_start, b_end) 是否至少共享一晚"""
    return a_start < b_end and b_start < a_end


def validate_interval(check_in: date, check_out: date) -> None:
    if not isinstance(check_in, date) or not isinstance(check_out, date):
        raise ValidationError("入住和离店日期必须是日历日期 (YYYY-MM-DD)")
    if check_out <= check_in:
        raise ValidationError(
            "离店日期必须晚于入住日期",
            context={"check_in_date": check_in.isoformat(), "check_out_date": check_out.isoformat()},
        )


@dataclass
class RoomAvailability:
    room: Room
    is_available: bool


class AvailabilityService:
    """可用性计算服务"""

    def __init__(self, db: Session):
        self.db = db

    def conflicting_bookings(self, room_id: int, check_in: date, check_out: date,
                             exclude_booking_id: Optional[int] = None) -> List[Booking]:
        """房间在区间内与之重叠的占用中预订"""
        query = self.db.query(Booking).filter(
            Booking.room_id == room_id,
            Booking.status.in_(BLOCKING_STATUSES),
            Booking.check_in_date < check_out,
            Booking.check_out_date > check_in,
        )
        if exclude_booking_id is not None:
            query = query.filter(Booking.id != exclude_booking_id)
        return query.order_by(Booking.check_in_date).all()

    def is_room_available(self, room_id: int, check_in: date, check_out: date,
                          exclude_booking_id: Optional[int] = None) -> bool:
        validate_interval(check_in, check_out)
        room = self.db.get(Room, room_id)
        if room is None or room.status == RoomStatus.MAINTENANCE:
            return False
        return not self.conflicting_bookings(room_id, check_in, check_out, exclude_booking_id)

    def _blocked_room_ids(self, check_in: date, check_out: date) -> set:
        rows = self.db.query(Booking.room_id).filter(
            Booking.status.in_(BLOCKING_STATUSES),
            Booking.check_in_date < check_out,
            Booking.check_out_date > check_in,
        ).distinct().all()
        return {row[0] for row in rows}

    def room_availability(self, check_in: date, check_out: date,
                          room_type: Optional[RoomType] = None) -> List[RoomAvailability]:
        """列出房间并标注 is_available（用于前端高亮不可订房间）"""
        validate_interval(check_in, check_out)
        blocked = self._blocked_room_ids(check_in, check_out)

        query = self.db.query(Room)
        if room_type is not None:
            query = query.filter(Room.room_type == room_type)
        rooms = query.order_by(Room.number).all()

        return [
            RoomAvailability(room=r, is_available=r.status != RoomStatus.MAINTENANCE and r.id not in blocked)
            for r in rooms
        ]

    def available_rooms(self, check_in: date, check_out: date,
                        room_type: Optional[RoomType] = None,
                        include_unavailable: bool = False) -> List[RoomAvailability]:
        """
        获取指定日期范围内的房间可用性

        Args:
            include_unavailable: False 只返回可用房间，True 返回全部并标注 is_available
        """
        annotated = self.room_availability(check_in, check_out, room_type)
        if include_unavailable:
            return annotated
        return [ra for ra in annotated if ra.is_available]
