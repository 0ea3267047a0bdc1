"""
预订状态机

upcoming ──check_in──> checked_in ──check_out──> checked_out
    └──────cancel──────> cancelled

checked_out / cancelled 为终态。超期（overstay）只在读取时推导，从不落库。
"""
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, List, Optional

from frontdesk.errors import AlreadyCheckedOut, IllegalTransition
from frontdesk.models.ontology import Booking, BookingStatus


class BookingEvent(str, Enum):
    """触发预订状态转换的动作"""
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"
    CANCEL = "cancel"


OVERSTAY = "overstay"


@dataclass(frozen=True)
class BookingTransition:
    """
    状态转换定义

    Attributes:
        from_state: 源状态
        event: 触发动作
        to_state: 目标状态
    """

    from_state: BookingStatus
    event: BookingEvent
    to_state: BookingStatus


TRANSITIONS: List[BookingTransition] = [
    BookingTransition(BookingStatus.UPCOMING, BookingEvent.CHECK_IN, BookingStatus.CHECKED_IN),
    BookingTransition(BookingStatus.UPCOMING, BookingEvent.CANCEL, BookingStatus.CANCELLED),
    BookingTransition(BookingStatus.CHECKED_IN, BookingEvent.CHECK_OUT, BookingStatus.CHECKED_OUT),
]

_TRANSITION_INDEX: Dict[tuple, BookingStatus] = {
    (t.from_state, t.event): t.to_state for t in TRANSITIONS
}

TERMINAL_STATES = frozenset({BookingStatus.CHECKED_OUT, BookingStatus.CANCELLED})


def next_status(current: BookingStatus, event: BookingEvent) -> Optional[BookingStatus]:
    """返回转换后的状态，不允许的转换返回 None"""
    return _TRANSITION_INDEX.get((current, event))


def can_transition(current: BookingStatus, event: BookingEvent) -> bool:
    return next_status(current, event) is not None


def is_terminal(status: BookingStatus) -> bool:
    return status in TERMINAL_STATES


def available_events(current: BookingStatus) -> List[BookingEvent]:
    """当前状态下可执行的动作"""
    return [t.event for t in TRANSITIONS if t.from_state == current]


def require_transition(booking: Booking, event: BookingEvent) -> BookingStatus:
    """
    校验转换是否合法，返回目标状态

    Raises:
        AlreadyCheckedOut: 对已退房的预订再次退房
        IllegalTransition: 其他不允许的转换
    """
    target = next_status(booking.status, event)
    if target is not None:
        return target

    if event == BookingEvent.CHECK_OUT and booking.status == BookingStatus.CHECKED_OUT:
        raise AlreadyCheckedOut(
            f"预订 {booking.reference} 已退房",
            context={"booking_id": booking.id, "status": booking.status.value},
        )
    raise IllegalTransition(
        f"预订 {booking.reference} 当前状态为 {booking.status.value}，不能执行 {event.value}",
        context={"booking_id": booking.id, "status": booking.status.value, "event": event.value},
    )


def is_overstay(booking: Booking, today: date) -> bool:
    """已入住且今天已过离店日期"""
    return booking.status == BookingStatus.CHECKED_IN and today > booking.check_out_date


def display_status(booking: Booking, today: date) -> str:
    """展示状态：超期的已入住预订显示为 overstay，其余同存储状态"""
    if is_overstay(booking, today):
        return OVERSTAY
    return booking.status.value
