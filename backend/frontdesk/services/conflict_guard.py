"""
预订冲突守卫 - 唯一的预订写入入口
员工代订、客人自助、聊天提议都经由 create_booking 落库。

应用层先做一次可用性检查以返回友好错误，真正的并发保证来自存储层：
每个占用中的预订每晚写一行 booking_nights，(room_id, night) 唯一约束
使两个并发写入者中只有一个能提交，后者得到 OverlapConflict，不自动重试。
"""
import logging
import random
import string
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, Iterator, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from frontdesk.clock import get_today
from frontdesk.config import settings
from frontdesk.errors import OverlapConflict, RoomOutOfService, ValidationError, WriteConflict
from frontdesk.models.events import BookingEventData, EventType
from frontdesk.models.ontology import (
    Booking, BookingNight, BookingStatus, CreationSource, RoomStatus
)
from frontdesk.security.auth import Actor
from frontdesk.services.availability_service import AvailabilityService, validate_interval
from frontdesk.services.event_bus import Event, event_bus
from frontdesk.services.room_service import RoomService

logger = logging.getLogger(__name__)

REFERENCE_ALPHABET = string.digits + string.ascii_uppercase
REFERENCE_ATTEMPTS = 10


def iter_nights(start: date, end: date) -> Iterator[date]:
    """[start, end) 中的每一晚"""
    night = start
    while night < end:
        yield night
        night += timedelta(days=1)


def booking_event(booking: Booking, actor: Optional[Actor] = None) -> BookingEventData:
    return BookingEventData(
        booking_id=booking.id,
        reference=booking.reference,
        room_id=booking.room_id,
        guest_name=booking.guest_name,
        check_in_date=booking.check_in_date,
        check_out_date=booking.check_out_date,
        status=booking.status.value,
        creation_source=booking.creation_source.value,
        actor_id=actor.user_id if actor else None,
    )


class ReservationConflictGuard:
    """预订冲突守卫"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None,
                 clock: Callable[[], date] = get_today):
        self.db = db
        self.clock = clock
        self.room_service = RoomService(db, event_publisher)
        self.availability = AvailabilityService(db)
        self._publish_event = event_publisher or event_bus.publish

    # ============== 预订号 ==============

    def generate_reference(self, today: Optional[date] = None) -> str:
        """生成预订号 BK-YYYYMMDD-XXXX，碰撞时重试"""
        today = today or self.clock()
        prefix = f"{settings.BOOKING_REFERENCE_PREFIX}-{today.strftime('%Y%m%d')}-"
        for _ in range(REFERENCE_ATTEMPTS):
            suffix = "".join(random.choices(REFERENCE_ALPHABET, k=4))
            reference = prefix + suffix
            exists = self.db.query(Booking.id).filter(Booking.reference == reference).first()
            if not exists:
                return reference
        raise RuntimeError(f"无法生成唯一预订号（已尝试 {REFERENCE_ATTEMPTS} 次）")

    # ============== 校验 ==============

    def validate_request(self, check_in: date, check_out: date, guest_name: str,
                         today: date) -> str:
        """校验日期与客人姓名，返回规范化后的姓名"""
        validate_interval(check_in, check_out)
        if check_in < today:
            raise ValidationError(
                "入住日期不能早于今天",
                context={"check_in_date": check_in.isoformat(), "today": today.isoformat()},
            )

        name = (guest_name or "").strip()
        if not name:
            raise ValidationError("客人姓名不能为空")
        if len(name) > settings.MAX_GUEST_NAME_LENGTH:
            raise ValidationError(f"客人姓名不能超过 {settings.MAX_GUEST_NAME_LENGTH} 个字符")
        return name

    # ============== 创建预订 ==============

    def create_booking(self, room_id: int, check_in: date, check_out: date,
                       guest_name: str, creation_source: CreationSource,
                       actor: Optional[Actor] = None, price: Optional[Decimal] = None,
                       today: Optional[date] = None) -> Booking:
        """
        创建预订

        Args:
            room_id: 房间 ID
            check_in: 入住日期
            check_out: 离店日期（不含）
            guest_name: 客人姓名
            creation_source: staff 或 guest
            actor: 调用方，员工写入 created_by，客人写入 guest_user_id
            price: 整单价格，为空时按 晚数 × 房价 计算

        Raises:
            ValidationError: 日期或姓名不合法
            NotFound: 房间不存在
            RoomOutOfService: 房间维修中
            OverlapConflict: 该日期区间房间已被占用
            WriteConflict: 预订行写入违反存储约束
        """
        today = today or self.clock()
        name = self.validate_request(check_in, check_out, guest_name, today)

        room = self.room_service.get_room_or_raise(room_id)
        if room.status == RoomStatus.MAINTENANCE:
            raise RoomOutOfService(f"房间 {room.number} 维修中，暂不可预订",
                                   context={"room_id": room.id})

        conflicts = self.availability.conflicting_bookings(room_id, check_in, check_out)
        if conflicts:
            logger.info(
                f"Booking rejected: room {room.number} {check_in}..{check_out} "
                f"overlaps {conflicts[0].reference}"
            )
            raise self._overlap(room.number, check_in, check_out)

        nights = (check_out - check_in).days
        if price is None:
            price = Decimal(room.price) * nights

        booking = Booking(
            reference=self.generate_reference(today),
            guest_name=name,
            guest_user_id=actor.user_id if actor and actor.is_guest else None,
            room_id=room_id,
            check_in_date=check_in,
            check_out_date=check_out,
            status=BookingStatus.UPCOMING,
            creation_source=creation_source,
            created_by=actor.user_id if actor and actor.is_staff else None,
            price=price,
        )
        self.db.add(booking)
        room_number = room.number
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Booking row rejected by storage for room {room_number}: {e.orig}")
            raise WriteConflict(
                "预订写入冲突，请重新提交",
                context={"room_id": room_id},
            ) from e

        self.claim_nights(booking, check_in, check_out)
        self.db.commit()
        self.db.refresh(booking)

        logger.info(
            f"Booking {booking.reference} created: room {room.number} "
            f"{check_in}..{check_out} ({creation_source.value})"
        )
        self._publish_event(Event(
            event_type=EventType.BOOKING_CREATED.value,
            timestamp=datetime.now(),
            data=booking_event(booking, actor).to_dict(),
            source="conflict_guard",
        ))
        return booking

    # ============== 房晚占用（不提交事务） ==============

    def claim_nights(self, booking: Booking, start: date, end: date) -> None:
        """
        为预订占用 [start, end) 的房晚并 flush

        唯一约束冲突时回滚整个事务并抛出 OverlapConflict。
        """
        room_id = booking.room_id
        for night in iter_nights(start, end):
            booking.nights.append(BookingNight(room_id=room_id, night=night))
        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            logger.warning(f"Storage rejected overlapping nights for room {room_id} {start}..{end}")
            raise self._overlap(str(room_id), start, end)

    def release_nights(self, booking: Booking) -> None:
        """预订不再占用房间（取消、退房）时释放全部房晚"""
        booking.nights.clear()

    @staticmethod
    def _overlap(room_label: str, check_in: date, check_out: date) -> OverlapConflict:
        return OverlapConflict(
            f"房间 {room_label} 在 {check_in.isoformat()} 至 {check_out.isoformat()} 已被预订",
            context={"check_in_date": check_in.isoformat(), "check_out_date": check_out.isoformat()},
        )
