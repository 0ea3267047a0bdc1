"""
预订服务 - 预订生命周期
入住、退房、取消在同一事务内完成预订状态转换与房间状态副作用，
状态更新采用比较并交换（WHERE status = 原状态），并发转换只有一个能生效。
事件在事务提交后发布。
"""
import logging
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Dict, List, Optional
from sqlalchemy.orm import Session

from frontdesk.clock import get_today
from frontdesk.config import settings
from frontdesk.errors import (
    EarlyCheckInRequired, IllegalTransition, NotFound, OverlapConflict,
    RoomOutOfService, ValidationError
)
from frontdesk.models.events import EventType
from frontdesk.models.ontology import (
    Booking, BookingStatus, CreationSource, Room, RoomStatus
)
from frontdesk.security.auth import Actor
from frontdesk.services.booking_state_machine import (
    BookingEvent, display_status, is_overstay, require_transition
)
from frontdesk.services.conflict_guard import ReservationConflictGuard, booking_event
from frontdesk.services.event_bus import Event, event_bus
from frontdesk.services.room_service import RoomService

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


class BookingService:
    """预订服务"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None,
                 clock: Callable[[], date] = get_today):
        self.db = db
        self.clock = clock
        self.room_service = RoomService(db, event_publisher)
        self.guard = ReservationConflictGuard(db, event_publisher, clock)
        self._publish_event = event_publisher or event_bus.publish

    # ============== 查询 ==============

    def get_booking(self, booking_id: int) -> Optional[Booking]:
        return self.db.query(Booking).filter(Booking.id == booking_id).first()

    def get_booking_or_raise(self, booking_id: int,
                             guest_user_id: Optional[int] = None) -> Booking:
        """
        获取预订，不存在时抛出 NotFound

        指定 guest_user_id 时只返回该客人自己的预订，他人的预订同样视为不存在。
        """
        booking = self.get_booking(booking_id)
        if not booking or (guest_user_id is not None and booking.guest_user_id != guest_user_id):
            raise NotFound(f"预订 {booking_id} 不存在", context={"booking_id": booking_id})
        return booking

    def get_by_reference(self, reference: str) -> Optional[Booking]:
        return self.db.query(Booking).filter(Booking.reference == reference.strip().upper()).first()

    def list_bookings(self, status: Optional[BookingStatus] = None,
                      room_id: Optional[int] = None,
                      guest_name: Optional[str] = None,
                      overstay: Optional[bool] = None,
                      today: Optional[date] = None) -> List[Booking]:
        """
        获取预订列表

        Args:
            status: 按存储状态过滤
            room_id: 按房间过滤
            guest_name: 客人姓名模糊匹配
            overstay: True 只返回超期在住，False 排除超期在住
        """
        today = today or self.clock()
        query = self.db.query(Booking)
        if status is not None:
            query = query.filter(Booking.status == status)
        if room_id is not None:
            query = query.filter(Booking.room_id == room_id)
        if guest_name:
            query = query.filter(Booking.guest_name.contains(guest_name.strip()))

        overstay_clause = (Booking.status == BookingStatus.CHECKED_IN) & (Booking.check_out_date < today)
        if overstay is True:
            query = query.filter(overstay_clause)
        elif overstay is False:
            query = query.filter(~overstay_clause)

        return query.order_by(Booking.check_in_date.desc(), Booking.id.desc()).all()

    def list_guest_bookings(self, guest_user_id: int,
                            status: Optional[BookingStatus] = None) -> List[Booking]:
        """客人自己的预订"""
        query = self.db.query(Booking).filter(Booking.guest_user_id == guest_user_id)
        if status is not None:
            query = query.filter(Booking.status == status)
        return query.order_by(Booking.check_in_date.desc(), Booking.id.desc()).all()

    # ============== 创建 ==============

    def create_staff_booking(self, actor: Actor, room_id: int, guest_name: str,
                             check_in: date, check_out: date,
                             price: Optional[Decimal] = None,
                             today: Optional[date] = None) -> Booking:
        """前台代客预订"""
        return self.guard.create_booking(
            room_id, check_in, check_out, guest_name, CreationSource.STAFF,
            actor=actor, price=price, today=today,
        )

    def create_guest_booking(self, actor: Actor, room_id: int,
                             check_in: date, check_out: date,
                             today: Optional[date] = None) -> Booking:
        """客人自助预订，姓名取自账号，价格按房价计算"""
        return self.guard.create_booking(
            room_id, check_in, check_out, actor.name, CreationSource.GUEST,
            actor=actor, today=today,
        )

    # ============== 状态转换 ==============

    def _compare_and_set(self, booking: Booking, expected: BookingStatus,
                         event: BookingEvent, values: Dict[str, Any]) -> None:
        """仅当存储状态仍为 expected 时更新，否则回滚并按最新状态抛出转换错误"""
        values = dict(values, updated_at=datetime.utcnow())
        updated = self.db.query(Booking).filter(
            Booking.id == booking.id,
            Booking.status == expected,
        ).update(values, synchronize_session="fetch")
        if updated == 0:
            self.db.rollback()
            self.db.refresh(booking)
            require_transition(booking, event)
            raise IllegalTransition(
                f"预订 {booking.reference} 状态已被其他操作修改",
                context={"booking_id": booking.id},
            )

    def check_in(self, booking_id: int, actor: Actor, confirm_early: bool = False,
                 today: Optional[date] = None) -> Booking:
        """
        办理入住

        业务规则：
        - 只有待入住的预订可以入住
        - 入住日期在未来时需要确认提前入住（EarlyCheckInRequired），
          确认后入住日期改为今天，并占用提前的房晚
        - 已过离店日期的预订不能入住
        - 房间维修中、或仍有其他客人在住时不能入住
        """
        today = today or self.clock()
        booking = self.get_booking_or_raise(booking_id)
        require_transition(booking, BookingEvent.CHECK_IN)

        if today >= booking.check_out_date:
            raise ValidationError(
                f"预订 {booking.reference} 已过离店日期，不能入住",
                context={"booking_id": booking.id,
                         "check_out_date": booking.check_out_date.isoformat()},
            )

        room = booking.room
        if room.status == RoomStatus.MAINTENANCE:
            raise RoomOutOfService(f"房间 {room.number} 维修中，不能入住",
                                   context={"room_id": room.id})

        occupant = self.db.query(Booking).filter(
            Booking.room_id == room.id,
            Booking.id != booking.id,
            Booking.status == BookingStatus.CHECKED_IN,
        ).first()
        if occupant:
            raise OverlapConflict(
                f"房间 {room.number} 仍有客人在住（预订 {occupant.reference}）",
                context={"room_id": room.id, "occupant_booking_id": occupant.id},
            )

        values: Dict[str, Any] = {
            "status": BookingStatus.CHECKED_IN,
            "checked_in_at": datetime.utcnow(),
        }
        early = today < booking.check_in_date
        if early:
            if not confirm_early:
                logger.info(
                    f"Early check-in confirmation required for {booking.reference} "
                    f"(check-in {booking.check_in_date}, today {today})"
                )
                raise EarlyCheckInRequired(booking.id, booking.check_in_date, today)
            values["check_in_date"] = today

        original_check_in = booking.check_in_date
        self._compare_and_set(booking, BookingStatus.UPCOMING, BookingEvent.CHECK_IN, values)
        if early:
            self.guard.claim_nights(booking, today, original_check_in)

        old_room_status = self.room_service.set_room_status(room, RoomStatus.OCCUPIED)
        self.db.commit()
        self.db.refresh(booking)

        logger.info(
            f"Booking {booking.reference} checked in to room {room.number}"
            + (f" (early, was {original_check_in})" if early else "")
        )
        self._publish(EventType.GUEST_CHECKED_IN, booking, actor)
        if old_room_status != room.status:
            self.room_service.publish_status_changed(room, old_room_status, f"check_in {booking.reference}")
        return booking

    def check_out(self, booking_id: int, actor: Actor, today: Optional[date] = None) -> Booking:
        """
        办理退房

        提前退房时离店日期缩短为 max(今天, 入住日期 + 1) 并按原每晚单价重新计价；
        超期在住的预订保持原日期，释放全部房晚。
        """
        today = today or self.clock()
        booking = self.get_booking_or_raise(booking_id)
        require_transition(booking, BookingEvent.CHECK_OUT)
        room = booking.room

        values: Dict[str, Any] = {
            "status": BookingStatus.CHECKED_OUT,
            "checked_out_at": datetime.utcnow(),
        }
        min_check_out = booking.check_in_date + timedelta(days=1)
        if today < booking.check_out_date:
            new_check_out = max(today, min_check_out)
            if new_check_out < booking.check_out_date:
                nightly = Decimal(booking.price) / booking.night_count
                new_nights = (new_check_out - booking.check_in_date).days
                values["check_out_date"] = new_check_out
                values["price"] = (nightly * new_nights).quantize(CENT, rounding=ROUND_HALF_UP)

        self._compare_and_set(booking, BookingStatus.CHECKED_IN, BookingEvent.CHECK_OUT, values)
        self.guard.release_nights(booking)

        old_room_status = self.room_service.set_room_status(
            room, RoomStatus(settings.CHECKOUT_ROOM_STATUS)
        )
        self.db.commit()
        self.db.refresh(booking)

        logger.info(
            f"Booking {booking.reference} checked out of room {room.number}, "
            f"room -> {room.status.value}"
        )
        self._publish(EventType.GUEST_CHECKED_OUT, booking, actor)
        if old_room_status != room.status:
            self.room_service.publish_status_changed(room, old_room_status, f"check_out {booking.reference}")
        return booking

    def cancel(self, booking_id: int, actor: Actor,
               guest_user_id: Optional[int] = None) -> Booking:
        """
        取消预订

        只有待入住的预订可以取消，房间状态不受影响。
        guest_user_id 不为空时只能取消该客人自己的预订。
        """
        booking = self.get_booking_or_raise(booking_id, guest_user_id=guest_user_id)
        require_transition(booking, BookingEvent.CANCEL)

        self._compare_and_set(booking, BookingStatus.UPCOMING, BookingEvent.CANCEL, {
            "status": BookingStatus.CANCELLED,
            "cancelled_at": datetime.utcnow(),
        })
        self.guard.release_nights(booking)
        self.db.commit()
        self.db.refresh(booking)

        logger.info(f"Booking {booking.reference} cancelled by {actor.kind.value} {actor.user_id}")
        self._publish(EventType.BOOKING_CANCELLED, booking, actor)
        return booking

    # ============== 展示 ==============

    def booking_detail(self, booking: Booking, today: Optional[date] = None) -> Dict[str, Any]:
        """组装预订响应，附带推导出的展示状态"""
        today = today or self.clock()
        room: Optional[Room] = booking.room
        return {
            "id": booking.id,
            "reference": booking.reference,
            "guest_name": booking.guest_name,
            "guest_user_id": booking.guest_user_id,
            "room_id": booking.room_id,
            "room_number": room.number if room else None,
            "room_type": room.room_type if room else None,
            "check_in_date": booking.check_in_date,
            "check_out_date": booking.check_out_date,
            "nights": booking.night_count,
            "status": booking.status,
            "display_status": display_status(booking, today),
            "is_overstay": is_overstay(booking, today),
            "creation_source": booking.creation_source,
            "created_by": booking.created_by,
            "price": booking.price,
            "created_at": booking.created_at,
            "updated_at": booking.updated_at,
            "checked_in_at": booking.checked_in_at,
            "checked_out_at": booking.checked_out_at,
            "cancelled_at": booking.cancelled_at,
        }

    def _publish(self, event_type: EventType, booking: Booking, actor: Actor) -> None:
        self._publish_event(Event(
            event_type=event_type.value,
            timestamp=datetime.now(),
            data=booking_event(booking, actor).to_dict(),
            source="booking_service",
        ))
