"""
房间服务 - 房间库存
独占 room.status：人工修改走清洁/维修状态机，入住/退房只能由预订引擎通过 set_room_status 修改
"""
from typing import Callable, Dict, FrozenSet, List, Optional
from datetime import datetime
import logging
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from frontdesk.errors import IllegalTransition, NotFound, ValidationError
from frontdesk.models.events import EventType, RoomStatusChangedData
from frontdesk.models.ontology import Room, RoomStatus, RoomType
from frontdesk.models.schemas import RoomCreate, RoomUpdate
from frontdesk.services.event_bus import Event, event_bus

logger = logging.getLogger(__name__)


# 人工（管理员/清洁员）允许的房间状态转换
HOUSEKEEPING_TRANSITIONS: Dict[RoomStatus, FrozenSet[RoomStatus]] = {
    RoomStatus.AVAILABLE: frozenset({RoomStatus.MAINTENANCE, RoomStatus.DIRTY}),
    RoomStatus.DIRTY: frozenset({RoomStatus.CLEANING, RoomStatus.AVAILABLE, RoomStatus.MAINTENANCE}),
    RoomStatus.CLEANING: frozenset({RoomStatus.AVAILABLE, RoomStatus.DIRTY}),
    RoomStatus.MAINTENANCE: frozenset({RoomStatus.AVAILABLE, RoomStatus.DIRTY}),
    RoomStatus.OCCUPIED: frozenset({RoomStatus.DIRTY}),
}


def can_housekeeping_transition(current: RoomStatus, target: RoomStatus) -> bool:
    """人工状态修改是否合法"""
    if current == target:
        return True
    # 任何状态都可以被标记为待清洁
    if target == RoomStatus.DIRTY:
        return True
    return target in HOUSEKEEPING_TRANSITIONS.get(current, frozenset())


class RoomService:
    """房间服务"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None):
        self.db = db
        self._publish_event = event_publisher or event_bus.publish

    # ============== 查询 ==============

    def get_room(self, room_id: int) -> Optional[Room]:
        """获取单个房间"""
        return self.db.query(Room).filter(Room.id == room_id).first()

    def get_room_or_raise(self, room_id: int) -> Room:
        room = self.get_room(room_id)
        if not room:
            raise NotFound(f"房间 {room_id} 不存在", context={"room_id": room_id})
        return room

    def get_room_by_number(self, number: str) -> Optional[Room]:
        """根据房间号获取房间"""
        return self.db.query(Room).filter(Room.number == number).first()

    def list_rooms(self, status: Optional[RoomStatus] = None,
                   room_type: Optional[RoomType] = None) -> List[Room]:
        """获取房间列表"""
        query = self.db.query(Room)
        if status is not None:
            query = query.filter(Room.status == status)
        if room_type is not None:
            query = query.filter(Room.room_type == room_type)
        return query.order_by(Room.number).all()

    # ============== 管理 ==============

    def create_room(self, data: RoomCreate) -> Room:
        """创建房间"""
        number = data.number.strip()
        if not number:
            raise ValidationError("房间号不能为空")
        if self.get_room_by_number(number):
            raise ValidationError(f"房间号 '{number}' 已存在")

        room = Room(number=number, room_type=data.room_type, price=data.price,
                    status=RoomStatus.AVAILABLE)
        self.db.add(room)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ValidationError(f"房间号 '{number}' 已存在")
        self.db.refresh(room)
        logger.info(f"Room {room.number} created ({room.room_type.value}, {room.price})")
        return room

    def update_room(self, room_id: int, data: RoomUpdate, reason: str = "manual") -> Room:
        """
        管理员/清洁员修改房间

        业务规则：
        - 入住中只能由办理入住设置，不能手工设置
        - 入住中的房间不能手工改为空闲，必须走退房流程
        - 其他状态按 HOUSEKEEPING_TRANSITIONS 校验
        """
        room = self.get_room_or_raise(room_id)
        update_data = data.model_dump(exclude_unset=True)

        new_status = update_data.pop("status", None)
        old_status = room.status
        if new_status is not None and new_status != old_status:
            if new_status == RoomStatus.OCCUPIED:
                raise IllegalTransition("入住中状态只能通过办理入住设置")
            if old_status == RoomStatus.OCCUPIED and new_status == RoomStatus.AVAILABLE:
                raise IllegalTransition("入住中的房间只能通过退房释放")
            if not can_housekeeping_transition(old_status, new_status):
                raise IllegalTransition(
                    f"房间状态不能从 {old_status.value} 变更为 {new_status.value}"
                )
            room.status = new_status

        for key, value in update_data.items():
            if value is not None:
                setattr(room, key, value)

        self.db.commit()
        self.db.refresh(room)

        if new_status is not None and new_status != old_status:
            self.publish_status_changed(room, old_status, reason)
        return room

    # ============== 预订引擎内部使用 ==============

    def set_room_status(self, room: Room, status: RoomStatus) -> RoomStatus:
        """
        入住/退房时由预订引擎调用，不提交事务

        调用方必须在同一事务内完成预订状态转换后再提交，返回原状态用于发布事件。
        """
        old_status = room.status
        room.status = status
        room.updated_at = datetime.utcnow()
        return old_status

    def publish_status_changed(self, room: Room, old_status: RoomStatus, reason: str) -> None:
        """事务提交后发布房间状态变更事件"""
        self._publish_event(Event(
            event_type=EventType.ROOM_STATUS_CHANGED.value,
            timestamp=datetime.now(),
            data=RoomStatusChangedData(
                room_id=room.id,
                room_number=room.number,
                old_status=old_status.value,
                new_status=room.status.value,
                reason=reason,
            ).to_dict(),
            source="room_service",
        ))
