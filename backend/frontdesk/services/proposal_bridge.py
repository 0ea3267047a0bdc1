"""
聊天预订提议桥接
助手回复中可能内嵌 BOOKING_PROPOSAL:{json}，提议本身不落库，
其状态通过与客人已有预订按 (room_id, 入住日期, 离店日期) 匹配推导。
"""
import json
import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional, Tuple, Union
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from frontdesk.errors import OverlapConflict, RoomNoLongerAvailable
from frontdesk.models.ontology import Booking, BookingStatus, CreationSource, Room
from frontdesk.models.schemas import BookingProposal, ProposalStatus
from frontdesk.security.auth import Actor
from frontdesk.services.conflict_guard import ReservationConflictGuard

logger = logging.getLogger(__name__)

PROPOSAL_PREFIX = "BOOKING_PROPOSAL:"

Payload = Union[str, Dict[str, Any]]


def parse_proposal(payload: Payload) -> Optional[BookingProposal]:
    """
    解析提议消息

    接受带前缀的字符串或已解码的字典；前缀错误、JSON 损坏或嵌套过深、字段缺失、
    日期非法或离店不晚于入住时返回 None，从不抛出异常。
    """
    if isinstance(payload, str):
        if not payload.startswith(PROPOSAL_PREFIX):
            return None
        try:
            data = json.loads(payload[len(PROPOSAL_PREFIX):])
        except (ValueError, RecursionError):
            logger.debug("Proposal payload is not valid JSON")
            return None
    else:
        data = payload

    if not isinstance(data, dict):
        return None
    try:
        return BookingProposal.model_validate(data)
    except PydanticValidationError:
        logger.debug("Proposal payload failed validation")
        return None


def to_payload(proposal: BookingProposal) -> str:
    """序列化为聊天消息内容"""
    return PROPOSAL_PREFIX + proposal.model_dump_json(exclude_none=True)


def build_proposal(room: Room, check_in: date, check_out: date) -> BookingProposal:
    """根据房间和日期构造提议，单价取房间当前价格"""
    return BookingProposal(
        room_id=room.id,
        room_number=room.number,
        room_type=room.room_type,
        check_in_date=check_in,
        check_out_date=check_out,
        price_per_night=Decimal(room.price),
    )


def split_reply(text: str) -> Tuple[Optional[str], str]:
    """
    把助手回复拆成 (提议消息, 其余对话文本)

    回复中没有合法提议时返回 (None, 原文本)。
    """
    start = text.find(PROPOSAL_PREFIX)
    if start < 0:
        return None, text.strip()

    body_start = start + len(PROPOSAL_PREFIX)
    try:
        _, end = json.JSONDecoder().raw_decode(text, body_start)
    except (ValueError, RecursionError):
        return None, text.strip()

    payload = text[start:end]
    if parse_proposal(payload) is None:
        return None, text.strip()

    remaining = " ".join(part.strip() for part in (text[:start], text[end:]) if part.strip())
    return payload, remaining


def _field(booking: Union[Booking, Dict[str, Any]], name: str) -> Any:
    if isinstance(booking, dict):
        return booking.get(name)
    return getattr(booking, name, None)


def _as_date(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            return None
    return None


def _as_status(value: Any) -> Optional[BookingStatus]:
    try:
        return BookingStatus(value)
    except ValueError:
        return None


def resolve_status(proposal: BookingProposal,
                   guest_bookings: Iterable[Union[Booking, Dict[str, Any]]]) -> ProposalStatus:
    """
    推导提议状态（纯函数）

    - 存在未取消的匹配预订：booked
    - 只有已取消的匹配预订：declined
    - 没有匹配：pending
    """
    matched_cancelled = False
    for booking in guest_bookings:
        try:
            room_id = int(_field(booking, "room_id"))
        except (TypeError, ValueError):
            continue
        if (room_id != proposal.room_id
                or _as_date(_field(booking, "check_in_date")) != proposal.check_in_date
                or _as_date(_field(booking, "check_out_date")) != proposal.check_out_date):
            continue
        if _as_status(_field(booking, "status")) == BookingStatus.CANCELLED:
            matched_cancelled = True
        else:
            return ProposalStatus.BOOKED
    return ProposalStatus.DECLINED if matched_cancelled else ProposalStatus.PENDING


class ProposalBridge:
    """接受聊天提议，委托冲突守卫创建客人预订"""

    def __init__(self, db: Session, guard: Optional[ReservationConflictGuard] = None):
        self.db = db
        self.guard = guard or ReservationConflictGuard(db)

    def accept(self, proposal: BookingProposal, actor: Actor,
               today: Optional[date] = None) -> Booking:
        """
        接受提议并创建预订

        Raises:
            RoomNoLongerAvailable: 提议发出后房间已被他人订走
        """
        try:
            booking = self.guard.create_booking(
                proposal.room_id,
                proposal.check_in_date,
                proposal.check_out_date,
                actor.name,
                CreationSource.GUEST,
                actor=actor,
                today=today,
            )
        except OverlapConflict as e:
            logger.info(f"Proposal {proposal.key} no longer available for guest {actor.user_id}")
            raise RoomNoLongerAvailable(
                "该房间在所选日期已被预订，请重新搜索",
                context=dict(e.context, room_id=proposal.room_id),
            )
        logger.info(f"Proposal {proposal.key} accepted as {booking.reference}")
        return booking
