"""
客人自助预订路由
客人只能查看和取消自己的预订；聊天预订提议的状态推导与接受也在这里
"""
from typing import List, Optional
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from frontdesk.clock import get_today
from frontdesk.database import get_db
from frontdesk.errors import BookingError
from frontdesk.models.ontology import BookingStatus
from frontdesk.models.schemas import (
    BookingActionResponse, BookingResponse, GuestBookingCreate,
    ProposalAcceptRequest, ProposalResolution, ProposalResolveRequest
)
from frontdesk.security.auth import Actor, require_guest
from frontdesk.services.booking_service import BookingService
from frontdesk.services.proposal_bridge import ProposalBridge, parse_proposal, resolve_status

router = APIRouter(prefix="/guest", tags=["客人预订"])


@router.get("/bookings", response_model=List[BookingResponse])
def list_my_bookings(
    status: Optional[BookingStatus] = None,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    actor: Actor = Depends(require_guest)
):
    """获取我的预订"""
    service = BookingService(db)
    bookings = service.list_guest_bookings(actor.user_id, status=status)
    return [BookingResponse(**service.booking_detail(b, today)) for b in bookings]


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
def get_my_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    actor: Actor = Depends(require_guest)
):
    """获取我的预订详情"""
    service = BookingService(db)
    try:
        booking = service.get_booking_or_raise(booking_id, guest_user_id=actor.user_id)
    except BookingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    return BookingResponse(**service.booking_detail(booking, today))


@router.post("/bookings", response_model=BookingResponse, status_code=201)
def create_my_booking(
    data: GuestBookingCreate,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    actor: Actor = Depends(require_guest)
):
    """客人自助预订"""
    service = BookingService(db)
    try:
        booking = service.create_guest_booking(
            actor, data.room_id, data.check_in_date, data.check_out_date, today=today
        )
    except BookingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    return BookingResponse(**service.booking_detail(booking, today))


@router.post("/bookings/{booking_id}/cancel", response_model=BookingActionResponse)
def cancel_my_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    actor: Actor = Depends(require_guest)
):
    """取消我的预订"""
    service = BookingService(db)
    try:
        booking = service.cancel(booking_id, actor, guest_user_id=actor.user_id)
    except BookingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    return BookingActionResponse(
        message=f"预订 {booking.reference} 已取消",
        booking=BookingResponse(**service.booking_detail(booking, today)),
    )


# ============== 聊天预订提议 ==============

@router.post("/proposals/resolve", response_model=List[ProposalResolution])
def resolve_proposals(
    data: ProposalResolveRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_guest)
):
    """
    批量推导聊天消息中预订提议的状态

    无法解析的消息返回 proposal 与 status 均为空
    """
    bookings = BookingService(db).list_guest_bookings(actor.user_id)
    results = []
    for index, payload in enumerate(data.payloads):
        proposal = parse_proposal(payload)
        if proposal is None:
            results.append(ProposalResolution(index=index))
            continue
        results.append(ProposalResolution(
            index=index,
            proposal=proposal,
            status=resolve_status(proposal, bookings),
        ))
    return results


@router.post("/proposals/accept", response_model=BookingResponse, status_code=201)
def accept_proposal(
    data: ProposalAcceptRequest,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    actor: Actor = Depends(require_guest)
):
    """接受聊天预订提议"""
    proposal = parse_proposal(data.payload)
    if proposal is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "VALIDATION_ERROR", "message": "无效的预订提议"}
        )
    try:
        booking = ProposalBridge(db).accept(proposal, actor, today=today)
    except BookingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    return BookingResponse(**BookingService(db).booking_detail(booking, today))
