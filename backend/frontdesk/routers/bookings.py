"""
预订管理路由（员工入口）
前台代客预订、办理入住、退房、取消
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
    BookingActionResponse, BookingCreate, BookingResponse, CheckInRequest
)
from frontdesk.security.auth import Actor, require_any_staff, require_front_desk
from frontdesk.services.booking_service import BookingService

router = APIRouter(prefix="/bookings", tags=["预订管理"])


@router.get("", response_model=List[BookingResponse])
def list_bookings(
    status: Optional[BookingStatus] = None,
    room_id: Optional[int] = None,
    guest_name: Optional[str] = None,
    overstay: Optional[bool] = None,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    actor: Actor = Depends(require_any_staff)
):
    """获取预订列表"""
    service = BookingService(db)
    bookings = service.list_bookings(
        status=status, room_id=room_id, guest_name=guest_name,
        overstay=overstay, today=today,
    )
    return [BookingResponse(**service.booking_detail(b, today)) for b in bookings]


@router.get("/reference/{reference}", response_model=BookingResponse)
def get_booking_by_reference(
    reference: str,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    actor: Actor = Depends(require_any_staff)
):
    """根据预订号获取预订"""
    service = BookingService(db)
    booking = service.get_by_reference(reference)
    if not booking:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "NOT_FOUND", "message": f"预订号 {reference} 不存在"}
        )
    return BookingResponse(**service.booking_detail(booking, today))


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    actor: Actor = Depends(require_any_staff)
):
    """获取预订详情"""
    service = BookingService(db)
    try:
        booking = service.get_booking_or_raise(booking_id)
    except BookingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    return BookingResponse(**service.booking_detail(booking, today))


@router.post("", response_model=BookingResponse, status_code=201)
def create_booking(
    data: BookingCreate,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    actor: Actor = Depends(require_front_desk)
):
    """前台代客预订"""
    service = BookingService(db)
    try:
        booking = service.create_staff_booking(
            actor, data.room_id, data.guest_name,
            data.check_in_date, data.check_out_date,
            price=data.price, today=today,
        )
    except BookingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    return BookingResponse(**service.booking_detail(booking, today))


@router.post("/{booking_id}/check-in", response_model=BookingActionResponse)
def check_in(
    booking_id: int,
    data: Optional[CheckInRequest] = None,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    actor: Actor = Depends(require_front_desk)
):
    """
    办理入住

    入住日期在未来时返回 428 EARLY_CHECK_IN_REQUIRED，确认后携带 confirm_early=true 重新提交
    """
    service = BookingService(db)
    confirm_early = data.confirm_early if data else False
    try:
        booking = service.check_in(booking_id, actor, confirm_early=confirm_early, today=today)
    except BookingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    return BookingActionResponse(
        message=f"{booking.guest_name} 已入住 {booking.room.number} 房间",
        booking=BookingResponse(**service.booking_detail(booking, today)),
    )


@router.post("/{booking_id}/check-out", response_model=BookingActionResponse)
def check_out(
    booking_id: int,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    actor: Actor = Depends(require_front_desk)
):
    """办理退房"""
    service = BookingService(db)
    try:
        booking = service.check_out(booking_id, actor, today=today)
    except BookingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    return BookingActionResponse(
        message=f"{booking.guest_name} 已退房，房间 {booking.room.number} 状态为 {booking.room.status.value}",
        booking=BookingResponse(**service.booking_detail(booking, today)),
    )


@router.post("/{booking_id}/cancel", response_model=BookingActionResponse)
def cancel_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    actor: Actor = Depends(require_front_desk)
):
    """取消预订"""
    service = BookingService(db)
    try:
        booking = service.cancel(booking_id, actor)
    except BookingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    return BookingActionResponse(
        message=f"预订 {booking.reference} 已取消",
        booking=BookingResponse(**service.booking_detail(booking, today)),
    )
