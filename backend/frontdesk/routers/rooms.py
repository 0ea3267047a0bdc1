"""
房间管理路由
房间库存查询、管理员建房、清洁/维修状态修改，以及日期区间可用性查询
"""
from typing import List, Optional
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from frontdesk.database import get_db
from frontdesk.errors import BookingError
from frontdesk.models.ontology import RoomStatus, RoomType
from frontdesk.models.schemas import (
    AvailabilityMode, RoomAvailabilityResponse, RoomCreate, RoomResponse, RoomUpdate
)
from frontdesk.security.auth import (
    Actor, StaffRole, get_current_actor, require_admin, require_any_staff, require_housekeeping
)
from frontdesk.services.availability_service import AvailabilityService
from frontdesk.services.room_service import RoomService

router = APIRouter(prefix="/rooms", tags=["房间管理"])


@router.get("", response_model=List[RoomResponse])
def list_rooms(
    status: Optional[RoomStatus] = None,
    room_type: Optional[RoomType] = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_any_staff)
):
    """获取房间列表"""
    return RoomService(db).list_rooms(status=status, room_type=room_type)


@router.get("/availability", response_model=List[RoomAvailabilityResponse])
def room_availability(
    check_in_date: date,
    check_out_date: date,
    room_type: Optional[RoomType] = None,
    mode: AvailabilityMode = Query(AvailabilityMode.AVAILABLE),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    """
    查询日期区间内的房间可用性

    mode=available 只返回可订房间，mode=all 返回全部房间并标注 is_available
    """
    service = AvailabilityService(db)
    try:
        results = service.available_rooms(
            check_in_date, check_out_date, room_type=room_type,
            include_unavailable=mode == AvailabilityMode.ALL,
        )
    except BookingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    return [
        RoomAvailabilityResponse(
            **RoomResponse.model_validate(ra.room).model_dump(),
            is_available=ra.is_available,
        )
        for ra in results
    ]


@router.get("/{room_id}", response_model=RoomResponse)
def get_room(
    room_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_any_staff)
):
    """获取房间详情"""
    try:
        return RoomService(db).get_room_or_raise(room_id)
    except BookingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.post("", response_model=RoomResponse, status_code=201)
def create_room(
    data: RoomCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin)
):
    """创建房间"""
    try:
        return RoomService(db).create_room(data)
    except BookingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.patch("/{room_id}", response_model=RoomResponse)
def update_room(
    room_id: int,
    data: RoomUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_housekeeping)
):
    """修改房间（房型、价格、清洁/维修状态），清洁员只能修改清洁相关状态，不能设置维修"""
    if actor.role != StaffRole.ADMIN and (data.room_type is not None or data.price is not None):
        raise HTTPException(status_code=403, detail="权限不足")
    if actor.role == StaffRole.CLEANER and data.status == RoomStatus.MAINTENANCE:
        raise HTTPException(status_code=403, detail="清洁员不能将房间设为维修")
    try:
        return RoomService(db).update_room(room_id, data, reason=f"manual by {actor.role.value}")
    except BookingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
