"""
持久化对象定义
Room 由房间库存拥有 status，Booking 由预订引擎拥有 status
"""
from datetime import datetime
from enum import Enum
from sqlalchemy import (
    Column, Integer, String, DateTime, Date, ForeignKey,
    Enum as SQLEnum, Numeric, CheckConstraint, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship
from frontdesk.database import Base


# ============== 枚举定义 ==============

class RoomType(str, Enum):
    """房型枚举"""
    SINGLE = "single"
    DOUBLE = "double"
    SUITE = "suite"


class RoomStatus(str, Enum):
    """房间状态枚举"""
    AVAILABLE = "available"      # 空闲可售
    OCCUPIED = "occupied"        # 入住中
    MAINTENANCE = "maintenance"  # 维修中
    DIRTY = "dirty"              # 待清洁
    CLEANING = "cleaning"        # 清洁中


class BookingStatus(str, Enum):
    """预订状态枚举"""
    UPCOMING = "upcoming"        # 待入住
    CHECKED_IN = "checked_in"    # 已入住
    CHECKED_OUT = "checked_out"  # 已退房
    CANCELLED = "cancelled"      # 已取消


class CreationSource(str, Enum):
    """预订来源"""
    STAFF = "staff"    # 前台员工
    GUEST = "guest"    # 客人自助/聊天


# 占用房间、参与重叠判断的预订状态
BLOCKING_STATUSES = (BookingStatus.UPCOMING, BookingStatus.CHECKED_IN)


# ============== 对象定义 ==============

class Room(Base):
    """
    房间对象
    房间只会被停用/维修，从不删除
    """
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    number = Column(String(10), unique=True, nullable=False)      # 房间号
    room_type = Column(SQLEnum(RoomType), nullable=False)
    status = Column(SQLEnum(RoomStatus), nullable=False, default=RoomStatus.AVAILABLE)
    price = Column(Numeric(12, 2), nullable=False)                # 每晚价格
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    bookings = relationship("Booking", back_populates="room")

    __table_args__ = (
        CheckConstraint("price >= 0", name="chk_room_price_non_negative"),
    )


class Booking(Base):
    """
    预订对象 - 预订生命周期的聚合根
    reference 在创建时生成，之后不可变
    """
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    reference = Column(String(20), unique=True, nullable=False)   # 预订号
    guest_name = Column(String(100), nullable=False)
    guest_user_id = Column(Integer, index=True)                   # 客人账号（客人自助预订）
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False)
    check_in_date = Column(Date, nullable=False)
    check_out_date = Column(Date, nullable=False)
    status = Column(SQLEnum(BookingStatus), nullable=False, default=BookingStatus.UPCOMING)
    creation_source = Column(SQLEnum(CreationSource), nullable=False)
    created_by = Column(Integer)                                  # 员工 ID，客人预订为空
    price = Column(Numeric(12, 2), nullable=False, default=0)     # 整单价格
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    checked_in_at = Column(DateTime)
    checked_out_at = Column(DateTime)
    cancelled_at = Column(DateTime)

    room = relationship("Room", back_populates="bookings")
    nights = relationship("BookingNight", back_populates="booking",
                          cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("check_out_date > check_in_date", name="chk_booking_dates"),
        CheckConstraint("price >= 0", name="chk_booking_price_non_negative"),
        Index("idx_bookings_room_dates", "room_id", "check_in_date", "check_out_date"),
    )

    @property
    def night_count(self) -> int:
        return (self.check_out_date - self.check_in_date).days


class BookingNight(Base):
    """
    房晚占用记录
    每个占用中的预订每晚一行，(room_id, night) 唯一约束保证并发下同一房间同一晚只能被一个预订占用。
    预订取消或退房后删除对应行。
    """
    __tablename__ = "booking_nights"

    id = Column(Integer, primary_key=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False)
    night = Column(Date, nullable=False)

    booking = relationship("Booking", back_populates="nights")

    __table_args__ = (
        UniqueConstraint("room_id", "night", name="uq_booking_nights_room_night"),
    )
