"""
初始化数据脚本
创建演示用房间（已存在的房间号只同步房型和价格，房态由入住、退房和客房清洁维护）

用法：
  cd backend && python init_data.py
"""
import logging
import sys
sys.path.insert(0, '.')

from decimal import Decimal
from frontdesk.database import SessionLocal, init_db
from frontdesk.models.ontology import Room, RoomStatus, RoomType

logger = logging.getLogger(__name__)

# (房间号, 房型, 状态, 每晚价格)
ROOMS = [
    ("101", RoomType.SINGLE, RoomStatus.AVAILABLE, "1000000"),
    ("102", RoomType.SINGLE, RoomStatus.AVAILABLE, "1000000"),
    ("103", RoomType.SINGLE, RoomStatus.DIRTY, "1000000"),
    ("201", RoomType.DOUBLE, RoomStatus.DIRTY, "1500000"),
    ("202", RoomType.DOUBLE, RoomStatus.AVAILABLE, "1500000"),
    ("203", RoomType.DOUBLE, RoomStatus.AVAILABLE, "1500000"),
    ("301", RoomType.SUITE, RoomStatus.AVAILABLE, "2500000"),
    ("302", RoomType.SUITE, RoomStatus.MAINTENANCE, "2500000"),
    ("303", RoomType.SUITE, RoomStatus.AVAILABLE, "2500000"),
]


def init_rooms(db) -> dict:
    """初始化房间，返回新建与更新数量"""
    stats = {"created": 0, "updated": 0}
    for number, room_type, status, price in ROOMS:
        room = db.query(Room).filter(Room.number == number).first()
        if room:
            room.room_type = room_type
            room.price = Decimal(price)
            stats["updated"] += 1
        else:
            db.add(Room(number=number, room_type=room_type, status=status, price=Decimal(price)))
            stats["created"] += 1
    db.commit()
    return stats


def main():
    logging.basicConfig(level=logging.INFO)
    init_db()
    db = SessionLocal()
    try:
        stats = init_rooms(db)
        logger.info(f"房间初始化完成: 新建 {stats['created']} 间，更新 {stats['updated']} 间")
    finally:
        db.close()


if __name__ == "__main__":
    main()
