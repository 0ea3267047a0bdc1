"""
Pytest 配置和共享 fixtures
"""
import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from frontdesk.clock import get_today
from frontdesk.database import Base, get_db
from frontdesk.models import ontology  # noqa
from frontdesk.models.ontology import Room, RoomStatus, RoomType
from frontdesk.security.auth import Actor, ActorKind, StaffRole, create_access_token
from frontdesk.main import app

# 测试中固定的营业日期
TODAY = date(2026, 3, 1)

ADMIN_ID = 1
RECEPTIONIST_ID = 2
CLEANER_ID = 3
GUEST_ID = 1001
OTHER_GUEST_ID = 1002


@pytest.fixture(scope="function")
def db_engine():
    """创建内存数据库引擎"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine):
    """创建数据库会话"""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def today():
    return TODAY


@pytest.fixture(scope="function")
def client(db_session):
    """创建测试客户端，固定数据库会话和营业日期"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_today] = lambda: TODAY
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def events():
    """收集发布的事件，注入到服务的 event_publisher"""
    return []


# ============== 调用方 Fixtures ==============

@pytest.fixture
def admin():
    return Actor(user_id=ADMIN_ID, kind=ActorKind.STAFF, name="管理员", role=StaffRole.ADMIN)


@pytest.fixture
def receptionist():
    return Actor(user_id=RECEPTIONIST_ID, kind=ActorKind.STAFF, name="前台小王",
                 role=StaffRole.RECEPTIONIST)


@pytest.fixture
def guest():
    return Actor(user_id=GUEST_ID, kind=ActorKind.GUEST, name="张三")


@pytest.fixture
def other_guest():
    return Actor(user_id=OTHER_GUEST_ID, kind=ActorKind.GUEST, name="李四")


def _headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_auth_headers():
    """返回管理员认证的请求头"""
    return _headers(create_access_token(ADMIN_ID, ActorKind.STAFF, "管理员", StaffRole.ADMIN))


@pytest.fixture
def receptionist_auth_headers():
    """返回前台认证的请求头"""
    return _headers(create_access_token(
        RECEPTIONIST_ID, ActorKind.STAFF, "前台小王", StaffRole.RECEPTIONIST
    ))


@pytest.fixture
def cleaner_auth_headers():
    """返回清洁员认证的请求头"""
    return _headers(create_access_token(CLEANER_ID, ActorKind.STAFF, "清洁员小李", StaffRole.CLEANER))


@pytest.fixture
def guest_auth_headers():
    """返回客人认证的请求头"""
    return _headers(create_access_token(GUEST_ID, ActorKind.GUEST, "张三"))


@pytest.fixture
def other_guest_auth_headers():
    return _headers(create_access_token(OTHER_GUEST_ID, ActorKind.GUEST, "李四"))


# ============== 房间 Fixtures ==============

def _make_room(db, number: str, room_type: RoomType = RoomType.DOUBLE,
               price: str = "500000", status: RoomStatus = RoomStatus.AVAILABLE) -> Room:
    room = Room(number=number, room_type=room_type, price=Decimal(price), status=status)
    db.add(room)
    db.commit()
    db.refresh(room)
    return room


@pytest.fixture
def make_room(db_session):
    """房间工厂：make_room("301", RoomType.SUITE, "800000")"""
    def factory(number: str, room_type: RoomType = RoomType.DOUBLE, price: str = "500000",
                status: RoomStatus = RoomStatus.AVAILABLE) -> Room:
        return _make_room(db_session, number, room_type, price, status)
    return factory


@pytest.fixture
def room_101(db_session):
    """101 双床房，每晚 500000"""
    return _make_room(db_session, "101")


@pytest.fixture
def sample_rooms(db_session, room_101):
    """101 双床、102 单人、201 套房"""
    return [
        room_101,
        _make_room(db_session, "102", RoomType.SINGLE, "300000"),
        _make_room(db_session, "201", RoomType.SUITE, "900000"),
    ]
