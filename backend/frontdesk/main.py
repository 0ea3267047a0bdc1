"""
FrontDesk 主应用入口
酒店前台预订生命周期与可用性引擎
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from frontdesk import __version__
from frontdesk.config import settings
from frontdesk.database import init_db
from frontdesk.routers import rooms, bookings, guest_bookings
from frontdesk.services.event_handlers import register_event_handlers

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # 初始化数据库
    init_db()

    # 注册事件处理器
    register_event_handlers()

    logger.info(f"{settings.APP_NAME} {__version__} started")
    yield


# 创建应用
app = FastAPI(
    title="FrontDesk - 酒店前台预订引擎",
    description="预订生命周期与房间可用性协调",
    version=__version__,
    lifespan=lifespan
)

# CORS 配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # 生产环境应限制具体域名
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册路由
app.include_router(rooms.router)
app.include_router(bookings.router)
app.include_router(guest_bookings.router)


@app.get("/")
def root():
    """根路径"""
    return {"name": settings.APP_NAME, "version": __version__}


@app.get("/health")
def health_check():
    """健康检查"""
    return {"status": "healthy"}
