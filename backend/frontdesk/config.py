"""
应用配置
从环境变量 / .env 读取配置
"""
from typing import Literal
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """应用设置"""

    # 应用基础配置
    APP_NAME: str = "FrontDesk"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # 数据库配置
    DATABASE_URL: str = "sqlite:///./frontdesk.db"

    # JWT 配置（仅用于解析调用方身份，不做会话存储）
    SECRET_KEY: str = "frontdesk-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_HOURS: int = 24

    # 预订配置
    BOOKING_REFERENCE_PREFIX: str = "BK"
    MAX_GUEST_NAME_LENGTH: int = 100

    # 退房后房间状态：available 直接可售，dirty 进入清洁流程
    CHECKOUT_ROOM_STATUS: Literal["available", "dirty"] = "available"

    model_config = ConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


# 全局设置实例
settings = Settings()
