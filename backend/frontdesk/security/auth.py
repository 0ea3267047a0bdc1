"""
调用方身份
引擎不做身份校验与会话存储，只从 Bearer JWT 中解析出不透明的 Actor，
用于填充 created_by / creation_source 以及区分员工与客人入口。
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, UTC
from enum import Enum
from typing import List, Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from frontdesk.config import settings

logger = logging.getLogger(__name__)

security = HTTPBearer()


class ActorKind(str, Enum):
    STAFF = "staff"
    GUEST = "guest"


class StaffRole(str, Enum):
    """员工角色"""
    ADMIN = "admin"
    RECEPTIONIST = "receptionist"
    CLEANER = "cleaner"


@dataclass(frozen=True)
class Actor:
    """调用方：员工或客人"""
    user_id: int
    kind: ActorKind
    name: str = ""
    role: Optional[StaffRole] = None

    @property
    def is_staff(self) -> bool:
        return self.kind == ActorKind.STAFF

    @property
    def is_guest(self) -> bool:
        return self.kind == ActorKind.GUEST


def create_access_token(user_id: int, kind: ActorKind, name: str = "",
                        role: Optional[StaffRole] = None) -> str:
    """创建 JWT token（测试与上游登录服务使用）"""
    expire = datetime.now(UTC) + timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS)
    to_encode = {
        "sub": str(user_id),
        "kind": kind.value,
        "name": name,
        "exp": expire,
    }
    if role is not None:
        to_encode["role"] = role.value
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict:
    """解码 JWT token"""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="无效的认证凭证"
        )


def actor_from_claims(payload: dict) -> Actor:
    try:
        kind = ActorKind(payload["kind"])
        role = StaffRole(payload["role"]) if payload.get("role") else None
        return Actor(
            user_id=int(payload["sub"]),
            kind=kind,
            name=payload.get("name") or "",
            role=role,
        )
    except (KeyError, ValueError, TypeError):
        logger.warning("Token payload missing actor claims")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="无效的认证凭证"
        )


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Actor:
    """获取当前调用方"""
    return actor_from_claims(decode_token(credentials.credentials))


def require_staff(allowed_roles: Optional[List[StaffRole]] = None):
    """员工入口权限检查，allowed_roles 为空表示任意员工"""
    async def staff_checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        if not actor.is_staff:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="权限不足")
        if allowed_roles and actor.role not in allowed_roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="权限不足")
        return actor
    return staff_checker


async def require_guest(actor: Actor = Depends(get_current_actor)) -> Actor:
    """客人入口"""
    if not actor.is_guest:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="仅限客人账号")
    return actor


# 便捷的角色检查器
require_any_staff = require_staff()
require_admin = require_staff([StaffRole.ADMIN])
require_front_desk = require_staff([StaffRole.ADMIN, StaffRole.RECEPTIONIST])
require_housekeeping = require_staff([StaffRole.ADMIN, StaffRole.CLEANER])
