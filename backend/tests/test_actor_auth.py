"""
调用方身份解析测试
"""
import pytest
from fastapi import HTTPException
from jose import jwt

from frontdesk.config import settings
from frontdesk.security.auth import (
    ActorKind, StaffRole, actor_from_claims, create_access_token, decode_token
)


class TestActorClaims:
    def test_staff_token(self):
        claims = decode_token(create_access_token(2, ActorKind.STAFF, "前台小王", StaffRole.RECEPTIONIST))
        actor = actor_from_claims(claims)

        assert actor.user_id == 2
        assert actor.is_staff and not actor.is_guest
        assert actor.role == StaffRole.RECEPTIONIST

    def test_guest_token(self):
        actor = actor_from_claims(decode_token(create_access_token(1001, ActorKind.GUEST, "张三")))

        assert actor.is_guest
        assert actor.role is None
        assert actor.name == "张三"

    def test_bad_signature(self):
        token = jwt.encode({"sub": "1", "kind": "staff"}, "other-secret", algorithm=settings.ALGORITHM)

        with pytest.raises(HTTPException) as exc_info:
            decode_token(token)
        assert exc_info.value.status_code == 401

    @pytest.mark.parametrize("claims", [
        {"kind": "staff"},
        {"sub": "1"},
        {"sub": "1", "kind": "robot"},
        {"sub": "abc", "kind": "guest"},
        {"sub": "1", "kind": "staff", "role": "owner"},
    ])
    def test_incomplete_claims(self, claims):
        with pytest.raises(HTTPException) as exc_info:
            actor_from_claims(claims)
        assert exc_info.value.status_code == 401
