"""
인증 관련 의존성 주입
"""

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from database import get_db
from models.user import User
from auth.security import decode_access_token
from config.exception import BadRequest, Forbidden, Unauthorized

# Bearer 토큰 스키마
security = HTTPBearer()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    JWT 토큰에서 현재 운영자 정보 추출

    Args:
        credentials: Bearer 토큰
        db: 데이터베이스 세션

    Returns:
        User: 현재 운영자

    Raises:
        AppException: 토큰이 유효하지 않거나 운영자를 찾을 수 없는 경우 (401)
    """
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise Unauthorized("유효하지 않은 인증 정보입니다.", code="AUTH_INVALID_TOKEN")

    # sub는 문자열로 저장됨
    try:
        user_id = int(payload.get("sub"))
    except (ValueError, TypeError):
        raise Unauthorized("토큰의 사용자 ID가 올바르지 않습니다.", code="AUTH_INVALID_TOKEN")

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise Unauthorized("사용자를 찾을 수 없습니다.", code="AUTH_USER_NOT_FOUND")

    return user


def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """현재 활성 운영자 확인"""
    if not current_user.is_active:
        raise BadRequest("비활성화된 계정입니다.", code="AUTH_INACTIVE_USER")
    return current_user


def get_current_superuser(
    current_user: User = Depends(get_current_active_user)
) -> User:
    """역할/지점 지정 권한이 있는 슈퍼유저 확인"""
    if not current_user.is_superuser:
        raise Forbidden("슈퍼유저만 사용할 수 있습니다.", code="AUTH_SUPERUSER_REQUIRED")
    return current_user
