"""
운영자 인증 API 라우터
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from database import get_db
from models.user import User
from schemas.user import UserAccessUpdate, UserCreate, UserLogin, UserResponse, Token
from auth.security import verify_password, get_password_hash, create_access_token
from auth.dependencies import get_current_active_user, get_current_superuser
from config.exception import BadRequest, Conflict, NotFound, Unauthorized
from logs.logging_util import LoggerSingleton
import logging

# 로거 설정
logger = LoggerSingleton.get_logger(logger_name="auth", level=logging.INFO)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(user_data: UserCreate, db: Session = Depends(get_db)):
    """
    운영자 계정 등록

    Args:
        user_data: 계정 정보 (역할은 staff, 지점은 미지정으로 시작)
        db: 데이터베이스 세션

    Returns:
        UserResponse: 생성된 운영자 정보
    """
    logger.info(f"Registration attempt: username={user_data.username}")

    if db.query(User).filter(User.email == user_data.email).first():
        logger.warning(f"Registration failed: Email already exists - {user_data.email}")
        raise Conflict("이미 등록된 이메일입니다.", code="AUTH_EMAIL_TAKEN")

    if db.query(User).filter(User.username == user_data.username).first():
        logger.warning(f"Registration failed: Username already exists - {user_data.username}")
        raise Conflict("이미 사용 중인 아이디입니다.", code="AUTH_USERNAME_TAKEN")

    new_user = User(
        email=user_data.email,
        username=user_data.username,
        full_name=user_data.full_name,
        hashed_password=get_password_hash(user_data.password),
        role="staff",
        gym_id=None,
        is_active=True,
        is_superuser=False,
    )

    db.add(new_user)
    db.commit()
    db.refresh(new_user)

    logger.info(f"User registered successfully: id={new_user.id}, username={new_user.username}")
    return new_user


@router.post("/login", response_model=Token)
def login(user_credentials: UserLogin, db: Session = Depends(get_db)):
    """로그인 후 JWT 액세스 토큰 발급"""
    logger.info(f"Login attempt: username={user_credentials.username}")

    user = db.query(User).filter(User.username == user_credentials.username).first()

    if not user or not verify_password(user_credentials.password, user.hashed_password):
        logger.warning(f"Login failed: Invalid credentials - username={user_credentials.username}")
        raise Unauthorized("아이디 또는 비밀번호가 올바르지 않습니다.", code="AUTH_INVALID_CREDENTIALS")

    if not user.is_active:
        logger.warning(f"Login failed: Inactive user - username={user_credentials.username}")
        raise BadRequest("비활성화된 계정입니다.", code="AUTH_INACTIVE_USER")

    # sub는 문자열이어야 함
    access_token = create_access_token(data={"sub": str(user.id), "role": user.role})

    logger.info(f"Login successful: user_id={user.id}, username={user.username}")
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/me", response_model=UserResponse)
def get_current_user_info(current_user: User = Depends(get_current_active_user)):
    """현재 로그인한 운영자 정보 조회"""
    logger.info(f"User info requested: user_id={current_user.id}")
    return current_user


@router.patch("/users/{user_id}", response_model=UserResponse)
def update_user_access(
    user_id: int,
    access: UserAccessUpdate,
    db: Session = Depends(get_db),
    superuser: User = Depends(get_current_superuser),
):
    """운영자 역할 / 소속 지점 지정 (슈퍼유저 전용)"""
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFound("운영자를 찾을 수 없습니다.", code="AUTH_USER_NOT_FOUND", details={"user_id": user_id})

    changes = access.model_dump(exclude_unset=True)
    if changes.get("role") is not None:
        user.role = changes["role"]
    if "gym_id" in changes:
        user.gym_id = changes["gym_id"]

    db.commit()
    db.refresh(user)

    logger.info(f"User access updated by {superuser.username}: id={user.id}, role={user.role}, gym_id={user.gym_id}")
    return user
