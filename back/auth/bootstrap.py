"""
초기 슈퍼유저 생성

SUPERUSER_USERNAME / SUPERUSER_EMAIL / SUPERUSER_PASSWORD 가 모두 설정된 경우에만
앱 시작 시 슈퍼유저(admin, 지점 없음)를 한 번 만듭니다.
"""

import os
from typing import Optional
from dotenv import load_dotenv
from sqlalchemy.orm import Session
from models.user import User
from auth.security import get_password_hash
from logs.logging_util import LoggerSingleton

load_dotenv()

logger = LoggerSingleton.get_logger(logger_name="auth")


def ensure_initial_superuser(db: Session) -> Optional[User]:
    username = os.getenv("SUPERUSER_USERNAME")
    email = os.getenv("SUPERUSER_EMAIL")
    password = os.getenv("SUPERUSER_PASSWORD")
    if not (username and email and password):
        logger.info("SUPERUSER_* not set, skipping initial superuser")
        return None

    user = db.query(User).filter(User.username == username).first()
    if user is not None:
        return user

    user = User(
        email=email,
        username=username,
        hashed_password=get_password_hash(password),
        role="admin",
        gym_id=None,
        is_active=True,
        is_superuser=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Initial superuser created: id={user.id}, username={user.username}")
    return user
