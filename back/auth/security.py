"""
JWT 토큰 및 비밀번호 해싱 유틸리티
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
import bcrypt
import os
import logging
from dotenv import load_dotenv

load_dotenv()

# 로거 설정
logger = logging.getLogger(__name__)

# JWT 설정
SECRET_KEY = os.getenv("JWT_SECRET_KEY")

if not SECRET_KEY:
    logger.error("JWT_SECRET_KEY not set! Using default key. This is INSECURE!")
    SECRET_KEY = "gym-re-registration-secret-change-in-production"

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "720"))  # 12시간 (근무 1회)


def _to_bcrypt_secret(password: str) -> bytes:
    """bcrypt는 앞 72 바이트만 사용하므로 명시적으로 자름"""
    return password.encode("utf-8")[:72]


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """평문 비밀번호와 해시된 비밀번호 비교"""
    try:
        return bcrypt.checkpw(_to_bcrypt_secret(plain_password), hashed_password.encode("utf-8"))
    except ValueError:
        logger.warning("Malformed password hash")
        return False


def get_password_hash(password: str) -> str:
    """비밀번호 해싱"""
    return bcrypt.hashpw(_to_bcrypt_secret(password), bcrypt.gensalt(rounds=12)).decode("utf-8")


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """JWT 액세스 토큰 생성"""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})

    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    logger.info(f"Token created for user_id={data.get('sub')}")
    return encoded_jwt


def decode_access_token(token: str) -> Optional[dict]:
    """JWT 토큰 디코딩 및 검증"""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT decode failed: {str(e)}")
        return None
