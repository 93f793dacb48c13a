"""
재등록 서비스 의존성 주입
"""

from typing import Optional
from fastapi import Depends, Query
from auth.dependencies import get_current_active_user
from config.dependencies import get_storage
from config.exception import Forbidden
from models.user import User
from re_registration.service import ReRegistrationService
from re_registration.storage import (
    ConsultationRepository,
    ReRegistrationStore,
    StoragePort,
    build_storage_key,
)


def get_re_registration_service(
    gym_id: Optional[str] = Query(None, max_length=64, description="선택된 지점 ID (기본값: 운영자 소속 지점)"),
    current_user: User = Depends(get_current_active_user),
    storage: StoragePort = Depends(get_storage),
) -> ReRegistrationService:
    """요청한 운영자/지점 슬롯에 묶인 서비스 생성"""
    # 슈퍼유저만 소속 외 지점을 선택할 수 있음
    if gym_id and gym_id != current_user.gym_id and not current_user.is_superuser:
        raise Forbidden("소속 지점의 데이터만 조회할 수 있습니다.", code="GYM_ACCESS_DENIED")

    key = build_storage_key(current_user.role, str(current_user.id), gym_id or current_user.gym_id)
    store = ReRegistrationStore(storage, key)
    return ReRegistrationService(ConsultationRepository(store))
