"""
키-값 저장소 모델 (운영자/지점별 재등록 데이터 슬롯)
"""

from sqlalchemy import Column, String, Text, DateTime
from database import Base
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StorageEntry(Base):
    """직렬화된 데이터셋을 키 단위로 보관하는 테이블"""

    __tablename__ = "storage_entries"

    key = Column(String(255), primary_key=True)  # 예: re-registration-data-gym1-7
    value = Column(Text, nullable=False)  # JSON 문자열

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    def __repr__(self):
        return f"<StorageEntry(key='{self.key}', size={len(self.value or '')})>"
