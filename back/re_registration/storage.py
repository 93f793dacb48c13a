"""
재등록 데이터 저장소

- StoragePort: 키-값 저장소 인터페이스 (get_item / set_item / remove_item / update_item)
- SqlAlchemyStorage / JsonFileStorage / MemoryStorage: 구현체
- ReRegistrationStore: 운영자/지점별 슬롯 하나에 데이터셋 전체를 읽고 쓰기
- ConsultationRepository: 메모리 미러 위의 list / upsert / delete

같은 키에 대한 변경은 키 잠금 안에서 최신 값을 다시 읽은 뒤 적용됩니다.
"""

import os
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional, Tuple, TypeVar
from urllib.parse import quote

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from logs.logging_util import LoggerSingleton
from models.storage_entry import StorageEntry
from schemas.re_registration import ConsultationRecord, ReRegistrationData

logger = LoggerSingleton.get_logger(logger_name="storage")

BASE_STORAGE_KEY = "re-registration-data"

T = TypeVar("T")


def build_storage_key(user_role: str, user_id: Optional[str] = None, gym_id: Optional[str] = None) -> str:
    """지점이 선택되면 지점 ID, staff는 본인 ID까지 붙인 키 (관리자는 지점 단위 키 공유)"""
    key = BASE_STORAGE_KEY
    if gym_id:
        key = f"{key}-{gym_id}"
    if user_role == "staff" and user_id:
        key = f"{key}-{user_id}"
    return key


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


##### 저장소 구현체 #####

class KeyLocks:
    """키별 threading.Lock 레지스트리 (프로세스 내부 직렬화)"""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}

    def __call__(self, key: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(key, threading.Lock())


class StoragePort:
    """키-값 저장소 인터페이스"""

    def __init__(self):
        self._key_locks = KeyLocks()

    def get_item(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        raise NotImplementedError

    @contextmanager
    def locked(self, key: str):
        with self._key_locks(key):
            yield

    def update_item(self, key: str, transform: Callable[[Optional[str]], str]) -> None:
        """읽기-변환-쓰기를 키 잠금 안에서 수행. transform 이 예외를 던지면 쓰지 않음"""
        with self.locked(key):
            self.set_item(key, transform(self.get_item(key)))


class MemoryStorage(StoragePort):
    def __init__(self):
        super().__init__()
        self._items = {}

    def get_item(self, key):
        return self._items.get(key)

    def set_item(self, key, value):
        self._items[key] = value

    def remove_item(self, key):
        self._items.pop(key, None)


class SqlAlchemyStorage(StoragePort):
    """storage_entries 테이블 기반 저장소"""

    def __init__(self, session_factory):
        super().__init__()
        self._session_factory = session_factory

    def get_item(self, key):
        with self._session_factory() as db:
            entry = db.get(StorageEntry, key)
            return entry.value if entry else None

    def set_item(self, key, value):
        with self._session_factory() as db:
            entry = db.get(StorageEntry, key)
            if entry is None:
                db.add(StorageEntry(key=key, value=value))
            else:
                entry.value = value
            db.commit()

    def remove_item(self, key):
        with self._session_factory() as db:
            entry = db.get(StorageEntry, key)
            if entry is not None:
                db.delete(entry)
                db.commit()

    def update_item(self, key, transform):
        """SELECT ... FOR UPDATE 로 행을 잠근 한 트랜잭션 안에서 읽기-변환-쓰기"""
        with self.locked(key):
            for attempt in range(2):
                try:
                    with self._session_factory() as db:
                        entry = db.get(StorageEntry, key, with_for_update=True)
                        value = transform(entry.value if entry else None)
                        if entry is None:
                            db.add(StorageEntry(key=key, value=value))
                        else:
                            entry.value = value
                        db.commit()
                    return
                except IntegrityError:
                    # 다른 프로세스가 같은 키를 먼저 만든 경우 한 번 더 시도
                    if attempt:
                        raise
                    logger.warning(f"Concurrent insert on storage key, retrying: key={key}")


class JsonFileStorage(StoragePort):
    """키마다 JSON 파일 하나 (<directory>/<quoted key>.json)"""

    def __init__(self, directory):
        super().__init__()
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{quote(key, safe='')}.json"

    def get_item(self, key):
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key, value):
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(value, encoding="utf-8")
        os.replace(tmp_path, path)

    def remove_item(self, key):
        self._path(key).unlink(missing_ok=True)


##### 데이터셋 저장소 #####

class _Rejected(Exception):
    """update 의 apply 가 던진 예외를 저장소 오류와 구분하기 위한 래퍼"""

    def __init__(self, error: Exception):
        super().__init__(str(error))
        self.error = error


class ReRegistrationStore:
    """키 하나에 ReRegistrationData 전체를 직렬화해서 보관

    읽기/쓰기 실패는 로그만 남기고 호출자에게 예외를 던지지 않음
    """

    def __init__(self, storage: StoragePort, key: str, now: Callable[[], datetime] = _utcnow):
        self.storage = storage
        self.key = key
        self._now = now

    def _parse(self, raw: Optional[str]) -> ReRegistrationData:
        if raw is None:
            return ReRegistrationData()
        try:
            return ReRegistrationData.model_validate_json(raw)
        except ValidationError as e:
            logger.error(f"Corrupt re-registration data ignored: key={self.key}, errors={e.error_count()}")
            return ReRegistrationData()

    def load(self) -> ReRegistrationData:
        try:
            raw = self.storage.get_item(self.key)
        except Exception:
            logger.exception(f"Failed to read re-registration data: key={self.key}")
            return ReRegistrationData()
        return self._parse(raw)

    def save(self, data: ReRegistrationData) -> bool:
        data.last_updated = self._now()
        try:
            self.storage.set_item(self.key, data.model_dump_json())
        except Exception:
            logger.exception(f"Failed to save re-registration data: key={self.key}")
            return False
        logger.debug(f"Saved re-registration data: key={self.key}, consultations={len(data.consultations)}")
        return True

    def update(
        self,
        apply: Callable[[ReRegistrationData], T],
        fallback: ReRegistrationData,
    ) -> Tuple[ReRegistrationData, T]:
        """최신 데이터를 키 잠금 안에서 다시 읽어 apply 를 적용하고 저장

        apply 가 던진 예외는 아무것도 저장하지 않고 그대로 전달됩니다.
        저장소를 읽지 못하면 fallback 사본에 적용한 결과를 저장하지 않고 돌려줍니다.
        """
        applied = []

        def transform(raw):
            data = self._parse(raw)
            try:
                result = apply(data)
            except Exception as e:
                raise _Rejected(e) from e
            data.last_updated = self._now()
            applied.append((data, result))
            return data.model_dump_json()

        try:
            self.storage.update_item(self.key, transform)
        except _Rejected as rejected:
            raise rejected.error from None
        except Exception:
            logger.exception(f"Failed to update re-registration data: key={self.key}")
            if applied:
                return applied[-1]
            data = fallback.model_copy(deep=True)
            return data, apply(data)

        logger.debug(f"Updated re-registration data: key={self.key}")
        return applied[-1]

    def clear(self) -> None:
        try:
            with self.storage.locked(self.key):
                self.storage.remove_item(self.key)
        except Exception:
            logger.exception(f"Failed to remove re-registration data: key={self.key}")


class ConsultationRepository:
    """저장소에서 읽어 온 데이터셋의 메모리 미러

    조회는 미러를 사용하고, 변경은 store.update 로 최신 데이터에 적용한 뒤 미러를 갱신함
    """

    def __init__(self, store: ReRegistrationStore):
        self.store = store
        self.data = store.load()

    def load(self) -> ReRegistrationData:
        """저장소 값으로 미러를 새로 고침"""
        self.data = self.store.load()
        return self.data

    def save(self) -> bool:
        """미러 전체를 그대로 기록 (키 잠금 없이 덮어씀)"""
        return self.store.save(self.data)

    def transaction(self, apply: Callable[[ReRegistrationData], T]) -> T:
        self.data, result = self.store.update(apply, self.data)
        return result

    def list(self) -> list[ConsultationRecord]:
        return list(self.data.consultations)

    def get(self, consultation_id: str) -> Optional[ConsultationRecord]:
        return next((c for c in self.data.consultations if c.id == consultation_id), None)

    def upsert(self, record: ConsultationRecord) -> ConsultationRecord:
        def apply(data):
            _replace_or_append(data, record)
            return record

        return self.transaction(apply)

    def update_record(
        self,
        consultation_id: str,
        change: Callable[[ConsultationRecord], ConsultationRecord],
    ) -> Optional[ConsultationRecord]:
        """최신 기록에 change 를 적용해 교체. 기록이 없으면 None"""
        if self.get(consultation_id) is None:
            return None

        def apply(data):
            current = next((c for c in data.consultations if c.id == consultation_id), None)
            if current is None:
                return None
            updated = change(current)
            _replace_or_append(data, updated)
            return updated

        return self.transaction(apply)

    def delete(self, consultation_id: str) -> bool:
        if self.get(consultation_id) is None:
            return False

        def apply(data):
            remaining = [c for c in data.consultations if c.id != consultation_id]
            deleted = len(remaining) != len(data.consultations)
            data.consultations = remaining
            return deleted

        return self.transaction(apply)

    def clear(self) -> None:
        self.store.clear()
        self.data = ReRegistrationData()


def _replace_or_append(data: ReRegistrationData, record: ConsultationRecord) -> None:
    for index, existing in enumerate(data.consultations):
        if existing.id == record.id:
            data.consultations[index] = record
            return
    data.consultations.append(record)
