#####################################################
#                                                   #
#               저장소 의존성 정의                      #
#                                                   #
#####################################################

import os
from dotenv import load_dotenv
from database import SessionLocal
from re_registration.storage import (
    JsonFileStorage,
    MemoryStorage,
    SqlAlchemyStorage,
    StoragePort,
)

load_dotenv()

# 앱 수명 동안 공유하는 인스턴스를 담을 컨테이너 클래스
class ServiceContainer:
    def __init__(self):
        self.storage: StoragePort | None = None
        self.storage_backend: str | None = None


def create_storage(backend: str) -> StoragePort:
    """RE_REGISTRATION_STORAGE 값에 맞는 저장소 구현체 생성"""
    if backend == "database":
        return SqlAlchemyStorage(SessionLocal)
    if backend == "file":
        directory = os.getenv("RE_REGISTRATION_STORAGE_DIR", "./data/re-registration")
        return JsonFileStorage(directory)
    if backend == "memory":
        return MemoryStorage()
    raise ValueError(f"Unknown RE_REGISTRATION_STORAGE backend: {backend}")


# 컨테이너를 초기화하는 함수
def initialize_clients() -> ServiceContainer:
    container = ServiceContainer()
    # 기본값은 DB 테이블 (storage_entries)
    container.storage_backend = os.getenv("RE_REGISTRATION_STORAGE", "database").lower()
    container.storage = create_storage(container.storage_backend)
    return container
