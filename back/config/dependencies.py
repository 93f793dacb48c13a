#####################################################
#                                                   #
#                의존성 주입 함수 정의                 #
#                                                   #
#####################################################

from fastapi import Request
from re_registration.storage import StoragePort

##### 컨테이너 의존성 주입 함수 정의 #####
# app.py lifespan 에서 초기화된 인스턴스를 반환
# Depends를 위한 헬퍼 함수

# 재등록 데이터 저장소
def get_storage(request: Request) -> StoragePort:
    return request.app.state.client_container.storage
