#####################################################
#                                                   #
#                앱 상태 정의 및 관리                  #
#                                                   #
#####################################################

from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator
from logs.logging_util import LoggerSingleton
from contextlib import asynccontextmanager
from config.clients import initialize_clients
from config.exception import register_exception_handlers
from database import SessionLocal, init_db
from auth.bootstrap import ensure_initial_superuser
from auth.router import router as auth_router
from re_registration.router import router as re_registration_router
import logging

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        r"""
 #####    ######           #####    ######    ####
 ##  ##   ##               ##  ##   ##       ##
 ##  ##   ####     #####   ##  ##   ####     ## ###
 #####    ##               #####    ##       ##  ##
 ## ##    ##               ## ##    ##       ##  ##
 ##  ##   ######           ##  ##   ######    ####
                      🏋️ RE-REGISTRATION API START 🏋️
"""
    )

    init_db()
    logger.info(
        f"\n{'=' * 80}\n"
        f"| {' ' * 29} 🛢️ DATABASE INITIATED 🛢️ {' ' * 29} |\n"
        f"{'=' * 80}\n"
    )

    # 초기 슈퍼유저 (환경 변수로 지정된 경우)
    with SessionLocal() as db:
        ensure_initial_superuser(db)

    # 앱 상태에 저장소 컨테이너 보관
    client_container = initialize_clients()
    app.state.client_container = client_container
    logger.info(f"Re-registration storage backend: {client_container.storage_backend}")

    yield

    logger.info("🛑 RE-REGISTRATION API SHUTDOWN 🛑")

# FastAPI 앱 인스턴스 생성
app = FastAPI(title="Gym Re-Registration API", lifespan=lifespan)

# 전역 예외 핸들러
register_exception_handlers(app)

# Prometheus FastAPI 미들웨어 설정
Instrumentator().instrument(app).expose(app)

# 라우터 등록
routers = [auth_router, re_registration_router]

for router in routers:
    app.include_router(router)

# 로거 설정
logger = LoggerSingleton.get_logger(logger_name="app", level=logging.INFO)
