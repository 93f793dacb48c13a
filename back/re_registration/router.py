"""
PT 재등록 관리 API 라우터
"""

import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Path, Query, status
from config.exception import BadRequest, ConsultationNotFound, ValidationFailed
from logs.logging_util import LoggerSingleton
from re_registration.dependencies import get_re_registration_service
from re_registration.scripts import CONCERN_LABELS, CONCERN_RESPONSES, RECOMMENDED_SCRIPTS
from re_registration.service import ReRegistrationService
from re_registration.stage import STAGE_TITLES
from re_registration.validation import (
    calculate_consultation_completion,
    checklist_completion,
    validate_checklist_item,
    validate_consultation,
    weekly_routine_completion,
)
from schemas.re_registration import (
    ChecklistItemUpdate,
    ChecklistMemoUpdate,
    ConcernFactorsUpdate,
    ConsultationCompletionResponse,
    ConsultationCreate,
    ConsultationListResponse,
    ConsultationRecord,
    ConsultationUpdate,
    ConsultationValidationResponse,
    MonthlyStats,
    OutcomeUpdate,
    ScriptsResponse,
    StageProgress,
    WeeklyRoutine,
    WeeklyRoutineResponse,
    WeeklyRoutineUpdate,
)
import logging

logger = LoggerSingleton.get_logger(logger_name="re_registration_api", level=logging.INFO)

router = APIRouter(prefix="/re-registration", tags=["Re-Registration"])

MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


def _get_or_404(service: ReRegistrationService, consultation_id: str) -> ConsultationRecord:
    record = service.get_consultation(consultation_id)
    if record is None:
        logger.warning(f"Consultation not found: id={consultation_id}, key={service.repository.store.key}")
        raise ConsultationNotFound(consultation_id)
    return record


def _found(record: Optional[ConsultationRecord], consultation_id: str) -> ConsultationRecord:
    # 조회 이후 다른 요청이 삭제한 경우
    if record is None:
        raise ConsultationNotFound(consultation_id)
    return record


def _routine_response(routine: WeeklyRoutine, exists: bool) -> WeeklyRoutineResponse:
    monday, friday, overall = weekly_routine_completion(routine)
    return WeeklyRoutineResponse(
        **routine.model_dump(),
        exists=exists,
        monday_completion=monday,
        friday_completion=friday,
        overall_completion=overall,
    )


##### 상담 기록 #####

@router.get("/consultations", response_model=ConsultationListResponse)
def list_consultations(service: ReRegistrationService = Depends(get_re_registration_service)):
    """전체 상담 목록 (최근 수정 순)"""
    consultations = service.all_consultations
    logger.info(f"Fetching consultations: key={service.repository.store.key}, total={len(consultations)}")
    return ConsultationListResponse(total=len(consultations), consultations=consultations)


@router.get("/consultations/targets", response_model=ConsultationListResponse)
def list_target_members(service: ReRegistrationService = Depends(get_re_registration_service)):
    """재등록 상담 필요 회원 (진행률 70% 이상, 결과 미정)"""
    targets = service.target_members
    return ConsultationListResponse(total=len(targets), consultations=targets)


@router.post("/consultations/validate", response_model=ConsultationValidationResponse)
def validate_consultation_form(data: ConsultationCreate):
    """저장 전 입력 검증 및 작성 완료율"""
    issues = validate_consultation(data)
    return ConsultationValidationResponse(
        valid=not issues,
        issues=issues,
        completion_rate=calculate_consultation_completion(data),
    )


@router.post("/consultations", response_model=ConsultationRecord, status_code=status.HTTP_201_CREATED)
def create_consultation(
    data: ConsultationCreate,
    service: ReRegistrationService = Depends(get_re_registration_service),
):
    """상담 기록 추가"""
    logger.info(f"Creating consultation: member={data.member_name}, key={service.repository.store.key}")

    issues = validate_consultation(data)
    if issues:
        raise ValidationFailed(issues)

    return service.add_consultation(data)


@router.get("/consultations/{consultation_id}", response_model=ConsultationRecord)
def get_consultation(
    consultation_id: str,
    service: ReRegistrationService = Depends(get_re_registration_service),
):
    """상담 기록 상세 조회"""
    return _get_or_404(service, consultation_id)


@router.patch("/consultations/{consultation_id}", response_model=ConsultationRecord)
def update_consultation(
    consultation_id: str,
    data: ConsultationUpdate,
    service: ReRegistrationService = Depends(get_re_registration_service),
):
    """상담 기록 수정 (보낸 필드만 반영)"""
    logger.info(f"Updating consultation: id={consultation_id}")
    record = _get_or_404(service, consultation_id)

    # 병합 결과 기준으로 검증
    merged = record.model_copy(update=data.model_dump(
        exclude_unset=True, exclude_none=True, exclude={"stage_checklists", "concern_factors"},
    ))
    issues = validate_consultation(merged)
    if issues:
        raise ValidationFailed(issues)

    return _found(service.update_consultation(consultation_id, data), consultation_id)


@router.delete("/consultations/{consultation_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_consultation(
    consultation_id: str,
    service: ReRegistrationService = Depends(get_re_registration_service),
):
    """상담 기록 삭제"""
    logger.info(f"Deleting consultation: id={consultation_id}")
    if not service.delete_consultation(consultation_id):
        raise ConsultationNotFound(consultation_id)


@router.get("/consultations/{consultation_id}/completion", response_model=ConsultationCompletionResponse)
def get_consultation_completion(
    consultation_id: str,
    service: ReRegistrationService = Depends(get_re_registration_service),
):
    """작성 완료율과 단계별 체크리스트 진행 현황"""
    record = _get_or_404(service, consultation_id)

    stages = []
    for checklist in record.stage_checklists:
        completed, total = checklist_completion(checklist)
        stages.append(StageProgress(
            stage=checklist.stage,
            title=STAGE_TITLES[checklist.stage],
            completed=completed,
            total=total,
        ))

    return ConsultationCompletionResponse(
        consultation_id=record.id,
        completion_rate=calculate_consultation_completion(record),
        current_stage=record.current_stage,
        stages=stages,
    )


@router.put("/consultations/{consultation_id}/checklists/{stage}/items/{item}", response_model=ConsultationRecord)
def set_checklist_item(
    consultation_id: str,
    data: ChecklistItemUpdate,
    stage: int = Path(..., ge=1, le=5),
    item: str = Path(..., max_length=64),
    service: ReRegistrationService = Depends(get_re_registration_service),
):
    """단계별 체크 항목 체크/해제"""
    record = _get_or_404(service, consultation_id)

    outcome = record.stage_checklists[4].outcome if stage == 5 else None
    issues = validate_checklist_item(stage, item, outcome)
    if issues:
        raise ValidationFailed(issues)

    logger.info(f"Checklist item set: id={consultation_id}, stage={stage}, item={item}, checked={data.checked}")
    try:
        updated = service.set_checklist_item(consultation_id, stage, item, data.checked)
    except ValueError as e:
        # 조회 이후 Stage 5 결과가 바뀐 경우
        raise BadRequest(str(e), code="CHECKLIST_ITEM_REJECTED")
    return _found(updated, consultation_id)


@router.put("/consultations/{consultation_id}/checklists/{stage}/memo", response_model=ConsultationRecord)
def set_checklist_memo(
    consultation_id: str,
    data: ChecklistMemoUpdate,
    stage: int = Path(..., ge=1, le=5),
    service: ReRegistrationService = Depends(get_re_registration_service),
):
    """단계별 메모 / 완료일 기록"""
    _get_or_404(service, consultation_id)
    return _found(service.set_checklist_memo(consultation_id, stage, data.memo, data.completed_date), consultation_id)


@router.put("/consultations/{consultation_id}/outcome", response_model=ConsultationRecord)
def set_outcome(
    consultation_id: str,
    data: OutcomeUpdate,
    service: ReRegistrationService = Depends(get_re_registration_service),
):
    """최종 결과 (재등록 / 휴회 / 종료) 기록, null이면 해제"""
    _get_or_404(service, consultation_id)
    return _found(service.set_outcome(consultation_id, data.outcome), consultation_id)


@router.patch("/consultations/{consultation_id}/concerns", response_model=ConsultationRecord)
def set_concern_factors(
    consultation_id: str,
    data: ConcernFactorsUpdate,
    service: ReRegistrationService = Depends(get_re_registration_service),
):
    """고민 요인 부분 수정"""
    _get_or_404(service, consultation_id)
    return _found(service.set_concern_factors(consultation_id, data), consultation_id)


##### 통계 #####

@router.get("/stats/monthly", response_model=MonthlyStats)
def get_monthly_stats(
    month: str = Query(..., pattern=MONTH_PATTERN, description="YYYY-MM"),
    service: ReRegistrationService = Depends(get_re_registration_service),
):
    """월간 재등록 통계"""
    logger.info(f"Fetching monthly stats: month={month}, key={service.repository.store.key}")
    return service.get_monthly_stats(month)


@router.get("/stats/current", response_model=MonthlyStats)
def get_current_month_stats(service: ReRegistrationService = Depends(get_re_registration_service)):
    """이번 달 재등록 통계"""
    return service.current_month_stats


##### 주간 루틴 #####

@router.get("/weekly-routines/current", response_model=WeeklyRoutineResponse)
def get_current_week_routine(service: ReRegistrationService = Depends(get_re_registration_service)):
    """이번 주 루틴 (없으면 빈 루틴)"""
    week_start = service.get_current_week_start()
    routine = service.get_weekly_routine(week_start)
    if routine is None:
        return _routine_response(WeeklyRoutine(week_start=week_start), exists=False)
    return _routine_response(routine, exists=True)


@router.get("/weekly-routines/{week_start}", response_model=WeeklyRoutineResponse)
def get_weekly_routine(
    week_start: datetime.date,
    service: ReRegistrationService = Depends(get_re_registration_service),
):
    """주간 루틴 조회 (week_start는 월요일)"""
    if week_start.weekday() != 0:
        raise BadRequest("주 시작일은 월요일이어야 합니다.", code="WEEK_START_NOT_MONDAY")

    routine = service.get_weekly_routine(week_start)
    if routine is None:
        return _routine_response(WeeklyRoutine(week_start=week_start), exists=False)
    return _routine_response(routine, exists=True)


@router.patch("/weekly-routines/{week_start}", response_model=WeeklyRoutineResponse)
def update_weekly_routine(
    week_start: datetime.date,
    data: WeeklyRoutineUpdate,
    service: ReRegistrationService = Depends(get_re_registration_service),
):
    """주간 루틴 수정 (없으면 생성)"""
    if week_start.weekday() != 0:
        raise BadRequest("주 시작일은 월요일이어야 합니다.", code="WEEK_START_NOT_MONDAY")

    logger.info(f"Updating weekly routine: week_start={week_start}, key={service.repository.store.key}")
    routine = service.update_weekly_routine(week_start, data)
    return _routine_response(routine, exists=True)


##### 기타 #####

@router.get("/scripts", response_model=ScriptsResponse)
def get_scripts():
    """단계별 추천 멘트 및 고민 요인별 대응 멘트"""
    return ScriptsResponse(
        recommended_scripts=RECOMMENDED_SCRIPTS,
        concern_responses=CONCERN_RESPONSES,
        concern_labels=CONCERN_LABELS,
    )


@router.delete("/data", status_code=status.HTTP_204_NO_CONTENT)
def reset_data(service: ReRegistrationService = Depends(get_re_registration_service)):
    """현재 슬롯의 재등록 데이터 전체 초기화"""
    logger.warning(f"Resetting re-registration data: key={service.repository.store.key}")
    service.reset_data()
