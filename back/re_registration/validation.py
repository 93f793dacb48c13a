"""
상담 기록 검증 및 완료율 계산

검증 함수는 예외 대신 ValidationIssue 목록을 반환하고,
어떻게 보여줄지는 호출하는 쪽(라우터)이 결정합니다.
"""

from typing import Optional, Union

from re_registration.scripts import CONCERN_KEYS
from re_registration.stage import round_half_up
from schemas.re_registration import (
    CHECKLIST_TYPES,
    ConsultationCreate,
    ConsultationRecord,
    FinalOutcome,
    Stage5Checklist,
    ValidationIssue,
    WeeklyRoutine,
)

# Stage 5 결과별 후속 체크 항목
OUTCOME_ITEMS = {
    FinalOutcome.RE_REGISTERED: ("new_registration", "next_goal", "program_upgrade"),
    FinalOutcome.PAUSED: ("pause_period", "return_date", "monthly_contact"),
    FinalOutcome.TERMINATED: ("termination_reason", "exercise_guide", "future_contact"),
}


def validate_consultation(data: Union[ConsultationCreate, ConsultationRecord]) -> list[ValidationIssue]:
    issues = []

    if not data.member_name.strip():
        issues.append(ValidationIssue(
            field="member_name",
            code="REQUIRED",
            message="회원명을 입력해주세요.",
        ))

    if data.total_sessions > 0 and data.remaining_sessions > data.total_sessions:
        issues.append(ValidationIssue(
            field="remaining_sessions",
            code="EXCEEDS_TOTAL",
            message="잔여 회차는 전체 회차보다 클 수 없습니다.",
        ))

    return issues


def validate_checklist_item(stage: int, item: str, outcome: Optional[FinalOutcome] = None) -> list[ValidationIssue]:
    """stage 체크리스트에 item 항목이 있는지, Stage 5라면 선택된 결과의 항목인지 확인"""
    checklist_type = CHECKLIST_TYPES.get(stage)
    if checklist_type is None:
        return [ValidationIssue(field="stage", code="UNKNOWN_STAGE", message="단계는 1~5 중 하나여야 합니다.")]

    items_type = checklist_type.model_fields["items"].annotation
    if item not in items_type.model_fields:
        return [ValidationIssue(
            field="item",
            code="UNKNOWN_ITEM",
            message=f"Stage {stage}에 '{item}' 항목이 없습니다.",
        )]

    if stage == 5:
        if outcome is None:
            return [ValidationIssue(
                field="outcome",
                code="OUTCOME_REQUIRED",
                message="최종 결과를 먼저 선택해주세요.",
            )]
        if item not in OUTCOME_ITEMS[outcome]:
            return [ValidationIssue(
                field="item",
                code="ITEM_NOT_IN_OUTCOME",
                message=f"'{item}' 항목은 현재 결과({outcome.value})의 체크 항목이 아닙니다.",
            )]

    return []


def calculate_consultation_completion(data: Union[ConsultationCreate, ConsultationRecord]) -> int:
    """상담 기록 작성 완료율 (%)"""
    slots = [
        bool(data.member_name),
        bool(data.consultation_date),
        bool(data.assigned_trainer),
        bool(data.member_reaction),
        data.remaining_sessions > 0,
        any(getattr(data.concern_factors, key) for key in CONCERN_KEYS),
        bool(data.response_strategy.strip()),
        bool(data.follow_up_plan.strip()),
    ]
    return round_half_up(sum(slots) / len(slots) * 100)


def checklist_completion(checklist) -> tuple[int, int]:
    """(완료 항목 수, 전체 항목 수). Stage 5는 선택된 결과의 항목만 집계"""
    if isinstance(checklist, Stage5Checklist):
        if checklist.outcome is None:
            return 0, 0
        keys = OUTCOME_ITEMS[checklist.outcome]
        completed = sum(1 for key in keys if getattr(checklist.items, key))
        return completed, len(keys)

    values = list(checklist.items.model_dump().values())
    return sum(1 for value in values if value is True), len(values)


def _rate(flags: list) -> int:
    return round_half_up(sum(1 for flag in flags if flag) / len(flags) * 100)


def weekly_routine_completion(routine: WeeklyRoutine) -> tuple[int, int, int]:
    """(월요일 완료율, 금요일 완료율, 평균)"""
    monday = routine.monday_tasks
    friday = routine.friday_tasks
    monday_rate = _rate([
        monday.check_target_view,
        monday.review_expiring_list,
        monday.schedule_consultation,
        monday.prepare_data,
    ])
    friday_rate = _rate([friday.summarize_results, friday.check_missed, friday.plan_next_week])
    return monday_rate, friday_rate, round_half_up((monday_rate + friday_rate) / 2)
