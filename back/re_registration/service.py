"""
재등록 상담 서비스

대시보드가 사용하는 상담 CRUD, 재등록 대상자 뷰, 월간 통계, 주간 루틴.
변경은 저장소의 최신 데이터에 키 잠금 안에서 적용되고 곧바로 기록됩니다.
"""

import secrets
import string
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional

from logs.logging_util import LoggerSingleton
from re_registration.stage import (
    GOLDEN_WINDOW_PERCENTAGE,
    calculate_current_stage,
    calculate_progress_percentage,
    clamp_percentage,
)
from re_registration.stats import calculate_monthly_stats
from re_registration.storage import ConsultationRepository
from re_registration.validation import validate_checklist_item
from schemas.re_registration import (
    ConcernFactorsUpdate,
    ConsultationCreate,
    ConsultationRecord,
    ConsultationUpdate,
    FinalOutcome,
    MonthlyStats,
    ReRegistrationData,
    WeeklyRoutine,
    WeeklyRoutineUpdate,
    merge_stage_checklists,
)

logger = LoggerSingleton.get_logger(logger_name="re_registration")

# 수정 시 null 로 되돌릴 수 있는 필드
NULLABLE_FIELDS = {"next_contact_date", "final_outcome"}

_ID_ALPHABET = string.ascii_lowercase + string.digits


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_consultation_id(now: datetime) -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(7))
    return f"consultation-{int(now.timestamp() * 1000)}-{suffix}"


def _sync_outcome(record: ConsultationRecord, source: str) -> None:
    """final_outcome 과 Stage 5 체크리스트의 outcome 을 같은 값으로 맞춤"""
    stage5 = record.stage_checklists[4]
    if source == "final":
        stage5.outcome = record.final_outcome
    else:
        record.final_outcome = stage5.outcome


class ReRegistrationService:
    def __init__(self, repository: ConsultationRepository, now: Callable[[], datetime] = _utcnow):
        self.repository = repository
        self._now = now

    @property
    def data(self) -> ReRegistrationData:
        return self.repository.data

    ##### 조회 #####

    def get_consultation(self, consultation_id: str) -> Optional[ConsultationRecord]:
        return self.repository.get(consultation_id)

    @property
    def all_consultations(self) -> list[ConsultationRecord]:
        """최근 수정 순"""
        return sorted(self.repository.list(), key=lambda c: c.updated_at, reverse=True)

    @property
    def target_members(self) -> list[ConsultationRecord]:
        """재등록 상담 필요 대상 (진행률 70% 이상, 결과 미정), 진행률 낮은 순"""
        targets = [
            c for c in self.repository.list()
            if c.progress_percentage >= GOLDEN_WINDOW_PERCENTAGE and c.final_outcome is None
        ]
        return sorted(targets, key=lambda c: c.progress_percentage)

    ##### 상담 CRUD #####

    def add_consultation(self, data: ConsultationCreate) -> ConsultationRecord:
        now = self._now()
        if data.progress_percentage is not None:
            progress = clamp_percentage(data.progress_percentage)
        else:
            progress = calculate_progress_percentage(data.remaining_sessions, data.total_sessions)

        fields = data.model_dump(exclude={"progress_percentage"})
        record = ConsultationRecord.model_validate({
            **fields,
            "id": generate_consultation_id(now),
            "progress_percentage": progress,
            "current_stage": calculate_current_stage(progress),
            "created_at": now,
            "updated_at": now,
        })
        _sync_outcome(record, "final" if record.final_outcome is not None else "checklist")

        self.repository.upsert(record)
        logger.info(f"Consultation added: id={record.id}, member={record.member_name}, stage={record.current_stage}")
        return record

    def update_consultation(self, consultation_id: str, updates: ConsultationUpdate) -> Optional[ConsultationRecord]:
        values = updates.model_dump()
        changes = {
            field: values[field]
            for field in updates.model_fields_set
            if values[field] is not None or field in NULLABLE_FIELDS
        }
        # Stage 5 가 포함된 체크리스트 수정이면 그 outcome 을 final_outcome 에 반영
        checklist_outcome = "stage_checklists" in changes and any(c.stage == 5 for c in updates.stage_checklists)

        def change(record):
            merged = {**record.model_dump(), **changes}
            if "stage_checklists" in changes:
                merged["stage_checklists"] = [
                    c.model_dump() for c in merge_stage_checklists(record.stage_checklists, updates.stage_checklists)
                ]

            if "progress_percentage" in changes:
                progress = clamp_percentage(changes["progress_percentage"])
            elif ("remaining_sessions" in changes or "total_sessions" in changes) and merged["total_sessions"] > 0:
                progress = calculate_progress_percentage(merged["remaining_sessions"], merged["total_sessions"])
            else:
                progress = record.progress_percentage

            merged["progress_percentage"] = progress
            merged["current_stage"] = calculate_current_stage(progress)
            merged["updated_at"] = self._now()

            updated = ConsultationRecord.model_validate(merged)
            if "final_outcome" in changes:
                _sync_outcome(updated, "final")
            elif checklist_outcome:
                _sync_outcome(updated, "checklist")
            return updated

        updated = self.repository.update_record(consultation_id, change)
        if updated is not None:
            logger.info(f"Consultation updated: id={consultation_id}, fields={sorted(changes)}")
        return updated

    def delete_consultation(self, consultation_id: str) -> bool:
        deleted = self.repository.delete(consultation_id)
        if deleted:
            logger.info(f"Consultation deleted: id={consultation_id}")
        return deleted

    ##### 타입이 지정된 부분 수정 #####

    def _mutate(self, consultation_id: str, apply: Callable[[ConsultationRecord], None]) -> Optional[ConsultationRecord]:
        def change(record):
            updated = record.model_copy(deep=True)
            apply(updated)
            updated.updated_at = self._now()
            return updated

        return self.repository.update_record(consultation_id, change)

    def set_checklist_item(self, consultation_id: str, stage: int, item: str, checked: bool) -> Optional[ConsultationRecord]:
        def apply(record):
            outcome = record.stage_checklists[4].outcome if stage == 5 else None
            issues = validate_checklist_item(stage, item, outcome)
            if issues:
                raise ValueError(issues[0].message)
            setattr(record.stage_checklists[stage - 1].items, item, checked)

        return self._mutate(consultation_id, apply)

    def set_checklist_memo(
        self,
        consultation_id: str,
        stage: int,
        memo: str,
        completed_date: Optional[date] = None,
    ) -> Optional[ConsultationRecord]:
        if stage not in range(1, 6):
            raise ValueError("단계는 1~5 중 하나여야 합니다.")

        def apply(record):
            checklist = record.stage_checklists[stage - 1]
            checklist.memo = memo
            if completed_date is not None:
                checklist.completed_date = completed_date

        return self._mutate(consultation_id, apply)

    def set_outcome(self, consultation_id: str, outcome: Optional[FinalOutcome]) -> Optional[ConsultationRecord]:
        def apply(record):
            record.final_outcome = outcome
            _sync_outcome(record, "final")

        updated = self._mutate(consultation_id, apply)
        if updated is not None:
            logger.info(f"Consultation outcome set: id={consultation_id}, outcome={outcome.value if outcome else None}")
        return updated

    def set_concern_factors(self, consultation_id: str, changes: ConcernFactorsUpdate) -> Optional[ConsultationRecord]:
        def apply(record):
            for field, value in changes.model_dump(exclude_none=True).items():
                setattr(record.concern_factors, field, value)

        return self._mutate(consultation_id, apply)

    ##### 통계 #####

    def get_monthly_stats(self, month: str) -> MonthlyStats:
        return calculate_monthly_stats(self.repository.list(), month)

    @property
    def current_month_stats(self) -> MonthlyStats:
        return self.get_monthly_stats(self._now().strftime("%Y-%m"))

    ##### 주간 루틴 #####

    def get_current_week_start(self) -> date:
        today = self._now().date()
        return today - timedelta(days=today.weekday())

    def get_weekly_routine(self, week_start: date) -> Optional[WeeklyRoutine]:
        return next((r for r in self.data.weekly_routines if r.week_start == week_start), None)

    def get_current_week_routine(self) -> Optional[WeeklyRoutine]:
        return self.get_weekly_routine(self.get_current_week_start())

    def update_weekly_routine(self, week_start: date, updates: WeeklyRoutineUpdate) -> WeeklyRoutine:
        def apply(data):
            routine = next((r for r in data.weekly_routines if r.week_start == week_start), None)
            if routine is None:
                routine = WeeklyRoutine(week_start=week_start)
                data.weekly_routines.append(routine)

            if updates.monday_tasks is not None:
                for field, value in updates.monday_tasks.model_dump(exclude_none=True).items():
                    setattr(routine.monday_tasks, field, value)
            if updates.friday_tasks is not None:
                for field, value in updates.friday_tasks.model_dump(exclude_none=True).items():
                    setattr(routine.friday_tasks, field, value)
            return routine

        return self.repository.transaction(apply)

    ##### 전체 데이터 #####

    def reset_data(self) -> None:
        """슬롯을 비움 (이후 load 는 빈 데이터셋)"""
        self.repository.clear()
        logger.info(f"Re-registration data reset: key={self.repository.store.key}")
