"""
PT 재등록 관리 스키마

상담 기록, 단계별 체크리스트, 월간 통계, 주간 루틴 및 저장 데이터셋
"""

import datetime
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator


class FinalOutcome(str, Enum):
    """Stage 5 최종 결과"""
    RE_REGISTERED = "re_registered"
    PAUSED = "paused"
    TERMINATED = "terminated"


MemberReaction = Literal["positive", "considering", "negative", ""]


# ===== 고민 요인 =====

class ConcernFactors(BaseModel):
    cost: bool = False  # 비용 부담
    time: bool = False  # 시간 부족
    effect_doubt: bool = False  # 효과에 대한 의문
    self_training: bool = False  # 혼자 운동하고 싶음
    other_gym: bool = False  # 다른 곳 알아보는 중
    personal_reason: bool = False  # 개인 사정 (이사, 직장 등)
    other: bool = False  # 기타
    other_text: str = ""


class ConcernFactorsUpdate(BaseModel):
    """고민 요인 부분 수정 (지정한 항목만 반영)"""
    cost: Optional[bool] = None
    time: Optional[bool] = None
    effect_doubt: Optional[bool] = None
    self_training: Optional[bool] = None
    other_gym: Optional[bool] = None
    personal_reason: Optional[bool] = None
    other: Optional[bool] = None
    other_text: Optional[str] = None


# ===== 단계별 체크리스트 =====

class Stage1Items(BaseModel):
    roadmap_shared: bool = False  # OT에서 12주 로드맵 공유 완료
    habit_formation: bool = False  # 첫 2주: 운동 습관 형성 집중
    first_inbody: bool = False  # 4주차: 첫 번째 인바디 측정
    data_organized: bool = False  # 변화 데이터 정리 (체중, 체지방, 근육량)
    positive_feedback: bool = False  # 긍정적 변화 피드백 전달


class Stage2Items(BaseModel):
    goal_progress: bool = False  # 목표 달성도 점검
    satisfaction: bool = False  # 프로그램 만족도 확인
    remaining_plan: bool = False  # 남은 기간 계획 논의
    goal_reset: bool = False  # 필요시 목표 재설정
    member_feedback: bool = False  # 회원 피드백 청취


class Stage3Items(BaseModel):
    data_visualization: bool = False  # 전체 변화 데이터 시각화 자료 준비
    before_after_photos: bool = False  # 비포/애프터 사진 정리
    future_roadmap: bool = False  # 향후 3~6개월 로드맵 준비
    promotion_check: bool = False  # 현재 프로모션/이벤트 확인
    consultation_done: bool = False  # 재등록 상담 진행
    reaction_recorded: bool = False  # 회원 반응 기록


class Stage4Items(BaseModel):
    last_benefit: bool = False  # 마지막 혜택 안내
    concern_resolved: bool = False  # 고민 요인 파악 및 해소
    after_plan: bool = False  # 종료 후 계획 논의
    final_decision: bool = False  # 최종 결정 확인


class Stage5Items(BaseModel):
    # 재등록 완료 시
    new_registration: bool = False
    next_goal: bool = False
    program_upgrade: bool = False
    # 휴회 시
    pause_period: bool = False
    return_date: bool = False
    monthly_contact: bool = False
    # 종료 시
    termination_reason: bool = False
    exercise_guide: bool = False
    future_contact: bool = False


class Stage1Checklist(BaseModel):
    stage: Literal[1] = 1
    progress_range: Literal["100-70"] = "100-70"
    items: Stage1Items = Field(default_factory=Stage1Items)
    memo: str = ""
    completed_date: Optional[datetime.date] = None


class Stage2Checklist(BaseModel):
    stage: Literal[2] = 2
    progress_range: Literal["70-50"] = "70-50"
    items: Stage2Items = Field(default_factory=Stage2Items)
    memo: str = ""
    completed_date: Optional[datetime.date] = None


class Stage3Checklist(BaseModel):
    stage: Literal[3] = 3
    progress_range: Literal["50-30"] = "50-30"
    items: Stage3Items = Field(default_factory=Stage3Items)
    memo: str = ""
    completed_date: Optional[datetime.date] = None


class Stage4Checklist(BaseModel):
    stage: Literal[4] = 4
    progress_range: Literal["30-10"] = "30-10"
    items: Stage4Items = Field(default_factory=Stage4Items)
    memo: str = ""
    completed_date: Optional[datetime.date] = None


class Stage5Checklist(BaseModel):
    stage: Literal[5] = 5
    progress_range: Literal["0"] = "0"
    outcome: Optional[FinalOutcome] = None
    items: Stage5Items = Field(default_factory=Stage5Items)
    memo: str = ""
    completed_date: Optional[datetime.date] = None


StageChecklist = Annotated[
    Union[Stage1Checklist, Stage2Checklist, Stage3Checklist, Stage4Checklist, Stage5Checklist],
    Field(discriminator="stage"),
]

CHECKLIST_TYPES = {
    1: Stage1Checklist,
    2: Stage2Checklist,
    3: Stage3Checklist,
    4: Stage4Checklist,
    5: Stage5Checklist,
}


def default_stage_checklists() -> list:
    return [checklist_type() for checklist_type in CHECKLIST_TYPES.values()]


def normalize_stage_checklists(checklists: list) -> list:
    """단계 1~5 순서로 정렬하고 빠진 단계는 빈 체크리스트로 채움"""
    by_stage = {checklist.stage: checklist for checklist in checklists}
    return [
        by_stage.get(stage) or checklist_type()
        for stage, checklist_type in CHECKLIST_TYPES.items()
    ]


def merge_stage_checklists(current: list, changes: list) -> list:
    """changes 에 담긴 단계만 교체하고 나머지 단계는 current 값을 유지"""
    by_stage = {checklist.stage: checklist for checklist in normalize_stage_checklists(current)}
    by_stage.update({checklist.stage: checklist for checklist in changes})
    return [by_stage[stage] for stage in CHECKLIST_TYPES]


# ===== 재등록 상담 기록 =====

class ConsultationFields(BaseModel):
    """상담 기록 공통 필드"""
    member_id: str = Field(default="", max_length=64, description="회원 ID")
    member_name: str = Field(default="", max_length=100, description="회원명")
    consultation_date: datetime.date = Field(default_factory=datetime.date.today, description="상담일")
    remaining_sessions: int = Field(default=0, ge=0, description="잔여 회차")
    total_sessions: int = Field(default=0, ge=0, description="전체 회차")
    assigned_trainer: str = Field(default="", max_length=100, description="담당 트레이너")
    member_reaction: MemberReaction = Field(default="", description="회원 반응")
    concern_factors: ConcernFactors = Field(default_factory=ConcernFactors)
    response_strategy: str = Field(default="", description="대응 전략")
    follow_up_plan: str = Field(default="", description="후속 계획")
    next_contact_date: Optional[datetime.date] = Field(None, description="다음 연락 예정일")
    stage_checklists: List[StageChecklist] = Field(default_factory=default_stage_checklists)
    final_outcome: Optional[FinalOutcome] = None

    @field_validator("stage_checklists")
    @classmethod
    def _ordered_checklists(cls, value):
        return normalize_stage_checklists(value)


class ConsultationCreate(ConsultationFields):
    """상담 생성 스키마

    progress_percentage를 생략하면 잔여/전체 회차로 계산합니다.
    """
    progress_percentage: Optional[int] = Field(None, description="진행률 (%)")


class ConsultationUpdate(BaseModel):
    """상담 수정 스키마 (모든 필드 선택적)"""
    member_id: Optional[str] = Field(None, max_length=64)
    member_name: Optional[str] = Field(None, max_length=100)
    consultation_date: Optional[datetime.date] = None
    remaining_sessions: Optional[int] = Field(None, ge=0)
    total_sessions: Optional[int] = Field(None, ge=0)
    progress_percentage: Optional[int] = None
    assigned_trainer: Optional[str] = Field(None, max_length=100)
    member_reaction: Optional[MemberReaction] = None
    concern_factors: Optional[ConcernFactors] = None
    response_strategy: Optional[str] = None
    follow_up_plan: Optional[str] = None
    next_contact_date: Optional[datetime.date] = None
    stage_checklists: Optional[List[StageChecklist]] = None
    final_outcome: Optional[FinalOutcome] = None

    @field_validator("stage_checklists")
    @classmethod
    def _ordered_checklists(cls, value):
        # 보낸 단계만 유지 (빠진 단계는 기존 기록 값을 그대로 사용)
        return sorted(value, key=lambda checklist: checklist.stage) if value is not None else value


class ConsultationRecord(ConsultationFields):
    """저장/응답용 상담 기록"""
    id: str
    progress_percentage: int = Field(..., ge=0, le=100)
    current_stage: int = Field(..., ge=1, le=5)
    created_at: datetime.datetime
    updated_at: datetime.datetime


class ConsultationListResponse(BaseModel):
    total: int
    consultations: List[ConsultationRecord]


# ===== 타입이 지정된 부분 수정 명령 =====

class ChecklistItemUpdate(BaseModel):
    checked: bool


class ChecklistMemoUpdate(BaseModel):
    memo: str = ""
    completed_date: Optional[datetime.date] = None


class OutcomeUpdate(BaseModel):
    outcome: Optional[FinalOutcome] = None


# ===== 검증 / 완료율 =====

class ValidationIssue(BaseModel):
    field: str
    code: str
    message: str


class ConsultationValidationResponse(BaseModel):
    valid: bool
    issues: List[ValidationIssue]
    completion_rate: int


class StageProgress(BaseModel):
    stage: int
    title: str
    completed: int
    total: int


class ConsultationCompletionResponse(BaseModel):
    consultation_id: str
    completion_rate: int
    current_stage: int
    stages: List[StageProgress]


# ===== 월간 통계 =====

class ReasonAnalysis(BaseModel):
    cost: int = 0
    time: int = 0
    effect_doubt: int = 0
    self_training: int = 0
    other_gym: int = 0
    personal_reason: int = 0
    other: int = 0


class ReasonCount(BaseModel):
    key: str
    label: str
    count: int
    percentage: int


class MonthlyStats(BaseModel):
    month: str  # YYYY-MM
    target_count: int  # 재등록 대상자 수
    re_registered_count: int
    paused_count: int
    terminated_count: int
    re_registration_rate: int  # 재등록률 (%)
    target_rate: int  # 목표 재등록률
    reason_analysis: ReasonAnalysis
    reasons_by_frequency: List[ReasonCount]


# ===== 주간 루틴 =====

class MondayTasks(BaseModel):
    check_target_view: bool = False  # 재등록 상담 필요 뷰 확인
    review_expiring_list: bool = False  # 이번 주 만료 예정 회원 리스트업
    schedule_consultation: bool = False  # 각 회원 상담 일정 잡기
    prepare_data: bool = False  # 변화 데이터 자료 준비
    memo: str = ""


class FridayTasks(BaseModel):
    summarize_results: bool = False  # 이번 주 상담 결과 정리
    check_missed: bool = False  # 미상담 회원 체크
    plan_next_week: bool = False  # 다음 주 계획 수립
    memo: str = ""


class MondayTasksUpdate(BaseModel):
    check_target_view: Optional[bool] = None
    review_expiring_list: Optional[bool] = None
    schedule_consultation: Optional[bool] = None
    prepare_data: Optional[bool] = None
    memo: Optional[str] = None


class FridayTasksUpdate(BaseModel):
    summarize_results: Optional[bool] = None
    check_missed: Optional[bool] = None
    plan_next_week: Optional[bool] = None
    memo: Optional[str] = None


class WeeklyRoutine(BaseModel):
    week_start: datetime.date  # 월요일
    monday_tasks: MondayTasks = Field(default_factory=MondayTasks)
    friday_tasks: FridayTasks = Field(default_factory=FridayTasks)


class WeeklyRoutineUpdate(BaseModel):
    monday_tasks: Optional[MondayTasksUpdate] = None
    friday_tasks: Optional[FridayTasksUpdate] = None


class WeeklyRoutineResponse(WeeklyRoutine):
    exists: bool
    monday_completion: int
    friday_completion: int
    overall_completion: int


# ===== 저장 데이터셋 =====

class ReRegistrationData(BaseModel):
    consultations: List[ConsultationRecord] = Field(default_factory=list)
    weekly_routines: List[WeeklyRoutine] = Field(default_factory=list)
    last_updated: Optional[datetime.datetime] = None


class ScriptsResponse(BaseModel):
    recommended_scripts: Dict[str, str]
    concern_responses: Dict[str, str]
    concern_labels: Dict[str, str]
