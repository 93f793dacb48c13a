"""
진행률 → 재등록 단계 계산
"""

import math

# (하한 진행률, 단계): 진행률이 하한보다 크면 해당 단계
STAGE_BREAKPOINTS = ((70, 1), (50, 2), (30, 3), (10, 4))
FINAL_STAGE = 5

# 재등록 상담 필요 뷰 기준 (진행률 70% 이상)
GOLDEN_WINDOW_PERCENTAGE = 70

STAGE_TITLES = {
    1: "신뢰 구축 & 작은 변화 인식",
    2: "중간 점검 & 목표 재확인",
    3: "재등록 상담 시작 (핵심 타이밍)",
    4: "최종 결정 유도",
    5: "종료",
}

STAGE_RANGES = {
    1: "100% → 70%",
    2: "70% → 50%",
    3: "50% → 30%",
    4: "30% → 10%",
    5: "0%",
}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_percentage(percentage: int) -> int:
    return max(0, min(100, percentage))


def calculate_progress_percentage(remaining_sessions: int, total_sessions: int) -> int:
    """잔여 회차 / 전체 회차 비율 (%). 전체 회차가 0이면 0"""
    if total_sessions <= 0:
        return 0
    return clamp_percentage(round_half_up(remaining_sessions / total_sessions * 100))


def calculate_current_stage(progress_percentage: int) -> int:
    """진행률에 따른 현재 단계 (1~5)

    >70 → 1, >50 → 2, >30 → 3, >10 → 4, 그 외 5
    """
    for lower_bound, stage in STAGE_BREAKPOINTS:
        if progress_percentage > lower_bound:
            return stage
    return FINAL_STAGE
