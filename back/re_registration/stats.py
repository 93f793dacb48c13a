"""
월간 재등록 통계 집계
"""

import os
from typing import Iterable

from dotenv import load_dotenv

from logs.logging_util import LoggerSingleton
from re_registration.scripts import CONCERN_KEYS, CONCERN_LABELS
from re_registration.stage import round_half_up
from schemas.re_registration import (
    ConsultationRecord,
    FinalOutcome,
    MonthlyStats,
    ReasonAnalysis,
    ReasonCount,
)

load_dotenv()

logger = LoggerSingleton.get_logger(logger_name="stats")

FALLBACK_TARGET_RATE = 80


def target_rate_from_env() -> int:
    """RE_REGISTRATION_TARGET_RATE (0~100). 잘못된 값이면 경고 후 80 사용"""
    raw = os.getenv("RE_REGISTRATION_TARGET_RATE")
    if raw is None:
        return FALLBACK_TARGET_RATE
    try:
        rate = int(raw)
    except ValueError:
        rate = None
    if rate is None or not 0 <= rate <= 100:
        logger.warning(f"Invalid RE_REGISTRATION_TARGET_RATE={raw!r}, using {FALLBACK_TARGET_RATE}")
        return FALLBACK_TARGET_RATE
    return rate


# 목표 재등록률 (%)
DEFAULT_TARGET_RATE = target_rate_from_env()

# 재등록 없이 끝난 결과 (이탈 원인 분석 대상)
_NOT_RE_REGISTERED = (FinalOutcome.PAUSED, FinalOutcome.TERMINATED)


def _in_month(record: ConsultationRecord, month: str) -> bool:
    return (
        record.created_at.strftime("%Y-%m") == month
        or record.updated_at.strftime("%Y-%m") == month
    )


def _rank_reasons(analysis: ReasonAnalysis) -> list[ReasonCount]:
    counts = analysis.model_dump()
    total = sum(counts.values())
    ranked = sorted(CONCERN_KEYS, key=lambda key: counts[key], reverse=True)
    return [
        ReasonCount(
            key=key,
            label=CONCERN_LABELS[key],
            count=counts[key],
            percentage=round_half_up(counts[key] / total * 100) if total > 0 else 0,
        )
        for key in ranked
        if counts[key] > 0
    ]


def calculate_monthly_stats(
    consultations: Iterable[ConsultationRecord],
    month: str,
    target_rate: int = DEFAULT_TARGET_RATE,
) -> MonthlyStats:
    """month(YYYY-MM)에 생성/수정된 상담 기준 통계

    대상자가 없으면 재등록률은 0, 이탈 원인 목록은 비어 있음
    """
    month_consultations = [c for c in consultations if _in_month(c, month)]

    outcomes = [c.final_outcome for c in month_consultations]
    re_registered = outcomes.count(FinalOutcome.RE_REGISTERED)
    paused = outcomes.count(FinalOutcome.PAUSED)
    terminated = outcomes.count(FinalOutcome.TERMINATED)

    reasons = {key: 0 for key in CONCERN_KEYS}
    for consultation in month_consultations:
        if consultation.final_outcome not in _NOT_RE_REGISTERED:
            continue
        for key in CONCERN_KEYS:
            if getattr(consultation.concern_factors, key):
                reasons[key] += 1
    reason_analysis = ReasonAnalysis(**reasons)

    target_count = len(month_consultations)
    rate = round_half_up(re_registered / target_count * 100) if target_count > 0 else 0

    return MonthlyStats(
        month=month,
        target_count=target_count,
        re_registered_count=re_registered,
        paused_count=paused,
        terminated_count=terminated,
        re_registration_rate=rate,
        target_rate=target_rate,
        reason_analysis=reason_analysis,
        reasons_by_frequency=_rank_reasons(reason_analysis),
    )
