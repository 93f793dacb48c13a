"""
단계별 추천 멘트와 고민 요인별 대응 멘트
"""

RECOMMENDED_SCRIPTS = {
    "stage1": '"회원님, 벌써 한 달이 됐네요! 체지방 1.2kg 빠지고 근육량 0.5kg 늘었어요. 꾸준히 오신 보람이 있죠?"',
    "stage2": '"절반 왔어요! 지금 페이스면 목표 충분히 달성 가능해요. 남은 기간 어떤 부분에 더 집중할까요?"',
    "stage3": (
        '"회원님, 지금까지 정말 잘 오셨어요. 이 페이스로 3개월만 더 하시면 목표 체중 충분히 가능해요. '
        '마침 이번 달 재등록 이벤트가 있는데, 어차피 계속하실 거라면 혜택 챙기시는 게 합리적이에요!"'
    ),
    "stage4": '"이번 주까지 재등록하시면 2회 추가 혜택이 있어요. 혹시 고민되시는 부분 있으시면 말씀해주세요!"',
    "stage5_terminated": (
        '"그동안 정말 수고하셨어요. 혼자 운동하실 때 참고하시라고 루틴 정리해드릴게요. '
        '언제든 다시 오시면 환영해요!"'
    ),
}

CONCERN_RESPONSES = {
    "cost": '"장기 등록하시면 회당 단가가 낮아져요. 3개월보다 6개월이 회당 OO원 저렴해요."',
    "time": '"주 2회가 부담되시면 주 1회로 조정해볼까요? 페이스 유지하는 게 중요해요."',
    "effect_doubt": '"지금까지 OOkg 빠지셨잖아요. 여기서 멈추면 요요 올 수 있어서, 유지 기간이 필요해요."',
}

CONCERN_LABELS = {
    "cost": "비용 부담",
    "time": "시간 부족",
    "effect_doubt": "효과에 대한 의문",
    "self_training": "혼자 운동하고 싶음",
    "other_gym": "다른 곳 알아보는 중",
    "personal_reason": "개인 사정",
    "other": "기타",
}

# 고민 요인 플래그 키 (other_text 제외)
CONCERN_KEYS = tuple(CONCERN_LABELS)
