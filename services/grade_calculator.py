"""
services/grade_calculator.py

성적 집계 로직 (DB 접근 없음, 순수 함수)
- weighted_total: 학생 한 명의 가중 총점 (0~100 환산)
- item_statistics / grade_distribution: 성적 항목 하나의 통계와 등급 분포
- letter_grade: 만점 대비 백분율 → A/B/C/D/F
- next_group_name: "Group N" 자동 이름 (비어 있는 가장 작은 번호)
- unfinished_groups: 해당 항목 점수가 아직 다 입력되지 않은 분조
"""

import re
from typing import Dict, Iterable, List, Mapping, Optional, Set

# (하한 백분율, 등급) - 위에서부터 처음 만족하는 구간을 사용
GRADE_BANDS = [(90, "A"), (80, "B"), (70, "C"), (60, "D")]
FAIL_GRADE = "F"
LETTERS = [letter for _, letter in GRADE_BANDS] + [FAIL_GRADE]


def weighted_total(scores: Mapping[int, float], items: Iterable) -> float:
    """
    scores: {grade_item_id: score}, items: id/weight/max_score 속성을 가진 성적 항목들.

    점수가 입력된 항목만 분자·분모에 포함합니다. 미입력 항목은 0점 처리하지 않습니다.
    입력된 점수가 하나도 없으면 0.
    """
    total_weighted = 0.0
    total_weight = 0.0
    for item in items:
        score = scores.get(item.id)
        if score is None:
            continue
        normalized = score / item.max_score * 100
        total_weighted += normalized * item.weight
        total_weight += item.weight
    return total_weighted / total_weight if total_weight > 0 else 0.0


def letter_grade(score: float, max_score: float) -> str:
    percentage = score * 100 / max_score
    for lower_bound, letter in GRADE_BANDS:
        if percentage >= lower_bound:
            return letter
    return FAIL_GRADE


def item_statistics(scores: List[float]) -> Dict[str, float]:
    if not scores:
        return {"count": 0, "average": 0.0, "maximum": 0.0, "minimum": 0.0}
    return {
        "count": len(scores),
        "average": sum(scores) / len(scores),
        "maximum": max(scores),
        "minimum": min(scores),
    }


def grade_distribution(scores: List[float], max_score: float) -> Dict[str, int]:
    distribution = {letter: 0 for letter in LETTERS}
    for score in scores:
        distribution[letter_grade(score, max_score)] += 1
    return distribution


def next_group_number(existing_names: Iterable[str], prefix: str = "Group") -> int:
    pattern = re.compile(rf"^{re.escape(prefix)}\s*(\d+)$")
    numbers: Set[int] = set()
    for name in existing_names:
        match = pattern.match((name or "").strip())
        if match:
            numbers.add(int(match.group(1)))

    candidate = 1
    while candidate in numbers:
        candidate += 1
    return candidate


def next_group_name(existing_names: Iterable[str], prefix: str = "Group") -> str:
    return f"{prefix} {next_group_number(existing_names, prefix)}"


def is_group_finished(member_ids: Iterable[int], graded_ids: Set[int]) -> bool:
    members = list(member_ids)
    return bool(members) and all(member in graded_ids for member in members)


def unfinished_groups(groups: Iterable, graded_ids: Optional[Set[int]]) -> List:
    """
    graded_ids: 선택한 성적 항목에 점수가 있는 학생 PK 집합.
    None이면(항목 미선택) 모든 분조를 그대로 돌려줍니다.
    구성원이 없는 분조는 일괄 채점 대상이 아니므로 제외합니다.
    """
    groups = list(groups)
    if graded_ids is None:
        return groups

    result = []
    for group in groups:
        member_ids = [sg.student_id for sg in group.student_groups]
        if not member_ids:
            continue
        if not is_group_finished(member_ids, graded_ids):
            result.append(group)
    return result
