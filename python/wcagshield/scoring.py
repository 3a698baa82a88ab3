from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping, Sequence, TypeVar

from .types import Impact, Principle, PrincipleBreakdown, Violation

_E = TypeVar("_E", bound=Enum)


def _exhaustive(table: Mapping[_E, int], enum_cls: type[_E], name: str) -> Mapping[_E, int]:
    missing = [member.value for member in enum_cls if member not in table]
    if missing:
        raise RuntimeError(f"{name} has no entry for: {', '.join(missing)}")
    return MappingProxyType(dict(table))


IMPACT_WEIGHTS = _exhaustive(
    {Impact.CRITICAL: 25, Impact.SERIOUS: 15, Impact.MODERATE: 8, Impact.MINOR: 3},
    Impact,
    "IMPACT_WEIGHTS",
)
PRINCIPLE_DEDUCTIONS = _exhaustive(
    {Impact.CRITICAL: 20, Impact.SERIOUS: 12, Impact.MODERATE: 6, Impact.MINOR: 3},
    Impact,
    "PRINCIPLE_DEDUCTIONS",
)

NODE_CAP = 5
PASS_BONUS_PER_CHECK = 2
PASS_BONUS_CAP = 15
DEFAULT_PRINCIPLE = Principle.ROBUST


def _clamp(value: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, value))


def total_deduction(violations: Iterable[Violation]) -> int:
    return sum(IMPACT_WEIGHTS[v.impact] * min(v.node_count, NODE_CAP) for v in violations)


def pass_bonus(total_checks: int, violation_count: int) -> int:
    passed = max(0, int(total_checks) - int(violation_count))
    return min(passed * PASS_BONUS_PER_CHECK, PASS_BONUS_CAP)


def calculate_score(violations: Sequence[Violation], total_checks: int) -> int:
    """Overall 0-100 score.

    Each violation costs its impact weight once per offending node, up to
    NODE_CAP nodes. Checks that passed add a small capped bonus.
    """
    deduction = total_deduction(violations)
    bonus = pass_bonus(total_checks, len(violations))
    return _clamp(100 - deduction + bonus, 0, 100)


def principle_breakdown(
    violations: Iterable[Violation],
    principle_for: Mapping[str, Principle] | None = None,
) -> dict[Principle, PrincipleBreakdown]:
    mapping = principle_for or {}
    counts = {p: 0 for p in Principle}
    scores = {p: 100 for p in Principle}
    for v in violations:
        principle = mapping.get(v.rule_id, DEFAULT_PRINCIPLE)
        counts[principle] += v.node_count
        scores[principle] = max(0, scores[principle] - PRINCIPLE_DEDUCTIONS[v.impact])
    return {p: PrincipleBreakdown(violation_count=counts[p], score=scores[p]) for p in Principle}


def impact_counts(violations: Iterable[Violation]) -> dict[Impact, int]:
    out = {i: 0 for i in Impact}
    for v in violations:
        out[v.impact] += 1
    return out
