"""Scanner health report: rule coverage, update status and advisories.

`recommendations` is a pure function of a CoverageReport and an
UpdateStatus; `build_diagnostic_report` wraps both into the JSON-ready
document printed by `wcagshield diagnostic --json`.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from .registry import RuleRegistry
from .types import CoverageReport, Impact, Rule, UpdateStatus

if TYPE_CHECKING:
    from .config import Config

DIAGNOSTIC_SCHEMA = "wcagshield.diagnostic.v1"
DEFAULT_COVERAGE_THRESHOLD = 70
SERIOUS_NAMED_LIMIT = 3
CONTRAST_RULE_ID = "color-contrast"

_COVERAGE_BANDS = ((90, "excellent"), (70, "good"), (50, "fair"))


def coverage_status(percent: float) -> str:
    for floor, label in _COVERAGE_BANDS:
        if percent >= floor:
            return label
    return "needs-work"


def missing_rule_priority(rule: Rule) -> int:
    return rule.impact.rank


def recommendations(
    coverage: CoverageReport,
    update: UpdateStatus,
    *,
    coverage_threshold: float = DEFAULT_COVERAGE_THRESHOLD,
) -> list[str]:
    out: list[str] = []

    critical = [r for r in coverage.missing_rules if r.impact is Impact.CRITICAL]
    if critical:
        out.append(
            f"HIGH PRIORITY: Implement {len(critical)} critical rules: {', '.join(r.id for r in critical)}"
        )

    if update.update_available:
        out.append(
            f"NEW VERSION: WCAG {update.latest_known_version} is available with "
            f"{update.new_rules_count} new rules. Consider updating scanner."
        )

    if coverage.coverage_percent < coverage_threshold:
        out.append(
            f"COVERAGE: Currently at {coverage.coverage_percent}% of WCAG {coverage.target_version} "
            f"{coverage.target_level.value}. Implement {coverage.missing_count} more rules to improve."
        )

    serious = [r for r in coverage.missing_rules if r.impact is Impact.SERIOUS]
    if serious:
        named = ", ".join(r.name for r in serious[:SERIOUS_NAMED_LIMIT])
        more = "..." if len(serious) > SERIOUS_NAMED_LIMIT else ""
        out.append(f"SERIOUS: {len(serious)} serious-impact rules not yet implemented: {named}{more}")

    if any(r.id == CONTRAST_RULE_ID for r in coverage.missing_rules):
        out.append(
            "COMMON REQUEST: Color contrast check (1.4.3) is not implemented. "
            "This is one of the most commonly failed WCAG criteria."
        )

    if not out:
        out.append("Scanner is well-configured. No immediate improvements needed.")
    return out


def update_recommendation(update: UpdateStatus) -> str:
    if update.update_available:
        return (
            f"Update scanner to support WCAG {update.latest_known_version}. "
            f"{update.new_rules_count} new AA-level rules available."
        )
    return "Scanner is up to date with latest WCAG stable version."


def _rule_summary(rule: Rule) -> dict[str, Any]:
    return {
        "id": rule.id,
        "name": rule.name,
        "standard_version": rule.standard_version,
        "level": rule.level.value,
        "criterion_id": rule.criterion_id,
        "impact": rule.impact.value,
    }


def build_diagnostic_report(
    registry: RuleRegistry,
    *,
    config: "Config | None" = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    if config is not None:
        registry = config.apply_to_registry(registry)
        threshold = config.coverage_threshold
    else:
        threshold = DEFAULT_COVERAGE_THRESHOLD

    coverage = registry.coverage_gaps()
    update = registry.update_status()
    stamp = (now or datetime.now(timezone.utc)).isoformat()

    return {
        "schema": DIAGNOSTIC_SCHEMA,
        "scanner": {
            "tool_version": registry.tool_version,
            "target_version": registry.target_version,
            "target_level": registry.target_level.value,
            "last_checked": stamp,
        },
        "coverage": {
            "implemented": coverage.implemented_count,
            "total": coverage.total_count,
            "percentage": coverage.coverage_percent,
            "status": coverage_status(coverage.coverage_percent),
        },
        "implemented_rules": [_rule_summary(r) for r in registry.implemented_rules()],
        "missing_rules": [
            {**_rule_summary(r), "priority": missing_rule_priority(r)} for r in coverage.missing_rules
        ],
        "update_status": {
            "current_version": update.current_target_version,
            "latest_stable": update.latest_known_version,
            "update_available": update.update_available,
            "new_rules_count": update.new_rules_count,
            "recommendation": update_recommendation(update),
        },
        "versions": {k: v.to_dict() for k, v in registry.versions.items()},
        "recommendations": recommendations(coverage, update, coverage_threshold=threshold),
    }
