from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class Impact(Enum):
    CRITICAL = "critical"
    SERIOUS = "serious"
    MODERATE = "moderate"
    MINOR = "minor"

    @property
    def rank(self) -> int:
        """1 for critical through 4 for minor."""
        return _IMPACT_ORDER.index(self) + 1


_IMPACT_ORDER = (Impact.CRITICAL, Impact.SERIOUS, Impact.MODERATE, Impact.MINOR)


class Principle(Enum):
    PERCEIVABLE = "perceivable"
    OPERABLE = "operable"
    UNDERSTANDABLE = "understandable"
    ROBUST = "robust"


class Level(Enum):
    A = "A"
    AA = "AA"
    AAA = "AAA"

    @property
    def rank(self) -> int:
        return _LEVEL_ORDER.index(self)

    def includes(self, other: "Level") -> bool:
        """Levels are cumulative: AA includes A, AAA includes both."""
        return other.rank <= self.rank


_LEVEL_ORDER = (Level.A, Level.AA, Level.AAA)


def parse_version(token: str) -> tuple[int, ...]:
    text = str(token or "").strip()
    if not text:
        raise ValueError("version token must not be empty")
    try:
        return tuple(int(part) for part in text.split("."))
    except ValueError:
        raise ValueError(f"invalid version token {token!r}") from None


@dataclass(frozen=True)
class Rule:
    id: str
    name: str
    standard_version: str
    level: Level
    principle: Principle
    criterion_id: str
    impact: Impact
    description: str
    help_url: str
    implemented: bool
    added_in_tool_version: str = ""

    @property
    def version_key(self) -> tuple[int, ...]:
        return parse_version(self.standard_version)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Rule":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            standard_version=str(data["standard_version"]),
            level=Level(str(data["level"])),
            principle=Principle(str(data["principle"])),
            criterion_id=str(data["criterion_id"]),
            impact=Impact(str(data["impact"])),
            description=str(data.get("description") or ""),
            help_url=str(data.get("help_url") or ""),
            implemented=bool(data.get("implemented", False)),
            added_in_tool_version=str(data.get("added_in_tool_version") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "standard_version": self.standard_version,
            "level": self.level.value,
            "principle": self.principle.value,
            "criterion_id": self.criterion_id,
            "impact": self.impact.value,
            "description": self.description,
            "help_url": self.help_url,
            "implemented": self.implemented,
            "added_in_tool_version": self.added_in_tool_version,
        }


@dataclass(frozen=True)
class ViolationNode:
    snippet: str
    locator: str
    failure_summary: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "snippet": self.snippet,
            "locator": self.locator,
            "failure_summary": self.failure_summary,
        }


@dataclass(frozen=True)
class Violation:
    rule_id: str
    impact: Impact
    description: str
    help_text: str
    help_url: str
    standard_tags: tuple[str, ...]
    nodes: tuple[ViolationNode, ...]

    def __post_init__(self) -> None:
        if not self.nodes:
            raise ValueError(f"Violation {self.rule_id!r} requires at least one node")
        object.__setattr__(self, "standard_tags", tuple(self.standard_tags))
        object.__setattr__(self, "nodes", tuple(self.nodes))

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "impact": self.impact.value,
            "description": self.description,
            "help_text": self.help_text,
            "help_url": self.help_url,
            "standard_tags": list(self.standard_tags),
            "nodes": [n.to_dict() for n in self.nodes],
        }


@dataclass(frozen=True)
class Pass:
    rule_id: str
    description: str

    @classmethod
    def for_rule(cls, rule_id: str) -> "Pass":
        return cls(rule_id=rule_id, description=f"{rule_id} check passed")

    def to_dict(self) -> dict[str, Any]:
        return {"rule_id": self.rule_id, "description": self.description}


@dataclass(frozen=True)
class SkippedCheck:
    rule_id: str
    error: str

    def to_dict(self) -> dict[str, Any]:
        return {"rule_id": self.rule_id, "error": self.error}


@dataclass(frozen=True)
class PrincipleBreakdown:
    violation_count: int = 0
    score: int = 100

    def to_dict(self) -> dict[str, Any]:
        return {"violation_count": self.violation_count, "score": self.score}


@dataclass(frozen=True)
class ScanResult:
    url: str
    accessibility_score: int
    critical_count: int
    serious_count: int
    moderate_count: int
    minor_count: int
    total_violations: int
    total_passes: int
    violations: tuple[Violation, ...]
    passes: tuple[Pass, ...]
    breakdown: Mapping[Principle, PrincipleBreakdown]
    tool_version: str
    page_title: str
    page_language: str
    skipped_checks: tuple[SkippedCheck, ...] = ()
    warnings: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "breakdown", MappingProxyType(dict(self.breakdown)))
        object.__setattr__(self, "skipped_checks", tuple(self.skipped_checks))
        object.__setattr__(self, "warnings", tuple(self.warnings))

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "url": self.url,
            "accessibility_score": self.accessibility_score,
            "critical_count": self.critical_count,
            "serious_count": self.serious_count,
            "moderate_count": self.moderate_count,
            "minor_count": self.minor_count,
            "total_violations": self.total_violations,
            "total_passes": self.total_passes,
            "violations": [v.to_dict() for v in self.violations],
            "passes": [p.to_dict() for p in self.passes],
            "breakdown": {p.value: self.breakdown[p].to_dict() for p in Principle},
            "tool_version": self.tool_version,
            "page_title": self.page_title,
            "page_language": self.page_language,
        }
        if self.skipped_checks:
            out["skipped_checks"] = [s.to_dict() for s in self.skipped_checks]
        if self.warnings:
            out["warnings"] = list(self.warnings)
        return out


@dataclass(frozen=True)
class CoverageReport:
    target_version: str
    target_level: Level
    implemented_count: int
    missing_count: int
    coverage_percent: int
    missing_rules: tuple[Rule, ...] = field(default_factory=tuple)

    @property
    def total_count(self) -> int:
        return self.implemented_count + self.missing_count

    def to_dict(self) -> dict[str, Any]:
        return {
            "target_version": self.target_version,
            "target_level": self.target_level.value,
            "implemented_count": self.implemented_count,
            "missing_count": self.missing_count,
            "coverage_percent": self.coverage_percent,
            "missing_rules": [r.to_dict() for r in self.missing_rules],
        }


@dataclass(frozen=True)
class UpdateStatus:
    current_target_version: str
    latest_known_version: str
    update_available: bool
    new_rules_count: int
    new_rules: tuple[Rule, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_target_version": self.current_target_version,
            "latest_known_version": self.latest_known_version,
            "update_available": self.update_available,
            "new_rules_count": self.new_rules_count,
            "new_rules": [r.to_dict() for r in self.new_rules],
        }
