from __future__ import annotations

import json
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from .types import Impact

DIFFICULTIES = ("easy", "medium", "hard")


@dataclass(frozen=True)
class FixStep:
    location: str
    instructions: tuple[str, ...]
    tip: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"location": self.location, "instructions": list(self.instructions)}
        if self.tip:
            out["tip"] = self.tip
        return out


@dataclass(frozen=True)
class FixExample:
    before: str
    after: str
    explanation: str

    def to_dict(self) -> dict[str, Any]:
        return {"before": self.before, "after": self.after, "explanation": self.explanation}


@dataclass(frozen=True)
class FixGuidance:
    id: str
    title: str
    severity: Impact
    time_to_fix: str
    difficulty: str
    summary: str
    why_it_matters: str
    steps: tuple[FixStep, ...] = field(default_factory=tuple)
    examples: tuple[FixExample, ...] = field(default_factory=tuple)
    cant_fix: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FixGuidance":
        difficulty = str(data["difficulty"])
        if difficulty not in DIFFICULTIES:
            raise ValueError(f"unknown difficulty {difficulty!r} for {data.get('id')!r}")
        return cls(
            id=str(data["id"]),
            title=str(data["title"]),
            severity=Impact(str(data["severity"])),
            time_to_fix=str(data.get("time_to_fix") or ""),
            difficulty=difficulty,
            summary=str(data.get("summary") or ""),
            why_it_matters=str(data.get("why_it_matters") or ""),
            steps=tuple(
                FixStep(
                    location=str(s["location"]),
                    instructions=tuple(str(i) for i in s.get("instructions", [])),
                    tip=s.get("tip"),
                )
                for s in data.get("steps", [])
            ),
            examples=tuple(
                FixExample(before=str(e["before"]), after=str(e["after"]), explanation=str(e["explanation"]))
                for e in data.get("examples", [])
            ),
            cant_fix=data.get("cant_fix"),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "severity": self.severity.value,
            "time_to_fix": self.time_to_fix,
            "difficulty": self.difficulty,
            "summary": self.summary,
            "why_it_matters": self.why_it_matters,
            "steps": [s.to_dict() for s in self.steps],
            "examples": [e.to_dict() for e in self.examples],
        }
        if self.cant_fix:
            out["cant_fix"] = self.cant_fix
        return out


def _default_data_path() -> Path:
    return Path(__file__).resolve().parent / "specs" / "remediation.v1.json"


@lru_cache(maxsize=1)
def _guidance_table() -> Mapping[str, FixGuidance]:
    payload = json.loads(_default_data_path().read_text(encoding="utf-8"))
    return MappingProxyType({item["id"]: FixGuidance.from_dict(item) for item in payload.get("fixes", [])})


def get_fix_guidance(rule_id: str) -> FixGuidance | None:
    return _guidance_table().get(rule_id)


def all_fix_guidance() -> list[FixGuidance]:
    """All guidance, most severe first; catalog order is kept within a severity."""
    return sorted(_guidance_table().values(), key=lambda g: g.severity.rank)


def fix_guidance_by_difficulty(difficulty: str) -> list[FixGuidance]:
    if difficulty not in DIFFICULTIES:
        raise ValueError(f"difficulty must be one of {', '.join(DIFFICULTIES)}, got {difficulty!r}")
    return [g for g in _guidance_table().values() if g.difficulty == difficulty]
