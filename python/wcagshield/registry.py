from __future__ import annotations

import json
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from .errors import RegistryError
from .types import CoverageReport, Level, Principle, Rule, UpdateStatus, parse_version


def _default_catalog_path() -> Path:
    # python/wcagshield/registry.py -> catalog ships beside the package modules
    return Path(__file__).resolve().parent / "specs" / "wcag_rules.v1.json"


@dataclass(frozen=True)
class VersionInfo:
    released: str | None
    status: str

    def to_dict(self) -> dict[str, Any]:
        return {"released": self.released, "status": self.status}


@dataclass(frozen=True)
class RuleRegistry:
    """Immutable catalog of known rules, implemented or not.

    Construct once and hand the same instance to the check engine and the
    diagnostics; nothing mutates it afterwards.
    """

    rules: tuple[Rule, ...]
    tool_version: str = "1.0.0"
    target_version: str = "2.1"
    target_level: Level = Level.AA
    versions: Mapping[str, VersionInfo] = field(default_factory=lambda: MappingProxyType({}))
    _by_id: Mapping[str, Rule] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        rules = tuple(self.rules)
        seen: set[str] = set()
        dup: list[str] = []
        for rule in rules:
            if rule.id in seen:
                dup.append(rule.id)
            seen.add(rule.id)
        if dup:
            raise RegistryError(f"duplicate rule ids in catalog: {', '.join(sorted(set(dup)))}")
        parse_version(self.target_version)
        object.__setattr__(self, "rules", rules)
        object.__setattr__(self, "versions", MappingProxyType(dict(self.versions)))
        object.__setattr__(self, "_by_id", MappingProxyType({r.id: r for r in rules}))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RuleRegistry":
        try:
            rules = tuple(Rule.from_dict(item) for item in data.get("rules", []))
            versions = {
                str(k): VersionInfo(
                    released=(str(v["released"]) if v.get("released") else None),
                    status=str(v.get("status") or "unknown"),
                )
                for k, v in dict(data.get("versions", {})).items()
            }
            return cls(
                rules=rules,
                tool_version=str(data.get("tool_version") or "1.0.0"),
                target_version=str(data.get("target_version") or "2.1"),
                target_level=Level(str(data.get("target_level") or "AA")),
                versions=versions,
            )
        except RegistryError:
            raise
        except (KeyError, ValueError, TypeError) as exc:
            raise RegistryError(f"invalid rule catalog: {type(exc).__name__}: {exc}") from exc

    @classmethod
    def from_path(cls, path: str | Path) -> "RuleRegistry":
        return cls.from_dict(json.loads(Path(path).read_text(encoding="utf-8")))

    def with_target(
        self,
        *,
        target_version: str | None = None,
        target_level: Level | str | None = None,
        tool_version: str | None = None,
    ) -> "RuleRegistry":
        """Copy of this registry with a different configured target."""
        return RuleRegistry(
            rules=self.rules,
            tool_version=tool_version or self.tool_version,
            target_version=target_version or self.target_version,
            target_level=_level(target_level) if target_level else self.target_level,
            versions=self.versions,
        )

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self):
        return iter(self.rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._by_id

    def get(self, rule_id: str) -> Rule | None:
        return self._by_id.get(rule_id)

    def implemented_rules(self) -> list[Rule]:
        return [r for r in self.rules if r.implemented]

    def unimplemented_rules(self) -> list[Rule]:
        return [r for r in self.rules if not r.implemented]

    def rules_by_version(self, version: str) -> list[Rule]:
        key = parse_version(version)
        return [r for r in self.rules if r.version_key == key]

    def rules_by_level(self, level: Level | str) -> list[Rule]:
        lvl = _level(level)
        return [r for r in self.rules if lvl.includes(r.level)]

    def principle_map(self) -> dict[str, Principle]:
        return {r.id: r.principle for r in self.rules}

    def rules_in_scope(self, target_version: str, target_level: Level | str) -> list[Rule]:
        key = parse_version(target_version)
        lvl = _level(target_level)
        return [r for r in self.rules if r.version_key <= key and lvl.includes(r.level)]

    def coverage_gaps(
        self,
        target_version: str | None = None,
        target_level: Level | str | None = None,
    ) -> CoverageReport:
        version = target_version or self.target_version
        level = _level(target_level) if target_level else self.target_level
        scoped = self.rules_in_scope(version, level)
        implemented = [r for r in scoped if r.implemented]
        missing = tuple(r for r in scoped if not r.implemented)
        percent = round(len(implemented) / len(scoped) * 100) if scoped else 0
        return CoverageReport(
            target_version=version,
            target_level=level,
            implemented_count=len(implemented),
            missing_count=len(missing),
            coverage_percent=int(percent),
            missing_rules=missing,
        )

    def latest_stable_version(self) -> str:
        stable = [v for v, info in self.versions.items() if info.status == "recommendation"]
        candidates = stable or [r.standard_version for r in self.rules] or [self.target_version]
        return max(candidates, key=parse_version)

    def update_status(
        self,
        target_version: str | None = None,
        latest_known_version: str | None = None,
    ) -> UpdateStatus:
        current = target_version or self.target_version
        latest = latest_known_version or self.latest_stable_version()
        current_key = parse_version(current)
        new_rules = tuple(
            r for r in self.rules if r.version_key > current_key and r.level is not Level.AAA
        )
        return UpdateStatus(
            current_target_version=current,
            latest_known_version=latest,
            update_available=parse_version(latest) > current_key,
            new_rules_count=len(new_rules),
            new_rules=new_rules,
        )


def _level(value: Level | str) -> Level:
    if isinstance(value, Level):
        return value
    try:
        return Level(str(value).strip().upper())
    except ValueError:
        raise RegistryError(f"unknown conformance level {value!r} (expected A, AA, AAA)") from None


def registry_from_rules(rules: Iterable[Rule], **kwargs: Any) -> RuleRegistry:
    return RuleRegistry(rules=tuple(rules), **kwargs)


@lru_cache(maxsize=1)
def load_default_registry() -> RuleRegistry:
    return RuleRegistry.from_path(_default_catalog_path())
