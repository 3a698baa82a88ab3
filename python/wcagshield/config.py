# SPDX-License-Identifier: AGPL-3.0-only
from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, Optional

import tomllib

from .checks import FAILURE_POLICIES, CheckOptions
from .registry import RuleRegistry
from .types import Level, parse_version

CONFIG_FILENAME = "wcagshield.toml"

# Default configuration structure
DEFAULT_CONFIG: Dict[str, Dict[str, Any]] = {
    "scanner": {
        # tool_version / target_version / target_level fall back to the rule catalog
        "failure_policy": "raise",
        "max_workers": 1,
    },
    "checks": {
        "snippet_max_length": 200,
        "table_snippet_max_length": 300,
        "table_min_rows": 2,
        "table_min_data_cells": 3,
    },
    "diagnostics": {
        "coverage_threshold": 70,
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _merge(out[key], value)
        else:
            out[key] = value
    return out


class Config:
    def __init__(self, data: Dict[str, Any], path: Optional[Path] = None):
        self.data = _merge(DEFAULT_CONFIG, data)
        self.path = path
        self.root = path.parent if path is not None else Path.cwd()
        self._validate()

    @classmethod
    def default(cls) -> "Config":
        return cls({})

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Config":
        """Load configuration from wcagshield.toml.

        An explicit path must exist. Without one, the current directory is
        searched and built-in defaults apply when nothing is found.
        """
        if path is None:
            path = Path.cwd() / CONFIG_FILENAME
            if not path.exists():
                return cls.default()
        else:
            path = Path(path)
            if not path.exists():
                raise FileNotFoundError(f"No {CONFIG_FILENAME} found at {path}.")

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Failed to parse {path}: {e}") from e

        return cls(data, path)

    def _validate(self) -> None:
        if self.failure_policy not in FAILURE_POLICIES:
            raise ValueError(
                f"scanner.failure_policy must be one of {', '.join(FAILURE_POLICIES)}, "
                f"got {self.scanner.get('failure_policy')!r}"
            )
        if self.target_version is not None:
            parse_version(self.target_version)
        if self.target_level is not None and self.target_level not in {lvl.value for lvl in Level}:
            raise ValueError(f"scanner.target_level must be A, AA or AAA, got {self.target_level!r}")
        workers = self.scanner.get("max_workers", 1)
        if not isinstance(workers, int) or isinstance(workers, bool) or workers < 1:
            raise ValueError(f"scanner.max_workers must be a positive integer, got {workers!r}")
        threshold = self.diagnostics.get("coverage_threshold", 70)
        if not isinstance(threshold, (int, float)) or isinstance(threshold, bool) or not 0 <= threshold <= 100:
            raise ValueError(f"diagnostics.coverage_threshold must be within 0-100, got {threshold!r}")
        self.check_options()

    @property
    def scanner(self) -> Dict[str, Any]:
        return self.data.get("scanner", {})

    @property
    def checks(self) -> Dict[str, Any]:
        return self.data.get("checks", {})

    @property
    def diagnostics(self) -> Dict[str, Any]:
        return self.data.get("diagnostics", {})

    # Helpers for common fields
    @property
    def failure_policy(self) -> str:
        return str(self.scanner.get("failure_policy", "raise")).strip().lower()

    @property
    def max_workers(self) -> int:
        return int(self.scanner.get("max_workers", 1))

    @property
    def tool_version(self) -> Optional[str]:
        value = self.scanner.get("tool_version")
        return str(value) if value else None

    @property
    def target_version(self) -> Optional[str]:
        value = self.scanner.get("target_version")
        return str(value) if value else None

    @property
    def target_level(self) -> Optional[str]:
        value = self.scanner.get("target_level")
        return str(value).strip().upper() if value else None

    @property
    def coverage_threshold(self) -> float:
        return self.diagnostics.get("coverage_threshold", 70)

    def check_options(self) -> CheckOptions:
        try:
            return CheckOptions(**{k: int(v) for k, v in self.checks.items()})
        except TypeError as e:
            raise ValueError(f"Unknown key in [checks]: {e}") from e

    def apply_to_registry(self, registry: RuleRegistry) -> RuleRegistry:
        if not (self.target_version or self.target_level or self.tool_version):
            return registry
        return registry.with_target(
            target_version=self.target_version,
            target_level=self.target_level,
            tool_version=self.tool_version,
        )
