# SPDX-License-Identifier: AGPL-3.0-only
"""Rule-based accessibility scanner for rendered HTML documents.

The package parses markup into an immutable tree, runs a fixed set of
WCAG-derived checks over it, and scores the outcome. The rule catalog
(`load_default_registry`) also reports how much of a target WCAG version
and level the checks cover.
"""
from importlib.metadata import PackageNotFoundError, version

from .checks import DEFAULT_CHECKS, Check, CheckEngine, CheckOptions, CheckOutcome
from .config import Config
from .diagnostics import build_diagnostic_report, recommendations
from .document import Document, Node, parse_document
from .errors import (
    CheckExecutionError,
    CheckWarning,
    InvalidInputError,
    RegistryError,
    ScanError,
    ScanErrorKind,
    SelectorError,
    WcagShieldError,
    classify_fetch_error,
)
from .registry import RuleRegistry, load_default_registry
from .remediation import FixGuidance, all_fix_guidance, fix_guidance_by_difficulty, get_fix_guidance
from .scanner import normalize_url, scan_document
from .scoring import calculate_score, principle_breakdown
from .types import (
    CoverageReport,
    Impact,
    Level,
    Pass,
    Principle,
    PrincipleBreakdown,
    Rule,
    ScanResult,
    SkippedCheck,
    UpdateStatus,
    Violation,
    ViolationNode,
)


def _get_version():
    try:
        return version("wcagshield")
    except PackageNotFoundError:
        return "0.0.0-dev"


__version__ = _get_version()

__all__ = [
    "Check",
    "CheckEngine",
    "CheckExecutionError",
    "CheckOptions",
    "CheckOutcome",
    "CheckWarning",
    "Config",
    "CoverageReport",
    "DEFAULT_CHECKS",
    "Document",
    "FixGuidance",
    "Impact",
    "InvalidInputError",
    "Level",
    "Node",
    "Pass",
    "Principle",
    "PrincipleBreakdown",
    "RegistryError",
    "Rule",
    "RuleRegistry",
    "ScanError",
    "ScanErrorKind",
    "ScanResult",
    "SelectorError",
    "SkippedCheck",
    "UpdateStatus",
    "Violation",
    "ViolationNode",
    "WcagShieldError",
    "all_fix_guidance",
    "build_diagnostic_report",
    "calculate_score",
    "classify_fetch_error",
    "fix_guidance_by_difficulty",
    "get_fix_guidance",
    "load_default_registry",
    "normalize_url",
    "parse_document",
    "principle_breakdown",
    "recommendations",
    "scan_document",
]
