from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from .checks import CheckEngine
from .document import Document, parse_document
from .errors import InvalidInputError
from .registry import RuleRegistry, load_default_registry
from .scoring import calculate_score, impact_counts, principle_breakdown
from .types import Impact, ScanResult

if TYPE_CHECKING:
    from .config import Config

logger = logging.getLogger(__name__)

UNKNOWN_TITLE = "Unknown"
UNKNOWN_LANGUAGE = "unknown"


def normalize_url(raw: str) -> str:
    """Trim the scan target and default it to https.

    Raises InvalidInputError when no usable host remains.
    """
    text = str(raw or "").strip()
    if not text:
        raise InvalidInputError("URL is required")
    if not text.lower().startswith(("http://", "https://")):
        text = f"https://{text}"
    parts = urlsplit(text)
    if not parts.hostname or any(ch.isspace() for ch in text):
        raise InvalidInputError(f"Invalid URL: {raw!r}")
    return text


def build_engine(registry: RuleRegistry, config: "Config | None" = None) -> CheckEngine:
    if config is None:
        return CheckEngine(registry=registry)
    return CheckEngine(
        registry=registry,
        options=config.check_options(),
        failure_policy=config.failure_policy,
        max_workers=config.max_workers,
    )


def scan_document(
    markup_or_document: str | Document,
    url: str,
    *,
    registry: RuleRegistry | None = None,
    engine: CheckEngine | None = None,
    config: "Config | None" = None,
) -> ScanResult:
    """Run every check against one document and score the outcome.

    Pure with respect to its inputs: no I/O, and the same markup always
    yields the same result. A config's target and tool-version overrides
    apply to an explicitly passed registry as well.
    """
    if registry is None:
        registry = load_default_registry()
    if config is not None:
        registry = config.apply_to_registry(registry)
    if engine is None:
        engine = build_engine(registry, config)

    started = time.perf_counter()
    if isinstance(markup_or_document, Document):
        document = markup_or_document
    else:
        document = parse_document(markup_or_document)

    outcome = engine.run(document)
    violations = outcome.violations
    checks_run = len(outcome.violations) + len(outcome.passes)
    counts = impact_counts(violations)

    result = ScanResult(
        url=url,
        accessibility_score=calculate_score(violations, checks_run),
        critical_count=counts[Impact.CRITICAL],
        serious_count=counts[Impact.SERIOUS],
        moderate_count=counts[Impact.MODERATE],
        minor_count=counts[Impact.MINOR],
        total_violations=len(violations),
        total_passes=len(outcome.passes),
        violations=violations,
        passes=outcome.passes,
        breakdown=principle_breakdown(violations, registry.principle_map()),
        tool_version=registry.tool_version,
        page_title=document.title or UNKNOWN_TITLE,
        page_language=(document.lang or "").strip() or UNKNOWN_LANGUAGE,
        skipped_checks=outcome.skipped,
        warnings=outcome.warnings,
    )
    logger.info(
        "scanned %s: score=%d violations=%d passes=%d skipped=%d (%.1fms)",
        url,
        result.accessibility_score,
        result.total_violations,
        result.total_passes,
        len(result.skipped_checks),
        (time.perf_counter() - started) * 1000.0,
    )
    return result
