"""Built-in rule checks and the engine that runs them.

Every check is a pure function of the parsed document: it returns the
offending nodes it found and never mutates anything, so the engine is free
to evaluate checks concurrently. Results are always assembled in the
declared order.
"""
from __future__ import annotations

import itertools
import logging
import time
import warnings
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Sequence

from .document import Document, Node
from .errors import CheckExecutionError, CheckWarning, RegistryError
from .registry import RuleRegistry
from .types import Impact, Pass, SkippedCheck, Violation, ViolationNode

logger = logging.getLogger(__name__)

FAILURE_POLICIES = ("raise", "skip", "warn")


@dataclass(frozen=True)
class CheckOptions:
    snippet_max_length: int = 200
    table_snippet_max_length: int = 300
    # A table counts as a data table at or above both thresholds.
    table_min_rows: int = 2
    table_min_data_cells: int = 3

    def __post_init__(self) -> None:
        for name in ("snippet_max_length", "table_snippet_max_length", "table_min_rows", "table_min_data_cells"):
            value = getattr(self, name)
            if int(value) < 1:
                raise ValueError(f"{name} must be >= 1, got {value!r}")


Evaluator = Callable[[Document, CheckOptions], list[ViolationNode]]


@dataclass(frozen=True)
class Check:
    rule_id: str
    impact: Impact
    description: str
    help_text: str
    help_url: str
    standard_tags: tuple[str, ...]
    evaluate: Evaluator = field(repr=False)

    def run(self, document: Document, options: CheckOptions | None = None) -> Violation | None:
        nodes = self.evaluate(document, options or CheckOptions())
        if not nodes:
            return None
        return Violation(
            rule_id=self.rule_id,
            impact=self.impact,
            description=self.description,
            help_text=self.help_text,
            help_url=self.help_url,
            standard_tags=self.standard_tags,
            nodes=tuple(nodes),
        )


def _attr_nonempty(node: Node, name: str) -> bool:
    value = node.get(name)
    return value is not None and bool(value.strip())


def _lower_attr(node: Node, name: str) -> str:
    return (node.get(name) or "").strip().lower()


def _node(node: Node, options: CheckOptions, summary: str, *, max_length: int | None = None) -> ViolationNode:
    return ViolationNode(
        snippet=node.snippet(max_length or options.snippet_max_length),
        locator=node.locator(),
        failure_summary=summary,
    )


# --- image-alt ---------------------------------------------------------------

IMAGE_MISSING_ALT = 'img:not([alt]), area[href]:not([alt]), input[type="image" i]:not([alt])'


def check_image_alt(document: Document, options: CheckOptions) -> list[ViolationNode]:
    # alt="" marks a decorative image; only a missing attribute fails.
    return [_node(n, options, "Image does not have an alt attribute") for n in document.select(IMAGE_MISSING_ALT)]


# --- link-name ---------------------------------------------------------------


def _link_has_name(link: Node) -> bool:
    if link.text().strip():
        return True
    if _attr_nonempty(link, "aria-label") or _attr_nonempty(link, "title"):
        return True
    return any(_attr_nonempty(img, "alt") for img in link.select("img[alt]"))


def check_link_name(document: Document, options: CheckOptions) -> list[ViolationNode]:
    return [
        _node(n, options, "Link has no discernible text")
        for n in document.select("a[href]")
        if not _link_has_name(n)
    ]


# --- button-name -------------------------------------------------------------

BUTTONS = 'button, [role="button" i], input[type="button" i], input[type="submit" i]'


def _button_has_name(node: Node) -> bool:
    return (
        bool(node.text().strip())
        or _attr_nonempty(node, "aria-label")
        or _attr_nonempty(node, "title")
        or _attr_nonempty(node, "value")
    )


def check_button_name(document: Document, options: CheckOptions) -> list[ViolationNode]:
    return [
        _node(n, options, "Button has no accessible name")
        for n in document.select(BUTTONS)
        if not _button_has_name(n)
    ]


# --- label -------------------------------------------------------------------

LABELABLE_CONTROLS = (
    'input:not([type="hidden" i]):not([type="submit" i]):not([type="button" i]):not([type="image" i]), '
    "textarea, select"
)


def check_form_labels(document: Document, options: CheckOptions) -> list[ViolationNode]:
    label_targets = {(n.get("for") or "").strip() for n in document.select("label[for]")}
    label_targets.discard("")
    out: list[ViolationNode] = []
    for control in document.select(LABELABLE_CONTROLS):
        control_id = (control.get("id") or "").strip()
        if control_id and control_id in label_targets:
            continue
        if control.closest("label") is not None:
            continue
        if _attr_nonempty(control, "aria-label") or _attr_nonempty(control, "aria-labelledby"):
            continue
        if _attr_nonempty(control, "placeholder"):
            summary = "Form element uses placeholder instead of label (placeholder is not accessible)"
        else:
            summary = "Form element does not have a label"
        out.append(_node(control, options, summary))
    return out


# --- html-has-lang -----------------------------------------------------------


def check_html_lang(document: Document, options: CheckOptions) -> list[ViolationNode]:
    if (document.lang or "").strip():
        return []
    return [
        ViolationNode(
            snippet="<html>",
            locator="html",
            failure_summary="The <html> element does not have a lang attribute",
        )
    ]


# --- heading-order / empty-heading ------------------------------------------

HEADINGS = "h1, h2, h3, h4, h5, h6"


def check_heading_order(document: Document, options: CheckOptions) -> list[ViolationNode]:
    out: list[ViolationNode] = []
    last_level = 0
    for heading in document.select(HEADINGS):
        level = int(heading.tag[1])
        if last_level and level > last_level + 1:
            out.append(_node(heading, options, f"Heading level skipped from H{last_level} to H{level}"))
        last_level = level
    return out


def check_empty_headings(document: Document, options: CheckOptions) -> list[ViolationNode]:
    return [
        _node(h, options, "Heading is empty")
        for h in document.select(HEADINGS)
        if not h.text().strip()
    ]


# --- document-title ----------------------------------------------------------


def check_document_title(document: Document, options: CheckOptions) -> list[ViolationNode]:
    if document.title:
        return []
    return [
        ViolationNode(
            snippet="<head>...</head>",
            locator="head",
            failure_summary="Document does not have a title element",
        )
    ]


# --- table-header ------------------------------------------------------------


def _is_data_table(table: Node, options: CheckOptions) -> bool:
    if _lower_attr(table, "role") in {"presentation", "none"}:
        return False
    rows = len(table.select("tr"))
    cells = len(table.select("td"))
    return rows >= options.table_min_rows and cells >= options.table_min_data_cells


def check_table_headers(document: Document, options: CheckOptions) -> list[ViolationNode]:
    out: list[ViolationNode] = []
    for table in document.select("table"):
        if not _is_data_table(table, options):
            continue
        if table.select_one("th") is not None:
            continue
        out.append(
            _node(
                table,
                options,
                "Data table does not have header cells (<th>)",
                max_length=options.table_snippet_max_length,
            )
        )
    return out


_INFO_AND_RELATIONSHIPS = "https://www.w3.org/WAI/WCAG21/Understanding/info-and-relationships.html"

DEFAULT_CHECKS: tuple[Check, ...] = (
    Check(
        rule_id="image-alt",
        impact=Impact.CRITICAL,
        description="Images must have alternate text",
        help_text=(
            "Ensure every image has an alt attribute that describes its content or purpose. "
            'Use alt="" for decorative images.'
        ),
        help_url="https://www.w3.org/WAI/WCAG21/Understanding/non-text-content.html",
        standard_tags=("wcag2a", "wcag111"),
        evaluate=check_image_alt,
    ),
    Check(
        rule_id="link-name",
        impact=Impact.SERIOUS,
        description="Links must have discernible text",
        help_text="Add text content, aria-label, or title attribute to describe the link destination.",
        help_url="https://www.w3.org/WAI/WCAG21/Understanding/link-purpose-in-context.html",
        standard_tags=("wcag2a", "wcag244"),
        evaluate=check_link_name,
    ),
    Check(
        rule_id="button-name",
        impact=Impact.CRITICAL,
        description="Buttons must have discernible text",
        help_text="Add text content, aria-label, or title attribute to describe the button action.",
        help_url="https://www.w3.org/WAI/WCAG21/Understanding/name-role-value.html",
        standard_tags=("wcag2a", "wcag412"),
        evaluate=check_button_name,
    ),
    Check(
        rule_id="label",
        impact=Impact.CRITICAL,
        description="Form elements must have labels",
        help_text="Add a <label> element with for attribute matching the input id, or use aria-label.",
        help_url="https://www.w3.org/WAI/WCAG21/Understanding/info-and-relationships.html",
        standard_tags=("wcag2a", "wcag131", "wcag412"),
        evaluate=check_form_labels,
    ),
    Check(
        rule_id="html-has-lang",
        impact=Impact.SERIOUS,
        description="<html> element must have a lang attribute",
        help_text='Add lang="en" (or appropriate language code) to the <html> element.',
        help_url="https://www.w3.org/WAI/WCAG21/Understanding/language-of-page.html",
        standard_tags=("wcag2a", "wcag311"),
        evaluate=check_html_lang,
    ),
    Check(
        rule_id="heading-order",
        impact=Impact.MODERATE,
        description="Heading levels should only increase by one",
        help_text="Ensure heading levels are in logical order (H1 -> H2 -> H3, not H1 -> H3).",
        help_url=_INFO_AND_RELATIONSHIPS,
        standard_tags=("wcag2a", "wcag131"),
        evaluate=check_heading_order,
    ),
    Check(
        rule_id="empty-heading",
        impact=Impact.MINOR,
        description="Headings must not be empty",
        help_text="Add text content to the heading or remove the empty heading element.",
        help_url=_INFO_AND_RELATIONSHIPS,
        standard_tags=("wcag2a", "wcag131"),
        evaluate=check_empty_headings,
    ),
    Check(
        rule_id="document-title",
        impact=Impact.SERIOUS,
        description="Documents must have <title> element",
        help_text="Add a descriptive <title> element in the <head> section.",
        help_url="https://www.w3.org/WAI/WCAG21/Understanding/page-titled.html",
        standard_tags=("wcag2a", "wcag242"),
        evaluate=check_document_title,
    ),
    Check(
        rule_id="table-header",
        impact=Impact.SERIOUS,
        description="Data tables must have headers",
        help_text="Add <th> elements to identify row and column headers.",
        help_url=_INFO_AND_RELATIONSHIPS,
        standard_tags=("wcag2a", "wcag131"),
        evaluate=check_table_headers,
    ),
)


@dataclass(frozen=True)
class CheckOutcome:
    violations: tuple[Violation, ...]
    passes: tuple[Pass, ...]
    skipped: tuple[SkippedCheck, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def total_checks(self) -> int:
        return len(self.violations) + len(self.passes) + len(self.skipped)


@dataclass(frozen=True)
class _Evaluated:
    check: Check
    violation: Violation | None = None
    error: BaseException | None = None


class CheckEngine:
    """Runs an ordered, fixed set of checks against one document.

    failure_policy decides what a crashing check does to the scan:
    "raise" aborts it, "skip" records the omission, "warn" records it and
    also emits a CheckWarning.
    """

    def __init__(
        self,
        checks: Sequence[Check] = DEFAULT_CHECKS,
        *,
        registry: RuleRegistry | None = None,
        options: CheckOptions | None = None,
        failure_policy: str = "raise",
        max_workers: int | None = None,
    ) -> None:
        policy = str(failure_policy or "raise").strip().lower()
        if policy not in FAILURE_POLICIES:
            raise ValueError(f"Unsupported failure policy {failure_policy!r}")
        self.checks: tuple[Check, ...] = tuple(checks)
        self.options = options or CheckOptions()
        self.failure_policy = policy
        self.max_workers = max_workers
        self._validate(registry)

    @property
    def rule_ids(self) -> tuple[str, ...]:
        return tuple(c.rule_id for c in self.checks)

    def _validate(self, registry: RuleRegistry | None) -> None:
        ids = self.rule_ids
        if len(ids) != len(set(ids)):
            raise RegistryError(f"duplicate check rule ids: {sorted({i for i in ids if ids.count(i) > 1})}")
        if registry is None:
            return
        for check in self.checks:
            rule = registry.get(check.rule_id)
            if rule is None:
                raise RegistryError(f"check {check.rule_id!r} has no entry in the rule catalog")
            if not rule.implemented:
                raise RegistryError(f"check {check.rule_id!r} is registered but marked unimplemented")
            if rule.impact is not check.impact:
                raise RegistryError(
                    f"check {check.rule_id!r} impact {check.impact.value} does not match "
                    f"catalog impact {rule.impact.value}"
                )

    def _evaluate(self, check: Check, document: Document) -> _Evaluated:
        started = time.perf_counter()
        try:
            violation = check.run(document, self.options)
        except Exception as exc:
            if self.failure_policy == "raise":
                raise CheckExecutionError(check.rule_id, exc) from exc
            return _Evaluated(check, error=exc)
        logger.debug(
            "check %s: %s in %.2fms",
            check.rule_id,
            f"{violation.node_count} node(s)" if violation else "pass",
            (time.perf_counter() - started) * 1000.0,
        )
        return _Evaluated(check, violation=violation)

    def run(self, document: Document) -> CheckOutcome:
        if self.max_workers and self.max_workers > 1 and len(self.checks) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                evaluated = list(pool.map(self._evaluate, self.checks, itertools.repeat(document)))
        else:
            evaluated = [self._evaluate(check, document) for check in self.checks]

        violations: list[Violation] = []
        passes: list[Pass] = []
        skipped: list[SkippedCheck] = []
        notes: list[str] = []
        for item in evaluated:
            if item.error is not None:
                err = f"{type(item.error).__name__}: {item.error}"
                skipped.append(SkippedCheck(rule_id=item.check.rule_id, error=err))
                logger.warning("check %s skipped after error: %s", item.check.rule_id, err)
                if self.failure_policy == "warn":
                    note = f"Check {item.check.rule_id} did not run ({err}); results are partial."
                    notes.append(note)
                    warnings.warn(note, CheckWarning, stacklevel=2)
            elif item.violation is not None:
                violations.append(item.violation)
            else:
                passes.append(Pass.for_rule(item.check.rule_id))
        return CheckOutcome(
            violations=tuple(violations),
            passes=tuple(passes),
            skipped=tuple(skipped),
            warnings=tuple(notes),
        )
