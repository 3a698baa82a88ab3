from __future__ import annotations

import threading
import warnings
from dataclasses import replace

import pytest

from wcagshield.checks import DEFAULT_CHECKS, Check, CheckEngine, CheckOptions
from wcagshield.document import parse_document
from wcagshield.errors import CheckExecutionError, CheckWarning, RegistryError
from wcagshield.registry import load_default_registry
from wcagshield.types import Impact


def _run(rule_id: str, markup: str, options: CheckOptions | None = None):
    check = next(c for c in DEFAULT_CHECKS if c.rule_id == rule_id)
    return check.run(parse_document(markup), options)


def test_default_checks_are_declared_in_catalog_order() -> None:
    assert [c.rule_id for c in DEFAULT_CHECKS] == [
        "image-alt",
        "link-name",
        "button-name",
        "label",
        "html-has-lang",
        "heading-order",
        "empty-heading",
        "document-title",
        "table-header",
    ]


def test_image_alt_treats_empty_alt_as_decorative() -> None:
    violation = _run(
        "image-alt",
        '<img src="a"><img src="b" alt=""><img src="c" alt="C">'
        '<input type="IMAGE" src="go.png"><map><area href="/x"><area></map>',
    )

    assert violation is not None
    assert violation.impact is Impact.CRITICAL
    assert violation.standard_tags == ("wcag2a", "wcag111")
    assert [n.snippet for n in violation.nodes] == [
        '<img src="a">',
        '<input type="IMAGE" src="go.png">',
        '<area href="/x">',
    ]
    assert {n.failure_summary for n in violation.nodes} == {"Image does not have an alt attribute"}


def test_image_alt_passes_without_images() -> None:
    assert _run("image-alt", "<p>text only</p>") is None


def test_link_with_only_empty_alt_image_is_flagged() -> None:
    violation = _run("link-name", '<a href="/"><img src="logo.png" alt=""></a>')

    assert violation is not None
    assert violation.node_count == 1
    assert violation.nodes[0].failure_summary == "Link has no discernible text"


@pytest.mark.parametrize(
    "markup",
    [
        '<a href="/">Home</a>',
        '<a href="/" aria-label="Home"><svg></svg></a>',
        '<a href="/" title="Home"></a>',
        '<a href="/"><span><img src="h.png" alt="Home"></span></a>',
        "<a>not a link without href</a><a name='anchor'></a>",
    ],
)
def test_link_name_sources(markup: str) -> None:
    assert _run("link-name", markup) is None


def test_link_name_ignores_blank_name_attributes() -> None:
    violation = _run("link-name", '<a href="/" aria-label="  " title="">  </a>')
    assert violation is not None


def test_button_name_covers_native_role_and_input_buttons() -> None:
    violation = _run(
        "button-name",
        """
        <button></button>
        <button>Save</button>
        <div role="BUTTON"></div>
        <span role="button" aria-label="Close"></span>
        <input type="submit">
        <input type="submit" value="Send">
        <input type="button" title="Run">
        <button role="button"><svg></svg></button>
        """,
    )

    assert violation is not None
    assert [n.snippet for n in violation.nodes] == [
        "<button></button>",
        '<div role="BUTTON"></div>',
        '<input type="submit">',
        '<button role="button"><svg></svg></button>',
    ]
    assert violation.nodes[0].failure_summary == "Button has no accessible name"


def test_label_association_sources() -> None:
    markup = """
    <label for="a">A</label><input id="a">
    <label>B <input type="checkbox"></label>
    <input aria-label="C">
    <span id="dl">D</span><input aria-labelledby="dl">
    <input type="hidden"><input type="submit"><input type="button"><input type="image" alt="go">
    """
    assert _run("label", markup) is None


def test_label_distinguishes_placeholder_from_missing_label() -> None:
    violation = _run(
        "label",
        '<input type="email" placeholder="Email"><textarea></textarea><select><option>1</select>'
        '<label for="other">X</label><input id="mismatch">',
    )

    assert violation is not None
    summaries = [n.failure_summary for n in violation.nodes]
    assert summaries == [
        "Form element uses placeholder instead of label (placeholder is not accessible)",
        "Form element does not have a label",
        "Form element does not have a label",
        "Form element does not have a label",
    ]


def test_html_lang_is_a_single_document_level_violation() -> None:
    violation = _run("html-has-lang", "<html><body><p>x</p></body></html>")

    assert violation is not None
    assert violation.node_count == 1
    assert violation.nodes[0].snippet == "<html>"
    assert violation.nodes[0].locator == "html"
    assert _run("html-has-lang", '<html lang="  ">') is not None
    assert _run("html-has-lang", '<html lang="en-GB">') is None


def test_heading_order_increasing_by_one_passes() -> None:
    assert _run("heading-order", "<h1>a</h1><h2>b</h2><h3>c</h3><h1>d</h1><h2>e</h2>") is None


def test_heading_order_flags_each_skip() -> None:
    violation = _run("heading-order", "<h1>a</h1><h3>b</h3>")

    assert violation is not None
    assert violation.node_count == 1
    assert violation.nodes[0].failure_summary == "Heading level skipped from H1 to H3"


def test_heading_order_first_heading_never_violates_and_level_tracks_every_heading() -> None:
    violation = _run("heading-order", "<h3>first</h3><h2>b</h2><h4>c</h4><h6>d</h6>")

    assert violation is not None
    assert [n.failure_summary for n in violation.nodes] == [
        "Heading level skipped from H2 to H4",
        "Heading level skipped from H4 to H6",
    ]


def test_empty_heading_uses_trimmed_text() -> None:
    violation = _run("empty-heading", "<h1> </h1><h2><span>ok</span></h2><h3><img alt='x'></h3>")

    assert violation is not None
    assert violation.node_count == 2
    assert violation.impact is Impact.MINOR


def test_document_title_absent_or_blank() -> None:
    for markup in ("<html><head></head></html>", "<title>   </title>"):
        violation = _run("document-title", markup)
        assert violation is not None
        assert violation.nodes[0].snippet == "<head>...</head>"
        assert violation.nodes[0].locator == "head"
    assert _run("document-title", "<title>Home</title>") is None


def test_table_header_thresholds() -> None:
    small = "<table><tr><td>a</td><td>b</td></tr></table>"
    data = "<table><tr><td>a</td><td>b</td></tr><tr><td>c</td></tr></table>"
    with_th = "<table><tr><th>h</th></tr><tr><td>a</td><td>b</td><td>c</td></tr></table>"
    layout = '<table role="presentation"><tr><td>a</td><td>b</td></tr><tr><td>c</td></tr></table>'

    assert _run("table-header", small) is None
    assert _run("table-header", with_th) is None
    assert _run("table-header", layout) is None
    violation = _run("table-header", data)
    assert violation is not None
    assert violation.nodes[0].failure_summary == "Data table does not have header cells (<th>)"


def test_table_header_thresholds_are_tunable() -> None:
    data = "<table><tr><td>a</td><td>b</td></tr><tr><td>c</td></tr></table>"
    strict = CheckOptions(table_min_rows=3)
    loose = CheckOptions(table_min_rows=1, table_min_data_cells=1)

    assert _run("table-header", data, strict) is None
    assert _run("table-header", "<table><tr><td>x</td></tr></table>", loose) is not None


def test_table_snippet_uses_table_length() -> None:
    cells = "".join(f"<td>{i:04d}</td>" for i in range(100))
    violation = _run("table-header", f"<table><tr>{cells}</tr><tr>{cells}</tr></table>")

    assert violation is not None
    assert len(violation.nodes[0].snippet) == 300


def test_check_options_reject_non_positive_values() -> None:
    with pytest.raises(ValueError):
        CheckOptions(table_min_rows=0)


def test_engine_totals_and_order_on_compliant_document(compliant_html: str) -> None:
    outcome = CheckEngine().run(parse_document(compliant_html))

    assert outcome.violations == ()
    assert [p.rule_id for p in outcome.passes] == [c.rule_id for c in DEFAULT_CHECKS]
    assert outcome.passes[0].description == "image-alt check passed"
    assert outcome.total_checks == len(DEFAULT_CHECKS)


def test_engine_is_idempotent_and_parallel_matches_serial() -> None:
    markup = '<h1></h1><h3>x</h3><img><a href="#"></a><button></button><input>'
    doc = parse_document(markup)

    serial = CheckEngine().run(doc)
    again = CheckEngine().run(doc)
    parallel = CheckEngine(max_workers=4).run(doc)

    assert serial == again
    assert serial == parallel
    assert len(serial.violations) + len(serial.passes) == len(DEFAULT_CHECKS)


def _boom(document, options):
    raise RuntimeError("boom")


def _broken_checks() -> tuple[Check, ...]:
    return tuple(replace(c, evaluate=_boom) if c.rule_id == "heading-order" else c for c in DEFAULT_CHECKS)


def test_failure_policy_raise_wraps_cause() -> None:
    engine = CheckEngine(_broken_checks())
    with pytest.raises(CheckExecutionError) as excinfo:
        engine.run(parse_document("<p>x</p>"))

    assert excinfo.value.rule_id == "heading-order"
    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_failure_policy_raise_propagates_from_worker_threads() -> None:
    engine = CheckEngine(_broken_checks(), max_workers=3)
    with pytest.raises(CheckExecutionError):
        engine.run(parse_document("<p>x</p>"))


def test_failure_policy_skip_records_omission() -> None:
    outcome = CheckEngine(_broken_checks(), failure_policy="skip").run(parse_document("<p>x</p>"))

    assert [s.rule_id for s in outcome.skipped] == ["heading-order"]
    assert "RuntimeError: boom" in outcome.skipped[0].error
    assert outcome.warnings == ()
    assert "heading-order" not in [p.rule_id for p in outcome.passes]
    assert outcome.total_checks == len(DEFAULT_CHECKS)


def test_failure_policy_warn_emits_check_warning() -> None:
    engine = CheckEngine(_broken_checks(), failure_policy="WARN")
    with pytest.warns(CheckWarning, match="heading-order"):
        outcome = engine.run(parse_document("<p>x</p>"))

    assert len(outcome.skipped) == 1
    assert len(outcome.warnings) == 1


def test_unknown_failure_policy_is_rejected() -> None:
    with pytest.raises(ValueError):
        CheckEngine(failure_policy="ignore")


def test_engine_validates_against_registry() -> None:
    registry = load_default_registry()
    CheckEngine(registry=registry)

    wrong_impact = tuple(replace(c, impact=Impact.MINOR) if c.rule_id == "label" else c for c in DEFAULT_CHECKS)
    with pytest.raises(RegistryError, match="impact"):
        CheckEngine(wrong_impact, registry=registry)

    unknown = DEFAULT_CHECKS + (replace(DEFAULT_CHECKS[0], rule_id="not-in-catalog"),)
    with pytest.raises(RegistryError, match="no entry"):
        CheckEngine(unknown, registry=registry)

    unimplemented = (replace(DEFAULT_CHECKS[0], rule_id="color-contrast", impact=Impact.SERIOUS),)
    with pytest.raises(RegistryError, match="unimplemented"):
        CheckEngine(unimplemented, registry=registry)


def test_engine_rejects_duplicate_rule_ids() -> None:
    with pytest.raises(RegistryError):
        CheckEngine(DEFAULT_CHECKS + DEFAULT_CHECKS[:1])


def test_checks_can_share_a_document_across_threads() -> None:
    doc = parse_document("<img><img alt='a'><a href='/'></a>" * 50)
    engine = CheckEngine()
    results = []

    def worker() -> None:
        results.append(engine.run(doc))

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 4
    assert all(r == results[0] for r in results)


def test_checks_never_raise_on_malformed_markup() -> None:
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        outcome = CheckEngine().run(parse_document("<table><tr><td><a href=<img alt=>><h7></h2></button <<>>"))
    assert outcome.total_checks == len(DEFAULT_CHECKS)
