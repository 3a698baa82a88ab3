# SPDX-License-Identifier: AGPL-3.0-only
"""wcagshield command line entrypoint.

Commands:
  scan        run the accessibility checks against a page or markup file
  rules       list the rule catalog (filter by standard version / level)
  diagnostic  report rule coverage, update status and recommendations
  fix         show remediation guidance for one rule, or all of them
"""
import argparse
import importlib.metadata as metadata
import json
import logging
import re
import sys
from pathlib import Path

import wcagshield
from wcagshield.config import Config
from wcagshield.diagnostics import build_diagnostic_report
from wcagshield.errors import ScanError, WcagShieldError
from wcagshield.fetch import DEFAULT_TIMEOUT, fetch_html
from wcagshield.registry import load_default_registry
from wcagshield.remediation import DIFFICULTIES, all_fix_guidance, fix_guidance_by_difficulty, get_fix_guidance
from wcagshield.scanner import build_engine, normalize_url, scan_document

logger = logging.getLogger("wcagshield.cli")

ERROR_SCHEMA = "wcagshield.error.v1"
SCAN_SCHEMA = "wcagshield.scan_result.v1"
RULES_SCHEMA = "wcagshield.rules.v1"
FIX_SCHEMA = "wcagshield.fix.v1"
DEFAULT_URL = "about:blank"

LOG_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def _get_version():
    """Return installed wcagshield version, with a dev fallback."""
    for dist in ("wcagshield", "wcagshield-cli"):
        try:
            return metadata.version(dist)
        except metadata.PackageNotFoundError:
            continue
    return "0.0.0-dev"


def _json_default(obj):
    """Best-effort JSON serializer fallback for CLI payload objects."""
    if isinstance(obj, (bytes, bytearray)):
        return {"type": "bytes", "length": len(obj)}
    if isinstance(obj, memoryview):
        return {"type": "bytes", "length": len(obj.tobytes())}
    return str(obj)


def _json_dumps(payload, indent=None):
    """JSON serialize payload using CLI defaults."""
    return json.dumps(payload, ensure_ascii=True, indent=indent, default=_json_default)


def _write_json(path, payload):
    Path(path).write_text(_json_dumps(payload, indent=2), encoding="utf-8")


def _read_text(path_or_dash):
    """Read UTF-8 text from path, or stdin when value is '-'."""
    if path_or_dash == "-":
        return sys.stdin.read()
    return Path(path_or_dash).read_text(encoding="utf-8")


def _configure_logging(level_name):
    logging.basicConfig(
        level=LOG_LEVELS.get(level_name, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _load_config(args):
    path = getattr(args, "config", None)
    return Config.load(Path(path) if path else None)


def _registry_for(config):
    return config.apply_to_registry(load_default_registry())


def _collect_markup(args):
    """Return markup from `--html-str`, `--html` path/stdin, or by fetching `--url`."""
    if args.html_str is not None:
        return args.html_str, normalize_url(args.url) if args.url else DEFAULT_URL
    if args.html is not None:
        return _read_text(args.html), normalize_url(args.url) if args.url else DEFAULT_URL
    if not args.url:
        raise ValueError("--url, --html or --html-str is required")
    url = normalize_url(args.url)
    return fetch_html(url, timeout=args.timeout), url


def _print_scan(result):
    out = sys.stdout
    out.write(f"{result.url}\n")
    out.write(f"  title: {result.page_title}  lang: {result.page_language}\n")
    out.write(
        f"  score: {result.accessibility_score}/100  "
        f"violations: {result.total_violations}  passes: {result.total_passes}\n"
    )
    out.write(
        f"  critical {result.critical_count} / serious {result.serious_count} / "
        f"moderate {result.moderate_count} / minor {result.minor_count}\n"
    )
    for v in result.violations:
        out.write(f"[{v.impact.value}] {v.rule_id}: {v.description} ({v.node_count} node(s))\n")
        for node in v.nodes:
            out.write(f"    {node.locator}: {node.failure_summary}\n")
    for skipped in result.skipped_checks:
        out.write(f"[skipped] {skipped.rule_id}: {skipped.error}\n")


def cmd_scan(args):
    """CLI handler for `wcagshield scan`."""
    config = _load_config(args)
    registry = _registry_for(config)
    engine = build_engine(registry, config)
    markup, url = _collect_markup(args)
    result = scan_document(markup, url, registry=registry, engine=engine, config=config)
    payload = {"schema": SCAN_SCHEMA, "ok": True, **result.to_dict()}
    if args.out:
        _write_json(args.out, result.to_dict())
        logger.info("wrote scan result to %s", args.out)
    if args.json:
        sys.stdout.write(_json_dumps(payload) + "\n")
    else:
        _print_scan(result)
        if args.out:
            sys.stdout.write(f"[ok] wrote {args.out}\n")
    if args.fail_under is not None and result.accessibility_score < args.fail_under:
        raise SystemExit(3)


def cmd_rules(args):
    """CLI handler for `wcagshield rules`."""
    config = _load_config(args)
    registry = _registry_for(config)
    rules = list(registry.rules)
    if args.standard_version:
        wanted = {r.id for r in registry.rules_by_version(args.standard_version)}
        rules = [r for r in rules if r.id in wanted]
    if args.level:
        wanted = {r.id for r in registry.rules_by_level(args.level)}
        rules = [r for r in rules if r.id in wanted]
    if args.implemented:
        rules = [r for r in rules if r.implemented]
    elif args.missing:
        rules = [r for r in rules if not r.implemented]

    if args.json:
        payload = {"schema": RULES_SCHEMA, "ok": True, "count": len(rules), "rules": [r.to_dict() for r in rules]}
        sys.stdout.write(_json_dumps(payload) + "\n")
        return
    for r in rules:
        mark = "x" if r.implemented else " "
        sys.stdout.write(
            f"[{mark}] {r.id:<28} {r.standard_version:<4} {r.level.value:<3} "
            f"{r.criterion_id:<7} {r.impact.value:<9} {r.name}\n"
        )


def cmd_diagnostic(args):
    """CLI handler for `wcagshield diagnostic`."""
    config = _load_config(args)
    report = build_diagnostic_report(load_default_registry(), config=config)
    if args.json:
        sys.stdout.write(_json_dumps({"ok": True, **report}) + "\n")
        return
    scanner = report["scanner"]
    coverage = report["coverage"]
    update = report["update_status"]
    sys.stdout.write(
        f"wcagshield {scanner['tool_version']} targeting WCAG "
        f"{scanner['target_version']} {scanner['target_level']}\n"
    )
    sys.stdout.write(
        f"coverage: {coverage['implemented']}/{coverage['total']} "
        f"({coverage['percentage']}%, {coverage['status']})\n"
    )
    sys.stdout.write(f"update: {update['recommendation']}\n")
    for line in report["recommendations"]:
        sys.stdout.write(f"- {line}\n")


def _print_guidance(guidance):
    out = sys.stdout
    out.write(f"{guidance.title} [{guidance.id}]\n")
    out.write(f"  severity: {guidance.severity.value}  difficulty: {guidance.difficulty}  time: {guidance.time_to_fix}\n")
    out.write(f"  {guidance.summary}\n")
    for step in guidance.steps:
        out.write(f"  {step.location}:\n")
        for i, line in enumerate(step.instructions, start=1):
            out.write(f"    {i}. {line}\n")
        if step.tip:
            out.write(f"    tip: {step.tip}\n")
    if guidance.cant_fix:
        out.write(f"  note: {guidance.cant_fix}\n")


def cmd_fix(args):
    """CLI handler for `wcagshield fix`."""
    if args.rule_id:
        guidance = get_fix_guidance(args.rule_id)
        if guidance is None:
            raise ValueError(f"No remediation guidance for rule {args.rule_id!r}")
        items = [guidance]
    elif args.difficulty:
        items = fix_guidance_by_difficulty(args.difficulty)
    else:
        items = all_fix_guidance()

    if args.json:
        payload = {"schema": FIX_SCHEMA, "ok": True, "fixes": [g.to_dict() for g in items]}
        sys.stdout.write(_json_dumps(payload) + "\n")
        return
    for guidance in items:
        _print_guidance(guidance)


def _error_payload(exc):
    if isinstance(exc, ScanError):
        return exc.to_dict()
    code = "CLI_ERROR"
    if isinstance(exc, WcagShieldError):
        code = re.sub(r"(?<!^)(?=[A-Z])", "_", type(exc).__name__).upper()
    return {"schema": ERROR_SCHEMA, "ok": False, "code": code, "message": str(exc)}


def _build_parser():
    """Construct and return the top-level CLI parser."""
    parser = argparse.ArgumentParser(prog="wcagshield")
    parser.add_argument("--config", help="Path to wcagshield.toml")
    parser.add_argument("--log-level", choices=list(LOG_LEVELS), default="warn")
    parser.add_argument("--version", action="version", version="wcagshield " + _get_version())
    parser.add_argument("--json", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    p_scan = sub.add_parser("scan", help="Scan a page (by URL) or local markup")
    p_scan.add_argument("--url", help="Page URL; fetched unless --html/--html-str is given")
    p_scan.add_argument("--html", help="Markup file path, or '-' for stdin")
    p_scan.add_argument("--html-str", help="Inline markup string")
    p_scan.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT)
    p_scan.add_argument("--out", help="Write the scan result JSON to this path")
    p_scan.add_argument("--fail-under", type=int, help="Exit 3 when the score is below this value")
    p_scan.set_defaults(func=cmd_scan)

    p_rules = sub.add_parser("rules", help="List catalog rules")
    p_rules.add_argument("--standard-version", help="Only rules introduced in this WCAG version")
    p_rules.add_argument("--level", choices=["A", "AA", "AAA"], help="Rules up to this level")
    group = p_rules.add_mutually_exclusive_group()
    group.add_argument("--implemented", action="store_true")
    group.add_argument("--missing", action="store_true")
    p_rules.set_defaults(func=cmd_rules)

    p_diag = sub.add_parser("diagnostic", help="Coverage, update status and recommendations")
    p_diag.set_defaults(func=cmd_diagnostic)

    p_fix = sub.add_parser("fix", help="Remediation guidance")
    p_fix.add_argument("rule_id", nargs="?")
    p_fix.add_argument("--difficulty", choices=list(DIFFICULTIES))
    p_fix.set_defaults(func=cmd_fix)
    return parser


def main(argv=None):
    """Execute CLI command dispatch and standardized error handling."""
    argv = list(sys.argv[1:] if argv is None else argv)
    force_json = "--json" in argv
    if force_json:
        argv = [a for a in argv if a != "--json"]
    parser = _build_parser()
    args = parser.parse_args(argv)
    args.json = args.json or force_json
    _configure_logging(args.log_level)
    logger.debug("wcagshield %s (core %s)", _get_version(), wcagshield.__version__)
    try:
        args.func(args)
    except Exception as exc:
        logger.debug("command %s failed", args.command, exc_info=True)
        if args.json:
            sys.stdout.write(_json_dumps(_error_payload(exc)) + "\n")
        else:
            sys.stderr.write(f"[error] {exc}\n")
        return 3
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
