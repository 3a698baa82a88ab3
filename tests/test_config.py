from __future__ import annotations

from pathlib import Path

import pytest

from wcagshield.config import Config
from wcagshield.registry import load_default_registry
from wcagshield.types import Level


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "wcagshield.toml"
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults() -> None:
    config = Config.default()

    assert config.failure_policy == "raise"
    assert config.max_workers == 1
    assert config.coverage_threshold == 70
    assert config.target_version is None
    opts = config.check_options()
    assert (opts.snippet_max_length, opts.table_snippet_max_length) == (200, 300)
    assert (opts.table_min_rows, opts.table_min_data_cells) == (2, 3)
    assert config.apply_to_registry(load_default_registry()) is load_default_registry()


def test_load_merges_with_defaults(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
[scanner]
target_version = "2.2"
target_level = "a"
failure_policy = "Skip"
max_workers = 4

[checks]
table_min_rows = 3
""",
    )
    config = Config.load(path)

    assert config.path == path
    assert config.failure_policy == "skip"
    assert config.max_workers == 4
    assert config.check_options().table_min_rows == 3
    assert config.check_options().snippet_max_length == 200
    registry = config.apply_to_registry(load_default_registry())
    assert registry.target_version == "2.2"
    assert registry.target_level is Level.A


def test_load_without_path_uses_cwd_or_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    assert Config.load().path is None

    _write(tmp_path, "[diagnostics]\ncoverage_threshold = 50\n")
    assert Config.load().coverage_threshold == 50


def test_explicit_missing_path_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        Config.load(tmp_path / "nope.toml")


def test_parse_error_raises_value_error(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Failed to parse"):
        Config.load(_write(tmp_path, "[scanner\nfoo = "))


@pytest.mark.parametrize(
    "text",
    [
        '[scanner]\nfailure_policy = "ignore"\n',
        '[scanner]\ntarget_level = "AAAA"\n',
        '[scanner]\ntarget_version = "latest"\n',
        "[scanner]\nmax_workers = 0\n",
        "[diagnostics]\ncoverage_threshold = 120\n",
        "[diagnostics]\ncoverage_threshold = true\n",
        "[scanner]\nmax_workers = true\n",
        "[checks]\nsnippet_max_length = 0\n",
        "[checks]\nunknown_knob = 1\n",
    ],
)
def test_invalid_values_are_rejected(tmp_path: Path, text: str) -> None:
    with pytest.raises(ValueError):
        Config.load(_write(tmp_path, text))
