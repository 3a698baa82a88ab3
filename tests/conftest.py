from __future__ import annotations

import sys
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
PYTHON_SRC = ROOT / "python"

if str(PYTHON_SRC) not in sys.path:
    sys.path.insert(0, str(PYTHON_SRC))
else:
    sys.path.remove(str(PYTHON_SRC))
    sys.path.insert(0, str(PYTHON_SRC))


def _prefer_local_wcagshield_package() -> None:
    for pkg in ("wcagshield", "wcagshield_cli"):
        loaded = sys.modules.get(pkg)
        if loaded is None:
            continue
        mod_file = getattr(loaded, "__file__", "") or ""
        if str(PYTHON_SRC / pkg) in mod_file:
            continue
        for name in list(sys.modules):
            if name == pkg or name.startswith(pkg + "."):
                sys.modules.pop(name, None)


_prefer_local_wcagshield_package()


COMPLIANT_HTML = """<!DOCTYPE html>
<html lang="en">
<head><title>Shop</title></head>
<body>
  <h1>Shop</h1>
  <h2>Items</h2>
  <img src="a.png" alt="A product">
  <a href="/cart">Cart</a>
  <button>Buy</button>
  <label for="q">Search</label><input id="q" type="text">
  <table>
    <tr><th>Size</th><th>Price</th></tr>
    <tr><td>S</td><td>1</td></tr>
    <tr><td>M</td><td>2</td></tr>
  </table>
</body>
</html>
"""


@pytest.fixture
def compliant_html() -> str:
    return COMPLIANT_HTML
