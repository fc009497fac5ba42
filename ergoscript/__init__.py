"""
ErgoScript language tooling.

The package bundles two pipelines that share the language vocabulary in
:mod:`ergoscript.lang`:

* ``lsp`` – editor intelligence (hover, completion, diagnostics) served
  over the Language Server Protocol with pygls.  Type inference there is
  heuristic and works on partial, unparsable text.
* ``compiler`` and ``templates`` – a real front end for the ErgoScript
  subset used by contracts, lowering to ErgoTree, and the contract
  template format built on constant segregation.

``cli`` ties both together as the ``ergoscript`` command.
"""

import re
from pathlib import Path
from importlib import metadata as _metadata


def _local_version() -> str | None:
    root = Path(__file__).resolve().parents[1]
    pyproject = root / "pyproject.toml"
    if not pyproject.exists():
        return None
    try:
        text = pyproject.read_text(encoding="utf-8")
    except OSError:  # pragma: no cover - IO errors should not break imports
        return None
    match = re.search(r"^version\s*=\s*\"([^\"]+)\"", text, flags=re.MULTILINE)
    if match:
        return match.group(1)
    return None


try:  # pragma: no cover - metadata fallback for editable installs
    __version__ = _metadata.version("ergoscript-tools")
except _metadata.PackageNotFoundError:  # pragma: no cover - source tree
    __version__ = _local_version() or "0.1.0"

__all__ = ["__version__"]
