"""Novel Server: a web-novel publishing backend.

Readers browse and read serialized fiction, authors publish chapters and earn
coins from paid unlocks, and administrators moderate comments and review
platform statistics.

Version Management
------------------
``__version__`` is read from the installed package metadata at import time.
The single source of truth is the ``version`` field in ``pyproject.toml``.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__: str = version("novel-server")
except PackageNotFoundError:
    __version__ = "0.1.0"
