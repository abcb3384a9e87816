from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT, ROOT / "src"):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


import pytest

from tests.samples import QUERIES_SOURCE, SCHEMA_SOURCE, write


@pytest.fixture
def helix_workspace(tmp_path: Path) -> Path:
    """A directory holding a schema file and a query file."""
    write(tmp_path, "schema.hx", SCHEMA_SOURCE)
    write(tmp_path, "queries.hx", QUERIES_SOURCE)
    return tmp_path


@pytest.fixture
def session():
    from helixql_lsp.session import HelixQLSession

    return HelixQLSession()
