"""Shared pytest fixtures for the partscanner test suite."""

from typing import List, Optional
from unittest.mock import MagicMock

import pytest

from partscanner.sheets import Table


class FakeSource:
    """Tabular source returning a fixed table and counting fetches."""

    def __init__(self, values: Optional[List[List[str]]] = None, error: Exception = None):
        self.values = values
        self.error = error
        self.fetches = 0

    def fetch_table(self) -> Table:
        self.fetches += 1
        if self.error is not None:
            raise self.error
        return Table.from_values(self.values)


class InlineExecutor:
    """Executor running submitted work immediately on the calling thread."""

    def __init__(self):
        self.submitted = []

    def submit(self, fn, *args, **kwargs):
        self.submitted.append(args)
        fn(*args, **kwargs)

    def shutdown(self, wait=True, cancel_futures=False):
        pass


def fake_response(status=200, payload=None, text=""):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    resp.text = text
    if isinstance(payload, Exception):
        resp.json.side_effect = payload
    else:
        resp.json.return_value = payload
    return resp


@pytest.fixture
def parts_values() -> List[List[str]]:
    return [
        ["ID", "Name", "Quantity", "Position", "CAD Assembly"],
        ["HL-012A", "Bracket", "15", "Shelf3", "https://drive.google.com/file/d/abc123/view"],
        ["XY-9911", "Hinge", "4 pcs", "Drawer 2", ""],
        ["AB-123C", "", "", "", ""],
    ]


@pytest.fixture
def parts_source(parts_values) -> FakeSource:
    return FakeSource(parts_values)
