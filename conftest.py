"""Shared pytest fixtures: record builders and an in-memory Supabase stand-in."""
import sys
import uuid
from pathlib import Path
from types import SimpleNamespace

# Add project root to path
project_root = Path(__file__).resolve().parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import pytest

from drivecoach.constants import FULL_LICENSE_ITEM_IDS

STUDENT_ID = "5b1f7c1e-2a0d-4d53-9d4e-0f6c2b7a9e11"
USER_ID = "0c7d6f0a-95a1-4b7e-8a5c-3e4d2f1b6a22"
ORG_ID = "9e8d7c6b-5a4f-4e3d-8c2b-1a0f9e8d7c6b"


def make_attempt(fails=(), task_id="left_turn", **overrides):
    """Attempt dict with every item passed except the ids in fails."""
    attempt = {
        "id": uuid.uuid4().hex,
        "createdAt": "2024-03-05T09:15:00+00:00",
        "taskId": task_id,
        "taskName": "Turning Left" if task_id == "left_turn" else task_id,
        "variant": "Give way – turning left at intersection",
        "repIndex": 1,
        "repTarget": 1,
        "items": {item_id: ("F" if item_id in fails else "P") for item_id in FULL_LICENSE_ITEM_IDS},
        "hazardResponses": {"vehicles": {"ahead": "yes"}},
        "hazardsSpoken": "Car pulling out on the right",
        "actionsSpoken": "Covered brake",
    }
    attempt.update(overrides)
    return attempt


def full_license_raw(**overrides):
    raw = {
        "studentId": STUDENT_ID,
        "date": "05/03/2024",
        "time": "09:00",
        "candidateName": "Aroha Smith",
        "instructor": "Sam Lee",
        "mode": "official",
        "weather": "dry",
        "attempts": [make_attempt() for _ in range(4)],
    }
    raw.update(overrides)
    return raw


def restricted_raw(**overrides):
    raw = {
        "studentId": STUDENT_ID,
        "date": "2024-03-05",
        "time": "14:30",
        "candidateName": "Aroha Smith",
        "stagesState": {
            "stage1": {"s1_rt": {"items": {"observation": 2, "signalling": 1}, "repetitions": 4}},
            "stage2": {},
        },
    }
    raw.update(overrides)
    return raw


class FakeQuery:
    """Records the chained PostgREST calls and returns canned rows on execute()."""

    def __init__(self, table):
        self.table = table
        self.calls = []

    def __getattr__(self, name):
        def step(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            if name == "insert":
                self.table.inserted.append(args[0])
            return self
        return step

    def execute(self):
        if self.table.error is not None:
            raise self.table.error
        if any(name == "insert" for name, _, _ in self.calls):
            row = dict(self.table.inserted[-1], id=str(uuid.uuid4()))
            return SimpleNamespace(data=[row] if self.table.return_rows else [])
        return SimpleNamespace(data=self.table.rows)


class FakeTable:
    def __init__(self):
        self.rows = []
        self.inserted = []
        self.error = None
        self.return_rows = True
        self.queries = []


class FakeClient:
    def __init__(self):
        self.tables = {}

    def table(self, name):
        table = self.tables.setdefault(name, FakeTable())
        query = FakeQuery(table)
        table.queries.append(query)
        return query


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def draft_dir(tmp_path):
    return tmp_path / "drafts"
