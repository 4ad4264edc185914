"""
Shared fixtures: a small three-module catalog and a ledger in tmp_path.
"""

from datetime import datetime, timedelta

import pytest

from wellcoach.schemas import ModuleCatalog
from wellcoach.training import CatalogLoader, SubmissionLedger


USER_ID = "learner_1"


def module_data(number: int, sections: int = 3, **extra) -> dict:
    return {
        "id": f"module_{number}",
        "number": number,
        "title": f"Module {number}",
        "sections": [
            {
                "id": f"m{number}_s{i}",
                "number": i,
                "title": f"Section {i}",
                "content": [{"id": f"m{number}_c{i}", "content": "Read this."}],
                "exercises": [
                    {"id": f"m{number}_e{i}", "type": "reflection", "title": f"Exercise {i}"}
                ],
            }
            for i in range(1, sections + 1)
        ],
        **extra,
    }


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2024, 3, 4, 9, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def catalog():
    data = {"modules": [module_data(1), module_data(2), module_data(3)]}
    return CatalogLoader(ModuleCatalog.model_validate(data))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ledger(tmp_path, catalog, clock):
    return SubmissionLedger(catalog, tmp_path / "progress.db", clock=clock)
