from __future__ import annotations

import sys
from collections import deque
from pathlib import Path
from typing import Iterable, Sequence

import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from darkrpg.models import load_catalog
from darkrpg.models.catalog import Catalog


class ScriptedRandom:
    """Stand-in for :mod:`random` that replays queued draws in order.

    ``random()`` and ``uniform()`` draw from separate queues; ``uniform``
    returns the queued value as-is regardless of its bounds. ``choice``
    always picks the first element.
    """

    def __init__(self, randoms: Iterable[float] = (), uniforms: Iterable[float] = ()) -> None:
        self.randoms = deque(randoms)
        self.uniforms = deque(uniforms)

    def random(self) -> float:
        return self.randoms.popleft()

    def uniform(self, low: float, high: float) -> float:
        return self.uniforms.popleft()

    def choice(self, seq: Sequence):
        return seq[0]

    @property
    def exhausted(self) -> bool:
        return not self.randoms and not self.uniforms


@pytest.fixture(scope="session")
def catalog() -> Catalog:
    return load_catalog()


@pytest.fixture
def scripted():
    return ScriptedRandom


@pytest.fixture
def data_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    root = tmp_path / "data"
    monkeypatch.setenv("DARKRPG_DATA_ROOT", str(root))
    return root
