import matplotlib

matplotlib.use("Agg")

import pytest

from process_lca.audit import audit_logger
from process_lca.models import ImpactDatabase, ImpactRecord
from process_lca.session import LCASession
from process_lca.storage import KeyValueStore


@pytest.fixture(autouse=True)
def _audit_off():
    audit_logger.disable()
    yield
    audit_logger.disable()


@pytest.fixture
def small_db():
    """Impact database with round numbers for hand-checked results."""
    return ImpactDatabase(
        electricity=[
            ImpactRecord("Grid 0.45", GWP=0.45, ADP=1e-7, WaterUse=0.05, AP=0.002, FETP=0.6),
            ImpactRecord("Hydro", GWP=0.01),
        ],
        chemicals=[
            ImpactRecord("Reagent X", GWP=4.5, ADP=2e-5, WaterUse=0.4, AP=0.02, FETP=9.0),
            ImpactRecord("Broken", GWP=-3.0),
        ],
        waters=[
            ImpactRecord("Tap", GWP=0.001, WaterUse=0.001),
        ],
    )


@pytest.fixture
def session():
    """In-memory session (nothing written to disk)."""
    return LCASession.open(path=None, ambient_c=25.0)


@pytest.fixture
def file_session(tmp_path):
    return LCASession.open(path=str(tmp_path / "store.json"), ambient_c=25.0)


@pytest.fixture
def memory_store():
    return KeyValueStore(None)
