import os
from datetime import date

import pytest

# settings are cached on first import; point them at an in-memory store first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_LEVEL"] = "WARNING"

from sqlalchemy.orm import sessionmaker  # noqa: E402

from mohs.db import models  # noqa: E402
from mohs.db.reference import seed_cpt_reference  # noqa: E402
from mohs.db.session import Base, build_engine  # noqa: E402
from mohs.services.cases import CaseManager  # noqa: E402
from mohs.services.stages import StageTracker  # noqa: E402
from mohs.services.stats import StatsAggregator  # noqa: E402

TENANT = "clinic-a"
OTHER_TENANT = "clinic-b"


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    seed_cpt_reference(session)
    yield session
    session.close()


@pytest.fixture
def case_manager(db):
    return CaseManager(db)


@pytest.fixture
def stage_tracker(db):
    return StageTracker(db)


@pytest.fixture
def stats(db):
    return StatsAggregator(db)


@pytest.fixture
def directory(db):
    """Patient and surgeon rows shown on reports"""
    db.add_all(
        [
            models.Patient(
                id="pat-1",
                tenant_id=TENANT,
                first_name="Ada",
                last_name="Lovelace",
                mrn="MRN-0001",
                dob=date(1950, 12, 10),
            ),
            models.Provider(id="doc-1", tenant_id=TENANT, first_name="Frederic", last_name="Mohs"),
            models.Provider(id="doc-2", tenant_id=TENANT, first_name="Perry", last_name="Robins"),
        ]
    )
    db.commit()


@pytest.fixture
def make_case(case_manager):
    def _make(tenant_id=TENANT, **overrides):
        payload = {
            "patient_id": "pat-1",
            "surgeon_id": "doc-1",
            "tumor_location": "left cheek",
            "tumor_type": "BCC",
            "case_date": date(2024, 3, 14),
        }
        payload.update(overrides)
        return case_manager.create_case(tenant_id, payload, actor="doc-1")

    return _make


@pytest.fixture
def negative_block():
    return {"block_label": "A", "position": "12 o'clock", "margin_status": "negative"}
