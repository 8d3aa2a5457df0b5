"""Shared test fixtures."""
import itertools

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from ratings.database import init_models
from ratings.models.catalog import Flashlight, FlashlightSpec, FlashlightPriceSnapshot
from ratings.scoring import formulas


@pytest.fixture
def db_engine(tmp_path):
    """File-backed SQLite engine with schema created.

    A file (not :memory:) so that independent sessions see each other's
    commits, the way the run row and the batch unit of work do in production.
    """
    engine = create_engine(f"sqlite:///{tmp_path / 'ratings-test.db'}")
    init_models().create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """sessionmaker bound to the test engine — pass to run_batch / start_run."""
    return sessionmaker(bind=db_engine)


@pytest.fixture
def db_session(session_factory):
    """Session for arranging and asserting. Rolls back after each test."""
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(autouse=True)
def reset_formula_cache():
    """Reset the formula table cache so each test starts clean."""
    formulas.reset_cache()
    yield
    formulas.reset_cache()


@pytest.fixture
def sample_spec():
    """A well-specified mid-range thrower."""
    return dict(
        max_lumens=1800,
        max_candela=45000,
        beam_distance_m=420,
        runtime_medium_min=240,
        runtime_high_min=95,
        waterproof_rating='IP68',
        impact_resistance_m=1.5,
    )


@pytest.fixture
def add_flashlight(db_session):
    """Factory fixture — inserts a flashlight (+ spec + price) and commits. Returns its id."""
    counter = itertools.count(1)

    def _add(name=None, is_active=True, price=None, currency='USD', with_spec=True, **specs):
        n = next(counter)
        light = Flashlight(
            name=name or f'Test Light {n}',
            slug=f'test-light-{n}',
            is_active=is_active,
        )
        db_session.add(light)
        db_session.flush()
        if with_spec:
            db_session.add(FlashlightSpec(flashlight_id=light.id, **specs))
        if price is not None:
            db_session.add(FlashlightPriceSnapshot(
                flashlight_id=light.id, price=price, currency_code=currency,
            ))
        db_session.commit()
        return light.id

    return _add
