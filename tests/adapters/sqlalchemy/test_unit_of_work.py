from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine

from transitgraph.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyTransitUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from transitgraph.domain import geometry
from transitgraph.domain.changesets import ConcurrentModificationError
from transitgraph.domain.model import Stop

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_unit_of_work_requires_startup() -> None:
    assert is_started() is False

    with pytest.raises(StartupError):
        SqlAlchemyTransitUnitOfWork()


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = create_engine("sqlite+pysqlite:///:memory:", future=True)
    engine_b = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    assert configured_engine() is engine_b


def test_repositories_need_an_open_session(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    uow = SqlAlchemyTransitUnitOfWork()

    with pytest.raises(StartupError):
        _ = uow.repositories


def test_unit_of_work_persists_stops(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyTransitUnitOfWork() as uow:
        stop = Stop(onestop_id="s-spzc-a", name="A", geometry=geometry.point(10, 43))
        stop.add_identifier("gtfs://f-spzc-x/s/1")
        uow.repositories.stops.add(stop)
        uow.commit()

    with SqlAlchemyTransitUnitOfWork() as uow:
        stored = uow.repositories.stops.get_by_onestop_id("s-spzc-a")
        assert stored is not None
        assert stored.name == "A"
        assert geometry.same(stored.geometry, geometry.point(10, 43))
        assert stored.identifiers == ("gtfs://f-spzc-x/s/1",)


def test_unit_of_work_rolls_back_on_error(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with pytest.raises(RuntimeError), SqlAlchemyTransitUnitOfWork() as uow:
        uow.repositories.stops.add(Stop(onestop_id="s-spzc-a", name="A"))
        uow.flush()
        raise RuntimeError("boom")

    with SqlAlchemyTransitUnitOfWork() as uow:
        assert uow.repositories.stops.get_by_onestop_id("s-spzc-a") is None


def test_duplicate_onestop_id_is_a_concurrent_modification(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyTransitUnitOfWork() as uow:
        uow.repositories.stops.add(Stop(onestop_id="s-spzc-a", name="A"))
        uow.commit()

    with SqlAlchemyTransitUnitOfWork() as uow:
        uow.repositories.stops.add(Stop(onestop_id="s-spzc-a", name="B"))
        with pytest.raises(ConcurrentModificationError):
            uow.commit()


def test_stale_version_is_a_concurrent_modification(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyTransitUnitOfWork() as uow:
        uow.repositories.stops.add(Stop(onestop_id="s-spzc-a", name="A"))
        uow.commit()

    with SqlAlchemyTransitUnitOfWork() as slow:
        stale = slow.repositories.stops.get_by_onestop_id("s-spzc-a")
        assert stale is not None

        with SqlAlchemyTransitUnitOfWork() as fast:
            fresh = fast.repositories.stops.get_by_onestop_id("s-spzc-a")
            assert fresh is not None
            fresh.name = "B"
            fresh.bump_version()
            fast.commit()

        stale.name = "C"
        stale.bump_version()
        with pytest.raises(ConcurrentModificationError):
            slow.commit()
