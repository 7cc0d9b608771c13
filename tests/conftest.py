from typing import Generator

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from db.models import Base
from db.repositories import TaxDetailRepository, VehicleRepository
from tests.helpers.recording_renderer import RecordingRenderer
from workflow.tax_workflow import TaxWorkflowController

engine: Engine = create_engine(
    "sqlite:///:memory:", connect_args={"check_same_thread": False}, poolclass=StaticPool
)
session_factory = sessionmaker(engine)


@pytest.fixture(scope="function")
def test_session() -> Generator[Session, None, None]:
    with session_factory() as session:
        yield session


@pytest.fixture(scope="function", autouse=True)
def reset_db() -> Generator[None, None, None]:
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def vehicle_repository(test_session: Session) -> VehicleRepository:
    return VehicleRepository(test_session)


@pytest.fixture(scope="function")
def tax_detail_repository(test_session: Session) -> TaxDetailRepository:
    return TaxDetailRepository(test_session)


@pytest.fixture(scope="function")
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture(scope="function")
def controller(
    vehicle_repository: VehicleRepository,
    tax_detail_repository: TaxDetailRepository,
    renderer: RecordingRenderer,
) -> TaxWorkflowController:
    return TaxWorkflowController(vehicles=vehicle_repository, tax_details=tax_detail_repository, renderer=renderer)
