from typing import Annotated, Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from config import config
from db.repositories import TaxDetailRepository, VehicleRepository
from services.invoice_renderer import PdfInvoiceRenderer
from workflow.tax_workflow import TaxWorkflowController


def get_session(request: Request) -> Generator[Session, None, None]:
    with request.app.state.sessionmaker() as session:
        yield session


def get_vehicle_repository(session: Annotated[Session, Depends(get_session)]) -> VehicleRepository:
    return VehicleRepository(session)


def get_tax_detail_repository(session: Annotated[Session, Depends(get_session)]) -> TaxDetailRepository:
    return TaxDetailRepository(session)


def get_controller(
    vehicles: Annotated[VehicleRepository, Depends(get_vehicle_repository)],
    tax_details: Annotated[TaxDetailRepository, Depends(get_tax_detail_repository)],
) -> TaxWorkflowController:
    return TaxWorkflowController(
        vehicles=vehicles,
        tax_details=tax_details,
        renderer=PdfInvoiceRenderer(),
        available_limit=config().available_limit,
    )
