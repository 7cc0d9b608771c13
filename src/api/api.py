import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from time import perf_counter
from typing import Annotated, AsyncGenerator, Awaitable, Callable

from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import sessionmaker

from api.dependencies import get_controller
from config import config
from db.db import create_db_engine
from domain.gateways import StoreError
from domain.tax import TaxBreakdown, TaxDetail
from domain.vehicle import CostBasis, Vehicle
from services.invoice_renderer import invoice_filename
from workflow.tax_workflow import (
    InputField,
    InvalidInputError,
    InvalidTransitionError,
    OperationInProgressError,
    SearchResult,
    TaxDetailNotFoundError,
    TaxWorkflowController,
    TaxWorkflowError,
    VehicleNotFoundError,
    WorkflowState,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI) -> AsyncGenerator[None, None]:
    settings = config()
    engine = create_db_engine(settings.db_file, echo=settings.sql_echo)
    fastapi_app.state.sessionmaker = sessionmaker(engine)
    yield
    engine.dispose()


app = FastAPI(lifespan=lifespan)


class SearchResultOut(BaseModel):
    vehicle: Vehicle
    has_tax_detail: bool


class TaxInputs(BaseModel):
    expected_profit: Decimal | None = None
    paid_vat: Decimal | None = None


class TaxPreviewOut(BaseModel):
    state: WorkflowState
    cost_basis: CostBasis
    breakdown: TaxBreakdown | None


@app.middleware("http")
async def log_process_time(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    start_time = perf_counter()
    response = await call_next(request)
    process_time = perf_counter() - start_time
    logger.info("Request time: %s %s: %.4fs", request.method, request.url, process_time)
    return response


@app.exception_handler(TaxWorkflowError)
async def workflow_error_handler(request: Request, exc: TaxWorkflowError) -> JSONResponse:
    if isinstance(exc, (TaxDetailNotFoundError, VehicleNotFoundError)):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, InvalidInputError):
        status_code = 422
    elif isinstance(exc, (InvalidTransitionError, OperationInProgressError)):
        status_code = status.HTTP_409_CONFLICT
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"detail": str(exc)})


def _results_out(results: list[SearchResult]) -> list[SearchResultOut]:
    return [SearchResultOut(vehicle=result.vehicle, has_tax_detail=result.has_tax_detail) for result in results]


def _apply_inputs(controller: TaxWorkflowController, chassis_no: str, inputs: TaxInputs) -> None:
    controller.select_chassis(chassis_no)
    controller.edit_input(InputField.EXPECTED_PROFIT, inputs.expected_profit)
    controller.edit_input(InputField.PAID_VAT, inputs.paid_vat)


def _confirm_stored(controller: TaxWorkflowController, chassis_no: str) -> None:
    """Select the vehicle and accept its stored record; a stale record is refused with 409."""
    controller.select_chassis(chassis_no)
    if controller.record is None:
        raise TaxDetailNotFoundError(f"No tax details stored for {chassis_no}", chassis_no=chassis_no)
    controller.confirm_record()


@app.get("/vehicles/search")
def search_vehicles(
    q: str, controller: Annotated[TaxWorkflowController, Depends(get_controller)]
) -> list[SearchResultOut]:
    return _results_out(controller.search(q))


@app.get("/vehicles/available")
def list_available_vehicles(
    controller: Annotated[TaxWorkflowController, Depends(get_controller)],
) -> list[SearchResultOut]:
    return _results_out(controller.list_available())


@app.get("/tax-details/{chassis_no}")
def get_tax_detail(
    chassis_no: str, controller: Annotated[TaxWorkflowController, Depends(get_controller)]
) -> TaxDetail:
    controller.select_chassis(chassis_no)
    if controller.record is None:
        raise TaxDetailNotFoundError(f"No tax details stored for {chassis_no}", chassis_no=chassis_no)
    return controller.record


@app.post("/tax-details/{chassis_no}/preview")
def preview_tax_detail(
    chassis_no: str,
    inputs: TaxInputs,
    controller: Annotated[TaxWorkflowController, Depends(get_controller)],
) -> TaxPreviewOut:
    _apply_inputs(controller, chassis_no, inputs)
    if controller.cost_basis is None:
        raise VehicleNotFoundError(chassis_no)
    breakdown = controller.breakdown if controller.state is WorkflowState.COMPUTED else None
    return TaxPreviewOut(state=controller.state, cost_basis=controller.cost_basis, breakdown=breakdown)


@app.put("/tax-details/{chassis_no}")
def save_tax_detail(
    chassis_no: str,
    inputs: TaxInputs,
    controller: Annotated[TaxWorkflowController, Depends(get_controller)],
) -> TaxDetail:
    _apply_inputs(controller, chassis_no, inputs)
    return controller.save()


@app.delete("/tax-details/{chassis_no}", status_code=status.HTTP_204_NO_CONTENT)
def delete_tax_detail(
    chassis_no: str, controller: Annotated[TaxWorkflowController, Depends(get_controller)]
) -> Response:
    _confirm_stored(controller, chassis_no)
    controller.delete_record()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.post("/tax-details/{chassis_no}/invoice")
def print_tax_invoice(
    chassis_no: str, controller: Annotated[TaxWorkflowController, Depends(get_controller)]
) -> Response:
    _confirm_stored(controller, chassis_no)
    pdf_bytes = controller.render_invoice()
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{invoice_filename(chassis_no)}"'},
    )
