from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from sqlalchemy.orm import Session

from config import config
from db.db import init_db
from db.repositories import TaxDetailRepository, VehicleRepository
from domain.gateways import StoreError
from importers.vehicles_csv import load_vehicles
from services.invoice_renderer import PdfInvoiceRenderer, write_invoice
from utils.tax_summary import render_breakdown, render_search_results, render_tax_detail
from workflow.tax_workflow import InputField, TaxWorkflowController, TaxWorkflowError

logger = logging.getLogger(__name__)


def build_controller(session: Session) -> TaxWorkflowController:
    return TaxWorkflowController(
        vehicles=VehicleRepository(session),
        tax_details=TaxDetailRepository(session),
        renderer=PdfInvoiceRenderer(),
        available_limit=config().available_limit,
    )


def import_vehicles(session: Session, csv_path: Path) -> None:
    logger.info("Importing vehicles from %s", csv_path)
    vehicles = load_vehicles(csv_path)
    VehicleRepository(session).create_many(vehicles)
    print(f"Imported {len(vehicles)} vehicles from {csv_path}")


def compute(
    controller: TaxWorkflowController,
    chassis_no: str,
    *,
    profit: str,
    paid_vat: str | None,
    save: bool,
) -> None:
    controller.select_chassis(chassis_no)
    controller.edit_input(InputField.EXPECTED_PROFIT, profit)
    breakdown = controller.edit_input(InputField.PAID_VAT, paid_vat)
    render_breakdown(
        controller.cost_basis,
        breakdown,
        expected_profit=controller.expected_profit,
        paid_vat=controller.paid_vat,
    )
    if save:
        detail = controller.save()
        print(f"Tax details saved for {detail.chassis_no}")


def show(controller: TaxWorkflowController, chassis_no: str) -> None:
    controller.select_chassis(chassis_no)
    if controller.record is None:
        print(f"No tax details stored for {chassis_no}")
        return
    render_tax_detail(controller.record)


def delete(controller: TaxWorkflowController, chassis_no: str) -> None:
    controller.select_chassis(chassis_no)
    if controller.record is not None:
        controller.confirm_record()
    controller.delete_record()
    print(f"Tax details deleted for {chassis_no}")


def invoice(controller: TaxWorkflowController, chassis_no: str, out_dir: Path) -> None:
    controller.select_chassis(chassis_no)
    if controller.record is not None:
        controller.confirm_record()
    pdf_bytes = controller.render_invoice()
    path = write_invoice(pdf_bytes, chassis_no, out_dir)
    print(f"Invoice written to {path}")


def run(args: argparse.Namespace) -> None:
    settings = config()
    session = init_db(settings.sql_echo, db_file=settings.db_file)
    controller = build_controller(session)

    if args.command == "import-vehicles":
        import_vehicles(session, args.csv)
    elif args.command == "search":
        render_search_results(controller.search(args.query))
    elif args.command == "available":
        render_search_results(controller.list_available())
    elif args.command == "show":
        show(controller, args.chassis_no)
    elif args.command == "compute":
        compute(controller, args.chassis_no, profit=args.profit, paid_vat=args.paid_vat, save=args.save)
    elif args.command == "delete":
        delete(controller, args.chassis_no)
    elif args.command == "invoice":
        invoice(controller, args.chassis_no, args.out or settings.invoice_dir)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Vehicle tax calculator: levy, VAT and sold price per chassis.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_parser = subparsers.add_parser("import-vehicles", help="Load vehicle snapshots from CSV")
    import_parser.add_argument("csv", type=Path)

    search_parser = subparsers.add_parser("search", help="Find vehicles by partial chassis number")
    search_parser.add_argument("query")

    subparsers.add_parser("available", help="List the most recent available vehicles")

    show_parser = subparsers.add_parser("show", help="Show stored tax details")
    show_parser.add_argument("chassis_no")

    compute_parser = subparsers.add_parser("compute", help="Calculate tax for a vehicle")
    compute_parser.add_argument("chassis_no")
    compute_parser.add_argument("--profit", required=True)
    compute_parser.add_argument("--paid-vat", default=None)
    compute_parser.add_argument("--save", action="store_true")

    delete_parser = subparsers.add_parser("delete", help="Delete stored tax details")
    delete_parser.add_argument("chassis_no")

    invoice_parser = subparsers.add_parser("invoice", help="Print the tax invoice PDF")
    invoice_parser.add_argument("chassis_no")
    invoice_parser.add_argument("--out", type=Path, default=None)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    args = build_parser().parse_args(argv)
    try:
        run(args)
    except (TaxWorkflowError, StoreError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
