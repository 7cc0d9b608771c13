"""Importers for loading vehicle snapshots from external exports."""

from importers.vehicles_csv import load_vehicles

__all__ = ["load_vehicles"]
