"""Domain models and types for the dealer tax engine.

This package contains in-memory (Pydantic) models describing vehicles, tax
records and invoices, together with the protocols the workflow uses to reach
storage and rendering. They are independent from persistence models so that
business logic and testing can evolve without DB coupling.
"""

__all__ = [
    "gateways",
    "invoice",
    "tax",
    "vehicle",
]
