"""Application layer module.

Contains application services (use cases) that orchestrate
domain logic and infrastructure.
"""

from wellnesstree.application.ledger_service import (
    CreditLedger,
    InMemoryCreditStore,
    get_credit_ledger,
    get_credit_store,
    set_credit_store,
)
from wellnesstree.application.shipment_service import (
    ShipmentRepository,
    ShipmentService,
    get_shipment_repository,
    get_shipment_service,
    reset_shipment_repository,
)

__all__ = [
    "CreditLedger",
    "InMemoryCreditStore",
    "get_credit_ledger",
    "get_credit_store",
    "set_credit_store",
    "ShipmentRepository",
    "ShipmentService",
    "get_shipment_repository",
    "get_shipment_service",
    "reset_shipment_repository",
]
