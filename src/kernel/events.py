"""
Business events recorded on the ledger.

Each event knows its own payload shape; the ledger only ever sees the
plain mapping returned by to_payload().
"""

import copy
from collections.abc import Mapping
from dataclasses import dataclass

GENESIS_MESSAGE = "Genesis block - start of the supply chain"


@dataclass(frozen=True)
class GenesisEvent:
    message: str = GENESIS_MESSAGE

    def to_payload(self) -> dict:
        return {"type": "genesis", "message": self.message}


@dataclass(frozen=True)
class ProductCreated:
    product_id: int
    product_name: str
    manufacturer: str
    product_type: str

    def to_payload(self) -> dict:
        return {
            "type": "product_created",
            "productId": self.product_id,
            "productName": self.product_name,
            "manufacturer": self.manufacturer,
            "productType": self.product_type,
        }


@dataclass(frozen=True)
class ProductProcessed:
    product_id: int
    stage: str
    entity: str
    successful: bool

    def to_payload(self) -> dict:
        return {
            "type": "product_processed",
            "productId": self.product_id,
            "stage": self.stage,
            "entity": self.entity,
            "successful": self.successful,
        }


def payload_of(value) -> dict:
    # copied so later edits by the caller cannot reach into a hashed block
    if hasattr(value, "to_payload"):
        return value.to_payload()
    if isinstance(value, Mapping):
        return copy.deepcopy(dict(value))
    raise TypeError(f"ledger payload must be a mapping or an event, got {type(value).__name__}")
