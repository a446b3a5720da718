import asyncio
import logging
from dataclasses import asdict, dataclass, field

from .blockchain import utc_timestamp
from .events import ProductCreated, ProductProcessed

log = logging.getLogger(__name__)

STAGES = ("manufacturer", "distributor", "retailer", "customer")
STAGE_NAMES = {
    "manufacturer": "Manufacturer",
    "distributor": "Distributor",
    "retailer": "Retailer",
    "customer": "Customer",
}


class SupplyChainError(Exception):
    pass


class ValidationError(SupplyChainError):
    pass


class ProductNotFound(SupplyChainError):
    def __init__(self, product_id):
        super().__init__(f"product {product_id} not found")
        self.product_id = product_id


class StageTransitionError(SupplyChainError):
    pass


@dataclass
class HistoryEntry:
    stage: str
    entity: str
    timestamp: str
    successful: bool


@dataclass
class Product:
    id: int
    name: str
    type: str
    current_stage: str = STAGES[0]
    history: list = field(default_factory=list)

    @property
    def finished(self) -> bool:
        return self.current_stage == STAGES[-1]

    def to_dict(self):
        data = asdict(self)
        data["stage_name"] = STAGE_NAMES[self.current_stage]
        return data


def _text(value, field_name) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")
    return value.strip()


class SupplyChain:
    """
    Product registry on top of a ledger.
    Products move forward one stage at a time; every creation and every
    transition is appended to the ledger before local state changes.
    """
    def __init__(self, ledger):
        self.ledger = ledger
        self._products = {}
        self._next_id = 1
        self._lock = asyncio.Lock()

    def get(self, product_id) -> Product:
        try:
            return self._products[int(product_id)]
        except (KeyError, TypeError, ValueError):
            raise ProductNotFound(product_id) from None

    def products(self):
        return list(self._products.values())

    def active_products(self):
        return [p for p in self._products.values() if not p.finished]

    async def create_product(self, name: str, manufacturer: str, product_type: str = "") -> Product:
        name = _text(name, "product name")
        manufacturer = _text(manufacturer, "manufacturer")
        product_type = _text(product_type, "product type")
        if not name or not manufacturer:
            raise ValidationError("product name and manufacturer are required")

        # id allocation, append and registry update form one step
        async with self._lock:
            product_id = self._next_id
            await self.ledger.append(ProductCreated(product_id, name, manufacturer, product_type))
            self._next_id += 1

            product = Product(id=product_id, name=name, type=product_type)
            product.history.append(HistoryEntry(STAGES[0], manufacturer, utc_timestamp(), True))
            self._products[product_id] = product
        log.info("product %d (%s) created by %s", product_id, name, manufacturer)
        return product

    async def process_product(self, product_id, stage: str, entity: str, successful: bool = True) -> Product:
        entity = _text(entity, "entity name")
        if not entity:
            raise ValidationError("entity name is required")
        if not isinstance(stage, str) or stage not in STAGES:
            raise ValidationError(f"unknown stage {stage!r}")

        # the stage check must see the state left by any earlier transition
        async with self._lock:
            product = self.get(product_id)
            current = STAGES.index(product.current_stage)
            target = STAGES.index(stage)
            if target <= current:
                raise StageTransitionError("product cannot move backwards in the supply chain")
            if target != current + 1:
                raise StageTransitionError("product can only advance one step in the supply chain")

            await self.ledger.append(ProductProcessed(product.id, stage, entity, bool(successful)))

            product.current_stage = stage
            product.history.append(HistoryEntry(stage, entity, utc_timestamp(), bool(successful)))
        log.info(
            "product %d processed at %s by %s (%s)",
            product.id, stage, entity, "ok" if successful else "failed",
        )
        return product
