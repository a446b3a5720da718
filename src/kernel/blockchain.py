import asyncio
import hashlib
import json
import logging
from datetime import datetime, timezone

from .events import GENESIS_MESSAGE, GenesisEvent, payload_of

log = logging.getLogger(__name__)

GENESIS_PREVIOUS_HASH = "0"
DEFAULT_ALGORITHM = "sha256"


class LedgerError(Exception):
    pass


class LedgerNotInitialized(LedgerError):
    def __init__(self, operation: str):
        super().__init__(f"ledger must be initialized before {operation}()")
        self.operation = operation


class HashingFailure(LedgerError):
    pass


def utc_timestamp() -> str:
    """ISO-8601 UTC instant with millisecond precision, e.g. 2024-05-01T10:00:00.123Z"""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def canonical_json(obj) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def new_digest(algorithm: str = DEFAULT_ALGORITHM):
    try:
        digest = hashlib.new(algorithm)
    except (TypeError, ValueError) as exc:
        raise HashingFailure(f"hash algorithm {algorithm!r} is unavailable") from exc
    if digest.digest_size != 32:
        raise HashingFailure(f"hash algorithm {algorithm!r} does not produce a 256-bit digest")
    return digest


def content_hash(timestamp: str, payload, previous_hash: str, algorithm: str = DEFAULT_ALGORITHM) -> str:
    """
    Fingerprint of a block: digest over timestamp + canonical payload + previous hash.
    Used both when a block is created and when the chain is verified.
    """
    data = (timestamp + canonical_json(payload) + previous_hash).encode("utf-8")
    digest = new_digest(algorithm)
    digest.update(data)
    return digest.hexdigest()


class Block:
    def __init__(self, timestamp, payload, previous_hash, hash_):
        if not hash_:
            raise ValueError("block hash must be computed before construction")
        self.timestamp = timestamp
        self.payload = payload
        self.previous_hash = previous_hash
        self.hash = hash_

    @classmethod
    async def create(cls, payload, previous_hash, algorithm=DEFAULT_ALGORITHM, timestamp=None):
        ts = timestamp or utc_timestamp()
        data = payload_of(payload)
        hash_ = await asyncio.to_thread(content_hash, ts, data, previous_hash, algorithm)
        return cls(ts, data, previous_hash, hash_)

    def compute_hash(self, algorithm=DEFAULT_ALGORITHM) -> str:
        return content_hash(self.timestamp, self.payload, self.previous_hash, algorithm)

    async def calculate_hash(self, algorithm=DEFAULT_ALGORITHM) -> str:
        return await asyncio.to_thread(self.compute_hash, algorithm)

    def to_dict(self):
        return {
            "timestamp": self.timestamp,
            "payload": self.payload,
            "previous_hash": self.previous_hash,
            "hash": self.hash,
        }

    def __repr__(self):
        return f"Block(hash={self.hash[:12]}, previous_hash={self.previous_hash[:12]})"


class Ledger:
    """
    Append-only hash-linked chain of blocks.
    - init: creates the genesis block (previous_hash "0")
    - append: links a new block after the current tail
    - is_chain_valid: recomputes every hash and checks every link
    All mutating and verifying calls share one lock, so "read tail, hash, push"
    is a single step even with several callers on the loop.
    """
    def __init__(self, algorithm=DEFAULT_ALGORITHM, genesis_message=GENESIS_MESSAGE):
        new_digest(algorithm)
        self.algorithm = algorithm
        self.genesis_message = genesis_message
        self._blocks = []
        self._lock = asyncio.Lock()

    @property
    def chain(self):
        return tuple(self._blocks)

    @property
    def initialized(self) -> bool:
        return bool(self._blocks)

    async def init(self) -> Block:
        async with self._lock:
            if self.initialized:
                raise LedgerError("ledger is already initialized")
            genesis = await Block.create(
                GenesisEvent(self.genesis_message), GENESIS_PREVIOUS_HASH, self.algorithm
            )
            self._blocks = [genesis]
        log.info("ledger initialized, genesis %s", genesis.hash)
        return genesis

    def get_latest_block(self) -> Block:
        if not self.initialized:
            raise LedgerNotInitialized("get_latest_block")
        return self._blocks[-1]

    async def append(self, payload) -> Block:
        async with self._lock:
            if not self.initialized:
                raise LedgerNotInitialized("append")
            tail = self._blocks[-1]
            block = await Block.create(payload, tail.hash, self.algorithm)
            self._blocks.append(block)
            height = len(self._blocks)
        log.debug("appended block #%d %s", height - 1, block.hash)
        return block

    async def is_chain_valid(self) -> bool:
        async with self._lock:
            if not self.initialized:
                raise LedgerNotInitialized("is_chain_valid")
            for i in range(1, len(self._blocks)):
                current = self._blocks[i]
                previous = self._blocks[i - 1]

                if current.hash != await current.calculate_hash(self.algorithm):
                    log.warning("block #%d content does not match its hash", i)
                    return False

                if current.previous_hash != previous.hash:
                    log.warning("block #%d is not linked to block #%d", i, i - 1)
                    return False
        return True

    def info(self):
        tip = self._blocks[-1] if self.initialized else None
        return {
            "height": len(self._blocks),
            "tip": tip.hash if tip else None,
            "last_block_time": tip.timestamp if tip else None,
        }
