"""Golden fixture data per network.

Fixtures are JSON documents using the canonical camelCase field names:

    {
      "homestead": {
        "addresses": [{"address": "0x...", "balance": "0x..."}],
        "blocks": [...],
        "transactions": [...],
        "receipts": [...]
      }
    }

``FixtureStore.load`` accepts either one such file or a directory of
``<network>.json`` files holding a single ``NetworkFixtures`` each. Models
are frozen; the store exposes a read-only mapping.
"""

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Annotated, Any, Iterator, Mapping, Optional, Union

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

from core.encoding import normalize_address, normalize_hex, pad_hex32, to_quantity
from core.exceptions import FixtureError


logger = logging.getLogger(__name__)


Quantity = Annotated[int, BeforeValidator(to_quantity)]
HexData = Annotated[str, BeforeValidator(normalize_hex)]
Address = Annotated[str, BeforeValidator(normalize_address)]
Word = Annotated[str, BeforeValidator(pad_hex32)]


class FixtureModel(BaseModel):
    """Base for fixture models: frozen, camelCase on the wire."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )


class AddressFixture(FixtureModel):
    """Expected account state; unset fields are not tested."""

    address: Address
    balance: Optional[Quantity] = None
    code: Optional[HexData] = None
    name: Optional[str] = None
    storage: Optional[dict[str, HexData]] = None

    @field_validator("storage")
    @classmethod
    def freeze_storage(cls, v: Optional[dict[str, str]]) -> Optional[Mapping[str, str]]:
        """Keep slot order but make the mapping read-only."""
        return MappingProxyType(dict(v)) if v is not None else None


class SignatureFixture(FixtureModel):
    """Expected signature; ``v`` is the chain-aware wire value."""

    r: Word
    s: Word
    v: Quantity


class TxFixture(FixtureModel):
    """Expected transaction."""

    hash: HexData
    block_hash: HexData
    block_number: Quantity
    type: Quantity = 0
    index: Quantity
    from_address: Address = Field(alias="from")
    to: Optional[Address] = None
    gas_limit: Quantity
    gas_price: Optional[Quantity] = None
    max_fee_per_gas: Optional[Quantity] = None
    max_priority_fee_per_gas: Optional[Quantity] = None
    value: Quantity
    nonce: Quantity
    data: HexData
    creates: Optional[Address] = None
    signature: SignatureFixture


class BlockFixture(FixtureModel):
    """Expected block; ``transactions`` holds hashes or embedded transactions."""

    hash: HexData
    parent_hash: HexData
    number: Quantity
    timestamp: Quantity
    nonce: HexData
    difficulty: Quantity
    gas_limit: Quantity
    gas_used: Quantity
    miner: Address
    extra_data: HexData
    base_fee_per_gas: Optional[Quantity] = None
    transactions: tuple[Union[HexData, TxFixture], ...] = ()


class LogFixture(FixtureModel):
    """Expected event log."""

    address: Address
    block_hash: HexData
    block_number: Quantity
    data: HexData
    index: Quantity
    topics: tuple[HexData, ...] = ()
    transaction_hash: HexData
    transaction_index: Quantity


class ReceiptFixture(FixtureModel):
    """Expected receipt; ``status``/``root`` are only checked if the live result has them."""

    hash: HexData
    index: Quantity
    to: Optional[Address] = None
    from_address: Address = Field(alias="from")
    contract_address: Optional[Address] = None
    block_hash: HexData
    block_number: Quantity
    logs_bloom: HexData
    logs: tuple[LogFixture, ...] = ()
    gas_used: Quantity
    cumulative_gas_used: Quantity
    gas_price: Optional[Quantity] = None
    status: Optional[Quantity] = None
    root: Optional[HexData] = None


class NetworkFixtures(FixtureModel):
    """All golden data for one network, in declaration order."""

    addresses: tuple[AddressFixture, ...] = ()
    blocks: tuple[BlockFixture, ...] = ()
    transactions: tuple[TxFixture, ...] = ()
    receipts: tuple[ReceiptFixture, ...] = ()


class FixtureStore:
    """Immutable mapping of network name to NetworkFixtures."""

    def __init__(self, networks: Mapping[str, NetworkFixtures]):
        self._networks = MappingProxyType(dict(networks))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], source: str = "<memory>") -> "FixtureStore":
        """Build a store from decoded JSON data.

        Raises:
            FixtureError: If the data does not describe valid fixtures.
        """
        if not isinstance(data, Mapping):
            raise FixtureError(source, "top level must be an object keyed by network")

        networks = {}
        for network, fixtures in data.items():
            try:
                networks[network.lower()] = NetworkFixtures.model_validate(fixtures)
            except ValidationError as e:
                raise FixtureError(source, f"network '{network}': {e}") from e
        return cls(networks)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "FixtureStore":
        """Load fixtures from a JSON file or a directory of <network>.json files.

        Raises:
            FixtureError: If the path is missing or holds invalid fixtures.
        """
        path = Path(path)
        if not path.exists():
            raise FixtureError(str(path), "path does not exist")

        if path.is_dir():
            data = {}
            for file in sorted(path.glob("*.json")):
                data[file.stem] = cls._read_json(file)
            if not data:
                raise FixtureError(str(path), "no *.json fixture files found")
        else:
            data = cls._read_json(path)

        store = cls.from_dict(data, source=str(path))
        logger.info(
            f"Loaded fixtures for {len(store)} network(s) from {path}",
            extra={"networks": store.networks}
        )
        return store

    @staticmethod
    def _read_json(path: Path) -> Any:
        try:
            with open(path, "r") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise FixtureError(str(path), f"invalid JSON: {e.msg} at line {e.lineno}") from e

    @property
    def networks(self) -> list[str]:
        return list(self._networks)

    def get(self, network: str) -> Optional[NetworkFixtures]:
        return self._networks.get(network)

    def __getitem__(self, network: str) -> NetworkFixtures:
        return self._networks[network]

    def __contains__(self, network: object) -> bool:
        return network in self._networks

    def __iter__(self) -> Iterator[str]:
        return iter(self._networks)

    def __len__(self) -> int:
        return len(self._networks)
