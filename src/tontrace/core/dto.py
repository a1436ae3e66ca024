from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import ClassVar, List, Optional

from tontrace.core.enums import CurrencyType, STONfiVersion
from tontrace.core.errors import AccountIDParseError, TraceDecodeError

_RAW_ACCOUNT = re.compile(r"^(-?\d+):([0-9a-fA-F]{64})$")
_HEX_256 = re.compile(r"^[0-9a-fA-F]{64}$")


@dataclass(frozen=True)
class AccountID:
    workchain: int
    address: bytes          # 32 raw bytes

    @classmethod
    def parse(cls, raw: str) -> "AccountID":
        """
        Parse the raw `<workchain>:<hex>` form, e.g. `0:83df...`.
        """
        if not isinstance(raw, str):
            raise AccountIDParseError(f"account id must be a string, got {type(raw).__name__}")
        m = _RAW_ACCOUNT.fullmatch(raw.strip())
        if m is None:
            raise AccountIDParseError(f"invalid account id: {raw!r}")
        return cls(workchain=int(m.group(1)), address=bytes.fromhex(m.group(2)))

    def __str__(self) -> str:
        return f"{self.workchain}:{self.address.hex()}"


@dataclass(frozen=True)
class Bits256:
    value: bytes = bytes(32)

    ZERO: ClassVar["Bits256"]

    @classmethod
    def parse(cls, raw: str) -> "Bits256":
        if not isinstance(raw, str) or _HEX_256.fullmatch(raw) is None:
            raise TraceDecodeError(f"invalid 256-bit hash: {raw!r}")
        return cls(bytes.fromhex(raw))

    def is_zero(self) -> bool:
        return not any(self.value)

    def hex(self) -> str:
        return self.value.hex()

    def __str__(self) -> str:
        return self.hex()


Bits256.ZERO = Bits256()


@dataclass(frozen=True)
class Message:
    # None once the hop has been expanded into a child trace
    destination: Optional[AccountID]
    value: int = 0              # nanotons
    op_code: Optional[int] = None


@dataclass(frozen=True)
class Transaction:
    """
    Transaction reduced to what a trace needs.
    out_msgs keeps external outbound messages and internal ones not yet resolved.
    """

    hash: Bits256
    lt: int
    utime: int
    account: AccountID
    success: bool = True
    emulated: bool = False
    out_msgs: List[Message] = field(default_factory=list)


@dataclass(frozen=True)
class Currency:
    type: CurrencyType
    jetton: Optional[AccountID] = None
    currency_id: Optional[int] = None


@dataclass(frozen=True)
class NftSaleContract:
    """
    Partial results of the `get_sale_data` method.
    """

    nft_price: int
    # Owner of an NFT according to a getgems/basic sale contract.
    owner: Optional[AccountID]
    item: AccountID


@dataclass(frozen=True)
class STONfiPool:
    token0: AccountID
    token1: AccountID


@dataclass(frozen=True)
class STONfiPoolID:
    id: AccountID
    version: STONfiVersion


@dataclass(frozen=True)
class DedustPool:
    asset0: Currency
    asset1: Currency


@dataclass(frozen=True)
class EmulatedTeleitemNFT:
    index: Decimal
    collection_address: Optional[AccountID]
    verified: bool
