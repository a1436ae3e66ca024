from __future__ import annotations

import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from tontrace.core.dto import (
    AccountID,
    Bits256,
    Currency,
    DedustPool,
    EmulatedTeleitemNFT,
    Message,
    NftSaleContract,
    STONfiPool,
    Transaction,
)
from tontrace.core.enums import ContractInterface, CurrencyType
from tontrace.core.errors import TraceDecodeError, TraceTooLongError
from tontrace.core.models import Trace, TraceAdditionalInfo

LOGGER = logging.getLogger(__name__)


def _dec_to_str(x: Decimal) -> str:
    # keep as string for JSON precision safety
    return format(x, "f")


def _account_or_none(raw: Any) -> Optional[AccountID]:
    if raw is None:
        return None
    return AccountID.parse(raw)


def _require(data: Dict[str, Any], key: str, where: str) -> Any:
    if not isinstance(data, dict):
        raise TraceDecodeError(f"{where}: expected an object, got {type(data).__name__}")
    if key not in data:
        raise TraceDecodeError(f"{where}: missing field {key!r}")
    return data[key]


# -------------------------
# Additional info
# -------------------------

def currency_to_dict(c: Currency) -> Dict[str, Any]:
    out: Dict[str, Any] = {"Type": c.type.value}
    if c.jetton is not None:
        out["Jetton"] = str(c.jetton)
    if c.currency_id is not None:
        out["CurrencyID"] = c.currency_id
    return out


def currency_from_dict(data: Dict[str, Any]) -> Currency:
    raw_type = _require(data, "Type", "Currency")
    try:
        ctype = CurrencyType(raw_type)
    except ValueError as e:
        raise TraceDecodeError(f"Currency: unknown type {raw_type!r}") from e
    return Currency(
        type=ctype,
        jetton=_account_or_none(data.get("Jetton")),
        currency_id=data.get("CurrencyID"),
    )


def additional_info_to_dict(info: TraceAdditionalInfo) -> Dict[str, Any]:
    """
    Encodes with the field names used by the trace cache. Absent fields, and an
    empty jetton master mapping, are left out.
    """
    out: Dict[str, Any] = {}
    if info.jetton_masters:
        out["JettonMasters"] = {str(k): str(v) for k, v in info.jetton_masters.items()}
    if info.nft_sale_contract is not None:
        sale = info.nft_sale_contract
        out["NftSaleContract"] = {
            "NftPrice": sale.nft_price,
            "Owner": str(sale.owner) if sale.owner is not None else None,
            "Item": str(sale.item),
        }
    if info.stonfi_pool is not None:
        out["STONfiPool"] = {
            "Token0": str(info.stonfi_pool.token0),
            "Token1": str(info.stonfi_pool.token1),
        }
    if info.emulated_teleitem_nft is not None:
        nft = info.emulated_teleitem_nft
        out["EmulatedTeleitemNFT"] = {
            "Index": _dec_to_str(nft.index),
            "CollectionAddress": str(nft.collection_address) if nft.collection_address is not None else None,
            "Verified": nft.verified,
        }
    if info.dedust_pool is not None:
        out["DedustPool"] = {
            "Asset0": currency_to_dict(info.dedust_pool.asset0),
            "Asset1": currency_to_dict(info.dedust_pool.asset1),
        }
    return out


def additional_info_from_dict(data: Dict[str, Any]) -> TraceAdditionalInfo:
    """
    Reverse of additional_info_to_dict.
    Raises AccountIDParseError on a malformed account and TraceDecodeError on any other malformed field.
    """
    if not isinstance(data, dict):
        raise TraceDecodeError(f"TraceAdditionalInfo: expected an object, got {type(data).__name__}")

    info = TraceAdditionalInfo()

    masters = data.get("JettonMasters")
    if masters is not None:
        if not isinstance(masters, dict):
            raise TraceDecodeError("JettonMasters: expected an object")
        for wallet, master in masters.items():
            info.set_jetton_master(AccountID.parse(wallet), AccountID.parse(master))

    sale = data.get("NftSaleContract")
    if sale is not None:
        try:
            price = int(_require(sale, "NftPrice", "NftSaleContract"))
        except (TypeError, ValueError) as e:
            raise TraceDecodeError(f"NftSaleContract: invalid price {sale.get('NftPrice')!r}") from e
        info.nft_sale_contract = NftSaleContract(
            nft_price=price,
            owner=_account_or_none(sale.get("Owner")),
            item=AccountID.parse(_require(sale, "Item", "NftSaleContract")),
        )

    pool = data.get("STONfiPool")
    if pool is not None:
        info.stonfi_pool = STONfiPool(
            token0=AccountID.parse(_require(pool, "Token0", "STONfiPool")),
            token1=AccountID.parse(_require(pool, "Token1", "STONfiPool")),
        )

    nft = data.get("EmulatedTeleitemNFT")
    if nft is not None:
        try:
            index = Decimal(str(_require(nft, "Index", "EmulatedTeleitemNFT")))
        except InvalidOperation as e:
            raise TraceDecodeError(f"EmulatedTeleitemNFT: invalid index {nft.get('Index')!r}") from e
        info.emulated_teleitem_nft = EmulatedTeleitemNFT(
            index=index,
            collection_address=_account_or_none(nft.get("CollectionAddress")),
            verified=bool(nft.get("Verified", False)),
        )

    dedust = data.get("DedustPool")
    if dedust is not None:
        info.dedust_pool = DedustPool(
            asset0=currency_from_dict(_require(dedust, "Asset0", "DedustPool")),
            asset1=currency_from_dict(_require(dedust, "Asset1", "DedustPool")),
        )

    return info


def dumps_additional_info(info: TraceAdditionalInfo) -> str:
    return json.dumps(additional_info_to_dict(info))


def loads_additional_info(raw: str) -> TraceAdditionalInfo:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise TraceDecodeError(f"invalid additional info JSON: {e}") from e
    return additional_info_from_dict(data)


# -------------------------
# Traces
# -------------------------

def transaction_to_dict(tx: Transaction) -> Dict[str, Any]:
    return {
        "hash": tx.hash.hex(),
        "lt": tx.lt,
        "utime": tx.utime,
        "account": str(tx.account),
        "success": tx.success,
        "emulated": tx.emulated,
        "out_msgs": [
            {
                "destination": str(m.destination) if m.destination is not None else None,
                "value": m.value,
                "op_code": m.op_code,
            }
            for m in tx.out_msgs
        ],
    }


def _message_from_dict(raw: Any) -> Message:
    if not isinstance(raw, dict):
        raise TraceDecodeError(f"Message: expected an object, got {type(raw).__name__}")
    op_code = raw.get("op_code")
    try:
        value = int(raw.get("value", 0))
        op_code = int(op_code) if op_code is not None else None
    except (TypeError, ValueError) as e:
        raise TraceDecodeError(f"Message: invalid value/op_code: {e}") from e
    return Message(
        destination=_account_or_none(raw.get("destination")),
        value=value,
        op_code=op_code,
    )


def transaction_from_dict(data: Dict[str, Any]) -> Transaction:
    if not isinstance(data, dict):
        raise TraceDecodeError(f"Transaction: expected an object, got {type(data).__name__}")
    raw_msgs = data.get("out_msgs") or []
    if not isinstance(raw_msgs, list):
        raise TraceDecodeError("Transaction: out_msgs must be a list")
    msgs: List[Message] = [_message_from_dict(raw) for raw in raw_msgs]
    try:
        lt = int(_require(data, "lt", "Transaction"))
        utime = int(data.get("utime", 0))
    except (TypeError, ValueError) as e:
        raise TraceDecodeError(f"Transaction: invalid lt/utime: {e}") from e
    return Transaction(
        hash=Bits256.parse(_require(data, "hash", "Transaction")),
        lt=lt,
        utime=utime,
        account=AccountID.parse(_require(data, "account", "Transaction")),
        success=bool(data.get("success", True)),
        emulated=bool(data.get("emulated", False)),
        out_msgs=msgs,
    )


def trace_to_dict(trace: Trace) -> Dict[str, Any]:
    def _node(t: Trace) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "transaction": transaction_to_dict(t.transaction),
            "interfaces": sorted(i.value for i in t.account_interfaces),
        }
        info = t.additional_info()
        if info is not None:
            out["additional_info"] = additional_info_to_dict(info)
        out["children"] = []
        return out

    root = _node(trace)
    stack = [(trace, root)]
    while stack:
        t, out = stack.pop()
        for child in t.children:
            child_out = _node(child)
            out["children"].append(child_out)
            stack.append((child, child_out))
    return root


def trace_from_dict(data: Dict[str, Any], max_length: Optional[int] = None) -> Trace:
    """
    Builds a Trace tree. Raises TraceTooLongError if it has more than `max_length` transactions.
    """
    seen = 0

    def _make(node: Any) -> Trace:
        nonlocal seen
        if not isinstance(node, dict):
            raise TraceDecodeError(f"Trace: expected an object, got {type(node).__name__}")
        seen += 1
        if max_length is not None and seen > max_length:
            raise TraceTooLongError()

        interfaces: List[ContractInterface] = []
        for name in node.get("interfaces") or []:
            try:
                interfaces.append(ContractInterface(name))
            except ValueError:
                LOGGER.warning("ignoring unknown contract interface %r", name)

        raw_info = node.get("additional_info")
        info = additional_info_from_dict(raw_info) if raw_info is not None else None

        return Trace(
            transaction=transaction_from_dict(_require(node, "transaction", "Trace")),
            account_interfaces=interfaces,
            additional_info=info,
        )

    root = _make(data)
    stack = [(data, root)]
    while stack:
        raw, node = stack.pop()
        raw_children = raw.get("children") or []
        if not isinstance(raw_children, list):
            raise TraceDecodeError("Trace: children must be a list")
        for raw_child in raw_children:
            child = _make(raw_child)
            node.children.append(child)
            stack.append((raw_child, child))
    return root
