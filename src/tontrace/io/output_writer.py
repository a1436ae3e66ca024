from __future__ import annotations

import json
from pathlib import Path
from typing import List

from tontrace.core.models import Trace, TraceID, visit
from tontrace.io.schemas import trace_to_dict
from tontrace.services.trace_service import distinct_accounts


def write_trace_json(trace: Trace, out_dir: str, filename: str = "trace.json") -> str:
    p = Path(out_dir)
    p.mkdir(parents=True, exist_ok=True)

    out_path = p / filename
    with out_path.open("w", encoding="utf-8") as f:
        json.dump(trace_to_dict(trace), f, indent=2)

    return str(out_path)


def write_summary_md(trace: Trace, out_dir: str, filename: str = "summary.md") -> str:
    """
    Short, human readable overview of a trace and its additional info.
    """
    p = Path(out_dir)
    p.mkdir(parents=True, exist_ok=True)

    out_path = p / filename
    trace_id = TraceID.from_trace(trace)
    accounts = distinct_accounts(trace)

    def short(addr: str) -> str:
        return addr if len(addr) <= 18 else f"{addr[:10]}...{addr[-6:]}"

    rows: List[str] = []

    def _row(t: Trace) -> None:
        info = t.additional_info()
        notes: List[str] = []
        if info is not None:
            for wallet, master in info.jetton_masters.items():
                notes.append(f"jetton {short(str(wallet))} -> {short(str(master))}")
            if info.nft_sale_contract is not None:
                notes.append(f"sale of {short(str(info.nft_sale_contract.item))} for {info.nft_sale_contract.nft_price}")
            if info.stonfi_pool is not None:
                notes.append("stonfi pool")
            if info.dedust_pool is not None:
                notes.append("dedust pool")
            if info.emulated_teleitem_nft is not None:
                notes.append(f"emulated teleitem #{info.emulated_teleitem_nft.index}")
        status = "emulated" if t.emulated else "confirmed"
        rows.append(
            f"| `{short(t.hash.hex())}` | `{short(str(t.account))}` | {status} | {'; '.join(notes) or '-'} |"
        )

    visit(trace, _row)

    lines = [
        "# Trace summary",
        "",
        f"- Root: `{trace_id.hash.hex()}` (lt {trace_id.lt}, utime {trace_id.utime})",
        f"- Transactions: {trace_id.length}",
        f"- Distinct accounts: {len(accounts)}",
        f"- In progress: {'yes' if trace.in_progress() else 'no'}",
        f"- Progress: {trace.calculate_progress() * 100:.1f}%",
        "",
        "| Hash | Account | Status | Additional info |",
        "|---|---|---|---|",
        *rows,
        "",
    ]
    out_path.write_text("\n".join(lines), encoding="utf-8")
    return str(out_path)
