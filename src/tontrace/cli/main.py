from __future__ import annotations

import argparse
import datetime as dt
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from tontrace.config import settings
from tontrace.core.context import LookupContext
from tontrace.core.errors import TracerError
from tontrace.core.models import Trace, TraceID
from tontrace.io.output_writer import write_summary_md, write_trace_json
from tontrace.io.schemas import trace_from_dict
from tontrace.ports.information_source_port import InformationSource
from tontrace.services.enrichment_service import EnrichmentService
from tontrace.services.trace_service import copy_trace_data

from tontrace.adapters.static.static_information_adapter import StaticInformationAdapter
from tontrace.adapters.tonapi.tonapi_information_adapter import TonapiInformationAdapter


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="tontrace", description="Enrich TON transaction traces")
    p.add_argument("--trace", required=True, help="Trace JSON to enrich")
    p.add_argument("--previous", help="Previously enriched trace JSON to reuse data from")
    p.add_argument("--static-source", help="Answer lookups from this JSON file instead of TonAPI")
    p.add_argument("--no-enrich", action="store_true", help="Skip lookups, only merge and summarize")
    p.add_argument("--timeout", type=float, default=None, help="Give up on lookups after this many seconds")
    p.add_argument("--max-length", type=int, default=settings.MAX_TRACE_LENGTH, help="Reject traces with more transactions")
    p.add_argument("--out", default="out", help="Output folder")
    return p


def _ts() -> str:
    return dt.datetime.now().strftime("%H:%M:%S")


def load_trace(path: str, max_length: Optional[int]) -> Trace:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return trace_from_dict(data, max_length=max_length)


def main(argv: Optional[list] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.WARNING))

    try:
        trace = load_trace(args.trace, args.max_length)
        previous = load_trace(args.previous, args.max_length) if args.previous else None
    except (OSError, json.JSONDecodeError) as exc:
        print(f"[{_ts()}] Error: cannot read trace: {exc}", file=sys.stderr)
        return 2
    except TracerError as exc:
        print(f"[{_ts()}] Error: {exc.__class__.__name__}: {exc}", file=sys.stderr)
        return 2

    trace_id = TraceID.from_trace(trace)
    print(f"[{_ts()}] Trace {trace_id.hash} • {trace_id.length} tx • {trace_id.unique_accounts_count} account(s)")

    if previous is not None:
        copy_trace_data(previous, trace)
        print(f"[{_ts()}] Reused data from {args.previous}")

    info_source: Optional[InformationSource] = None
    if not args.no_enrich:
        if args.static_source:
            info_source = StaticInformationAdapter.from_json_file(args.static_source)
            print("Source: StaticInformationAdapter")
        else:
            info_source = TonapiInformationAdapter()
            print("Source: TonapiInformationAdapter")

    try:
        EnrichmentService(info_source).collect_additional_info(trace, LookupContext(timeout_sec=args.timeout))
    except TracerError as exc:
        print(f"[{_ts()}] Error: {exc.__class__.__name__}: {exc}", file=sys.stderr)
        return 1

    state = "in progress" if trace.in_progress() else "complete"
    print(f"[{_ts()}] Trace is {state} • progress {trace.calculate_progress() * 100:.1f}%")

    print("Writing outputs...")
    trace_path = write_trace_json(trace, args.out)
    summary_path = write_summary_md(trace, args.out)
    print(f"Wrote: {trace_path}")
    print(f"Wrote: {summary_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
