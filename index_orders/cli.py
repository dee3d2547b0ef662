"""
index-orders-monitor: check conditional orders against the oracle from a shell.

    index-orders-monitor check 0xHASH                      # condition decoded from the orderbook
    index-orders-monitor check 0xHASH --index 2 --operator gt --threshold 10000000
    index-orders-monitor watch 0xHASH1 0xHASH2 --interval 30
    index-orders-monitor conditions
"""
import argparse
import asyncio
import json
import logging
import sys

from .config import get_settings
from .domain.indices import format_index_value, list_predefined
from .domain.models import IndexCondition
from .main import build_monitor
from .services.order_monitor import OrderMonitor


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, default=str))


async def _track_all(monitor: OrderMonitor, hashes, condition=None) -> None:
    for h in hashes:
        await monitor.track(h, condition=condition)


async def cmd_check(monitor: OrderMonitor, args) -> int:
    condition = None
    if args.index is not None:
        if args.operator is None or args.threshold is None:
            raise SystemExit("--index needs --operator and --threshold")
        condition = IndexCondition(index_id=args.index, operator=args.operator, threshold=args.threshold)
    await _track_all(monitor, [args.order_hash], condition)
    res = await monitor.check(args.order_hash)
    _print(res)
    return 0 if res["executable"] else 1


async def cmd_watch(monitor: OrderMonitor, args) -> int:
    await _track_all(monitor, args.order_hashes)
    while True:
        summary = await monitor.check_all()
        for r in summary["results"]:
            state = "EXECUTABLE" if r.get("executable") else "pending"
            detail = r.get("error") or f"{r.get('currentFormatted')} vs {r.get('thresholdFormatted')}"
            print(f"{r['orderHash'][:12]}… {state:<10} {detail}")
        print(f"-- {summary['executable']}/{summary['total']} executable")
        if args.once:
            return 0
        await asyncio.sleep(args.interval)


async def cmd_conditions(monitor: OrderMonitor, args) -> int:
    rows = []
    for info in list_predefined():
        cond = IndexCondition(index_id=info.id, operator="gt", threshold=0)
        try:
            res = await monitor.evaluate(cond)
            rows.append({"id": info.id, "name": info.name, "value": res["current"],
                         "formatted": format_index_value(info.id, res["current"]),
                         "lastUpdated": res["lastUpdated"]})
        except Exception as exc:
            rows.append({"id": info.id, "name": info.name, "error": str(exc)})
    _print(rows)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="index-orders-monitor", description="Check conditional limit orders.")
    sub = parser.add_subparsers(dest="command", required=True)

    p_check = sub.add_parser("check", help="Check one order once (exit 0 when executable).")
    p_check.add_argument("order_hash")
    p_check.add_argument("--index", type=int, help="Index id (skip the orderbook lookup)")
    p_check.add_argument("--operator", choices=["gt", "lt", "eq", "gte", "lte", "neq"])
    p_check.add_argument("--threshold", type=int, help="Threshold in oracle units (basis points)")

    p_watch = sub.add_parser("watch", help="Poll orders until interrupted.")
    p_watch.add_argument("order_hashes", nargs="+")
    p_watch.add_argument("--interval", type=float, default=None, help="Seconds between passes")
    p_watch.add_argument("--once", action="store_true", help="Single pass, then exit")

    sub.add_parser("conditions", help="Current value of every predefined index.")
    return parser


COMMANDS = {"check": cmd_check, "watch": cmd_watch, "conditions": cmd_conditions}


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    s = get_settings()
    logging.basicConfig(level=s.LOG_LEVEL, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    if getattr(args, "interval", None) is None and args.command == "watch":
        args.interval = s.MONITOR_INTERVAL_SEC

    monitor = build_monitor(s)
    try:
        return asyncio.run(COMMANDS[args.command](monitor, args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
