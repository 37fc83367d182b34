from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from .config import DEFAULT_TRACES_DIR, SWEEP_SKETCH_SAMPLES_PER_SLOT, ReplacementPolicy, SimulationConfig
from .errors import TraceSimError
from .metrics import MetricsCollector, ReportConfig
from .simulator import Simulator
from .sweep import default_cache_sizes, sweep
from .throughput import TARGET_TICKS, aggregate_throughput
from .trace_store import TraceStore

logger = logging.getLogger(__name__)

EPILOG = """Examples:
  python main.py list
  python main.py add mytrace dumps/*.bin
  python main.py simulate mytrace --policy S4LRU --capacity 65536 --write-through
  python main.py simulate mytrace --policy ClockPro --policy TinyLFU --capacity 8192
  python main.py sweep mytrace --json
  python main.py plot mytrace --target-ticks 100"""


def _cmd_list(store: TraceStore, args: argparse.Namespace) -> int:
    traces = store.list_traces()
    if args.json:
        print(json.dumps({"traces": traces}))
    elif not traces:
        print(f"No traces in {store.root}")
    else:
        for name in traces:
            print(name)
    return 0


def _cmd_add(store: TraceStore, args: argparse.Namespace) -> int:
    metadata = store.add_trace(args.trace, args.files)
    print(f"[OK] wrote {metadata.name} ({metadata.num_events} events, {metadata.duration_secs} s)")
    return 0


def _cmd_plot(store: TraceStore, args: argparse.Namespace) -> int:
    metadata, reader = store.load(args.trace)
    with reader:
        series = aggregate_throughput(metadata, reader, target_ticks=args.target_ticks)
    if args.json:
        print(json.dumps(series.to_json()))
    else:
        print(MetricsCollector(ReportConfig(trace=metadata)).build_throughput_report(series))
    return 0


def _build_configs(args: argparse.Namespace) -> List[SimulationConfig]:
    configs = []
    for name in args.policy or [ReplacementPolicy.SEGMENTED_LRU.value]:
        policy = ReplacementPolicy.parse(name)
        samples = 0
        if policy is ReplacementPolicy.FREQUENCY_SKETCH_LRU:
            samples = args.samples or SWEEP_SKETCH_SAMPLES_PER_SLOT * args.capacity
        elif args.samples:
            samples = args.samples
        configs.append(
            SimulationConfig(
                policy=policy,
                cache_capacity=args.capacity,
                block_size=args.block_size,
                frequency_sketch_samples=samples,
                write_through=args.write_through,
                restrict_to_cold_levels=args.cold_levels,
                user_facing_reads_only=args.user_facing,
            )
        )
    return configs


def _cmd_simulate(store: TraceStore, args: argparse.Namespace) -> int:
    configs = _build_configs(args)
    metadata = store.load_metadata(args.trace)
    simulator = Simulator()
    runs = []
    for config in configs:
        print(f"Running {config.policy} simulation...", file=sys.stderr)
        runs.append((config, simulator.run_trace(store, args.trace, config)))

    if args.json:
        payload = [
            {"policy": str(config.policy), "config": str(config), "hits": r.hits, "misses": r.misses, "hit_rate": r.hit_rate}
            for config, r in runs
        ]
        print(json.dumps(payload))
    else:
        print(MetricsCollector(ReportConfig(trace=metadata)).build_report(runs))
    return 0


def _cmd_sweep(store: TraceStore, args: argparse.Namespace) -> int:
    metadata = store.load_metadata(args.trace)
    sizes = args.cache_size or default_cache_sizes()
    result = sweep(store, args.trace, Simulator(), cache_sizes=sizes, block_size=args.block_size)
    if args.json:
        print(json.dumps(result.to_json()))
    else:
        print(MetricsCollector(ReportConfig(trace=metadata)).build_sweep_report(result))
    return 0


def parse_arguments(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="tracesim - replay storage I/O traces against simulated block caches",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--traces-dir", default=DEFAULT_TRACES_DIR, help="directory holding <name>.json/<name>.gz pairs")
    parser.add_argument(
        "--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="logging verbosity"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_list = sub.add_parser("list", help="list available traces")
    p_list.add_argument("--json", action="store_true")
    p_list.set_defaults(handler=_cmd_list)

    p_add = sub.add_parser("add", help="create a trace from raw record dumps")
    p_add.add_argument("trace")
    p_add.add_argument("files", nargs="+")
    p_add.set_defaults(handler=_cmd_add)

    p_plot = sub.add_parser("plot", help="time-bucketed read/write/cache-hit throughput")
    p_plot.add_argument("trace")
    p_plot.add_argument("--target-ticks", type=int, default=TARGET_TICKS)
    p_plot.add_argument("--json", action="store_true")
    p_plot.set_defaults(handler=_cmd_plot)

    p_sim = sub.add_parser("simulate", help="replay a trace against one or more policies")
    p_sim.add_argument("trace")
    p_sim.add_argument(
        "--policy",
        action="append",
        help=f"replacement policy, repeatable ({', '.join(p.value for p in ReplacementPolicy)})",
    )
    p_sim.add_argument("--capacity", type=int, required=True, help="cache size in key slots")
    p_sim.add_argument("--block-size", type=int, default=0, help="bucket offsets by this many bytes (0: raw offsets)")
    p_sim.add_argument("--samples", type=int, default=0, help="TinyLFU sample window (default 10x capacity)")
    p_sim.add_argument("--write-through", action="store_true")
    p_sim.add_argument("--cold-levels", action="store_true", help="only count L5/L6 events")
    p_sim.add_argument("--user-facing", action="store_true", help="only count reads with an unknown reason")
    p_sim.add_argument("--json", action="store_true")
    p_sim.set_defaults(handler=_cmd_simulate)

    p_sweep = sub.add_parser("sweep", help="hit rates across policies, option sets and cache sizes")
    p_sweep.add_argument("trace")
    p_sweep.add_argument("--cache-size", type=int, action="append", help="override the cache size grid, repeatable")
    p_sweep.add_argument("--block-size", type=int, default=0)
    p_sweep.add_argument("--json", action="store_true")
    p_sweep.set_defaults(handler=_cmd_sweep)

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_arguments(argv)
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    store = TraceStore(args.traces_dir)
    try:
        return args.handler(store, args)
    except TraceSimError as exc:
        logger.debug("command %s failed", args.command, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
