from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from .config import SimulationConfig
from .simulator import SimulationResult
from .sweep import SweepResult
from .throughput import SERIES, ThroughputSeries
from .trace_store import TraceMetadata


@dataclass
class ReportConfig:
    trace: TraceMetadata


class MetricsCollector:
    """generate report for simulation results"""

    def __init__(self, config: ReportConfig):
        self.config = config

    def _header(self) -> List[str]:
        trace = self.config.trace
        return [
            "[Trace]",
            f"- Name: {trace.name}",
            f"- Start: {trace.start_time}",
            f"- Duration: {trace.duration_secs} s",
            f"- Events: {trace.num_events}",
            "",
        ]

    def _format_result(self, config: SimulationConfig, result: SimulationResult) -> str:
        lines = [
            f"[Policy: {config.policy}]",
            f"- Configuration: {config}",
            f"- Hits: {result.hits}",
            f"- Misses: {result.misses}",
            f"- Hit Rate: {result.hit_rate:.2%}",
            f"- Avg. Time per Request: {result.avg_overhead_ns:.2f} ns",
        ]
        return "\n".join(lines)

    def _build_table(self, headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
        if not rows:
            return "(No data)"
        widths = [
            max(len(str(headers[i])), *(len(str(row[i])) for row in rows)) for i in range(len(headers))
        ]

        def _format_row(row: Sequence[str]) -> str:
            return "| " + " | ".join(str(row[i]).ljust(widths[i]) for i in range(len(headers))) + " |"

        header_line = _format_row(headers)
        separator = "|-" + "-|-".join("-" * widths[i] for i in range(len(headers))) + "-|"
        body_lines = [_format_row(row) for row in rows]
        return "\n".join([header_line, separator, *body_lines])

    def _build_ranking(self, runs: List[Tuple[SimulationConfig, SimulationResult]]) -> str:
        if len(runs) < 2:
            return ""
        ranked = sorted(runs, key=lambda run: run[1].hit_rate, reverse=True)
        rows = [
            (str(idx + 1), str(config.policy), str(config.cache_capacity), f"{result.hit_rate:.2%}")
            for idx, (config, result) in enumerate(ranked)
        ]
        return "\n".join(
            ["", "[Hit-Rate Ranking]", self._build_table(("Rank", "Policy", "Capacity", "Hit Rate"), rows)]
        )

    def build_report(self, runs: Iterable[Tuple[SimulationConfig, SimulationResult]]) -> str:
        run_list = list(runs)
        body = "\n\n".join(self._format_result(config, result) for config, result in run_list)
        return "\n".join(self._header() + [body, self._build_ranking(run_list)]).rstrip() + "\n"

    def build_sweep_report(self, result: SweepResult) -> str:
        headers = ["Option Set"] + [str(size) for size in result.cache_sizes]
        sections = self._header()
        for policy in result.policies:
            rows = [
                [opt.option_set] + [f"{rate:.2%}" for rate in opt.hit_rate] for opt in policy.results
            ]
            sections.extend([f"[Policy: {policy.replacement_policy}] hit rate by cache size", self._build_table(headers, rows), ""])
        return "\n".join(sections)

    def build_throughput_report(self, series: ThroughputSeries) -> str:
        rows = []
        for idx, tick in enumerate(series.time_axis_unix_secs):
            rows.append([str(tick)] + [f"{series.mbps[name][idx]:.3f}" for name in SERIES])
        headers = ["Tick (unix s)"] + [f"{name} MiB/s" for name in SERIES]
        return "\n".join(
            self._header()
            + [f"[Throughput] {series.num_ticks} ticks of {series.tick_duration_secs} s", self._build_table(headers, rows)]
        )
