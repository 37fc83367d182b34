import unittest


class MetricsCollectorTests(unittest.TestCase):
    def _makeOne(self):
        from tracesim.metrics import MetricsCollector, ReportConfig
        from tracesim.trace_store import TraceMetadata

        trace = TraceMetadata(name="t", start_time="2023-11-14T22:13:20Z", duration_secs=6, num_events=7)
        return MetricsCollector(ReportConfig(trace=trace))

    def test_build_table(self):
        table = self._makeOne()._build_table(("A", "Long"), [("1", "x"), ("22", "yyyyy")])
        self.assertEqual(
            table.splitlines(),
            ["| A  | Long  |", "|----|-------|", "| 1  | x     |", "| 22 | yyyyy |"],
        )
        self.assertEqual(self._makeOne()._build_table(("A",), []), "(No data)")

    def test_single_run_has_no_ranking(self):
        from tracesim.config import ReplacementPolicy, SimulationConfig
        from tracesim.simulator import SimulationResult

        config = SimulationConfig(ReplacementPolicy.SEGMENTED_LRU, 1024)
        report = self._makeOne().build_report([(config, SimulationResult(hits=3, misses=1, elapsed_ns=40))])
        self.assertIn("- Name: t", report)
        self.assertIn("- Hit Rate: 75.00%", report)
        self.assertIn("- Avg. Time per Request: 10.00 ns", report)
        self.assertNotIn("Ranking", report)

    def test_sweep_report(self):
        from tracesim.sweep import OptionSetResult, PolicyResult, SweepResult

        result = SweepResult(
            trace="t",
            cache_sizes=[1024, 2048],
            policies=[PolicyResult("S4LRU", [OptionSetResult("default", [0.5, 0.75])])],
        )
        report = self._makeOne().build_sweep_report(result)
        self.assertIn("[Policy: S4LRU] hit rate by cache size", report)
        self.assertIn("| default    | 50.00% | 75.00% |", report)

    def test_throughput_report(self):
        from tracesim.throughput import SERIES, ThroughputSeries

        series = ThroughputSeries(num_ticks=2, tick_duration_secs=1, time_axis_unix_secs=[1_700_000_000])
        for name in SERIES:
            series.mbps[name].append(1.5)
        report = self._makeOne().build_throughput_report(series)
        self.assertIn("[Throughput] 2 ticks of 1 s", report)
        self.assertIn("1700000000", report)
        self.assertIn("1.500", report)
