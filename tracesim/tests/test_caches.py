import unittest


class CacheBaseTests(unittest.TestCase):
    def test_rejects_non_positive_size(self):
        from tracesim.caches import ClockProCache, S4LRUCache
        from tracesim.errors import ConfigError

        self.assertRaises(ConfigError, ClockProCache, 0)
        self.assertRaises(ConfigError, S4LRUCache, -4)


class S4LRUCacheTests(unittest.TestCase):
    def _getTargetClass(self):
        from tracesim.caches.s4lru import S4LRUCache

        return S4LRUCache

    def _makeOne(self, size=8):
        return self._getTargetClass()(size)

    def test_size_must_divide_by_four(self):
        from tracesim.errors import ConfigError

        self.assertRaises(ConfigError, self._makeOne, 6)

    def test_lookup_after_record(self):
        cache = self._makeOne()
        self.assertFalse(cache.lookup("a"))
        cache.record("a")
        self.assertTrue(cache.lookup("a"))

    def test_eviction_from_first_segment(self):
        cache = self._makeOne(4)
        cache.record("a")
        cache.record("b")
        self.assertFalse(cache.lookup("a"))
        self.assertTrue(cache.lookup("b"))

    def test_hit_promotes_out_of_eviction_path(self):
        cache = self._makeOne(8)
        cache.record("a")
        self.assertTrue(cache.lookup("a"))
        for key in "bcd":
            cache.record(key)
        self.assertTrue(cache.lookup("a"))
        self.assertFalse(cache.lookup("b"))
        self.assertEqual(cache.level["a"], 2)

    def test_promotion_swaps_with_full_upper_segment(self):
        cache = self._makeOne(4)
        cache.record("a")
        cache.lookup("a")
        cache.record("b")
        cache.lookup("b")
        self.assertEqual(cache.level, {"a": 0, "b": 1})
        self.assertEqual(list(cache.segments[0]), ["a"])
        self.assertEqual(list(cache.segments[1]), ["b"])

    def test_record_resident_key_does_not_duplicate(self):
        cache = self._makeOne(8)
        cache.record("a")
        cache.record("a")
        self.assertEqual(sum(len(s) for s in cache.segments), 1)

    def test_stats(self):
        cache = self._makeOne(8)
        cache.record("a")
        cache.record("b")
        cache.lookup("a")
        stats = cache.get_stats()
        self.assertEqual(stats["resident"], 2)
        self.assertEqual(stats["segment0"], 1)
        self.assertEqual(stats["segment1"], 1)


class ClockProCacheTests(unittest.TestCase):
    def _getTargetClass(self):
        from tracesim.caches.clockpro import ClockProCache

        return ClockProCache

    def _makeOne(self, size=2):
        return self._getTargetClass()(size)

    def test_lookup_after_record(self):
        cache = self._makeOne()
        self.assertFalse(cache.lookup("a"))
        cache.record("a")
        self.assertTrue(cache.lookup("a"))

    def test_single_slot(self):
        cache = self._makeOne(1)
        for key in "abcdef":
            cache.record(key)
            self.assertTrue(cache.lookup(key))
        stats = cache.get_stats()
        self.assertLessEqual(stats["hot"] + stats["cold"], 1)

    def test_evicted_page_becomes_test_page(self):
        cache = self._makeOne(2)
        for key in "abc":
            cache.record(key)
        self.assertFalse(cache.lookup("b"))
        self.assertEqual(cache.get_stats()["test"], 1)

    def test_rereferenced_test_page_returns_hot(self):
        cache = self._makeOne(2)
        for key in "abc":
            cache.record(key)
        cache.record("b")
        stats = cache.get_stats()
        self.assertEqual(stats["hot"], 1)
        self.assertEqual(stats["cold"], 1)
        self.assertTrue(cache.lookup("b"))
        self.assertTrue(cache.lookup("c"))
        self.assertFalse(cache.lookup("a"))

    def test_residency_bounded(self):
        cache = self._makeOne(10)
        for i in range(500):
            key = i % 37 if i % 3 else i
            if not cache.lookup(key):
                cache.record(key)
            stats = cache.get_stats()
            self.assertLessEqual(stats["hot"] + stats["cold"], 10)
            self.assertLessEqual(stats["test"], 10)
        self.assertEqual(sum(1 for k in range(1000) if cache.lookup(k)), cache.count_hot + cache.count_cold)


class TinyLFUCacheTests(unittest.TestCase):
    def _getTargetClass(self):
        from tracesim.caches.tinylfu import TinyLFUCache

        return TinyLFUCache

    def _makeOne(self, size=100, samples=1000):
        return self._getTargetClass()(size, samples)

    def test_requires_samples(self):
        from tracesim.errors import ConfigError

        self.assertRaises(ConfigError, self._makeOne, 100, 0)

    def test_segment_sizes(self):
        cache = self._makeOne(1024, 10240)
        self.assertEqual(cache.window_size, 10)
        self.assertEqual(cache.main_size, 1014)
        self.assertEqual(cache.probation_size, 202)
        self.assertEqual(cache.protected_size, 812)

    def test_lookup_after_record(self):
        cache = self._makeOne()
        self.assertFalse(cache.lookup("a"))
        cache.record("a")
        self.assertTrue(cache.lookup("a"))

    def test_admission_needs_second_sighting(self):
        cache = self._makeOne()
        for key in range(101):
            cache.record(key)
        # main area full: 99 lost its first duel with probation's head
        self.assertFalse(cache.lookup(99))
        self.assertTrue(cache.lookup(0))
        self.assertTrue(cache.lookup(100))
        self.assertIn(0, cache.protected)

        cache.record(99)
        cache.record(101)
        self.assertTrue(cache.lookup(99))
        self.assertFalse(cache.lookup(1))
        self.assertFalse(cache.lookup(100))

    def test_residency_bounded(self):
        cache = self._makeOne(50, 100)
        for i in range(2000):
            key = (i * 7) % 131
            if not cache.lookup(key):
                cache.record(key)
            self.assertLessEqual(sum(cache.get_stats().values()), 50)


    def test_single_slot_is_window_only(self):
        cache = self._makeOne(1, 10)
        self.assertEqual(cache.main_size, 0)
        for key in [(4, 0), (4, 1024)] * 3:
            self.assertFalse(cache.lookup(key))
            cache.record(key)
            self.assertTrue(cache.lookup(key))
            self.assertEqual(sum(cache.get_stats().values()), 1)

    def test_small_sizes_bounded(self):
        for size in range(1, 17):
            cache = self._makeOne(size, 10 * size)
            for i in range(300):
                key = (i * 7) % 23
                if not cache.lookup(key):
                    cache.record(key)
                self.assertLessEqual(sum(cache.get_stats().values()), size)


class CountMinSketchTests(unittest.TestCase):
    def test_saturates_and_halves(self):
        from tracesim.caches.tinylfu import CountMinSketch, _hash64

        sketch = CountMinSketch(16)
        h = _hash64(("file", 1))
        self.assertEqual(sketch.estimate(h), 0)
        for _ in range(20):
            sketch.add(h)
        self.assertEqual(sketch.estimate(h), 15)
        sketch.reset()
        self.assertEqual(sketch.estimate(h), 7)


class DoorkeeperTests(unittest.TestCase):
    def test_second_sighting(self):
        from tracesim.caches.tinylfu import Doorkeeper, _hash64

        doorkeeper = Doorkeeper(1000, 0.01)
        h = _hash64((4, 0))
        self.assertFalse(doorkeeper.allow(h))
        self.assertTrue(doorkeeper.allow(h))
        doorkeeper.reset()
        self.assertFalse(doorkeeper.allow(h))


class CreateCacheTests(unittest.TestCase):
    def _callFUT(self, config):
        from tracesim.caches import create_cache

        return create_cache(config)

    def test_picks_backend(self):
        from tracesim.caches import ClockProCache, S4LRUCache, TinyLFUCache
        from tracesim.config import ReplacementPolicy, SimulationConfig

        self.assertIsInstance(
            self._callFUT(SimulationConfig(ReplacementPolicy.RECENCY_FREQUENCY_HYBRID, 64)), ClockProCache
        )
        self.assertIsInstance(self._callFUT(SimulationConfig(ReplacementPolicy.SEGMENTED_LRU, 64)), S4LRUCache)
        cache = self._callFUT(SimulationConfig(ReplacementPolicy.FREQUENCY_SKETCH_LRU, 64, frequency_sketch_samples=640))
        self.assertIsInstance(cache, TinyLFUCache)
        self.assertEqual(cache.samples, 640)

    def test_lru_not_implemented(self):
        from tracesim.config import ReplacementPolicy, SimulationConfig
        from tracesim.errors import ConfigError

        self.assertRaises(ConfigError, self._callFUT, SimulationConfig(ReplacementPolicy.LRU, 64))
