import json
import tempfile
import unittest
from pathlib import Path

from shillsniffer.analysis_cache import AnalysisCache, cache_key, cached_to_result, hash_topic
from shillsniffer.models import AnalysisResult, Confidence
from shillsniffer.storage import JsonFileStore, MemoryStore

WEEK = 7 * 24 * 60 * 60


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _result(explanation: str = "Promoting own product") -> AnalysisResult:
    return AnalysisResult(
        confidence=Confidence.HIGH,
        has_commercial_interest=True,
        is_disclosed=False,
        explanation=explanation,
        business_connection="CEO @myapp",
    )


class HashTests(unittest.TestCase):
    def test_known_values(self):
        self.assertEqual(hash_topic(""), "0")
        self.assertEqual(hash_topic("a"), "2p")
        self.assertEqual(hash_topic("ab"), "2e9")

    def test_text_is_lowercased_trimmed_and_truncated(self):
        self.assertEqual(hash_topic("  AB  "), hash_topic("ab"))
        prefix = "x" * 50
        self.assertEqual(hash_topic(prefix + "one"), hash_topic(prefix + "two"))

    def test_key_lowercases_handle_only(self):
        self.assertEqual(cache_key("Jane", "Hello"), "jane:" + hash_topic("hello"))


class AnalysisCacheTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()
        self.cache = AnalysisCache(MemoryStore(), clock=self.clock)

    def test_round_trip(self):
        self.cache.cache_result("jane", "Just shipped", _result())

        entry = self.cache.get_cached_result("JANE", "just shipped")

        self.assertEqual(cached_to_result(entry), _result())
        self.assertEqual(entry.timestamp, self.clock.now)

    def test_expired_entries_are_ignored_but_kept(self):
        self.cache.cache_result("jane", "post", _result())
        self.clock.now += WEEK

        self.assertIsNone(self.cache.get_cached_result("jane", "post"))
        self.assertEqual(self.cache.get_stats()["count"], 1)

    def test_defaults(self):
        self.assertEqual(self.cache.max_entries, 500)
        self.assertEqual(self.cache.ttl_seconds, WEEK)

    def test_inserting_past_capacity_evicts_single_oldest(self):
        cache = AnalysisCache(MemoryStore(), max_entries=5, clock=self.clock)
        for i in range(6):
            self.clock.now += 1
            cache.cache_result(f"user{i}", "post", _result())

        self.assertEqual(cache.get_stats()["count"], 5)
        self.assertIsNone(cache.get_cached_result("user0", "post"))
        self.assertIsNotNone(cache.get_cached_result("user1", "post"))
        self.assertIsNotNone(cache.get_cached_result("user5", "post"))

    def test_prune_expired(self):
        self.cache.cache_result("old", "post", _result())
        self.clock.now += WEEK - 10
        self.cache.cache_result("new", "post", _result())
        self.clock.now += 10

        self.assertEqual(self.cache.prune_expired(), 1)
        self.assertEqual(self.cache.get_stats()["count"], 1)
        self.assertEqual(self.cache.prune_expired(), 0)

    def test_stats_and_clear(self):
        self.assertEqual(self.cache.get_stats(), {"count": 0, "oldest_age_days": None})
        self.cache.cache_result("jane", "post", _result())
        self.clock.now += 3 * 24 * 60 * 60

        self.assertEqual(self.cache.get_stats(), {"count": 1, "oldest_age_days": 3})
        self.cache.clear()
        self.assertEqual(self.cache.get_stats()["count"], 0)


class JsonFileStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.path = Path(self.tmp.name) / "store.json"

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_persists_across_instances(self):
        AnalysisCache(JsonFileStore(self.path)).cache_result("jane", "post", _result())

        reloaded = AnalysisCache(JsonFileStore(self.path))
        self.assertEqual(reloaded.get_cached_result("jane", "post").confidence, Confidence.HIGH)
        blob = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertEqual(blob["version"], 1)
        self.assertIn("analysis_cache", blob["values"])

    def test_corrupt_file_reads_as_empty(self):
        self.path.write_text("{not json", encoding="utf-8")
        store = JsonFileStore(self.path)

        self.assertEqual(store.get_value("settings", {}), {})
        store.set_value("settings", {"llm_provider": "ollama"})
        self.assertEqual(store.get_value("settings"), {"llm_provider": "ollama"})

    def test_memory_store_copies_values(self):
        store = MemoryStore()
        value = {"a": [1]}
        store.set_value("k", value)
        value["a"].append(2)

        self.assertEqual(store.get_value("k"), {"a": [1]})


if __name__ == "__main__":
    unittest.main()
