import unittest

from shillsniffer.bio_cache import BioCache
from shillsniffer.models import AuthorMetadata, VerifiedType


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class BioCacheTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()
        self.cache = BioCache(ttl_seconds=1800, clock=self.clock)

    def test_handles_are_normalized(self):
        self.cache.cache_bio("@Jane", "Jane", "CEO @myapp")

        self.assertEqual(self.cache.get_bio("jane"), "CEO @myapp")
        self.assertEqual(self.cache.get_bio("@JANE"), "CEO @myapp")
        self.assertEqual(self.cache.get_stats()["handles"], ["jane"])

    def test_entry_expires_after_ttl_and_is_removed(self):
        self.cache.cache_bio("jane", "Jane", "CEO @myapp")

        self.clock.now += 1800
        self.assertEqual(self.cache.get_bio("jane"), "CEO @myapp")

        self.clock.now += 1
        self.assertIsNone(self.cache.get_bio("jane"))
        self.assertEqual(self.cache.get_stats()["count"], 0)

    def test_empty_bio_reads_as_unknown(self):
        self.cache.cache_bio("quiet", "Quiet", "")

        self.assertIsNone(self.cache.get_bio("quiet"))
        self.assertIsNotNone(self.cache.get_user_data("quiet"))

    def test_user_data_keeps_metadata(self):
        metadata = AuthorMetadata(verified_type=VerifiedType.GOLD, followers_count=120_000)
        self.cache.cache_bio("acme", "Acme", "Official account", metadata)

        entry = self.cache.get_user_data("ACME")
        self.assertEqual(entry.metadata.verified_type, VerifiedType.GOLD)
        self.assertEqual(entry.cached_at, 1_000.0)

    def test_capacity_is_bounded(self):
        cache = BioCache(max_entries=2, clock=self.clock)
        cache.cache_bio("a", "A", "bio a")
        cache.cache_bio("b", "B", "bio b")
        cache.cache_bio("c", "C", "bio c")

        self.assertIsNone(cache.get_bio("a"))
        self.assertEqual(cache.get_stats()["count"], 2)

    def test_clear(self):
        self.cache.cache_bio("jane", "Jane", "bio")
        self.cache.clear()
        self.assertEqual(self.cache.get_stats(), {"count": 0, "handles": []})


if __name__ == "__main__":
    unittest.main()
