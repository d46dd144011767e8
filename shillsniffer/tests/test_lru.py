import unittest

from shillsniffer.lru import LRUCache


class LRUCacheTests(unittest.TestCase):
    def test_inserting_past_capacity_evicts_least_recently_used(self):
        cache = LRUCache(3)
        for key in ("a", "b", "c", "d"):
            cache.set(key, key.upper())

        self.assertEqual(cache.size, 3)
        self.assertIsNone(cache.get("a"))
        self.assertEqual(cache.keys(), ["b", "c", "d"])

    def test_get_protects_key_from_eviction(self):
        cache = LRUCache(3)
        for key in ("a", "b", "c"):
            cache.set(key, 1)
        self.assertEqual(cache.get("a"), 1)

        cache.set("d", 1)

        self.assertIn("a", cache)
        self.assertNotIn("b", cache)

    def test_update_refreshes_recency_without_growing(self):
        cache = LRUCache(2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 3)
        cache.set("c", 4)

        self.assertEqual(cache.get("a"), 3)
        self.assertFalse(cache.has("b"))
        self.assertEqual(len(cache), 2)

    def test_has_does_not_refresh_recency(self):
        cache = LRUCache(2)
        cache.set("a", 1)
        cache.set("b", 2)
        self.assertTrue(cache.has("a"))
        cache.set("c", 3)
        self.assertFalse(cache.has("a"))

    def test_delete_and_clear(self):
        cache = LRUCache(2)
        cache.set("a", None)
        self.assertTrue(cache.delete("a"))
        self.assertFalse(cache.delete("a"))
        cache.set("b", 1)
        cache.clear()
        self.assertEqual(cache.size, 0)
        self.assertEqual(list(cache), [])

    def test_rejects_non_positive_capacity(self):
        with self.assertRaises(ValueError):
            LRUCache(0)


if __name__ == "__main__":
    unittest.main()
