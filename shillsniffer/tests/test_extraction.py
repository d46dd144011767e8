import unittest

from shillsniffer.bio_cache import BioCache
from shillsniffer.extraction import find_users, harvest_users, parse_profile_result
from shillsniffer.models import VerifiedType

GRAPHQL_USER = {
    "__typename": "User",
    "is_blue_verified": True,
    "professional": {"category": [{"name": "Software"}]},
    "legacy": {
        "screen_name": "Jane",
        "name": "Jane Doe",
        "description": "CEO @myapp",
        "followers_count": 1200,
        "entities": {"url": {"urls": [{"expanded_url": "https://myapp.io"}]}},
    },
}


class FindUsersTests(unittest.TestCase):
    def test_legacy_user(self):
        users = find_users({"data": {"user": {"result": GRAPHQL_USER}}})

        self.assertEqual(len(users), 1)
        user = users[0]
        self.assertEqual((user.handle, user.name, user.bio), ("Jane", "Jane Doe", "CEO @myapp"))
        self.assertEqual(user.metadata.verified_type, VerifiedType.BLUE)
        self.assertEqual(user.metadata.followers_count, 1200)
        self.assertEqual(user.metadata.professional_category, "Software")
        self.assertEqual(user.metadata.profile_url, "https://myapp.io")

    def test_affiliate_badge_label(self):
        user = dict(GRAPHQL_USER)
        user["affiliates_highlighted_label"] = {"label": {"badge": {"description": "MyApp Inc"}}}

        self.assertEqual(find_users([user])[0].metadata.affiliate_label, "MyApp Inc")

    def test_flat_user(self):
        payload = {"statuses": [{"user": {
            "screen_name": "bob", "name": "Bob", "description": "Dev", "followers_count": 10, "verified": True,
        }}]}

        users = find_users(payload)

        self.assertEqual([u.handle for u in users], ["bob"])
        self.assertEqual(users[0].metadata.verified_type, VerifiedType.BLUE)
        self.assertEqual(users[0].metadata.followers_count, 10)

    def test_skip_keys_are_not_walked(self):
        payload = {"entities": {"user_mentions": [{"screen_name": "carol", "description": "x"}]}}

        self.assertEqual(find_users(payload), [])

    def test_first_occurrence_wins_case_insensitively(self):
        users = find_users([
            {"screen_name": "Dan", "description": "first"},
            {"screen_name": "dan", "description": "second"},
        ])

        self.assertEqual(len(users), 1)
        self.assertEqual(users[0].bio, "first")

    def test_depth_limit(self):
        payload = {"a": {"b": {"c": {"screen_name": "deep", "description": "x"}}}}

        self.assertEqual(find_users(payload, max_depth=2), [])
        self.assertEqual([u.handle for u in find_users(payload, max_depth=3)], ["deep"])

    def test_non_container_payload(self):
        self.assertEqual(find_users("not json"), [])
        self.assertEqual(find_users(None), [])


class ParseProfileResultTests(unittest.TestCase):
    def test_unavailable_or_incomplete(self):
        self.assertIsNone(parse_profile_result({"__typename": "UserUnavailable"}))
        self.assertIsNone(parse_profile_result({"__typename": "User"}))
        self.assertIsNone(parse_profile_result(None))

    def test_business_account(self):
        user = parse_profile_result({"legacy": {
            "screen_name": "acme", "verified_type": "Business", "description": "Official account",
        }})

        self.assertEqual(user.handle, "acme")
        self.assertEqual(user.name, "acme")
        self.assertEqual(user.metadata.verified_type, VerifiedType.GOLD)

    def test_blue_account(self):
        user = parse_profile_result(GRAPHQL_USER)

        self.assertEqual(user.metadata.verified_type, VerifiedType.BLUE)
        self.assertEqual(user.metadata.profile_url, "https://myapp.io")


class HarvestTests(unittest.TestCase):
    def test_only_users_with_bios_are_cached(self):
        cache = BioCache()
        payload = [
            {"screen_name": "jane", "name": "Jane Doe", "description": "CEO @myapp"},
            {"screen_name": "quiet", "name": "Quiet", "description": "   "},
        ]

        harvested = harvest_users(payload, cache)

        self.assertEqual([u.handle for u in harvested], ["jane"])
        self.assertEqual(cache.get_bio("JANE"), "CEO @myapp")
        self.assertIsNone(cache.get_user_data("quiet"))


if __name__ == "__main__":
    unittest.main()
