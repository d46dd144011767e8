import json
import unittest
from unittest.mock import MagicMock

from shillsniffer.analysis_cache import AnalysisCache
from shillsniffer.analyzer import RemoteAnalyzer
from shillsniffer.bio_cache import BioCache
from shillsniffer.extraction import ObservedUser
from shillsniffer.llm_client import LLMClient, LLMError
from shillsniffer.models import Author, Confidence, Post, PostType
from shillsniffer.monitor import PostMonitor
from shillsniffer.profile_fetch import ProfileFetcher
from shillsniffer.rate_limiter import RateLimiter
from shillsniffer.settings import AnalysisSettings
from shillsniffer.storage import MemoryStore

LAUNCH_POST = "Just shipped a big update to @myapp!"
JANE = Author(name="Jane Doe", handle="jane")
JANE_WITH_BIO = Author(name="Jane Doe", handle="jane", bio="CEO @myapp")

MODEL_REPLY = json.dumps({
    "confidence": "low",
    "hasCommercialInterest": True,
    "isDisclosed": True,
    "explanation": "Openly announcing an update to her own app",
    "businessConnection": "CEO @myapp",
})


class PostMonitorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.published = []
        self.bio_cache = BioCache()
        self.client = MagicMock(spec=LLMClient)
        self.client.call.return_value = MODEL_REPLY
        self.analyzer = RemoteAnalyzer(
            lambda: AnalysisSettings(api_key="gsk_test1234567890"),
            AnalysisCache(MemoryStore()),
            RateLimiter(),
            self.client,
        )
        self.monitor = PostMonitor(self.bio_cache, analyzer=self.analyzer, on_verdict=self.published.append)

    def test_reposts_are_ignored(self):
        post = Post(id="1", text=LAUNCH_POST, author=JANE_WITH_BIO, post_type=PostType.REPOST)

        self.assertIsNone(self.monitor.handle_post(post))
        self.assertIsNone(self.monitor.score_for("1"))

    def test_conversational_reply_is_skipped(self):
        post = Post(id="1", text="Thanks, great point!", author=JANE_WITH_BIO, post_type=PostType.REPLY)

        self.assertIsNone(self.monitor.handle_post(post))
        self.assertEqual(self.published, [])

    def test_flagged_post_publishes_local_verdict(self):
        scored = self.monitor.handle_post(Post(id="1", text=LAUNCH_POST, author=JANE_WITH_BIO))

        self.assertEqual(scored.score, 120)
        self.assertEqual(len(self.published), 1)
        verdict = self.published[0]
        self.assertEqual(verdict.source, "local")
        self.assertEqual(verdict.confidence, Confidence.HIGH)
        self.assertEqual(verdict.reasons[0], "Author has commercial indicators: ceo, @myapp")

    def test_late_bio_upgrades_but_never_downgrades(self):
        scored = self.monitor.handle_post(Post(id="1", text=LAUNCH_POST, author=JANE))
        self.assertEqual(scored.score, 50)
        self.assertEqual(self.published[-1].confidence, Confidence.MEDIUM)

        arrived = self.monitor.observe_users([ObservedUser(handle="@Jane", name="Jane Doe", bio="CEO @myapp")])

        self.assertEqual(arrived, 1)
        self.assertEqual(self.monitor.score_for("1").score, 120)
        self.assertEqual(self.published[-1].confidence, Confidence.HIGH)

        unchanged = self.monitor.rescore_with_bio("1", "Gardener")
        self.assertEqual(unchanged.score, 120)
        self.assertEqual(self.monitor.score_for("1").score, 120)
        self.assertEqual(len(self.published), 2)

    def test_reseen_post_keeps_higher_verdict(self):
        self.monitor.handle_post(Post(id="1", text=LAUNCH_POST, author=JANE_WITH_BIO))

        # Same post seen again where the author card carries no bio.
        again = self.monitor.handle_post(Post(id="1", text=LAUNCH_POST, author=JANE))

        self.assertEqual(again.score, 120)
        self.assertEqual(self.monitor.score_for("1").score, 120)
        self.assertEqual(self.monitor.verdict_for("1").confidence, Confidence.HIGH)
        self.assertEqual(len(self.published), 1)

    def test_below_threshold_post_gets_passive_badge(self):
        scored = self.monitor.handle_post(Post(id="1", text="Big update to @myapp today", author=JANE))

        self.assertEqual(scored.score, 30)
        self.assertFalse(scored.can_show_local_verdict)
        self.assertEqual(len(self.published), 1)
        badge = self.published[0]
        self.assertEqual(badge.source, "passive")
        self.assertIsNone(badge.confidence)
        self.assertEqual(badge.reasons, ["Linked to @myapp"])

        self.monitor.observe_users([ObservedUser(handle="jane", name="Jane Doe", bio="CEO @myapp")])

        self.assertGreaterEqual(self.monitor.score_for("1").score, 50)
        self.assertEqual(self.monitor.verdict_for("1").source, "local")
        self.assertEqual([v.source for v in self.published], ["passive", "local"])

    def test_passive_badges_can_be_turned_off(self):
        monitor = PostMonitor(self.bio_cache, on_verdict=self.published.append, show_passive_indicators=False)

        monitor.handle_post(Post(id="1", text="Big update to @myapp today", author=JANE))

        self.assertEqual(monitor.score_for("1").score, 30)
        self.assertIsNone(monitor.verdict_for("1"))
        self.assertEqual(self.published, [])

    def test_payload_bios_rescore_waiting_posts(self):
        self.monitor.handle_post(Post(id="1", text=LAUNCH_POST, author=JANE))
        payload = {"data": {"user": {"result": {"legacy": {
            "screen_name": "Jane", "name": "Jane Doe", "description": "CEO @myapp",
        }}}}}

        self.assertEqual(self.monitor.observe_payload(payload), 1)
        self.assertEqual(self.monitor.score_for("1").score, 120)

    def test_promotional_self_reply_flags_clean_parent(self):
        parent = Post(id="1", text="Had a great weekend hiking", author=JANE)
        replies = [
            Post(id="2", text="use code HIKE20 for 20% off", author=JANE, post_type=PostType.REPLY),
            Post(id="3", text="use code OTHER10 for 10% off", author=Author("Bob", "bob"), post_type=PostType.REPLY),
        ]

        scored = self.monitor.handle_post(parent, replies)

        self.assertEqual(scored.matches, ["promotional self-reply"])
        self.assertEqual(scored.score_breakdown.self_reply_promo, 50)
        self.assertEqual(scored.score, 50)
        self.assertEqual(scored.self_reply_analysis.promotional_reply_ids, ["2"])
        self.assertEqual(self.published[-1].confidence, Confidence.MEDIUM)

    def test_clean_post_is_not_tracked(self):
        self.assertIsNone(self.monitor.handle_post(Post(id="1", text="Had a great weekend hiking", author=JANE)))
        self.assertIsNone(self.monitor.score_for("1"))

    def test_remote_verdict_replaces_local(self):
        self.monitor.handle_post(Post(id="1", text=LAUNCH_POST, author=JANE_WITH_BIO))

        verdict = self.monitor.request_analysis("1")

        self.assertEqual(verdict.source, "remote")
        self.assertEqual(verdict.confidence, Confidence.LOW)
        self.assertEqual(verdict.reasons, ["Openly announcing an update to her own app"])
        self.assertIs(self.monitor.verdict_for("1"), verdict)
        prompt = self.client.call.call_args.args[1]
        self.assertIn("BIO: CEO @myapp", prompt)
        self.assertIn("DETECTED INDICATORS: ceo, @myapp", prompt)

        # Later local rescoring must not publish over the remote verdict.
        self.monitor.inspect_self_replies("1", [Post(id="2", text="use code SAVE20 for 20% off", author=JANE)])
        self.assertEqual(self.monitor.verdict_for("1").source, "remote")
        self.assertEqual([v.source for v in self.published], ["local", "remote"])

        again = self.monitor.request_analysis("1")
        self.assertEqual(again.source, "cached")
        self.client.call.assert_called_once()

    def test_remote_failure_keeps_local_verdict(self):
        self.client.call.side_effect = LLMError("Groq API error: 503 - unavailable")
        self.monitor.handle_post(Post(id="1", text=LAUNCH_POST, author=JANE_WITH_BIO))

        verdict = self.monitor.request_analysis("1")

        self.assertEqual(verdict.source, "error")
        self.assertEqual(verdict.error, "Groq API error: 503 - unavailable")
        self.assertEqual(self.monitor.verdict_for("1").source, "local")
        self.assertEqual(self.published[-1].source, "error")

    def test_request_analysis_errors(self):
        self.assertEqual(self.monitor.request_analysis("missing").error, "Post is no longer tracked")

        monitor = PostMonitor(self.bio_cache)
        monitor.handle_post(Post(id="1", text=LAUNCH_POST, author=JANE_WITH_BIO))
        self.assertEqual(monitor.request_analysis("1").error, "AI analysis is not configured")


class PrefetchTests(unittest.TestCase):
    def setUp(self) -> None:
        self.bio_cache = BioCache()
        self.lookup = MagicMock(return_value=ObservedUser(handle="jane", name="Jane Doe", bio="CEO @myapp"))
        self.fetcher = ProfileFetcher(self.lookup, self.bio_cache, timeout_seconds=1)
        self.addCleanup(self.fetcher.close)

    def test_missing_bio_is_fetched_and_post_rescored(self):
        monitor = PostMonitor(self.bio_cache, profile_fetcher=self.fetcher)

        monitor.handle_post(Post(id="1", text=LAUNCH_POST, author=JANE))

        self.lookup.assert_called_once_with("jane")
        self.assertEqual(monitor.score_for("1").score, 120)
        self.assertFalse(monitor.prefetch_bio("jane"))

    def test_prefetch_is_throttled(self):
        self.lookup.return_value = None
        monitor = PostMonitor(
            self.bio_cache,
            profile_fetcher=self.fetcher,
            prefetch_limiter=RateLimiter(max_calls=1, window_seconds=10),
        )

        monitor.handle_post(Post(id="1", text=LAUNCH_POST, author=JANE))
        monitor.handle_post(Post(id="2", text="Just shipped a big update to @bobapp!", author=Author("Bob", "bob")))

        self.assertEqual(self.lookup.call_count, 1)

    def test_no_fetcher_means_no_prefetch(self):
        self.assertFalse(PostMonitor(self.bio_cache).prefetch_bio("jane"))


if __name__ == "__main__":
    unittest.main()
