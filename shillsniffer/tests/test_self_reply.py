import unittest

from shillsniffer.models import Author, Confidence, Post, PromoStrength
from shillsniffer.scoring import analyze_with_score
from shillsniffer.self_reply import (
    analyze_self_replies,
    apply_self_reply_after_scoring,
    apply_self_reply_before_scoring,
    has_promotional_content,
    self_reply_bonus,
)

JANE = Author(name="Jane Doe", handle="jane")


class PromotionalContentTests(unittest.TestCase):
    def test_promo_code_is_strong(self):
        result = has_promotional_content("use code SAVE20 for 20% off at my store")

        self.assertTrue(result.is_promotional)
        self.assertEqual(result.strength, PromoStrength.STRONG)
        self.assertIn("SAVE20", result.promo_codes)

    def test_affiliate_to_own_business_is_moderate(self):
        result = has_promotional_content("https://acmetools.com/?via=friend", "Founder of Acmetools", "acme")

        self.assertEqual(result.strength, PromoStrength.MODERATE)
        self.assertIn("links to own product", result.signals)

    def test_self_promo_alone_is_weak(self):
        self.assertEqual(has_promotional_content("I built a thing").strength, PromoStrength.WEAK)
        self.assertFalse(has_promotional_content("lovely weather").is_promotional)


class SelfReplyAnalysisTests(unittest.TestCase):
    def setUp(self) -> None:
        self.parent = Post(id="1", text="Excited for the weekend", author=JANE)
        self.promo_reply = Post(id="2", text="use code SAVE20 for 20% off at my store", author=JANE)

    def test_only_same_author_replies_count(self):
        stranger = Post(id="3", text="use code SAVE20 for 20% off", author=Author(name="Bob", handle="bob"))

        self.assertIsNone(analyze_self_replies(self.parent, [stranger]))

        analysis = analyze_self_replies(self.parent, [stranger, self.promo_reply])
        self.assertEqual(analysis.promotional_reply_ids, ["2"])
        self.assertEqual(self_reply_bonus(analysis), 50)

    def test_weak_reply_bonus(self):
        weak = Post(id="4", text="I built a thing", author=Author(name="Jane", handle="@JANE"))
        analysis = analyze_self_replies(self.parent, [weak])

        self.assertEqual(self_reply_bonus(analysis), 40)

    def test_pre_scoring_path_flags_clean_parent(self):
        scored = analyze_with_score(self.parent.text, JANE.name, JANE.handle)
        self.assertFalse(scored.has_indicators)

        flagged = apply_self_reply_before_scoring(scored, analyze_self_replies(self.parent, [self.promo_reply]))

        self.assertTrue(flagged.has_indicators)
        self.assertEqual(flagged.matches, ["promotional self-reply"])
        self.assertEqual(flagged.score_breakdown.self_reply_promo, 50)
        self.assertEqual(flagged.score, 50)
        self.assertEqual(flagged.suggested_confidence, Confidence.MEDIUM)
        self.assertTrue(flagged.verdict_reasons[-1].startswith("Promotional self-reply: promo code:"))
        self.assertEqual(scored.score, 0)

    def test_paths_converge_and_are_idempotent(self):
        scored = analyze_with_score(self.parent.text, JANE.name, JANE.handle)
        analysis = analyze_self_replies(self.parent, [self.promo_reply])

        before = apply_self_reply_before_scoring(scored, analysis)
        after = apply_self_reply_after_scoring(before, analysis)
        again = apply_self_reply_after_scoring(after, analysis)

        self.assertEqual(before.score_breakdown, again.score_breakdown)
        self.assertEqual(again.score, before.score)
        self.assertEqual(len([r for r in again.verdict_reasons if r.startswith("Promotional self-reply")]), 1)

    def test_post_scoring_path_upgrades_verdict(self):
        parent = Post(id="5", text="Big update to @myapp today", author=JANE)
        scored = analyze_with_score(parent.text, JANE.name, JANE.handle, None)
        self.assertFalse(scored.can_show_local_verdict)

        updated = apply_self_reply_after_scoring(scored, analyze_self_replies(parent, [self.promo_reply]))

        self.assertEqual(updated.score, scored.score + 50)
        self.assertEqual(updated.score, max(0, updated.score_breakdown.total()))
        self.assertTrue(updated.can_show_local_verdict)

    def test_no_analysis_leaves_result_untouched(self):
        scored = analyze_with_score(self.parent.text, JANE.name, JANE.handle)

        self.assertIs(apply_self_reply_after_scoring(scored, None), scored)


if __name__ == "__main__":
    unittest.main()
