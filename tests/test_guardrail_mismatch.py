import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from cvreview.guardrails.mismatch import MismatchDecision, resolve_role_match  # noqa: E402


class MismatchResolverTests(unittest.TestCase):
    def test_cross_domain_forces_mismatch_even_over_model_match(self):
        decision = resolve_role_match("MATCH", "tech", "manual", "")
        self.assertEqual(
            decision,
            MismatchDecision(is_mismatch=True, is_cross_domain=True, role_match="MISMATCH"),
        )

    def test_same_domain_model_mismatch_becomes_partial(self):
        decision = resolve_role_match("MISMATCH", "tech", "tech", "Embedded Firmware Engineer")
        self.assertTrue(decision.is_mismatch)
        self.assertFalse(decision.is_cross_domain)
        self.assertEqual(decision.role_match, "PARTIAL_MATCH")

    def test_unknown_domains_with_model_mismatch_become_partial(self):
        decision = resolve_role_match("MISMATCH", None, None, "")
        self.assertTrue(decision.is_mismatch)
        self.assertFalse(decision.is_cross_domain)
        self.assertEqual(decision.role_match, "PARTIAL_MATCH")

    def test_unverified_job_domain_with_title_never_downgrades_match(self):
        decision = resolve_role_match("MATCH", "tech", None, "Zookeeper at City Zoo")
        self.assertTrue(decision.is_mismatch)
        self.assertFalse(decision.is_cross_domain)
        self.assertEqual(decision.role_match, "MATCH")

    def test_unverified_job_domain_with_title_partial_stays_partial(self):
        decision = resolve_role_match("PARTIAL_MATCH", "tech", None, "Zookeeper")
        self.assertEqual(decision.role_match, "PARTIAL_MATCH")
        self.assertTrue(decision.is_mismatch)

    def test_unverified_job_domain_without_title_is_not_a_mismatch(self):
        decision = resolve_role_match("MATCH", "tech", None, "")
        self.assertFalse(decision.is_mismatch)
        self.assertEqual(decision.role_match, "MATCH")

    def test_unknown_versus_unknown_passes_through(self):
        for claim in ("MATCH", "PARTIAL_MATCH"):
            decision = resolve_role_match(claim, None, None, "")
            self.assertFalse(decision.is_mismatch)
            self.assertFalse(decision.is_cross_domain)
            self.assertEqual(decision.role_match, claim)

    def test_unknown_candidate_with_known_job_is_not_a_mismatch(self):
        decision = resolve_role_match("MATCH", None, "manual", "CNC Operator")
        self.assertFalse(decision.is_mismatch)


if __name__ == "__main__":
    unittest.main()
