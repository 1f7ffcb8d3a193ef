import json
import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

# Keep API tests deterministic: no real model, no network, throwaway databases.
_TEST_DATA_DIR = Path(tempfile.gettempdir()) / f"cvreview-tests-{os.getpid()}"
os.environ.setdefault("CREDITS_DB_PATH", str(_TEST_DATA_DIR / "credits.db"))
os.environ.setdefault("ANALYTICS_DB_PATH", str(_TEST_DATA_DIR / "analytics.db"))
os.environ.setdefault("REVIEW_RATE_LIMIT_DB_PATH", str(_TEST_DATA_DIR / "rate_limit.db"))
os.environ.setdefault("RATE_LIMIT_ENABLED", "0")
os.environ.setdefault("REVIEW_RATE_LIMIT", "5")
os.environ.setdefault("REVIEW_LLM_ENABLED", "0")

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from fastapi.testclient import TestClient  # noqa: E402

from cvreview.core.credit_store import apply_subscription_tier, clear_profiles  # noqa: E402
from cvreview.core.review_rate_limit import clear_review_rate_limit_events  # noqa: E402
from cvreview.main import app  # noqa: E402
from cvreview.services.review_llm import ReviewLLMError  # noqa: E402

SERVICE = "cvreview.services.review_service"
CARD_NAMES = ("Hard Skills", "Experience Relevance", "Impact/Results", "Soft Skills", "Formatting/ATS")
CATEGORY_KEYS = ("hard_skills", "experience_relevance", "impact_results", "soft_skills", "formatting_ats")


def _model_output(
    *,
    candidate_role: str = "Software Engineer",
    job_role: str = "Software Engineer",
    role_match: str = "MATCH",
    scores: tuple[int, int, int, int, int] = (82, 78, 70, 80, 70),
) -> str:
    return json.dumps(
        {
            "review_metadata": {
                "severity_applied": 5,
                "date": "2026-03-01T10:00:00Z",
                "candidate_role_detected": candidate_role,
                "job_offer_role_detected": job_role,
                "role_match": role_match,
            },
            "scores": {"final_score": 78, "categories": dict(zip(CATEGORY_KEYS, scores))},
            "feedback_cards": [
                {"category_name": name, "score": score, "short_comment": "Looks solid.", "status_color": "green"}
                for name, score in zip(CARD_NAMES, scores)
            ],
            "actionable_feedback": ["Add metrics", "Shorten summary", "List certifications"],
        }
    )


class ReviewApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.client = TestClient(app)
        cls.files = {"portfolio": ("cv.pdf", b"%PDF-1.4 placeholder", "application/pdf")}

    def setUp(self):
        clear_profiles()
        clear_review_rate_limit_events()
        self.extract_patch = patch(f"{SERVICE}.extract_portfolio_text", return_value="Jane Doe\nSoftware Engineer")
        self.scrape_patch = patch(
            f"{SERVICE}.scrape_job_offer",
            return_value="JOB TITLE: CNC Press Brake Operator\nCOMPANY: Acme Metal\nLOCATION: Brescia",
        )
        self.extract_mock = self.extract_patch.start()
        self.scrape_mock = self.scrape_patch.start()
        self.addCleanup(self.extract_patch.stop)
        self.addCleanup(self.scrape_patch.stop)

    def _post(self, user_id: str = "user-1", **data):
        headers = {"X-User-Id": user_id} if user_id else {}
        return self.client.post("/v1/review", data=data, files=self.files, headers=headers)

    def test_health(self):
        response = self.client.get("/v1/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "healthy")

    def test_missing_user_is_unauthorized(self):
        response = self._post(user_id="")
        self.assertEqual(response.status_code, 401)

    def test_missing_portfolio_is_rejected(self):
        response = self.client.post("/v1/review", data={"ruthlessness": "5"}, headers={"X-User-Id": "user-1"})
        self.assertEqual(response.status_code, 400)

    def test_severity_out_of_range_is_rejected(self):
        response = self._post(ruthlessness="11")
        self.assertEqual(response.status_code, 422)

    def test_hallucinated_review_is_corrected_and_credit_spent(self):
        with patch(f"{SERVICE}.review_completion", return_value=(_model_output(), "gpt-4o-mini")):
            response = self._post(job_offer_url="https://jobs.example.com/42", ruthlessness="8")

        self.assertEqual(response.status_code, 200, response.text)
        body = response.json()
        metadata = body["review_metadata"]
        self.assertEqual(metadata["job_offer_role_detected"], "CNC Press Brake Operator")
        self.assertEqual(metadata["role_match"], "MISMATCH")
        self.assertEqual(metadata["severity_applied"], 8)
        self.assertLessEqual(body["scores"]["categories"]["hard_skills"], 15)
        self.assertEqual(body["scores"]["final_score"], 27)
        self.assertEqual(len(body["actionable_feedback"]), 3)
        for card in body["feedback_cards"][:3]:
            self.assertEqual(card["status_color"], "red")
        self.scrape_mock.assert_called_once_with("https://jobs.example.com/42")

        credits = self.client.get("/v1/credits", headers={"X-User-Id": "user-1"}).json()
        self.assertEqual(credits["credits"], 0)
        self.assertEqual(credits["tier"], "free")

    def test_out_of_credits_returns_402(self):
        with patch(f"{SERVICE}.review_completion", return_value=(_model_output(), "gpt-4o-mini")) as llm:
            first = self._post()
            second = self._post()
        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.status_code, 402)
        self.assertIn("Insufficient Credits", second.json()["detail"])
        self.assertEqual(llm.call_count, 1)

    def test_without_job_offer_only_colors_are_enforced(self):
        output = _model_output(candidate_role="Data Analyst", job_role="Data Analyst", scores=(70, 60, 50, 80, 90))
        with patch(f"{SERVICE}.review_completion", return_value=(output, "gpt-4o-mini")):
            response = self._post()

        self.assertEqual(response.status_code, 200)
        self.scrape_mock.assert_not_called()
        body = response.json()
        self.assertEqual(
            [card["status_color"] for card in body["feedback_cards"]],
            ["yellow", "yellow", "red", "green", "green"],
        )
        self.assertEqual(body["scores"]["final_score"], 78)
        self.assertEqual(body["actionable_feedback"][0], "Add metrics")

    def test_malformed_model_output_fails_without_spending_credit(self):
        with patch(f"{SERVICE}.review_completion", return_value=("not json at all", "gpt-4o-mini")):
            response = self._post()
        self.assertEqual(response.status_code, 500)
        self.assertIn("Analysis Failed", response.json()["detail"])

        credits = self.client.get("/v1/credits", headers={"X-User-Id": "user-1"}).json()
        self.assertEqual(credits["credits"], 1)

    def test_empty_model_output_is_an_analysis_failure(self):
        error = ReviewLLMError("Empty response from AI.", code="empty_response")
        with patch(f"{SERVICE}.review_completion", side_effect=error):
            response = self._post()
        self.assertEqual(response.status_code, 500)

    def test_unconfigured_model_returns_503(self):
        response = self._post()
        self.assertEqual(response.status_code, 503)

    def test_invalid_job_url_returns_400(self):
        self.scrape_mock.side_effect = ValueError("Private or local URLs are not allowed for job offers.")
        response = self._post(job_offer_url="http://127.0.0.1/job")
        self.assertEqual(response.status_code, 400)

    def test_review_rate_limit_returns_429(self):
        apply_subscription_tier("user-busy", "ultra")
        statuses = []
        with patch(f"{SERVICE}.review_completion", return_value=(_model_output(), "gpt-4o-mini")):
            for _ in range(6):
                statuses.append(self._post(user_id="user-busy").status_code)
        self.assertEqual(statuses[:5], [200] * 5)
        self.assertEqual(statuses[5], 429)


if __name__ == "__main__":
    unittest.main()
