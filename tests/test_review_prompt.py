import os
import sys
import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path

_TEST_DATA_DIR = Path(tempfile.gettempdir()) / f"cvreview-tests-{os.getpid()}"
os.environ.setdefault("CREDITS_DB_PATH", str(_TEST_DATA_DIR / "credits.db"))
os.environ.setdefault("ANALYTICS_DB_PATH", str(_TEST_DATA_DIR / "analytics.db"))
os.environ.setdefault("REVIEW_RATE_LIMIT_DB_PATH", str(_TEST_DATA_DIR / "rate_limit.db"))
os.environ.setdefault("RATE_LIMIT_ENABLED", "0")
os.environ.setdefault("REVIEW_RATE_LIMIT", "5")

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from cvreview.core.config import settings  # noqa: E402
from cvreview.services.review_prompt import build_review_messages  # noqa: E402

NOW = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)


class ReviewPromptTests(unittest.TestCase):
    def test_job_offer_precedes_cv_and_title_is_restated(self):
        messages = build_review_messages(
            portfolio_text="Jane Doe - Software Engineer",
            job_offer_text="JOB TITLE: CNC Press Brake Operator\nBend sheet metal.",
            extracted_job_title="CNC Press Brake Operator",
            severity_level=9,
            now=NOW,
        )
        self.assertEqual([m.role for m in messages], ["system", "user"])
        system, user = messages[0].content, messages[1].content

        self.assertIn("Severity level: 9/10 (brutal)", system)
        self.assertIn('"severity_applied": 9', system)
        self.assertIn("2026-03-01T10:00:00+00:00", system)
        self.assertIn("red (<55), yellow (55-74), green (75+)", system)

        self.assertLess(user.index("Bend sheet metal."), user.index("Jane Doe"))
        self.assertIn('THE JOB TITLE IS: "CNC Press Brake Operator"', user)

    def test_without_job_offer_uses_general_standards(self):
        messages = build_review_messages(
            portfolio_text="Jane Doe",
            job_offer_text="",
            extracted_job_title="",
            severity_level=2,
            now=NOW,
        )
        self.assertIn("(encouraging)", messages[0].content)
        self.assertIn("No specific job offer provided", messages[1].content)
        self.assertNotIn("THE JOB TITLE IS", messages[1].content)

    def test_job_offer_is_truncated(self):
        offer = "x" * (settings.job_offer_max_chars + 500)
        messages = build_review_messages(
            portfolio_text="cv",
            job_offer_text=offer,
            extracted_job_title="",
            severity_level=5,
            now=NOW,
        )
        self.assertIn("x" * settings.job_offer_max_chars, messages[1].content)
        self.assertNotIn("x" * (settings.job_offer_max_chars + 1), messages[1].content)

    def test_openai_message_shape(self):
        message = build_review_messages(
            portfolio_text="cv",
            job_offer_text="",
            extracted_job_title="",
            severity_level=5,
            now=NOW,
        )[1]
        self.assertEqual(message.as_openai(), {"role": "user", "content": message.content})


if __name__ == "__main__":
    unittest.main()
