from __future__ import annotations

import re

_JOB_TITLE_RE = re.compile(r"JOB TITLE:[ \t]*(.+?)[ \t]*(?:\n|COMPANY|LOCATION|$)", re.IGNORECASE)
_SKIP_PREFIXES = ("http", "www", "source:", "job title:")
_MIN_TITLE_CHARS = 6
_MAX_TITLE_CHARS = 99


def extract_job_title(scraped_text: str | None) -> str:
    """Best-effort job title from scraped job-offer text; empty when nothing plausible."""
    text = scraped_text or ""
    if not text.strip():
        return ""

    match = _JOB_TITLE_RE.search(text)
    if match:
        title = match.group(1).strip()
        if title:
            return title

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not _MIN_TITLE_CHARS <= len(line) <= _MAX_TITLE_CHARS:
            continue
        if line.lower().startswith(_SKIP_PREFIXES):
            continue
        return line
    return ""
