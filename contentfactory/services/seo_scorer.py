"""
SEO scoring in the style of Rank Math's content checks.

The score is deterministic and computed locally; no external calls.
"""

import re
from dataclasses import dataclass, field
from typing import List

HTML_HEADING_PATTERN = re.compile(r"<h[2-3][^>]*>.*?</h[2-3]>", re.IGNORECASE | re.DOTALL)
MARKDOWN_HEADING_PATTERN = re.compile(r"^#{2,3} ", re.MULTILINE)

BASE_SCORE = 40
MAX_SCORE = 100


@dataclass
class SEOAnalysis:
    """Score plus the checks that failed and how to fix them."""
    score: int
    issues: List[str] = field(default_factory=list)
    improvements: List[str] = field(default_factory=list)


class SEOScorer:
    """
    Scores article content against a focus keyword.

    Factors:
    - Keyword in title: +10
    - Keyword in the first 10% of the content: +10
    - Length: +20 over 2000 words, +10 over 1000 words
    - Keyword density between 1% and 3%: +10
    - H2/H3 headings present: +10
    - Base: +40

    Capped at 100. An empty focus keyword earns none of the keyword points.
    """

    def calculate_score(self, content: str, title: str, focus_keyword: str) -> int:
        return self.analyze_issues(content, title, focus_keyword).score

    def analyze_issues(self, content: str, title: str, focus_keyword: str) -> SEOAnalysis:
        """Run every check and collect the failed ones."""
        content = content or ""
        title = title or ""
        keyword = (focus_keyword or "").strip().lower()
        lowered = content.lower()

        analysis = SEOAnalysis(score=BASE_SCORE)

        # 1. Keyword in title
        if keyword and keyword in title.lower():
            analysis.score += 10
        else:
            analysis.issues.append("Focus keyword missing from title")
            analysis.improvements.append(f"Add '{focus_keyword}' to the title")

        # 2. Keyword in introduction
        intro = lowered[:int(len(lowered) * 0.1)]
        if keyword and keyword in intro:
            analysis.score += 10
        else:
            analysis.issues.append("Focus keyword missing from introduction")
            analysis.improvements.append("Mention the focus keyword in the opening paragraph")

        # 3. Content length
        word_count = max(len(content.split()), 1)
        if word_count > 2000:
            analysis.score += 20
        elif word_count > 1000:
            analysis.score += 10
            analysis.issues.append(f"Content length {word_count} words is under 2000")
            analysis.improvements.append("Expand the article past 2000 words")
        else:
            analysis.issues.append(f"Content too short ({word_count} words)")
            analysis.improvements.append("Expand the article past 2000 words")

        # 4. Keyword density
        occurrences = lowered.count(keyword) if keyword else 0
        density = occurrences / word_count * 100
        if 1 <= density <= 3:
            analysis.score += 10
        else:
            analysis.issues.append(f"Keyword density {density:.1f}% outside 1-3%")
            analysis.improvements.append("Adjust focus keyword usage to 1-3% density")

        # 5. Headings
        if HTML_HEADING_PATTERN.search(content) or MARKDOWN_HEADING_PATTERN.search(content):
            analysis.score += 10
        else:
            analysis.issues.append("No H2/H3 subheadings")
            analysis.improvements.append("Break the article into H2/H3 sections")

        analysis.score = min(analysis.score, MAX_SCORE)
        return analysis
