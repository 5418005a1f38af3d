"""
ContentWriter - Prompt layer over ClaudeService for the Tax4Us content workers.

Holds every prompt the pipeline sends to Claude: topic proposals, topic
research/plan, Hebrew article drafting, SEO metadata, SEO enhancement,
Hebrew to English translation, social copy, and podcast scripts.
"""

import json
import logging
import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from ..core.models import Topic, utc_now
from .seo_scorer import SEOScorer

logger = logging.getLogger(__name__)

H2_PATTERN = re.compile(r"^## ", re.MULTILINE)
H3_PATTERN = re.compile(r"^### ", re.MULTILINE)


@dataclass
class ArticleDraft:
    """A generated article in markdown with its SEO metadata."""
    title: str
    markdown: str
    focus_keyword: str
    language: str = "he"
    excerpt: str = ""
    slug: str = ""
    seo_title: str = ""
    seo_description: str = ""
    keywords: List[str] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    seo_score: int = 0

    @property
    def word_count(self) -> int:
        return len(self.markdown.split())

    @property
    def h2_count(self) -> int:
        return len(H2_PATTERN.findall(self.markdown))

    @property
    def h3_count(self) -> int:
        return len(H3_PATTERN.findall(self.markdown))

    def rank_math_meta(self) -> Dict[str, Any]:
        return {
            "rank_math_focus_keyword": self.focus_keyword,
            "rank_math_title": self.seo_title or self.title,
            "rank_math_description": self.seo_description or self.excerpt,
            "rank_math_seo_score": self.seo_score,
        }


class ContentWriter:
    """Generates Tax4Us content with Claude."""

    PROPOSAL_SYSTEM = (
        "You are a Content Strategy Expert for Tax4Us.co.il. Suggest a high-impact, "
        "timely blog topic about US-Israel taxation."
    )
    STRATEGY_SYSTEM = (
        "You are a Content Strategy AI Agent for Tax4Us. Your goal is to plan "
        "blog posts about US-Israel taxation for the given audience."
    )
    ARTICLE_SYSTEM = (
        "You are a professional Israeli Tax Content Creator for Tax4Us. Write "
        "high-quality, engaging blog posts with practical value for the audience."
    )
    TRANSLATOR_SYSTEM = (
        "You are a specialized translator for Israeli tax and financial content. "
        "Translate Hebrew content to professional English while keeping accurate "
        "terminology (CPAs, IRS, VAT, etc.)."
    )

    def __init__(self, claude: Any, scorer: Optional[SEOScorer] = None):
        """
        Args:
            claude: ClaudeService (or a fake with the same generate/generate_json API)
            scorer: SEOScorer used to score drafts
        """
        self.claude = claude
        self.scorer = scorer or SEOScorer()

    # =========================================================================
    # TOPIC PLANNING
    # =========================================================================

    async def propose_topic(self, recent_titles: List[str], feedback: Optional[str] = None) -> Dict[str, str]:
        """
        Propose one new topic that recent posts have not covered.

        Args:
            recent_titles: Titles of recently published posts
            feedback: Reviewer feedback on the previous proposal, if any

        Returns:
            {"topic", "audience", "reasoning"}

        Raises:
            ValueError: Claude returned no topic
        """
        existing = "\n".join(f"- {title}" for title in recent_titles) or "(none)"
        revision = ""
        if feedback:
            revision = f"\nFeedback on the previous proposal: {feedback}\nAddress this feedback in the new topic.\n"

        prompt = f"""
Recent Articles (to avoid duplication):
{existing}

Current Date: {utc_now().date().isoformat()}
{revision}
Task:
Suggest ONE unique blog topic that has not been covered recently.
Target Audience: Israeli business owners or expats dealing with US taxes.

Return JSON: {{"topic": "...", "audience": "...", "reasoning": "..."}}
"""
        proposal = await self.claude.generate_json(
            prompt,
            system=self.PROPOSAL_SYSTEM,
            model=getattr(self.claude, "fast_model", None),
            purpose="topic_proposal",
            context={"feedback": feedback, "recent_titles": recent_titles},
        )
        topic = (proposal.get("topic") or "").strip()
        if not topic:
            raise ValueError("Claude returned no topic")
        return {
            "topic": topic,
            "audience": proposal.get("audience") or Topic.model_fields["audience"].default,
            "reasoning": proposal.get("reasoning", ""),
        }

    async def research_and_plan(self, topic: Topic) -> Dict[str, Any]:
        """Plan a topic: title, keywords, outline and strategy."""
        prompt = f"""
Topic: {topic.topic}
Audience: {topic.audience}
Category: {topic.category}

Please provide:
1. A compelling title.
2. A set of target keywords (comma-separated).
3. A detailed blog post outline (Markdown format).
4. A brief content strategy description.

Format your response as JSON:
{{"title": "...", "keywords": "...", "outline": "...", "strategy": "..."}}
"""
        plan = await self.claude.generate_json(
            prompt,
            system=self.STRATEGY_SYSTEM,
            purpose="topic_plan",
            context={"topic": topic.topic},
        )

        keywords = plan.get("keywords") or []
        if isinstance(keywords, str):
            keywords = [k.strip() for k in keywords.split(",") if k.strip()]

        return {
            "title": plan.get("title") or topic.title or topic.topic,
            "keywords": keywords,
            "outline": plan.get("outline", ""),
            "strategy": plan.get("strategy", ""),
        }

    # =========================================================================
    # ARTICLE
    # =========================================================================

    async def write_article(
        self,
        topic: Topic,
        language: str = "he",
        revision_feedback: Optional[str] = None,
    ) -> ArticleDraft:
        """
        Draft an article in markdown, then derive SEO metadata and a score.

        Args:
            topic: Planned topic
            language: "he" or "en"
            revision_feedback: Reviewer feedback from a previous draft
        """
        focus_keyword = topic.keywords[0] if topic.keywords else topic.topic
        revision_block = ""
        if revision_feedback:
            revision_block = f"\nA reviewer asked for these changes to the previous draft:\n{revision_feedback}\n"

        prompt = f"""
Write a comprehensive blog post about: {topic.topic}
Title: {topic.title or topic.topic}
Target Audience: {topic.audience}
Strategy: {topic.strategy or ""}
Outline: {topic.outline or ""}
Keywords: {", ".join(topic.keywords)}
Focus keyword: {focus_keyword}
Language: {language}
{revision_block}
Requirements:
- Professional yet accessible tone.
- Use ## and ### headings.
- Mention the focus keyword in the first paragraph.
- At least 2000 words.
- Write in Markdown.
"""
        context = {"focus_keyword": focus_keyword, "title": topic.title or topic.topic, "language": language}
        markdown = await self.claude.generate(
            prompt, system=self.ARTICLE_SYSTEM, purpose="article", context=context
        )

        metadata = await self._seo_metadata(markdown, focus_keyword, topic.keywords, context)
        draft = ArticleDraft(
            title=metadata.get("title") or topic.title or topic.topic,
            markdown=markdown,
            focus_keyword=metadata.get("focus_keyword") or focus_keyword,
            language=language,
            excerpt=metadata.get("excerpt", ""),
            slug=metadata.get("slug", ""),
            seo_title=metadata.get("seo_title", ""),
            seo_description=metadata.get("seo_description", ""),
            keywords=list(topic.keywords),
            categories=metadata.get("categories") or [topic.category],
            tags=metadata.get("tags") or list(topic.keywords),
        )
        draft.seo_score = self.scorer.calculate_score(draft.markdown, draft.title, draft.focus_keyword)
        logger.info(f"Drafted '{draft.title}' ({draft.word_count} words, SEO {draft.seo_score})")
        return draft

    async def _seo_metadata(
        self,
        markdown: str,
        focus_keyword: str,
        keywords: List[str],
        context: Dict[str, Any],
    ) -> Dict[str, Any]:
        prompt = f"""
Based on this article:
{markdown}

Provide SEO metadata as JSON:
{{
  "title": "SEO optimized title containing the focus keyword",
  "excerpt": "Meta description",
  "slug": "url-slug",
  "seo_title": "...",
  "seo_description": "...",
  "focus_keyword": "{focus_keyword}",
  "categories": ["..."],
  "tags": {json.dumps(keywords, ensure_ascii=False)}
}}
"""
        return await self.claude.generate_json(prompt, purpose="seo_metadata", context=context)

    async def enhance_article(
        self,
        draft: ArticleDraft,
        issues: List[str],
        improvements: List[str],
    ) -> ArticleDraft:
        """Rewrite a draft to fix SEO issues and re-score it."""
        markdown = await self.enhance_content(
            draft.markdown, draft.title, draft.focus_keyword, issues, improvements
        )
        enhanced = replace(draft, markdown=markdown)
        enhanced.seo_score = self.scorer.calculate_score(markdown, enhanced.title, enhanced.focus_keyword)
        logger.info(f"Enhanced '{draft.title}': SEO {draft.seo_score} -> {enhanced.seo_score}")
        return enhanced

    async def enhance_content(
        self,
        content: str,
        title: str,
        focus_keyword: str,
        issues: List[str],
        improvements: List[str],
    ) -> str:
        """Rewrite article content to address the listed SEO issues."""
        prompt = f"""
Improve the SEO of this article without changing its facts.

Title: {title}
Focus keyword: {focus_keyword}
Issues:
{chr(10).join(f"- {i}" for i in issues)}
Improvements to make:
{chr(10).join(f"- {i}" for i in improvements)}

Article:
{content}

Return only the improved article in Markdown.
"""
        return await self.claude.generate(
            prompt,
            system=self.ARTICLE_SYSTEM,
            purpose="enhance_article",
            context={"focus_keyword": focus_keyword, "title": title},
        )

    # =========================================================================
    # TRANSLATION
    # =========================================================================

    async def translate_he_to_en(self, draft: ArticleDraft) -> ArticleDraft:
        """Translate a Hebrew draft to English and re-score it."""
        prompt = f"""
Please translate the following Hebrew blog post to English.
Keep all Markdown structure and any WordPress block comments (<!-- wp:... -->).
Keep the tone professional and equivalent to the source.

Title: {draft.title}

Hebrew Content:
{draft.markdown}

Respond as JSON: {{"title": "...", "excerpt": "...", "focus_keyword": "...", "content": "..."}}
"""
        context = {"focus_keyword": draft.focus_keyword, "title": draft.title, "language": "en"}
        translated = await self.claude.generate_json(
            prompt,
            system=self.TRANSLATOR_SYSTEM,
            model=getattr(self.claude, "fast_model", None),
            purpose="translation",
            context=context,
        )

        english = ArticleDraft(
            title=translated.get("title") or draft.title,
            markdown=translated.get("content", ""),
            focus_keyword=translated.get("focus_keyword") or draft.focus_keyword,
            language="en",
            excerpt=translated.get("excerpt", ""),
            keywords=list(draft.keywords),
            categories=list(draft.categories) + ["English"],
            tags=list(draft.tags),
        )
        english.seo_score = self.scorer.calculate_score(english.markdown, english.title, english.focus_keyword)
        return english

    # =========================================================================
    # SOCIAL AND PODCAST
    # =========================================================================

    async def social_copy(self, title: str, article: str) -> Dict[str, str]:
        """LinkedIn and Facebook posts promoting an article."""
        linkedin = await self.claude.generate(
            f"""
Create a LinkedIn post for "Tax4Us" based on the article below.
Tone: professional, insightful. Structure: hook, key takeaways as bullets, call to action.
Length: 150-250 words. 3-5 hashtags.

Title: {title}
Article:
{article}
""",
            purpose="social_linkedin",
            context={"title": title},
        )
        facebook = await self.claude.generate(
            f"""
Create a Facebook post for "Tax4Us" based on the article below.
Tone: engaging, friendly. Structure: question hook, brief explanation, benefit of reading more.
Length: 100-150 words. 2-3 hashtags.

Title: {title}
Article:
{article}
""",
            purpose="social_facebook",
            context={"title": title},
        )
        return {"linkedin": linkedin, "facebook": facebook}

    async def podcast_script(self, title: str, article: str) -> str:
        """Single-host podcast script (3-5 minutes) from an article."""
        return await self.claude.generate(
            f"""
Convert the following blog post into an engaging podcast script for a single host
of "Tax4Us Weekly". The host is an expert in US-Israel tax. Natural, conversational,
informative. Target length: 600-800 words. Return only the spoken script.

Title: {title}
Article:
{article}
""",
            purpose="podcast_script",
            context={"title": title},
        )

    async def episode_summary(self, script: str) -> str:
        """Short show notes for an episode."""
        return await self.claude.generate(
            f"Create a short, catchy podcast summary and show notes for this script:\n\n{script}",
            model=getattr(self.claude, "fast_model", None),
            purpose="episode_summary",
        )
