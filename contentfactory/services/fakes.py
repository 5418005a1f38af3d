"""
Deterministic fake adapters.

Each fake exposes the same interface as its production adapter and keeps
a record of the calls it received. FactoryDependencies.create(test_mode=True)
wires these in, so test_mode runs never touch external systems.
"""

import json
import logging
from itertools import count
from typing import Any, Callable, Dict, List, Optional, Set, Tuple, Union

from ..core.models import Approval, ApprovalDecision, PostRef, utc_now
from .generation import (
    GenerationAdapter,
    JobStatus,
    JOB_COMPLETED,
    JOB_FAILED,
    JOB_PROCESSING,
    _SynchronousJobsMixin,
    parse_json_response,
)
from .slack_service import ApprovalResponse, SlackMessageRef, SlackResult, parse_approval_response

logger = logging.getLogger(__name__)

FILLER_WORDS = (
    "Israeli residents who hold US citizenship need to track filing deadlines "
    "treaty benefits foreign tax credits and reporting thresholds every year "
    "and should plan ahead with a qualified cross border advisor"
).split()


def build_fake_article(keyword: str, title: str, words: int = 2100) -> str:
    """Markdown article that passes every SEO check for keyword."""
    lines = [f"# {title}", "", f"This guide explains {keyword} for US citizens living in Israel.", ""]
    total = sum(len(line.split()) for line in lines)
    section = 1
    while total < words:
        heading = f"## Section {section}: {keyword} essentials"
        lines.extend([heading, ""])
        total += len(heading.split())
        for _ in range(4):
            paragraph = " ".join([keyword] + FILLER_WORDS + FILLER_WORDS)
            lines.extend([paragraph, ""])
            total += len(paragraph.split())
        section += 1
    return "\n".join(lines)


ResponseValue = Union[str, Callable[[str, Dict[str, Any]], str]]


class FakeClaudeService(_SynchronousJobsMixin, GenerationAdapter):
    """
    Canned Claude responses keyed by call purpose.

    Args:
        responses: purpose -> text, or a callable (prompt, context) -> text
        failures: purposes that raise RuntimeError
    """

    name = "claude"
    model = "fake-claude"
    fast_model = "fake-claude-fast"

    def __init__(
        self,
        responses: Optional[Dict[str, ResponseValue]] = None,
        failures: Optional[Set[str]] = None,
    ):
        self.responses = responses or {}
        self.failures = set(failures or ())
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self._init_jobs()

    async def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        model: Optional[str] = None,
        purpose: str = "general",
        context: Optional[Dict[str, Any]] = None,
        max_tokens: int = 8000,
    ) -> str:
        context = context or {}
        self.calls.append((purpose, context))
        if purpose in self.failures:
            raise RuntimeError(f"Claude {purpose} failed")

        response = self.responses.get(purpose)
        if response is None:
            return self._default(purpose, context)
        if callable(response):
            return response(prompt, context)
        return response

    async def generate_json(
        self,
        prompt: str,
        system: Optional[str] = None,
        model: Optional[str] = None,
        purpose: str = "general",
        context: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        return parse_json_response(
            await self.generate(prompt, system=system, model=model, purpose=purpose, context=context)
        )

    async def submit(self, job_input: Dict[str, Any]) -> str:
        return self._complete(await self.generate(job_input["prompt"], purpose=job_input.get("purpose", "general")))

    def purposes(self) -> List[str]:
        return [purpose for purpose, _ in self.calls]

    @staticmethod
    def _default(purpose: str, context: Dict[str, Any]) -> str:
        keyword = context.get("focus_keyword") or "US-Israel tax"
        title = context.get("title") or "Tax4Us Guide"

        if purpose == "topic_proposal":
            topic = "FATCA reporting for Israeli bank accounts"
            if context.get("feedback"):
                topic = f"{topic} ({context['feedback']})"
            return json.dumps({
                "topic": topic,
                "audience": "Israeli business owners",
                "reasoning": "Recent posts do not cover FATCA reporting.",
            })
        if purpose == "topic_plan":
            topic = context.get("topic") or "US-Israel tax"
            return json.dumps({
                "title": f"{topic}: Complete Guide",
                "keywords": f"{topic}, US-Israel tax",
                "outline": f"## What is {topic}\n## Who must file\n## Deadlines",
                "strategy": "Answer the questions expats ask most often.",
            })
        if purpose in ("article", "enhance_article"):
            return build_fake_article(keyword, title, words=2100 if purpose == "article" else 2200)
        if purpose == "seo_metadata":
            return json.dumps({
                "title": f"{title} | {keyword}",
                "excerpt": f"Everything about {keyword}.",
                "slug": keyword.lower().replace(" ", "-"),
                "seo_title": f"{keyword} - Tax4Us",
                "seo_description": f"A practical guide to {keyword}.",
                "focus_keyword": keyword,
                "categories": ["Tax Planning"],
                "tags": [keyword],
            })
        if purpose == "translation":
            return json.dumps({
                "title": f"{title} (English) | {keyword}",
                "excerpt": f"Everything about {keyword}.",
                "focus_keyword": keyword,
                "content": build_fake_article(keyword, f"{title} (English)"),
            })
        if purpose == "social_linkedin":
            return f"Key takeaways on {title}. #IsraeliTax #USExpats"
        if purpose == "social_facebook":
            return f"Confused about {title}? Here's what you need to know. #Tax4Us"
        if purpose == "podcast_script":
            return f"Welcome to Tax4Us Weekly. Today we talk about {title}."
        if purpose == "episode_summary":
            return f"This week: {title}."
        return "OK"


class FakeKieService(GenerationAdapter):
    """Image/video jobs that complete after a fixed number of polls."""

    name = "kie"

    def __init__(self, processing_polls: int = 0, fail: bool = False):
        self.processing_polls = processing_polls
        self.fail = fail
        self.submitted: List[Dict[str, Any]] = []
        self._polls: Dict[str, int] = {}
        self._kinds: Dict[str, str] = {}
        self._ids = count(1)

    async def submit(self, job_input: Dict[str, Any]) -> str:
        task_id = f"kie-task-{next(self._ids)}"
        self.submitted.append(job_input)
        self._polls[task_id] = 0
        self._kinds[task_id] = job_input.get("kind", "image")
        return task_id

    async def poll_status(self, task_id: str) -> JobStatus:
        if task_id not in self._polls:
            return JobStatus(status=JOB_FAILED, error=f"Unknown task {task_id}")
        if self.fail:
            return JobStatus(status=JOB_FAILED, error="content policy violation")

        self._polls[task_id] += 1
        if self._polls[task_id] <= self.processing_polls:
            return JobStatus(status=JOB_PROCESSING)
        extension = "mp4" if self._kinds[task_id] == "video" else "png"
        return JobStatus(status=JOB_COMPLETED, result=f"https://cdn.kie.ai/{task_id}.{extension}")

    async def generate_image(self, prompt: str) -> str:
        task_id = await self.submit({"kind": "image", "prompt": prompt})
        return await self.poll_until_complete(task_id, interval=0)

    async def generate_video(self, prompt: str, aspect_ratio: str = "16:9") -> str:
        task_id = await self.submit({"kind": "video", "prompt": prompt, "aspectRatio": aspect_ratio})
        return await self.poll_until_complete(task_id, interval=0)

    async def download(self, url: str) -> Tuple[bytes, str]:
        return f"image:{url}".encode(), "image/png"


class FakeElevenLabsService(_SynchronousJobsMixin, GenerationAdapter):
    """Speech synthesis returning placeholder MP3 bytes."""

    name = "elevenlabs"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.texts: List[str] = []
        self._init_jobs()

    async def synthesize(self, text: str) -> bytes:
        if self.fail:
            raise RuntimeError("ElevenLabs quota exceeded")
        self.texts.append(text)
        return b"ID3" + text.encode()[:64]

    async def submit(self, job_input: Dict[str, Any]) -> str:
        return self._complete(await self.synthesize(job_input["text"]))


class InMemoryWordPress:
    """
    WordPress stand-in keeping posts and media in dicts.

    Args:
        fail_on: method names that raise RuntimeError (e.g., {"create_post"})
    """

    SITE_URL = "https://tax4us.co.il"

    def __init__(self, fail_on: Optional[Set[str]] = None, first_id: int = 1000):
        self.fail_on = set(fail_on or ())
        self.posts: Dict[int, Dict[str, Any]] = {}
        self.media: Dict[int, Dict[str, Any]] = {}
        self.terms: Dict[str, Dict[str, int]] = {"categories": {}, "tags": {}}
        self.update_calls: List[Tuple[int, Dict[str, Any], Optional[Dict[str, Any]]]] = []
        self._ids = count(first_id)

    def _check(self, method: str) -> None:
        if method in self.fail_on:
            raise RuntimeError(f"WordPress {method} failed")

    def seed_post(
        self,
        title: str,
        content: str,
        status: str = "publish",
        meta: Optional[Dict[str, Any]] = None,
        date: Optional[str] = None,
        post_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        post_id = post_id or next(self._ids)
        post = {
            "id": post_id,
            "link": f"{self.SITE_URL}/?p={post_id}",
            "status": status,
            "date": date or utc_now().isoformat(),
            "title": {"rendered": title},
            "content": {"rendered": content},
            "excerpt": {"rendered": ""},
            "meta": dict(meta or {}),
            "featured_media": 0,
            "categories": [],
            "tags": [],
        }
        self.posts[post_id] = post
        return dict(post)

    async def create_post(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        self._check("create_post")
        post = self.seed_post(
            title=fields.get("title", ""),
            content=fields.get("content", ""),
            status=fields.get("status", "draft"),
            meta=fields.get("meta"),
        )
        for key in ("featured_media", "categories", "tags"):
            if key in fields:
                self.posts[post["id"]][key] = fields[key]
        self.posts[post["id"]]["excerpt"] = {"rendered": fields.get("excerpt", "")}
        return dict(self.posts[post["id"]])

    async def update_post(
        self,
        post_id: int,
        patch: Dict[str, Any],
        query: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        self._check("update_post")
        if post_id not in self.posts:
            raise RuntimeError(f"WordPress post {post_id} not found")

        self.update_calls.append((post_id, dict(patch), dict(query) if query else None))
        post = self.posts[post_id]
        for key, value in patch.items():
            if key in ("title", "content", "excerpt"):
                post[key] = {"rendered": value}
            elif key == "meta":
                post["meta"].update(value or {})
            else:
                post[key] = value
        if query:
            post.setdefault("translations", {}).update(query)
        return dict(post)

    async def get_post(self, post_id: int) -> Optional[Dict[str, Any]]:
        self._check("get_post")
        post = self.posts.get(post_id)
        return dict(post) if post else None

    async def get_posts(
        self,
        status: str = "publish",
        per_page: int = 20,
        after: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        self._check("get_posts")
        posts = [p for p in self.posts.values() if p["status"] == status]
        if after:
            posts = [p for p in posts if p["date"] >= after]
        posts.sort(key=lambda p: (p["date"], p["id"]), reverse=True)
        return [dict(p) for p in posts[:per_page]]

    async def upload_media(self, data: bytes, filename: str, mime_type: str) -> Dict[str, Any]:
        self._check("upload_media")
        media_id = next(self._ids)
        media = {
            "id": media_id,
            "source_url": f"{self.SITE_URL}/wp-content/uploads/{filename}",
            "mime_type": mime_type,
            "size": len(data),
        }
        self.media[media_id] = media
        return dict(media)

    async def resolve_categories(self, names: List[str]) -> List[int]:
        return self._resolve("categories", names)

    async def resolve_tags(self, names: List[str]) -> List[int]:
        return self._resolve("tags", names)

    def _resolve(self, taxonomy: str, names: List[str]) -> List[int]:
        terms = self.terms[taxonomy]
        ids = []
        for name in names:
            if not name.strip():
                continue
            if name not in terms:
                terms[name] = len(terms) + 1
            ids.append(terms[name])
        return ids


class FakeSlack:
    """Records messages instead of posting them."""

    channel_id = "C-FAKE"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.messages: List[Dict[str, Any]] = []
        self._ts = count(1)

    @property
    def enabled(self) -> bool:
        return True

    def _record(self, kind: str, **fields) -> str:
        ts = f"{1700000000 + next(self._ts)}.000100"
        self.messages.append({"kind": kind, "ts": ts, **fields})
        return ts

    async def send_message(self, text: str, blocks=None, thread_ts: Optional[str] = None) -> SlackResult:
        ts = self._record("message", text=text, thread_ts=thread_ts)
        return SlackResult(success=True, ts=ts, channel=self.channel_id)

    async def send_notification(self, title: str, body: str, run_id: Optional[str] = None) -> SlackResult:
        ts = self._record("notification", title=title, body=body, run_id=run_id)
        return SlackResult(success=True, ts=ts, channel=self.channel_id)

    async def send_approval_request(self, approval: Approval, run_id: str) -> SlackMessageRef:
        if self.fail:
            raise RuntimeError("Failed to send approval request: channel_not_found")
        ts = self._record("approval_request", approval_id=approval.id, run_id=run_id)
        return SlackMessageRef(channel=self.channel_id, ts=ts)

    async def send_revision_request(self, approval: Approval, feedback: str, run_id: str) -> SlackResult:
        ts = self._record("revision_request", approval_id=approval.id, feedback=feedback, run_id=run_id)
        return SlackResult(success=True, ts=ts, channel=self.channel_id)

    def parse_approval_response(
        self,
        message_ref: Optional[str],
        user_id: Optional[str],
        reaction: Optional[str] = None,
        reply_text: Optional[str] = None,
        decision: Optional[Union[ApprovalDecision, str]] = None,
    ) -> Optional[ApprovalResponse]:
        return parse_approval_response(message_ref, user_id, reaction, reply_text, decision)

    def of_kind(self, kind: str) -> List[Dict[str, Any]]:
        return [m for m in self.messages if m["kind"] == kind]


class FakeSocialService:
    """Returns a published PostRef per platform."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.published: List[Dict[str, Any]] = []
        self._ids = count(1)

    async def publish(
        self,
        posts: Dict[str, str],
        link: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> List[PostRef]:
        if self.fail:
            raise RuntimeError("Upload-Post API unavailable")
        refs = []
        for platform, text in posts.items():
            post_id = f"{platform}-{next(self._ids)}"
            self.published.append({"platform": platform, "text": text, "link": link, "image_url": image_url})
            refs.append(PostRef(platform=platform, post_id=post_id, url=f"https://{platform}.com/{post_id}"))
        return refs
