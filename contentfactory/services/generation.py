"""
Generation adapters - Text (Claude), image/video (Kie.ai), and speech (ElevenLabs).

Every adapter exposes the same job contract:

    task_id = await adapter.submit(input)
    status = await adapter.poll_status(task_id)   # processing | completed | failed

poll_until_complete() bounds the wait with a fixed number of attempts at a
fixed interval and raises GenerationJobError when the job fails or the
attempts run out. Synchronous providers (Claude, ElevenLabs) complete their
jobs at submit time, so the first poll already reports completed.
"""

import asyncio
import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
from uuid import uuid4

import anthropic
import httpx
import logfire

from ..core.config import Config
from ..core.exceptions import GenerationJobError
from .http_retry import http_retry

logger = logging.getLogger(__name__)

JOB_PROCESSING = "processing"
JOB_COMPLETED = "completed"
JOB_FAILED = "failed"

JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")


@dataclass
class JobStatus:
    """Result of polling a generation job."""
    status: str
    result: Any = None
    error: Optional[str] = None

    @property
    def done(self) -> bool:
        return self.status in (JOB_COMPLETED, JOB_FAILED)


class GenerationAdapter(ABC):
    """Submit-then-poll contract shared by all generation services."""

    name: str = "generation"

    @abstractmethod
    async def submit(self, job_input: Dict[str, Any]) -> str:
        """Submit a job and return its task id."""

    @abstractmethod
    async def poll_status(self, task_id: str) -> JobStatus:
        """Report the job's current status."""

    async def poll_until_complete(
        self,
        task_id: str,
        max_attempts: Optional[int] = None,
        interval: Optional[float] = None,
    ) -> Any:
        """
        Poll a job until it completes.

        Args:
            task_id: Job to poll
            max_attempts: Polls before giving up (defaults to Config.GENERATION_POLL_ATTEMPTS)
            interval: Seconds between polls (defaults to Config.GENERATION_POLL_INTERVAL)

        Returns:
            The completed job's result

        Raises:
            GenerationJobError: Job failed or did not complete in time
        """
        max_attempts = max_attempts if max_attempts is not None else Config.GENERATION_POLL_ATTEMPTS
        interval = interval if interval is not None else Config.GENERATION_POLL_INTERVAL

        for attempt in range(1, max_attempts + 1):
            status = await self.poll_status(task_id)
            if status.status == JOB_COMPLETED:
                return status.result
            if status.status == JOB_FAILED:
                raise GenerationJobError(task_id, JOB_FAILED, status.error)

            logger.debug(f"{self.name} job {task_id} still processing (attempt {attempt}/{max_attempts})")
            if attempt < max_attempts:
                await asyncio.sleep(interval)

        raise GenerationJobError(task_id, "timeout", f"not complete after {max_attempts} attempts")


class _SynchronousJobsMixin:
    """Job bookkeeping for providers that finish during submit()."""

    def _init_jobs(self) -> None:
        self._jobs: Dict[str, JobStatus] = {}

    def _complete(self, result: Any) -> str:
        task_id = str(uuid4())
        self._jobs[task_id] = JobStatus(status=JOB_COMPLETED, result=result)
        return task_id

    async def poll_status(self, task_id: str) -> JobStatus:
        """Hand back a finished job once; the result is not kept afterwards."""
        return self._jobs.pop(task_id, None) or JobStatus(status=JOB_FAILED, error=f"Unknown task {task_id}")


# ============================================================================
# Claude (text)
# ============================================================================

class ClaudeService(_SynchronousJobsMixin, GenerationAdapter):
    """
    Text generation with Claude via the Anthropic SDK.

    `purpose` and `context` label each call in traces (topic_plan, article,
    translation, ...); they do not change the request sent to the API.
    """

    name = "claude"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        fast_model: Optional[str] = None,
    ):
        api_key = api_key or Config.ANTHROPIC_API_KEY
        if not api_key:
            raise ValueError("ANTHROPIC_API_KEY not configured")

        self.client = anthropic.Anthropic(api_key=api_key)
        self.model = model or Config.CLAUDE_MODEL
        self.fast_model = fast_model or Config.CLAUDE_FAST_MODEL
        self._init_jobs()
        logger.info(f"ClaudeService initialized (model={self.model})")

    async def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        model: Optional[str] = None,
        purpose: str = "general",
        context: Optional[Dict[str, Any]] = None,
        max_tokens: int = 8000,
    ) -> str:
        """Run one completion and return its text."""
        model = model or self.model
        kwargs: Dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system

        with logfire.span("claude {purpose}", purpose=purpose, model=model, **(context or {})):
            response = await asyncio.to_thread(self.client.messages.create, **kwargs)

        return response.content[0].text

    async def generate_json(
        self,
        prompt: str,
        system: Optional[str] = None,
        model: Optional[str] = None,
        purpose: str = "general",
        context: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Run one completion and parse its JSON object."""
        text = await self.generate(prompt, system=system, model=model, purpose=purpose, context=context)
        return parse_json_response(text)

    async def submit(self, job_input: Dict[str, Any]) -> str:
        text = await self.generate(
            job_input["prompt"],
            system=job_input.get("system"),
            model=job_input.get("model"),
            purpose=job_input.get("purpose", "general"),
        )
        return self._complete(text)


def parse_json_response(content: str) -> Dict[str, Any]:
    """
    Parse JSON from an LLM response, handling code fences and preambles.

    Raises:
        ValueError: No parseable JSON object in the response
    """
    content = content.strip()

    if content.startswith("```"):
        lines = content.split("\n")
        end_idx = len(lines) - 1 if lines[-1].strip() == "```" else len(lines)
        content = "\n".join(lines[1:end_idx])

    match = JSON_OBJECT_PATTERN.search(content)
    if match:
        content = match.group(0)

    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        logger.error(f"JSON parse error: {e}")
        logger.debug(f"Raw content: {content[:1000]}")
        raise ValueError(f"Failed to parse LLM response as JSON: {e}")


# ============================================================================
# Kie.ai (image / video)
# ============================================================================

class KieService(GenerationAdapter):
    """Image and video generation via Kie.ai task API."""

    name = "kie"
    BASE_URL = "https://api.kie.ai/api/v1"

    def __init__(self, api_key: Optional[str] = None, http_client: Optional[httpx.AsyncClient] = None):
        self.api_key = api_key or Config.KIE_API_KEY
        if not self.api_key:
            raise ValueError("KIE_API_KEY not configured")
        self._client = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"x-api-key": self.api_key, "Content-Type": "application/json"},
                timeout=60.0,
            )
        return self._client

    @http_retry
    async def submit(self, job_input: Dict[str, Any]) -> str:
        """Submit an image ("kind": "image", the default) or video job."""
        client = await self._get_client()
        kind = job_input.get("kind", "image")
        options = {k: v for k, v in job_input.items() if k not in ("kind", "prompt")}

        if kind == "video":
            url = f"{self.BASE_URL}/veo/generate"
            body = {"prompt": job_input["prompt"], **options}
        else:
            url = f"{self.BASE_URL}/jobs/createTask"
            body = {"taskType": "image_gen", "prompt": job_input["prompt"], **options}

        response = await client.post(url, json=body)
        response.raise_for_status()
        task_id = response.json()["data"]["taskId"]
        logger.info(f"Submitted Kie.ai {kind} job {task_id}")
        return task_id

    @http_retry
    async def poll_status(self, task_id: str) -> JobStatus:
        client = await self._get_client()
        response = await client.get(f"{self.BASE_URL}/jobs/recordInfo", params={"taskId": task_id})
        response.raise_for_status()
        data = response.json().get("data") or {}

        status = str(data.get("status", JOB_PROCESSING)).lower()
        if status in ("completed", "success"):
            urls = (data.get("response") or {}).get("resultUrls") or []
            return JobStatus(status=JOB_COMPLETED, result=data.get("url") or (urls[0] if urls else None))
        if status in ("failed", "fail", "error"):
            return JobStatus(status=JOB_FAILED, error=data.get("failMsg") or data.get("error"))
        return JobStatus(status=JOB_PROCESSING)

    async def generate_image(self, prompt: str) -> str:
        """Submit an image job and wait for its URL."""
        task_id = await self.submit({"kind": "image", "prompt": prompt})
        return await self.poll_until_complete(task_id)

    async def generate_video(self, prompt: str, aspect_ratio: str = "16:9") -> str:
        """Submit a video job and wait for its URL. Video jobs get a longer polling budget."""
        task_id = await self.submit({"kind": "video", "prompt": prompt, "aspectRatio": aspect_ratio})
        return await self.poll_until_complete(
            task_id, max_attempts=Config.VIDEO_POLL_ATTEMPTS, interval=Config.VIDEO_POLL_INTERVAL
        )

    @http_retry
    async def download(self, url: str) -> Tuple[bytes, str]:
        """Download a generated asset. Returns (bytes, content type)."""
        async with httpx.AsyncClient(timeout=120.0) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.content, response.headers.get("content-type", "image/png")


# ============================================================================
# ElevenLabs (speech)
# ============================================================================

class ElevenLabsService(_SynchronousJobsMixin, GenerationAdapter):
    """Text-to-speech via ElevenLabs. Results are MP3 bytes."""

    name = "elevenlabs"
    BASE_URL = "https://api.elevenlabs.io/v1"
    MODEL_ID = "eleven_multilingual_v2"  # Hebrew + English

    def __init__(
        self,
        api_key: Optional[str] = None,
        voice_id: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key or Config.ELEVENLABS_API_KEY
        self.voice_id = voice_id or Config.ELEVENLABS_VOICE_ID
        if not self.api_key or not self.voice_id:
            raise ValueError("ELEVENLABS_API_KEY and ELEVENLABS_VOICE_ID must be configured")
        self._client = http_client
        self._init_jobs()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"xi-api-key": self.api_key, "Content-Type": "application/json"},
                timeout=120.0,
            )
        return self._client

    @http_retry
    async def synthesize(self, text: str) -> bytes:
        """Generate speech for text."""
        client = await self._get_client()
        response = await client.post(
            f"{self.BASE_URL}/text-to-speech/{self.voice_id}",
            json={
                "text": text,
                "model_id": self.MODEL_ID,
                "voice_settings": {"stability": 0.5, "similarity_boost": 0.75},
            },
        )
        response.raise_for_status()
        logger.info(f"Synthesized {len(text)} characters of speech")
        return response.content

    async def submit(self, job_input: Dict[str, Any]) -> str:
        return self._complete(await self.synthesize(job_input["text"]))
