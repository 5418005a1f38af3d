"""
Tests for GenerationAdapter.poll_until_complete and the fake adapters.

Tests: completes after processing polls, failed job, timeout, synchronous
providers and job release, canned Claude responses and failures.
"""

import pytest

from contentfactory.core.exceptions import GenerationJobError
from contentfactory.services.fakes import FakeClaudeService, FakeElevenLabsService, FakeKieService
from contentfactory.services.generation import JOB_FAILED


class TestPollUntilComplete:

    @pytest.mark.asyncio
    async def test_completes_after_processing_polls(self):
        kie = FakeKieService(processing_polls=2)
        task_id = await kie.submit({"prompt": "cover"})
        url = await kie.poll_until_complete(task_id, max_attempts=3, interval=0)
        assert url == f"https://cdn.kie.ai/{task_id}.png"

    @pytest.mark.asyncio
    async def test_timeout_raises(self):
        kie = FakeKieService(processing_polls=5)
        task_id = await kie.submit({"prompt": "cover"})
        with pytest.raises(GenerationJobError) as exc_info:
            await kie.poll_until_complete(task_id, max_attempts=3, interval=0)
        assert exc_info.value.status == "timeout"

    @pytest.mark.asyncio
    async def test_failed_job_raises(self):
        kie = FakeKieService(fail=True)
        task_id = await kie.submit({"prompt": "cover"})
        with pytest.raises(GenerationJobError, match="content policy violation"):
            await kie.poll_until_complete(task_id, max_attempts=3, interval=0)

    @pytest.mark.asyncio
    async def test_synchronous_provider_completes_on_first_poll(self):
        elevenlabs = FakeElevenLabsService()
        task_id = await elevenlabs.submit({"text": "Welcome to Tax4Us Weekly"})
        audio = await elevenlabs.poll_until_complete(task_id, max_attempts=1, interval=0)
        assert audio.startswith(b"ID3")
        assert elevenlabs.texts == ["Welcome to Tax4Us Weekly"]

    @pytest.mark.asyncio
    async def test_synchronous_provider_releases_finished_jobs(self):
        elevenlabs = FakeElevenLabsService()
        for episode in range(3):
            task_id = await elevenlabs.submit({"text": f"Episode {episode}"})
            await elevenlabs.poll_until_complete(task_id, max_attempts=1, interval=0)

        assert elevenlabs._jobs == {}
        status = await elevenlabs.poll_status(task_id)
        assert status.status == JOB_FAILED
        assert "Unknown task" in status.error


class TestFakeClaude:

    @pytest.mark.asyncio
    async def test_records_purposes(self):
        claude = FakeClaudeService()
        await claude.generate("p", purpose="social_linkedin", context={"title": "FBAR"})
        await claude.generate_json("p", purpose="topic_plan", context={"topic": "FBAR"})
        assert claude.purposes() == ["social_linkedin", "topic_plan"]

    @pytest.mark.asyncio
    async def test_callable_response(self):
        claude = FakeClaudeService(responses={"article": lambda prompt, ctx: f"about {ctx['title']}"})
        assert await claude.generate("p", purpose="article", context={"title": "FBAR"}) == "about FBAR"

    @pytest.mark.asyncio
    async def test_failure_purpose_raises(self):
        claude = FakeClaudeService(failures={"translation"})
        with pytest.raises(RuntimeError, match="translation"):
            await claude.generate_json("p", purpose="translation")
