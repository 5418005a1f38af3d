"""
Content Factory Orchestrator - Entry points of the run engine.

Runs the content pipeline graph, applies approval decisions to paused
runs, and hosts the scheduled pipelines (podcast autopilot, SEO
optimizer, data healer) plus the weekday autopilot that dispatches them.

Every entry point returns a result with `success` and either data or an
error. Configuration errors (unknown worker, cyclic graph), terminal-run
mutations and record store outages propagate as exceptions.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import logfire
import pytz

from ...core.config import Config, load_schedule_config, pipelines_for_day
from ...core.exceptions import (
    ApprovalTimeoutError,
    ContentFactoryError,
    RecordNotFoundError,
    RunAlreadyTerminalError,
)
from ...core.models import (
    Approval,
    ApprovalDecision,
    ApprovalStatus,
    PipelineRun,
    PipelineType,
    RunArtifacts,
    RunStatus,
    TopicStatus,
    TriggerType,
    utc_now,
)
from ...services.pipeline_logger import PipelineLogger
from .dependencies import FactoryDependencies
from .graph import (
    ExecuteWorkerNode,
    FinalizeRunNode,
    StartRunNode,
    content_factory_graph,
)
from .healer import DataAutoHealer, HealerResult
from .nodes import DEFAULT_CONTENT_PIPELINE, PROPOSAL_PIPELINE
from .state import ContentRunState

logger = logging.getLogger(__name__)

PODCAST_WORKERS = ["podcast-producer"]


@dataclass
class PipelineResult:
    """Outcome of a content pipeline run (or of one leg of it, when paused)."""
    success: bool
    run_id: str
    status: str
    completed_workers: List[str] = field(default_factory=list)
    failed_workers: List[str] = field(default_factory=list)
    not_attempted: List[str] = field(default_factory=list)
    artifacts: RunArtifacts = field(default_factory=RunArtifacts)
    errors: List[str] = field(default_factory=list)
    error: Optional[str] = None
    awaiting_approval_id: Optional[str] = None

    @classmethod
    def from_state(cls, state: ContentRunState) -> "PipelineResult":
        return cls(
            success=not state.stages_failed and not state.error,
            run_id=state.run_id,
            status=state.status,
            completed_workers=list(state.stages_completed),
            failed_workers=list(state.stages_failed),
            not_attempted=list(state.not_attempted),
            artifacts=state.artifacts,
            errors=[f"{worker}: {error}" for worker, error in state.worker_errors.items()],
            error=state.error,
            awaiting_approval_id=state.pending_approval_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "run_id": self.run_id,
            "status": self.status,
            "completed_workers": self.completed_workers,
            "failed_workers": self.failed_workers,
            "not_attempted": self.not_attempted,
            "artifacts": self.artifacts.model_dump(mode="json", exclude_none=True),
            "errors": self.errors,
            "error": self.error,
            "awaiting_approval_id": self.awaiting_approval_id,
        }


class Orchestrator:
    """
    Run engine for the Tax4Us content factory.

    Example:
        >>> orchestrator = Orchestrator(FactoryDependencies.create(test_mode=True))
        >>> result = await orchestrator.run_content_pipeline(test_mode=True)
        >>> result.completed_workers
        ['topic-manager', 'content-generator', ...]
    """

    def __init__(self, deps: FactoryDependencies):
        self.deps = deps

    def _deps_for(self, test_mode: bool) -> FactoryDependencies:
        """
        Dependencies for a call with the given test_mode.

        Raises:
            ContentFactoryError: test_mode was requested on live dependencies
        """
        if test_mode and not self.deps.test_mode:
            raise ContentFactoryError(
                "test_mode requires test dependencies: use FactoryDependencies.create(test_mode=True)"
            )
        return self.deps

    async def _drive(self, start_node: Any, state: ContentRunState, deps: FactoryDependencies) -> PipelineResult:
        """Run the graph from start_node until it pauses or finishes."""
        with logfire.span("content factory run {run_id}", run_id=state.run_id, pipeline=state.pipeline_type):
            try:
                await content_factory_graph.run(start_node, state=state, deps=deps)
            except Exception as e:
                logger.error(f"Run {state.run_id} crashed: {e}")
                try:
                    await deps.store.update_pipeline_run(state.run_id, {
                        "status": RunStatus.FAILED,
                        "error": str(e),
                        "completed_at": utc_now(),
                    })
                except Exception as update_error:
                    logger.error(f"Failed to mark run {state.run_id} as failed: {update_error}")
                raise

        result = PipelineResult.from_state(state)
        logger.info(
            f"Run {state.run_id} is {result.status}: completed={result.completed_workers} "
            f"failed={result.failed_workers} not_attempted={result.not_attempted}"
        )
        return result

    async def _load_run(self, run_id: str) -> PipelineRun:
        run = await self.deps.store.get_pipeline_run(run_id)
        if run is None:
            raise RecordNotFoundError("PipelineRun", run_id)
        return run

    @staticmethod
    def _ensure_mutable(run: PipelineRun) -> None:
        if run.is_terminal:
            raise RunAlreadyTerminalError(run.id, run.status.value)

    @staticmethod
    def _state_of(run: PipelineRun) -> ContentRunState:
        if run.workflow_data.get("run_id"):
            return ContentRunState.from_dict(run.workflow_data)
        return ContentRunState(
            run_id=run.id,
            requested_workers=list(run.requested_workers),
            pipeline_type=run.pipeline_type.value,
            status=run.status.value,
            stages_completed=list(run.stages_completed),
            stages_failed=list(run.stages_failed),
            artifacts=run.artifacts,
        )

    # =========================================================================
    # CONTENT PIPELINE
    # =========================================================================

    async def run_content_pipeline(
        self,
        workers: Optional[List[str]] = None,
        test_mode: bool = False,
        skip_failures: bool = False,
        auto_approve: Optional[bool] = None,
        topic_id: Optional[str] = None,
        trigger_type: TriggerType = TriggerType.MANUAL,
        pipeline_type: PipelineType = PipelineType.CONTENT,
        initial_artifacts: Optional[RunArtifacts] = None,
        source_content_date: Optional[str] = None,
    ) -> PipelineResult:
        """
        Run workers in dependency order.

        Args:
            workers: Worker ids to run (defaults to the six content workers)
            test_mode: Use fake adapters for every external system
            skip_failures: Keep going after a worker fails
            auto_approve: Approve gates without dispatching (defaults to test_mode)
            topic_id: Topic to write about (defaults to the next ready topic)
            trigger_type: cron, manual or healer
            pipeline_type: Run type recorded on the PipelineRun
            initial_artifacts: Artifacts carried over from an earlier run
            source_content_date: Date of the content a podcast is built from

        Returns:
            PipelineResult. A paused run has status "paused" and awaiting_approval_id set.

        Raises:
            UnknownWorkerError: A requested worker is not registered
            CyclicDependencyError: The worker graph has a cycle
        """
        deps = self._deps_for(test_mode)
        requested = DEFAULT_CONTENT_PIPELINE if workers is None else workers
        order = deps.registry.resolve_execution_order(requested)
        auto_approve = test_mode if auto_approve is None else auto_approve

        run = await deps.store.create_pipeline_run(PipelineRun(
            pipeline_type=pipeline_type,
            trigger_type=trigger_type,
            requested_workers=order,
            artifacts=initial_artifacts or RunArtifacts(),
            options={
                "test_mode": test_mode,
                "skip_failures": skip_failures,
                "auto_approve": auto_approve,
                "topic_id": topic_id,
            },
        ))
        state = ContentRunState(
            run_id=run.id,
            requested_workers=order,
            pipeline_type=pipeline_type.value,
            test_mode=test_mode,
            skip_failures=skip_failures,
            auto_approve=auto_approve,
            topic_id=topic_id,
            source_content_date=source_content_date,
            artifacts=run.artifacts,
        )

        logger.info(f"=== STARTING {pipeline_type.value.upper()} PIPELINE {run.id} ===")
        logger.info(f"Workers: {order} (test_mode={test_mode}, skip_failures={skip_failures})")
        return await self._drive(StartRunNode(), state, deps)

    async def propose_topic(
        self,
        test_mode: bool = False,
        auto_approve: Optional[bool] = None,
        trigger_type: TriggerType = TriggerType.MANUAL,
    ) -> PipelineResult:
        """
        Propose a new topic and, once a reviewer accepts it, write about it.

        The run pauses on a topic_selection approval first. A revision
        request proposes again with the feedback; approval continues into
        the content workers and their content_review gate.
        """
        return await self.run_content_pipeline(
            workers=PROPOSAL_PIPELINE,
            test_mode=test_mode,
            auto_approve=auto_approve,
            trigger_type=trigger_type,
        )

    # =========================================================================
    # APPROVALS
    # =========================================================================

    async def handle_approval_response(
        self,
        message_ref: Optional[str],
        user_id: Optional[str],
        reaction: Optional[str] = None,
        reply_text: Optional[str] = None,
        decision: Optional[ApprovalDecision] = None,
        channel: Optional[str] = None,
    ) -> Optional[PipelineResult]:
        """
        Apply an inbound Slack event to the run it approves.

        Returns None (and changes nothing) when the event is not an approval
        signal, does not belong to a known approval, or the approval was
        already resolved.

        Raises:
            RunAlreadyTerminalError: The approval's run already finished
        """
        response = self.deps.slack.parse_approval_response(
            message_ref, user_id, reaction=reaction, reply_text=reply_text, decision=decision
        )
        if response is None:
            logger.debug(f"Ignoring non-approval event on {message_ref}")
            return None

        approval = await self.deps.store.get_approval_by_slack_message(message_ref, channel)
        if approval is None:
            logger.debug(f"No approval for Slack message {message_ref}")
            return None
        if approval.status != ApprovalStatus.PENDING:
            logger.info(f"Approval {approval.id} already {approval.status.value}, ignoring")
            return None

        run = await self.deps.store.get_pipeline_run_by_approval(approval.id)
        if run is None:
            logger.warning(f"Approval {approval.id} has no pipeline run")
            return None
        self._ensure_mutable(run)

        return await self._apply_decision(
            run, approval, response.decision, response.feedback, response.user_id, response.timestamp
        )

    async def resume_run(
        self,
        run_id: str,
        approved: bool = True,
        feedback: Optional[str] = None,
        decision: Optional[ApprovalDecision] = None,
    ) -> PipelineResult:
        """
        Resolve a paused run's pending approval as an operator.

        Raises:
            RecordNotFoundError: Unknown run
            RunAlreadyTerminalError: The run already finished
            ContentFactoryError: The run is not paused
        """
        run = await self._load_run(run_id)
        self._ensure_mutable(run)
        if run.status != RunStatus.PAUSED:
            raise ContentFactoryError(f"Run {run_id} is not paused (status: {run.status.value})")

        pending = await self.deps.store.get_pending_approvals(run_id)
        if not pending:
            raise ContentFactoryError(f"Run {run_id} has no pending approval")

        if decision is None:
            decision = ApprovalDecision.APPROVE if approved else ApprovalDecision.REJECT
        return await self._apply_decision(run, pending[0], decision, feedback, "operator", utc_now())

    async def _apply_decision(
        self,
        run: PipelineRun,
        approval: Approval,
        decision: ApprovalDecision,
        feedback: Optional[str],
        user_id: Optional[str],
        timestamp: Optional[datetime],
    ) -> PipelineResult:
        state = self._state_of(run)
        deps = self._deps_for(state.test_mode)
        log = PipelineLogger(deps.store, run.id, approval.stage)

        approval = await deps.store.update_approval(approval.id, {
            "status": ApprovalStatus.APPROVED if decision == ApprovalDecision.APPROVE else ApprovalStatus.REJECTED,
            "decision": decision,
            "feedback": feedback,
            "response_user_id": user_id,
            "response_timestamp": timestamp or utc_now(),
        })
        state.pending_approval_id = None
        state.status = RunStatus.RUNNING.value

        if decision == ApprovalDecision.APPROVE:
            await log.success(f"Approved by {user_id}")
            start = FinalizeRunNode() if state.finished else ExecuteWorkerNode()

        elif decision == ApprovalDecision.REQUEST_REVISION:
            state.revision_count += 1
            if state.revision_count > Config.MAX_REVISIONS:
                await log.error(f"Revision requested after {Config.MAX_REVISIONS} revisions, failing run")
                state.rejected_stage = approval.stage
                state.stop(f"Revision limit reached ({Config.MAX_REVISIONS})")
                start = FinalizeRunNode()
            else:
                target = self._revision_target(deps, state, approval.stage)
                await log.warn(f"Revision {state.revision_count} requested by {user_id}, rewinding to {target}: {feedback}")
                try:
                    await deps.slack.send_revision_request(approval, feedback or "", run.id)
                except Exception as e:
                    await log.error(f"Failed to send revision request: {e}")
                state.revision_feedback = feedback
                state.rewind_to(target)
                start = ExecuteWorkerNode()

        else:
            reason = f"Rejected by {user_id}"
            if feedback:
                reason = f"{reason}: {feedback}"
            await log.error(reason)
            state.rejected_stage = approval.stage
            state.stop(reason)
            start = FinalizeRunNode()

        return await self._drive(start, state, deps)

    @staticmethod
    def _revision_target(deps: FactoryDependencies, state: ContentRunState, stage: Optional[str]) -> str:
        target = stage
        if stage in deps.registry:
            target = deps.registry.spec(stage).revision_target or stage
        if target not in state.requested_workers:
            target = stage
        return target

    # =========================================================================
    # OPERATOR ACTIONS
    # =========================================================================

    async def fail_run(self, run_id: str, reason: str = "Failed by operator") -> PipelineResult:
        """
        Force a run to failed.

        Raises:
            RecordNotFoundError: Unknown run
            RunAlreadyTerminalError: The run already finished
        """
        run = await self._load_run(run_id)
        self._ensure_mutable(run)

        pending = await self.deps.store.get_pending_approvals(run_id)
        for approval in pending:
            await self.deps.store.update_approval(approval.id, {
                "status": ApprovalStatus.REJECTED,
                "decision": ApprovalDecision.REJECT,
                "feedback": reason,
                "response_user_id": "operator",
                "response_timestamp": utc_now(),
            })

        state = self._state_of(run)
        state.pending_approval_id = None
        if pending:
            state.rejected_stage = pending[0].stage
        state.stop(reason)
        return await self._drive(FinalizeRunNode(), state, self._deps_for(state.test_mode))

    async def retry_run(self, run_id: str) -> PipelineResult:
        """
        Start a new run for a failed run's failed and not-attempted workers.

        Artifacts of the failed run are carried forward. A run that ended at
        a gate nobody approved is retried from that gate's revision target.

        Raises:
            RecordNotFoundError: Unknown run
            ContentFactoryError: The run is not failed or has nothing to retry
        """
        run = await self._load_run(run_id)
        if run.status != RunStatus.FAILED:
            raise ContentFactoryError(f"Only failed runs can be retried (run {run_id} is {run.status.value})")
        if run.pipeline_type not in (PipelineType.CONTENT, PipelineType.PODCAST):
            raise ContentFactoryError(f"{run.pipeline_type.value} runs cannot be retried")

        state = self._state_of(run)
        retry = {w for w in state.requested_workers if w in state.stages_failed or w in state.not_attempted}
        if state.rejected_stage:
            target = self._revision_target(self.deps, state, state.rejected_stage)
            retry.update(state.requested_workers[state.requested_workers.index(target):])
        if not retry:
            raise ContentFactoryError(f"Run {run_id} has no failed or unattempted workers")

        workers = [w for w in state.requested_workers if w in retry]
        logger.info(f"Retrying run {run_id}: {workers}")
        return await self.run_content_pipeline(
            workers=workers,
            test_mode=state.test_mode,
            skip_failures=state.skip_failures,
            auto_approve=state.auto_approve,
            topic_id=state.topic_id or state.artifacts.topic_id,
            trigger_type=TriggerType.MANUAL,
            pipeline_type=PipelineType(state.pipeline_type),
            initial_artifacts=state.artifacts,
            source_content_date=state.source_content_date,
        )

    async def expire_stale_runs(self, older_than_hours: Optional[float] = None) -> List[str]:
        """
        Expire paused runs whose approval has waited too long.

        Disabled unless older_than_hours is given or APPROVAL_TIMEOUT_HOURS
        is set. Expired runs end in the `expired` state with an
        ApprovalTimeoutError message as their error.

        Returns:
            Ids of the runs that were expired
        """
        hours = older_than_hours if older_than_hours is not None else Config.APPROVAL_TIMEOUT_HOURS
        if hours is None:
            logger.debug("Approval timeout disabled")
            return []

        cutoff = utc_now() - timedelta(hours=hours)
        expired = []
        for run in await self.deps.store.list_pipeline_runs(status=RunStatus.PAUSED, limit=500):
            pending = await self.deps.store.get_pending_approvals(run.id)
            if not pending or any(a.created_at > cutoff for a in pending):
                continue

            timeout = ApprovalTimeoutError(run.id, pending[0].id)
            for approval in pending:
                await self.deps.store.update_approval(approval.id, {
                    "status": ApprovalStatus.EXPIRED,
                    "response_timestamp": utc_now(),
                })

            state = self._state_of(run)
            state.pending_approval_id = None
            state.final_status = RunStatus.EXPIRED.value
            state.stop(str(timeout))
            await self._drive(FinalizeRunNode(), state, self._deps_for(state.test_mode))
            logger.warning(str(timeout))
            expired.append(run.id)

        return expired

    async def get_run_status(self, run_id: str) -> Dict[str, Any]:
        """Run record, its logs and any pending approval."""
        run = await self.deps.store.get_pipeline_run(run_id)
        if run is None:
            return {"success": False, "error": f"PipelineRun not found: {run_id}"}
        return {
            "success": True,
            "run": run,
            "logs": await self.deps.store.get_pipeline_logs(run_id),
            "pending_approvals": await self.deps.store.get_pending_approvals(run_id),
        }

    # =========================================================================
    # SCHEDULED PIPELINES
    # =========================================================================

    async def _start_side_run(
        self,
        deps: FactoryDependencies,
        pipeline_type: PipelineType,
        trigger_type: TriggerType,
        options: Dict[str, Any],
    ) -> PipelineRun:
        return await deps.store.create_pipeline_run(PipelineRun(
            pipeline_type=pipeline_type,
            trigger_type=trigger_type,
            status=RunStatus.RUNNING,
            current_stage=None,
            options=options,
        ))

    async def _finish_side_run(
        self,
        deps: FactoryDependencies,
        run_id: str,
        success: bool,
        workflow_data: Dict[str, Any],
        error: Optional[str] = None,
    ) -> None:
        await deps.store.update_pipeline_run(run_id, {
            "status": RunStatus.COMPLETED if success else RunStatus.FAILED,
            "workflow_data": workflow_data,
            "error": error,
            "completed_at": utc_now(),
        })

    async def run_podcast_autopilot(
        self,
        lookback_days: int = 7,
        test_mode: bool = False,
        trigger_type: TriggerType = TriggerType.MANUAL,
    ) -> Dict[str, Any]:
        """
        Produce this week's episode from the most recently completed topic.

        Returns:
            {success, run_id, episode, source_content_id, source_content_date} or {success: False, error}
        """
        deps = self._deps_for(test_mode)
        cutoff = utc_now() - timedelta(days=lookback_days)
        topics = await deps.store.get_topics(statuses=[TopicStatus.COMPLETED])
        recent = [
            t for t in topics
            if t.english_post_id and t.completed_at and t.completed_at >= cutoff
        ]
        if not recent:
            logger.info(f"Podcast autopilot: no content completed in the last {lookback_days} days")
            return {"success": False, "error": f"No recent content found in the last {lookback_days} days"}

        topic = max(recent, key=lambda t: t.completed_at)
        pieces = await deps.store.get_content_pieces(topic_id=topic.id)
        piece = max(pieces, key=lambda p: p.updated_at) if pieces else None
        source_date = topic.completed_at.date().isoformat()

        result = await self.run_content_pipeline(
            workers=PODCAST_WORKERS,
            test_mode=test_mode,
            trigger_type=trigger_type,
            pipeline_type=PipelineType.PODCAST,
            initial_artifacts=RunArtifacts(
                topic_id=topic.id,
                content_piece_id=piece.id if piece else None,
                english_post_id=topic.english_post_id,
                english_title=piece.title_en if piece else None,
            ),
            source_content_date=source_date,
        )
        if not result.success:
            return {"success": False, "run_id": result.run_id, "error": result.error or "; ".join(result.errors)}

        episode = result.artifacts.episode
        return {
            "success": True,
            "run_id": result.run_id,
            "episode": episode.model_dump(mode="json") if episode else None,
            "source_content_id": topic.english_post_id,
            "source_content_date": source_date,
        }

    async def run_seo_optimizer(
        self,
        min_score_threshold: Optional[int] = None,
        max_posts_to_optimize: int = 5,
        test_mode: bool = False,
        trigger_type: TriggerType = TriggerType.MANUAL,
    ) -> Dict[str, Any]:
        """
        Enhance recently published posts that score below the threshold.

        Each post is isolated: a failure on one is recorded in `results` and
        the rest are still optimized.

        Returns:
            {success, run_id, posts_scanned, optimized_posts, average_score_improvement, results}
        """
        deps = self._deps_for(test_mode)
        threshold = min_score_threshold if min_score_threshold is not None else Config.SEO_OPTIMIZE_THRESHOLD
        run = await self._start_side_run(
            deps, PipelineType.SEO, trigger_type,
            {"min_score_threshold": threshold, "max_posts_to_optimize": max_posts_to_optimize, "test_mode": test_mode},
        )
        log = PipelineLogger(deps.store, run.id, "seo-optimizer")

        try:
            posts = await deps.wordpress.get_posts(status="publish", per_page=20)
        except Exception as e:
            await log.error(f"Failed to load published posts: {e}")
            await self._finish_side_run(deps, run.id, False, {}, str(e))
            return {"success": False, "run_id": run.id, "error": str(e)}

        candidates = []
        for post in posts:
            title = post["title"]["rendered"]
            content = post["content"]["rendered"]
            keyword = (post.get("meta") or {}).get("rank_math_focus_keyword") or title
            score = deps.scorer.calculate_score(content, title, keyword)
            if score < threshold:
                candidates.append((score, post, keyword))
        candidates.sort(key=lambda c: c[0])
        await log.info(f"Scanned {len(posts)} posts, {len(candidates)} below {threshold}")

        results = []
        for old_score, post, keyword in candidates[:max_posts_to_optimize]:
            title = post["title"]["rendered"]
            try:
                analysis = deps.scorer.analyze_issues(post["content"]["rendered"], title, keyword)
                enhanced = await deps.writer.enhance_content(
                    post["content"]["rendered"], title, keyword, analysis.issues, analysis.improvements
                )
                new_score = deps.scorer.calculate_score(enhanced, title, keyword)
                await deps.wordpress.update_post(post["id"], {
                    "content": deps.gutenberg.markdown_to_blocks(enhanced),
                    "meta": {"rank_math_focus_keyword": keyword, "rank_math_seo_score": new_score},
                })
                results.append({
                    "post_id": post["id"],
                    "title": title,
                    "success": True,
                    "old_score": old_score,
                    "new_score": new_score,
                })
                await log.success(f"Optimized post {post['id']}: {old_score} -> {new_score}")
            except Exception as e:
                results.append({"post_id": post["id"], "title": title, "success": False, "error": str(e)})
                await log.error(f"Failed to optimize post {post['id']}: {e}")

        optimized = [r for r in results if r["success"]]
        improvement = (
            sum(r["new_score"] - r["old_score"] for r in optimized) / len(optimized) if optimized else 0.0
        )

        if optimized:
            body = "\n".join(f"- {r['title']}: {r['old_score']} → {r['new_score']}" for r in optimized)
            title = f"SEO Optimizer: improved {len(optimized)} posts"
        else:
            body = f"All {len(posts)} scanned posts meet the SEO threshold ({threshold})."
            title = "SEO Optimizer: all posts meet threshold"
            if results:
                body = f"{len(results)} posts below {threshold} could not be optimized."
                title = "SEO Optimizer: no posts improved"
        try:
            await deps.slack.send_notification(title, body, run_id=run.id)
        except Exception as e:
            await log.error(f"Failed to send SEO notification: {e}")

        summary = {
            "posts_scanned": len(posts),
            "optimized_posts": len(optimized),
            "average_score_improvement": round(improvement, 1),
            "results": results,
        }
        await self._finish_side_run(deps, run.id, True, summary)
        return {"success": True, "run_id": run.id, **summary}

    async def run_data_healer(
        self,
        check_all_records: bool = True,
        auto_fix: bool = True,
        test_mode: bool = False,
        trigger_type: TriggerType = TriggerType.MANUAL,
    ) -> HealerResult:
        """
        Sweep topics for inconsistent records and repair them.

        Raises:
            Exception: The record store could not be read (the sweep never started)
        """
        deps = self._deps_for(test_mode)
        run = await self._start_side_run(
            deps, PipelineType.HEALER, trigger_type,
            {"check_all_records": check_all_records, "auto_fix": auto_fix, "test_mode": test_mode},
        )
        log = PipelineLogger(deps.store, run.id, "data-healer")

        try:
            result = await DataAutoHealer(deps, log).heal(check_all_records=check_all_records, auto_fix=auto_fix)
        except Exception as e:
            await self._finish_side_run(deps, run.id, False, {}, str(e))
            raise

        result.run_id = run.id
        await self._finish_side_run(deps, run.id, result.success, result.to_dict())
        if result.issues_found:
            try:
                await deps.slack.send_notification(
                    "Data healer",
                    f"{result.issues_found} issues found, {result.issues_fixed} fixed: {', '.join(result.healing_actions) or 'none'}",
                    run_id=run.id,
                )
            except Exception as e:
                await log.error(f"Failed to send healer notification: {e}")
        return result

    # =========================================================================
    # AUTOPILOT
    # =========================================================================

    async def run_scheduled_pipeline(
        self,
        name: str,
        options: Optional[Dict[str, Any]] = None,
        test_mode: bool = False,
        trigger_type: TriggerType = TriggerType.CRON,
    ) -> Dict[str, Any]:
        """Run one named pipeline (content, proposal, seo, podcast, healer) with its schedule options."""
        options = options or {}
        if name == "content":
            result = await self.run_content_pipeline(
                workers=options.get("workers"),
                skip_failures=options.get("skip_failures", False),
                test_mode=test_mode,
                trigger_type=trigger_type,
            )
            return result.to_dict()
        if name == "proposal":
            result = await self.propose_topic(test_mode=test_mode, trigger_type=trigger_type)
            return result.to_dict()
        if name == "seo":
            return await self.run_seo_optimizer(
                min_score_threshold=options.get("min_score_threshold"),
                max_posts_to_optimize=options.get("max_posts_to_optimize", 5),
                test_mode=test_mode,
                trigger_type=trigger_type,
            )
        if name == "podcast":
            return await self.run_podcast_autopilot(
                lookback_days=options.get("lookback_days", 7),
                test_mode=test_mode,
                trigger_type=trigger_type,
            )
        if name == "healer":
            result = await self.run_data_healer(
                check_all_records=options.get("check_all_records", True),
                auto_fix=options.get("auto_fix", True),
                test_mode=test_mode,
                trigger_type=trigger_type,
            )
            return result.to_dict()
        raise ValueError(f"Unknown pipeline: {name}")

    async def run_autopilot(
        self,
        now: Optional[datetime] = None,
        test_mode: bool = False,
        schedule: Optional[Dict[str, Any]] = None,
        only: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """
        Run every pipeline scheduled for today's weekday.

        Each pipeline is isolated: one pipeline raising does not stop the others.

        Args:
            now: Local time to dispatch for (defaults to now in SCHEDULE_TIMEZONE)
            test_mode: Use fake adapters
            schedule: Schedule config (defaults to config/schedule.yml)
            only: Restrict to these of today's pipelines
        """
        schedule = schedule or load_schedule_config()
        now = now or datetime.now(pytz.timezone(Config.SCHEDULE_TIMEZONE))
        day = now.strftime("%A").lower()
        names = pipelines_for_day(schedule, day)
        if only is not None:
            names = [n for n in names if n in only]
        logger.info(f"Autopilot for {day}: {names}")

        results: Dict[str, Any] = {}
        for name in names:
            try:
                results[name] = await self.run_scheduled_pipeline(
                    name, schedule["pipelines"].get(name), test_mode=test_mode
                )
            except Exception as e:
                logger.error(f"Autopilot pipeline {name} failed: {e}")
                results[name] = {"success": False, "error": str(e)}

        return {
            "success": all(r.get("success") for r in results.values()),
            "day": day,
            "pipelines": names,
            "results": results,
        }
