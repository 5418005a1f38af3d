"""
Content pipeline CLI commands

Start runs, resolve approvals and inspect run state.
"""

import asyncio
from typing import Optional

import click

from ..core.exceptions import ContentFactoryError
from ..pipelines.content_factory import BlogMaster, FactoryDependencies, Orchestrator, PipelineResult, build_registry


def _orchestrator(test_mode: bool = False) -> Orchestrator:
    return Orchestrator(FactoryDependencies.create(test_mode=test_mode))


def _display_result(result: PipelineResult):
    """Display a run result in terminal-friendly format"""
    click.echo("\n" + "=" * 60)
    click.echo(f"Run {result.run_id}: {result.status}")
    click.echo("=" * 60)

    for worker in result.completed_workers:
        click.echo(f"  ✅ {worker}")
    for error in result.errors:
        click.echo(f"  ❌ {error}")
    for worker in result.not_attempted:
        click.echo(f"  ⏭️  {worker} (not attempted)")

    artifacts = result.artifacts
    if artifacts.hebrew_post_url:
        click.echo(f"\n🇮🇱 {artifacts.hebrew_post_url}")
    if artifacts.english_post_url:
        click.echo(f"🇺🇸 {artifacts.english_post_url}")
    if result.awaiting_approval_id:
        click.echo(f"\n⏸️  Waiting for approval {result.awaiting_approval_id}")
        click.echo(f"   contentfactory approve {result.run_id}")
    if result.error:
        click.echo(f"\nError: {result.error}", err=True)


@click.command(name="run")
@click.option("--workers", help="Comma-separated worker ids (default: full content pipeline)")
@click.option("--test-mode", is_flag=True, help="Use fake adapters for every external system")
@click.option("--skip-failures", is_flag=True, help="Continue after a worker fails")
@click.option("--topic", "topic_id", help="Topic id to write about")
def run_command(workers: Optional[str], test_mode: bool, skip_failures: bool, topic_id: Optional[str]):
    """
    Run the content pipeline.

    Examples:
        contentfactory run
        contentfactory run --workers topic-manager,content-generator --test-mode
    """
    worker_ids = [w.strip() for w in workers.split(",") if w.strip()] if workers else None
    try:
        result = asyncio.run(_orchestrator(test_mode).run_content_pipeline(
            workers=worker_ids,
            test_mode=test_mode,
            skip_failures=skip_failures,
            topic_id=topic_id,
        ))
    except ContentFactoryError as e:
        click.echo(f"❌ {e}", err=True)
        raise SystemExit(1)

    _display_result(result)
    if not result.success:
        raise SystemExit(1)


@click.command(name="propose")
@click.option("--test-mode", is_flag=True, help="Use fake adapters for every external system")
def propose_command(test_mode: bool):
    """
    Propose a new topic and wait for a reviewer to accept it.

    Approving the proposal continues into the content pipeline:
        contentfactory approve <run_id>
    """
    try:
        result = asyncio.run(_orchestrator(test_mode).propose_topic(test_mode=test_mode, auto_approve=False))
    except ContentFactoryError as e:
        click.echo(f"❌ {e}", err=True)
        raise SystemExit(1)

    _display_result(result)
    if not result.success:
        raise SystemExit(1)


@click.command(name="approve")
@click.argument("run_id")
@click.option("--reject", is_flag=True, help="Reject instead of approving")
@click.option("--revise", "revision", help="Request a revision with this feedback")
@click.option("--feedback", help="Feedback recorded with the decision")
def approve_command(run_id: str, reject: bool, revision: Optional[str], feedback: Optional[str]):
    """
    Resolve the pending approval of a paused run.

    Examples:
        contentfactory approve 7f9c...
        contentfactory approve 7f9c... --revise "Shorten the introduction"
    """
    from ..core.models import ApprovalDecision

    if revision:
        decision, feedback = ApprovalDecision.REQUEST_REVISION, revision
    elif reject:
        decision = ApprovalDecision.REJECT
    else:
        decision = ApprovalDecision.APPROVE

    try:
        result = asyncio.run(_orchestrator().resume_run(run_id, feedback=feedback, decision=decision))
    except ContentFactoryError as e:
        click.echo(f"❌ {e}", err=True)
        raise SystemExit(1)

    _display_result(result)


@click.command(name="status")
@click.argument("run_id")
def status_command(run_id: str):
    """Show a run, its pending approval and its log."""
    status = asyncio.run(_orchestrator().get_run_status(run_id))
    if not status["success"]:
        click.echo(f"❌ {status['error']}", err=True)
        raise SystemExit(1)

    run = status["run"]
    click.echo(f"Run {run.id} ({run.pipeline_type.value}, {run.trigger_type.value}): {run.status.value}")
    click.echo(f"  Stage:     {run.current_stage or '-'}")
    click.echo(f"  Completed: {', '.join(run.stages_completed) or '-'}")
    click.echo(f"  Failed:    {', '.join(run.stages_failed) or '-'}")
    if run.error:
        click.echo(f"  Error:     {run.error}")
    for approval in status["pending_approvals"]:
        click.echo(f"  ⏸️  {approval.type.value}: {approval.related_title} ({approval.id})")

    click.echo("\nLog:")
    for entry in status["logs"]:
        stage = f"[{entry.stage}] " if entry.stage else ""
        click.echo(f"  {entry.timestamp:%Y-%m-%d %H:%M:%S} {entry.level.value.upper():7} {stage}{entry.message}")


@click.command(name="workers")
def workers_command():
    """List registered workers in dependency order."""
    registry = build_registry()
    for worker_id in registry.resolve_execution_order(registry.ids()):
        spec = registry.spec(worker_id)
        depends = f" ← {', '.join(spec.depends_on)}" if spec.depends_on else ""
        gate = " [approval]" if spec.requires_approval else ""
        schedule = ", ".join(spec.schedule) if spec.schedule else "on demand"
        click.echo(f"{worker_id}{depends}{gate} ({schedule})")


@click.command(name="batch")
@click.option("--test-mode", is_flag=True, help="Use fake adapters for every external system")
def batch_command(test_mode: bool):
    """Produce articles for every approved topic without a Hebrew post."""
    deps = FactoryDependencies.create(test_mode=test_mode)
    results = asyncio.run(BlogMaster(deps).process_all_pending(test_mode=test_mode))
    if not results:
        click.echo("No pending topics")
        return

    for result in results:
        if result.success:
            click.echo(f"✅ {result.topic_id}: he={result.hebrew_post_id} en={result.english_post_id}")
        else:
            click.echo(f"❌ {result.topic_id}: {'; '.join(result.errors)}")
    click.echo(f"\n{sum(r.success for r in results)}/{len(results)} topics completed")
