"""
Scheduled pipeline CLI commands

Run the healer, SEO optimizer and podcast autopilot on demand.
"""

import asyncio
from typing import Optional

import click

from ..pipelines.content_factory import FactoryDependencies, Orchestrator


@click.command(name="heal")
@click.option("--no-fix", is_flag=True, help="Only report issues")
@click.option("--test-mode", is_flag=True, help="Use fake adapters for every external system")
def heal_command(no_fix: bool, test_mode: bool):
    """Scan topics for inconsistent records and repair them."""
    orchestrator = Orchestrator(FactoryDependencies.create(test_mode=test_mode))
    result = asyncio.run(orchestrator.run_data_healer(auto_fix=not no_fix, test_mode=test_mode))

    click.echo(f"🔍 Scanned {result.records_scanned} topics")
    click.echo(f"⚠️  Issues found: {result.issues_found}")
    click.echo(f"🔧 Issues fixed: {result.issues_fixed}")
    for action in result.healing_actions:
        click.echo(f"   - {action}")
    for error in result.errors:
        click.echo(f"❌ {error}", err=True)


@click.command(name="seo")
@click.option("--threshold", type=int, help="Minimum acceptable SEO score (default: 90)")
@click.option("--max-posts", type=int, default=5, show_default=True, help="Posts to optimize at most")
@click.option("--test-mode", is_flag=True, help="Use fake adapters for every external system")
def seo_command(threshold: Optional[int], max_posts: int, test_mode: bool):
    """Enhance published posts that score below the threshold."""
    orchestrator = Orchestrator(FactoryDependencies.create(test_mode=test_mode))
    result = asyncio.run(orchestrator.run_seo_optimizer(
        min_score_threshold=threshold,
        max_posts_to_optimize=max_posts,
        test_mode=test_mode,
    ))
    if not result["success"]:
        click.echo(f"❌ {result['error']}", err=True)
        raise SystemExit(1)

    click.echo(f"📊 Scanned {result['posts_scanned']} posts, optimized {result['optimized_posts']}")
    click.echo(f"📈 Average improvement: {result['average_score_improvement']}")
    for item in result["results"]:
        if item["success"]:
            click.echo(f"   ✅ {item['title']}: {item['old_score']} → {item['new_score']}")
        else:
            click.echo(f"   ❌ {item['title']}: {item['error']}")


@click.command(name="podcast")
@click.option("--lookback-days", type=int, default=7, show_default=True)
@click.option("--test-mode", is_flag=True, help="Use fake adapters for every external system")
def podcast_command(lookback_days: int, test_mode: bool):
    """Produce this week's podcast episode from recent content."""
    orchestrator = Orchestrator(FactoryDependencies.create(test_mode=test_mode))
    result = asyncio.run(orchestrator.run_podcast_autopilot(lookback_days=lookback_days, test_mode=test_mode))
    if not result["success"]:
        click.echo(f"❌ {result['error']}", err=True)
        raise SystemExit(1)

    episode = result["episode"] or {}
    click.echo(f"🎙️  {episode.get('title')}")
    click.echo(f"   Audio: {episode.get('audio_url')}")
    click.echo(f"   Source: post {result['source_content_id']} ({result['source_content_date']})")
