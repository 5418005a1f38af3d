"""
Scheduler Worker - Background process for the weekly autopilot.

This worker:
1. Wakes up every minute and computes "now" in SCHEDULE_TIMEZONE
2. From AUTOPILOT_HOUR on, triggers each of today's pipelines once
   (content on Monday/Thursday, SEO on Tuesday/Friday, podcast on
   Wednesday, healer every day - see config/schedule.yml)
3. Expires paused runs whose approval timed out (APPROVAL_TIMEOUT_HOURS)

Pipelines already triggered today by cron (found in pipeline_runs) are not
triggered again after a restart.

Run with: python -m contentfactory.worker.scheduler_worker
"""

import asyncio
import logging
import signal
import sys
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import pytz

from contentfactory.core.config import Config, load_schedule_config, pipelines_for_day
from contentfactory.core.models import TriggerType
from contentfactory.core.observability import setup_logfire

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 60

# Graceful shutdown flag
shutdown_requested = False


def handle_shutdown(signum, frame):
    """Handle shutdown signals gracefully."""
    global shutdown_requested
    logger.info(f"Received signal {signum}, initiating graceful shutdown...")
    shutdown_requested = True


# ============================================================================
# Scheduling
# ============================================================================

def local_now() -> datetime:
    return datetime.now(pytz.timezone(Config.SCHEDULE_TIMEZONE))


def due_pipelines(schedule: Dict[str, Any], now: datetime, triggered: Dict[str, date]) -> List[str]:
    """Today's pipelines that have not been triggered yet today."""
    if now.hour < Config.AUTOPILOT_HOUR:
        return []
    today = now.date()
    return [
        name for name in pipelines_for_day(schedule, now.strftime("%A"))
        if triggered.get(name) != today
    ]


async def load_triggered_today(store, now: datetime) -> Dict[str, date]:
    """Pipelines started by cron earlier today, keyed by pipeline type."""
    tz = now.tzinfo or pytz.timezone(Config.SCHEDULE_TIMEZONE)
    triggered = {}
    try:
        runs = await store.list_pipeline_runs(limit=200)
    except Exception as e:
        logger.error(f"Failed to load today's runs: {e}")
        return triggered

    for run in runs:
        started = run.started_at.astimezone(tz).date()
        if run.trigger_type == TriggerType.CRON and started == now.date():
            triggered[run.pipeline_type.value] = started
    return triggered


async def run_due_pipelines(
    orchestrator,
    schedule: Dict[str, Any],
    now: datetime,
    triggered: Dict[str, date],
) -> Optional[Dict[str, Any]]:
    """Trigger today's outstanding pipelines and mark them triggered."""
    due = due_pipelines(schedule, now, triggered)
    if not due:
        return None

    logger.info(f"Triggering {due} for {now:%A %Y-%m-%d}")
    for name in due:
        triggered[name] = now.date()

    result = await orchestrator.run_autopilot(now=now, schedule=schedule, only=due)
    for name, outcome in result["results"].items():
        if outcome.get("success"):
            logger.info(f"Pipeline {name} finished")
        else:
            logger.error(f"Pipeline {name} failed: {outcome.get('error') or outcome.get('errors')}")
    return result


async def expire_stale_runs(orchestrator) -> List[str]:
    try:
        expired = await orchestrator.expire_stale_runs()
    except Exception as e:
        logger.error(f"Failed to expire stale runs: {e}")
        return []
    if expired:
        logger.warning(f"Expired {len(expired)} paused run(s): {expired}")
    return expired


# ============================================================================
# Main Loop
# ============================================================================

async def run_scheduler():
    """Main scheduler loop."""
    from contentfactory.pipelines.content_factory import FactoryDependencies, Orchestrator

    orchestrator = Orchestrator(FactoryDependencies.create())
    schedule = load_schedule_config()

    logger.info("Scheduler worker started")
    logger.info(f"Timezone: {Config.SCHEDULE_TIMEZONE}, autopilot hour: {Config.AUTOPILOT_HOUR}")
    logger.info(f"Polling interval: {POLL_INTERVAL_SECONDS} seconds")

    triggered = await load_triggered_today(orchestrator.deps.store, local_now())

    while not shutdown_requested:
        try:
            await run_due_pipelines(orchestrator, schedule, local_now(), triggered)
            await expire_stale_runs(orchestrator)

            # Wait before next poll
            for _ in range(POLL_INTERVAL_SECONDS):  # Check shutdown flag every second
                if shutdown_requested:
                    break
                await asyncio.sleep(1)

        except Exception as e:
            logger.error(f"Error in scheduler loop: {e}")
            await asyncio.sleep(10)  # Brief pause on error

    logger.info("Scheduler worker stopped")


def main():
    """Entry point for the scheduler worker."""
    signal.signal(signal.SIGTERM, handle_shutdown)
    signal.signal(signal.SIGINT, handle_shutdown)
    setup_logfire(service_name="contentfactory-scheduler")

    logger.info("=" * 60)
    logger.info("Content Factory Scheduler Worker")
    logger.info("=" * 60)

    try:
        asyncio.run(run_scheduler())
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
