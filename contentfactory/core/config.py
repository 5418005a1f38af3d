"""
Configuration management for the Content Factory
"""

import os
import logging
import yaml
from pathlib import Path
from typing import Optional, Dict, List, Any
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def _optional_float(name: str) -> Optional[float]:
    value = os.getenv(name, '')
    return float(value) if value else None


class Config:
    """Application configuration"""

    # Supabase (record store)
    SUPABASE_URL: str = os.getenv('SUPABASE_URL', '')
    SUPABASE_SERVICE_KEY: str = os.getenv('SUPABASE_SERVICE_KEY', '')

    # Claude (text generation)
    ANTHROPIC_API_KEY: str = os.getenv('ANTHROPIC_API_KEY', '')
    CLAUDE_MODEL: str = os.getenv('CLAUDE_MODEL', 'claude-sonnet-4-5')  # Articles, plans, social copy
    CLAUDE_FAST_MODEL: str = os.getenv('CLAUDE_FAST_MODEL', 'claude-haiku-4-5')  # Translation, SEO metadata

    # WordPress (publishing target)
    WORDPRESS_API_URL: str = os.getenv('WORDPRESS_API_URL', '')  # e.g., "https://tax4us.co.il/wp-json/wp/v2"
    WORDPRESS_USERNAME: str = os.getenv('WORDPRESS_USERNAME', '')
    WORDPRESS_APP_PASSWORD: str = os.getenv('WORDPRESS_APP_PASSWORD', '')

    # Slack (approval channel)
    SLACK_BOT_TOKEN: str = os.getenv('SLACK_BOT_TOKEN', '')
    SLACK_APPROVAL_CHANNEL_ID: str = os.getenv('SLACK_APPROVAL_CHANNEL_ID', '')

    # Kie.ai (image/video generation)
    KIE_API_KEY: str = os.getenv('KIE_API_KEY', '')

    # ElevenLabs (podcast audio)
    ELEVENLABS_API_KEY: str = os.getenv('ELEVENLABS_API_KEY', '')
    ELEVENLABS_VOICE_ID: str = os.getenv('ELEVENLABS_VOICE_ID', '')

    # Upload-Post (social publishing)
    UPLOAD_POST_TOKEN: str = os.getenv('UPLOAD_POST_TOKEN', '')

    # Generation job polling
    GENERATION_POLL_ATTEMPTS: int = int(os.getenv('GENERATION_POLL_ATTEMPTS', '10'))
    GENERATION_POLL_INTERVAL: float = float(os.getenv('GENERATION_POLL_INTERVAL', '5'))
    VIDEO_POLL_ATTEMPTS: int = int(os.getenv('VIDEO_POLL_ATTEMPTS', '60'))
    VIDEO_POLL_INTERVAL: float = float(os.getenv('VIDEO_POLL_INTERVAL', '10'))

    # Batch processing
    BATCH_CONCURRENCY: int = int(os.getenv('BATCH_CONCURRENCY', '2'))

    # SEO thresholds
    SEO_ENHANCE_THRESHOLD: int = int(os.getenv('SEO_ENHANCE_THRESHOLD', '80'))
    SEO_OPTIMIZE_THRESHOLD: int = int(os.getenv('SEO_OPTIMIZE_THRESHOLD', '90'))

    # Approval gate
    MAX_REVISIONS: int = int(os.getenv('MAX_REVISIONS', '3'))
    APPROVAL_TIMEOUT_HOURS: Optional[float] = _optional_float('APPROVAL_TIMEOUT_HOURS')  # None = wait forever

    # Scheduling
    SCHEDULE_TIMEZONE: str = os.getenv('SCHEDULE_TIMEZONE', 'Asia/Jerusalem')
    SCHEDULE_CONFIG_PATH: str = os.getenv('SCHEDULE_CONFIG_PATH', '')
    AUTOPILOT_HOUR: int = int(os.getenv('AUTOPILOT_HOUR', '9'))  # Local hour the daily pipelines start

    @classmethod
    def validate(cls) -> bool:
        """Validate required configuration"""
        required = {
            'SUPABASE_URL': cls.SUPABASE_URL,
            'SUPABASE_SERVICE_KEY': cls.SUPABASE_SERVICE_KEY,
        }

        missing = [k for k, v in required.items() if not v]

        if missing:
            raise ValueError(f"Missing required configuration: {', '.join(missing)}")

        return True

    @classmethod
    def validate_live_mode(cls) -> bool:
        """Validate the adapter credentials needed outside test mode"""
        cls.validate()
        required = {
            'ANTHROPIC_API_KEY': cls.ANTHROPIC_API_KEY,
            'WORDPRESS_API_URL': cls.WORDPRESS_API_URL,
            'WORDPRESS_USERNAME': cls.WORDPRESS_USERNAME,
            'WORDPRESS_APP_PASSWORD': cls.WORDPRESS_APP_PASSWORD,
        }

        missing = [k for k, v in required.items() if not v]

        if missing:
            raise ValueError(f"Missing live-mode configuration: {', '.join(missing)}")

        return True

    @classmethod
    def get(cls, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get configuration value"""
        return getattr(cls, key, default)


# ============================================================================
# Schedule configuration
# ============================================================================

DEFAULT_SCHEDULE: Dict[str, Any] = {
    'days': {
        'monday': ['content'],
        'tuesday': ['seo'],
        'wednesday': ['podcast'],
        'thursday': ['content'],
        'friday': ['seo'],
        'saturday': [],
        'sunday': [],
    },
    'daily': ['healer'],
    'pipelines': {
        'content': {
            'workers': None,  # None = the six content workers (no podcast-producer)
            'skip_failures': False,
        },
        'seo': {
            'min_score_threshold': 90,
            'max_posts_to_optimize': 5,
        },
        'podcast': {
            'lookback_days': 7,
        },
        'healer': {
            'check_all_records': True,
            'auto_fix': True,
        },
    },
}


def load_schedule_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the weekly trigger schedule from YAML.

    Missing keys fall back to DEFAULT_SCHEDULE; a missing file means the
    default schedule is used as-is.

    Args:
        path: YAML path (defaults to SCHEDULE_CONFIG_PATH or config/schedule.yml)

    Returns:
        Dict with 'days', 'daily' and 'pipelines' keys
    """
    if path is None:
        path = Config.SCHEDULE_CONFIG_PATH or str(
            Path(__file__).parent.parent.parent / "config" / "schedule.yml"
        )

    config_path = Path(path)
    if not config_path.exists():
        logger.info(f"Schedule config not found at {config_path}, using defaults")
        return _merge_schedule({})

    with open(config_path, 'r') as f:
        data = yaml.safe_load(f) or {}

    return _merge_schedule(data)


def _merge_schedule(data: Dict[str, Any]) -> Dict[str, Any]:
    merged = {
        'days': dict(DEFAULT_SCHEDULE['days']),
        'daily': list(DEFAULT_SCHEDULE['daily']),
        'pipelines': {k: dict(v) for k, v in DEFAULT_SCHEDULE['pipelines'].items()},
    }

    for day, pipelines in (data.get('days') or {}).items():
        merged['days'][day.lower()] = list(pipelines or [])

    if 'daily' in data:
        merged['daily'] = list(data['daily'] or [])

    for name, options in (data.get('pipelines') or {}).items():
        merged['pipelines'].setdefault(name, {}).update(options or {})

    return merged


def pipelines_for_day(schedule: Dict[str, Any], day_name: str) -> List[str]:
    """Pipelines scheduled for a weekday name, followed by the daily ones."""
    pipelines = list(schedule['days'].get(day_name.lower(), []))
    for name in schedule.get('daily', []):
        if name not in pipelines:
            pipelines.append(name)
    return pipelines
