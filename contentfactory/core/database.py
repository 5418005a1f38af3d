"""
Database client and table names
"""

from typing import Optional
from supabase import create_client, Client
from .config import Config


TOPICS_TABLE = "topics"
CONTENT_PIECES_TABLE = "content_pieces"
PIPELINE_RUNS_TABLE = "pipeline_runs"
PIPELINE_LOGS_TABLE = "pipeline_logs"
APPROVALS_TABLE = "approvals"

_supabase_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """
    Get or create Supabase client (singleton pattern)

    Returns:
        Supabase client instance
    """
    global _supabase_client

    if _supabase_client is None:
        Config.validate()
        _supabase_client = create_client(
            Config.SUPABASE_URL,
            Config.SUPABASE_SERVICE_KEY
        )

    return _supabase_client


def reset_supabase_client():
    """Reset the Supabase client (useful for testing)"""
    global _supabase_client
    _supabase_client = None
