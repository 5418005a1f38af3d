"""
Tax4US Content Factory - Orchestration core for the bilingual content pipeline.

Runs the named content workers (topic-manager through podcast-producer) in
dependency order, pauses runs for Slack approval, and heals inconsistent
records in the content store.
"""

__version__ = "1.0.0"
__author__ = "Tax4US Team"
