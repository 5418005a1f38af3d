"""
Setup configuration for contentfactory package.
"""

from setuptools import setup, find_packages

setup(
    name="tax4us-content-factory",
    version="1.0.0",
    description="Tax4US bilingual content pipeline: worker orchestration, Slack approvals and data healing",
    packages=find_packages(include=["contentfactory", "contentfactory.*"]),
    python_requires=">=3.9",
    install_requires=[
        "pydantic>=2.0",
        "pydantic-graph>=0.4,<2",
        "supabase>=2.0",
        "httpx>=0.25",
        "tenacity>=8.2",
        "anthropic>=0.40",
        "click>=8.1",
        "python-dotenv>=1.0",
        "PyYAML>=6.0",
        "logfire>=2.0",
        "pytz>=2023.3",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.21",
        ],
    },
    entry_points={
        "console_scripts": [
            "contentfactory=contentfactory.cli.main:cli",
            "contentfactory-scheduler=contentfactory.worker.scheduler_worker:main",
        ],
    },
)
