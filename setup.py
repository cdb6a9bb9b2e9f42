"""
Schedule Reminder setup.py — Package configuration and CLI entry point.
"""

from setuptools import find_packages, setup

setup(
    name="schedule-reminder",
    version="1.0.0",
    description="Schedule Reminder — due-date reminders from Notion databases",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    entry_points={
        "console_scripts": [
            "schedule-reminder=schedule_reminder.cli:main",
        ],
    },
    install_requires=[
        "pydantic>=2.5",
        "cryptography>=42.0",
        "pyyaml>=6.0",
        "httpx>=0.27",
        "tzdata>=2024.1",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
)
