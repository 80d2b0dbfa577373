"""
Setup script for neuroforge-core.

NeuroForge core is the scheduling and planning library behind the
NeuroForge microlearning product. It provides:

1. SM-2 Spaced Repetition - review intervals, due queues, mastery status
2. Learning-Path Planning - prerequisite-graph frontier and ranking
3. Session Orchestration - grade submission, unit completion, cached plans

The 'neuroforge' command is a thin terminal front end over the library.
"""

from setuptools import find_packages, setup

setup(
    name="neuroforge-core",
    version="1.0.0",
    description="Spaced repetition scheduling and prerequisite-graph learning paths",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="NeuroForge",
    packages=find_packages(include=["neuroforge", "neuroforge.*"]),
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Database
        "sqlalchemy>=2.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
        "test": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
        ],
        "postgres": [
            "psycopg2-binary>=2.9.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "neuroforge=neuroforge.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning spaced-repetition sm2 curriculum education",
)
