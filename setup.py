#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Manuscript Editor - Setup Configuration

Installs the editing pipeline (config, ai_providers, editorial) and the
reference ingestion command.
"""

from pathlib import Path

from setuptools import setup, find_packages

HERE = Path(__file__).parent


def read_requirements(name: str = "requirements.txt"):
    """Pinned runtime dependencies, comments and blanks skipped"""
    path = HERE / name
    if not path.exists():
        return []
    return [
        line.strip()
        for line in path.read_text(encoding="utf-8").splitlines()
        if line.strip() and not line.strip().startswith("#")
    ]


test_requirements = [
    "pytest>=7.4.0",
    "pytest-cov>=4.1.0",
    "pytest-asyncio>=0.21.0",
]

setup(
    name="manuscript-editor",
    version="1.0.0",
    description="Ten-stage manuscript editing pipeline grounded in embedded style-guide references",
    author="Manuscript Editor Team",
    python_requires=">=3.9",
    packages=find_packages(include=["config", "ai_providers", "editorial", "editorial.*"]),
    install_requires=read_requirements(),
    extras_require={
        "test": test_requirements,
        "dev": test_requirements + [
            "black>=23.0.0",
            "flake8>=6.0.0",
            "mypy>=1.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "ingest-references=editorial.retrieval.ingestion:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Text Processing :: Linguistic",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    keywords="manuscript editing style-guide llm retrieval embeddings",
)
