"""
Setup script for lingo-core.

LingoFriends adaptive core is the decision engine behind the LingoFriends
language game. It serves three roles:

1. Affective filter monitoring - detect frustration and pick interventions
2. Difficulty calibration - keep content at i+1
3. Engagement decay - tree health from time away and gift protection

The 'lingo' command exposes the engine for inspection and session replay.
"""

from setuptools import find_packages, setup

setup(
    name="lingo-core",
    version="0.1.0",
    description="Adaptive-learning decision engine for the LingoFriends language game",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="LingoFriends",
    packages=find_packages(include=["lingo_core", "lingo_core.*"]),
    py_modules=["config"],
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # HTTP
        "httpx>=0.25.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "lingo=lingo_core.cli.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning language-acquisition adaptive affective-filter education",
)
