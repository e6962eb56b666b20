#!/usr/bin/env python3
"""
Setup configuration for Let's Listen
A proxy gateway and playback client for the Audius music API
"""

from setuptools import setup, find_packages

# Read README for long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Core requirements (always installed)
core_requirements = [
    "flask>=3.0.0",
    "requests>=2.31.0",
    "aiohttp>=3.9.1",
    "click>=8.1.7",
    "rich-click>=1.7.0",
    "pyyaml>=6.0.1",
    "tqdm>=4.66.1",
    "colorama>=0.4.6",
    "python-dotenv>=1.0.0",
]

setup(
    name="lets-listen",
    version="1.0.0",
    author="Let's Listen Team",
    description="Search and play Audius music through a small proxy with CDN fallback",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Environment :: Web Environment",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Sound/Audio :: Players",
        "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    ],
    python_requires=">=3.10",
    install_requires=core_requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.3",
            "pytest-asyncio>=0.21.1",
            "black>=23.11.0",
            "flake8>=6.1.0",
            "mypy>=1.7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "lets-listen=lets_listen.cli:main",
        ],
    },
    keywords="audius music streaming proxy player cli",
)
