#!/usr/bin/env python3
"""
Setup configuration for Framed Serialization.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read the contents of README file
this_directory = Path(__file__).parent
readme = this_directory / "README.md"
long_description = readme.read_text() if readme.exists() else ""

# Read requirements from requirements.txt
requirements = []
if (this_directory / "requirements.txt").exists():
    requirements = (this_directory / "requirements.txt").read_text().strip().split('\n')
    requirements = [req.strip() for req in requirements if req.strip() and not req.startswith('#')]

setup(
    name="framed-serialization",
    version="1.0.0",
    author="Project Think",
    author_email="",
    description="Self-describing serialization with pluggable compression framing and automatic codec selection",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=['formats*', 'pipeline*']),
    py_modules=[
        'framed_serialization',
        'serializer_configs',
        'base_classes',
        'errors',
        'transformers',
        'pack',
        'run_tests'
    ],
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: System :: Archiving :: Compression",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.8",
    install_requires=requirements,
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-cov",
            "pytest-mock",
            "black",
            "flake8",
            "mypy",
        ],
        "test": [
            "pytest>=7.0",
            "pytest-cov",
            "pytest-mock",
        ],
    },
    entry_points={
        "console_scripts": [
            "framed-pack=pack:main",
            "run-serialization-tests=run_tests:main",
        ],
    },
    keywords=[
        "serialization",
        "compression",
        "run-length-encoding",
        "gzip",
        "xz",
        "bzip2",
        "huffman",
    ],
)
