#!/usr/bin/env python3
"""
Setup script for the sensor device WebSocket stream client
"""

from setuptools import setup, find_packages

setup(
    name="sensorstream",
    version="0.1.0",
    description="WebSocket client that streams and prints samples from embedded sensor devices",
    packages=find_packages(include=["client", "client.*", "shared", "shared.*"]),
    install_requires=[
        "websockets>=15.0",
        "click==8.1.7",
        "typer==0.12.3",
        "rich==13.9.2",
        "PyYAML>=6.0.1",
    ],
    extras_require={
        "test": [
            "pytest==8.4.2",
            "pytest-asyncio==1.2.0",
        ],
    },
    python_requires=">=3.9",
    entry_points={
        'console_scripts': [
            'sensorstream=client.cli:main',
        ],
    },
)
