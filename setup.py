"""
Setup configuration for barfeeds.

Status-bar feeds: bluetooth, audio and weather line producers.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read requirements
requirements_file = Path(__file__).parent / "requirements.txt"
requirements = requirements_file.read_text().strip().split("\n") if requirements_file.exists() else []

# Read long description from README if it exists
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text() if readme_file.exists() else ""

setup(
    name="barfeeds",
    version="0.3.0",
    description="Independent status-bar feeds printing one line per update",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["barfeeds", "barfeeds.*"]),
    install_requires=requirements,
    python_requires=">=3.11",
    entry_points={
        "console_scripts": [
            "barfeeds=barfeeds.__main__:main",
            "barfeeds-bluetooth=barfeeds.__main__:bluetooth_main",
            "barfeeds-pulseaudio=barfeeds.__main__:pulseaudio_main",
            "barfeeds-weather=barfeeds.__main__:weather_main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
        ],
    },
)
