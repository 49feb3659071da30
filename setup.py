"""
ytscribe: setuptools build script.

Usage:
    # Development (editable install):
    pip install -e .[test]

    # Run the server:
    ytscribe            # or: python3 main.py

Runtime tools expected on PATH: yt-dlp, ffmpeg and (for the default
engine) the openai-whisper CLI.
"""

from setuptools import setup, find_namespace_packages

APP_NAME = "ytscribe"

setup(
    name=APP_NAME,
    version="1.0.0",
    description="Video-to-transcript job service with durable, resumable jobs",
    packages=find_namespace_packages(include=["ytscribe", "ytscribe.*"]),
    py_modules=["main"],
    install_requires=[
        "requests>=2.28.0",
        "flask>=2.3",
        "flask-cors>=4.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "ytscribe=main:main",
        ],
    },
    python_requires=">=3.10",
)
