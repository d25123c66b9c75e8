"""Render HTML/CSS slides with Chromium and package them as a PowerPoint deck."""

__version__ = "0.1.0"
