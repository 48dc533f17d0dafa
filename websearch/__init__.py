"""Resilient web search & content extraction service."""

__version__ = "1.0.0"
