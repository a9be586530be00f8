"""Real-time room chat relay with AI replies."""

__version__ = "0.1.0"
