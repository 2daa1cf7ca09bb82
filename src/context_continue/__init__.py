"""context-continue: session context tracking and restoration for AI coding agents."""

__version__ = "0.1.0"
