"""Elysian — emotional-support chat companion on top of Gemini."""

__version__ = "0.3.0"
