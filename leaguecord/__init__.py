"""Temporary voice-chat groups: group bookkeeping, invite tracking, bot event handlers and a web application."""

__version__ = "0.1.0"