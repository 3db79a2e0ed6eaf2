"""
siteback: quest session backend.

Players authenticate, submit rate attempts for scheduled sessions and read
per-session leaderboards; administrators create and delete sessions.
"""

__version__ = "1.0.0"
