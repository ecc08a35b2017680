"""
LingoFriends adaptive core.

Decision engine for a children's language game: turns per-activity outcomes
into an affective filter score, an intervention, and a target difficulty
level, plus a time-decay model for tree health.

Subpackages:
- core: shared domain models (profiles, activities, signals)
- adaptive: signal detection, filter monitoring, i+1 calibration, sessions
- engagement: tree health decay
- services: collaborator protocols, in-memory and HTTP implementations
- cli: the ``lingo`` command
"""

__version__ = "0.1.0"
