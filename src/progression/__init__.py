"""Learning progression engine: grading, attempts, progress and unlocks."""

__version__ = "0.1.0"
