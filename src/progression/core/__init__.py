"""Core business logic for the progression engine.

Modules:
- answer_evaluator: Grade a raw answer against an exercise's key
- attempt_tracker: One-retry attempt state machine per exercise
- progress_aggregator: Answer log writes and UnitProgress folding
- unlock_gate: Sequential access rule over a subject track
- placement_test: Placement tests and batch unlock
- practice: Session orchestration shared by the CLI and the API
- points: Points emitted per durable record
- policy: Thresholds and policy switches
"""

__all__ = [
    "answer_evaluator",
    "attempt_tracker",
    "progress_aggregator",
    "unlock_gate",
    "placement_test",
    "practice",
    "points",
    "policy",
]
