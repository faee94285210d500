"""Position-update decision engine exports."""

from .decision import DecisionEngine, DecisionOutcome, EngineTunables

__all__ = ["DecisionEngine", "DecisionOutcome", "EngineTunables"]
