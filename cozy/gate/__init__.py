from cozy.gate.decide import GateDecision, Outcome, decide
from cozy.gate.facts import GateSnapshot
from cozy.gate.resolver import GateResolver
from cozy.gate.tracker import GateTracker

__all__ = ["GateDecision", "GateResolver", "GateSnapshot", "GateTracker", "Outcome", "decide"]
