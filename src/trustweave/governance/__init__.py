"""Human-in-the-loop governance: review selection, feedback, model updates."""

from trustweave.governance.routing import ReviewRoutingRules, load_routing_rules
from trustweave.governance.active_learning import ActiveLearner
from trustweave.governance.feedback_loop import FeedbackLoop
from trustweave.governance.scheduler import PeriodicTask

__all__ = [
    "ReviewRoutingRules",
    "load_routing_rules",
    "ActiveLearner",
    "FeedbackLoop",
    "PeriodicTask",
]
