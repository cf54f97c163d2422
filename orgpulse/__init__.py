"""
orgpulse — organizational pattern detection.

Detects burnout risk, process degradation and team conflict from activity
events, records deduplicated insights and routes alerts to subscribers.
"""

__version__ = "0.1.0"
