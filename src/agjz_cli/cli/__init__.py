"""CLI helpers exposed for other modules."""

from .ui import StepTracker, print_rule, show_banner, track_kit_states

__all__ = ["StepTracker", "print_rule", "show_banner", "track_kit_states"]
