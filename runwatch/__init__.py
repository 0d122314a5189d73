"""
RunWatch - dispatch remote CI workflows and follow them to completion.

Triggers a workflow run, finds the run again through a correlation token,
streams step progress once per step and reports the final outcome.
"""

__version__ = "1.0.0"
