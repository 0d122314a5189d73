"""
Correlation tokens.

A token is created once per call, sent as a workflow input and expected
back verbatim inside one of the triggered run's job names.
"""

import uuid


def new_correlation_token() -> str:
    """Generate a fresh, globally unique correlation token."""
    return str(uuid.uuid4())
