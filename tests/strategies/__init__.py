"""
Hypothesis strategies for property-based testing.

Provides strategies for attendee identifiers and the QR payload shapes
scanners send.
"""

from .payload_strategies import (
    attendee_code_strategy,
    email_strategy,
    event_label_strategy,
    labeled_payload_strategy,
    name_strategy,
    payload_fields_strategy,
)

__all__ = [
    "attendee_code_strategy",
    "email_strategy",
    "event_label_strategy",
    "labeled_payload_strategy",
    "name_strategy",
    "payload_fields_strategy",
]
