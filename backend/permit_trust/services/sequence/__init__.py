"""Per-period document number sequence."""

from permit_trust.services.sequence.counter_service import CounterInfo, SequenceCounterService
from permit_trust.services.sequence.exceptions import CounterContentionError, InvalidCounterReset
from permit_trust.services.sequence.formatting import format_document_number

__all__ = [
    "CounterContentionError",
    "CounterInfo",
    "InvalidCounterReset",
    "SequenceCounterService",
    "format_document_number",
]
