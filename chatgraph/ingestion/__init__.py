"""
Ingestion Module

Batched, retried collection of contacts, chats and message samples from the
messaging gateway.
"""

from .accumulator import ChatSample, FirstWriteMap, IngestionAccumulator
from .orchestrator import IngestionOrchestrator
from .progress import ProgressReporter, ProgressUpdate, interpolate
from .records import ChatRecord, ContactRecord, MessageRecord, SelfRecord

__all__ = [
    "ChatRecord",
    "ChatSample",
    "ContactRecord",
    "FirstWriteMap",
    "IngestionAccumulator",
    "IngestionOrchestrator",
    "MessageRecord",
    "ProgressReporter",
    "ProgressUpdate",
    "SelfRecord",
    "interpolate",
]
