"""
Data models for the ViSi-Genie protocol.

This module contains Pydantic models representing:

- Outbound write messages (ReadObject, WriteObjectValue, string writes, contrast)
- Inbound report messages (ReportEvent, ReportObjectStatus)
- Acknowledgments (Acknowledge, NegativeAcknowledge)
- Serial port configuration
"""

from visigenie.models.config import PortConfiguration
from visigenie.models.messages import (
    MESSAGE_TYPES,
    Acknowledge,
    AcknowledgmentMessage,
    GenieMessage,
    NegativeAcknowledge,
    ReadObject,
    ReportEvent,
    ReportMessage,
    ReportObjectStatus,
    WriteContrast,
    WriteMessage,
    WriteObjectValue,
    WriteStringASCII,
    WriteStringUnicode,
)

__all__ = [
    # Base classes
    "GenieMessage",
    "WriteMessage",
    "ReportMessage",
    "AcknowledgmentMessage",
    # Write messages
    "ReadObject",
    "WriteObjectValue",
    "WriteStringASCII",
    "WriteStringUnicode",
    "WriteContrast",
    # Reports
    "ReportEvent",
    "ReportObjectStatus",
    # Acknowledgments
    "Acknowledge",
    "NegativeAcknowledge",
    "MESSAGE_TYPES",
    # Configuration
    "PortConfiguration",
]
