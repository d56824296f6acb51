"""
Serial port configuration for Genie displays.

Genie displays use 8 data bits, no parity and one stop bit. Only the baud
rate is selectable, and only from the discrete set the Workshop project
settings offer.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from visigenie.protocol.constants import BaudRate, ProtocolConstants


class PortConfiguration(BaseModel):
    """
    Transport parameters for one display connection.

    Immutable: a connection keeps the configuration it was opened with.

    Example:
        >>> config = PortConfiguration(baud_rate=115200)
        >>> config.baud_rate
        <BaudRate.B115200: 115200>
    """

    model_config = ConfigDict(frozen=True)

    baud_rate: BaudRate = ProtocolConstants.DEFAULT_BAUD_RATE
    bytesize: Literal[8] = ProtocolConstants.DEFAULT_DATA_BITS
    parity: Literal["N"] = "N"
    stopbits: Literal[1] = ProtocolConstants.DEFAULT_STOP_BITS
    read_chunk_size: int = Field(
        default=ProtocolConstants.DEFAULT_READ_CHUNK_SIZE,
        ge=1,
        le=4096,
        description="Maximum bytes requested per transport read",
    )
    write_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Seconds a write may take to drain, None to wait indefinitely",
    )

    def __str__(self) -> str:
        return f"{int(self.baud_rate)} {self.bytesize}{self.parity}{self.stopbits}"
