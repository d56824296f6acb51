"""
Serial port discovery.

Lists the serial ports visible to pySerial. Deciding which of them is a
Genie display is left to the application.
"""

from __future__ import annotations

from serial.tools import list_ports


def list_serial_ports() -> list[str]:
    """
    Return the device ids of every serial port pySerial can address.

    Returns:
        Port device paths (e.g. "/dev/ttyUSB0", "COM3"), sorted.
    """
    return sorted(port.device for port in list_ports.comports())
