"""
Base Bridge Client
==================

Abstract base class for the transports that carry device programs to
printers.
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, Any, List


class BaseBridgeClient(ABC):
    """Abstract base class for bridge clients."""

    def __init__(self):
        # One writer on the physical connection at a time, across all queues
        self._send_lock = threading.Lock()
        self._connected = False

    @abstractmethod
    def connect(self) -> Dict[str, Any]:
        """
        Open (or verify) the connection to the bridge.

        Returns:
            Dict with success status and details
        """
        pass

    def is_connected(self) -> bool:
        """Whether the last connect or request reached the bridge."""
        return self._connected

    @abstractmethod
    def list_printers(self) -> List[str]:
        """
        List printer names the bridge can reach.

        Returns:
            Printer names
        """
        pass

    @abstractmethod
    def send(self, printer_name: str, device_code: str) -> Dict[str, Any]:
        """
        Send a raw device program. The copy count travels inside the program.

        Args:
            printer_name: Target printer
            device_code: Program text

        Returns:
            Dict with success status; 'error' set on failure
        """
        pass

    @abstractmethod
    def get_status(self, printer_name: str) -> Dict[str, Any]:
        """
        Get printer status.

        Returns:
            Dict with status information
        """
        pass
