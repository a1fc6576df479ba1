"""
Base Dialect
============

Abstract base class for device control languages.
"""

from abc import ABC, abstractmethod
from typing import List


class BaseDialect(ABC):
    """Abstract base class for device program dialects."""

    name = ''
    start_marker = ''
    end_marker = ''
    line_separator = '\n'

    @abstractmethod
    def escape(self, value: str) -> str:
        """
        Make field data safe to embed in a program.

        Args:
            value: Raw field value

        Returns:
            Value with command characters neutralised
        """
        pass

    @abstractmethod
    def header(self, width: int, height: int) -> List[str]:
        """Commands that open a label of the given size in dots."""
        pass

    @abstractmethod
    def footer(self) -> List[str]:
        """Commands that close a label."""
        pass

    @abstractmethod
    def text(self, x: int, y: int, size: int, data: str) -> str:
        """Positioned text field, ``size`` in dots."""
        pass

    @abstractmethod
    def barcode(self, x: int, y: int, height: int, module_width: int, data: str) -> str:
        """Positioned Code 128 barcode."""
        pass

    @abstractmethod
    def quantity(self, copies: int) -> str:
        """Print quantity directive."""
        pass

    @abstractmethod
    def frame(self, body: str) -> str:
        """
        Ensure a program opens and closes with the dialect's markers.

        Args:
            body: Program text, possibly missing its markers

        Returns:
            The body unchanged when already framed, otherwise wrapped
        """
        pass

    @abstractmethod
    def with_quantity(self, code: str, copies: int) -> str:
        """Set the print quantity of an existing program."""
        pass

    @abstractmethod
    def validate(self, code: str, require_quantity: bool = False) -> None:
        """
        Check a program is complete before it reaches the bridge.

        Raises:
            DeviceCodeError: Program is empty, unframed or truncated
        """
        pass

    def build(self, commands: List[str], width: int, height: int, copies: int = 1) -> str:
        """Assemble a full program from field commands."""
        lines = self.header(width, height) + list(commands) + [self.quantity(copies)] + self.footer()
        return self.line_separator.join(lines)
