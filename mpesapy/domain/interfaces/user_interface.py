"""Interface for interacting with the user (output only).

Defines the contract for displaying results, errors, warnings and
information, allowing different UI implementations (e.g., console).
"""

import abc
from typing import Any, Mapping


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_result(self, title: str, values: Mapping[str, Any]) -> None:
        """Displays a structured result as key/value rows.

        Args:
            title: Heading for the result.
            values: The fields to show.
        """
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user."""
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user."""
        pass
