"""Interface for interacting with the user (output only).

Defines the contract for displaying information, errors, warnings,
progress and scan results, allowing different UI implementations
(e.g., rich console, plain logs).
"""

import abc
from typing import Any, Dict

from ledgerscan.domain.events.scan_events import BatchCompleted
from ledgerscan.domain.models.scan import HolderResolution, ScanReport


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user.

        Args:
            error_message: The error message string.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user.

        Args:
            warning_message: The warning message string.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user.

        Args:
            info_message: The informational message string.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_progress(self, event: BatchCompleted) -> None:
        """Displays progress after a batch of lookups has completed."""
        pass

    @abc.abstractmethod
    def display_scan_report(self, report: ScanReport) -> None:
        """Displays the aggregate total and per-stage statistics of a full scan."""
        pass

    @abc.abstractmethod
    def display_holders(self, resolution: HolderResolution) -> None:
        """Displays the outcome of a holders-only run."""
        pass

    def display_performance_summary(self, checkpoints: Dict[str, float], total_seconds: float) -> None:
        """Displays named timing checkpoints. Optional for implementations.

        Args:
            checkpoints: Checkpoint name mapped to seconds since the run started.
            total_seconds: Total elapsed time of the run.
        """
        pass
