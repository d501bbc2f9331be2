"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), delegates the work
to the ScanService and renders results and failures through the
UserInterface. Returns process exit codes.
"""

import logging

from ledgerscan.core.services.scan_service import ScanService
from ledgerscan.domain.interfaces.user_interface import UserInterface
from ledgerscan.domain.models.errors import CollectionSizeUnavailableError
from ledgerscan.infrastructure.monitoring.performance_tracker import PerformanceTracker

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1


class CommandHandler:
    """Handles incoming commands and delegates to the scan service."""

    def __init__(
        self,
        scan_service: ScanService,
        tracker: PerformanceTracker,
        ui: UserInterface,
        show_progress: bool = True,
    ):
        """Initializes the CommandHandler with required services."""
        self.scan_service = scan_service
        self.tracker = tracker
        self.ui = ui
        self.show_progress = show_progress
        if show_progress:
            self.tracker.subscribe(self.ui.display_progress)

    def _report_fatal(self, error: CollectionSizeUnavailableError) -> int:
        logger.error(f"Scan aborted: {error}", exc_info=True)
        self.ui.display_error(
            f"Scan aborted: the collection size could not be resolved ({type(error.cause).__name__}: {error.cause})"
        )
        return EXIT_FATAL

    async def handle_scan(self) -> int:
        """Handles the 'scan' command: holders, balances and the aggregate total."""
        logger.info("Handling 'scan' command")
        self.ui.display_info("Starting holder scan...")
        try:
            report = await self.scan_service.run()
        except CollectionSizeUnavailableError as e:
            return self._report_fatal(e)

        self.ui.display_scan_report(report)
        if report.holder_stats.skipped:
            self.ui.display_info(f"Skipped {report.holder_stats.skipped} non-existent items")
        if report.is_partial:
            self.ui.display_warning(
                f"Partial result: {report.holder_stats.failed} owner lookups and "
                f"{report.balance_stats.failed} balance lookups failed after all retries. "
                "The total excludes them."
            )
        if self.show_progress:
            self.ui.display_performance_summary(report.checkpoints, report.elapsed_s)
        return EXIT_OK

    async def handle_holders(self) -> int:
        """Handles the 'holders' command: unique holder resolution only."""
        logger.info("Handling 'holders' command")
        try:
            resolution = await self.scan_service.resolve_holders()
        except CollectionSizeUnavailableError as e:
            return self._report_fatal(e)

        self.ui.display_holders(resolution)
        if resolution.stats.is_partial:
            self.ui.display_warning(
                f"Partial result: {resolution.stats.failed} owner lookups failed after all retries."
            )
        return EXIT_OK
