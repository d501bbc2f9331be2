import asyncio
import os
from typing import Dict, List, Optional, Set

import pytest
from typer.testing import CliRunner

from ledgerscan.core.run_context import RunContext
from ledgerscan.domain.interfaces.ledger_client import LedgerClient
from ledgerscan.domain.models.errors import AbsentEntityError
from ledgerscan.domain.models.scan import ScanConfig
from ledgerscan.infrastructure.config import settings


class FakeLedgerClient(LedgerClient):
    """In-memory ledger. Owners mapped to None do not exist.

    `owner_failures` / `balance_failures` give the number of transient errors
    raised for a key before it succeeds; use a large number for "always".
    Owners in `absent_balances` make `lookup_balance` raise AbsentEntityError.
    """

    def __init__(
        self,
        owners: Dict[int, Optional[str]],
        balances: Optional[Dict[str, int]] = None,
        size: Optional[int] = None,
        size_error: Optional[Exception] = None,
        owner_failures: Optional[Dict[int, int]] = None,
        balance_failures: Optional[Dict[str, int]] = None,
        absent_balances: Optional[Set[str]] = None,
        latency_s: float = 0.0,
    ):
        self.owners = owners
        self.balances = balances or {}
        self.size = len(owners) if size is None else size
        self.size_error = size_error
        self.owner_failures = dict(owner_failures or {})
        self.balance_failures = dict(balance_failures or {})
        self.absent_balances = set(absent_balances or ())
        self.latency_s = latency_s
        self.owner_calls: List[int] = []
        self.balance_calls: List[str] = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self.closed = False

    async def _enter(self) -> None:
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        await asyncio.sleep(self.latency_s)

    async def get_collection_size(self) -> int:
        if self.size_error is not None:
            raise self.size_error
        return self.size

    async def lookup_owner(self, item_id):
        self.owner_calls.append(item_id)
        await self._enter()
        try:
            if self.owner_failures.get(item_id, 0) > 0:
                self.owner_failures[item_id] -= 1
                raise ConnectionError(f"transient failure for item {item_id}")
            owner = self.owners.get(item_id)
            if owner is None:
                raise AbsentEntityError(f"item {item_id} does not exist")
            return owner
        finally:
            self.in_flight -= 1

    async def lookup_balance(self, owner):
        self.balance_calls.append(owner)
        await self._enter()
        try:
            if self.balance_failures.get(owner, 0) > 0:
                self.balance_failures[owner] -= 1
                raise TimeoutError(f"timeout for {owner}")
            if owner in self.absent_balances:
                raise AbsentEntityError(f"no account {owner}")
            return self.balances.get(owner, 0)
        finally:
            self.in_flight -= 1

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def make_client():
    """Factory for FakeLedgerClient instances."""
    return FakeLedgerClient


@pytest.fixture
def scan_config() -> ScanConfig:
    """Small batches and no backoff delay so tests stay fast."""
    return ScanConfig(
        concurrent_requests=4,
        owner_batch_size=2,
        balance_batch_size=2,
        retry_attempts=3,
        retry_delay_s=0.0,
        performance_logging=False,
    )


@pytest.fixture
def make_context(scan_config):
    """Builds a RunContext around a client, optionally with a custom config."""
    def _make(client: LedgerClient, config: Optional[ScanConfig] = None) -> RunContext:
        return RunContext.create(client, config or scan_config)
    return _make


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keeps tests away from the user's config file, .env and LEDGERSCAN_* variables."""
    for name in list(os.environ):
        if name.startswith(settings.ENV_PREFIX):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(settings, "DEFAULT_CONFIG_FILE", tmp_path / "missing.yaml")
    monkeypatch.setattr(settings, "find_dotenv_path", lambda: None)
    settings.reset_configuration()
    settings.clear_test_config()
    yield
    settings.reset_configuration()
    settings.clear_test_config()
