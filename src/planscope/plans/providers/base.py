# src/planscope/plans/providers/base.py
"""Base class for plan providers.

Owns the error policy shared by every dialect: explain() never raises, a
failed or timed-out plan query becomes an empty plan plus a warning.
Subclasses only implement _fetch_plan() and render().
"""

from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import ClassVar

import structlog

from planscope.contracts.enums import Dialect
from planscope.contracts.errors import PlanProviderError
from planscope.contracts.events import PlanRow
from planscope.plans.protocols import QueryExecutorProtocol

logger = structlog.get_logger(__name__)


class BasePlanProvider(ABC):
    """Shared plumbing for dialect plan providers.

    Thread Safety:
        explain() may be called concurrently from any capture thread. With a
        timeout configured, plan queries run on a small private worker pool;
        a query that outlives its timeout keeps its worker busy until the
        driver returns, but the capturing thread moves on immediately.
    """

    _name: ClassVar[str]
    dialect: ClassVar[Dialect]

    def __init__(
        self,
        executor: QueryExecutorProtocol | None,
        *,
        timeout_seconds: float | None = None,
        max_workers: int = 2,
    ) -> None:
        """Initialize the provider.

        Args:
            executor: Collaborator that runs SQL against the database
            timeout_seconds: Abandon plan queries after this long. None
                waits indefinitely.
            max_workers: Worker threads used when a timeout is configured

        Raises:
            PlanProviderError: If executor is None
        """
        if executor is None:
            raise PlanProviderError(self._name, "a query executor is required")
        self._executor = executor
        self._timeout_seconds = timeout_seconds
        self._pool: ThreadPoolExecutor | None = None
        if timeout_seconds is not None:
            self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=f"planscope-{self._name}")

    @property
    def name(self) -> str:
        return self._name

    def explain(self, literal_sql: str) -> list[PlanRow]:
        """Fetch the execution plan, or an empty plan on any failure."""
        try:
            return self._fetch_with_timeout(literal_sql)
        except Exception as e:
            logger.warning(
                "Execution plan unavailable",
                provider=self._name,
                error_type=type(e).__name__,
                error=str(e),
                sql=literal_sql,
            )
            return []

    def _fetch_with_timeout(self, literal_sql: str) -> list[PlanRow]:
        pool = self._pool
        if pool is None:
            return self._fetch_plan(literal_sql)
        future = pool.submit(self._fetch_plan, literal_sql)
        try:
            return future.result(timeout=self._timeout_seconds)
        except FutureTimeoutError:
            future.cancel()
            raise PlanProviderError(self._name, f"plan query timed out after {self._timeout_seconds}s") from None

    @abstractmethod
    def _fetch_plan(self, literal_sql: str) -> list[PlanRow]:
        """Run the dialect's plan query. May raise; explain() handles it."""
        ...

    @abstractmethod
    def render(self, rows: list[PlanRow]) -> str:
        """Render plan rows as display text."""
        ...

    def close(self) -> None:
        """Release worker threads. Safe to call more than once."""
        if self._pool is not None:
            self._pool.shutdown(wait=False, cancel_futures=True)
            self._pool = None
