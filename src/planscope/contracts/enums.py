# src/planscope/contracts/enums.py
"""Status codes, dialects and event kinds shared across subsystem boundaries."""

from enum import StrEnum

from sqlalchemy.engine.url import make_url


class StatementState(StrEnum):
    """Lifecycle of a captured statement inside a correlation buffer.

    Transitions are strictly forward: OPEN -> COMPLETE -> FINALIZED.
    """

    OPEN = "open"
    COMPLETE = "complete"
    FINALIZED = "finalized"


class EventCategory(StrEnum):
    """Discriminates the two notification kinds a capture source emits."""

    STATEMENT = "statement"
    BIND = "bind"


class Dialect(StrEnum):
    """SQL dialect used to select an execution-plan provider.

    NONE disables plan retrieval entirely (no-op provider).
    """

    MYSQL = "mysql"
    POSTGRESQL = "postgresql"
    SQLITE = "sqlite"
    ORACLE = "oracle"
    H2 = "h2"
    NONE = "none"

    @classmethod
    def from_url(cls, url: str) -> "Dialect | None":
        """Map a SQLAlchemy URL to a dialect.

        Returns None when the backend has no known dialect, so the caller
        can decide how to fall back.

        Example:
            >>> Dialect.from_url("mysql+pymysql://u:p@host/db")
            <Dialect.MYSQL: 'mysql'>
        """
        backend = make_url(url).get_backend_name()
        if backend == "mariadb":
            return cls.MYSQL
        try:
            return cls(backend)
        except ValueError:
            return None
