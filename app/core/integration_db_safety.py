from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.engine import make_url

LOCAL_DB_HOSTS = frozenset({"localhost", "127.0.0.1", "::1", "postgres", "furniture_postgres"})
TEST_DB_SUFFIXES = ("_test", "_tests")


class UnsafeIntegrationDatabaseError(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class IntegrationDbTarget:
    backend: str
    host: str
    database_name: str
    problems: tuple[str, ...]

    @property
    def is_safe(self) -> bool:
        return not self.problems


def inspect_integration_db_target(database_url: str) -> IntegrationDbTarget:
    """Describe where integration tests would TRUNCATE promo and order tables."""
    url = make_url(database_url)
    backend = url.get_backend_name()
    host = (url.host or "").strip().lower()
    database_name = (url.database or "").strip()

    problems: list[str] = []
    if backend != "postgresql":
        problems.append(f"backend '{backend}' is not PostgreSQL")
    if not database_name.lower().endswith(TEST_DB_SUFFIXES):
        problems.append(f"database '{database_name}' does not end with _test")
    if host not in LOCAL_DB_HOSTS:
        problems.append(f"host '{host}' is not a local test host")

    return IntegrationDbTarget(
        backend=backend,
        host=host,
        database_name=database_name,
        problems=tuple(problems),
    )


def assert_safe_integration_db(database_url: str) -> None:
    target = inspect_integration_db_target(database_url)
    if target.is_safe:
        return
    raise UnsafeIntegrationDatabaseError(
        "Integration tests truncate promo and order tables; refusing this database: "
        + "; ".join(target.problems)
        + ". Point DATABASE_URL at a local database such as 'furniture_test'."
    )
