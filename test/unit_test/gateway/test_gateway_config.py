from __future__ import annotations

from sqlalchemy.engine import make_url

from ikoma_mcp.gateway.config import PostgresConfig


def test_url_escapes_credentials() -> None:
    config = PostgresConfig(host="db.internal", user="ikoma", password="p@ss/w#rd:1")

    url = make_url(config.url("app_demo").render_as_string(hide_password=False))

    assert url.host == "db.internal"
    assert url.port == 5432
    assert url.database == "app_demo"
    assert url.username == "ikoma"
    assert url.password == "p@ss/w#rd:1"
    assert url.drivername == "postgresql+asyncpg"


def test_url_defaults_to_admin_database() -> None:
    url = PostgresConfig(password="pw").url()

    assert url.database == "postgres"
    assert url.host == "localhost"


def test_url_overrides_endpoint_and_driver() -> None:
    url = PostgresConfig(user="ikoma", password="pw").url("stack", drivername="postgresql", host="stack-db", port=6543)

    assert url.render_as_string(hide_password=False) == "postgresql://ikoma:pw@stack-db:6543/stack"


def test_url_without_password() -> None:
    assert PostgresConfig(user="ikoma").url().render_as_string(hide_password=False) == (
        "postgresql+asyncpg://ikoma@localhost:5432/postgres"
    )
