"""Database URL helpers for Alembic migrations.

The application connects with psycopg2 and accepts either a URL or a libpq
key=value DSN in DATABASE_URL; Alembic needs a SQLAlchemy URL. Kept apart
from env.py so they can be tested without an alembic context.
"""

from __future__ import annotations

import os
import re
from urllib.parse import quote_plus, urlparse, urlunparse

DRIVER_SCHEME = "postgresql+psycopg2"

# key=value, key='quoted value', with backslash escapes inside quotes
_DSN_TOKEN = re.compile(r"\s*(\w+)\s*=\s*(?:'((?:[^'\\]|\\.)*)'|(\S*))")


def parse_libpq_dsn(dsn: str) -> dict[str, str]:
    tokens: dict[str, str] = {}
    for match in _DSN_TOKEN.finditer(dsn):
        key, quoted, bare = match.groups()
        if quoted is not None:
            tokens[key] = re.sub(r"\\(.)", r"\1", quoted)
        else:
            tokens[key] = bare
    return tokens


def libpq_dsn_to_url(dsn: str) -> str:
    """Convert a libpq key=value DSN to a SQLAlchemy URL.

    A host starting with "/" is a unix socket directory and is passed as
    the host query parameter.
    """
    tokens = parse_libpq_dsn(dsn)
    password = tokens.get("password") or os.environ.get("DB_PASSWORD", "")

    user = quote_plus(tokens.get("user", ""))
    auth = f"{user}:{quote_plus(password)}" if password else user
    dbname = quote_plus(tokens.get("dbname", ""))
    host = tokens.get("host", "localhost")
    port = tokens.get("port", "5432")

    if host.startswith("/"):
        return f"{DRIVER_SCHEME}://{auth}@/{dbname}?host={quote_plus(host)}"
    return f"{DRIVER_SCHEME}://{auth}@{host}:{port}/{dbname}"


def normalize_url(url: str) -> str:
    """Force the psycopg2 driver and fill in DB_PASSWORD when missing."""
    scheme, _, rest = url.partition("://")
    if scheme in ("postgres", "postgresql"):
        url = f"{DRIVER_SCHEME}://{rest}"

    password = os.environ.get("DB_PASSWORD", "")
    parsed = urlparse(url)
    if password and not parsed.password and parsed.hostname:
        netloc = f"{quote_plus(parsed.username or '')}:{quote_plus(password)}@{parsed.hostname}"
        if parsed.port:
            netloc += f":{parsed.port}"
        url = urlunparse(parsed._replace(netloc=netloc))
    return url


def get_database_url() -> str:
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is required to run migrations")
    if "://" in url:
        return normalize_url(url)
    return libpq_dsn_to_url(url)
