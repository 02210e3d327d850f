from dataclasses import dataclass

from flask import current_app, g

EXTENSION_KEY = "buildcheck"


@dataclass
class AppContext:
    """Process-wide collaborators handed to every request handler."""

    settings: object
    store: object
    analyzer: object


def get_context():
    return current_app.extensions[EXTENSION_KEY]


def get_conn():
    """One sqlite connection per request, closed at teardown."""
    if "db_conn" not in g:
        g.db_conn = get_context().store.connect()
    return g.db_conn


def close_conn(exc=None):
    conn = g.pop("db_conn", None)
    if conn is not None:
        conn.close()
