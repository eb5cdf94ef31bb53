"""Quick connectivity check for the catalog Postgres database."""

from __future__ import annotations

from vidcat.db.connection import open_connection
from vidcat.db.repositories import RepositoryTransportError


def main() -> None:
    """Connect with DATABASE_URL and report how many videos are stored."""

    try:
        conn = open_connection()
    except RepositoryTransportError as exc:
        print("Connection failed:", exc)
        return

    try:
        with conn.cursor() as cur:
            cur.execute("SELECT platform, COUNT(*) FROM videos GROUP BY platform ORDER BY platform;")
            rows = cur.fetchall()
        print("Connection successful, videos per platform:", dict(rows))
    finally:
        conn.close()


if __name__ == "__main__":
    main()
