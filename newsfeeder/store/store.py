"""SQLite state store implementation."""

import json
import sqlite3
import threading
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, date, datetime
from pathlib import Path

import structlog

from newsfeeder.store.errors import (
    CandidateKeywordNotFoundError,
    CategoryNotFoundError,
    ConnectionError as StoreConnectionError,
    ContentNotFoundError,
    DuplicateArchiveError,
    UserNotFoundError,
)
from newsfeeder.store.metrics import StoreMetrics, TransactionContext
from newsfeeder.store.migrations import CURRENT_VERSION, MigrationManager
from newsfeeder.store.models import (
    CandidateKeyword,
    Category,
    ContentItem,
    DailyArchive,
    ExposureCandidate,
    ExposureRecord,
    Keyword,
    KeywordWeight,
    PreferenceSnapshot,
    RateLimitCounter,
    Summary,
    User,
)


logger = structlog.get_logger()


class SqliteStore:
    """SQLite store backing content, AI results, quotas and daily archives.

    Implements every persistence protocol in ``newsfeeder.store.protocols``.
    A single connection is shared across threads and serialized with a
    re-entrant lock; quota increments rely on conditional UPDATEs so they
    stay atomic across processes sharing the same database file.
    """

    def __init__(self, db_path: Path | str, run_id: str | None = None) -> None:
        """Initialize the store.

        Args:
            db_path: Path to SQLite database file.
            run_id: Optional run ID for logging context.
        """
        self._db_path = Path(db_path) if isinstance(db_path, str) else db_path
        self._run_id = run_id or str(uuid.uuid4())
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._metrics = StoreMetrics.get_instance()
        self._log = logger.bind(
            component="store",
            run_id=self._run_id,
            db_path=str(self._db_path),
        )

    @property
    def db_path(self) -> Path:
        """Get the database path."""
        return self._db_path

    @property
    def is_connected(self) -> bool:
        """Check if connected to database."""
        return self._conn is not None

    def connect(self) -> None:
        """Open connection to database and apply migrations.

        Creates the database file and parent directories if they don't exist.
        """
        if self._conn is not None:
            return

        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._log.info("connecting_to_database")

        self._conn = sqlite3.connect(
            str(self._db_path), check_same_thread=False, timeout=30.0
        )
        self._conn.row_factory = sqlite3.Row

        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")
        self._conn.execute("PRAGMA foreign_keys=ON")

        migration_mgr = MigrationManager(self._conn)
        old_version = migration_mgr.get_current_version()
        applied = migration_mgr.apply_migrations()

        self._log.info(
            "database_connected",
            old_version=old_version,
            new_version=CURRENT_VERSION,
            migrations_applied=applied,
        )

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            self._log.info("database_closed")

    def __enter__(self) -> "SqliteStore":
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Context manager exit."""
        self.close()

    def _ensure_connected(self) -> sqlite3.Connection:
        """Ensure database is connected.

        Returns:
            The database connection.

        Raises:
            StoreConnectionError: If not connected.
        """
        if self._conn is None:
            raise StoreConnectionError("Database not connected. Call connect() first.")
        return self._conn

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[TransactionContext]:
        """Context manager for transactions with timing and logging.

        Args:
            operation: Name of the operation for logging.

        Yields:
            Transaction context with timing information.
        """
        with self._lock:
            conn = self._ensure_connected()
            tx_id = str(uuid.uuid4())[:8]
            start_ns = time.perf_counter_ns()
            ctx = TransactionContext(
                tx_id=tx_id, start_time_ns=start_ns, operation=operation
            )

            try:
                yield ctx
                conn.commit()
            except Exception:
                conn.rollback()
                duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
                self._log.error(
                    "transaction_failed",
                    tx_id=tx_id,
                    op=operation,
                    duration_ms=round(duration_ms, 2),
                )
                raise

            duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
            self._metrics.record_tx_duration(duration_ms)
            self._log.debug(
                "transaction_complete",
                tx_id=tx_id,
                op=operation,
                affected_rows=ctx.affected_rows,
                duration_ms=round(duration_ms, 2),
            )

    def _query(self, sql: str, params: tuple[object, ...] = ()) -> list[sqlite3.Row]:
        """Run a read-only query under the connection lock."""
        with self._lock:
            conn = self._ensure_connected()
            return conn.execute(sql, params).fetchall()

    # ===== Contents =====

    def save_content(self, content: ContentItem) -> ContentItem:
        """Insert a content item.

        Args:
            content: Content to insert (its id is ignored).

        Returns:
            The stored content with its assigned id.
        """
        with self._transaction("save_content") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                """
                INSERT INTO contents (
                    title, body, published_date, provider_priority,
                    newsletter_name, original_url, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    content.title,
                    content.body,
                    content.published_date.isoformat(),
                    content.provider_priority,
                    content.newsletter_name,
                    content.original_url,
                    content.created_at.isoformat(),
                ),
            )
            ctx.add_affected_rows(1)

        return content.model_copy(update={"id": cursor.lastrowid})

    def get_content(self, content_id: int) -> ContentItem:
        """Get a content item by id.

        Raises:
            ContentNotFoundError: If no such content exists.
        """
        rows = self._query("SELECT * FROM contents WHERE id = ?", (content_id,))
        if not rows:
            raise ContentNotFoundError(content_id)
        return self._row_to_content(rows[0])

    def fetch_unprocessed(
        self, limit: int, order_by_priority: bool = True
    ) -> list[ContentItem]:
        """Get content items that have no exposure record yet.

        Args:
            limit: Maximum number of items.
            order_by_priority: Order by provider priority before id.

        Returns:
            Up to ``limit`` content items.
        """
        order = "c.provider_priority, c.id" if order_by_priority else "c.id"
        rows = self._query(
            f"""
            SELECT c.* FROM contents c
            LEFT JOIN exposures e ON e.content_id = c.id
            WHERE e.id IS NULL
            ORDER BY {order}
            LIMIT ?
            """,  # noqa: S608
            (limit,),
        )
        return [self._row_to_content(row) for row in rows]

    def count_unprocessed(self) -> int:
        """Count content items that have no exposure record yet."""
        rows = self._query(
            """
            SELECT COUNT(*) FROM contents c
            LEFT JOIN exposures e ON e.content_id = c.id
            WHERE e.id IS NULL
            """
        )
        return int(rows[0][0])

    def _row_to_content(self, row: sqlite3.Row) -> ContentItem:
        return ContentItem(
            id=row["id"],
            title=row["title"],
            body=row["body"],
            published_date=date.fromisoformat(row["published_date"]),
            provider_priority=row["provider_priority"],
            newsletter_name=row["newsletter_name"],
            original_url=row["original_url"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    # ===== Summaries and keywords =====

    def save_summary(self, summary: Summary) -> Summary:
        """Insert a summary.

        Args:
            summary: Summary to insert.

        Returns:
            The stored summary with its assigned id.
        """
        with self._transaction("save_summary") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                """
                INSERT INTO summaries (content_id, title, summarized_content, model, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    summary.content_id,
                    summary.title,
                    summary.summarized_content,
                    summary.model,
                    summary.created_at.isoformat(),
                ),
            )
            ctx.add_affected_rows(1)

        return summary.model_copy(update={"id": cursor.lastrowid})

    def find_summaries_by_content(self, content_id: int) -> list[Summary]:
        """Get summaries for a content item, newest first."""
        rows = self._query(
            "SELECT * FROM summaries WHERE content_id = ? ORDER BY id DESC",
            (content_id,),
        )
        return [
            Summary(
                id=row["id"],
                content_id=row["content_id"],
                title=row["title"],
                summarized_content=row["summarized_content"],
                model=row["model"],
                created_at=datetime.fromisoformat(row["created_at"]),
            )
            for row in rows
        ]

    def upsert_keyword(self, name: str) -> Keyword:
        """Get or create a reserved keyword by name."""
        with self._transaction("upsert_keyword") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                "INSERT OR IGNORE INTO keywords (name) VALUES (?)", (name,)
            )
            ctx.add_affected_rows(cursor.rowcount)
            row = conn.execute(
                "SELECT id, name FROM keywords WHERE name = ?", (name,)
            ).fetchone()

        return Keyword(id=row["id"], name=row["name"])

    def list_keyword_names(self) -> list[str]:
        """Get all reserved keyword names, ordered by id."""
        rows = self._query("SELECT name FROM keywords ORDER BY id")
        return [row["name"] for row in rows]

    def assign_keywords(self, content_id: int, keyword_names: list[str]) -> list[str]:
        """Tag content with the reserved keywords among ``keyword_names``.

        Names that are not reserved keywords are ignored. Existing tags
        are left untouched.

        Returns:
            Matching reserved keyword names in input order.
        """
        if not keyword_names:
            return []

        matched: list[str] = []
        with self._transaction("assign_keywords") as ctx:
            conn = self._ensure_connected()
            for name in dict.fromkeys(keyword_names):
                row = conn.execute(
                    "SELECT id FROM keywords WHERE name = ?", (name,)
                ).fetchone()
                if row is None:
                    continue
                cursor = conn.execute(
                    """
                    INSERT OR IGNORE INTO content_keywords (content_id, keyword_id)
                    VALUES (?, ?)
                    """,
                    (content_id, row["id"]),
                )
                ctx.add_affected_rows(cursor.rowcount)
                matched.append(name)

        return matched

    def get_content_keyword_ids(self, content_id: int) -> list[int]:
        """Get keyword ids tagged on a content item."""
        rows = self._query(
            "SELECT keyword_id FROM content_keywords WHERE content_id = ? ORDER BY keyword_id",
            (content_id,),
        )
        return [row["keyword_id"] for row in rows]

    def record_candidate_keywords(self, names: list[str]) -> int:
        """Record suggested keywords that are not reserved yet.

        Returns:
            Number of candidate rows created or bumped.
        """
        recorded = 0
        with self._transaction("record_candidate_keywords") as ctx:
            conn = self._ensure_connected()
            for name in dict.fromkeys(n.strip() for n in names if n.strip()):
                reserved = conn.execute(
                    "SELECT 1 FROM keywords WHERE name = ?", (name,)
                ).fetchone()
                if reserved is not None:
                    continue
                conn.execute(
                    """
                    INSERT INTO candidate_keywords (name, suggestion_count) VALUES (?, 1)
                    ON CONFLICT(name) DO UPDATE SET
                        suggestion_count = suggestion_count + 1
                    """,
                    (name,),
                )
                recorded += 1
            ctx.add_affected_rows(recorded)

        return recorded

    def list_candidate_keywords(self) -> list[CandidateKeyword]:
        """Get candidate keywords, most suggested first."""
        rows = self._query(
            "SELECT * FROM candidate_keywords ORDER BY suggestion_count DESC, id"
        )
        return [
            CandidateKeyword(
                id=row["id"], name=row["name"], suggestion_count=row["suggestion_count"]
            )
            for row in rows
        ]

    def promote_candidate_keyword(self, candidate_id: int) -> Keyword:
        """Turn a candidate keyword into a reserved keyword.

        Raises:
            CandidateKeywordNotFoundError: If the candidate does not exist.
        """
        with self._transaction("promote_candidate_keyword") as ctx:
            conn = self._ensure_connected()
            row = conn.execute(
                "SELECT name FROM candidate_keywords WHERE id = ?", (candidate_id,)
            ).fetchone()
            if row is None:
                raise CandidateKeywordNotFoundError(candidate_id)
            name = row["name"]
            conn.execute("INSERT OR IGNORE INTO keywords (name) VALUES (?)", (name,))
            conn.execute("DELETE FROM candidate_keywords WHERE id = ?", (candidate_id,))
            ctx.add_affected_rows(2)
            keyword_row = conn.execute(
                "SELECT id, name FROM keywords WHERE name = ?", (name,)
            ).fetchone()

        self._log.info("candidate_keyword_promoted", keyword=name)
        return Keyword(id=keyword_row["id"], name=keyword_row["name"])

    # ===== Exposures =====

    def upsert_exposure(self, record: ExposureRecord) -> ExposureRecord:
        """Create or replace the exposure record of a content item.

        The row id is preserved when a record already exists so archives
        referencing it stay valid.
        """
        with self._transaction("upsert_exposure") as ctx:
            conn = self._ensure_connected()
            conn.execute(
                """
                INSERT INTO exposures (
                    content_id, provocative_keyword, headline, summary_text, created_at
                ) VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(content_id) DO UPDATE SET
                    provocative_keyword = excluded.provocative_keyword,
                    headline = excluded.headline,
                    summary_text = excluded.summary_text
                """,
                (
                    record.content_id,
                    record.provocative_keyword,
                    record.headline,
                    record.summary_text,
                    record.created_at.isoformat(),
                ),
            )
            ctx.add_affected_rows(1)
            row = conn.execute(
                "SELECT * FROM exposures WHERE content_id = ?", (record.content_id,)
            ).fetchone()

        self._metrics.record_exposure_upsert()
        return self._row_to_exposure(row)

    def find_exposure_by_content(self, content_id: int) -> ExposureRecord | None:
        """Get the exposure record of a content item, if any."""
        rows = self._query(
            "SELECT * FROM exposures WHERE content_id = ?", (content_id,)
        )
        return self._row_to_exposure(rows[0]) if rows else None

    def get_exposures(self, exposure_ids: list[int]) -> list[ExposureRecord]:
        """Get exposure records by id, preserving the given order."""
        if not exposure_ids:
            return []
        placeholders = ",".join("?" * len(exposure_ids))
        rows = self._query(
            f"SELECT * FROM exposures WHERE id IN ({placeholders})",  # noqa: S608
            tuple(exposure_ids),
        )
        by_id = {row["id"]: self._row_to_exposure(row) for row in rows}
        return [by_id[i] for i in exposure_ids if i in by_id]

    def _row_to_exposure(self, row: sqlite3.Row) -> ExposureRecord:
        return ExposureRecord(
            id=row["id"],
            content_id=row["content_id"],
            provocative_keyword=row["provocative_keyword"],
            headline=row["headline"],
            summary_text=row["summary_text"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    # ===== Rate limits =====

    def find_or_create_rate_limit(
        self, model_name: str, limit_date: date, max_requests_per_day: int
    ) -> RateLimitCounter:
        """Get the counter for (model, date), creating it at zero."""
        with self._transaction("find_or_create_rate_limit") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO rate_limits (
                    model_name, limit_date, request_count, max_requests_per_day
                ) VALUES (?, ?, 0, ?)
                """,
                (model_name, limit_date.isoformat(), max_requests_per_day),
            )
            ctx.add_affected_rows(cursor.rowcount)
            row = conn.execute(
                "SELECT * FROM rate_limits WHERE model_name = ? AND limit_date = ?",
                (model_name, limit_date.isoformat()),
            ).fetchone()

        return self._row_to_rate_limit(row)

    def conditional_increment(self, counter: RateLimitCounter) -> bool:
        """Increment a daily counter only while it is below its cap.

        The check and the increment happen in one UPDATE statement, so
        concurrent callers cannot both pass the check at the cap.
        """
        with self._transaction("conditional_increment") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                """
                UPDATE rate_limits
                SET request_count = request_count + 1
                WHERE model_name = ? AND limit_date = ?
                  AND request_count < max_requests_per_day
                """,
                (counter.model_name, counter.limit_date.isoformat()),
            )
            ctx.add_affected_rows(cursor.rowcount)

        admitted = cursor.rowcount == 1
        self._metrics.record_rate_limit_increment(admitted)
        return admitted

    def get_rate_limit(self, model_name: str, limit_date: date) -> RateLimitCounter | None:
        """Get a counter without creating it."""
        rows = self._query(
            "SELECT * FROM rate_limits WHERE model_name = ? AND limit_date = ?",
            (model_name, limit_date.isoformat()),
        )
        return self._row_to_rate_limit(rows[0]) if rows else None

    def list_rate_limits(self, limit_date: date) -> list[RateLimitCounter]:
        """Get all counters for a calendar day."""
        rows = self._query(
            "SELECT * FROM rate_limits WHERE limit_date = ? ORDER BY model_name",
            (limit_date.isoformat(),),
        )
        return [self._row_to_rate_limit(row) for row in rows]

    def _row_to_rate_limit(self, row: sqlite3.Row) -> RateLimitCounter:
        return RateLimitCounter(
            model_name=row["model_name"],
            limit_date=date.fromisoformat(row["limit_date"]),
            request_count=row["request_count"],
            max_requests_per_day=row["max_requests_per_day"],
        )

    # ===== Users, categories, keyword weights =====

    def upsert_category(self, name: str) -> Category:
        """Get or create a category by name."""
        with self._transaction("upsert_category") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                "INSERT OR IGNORE INTO categories (name) VALUES (?)", (name,)
            )
            ctx.add_affected_rows(cursor.rowcount)
            row = conn.execute(
                "SELECT id, name FROM categories WHERE name = ?", (name,)
            ).fetchone()

        return Category(id=row["id"], name=row["name"])

    def get_category(self, category_id: int) -> Category:
        """Get a category by id.

        Raises:
            CategoryNotFoundError: If no such category exists.
        """
        rows = self._query("SELECT id, name FROM categories WHERE id = ?", (category_id,))
        if not rows:
            raise CategoryNotFoundError(category_id)
        return Category(id=rows[0]["id"], name=rows[0]["name"])

    def list_categories(self) -> list[Category]:
        """Get every category ordered by id."""
        rows = self._query("SELECT id, name FROM categories ORDER BY id")
        return [Category(id=row["id"], name=row["name"]) for row in rows]

    def set_keyword_weight(self, category_id: int, keyword_id: int, weight: float) -> None:
        """Set the signed weight of a keyword within a category."""
        with self._transaction("set_keyword_weight") as ctx:
            conn = self._ensure_connected()
            conn.execute(
                """
                INSERT INTO category_keywords (category_id, keyword_id, weight)
                VALUES (?, ?, ?)
                ON CONFLICT(category_id, keyword_id) DO UPDATE SET weight = excluded.weight
                """,
                (category_id, keyword_id, weight),
            )
            ctx.add_affected_rows(1)

    def get_keyword_weights(self, category_ids: list[int]) -> list[KeywordWeight]:
        """Get keyword weights configured for the given categories."""
        if not category_ids:
            return []
        placeholders = ",".join("?" * len(category_ids))
        rows = self._query(
            f"""
            SELECT ck.category_id, ck.keyword_id, ck.weight, k.name
            FROM category_keywords ck
            JOIN keywords k ON k.id = ck.keyword_id
            WHERE ck.category_id IN ({placeholders})
            ORDER BY ck.category_id, ck.keyword_id
            """,  # noqa: S608
            tuple(category_ids),
        )
        return [
            KeywordWeight(
                keyword_id=row["keyword_id"],
                keyword=row["name"],
                category_id=row["category_id"],
                signed_weight=row["weight"],
            )
            for row in rows
        ]

    def save_user(self, user: User) -> User:
        """Insert a user with category preferences.

        Returns:
            The stored user with its assigned id.
        """
        with self._transaction("save_user") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute("INSERT INTO users (name) VALUES (?)", (user.name,))
            user_id = cursor.lastrowid
            conn.executemany(
                "INSERT INTO user_categories (user_id, category_id) VALUES (?, ?)",
                [(user_id, category_id) for category_id in user.category_ids],
            )
            ctx.add_affected_rows(1 + len(user.category_ids))

        return user.model_copy(update={"id": user_id})

    def get_user(self, user_id: int) -> User:
        """Get a user and its category preferences.

        Raises:
            UserNotFoundError: If no such user exists.
        """
        rows = self._query("SELECT id, name FROM users WHERE id = ?", (user_id,))
        if not rows:
            raise UserNotFoundError(user_id)
        category_rows = self._query(
            "SELECT category_id FROM user_categories WHERE user_id = ? ORDER BY category_id",
            (user_id,),
        )
        return User(
            id=rows[0]["id"],
            name=rows[0]["name"],
            category_ids=tuple(row["category_id"] for row in category_rows),
        )

    def find_unexposed_candidates(
        self, user_id: int | None, keyword_ids: list[int]
    ) -> list[ExposureCandidate]:
        """Get processed content carrying any of ``keyword_ids`` not yet shown.

        Args:
            user_id: User whose active exposure history is excluded, or
                None to exclude nothing.
            keyword_ids: Keywords of interest.

        Returns:
            Candidates with the subset of ``keyword_ids`` each one carries.
        """
        if not keyword_ids:
            return []
        placeholders = ",".join("?" * len(keyword_ids))
        rows = self._query(
            f"""
            SELECT e.id AS exposure_id, c.id AS content_id, c.published_date,
                   GROUP_CONCAT(ck.keyword_id) AS keyword_ids
            FROM exposures e
            JOIN contents c ON c.id = e.content_id
            JOIN content_keywords ck ON ck.content_id = c.id
            WHERE ck.keyword_id IN ({placeholders})
              AND c.id NOT IN (
                  SELECT content_id FROM user_exposed_contents
                  WHERE user_id = ? AND deleted = 0
              )
            GROUP BY e.id, c.id, c.published_date
            ORDER BY c.id
            """,  # noqa: S608
            (*keyword_ids, user_id),
        )
        return [
            ExposureCandidate(
                exposure_id=row["exposure_id"],
                content_id=row["content_id"],
                published_date=date.fromisoformat(row["published_date"]),
                keyword_ids=frozenset(int(k) for k in row["keyword_ids"].split(",")),
            )
            for row in rows
        ]

    # ===== Daily archives =====

    def find_archive_by_user_and_date(
        self, user_id: int, archive_date: date
    ) -> DailyArchive | None:
        """Get the archive for (user, date), if any."""
        rows = self._query(
            "SELECT * FROM daily_archives WHERE user_id = ? AND archive_date = ?",
            (user_id, archive_date.isoformat()),
        )
        return self._row_to_archive(rows[0]) if rows else None

    def save_archive(self, archive: DailyArchive) -> DailyArchive:
        """Insert an archive and record its exposures as seen by the user.

        Raises:
            DuplicateArchiveError: If (user_id, archive_date) already exists.
        """
        try:
            with self._transaction("save_archive") as ctx:
                conn = self._ensure_connected()
                cursor = conn.execute(
                    """
                    INSERT INTO daily_archives (
                        user_id, archive_date, snapshot_json, exposure_ids_json, created_at
                    ) VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        archive.user_id,
                        archive.archive_date.isoformat(),
                        archive.snapshot.model_dump_json(),
                        json.dumps(list(archive.exposure_ids)),
                        archive.created_at.isoformat(),
                    ),
                )
                archive_id = cursor.lastrowid
                for exposure_id in archive.exposure_ids:
                    conn.execute(
                        """
                        INSERT INTO user_exposed_contents (user_id, content_id, exposed_date)
                        SELECT ?, content_id, ? FROM exposures WHERE id = ?
                        """,
                        (archive.user_id, archive.archive_date.isoformat(), exposure_id),
                    )
                ctx.add_affected_rows(1 + len(archive.exposure_ids))
        except sqlite3.IntegrityError as exc:
            self._metrics.record_archive_conflict()
            raise DuplicateArchiveError(archive.user_id, archive.archive_date) from exc

        self._metrics.record_archive_created()
        return archive.model_copy(update={"id": archive_id})

    def delete_archive(self, user_id: int, archive_date: date) -> bool:
        """Delete an archive, soft-delete its exposure history and mark the refresh.

        Returns:
            True if an archive was deleted.
        """
        with self._transaction("delete_archive") as ctx:
            conn = self._ensure_connected()
            conn.execute(
                """
                INSERT OR IGNORE INTO archive_refreshes (user_id, archive_date, refreshed_at)
                VALUES (?, ?, ?)
                """,
                (user_id, archive_date.isoformat(), datetime.now(UTC).isoformat()),
            )
            conn.execute(
                """
                UPDATE user_exposed_contents SET deleted = 1
                WHERE user_id = ? AND exposed_date = ?
                """,
                (user_id, archive_date.isoformat()),
            )
            cursor = conn.execute(
                "DELETE FROM daily_archives WHERE user_id = ? AND archive_date = ?",
                (user_id, archive_date.isoformat()),
            )
            ctx.add_affected_rows(cursor.rowcount)

        return cursor.rowcount > 0

    def has_refreshed(self, user_id: int, archive_date: date) -> bool:
        """Check whether a user already refreshed the archive of a day."""
        rows = self._query(
            "SELECT 1 FROM archive_refreshes WHERE user_id = ? AND archive_date = ?",
            (user_id, archive_date.isoformat()),
        )
        return bool(rows)

    def _row_to_archive(self, row: sqlite3.Row) -> DailyArchive:
        return DailyArchive(
            id=row["id"],
            user_id=row["user_id"],
            archive_date=date.fromisoformat(row["archive_date"]),
            snapshot=PreferenceSnapshot.model_validate_json(row["snapshot_json"]),
            exposure_ids=tuple(json.loads(row["exposure_ids_json"])),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    # ===== Stats =====

    def get_stats(self) -> dict[str, int]:
        """Get row counts for the main tables."""
        stats: dict[str, int] = {}
        for table in (
            "contents",
            "summaries",
            "exposures",
            "keywords",
            "candidate_keywords",
            "categories",
            "users",
            "rate_limits",
            "daily_archives",
        ):
            rows = self._query(f"SELECT COUNT(*) FROM {table}")  # noqa: S608
            stats[table] = int(rows[0][0])
        return stats

    def get_schema_version(self) -> int:
        """Get current schema version."""
        with self._lock:
            return MigrationManager(self._ensure_connected()).get_current_version()
