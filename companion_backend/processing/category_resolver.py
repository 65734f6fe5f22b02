"""
Category resolver
Maps app names to category records: cache, persisted store, built-in table,
keyword heuristics, then an interim placeholder while the app waits for
batch categorization
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from companion_backend.core.logger import get_logger
from companion_backend.core.protocols import CategoryRepositoryProtocol
from companion_backend.models.activity import AppCategory, CategoryOrigin, CategoryRecord

from .default_categories import (
    DefaultCategory,
    lookup_default,
    match_keywords,
    normalize_app_name,
)

logger = get_logger(__name__)

UNCATEGORIZED_SCORE = 50


def record_from_row(row: Dict[str, Any]) -> CategoryRecord:
    """Build a CategoryRecord from a store row"""
    updated_at = row.get("updated_at")
    if isinstance(updated_at, str):
        try:
            updated_at = datetime.fromisoformat(updated_at)
        except ValueError:
            updated_at = None
    score = row.get("productivity_score")
    return CategoryRecord(
        app_name=row["app_name"],
        category=row["category"],
        subcategory=row.get("subcategory"),
        productivity_score=None if score is None else max(0, min(100, int(score))),
        origin=CategoryOrigin(row.get("origin") or CategoryOrigin.AUTO.value),
        updated_at=updated_at,
    )


class CategoryResolver:
    """
    Resolves app categories with layered fallbacks

    Resolution is idempotent: asking twice for the same app without new
    data in between yields an equal record. Apps nothing knows about are
    queued and reported as uncategorized with a neutral score.
    """

    def __init__(self, repository: Optional[CategoryRepositoryProtocol] = None):
        self.repository = repository
        self._cache: Dict[str, CategoryRecord] = {}
        # Insertion-ordered: key -> name as first seen
        self._pending: Dict[str, str] = {}

    async def load(self) -> int:
        """Seed the cache from the store; returns the number of rows loaded"""
        if self.repository is None:
            return 0
        try:
            rows = await self.repository.get_all()
        except Exception as e:
            logger.warning(f"Could not load persisted categories: {e}")
            return 0

        for row in rows:
            record = record_from_row(row)
            self._cache[record.app_name] = record
            self._pending.pop(record.app_name, None)

        logger.debug(f"Loaded {len(rows)} persisted app categories")
        return len(rows)

    async def resolve(self, app_name: str) -> CategoryRecord:
        """
        Resolve the category of an app

        Args:
            app_name: App name as reported by the tracking service

        Returns:
            CategoryRecord (origin 'pending' when the app is queued)
        """
        key = normalize_app_name(app_name)
        if not key:
            return self._placeholder(app_name)

        cached = self._cache.get(key)
        if cached is not None:
            return cached

        stored = await self._lookup_store(key)
        if stored is not None:
            self._cache[key] = stored
            self._pending.pop(key, None)
            return stored

        default = lookup_default(key) or match_keywords(key)
        if default is not None:
            record = self._from_default(key, default)
            self._cache[key] = record
            return record

        if key not in self._pending:
            logger.debug(f"Queued uncategorized app: {app_name}")
            self._pending[key] = app_name
        return self._placeholder(key)

    async def resolve_many(self, app_names: Iterable[str]) -> Dict[str, CategoryRecord]:
        """Resolve several apps, keyed by the names given"""
        result: Dict[str, CategoryRecord] = {}
        for app_name in app_names:
            if app_name not in result:
                result[app_name] = await self.resolve(app_name)
        return result

    async def set_user_category(
        self,
        app_name: str,
        category: str,
        subcategory: Optional[str] = None,
        productivity_score: Optional[int] = None,
    ) -> CategoryRecord:
        """
        Record a manual category; no automatic process replaces it afterwards

        Persistence failures are logged and the in-memory record still applies.
        """
        key = normalize_app_name(app_name)
        if not key:
            raise ValueError("App name must not be empty")

        record = CategoryRecord(
            app_name=key,
            category=category,
            subcategory=subcategory,
            productivity_score=productivity_score,
            origin=CategoryOrigin.USER,
            updated_at=datetime.now(),
        )

        if self.repository is not None:
            try:
                await self.repository.upsert(
                    key, record.category, subcategory, productivity_score, "user"
                )
            except Exception as e:
                logger.error(f"Failed to persist user category for {key}: {e}")

        self._cache[key] = record
        self._pending.pop(key, None)
        logger.info(f"User category set: {key} -> {record.category}")
        return record

    async def apply_auto_categories(self, assignments: Dict[str, Dict[str, Any]]) -> int:
        """
        Store generated categories for apps without a user category

        Args:
            assignments: app name -> {category, subcategory, productivity_score}

        Returns:
            Number of apps updated
        """
        applied = 0
        for app_name, assignment in assignments.items():
            key = normalize_app_name(app_name)
            if not key:
                continue

            current = self._cache.get(key)
            if current is not None and current.origin == CategoryOrigin.USER:
                logger.debug(f"Skipping generated category for user-edited app {key}")
                self._pending.pop(key, None)
                continue

            record = CategoryRecord(
                app_name=key,
                category=assignment.get("category", AppCategory.OTHER.value),
                subcategory=assignment.get("subcategory"),
                productivity_score=assignment.get("productivity_score", UNCATEGORIZED_SCORE),
                origin=CategoryOrigin.AUTO,
                updated_at=datetime.now(),
            )

            if self.repository is not None:
                try:
                    written = await self.repository.upsert(
                        key,
                        record.category,
                        record.subcategory,
                        record.productivity_score,
                        "auto",
                    )
                except Exception as e:
                    logger.error(f"Failed to persist generated category for {key}: {e}")
                    continue

                if not written:
                    # A user row exists in the store; adopt it
                    stored = await self._lookup_store(key)
                    if stored is not None:
                        self._cache[key] = stored
                    self._pending.pop(key, None)
                    continue

            self._cache[key] = record
            self._pending.pop(key, None)
            applied += 1

        if applied:
            logger.info(f"Applied {applied} generated app categories")
        return applied

    def pending_batch(self, limit: int = 10) -> List[str]:
        """Oldest queued app names, at most limit"""
        return list(self._pending.values())[:limit]

    def requeue(self, app_names: Iterable[str]) -> int:
        """Move still-pending apps to the back of the queue

        Returns:
            Number of apps moved
        """
        moved = 0
        for app_name in app_names:
            key = normalize_app_name(app_name)
            if key in self._pending:
                self._pending[key] = self._pending.pop(key)
                moved += 1
        return moved

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def cached_records(self) -> List[CategoryRecord]:
        return sorted(self._cache.values(), key=lambda record: record.app_name)

    async def _lookup_store(self, key: str) -> Optional[CategoryRecord]:
        if self.repository is None:
            return None
        try:
            row = await self.repository.get(key)
        except Exception as e:
            logger.warning(f"Category lookup failed for {key}: {e}")
            return None
        return record_from_row(row) if row else None

    @staticmethod
    def _from_default(key: str, default: DefaultCategory) -> CategoryRecord:
        return CategoryRecord(
            app_name=key,
            category=default.category,
            subcategory=default.subcategory,
            productivity_score=default.productivity_score,
            origin=CategoryOrigin.DEFAULT,
        )

    @staticmethod
    def _placeholder(key: str) -> CategoryRecord:
        return CategoryRecord(
            app_name=key,
            category=AppCategory.UNCATEGORIZED.value,
            productivity_score=UNCATEGORIZED_SCORE,
            origin=CategoryOrigin.PENDING,
        )
