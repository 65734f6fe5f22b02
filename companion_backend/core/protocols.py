"""
Type protocols for database and repository operations

Components depend on these interfaces rather than on the SQLite
repositories, so any store with the same shape can back them.
"""

from datetime import date
from typing import Any, Dict, List, Optional, Protocol


class CategoryRepositoryProtocol(Protocol):
    """Protocol for the persisted app category store"""

    async def upsert(
        self,
        app_name: str,
        category: str,
        subcategory: Optional[str],
        productivity_score: Optional[int],
        origin: str,
    ) -> bool:
        """Insert or update a row; automatic writes never replace user rows"""
        ...

    async def get(self, app_name: str) -> Optional[Dict[str, Any]]:
        """Get the row of one app"""
        ...

    async def get_all(self) -> List[Dict[str, Any]]:
        """Get every row"""
        ...


class SummaryRepositoryProtocol(Protocol):
    """Protocol for the append-only summary history"""

    async def append(self, record: Dict[str, Any]) -> int:
        """Append a flattened summary"""
        ...

    async def get_recent(self, limit: int = 20) -> List[Dict[str, Any]]:
        """Most recent summaries, newest first"""
        ...

    async def get_by_date(self, day: date) -> List[Dict[str, Any]]:
        """Summaries of one local calendar day"""
        ...


class SettingsRepositoryProtocol(Protocol):
    """Protocol for settings repository operations"""

    def get_all(self) -> Dict[str, Any]:
        """Get all settings with type conversion"""
        ...

    def set(
        self, key: str, value: str, setting_type: str = "string", description: str | None = None
    ) -> int:
        """Set a setting value"""
        ...

    def get(self, key: str, default: str | None = None) -> str | None:
        """Get a setting value"""
        ...


class DatabaseManagerProtocol(Protocol):
    """Protocol for the repository aggregate"""

    app_categories: CategoryRepositoryProtocol
    summaries: SummaryRepositoryProtocol
    settings: SettingsRepositoryProtocol
