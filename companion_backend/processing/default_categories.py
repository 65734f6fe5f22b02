"""
Built-in app categories
Used before any persisted or generated category exists for an app
"""

import re
from typing import Dict, NamedTuple, Optional, Tuple


class DefaultCategory(NamedTuple):
    category: str
    subcategory: str
    productivity_score: int


DEFAULT_CATEGORIES: Dict[str, DefaultCategory] = {
    # Gaming
    "steamwebhelper": DefaultCategory("entertainment", "gaming", 10),
    "steam": DefaultCategory("entertainment", "gaming", 10),
    "cs2": DefaultCategory("entertainment", "gaming", 0),
    # Development
    "code": DefaultCategory("development", "ide", 95),
    "devenv": DefaultCategory("development", "ide", 95),
    "pycharm": DefaultCategory("development", "ide", 95),
    "windowsterminal": DefaultCategory("development", "terminal", 85),
    "cmd": DefaultCategory("development", "terminal", 80),
    "powershell": DefaultCategory("development", "terminal", 80),
    # Browsers
    "brave": DefaultCategory("productivity", "browser", 60),
    "chrome": DefaultCategory("productivity", "browser", 60),
    "firefox": DefaultCategory("productivity", "browser", 60),
    "msedge": DefaultCategory("productivity", "browser", 60),
    "edge": DefaultCategory("productivity", "browser", 60),
    # Communication
    "discord": DefaultCategory("communication", "chat", 40),
    "slack": DefaultCategory("communication", "chat", 50),
    "teams": DefaultCategory("communication", "chat", 50),
    "zoom": DefaultCategory("communication", "video", 60),
    # System
    "explorer": DefaultCategory("system", "file_manager", 50),
    "taskmgr": DefaultCategory("system", "utility", 50),
    "settings": DefaultCategory("system", "settings", 50),
    # Notes and tasks
    "obsidian": DefaultCategory("productivity", "notes", 85),
    "notion": DefaultCategory("productivity", "notes", 85),
    "todoist": DefaultCategory("productivity", "tasks", 90),
    # Media
    "spotify": DefaultCategory("entertainment", "music", 30),
    "vlc": DefaultCategory("entertainment", "video", 20),
    # Office
    "outlook": DefaultCategory("work", "email", 70),
    "excel": DefaultCategory("work", "office", 80),
    "winword": DefaultCategory("work", "office", 80),
    "word": DefaultCategory("work", "office", 80),
    "powerpnt": DefaultCategory("work", "office", 70),
    "powerpoint": DefaultCategory("work", "office", 70),
    # The companion itself
    "app": DefaultCategory("productivity", "assistant", 70),
}

# Keys too generic to match as substrings of other app names
EXACT_ONLY = {"app", "cmd", "word", "edge", "code", "settings"}

KEYWORD_RULES: Tuple[Tuple[Tuple[str, ...], DefaultCategory], ...] = (
    (("game", "play"), DefaultCategory("entertainment", "gaming", 10)),
    (("code", "studio", "ide"), DefaultCategory("development", "ide", 90)),
    (("chat", "messenger"), DefaultCategory("communication", "chat", 40)),
    (("browser",), DefaultCategory("productivity", "browser", 60)),
)

_EXTENSION_PATTERN = re.compile(r"\.(exe|app|appimage|desktop)$", re.IGNORECASE)


def normalize_app_name(app_name: str) -> str:
    """Lower-case app name without directory or executable suffix

    "C:\\Program Files\\Code.exe" -> "code"
    """
    name = app_name.strip().replace("\\", "/").rsplit("/", 1)[-1]
    name = _EXTENSION_PATTERN.sub("", name)
    return name.strip().lower()


def lookup_default(app_key: str) -> Optional[DefaultCategory]:
    """Exact match against the built-in table"""
    return DEFAULT_CATEGORIES.get(app_key)


def match_keywords(app_key: str) -> Optional[DefaultCategory]:
    """Substring match against table keys, then keyword heuristics"""
    for key in sorted(DEFAULT_CATEGORIES, key=len, reverse=True):
        if key in EXACT_ONLY:
            continue
        if key in app_key:
            return DEFAULT_CATEGORIES[key]

    for keywords, default in KEYWORD_RULES:
        if any(keyword in app_key for keyword in keywords):
            return default

    return None
