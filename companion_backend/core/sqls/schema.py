"""
Database schema definitions
Contains all CREATE TABLE and CREATE INDEX statements
"""

CREATE_APP_CATEGORIES_TABLE = """
    CREATE TABLE IF NOT EXISTS app_categories (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        app_name TEXT NOT NULL UNIQUE,
        category TEXT NOT NULL,
        subcategory TEXT,
        productivity_score INTEGER DEFAULT 50,
        origin TEXT NOT NULL DEFAULT 'auto',
        created_at TEXT DEFAULT CURRENT_TIMESTAMP,
        updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
        CHECK (origin IN ('auto', 'user')),
        CHECK (productivity_score IS NULL OR (productivity_score BETWEEN 0 AND 100))
    )
"""

CREATE_SUMMARIES_TABLE = """
    CREATE TABLE IF NOT EXISTS summaries (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created_at TEXT NOT NULL,
        mode TEXT NOT NULL,
        period TEXT NOT NULL,
        current_state TEXT NOT NULL,
        summary_text TEXT NOT NULL,
        focus_score INTEGER NOT NULL,
        work_score INTEGER NOT NULL,
        distraction_score INTEGER NOT NULL,
        neutral_score INTEGER NOT NULL,
        last_updated TEXT
    )
"""

CREATE_SETTINGS_TABLE = """
    CREATE TABLE IF NOT EXISTS settings (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        type TEXT NOT NULL DEFAULT 'string',
        description TEXT,
        updated_at TEXT DEFAULT CURRENT_TIMESTAMP
    )
"""

CREATE_SUMMARIES_CREATED_INDEX = """
    CREATE INDEX IF NOT EXISTS idx_summaries_created_at
    ON summaries(created_at)
"""

CREATE_APP_CATEGORIES_ORIGIN_INDEX = """
    CREATE INDEX IF NOT EXISTS idx_app_categories_origin
    ON app_categories(origin)
"""

ALL_TABLES = [
    CREATE_APP_CATEGORIES_TABLE,
    CREATE_SUMMARIES_TABLE,
    CREATE_SETTINGS_TABLE,
]

ALL_INDEXES = [
    CREATE_SUMMARIES_CREATED_INDEX,
    CREATE_APP_CATEGORIES_ORIGIN_INDEX,
]
