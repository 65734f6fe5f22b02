"""
Database query SQL statements
Contains all SELECT, INSERT, UPDATE, DELETE statements
"""

# App category queries
# A user-origin row is only replaced by another user-origin write
UPSERT_APP_CATEGORY = """
    INSERT INTO app_categories (
        app_name, category, subcategory, productivity_score, origin, created_at, updated_at
    ) VALUES (?, ?, ?, ?, ?, ?, ?)
    ON CONFLICT(app_name) DO UPDATE SET
        category = excluded.category,
        subcategory = excluded.subcategory,
        productivity_score = excluded.productivity_score,
        origin = excluded.origin,
        updated_at = excluded.updated_at
    WHERE app_categories.origin != 'user' OR excluded.origin = 'user'
"""

SELECT_APP_CATEGORY = """
    SELECT app_name, category, subcategory, productivity_score, origin, updated_at
    FROM app_categories
    WHERE app_name = ?
"""

SELECT_ALL_APP_CATEGORIES = """
    SELECT app_name, category, subcategory, productivity_score, origin, updated_at
    FROM app_categories
    ORDER BY app_name
"""

DELETE_APP_CATEGORY = """
    DELETE FROM app_categories WHERE app_name = ?
"""

# Summary history queries
INSERT_SUMMARY = """
    INSERT INTO summaries (
        created_at, mode, period, current_state, summary_text,
        focus_score, work_score, distraction_score, neutral_score, last_updated
    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""

SELECT_RECENT_SUMMARIES = """
    SELECT * FROM summaries
    ORDER BY created_at DESC, id DESC
    LIMIT ?
"""

SELECT_SUMMARIES_BETWEEN = """
    SELECT * FROM summaries
    WHERE created_at >= ? AND created_at < ?
    ORDER BY created_at ASC, id ASC
"""

# Settings queries
UPSERT_SETTING = """
    INSERT INTO settings (key, value, type, description, updated_at)
    VALUES (?, ?, ?, ?, CURRENT_TIMESTAMP)
    ON CONFLICT(key) DO UPDATE SET
        value = excluded.value,
        type = excluded.type,
        description = COALESCE(excluded.description, settings.description),
        updated_at = CURRENT_TIMESTAMP
"""

SELECT_SETTING = """
    SELECT value FROM settings WHERE key = ?
"""

SELECT_ALL_SETTINGS = """
    SELECT key, value, type FROM settings
"""

DELETE_SETTING = """
    DELETE FROM settings WHERE key = ?
"""
