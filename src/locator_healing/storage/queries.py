"""SQL queries for fingerprint and healing history persistence."""

# Schema queries
CREATE_FINGERPRINTS_TABLE = """
    CREATE TABLE IF NOT EXISTS fingerprints (
        id TEXT PRIMARY KEY,
        step_id TEXT NOT NULL,
        semantic_description TEXT NOT NULL,
        center_x REAL NOT NULL,
        center_y REAL NOT NULL,
        rect_x REAL NOT NULL,
        rect_y REAL NOT NULL,
        rect_width REAL NOT NULL,
        rect_height REAL NOT NULL,
        created_at INTEGER NOT NULL,
        updated_at INTEGER NOT NULL,
        healing_count INTEGER NOT NULL DEFAULT 0
    )
"""

CREATE_FINGERPRINTS_STEP_INDEX = """
    CREATE UNIQUE INDEX IF NOT EXISTS idx_fingerprints_step_id
    ON fingerprints(step_id)
"""

CREATE_FINGERPRINTS_UPDATED_INDEX = """
    CREATE INDEX IF NOT EXISTS idx_fingerprints_updated_at
    ON fingerprints(updated_at)
"""

CREATE_HISTORY_TABLE = """
    CREATE TABLE IF NOT EXISTS healing_history (
        id TEXT PRIMARY KEY,
        step_id TEXT NOT NULL,
        healing_id TEXT NOT NULL,
        timestamp INTEGER NOT NULL,
        original_description TEXT NOT NULL,
        failure_reason TEXT NOT NULL,
        result TEXT NOT NULL,
        user_confirmed INTEGER NOT NULL DEFAULT 0,
        fingerprint_updated INTEGER NOT NULL DEFAULT 0
    )
"""

CREATE_HISTORY_STEP_INDEX = """
    CREATE INDEX IF NOT EXISTS idx_history_step_id
    ON healing_history(step_id)
"""

CREATE_HISTORY_TIMESTAMP_INDEX = """
    CREATE INDEX IF NOT EXISTS idx_history_timestamp
    ON healing_history(timestamp)
"""

CREATE_HISTORY_HEALING_INDEX = """
    CREATE INDEX IF NOT EXISTS idx_history_healing_id
    ON healing_history(healing_id)
"""

SCHEMA = (
    CREATE_FINGERPRINTS_TABLE,
    CREATE_FINGERPRINTS_STEP_INDEX,
    CREATE_FINGERPRINTS_UPDATED_INDEX,
    CREATE_HISTORY_TABLE,
    CREATE_HISTORY_STEP_INDEX,
    CREATE_HISTORY_TIMESTAMP_INDEX,
    CREATE_HISTORY_HEALING_INDEX,
)

# Fingerprint queries
FINGERPRINT_COLUMNS = """
    id, step_id, semantic_description, center_x, center_y,
    rect_x, rect_y, rect_width, rect_height,
    created_at, updated_at, healing_count
"""

INSERT_FINGERPRINT = f"""
    INSERT INTO fingerprints ({FINGERPRINT_COLUMNS})
    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""

REPLACE_FINGERPRINT = """
    UPDATE fingerprints SET
        step_id = ?,
        semantic_description = ?,
        center_x = ?,
        center_y = ?,
        rect_x = ?,
        rect_y = ?,
        rect_width = ?,
        rect_height = ?,
        created_at = ?,
        updated_at = ?,
        healing_count = ?
    WHERE id = ?
"""

SELECT_FINGERPRINT_BY_STEP = f"""
    SELECT {FINGERPRINT_COLUMNS}
    FROM fingerprints
    WHERE step_id = ?
"""

SELECT_ALL_FINGERPRINTS = f"""
    SELECT {FINGERPRINT_COLUMNS}
    FROM fingerprints
    ORDER BY created_at ASC
"""

DELETE_FINGERPRINT_BY_STEP = """
    DELETE FROM fingerprints
    WHERE step_id = ?
"""

DELETE_ALL_FINGERPRINTS = """
    DELETE FROM fingerprints
"""

DELETE_EXPIRED_FINGERPRINTS = """
    DELETE FROM fingerprints
    WHERE updated_at < ?
"""

# Healing history queries
HISTORY_COLUMNS = """
    id, step_id, healing_id, timestamp, original_description,
    failure_reason, result, user_confirmed, fingerprint_updated
"""

INSERT_HISTORY_ENTRY = f"""
    INSERT INTO healing_history ({HISTORY_COLUMNS})
    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
"""

REPLACE_HISTORY_ENTRY = """
    UPDATE healing_history SET
        step_id = ?,
        healing_id = ?,
        timestamp = ?,
        original_description = ?,
        failure_reason = ?,
        result = ?,
        user_confirmed = ?,
        fingerprint_updated = ?
    WHERE id = ?
"""

COUNT_HISTORY_ENTRIES = """
    SELECT COUNT(*) FROM healing_history
"""

DELETE_OLDEST_HISTORY_ENTRIES = """
    DELETE FROM healing_history
    WHERE id IN (
        SELECT id FROM healing_history
        ORDER BY timestamp ASC, rowid ASC
        LIMIT ?
    )
"""

SELECT_HISTORY_BY_STEP = f"""
    SELECT {HISTORY_COLUMNS}
    FROM healing_history
    WHERE step_id = ?
    ORDER BY timestamp DESC, rowid DESC
"""

SELECT_ALL_HISTORY = f"""
    SELECT {HISTORY_COLUMNS}
    FROM healing_history
    ORDER BY timestamp DESC, rowid DESC
"""

SELECT_HISTORY_BY_HEALING_ID = f"""
    SELECT {HISTORY_COLUMNS}
    FROM healing_history
    WHERE healing_id = ?
    ORDER BY timestamp DESC, rowid DESC
    LIMIT 1
"""

DELETE_ALL_HISTORY = """
    DELETE FROM healing_history
"""
