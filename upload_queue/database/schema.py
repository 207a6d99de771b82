from typing import Any

import psycopg

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS records (
    id BIGSERIAL PRIMARY KEY,
    project_id VARCHAR(255) NOT NULL,
    user_id VARCHAR(255) NOT NULL,
    source_type VARCHAR(255) NOT NULL,
    source_id VARCHAR(255) NOT NULL,
    time TIMESTAMP,
    time_zone_offset INTEGER,
    created_date TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS records_project_user_idx
    ON records (project_id, user_id, id);

CREATE TABLE IF NOT EXISTS record_metadata (
    id BIGINT PRIMARY KEY REFERENCES records (id) ON DELETE CASCADE,
    status VARCHAR(32) NOT NULL,
    message TEXT,
    created_date TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    modified_date TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    revision INTEGER NOT NULL DEFAULT 1
);

CREATE INDEX IF NOT EXISTS record_metadata_status_modified_idx
    ON record_metadata (status, modified_date);

CREATE TABLE IF NOT EXISTS record_content (
    id BIGSERIAL PRIMARY KEY,
    record_id BIGINT NOT NULL REFERENCES records (id) ON DELETE CASCADE,
    file_name VARCHAR(255) NOT NULL,
    content_type VARCHAR(255) NOT NULL,
    size BIGINT NOT NULL,
    content BYTEA NOT NULL,
    created_date TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    UNIQUE (record_id, file_name)
);

CREATE TABLE IF NOT EXISTS record_logs (
    id BIGINT PRIMARY KEY REFERENCES record_metadata (id) ON DELETE CASCADE,
    modified_date TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    size BIGINT NOT NULL,
    logs TEXT NOT NULL
);
"""


def create_schema(conn: psycopg.Connection[Any]) -> None:
    """Create the record tables if they do not exist yet."""
    conn.execute(SCHEMA_SQL)
    conn.commit()
