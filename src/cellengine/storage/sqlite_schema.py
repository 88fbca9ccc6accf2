"""SQLite schema definition for kernel storage."""

from __future__ import annotations

# Recorded in schema_version; bump together with an upgrade step
SCHEMA_VERSION = 1

SCHEMA = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

-- Capped event log; seq gives log position
CREATE TABLE IF NOT EXISTS events (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    namespace TEXT NOT NULL,
    id TEXT NOT NULL,
    signature TEXT NOT NULL,
    timestamp INTEGER NOT NULL,
    headers TEXT DEFAULT '{}',  -- JSON object
    body TEXT,  -- JSON value
    source TEXT DEFAULT 'fetch'
);
CREATE INDEX IF NOT EXISTS idx_events_namespace ON events(namespace, seq);

-- N-gram counts; pattern is a JSON array of event ids
CREATE TABLE IF NOT EXISTS patterns (
    namespace TEXT NOT NULL,
    pattern TEXT NOT NULL,
    count INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (namespace, pattern)
);

-- Derived actions
CREATE TABLE IF NOT EXISTS actions (
    namespace TEXT NOT NULL,
    id TEXT NOT NULL,
    data TEXT NOT NULL,  -- JSON
    PRIMARY KEY (namespace, id)
);

-- Recorded workflows; rowid keeps creation order
CREATE TABLE IF NOT EXISTS workflows (
    namespace TEXT NOT NULL,
    id TEXT NOT NULL,
    name TEXT NOT NULL,
    description TEXT DEFAULT '',
    actions TEXT NOT NULL,  -- JSON array
    frequency INTEGER NOT NULL DEFAULT 1,
    last_executed INTEGER,
    PRIMARY KEY (namespace, id)
);
"""
