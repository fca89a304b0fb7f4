"""
Event Log — append-only, hash-chained public event stream.

Every committed operation appends one or more ChainEvents.

Behavioral Contract:
- Append-only. No event is ever modified or deleted.
- Each event is hashed and chained to the previous event (tamper-evident).
- Events of a rolled-back operation never reach the log.
- Queryable by event name, character and recency.
"""

import hashlib
import json
import logging
import sqlite3
from typing import List, Optional

from character_chain.models.chain import ChainEvent

logger = logging.getLogger(__name__)


def _event_signature(event: ChainEvent) -> str:
    event_dict = event.model_dump(mode="json")
    # Zero out signature and sequence before hashing
    event_dict["signature"] = ""
    event_dict["sequence"] = None
    event_bytes = json.dumps(event_dict, sort_keys=True, default=str).encode()
    return hashlib.sha256(event_bytes).hexdigest()


class EventLog:
    """
    Append-only event store.
    Default: in-memory SQLite. Pass a file path to persist across runs.
    """

    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self) -> None:
        """Create the events table if it doesn't exist."""
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS events (
                sequence INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                character_id INTEGER,
                block_number INTEGER NOT NULL,
                timestamp INTEGER NOT NULL,
                caller TEXT NOT NULL,
                signature TEXT NOT NULL,
                prior_event_hash TEXT,
                event_json TEXT NOT NULL
            )
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_events_name ON events(name)
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_events_character ON events(character_id)
        """)
        self._conn.commit()

    def append_many(self, events: List[ChainEvent]) -> List[ChainEvent]:
        """
        Append a batch of events in a single SQLite transaction.
        Each event is signed and chained to the one before it.
        """
        prior_hash = self._get_latest_hash()
        with self._conn:
            for event in events:
                event.prior_event_hash = prior_hash
                event.signature = _event_signature(event)
                cursor = self._conn.execute(
                    """
                    INSERT INTO events (
                        name, character_id, block_number, timestamp, caller,
                        signature, prior_event_hash, event_json
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        event.name,
                        event.character_id,
                        event.block_number,
                        event.timestamp,
                        event.caller,
                        event.signature,
                        event.prior_event_hash,
                        json.dumps(event.model_dump(mode="json"), default=str),
                    ),
                )
                event.sequence = cursor.lastrowid
                prior_hash = event.signature
                logger.debug("event %s #%d char=%s", event.name, event.sequence, event.character_id)
        return events

    def append(self, event: ChainEvent) -> ChainEvent:
        """Append a single event."""
        return self.append_many([event])[0]

    def _get_latest_hash(self) -> Optional[str]:
        """Get the signature of the most recent event."""
        row = self._conn.execute(
            "SELECT signature FROM events ORDER BY sequence DESC LIMIT 1"
        ).fetchone()
        return row["signature"] if row else None

    def _deserialize(self, row: sqlite3.Row) -> ChainEvent:
        event = ChainEvent.model_validate_json(row["event_json"])
        event.sequence = row["sequence"]
        return event

    def query_by_name(self, name: str) -> List[ChainEvent]:
        """All events of one kind, oldest first."""
        rows = self._conn.execute(
            "SELECT sequence, event_json FROM events WHERE name = ? ORDER BY sequence",
            (name,),
        ).fetchall()
        return [self._deserialize(r) for r in rows]

    def query_by_character(self, character_id: int) -> List[ChainEvent]:
        """All events emitted for a character, oldest first."""
        rows = self._conn.execute(
            "SELECT sequence, event_json FROM events WHERE character_id = ? ORDER BY sequence",
            (character_id,),
        ).fetchall()
        return [self._deserialize(r) for r in rows]

    def query_recent(self, limit: int = 50) -> List[ChainEvent]:
        """The most recent events, oldest first."""
        rows = self._conn.execute(
            "SELECT sequence, event_json FROM events ORDER BY sequence DESC LIMIT ?",
            (limit,),
        ).fetchall()
        return [self._deserialize(r) for r in reversed(rows)]

    def verify_chain_integrity(self) -> bool:
        """Verify no events have been tampered with or reordered."""
        rows = self._conn.execute(
            "SELECT sequence, event_json FROM events ORDER BY sequence"
        ).fetchall()

        prior_sig = None
        for row in rows:
            event = self._deserialize(row)
            if event.signature != _event_signature(event):
                return False
            if event.prior_event_hash != prior_sig:
                return False
            prior_sig = event.signature
        return True

    def count(self) -> int:
        """Total number of events."""
        row = self._conn.execute("SELECT COUNT(*) as cnt FROM events").fetchone()
        return row["cnt"]

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
