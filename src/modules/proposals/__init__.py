"""Proposals module: member-submitted task ideas."""


class ProposalsModule:
    """Task proposals awaiting admin approval."""

    @property
    def name(self) -> str:
        """Module name (unique identifier)."""
        return "proposals"

    @property
    def description(self) -> str:
        """Module description (human-readable)."""
        return "Task proposals submitted by members and reviewed by admins"

    def get_table_schemas(self) -> dict[str, str]:
        """Return table schemas for this module."""
        return {
            "task_proposals": """CREATE TABLE IF NOT EXISTS task_proposals (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        family_id INTEGER NOT NULL REFERENCES families(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        suggested_points INTEGER NOT NULL,
        proposed_by INTEGER REFERENCES users(id) ON DELETE SET NULL,
        created_at INTEGER NOT NULL
    )""",
        }

    def get_indexes(self) -> list[str]:
        """Return indexes for this module's tables."""
        return [
            "CREATE INDEX IF NOT EXISTS idx_task_proposals_family_id ON task_proposals (family_id)",
        ]
