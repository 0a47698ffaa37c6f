"""Side quests module: personal zero-point challenges with expiry."""


class SideQuestsModule:
    """Side quests and side quest proposals."""

    @property
    def name(self) -> str:
        """Module name (unique identifier)."""
        return "side_quests"

    @property
    def description(self) -> str:
        """Module description (human-readable)."""
        return "Personal bonus challenges with accept/reject and expiry"

    def get_table_schemas(self) -> dict[str, str]:
        """Return table schemas for this module."""
        return {
            "side_quests": """CREATE TABLE IF NOT EXISTS side_quests (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        family_id INTEGER NOT NULL REFERENCES families(id) ON DELETE CASCADE,
        assigned_to INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        status TEXT NOT NULL DEFAULT 'PENDING'
            CHECK (status IN ('PENDING', 'ACTIVE', 'COMPLETED', 'REJECTED')),
        created_at INTEGER NOT NULL,
        expires_at INTEGER NOT NULL
    )""",
            "side_quest_proposals": """CREATE TABLE IF NOT EXISTS side_quest_proposals (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        family_id INTEGER NOT NULL REFERENCES families(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        suggested_for INTEGER REFERENCES users(id) ON DELETE SET NULL,
        proposed_by INTEGER REFERENCES users(id) ON DELETE SET NULL,
        created_at INTEGER NOT NULL
    )""",
        }

    def get_indexes(self) -> list[str]:
        """Return indexes for this module's tables."""
        return [
            "CREATE INDEX IF NOT EXISTS idx_side_quests_family_id ON side_quests (family_id)",
            "CREATE INDEX IF NOT EXISTS idx_side_quests_assigned_to ON side_quests (assigned_to)",
            "CREATE INDEX IF NOT EXISTS idx_sq_proposals_family_id ON side_quest_proposals (family_id)",
        ]
