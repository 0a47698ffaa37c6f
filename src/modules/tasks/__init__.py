"""Tasks module for family chore management."""


class TasksModule:
    """Tasks module for household chore management.

    Provides:
    - Task CRUD operations scoped to a family
    - Points policy (base points and per-user overrides)
    - Progression gates (monster milestones)
    - State machine for the OPEN -> ASSIGNED -> VERIFIED lifecycle
    """

    @property
    def name(self) -> str:
        """Module name (unique identifier)."""
        return "tasks"

    @property
    def description(self) -> str:
        """Module description (human-readable)."""
        return "Household chores with points, claims, verification and monster gates"

    def get_table_schemas(self) -> dict[str, str]:
        """Return table schemas for this module."""
        return {
            "tasks": """CREATE TABLE IF NOT EXISTS tasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        family_id INTEGER NOT NULL REFERENCES families(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        base_points INTEGER NOT NULL CHECK (base_points >= 1),
        user_points_override TEXT NOT NULL DEFAULT '{}',
        status TEXT NOT NULL DEFAULT 'OPEN'
            CHECK (status IN ('OPEN', 'ASSIGNED', 'COMPLETED', 'VERIFIED')),
        assignee_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
        created_by INTEGER REFERENCES users(id) ON DELETE SET NULL,
        created_at INTEGER NOT NULL,
        booking_deadline INTEGER NOT NULL DEFAULT 0,
        completion_deadline INTEGER NOT NULL DEFAULT 0,
        is_boss_task INTEGER NOT NULL DEFAULT 0,
        reference_image TEXT,
        completion_image TEXT,
        image_match_score INTEGER
    )""",
        }

    def get_indexes(self) -> list[str]:
        """Return indexes for this module's tables."""
        return [
            "CREATE INDEX IF NOT EXISTS idx_tasks_family_id ON tasks (family_id)",
            "CREATE INDEX IF NOT EXISTS idx_tasks_assignee_id ON tasks (assignee_id)",
            "CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks (status)",
        ]
