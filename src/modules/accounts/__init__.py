"""Accounts module: users and families."""


class AccountsModule:
    """Accounts module for family membership.

    Provides:
    - users (credential, role, score and level)
    - families (name and unique invite code)
    """

    @property
    def name(self) -> str:
        """Module name (unique identifier)."""
        return "accounts"

    @property
    def description(self) -> str:
        """Module description (human-readable)."""
        return "Users, families and membership"

    def get_table_schemas(self) -> dict[str, str]:
        """Return table schemas for this module."""
        return {
            "families": """CREATE TABLE IF NOT EXISTS families (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        invite_code TEXT NOT NULL UNIQUE,
        created_at INTEGER NOT NULL
    )""",
            "users": """CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        name_key TEXT NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        role TEXT NOT NULL DEFAULT 'MEMBER' CHECK (role IN ('ADMIN', 'MEMBER')),
        score INTEGER NOT NULL DEFAULT 0 CHECK (score >= 0),
        level INTEGER NOT NULL DEFAULT 1,
        family_id INTEGER REFERENCES families(id) ON DELETE SET NULL,
        avatar TEXT NOT NULL DEFAULT '',
        created_at INTEGER NOT NULL
    )""",
        }

    def get_indexes(self) -> list[str]:
        """Return indexes for this module's tables."""
        return [
            "CREATE INDEX IF NOT EXISTS idx_users_family_id ON users (family_id)",
        ]
