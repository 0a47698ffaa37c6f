from src.services import (
    description_service,
    family_service,
    scoreboard_service,
    user_service,
)


__all__ = [
    "description_service",
    "family_service",
    "scoreboard_service",
    "user_service",
]
