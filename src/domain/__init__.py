"""Domain models and DTOs."""

from src.domain.family import Family, FamilyRoster
from src.domain.monster import LockStatus, Monster
from src.domain.proposal import TaskProposal
from src.domain.side_quest import SideQuest, SideQuestProposal, SideQuestStatus, SideQuestView
from src.domain.task import Task, TaskStatus
from src.domain.user import User, UserRole


__all__ = [
    "Family",
    "FamilyRoster",
    "LockStatus",
    "Monster",
    "SideQuest",
    "SideQuestProposal",
    "SideQuestStatus",
    "SideQuestView",
    "Task",
    "TaskProposal",
    "TaskStatus",
    "User",
    "UserRole",
]
