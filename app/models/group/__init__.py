"""
Group models - GR et membres.

- Group : GR (niveaux 2 à 6)
- GroupMember : appartenance courante
- GroupMemberHistory : journal JOINED / LEFT
"""

from app.models.group.group import Group
from app.models.group.group_member import GroupMember, GroupMemberHistory

__all__ = ["Group", "GroupMember", "GroupMemberHistory"]
