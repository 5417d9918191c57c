from app.models.sessions.session import ChurchSession
from app.models.sessions.unit import Unit, UnitMember, UnitMemberHistory

__all__ = ["ChurchSession", "Unit", "UnitMember", "UnitMemberHistory"]
