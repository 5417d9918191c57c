from app.models.hierarchy.impact_chain import ImpactChain
from app.models.hierarchy.responsibility_assignment import ResponsibilityAssignment

__all__ = ["ImpactChain", "ResponsibilityAssignment"]
