"""
Modèle ResponsibilityAssignment - Registre des responsabilités.

Une ligne par (entité, slot) occupé. Les contraintes d'unicité
garantissent en base :
- qu'un utilisateur ne dirige qu'une entité de chaque type
  (uq_responsibility_user_kind)
- qu'un slot d'une entité n'a qu'un titulaire (uq_responsibility_slot)

Les colonnes responsable1_id / responsable2_id des entités restent la
lecture de référence ; ce registre est écrit dans la même transaction.
"""

from datetime import datetime

from sqlalchemy import ForeignKey, Integer, UniqueConstraint
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from app.database.base_class import Base
from app.models.enums import EntityKind
from app.models.mixins import utcnow


class ResponsibilityAssignment(Base):
    """Occupation d'un slot de responsable."""

    __tablename__ = "responsibility_assignments"
    __table_args__ = (
        UniqueConstraint("user_id", "entity_kind", name="uq_responsibility_user_kind"),
        UniqueConstraint("entity_kind", "entity_id", "slot", name="uq_responsibility_slot"),
        {"comment": "Registre des responsabilités (unicité par utilisateur et type d'entité)"}
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    entity_kind: Mapped[EntityKind] = mapped_column(
        SQLEnum(EntityKind, name="entity_kind_enum"),
        nullable=False,
    )

    entity_id: Mapped[int] = mapped_column(Integer, nullable=False)

    slot: Mapped[int] = mapped_column(Integer, nullable=False, doc="1 ou 2")

    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    def __repr__(self) -> str:
        return f"<ResponsibilityAssignment({self.entity_kind.value}:{self.entity_id} slot {self.slot} -> user {self.user_id})>"
