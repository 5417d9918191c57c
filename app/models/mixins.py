"""
Mixins réutilisables pour les modèles SQLAlchemy.

Ce module définit des mixins qui ajoutent des fonctionnalités communes
à plusieurs modèles (timestamps, paire de responsables).
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import ForeignKey
from sqlalchemy.orm import Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    """
    Mixin ajoutant les colonnes created_at et updated_at.

    - created_at : auto-rempli à la création
    - updated_at : auto-mis à jour à chaque modification

    Usage:
        class MyModel(TimestampMixin, Base):
            __tablename__ = "my_table"
            id: Mapped[int] = mapped_column(primary_key=True)
    """

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow,
        doc="Date et heure de création",
        info={"description": "Timestamp de création", "auto_generated": True}
    )

    updated_at: Mapped[datetime | None] = mapped_column(
        default=None,
        onupdate=utcnow,
        doc="Date et heure de dernière modification",
        info={"description": "Timestamp de mise à jour", "auto_generated": True}
    )


class ResponsablePairMixin:
    """
    Mixin ajoutant la paire de responsables (slot 1 obligatoire, slot 2 optionnel).

    Partagé par Network, Group, Session et Unit. La contrainte
    "un utilisateur ne dirige qu'une entité de chaque type" est portée
    par la table responsibility_assignments, pas par ces colonnes.
    """

    responsable1_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        doc="Responsable principal (slot 1)",
        info={"description": "Obligatoire, position_x = 0 dans la chaîne d'impact"}
    )

    responsable2_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
        doc="Responsable adjoint (slot 2)",
        info={"description": "Optionnel, position_x = 1 dans la chaîne d'impact"}
    )

    @property
    def responsable_ids(self) -> list[int]:
        """Ids des responsables renseignés, slot 1 d'abord."""
        return [i for i in (self.responsable1_id, self.responsable2_id) if i is not None]

    def is_responsable(self, user_id: int) -> bool:
        return user_id in self.responsable_ids
