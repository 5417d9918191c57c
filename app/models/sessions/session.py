"""
Modèle ChurchSession - Sessions (axe parallèle aux réseaux).

Une session appartient à une église et regroupe des unités, comme un
réseau regroupe des GR. Elle n'apparaît pas dans la chaîne d'impact.
"""

from datetime import date
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String, Text, Date, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.mixins import TimestampMixin, ResponsablePairMixin

if TYPE_CHECKING:
    from app.models.church.church import Church
    from app.models.sessions.unit import Unit
    from app.models.user.user import User


class ChurchSession(TimestampMixin, ResponsablePairMixin, Base):
    """
    Représente une session.

    Attributes:
        id: Identifiant unique
        nom: Nom, unique au sein de l'église
        eglise_id: Église propriétaire
        date_debut / date_fin: Période couverte (optionnelle)
        units: Unités de la session
    """

    __tablename__ = "sessions"
    __table_args__ = (
        UniqueConstraint("eglise_id", "nom", name="uq_session_church_nom"),
        {"comment": "Table des sessions (axe unités)"}
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    nom: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    eglise_id: Mapped[int] = mapped_column(
        ForeignKey("churches.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    date_debut: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    date_fin: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # === Relations ===

    church: Mapped["Church"] = relationship("Church", back_populates="sessions")

    units: Mapped[List["Unit"]] = relationship(
        "Unit",
        back_populates="session",
        order_by="Unit.id",
    )

    responsable1: Mapped["User"] = relationship("User", foreign_keys="ChurchSession.responsable1_id")
    responsable2: Mapped[Optional["User"]] = relationship("User", foreign_keys="ChurchSession.responsable2_id")

    def __repr__(self) -> str:
        return f"<ChurchSession(id={self.id}, nom='{self.nom}')>"
