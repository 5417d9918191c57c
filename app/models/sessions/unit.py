"""
Modèles Unit, UnitMember et UnitMemberHistory.

Structure parallèle au couple GR / membres de GR, rattachée à une session.
"""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String, Text, ForeignKey, Integer
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.enums import MembershipAction
from app.models.mixins import TimestampMixin, ResponsablePairMixin, utcnow

if TYPE_CHECKING:
    from app.models.sessions.session import ChurchSession
    from app.models.user.user import User


class Unit(TimestampMixin, ResponsablePairMixin, Base):
    """
    Représente une unité d'une session.

    Attributes:
        id: Identifiant unique
        nom: Nom affiché (Unité_<prénom> si généré)
        session_id: Session propriétaire
        superieur_hierarchique_id: Supérieur explicite (optionnel)
        members: Membres courants
    """

    __tablename__ = "units"
    __table_args__ = {
        "comment": "Table des unités (rattachées à une session)"
    }

    id: Mapped[int] = mapped_column(primary_key=True)

    nom: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    session_id: Mapped[int] = mapped_column(
        ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    superieur_hierarchique_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    # === Relations ===

    session: Mapped["ChurchSession"] = relationship("ChurchSession", back_populates="units")

    members: Mapped[List["UnitMember"]] = relationship(
        "UnitMember",
        back_populates="unit",
        order_by="UnitMember.id",
    )

    responsable1: Mapped["User"] = relationship("User", foreign_keys="Unit.responsable1_id")
    responsable2: Mapped[Optional["User"]] = relationship("User", foreign_keys="Unit.responsable2_id")

    def __repr__(self) -> str:
        return f"<Unit(id={self.id}, nom='{self.nom}', session_id={self.session_id})>"


class UnitMember(Base):
    """Appartenance courante d'un utilisateur à une unité (une au plus)."""

    __tablename__ = "unit_members"
    __table_args__ = {
        "comment": "Membres des unités (une unité au plus par utilisateur)"
    }

    id: Mapped[int] = mapped_column(primary_key=True)

    unit_id: Mapped[int] = mapped_column(
        ForeignKey("units.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    joined_at: Mapped[datetime] = mapped_column(default=utcnow)

    unit: Mapped["Unit"] = relationship("Unit", back_populates="members")
    user: Mapped["User"] = relationship("User")


class UnitMemberHistory(Base):
    """Journal append-only des entrées/sorties d'unité."""

    __tablename__ = "unit_member_history"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Pas de clé étrangère : l'historique survit à l'unité et au compte
    unit_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    unit_nom: Mapped[str] = mapped_column(String(255), nullable=False)

    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    action: Mapped[MembershipAction] = mapped_column(
        SQLEnum(MembershipAction, name="membership_action_enum"),
        nullable=False,
    )

    changed_by_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(default=utcnow, index=True)
