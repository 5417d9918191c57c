"""
Modèles Network et NetworkCompanion.

Un réseau appartient à une église (niveau 1 de la chaîne d'impact)
et regroupe des GR. Les compagnons d'œuvre sont rattachés au réseau
sans être membres d'un GR.
"""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.mixins import TimestampMixin, ResponsablePairMixin, utcnow

if TYPE_CHECKING:
    from app.models.church.church import Church
    from app.models.group.group import Group
    from app.models.user.user import User


class Network(TimestampMixin, ResponsablePairMixin, Base):
    """
    Représente un réseau.

    Attributes:
        id: Identifiant unique
        nom: Nom, unique au sein de l'église
        eglise_id: Église propriétaire
        responsable1_id / responsable2_id: Responsables de réseau
        groups: GR du réseau
        companions: Compagnons d'œuvre
    """

    __tablename__ = "networks"
    __table_args__ = (
        UniqueConstraint("eglise_id", "nom", name="uq_network_church_nom"),
        {"comment": "Table des réseaux (niveau 1)"}
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    nom: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Nom du réseau",
        info={"example": "Réseau Nord"}
    )

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    eglise_id: Mapped[int] = mapped_column(
        ForeignKey("churches.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="Église propriétaire"
    )

    # === Relations ===

    church: Mapped["Church"] = relationship("Church", back_populates="networks")

    groups: Mapped[List["Group"]] = relationship(
        "Group",
        back_populates="network",
        order_by="Group.id",
    )

    companions: Mapped[List["NetworkCompanion"]] = relationship(
        "NetworkCompanion",
        back_populates="network",
        order_by="NetworkCompanion.id",
    )

    responsable1: Mapped["User"] = relationship("User", foreign_keys="Network.responsable1_id")
    responsable2: Mapped[Optional["User"]] = relationship("User", foreign_keys="Network.responsable2_id")

    def __repr__(self) -> str:
        return f"<Network(id={self.id}, nom='{self.nom}', eglise_id={self.eglise_id})>"


class NetworkCompanion(Base):
    """
    Compagnon d'œuvre : rattaché à un seul réseau, jamais membre d'un GR.

    L'unicité de user_id garantit qu'un utilisateur n'accompagne
    qu'un réseau à la fois.
    """

    __tablename__ = "network_companions"
    __table_args__ = {
        "comment": "Compagnons d'œuvre rattachés à un réseau"
    }

    id: Mapped[int] = mapped_column(primary_key=True)

    network_id: Mapped[int] = mapped_column(
        ForeignKey("networks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    network: Mapped["Network"] = relationship("Network", back_populates="companions")
    user: Mapped["User"] = relationship("User")
