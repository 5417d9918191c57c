"""
Modèle Group - GR (groupes de réseau).

Un GR appartient à un réseau. Son palier (QUALIFICATION_12 ...
QUALIFICATION_248832) est choisi à la création et détermine le niveau
de ses responsables dans la chaîne d'impact (2 à 6).
"""

from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String, Text, ForeignKey
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.enums import Qualification
from app.models.mixins import TimestampMixin, ResponsablePairMixin

if TYPE_CHECKING:
    from app.models.network.network import Network
    from app.models.group.group_member import GroupMember
    from app.models.user.user import User


class Group(TimestampMixin, ResponsablePairMixin, Base):
    """
    Représente un GR.

    Attributes:
        id: Identifiant unique
        nom: Nom affiché (GR_<prénom> si généré)
        network_id: Réseau propriétaire
        qualification: Palier du GR (niveaux 2 à 6), figé à la création
        superieur_hierarchique_id: Supérieur explicite, sinon le
            responsable1 du réseau
        members: Membres courants
    """

    __tablename__ = "groups"
    __table_args__ = {
        "comment": "Table des GR (niveaux 2 à 6)"
    }

    id: Mapped[int] = mapped_column(primary_key=True)

    nom: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Nom du GR",
        info={"example": "GR_Jean"}
    )

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    network_id: Mapped[int] = mapped_column(
        ForeignKey("networks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="Réseau propriétaire"
    )

    qualification: Mapped[Qualification] = mapped_column(
        SQLEnum(Qualification, name="qualification_enum"),
        nullable=False,
        doc="Palier du GR",
        info={"description": "QUALIFICATION_12 à QUALIFICATION_248832"}
    )

    superieur_hierarchique_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        doc="Supérieur hiérarchique explicite"
    )

    # === Relations ===

    network: Mapped["Network"] = relationship("Network", back_populates="groups")

    members: Mapped[List["GroupMember"]] = relationship(
        "GroupMember",
        back_populates="group",
        order_by="GroupMember.id",
    )

    responsable1: Mapped["User"] = relationship("User", foreign_keys="Group.responsable1_id")
    responsable2: Mapped[Optional["User"]] = relationship("User", foreign_keys="Group.responsable2_id")
    superieur_hierarchique: Mapped[Optional["User"]] = relationship(
        "User", foreign_keys=[superieur_hierarchique_id]
    )

    def __repr__(self) -> str:
        return f"<Group(id={self.id}, nom='{self.nom}', network_id={self.network_id})>"
