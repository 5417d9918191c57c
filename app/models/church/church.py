"""
Modèle Church - Racine d'une hiérarchie.

Une église possède des réseaux (axe GR) et, indépendamment, des
sessions (axe unités). Son responsable occupe le niveau 0 de la
chaîne d'impact.
"""

from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String, Text, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.mixins import TimestampMixin

if TYPE_CHECKING:
    from app.models.user.user import User
    from app.models.network.network import Network
    from app.models.sessions.session import ChurchSession


class Church(TimestampMixin, Base):
    """
    Représente une église locale.

    Attributes:
        id: Identifiant unique
        nom: Nom unique de l'église
        responsable_id: Responsable d'église (niveau 0), au plus un
        networks: Réseaux de l'église
        sessions: Sessions de l'église
        members: Utilisateurs rattachés (eglise_locale_id)
    """

    __tablename__ = "churches"
    __table_args__ = {
        "comment": "Table des églises (racine de la hiérarchie)"
    }

    id: Mapped[int] = mapped_column(
        primary_key=True,
        doc="Identifiant unique de l'église",
    )

    nom: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        doc="Nom de l'église",
        info={"example": "Église Paris Centre"}
    )

    ville: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    adresse: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Cycle churches <-> users : contrainte créée par ALTER
    responsable_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL", use_alter=True, name="fk_churches_responsable_id"),
        nullable=True,
        index=True,
        doc="Responsable d'église (niveau 0)"
    )

    # === Relations ===

    responsable: Mapped[Optional["User"]] = relationship(
        "User",
        foreign_keys=[responsable_id],
    )

    members: Mapped[List["User"]] = relationship(
        "User",
        foreign_keys="User.eglise_locale_id",
        back_populates="eglise_locale",
    )

    networks: Mapped[List["Network"]] = relationship(
        "Network",
        back_populates="church",
        order_by="Network.id",
    )

    sessions: Mapped[List["ChurchSession"]] = relationship(
        "ChurchSession",
        back_populates="church",
        order_by="ChurchSession.id",
    )

    def __repr__(self) -> str:
        return f"<Church(id={self.id}, nom='{self.nom}')>"
