"""
Modèle ImpactChain - Chaîne d'impact (vue matérialisée).

Chaque ligne est un nœud de l'arbre "qui rend compte à qui" d'une
église. Aucune ligne n'est une source de vérité : la table entière
d'une église est recalculée par ImpactChainRebuilder.rebuild().
"""

from typing import Optional

from sqlalchemy import ForeignKey, Integer, UniqueConstraint
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from app.database.base_class import Base
from app.models.enums import Qualification
from app.models.mixins import TimestampMixin


class ImpactChain(TimestampMixin, Base):
    """
    Nœud de la chaîne d'impact.

    Clé métier : (user_id, niveau, eglise_id), utilisée pour les upserts.

    Attributes:
        user_id: Personne représentée par le nœud
        niveau: Profondeur (0 = responsable d'église ... 6)
        qualification: Qualification ayant servi au placement
        responsable_id: Utilisateur du nœud parent (None pour les racines)
        eglise_id / network_id / group_id: Portée du nœud
        position_x / position_y: Placement pour la visualisation
    """

    __tablename__ = "chaine_impact"
    __table_args__ = (
        UniqueConstraint("user_id", "niveau", "eglise_id", name="uq_chaine_impact_user_niveau_eglise"),
        {"comment": "Chaîne d'impact dénormalisée (recalculée, non autoritaire)"}
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    niveau: Mapped[int] = mapped_column(Integer, nullable=False, doc="Niveau 0 à 6")

    qualification: Mapped[Qualification] = mapped_column(
        SQLEnum(Qualification, name="qualification_enum"),
        nullable=False,
    )

    responsable_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        doc="Parent dans l'arbre"
    )

    eglise_id: Mapped[int] = mapped_column(
        ForeignKey("churches.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    network_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("networks.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    group_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("groups.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    position_x: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    position_y: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<ImpactChain(user_id={self.user_id}, niveau={self.niveau}, responsable_id={self.responsable_id})>"
