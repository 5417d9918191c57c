"""
Appartenance aux GR et historique des mouvements.

- GroupMember : appartenance courante (un GR au plus par utilisateur)
- GroupMemberHistory : journal append-only JOINED / LEFT, conservé
  après la suppression du GR (pas de clé étrangère vers groups)
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, ForeignKey, Integer
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.enums import MembershipAction
from app.models.mixins import utcnow

if TYPE_CHECKING:
    from app.models.group.group import Group
    from app.models.user.user import User


class GroupMember(Base):
    """Appartenance courante d'un utilisateur à un GR."""

    __tablename__ = "group_members"
    __table_args__ = {
        "comment": "Membres des GR (un GR au plus par utilisateur)"
    }

    id: Mapped[int] = mapped_column(primary_key=True)

    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        doc="Un utilisateur n'appartient qu'à un seul GR"
    )

    joined_at: Mapped[datetime] = mapped_column(default=utcnow)

    group: Mapped["Group"] = relationship("Group", back_populates="members")
    user: Mapped["User"] = relationship("User")


class GroupMemberHistory(Base):
    """Journal des entrées/sorties de GR."""

    __tablename__ = "group_member_history"
    __table_args__ = {
        "comment": "Historique append-only des mouvements de membres de GR"
    }

    id: Mapped[int] = mapped_column(primary_key=True)

    group_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
        doc="Id du GR (sans clé étrangère, survit à la suppression du GR)"
    )

    group_nom: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Nom du GR au moment du mouvement"
    )

    user_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
        doc="Id du membre (sans clé étrangère, survit à la suppression du compte)"
    )

    action: Mapped[MembershipAction] = mapped_column(
        SQLEnum(MembershipAction, name="membership_action_enum"),
        nullable=False,
    )

    changed_by_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        doc="Auteur du mouvement"
    )

    created_at: Mapped[datetime] = mapped_column(default=utcnow, index=True)
