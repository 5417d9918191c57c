"""
Modèle User - Membres de l'église.

Ce module définit la table `users` : toute personne connue de
l'application, responsable ou simple membre.
"""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, Boolean, ForeignKey
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.enums import Qualification, UserRole
from app.models.mixins import TimestampMixin

if TYPE_CHECKING:
    from app.models.church.church import Church


class User(TimestampMixin, Base):
    """
    Représente une personne de l'église.

    Deux notions distinctes :
    - role : niveau d'accès à l'application (ADMIN, MANAGER, MEMBRE...)
    - qualification : rang dans la hiérarchie, valeur dérivée des
      responsabilités et appartenances courantes (voir QualificationService)

    Attributes:
        id: Identifiant unique
        username: Nom d'usage, éventuellement préfixé d'un titre (Past., MC.,...)
        pseudo: Nom court utilisé pour nommer les GR
        email: Email de connexion (unique)
        qualification: Rang hiérarchique courant
        eglise_locale_id: Église de rattachement
    """

    __tablename__ = "users"
    __table_args__ = {
        "comment": "Table des membres (responsables et membres simples)"
    }

    # === Colonnes ===

    id: Mapped[int] = mapped_column(
        primary_key=True,
        doc="Identifiant unique de l'utilisateur",
        info={"description": "Clé primaire auto-incrémentée"}
    )

    username: Mapped[str] = mapped_column(
        String(150),
        nullable=False,
        doc="Nom d'usage",
        info={
            "description": "Nom affiché, peut commencer par un titre",
            "example": "Past. Jean Dupont"
        }
    )

    pseudo: Mapped[Optional[str]] = mapped_column(
        String(100),
        unique=True,
        nullable=True,
        doc="Pseudo unique",
        info={"description": "Repli pour le nommage automatique des GR", "example": "jeanD"}
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        doc="Adresse email unique de connexion",
        info={"description": "Email personnel", "format": "email", "pii": True}
    )

    password_hash: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        doc="Hash bcrypt du mot de passe"
    )

    telephone: Mapped[Optional[str]] = mapped_column(
        String(30),
        nullable=True,
        info={"pii": True}
    )

    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, name="user_role_enum"),
        default=UserRole.MEMBRE,
        nullable=False,
        doc="Rôle d'accès à l'application"
    )

    qualification: Mapped[Qualification] = mapped_column(
        SQLEnum(Qualification, name="qualification_enum"),
        default=Qualification.EN_INTEGRATION,
        nullable=False,
        index=True,
        doc="Rang hiérarchique courant (valeur dérivée)",
        info={"description": "Mise à jour uniquement par le QualificationService"}
    )

    eglise_locale_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("churches.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        doc="Église de rattachement"
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        doc="Compte actif"
    )

    # === Relations ===

    eglise_locale: Mapped[Optional["Church"]] = relationship(
        "Church",
        foreign_keys=[eglise_locale_id],
        back_populates="members",
    )

    # === Méthodes ===

    @property
    def is_admin(self) -> bool:
        return self.role in (UserRole.SUPER_ADMIN, UserRole.ADMIN)

    def has_role(self, *roles: str) -> bool:
        """Vérifie si l'utilisateur possède l'un des rôles donnés."""
        return self.role.value in {r.value if isinstance(r, UserRole) else r for r in roles}

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}', qualification={self.qualification.value if self.qualification else None})>"
