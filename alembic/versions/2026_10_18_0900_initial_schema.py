"""initial_schema

Revision ID: 4c1f7a9d2e01
Revises:
Create Date: 2026-10-18 09:00:00.000000+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '4c1f7a9d2e01'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


USER_ROLES = (
    'SUPER_ADMIN', 'ADMIN', 'MANAGER', 'SUPERVISEUR',
    'COLLECTEUR_RESEAU', 'COLLECTEUR_CULTE', 'MEMBRE',
)

QUALIFICATIONS = (
    'MEMBRE', 'EN_INTEGRATION', 'REGULIER', 'IRREGULIER', 'MEMBRE_IRREGULIER',
    'LEADER', 'LEADERSHIP', 'RESPONSABLE_GR', 'GOUVERNANCE', 'ECODIM',
    'RESPONSABLE_ECODIM', 'RESPONSABLE_DEPARTEMENT',
    'RESPONSABLE_EGLISE', 'RESPONSABLE_RESEAU',
    'RESPONSABLE_SESSION', 'RESPONSABLE_UNITE', 'MEMBRE_SESSION',
    'QUALIFICATION_12', 'QUALIFICATION_144', 'QUALIFICATION_1728',
    'QUALIFICATION_20738', 'QUALIFICATION_248832',
)

ENTITY_KINDS = ('CHURCH', 'NETWORK', 'GROUP', 'SESSION', 'UNIT')

MEMBERSHIP_ACTIONS = ('JOINED', 'LEFT')


# =============================================================================
# HELPERS
# =============================================================================

def enum_exists(enum_name: str) -> bool:
    """Vérifie si un type ENUM existe."""
    conn = op.get_bind()
    result = conn.execute(
        sa.text("SELECT 1 FROM pg_type WHERE typname = :name"),
        {"name": enum_name},
    )
    return result.fetchone() is not None


def create_enum(name: str, values: Sequence[str]) -> postgresql.ENUM:
    """Crée le type s'il n'existe pas et retourne un ENUM réutilisable (create_type=False)."""
    if not enum_exists(name):
        postgresql.ENUM(*values, name=name).create(op.get_bind(), checkfirst=True)
    return postgresql.ENUM(*values, name=name, create_type=False)


def timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    ]


def responsable_pair() -> list[sa.Column]:
    return [
        sa.Column('responsable1_id', sa.Integer(),
                  sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('responsable2_id', sa.Integer(),
                  sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=True),
    ]


def index_responsables(table: str) -> None:
    op.create_index(f'ix_{table}_responsable1_id', table, ['responsable1_id'])
    op.create_index(f'ix_{table}_responsable2_id', table, ['responsable2_id'])


def upgrade() -> None:
    """Upgrade schema."""

    # ==========================================================================
    # 1. TYPES ENUM
    # ==========================================================================

    user_role_enum = create_enum('user_role_enum', USER_ROLES)
    qualification_enum = create_enum('qualification_enum', QUALIFICATIONS)
    entity_kind_enum = create_enum('entity_kind_enum', ENTITY_KINDS)
    membership_action_enum = create_enum('membership_action_enum', MEMBERSHIP_ACTIONS)

    # ==========================================================================
    # 2. USERS / CHURCHES (cycle de clés étrangères résolu par ALTER)
    # ==========================================================================

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(150), nullable=False),
        sa.Column('pseudo', sa.String(100), nullable=True, unique=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=True),
        sa.Column('telephone', sa.String(30), nullable=True),
        sa.Column('role', user_role_enum, nullable=False),
        sa.Column('qualification', qualification_enum, nullable=False),
        sa.Column('eglise_locale_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *timestamps(),
        comment='Table des membres (responsables et membres simples)',
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_qualification', 'users', ['qualification'])
    op.create_index('ix_users_eglise_locale_id', 'users', ['eglise_locale_id'])

    op.create_table(
        'churches',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('nom', sa.String(255), nullable=False, unique=True),
        sa.Column('ville', sa.String(100), nullable=True),
        sa.Column('adresse', sa.Text(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('responsable_id', sa.Integer(), nullable=True),
        *timestamps(),
        comment='Table des églises (racine de la hiérarchie)',
    )
    op.create_index('ix_churches_responsable_id', 'churches', ['responsable_id'])

    op.create_foreign_key(
        'fk_users_eglise_locale_id', 'users', 'churches',
        ['eglise_locale_id'], ['id'], ondelete='SET NULL',
    )
    op.create_foreign_key(
        'fk_churches_responsable_id', 'churches', 'users',
        ['responsable_id'], ['id'], ondelete='SET NULL',
    )

    # ==========================================================================
    # 3. AXE RÉSEAUX / GR
    # ==========================================================================

    op.create_table(
        'networks',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('nom', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('eglise_id', sa.Integer(),
                  sa.ForeignKey('churches.id', ondelete='CASCADE'), nullable=False),
        *responsable_pair(),
        *timestamps(),
        sa.UniqueConstraint('eglise_id', 'nom', name='uq_network_church_nom'),
        comment='Table des réseaux (niveau 1)',
    )
    op.create_index('ix_networks_eglise_id', 'networks', ['eglise_id'])
    index_responsables('networks')

    op.create_table(
        'network_companions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('network_id', sa.Integer(),
                  sa.ForeignKey('networks.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(),
                  sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        comment="Compagnons d'œuvre rattachés à un réseau",
    )
    op.create_index('ix_network_companions_network_id', 'network_companions', ['network_id'])

    op.create_table(
        'groups',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('nom', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('network_id', sa.Integer(),
                  sa.ForeignKey('networks.id', ondelete='CASCADE'), nullable=False),
        sa.Column('qualification', qualification_enum, nullable=False),
        sa.Column('superieur_hierarchique_id', sa.Integer(),
                  sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        *responsable_pair(),
        *timestamps(),
        comment='Table des GR (niveaux 2 à 6)',
    )
    op.create_index('ix_groups_network_id', 'groups', ['network_id'])
    index_responsables('groups')

    op.create_table(
        'group_members',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('group_id', sa.Integer(),
                  sa.ForeignKey('groups.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(),
                  sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('joined_at', sa.DateTime(), nullable=False),
        comment='Membres des GR (un GR au plus par utilisateur)',
    )
    op.create_index('ix_group_members_group_id', 'group_members', ['group_id'])

    # Pas de clé étrangère vers groups ni users : l'historique survit au GR et au compte
    op.create_table(
        'group_member_history',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('group_id', sa.Integer(), nullable=False),
        sa.Column('group_nom', sa.String(255), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('action', membership_action_enum, nullable=False),
        sa.Column('changed_by_id', sa.Integer(),
                  sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        comment='Historique append-only des mouvements de membres de GR',
    )
    op.create_index('ix_group_member_history_group_id', 'group_member_history', ['group_id'])
    op.create_index('ix_group_member_history_user_id', 'group_member_history', ['user_id'])
    op.create_index('ix_group_member_history_created_at', 'group_member_history', ['created_at'])

    # ==========================================================================
    # 4. AXE SESSIONS / UNITÉS
    # ==========================================================================

    op.create_table(
        'sessions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('nom', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('eglise_id', sa.Integer(),
                  sa.ForeignKey('churches.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date_debut', sa.Date(), nullable=True),
        sa.Column('date_fin', sa.Date(), nullable=True),
        *responsable_pair(),
        *timestamps(),
        sa.UniqueConstraint('eglise_id', 'nom', name='uq_session_church_nom'),
        comment='Table des sessions (axe unités)',
    )
    op.create_index('ix_sessions_eglise_id', 'sessions', ['eglise_id'])
    index_responsables('sessions')

    op.create_table(
        'units',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('nom', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('session_id', sa.Integer(),
                  sa.ForeignKey('sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('superieur_hierarchique_id', sa.Integer(),
                  sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        *responsable_pair(),
        *timestamps(),
        comment='Table des unités (rattachées à une session)',
    )
    op.create_index('ix_units_session_id', 'units', ['session_id'])
    index_responsables('units')

    op.create_table(
        'unit_members',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('unit_id', sa.Integer(),
                  sa.ForeignKey('units.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(),
                  sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('joined_at', sa.DateTime(), nullable=False),
        comment='Membres des unités (une unité au plus par utilisateur)',
    )
    op.create_index('ix_unit_members_unit_id', 'unit_members', ['unit_id'])

    op.create_table(
        'unit_member_history',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('unit_id', sa.Integer(), nullable=False),
        sa.Column('unit_nom', sa.String(255), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('action', membership_action_enum, nullable=False),
        sa.Column('changed_by_id', sa.Integer(),
                  sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_unit_member_history_unit_id', 'unit_member_history', ['unit_id'])
    op.create_index('ix_unit_member_history_user_id', 'unit_member_history', ['user_id'])
    op.create_index('ix_unit_member_history_created_at', 'unit_member_history', ['created_at'])

    # ==========================================================================
    # 5. CHAÎNE D'IMPACT ET REGISTRE DES RESPONSABILITÉS
    # ==========================================================================

    op.create_table(
        'chaine_impact',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(),
                  sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('niveau', sa.Integer(), nullable=False),
        sa.Column('qualification', qualification_enum, nullable=False),
        sa.Column('responsable_id', sa.Integer(),
                  sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('eglise_id', sa.Integer(),
                  sa.ForeignKey('churches.id', ondelete='CASCADE'), nullable=False),
        sa.Column('network_id', sa.Integer(),
                  sa.ForeignKey('networks.id', ondelete='SET NULL'), nullable=True),
        sa.Column('group_id', sa.Integer(),
                  sa.ForeignKey('groups.id', ondelete='SET NULL'), nullable=True),
        sa.Column('position_x', sa.Integer(), nullable=False),
        sa.Column('position_y', sa.Integer(), nullable=False),
        *timestamps(),
        sa.UniqueConstraint('user_id', 'niveau', 'eglise_id', name='uq_chaine_impact_user_niveau_eglise'),
        comment="Chaîne d'impact dénormalisée (recalculée, non autoritaire)",
    )
    for column in ('user_id', 'responsable_id', 'eglise_id', 'network_id', 'group_id'):
        op.create_index(f'ix_chaine_impact_{column}', 'chaine_impact', [column])

    op.create_table(
        'responsibility_assignments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(),
                  sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('entity_kind', entity_kind_enum, nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('slot', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('user_id', 'entity_kind', name='uq_responsibility_user_kind'),
        sa.UniqueConstraint('entity_kind', 'entity_id', 'slot', name='uq_responsibility_slot'),
        comment="Registre des responsabilités (unicité par utilisateur et type d'entité)",
    )
    op.create_index('ix_responsibility_assignments_user_id', 'responsibility_assignments', ['user_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('responsibility_assignments')
    op.drop_table('chaine_impact')
    op.drop_table('unit_member_history')
    op.drop_table('unit_members')
    op.drop_table('units')
    op.drop_table('sessions')
    op.drop_table('group_member_history')
    op.drop_table('group_members')
    op.drop_table('groups')
    op.drop_table('network_companions')
    op.drop_table('networks')

    op.drop_constraint('fk_churches_responsable_id', 'churches', type_='foreignkey')
    op.drop_constraint('fk_users_eglise_locale_id', 'users', type_='foreignkey')
    op.drop_table('churches')
    op.drop_table('users')

    for name in ('membership_action_enum', 'entity_kind_enum', 'qualification_enum', 'user_role_enum'):
        postgresql.ENUM(name=name).drop(op.get_bind(), checkfirst=True)
