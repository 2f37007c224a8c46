"""Migration initiale - Tables du tableau de bord partenaire

Revision ID: 001_initial
Revises: 
Create Date: 2025-01-15 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Table partners
    op.create_table(
        'partners',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('company_name', sa.String(length=200), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=30), nullable=True),
        sa.Column('rep_full_name', sa.String(length=200), nullable=True),
        sa.Column('rep_email', sa.String(length=255), nullable=True),
        sa.Column('hr_full_name', sa.String(length=200), nullable=True),
        sa.Column('hr_email', sa.String(length=255), nullable=True),
        sa.Column('payment_day', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=20), server_default='pending', nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_partners_company_name', 'partners', ['company_name'])

    # Table employees
    op.create_table(
        'employees',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('partner_id', sa.String(length=36), nullable=False),
        sa.Column('nom', sa.String(length=100), nullable=False),
        sa.Column('prenom', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('telephone', sa.String(length=30), nullable=True),
        sa.Column('poste', sa.String(length=100), nullable=True),
        sa.Column('salaire_net', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('actif', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('date_embauche', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['partner_id'], ['partners.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_employee_partner', 'employees', ['partner_id'])

    # Table admin_users
    op.create_table(
        'admin_users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('display_name', sa.String(length=200), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), server_default='rh', nullable=False),
        sa.Column('partenaire_id', sa.String(length=36), nullable=True),
        sa.Column('active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('require_password_change', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['partenaire_id'], ['partners.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_admin_users_email', 'admin_users', ['email'], unique=True)
    op.create_index('idx_admin_user_partenaire', 'admin_users', ['partenaire_id'])

    # Table salary_advance_requests
    op.create_table(
        'salary_advance_requests',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('employe_id', sa.String(length=36), nullable=False),
        sa.Column('partenaire_id', sa.String(length=36), nullable=False),
        sa.Column('montant_demande', sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column('frais_service', sa.Numeric(precision=14, scale=2), server_default='0', nullable=False),
        sa.Column('type_motif', sa.String(length=50), nullable=True),
        sa.Column('motif', sa.Text(), nullable=True),
        sa.Column('statut', sa.String(length=20), server_default='EN_ATTENTE', nullable=False),
        sa.Column('date_creation', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('date_validation', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['employe_id'], ['employees.id']),
        sa.ForeignKeyConstraint(['partenaire_id'], ['partners.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_demande_avance_partenaire', 'salary_advance_requests', ['partenaire_id'])

    # Table transactions
    op.create_table(
        'transactions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('demande_avance_id', sa.String(length=36), nullable=True),
        sa.Column('entreprise_id', sa.String(length=36), nullable=True),
        sa.Column('numero_transaction', sa.String(length=100), nullable=True),
        sa.Column('methode_paiement', sa.String(length=30), server_default='MOBILE_MONEY', nullable=False),
        sa.Column('montant', sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column('numero_compte', sa.String(length=30), nullable=True),
        sa.Column('numero_reception', sa.String(length=30), nullable=True),
        sa.Column('statut', sa.String(length=20), server_default='EFFECTUEE', nullable=False),
        sa.Column('date_transaction', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['demande_avance_id'], ['salary_advance_requests.id']),
        sa.ForeignKeyConstraint(['entreprise_id'], ['partners.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_transactions_numero_transaction', 'transactions', ['numero_transaction'])

    # Table remboursements (standards et intégraux, distingués par type_remboursement)
    op.create_table(
        'remboursements',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('pay_id', sa.String(length=100), nullable=True),
        sa.Column('type_remboursement', sa.String(length=20), server_default='STANDARD', nullable=False),
        sa.Column('employe_id', sa.String(length=36), nullable=False),
        sa.Column('partenaire_id', sa.String(length=36), nullable=False),
        sa.Column('demande_avance_id', sa.String(length=36), nullable=True),
        sa.Column('transaction_ref_id', sa.String(length=36), nullable=True),
        sa.Column('montant_total_remboursement', sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column('frais_service', sa.Numeric(precision=14, scale=2), server_default='0', nullable=False),
        sa.Column('statut', sa.String(length=20), server_default='EN_ATTENTE', nullable=False),
        sa.Column('date_creation', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('date_limite_remboursement', sa.DateTime(), nullable=True),
        sa.Column('date_remboursement_effectue', sa.DateTime(), nullable=True),
        sa.Column('date_annulation', sa.DateTime(), nullable=True),
        sa.Column('numero_reception', sa.String(length=30), nullable=True),
        sa.Column('transaction_id', sa.String(length=100), nullable=True),
        sa.Column('message_paiement', sa.Text(), nullable=True),
        sa.Column('commentaire_partenaire', sa.Text(), nullable=True),
        sa.Column('commentaire_admin', sa.Text(), nullable=True),
        sa.Column('motif_retard', sa.Text(), nullable=True),
        sa.Column('version', sa.Integer(), server_default='1', nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['employe_id'], ['employees.id']),
        sa.ForeignKeyConstraint(['partenaire_id'], ['partners.id']),
        sa.ForeignKeyConstraint(['demande_avance_id'], ['salary_advance_requests.id']),
        sa.ForeignKeyConstraint(['transaction_ref_id'], ['transactions.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('montant_total_remboursement >= 0', name='non_negative_montant'),
        sa.CheckConstraint('version >= 1', name='positive_version'),
    )
    op.create_index('ix_remboursements_pay_id', 'remboursements', ['pay_id'], unique=True)
    op.create_index('idx_remboursement_partenaire', 'remboursements', ['partenaire_id'])
    op.create_index('idx_remboursement_statut', 'remboursements', ['statut'])
    op.create_index('idx_remboursement_partenaire_statut', 'remboursements', ['partenaire_id', 'statut'])
    op.create_index('idx_remboursement_echeance', 'remboursements', ['date_limite_remboursement'])

    # Table historique_remboursements (append-only)
    op.create_table(
        'historique_remboursements',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('remboursement_id', sa.String(length=36), nullable=False),
        sa.Column('action', sa.String(length=40), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('montant_avant', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('montant_apres', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('statut_avant', sa.String(length=20), nullable=True),
        sa.Column('statut_apres', sa.String(length=20), nullable=True),
        sa.Column('utilisateur_id', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['remboursement_id'], ['remboursements.id']),
        sa.ForeignKeyConstraint(['utilisateur_id'], ['admin_users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_historique_remboursement', 'historique_remboursements', ['remboursement_id'])
    op.create_index('idx_historique_created', 'historique_remboursements', ['created_at'])

    # Table notifications
    op.create_table(
        'notifications',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('partenaire_id', sa.String(length=36), nullable=True),
        sa.Column('titre', sa.String(length=200), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('type', sa.String(length=20), server_default='info', nullable=False),
        sa.Column('lu', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('idempotency_key', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('read_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['partenaire_id'], ['partners.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('idempotency_key'),
    )
    op.create_index('idx_notification_partenaire', 'notifications', ['partenaire_id'])
    op.create_index('idx_notification_partenaire_lu', 'notifications', ['partenaire_id', 'lu'])
    op.create_index('idx_notification_type', 'notifications', ['type'])


def downgrade() -> None:
    # Supprimer les tables dans l'ordre inverse
    op.drop_table('notifications')
    op.drop_table('historique_remboursements')
    op.drop_table('remboursements')
    op.drop_table('transactions')
    op.drop_table('salary_advance_requests')
    op.drop_table('admin_users')
    op.drop_table('employees')
    op.drop_table('partners')
