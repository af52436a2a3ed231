"""initial schema

Revision ID: 3c1a9e5d7b20
Revises:
Create Date: 2026-10-19 09:12:44.318205
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = '3c1a9e5d7b20'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role = sa.Enum('EMPLOYEE', 'TEAM_LEAD', 'MANAGER', 'ADMIN', name='userrole')
user_status = sa.Enum('ACTIVE', 'INACTIVE', 'DELETED', name='userstatus')
activity_type = sa.Enum('AUTH', 'USER', 'POINTAGE', 'ABSENCE', 'BREAK', 'SYSTEM', name='activitytype')
pointage_status = sa.Enum('NORMAL', 'LATE', name='pointagestatus')
absence_type = sa.Enum('CONGE', 'MALADIE', 'AUTRE', name='absencetype')
absence_status = sa.Enum('PENDING', 'APPROVED', 'REJECTED', name='absencestatus')
daily_report_mode = sa.Enum('TODAY', 'YESTERDAY', name='dailyreportmode')


def _timestamps():
    return [
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        *_timestamps(),
        sa.Column('username', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('firstname', sa.String(length=100), nullable=True),
        sa.Column('lastname', sa.String(length=100), nullable=True),
        sa.Column('role', user_role, nullable=False),
        sa.Column('status', user_status, nullable=False),
        sa.Column('department', sa.String(length=100), nullable=True),
        sa.Column('position', sa.String(length=100), nullable=True),
        sa.Column('avatar', sa.String(length=500), nullable=True),
        sa.Column('team_lead_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_department', 'users', ['department'])

    op.create_table(
        'permissions',
        *_timestamps(),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=50), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_permissions_id', 'permissions', ['id'])
    op.create_index('ix_permissions_name', 'permissions', ['name'], unique=True)
    op.create_index('ix_permissions_category', 'permissions', ['category'])

    op.create_table(
        'user_permissions',
        *_timestamps(),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('permission_id', sa.Integer(), sa.ForeignKey('permissions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('granted_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('granted_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'permission_id', name='uq_user_permission'),
    )
    op.create_index('ix_user_permissions_id', 'user_permissions', ['id'])
    op.create_index('ix_user_permissions_user_id', 'user_permissions', ['user_id'])

    op.create_table(
        'sessions',
        *_timestamps(),
        sa.Column('session_token', sa.String(length=255), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sessions_id', 'sessions', ['id'])
    op.create_index('ix_sessions_session_token', 'sessions', ['session_token'], unique=True)

    op.create_table(
        'pages',
        *_timestamps(),
        sa.Column('code', sa.String(length=100), nullable=False),
        sa.Column('path', sa.String(length=255), nullable=False),
        sa.Column('label', sa.String(length=255), nullable=False),
        sa.Column('nav_group', sa.String(length=50), nullable=True),
        sa.Column('allowed_roles', sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_pages_id', 'pages', ['id'])
    op.create_index('ix_pages_code', 'pages', ['code'], unique=True)

    op.create_table(
        'page_permissions',
        *_timestamps(),
        sa.Column('page_id', sa.Integer(), sa.ForeignKey('pages.id', ondelete='CASCADE'), nullable=False),
        sa.Column('permission_id', sa.Integer(), sa.ForeignKey('permissions.id', ondelete='CASCADE'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('page_id', 'permission_id', name='uq_page_permission'),
    )
    op.create_index('ix_page_permissions_id', 'page_permissions', ['id'])

    op.create_table(
        'activity_logs',
        *_timestamps(),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('action', sa.String(length=255), nullable=False),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('type', activity_type, nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_activity_logs_id', 'activity_logs', ['id'])
    op.create_index('ix_activity_logs_user_id', 'activity_logs', ['user_id'])
    op.create_index('ix_activity_logs_type', 'activity_logs', ['type'])
    op.create_index('ix_activity_logs_timestamp', 'activity_logs', ['timestamp'])

    op.create_table(
        'departments',
        *_timestamps(),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_departments_id', 'departments', ['id'])
    op.create_index('ix_departments_name', 'departments', ['name'], unique=True)

    op.create_table(
        'positions',
        *_timestamps(),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('department_id', sa.Integer(), sa.ForeignKey('departments.id', ondelete='CASCADE'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_positions_id', 'positions', ['id'])
    op.create_index('ix_positions_department_id', 'positions', ['department_id'])

    op.create_table(
        'pointages',
        *_timestamps(),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('entry_time', sa.Time(), nullable=True),
        sa.Column('exit_time', sa.Time(), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('status', pointage_status, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_pointages_id', 'pointages', ['id'])
    op.create_index('ix_pointages_user_id', 'pointages', ['user_id'])
    op.create_index('ix_pointages_date', 'pointages', ['date'])

    op.create_table(
        'breaks',
        *_timestamps(),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_breaks_id', 'breaks', ['id'])
    op.create_index('ix_breaks_user_id', 'breaks', ['user_id'])
    op.create_index('ix_breaks_date', 'breaks', ['date'])

    op.create_table(
        'absences',
        *_timestamps(),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', absence_type, nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('status', absence_status, nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('validated_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_absences_id', 'absences', ['id'])
    op.create_index('ix_absences_user_id', 'absences', ['user_id'])

    op.create_table(
        'system_settings',
        *_timestamps(),
        sa.Column('work_start_time', sa.String(length=5), nullable=False),
        sa.Column('work_end_time', sa.String(length=5), nullable=False),
        sa.Column('max_session_end_time', sa.String(length=5), nullable=False),
        sa.Column('break_duration', sa.Integer(), nullable=False),
        sa.Column('overtime_threshold', sa.Integer(), nullable=False),
        sa.Column('holidays', sa.JSON(), nullable=False),
        sa.Column('email_notifications', sa.Boolean(), nullable=False),
        sa.Column('push_notifications', sa.Boolean(), nullable=False),
        sa.Column('late_alerts', sa.Boolean(), nullable=False),
        sa.Column('daily_report_mode', daily_report_mode, nullable=False),
        sa.Column('ldap_sync_enabled', sa.Boolean(), nullable=False),
        sa.Column('ldap_sync_interval_minutes', sa.Integer(), nullable=False),
        sa.Column('ldap_last_sync_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_system_settings_id', 'system_settings', ['id'])
    print("✓ [3c1a9e5d7b20] Created initial schema")


def downgrade() -> None:
    for table in (
        'system_settings', 'absences', 'breaks', 'pointages', 'positions', 'departments',
        'activity_logs', 'page_permissions', 'pages', 'sessions', 'user_permissions',
        'permissions', 'users',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum in (
        daily_report_mode, absence_status, absence_type, pointage_status,
        activity_type, user_status, user_role,
    ):
        enum.drop(bind, checkfirst=True)
