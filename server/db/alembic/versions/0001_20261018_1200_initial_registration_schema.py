"""Initial registration schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade database schema."""
    op.create_table('events',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('starts_at', sa.DateTime(), nullable=True),
        sa.Column('ends_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('length(title) > 0', name='ck_event_title_not_empty'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_events_title'), 'events', ['title'], unique=False)

    op.create_table('places',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('kind', sa.String(length=10), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('rooms',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('place_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('beds', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('beds >= 1', name='ck_room_beds_positive'),
        sa.ForeignKeyConstraint(['place_id'], ['places.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_rooms_place_id'), 'rooms', ['place_id'], unique=False)

    op.create_table('registrations',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('event_id', sa.Uuid(), nullable=False),
        sa.Column('owner_name', sa.String(length=255), nullable=False),
        sa.Column('owner_email', sa.String(length=320), nullable=False),
        sa.Column('university', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('room_id', sa.Uuid(), nullable=True),
        sa.Column('bound_card', sa.String(length=128), nullable=True),
        sa.Column('admin_note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('length(owner_name) > 0', name='ck_registration_owner_name_not_empty'),
        sa.CheckConstraint('length(owner_email) > 0', name='ck_registration_owner_email_not_empty'),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['room_id'], ['rooms.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('bound_card')
    )
    op.create_index(op.f('ix_registrations_event_id'), 'registrations', ['event_id'], unique=False)
    op.create_index(op.f('ix_registrations_owner_email'), 'registrations', ['owner_email'], unique=False)
    op.create_index(op.f('ix_registrations_status'), 'registrations', ['status'], unique=False)
    op.create_index(op.f('ix_registrations_room_id'), 'registrations', ['room_id'], unique=False)

    op.create_table('registration_companions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('registration_id', sa.Uuid(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('relation', sa.String(length=64), nullable=True),
        sa.Column('contact', sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(['registration_id'], ['registrations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        op.f('ix_registration_companions_registration_id'),
        'registration_companions', ['registration_id'], unique=False
    )

    op.create_table('portals',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('event_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_portals_event_id'), 'portals', ['event_id'], unique=False)

    op.create_table('attendance_records',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('registration_id', sa.Uuid(), nullable=True),
        sa.Column('event_id', sa.Uuid(), nullable=False),
        sa.Column('portal_id', sa.String(length=64), nullable=False),
        sa.Column('portal_label', sa.String(length=255), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=False),
        sa.Column('scanned_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['registration_id'], ['registrations.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_attendance_records_event_id'), 'attendance_records', ['event_id'], unique=False)
    op.create_index(op.f('ix_attendance_records_portal_id'), 'attendance_records', ['portal_id'], unique=False)
    op.create_index(op.f('ix_attendance_records_scanned_at'), 'attendance_records', ['scanned_at'], unique=False)
    op.create_index(
        'ix_attendance_records_registration_scanned',
        'attendance_records', ['registration_id', 'scanned_at'], unique=False
    )


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table('attendance_records')
    op.drop_table('portals')
    op.drop_table('registration_companions')
    op.drop_table('registrations')
    op.drop_table('rooms')
    op.drop_table('places')
    op.drop_table('events')
