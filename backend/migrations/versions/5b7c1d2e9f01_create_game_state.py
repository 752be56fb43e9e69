"""create game_state singleton table

Revision ID: 5b7c1d2e9f01
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5b7c1d2e9f01'
down_revision = None
branch_labels = None
depends_on = None

# Same fixed key as floortower.models.SINGLETON_ID
SINGLETON_ID = 1


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'game_state' not in insp.get_table_names():
        op.create_table(
            'game_state',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('is_running', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
            sa.Column('floor_is_running', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('floor_end_time', sa.DateTime(timezone=True), nullable=True),
            sa.Column('active_floors', sa.Text(), nullable=False, server_default='[]'),
            sa.Column('broadcast_message', sa.Text(), nullable=False, server_default=''),
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        )
    exists = bind.execute(
        sa.text('SELECT 1 FROM game_state WHERE id = :id'), {'id': SINGLETON_ID}
    ).first()
    if not exists:
        bind.execute(
            sa.text("INSERT INTO game_state (id, is_running, floor_is_running, active_floors, broadcast_message) "
                    "VALUES (:id, :off, :off, '[]', '')"),
            {'id': SINGLETON_ID, 'off': False},
        )


def downgrade():
    op.drop_table('game_state')
