"""create_session_tables

Revision ID: 3f1c9a2b7d40
Revises:
Create Date: 2026-10-19 10:12:31.204117

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9a2b7d40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('attempts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('test_id', sa.String(64), nullable=False),
        sa.Column('category', sa.String(64), nullable=False, server_default=''),
        sa.Column('selected_length', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_questions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('current_position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('finished', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('exam_mode', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('presentation_order_json', sa.Text(), nullable=True),
        sa.Column('option_order_json', sa.Text(), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('finished_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'test_id', name='uq_attempt_user_test')
    )
    op.create_index('ix_attempts_id', 'attempts', ['id'])
    op.create_index('ix_attempts_user_id', 'attempts', ['user_id'])
    op.create_index('ix_attempts_test_id', 'attempts', ['test_id'])

    op.create_table('attempt_answers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('attempt_id', sa.Integer(), nullable=False),
        sa.Column('question_id', sa.String(64), nullable=False),
        sa.Column('chosen_option_index', sa.Integer(), nullable=True),
        sa.Column('correct_option_index', sa.Integer(), nullable=False),
        sa.Column('answered_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['attempt_id'], ['attempts.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('attempt_id', 'question_id', name='uq_attempt_question')
    )
    op.create_index('ix_attempt_answers_id', 'attempt_answers', ['id'])
    op.create_index('ix_attempt_answers_attempt_id', 'attempt_answers', ['attempt_id'])

    op.create_table('accounts',
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('xp', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('coins', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('xp_boost', sa.Float(), nullable=False, server_default='1.0'),
        sa.Column('subscription_active', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('free_questions_remaining', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('achievements_json', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('user_id')
    )
    op.create_index('ix_accounts_user_id', 'accounts', ['user_id'])

    op.create_table('correct_answers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('test_id', sa.String(64), nullable=False),
        sa.Column('question_id', sa.String(64), nullable=False),
        sa.Column('awarded_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'test_id', 'question_id', name='uq_correct_answer')
    )
    op.create_index('ix_correct_answers_id', 'correct_answers', ['id'])
    op.create_index('ix_correct_answers_user_id', 'correct_answers', ['user_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_correct_answers_user_id', table_name='correct_answers')
    op.drop_index('ix_correct_answers_id', table_name='correct_answers')
    op.drop_table('correct_answers')
    op.drop_index('ix_accounts_user_id', table_name='accounts')
    op.drop_table('accounts')
    op.drop_index('ix_attempt_answers_attempt_id', table_name='attempt_answers')
    op.drop_index('ix_attempt_answers_id', table_name='attempt_answers')
    op.drop_table('attempt_answers')
    op.drop_index('ix_attempts_test_id', table_name='attempts')
    op.drop_index('ix_attempts_user_id', table_name='attempts')
    op.drop_index('ix_attempts_id', table_name='attempts')
    op.drop_table('attempts')
