"""Create practice session and question bank tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def upgrade() -> None:
    # Question bank (read-only for practice sessions)
    op.create_table(
        'question_bank_questions',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('package_id', sa.String(64), nullable=True),
        sa.Column('prompt', sa.Text, nullable=False),
        sa.Column('explanation', sa.Text, nullable=False, server_default=''),
        sa.Column('correct_choice_id', sa.String(64), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='DRAFT'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_question_bank_questions_package_status', 'question_bank_questions', ['package_id', 'status'])

    op.create_table(
        'question_bank_choices',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            'question_id',
            sa.String(64),
            sa.ForeignKey('question_bank_questions.id', ondelete='CASCADE', onupdate='CASCADE'),
            nullable=False,
        ),
        sa.Column('choice_key', sa.String(64), nullable=False),
        sa.Column('text', sa.Text, nullable=False),
        sa.Column('order_index', sa.Integer, nullable=False, server_default='0'),
        sa.UniqueConstraint('question_id', 'choice_key', name='uq_question_bank_choice_key'),
    )
    op.create_index('ix_question_bank_choices_question_id', 'question_bank_choices', ['question_id'])

    # Practice sessions
    op.create_table(
        'practice_sessions',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('package_id', sa.String(64), nullable=True),
        sa.Column('is_timed', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('time_limit_seconds', sa.Integer, nullable=True),
        sa.Column('target_count', sa.Integer, nullable=False),
        sa.Column('question_order', JSON_TYPE, nullable=False),
        sa.Column('questions_snapshot', JSON_TYPE, nullable=True),
        sa.Column('current_index', sa.Integer, nullable=False, server_default='0'),
        sa.Column('correct_count', sa.Integer, nullable=False, server_default='0'),
        sa.Column('status', sa.String(20), nullable=False, server_default='ACTIVE'),
        sa.Column('question_timings', JSON_TYPE, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('current_question_started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('paused_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('finished_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_activity_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('version', sa.Integer, nullable=False, server_default='1'),
        sa.CheckConstraint('current_index >= 0', name='ck_practice_sessions_index_non_negative'),
        sa.CheckConstraint('current_index <= target_count', name='ck_practice_sessions_index_bounded'),
        sa.CheckConstraint('target_count >= 1', name='ck_practice_sessions_target_positive'),
    )
    op.create_index('ix_practice_sessions_user_activity', 'practice_sessions', ['user_id', 'last_activity_at'])
    op.create_index('ix_practice_sessions_user_status', 'practice_sessions', ['user_id', 'status'])

    # Answer log (append-only)
    op.create_table(
        'practice_answers',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            'session_id',
            sa.Uuid(as_uuid=True),
            sa.ForeignKey('practice_sessions.id', ondelete='CASCADE', onupdate='CASCADE'),
            nullable=False,
        ),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('question_id', sa.String(64), nullable=False),
        sa.Column('choice_id', sa.String(64), nullable=False),
        sa.Column('correct', sa.Boolean, nullable=False),
        sa.Column('explanation', sa.Text, nullable=True),
        sa.Column('answered_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('session_id', 'question_id', name='uq_practice_answer'),
    )
    op.create_index('ix_practice_answers_session_id', 'practice_answers', ['session_id'])


def downgrade() -> None:
    op.drop_index('ix_practice_answers_session_id', table_name='practice_answers')
    op.drop_table('practice_answers')

    op.drop_index('ix_practice_sessions_user_status', table_name='practice_sessions')
    op.drop_index('ix_practice_sessions_user_activity', table_name='practice_sessions')
    op.drop_table('practice_sessions')

    op.drop_index('ix_question_bank_choices_question_id', table_name='question_bank_choices')
    op.drop_table('question_bank_choices')

    op.drop_index('ix_question_bank_questions_package_status', table_name='question_bank_questions')
    op.drop_table('question_bank_questions')
