"""Q&A board authorship, counters and votes

Revision ID: 0003_practice_and_questions
Revises: 0002_riders
Create Date: 2025-03-09

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = '0003_practice_and_questions'
down_revision = '0002_riders'
branch_labels = None
depends_on = None


def upgrade():
    op.add_column('study_questions', sa.Column('author_id', postgresql.UUID(as_uuid=True), nullable=True))
    op.add_column('study_questions', sa.Column('level', sa.String(length=10), nullable=True))
    op.add_column('study_questions', sa.Column('answers_count', sa.Integer(), server_default='0', nullable=False))
    op.add_column('study_questions', sa.Column('solved', sa.Boolean(), server_default=sa.false(), nullable=False))
    op.add_column('study_answers', sa.Column('author_id', postgresql.UUID(as_uuid=True), nullable=True))

    # Existing rows get their real answer counts
    op.execute(
        "UPDATE study_questions SET answers_count = "
        "(SELECT COUNT(*) FROM study_answers WHERE study_answers.question_id = study_questions.id)"
    )
    op.execute(
        "UPDATE study_questions SET solved = TRUE WHERE EXISTS "
        "(SELECT 1 FROM study_answers WHERE study_answers.question_id = study_questions.id AND study_answers.is_accepted)"
    )

    op.create_table('study_question_votes',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('question_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('voter_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['question_id'], ['study_questions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('question_id', 'voter_id', name='study_question_votes_question_voter_key')
    )


def downgrade():
    op.drop_table('study_question_votes')
    op.drop_column('study_answers', 'author_id')
    op.drop_column('study_questions', 'solved')
    op.drop_column('study_questions', 'answers_count')
    op.drop_column('study_questions', 'level')
    op.drop_column('study_questions', 'author_id')
