"""initial_schema

Revision ID: 5b1f0e7c2a90
Revises:
Create Date: 2026-10-19 09:14:02.411873

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5b1f0e7c2a90'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create projects, tasks, dependency_edges and time_logs."""
    op.create_table('projects',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=256), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.Column('updated_at', sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table('tasks',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('project_id', sa.String(length=64), nullable=False),
        sa.Column('phase_id', sa.String(length=64), nullable=True),
        sa.Column('parent_task_id', sa.String(length=64), nullable=True),
        sa.Column('title', sa.String(length=512), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('progress', sa.Integer(), nullable=False),
        sa.Column('start_at', sa.BigInteger(), nullable=True),
        sa.Column('due_at', sa.BigInteger(), nullable=True),
        sa.Column('estimated_hours', sa.Float(), nullable=True),
        sa.Column('actual_hours', sa.Float(), nullable=False),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.Column('updated_at', sa.BigInteger(), nullable=False),
        sa.Column('completed_at', sa.BigInteger(), nullable=True),
        sa.CheckConstraint('progress >= 0 AND progress <= 100', name='ck_task_progress'),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['parent_task_id'], ['tasks.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_tasks_project', 'tasks', ['project_id'], unique=False)
    op.create_index('idx_tasks_parent', 'tasks', ['parent_task_id'], unique=False)
    op.create_index('idx_tasks_status', 'tasks', ['status'], unique=False)

    op.create_table('dependency_edges',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('project_id', sa.String(length=64), nullable=False),
        sa.Column('predecessor_id', sa.String(length=64), nullable=False),
        sa.Column('successor_id', sa.String(length=64), nullable=False),
        sa.Column('kind', sa.String(length=32), nullable=False),
        sa.Column('lag_days', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.CheckConstraint('predecessor_id <> successor_id', name='ck_dependency_no_self_loop'),
        sa.CheckConstraint('lag_days >= 0', name='ck_dependency_lag'),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['predecessor_id'], ['tasks.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['successor_id'], ['tasks.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('predecessor_id', 'successor_id', name='uq_dependency_edge')
    )
    op.create_index('idx_deps_project', 'dependency_edges', ['project_id'], unique=False)
    op.create_index('idx_deps_predecessor', 'dependency_edges', ['predecessor_id'], unique=False)
    op.create_index('idx_deps_successor', 'dependency_edges', ['successor_id'], unique=False)

    op.create_table('time_logs',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('task_id', sa.String(length=64), nullable=False),
        sa.Column('hours', sa.Float(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('logged_at', sa.BigInteger(), nullable=False),
        sa.Column('created_at', sa.BigInteger(), nullable=False),
        sa.Column('updated_at', sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(['task_id'], ['tasks.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_time_logs_task', 'time_logs', ['task_id'], unique=False)


def downgrade() -> None:
    """Drop all taskgraph tables."""
    op.drop_index('idx_time_logs_task', table_name='time_logs')
    op.drop_table('time_logs')
    op.drop_index('idx_deps_successor', table_name='dependency_edges')
    op.drop_index('idx_deps_predecessor', table_name='dependency_edges')
    op.drop_index('idx_deps_project', table_name='dependency_edges')
    op.drop_table('dependency_edges')
    op.drop_index('idx_tasks_status', table_name='tasks')
    op.drop_index('idx_tasks_parent', table_name='tasks')
    op.drop_index('idx_tasks_project', table_name='tasks')
    op.drop_table('tasks')
    op.drop_table('projects')
