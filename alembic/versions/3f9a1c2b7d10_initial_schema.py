"""initial schema

Revision ID: 3f9a1c2b7d10
Revises:
Create Date: 2026-10-18 10:12:07.518342

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9a1c2b7d10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


RELATION_KIND = sa.Enum('like', 'subscription', name='relation_kind')
RELATION_TARGET_KIND = sa.Enum(
    'video', 'comment', 'tweet', 'channel', name='relation_target_kind')


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.TIMESTAMP(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(), nullable=False),
    ]


def upgrade() -> None:
    """Create all tables from scratch."""

    # ── users ──────────────────────────────────────────────────────────
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('username', sa.String(64), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('avatar', sa.Text(), nullable=False),
        sa.Column('cover_image', sa.Text(), nullable=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_users')),
        sa.UniqueConstraint('email', name=op.f('uq_users_email')),
    )
    op.create_index(op.f('ix_users_username'), 'users', ['username'], unique=True)

    # ── videos ─────────────────────────────────────────────────────────
    op.create_table(
        'videos',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('video_url', sa.Text(), nullable=False),
        sa.Column('thumbnail_url', sa.Text(), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('view_count', sa.BigInteger(), nullable=False),
        sa.Column('is_published', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_videos')),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'],
                                name=op.f('fk_videos_owner_id_users'),
                                ondelete='CASCADE'),
    )
    op.create_index('idx_videos_owner_id', 'videos', ['owner_id'])

    # ── tweets ─────────────────────────────────────────────────────────
    op.create_table(
        'tweets',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_tweets')),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'],
                                name=op.f('fk_tweets_owner_id_users'),
                                ondelete='CASCADE'),
    )
    op.create_index('idx_tweets_owner_id', 'tweets', ['owner_id'])

    # ── comments ───────────────────────────────────────────────────────
    op.create_table(
        'comments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('video_id', sa.Uuid(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_comments')),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'],
                                name=op.f('fk_comments_owner_id_users'),
                                ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['video_id'], ['videos.id'],
                                name=op.f('fk_comments_video_id_videos'),
                                ondelete='CASCADE'),
    )
    op.create_index('idx_comments_video_id', 'comments', ['video_id'])

    # ── playlists ──────────────────────────────────────────────────────
    op.create_table(
        'playlists',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('video_ids', sa.JSON(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_playlists')),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'],
                                name=op.f('fk_playlists_owner_id_users'),
                                ondelete='CASCADE'),
    )
    op.create_index('idx_playlists_owner_id', 'playlists', ['owner_id'])

    # ── relations (likes + subscriptions) ──────────────────────────────
    op.create_table(
        'relations',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('kind', RELATION_KIND, nullable=False),
        sa.Column('actor_id', sa.Uuid(), nullable=False),
        sa.Column('target_kind', RELATION_TARGET_KIND, nullable=False),
        sa.Column('target_id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_relations')),
        sa.ForeignKeyConstraint(['actor_id'], ['users.id'],
                                name=op.f('fk_relations_actor_id_users'),
                                ondelete='CASCADE'),
        sa.UniqueConstraint('actor_id', 'target_kind', 'target_id',
                            name='uq_relations_actor_target'),
    )
    op.create_index('idx_relations_target', 'relations', ['target_kind', 'target_id'])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index('idx_relations_target', table_name='relations')
    op.drop_table('relations')
    op.drop_index('idx_playlists_owner_id', table_name='playlists')
    op.drop_table('playlists')
    op.drop_index('idx_comments_video_id', table_name='comments')
    op.drop_table('comments')
    op.drop_index('idx_tweets_owner_id', table_name='tweets')
    op.drop_table('tweets')
    op.drop_index('idx_videos_owner_id', table_name='videos')
    op.drop_table('videos')
    op.drop_index(op.f('ix_users_username'), table_name='users')
    op.drop_table('users')
    RELATION_TARGET_KIND.drop(op.get_bind(), checkfirst=True)
    RELATION_KIND.drop(op.get_bind(), checkfirst=True)
