"""
Схема базы данных.

Счетчики like_count, comment_count и uploaded_videos_count денормализованы и
меняются только инкрементом в той же транзакции, что и строки, которые они
считают. Таблица tips не ссылается на videos внешним ключом: записи журнала
чаевых неизменяемы и переживают удаление видео.
"""

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS users (
        user_id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        username VARCHAR(50) UNIQUE NOT NULL,
        display_name VARCHAR(100),
        avatar VARCHAR(255),
        token_balance INTEGER NOT NULL DEFAULT 0 CHECK (token_balance >= 0),
        uploaded_videos_count INTEGER NOT NULL DEFAULT 0 CHECK (uploaded_videos_count >= 0),
        created_at TIMESTAMP NOT NULL DEFAULT NOW()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS videos (
        video_id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id UUID NOT NULL REFERENCES users(user_id),
        title VARCHAR(255) NOT NULL DEFAULT '',
        description TEXT NOT NULL DEFAULT '',
        s3_key VARCHAR(512) NOT NULL,
        thumbnail VARCHAR(512) NOT NULL DEFAULT '/placeholder.svg',
        privacy VARCHAR(10) NOT NULL DEFAULT 'public' CHECK (privacy IN ('public', 'private')),
        like_count INTEGER NOT NULL DEFAULT 0 CHECK (like_count >= 0),
        comment_count INTEGER NOT NULL DEFAULT 0 CHECK (comment_count >= 0),
        created_at TIMESTAMP NOT NULL DEFAULT NOW()
    );
    """,
    """
    CREATE INDEX IF NOT EXISTS videos_user_created_idx ON videos (user_id, created_at DESC);
    """,
    """
    CREATE TABLE IF NOT EXISTS video_likes (
        video_id UUID NOT NULL REFERENCES videos(video_id),
        user_id UUID NOT NULL REFERENCES users(user_id),
        created_at TIMESTAMP NOT NULL DEFAULT NOW(),
        PRIMARY KEY (video_id, user_id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS comments (
        comment_id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        video_id UUID NOT NULL REFERENCES videos(video_id),
        user_id UUID NOT NULL REFERENCES users(user_id),
        content TEXT NOT NULL,
        created_at TIMESTAMP NOT NULL DEFAULT NOW()
    );
    """,
    """
    CREATE INDEX IF NOT EXISTS comments_video_created_idx ON comments (video_id, created_at DESC);
    """,
    """
    CREATE TABLE IF NOT EXISTS tips (
        tip_id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        sender_id UUID NOT NULL REFERENCES users(user_id),
        receiver_id UUID NOT NULL REFERENCES users(user_id),
        video_id UUID NOT NULL,
        amount INTEGER NOT NULL CHECK (amount > 0),
        created_at TIMESTAMP NOT NULL DEFAULT NOW()
    );
    """,
    """
    CREATE INDEX IF NOT EXISTS tips_video_created_idx ON tips (video_id, created_at DESC);
    """,
]
