import pytest
import uuid
from unittest.mock import patch, MagicMock
from piclips.errors import NotFoundError, ForbiddenError, StorageError
from piclips.services.database import DatabaseManager


@pytest.fixture
def db_manager():
    """Создает экземпляр DatabaseManager для тестирования с мок-подключением."""
    with patch('piclips.services.database.db.psycopg2.connect') as mock_connect:
        # Мокаем соединение и курсор
        mock_conn = MagicMock()
        mock_connect.return_value = mock_conn
        mock_cursor = MagicMock()
        mock_conn.cursor.return_value = mock_cursor

        # Мокаем context manager для cursor
        mock_cursor.__enter__.return_value = mock_cursor

        manager = DatabaseManager()

        # Добавляем моки в экземпляр для доступа в тестах
        manager._mock_conn = mock_conn
        manager._mock_cursor = mock_cursor

        yield manager


@pytest.fixture
def tx_cursor(db_manager):
    """Подменяет transaction() и возвращает курсор транзакции."""
    mock_cursor = MagicMock()
    mock_context = MagicMock()
    mock_context.__enter__.return_value = mock_cursor
    db_manager.transaction = MagicMock(return_value=mock_context)
    return mock_cursor


def test_init_database_creates_schema(db_manager):
    """Тестирует инициализацию базы данных."""
    result = db_manager.init_database()

    assert result is True
    executed = " ".join(c[0][0] for c in db_manager._mock_cursor.execute.call_args_list)
    for table in ("users", "videos", "video_likes", "comments", "tips"):
        assert f"CREATE TABLE IF NOT EXISTS {table}" in executed
    db_manager._mock_conn.commit.assert_called_once()
    db_manager._mock_conn.close.assert_called()


def test_init_database_without_connection():
    with patch('piclips.services.database.db.psycopg2.connect', side_effect=Exception("refused")):
        assert DatabaseManager().init_database() is False


def test_transaction_commits(db_manager):
    with db_manager.transaction() as cursor:
        cursor.execute("UPDATE users SET token_balance = 0")

    db_manager._mock_conn.commit.assert_called_once()
    db_manager._mock_conn.rollback.assert_not_called()
    db_manager._mock_conn.close.assert_called_once()


def test_transaction_rolls_back_on_error(db_manager):
    with pytest.raises(NotFoundError):
        with db_manager.transaction():
            raise NotFoundError("Video not found")

    db_manager._mock_conn.rollback.assert_called_once()
    db_manager._mock_conn.commit.assert_not_called()
    db_manager._mock_conn.close.assert_called_once()


def test_transaction_without_connection():
    with patch('piclips.services.database.db.psycopg2.connect', side_effect=Exception("refused")):
        manager = DatabaseManager()
        with pytest.raises(StorageError):
            with manager.transaction():
                pass


def test_get_user(db_manager):
    user_id = uuid.uuid4()
    db_manager.execute_query = MagicMock(return_value=({"user_id": user_id}, None))

    assert db_manager.get_user(user_id) == {"user_id": user_id}
    db_manager.execute_query.assert_called_once()


def test_read_error_is_raised(db_manager):
    """Ошибка чтения не превращается в пустой результат."""
    db_manager.execute_query = MagicMock(return_value=(None, "Ошибка выполнения запроса: DB error"))

    with pytest.raises(StorageError):
        db_manager.get_public_videos()


def test_get_public_videos_empty(db_manager):
    db_manager.execute_query = MagicMock(return_value=(None, None))

    assert db_manager.get_public_videos() == []


def test_get_user_videos_filters_private(db_manager):
    user_id = uuid.uuid4()
    db_manager.execute_query = MagicMock(return_value=([], None))

    db_manager.get_user_videos(user_id)
    query = db_manager.execute_query.call_args[0][0]
    assert "v.privacy = 'public'" in query
    assert "ORDER BY v.created_at DESC" in query

    db_manager.get_user_videos(user_id, include_private=True)
    query = db_manager.execute_query.call_args[0][0]
    assert "v.privacy = 'public'" not in query


def test_get_liked_videos_unknown_user(db_manager):
    db_manager.execute_query = MagicMock(return_value=(None, None))

    with pytest.raises(NotFoundError):
        db_manager.get_liked_videos(uuid.uuid4())


def test_create_user(db_manager):
    """Тестирует создание пользователя."""
    user_row = {"user_id": uuid.uuid4(), "username": "testuser"}
    db_manager.execute_query = MagicMock(return_value=(user_row, None))

    user, error = db_manager.create_user("testuser")

    assert user == user_row
    assert error is None


def test_create_user_duplicate(db_manager):
    db_manager.execute_query = MagicMock(return_value=(None, "Нарушение ограничения уникальности"))

    user, error = db_manager.create_user("testuser")

    assert user is None
    assert "уже существует" in error


def test_credit_tokens(db_manager, tx_cursor):
    user_id = uuid.uuid4()
    tx_cursor.fetchone.return_value = {"user_id": user_id, "token_balance": 150}

    assert db_manager.credit_tokens(user_id, 50) == 150
    assert tx_cursor.execute.call_args[0][1] == (50, user_id)


def test_credit_tokens_unknown_user(db_manager, tx_cursor):
    tx_cursor.fetchone.return_value = None

    with pytest.raises(NotFoundError):
        db_manager.credit_tokens(uuid.uuid4(), 50)


def test_create_video_increments_upload_count(db_manager, tx_cursor):
    user_id, video_id = uuid.uuid4(), uuid.uuid4()
    tx_cursor.rowcount = 1
    tx_cursor.fetchone.side_effect = [{"video_id": video_id}, {"video_id": video_id, "title": "T"}]

    video = db_manager.create_video(user_id, "T", "", "video-1.mp4", "/placeholder.svg", "public")

    assert video["video_id"] == video_id
    first_query = tx_cursor.execute.call_args_list[0][0][0]
    assert "uploaded_videos_count = uploaded_videos_count + 1" in first_query


def test_create_video_unknown_user(db_manager, tx_cursor):
    tx_cursor.rowcount = 0

    with pytest.raises(NotFoundError):
        db_manager.create_video(uuid.uuid4(), "T", "", "video-1.mp4", "/placeholder.svg", "public")


def test_delete_video(db_manager, tx_cursor):
    """Тестирует удаление видео вместе с лайками и комментариями."""
    video_id, user_id = uuid.uuid4(), uuid.uuid4()
    tx_cursor.fetchone.return_value = {"video_id": video_id, "user_id": user_id, "s3_key": "video-1.mp4"}

    video = db_manager.delete_video(video_id, user_id)

    assert video["s3_key"] == "video-1.mp4"
    queries = [c[0][0] for c in tx_cursor.execute.call_args_list]
    assert any("DELETE FROM video_likes" in q for q in queries)
    assert any("DELETE FROM comments" in q for q in queries)
    assert any("DELETE FROM videos" in q for q in queries)
    assert "uploaded_videos_count - 1" in queries[-1]
    db_manager.transaction.assert_called_once()


def test_delete_video_of_other_user(db_manager, tx_cursor):
    tx_cursor.fetchone.return_value = {"video_id": uuid.uuid4(), "user_id": uuid.uuid4(), "s3_key": "k"}

    with pytest.raises(ForbiddenError):
        db_manager.delete_video(uuid.uuid4(), uuid.uuid4())

    assert tx_cursor.execute.call_count == 1


def test_delete_video_not_found(db_manager, tx_cursor):
    tx_cursor.fetchone.return_value = None

    with pytest.raises(NotFoundError):
        db_manager.delete_video(uuid.uuid4(), uuid.uuid4())


def test_toggle_like_adds_like(db_manager, tx_cursor):
    video_id, user_id = uuid.uuid4(), uuid.uuid4()
    tx_cursor.fetchone.side_effect = [{"video_id": video_id}, {"user_id": user_id}, {"like_count": 1}]
    tx_cursor.rowcount = 0

    assert db_manager.toggle_like(video_id, user_id) == (1, True)
    queries = [c[0][0] for c in tx_cursor.execute.call_args_list]
    assert any("INSERT INTO video_likes" in q for q in queries)
    assert "like_count + 1" in queries[-1]


def test_toggle_like_removes_like(db_manager, tx_cursor):
    video_id, user_id = uuid.uuid4(), uuid.uuid4()
    tx_cursor.fetchone.side_effect = [{"video_id": video_id}, {"user_id": user_id}, {"like_count": 0}]
    tx_cursor.rowcount = 1

    assert db_manager.toggle_like(video_id, user_id) == (0, False)
    queries = [c[0][0] for c in tx_cursor.execute.call_args_list]
    assert not any("INSERT INTO video_likes" in q for q in queries)
    assert "like_count - 1" in queries[-1]


def test_toggle_like_video_not_found(db_manager, tx_cursor):
    tx_cursor.fetchone.return_value = None

    with pytest.raises(NotFoundError, match="Video not found"):
        db_manager.toggle_like(uuid.uuid4(), uuid.uuid4())


def test_add_comment(db_manager, tx_cursor):
    video_id, user_id, comment_id = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    tx_cursor.fetchone.side_effect = [
        {"video_id": video_id},
        {"user_id": user_id},
        {"comment_id": comment_id},
        {"comment_count": 3},
        {"comment_id": comment_id, "content": "hi"},
    ]

    comment, count = db_manager.add_comment(video_id, user_id, "hi")

    assert comment["comment_id"] == comment_id
    assert count == 3


def test_delete_comment_by_author(db_manager, tx_cursor):
    video_id, user_id, comment_id = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    tx_cursor.fetchone.return_value = {"comment_id": comment_id, "user_id": user_id}

    assert db_manager.delete_comment(video_id, comment_id, user_id) is True
    queries = [c[0][0] for c in tx_cursor.execute.call_args_list]
    assert any("DELETE FROM comments" in q for q in queries)
    assert "comment_count - 1" in queries[-1]


def test_delete_comment_by_other_user(db_manager, tx_cursor):
    tx_cursor.fetchone.return_value = {"comment_id": uuid.uuid4(), "user_id": uuid.uuid4()}

    with pytest.raises(ForbiddenError):
        db_manager.delete_comment(uuid.uuid4(), uuid.uuid4(), uuid.uuid4())

    assert tx_cursor.execute.call_count == 1


def test_delete_comment_not_found(db_manager, tx_cursor):
    tx_cursor.fetchone.return_value = None

    with pytest.raises(NotFoundError, match="Comment not found"):
        db_manager.delete_comment(uuid.uuid4(), uuid.uuid4(), uuid.uuid4())
