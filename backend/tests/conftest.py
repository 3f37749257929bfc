import pytest
import uuid
import jwt
from datetime import datetime, timedelta
from unittest.mock import patch, MagicMock
from piclips import create_app

# Константы для тестов
TEST_SECRET_KEY = "test_secret_key"


@pytest.fixture
def app():
    """Создает и настраивает экземпляр Flask для тестирования."""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': TEST_SECRET_KEY
    })

    # Создаем моки для базы данных, хранилища и сервиса чаевых
    mock_db_manager = MagicMock()
    mock_storage = MagicMock()
    mock_tip_service = MagicMock()

    # Сохраняем моки для доступа из тестов
    app.db_manager = mock_db_manager
    app.storage = mock_storage
    app.tip_service = mock_tip_service

    # Патчим глобальные переменные в модуле routes
    with patch('piclips.api.routes.db_manager', mock_db_manager), \
         patch('piclips.api.routes.storage', mock_storage), \
         patch('piclips.api.routes.tip_service', mock_tip_service):
        yield app


@pytest.fixture
def client(app):
    """Создает тестовый клиент для приложения."""
    return app.test_client()


@pytest.fixture
def test_username():
    """Имя тестового пользователя."""
    return "testuser"


@pytest.fixture
def test_user_id():
    """UUID тестового пользователя."""
    return uuid.uuid4()


def issue_token(user_id, username, secret_key=TEST_SECRET_KEY):
    """Токен в том виде, в каком его выпускает сервис авторизации."""
    return jwt.encode({"user": username, "user_id": str(user_id)}, secret_key, algorithm="HS256")


@pytest.fixture
def auth_token(test_username, test_user_id):
    """Создает JWT токен для тестов."""
    return issue_token(test_user_id, test_username)


@pytest.fixture
def auth_headers(auth_token):
    """Создает заголовки авторизации."""
    return {'Authorization': f'Bearer {auth_token}'}


def make_video_row(owner_id=None, **overrides):
    """Строка видео в том виде, в каком ее возвращает DatabaseManager"""
    row = {
        "video_id": uuid.uuid4(),
        "user_id": owner_id or uuid.uuid4(),
        "title": "Test video",
        "description": "",
        "s3_key": "video-1700000000000-123456789.mp4",
        "thumbnail": "/placeholder.svg",
        "privacy": "public",
        "like_count": 0,
        "comment_count": 0,
        "created_at": datetime(2024, 1, 1, 12, 0, 0),
        "owner_username": "owner",
        "owner_display_name": "Owner",
        "owner_avatar": None,
    }
    row.update(overrides)
    return row


def make_comment_row(video_id, author_id, **overrides):
    row = {
        "comment_id": uuid.uuid4(),
        "video_id": video_id,
        "user_id": author_id,
        "content": "Nice clip",
        "created_at": datetime(2024, 1, 1, 12, 0, 0),
        "author_username": "testuser",
        "author_display_name": "Test User",
        "author_avatar": None,
    }
    row.update(overrides)
    return row


def make_tip_row(video_id, sender_id, receiver_id, amount, minutes=0):
    return {
        "tip_id": uuid.uuid4(),
        "sender_id": sender_id,
        "receiver_id": receiver_id,
        "video_id": video_id,
        "amount": amount,
        "created_at": datetime(2024, 1, 1, 12, 0, 0) + timedelta(minutes=minutes),
        "sender_username": "sender",
        "sender_display_name": "Sender",
        "sender_avatar": None,
        "receiver_username": "owner",
        "receiver_display_name": "Owner",
        "receiver_avatar": None,
    }
