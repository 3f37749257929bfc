#!/usr/bin/env python3
"""
Утилита для добавления примерного публичного видео в базу.
Запускается из каталога backend командой:
python -m piclips.utils.add_sample_video [--user-id UUID]
"""

import argparse
import uuid
import logging

from piclips.services.database import DatabaseManager

# Настройка логирования
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

SAMPLE_VIDEO = {
    "title": "Sample Video",
    "description": "This is a sample video for testing purposes",
    # Публично доступный файл, в MinIO не загружается
    "s3_key": "https://storage.googleapis.com/gtv-videos-bucket/sample/ForBiggerBlazes.mp4",
    "thumbnail": "https://storage.googleapis.com/gtv-videos-bucket/sample/images/ForBiggerBlazes.jpg",
    "privacy": "public",
}

SAMPLE_USERNAME = "sample"


def get_or_create_sample_user(db_manager):
    """Владелец примерных видео"""
    user = db_manager.get_user_by_username(SAMPLE_USERNAME)
    if user:
        return user["user_id"]

    user, error = db_manager.create_user(SAMPLE_USERNAME, display_name="Sample User")
    if error:
        raise RuntimeError(f"Не удалось создать пользователя {SAMPLE_USERNAME}: {error}")
    return user["user_id"]


def add_sample_video(db_manager, user_id=None):
    """Добавляет примерное видео и возвращает его строку"""
    if user_id is None:
        user_id = get_or_create_sample_user(db_manager)

    video = db_manager.create_video(user_id=user_id, **SAMPLE_VIDEO)
    logger.info(f"Примерное видео добавлено: {video['video_id']} (владелец {user_id})")
    return video


def main(argv=None):
    parser = argparse.ArgumentParser(description="Добавить примерное видео")
    parser.add_argument("--user-id", type=uuid.UUID, default=None, help="владелец видео")
    args = parser.parse_args(argv)

    db_manager = DatabaseManager()
    if not db_manager.init_database():
        logger.error("База данных недоступна")
        return 1

    try:
        add_sample_video(db_manager, args.user_id)
    except Exception as e:
        logger.error(f"Ошибка при добавлении примерного видео: {e}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
