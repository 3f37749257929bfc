#!/usr/bin/env python3
"""
Утилита для сверки денормализованных счетчиков с исходными таблицами.
Удаляет комментарии и лайки, ссылающиеся на несуществующие видео,
и пересчитывает comment_count и like_count каждого видео.
Запускается из каталога backend командой:
python -m piclips.utils.cleanup_comments
"""

import logging

from piclips.services.database import DatabaseManager

# Настройка логирования
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def cleanup_comments(db_manager):
    """
    Сверка выполняется одной транзакцией.

    :return: словарь с числом удаленных и исправленных строк
    """
    with db_manager.transaction() as cursor:
        cursor.execute(
            """
            DELETE FROM comments c
            WHERE NOT EXISTS (SELECT 1 FROM videos v WHERE v.video_id = c.video_id)
            """
        )
        orphaned_comments = cursor.rowcount

        cursor.execute(
            """
            DELETE FROM video_likes l
            WHERE NOT EXISTS (SELECT 1 FROM videos v WHERE v.video_id = l.video_id)
            """
        )
        orphaned_likes = cursor.rowcount

        cursor.execute(
            """
            UPDATE videos v
            SET comment_count = counts.actual
            FROM (
                SELECT v2.video_id, COUNT(c.comment_id) AS actual
                FROM videos v2
                LEFT JOIN comments c ON c.video_id = v2.video_id
                GROUP BY v2.video_id
            ) counts
            WHERE v.video_id = counts.video_id AND v.comment_count <> counts.actual
            """
        )
        comment_counts_fixed = cursor.rowcount

        cursor.execute(
            """
            UPDATE videos v
            SET like_count = counts.actual
            FROM (
                SELECT v2.video_id, COUNT(l.user_id) AS actual
                FROM videos v2
                LEFT JOIN video_likes l ON l.video_id = v2.video_id
                GROUP BY v2.video_id
            ) counts
            WHERE v.video_id = counts.video_id AND v.like_count <> counts.actual
            """
        )
        like_counts_fixed = cursor.rowcount

    result = {
        "orphaned_comments": orphaned_comments,
        "orphaned_likes": orphaned_likes,
        "comment_counts_fixed": comment_counts_fixed,
        "like_counts_fixed": like_counts_fixed,
    }
    logger.info(f"Удалено {orphaned_comments} осиротевших комментариев и {orphaned_likes} лайков")
    logger.info(f"Исправлены счетчики: комментарии у {comment_counts_fixed} видео, лайки у {like_counts_fixed} видео")
    return result


def main():
    db_manager = DatabaseManager()
    try:
        cleanup_comments(db_manager)
    except Exception as e:
        logger.error(f"Ошибка при очистке: {e}")
        return 1
    logger.info("Очистка завершена успешно")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
