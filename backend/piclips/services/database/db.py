import psycopg2
from psycopg2.extras import RealDictCursor, register_uuid
from contextlib import contextmanager

from piclips import config as app_config
from piclips.errors import PiclipsError, NotFoundError, ForbiddenError, StorageError
from piclips.services.database.schema import SCHEMA_STATEMENTS
from piclips.utils.log import setup_logger

register_uuid()

logger = setup_logger(__name__)

# Видео вместе с отображаемыми данными владельца
VIDEO_SELECT = """
    SELECT v.video_id, v.user_id, v.title, v.description, v.s3_key, v.thumbnail,
           v.privacy, v.like_count, v.comment_count, v.created_at,
           u.username AS owner_username,
           u.display_name AS owner_display_name,
           u.avatar AS owner_avatar
    FROM videos v
    JOIN users u ON u.user_id = v.user_id
"""

COMMENT_SELECT = """
    SELECT c.comment_id, c.video_id, c.user_id, c.content, c.created_at,
           u.username AS author_username,
           u.display_name AS author_display_name,
           u.avatar AS author_avatar
    FROM comments c
    JOIN users u ON u.user_id = c.user_id
"""


class DatabaseManager:
    """Класс для управления подключением к базе данных и операциями с ней"""

    def __init__(self, config=None):
        """Инициализация менеджера базы данных"""
        self.db_config = config or dict(app_config.DB_CONFIG)

    def get_connection(self):
        """Получение соединения с базой данных"""
        try:
            conn = psycopg2.connect(
                dbname=self.db_config['dbname'],
                user=self.db_config['user'],
                password=self.db_config['password'],
                host=self.db_config['host'],
                port=self.db_config['port']
            )
            return conn
        except Exception as e:
            logger.error(f"Ошибка подключения к БД: {e}")
            return None

    @contextmanager
    def transaction(self):
        """
        Контекстный менеджер для работы с транзакциями.

        Пример использования:
        with db_manager.transaction() as cursor:
            cursor.execute("UPDATE users ...")
            cursor.execute("INSERT INTO tips ...")
        # Транзакция фиксируется при выходе из блока with,
        # при любом исключении откатывается целиком
        """
        conn = self.get_connection()
        if not conn:
            raise StorageError("Не удалось установить соединение с базой данных")

        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                yield cursor
                conn.commit()
        except PiclipsError:
            conn.rollback()
            raise
        except Exception as e:
            conn.rollback()
            logger.error(f"Ошибка транзакции: {e}")
            raise
        finally:
            conn.close()

    def init_database(self):
        """Инициализация базы данных при первом запуске"""
        logger.info("Проверка соединения с базой данных...")
        conn = self.get_connection()
        if not conn:
            logger.error("Не удалось подключиться к базе данных")
            return False

        try:
            with conn.cursor() as cur:
                for statement in SCHEMA_STATEMENTS:
                    cur.execute(statement)
            conn.commit()
            logger.info("Схема базы данных проверена")
            return True
        except Exception as e:
            conn.rollback()
            logger.error(f"Ошибка при создании схемы: {e}")
            return False
        finally:
            conn.close()

    def execute_query(self, query, params=None, fetch=None, cursor_factory=None):
        """
        Выполнение запроса к базе данных

        :param query: SQL запрос
        :param params: Параметры для SQL запроса
        :param fetch: тип выборки ('one', 'all', 'none')
        :param cursor_factory: Фабрика для курсора
        :return: (результат, None) или (None, текст ошибки)
        """
        conn = self.get_connection()
        if not conn:
            return None, "Ошибка подключения к БД"

        try:
            with conn.cursor(cursor_factory=cursor_factory) as cur:
                cur.execute(query, params or ())

                if fetch == 'one':
                    result = cur.fetchone()
                elif fetch == 'all':
                    result = cur.fetchall()
                else:
                    result = None

                # Применяем изменения если это не SELECT
                if not query.strip().upper().startswith("SELECT"):
                    conn.commit()

                return result, None
        except psycopg2.errors.UniqueViolation:
            conn.rollback()
            return None, "Нарушение ограничения уникальности"
        except Exception as e:
            conn.rollback()
            logger.error(f"Ошибка выполнения запроса: {e}")
            return None, f"Ошибка выполнения запроса: {e}"
        finally:
            conn.close()

    def _fetch(self, query, params, fetch):
        """execute_query, который не проглатывает ошибку, а поднимает StorageError"""
        result, error = self.execute_query(query, params, fetch=fetch, cursor_factory=RealDictCursor)
        if error:
            raise StorageError(error)
        return result

    # ---- Пользователи ----

    def get_user(self, user_id):
        """Получение пользователя по идентификатору"""
        return self._fetch(
            """SELECT * FROM users WHERE user_id = %s""",
            (user_id,),
            'one'
        )

    def get_user_by_username(self, username):
        """Получение пользователя по имени пользователя"""
        return self._fetch(
            """SELECT * FROM users WHERE username = %s""",
            (username,),
            'one'
        )

    def create_user(self, username, display_name=None, avatar=None, token_balance=0):
        """Создание нового пользователя"""
        result, error = self.execute_query(
            """
            INSERT INTO users (username, display_name, avatar, token_balance)
            VALUES (%s, %s, %s, %s)
            RETURNING *
            """,
            (username, display_name or username, avatar, token_balance),
            fetch='one',
            cursor_factory=RealDictCursor
        )

        if error:
            if "уникальности" in error:
                return None, "Пользователь с таким именем уже существует"
            return None, error

        logger.info(f"Создан новый пользователь: {username}")
        return result, None

    def credit_tokens(self, user_id, amount):
        """Административное начисление токенов на баланс пользователя"""
        with self.transaction() as cursor:
            cursor.execute(
                """
                UPDATE users
                SET token_balance = token_balance + %s
                WHERE user_id = %s
                RETURNING user_id, token_balance
                """,
                (amount, user_id)
            )
            row = cursor.fetchone()
            if not row:
                raise NotFoundError("User not found")

        logger.info(f"Начислено {amount} токенов пользователю {user_id}, баланс {row['token_balance']}")
        return row['token_balance']

    # ---- Видео ----

    def create_video(self, user_id, title, description, s3_key, thumbnail, privacy):
        """Сохранение видео и увеличение счетчика загрузок владельца"""
        with self.transaction() as cursor:
            cursor.execute(
                """
                UPDATE users
                SET uploaded_videos_count = uploaded_videos_count + 1
                WHERE user_id = %s
                """,
                (user_id,)
            )
            if cursor.rowcount == 0:
                raise NotFoundError("User not found")

            cursor.execute(
                """
                INSERT INTO videos (user_id, title, description, s3_key, thumbnail, privacy)
                VALUES (%s, %s, %s, %s, %s, %s)
                RETURNING video_id
                """,
                (user_id, title, description, s3_key, thumbnail, privacy)
            )
            video_id = cursor.fetchone()['video_id']

            cursor.execute(VIDEO_SELECT + " WHERE v.video_id = %s", (video_id,))
            video = cursor.fetchone()

        logger.info(f"Сохранены метаданные видео: {s3_key}")
        return video

    def get_video(self, video_id):
        """Получение видео с данными владельца"""
        return self._fetch(VIDEO_SELECT + " WHERE v.video_id = %s", (video_id,), 'one')

    def get_public_videos(self):
        """Публичные видео, новые первыми"""
        return self._fetch(
            VIDEO_SELECT + " WHERE v.privacy = 'public' ORDER BY v.created_at DESC",
            None,
            'all'
        ) or []

    def get_user_videos(self, user_id, include_private=False):
        """Получение списка видео пользователя"""
        query = VIDEO_SELECT + " WHERE v.user_id = %s"
        if not include_private:
            query += " AND v.privacy = 'public'"
        query += " ORDER BY v.created_at DESC"
        return self._fetch(query, (user_id,), 'all') or []

    def get_liked_videos(self, user_id):
        """Видео, которые понравились пользователю, новые первыми"""
        if not self.get_user(user_id):
            raise NotFoundError("User not found")

        return self._fetch(
            VIDEO_SELECT + """
            JOIN video_likes l ON l.video_id = v.video_id
            WHERE l.user_id = %s
            ORDER BY v.created_at DESC
            """,
            (user_id,),
            'all'
        ) or []

    def delete_video(self, video_id, user_id):
        """
        Удаление видео вместе с лайками и комментариями

        :param video_id: ID видео
        :param user_id: ID пользователя, выполняющего удаление
        :return: удаленная строка видео (нужна для удаления файла из хранилища)
        """
        with self.transaction() as cursor:
            cursor.execute(
                """
                SELECT video_id, user_id, s3_key FROM videos
                WHERE video_id = %s
                FOR UPDATE
                """,
                (video_id,)
            )
            video = cursor.fetchone()
            if not video:
                raise NotFoundError("Video not found")

            if video['user_id'] != user_id:
                logger.warning(
                    f"Попытка удалить чужое видео {video_id}: владелец {video['user_id']}, запрос от {user_id}"
                )
                raise ForbiddenError("You are not authorized to delete this video")

            cursor.execute("DELETE FROM video_likes WHERE video_id = %s", (video_id,))
            likes_removed = cursor.rowcount
            cursor.execute("DELETE FROM comments WHERE video_id = %s", (video_id,))
            comments_removed = cursor.rowcount
            cursor.execute("DELETE FROM videos WHERE video_id = %s", (video_id,))
            cursor.execute(
                """
                UPDATE users
                SET uploaded_videos_count = GREATEST(uploaded_videos_count - 1, 0)
                WHERE user_id = %s
                """,
                (user_id,)
            )

        logger.info(
            f"Удалено видео {video_id}: лайков {likes_removed}, комментариев {comments_removed}"
        )
        return video

    # ---- Лайки ----

    def toggle_like(self, video_id, user_id):
        """
        Поставить или снять лайк.

        Набор лайкнувших видео и список понравившихся видео пользователя
        хранятся в одной таблице video_likes, поэтому меняются одной операцией.

        :return: (новое число лайков, лайкнуто ли видео после операции)
        """
        with self.transaction() as cursor:
            cursor.execute(
                "SELECT video_id FROM videos WHERE video_id = %s FOR UPDATE",
                (video_id,)
            )
            if not cursor.fetchone():
                raise NotFoundError("Video not found")

            cursor.execute("SELECT user_id FROM users WHERE user_id = %s", (user_id,))
            if not cursor.fetchone():
                raise NotFoundError("User not found")

            cursor.execute(
                "DELETE FROM video_likes WHERE video_id = %s AND user_id = %s",
                (video_id, user_id)
            )
            if cursor.rowcount:
                is_liked = False
                cursor.execute(
                    """
                    UPDATE videos SET like_count = GREATEST(like_count - 1, 0)
                    WHERE video_id = %s
                    RETURNING like_count
                    """,
                    (video_id,)
                )
            else:
                is_liked = True
                cursor.execute(
                    "INSERT INTO video_likes (video_id, user_id) VALUES (%s, %s)",
                    (video_id, user_id)
                )
                cursor.execute(
                    """
                    UPDATE videos SET like_count = like_count + 1
                    WHERE video_id = %s
                    RETURNING like_count
                    """,
                    (video_id,)
                )
            like_count = cursor.fetchone()['like_count']

        logger.info(f"Пользователь {user_id} {'поставил' if is_liked else 'снял'} лайк видео {video_id}")
        return like_count, is_liked

    # ---- Комментарии ----

    def add_comment(self, video_id, user_id, content):
        """
        Добавление комментария к видео

        :return: (комментарий с данными автора, новое число комментариев)
        """
        with self.transaction() as cursor:
            cursor.execute(
                "SELECT video_id FROM videos WHERE video_id = %s FOR UPDATE",
                (video_id,)
            )
            if not cursor.fetchone():
                raise NotFoundError("Video not found")

            cursor.execute("SELECT user_id FROM users WHERE user_id = %s", (user_id,))
            if not cursor.fetchone():
                raise NotFoundError("User not found")

            cursor.execute(
                """
                INSERT INTO comments (video_id, user_id, content)
                VALUES (%s, %s, %s)
                RETURNING comment_id
                """,
                (video_id, user_id, content)
            )
            comment_id = cursor.fetchone()['comment_id']

            cursor.execute(
                """
                UPDATE videos SET comment_count = comment_count + 1
                WHERE video_id = %s
                RETURNING comment_count
                """,
                (video_id,)
            )
            comment_count = cursor.fetchone()['comment_count']

            cursor.execute(COMMENT_SELECT + " WHERE c.comment_id = %s", (comment_id,))
            comment = cursor.fetchone()

        logger.info(f"Добавлен комментарий {comment_id} к видео {video_id}")
        return comment, comment_count

    def get_comments(self, video_id):
        """Комментарии к видео, новые первыми"""
        return self._fetch(
            COMMENT_SELECT + " WHERE c.video_id = %s ORDER BY c.created_at DESC",
            (video_id,),
            'all'
        ) or []

    def delete_comment(self, video_id, comment_id, user_id):
        """Удаление комментария его автором"""
        with self.transaction() as cursor:
            cursor.execute(
                """
                SELECT comment_id, user_id FROM comments
                WHERE comment_id = %s AND video_id = %s
                FOR UPDATE
                """,
                (comment_id, video_id)
            )
            comment = cursor.fetchone()
            if not comment:
                raise NotFoundError("Comment not found")

            if comment['user_id'] != user_id:
                raise ForbiddenError("You are not authorized to delete this comment")

            cursor.execute("DELETE FROM comments WHERE comment_id = %s", (comment_id,))
            cursor.execute(
                """
                UPDATE videos SET comment_count = GREATEST(comment_count - 1, 0)
                WHERE video_id = %s
                """,
                (video_id,)
            )

        logger.info(f"Удален комментарий {comment_id} к видео {video_id}")
        return True
