from minio import Minio
from minio.error import S3Error
import time
from datetime import timedelta
from functools import wraps

from piclips import config
from piclips.utils.log import setup_logger

logger = setup_logger(__name__)


def retry_s3_operation(max_retries=3, backoff_factor=0.3):
    """Декоратор для повторения операций S3 при ошибках"""
    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            retry_count = 0
            logger.debug(f"Вызов функции {func.__name__} с аргументами: {args}, {kwargs}")
            while retry_count < max_retries:
                try:
                    result = func(self, *args, **kwargs)
                    logger.debug(f"Функция {func.__name__} выполнена успешно")
                    return result
                except S3Error as e:
                    # Некоторые ошибки не стоит повторять
                    if e.code in ["NoSuchKey", "AccessDenied", "NoSuchBucket"]:
                        logger.error(f"Критическая ошибка S3 в {func.__name__}: {e}. Повтор невозможен.")
                        raise

                    retry_count += 1
                    wait_time = backoff_factor * (2 ** retry_count)
                    logger.warning(f"Ошибка S3 в {func.__name__}: {e}. Повтор {retry_count}/{max_retries} через {wait_time} сек.")

                    if retry_count < max_retries:
                        time.sleep(wait_time)
                    else:
                        logger.error(f"Исчерпаны все попытки выполнения {func.__name__}. Последняя ошибка: {e}")
                        raise
        return wrapper
    return decorator


class MinioStorage:
    """Хранилище видеофайлов в MinIO"""

    def __init__(
        self,
        endpoint=config.MINIO_CONFIG['endpoint'],
        access_key=config.MINIO_CONFIG['access_key'],
        secret_key=config.MINIO_CONFIG['secret_key'],
        secure=config.MINIO_CONFIG['secure'],
        video_bucket=config.MINIO_CONFIG['video_bucket'],
        region=None
    ):
        self.endpoint = endpoint
        self.access_key = access_key
        self.secret_key = secret_key
        self.secure = secure
        self.video_bucket = video_bucket
        self.region = region
        self.client = None
        logger.info(f"Инициализация MinioStorage с параметрами: endpoint={endpoint}, secure={secure}, region={region}")

    def connect(self):
        """Установка соединения с MinIO"""
        logger.info(f"Попытка установки соединения с MinIO по адресу {self.endpoint}")
        try:
            self.client = Minio(
                endpoint=self.endpoint,
                access_key=self.access_key,
                secret_key=self.secret_key,
                secure=self.secure,
                region=self.region
            )

            self._ensure_bucket_exists()

            logger.info("Соединение с MinIO установлено успешно")
            return True
        except S3Error as e:
            logger.error(f"Ошибка инициализации Minio: {e}")
            return False
        except Exception as e:
            logger.error(f"Неожиданная ошибка при подключении к MinIO: {e}")
            return False

    def _ensure_bucket_exists(self):
        """Проверка и создание бакета для видео"""
        if not self.client.bucket_exists(self.video_bucket):
            logger.info(f"Бакет {self.video_bucket} не существует, создаем")
            self.client.make_bucket(self.video_bucket)
            logger.info(f"Создан бакет {self.video_bucket}")
        else:
            logger.debug(f"Бакет {self.video_bucket} уже существует")

    def check_connection(self):
        """Проверка работоспособности соединения"""
        try:
            self.client.list_buckets()
            return True
        except Exception as e:
            logger.warning(f"Проверка соединения не удалась: {e}")
            return False

    def ensure_connection(self):
        """Проверяет соединение и устанавливает его при необходимости"""
        if self.client is None:
            logger.info("Клиент MinIO не инициализирован, выполняется подключение")
            return self.connect()
        if not self.check_connection():
            logger.info("Соединение с MinIO потеряно, выполняется переподключение")
            return self.connect()
        return True

    @retry_s3_operation()
    def save_video(self, file_path, object_name, content_type='video/mp4', metadata=None):
        """Сохранение видео файла в Minio с поддержкой метаданных"""
        logger.info(f"Загрузка видео файла {file_path} в MinIO с именем {object_name}")
        try:
            self.ensure_connection()

            self.client.fput_object(
                bucket_name=self.video_bucket,
                object_name=object_name,
                file_path=file_path,
                content_type=content_type,
                metadata=metadata
            )

            logger.info(f"Файл {object_name} успешно загружен в Minio")
            return True
        except S3Error:
            raise
        except Exception as e:
            logger.error(f"Ошибка при сохранении видео: {e}")
            return False

    def object_exists(self, object_name):
        """Есть ли объект в бакете видео. Любая ошибка S3 кроме NoSuchKey тоже дает False"""
        try:
            self.client.stat_object(
                bucket_name=self.video_bucket,
                object_name=object_name
            )
            return True
        except S3Error as e:
            if e.code == "NoSuchKey":
                logger.warning(f"Объект {object_name} не найден в бакете {self.video_bucket}")
            else:
                logger.error(f"Ошибка при проверке объекта {object_name}: {e}")
            return False

    @retry_s3_operation()
    def delete_video(self, object_name):
        """Удаление видео из Minio

        Args:
            object_name (str): Имя видео объекта в Minio

        Returns:
            bool: True - успешно, False - ошибка
        """
        logger.info(f"Удаление видео {object_name} из MinIO")
        try:
            self.ensure_connection()

            self.client.remove_object(
                bucket_name=self.video_bucket,
                object_name=object_name
            )
            logger.info(f"Видео {object_name} успешно удалено")
            return True
        except S3Error as e:
            logger.error(f"Ошибка удаления объекта из Minio: {e}")
            return False
        except Exception as e:
            logger.error(f"Неожиданная ошибка при удалении объекта: {e}")
            return False

    def get_presigned_url(self, object_name, expires=3600):
        """Создание временной ссылки на видео в Minio

        Args:
            object_name (str): Имя объекта в Minio
            expires (int, optional): Время жизни ссылки в секундах

        Returns:
            str or None: URL или None в случае ошибки
        """
        logger.info(f"Создание временной ссылки для {object_name} со сроком действия {expires} секунд")
        try:
            self.ensure_connection()

            if not self.object_exists(object_name):
                return None

            url = self.client.presigned_get_object(
                bucket_name=self.video_bucket,
                object_name=object_name,
                expires=timedelta(seconds=expires)
            )

            logger.debug(f"URL: {url}")
            return url
        except Exception as e:
            logger.error(f"Ошибка создания временной ссылки: {e}")
            return None
