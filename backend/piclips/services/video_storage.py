import os
import random
import tempfile
import time

from werkzeug.utils import secure_filename

from piclips import config
from piclips.errors import ValidationError, StorageError
from piclips.utils.log import setup_logger

logger = setup_logger(__name__)


def is_allowed_file(filename):
    """Проверка расширения загружаемого файла"""
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in config.ALLOWED_VIDEO_EXTENSIONS


def build_object_name(filename, fieldname='video'):
    """Уникальное имя объекта: <поле>-<время в мс>-<случайное число><расширение>"""
    unique_suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10 ** 9 - 1)}"
    extension = os.path.splitext(filename)[1].lower()
    return f"{fieldname}-{unique_suffix}{extension}"


def is_remote_reference(s3_key):
    """Ссылка на внешний файл вместо объекта в хранилище (примерные видео)"""
    return s3_key.startswith(('http://', 'https://'))


def save_video(storage, video_file, user_id):
    """Сохранить загруженный видео файл в хранилище

    Args:
        storage: MinioStorage
        video_file: werkzeug FileStorage из request.files
        user_id: Владелец видео

    Returns:
        str: Имя объекта в хранилище
    """
    if not video_file.filename or not is_allowed_file(video_file.filename):
        logger.warning(f"Недопустимое расширение файла: {video_file.filename}")
        raise ValidationError(
            "Invalid file format. Allowed: " + ", ".join(sorted(config.ALLOWED_VIDEO_EXTENSIONS))
        )

    object_name = build_object_name(video_file.filename)
    extension = os.path.splitext(video_file.filename)[1]

    # Сначала сохраняем во временный файл
    fd, temp_path = tempfile.mkstemp(suffix=extension)
    os.close(fd)
    try:
        video_file.save(temp_path)

        file_size = os.path.getsize(temp_path)
        max_size = config.MAX_UPLOAD_MB * 1024 * 1024
        if file_size > max_size:
            logger.warning(f"Файл слишком большой: {file_size // (1024 * 1024)} МБ")
            raise ValidationError(f"File too large. Maximum size: {config.MAX_UPLOAD_MB} MB")

        metadata = {
            "user_id": str(user_id),
            "original_filename": secure_filename(video_file.filename),
        }
        saved = storage.save_video(
            temp_path,
            object_name,
            content_type=video_file.mimetype or 'video/mp4',
            metadata=metadata
        )
        if not saved:
            raise StorageError(f"Не удалось сохранить {object_name} в хранилище")
    finally:
        if os.path.exists(temp_path):
            os.remove(temp_path)
            logger.debug(f"Временный файл удален: {temp_path}")

    logger.info(f"Видео {video_file.filename} сохранено как {object_name}")
    return object_name


def delete_video(storage, s3_key):
    """Удалить файл видео; внешние ссылки не трогаем"""
    if is_remote_reference(s3_key):
        return True
    deleted = storage.delete_video(s3_key)
    if not deleted:
        logger.error(f"Файл видео {s3_key} не удален из хранилища")
    return deleted


def get_video_url(storage, s3_key, expires=3600):
    """URL для просмотра: внешняя ссылка как есть или временная ссылка MinIO"""
    if is_remote_reference(s3_key):
        return s3_key
    return storage.get_presigned_url(s3_key, expires=expires)
