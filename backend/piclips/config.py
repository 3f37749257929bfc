import os
import json
from dotenv import load_dotenv

# Загрузка переменных окружения из .env файла
load_dotenv()

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
CONFIG_DIR = os.path.join(BASE_DIR, "config")


def _load_secret_key():
    """Секрет для подписи токенов: переменная окружения, затем config/secret.json"""
    secret = os.environ.get('SECRET_KEY')
    if secret:
        return secret

    secret_path = os.path.join(CONFIG_DIR, "secret.json")
    if os.path.exists(secret_path):
        with open(secret_path) as f:
            return json.load(f)["SECRET_KEY"]

    return 'dev'


SECRET_KEY = _load_secret_key()

DB_CONFIG = {
    'dbname': os.environ.get('DB_NAME', 'piclips'),
    'user': os.environ.get('DB_USER', 'pguser'),
    'password': os.environ.get('DB_PASSWORD', 'pgpassword'),
    'host': os.environ.get('DB_HOST', 'localhost'),
    'port': os.environ.get('DB_PORT', '5432')
}

MINIO_CONFIG = {
    'endpoint': os.environ.get('MINIO_ENDPOINT', 'localhost:9000'),
    'access_key': os.environ.get('MINIO_ACCESS_KEY', 'minioadmin'),
    'secret_key': os.environ.get('MINIO_SECRET_KEY', 'minioadmin'),
    'secure': os.environ.get('MINIO_SECURE', 'false').lower() == 'true',
    'video_bucket': os.environ.get('MINIO_VIDEOS_BUCKET', 'videos'),
}

MAX_UPLOAD_MB = int(os.environ.get('MAX_UPLOAD_MB', 100))
ALLOWED_VIDEO_EXTENSIONS = {'mp4', 'avi', 'mov', 'mkv', 'webm'}
DEFAULT_THUMBNAIL = '/placeholder.svg'

DEBUG = os.environ.get('DEBUG', 'False') == 'True'
PORT = int(os.environ.get('PORT', 5174))
