from flask import Blueprint, request, jsonify, redirect
from werkzeug.exceptions import RequestEntityTooLarge
import traceback

from piclips import config
from piclips.api.auth import token_required
from piclips.api.serializers import serialize_video, serialize_comment, serialize_tip
from piclips.errors import PiclipsError, ValidationError, NotFoundError
from piclips.services import video_storage
from piclips.services.database import DatabaseManager
from piclips.services.minio import MinioStorage
from piclips.services.tips import TipService
from piclips.utils.log import setup_logger

logger = setup_logger(__name__)


bp = Blueprint("videos", __name__, url_prefix="/api/videos")

# Срок действия ссылки MinIO: от секунды до семи дней
MAX_URL_EXPIRES = 7 * 24 * 60 * 60

storage = MinioStorage()
db_manager = DatabaseManager()
tip_service = TipService(db_manager)


def init_services():
    """Схема БД и бакет MinIO проверяются при старте приложения"""
    db_manager.init_database()
    storage.connect()


def error_response(e, operation):
    """Ожидаемые ошибки отдаются с их текстом, остальные логируются и скрываются за 500"""
    if isinstance(e, PiclipsError) and e.http_status < 500:
        logger.warning(f"Отказ ({operation}): {e.message}")
        return jsonify({"message": e.message}), e.http_status

    logger.error(f"Ошибка ({operation}): {e}")
    logger.error(traceback.format_exc())
    return jsonify({"message": f"Server error while {operation}"}), 500


@bp.app_errorhandler(404)
def not_found(e):
    return jsonify({"message": "Not found"}), 404


@bp.app_errorhandler(RequestEntityTooLarge)
def request_too_large(e):
    """Тело запроса больше MAX_CONTENT_LENGTH: Werkzeug отказывает еще до обработчика"""
    logger.warning(f"Слишком большой запрос: {request.content_length} байт")
    return jsonify({"message": f"File too large. Maximum size: {config.MAX_UPLOAD_MB} MB"}), 400


@bp.route("/", methods=["POST"], strict_slashes=False)
@token_required
def upload_video(auth):
    if "video" not in request.files or request.files["video"].filename == "":
        logger.warning("Запрос не содержит файла")
        return jsonify({"message": "No video file uploaded"}), 400

    file = request.files["video"]
    privacy = request.form.get("privacy") or "public"
    if privacy not in ("public", "private"):
        return jsonify({"message": "Invalid privacy value"}), 400

    s3_key = None
    try:
        s3_key = video_storage.save_video(storage, file, auth.user_id)
        video = db_manager.create_video(
            auth.user_id,
            request.form.get("title", ""),
            request.form.get("description", ""),
            s3_key,
            request.form.get("thumbnail") or config.DEFAULT_THUMBNAIL,
            privacy
        )
        return jsonify(serialize_video(video)), 201
    except Exception as e:
        # Запись не создана, файл в хранилище больше не нужен
        if s3_key:
            video_storage.delete_video(storage, s3_key)
        return error_response(e, "uploading video")


@bp.route("/", methods=["GET"], strict_slashes=False)
def get_videos():
    try:
        videos = db_manager.get_public_videos()
        return jsonify([serialize_video(v) for v in videos])
    except Exception as e:
        return error_response(e, "fetching videos")


@bp.route("/user/<uuid:user_id>", methods=["GET"])
@token_required
def get_user_videos(user_id, auth):
    try:
        videos = db_manager.get_user_videos(user_id, include_private=user_id == auth.user_id)
        return jsonify([serialize_video(v) for v in videos])
    except Exception as e:
        return error_response(e, "fetching user videos")


@bp.route("/liked/<uuid:user_id>", methods=["GET"])
@token_required
def get_liked_videos(user_id, auth):
    try:
        videos = db_manager.get_liked_videos(user_id)
        return jsonify([serialize_video(v) for v in videos])
    except Exception as e:
        return error_response(e, "fetching liked videos")


@bp.route("/<uuid:video_id>", methods=["GET"])
def get_video(video_id):
    try:
        video = db_manager.get_video(video_id)
        if not video:
            raise NotFoundError("Video not found")
        return jsonify(serialize_video(video))
    except Exception as e:
        return error_response(e, "fetching video")


@bp.route("/<uuid:video_id>/file", methods=["GET"])
def get_video_file(video_id):
    try:
        expires = int(request.args.get('expires', 3600))
    except ValueError:
        expires = 0
    if not 1 <= expires <= MAX_URL_EXPIRES:
        return jsonify({"message": "Invalid expires value"}), 400

    try:
        video = db_manager.get_video(video_id)
        if not video:
            raise NotFoundError("Video not found")

        url = video_storage.get_video_url(storage, video["s3_key"], expires=expires)
        if not url:
            logger.error(f"Не удалось получить ссылку на файл {video['s3_key']}")
            raise NotFoundError("Video file not found")

        if request.args.get('direct'):
            return redirect(url)
        return jsonify({"url": url, "expires_in": expires})
    except Exception as e:
        return error_response(e, "fetching video file")


@bp.route("/<uuid:video_id>", methods=["DELETE"])
@token_required
def delete_video(video_id, auth):
    logger.info(f"Удаление видео {video_id} пользователем {auth.user_id}")
    try:
        video = db_manager.delete_video(video_id, auth.user_id)
    except Exception as e:
        return error_response(e, "deleting video")

    # Запись уже удалена, неудача с файлом только логируется
    try:
        video_storage.delete_video(storage, video["s3_key"])
    except Exception as e:
        logger.error(f"Ошибка при удалении файла {video['s3_key']}: {e}")

    return jsonify({"message": "Video deleted successfully"})


@bp.route("/<uuid:video_id>/like", methods=["POST"])
@token_required
def toggle_like(video_id, auth):
    try:
        likes, is_liked = db_manager.toggle_like(video_id, auth.user_id)
        return jsonify({"likes": likes, "isLiked": is_liked})
    except Exception as e:
        return error_response(e, "processing like/unlike")


@bp.route("/<uuid:video_id>/comment", methods=["POST"])
@token_required
def add_comment(video_id, auth):
    data = request.get_json(silent=True)
    content = data.get("content") if isinstance(data, dict) else None
    try:
        if not isinstance(content, str) or not content.strip():
            raise ValidationError("Comment content is required")

        comment, comment_count = db_manager.add_comment(video_id, auth.user_id, content.strip())
        return jsonify({
            "comment": serialize_comment(comment),
            "commentCount": comment_count
        }), 201
    except Exception as e:
        return error_response(e, "adding comment")


@bp.route("/<uuid:video_id>/comments", methods=["GET"])
def get_comments(video_id):
    try:
        comments = db_manager.get_comments(video_id)
        return jsonify([serialize_comment(c) for c in comments])
    except Exception as e:
        return error_response(e, "fetching comments")


@bp.route("/<uuid:video_id>/comments/<uuid:comment_id>", methods=["DELETE"])
@token_required
def delete_comment(video_id, comment_id, auth):
    try:
        db_manager.delete_comment(video_id, comment_id, auth.user_id)
        return jsonify({"message": "Comment deleted successfully"})
    except Exception as e:
        return error_response(e, "deleting comment")


@bp.route("/<uuid:video_id>/tip", methods=["POST"])
@token_required
def create_tip(video_id, auth):
    data = request.get_json(silent=True)
    amount = data.get("amount") if isinstance(data, dict) else None
    try:
        tip = tip_service.transfer_tip(auth.user_id, video_id, amount)
        return jsonify(serialize_tip(tip)), 201
    except Exception as e:
        return error_response(e, "processing tip")


@bp.route("/<uuid:video_id>/tips", methods=["GET"])
@token_required
def get_tips(video_id, auth):
    try:
        tips = tip_service.list_tips(video_id)
        return jsonify([serialize_tip(t) for t in tips])
    except Exception as e:
        return error_response(e, "fetching tips")


@bp.route("/<uuid:video_id>/tips/summary", methods=["GET"])
@token_required
def get_tips_summary(video_id, auth):
    try:
        return jsonify(tip_service.summarize_tips(video_id))
    except Exception as e:
        return error_response(e, "fetching tips summary")
