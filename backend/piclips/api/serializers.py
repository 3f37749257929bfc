"""Преобразование строк БД в JSON, который ожидает веб-клиент"""


def _iso(value):
    return value.isoformat() if value else None


def identity(row, prefix, id_key):
    """Отображаемые данные пользователя из строки с полями <prefix>_username и т.д."""
    return {
        "id": str(row[id_key]),
        "username": row[f"{prefix}_username"],
        "displayName": row[f"{prefix}_display_name"],
        "avatar": row[f"{prefix}_avatar"],
    }


def serialize_video(row):
    video_id = str(row["video_id"])
    return {
        "id": video_id,
        "title": row["title"],
        "description": row["description"],
        "url": f"/api/videos/{video_id}/file",
        "thumbnail": row["thumbnail"],
        "privacy": row["privacy"],
        "user": identity(row, "owner", "user_id"),
        "likeCount": row["like_count"],
        "commentCount": row["comment_count"],
        "createdAt": _iso(row["created_at"]),
    }


def serialize_comment(row):
    return {
        "id": str(row["comment_id"]),
        "video": str(row["video_id"]),
        "content": row["content"],
        "user": identity(row, "author", "user_id"),
        "createdAt": _iso(row["created_at"]),
    }


def serialize_tip(row):
    return {
        "id": str(row["tip_id"]),
        "video": str(row["video_id"]),
        "amount": row["amount"],
        "sender": identity(row, "sender", "sender_id"),
        "receiver": identity(row, "receiver", "receiver_id"),
        "createdAt": _iso(row["created_at"]),
    }
