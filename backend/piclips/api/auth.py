import uuid
from collections import namedtuple
from functools import wraps

import jwt
from flask import request, jsonify, current_app

from piclips.utils.log import setup_logger

logger = setup_logger(__name__)

# Аутентифицированный пользователь запроса, передается в обработчик явно
AuthContext = namedtuple("AuthContext", ["user_id", "username"])


def decode_token(token, secret_key):
    """Проверка токена и извлечение пользователя"""
    payload = jwt.decode(token, secret_key, algorithms=["HS256"])
    return AuthContext(uuid.UUID(str(payload["user_id"])), payload.get("user"))


def token_required(f):
    """Пропускает запрос только с валидным Bearer-токеном и передает auth=AuthContext"""
    @wraps(f)
    def decorated(*args, **kwargs):
        header = request.headers.get("Authorization")
        if not header:
            return jsonify({"message": "Token is missing"}), 401
        try:
            token = header.split(" ")[1]
            auth = decode_token(token, current_app.config["SECRET_KEY"])
        except (IndexError, KeyError, ValueError, jwt.InvalidTokenError) as e:
            logger.warning(f"Отклонен токен: {e}")
            return jsonify({"message": "Invalid token"}), 401

        return f(*args, auth=auth, **kwargs)

    return decorated
