"""
Ошибки предметной области.

Каждый класс знает HTTP-статус, с которым его отдает API. Ожидаемые исходы
(валидация, отсутствие объекта, нет прав, нехватка токенов) уходят клиенту
с текстом ошибки как есть, инфраструктурные превращаются в общий ответ 500.
"""


class PiclipsError(Exception):
    http_status = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(PiclipsError):
    http_status = 400


class NotFoundError(PiclipsError):
    http_status = 404


class ForbiddenError(PiclipsError):
    http_status = 403


class InsufficientFundsError(PiclipsError):
    http_status = 400


class StorageError(PiclipsError):
    http_status = 500
