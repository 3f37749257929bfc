"""
Чаевые за видео.

Перевод токенов от зрителя владельцу видео. Списание, зачисление и запись в
журнал tips выполняются в одной транзакции; строки обоих счетов блокируются
(SELECT ... FOR UPDATE) в порядке возрастания user_id, так что параллельные
переводы с одного счета выполняются по очереди и проверка баланса видит
актуальное значение.
"""

from piclips.errors import ValidationError, NotFoundError, InsufficientFundsError
from piclips.utils.log import setup_logger

logger = setup_logger(__name__)

TIP_SELECT = """
    SELECT t.tip_id, t.sender_id, t.receiver_id, t.video_id, t.amount, t.created_at,
           s.username AS sender_username,
           s.display_name AS sender_display_name,
           s.avatar AS sender_avatar,
           r.username AS receiver_username,
           r.display_name AS receiver_display_name,
           r.avatar AS receiver_avatar
    FROM tips t
    JOIN users s ON s.user_id = t.sender_id
    JOIN users r ON r.user_id = t.receiver_id
"""


def validate_amount(amount):
    """Сумма чаевых: целое число не меньше 1"""
    # bool является подклассом int, но суммой не считается
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 1:
        raise ValidationError("Invalid tip amount")
    return amount


def summarize(tips):
    """Итог по списку чаевых: сумма, количество и число разных отправителей"""
    return {
        "totalAmount": sum(tip["amount"] for tip in tips),
        "tipCount": len(tips),
        "uniqueSenders": len({str(tip["sender_id"]) for tip in tips}),
    }


class TipService:
    """Перевод чаевых и чтение журнала чаевых по видео"""

    def __init__(self, db_manager):
        self.db = db_manager

    def transfer_tip(self, sender_id, video_id, amount):
        """
        Перевести amount токенов от sender_id владельцу видео video_id

        :return: созданная запись чаевых с данными отправителя и получателя
        :raises ValidationError: некорректная сумма
        :raises NotFoundError: нет видео, отправителя или получателя
        :raises InsufficientFundsError: на балансе отправителя меньше amount
        """
        validate_amount(amount)

        with self.db.transaction() as cursor:
            # FOR SHARE: владелец видео не меняется и видео не удаляется до конца перевода
            cursor.execute(
                "SELECT video_id, user_id FROM videos WHERE video_id = %s FOR SHARE",
                (video_id,)
            )
            video = cursor.fetchone()
            if not video:
                raise NotFoundError("Video not found")

            receiver_id = video["user_id"]

            cursor.execute(
                """
                SELECT user_id, token_balance FROM users
                WHERE user_id IN %s
                ORDER BY user_id
                FOR UPDATE
                """,
                (tuple({sender_id, receiver_id}),)
            )
            accounts = {row["user_id"]: row for row in cursor.fetchall()}

            sender = accounts.get(sender_id)
            if not sender:
                raise NotFoundError("Sender not found")
            if receiver_id not in accounts:
                raise NotFoundError("Receiver not found")

            if sender["token_balance"] < amount:
                logger.warning(
                    f"Недостаточно токенов у {sender_id}: баланс {sender['token_balance']}, сумма {amount}"
                )
                raise InsufficientFundsError("Insufficient tokens")

            cursor.execute(
                "UPDATE users SET token_balance = token_balance - %s WHERE user_id = %s",
                (amount, sender_id)
            )
            cursor.execute(
                "UPDATE users SET token_balance = token_balance + %s WHERE user_id = %s",
                (amount, receiver_id)
            )
            cursor.execute(
                """
                INSERT INTO tips (sender_id, receiver_id, video_id, amount)
                VALUES (%s, %s, %s, %s)
                RETURNING tip_id
                """,
                (sender_id, receiver_id, video_id, amount)
            )
            tip_id = cursor.fetchone()["tip_id"]

            cursor.execute(TIP_SELECT + " WHERE t.tip_id = %s", (tip_id,))
            tip = cursor.fetchone()

        logger.info(f"Чаевые {tip_id}: {sender_id} -> {receiver_id}, {amount} токенов за видео {video_id}")
        return tip

    def _fetch_tips(self, cursor, video_id):
        cursor.execute(
            TIP_SELECT + " WHERE t.video_id = %s ORDER BY t.created_at DESC",
            (video_id,)
        )
        return cursor.fetchall()

    def list_tips(self, video_id):
        """Чаевые за видео, новые первыми"""
        with self.db.transaction() as cursor:
            return self._fetch_tips(cursor, video_id)

    def summarize_tips(self, video_id):
        """Сводка по чаевым за видео, посчитанная по тому же чтению, что и list_tips"""
        with self.db.transaction() as cursor:
            tips = self._fetch_tips(cursor, video_id)
        return summarize(tips)
