#!/usr/bin/env python3
"""
Административное начисление токенов пользователю.
Запускается из каталога backend командой:
python -m piclips.utils.grant_tokens <user_id> <amount>
"""

import argparse
import logging
import uuid

from piclips.services.database import DatabaseManager

# Настройка логирования
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def positive_int(value):
    amount = int(value)
    if amount < 1:
        raise argparse.ArgumentTypeError("amount must be a positive integer")
    return amount


def main(argv=None, db_manager=None):
    parser = argparse.ArgumentParser(description="Начислить токены пользователю")
    parser.add_argument("user_id", type=uuid.UUID)
    parser.add_argument("amount", type=positive_int)
    args = parser.parse_args(argv)

    db_manager = db_manager or DatabaseManager()
    try:
        balance = db_manager.credit_tokens(args.user_id, args.amount)
    except Exception as e:
        logger.error(f"Ошибка при начислении токенов: {e}")
        return 1

    logger.info(f"Баланс пользователя {args.user_id}: {balance}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
