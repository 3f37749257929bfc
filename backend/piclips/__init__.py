from flask import Flask
from flask_cors import CORS

from piclips import config


def create_app(test_config=None):
    """
    Фабрика приложения Flask, создающая и настраивающая экземпляр Flask
    """
    app = Flask(__name__, instance_relative_config=True)

    # Настройка CORS
    CORS(app)

    # Загрузка конфигурации
    if test_config is None:
        # Загрузка конфигурации из environment variables
        app.config.from_mapping(
            SECRET_KEY=config.SECRET_KEY,
            DEBUG=config.DEBUG,
            # Запас на поля формы: точный лимит файла проверяет video_storage
            MAX_CONTENT_LENGTH=(config.MAX_UPLOAD_MB + 1) * 1024 * 1024,
        )
    else:
        # Загрузка тестовой конфигурации
        app.config.from_mapping(test_config)

    # Регистрация маршрутов
    from piclips.api import routes
    app.register_blueprint(routes.bp)

    # Инициализация БД и хранилища
    if not app.config.get('TESTING'):
        routes.init_services()

    return app
