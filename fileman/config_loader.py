"""
Модуль для загрузки и валидации конфигурации приложения.

Обеспечивает загрузку параметров из config/settings.ini с валидацией.
Если файл по умолчанию отсутствует, используются встроенные значения.
"""

import configparser
from pathlib import Path
from typing import Optional
from dataclasses import dataclass, field


DEFAULT_CONFIG_PATH = "config/settings.ini"

GROUPINGS = ('year', 'month', 'day')
CONFLICT_POLICIES = ('rename', 'skip', 'overwrite')
ERROR_POLICIES = ('continue', 'abort')
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


@dataclass
class OrganizerConfig:
    """Конфигурация параметров упорядочивания."""
    grouping: str = 'month'
    recursive: bool = True
    on_conflict: str = 'rename'
    on_error: str = 'continue'
    verify_integrity: bool = True
    remove_empty_dirs: bool = False


@dataclass
class LoggingConfig:
    """Конфигурация логирования."""
    level: str = 'INFO'
    log_file: Optional[Path] = Path('logs/fileman.log')
    max_log_size: int = 10
    backup_count: int = 5


@dataclass
class Config:
    """Основная конфигурация приложения."""
    organizer: OrganizerConfig = field(default_factory=OrganizerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


class ConfigLoader:
    """Класс для загрузки и валидации конфигурации."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Инициализация загрузчика конфигурации.

        Args:
            config_path: Путь к файлу конфигурации. None означает путь
                по умолчанию, который может отсутствовать.
        """
        self.explicit = config_path is not None
        self.config_path = Path(config_path if config_path is not None else DEFAULT_CONFIG_PATH)
        self._config: Optional[Config] = None

    def load_config(self) -> Config:
        """
        Загружает конфигурацию из файла.

        Returns:
            Config: Объект конфигурации

        Raises:
            FileNotFoundError: Если явно указанный файл конфигурации не найден
            ValueError: Если конфигурация некорректна
        """
        if not self.config_path.exists():
            if self.explicit:
                raise FileNotFoundError(f"Файл конфигурации не найден: {self.config_path}")
            self._config = Config()
            self._validate_config()
            return self._config

        config_parser = configparser.ConfigParser(inline_comment_prefixes=(';', '#'))
        config_parser.read(self.config_path, encoding='utf-8')

        try:
            organizer_config = self._load_organizer_config(config_parser)
            logging_config = self._load_logging_config(config_parser)

            self._config = Config(
                organizer=organizer_config,
                logging=logging_config
            )

            self._validate_config()

            return self._config

        except Exception as e:
            raise ValueError(f"Ошибка загрузки конфигурации: {e}") from e

    def _load_organizer_config(self, parser: configparser.ConfigParser) -> OrganizerConfig:
        """Загружает конфигурацию упорядочивания."""
        section = 'organizer'
        defaults = OrganizerConfig()

        # Секция необязательна: все параметры имеют значения по умолчанию
        if not parser.has_section(section):
            return defaults

        return OrganizerConfig(
            grouping=parser.get(section, 'grouping', fallback=defaults.grouping).strip().lower(),
            recursive=parser.getboolean(section, 'recursive', fallback=defaults.recursive),
            on_conflict=parser.get(section, 'on_conflict', fallback=defaults.on_conflict).strip().lower(),
            on_error=parser.get(section, 'on_error', fallback=defaults.on_error).strip().lower(),
            verify_integrity=parser.getboolean(section, 'verify_integrity', fallback=defaults.verify_integrity),
            remove_empty_dirs=parser.getboolean(section, 'remove_empty_dirs', fallback=defaults.remove_empty_dirs)
        )

    def _load_logging_config(self, parser: configparser.ConfigParser) -> LoggingConfig:
        """Загружает конфигурацию логирования."""
        section = 'logging'
        defaults = LoggingConfig()

        if not parser.has_section(section):
            return defaults

        raw_log_file = parser.get(section, 'log_file', fallback=str(defaults.log_file)).strip()
        log_file = Path(raw_log_file) if raw_log_file else None

        return LoggingConfig(
            level=parser.get(section, 'level', fallback=defaults.level).strip(),
            log_file=log_file,
            max_log_size=parser.getint(section, 'max_log_size', fallback=defaults.max_log_size),
            backup_count=parser.getint(section, 'backup_count', fallback=defaults.backup_count)
        )

    def _validate_config(self) -> None:
        """Валидирует загруженную конфигурацию."""
        if not self._config:
            raise ValueError("Конфигурация не загружена")

        validate_organizer_config(self._config.organizer)

        if self._config.logging.level.upper() not in LOG_LEVELS:
            raise ValueError(f"Некорректный уровень логирования: {self._config.logging.level}")

        if self._config.logging.max_log_size <= 0:
            raise ValueError("Размер файла лога должен быть больше 0")

        if self._config.logging.backup_count < 0:
            raise ValueError("Количество резервных копий лога не может быть отрицательным")

    def get_config(self) -> Config:
        """
        Возвращает загруженную конфигурацию.

        Raises:
            ValueError: Если конфигурация не загружена
        """
        if self._config is None:
            raise ValueError("Конфигурация не загружена. Вызовите load_config() сначала.")
        return self._config

    def reload_config(self) -> Config:
        """Перезагружает конфигурацию из файла."""
        self._config = None
        return self.load_config()


def validate_organizer_config(config: OrganizerConfig) -> None:
    """
    Проверяет параметры упорядочивания.

    Вынесено отдельно, т.к. CLI переопределяет параметры после загрузки
    и проверяет результат повторно.

    Raises:
        ValueError: Если значение параметра не поддерживается
    """
    if config.grouping not in GROUPINGS:
        raise ValueError(f"Некорректная группировка: {config.grouping} (допустимо: {', '.join(GROUPINGS)})")

    if config.on_conflict not in CONFLICT_POLICIES:
        raise ValueError(
            f"Некорректная политика конфликтов: {config.on_conflict} "
            f"(допустимо: {', '.join(CONFLICT_POLICIES)})"
        )

    if config.on_error not in ERROR_POLICIES:
        raise ValueError(
            f"Некорректная политика ошибок: {config.on_error} "
            f"(допустимо: {', '.join(ERROR_POLICIES)})"
        )


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Удобная функция для быстрой загрузки конфигурации.

    Args:
        config_path: Путь к файлу конфигурации (None - путь по умолчанию)

    Returns:
        Config: Объект конфигурации
    """
    loader = ConfigLoader(config_path)
    return loader.load_config()
