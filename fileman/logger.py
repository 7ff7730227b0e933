"""
Модуль для настройки и управления логированием приложения.

Обеспечивает настройку логирования с ротацией файлов
и цветным выводом в консоль.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime

try:
    from .config_loader import LoggingConfig
except ImportError:
    from config_loader import LoggingConfig


LOGGER_NAME = 'fileman'
LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class ColoredFormatter(logging.Formatter):
    """Форматтер с цветным выводом для консоли."""

    # Цветовые коды ANSI
    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'
    }

    def format(self, record):
        """Форматирует запись лога с цветом."""
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            # Запись разделяется между обработчиками: файловый лог без цвета
            record.levelname = levelname


class FileManLogger:
    """Класс для управления логированием приложения fileman."""

    def __init__(self, config: LoggingConfig):
        """
        Инициализация логгера.

        Args:
            config: Конфигурация логирования
        """
        self.config = config
        self.logger: Optional[logging.Logger] = None
        self._setup_logger()

    def _setup_logger(self) -> None:
        """Настраивает логгер с файловым и консольным выводом."""
        level = getattr(logging, self.config.level.upper())

        self.logger = logging.getLogger(LOGGER_NAME)
        self.logger.setLevel(level)

        # Повторная настройка не должна дублировать обработчики
        for handler in self.logger.handlers[:]:
            handler.close()
            self.logger.removeHandler(handler)

        if self.config.log_file:
            log_file_path = Path(self.config.log_file)
            log_file_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                filename=log_file_path,
                maxBytes=self.config.max_log_size * 1024 * 1024,  # MB -> байты
                backupCount=self.config.backup_count,
                encoding='utf-8'
            )
            file_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
            file_handler.setLevel(level)
            self.logger.addHandler(file_handler)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(ColoredFormatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        console_handler.setLevel(level)
        self.logger.addHandler(console_handler)

        self.logger.propagate = False

    def get_logger(self) -> logging.Logger:
        """
        Возвращает настроенный логгер.

        Returns:
            logging.Logger: Настроенный логгер
        """
        if self.logger is None:
            raise RuntimeError("Логгер не инициализирован")
        return self.logger

    def close(self) -> None:
        """Закрывает обработчики логгера (освобождает файл лога)."""
        if self.logger is None:
            return
        for handler in self.logger.handlers[:]:
            handler.close()
            self.logger.removeHandler(handler)

    def log_organize_start(self, source: Path, target: Path, total_files: int, grouping: str) -> None:
        """
        Логирует начало упорядочивания.

        Args:
            source: Исходный каталог
            target: Целевой каталог
            total_files: Количество найденных файлов
            grouping: Схема группировки (year, month, day)
        """
        self.logger.info(f"🚀 Начало упорядочивания файлов: {source} → {target}")
        self.logger.info(f"📊 Найдено файлов: {total_files}")
        self.logger.info(f"🗂️ Группировка: {grouping}")
        self.logger.info(f"⏰ Время начала: {datetime.now().strftime(LOG_DATE_FORMAT)}")

    def log_organize_end(self, moved_files: int, skipped_files: int, failed_files: int) -> None:
        """
        Логирует завершение упорядочивания.

        Args:
            moved_files: Перемещено файлов
            skipped_files: Пропущено файлов
            failed_files: Ошибок при перемещении
        """
        self.logger.info("✅ Упорядочивание завершено")
        self.logger.info("📊 Статистика:")
        self.logger.info(f"   • Перемещено: {moved_files}")
        self.logger.info(f"   • Пропущено: {skipped_files}")
        self.logger.info(f"   • Ошибок: {failed_files}")
        self.logger.info(f"⏰ Время завершения: {datetime.now().strftime(LOG_DATE_FORMAT)}")

    def log_file_moved(self, source_path: Path, target_path: Path) -> None:
        """Логирует успешное перемещение файла."""
        self.logger.info(f"📁 Файл перемещен: {source_path} → {target_path}")

    def log_file_skipped(self, source_path: Path, reason: str) -> None:
        """Логирует пропуск файла с указанием причины."""
        self.logger.info(f"⏭️ Файл пропущен: {source_path} ({reason})")

    def log_file_error(self, file_path: Path, error: Exception) -> None:
        """
        Логирует ошибку при обработке файла.

        Args:
            file_path: Путь к файлу
            error: Исключение
        """
        self.logger.error(f"❌ Ошибка при обработке файла {file_path}: {error}")

    def log_progress(self, current: int, total: int, percentage: float = None) -> None:
        """
        Логирует прогресс выполнения.

        Args:
            current: Текущий прогресс
            total: Общее количество
            percentage: Процент выполнения (опционально)
        """
        if percentage is None:
            percentage = (current / total) * 100 if total > 0 else 0

        self.logger.info(f"📈 Прогресс: {current}/{total} ({percentage:.1f}%)")

    def log_config_loaded(self, config_path: str) -> None:
        """Логирует успешную загрузку конфигурации."""
        self.logger.info(f"⚙️ Конфигурация загружена из {config_path}")

    def log_system_info(self, info: str) -> None:
        """Логирует системную информацию."""
        self.logger.info(f"ℹ️ {info}")

    def log_warning(self, message: str) -> None:
        """Логирует предупреждение."""
        self.logger.warning(f"⚠️ {message}")

    def log_critical_error(self, message: str, error: Exception = None) -> None:
        """
        Логирует критическую ошибку.

        Args:
            message: Сообщение об ошибке
            error: Исключение (опционально)
        """
        if error:
            self.logger.critical(f"💥 {message}: {error}")
        else:
            self.logger.critical(f"💥 {message}")


def setup_logger(config: LoggingConfig) -> logging.Logger:
    """Удобная функция для быстрой настройки логгера."""
    return FileManLogger(config).get_logger()


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """Получает логгер по имени."""
    return logging.getLogger(name)
