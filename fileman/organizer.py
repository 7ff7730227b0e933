"""
Модуль бизнес-логики упорядочивания файлов.

Обходит исходный каталог, определяет дату последнего изменения каждого
файла и перемещает файлы в целевое дерево каталогов по датам.
"""

import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Dict, Optional

try:
    from .config_loader import Config
    from .logger import FileManLogger
    from .file_ops import (FileOps, FileOperationError, NotFoundError, PermissionDeniedError,
                           MoveResult, PathLike, destination_directory)
except ImportError:
    from config_loader import Config
    from logger import FileManLogger
    from file_ops import (FileOps, FileOperationError, NotFoundError, PermissionDeniedError,
                          MoveResult, PathLike, destination_directory)


PROGRESS_INTERVAL = 100


class OrganizeError(Exception):
    """Исключение для ошибок упорядочивания."""
    pass


@dataclass(frozen=True)
class FileEntry:
    """Снимок файла, сделанный один раз при сканировании."""
    path: Path
    modified: datetime
    size: int = 0

    @classmethod
    def from_path(cls, path: PathLike) -> 'FileEntry':
        path = Path(path)
        stat = path.stat()
        return cls(path=path, modified=datetime.fromtimestamp(stat.st_mtime), size=stat.st_size)


class OrganizeStats:
    """Класс для хранения статистики упорядочивания."""

    def __init__(self):
        self.total_files = 0
        self.processed_files = 0
        self.moved_files = 0
        self.skipped_files = 0
        self.failed_files = 0
        self.start_time = None
        self.end_time = None
        self.errors = []

    def add_error(self, file_path: Path, error: Exception):
        """Добавляет ошибку в список."""
        self.errors.append({
            'path': str(file_path),
            'error': str(error),
            'kind': type(error).__name__,
            'timestamp': datetime.now()
        })

    def get_duration(self) -> Optional[float]:
        """Возвращает продолжительность в секундах."""
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return None

    def get_success_rate(self) -> float:
        """Возвращает процент файлов, обработанных без ошибок."""
        if self.processed_files == 0:
            return 0.0
        return ((self.processed_files - self.failed_files) / self.processed_files) * 100

    def to_dict(self) -> Dict:
        """Преобразует статистику в словарь."""
        return {
            'total_files': self.total_files,
            'processed_files': self.processed_files,
            'moved_files': self.moved_files,
            'skipped_files': self.skipped_files,
            'failed_files': self.failed_files,
            'start_time': self.start_time.isoformat() if self.start_time else None,
            'end_time': self.end_time.isoformat() if self.end_time else None,
            'duration_seconds': self.get_duration(),
            'success_rate': self.get_success_rate(),
            'error_count': len(self.errors)
        }


class Organizer:
    """Основной класс для упорядочивания файлов по дате изменения."""

    def __init__(self, config: Config, logger: FileManLogger):
        """
        Инициализация упорядочивателя.

        Args:
            config: Конфигурация приложения
            logger: Логгер для записи операций
        """
        self.config = config
        self.logger = logger
        self.file_ops: Optional[FileOps] = None
        self.stats = OrganizeStats()

    def validate_source(self, source: PathLike) -> Path:
        """
        Проверяет, что исходный каталог существует и доступен для чтения.

        Raises:
            NotFoundError: Каталог отсутствует или не является каталогом
            PermissionDeniedError: Каталог нельзя прочитать
        """
        source = Path(source)

        if not source.is_dir():
            error = NotFoundError(f"Исходный каталог не найден: {source}")
            self.logger.log_critical_error("Исходный каталог недоступен", error)
            raise error

        if not os.access(source, os.R_OK | os.X_OK):
            error = PermissionDeniedError(f"Нет прав на чтение исходного каталога: {source}")
            self.logger.log_critical_error("Исходный каталог недоступен", error)
            raise error

        return source

    def _create_file_ops(self, target: PathLike) -> FileOps:
        return FileOps(target, self.logger, self.config.organizer.grouping)

    def scan(self, source: PathLike, target: Optional[PathLike] = None) -> List[FileEntry]:
        """
        Сканирует исходный каталог.

        Если целевой каталог лежит внутри исходного, его содержимое
        не сканируется.

        Args:
            source: Исходный каталог
            target: Целевой каталог (опционально)

        Returns:
            List[FileEntry]: Снимки файлов в порядке путей
        """
        source = Path(source)
        file_ops = self.file_ops or self._create_file_ops(target if target is not None else source)

        paths = file_ops.collect_files(source, recursive=self.config.organizer.recursive,
                                       exclude=self._nested_target(source, target))

        entries = []
        for path in paths:
            try:
                entries.append(FileEntry.from_path(path))
            except OSError as e:
                # Файл исчез или стал недоступен между обходом и stat
                self.logger.log_warning(f"Файл пропущен при сканировании {path}: {e}")

        return entries

    @staticmethod
    def _nested_target(source: Path, target: Optional[PathLike]) -> Optional[Path]:
        """Целевой каталог, если он лежит внутри исходного, иначе None."""
        if target is None:
            return None
        target_resolved = Path(target).resolve()
        if source.resolve() in target_resolved.parents:
            return target_resolved
        return None

    def destination_for(self, entry: FileEntry, target: PathLike) -> Path:
        """Путь назначения файла: каталог по дате и исходное имя."""
        return destination_directory(target, entry.modified, self.config.organizer.grouping) / entry.path.name

    def plan(self, entries: List[FileEntry], target: PathLike) -> Dict[Path, Path]:
        """
        Строит план перемещения: исходный путь -> путь назначения.

        План не учитывает конфликты имен, они разрешаются при перемещении.
        """
        return {entry.path: self.destination_for(entry, target) for entry in entries}

    def organize(self, source: PathLike, target: PathLike, dry_run: bool = False,
                 max_files: Optional[int] = None) -> OrganizeStats:
        """
        Упорядочивает файлы исходного каталога в целевом.

        Args:
            source: Исходный каталог
            target: Целевой каталог (создается при отсутствии)
            dry_run: Только показать план, ничего не перемещать
            max_files: Максимальное количество файлов для обработки

        Returns:
            OrganizeStats: Статистика упорядочивания

        Raises:
            NotFoundError: Исходный каталог не найден
            PermissionDeniedError: Исходный каталог нельзя прочитать
                или целевой нельзя создать
            OrganizeError: Ошибка файла при политике on_error = abort
        """
        organizer_config = self.config.organizer
        self.stats = OrganizeStats()
        self.stats.start_time = datetime.now()

        source = self.validate_source(source)
        target = Path(target)
        self.file_ops = self._create_file_ops(target)

        if not dry_run:
            self.file_ops.ensure_target_exists()

        entries = self.scan(source, target)
        if max_files is not None:
            if len(entries) > max_files:
                self.logger.log_system_info(f"Достигнут лимит файлов: {max_files}")
            entries = entries[:max_files]

        self.stats.total_files = len(entries)
        self.logger.log_organize_start(source, target, self.stats.total_files, organizer_config.grouping)

        if not entries:
            self.logger.log_system_info("Нет файлов для упорядочивания")

        if dry_run:
            self._report_plan(self.plan(entries, target))
        else:
            for entry in entries:
                self._process_entry(entry)

                if self.stats.processed_files % PROGRESS_INTERVAL == 0:
                    self.logger.log_progress(self.stats.processed_files, self.stats.total_files)

            if organizer_config.remove_empty_dirs and organizer_config.recursive:
                self.file_ops.cleanup_empty_directories(
                    source, exclude=self._nested_target(source, target))

        self.stats.end_time = datetime.now()

        self.logger.log_organize_end(
            moved_files=self.stats.moved_files,
            skipped_files=self.stats.skipped_files,
            failed_files=self.stats.failed_files
        )

        return self.stats

    def _report_plan(self, plan: Dict[Path, Path]) -> None:
        """Логирует план перемещения без изменения файловой системы."""
        for source_path, destination in plan.items():
            self.logger.log_system_info(f"DRY RUN: {source_path} → {destination}")
            self.logger.log_file_skipped(source_path, "dry run")
            self.stats.processed_files += 1
            self.stats.skipped_files += 1

    def _process_entry(self, entry: FileEntry) -> None:
        """Перемещает один файл и учитывает результат в статистике."""
        try:
            result = self._organize_single_file(entry)
        except FileOperationError as e:
            self.stats.processed_files += 1
            self.stats.failed_files += 1
            self.stats.add_error(entry.path, e)

            if self.config.organizer.on_error == 'abort':
                self.stats.end_time = datetime.now()
                self.logger.log_critical_error("Упорядочивание прервано", e)
                raise OrganizeError(f"Упорядочивание прервано на файле {entry.path}: {e}") from e
            return

        self.stats.processed_files += 1
        if result.moved:
            self.stats.moved_files += 1
        else:
            self.stats.skipped_files += 1
            self.logger.log_file_skipped(entry.path, result.reason)

    def _organize_single_file(self, entry: FileEntry) -> MoveResult:
        """
        Перемещает один файл в каталог по его дате изменения.

        Raises:
            FileOperationError: Ошибка перемещения (NotFound, PermissionDenied, MoveFailed)
        """
        return self.file_ops.move_file(
            entry.path,
            entry.modified,
            on_conflict=self.config.organizer.on_conflict,
            verify_integrity=self.config.organizer.verify_integrity
        )

    def get_status(self, target: PathLike) -> Dict:
        """Получает статистику упорядоченного дерева."""
        return self._create_file_ops(target).get_storage_statistics()


def create_organizer(config: Config, logger: FileManLogger) -> Organizer:
    """Удобная функция для создания объекта упорядочивателя."""
    return Organizer(config, logger)
