"""
Модуль для операций с файловой системой.

Обеспечивает сбор файлов, перемещение в структуру каталогов по дате
изменения (YYYY/MM по умолчанию) и вспомогательные операции над деревом.
"""

import shutil
import hashlib
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Union, List

try:
    from .logger import FileManLogger
except ImportError:
    from logger import FileManLogger


PathLike = Union[str, Path]

# Части пути каталога для каждой схемы группировки
GROUPING_FORMATS = {
    'year': ('%Y',),
    'month': ('%Y', '%m'),
    'day': ('%Y', '%m', '%d'),
}

HASH_ALGORITHMS = {
    'md5': hashlib.md5,
    'sha1': hashlib.sha1,
    'sha256': hashlib.sha256,
}


class FileOperationError(Exception):
    """Исключение для ошибок операций с файлами."""
    pass


class NotFoundError(FileOperationError):
    """Исходный каталог или файл не найден."""
    pass


class PermissionDeniedError(FileOperationError):
    """Нет прав на чтение или запись пути."""
    pass


class MoveFailedError(FileOperationError):
    """Не удалось переместить отдельный файл."""
    pass


@dataclass
class MoveResult:
    """Результат перемещения одного файла."""
    source: Path
    destination: Path
    moved: bool
    reason: str = ''


def destination_directory(target_root: PathLike, modified: datetime, grouping: str = 'month') -> Path:
    """
    Вычисляет каталог назначения по дате изменения файла.

    Чистая функция: одинаковые дата, схема и корень всегда дают один путь.

    Args:
        target_root: Корень целевого дерева
        modified: Дата последнего изменения файла
        grouping: Схема группировки (year, month, day)

    Returns:
        Path: Каталог назначения, например target/2023/06

    Raises:
        ValueError: Если схема группировки не поддерживается
    """
    try:
        formats = GROUPING_FORMATS[grouping]
    except KeyError:
        raise ValueError(f"Неподдерживаемая группировка: {grouping}") from None

    return Path(target_root).joinpath(*(modified.strftime(fmt) for fmt in formats))


class FileOps:
    """Класс для операций с файловой системой."""

    def __init__(self, target_root: PathLike, logger: FileManLogger, grouping: str = 'month'):
        """
        Инициализация операций с файлами.

        Args:
            target_root: Корень целевого дерева
            logger: Логгер для записи операций
            grouping: Схема группировки каталогов
        """
        if grouping not in GROUPING_FORMATS:
            raise ValueError(f"Неподдерживаемая группировка: {grouping}")

        self.target_root = Path(target_root)
        self.logger = logger
        self.grouping = grouping

    def ensure_target_exists(self) -> Path:
        """
        Создает корень целевого дерева если он не существует.

        Raises:
            PermissionDeniedError: Нет прав на создание каталога
            FileOperationError: Прочие ошибки создания
        """
        try:
            self.target_root.mkdir(parents=True, exist_ok=True)
        except PermissionError as e:
            self.logger.log_file_error(self.target_root, e)
            raise PermissionDeniedError(f"Нет прав на создание целевого каталога {self.target_root}: {e}") from e
        except OSError as e:
            self.logger.log_file_error(self.target_root, e)
            raise FileOperationError(f"Ошибка создания целевого каталога {self.target_root}: {e}") from e

        if not self.target_root.is_dir():
            raise FileOperationError(f"Целевой путь не является каталогом: {self.target_root}")

        return self.target_root

    def get_date_directory(self, dt: datetime) -> Path:
        """Получает путь к каталогу по дате для текущей схемы группировки."""
        return destination_directory(self.target_root, dt, self.grouping)

    def ensure_date_directory_exists(self, dt: datetime) -> Path:
        """
        Создает каталог по дате если он не существует.

        Raises:
            PermissionDeniedError: Нет прав на создание каталога
            MoveFailedError: Прочие ошибки создания
        """
        date_dir = self.get_date_directory(dt)
        try:
            date_dir.mkdir(parents=True, exist_ok=True)
            return date_dir
        except PermissionError as e:
            self.logger.log_file_error(date_dir, e)
            raise PermissionDeniedError(f"Нет прав на создание каталога {date_dir}: {e}") from e
        except OSError as e:
            self.logger.log_file_error(date_dir, e)
            raise MoveFailedError(f"Ошибка создания каталога по дате {date_dir}: {e}") from e

    def move_file(self, source_path: PathLike, dt: datetime, on_conflict: str = 'rename',
                  verify_integrity: bool = False) -> MoveResult:
        """
        Перемещает файл в структуру каталогов по дате.

        Args:
            source_path: Путь к исходному файлу
            dt: Дата изменения файла
            on_conflict: Политика при совпадении имени (rename, skip, overwrite)
            verify_integrity: Сравнить хеш до и после перемещения

        Returns:
            MoveResult: Результат перемещения

        Raises:
            NotFoundError: Если исходный файл не найден
            PermissionDeniedError: Нет прав на запись в каталог назначения
            MoveFailedError: Если произошла ошибка при перемещении
        """
        source_path = Path(source_path)

        # Проверки существования тоже обращаются к ФС и могут получить EACCES
        try:
            return self._move_file(source_path, dt, on_conflict, verify_integrity)
        except FileOperationError:
            raise
        except PermissionError as e:
            self.logger.log_file_error(source_path, e)
            raise PermissionDeniedError(f"Нет прав на доступ при перемещении {source_path}: {e}") from e
        except OSError as e:
            self.logger.log_file_error(source_path, e)
            raise MoveFailedError(f"Ошибка перемещения файла {source_path}: {e}") from e

    def _move_file(self, source_path: Path, dt: datetime, on_conflict: str,
                   verify_integrity: bool) -> MoveResult:
        if not source_path.is_file():
            error = NotFoundError(f"Исходный файл не найден: {source_path}")
            self.logger.log_file_error(source_path, error)
            raise error

        target_dir = self.get_date_directory(dt)
        target_path = target_dir / source_path.name

        if target_path.exists() and target_path.resolve() == source_path.resolve():
            return MoveResult(source_path, target_path, moved=False, reason="уже упорядочен")

        target_dir = self.ensure_date_directory_exists(dt)

        reason = ''
        if target_path.exists():
            if target_path.is_dir():
                error = MoveFailedError(f"В месте назначения находится каталог: {target_path}")
                self.logger.log_file_error(source_path, error)
                raise error

            if on_conflict == 'skip':
                return MoveResult(source_path, target_path, moved=False,
                                  reason="файл с таким именем уже существует")
            elif on_conflict == 'rename':
                target_path = self.get_unique_filename(target_dir, source_path.name)
                reason = "переименован"
            elif on_conflict == 'overwrite':
                reason = "перезаписан"
            else:
                raise ValueError(f"Неподдерживаемая политика конфликтов: {on_conflict}")

        source_hash = None
        if verify_integrity:
            source_hash = self.get_file_hash(source_path)
            if source_hash is None:
                error = MoveFailedError(f"Не удалось прочитать файл для проверки целостности: {source_path}")
                self.logger.log_file_error(source_path, error)
                raise error

        try:
            shutil.move(str(source_path), str(target_path))
        except PermissionError as e:
            self.logger.log_file_error(source_path, e)
            raise PermissionDeniedError(f"Нет прав на перемещение {source_path} → {target_path}: {e}") from e
        except OSError as e:
            self.logger.log_file_error(source_path, e)
            raise MoveFailedError(f"Ошибка перемещения файла {source_path}: {e}") from e

        if verify_integrity:
            target_hash = self.get_file_hash(target_path)
            if target_hash is None:
                error = MoveFailedError(f"Не удалось проверить целостность после перемещения: {target_path}")
                self.logger.log_file_error(source_path, error)
                raise error
            if source_hash != target_hash:
                error = MoveFailedError(f"Ошибка целостности файла после перемещения: {target_path}")
                self.logger.log_file_error(source_path, error)
                raise error

        self.logger.log_file_moved(source_path, target_path)
        return MoveResult(source_path, target_path, moved=True, reason=reason)

    def get_unique_filename(self, directory: Path, filename: str) -> Path:
        """
        Получает уникальное имя файла в каталоге.

        К имени добавляется суффикс _1, _2, ... перед расширением.
        """
        base_path = directory / filename
        if not base_path.exists():
            return base_path

        name_parts = filename.rsplit('.', 1)
        if len(name_parts) == 2 and name_parts[0]:
            base_name, extension = name_parts
            extension = '.' + extension
        else:
            # Нет расширения или скрытый файл вида .bashrc
            base_name = filename
            extension = ''

        counter = 1
        while True:
            new_path = directory / f"{base_name}_{counter}{extension}"
            if not new_path.exists():
                return new_path
            counter += 1

    def get_file_hash(self, file_path: PathLike, algorithm: str = 'md5') -> Optional[str]:
        """
        Получает хеш файла для проверки целостности.

        Args:
            file_path: Путь к файлу
            algorithm: Алгоритм хеширования (md5, sha1, sha256)

        Returns:
            str или None: Хеш файла или None если файл не прочитан
        """
        if algorithm not in HASH_ALGORITHMS:
            raise ValueError(f"Неподдерживаемый алгоритм: {algorithm}")

        file_path = Path(file_path)
        hasher = HASH_ALGORITHMS[algorithm]()
        try:
            if not file_path.is_file():
                return None
            with open(file_path, 'rb') as f:
                for chunk in iter(lambda: f.read(65536), b""):
                    hasher.update(chunk)
        except OSError as e:
            self.logger.log_file_error(file_path, e)
            return None

        return hasher.hexdigest()

    def collect_files(self, directory: PathLike, recursive: bool = True,
                      exclude: Optional[PathLike] = None) -> List[Path]:
        """
        Собирает обычные файлы каталога.

        Args:
            directory: Каталог для обхода
            recursive: Обходить вложенные каталоги
            exclude: Каталог, содержимое которого не собирается

        Returns:
            List[Path]: Отсортированный список путей к файлам

        Raises:
            NotFoundError: Если путь не является каталогом
            PermissionDeniedError: Если каталог нельзя прочитать
        """
        directory = Path(directory)
        if not directory.is_dir():
            raise NotFoundError(f"Каталог не найден: {directory}")

        excluded = Path(exclude).resolve() if exclude is not None else None

        try:
            items = sorted(directory.iterdir())
        except PermissionError as e:
            raise PermissionDeniedError(f"Нет прав на чтение каталога {directory}: {e}") from e

        files = []
        for item in items:
            # Символические ссылки не перемещаются и не обходятся
            if item.is_symlink():
                continue

            if item.is_dir():
                if not recursive or (excluded is not None and item.resolve() == excluded):
                    continue
                try:
                    files.extend(self.collect_files(item, recursive=True, exclude=excluded))
                except PermissionDeniedError as e:
                    self.logger.log_warning(f"Каталог пропущен: {e}")
            elif item.is_file():
                files.append(item)

        return files

    def count_files(self, directory: PathLike) -> int:
        """
        Считает файлы непосредственно в каталоге (без вложенных).

        Raises:
            NotFoundError: Если путь не является каталогом
            PermissionDeniedError: Если каталог нельзя прочитать
        """
        directory = Path(directory)
        if not directory.is_dir():
            raise NotFoundError(f"Каталог не найден: {directory}")

        try:
            return sum(1 for item in directory.iterdir() if item.is_file())
        except PermissionError as e:
            raise PermissionDeniedError(f"Нет прав на чтение каталога {directory}: {e}") from e

    def cleanup_empty_directories(self, root: Optional[PathLike] = None,
                                  exclude: Optional[PathLike] = None) -> int:
        """
        Удаляет пустые каталоги снизу вверх. Сам корень не удаляется.

        Args:
            root: Корень обхода (по умолчанию корень целевого дерева)
            exclude: Каталог, поддерево которого не затрагивается

        Returns:
            int: Количество удаленных каталогов
        """
        root = Path(root) if root is not None else self.target_root
        if not root.is_dir():
            return 0

        excluded = Path(exclude).resolve() if exclude is not None else None

        def is_excluded(directory: Path) -> bool:
            if excluded is None:
                return False
            resolved = directory.resolve()
            return resolved == excluded or excluded in resolved.parents

        directories = [p for p in root.rglob('*')
                       if p.is_dir() and not p.is_symlink() and not is_excluded(p)]
        # Сначала самые глубокие, чтобы опустевшие родители тоже удалились
        directories.sort(key=lambda p: len(p.parts), reverse=True)

        removed_count = 0
        for directory in directories:
            try:
                if not any(directory.iterdir()):
                    directory.rmdir()
                    removed_count += 1
                    self.logger.log_system_info(f"Удален пустой каталог: {directory}")
            except OSError as e:
                self.logger.log_warning(f"Не удалось удалить каталог {directory}: {e}")

        if removed_count > 0:
            self.logger.log_system_info(f"Удалено пустых каталогов: {removed_count}")

        return removed_count

    def get_storage_statistics(self) -> dict:
        """
        Получает статистику целевого дерева.

        Returns:
            dict: Количество и размер файлов, число каталогов по датам
        """
        stats = {
            'target_path': str(self.target_root),
            'grouping': self.grouping,
            'files_count': 0,
            'files_size': 0,
            'date_directories_count': 0,
        }

        if not self.target_root.is_dir():
            return stats

        files = self.collect_files(self.target_root, recursive=True)
        stats['files_count'] = len(files)
        stats['files_size'] = sum(f.stat().st_size for f in files)
        stats['date_directories_count'] = len({f.parent for f in files if f.parent != self.target_root})

        self.logger.log_system_info(f"Статистика хранилища: {stats}")
        return stats


def create_file_ops(target_root: PathLike, logger: FileManLogger, grouping: str = 'month') -> FileOps:
    """Удобная функция для создания объекта операций с файлами."""
    return FileOps(target_root, logger, grouping)
