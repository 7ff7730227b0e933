"""
Тесты для модуля file_ops.py
"""

import errno
import os
import shutil
import sys
import tempfile
from datetime import datetime
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from fileman.file_ops import (
    FileOps,
    FileOperationError,
    NotFoundError,
    PermissionDeniedError,
    MoveFailedError,
    MoveResult,
    destination_directory,
    create_file_ops,
)
from fileman.logger import FileManLogger


class TestDestinationDirectory:
    """Тесты для функции destination_directory."""

    def test_month_grouping(self):
        """Файл от 2023-06-15 попадает в target/2023/06."""
        result = destination_directory(Path("target"), datetime(2023, 6, 15, 10, 30))
        assert result == Path("target") / "2023" / "06"

    def test_year_grouping(self):
        """Тест группировки по годам."""
        result = destination_directory(Path("target"), datetime(2023, 6, 15), "year")
        assert result == Path("target") / "2023"

    def test_day_grouping(self):
        """Тест группировки по дням."""
        result = destination_directory(Path("target"), datetime(2023, 6, 5), "day")
        assert result == Path("target") / "2023" / "06" / "05"

    def test_same_timestamp_same_directory(self):
        """Одинаковая дата всегда дает один и тот же каталог."""
        dt = datetime(2021, 12, 31, 23, 59, 59)
        assert destination_directory("t", dt) == destination_directory("t", dt)

    def test_same_month_different_time(self):
        """Разное время внутри месяца дает один каталог."""
        first = destination_directory("t", datetime(2022, 2, 1, 0, 0))
        last = destination_directory("t", datetime(2022, 2, 28, 23, 59))
        assert first == last

    def test_invalid_grouping(self):
        """Тест ошибки при неизвестной группировке."""
        with pytest.raises(ValueError, match="Неподдерживаемая группировка"):
            destination_directory("t", datetime(2023, 6, 15), "week")


class TestFileOps:
    """Тесты для класса FileOps."""

    @pytest.fixture
    def temp_dir(self):
        """Создает временную директорию для тестов."""
        temp_path = tempfile.mkdtemp()
        yield Path(temp_path)
        shutil.rmtree(temp_path, ignore_errors=True)

    @pytest.fixture
    def source_dir(self, temp_dir):
        """Создает исходный каталог."""
        path = temp_dir / "source"
        path.mkdir()
        return path

    @pytest.fixture
    def mock_logger(self):
        """Создает мок логгера."""
        return Mock(spec=FileManLogger)

    @pytest.fixture
    def file_ops(self, temp_dir, mock_logger):
        """Создает объект FileOps для тестов."""
        return FileOps(temp_dir / "target", mock_logger)

    @pytest.fixture
    def test_date(self):
        return datetime(2023, 6, 15, 10, 30)

    def test_file_ops_initialization(self, temp_dir, mock_logger):
        """Тест инициализации FileOps."""
        file_ops = FileOps(temp_dir / "target", mock_logger, "day")

        assert file_ops.target_root == temp_dir / "target"
        assert file_ops.logger == mock_logger
        assert file_ops.grouping == "day"
        # Каталог не создается до первого перемещения
        assert not file_ops.target_root.exists()

    def test_invalid_grouping(self, temp_dir, mock_logger):
        """Тест ошибки при неизвестной группировке."""
        with pytest.raises(ValueError):
            FileOps(temp_dir / "target", mock_logger, "hour")

    def test_ensure_target_exists(self, file_ops):
        """Тест создания корня целевого дерева."""
        result = file_ops.ensure_target_exists()

        assert result.is_dir()
        assert result == file_ops.target_root

    def test_ensure_target_exists_is_file(self, temp_dir, mock_logger):
        """Тест ошибки, когда целевой путь является файлом."""
        target = temp_dir / "target"
        target.write_text("not a directory")

        with pytest.raises(FileOperationError):
            FileOps(target, mock_logger).ensure_target_exists()

    def test_get_date_directory(self, file_ops, test_date):
        """Тест получения каталога по дате."""
        assert file_ops.get_date_directory(test_date) == file_ops.target_root / "2023" / "06"

    def test_ensure_date_directory_exists(self, file_ops, test_date):
        """Тест создания каталога по дате."""
        date_dir = file_ops.ensure_date_directory_exists(test_date)

        assert date_dir.is_dir()
        assert date_dir == file_ops.target_root / "2023" / "06"

    def test_ensure_date_directory_permission_denied(self, file_ops, test_date):
        """Тест ошибки прав при создании каталога по дате."""
        with patch.object(Path, 'mkdir', side_effect=PermissionError("denied")):
            with pytest.raises(PermissionDeniedError):
                file_ops.ensure_date_directory_exists(test_date)

        file_ops.logger.log_file_error.assert_called_once()

    def test_move_file_success(self, file_ops, source_dir, test_date):
        """Тест успешного перемещения файла."""
        test_file = source_dir / "a.txt"
        test_file.write_bytes(b"test content")

        result = file_ops.move_file(test_file, test_date)

        assert isinstance(result, MoveResult)
        assert result.moved is True
        assert result.destination == file_ops.target_root / "2023" / "06" / "a.txt"
        assert result.destination.read_bytes() == b"test content"
        assert not test_file.exists()

        file_ops.logger.log_file_moved.assert_called_once_with(test_file, result.destination)

    def test_move_file_with_verification(self, file_ops, source_dir, test_date):
        """Тест перемещения с проверкой хеша."""
        test_file = source_dir / "a.txt"
        test_file.write_bytes(b"payload")

        result = file_ops.move_file(test_file, test_date, verify_integrity=True)

        assert result.moved is True
        assert result.destination.read_bytes() == b"payload"

    def test_move_file_integrity_mismatch(self, file_ops, source_dir, test_date):
        """Тест ошибки целостности после перемещения."""
        test_file = source_dir / "a.txt"
        test_file.write_bytes(b"payload")

        with patch.object(file_ops, 'get_file_hash', side_effect=["aaa", "bbb"]):
            with pytest.raises(MoveFailedError, match="целостности"):
                file_ops.move_file(test_file, test_date, verify_integrity=True)

    def test_move_file_unreadable_before_verification(self, file_ops, source_dir, test_date):
        """Если хеш исходного файла не получен, файл не перемещается."""
        test_file = source_dir / "a.txt"
        test_file.write_bytes(b"payload")

        with patch.object(file_ops, 'get_file_hash', return_value=None):
            with pytest.raises(MoveFailedError, match="целостности"):
                file_ops.move_file(test_file, test_date, verify_integrity=True)

        assert test_file.read_bytes() == b"payload"
        assert not (file_ops.get_date_directory(test_date) / "a.txt").exists()

    def test_move_file_unreadable_after_move(self, file_ops, source_dir, test_date):
        """Непрочитанный после перемещения файл считается ошибкой целостности."""
        test_file = source_dir / "a.txt"
        test_file.write_bytes(b"payload")

        with patch.object(file_ops, 'get_file_hash', side_effect=["aaa", None]):
            with pytest.raises(MoveFailedError, match="целостность"):
                file_ops.move_file(test_file, test_date, verify_integrity=True)

        file_ops.logger.log_file_moved.assert_not_called()

    def test_move_file_not_found(self, file_ops, source_dir, test_date):
        """Тест перемещения несуществующего файла."""
        with pytest.raises(NotFoundError):
            file_ops.move_file(source_dir / "nonexistent.txt", test_date)

        file_ops.logger.log_file_error.assert_called_once()

    def test_move_file_conflict_rename(self, file_ops, source_dir, test_date):
        """Тест перемещения, когда целевой файл уже существует (rename)."""
        source_file = source_dir / "a.txt"
        source_file.write_text("original content")

        date_dir = file_ops.ensure_date_directory_exists(test_date)
        existing_file = date_dir / "a.txt"
        existing_file.write_text("existing content")

        result = file_ops.move_file(source_file, test_date, on_conflict="rename")

        assert result.moved is True
        assert result.destination == date_dir / "a_1.txt"
        assert result.destination.read_text() == "original content"
        assert existing_file.read_text() == "existing content"

    def test_move_file_conflict_skip(self, file_ops, source_dir, test_date):
        """Тест пропуска файла при совпадении имени (skip)."""
        source_file = source_dir / "a.txt"
        source_file.write_text("original content")

        date_dir = file_ops.ensure_date_directory_exists(test_date)
        existing_file = date_dir / "a.txt"
        existing_file.write_text("existing content")

        result = file_ops.move_file(source_file, test_date, on_conflict="skip")

        assert result.moved is False
        assert result.reason
        assert source_file.read_text() == "original content"
        assert existing_file.read_text() == "existing content"
        file_ops.logger.log_file_moved.assert_not_called()

    def test_move_file_conflict_overwrite(self, file_ops, source_dir, test_date):
        """Тест перезаписи файла при совпадении имени (overwrite)."""
        source_file = source_dir / "a.txt"
        source_file.write_text("original content")

        date_dir = file_ops.ensure_date_directory_exists(test_date)
        existing_file = date_dir / "a.txt"
        existing_file.write_text("existing content")

        result = file_ops.move_file(source_file, test_date, on_conflict="overwrite")

        assert result.moved is True
        assert result.destination == existing_file
        assert existing_file.read_text() == "original content"
        assert not source_file.exists()
        assert list(date_dir.iterdir()) == [existing_file]

    def test_move_file_destination_is_directory(self, file_ops, source_dir, test_date):
        """Тест ошибки, когда на месте файла назначения находится каталог."""
        source_file = source_dir / "a.txt"
        source_file.write_text("content")
        (file_ops.get_date_directory(test_date) / "a.txt").mkdir(parents=True)

        with pytest.raises(MoveFailedError):
            file_ops.move_file(source_file, test_date)

        assert source_file.exists()

    def test_move_file_already_organized(self, file_ops, test_date):
        """Файл, уже лежащий в своем каталоге, не перемещается."""
        date_dir = file_ops.ensure_date_directory_exists(test_date)
        organized_file = date_dir / "a.txt"
        organized_file.write_text("content")

        result = file_ops.move_file(organized_file, test_date)

        assert result.moved is False
        assert result.destination == organized_file
        assert organized_file.read_text() == "content"
        assert list(date_dir.iterdir()) == [organized_file]

    def test_move_file_permission_denied(self, file_ops, source_dir, test_date):
        """Отказ в доступе не затрагивает исходный файл."""
        source_file = source_dir / "a.txt"
        source_file.write_bytes(b"keep me")

        with patch('fileman.file_ops.shutil.move', side_effect=PermissionError(errno.EACCES, "denied")):
            with pytest.raises(PermissionDeniedError):
                file_ops.move_file(source_file, test_date)

        assert source_file.read_bytes() == b"keep me"
        assert not (file_ops.get_date_directory(test_date) / "a.txt").exists()
        file_ops.logger.log_file_error.assert_called_once()

    def test_move_file_destination_check_permission_denied(self, file_ops, source_dir, test_date):
        """EACCES при проверке места назначения дает PermissionDeniedError."""
        source_file = source_dir / "a.txt"
        source_file.write_bytes(b"keep me")
        denied = file_ops.get_date_directory(test_date) / "a.txt"
        real_exists = Path.exists

        def exists(path, *args, **kwargs):
            if path == denied:
                raise PermissionError(errno.EACCES, "denied", str(path))
            return real_exists(path, *args, **kwargs)

        with patch.object(Path, 'exists', autospec=True, side_effect=exists):
            with pytest.raises(PermissionDeniedError) as exc_info:
                file_ops.move_file(source_file, test_date)

        assert isinstance(exc_info.value.__cause__, PermissionError)
        assert source_file.read_bytes() == b"keep me"
        file_ops.logger.log_file_error.assert_called_once()

    def test_move_file_cross_device_failure(self, file_ops, source_dir, test_date):
        """Прочие ошибки ОС превращаются в MoveFailedError."""
        source_file = source_dir / "a.txt"
        source_file.write_bytes(b"keep me")

        with patch('fileman.file_ops.shutil.move', side_effect=OSError(errno.EXDEV, "cross-device link")):
            with pytest.raises(MoveFailedError) as exc_info:
                file_ops.move_file(source_file, test_date)

        assert isinstance(exc_info.value.__cause__, OSError)
        assert source_file.exists()

    @pytest.mark.skipif(sys.platform == "win32" or os.geteuid() == 0,
                        reason="права каталогов не ограничивают root и Windows")
    def test_move_file_into_read_only_target(self, file_ops, source_dir, test_date):
        """Тест перемещения в каталог без прав на запись."""
        source_file = source_dir / "a.txt"
        source_file.write_bytes(b"keep me")
        file_ops.ensure_target_exists()
        os.chmod(file_ops.target_root, 0o500)

        try:
            with pytest.raises(PermissionDeniedError):
                file_ops.move_file(source_file, test_date)
        finally:
            os.chmod(file_ops.target_root, 0o700)

        assert source_file.read_bytes() == b"keep me"

    def test_get_unique_filename(self, file_ops, test_date):
        """Тест получения уникального имени файла."""
        date_dir = file_ops.ensure_date_directory_exists(test_date)
        (date_dir / "test.txt").write_text("existing")
        (date_dir / "test_1.txt").write_text("existing")

        unique_path = file_ops.get_unique_filename(date_dir, "test.txt")

        assert unique_path.name == "test_2.txt"
        assert unique_path.suffix == ".txt"

    def test_get_unique_filename_free_name(self, file_ops, temp_dir):
        """Свободное имя возвращается без изменений."""
        assert file_ops.get_unique_filename(temp_dir, "free.txt") == temp_dir / "free.txt"

    def test_get_unique_filename_without_extension(self, file_ops, temp_dir):
        """Тест уникального имени для файла без расширения и скрытого файла."""
        (temp_dir / "README").write_text("x")
        (temp_dir / ".bashrc").write_text("x")

        assert file_ops.get_unique_filename(temp_dir, "README").name == "README_1"
        assert file_ops.get_unique_filename(temp_dir, ".bashrc").name == ".bashrc_1"

    def test_get_file_hash(self, file_ops, source_dir):
        """Тест получения хеша файла."""
        test_file = source_dir / "a.txt"
        test_file.write_text("test content")

        md5_hash = file_ops.get_file_hash(test_file)
        sha256_hash = file_ops.get_file_hash(test_file, "sha256")

        assert len(md5_hash) == 32
        assert len(sha256_hash) == 64

    def test_get_file_hash_not_found(self, file_ops, source_dir):
        """Тест получения хеша несуществующего файла."""
        assert file_ops.get_file_hash(source_dir / "nonexistent.txt") is None

    def test_get_file_hash_invalid_algorithm(self, file_ops, source_dir):
        """Тест ошибки при неизвестном алгоритме."""
        with pytest.raises(ValueError):
            file_ops.get_file_hash(source_dir / "a.txt", "crc32")

    def test_collect_files_flat(self, file_ops, source_dir):
        """Тест сбора файлов в плоском каталоге."""
        for name in ("3.txt", "1.txt", "2.txt"):
            (source_dir / name).write_text(name)

        files = file_ops.collect_files(source_dir)

        assert files == [source_dir / "1.txt", source_dir / "2.txt", source_dir / "3.txt"]

    def test_collect_files_nested(self, file_ops, source_dir):
        """Тест рекурсивного сбора файлов."""
        nested = source_dir / "nested_dir"
        nested.mkdir()
        for directory in (source_dir, nested):
            for name in ("1.txt", "2.txt"):
                (directory / name).write_text(name)

        files = file_ops.collect_files(source_dir, recursive=True)

        assert sorted(files) == sorted([
            source_dir / "1.txt",
            source_dir / "2.txt",
            nested / "1.txt",
            nested / "2.txt",
        ])

    def test_collect_files_not_recursive(self, file_ops, source_dir):
        """Без рекурсии вложенные файлы не собираются."""
        nested = source_dir / "nested_dir"
        nested.mkdir()
        (source_dir / "1.txt").write_text("1")
        (nested / "2.txt").write_text("2")

        assert file_ops.collect_files(source_dir, recursive=False) == [source_dir / "1.txt"]

    def test_collect_files_exclude(self, file_ops, source_dir):
        """Содержимое исключенного каталога не собирается."""
        archive = source_dir / "archive"
        archive.mkdir()
        (source_dir / "1.txt").write_text("1")
        (archive / "old.txt").write_text("old")

        files = file_ops.collect_files(source_dir, exclude=archive)

        assert files == [source_dir / "1.txt"]

    @pytest.mark.skipif(sys.platform == "win32", reason="символические ссылки требуют прав в Windows")
    def test_collect_files_ignores_symlinks(self, file_ops, source_dir, temp_dir):
        """Символические ссылки не собираются."""
        real = temp_dir / "real.txt"
        real.write_text("real")
        (source_dir / "link.txt").symlink_to(real)
        (source_dir / "file.txt").write_text("file")

        assert file_ops.collect_files(source_dir) == [source_dir / "file.txt"]

    def test_collect_files_not_a_directory(self, file_ops, source_dir):
        """Тест ошибки для пути, не являющегося каталогом."""
        not_a_dir = source_dir / "not_a_dir.txt"
        not_a_dir.write_text("x")

        with pytest.raises(NotFoundError):
            file_ops.collect_files(not_a_dir)

    def test_count_files_flat(self, file_ops, source_dir):
        """Тест подсчета файлов в плоском каталоге."""
        for name in ("1.txt", "2.txt", "3.txt"):
            (source_dir / name).write_text(name)

        assert file_ops.count_files(source_dir) == 3

    def test_count_files_ignores_nested(self, file_ops, source_dir):
        """Файлы вложенных каталогов не учитываются."""
        nested = source_dir / "nested"
        nested.mkdir()
        for name in ("1.txt", "2.txt", "3.txt"):
            (source_dir / name).write_text(name)
        (nested / "4.txt").write_text("4")

        assert file_ops.count_files(source_dir) == 3

    def test_count_files_empty(self, file_ops, source_dir):
        """Пустой каталог содержит 0 файлов."""
        assert file_ops.count_files(source_dir) == 0

    def test_count_files_not_a_directory(self, file_ops, source_dir):
        """Тест ошибки для пути, не являющегося каталогом."""
        with pytest.raises(NotFoundError):
            file_ops.count_files(source_dir / "missing")

    def test_cleanup_empty_directories(self, file_ops, source_dir):
        """Тест удаления пустых каталогов снизу вверх."""
        (source_dir / "a" / "b" / "c").mkdir(parents=True)
        keep = source_dir / "keep"
        keep.mkdir()
        (keep / "file.txt").write_text("x")

        removed_count = file_ops.cleanup_empty_directories(source_dir)

        assert removed_count == 3
        assert not (source_dir / "a").exists()
        assert (keep / "file.txt").exists()
        assert source_dir.exists()
        file_ops.logger.log_system_info.assert_called()

    def test_cleanup_exclude(self, file_ops, source_dir):
        """Поддерево exclude не затрагивается."""
        (source_dir / "archive" / "empty").mkdir(parents=True)
        (source_dir / "nested").mkdir()

        removed_count = file_ops.cleanup_empty_directories(source_dir, exclude=source_dir / "archive")

        assert removed_count == 1
        assert not (source_dir / "nested").exists()
        assert (source_dir / "archive" / "empty").is_dir()

    def test_cleanup_missing_root(self, file_ops, temp_dir):
        """Отсутствующий корень ничего не удаляет."""
        assert file_ops.cleanup_empty_directories(temp_dir / "missing") == 0

    def test_get_storage_statistics(self, file_ops, test_date):
        """Тест получения статистики хранилища."""
        first_dir = file_ops.ensure_date_directory_exists(test_date)
        second_dir = file_ops.ensure_date_directory_exists(datetime(2024, 1, 1))
        (first_dir / "file1.txt").write_text("content1")
        (first_dir / "file2.txt").write_text("content2")
        (second_dir / "file3.txt").write_text("content3")

        stats = file_ops.get_storage_statistics()

        assert stats['files_count'] == 3
        assert stats['files_size'] == 24
        assert stats['date_directories_count'] == 2
        assert stats['grouping'] == "month"

    def test_get_storage_statistics_missing_target(self, file_ops):
        """Статистика отсутствующего каталога пуста."""
        stats = file_ops.get_storage_statistics()

        assert stats['files_count'] == 0
        assert stats['date_directories_count'] == 0


class TestCreateFileOps:
    """Тесты для функции create_file_ops."""

    def test_create_file_ops(self):
        """Тест создания объекта FileOps."""
        mock_logger = Mock(spec=FileManLogger)

        with patch('fileman.file_ops.FileOps') as mock_file_ops_class:
            mock_file_ops_instance = Mock()
            mock_file_ops_class.return_value = mock_file_ops_instance

            result = create_file_ops("target", mock_logger, "year")

            assert result == mock_file_ops_instance
            mock_file_ops_class.assert_called_once_with("target", mock_logger, "year")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
