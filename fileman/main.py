"""
Главный модуль CLI интерфейса утилиты fileman.

Предоставляет командный интерфейс для упорядочивания файлов по дате
изменения и просмотра состояния каталогов.
"""

import argparse
import dataclasses
import sys
from typing import Optional

try:
    from .config_loader import Config, load_config, validate_organizer_config, DEFAULT_CONFIG_PATH, \
        GROUPINGS, CONFLICT_POLICIES, ERROR_POLICIES
    from .logger import FileManLogger
    from .organizer import create_organizer, OrganizeError
    from .file_ops import FileOps, FileOperationError
except ImportError:
    from config_loader import Config, load_config, validate_organizer_config, DEFAULT_CONFIG_PATH, \
        GROUPINGS, CONFLICT_POLICIES, ERROR_POLICIES
    from logger import FileManLogger
    from organizer import create_organizer, OrganizeError
    from file_ops import FileOps, FileOperationError


MAX_REPORTED_ERRORS = 10


def print_error(message: str) -> None:
    """Выводит сообщение об ошибке в stderr."""
    print(f"❌ {message}", file=sys.stderr)


class FileManCLI:
    """Класс для обработки команд CLI."""

    def __init__(self):
        self.config: Optional[Config] = None
        self.logger: Optional[FileManLogger] = None

    def setup(self, config_path: Optional[str] = None) -> bool:
        """
        Инициализирует CLI с конфигурацией.

        Args:
            config_path: Путь к файлу конфигурации (None - путь по умолчанию)

        Returns:
            bool: True если инициализация успешна
        """
        try:
            self.config = load_config(config_path)
            self.logger = FileManLogger(self.config.logging)
            self.logger.log_config_loaded(config_path or DEFAULT_CONFIG_PATH)
            return True

        except Exception as e:
            print_error(f"Ошибка инициализации: {e}")
            return False

    def build_config(self, args) -> Config:
        """
        Применяет флаги командной строки поверх загруженной конфигурации.

        Raises:
            ValueError: Если итоговые параметры некорректны
        """
        overrides = {}
        if getattr(args, 'grouping', None):
            overrides['grouping'] = args.grouping
        if getattr(args, 'no_recursive', False):
            overrides['recursive'] = False
        if getattr(args, 'on_conflict', None):
            overrides['on_conflict'] = args.on_conflict
        if getattr(args, 'on_error', None):
            overrides['on_error'] = args.on_error
        if getattr(args, 'no_verify', False):
            overrides['verify_integrity'] = False
        if getattr(args, 'remove_empty_dirs', False):
            overrides['remove_empty_dirs'] = True

        organizer_config = dataclasses.replace(self.config.organizer, **overrides)
        validate_organizer_config(organizer_config)
        return dataclasses.replace(self.config, organizer=organizer_config)

    def cmd_organize(self, args) -> int:
        """
        Команда упорядочивания файлов.

        Returns:
            int: Код возврата (0 - успех, 1 - ошибка)
        """
        try:
            config = self.build_config(args)
            organizer = create_organizer(config, self.logger)

            stats = organizer.organize(
                args.source,
                args.target,
                dry_run=args.dry_run,
                max_files=args.max_files
            )

        except OrganizeError as e:
            print_error(f"Ошибка упорядочивания: {e}")
            return 1
        except (FileOperationError, ValueError) as e:
            print_error(str(e))
            return 1

        title = "План упорядочивания (dry run)" if args.dry_run else "Упорядочивание завершено!"
        print(f"\n✅ {title}")
        print("📊 Статистика:")
        print(f"   • Найдено: {stats.total_files}")
        print(f"   • Перемещено: {stats.moved_files}")
        print(f"   • Пропущено: {stats.skipped_files}")
        print(f"   • Ошибок: {stats.failed_files}")
        duration = stats.get_duration()
        if duration is not None:
            print(f"   • Продолжительность: {duration:.2f} сек")

        if stats.failed_files > 0:
            print(f"\n⚠️ Обнаружено {stats.failed_files} ошибок:", file=sys.stderr)
            for error in stats.errors[:MAX_REPORTED_ERRORS]:
                print(f"   • {error['path']} [{error['kind']}]: {error['error']}", file=sys.stderr)
            if len(stats.errors) > MAX_REPORTED_ERRORS:
                print(f"   ... и еще {len(stats.errors) - MAX_REPORTED_ERRORS} ошибок", file=sys.stderr)

        return 0 if stats.failed_files == 0 else 1

    def cmd_count(self, args) -> int:
        """Команда подсчета файлов в каталоге (без вложенных)."""
        try:
            file_ops = FileOps(args.directory, self.logger, self.config.organizer.grouping)
            count = file_ops.count_files(args.directory)
        except FileOperationError as e:
            print_error(str(e))
            return 1

        print(f"📁 Файлов в {args.directory}: {count}")
        return 0

    def cmd_cleanup(self, args) -> int:
        """Команда удаления пустых каталогов."""
        try:
            file_ops = FileOps(args.directory, self.logger, self.config.organizer.grouping)
            if not file_ops.target_root.is_dir():
                print_error(f"Каталог не найден: {args.directory}")
                return 1

            print("🧹 Удаление пустых каталогов...")
            removed_dirs = file_ops.cleanup_empty_directories()
        except FileOperationError as e:
            print_error(str(e))
            return 1

        print(f"   • Удалено пустых каталогов: {removed_dirs}")
        print("✅ Очистка завершена")
        return 0

    def cmd_status(self, args) -> int:
        """Команда просмотра статистики упорядоченного дерева."""
        try:
            organizer = create_organizer(self.config, self.logger)
            stats = organizer.get_status(args.target)
        except FileOperationError as e:
            print_error(str(e))
            return 1

        print(f"📊 Состояние каталога {stats['target_path']}")
        print("=" * 50)
        print(f"   • Файлов: {stats['files_count']}")
        print(f"   • Размер: {stats['files_size']:,} байт")
        print(f"   • Каталогов по датам: {stats['date_directories_count']}")
        return 0


def create_parser() -> argparse.ArgumentParser:
    """
    Создает парсер аргументов командной строки.

    Returns:
        argparse.ArgumentParser: Настроенный парсер
    """
    parser = argparse.ArgumentParser(
        prog='fileman',
        description="Упорядочивание файлов по дате последнего изменения",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Примеры использования:

  # Упорядочить файлы в target/YYYY/MM
  fileman organize ./inbox ./archive

  # Посмотреть план без перемещения
  fileman organize ./inbox ./archive --dry-run

  # Группировка по дням, без обхода вложенных каталогов
  fileman organize ./inbox ./archive --grouping day --no-recursive

  # Количество файлов в каталоге
  fileman count ./inbox

  # Удаление пустых каталогов
  fileman cleanup ./inbox

  # Статистика упорядоченного дерева
  fileman status ./archive
        """
    )

    parser.add_argument(
        '--config',
        default=None,
        help=f'Путь к файлу конфигурации (по умолчанию: {DEFAULT_CONFIG_PATH}, если существует)'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Подробный вывод'
    )

    subparsers = parser.add_subparsers(dest='command', help='Доступные команды')

    organize_parser = subparsers.add_parser('organize', help='Упорядочить файлы по дате изменения')
    organize_parser.add_argument('source', help='Исходный каталог')
    organize_parser.add_argument('target', help='Целевой каталог (создается при отсутствии)')
    organize_parser.add_argument(
        '--grouping',
        choices=GROUPINGS,
        help='Схема каталогов: year (YYYY), month (YYYY/MM), day (YYYY/MM/DD)'
    )
    organize_parser.add_argument(
        '--no-recursive',
        action='store_true',
        help='Не обходить вложенные каталоги'
    )
    organize_parser.add_argument(
        '--on-conflict',
        choices=CONFLICT_POLICIES,
        help='Действие при совпадении имени в месте назначения'
    )
    organize_parser.add_argument(
        '--on-error',
        choices=ERROR_POLICIES,
        help='Продолжить или прервать после ошибки перемещения'
    )
    organize_parser.add_argument(
        '--no-verify',
        action='store_true',
        help='Не проверять хеш файла после перемещения'
    )
    organize_parser.add_argument(
        '--remove-empty-dirs',
        action='store_true',
        help='Удалить опустевшие каталоги в исходном дереве'
    )
    organize_parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Показать план без перемещения файлов'
    )
    organize_parser.add_argument(
        '--max-files',
        type=int,
        help='Максимальное количество файлов для обработки'
    )

    count_parser = subparsers.add_parser('count', help='Количество файлов в каталоге (без вложенных)')
    count_parser.add_argument('directory', help='Каталог')

    cleanup_parser = subparsers.add_parser('cleanup', help='Удаление пустых каталогов')
    cleanup_parser.add_argument('directory', help='Каталог')

    status_parser = subparsers.add_parser('status', help='Статистика упорядоченного дерева')
    status_parser.add_argument('target', help='Целевой каталог')

    return parser


def main(argv=None):
    """Главная функция CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.command == 'organize' and args.max_files is not None and args.max_files <= 0:
        print_error("--max-files должен быть больше 0")
        return 1

    cli = FileManCLI()

    if not cli.setup(args.config):
        return 1

    try:
        if args.command == 'organize':
            return cli.cmd_organize(args)
        elif args.command == 'count':
            return cli.cmd_count(args)
        elif args.command == 'cleanup':
            return cli.cmd_cleanup(args)
        elif args.command == 'status':
            return cli.cmd_status(args)
        else:
            print_error(f"Неизвестная команда: {args.command}")
            return 1

    except KeyboardInterrupt:
        print("\n⚠️ Операция прервана пользователем", file=sys.stderr)
        return 1
    except Exception as e:
        print_error(f"Неожиданная ошибка: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1
    finally:
        cli.logger.close()


if __name__ == "__main__":
    sys.exit(main())
