"""
fileman

Утилита для упорядочивания файлов из исходного каталога в дерево
каталогов по дате последнего изменения (YYYY/MM).
"""

__version__ = "1.0.0"
__description__ = "Utility for organizing files into a date-based directory tree by modification time"
