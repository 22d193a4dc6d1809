"""
CLI commands.
"""

from .backup import backup
from .export import export
from .import_ import import_
from .restore import restore

__all__ = ["backup", "restore", "export", "import_"]
