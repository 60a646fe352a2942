"""
digiKam Select

Selects images from a digiKam database by tag, rating or album and copies,
links or converts them into another directory tree.
"""

__version__ = "1.0.0"
__author__ = "Homelab Team"

from .config import Config, Options, TransferMode, Verbosity, build_options
from .selector import FileRecord, PhotoSelector
from .materializer import FileMaterializer
from .sync import OutputSynchronizer
from .reporter import RunReporter

__all__ = [
    'Config',
    'Options',
    'TransferMode',
    'Verbosity',
    'build_options',
    'FileRecord',
    'PhotoSelector',
    'FileMaterializer',
    'OutputSynchronizer',
    'RunReporter',
]
