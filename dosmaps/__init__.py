"""
dosmaps: Read and write level maps from classic DOS games

Supports Dangerous Dave, Crystal Caves, Captain Comic, Duke Nukem II, Word
Rescue and Cosmo's Cosmic Adventures levels through a common grid map model.
"""

__version__ = "0.1.0"
__author__ = "dosmaps Contributors"

from .errors import (
    MapError, StreamError, FormatError, ValidationError,
    FormatMismatchError, UndeterminedFormatError, EncodingLimitError,
    UnknownFormatError
)
from .stream import ByteStream, commit_file
from .formats import Confidence, FormatHandler, FormatRegistry, DetectionResult
from .maps.models import GridMap, Layer, Item, Path
from .utils.logging_config import setup_logging

__all__ = [
    # Registry
    'FormatRegistry',
    'FormatHandler',
    'Confidence',
    'DetectionResult',

    # Streams
    'ByteStream',
    'commit_file',

    # Logging
    'setup_logging',

    # Data models
    'GridMap',
    'Layer',
    'Item',
    'Path',

    # Errors
    'MapError',
    'StreamError',
    'FormatError',
    'ValidationError',
    'FormatMismatchError',
    'UndeterminedFormatError',
    'EncodingLimitError',
    'UnknownFormatError',
]
