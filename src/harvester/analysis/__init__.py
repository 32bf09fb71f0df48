"""Book package analysis interfaces."""

from .analyzer import BookAnalyzer
from .collection import CollectionDescriptor
from .errors import BookPackageError, HarvesterError, ImageDecodeError, ParseError
from .models import LanguageSet, LocationInfo, LogEntry, LogLevel, LogType

__all__ = [
    "BookAnalyzer",
    "BookPackageError",
    "CollectionDescriptor",
    "HarvesterError",
    "ImageDecodeError",
    "LanguageSet",
    "LocationInfo",
    "LogEntry",
    "LogLevel",
    "LogType",
    "ParseError",
]
