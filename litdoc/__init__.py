"""
litdoc – literate markdown documents: named executable blocks, output
splicing, slides, themed HTML/PDF previews and tangling.
"""
from .errors import (
    BlockNotFound,
    ConfigurationError,
    ExecutionCancelled,
    ExecutionError,
    ExecutionTimeout,
    ExpansionError,
    ExportError,
    InvalidRange,
    LitdocError,
    ParseError,
    TangleWriteError,
)
from .models import Block, Edit, ExecutionResult, OutputRegion, Slide, StructuralModel, TangleReport
from .structure import parse

__version__ = "0.1.0"

__all__ = [
    "Block",
    "BlockNotFound",
    "ConfigurationError",
    "Edit",
    "ExecutionCancelled",
    "ExecutionError",
    "ExecutionResult",
    "ExecutionTimeout",
    "ExpansionError",
    "ExportError",
    "InvalidRange",
    "LitdocError",
    "OutputRegion",
    "ParseError",
    "Slide",
    "StructuralModel",
    "TangleReport",
    "TangleWriteError",
    "parse",
]
