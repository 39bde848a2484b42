"""Object-table model shared by merge and split operations."""

from .assembler import DocumentAssembler, assemble
from .copier import ObjectGraphCopier, RemapTable, clone_value
from .document import Document, ObjectId, iter_references, load_document, variant_name
from .outline import OutlineItem, read_outline, write_outline
from .utils import format_file_size, get_logger, resolve_path

__all__ = [
    "Document",
    "DocumentAssembler",
    "ObjectGraphCopier",
    "ObjectId",
    "OutlineItem",
    "RemapTable",
    "assemble",
    "clone_value",
    "format_file_size",
    "get_logger",
    "iter_references",
    "load_document",
    "read_outline",
    "resolve_path",
    "variant_name",
    "write_outline",
]
