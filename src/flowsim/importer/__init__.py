"""
Import exported cloud-flow documents.
"""

from .document import FlowDocumentImporter, ImportResult, import_flow, load_document
from .predicates import predicate_to_expression

__all__ = ["FlowDocumentImporter", "ImportResult", "import_flow", "load_document", "predicate_to_expression"]
