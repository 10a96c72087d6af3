"""Three-way reconciliation rules.

Exports
-------
merge_object
    Merge one object-valued field (attribute-wise, local edits win).
merge_collection
    Merge one keyed collection (local edits survive remote deletions).
merge_document
    Apply both rules to every field of a schema-described document.
"""

from .collections import by_attr, merge_collection
from .document import merge_document
from .fields import is_modified, merge_object

__all__ = [
    "by_attr",
    "is_modified",
    "merge_collection",
    "merge_document",
    "merge_object",
]
