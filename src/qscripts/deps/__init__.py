"""Dependency discovery: index-file parsing and ``$token$`` expansion."""

from qscripts.deps.expander import ExpansionContext, TextExpander, module_name
from qscripts.deps.resolver import DependencyResolver, find_index_file

__all__ = [
    "DependencyResolver",
    "ExpansionContext",
    "TextExpander",
    "find_index_file",
    "module_name",
]
