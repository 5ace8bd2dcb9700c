"""
Permission Core - academic scope lookups and predicate compilation.
"""

from src.kernel.permissions.query_compiler import compile_predicate
from src.kernel.permissions.subject_directory import SqlSubjectDirectory

__all__ = [
    "SqlSubjectDirectory",
    "compile_predicate",
]
