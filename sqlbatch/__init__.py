"""
sqlbatch – split SQL scripts into statements and run them against MySQL.
"""
from __future__ import annotations

from sqlbatch.executor import ExecutionPolicy, ExecutionResult, execute
from sqlbatch.tokenizer import Statement, tokenize

__version__ = "0.3.0"

__all__ = [
    "ExecutionPolicy",
    "ExecutionResult",
    "Statement",
    "execute",
    "tokenize",
    "__version__",
]
