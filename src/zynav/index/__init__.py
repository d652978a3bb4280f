"""Symbol index: parsing ZY sources and keeping their symbols on disk."""

from zynav.index.extractor import extract_symbols, extract_with_fallback, needs_fallback
from zynav.index.schema import Scope, ScopeKind, ScopeTree, Symbol, SymbolKind, SymbolLocation, Token, TokenKind
from zynav.index.scope_parser import parse_scopes
from zynav.index.service import IndexStats, SymbolIndexService
from zynav.index.store import JsonIndexStore
from zynav.index.tokenizer import tokenize
from zynav.index.watcher import ChangeWatcher

__all__ = [
    "ChangeWatcher",
    "IndexStats",
    "JsonIndexStore",
    "Scope",
    "ScopeKind",
    "ScopeTree",
    "Symbol",
    "SymbolIndexService",
    "SymbolKind",
    "SymbolLocation",
    "Token",
    "TokenKind",
    "extract_symbols",
    "extract_with_fallback",
    "needs_fallback",
    "parse_scopes",
    "tokenize",
]
