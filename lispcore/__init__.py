"""Tokenizer, expression nodes and runtime value types for a small Lisp."""

__version__ = "0.1.0"
__all__ = ["types", "tokenizer"]