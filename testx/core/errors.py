from __future__ import annotations

import ast
from dataclasses import dataclass
from typing import Iterable, List


@dataclass(frozen=True)
class SourceLocation:
    filename: str
    line: int
    column: int

    @classmethod
    def of(cls, node: ast.AST, filename: str = "<unknown>") -> "SourceLocation":
        """Location of an ``ast`` node; columns are reported 1-based."""
        return cls(
            filename=filename,
            line=getattr(node, "lineno", 0),
            column=getattr(node, "col_offset", -1) + 1,
        )

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.column}"


class RewriteError(Exception):
    """Base class for errors raised while rewriting a test declaration."""

    def __init__(self, message: str, location: SourceLocation | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.location = location

    def __str__(self) -> str:
        if self.location is None:
            return self.message
        return f"{self.location}: {self.message}"


class ConfigurationError(RewriteError):
    pass


class UnsupportedAttributeError(ConfigurationError):
    def __init__(self, key: str, location: SourceLocation | None = None) -> None:
        super().__init__(f"unsupported attribute for testx: '{key}'", location)
        self.key = key


class MalformedSetupValueError(RewriteError):
    pass


class MalformedDeclarationError(RewriteError):
    pass


class TransformError(RewriteError):
    """All declaration errors found in one module."""

    def __init__(self, errors: Iterable[RewriteError]) -> None:
        self.errors: List[RewriteError] = list(errors)
        first = self.errors[0] if self.errors else None
        summary = f"{len(self.errors)} declaration(s) could not be rewritten"
        super().__init__(summary, first.location if first else None)

    def __str__(self) -> str:
        return "\n".join(str(error) for error in self.errors) or self.message


__all__ = [
    "SourceLocation",
    "RewriteError",
    "ConfigurationError",
    "UnsupportedAttributeError",
    "MalformedSetupValueError",
    "MalformedDeclarationError",
    "TransformError",
]
