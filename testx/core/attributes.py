"""Parse the ``@testx(...)`` attribute list and resolve the setup function."""

from __future__ import annotations

import ast
import keyword
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from testx.core.errors import (
    ConfigurationError,
    MalformedSetupValueError,
    SourceLocation,
    UnsupportedAttributeError,
)
from testx.logging_config import get_logger

logger = get_logger(__name__)

SETUP_KEY = "setup"
NO_SETUP_KEY = "no_setup"
DEFAULT_SETUP = "setup"


@dataclass(frozen=True)
class SetupPath:
    """Dotted reference to a setup function, e.g. ``helpers.make_data``."""

    parts: Tuple[str, ...]

    @classmethod
    def parse(cls, text: str, location: SourceLocation | None = None) -> "SetupPath":
        parts = tuple(text.strip().split("."))
        for part in parts:
            if not part.isidentifier() or keyword.iskeyword(part):
                raise MalformedSetupValueError(
                    f"'{text}' is not a valid function path", location
                )
        return cls(parts)

    @classmethod
    def from_expr(cls, node: ast.expr, filename: str = "<unknown>") -> "SetupPath":
        parts: List[str] = []
        current = node
        while isinstance(current, ast.Attribute):
            parts.append(current.attr)
            current = current.value
        if not isinstance(current, ast.Name):
            raise MalformedSetupValueError(
                "expected a string literal or a dotted function path",
                SourceLocation.of(node, filename),
            )
        parts.append(current.id)
        return cls(tuple(reversed(parts)))

    def to_expr(self) -> ast.expr:
        expr: ast.expr = ast.Name(id=self.parts[0], ctx=ast.Load())
        for part in self.parts[1:]:
            expr = ast.Attribute(value=expr, attr=part, ctx=ast.Load())
        return expr

    def __str__(self) -> str:
        return ".".join(self.parts)


@dataclass(frozen=True)
class SetupEntry:
    path: SetupPath
    location: SourceLocation


@dataclass(frozen=True)
class NoSetupEntry:
    location: SourceLocation


AttributeEntry = Union[SetupEntry, NoSetupEntry]


@dataclass(frozen=True)
class UseDefault:
    path: SetupPath


@dataclass(frozen=True)
class UsePath:
    path: SetupPath


@dataclass(frozen=True)
class NoSetup:
    pass


SetupOutcome = Union[UseDefault, UsePath, NoSetup]


def setup_reference(outcome: SetupOutcome) -> Optional[SetupPath]:
    """Setup function to call for ``outcome``, or ``None`` for ``no_setup``."""
    if isinstance(outcome, NoSetup):
        return None
    return outcome.path


def describe(outcome: SetupOutcome) -> str:
    if isinstance(outcome, UseDefault):
        return f"use-default {outcome.path}"
    if isinstance(outcome, UsePath):
        return f"use-path {outcome.path}"
    return "no-setup"


@dataclass(frozen=True)
class AttributeList:
    entries: Tuple[AttributeEntry, ...]
    default_setup: SetupPath

    def resolve(self) -> SetupOutcome:
        # Only the first entry counts; the rest were validated while parsing.
        if not self.entries:
            return UseDefault(self.default_setup)
        first = self.entries[0]
        if isinstance(first, SetupEntry):
            return UsePath(first.path)
        return NoSetup()


def _parse_setup_value(value: ast.expr, filename: str) -> SetupPath:
    if isinstance(value, ast.Constant) and isinstance(value.value, str):
        return SetupPath.parse(value.value, SourceLocation.of(value, filename))
    return SetupPath.from_expr(value, filename)


def _parse_entry(
    key: str,
    value: ast.expr | None,
    location: SourceLocation,
    filename: str,
) -> AttributeEntry:
    if key == SETUP_KEY:
        if value is None:
            raise ConfigurationError("'setup' requires a value: setup = <function>", location)
        return SetupEntry(_parse_setup_value(value, filename), location)
    if key == NO_SETUP_KEY:
        if value is not None:
            raise ConfigurationError("'no_setup' does not take a value", location)
        return NoSetupEntry(location)
    raise UnsupportedAttributeError(key, location)


def parse_call_arguments(
    call: ast.Call,
    *,
    default_setup: str = DEFAULT_SETUP,
    filename: str = "<unknown>",
    strict: bool = False,
) -> AttributeList:
    """Build the attribute list from the arguments of a ``testx(...)`` call.

    Positional names are keys without a value, keyword arguments are
    ``key = value`` entries. Entries are taken in source order.
    """
    raw: List[Tuple[ast.AST, str, ast.expr | None]] = []
    for arg in call.args:
        if not isinstance(arg, ast.Name):
            raise ConfigurationError(
                "expected an attribute name", SourceLocation.of(arg, filename)
            )
        raw.append((arg, arg.id, None))
    for kw in call.keywords:
        if kw.arg is None:
            raise ConfigurationError(
                "'**' arguments are not supported by testx",
                SourceLocation.of(kw.value, filename),
            )
        raw.append((kw, kw.arg, kw.value))
    raw.sort(key=lambda item: (item[0].lineno, item[0].col_offset))

    entries = tuple(
        _parse_entry(key, value, SourceLocation.of(node, filename), filename)
        for node, key, value in raw
    )
    if strict and len(entries) > 1:
        raise ConfigurationError(
            "only one testx attribute is allowed", entries[1].location
        )
    return AttributeList(entries, SetupPath.parse(default_setup))


def parse_decorator(
    decorator: ast.expr,
    *,
    default_setup: str = DEFAULT_SETUP,
    filename: str = "<unknown>",
    strict: bool = False,
) -> AttributeList:
    """Attribute list of a ``@testx`` or ``@testx(...)`` decorator."""
    if isinstance(decorator, ast.Call):
        return parse_call_arguments(
            decorator, default_setup=default_setup, filename=filename, strict=strict
        )
    return AttributeList((), SetupPath.parse(default_setup))


def parse_attribute_list(
    text: str,
    *,
    default_setup: str = DEFAULT_SETUP,
    filename: str = "<attribute>",
    strict: bool = False,
) -> AttributeList:
    """Parse attribute text such as ``setup = "setup_666"``."""
    try:
        expr = ast.parse(f"_({text})", filename=filename, mode="eval").body
    except SyntaxError as exc:
        column = max((exc.offset or 1) - 2, 1)
        raise ConfigurationError(
            f"invalid attribute list: {exc.msg}",
            SourceLocation(filename, exc.lineno or 1, column),
        ) from exc

    if not (
        isinstance(expr, ast.Call)
        and isinstance(expr.func, ast.Name)
        and expr.func.id == "_"
    ):
        raise ConfigurationError(
            "invalid attribute list: unbalanced parentheses",
            SourceLocation(filename, 1, 1),
        )

    # Undo the two columns taken by the "_(" prefix on the first line.
    for node in ast.walk(expr):
        if getattr(node, "lineno", None) == 1:
            node.col_offset -= 2
    return parse_call_arguments(
        expr, default_setup=default_setup, filename=filename, strict=strict
    )


def resolve_setup(
    text: str,
    *,
    default_setup: str = DEFAULT_SETUP,
    strict: bool = False,
) -> SetupOutcome:
    outcome = parse_attribute_list(
        text, default_setup=default_setup, strict=strict
    ).resolve()
    logger.debug(f"Resolved attributes {text!r} to {describe(outcome)}")
    return outcome


__all__ = [
    "SetupPath",
    "SetupEntry",
    "NoSetupEntry",
    "AttributeList",
    "UseDefault",
    "UsePath",
    "NoSetup",
    "SetupOutcome",
    "setup_reference",
    "describe",
    "parse_call_arguments",
    "parse_decorator",
    "parse_attribute_list",
    "resolve_setup",
]
