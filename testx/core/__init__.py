"""Attribute resolution and declaration rewriting for ``@testx`` tests."""

from testx.core.attributes import (
    NoSetup,
    SetupPath,
    UseDefault,
    UsePath,
    parse_attribute_list,
    parse_decorator,
    resolve_setup,
)
from testx.core.errors import (
    ConfigurationError,
    MalformedDeclarationError,
    MalformedSetupValueError,
    RewriteError,
    TransformError,
    UnsupportedAttributeError,
)
from testx.core.rewriter import Declaration, RewrittenDeclaration, rewrite_declaration

__all__ = [
    "NoSetup",
    "SetupPath",
    "UseDefault",
    "UsePath",
    "parse_attribute_list",
    "parse_decorator",
    "resolve_setup",
    "ConfigurationError",
    "MalformedDeclarationError",
    "MalformedSetupValueError",
    "RewriteError",
    "TransformError",
    "UnsupportedAttributeError",
    "Declaration",
    "RewrittenDeclaration",
    "rewrite_declaration",
]
