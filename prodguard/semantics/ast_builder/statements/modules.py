"""Import and export declaration parsing."""
from __future__ import annotations
from typing import TYPE_CHECKING

from lark import Tree, Token

from prodguard.semantics.ast import (
    Stmt, ImportDecl, ImportSpecifier, ExportNamed, ExportSpecifier, ExportDefault, ExportAll,
)
from prodguard.semantics.ast_builder.exceptions import ContextualKeywordError
from prodguard.semantics.ast_builder.utils.string_processing import parse_string_token
from prodguard.semantics.ast_builder.utils.tree_navigation import first_token, token_text, tokens, trees
from prodguard.internals.report import span_of

if TYPE_CHECKING:
    from prodguard.semantics.ast_builder.builder import ASTBuilder


def _expect(word: Token, expected: str, construct: str) -> None:
    if str(word) != expected:
        raise ContextualKeywordError(expected, construct, str(word), span_of(word))


def _import_specs(named: Tree) -> list[ImportSpecifier]:
    specs = []
    for spec in trees(named.children):
        imported = token_text(spec.children[0])
        local = imported
        if len(spec.children) == 3:
            _expect(spec.children[1], "as", "import specifier")
            local = str(spec.children[2])
        specs.append(ImportSpecifier(imported=imported, local=local, loc=span_of(spec)))
    return specs


def _namespace(ns: Tree) -> str:
    _star, as_word, local = ns.children
    _expect(as_word, "as", "namespace import")
    return str(local)


def parse_import_from(t: Tree, ast_builder: 'ASTBuilder') -> Stmt:
    clause, from_word, source = t.children
    _expect(from_word, "from", "import declaration")
    decl = ImportDecl(source=parse_string_token(source), loc=span_of(t))

    if clause.data == "import_clause":
        # bare `{ ... }` or `* as ns` clause
        clause = clause.children[0]
    default = first_token(clause.children, "IDENT") if clause.data.startswith("import_default") else None
    if default is not None:
        decl.default = str(default)

    parts = trees(clause.children) if clause.data.startswith("import_default") else [clause]
    for part in parts:
        if part.data == "named_imports":
            decl.named = True
            decl.specifiers = _import_specs(part)
        elif part.data == "namespace_import":
            decl.namespace = _namespace(part)
    return decl


def parse_import_bare(t: Tree, ast_builder: 'ASTBuilder') -> Stmt:
    return ImportDecl(source=parse_string_token(t.children[0]), loc=span_of(t))


def parse_export_default_decl(t: Tree, ast_builder: 'ASTBuilder') -> Stmt:
    return ExportDefault(declaration=ast_builder._stmt(t.children[0]), loc=span_of(t))


def parse_export_default_expr(t: Tree, ast_builder: 'ASTBuilder') -> Stmt:
    return ExportDefault(declaration=ast_builder._expr(t.children[0]), loc=span_of(t))


def parse_export_declaration(t: Tree, ast_builder: 'ASTBuilder') -> Stmt:
    return ExportNamed(declaration=ast_builder._stmt(t.children[0]), loc=span_of(t))


def parse_export_named(t: Tree, ast_builder: 'ASTBuilder') -> Stmt:
    clause, *rest = t.children
    specs = []
    for spec in trees(clause.children):
        local = token_text(spec.children[0])
        exported = local
        if len(spec.children) == 3:
            _expect(spec.children[1], "as", "export specifier")
            exported = token_text(spec.children[2])
        specs.append(ExportSpecifier(local=local, exported=exported, loc=span_of(spec)))
    source = None
    if rest:
        from_word, source_tok = rest
        _expect(from_word, "from", "export declaration")
        source = parse_string_token(source_tok)
    return ExportNamed(specifiers=specs, source=source, loc=span_of(t))


def parse_export_all(t: Tree, ast_builder: 'ASTBuilder') -> Stmt:
    words = tokens(t.children, "IDENT")
    source = parse_string_token(first_token(t.children, "STRING"))
    exported = None
    if len(words) == 2:
        _expect(words[0], "as", "export declaration")
        exported = token_text(trees(t.children)[0])
    _expect(words[-1], "from", "export declaration")
    return ExportAll(source=source, exported=exported, loc=span_of(t))
