"""Main statement parser coordinating specialized statement parsers."""
from __future__ import annotations
from typing import TYPE_CHECKING

from lark import Tree

from prodguard.semantics.ast import Stmt
from prodguard.semantics.ast_builder.statements import control_flow, declarations, modules

if TYPE_CHECKING:
    from prodguard.semantics.ast_builder.builder import ASTBuilder


class StatementParser:
    """Coordinates statement parsing across specialized parsers."""

    def __init__(self, ast_builder: 'ASTBuilder'):
        self.ast_builder = ast_builder
        self.stmt_handlers = {
            "var_stmt": declarations.parse_var_stmt,
            "function_decl": declarations.parse_function_decl,
            "class_decl": declarations.parse_class_decl,
            "expr_stmt": control_flow.parse_expr_stmt,
            "empty_stmt": control_flow.parse_empty_stmt,
            "if_stmt": control_flow.parse_if_stmt,
            "for_stmt": control_flow.parse_for_stmt,
            "for_in_stmt": control_flow.parse_for_in_stmt,
            "for_of_stmt": control_flow.parse_for_of_stmt,
            "while_stmt": control_flow.parse_while_stmt,
            "do_while_stmt": control_flow.parse_do_while_stmt,
            "return_stmt": control_flow.parse_return_stmt,
            "break_stmt": control_flow.parse_break_stmt,
            "continue_stmt": control_flow.parse_continue_stmt,
            "throw_stmt": control_flow.parse_throw_stmt,
            "try_stmt": control_flow.parse_try_stmt,
            "switch_stmt": control_flow.parse_switch_stmt,
            "import_from": modules.parse_import_from,
            "import_bare": modules.parse_import_bare,
            "export_default_decl": modules.parse_export_default_decl,
            "export_default_expr": modules.parse_export_default_expr,
            "export_declaration": modules.parse_export_declaration,
            "export_named": modules.parse_export_named,
            "export_all": modules.parse_export_all,
        }

    def parse_stmt(self, node: Tree) -> Stmt:
        """Parse a statement node into a Stmt object.

        Main dispatcher for all statement types.
        """
        if node.data == "block":
            return self.ast_builder._block(node)

        handler = self.stmt_handlers.get(node.data)
        if handler:
            return handler(node, self.ast_builder)

        raise NotImplementedError(f"unhandled statement node: {node.data}")
