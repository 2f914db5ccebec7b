"""
JavaScript printer.

Prints an AST back to source in one canonical layout: two-space indentation,
one statement per line, single-line object and array literals, and one blank
line kept wherever the original had blank lines between statements.
Parentheses are re-derived from operator precedence; string and number
literals keep their original spelling.

The printer is not a formatter for hand-written code. Its job is to emit the
rewritten files of a build so that they parse back to the same tree.
"""
from __future__ import annotations
import re
from typing import List, Optional, Sequence

from prodguard.internals import errors as er
from prodguard.semantics.ast import (
    Node, Comment, Program, Block, Stmt, Expr,
    VarDecl, Declarator, ExprStmt, EmptyStmt, If, For, ForIn, ForOf, While, DoWhile, Return,
    Break, Continue, Throw, Try, Switch, SwitchCase, FunctionDecl, ClassDecl, ClassMethod,
    ClassField, ImportDecl, ExportNamed, ExportDefault, ExportAll,
    Identifier, StringLit, NumberLit, BoolLit, NullLit, This, Super, TemplateLit, ArrayLit,
    Property, ObjectMethod, ObjectLit, Spread, Unary, Update, Binary, Logical, Assign,
    Conditional, Call, New, Member, Sequence, FunctionExpr, ArrowFunction,
    ObjectPattern, ArrayPattern, AssignPattern, RestElement, ComputedKey,
)
from prodguard.semantics.ast_builder.utils.string_processing import quote_string
from prodguard.semantics.visitors import NodeVisitor

INDENT = "  "

_BINARY_PREC = {
    "|": 6, "^": 7, "&": 8,
    "==": 9, "!=": 9, "===": 9, "!==": 9,
    "<": 10, ">": 10, "<=": 10, ">=": 10, "instanceof": 10, "in": 10,
    "<<": 11, ">>": 11, ">>>": 11,
    "+": 12, "-": 12,
    "*": 13, "/": 13, "%": 13,
    "**": 14,
}
_LOGICAL_PREC = {"||": 4, "??": 4, "&&": 5}

# Statement-position text that would be read as a declaration or block
_AMBIGUOUS_START = re.compile(r"(\{|function\b|async\s+function\b|class\b|let\s*\[)")


def precedence(node: Expr) -> int:
    if isinstance(node, Sequence):
        return 1
    if isinstance(node, (Assign, ArrowFunction, AssignPattern)):
        return 2
    if isinstance(node, Conditional):
        return 3
    if isinstance(node, Logical):
        return _LOGICAL_PREC[node.op]
    if isinstance(node, Binary):
        return _BINARY_PREC[node.op]
    if isinstance(node, Unary):
        return 15
    if isinstance(node, Update):
        return 15 if node.prefix else 16
    if isinstance(node, New) and node.args is None:
        return 18
    if isinstance(node, (Call, Member, New)):
        return 19
    return 20


def _callee_has_call(node: Expr) -> bool:
    """`new (a().B)()` needs parentheses around the callee."""
    while isinstance(node, Member):
        node = node.object
    return isinstance(node, Call)


def _mixes_coalesce(parent: Logical, child: Expr) -> bool:
    """`??` cannot sit next to `&&` / `||` without parentheses."""
    return isinstance(child, Logical) and (child.op == "??") != (parent.op == "??")


class JsPrinter(NodeVisitor[str]):
    def __init__(self) -> None:
        self.level = 0

    def print_program(self, program: Program) -> str:
        text = self._stmts(program.body, program.trailing_comments)
        return text + "\n" if text else ""

    def generic_visit(self, node: Node) -> str:
        er.raise_internal_error("PG0002", node=type(node).__name__)

    # ---------- layout helpers ----------

    def ind(self) -> str:
        return INDENT * self.level

    def _comment(self, c: Comment) -> str:
        return f"/*{c.text}*/" if c.block else f"//{c.text}"

    def _first_line(self, stmt: Node) -> Optional[int]:
        lines = [c.loc.line for c in getattr(stmt, "comments", ()) if c.loc is not None]
        if stmt.loc is not None:
            lines.append(stmt.loc.line)
        return min(lines) if lines else None

    def _stmts(self, stmts: Sequence[Node], trailing: Sequence[Comment] = ()) -> str:
        out: List[str] = []
        prev_end: Optional[int] = None
        for stmt in stmts:
            first = self._first_line(stmt)
            if out and prev_end is not None and first is not None and first - prev_end > 1:
                out.append("")
            out.append(self._stmt(stmt))
            prev_end = stmt.loc.end_line if stmt.loc is not None else None
        for c in trailing:
            if out and prev_end is not None and c.loc is not None and c.loc.line - prev_end > 1:
                out.append("")
            out.append(self.ind() + self._comment(c))
            prev_end = c.loc.end_line if c.loc is not None else None
        return "\n".join(out)

    def _stmt(self, stmt: Node) -> str:
        lines = [self.ind() + self._comment(c) for c in getattr(stmt, "comments", ())]
        lines.append(self.ind() + self.visit(stmt))
        return "\n".join(lines)

    def _block(self, node: Block) -> str:
        if not node.body and not node.trailing_comments:
            return "{}"
        self.level += 1
        inner = self._stmts(node.body, node.trailing_comments)
        self.level -= 1
        return "{\n" + inner + "\n" + self.ind() + "}"

    def _nested(self, stmt: Stmt) -> str:
        """Body of if/loop headers: blocks stay on the header line."""
        if isinstance(stmt, Block):
            return " " + self._block(stmt)
        return " " + self.visit(stmt)

    def expr(self, node: Expr, min_prec: int = 2) -> str:
        text = self.visit(node)
        if precedence(node) < min_prec:
            text = f"({text})"
        if node.comments:
            text = " ".join(f"/*{c.text}*/" for c in node.comments) + " " + text
        return text

    def _args(self, args: Sequence[Expr]) -> str:
        return "(" + ", ".join(self.expr(a) for a in args) + ")"

    def _params(self, params: Sequence[Expr]) -> str:
        return "(" + ", ".join(self.visit(p) for p in params) + ")"

    def _key(self, key) -> str:
        if isinstance(key, ComputedKey):
            return f"[{self.expr(key.expr)}]"
        return self.visit(key)

    def _function_head(self, keyword: str, name: Optional[str], is_async: bool, is_generator: bool) -> str:
        head = ("async " if is_async else "") + keyword + ("*" if is_generator else "")
        return f"{head} {name}" if name else f"{head} "

    # ---------- program structure ----------

    def visit_block(self, node: Block) -> str:
        return self._block(node)

    # ---------- statements ----------

    def visit_vardecl(self, node: VarDecl) -> str:
        return self._declaration(node) + ";"

    def _declaration(self, node: VarDecl) -> str:
        return f"{node.kind} " + ", ".join(self.visit(d) for d in node.declarations)

    def visit_declarator(self, node: Declarator) -> str:
        target = self.visit(node.target)
        if node.init is None:
            return target
        return f"{target} = {self.expr(node.init)}"

    def visit_exprstmt(self, node: ExprStmt) -> str:
        text = self.expr(node.expr, 1)
        if _AMBIGUOUS_START.match(text):
            text = f"({text})"
        return text + ";"

    def visit_emptystmt(self, node: EmptyStmt) -> str:
        return ";"

    def visit_if(self, node: If) -> str:
        consequent = node.consequent
        if node.alternate is not None and isinstance(consequent, If):
            # keep the else with the outer if
            consequent = Block(body=[consequent], loc=consequent.loc)
        text = f"if ({self.expr(node.test, 1)})" + self._nested(consequent)
        if node.alternate is None:
            return text
        if isinstance(consequent, Block):
            text += " else"
        else:
            text += "\n" + self.ind() + "else"
        return text + self._nested(node.alternate)

    def visit_for(self, node: For) -> str:
        if node.init is None:
            init = ""
        elif isinstance(node.init, VarDecl):
            init = self._declaration(node.init)
        else:
            init = self.expr(node.init, 1)
        test = f" {self.expr(node.test, 1)}" if node.test is not None else ""
        update = f" {self.expr(node.update, 1)}" if node.update is not None else ""
        return f"for ({init};{test};{update})" + self._nested(node.body)

    def visit_forin(self, node: ForIn) -> str:
        return f"for ({node.kind} {self.visit(node.target)} in {self.expr(node.right, 1)})" + self._nested(node.body)

    def visit_forof(self, node: ForOf) -> str:
        return f"for ({node.kind} {self.visit(node.target)} of {self.expr(node.right)})" + self._nested(node.body)

    def visit_while(self, node: While) -> str:
        return f"while ({self.expr(node.test, 1)})" + self._nested(node.body)

    def visit_dowhile(self, node: DoWhile) -> str:
        body = self._nested(node.body)
        sep = " " if isinstance(node.body, Block) else "\n" + self.ind()
        return f"do{body}{sep}while ({self.expr(node.test, 1)});"

    def visit_return(self, node: Return) -> str:
        if node.value is None:
            return "return;"
        return f"return {self.expr(node.value, 1)};"

    def visit_break(self, node: Break) -> str:
        return "break;"

    def visit_continue(self, node: Continue) -> str:
        return "continue;"

    def visit_throw(self, node: Throw) -> str:
        return f"throw {self.expr(node.value, 1)};"

    def visit_try(self, node: Try) -> str:
        text = "try " + self._block(node.block)
        if node.handler is not None:
            param = f" ({self.visit(node.param)})" if node.param is not None else ""
            text += f" catch{param} " + self._block(node.handler)
        if node.finalizer is not None:
            text += " finally " + self._block(node.finalizer)
        return text

    def visit_switch(self, node: Switch) -> str:
        head = f"switch ({self.expr(node.discriminant, 1)}) {{"
        if not node.cases:
            return head + "}"
        self.level += 1
        cases = "\n".join(self._stmt(c) for c in node.cases)
        self.level -= 1
        return head + "\n" + cases + "\n" + self.ind() + "}"

    def visit_switchcase(self, node: SwitchCase) -> str:
        label = "default:" if node.test is None else f"case {self.expr(node.test, 1)}:"
        if not node.body:
            return label
        self.level += 1
        body = self._stmts(node.body)
        self.level -= 1
        return label + "\n" + body

    def visit_functiondecl(self, node: FunctionDecl) -> str:
        head = self._function_head("function", node.name, node.is_async, node.is_generator)
        return head + self._params(node.params) + " " + self._block(node.body)

    def visit_classdecl(self, node: ClassDecl) -> str:
        head = "class" + (f" {node.name}" if node.name else "")
        if node.superclass is not None:
            head += f" extends {self.expr(node.superclass, 19)}"
        if not node.members:
            return head + " {}"
        self.level += 1
        members = self._stmts(node.members)
        self.level -= 1
        return head + " {\n" + members + "\n" + self.ind() + "}"

    def visit_classmethod(self, node: ClassMethod) -> str:
        prefix = ("static " if node.is_static else "") + ("async " if node.is_async else "")
        prefix += "*" if node.is_generator else ""
        return prefix + self._key(node.key) + self._params(node.params) + " " + self._block(node.body)

    def visit_classfield(self, node: ClassField) -> str:
        text = ("static " if node.is_static else "") + self._key(node.key)
        if node.value is not None:
            text += f" = {self.expr(node.value)}"
        return text + ";"

    def _source(self, lit: StringLit) -> str:
        return lit.raw if lit.raw is not None else quote_string(lit.value)

    def visit_importdecl(self, node: ImportDecl) -> str:
        parts: List[str] = []
        if node.default:
            parts.append(node.default)
        if node.namespace:
            parts.append(f"* as {node.namespace}")
        if node.named or node.specifiers:
            specs = ", ".join(
                s.imported if s.imported == s.local else f"{s.imported} as {s.local}"
                for s in node.specifiers
            )
            parts.append(f"{{ {specs} }}" if specs else "{}")
        if not parts:
            return f"import {self._source(node.source)};"
        return f"import {', '.join(parts)} from {self._source(node.source)};"

    def visit_exportnamed(self, node: ExportNamed) -> str:
        if node.declaration is not None:
            return "export " + self.visit(node.declaration)
        specs = ", ".join(
            s.local if s.local == s.exported else f"{s.local} as {s.exported}"
            for s in node.specifiers
        )
        text = f"export {{ {specs} }}" if specs else "export {}"
        if node.source is not None:
            text += f" from {self._source(node.source)}"
        return text + ";"

    def visit_exportdefault(self, node: ExportDefault) -> str:
        if isinstance(node.declaration, (FunctionDecl, ClassDecl)):
            return "export default " + self.visit(node.declaration)
        return f"export default {self.expr(node.declaration)};"

    def visit_exportall(self, node: ExportAll) -> str:
        alias = f" as {node.exported}" if node.exported else ""
        return f"export *{alias} from {self._source(node.source)};"

    # ---------- literals ----------

    def visit_identifier(self, node: Identifier) -> str:
        return node.name

    def visit_stringlit(self, node: StringLit) -> str:
        return node.raw if node.raw is not None else quote_string(node.value)

    def visit_numberlit(self, node: NumberLit) -> str:
        return node.raw

    def visit_boollit(self, node: BoolLit) -> str:
        return "true" if node.value else "false"

    def visit_nulllit(self, node: NullLit) -> str:
        return "null"

    def visit_this(self, node: This) -> str:
        return "this"

    def visit_super(self, node: Super) -> str:
        return "super"

    def visit_templatelit(self, node: TemplateLit) -> str:
        out = ["`", node.quasis[0]]
        for expr, quasi in zip(node.expressions, node.quasis[1:]):
            out.append("${" + self.expr(expr, 1) + "}")
            out.append(quasi)
        out.append("`")
        return "".join(out)

    def visit_arraylit(self, node: ArrayLit) -> str:
        items = ["" if el is None else self.expr(el) for el in node.elements]
        text = ", ".join(items)
        if node.elements and node.elements[-1] is None:
            text += ","
        return f"[{text}]"

    def visit_objectlit(self, node: ObjectLit) -> str:
        if not node.properties:
            return "{}"
        return "{ " + ", ".join(self.visit(p) for p in node.properties) + " }"

    def visit_property(self, node: Property) -> str:
        if node.shorthand:
            if isinstance(node.value, AssignPattern):
                return self.visit(node.value)
            return self._key(node.key)
        return f"{self._key(node.key)}: {self.expr(node.value)}"

    def visit_objectmethod(self, node: ObjectMethod) -> str:
        prefix = ("async " if node.is_async else "") + ("*" if node.is_generator else "")
        return prefix + self._key(node.key) + self._params(node.params) + " " + self._block(node.body)

    def visit_spread(self, node: Spread) -> str:
        return "..." + self.expr(node.argument)

    # ---------- operators ----------

    def visit_unary(self, node: Unary) -> str:
        operand = self.expr(node.operand, 15)
        if node.op.isalpha():
            return f"{node.op} {operand}"
        if node.op in ("+", "-") and operand.startswith(node.op):
            return f"{node.op} {operand}"
        return node.op + operand

    def visit_update(self, node: Update) -> str:
        operand = self.expr(node.operand, 17)
        return node.op + operand if node.prefix else operand + node.op

    def visit_binary(self, node: Binary) -> str:
        prec = _BINARY_PREC[node.op]
        if node.op == "**":
            left = self.expr(node.left, 16)
            right = self.expr(node.right, prec)
        else:
            left = self.expr(node.left, prec)
            right = self.expr(node.right, prec + 1)
        return f"{left} {node.op} {right}"

    def visit_logical(self, node: Logical) -> str:
        prec = _LOGICAL_PREC[node.op]
        left_min = 6 if _mixes_coalesce(node, node.left) else prec
        right_min = 6 if _mixes_coalesce(node, node.right) else prec + 1
        return f"{self.expr(node.left, left_min)} {node.op} {self.expr(node.right, right_min)}"

    def visit_assign(self, node: Assign) -> str:
        return f"{self.expr(node.target, 3)} {node.op} {self.expr(node.value)}"

    def visit_conditional(self, node: Conditional) -> str:
        return f"{self.expr(node.test, 4)} ? {self.expr(node.consequent)} : {self.expr(node.alternate)}"

    def visit_sequence(self, node: Sequence) -> str:
        return ", ".join(self.expr(e) for e in node.exprs)

    # ---------- calls and members ----------

    def visit_call(self, node: Call) -> str:
        callee = self.expr(node.callee, 19)
        return callee + ("?." if node.optional else "") + self._args(node.args)

    def visit_new(self, node: New) -> str:
        callee = self.expr(node.callee, 20 if _callee_has_call(node.callee) else 19)
        if node.args is None:
            return f"new {callee}"
        return f"new {callee}" + self._args(node.args)

    def visit_member(self, node: Member) -> str:
        obj = self.expr(node.object, 19)
        if isinstance(node.object, NumberLit) and node.object.raw.isdigit():
            obj = f"({obj})"
        if node.computed:
            return obj + ("?.[" if node.optional else "[") + self.expr(node.property, 1) + "]"
        return obj + ("?." if node.optional else ".") + self.visit(node.property)

    # ---------- functions ----------

    def visit_functionexpr(self, node: FunctionExpr) -> str:
        head = self._function_head("function", node.name, node.is_async, node.is_generator)
        return head + self._params(node.params) + " " + self._block(node.body)

    def visit_arrowfunction(self, node: ArrowFunction) -> str:
        params = self._params(node.params)
        if isinstance(node.body, Block):
            return f"{params} => {self._block(node.body)}"
        body = self.expr(node.body)
        if body.startswith("{"):
            body = f"({body})"
        return f"{params} => {body}"

    # ---------- patterns ----------

    def visit_objectpattern(self, node: ObjectPattern) -> str:
        if not node.properties:
            return "{}"
        return "{ " + ", ".join(self.visit(p) for p in node.properties) + " }"

    def visit_arraypattern(self, node: ArrayPattern) -> str:
        items = ["" if el is None else self.visit(el) for el in node.elements]
        text = ", ".join(items)
        if node.elements and node.elements[-1] is None:
            text += ","
        return f"[{text}]"

    def visit_assignpattern(self, node: AssignPattern) -> str:
        return f"{self.visit(node.target)} = {self.expr(node.default)}"

    def visit_restelement(self, node: RestElement) -> str:
        return "..." + self.visit(node.argument)


def print_program(program: Program) -> str:
    return JsPrinter().print_program(program)
