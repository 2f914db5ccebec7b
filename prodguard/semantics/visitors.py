"""
AST Visitor Pattern implementation for prodguard.

This module provides base visitor classes for traversing and processing AST nodes
using the Visitor Pattern, eliminating the need for large match/isinstance chains.

Usage:
    1. Subclass NodeVisitor[T] for visitors that return values (the printer)
    2. Subclass RecursiveVisitor for analysis passes (void return)
    3. Subclass GuardedVisitor when a pass needs the enclosing NODE_ENV guards

Example:
    class ThrowFinder(GuardedVisitor):
        def visit_throw(self, node: Throw) -> None:
            print(node.loc, self.verdict())
            super().visit_throw(node)

    ThrowFinder().visit(program)
"""
from __future__ import annotations
from abc import ABC
from contextlib import contextmanager
from typing import Generic, Optional, Tuple, TypeVar

from prodguard.semantics.ast import (
    Node, Program, Block, ComputedKey,
    # Statements
    VarDecl, Declarator, ExprStmt, If, For, ForIn, ForOf, While, DoWhile, Return, Throw, Try,
    Switch, SwitchCase, FunctionDecl, ClassDecl, ClassMethod, ClassField,
    ImportDecl, ExportNamed, ExportDefault,
    # Expressions
    Expr, TemplateLit, ArrayLit, ObjectLit, Property, ObjectMethod, Spread, Unary, Update, Binary,
    Logical, Assign, Conditional, Call, New, Member, Sequence, FunctionExpr, ArrowFunction,
    # Patterns
    ObjectPattern, ArrayPattern, AssignPattern, RestElement,
)
from prodguard.semantics.guards import Branch, GuardFrame, GuardVerdict, abstract_test, classify

T = TypeVar('T')


class NodeVisitor(ABC, Generic[T]):
    """
    Abstract base class for AST node visitors.

    Uses dynamic dispatch on the node's class name: a `Member` node is routed
    to `visit_member`, a `TemplateLit` to `visit_templatelit`.
    """

    def visit(self, node: Node) -> T:
        method_name = f'visit_{type(node).__name__.lower()}'
        visitor = getattr(self, method_name, self.generic_visit)
        return visitor(node)

    def generic_visit(self, node: Node) -> T:
        """
        Default visitor that raises an error.
        Subclasses should either implement specific visit_* methods
        or override this to provide default behavior.
        """
        raise NotImplementedError(
            f"Visitor {self.__class__.__name__} doesn't handle {type(node).__name__}"
        )


class RecursiveVisitor(NodeVisitor[None]):
    """
    Base class for visitors that recursively traverse the entire AST.

    Leaves (identifiers, literals, `this`, jumps, import specifiers) fall
    through to generic_visit, which does nothing. Subclasses override the
    visit_* methods they care about and call super() to keep descending.
    """

    def generic_visit(self, node: Node) -> None:
        pass

    def visit_optional(self, node: Optional[Node]) -> None:
        if node is not None:
            self.visit(node)

    def visit_all(self, nodes) -> None:
        for n in nodes:
            if n is not None:
                self.visit(n)

    # === Program structure ===

    def visit_program(self, node: Program) -> None:
        self.visit_all(node.body)

    def visit_block(self, node: Block) -> None:
        self.visit_all(node.body)

    # === Statement visitors ===

    def visit_vardecl(self, node: VarDecl) -> None:
        self.visit_all(node.declarations)

    def visit_declarator(self, node: Declarator) -> None:
        self.visit(node.target)
        self.visit_optional(node.init)

    def visit_exprstmt(self, node: ExprStmt) -> None:
        self.visit(node.expr)

    def visit_if(self, node: If) -> None:
        self.visit(node.test)
        self.visit(node.consequent)
        self.visit_optional(node.alternate)

    def visit_for(self, node: For) -> None:
        self.visit_optional(node.init)
        self.visit_optional(node.test)
        self.visit_optional(node.update)
        self.visit(node.body)

    def visit_forin(self, node: ForIn) -> None:
        self.visit(node.target)
        self.visit(node.right)
        self.visit(node.body)

    def visit_forof(self, node: ForOf) -> None:
        self.visit(node.target)
        self.visit(node.right)
        self.visit(node.body)

    def visit_while(self, node: While) -> None:
        self.visit(node.test)
        self.visit(node.body)

    def visit_dowhile(self, node: DoWhile) -> None:
        self.visit(node.body)
        self.visit(node.test)

    def visit_return(self, node: Return) -> None:
        self.visit_optional(node.value)

    def visit_throw(self, node: Throw) -> None:
        self.visit(node.value)

    def visit_try(self, node: Try) -> None:
        self.visit(node.block)
        self.visit_optional(node.param)
        self.visit_optional(node.handler)
        self.visit_optional(node.finalizer)

    def visit_switch(self, node: Switch) -> None:
        self.visit(node.discriminant)
        self.visit_all(node.cases)

    def visit_switchcase(self, node: SwitchCase) -> None:
        self.visit_optional(node.test)
        self.visit_all(node.body)

    def visit_functiondecl(self, node: FunctionDecl) -> None:
        self.visit_all(node.params)
        self.visit(node.body)

    def visit_classdecl(self, node: ClassDecl) -> None:
        self.visit_optional(node.superclass)
        self.visit_all(node.members)

    def visit_classmethod(self, node: ClassMethod) -> None:
        self.visit(node.key)
        self.visit_all(node.params)
        self.visit(node.body)

    def visit_classfield(self, node: ClassField) -> None:
        self.visit(node.key)
        self.visit_optional(node.value)

    def visit_importdecl(self, node: ImportDecl) -> None:
        pass

    def visit_exportnamed(self, node: ExportNamed) -> None:
        self.visit_optional(node.declaration)

    def visit_exportdefault(self, node: ExportDefault) -> None:
        self.visit(node.declaration)

    # === Expression visitors ===

    def visit_templatelit(self, node: TemplateLit) -> None:
        self.visit_all(node.expressions)

    def visit_arraylit(self, node: ArrayLit) -> None:
        self.visit_all(node.elements)

    def visit_objectlit(self, node: ObjectLit) -> None:
        self.visit_all(node.properties)

    def visit_property(self, node: Property) -> None:
        if not node.shorthand:
            self.visit(node.key)
        self.visit(node.value)

    def visit_objectmethod(self, node: ObjectMethod) -> None:
        self.visit(node.key)
        self.visit_all(node.params)
        self.visit(node.body)

    def visit_computedkey(self, node: ComputedKey) -> None:
        self.visit(node.expr)

    def visit_spread(self, node: Spread) -> None:
        self.visit(node.argument)

    def visit_unary(self, node: Unary) -> None:
        self.visit(node.operand)

    def visit_update(self, node: Update) -> None:
        self.visit(node.operand)

    def visit_binary(self, node: Binary) -> None:
        self.visit(node.left)
        self.visit(node.right)

    def visit_logical(self, node: Logical) -> None:
        self.visit(node.left)
        self.visit(node.right)

    def visit_assign(self, node: Assign) -> None:
        self.visit(node.target)
        self.visit(node.value)

    def visit_conditional(self, node: Conditional) -> None:
        self.visit(node.test)
        self.visit(node.consequent)
        self.visit(node.alternate)

    def visit_call(self, node: Call) -> None:
        self.visit(node.callee)
        self.visit_all(node.args)

    def visit_new(self, node: New) -> None:
        self.visit(node.callee)
        self.visit_all(node.args or [])

    def visit_member(self, node: Member) -> None:
        self.visit(node.object)
        if node.computed:
            self.visit(node.property)

    def visit_sequence(self, node: Sequence) -> None:
        self.visit_all(node.exprs)

    def visit_functionexpr(self, node: FunctionExpr) -> None:
        self.visit_all(node.params)
        self.visit(node.body)

    def visit_arrowfunction(self, node: ArrowFunction) -> None:
        self.visit_all(node.params)
        self.visit(node.body)

    # === Pattern visitors ===

    def visit_objectpattern(self, node: ObjectPattern) -> None:
        self.visit_all(node.properties)

    def visit_arraypattern(self, node: ArrayPattern) -> None:
        self.visit_all(node.elements)

    def visit_assignpattern(self, node: AssignPattern) -> None:
        self.visit(node.target)
        self.visit(node.default)

    def visit_restelement(self, node: RestElement) -> None:
        self.visit(node.argument)


class GuardedVisitor(RecursiveVisitor):
    """
    RecursiveVisitor that tracks the conditionals enclosing the current node.

    `self.frames` is the stack of GuardFrames from the outermost conditional
    to the innermost one. It is an immutable tuple replaced on entry and
    restored on exit, so a frame never leaks into a sibling branch.

    Frames are pushed for:
    - the consequent / alternate of `if` statements and `?:` expressions,
    - the right operand of `a && b` (runs only when `a` holds → consequent of `a`),
    - the right operand of `a || b` (runs only when `a` fails → alternate of `a`).

    Function boundaries do not reset the stack: a function defined inside a
    guarded branch is itself only reachable through that branch.
    """

    def __init__(self) -> None:
        self.frames: Tuple[GuardFrame, ...] = ()

    @contextmanager
    def guarded(self, branch: Branch, test: Expr):
        saved = self.frames
        self.frames = saved + (GuardFrame(branch, abstract_test(test)),)
        try:
            yield
        finally:
            self.frames = saved

    def verdict(self) -> GuardVerdict:
        """Classification of the position currently being visited."""
        return classify(self.frames)

    def visit_if(self, node: If) -> None:
        self.visit(node.test)
        with self.guarded(Branch.CONSEQUENT, node.test):
            self.visit(node.consequent)
        if node.alternate is not None:
            with self.guarded(Branch.ALTERNATE, node.test):
                self.visit(node.alternate)

    def visit_conditional(self, node: Conditional) -> None:
        self.visit(node.test)
        with self.guarded(Branch.CONSEQUENT, node.test):
            self.visit(node.consequent)
        with self.guarded(Branch.ALTERNATE, node.test):
            self.visit(node.alternate)

    def visit_logical(self, node: Logical) -> None:
        self.visit(node.left)
        if node.op == "&&":
            with self.guarded(Branch.CONSEQUENT, node.left):
                self.visit(node.right)
        elif node.op == "||":
            with self.guarded(Branch.ALTERNATE, node.left):
                self.visit(node.right)
        else:
            self.visit(node.right)
