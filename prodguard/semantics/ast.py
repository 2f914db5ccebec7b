# semantics/ast.py
from __future__ import annotations
from dataclasses import dataclass, field, fields
from typing import List, Optional, Union

from prodguard.internals.report import Span

# === Core node base ===

@dataclass
class Node:
    loc: Optional[Span]

@dataclass
class Comment(Node):
    block: bool                      # /* ... */ when True, // ... otherwise
    text: str                        # body without the delimiters

@dataclass
class Stmt(Node):
    comments: List[Comment] = field(default_factory=list, kw_only=True, repr=False, compare=False)

@dataclass
class Expr(Node):
    comments: List[Comment] = field(default_factory=list, kw_only=True, repr=False, compare=False)

# === Program structure ===

@dataclass
class Program(Node):
    body: List[Stmt]
    trailing_comments: List[Comment] = field(default_factory=list, repr=False, compare=False)

@dataclass
class Block(Stmt):
    body: List[Stmt]
    trailing_comments: List[Comment] = field(default_factory=list, repr=False, compare=False)

# === Statements ===

@dataclass
class VarDecl(Stmt):
    kind: str                        # "var" | "let" | "const"
    declarations: List["Declarator"]

@dataclass
class Declarator(Node):
    target: "Pattern"
    init: Optional[Expr] = None

@dataclass
class ExprStmt(Stmt):
    expr: Expr
    directive: Optional[str] = None  # "use strict" etc. for prologue strings

@dataclass
class EmptyStmt(Stmt):
    pass

@dataclass
class If(Stmt):
    test: Expr
    consequent: Stmt
    alternate: Optional[Stmt] = None

@dataclass
class For(Stmt):
    init: Union[VarDecl, Expr, None]
    test: Optional[Expr]
    update: Optional[Expr]
    body: Stmt

@dataclass
class ForIn(Stmt):
    kind: str
    target: "Pattern"
    right: Expr
    body: Stmt

@dataclass
class ForOf(Stmt):
    kind: str
    target: "Pattern"
    right: Expr
    body: Stmt

@dataclass
class While(Stmt):
    test: Expr
    body: Stmt

@dataclass
class DoWhile(Stmt):
    body: Stmt
    test: Expr

@dataclass
class Return(Stmt):
    value: Optional[Expr] = None

@dataclass
class Break(Stmt):
    pass

@dataclass
class Continue(Stmt):
    pass

@dataclass
class Throw(Stmt):
    value: Expr

@dataclass
class Try(Stmt):
    block: Block
    param: Optional["Pattern"]
    handler: Optional[Block]
    finalizer: Optional[Block]

@dataclass
class SwitchCase(Node):
    test: Optional[Expr]             # None for `default:`
    body: List[Stmt]
    comments: List[Comment] = field(default_factory=list, kw_only=True, repr=False, compare=False)

@dataclass
class Switch(Stmt):
    discriminant: Expr
    cases: List[SwitchCase]

@dataclass
class FunctionDecl(Stmt):
    name: Optional[str]
    params: List["Pattern"]
    body: Block
    is_async: bool = False
    is_generator: bool = False

@dataclass
class ClassMethod(Node):
    key: "PropKey"
    params: List["Pattern"]
    body: Block
    is_static: bool = False
    is_async: bool = False
    is_generator: bool = False
    comments: List[Comment] = field(default_factory=list, kw_only=True, repr=False, compare=False)

@dataclass
class ClassField(Node):
    key: "PropKey"
    value: Optional[Expr] = None
    is_static: bool = False
    comments: List[Comment] = field(default_factory=list, kw_only=True, repr=False, compare=False)

@dataclass
class ClassDecl(Stmt):
    name: Optional[str]
    superclass: Optional[Expr]
    members: List[Union[ClassMethod, ClassField]]

# === Modules ===

@dataclass
class ImportSpecifier(Node):
    imported: str
    local: str

@dataclass
class ImportDecl(Stmt):
    source: "StringLit"
    default: Optional[str] = None
    namespace: Optional[str] = None
    specifiers: List[ImportSpecifier] = field(default_factory=list)
    named: bool = False              # `{ ... }` clause present, possibly empty

@dataclass
class ExportSpecifier(Node):
    local: str
    exported: str

@dataclass
class ExportNamed(Stmt):
    declaration: Optional[Stmt] = None
    specifiers: List[ExportSpecifier] = field(default_factory=list)
    source: Optional["StringLit"] = None

@dataclass
class ExportDefault(Stmt):
    declaration: Union[FunctionDecl, ClassDecl, Expr]

@dataclass
class ExportAll(Stmt):
    source: "StringLit"
    exported: Optional[str] = None

# === Expressions ===

@dataclass
class Identifier(Expr):
    name: str

@dataclass
class StringLit(Expr):
    value: str
    raw: Optional[str] = None        # source text including quotes, None for synthesized strings

@dataclass
class NumberLit(Expr):
    raw: str

    @property
    def value(self) -> Union[int, float]:
        text = self.raw.replace("_", "").rstrip("n")
        lowered = text.lower()
        if lowered.startswith("0x"):
            return int(text[2:], 16)
        if lowered.startswith("0b"):
            return int(text[2:], 2)
        if lowered.startswith("0o"):
            return int(text[2:], 8)
        number = float(text)
        return int(number) if number.is_integer() and "e" not in lowered and "." not in text else number

@dataclass
class BoolLit(Expr):
    value: bool

@dataclass
class NullLit(Expr):
    pass

@dataclass
class This(Expr):
    pass

@dataclass
class Super(Expr):
    pass

@dataclass
class TemplateLit(Expr):
    quasis: List[str]                # raw text chunks, len(quasis) == len(expressions) + 1
    cooked: List[str]                # chunks with escapes processed
    expressions: List[Expr]

@dataclass
class ArrayLit(Expr):
    elements: List[Optional[Expr]]   # None marks a hole

@dataclass
class Property(Node):
    key: "PropKey"
    value: Expr
    shorthand: bool = False
    comments: List[Comment] = field(default_factory=list, kw_only=True, repr=False, compare=False)

@dataclass
class ObjectMethod(Node):
    key: "PropKey"
    params: List["Pattern"]
    body: Block
    is_async: bool = False
    is_generator: bool = False
    comments: List[Comment] = field(default_factory=list, kw_only=True, repr=False, compare=False)

@dataclass
class ObjectLit(Expr):
    properties: List[Union[Property, ObjectMethod, "Spread"]]

@dataclass
class Spread(Expr):
    argument: Expr

@dataclass
class Unary(Expr):
    op: str
    operand: Expr

@dataclass
class Update(Expr):
    op: str                          # "++" | "--"
    operand: Expr
    prefix: bool

@dataclass
class Binary(Expr):
    op: str
    left: Expr
    right: Expr

@dataclass
class Logical(Expr):
    op: str                          # "&&" | "||" | "??"
    left: Expr
    right: Expr

@dataclass
class Assign(Expr):
    op: str
    target: Expr
    value: Expr

@dataclass
class Conditional(Expr):
    test: Expr
    consequent: Expr
    alternate: Expr

@dataclass
class Call(Expr):
    callee: Expr
    args: List[Expr]
    optional: bool = False

@dataclass
class New(Expr):
    callee: Expr
    args: Optional[List[Expr]]       # None for `new Foo` without parentheses

@dataclass
class Member(Expr):
    object: Expr
    property: Expr                   # Identifier for `.name`, any Expr when computed
    computed: bool = False
    optional: bool = False

@dataclass
class Sequence(Expr):
    exprs: List[Expr]

@dataclass
class FunctionExpr(Expr):
    name: Optional[str]
    params: List["Pattern"]
    body: Block
    is_async: bool = False
    is_generator: bool = False

@dataclass
class ArrowFunction(Expr):
    params: List["Pattern"]
    body: Union[Block, Expr]

# === Patterns ===

@dataclass
class ObjectPattern(Expr):
    properties: List[Union[Property, "RestElement"]]

@dataclass
class ArrayPattern(Expr):
    elements: List[Optional["Pattern"]]

@dataclass
class AssignPattern(Expr):
    target: "Pattern"
    default: Expr

@dataclass
class RestElement(Expr):
    argument: "Pattern"

@dataclass
class ComputedKey(Node):
    expr: Expr

Pattern = Union[Identifier, ObjectPattern, ArrayPattern, AssignPattern, RestElement, Expr]
PropKey = Union[Identifier, StringLit, NumberLit, ComputedKey]


_NON_CHILD_FIELDS = frozenset({"loc", "comments", "trailing_comments"})

def iter_child_nodes(node: Node):
    """Yield the direct child nodes of `node` in field order, lists flattened."""
    for f in fields(node):
        if f.name in _NON_CHILD_FIELDS:
            continue
        value = getattr(node, f.name)
        if isinstance(value, Node):
            yield value
        elif isinstance(value, list):
            for item in value:
                if isinstance(item, Node):
                    yield item

def walk(node: Node):
    """Pre-order traversal of `node` and all its descendants."""
    yield node
    for child in iter_child_nodes(node):
        yield from walk(child)
