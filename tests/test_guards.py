import pytest

from conftest import parse
from prodguard.semantics.ast import Identifier
from prodguard.semantics.guards import (
    Branch, GuardFrame, GuardVerdict, LogicalComposite, NodeEnvComparison, Opaque,
    abstract_test, classify, is_node_env, is_production_reachable, mentions_node_env,
)
from prodguard.semantics.visitors import GuardedVisitor

DEV = GuardVerdict.DEV_ONLY
PROD = GuardVerdict.PROD_ONLY
UNPROVEN = GuardVerdict.UNPROVEN
UNGUARDED = GuardVerdict.UNGUARDED


class _Recorder(GuardedVisitor):
    """Records the verdict at every `here()` call."""

    def __init__(self):
        super().__init__()
        self.verdicts = []

    def visit_call(self, node):
        if isinstance(node.callee, Identifier) and node.callee.name == "here":
            self.verdicts.append(self.verdict())
        super().visit_call(node)


def verdict_of(src: str) -> GuardVerdict:
    recorder = _Recorder()
    recorder.visit(parse(src))
    assert len(recorder.verdicts) == 1
    return recorder.verdicts[0]


def expr_of(src: str):
    return parse(f"{src};").body[0].expr


@pytest.mark.parametrize("src, expected", [
    ("here();", UNGUARDED),
    ("if (process.env.NODE_ENV !== 'production') { here(); }", DEV),
    ("if ('production' !== process.env.NODE_ENV) { here(); }", DEV),
    ("if (process.env.NODE_ENV === 'production') { here(); }", PROD),
    ("if (process.env.NODE_ENV === 'production') {} else { here(); }", DEV),
    ("if (process.env.NODE_ENV !== 'production') {} else { here(); }", PROD),
    ("if (process.env.NODE_ENV === 'test') { here(); }", DEV),
    ("if (process.env.NODE_ENV !== 'test') { here(); }", UNPROVEN),
    ("if (process.env.NODE_ENV !== 'test') {} else { here(); }", DEV),
    ("if (process.env['NODE_ENV'] !== 'production') { here(); }", DEV),
    ("if (process.env.NODE_ENV !== `production`) { here(); }", DEV),
    ("if (process.env.NODE_ENV !== 'production') here();", DEV),
])
def test_if_statement_guards(src, expected):
    assert verdict_of(src) is expected


@pytest.mark.parametrize("src", [
    "if (process.env.NODE_ENV != 'production') { here(); }",
    "if (!process.env.NODE_ENV) { here(); }",
    "if (isDev(process.env.NODE_ENV)) { here(); }",
    "if (process.env.NODE_ENV !== env) { here(); }",
    "if (enabled && process.env.NODE_ENV !== 'production') { here(); }",
    "if (process.env.NODE_ENV !== 'production' || force) { here(); }",
])
def test_unrecognized_shapes_are_unproven(src):
    assert verdict_of(src) is UNPROVEN


def test_aliased_guard_is_not_followed():
    src = """
    const isProd = process.env.NODE_ENV === 'production';
    if (!isProd) {
      here();
    }
    """
    assert verdict_of(src) is UNGUARDED


@pytest.mark.parametrize("src, expected", [
    ("if (process.env.NODE_ENV !== 'production' && enabled) { here(); }", DEV),
    ("if (process.env.NODE_ENV === 'production' || legacy) {} else { here(); }", DEV),
    ("process.env.NODE_ENV !== 'production' && here();", DEV),
    ("process.env.NODE_ENV === 'production' || here();", DEV),
    ("process.env.NODE_ENV === 'production' && here();", PROD),
    ("value ?? here();", UNGUARDED),
])
def test_logical_composites(src, expected):
    assert verdict_of(src) is expected


@pytest.mark.parametrize("src, expected", [
    ("const x = process.env.NODE_ENV !== 'production' ? here() : null;", DEV),
    ("const x = process.env.NODE_ENV !== 'production' ? null : here();", PROD),
])
def test_conditional_expression(src, expected):
    assert verdict_of(src) is expected


@pytest.mark.parametrize("outer, inner", [
    ("===", "!=="),
    ("!==", "==="),
])
def test_contradictory_nesting_is_dev_only(outer, inner):
    src = f"""
    if (process.env.NODE_ENV {outer} 'production') {{
      if (process.env.NODE_ENV {inner} 'production') {{
        here();
      }}
    }}
    """
    assert verdict_of(src) is DEV


def test_nested_production_guards_stay_prod_only():
    src = """
    if (process.env.NODE_ENV === 'production') {
      if (process.env.NODE_ENV !== 'production') {} else {
        here();
      }
    }
    """
    assert verdict_of(src) is PROD


@pytest.mark.parametrize("outer", ["production", "test"])
@pytest.mark.parametrize("inner", ["production", "test"])
@pytest.mark.parametrize("outer_op", ["===", "!=="])
@pytest.mark.parametrize("inner_op", ["===", "!=="])
def test_nested_verdict_matches_truth_table(outer, inner, outer_op, inner_op):
    src = f"""
    if (process.env.NODE_ENV {outer_op} '{outer}') {{
      if (process.env.NODE_ENV {inner_op} '{inner}') {{
        here();
      }}
    }}
    """

    def holds(op, literal):
        return ("production" == literal) == (op == "===")

    reachable = holds(outer_op, outer) and holds(inner_op, inner)
    verdict = verdict_of(src)
    assert is_production_reachable(verdict) == reachable
    if not reachable:
        assert verdict is DEV


def test_outer_guard_covers_opaque_inner_test():
    src = """
    if (process.env.NODE_ENV !== 'production') {
      if (items.length > 0) {
        here();
      }
    }
    """
    assert verdict_of(src) is DEV


def test_guard_reaches_into_nested_functions():
    src = """
    if (process.env.NODE_ENV !== 'production') {
      const check = () => {
        here();
      };
    }
    """
    assert verdict_of(src) is DEV


def test_frame_does_not_leak_into_sibling():
    src = """
    if (process.env.NODE_ENV !== 'production') {
      warn();
    }
    here();
    """
    assert verdict_of(src) is UNGUARDED


@pytest.mark.parametrize("operator", ["===", "!=="])
@pytest.mark.parametrize("literal", ["production", "test", "development"])
@pytest.mark.parametrize("branch", [Branch.CONSEQUENT, Branch.ALTERNATE])
@pytest.mark.parametrize("literal_first", [False, True])
def test_verdict_matches_truth_table(operator, literal, branch, literal_first):
    operands = [f"'{literal}'", "process.env.NODE_ENV"]
    if not literal_first:
        operands.reverse()
    test = f" {operator} ".join(operands)
    if branch is Branch.CONSEQUENT:
        src = f"if ({test}) {{ here(); }}"
    else:
        src = f"if ({test}) {{ other(); }} else {{ here(); }}"

    holds_in_production = ("production" == literal) == (operator == "===")
    reachable = holds_in_production if branch is Branch.CONSEQUENT else not holds_in_production
    verdict = verdict_of(src)
    assert (verdict is DEV) == (not reachable)
    assert is_production_reachable(verdict) == reachable


def test_classify_dev_only_proof_at_any_level():
    dev = GuardFrame(Branch.CONSEQUENT, NodeEnvComparison("!==", "right", "production"))
    prod = GuardFrame(Branch.CONSEQUENT, NodeEnvComparison("===", "right", "production"))
    assert classify((dev, prod)) is DEV
    assert classify((prod, dev)) is DEV
    assert classify((prod, GuardFrame(Branch.CONSEQUENT, Opaque(True)))) is PROD


def test_classify_without_frames():
    assert classify(()) is UNGUARDED


def test_classify_opaque_frames():
    assert classify((GuardFrame(Branch.CONSEQUENT, Opaque(False)),)) is UNGUARDED
    assert classify((GuardFrame(Branch.CONSEQUENT, Opaque(True)),)) is UNPROVEN


def test_classify_logical_composite_left_operand_only():
    dev = NodeEnvComparison("!==", "right", "production")
    frame = GuardFrame(Branch.CONSEQUENT, LogicalComposite("&&", Opaque(False), dev))
    assert classify((frame,)) is UNPROVEN
    frame = GuardFrame(Branch.CONSEQUENT, LogicalComposite("&&", dev, Opaque(False)))
    assert classify((frame,)) is DEV


def test_abstract_test_shapes():
    assert abstract_test(expr_of("'production' === process.env.NODE_ENV")) == \
        NodeEnvComparison("===", "left", "production")
    assert abstract_test(expr_of("process.env.NODE_ENV !== null")) == \
        NodeEnvComparison("!==", "right", None)
    assert abstract_test(expr_of("process.env.NODE_ENV === 1")) == \
        NodeEnvComparison("===", "right", 1)
    assert abstract_test(expr_of("process.env.NODE_ENV === mode")) == Opaque(True)
    assert abstract_test(expr_of("a && b")) == LogicalComposite("&&", Opaque(False), Opaque(False))
    assert abstract_test(expr_of("a ?? b")) == Opaque(False)


def test_node_env_recognition():
    assert is_node_env(expr_of("process.env.NODE_ENV"))
    assert is_node_env(expr_of("process['env']['NODE_ENV']"))
    assert not is_node_env(expr_of("process.env?.NODE_ENV"))
    assert not is_node_env(expr_of("proc.env.NODE_ENV"))
    assert not is_node_env(expr_of("process.env.MODE"))
    assert mentions_node_env(expr_of("fn(process.env.NODE_ENV)"))
    assert not mentions_node_env(expr_of("fn(env)"))
