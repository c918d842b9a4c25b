"""Test the loop expression evaluator."""

import copy

import pytest

from nodeflow.nodes.expression import ExpressionError, ExpressionEvaluator


@pytest.fixture
def evaluator():
    return ExpressionEvaluator()


@pytest.mark.unit
class TestEvaluate:
    """Test plain expressions."""

    def test_arithmetic(self, evaluator):
        assert evaluator.evaluate("element * 2 + index", {"element": 5, "index": 1}) == 11

    def test_builtins_whitelist(self, evaluator):
        assert evaluator.evaluate("len(array) + max(array)", {"array": [1, 4, 2]}) == 7
        assert evaluator.evaluate("sorted(array)", {"array": [3, 1, 2]}) == [1, 2, 3]
        assert evaluator.evaluate("reversed(array)", {"array": [1, 2]}) == [2, 1]

    def test_method_calls_on_bound_names(self, evaluator):
        assert evaluator.evaluate("element.upper()", {"element": "abc"}) == "ABC"
        assert evaluator.evaluate("element.get('x', 0)", {"element": {"x": 3}}) == 3

    def test_subscripts_and_literals(self, evaluator):
        assert evaluator.evaluate("element['name']", {"element": {"name": "n"}}) == "n"
        assert evaluator.evaluate("[element, index]", {"element": "a", "index": 0}) == ["a", 0]
        assert evaluator.evaluate("'big' if element > 2 else 'small'", {"element": 3}) == "big"

    def test_javascript_operators(self, evaluator):
        data = {"element": 4, "index": 0}

        assert evaluator.evaluate("element === 4 && index !== 1", data) is True
        assert evaluator.evaluate("element > 10 || !false", data) is True
        assert evaluator.evaluate("element != 4", data) is False
        assert evaluator.evaluate("null", data) is None
        assert evaluator.evaluate("true", data) is True

    @pytest.mark.parametrize("expression", [
        "__import__('os')",
        "element.__class__",
        "open('/etc/passwd')",
        "eval('1')",
        "(lambda: 1)()",
        "(y := 1)",
        "unknown + 1",
        "element.upper().lower()",
    ])
    def test_unsafe_rejected(self, evaluator, expression):
        with pytest.raises(ExpressionError) as exc_info:
            evaluator.evaluate(expression, {"element": "x"})

        assert "Unsafe expression" in exc_info.value.message
        assert exc_info.value.expression == expression

    def test_syntax_error(self, evaluator):
        with pytest.raises(ExpressionError) as exc_info:
            evaluator.evaluate("element *", {"element": 1})

        assert "Invalid expression syntax" in exc_info.value.message

    def test_runtime_error_wrapped(self, evaluator):
        with pytest.raises(ExpressionError) as exc_info:
            evaluator.evaluate("element / 0", {"element": 1})

        assert "Expression evaluation failed" in exc_info.value.message


@pytest.mark.unit
class TestArrowExpressions:
    """Test ``params => body`` binding."""

    def test_single_parameter(self, evaluator):
        assert evaluator.evaluate_loop_expression("x => x + 1", 1, 0, [1]) == 2

    def test_parenthesised_parameters_bind_positionally(self, evaluator):
        result = evaluator.evaluate_loop_expression("(item, i, arr) => item * i + len(arr)", 3, 2, [1, 2, 3])

        assert result == 9

    def test_accumulator_binding(self, evaluator):
        assert evaluator.evaluate_loop_expression("(x, i, a, acc) => acc + x", 5, 1, [1, 5], 10) == 15

    def test_loop_names_still_visible(self, evaluator):
        assert evaluator.evaluate_loop_expression("x => x + element", 2, 0, [2]) == 4

    def test_too_many_parameters(self, evaluator):
        with pytest.raises(ExpressionError):
            evaluator.evaluate_loop_expression("(a, b, c, d, e) => a", 1, 0, [1])

    def test_malformed_arrow(self, evaluator):
        with pytest.raises(ExpressionError):
            evaluator.evaluate_loop_expression("1 + => x", 1, 0, [1])


@pytest.mark.unit
class TestValidateExpression:
    """Test static validation."""

    @pytest.mark.parametrize("expression", [
        "element * 2",
        "x => x > 1",
        "(x, i) => x + i",
        "accumulator + element",
        "element.strip()",
    ])
    def test_valid(self, evaluator, expression):
        assert evaluator.validate_expression(expression) is True

    @pytest.mark.parametrize("expression", [
        "element *",
        "os.system('ls')",
        "element.__dict__",
        "(a, b, c, d, e) => a",
        "item * 2",
    ])
    def test_invalid(self, evaluator, expression):
        assert evaluator.validate_expression(expression) is False

    def test_custom_names(self, evaluator):
        assert evaluator.validate_expression("item * 2", names=("item",)) is True


@pytest.mark.unit
class TestStringLiterals:
    """Operator spellings inside quoted text are left alone."""

    @pytest.mark.parametrize("expression,expected", [
        ('element + "!"', "hi!"),
        ('element + " && " + "==="', "hi && ==="),
        ("'a || b'", "a || b"),
        ('element + "=>"', "hi=>"),
        ("element + 'it\\'s !'", "hiit's !"),
    ])
    def test_literal_text_preserved(self, evaluator, expression, expected):
        assert evaluator.evaluate(expression, {"element": "hi"}) == expected

    def test_operators_outside_literals_still_rewritten(self, evaluator):
        assert evaluator.evaluate('element === "a && b" && !false', {"element": "a && b"}) is True

    def test_arrow_body_with_quoted_arrow(self, evaluator):
        assert evaluator.evaluate_loop_expression('x => x + "=>"', "a", 0, ["a"]) == "a=>"


@pytest.mark.unit
class TestMutatingMethods:
    """Expressions cannot change the values they are given."""

    @pytest.mark.parametrize("expression,data", [
        ("array.append(1)", {"array": [1]}),
        ("array.clear() or element", {"array": [1], "element": 1}),
        ("array.pop()", {"array": [1]}),
        ("element.update({})", {"element": {}}),
        ("element.setdefault('k', 1)", {"element": {}}),
    ])
    def test_rejected(self, evaluator, expression, data):
        before = copy.deepcopy(data)

        with pytest.raises(ExpressionError) as exc_info:
            evaluator.evaluate(expression, data)

        assert "Mutating method not allowed" in exc_info.value.message
        assert data == before

    def test_validation_rejects_mutation(self, evaluator):
        assert evaluator.validate_expression("array.clear()") is False
        assert evaluator.validate_expression("element.count(1)", names=("element",)) is True
