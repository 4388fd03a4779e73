import math

import pytest

from DerivCalc import DerivativeEngine
from DerivCalc import MathEngine
from DerivCalc import config_manager
from DerivCalc import error as E


def derivative(expression, variable="x", order=1):
    return DerivativeEngine.compute_derivative(expression, variable, order, strict=False).derivative


def assert_equivalent(produced, expected, points=(-1.5, 0.3, 1.0, 2.0)):
    for point in points:
        got = MathEngine.evaluate_at_point(produced, "x", point)
        want = MathEngine.evaluate_at_point(expected, "x", point)
        assert got is not None
        assert got == pytest.approx(want, abs=1e-9)


# -----------------------------
# Power, linear and constant rules
# -----------------------------

def test_polynomial_power_rule():
    result = DerivativeEngine.compute_derivative("x^3 + 2*x^2 + x + 1", "x", 1, strict=False)

    assert result.derivative == "3*x^2 + 4*x + 1"
    assert result.rules == ("Sum Rule", "Power Rule", "Power Rule", "Power Rule", "Constant Rule")


@pytest.mark.parametrize("order, expected", [
    (1, "3*x^2"),
    (2, "6*x"),
    (3, "6"),
    (4, "0"),
])
def test_repeated_differentiation(order, expected):
    assert derivative("x^3", order=order) == expected


def test_constant_rule():
    result = DerivativeEngine.compute_derivative("5", "x", 1, strict=False)

    assert result.derivative == "0"
    assert "Constant Rule" in result.rules
    assert "5 is constant → derivative = 0" in result.steps


def test_zero_stays_zero():
    assert derivative("0") == "0"
    assert derivative("0", order=3) == "0"


@pytest.mark.parametrize("expression, expected", [
    ("x", "1"),
    ("-x", "-1"),
    ("3*x", "3"),
    ("-4x", "-4"),
    ("2.5*x", "2.5"),
])
def test_linear_terms(expression, expected):
    assert derivative(expression) == expected


def test_linear_rule_is_recorded():
    result = DerivativeEngine.compute_derivative("3*x", "x", 1, strict=False)

    assert result.rules == ("Sum Rule", "Linear Rule")
    assert "d/dx[3*x] = 3 (coefficient becomes derivative)" in result.steps


@pytest.mark.parametrize("expression, expected", [
    ("x^2", "2*x"),
    ("x**4", "4*x^3"),
    ("-x^2", "-2*x"),
    ("0.5*x^2", "x"),
    ("-0.5*x^2", "-x"),
    ("x^1", "1"),
    ("3x^2", "6*x"),
])
def test_power_rule_rendering(expression, expected):
    assert derivative(expression) == expected


def test_power_rule_trace_lines():
    steps = DerivativeEngine.compute_derivative("x^2", "x", 1, strict=False).steps

    assert "Coefficient: 1, Exponent: 2" in steps
    assert "New coefficient: 1 × 2 = 2" in steps
    assert "New exponent: 2 - 1 = 1" in steps
    assert "Result: 2*x" in steps


def test_negative_exponents():
    assert derivative("1/x") == "-1*x^-2"
    assert derivative("1/x", order=2) == "2*x^-3"
    assert derivative("3/x^2") == "-6*x^-3"


def test_tiny_coefficients_are_kept():
    produced = derivative("0.0000000000001*x^2")

    assert produced == "0.0000000000002*x"
    assert MathEngine.evaluate_at_point(produced, "x", 1) == pytest.approx(2e-13)


@pytest.mark.parametrize("point", [0.0, -1.5, 0.25])
def test_derivative_matches_analytic_value(point):
    produced = derivative("x^3 + 2*x^2 + x + 1")

    assert MathEngine.evaluate_at_point(produced, "x", point) == pytest.approx(3 * point ** 2 + 4 * point + 1)


def test_signs_are_folded_between_terms():
    assert derivative("x^2 - 3*x") == "2*x - 3"
    assert derivative("-x^3 + x - 7") == "-3*x^2 + 1"


def test_no_like_terms_are_combined():
    assert derivative("2*x + 3*x") == "2 + 3"


# -----------------------------
# Trigonometric, logarithmic and exponential rules
# -----------------------------

@pytest.mark.parametrize("expression, expected, rule", [
    ("sin(x)", "cos(x)", "Sine Rule"),
    ("cos(x)", "-sin(x)", "Cosine Rule"),
    ("tan(x)", "sec^2(x)", "Tangent Rule"),
    ("ln(x)", "1/x", "Natural Logarithm Rule"),
    ("e^x", "e^x", "Exponential Rule"),
    ("exp(x)", "exp(x)", "Exponential Rule"),
])
def test_function_rules(expression, expected, rule):
    result = DerivativeEngine.compute_derivative(expression, "x", 1, strict=False)

    assert result.derivative == expected
    assert rule in result.rules


def test_sine_cycles_through_four_orders():
    assert derivative("sin(x)", order=2) == "-sin(x)"
    assert derivative("sin(x)", order=3) == "-cos(x)"
    assert derivative("sin(x)", order=4) == "sin(x)"


def test_constant_multiple_keeps_the_coefficient():
    assert derivative("2*sin(x)") == "2*cos(x)"
    assert derivative("3*cos(x)") == "-3*sin(x)"
    assert derivative("-sin(x)") == "-cos(x)"


def test_sum_of_functions():
    result = DerivativeEngine.compute_derivative("sin(x) + cos(x)", "x", 1, strict=False)

    assert result.derivative == "cos(x) - sin(x)"
    assert result.rules[0] == "Sum Rule"
    assert "**Applying Sum Rule to:** sin(x) + cos(x)" in result.steps
    assert "d/dx[sin(x)] = cos(x)" in result.steps


def test_other_variable_names():
    assert derivative("t^2 + sin(t)", variable="t") == "2*t + cos(t)"
    assert derivative("s^2 + sin(s)", variable="s") == "2*s + cos(s)"


def test_pi_is_a_constant_for_variable_p():
    assert derivative("pi*p^2", variable="p") == "pi*(2*p)"


def test_other_letters_are_constants():
    assert derivative("a*x") == "a"
    assert derivative("5*a") == "0"


# -----------------------------
# Product rule
# -----------------------------

def test_product_rule_matches_closed_form():
    result = DerivativeEngine.compute_derivative("x*sin(x)", "x", 1, strict=False)

    assert result.derivative == "1*sin(x) + x*cos(x)"
    assert result.rules == ("Product Rule", "Power Rule", "Sine Rule")
    assert "f = x, g = sin(x)" in result.steps
    assert "f' = 1, g' = cos(x)" in result.steps

    produced = MathEngine.evaluate_at_point(result.derivative, "x", 1)
    assert produced == pytest.approx(math.sin(1) + math.cos(1), abs=1e-9)


def test_product_rule_with_negative_factor_derivative():
    produced = derivative("x*cos(x)")

    assert produced == "1*cos(x) + x*-sin(x)"
    assert_equivalent(produced, "cos(x) - x*sin(x)")


def test_product_rule_with_power_factor():
    produced = derivative("x^2*sin(x)")

    assert produced == "2*x*sin(x) + x^2*cos(x)"
    assert_equivalent(produced, "2*x*sin(x) + x^2*cos(x)")


def test_product_rule_second_order_is_correct():
    assert_equivalent(derivative("x*sin(x)", order=2), "2*cos(x) - x*sin(x)")


# -----------------------------
# Passthrough and strict mode
# -----------------------------

def test_unsupported_shape_passes_through():
    result = DerivativeEngine.compute_derivative("sin(cos(x))", "x", 1, strict=False)

    assert result.derivative == "sin(cos(x))"
    assert "No rule matches sin(cos(x)) → left unchanged" in result.steps


def test_malformed_input_passes_through():
    assert derivative("x^^2") == "x^^2"


def test_deeply_nested_input_passes_through():
    expression = "sin(" * 400 + "x" + ")" * 400

    assert derivative(expression) == expression


def test_strict_mode_rejects_deeply_nested_input():
    expression = "sin(" * 400 + "x" + ")" * 400

    with pytest.raises(E.SyntaxError) as excinfo:
        DerivativeEngine.compute_derivative(expression, "x", 1, strict=True)

    assert excinfo.value.code == "3016"


def test_strict_mode_rejects_unsupported_terms():
    with pytest.raises(E.DerivativeError) as excinfo:
        DerivativeEngine.compute_derivative("sin(cos(x))", "x", 1, strict=True)

    assert excinfo.value.code == "6004"


def test_strict_mode_rejects_malformed_input():
    with pytest.raises(E.SyntaxError) as excinfo:
        DerivativeEngine.compute_derivative("x^^2", "x", 1, strict=True)

    assert excinfo.value.equation == "x^^2"


def test_strict_mode_follows_the_setting(tmp_path, monkeypatch):
    config_file = tmp_path / "config.json"
    config_file.write_text('{"strict_mode": true}', encoding="utf-8")
    monkeypatch.setattr(config_manager, "config_json", config_file)

    with pytest.raises(E.DerivativeError):
        DerivativeEngine.compute_derivative("sin(x^2)", "x", 1)


# -----------------------------
# Order loop and trace
# -----------------------------

def test_trace_headers_and_result_lines():
    result = DerivativeEngine.compute_derivative("x^2", "x", 2, strict=False)

    assert result.steps[0] == "**STEP 1: Original Function**"
    assert result.steps[1] == "f(x) = x^2"
    assert "**STEP 2: Finding 1st Derivative**" in result.steps
    assert "**STEP 3: Finding 2nd Derivative**" in result.steps
    assert "f'(x) = 2*x" in result.steps
    assert "f''(x) = 2" in result.steps


def test_result_is_immutable():
    result = DerivativeEngine.compute_derivative("x^2", "x", 1, strict=False)

    assert isinstance(result.steps, tuple)
    assert isinstance(result.rules, tuple)
    with pytest.raises(AttributeError):
        result.derivative = "something else"


@pytest.mark.parametrize("order", [0, -1, 1.5, True, "2"])
def test_invalid_order_is_rejected(order):
    with pytest.raises(E.ValidationError) as excinfo:
        DerivativeEngine.compute_derivative("x^2", "x", order, strict=False)

    assert excinfo.value.code == "6000"


@pytest.mark.parametrize("number, expected", [
    (1, "1st"), (2, "2nd"), (3, "3rd"), (4, "4th"),
    (11, "11th"), (12, "12th"), (13, "13th"), (21, "21st"), (22, "22nd"), (111, "111th"),
])
def test_ordinal(number, expected):
    assert DerivativeEngine.ordinal(number) == expected


def test_evaluation_steps():
    assert DerivativeEngine.evaluation_steps("x", 1, 2.0, 12.0) == [
        "**STEP 3: Evaluating at x = 2**",
        "Substituting x = 2: f'(2) = 12",
        "",
    ]
    assert DerivativeEngine.evaluation_steps("x", 2, 0.0, None)[1] == "Substituting x = 0: f''(0) = undefined"


# -----------------------------
# Request validation
# -----------------------------

def test_validate_request_normalizes_input():
    assert DerivativeEngine.validate_request(" x^2 ", "x", "2", "1.5", max_order=5) == ("x^2", "x", 2, 1.5)
    assert DerivativeEngine.validate_request("x^2", "x", 1, "", max_order=5) == ("x^2", "x", 1, None)


@pytest.mark.parametrize("arguments, code", [
    (("", "x", 1, None), "6003"),
    (("   ", "x", 1, None), "6003"),
    (("x^2", "xy", 1, None), "6002"),
    (("x^2", "1", 1, None), "6002"),
    (("x^2", "x", "zero", None), "6000"),
    (("x^2", "x", 0, None), "6000"),
    (("x^2", "x", 6, None), "6001"),
    (("x^2", "x", 2, "abc"), "6005"),
    (("x^2", "x", 2, "nan"), "6005"),
])
def test_validate_request_errors(arguments, code):
    with pytest.raises(E.ValidationError) as excinfo:
        DerivativeEngine.validate_request(*arguments, max_order=5)

    assert excinfo.value.code == code
    assert code in E.ERROR_MESSAGES
