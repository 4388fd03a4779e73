import pytest

from DerivCalc import DisplayFormatter
from DerivCalc import DerivativeEngine


@pytest.mark.parametrize("expression, tex", [
    ("3*x^2 + 4*x + 1", r"3 \cdot x^2 + 4 \cdot x + 1"),
    ("sin(x)", r"\sin(x)"),
    ("-sin(x)", r"-\sin(x)"),
    ("ln(x)", r"\ln(x)"),
    ("1/x", r"\frac{1}{x}"),
    ("3/x^2", r"\frac{3}{x^2}"),
    ("1/x^-2", r"\frac{1}{x^{-2}}"),
    ("x^2/3", r"\frac{x^2}{3}"),
    ("x^-2", r"x^{-2}"),
    ("x^10", r"x^{10}"),
    ("x**3", r"x^3"),
    ("2^(x+1)", r"2^{x+1}"),
    ("sqrt(x+1)", r"\sqrt{x+1}"),
    ("sqrt(sqrt(x))", r"\sqrt{\sqrt{x}}"),
    ("exp(x)", r"e^{x}"),
    ("sec^2(x)", r"\sec^2(x)"),
    ("cos(pi*x)", r"\cos(\pi \cdot x)"),
    ("a + -b", r"a - b"),
    ("", ""),
])
def test_format_math_display(expression, tex):
    assert DisplayFormatter.format_math_display(expression) == tex


def test_unbalanced_calls_stay_as_typed():
    assert DisplayFormatter.format_math_display("sqrt(x") == "sqrt(x"


@pytest.mark.parametrize("step, shown", [
    ("f(x) = x^2", r"f(x) = \(x^2\)"),
    ("f''(x) = 6*x", r"f''(x) = \(6 \cdot x\)"),
    ("d/dx[3*x] = 3 (coefficient becomes derivative)",
     r"\(\frac{d}{dx}[3 \cdot x] = 3\) (coefficient becomes derivative)"),
    ("d/dx[sin(x)] = cos(x)", r"\(\frac{d}{dx}[\sin(x)] = \cos(x)\)"),
    ("→ 3*x^2", r"→ \(3 \cdot x^2\)"),
    ("Result: 2*x", r"Result: \(2 \cdot x\)"),
    ("Original: 3/x^2", r"Original: \(\frac{3}{x^2}\)"),
    ("f(x) = 3/x^2", r"f(x) = \(\frac{3}{x^2}\)"),
    ("Term 2: 2*x^2", r"Term 2: \(2 \cdot x^2\)"),
    ("Using Sum Rule: (f + g)' = f' + g'", r"Using Sum Rule: \((f + g)' = f' + g'\)"),
    ("Coefficient: 1, Exponent: 2", r"Coefficient: \(1\), Exponent: \(2\)"),
    ("New coefficient: 1 × 2 = 2", r"New coefficient: \(1 \times 2 = 2\)"),
    ("New exponent: -1 - 1 = -2", r"New exponent: \(-1 - 1 = -2\)"),
    ("f = x, g = sin(x)", r"f = \(x\), g = \(\sin(x)\)"),
    ("f' = 1, g' = cos(x)", r"f' = \(1\), g' = \(\cos(x)\)"),
    ("5 is constant → derivative = 0", r"\(5\) is constant → derivative = \(0\)"),
    ("Substituting x = 2: f'(2) = 12", r"Substituting \(x = 2\): \(f'(2) = 12\)"),
    ("No rule matches sin(cos(x)) → left unchanged", r"No rule matches \(\sin(\cos(x))\) → left unchanged"),
])
def test_format_step_for_display(step, shown):
    assert DisplayFormatter.format_step_for_display(step) == shown


@pytest.mark.parametrize("step", [
    "**STEP 1: Original Function**",
    "**Result:** 3*x^2",
    "**Product Rule:** (fg)' = f'g + fg'",
    "",
    "some free text",
])
def test_headers_and_unknown_lines_are_unchanged(step):
    assert DisplayFormatter.format_step_for_display(step) == step


def test_every_trace_line_is_formatted_once():
    result = DerivativeEngine.compute_derivative("x*sin(x) + x^2", "x", 1, strict=False)

    for step in result.steps:
        shown = DisplayFormatter.format_step_for_display(step)
        assert "\\(\\(" not in shown
        assert "\\\\" not in shown
