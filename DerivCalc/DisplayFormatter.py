# DisplayFormatter.py
"""""
Turns the calculator's ASCII notation into TeX for display.

- format_math_display: one expression, e.g. '3*x^2 + 1/x' → '3 \\cdot x^2 + \\frac{1}{x}'
- format_step_for_display: one line of the step trace; the known line shapes get
  their mathematical part wrapped in \\( ... \\) so a TeX renderer can typeset it,
  headers and unknown lines are left as they are.
"""""

import re

from . import MathEngine
from . import error as E

TEX_FUNCTIONS = ["sin", "cos", "tan", "sec", "ln", "log"]

# A fraction operand keeps its exponent: 3/x^2 is \frac{3}{x^2}, not \frac{3}{x}^2
FRACTION_OPERAND = r"\w+(?:\.\d+)?(?:\^(?:\{[^{}]*\}|\w))?"
FRACTION_PATTERN = re.compile(rf"({FRACTION_OPERAND})/({FRACTION_OPERAND})")


def brace(text):
    """Exponents longer than one character need braces in TeX."""
    if len(text) > 1:
        return "{" + text + "}"
    return text


def replace_call(text, prefix, opening):
    """Rewrite every prefix(...) as opening...} using the matching ')' (nested calls included)."""
    ergebnis = ""
    b = 0
    while True:
        index = text.find(prefix + "(", b)
        if index == -1:
            break
        try:
            klammer, ende = MathEngine.isolate_bracket(text, index + len(prefix))
        except E.SyntaxError:
            # Unbalanced input stays as typed
            break
        inhalt = replace_call(klammer[1:-1], prefix, opening)
        ergebnis += text[b:index] + opening + inhalt + "}"
        b = ende
    return ergebnis + text[b:]


def format_math_display(expression):
    if not expression:
        return ""

    formatted = str(expression)

    # --- 1. Powers ---
    formatted = formatted.replace("**", "^")

    # --- 2. Calls that become braces ---
    formatted = replace_call(formatted, "sqrt", "\\sqrt{")
    formatted = replace_call(formatted, "exp", "e^{")
    formatted = replace_call(formatted, "^", "^{")
    formatted = re.sub(r"\^(-?\d+(?:\.\d+)?)", lambda m: "^" + brace(m.group(1)), formatted)

    # --- 3. Function names ---
    for name in TEX_FUNCTIONS:
        formatted = re.sub(rf"(?<![\\A-Za-z]){name}(?=[(^])", "\\\\" + name, formatted)
    formatted = re.sub(r"(?<![\\A-Za-z])pi(?![A-Za-z])", r"\\pi", formatted)

    # --- 4. Fractions ---
    formatted = FRACTION_PATTERN.sub(r"\\frac{\1}{\2}", formatted)

    # --- 5. Multiplication and signs ---
    formatted = formatted.replace("*", " \\cdot ")
    formatted = formatted.replace("+ -", " - ")

    formatted = re.sub(r"\s+", " ", formatted).strip()
    return formatted


def tex(expression):
    return "\\(" + format_math_display(expression.strip()) + "\\)"


# (pattern, renderer) pairs, tried in order; the first match wins
STEP_SHAPES = [
    (re.compile(r"^f('*)\((\w)\) = (.+)$"),
     lambda m: f"f{m.group(1)}({m.group(2)}) = {tex(m.group(3))}"),

    (re.compile(r"^d/d(\w)\[(.+)\] = (.+?)( \([a-z ]+\))?$"),
     lambda m: (f"\\(\\frac{{d}}{{d{m.group(1)}}}[{format_math_display(m.group(2))}] = "
                f"{format_math_display(m.group(3))}\\){m.group(4) or ''}")),

    (re.compile(r"^→ (.+)$"),
     lambda m: f"→ {tex(m.group(1))}"),

    (re.compile(r"^(Result|Original|Term \d+|Using Sum Rule): (.+)$"),
     lambda m: f"{m.group(1)}: {tex(m.group(2))}"),

    (re.compile(r"^Coefficient: (.+), Exponent: (.+)$"),
     lambda m: f"Coefficient: {tex(m.group(1))}, Exponent: {tex(m.group(2))}"),

    (re.compile(r"^New coefficient: (.+) × (.+) = (.+)$"),
     lambda m: (f"New coefficient: \\({format_math_display(m.group(1))} \\times "
                f"{format_math_display(m.group(2))} = {format_math_display(m.group(3))}\\)")),

    (re.compile(r"^New exponent: (.+) - (.+) = (.+)$"),
     lambda m: (f"New exponent: \\({format_math_display(m.group(1))} - "
                f"{format_math_display(m.group(2))} = {format_math_display(m.group(3))}\\)")),

    (re.compile(r"^f = (.+), g = (.+)$"),
     lambda m: f"f = {tex(m.group(1))}, g = {tex(m.group(2))}"),

    (re.compile(r"^f' = (.+), g' = (.+)$"),
     lambda m: f"f' = {tex(m.group(1))}, g' = {tex(m.group(2))}"),

    (re.compile(r"^(.+) is constant → derivative = 0$"),
     lambda m: f"{tex(m.group(1))} is constant → derivative = \\(0\\)"),

    (re.compile(r"^Substituting (\w) = ([^:]+): (.+)$"),
     lambda m: f"Substituting \\({m.group(1)} = {m.group(2)}\\): {tex(m.group(3))}"),

    (re.compile(r"^No rule matches (.+) → left unchanged$"),
     lambda m: f"No rule matches {tex(m.group(1))} → left unchanged"),
]


def format_step_for_display(step):
    if not step or step.strip() == "":
        return step

    # Headers stay as they are
    if step.startswith("**") or "STEP" in step:
        return step

    for pattern, renderer in STEP_SHAPES:
        match = pattern.match(step)
        if match:
            return renderer(match)

    return step
