# DerivativeEngine.py
"""""
Symbolic differentiation for the Derivative Calculator.

Pipeline
--------
1) Order loop: differentiate 'order' times, each result is the next input.
2) Single step: parse with MathEngine, split the top-level sum into signed terms
   and differentiate every term on its own (Sum Rule).
3) Per term: try the rules in a fixed precedence
   Constant → x / -x → Linear → Power → sin/cos/tan/ln/exp → nested sum
   → constant multiple → Product. A term no rule accepts is passed through
   unchanged (or rejected in strict mode).

Every rule application appends readable lines to 'steps' and its name to 'rules'.
Nothing is simplified beyond what the rules themselves produce, so the product
rule answer for x*sin(x) is '1*sin(x) + x*cos(x)'.
"""""

import math
import re
from collections import namedtuple

from . import config_manager as config_manager
from . import MathEngine
from .MathEngine import Number, Constant, Variable, Negation, BinOp, Function, Unknown
from . import error as E

# Debug toggle for optional prints in this module
debug = False

DerivativeResult = namedtuple("DerivativeResult", ["derivative", "steps", "rules"])

CONSTANT_RULE = "Constant Rule"
POWER_RULE = "Power Rule"
LINEAR_RULE = "Linear Rule"
SUM_RULE = "Sum Rule"
PRODUCT_RULE = "Product Rule"
SINE_RULE = "Sine Rule"
COSINE_RULE = "Cosine Rule"
TANGENT_RULE = "Tangent Rule"
LN_RULE = "Natural Logarithm Rule"
EXPONENTIAL_RULE = "Exponential Rule"

# Letters, digits, ^ + - * . and whitespace only
POLYNOMIAL_PATTERN = re.compile(r"^[\w\^\+\-\*\s\.]+$")


def is_polynomial(expression):
    """Character-class test deciding whether the polynomial trace style is used."""
    return (POLYNOMIAL_PATTERN.match(expression) is not None and "sin" not in expression
            and "cos" not in expression and "ln" not in expression)


def ordinal(number):
    """1 → '1st', 2 → '2nd', 11 → '11th', 23 → '23rd'."""
    if 10 <= number % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")
    return f"{number}{suffix}"


def scale(faktor, ableitung):
    """Build faktor * ableitung, folding numbers so 3*-sin(x) becomes -3*sin(x)."""
    if MathEngine.is_zero(ableitung) or MathEngine.is_zero(faktor):
        return Number(0)
    if MathEngine.is_one(ableitung):
        return faktor
    if MathEngine.is_one(faktor):
        return ableitung
    if isinstance(faktor, Number) and faktor.value == -1:
        return MathEngine.negate(ableitung)

    if isinstance(faktor, Number):
        if isinstance(ableitung, Number):
            return Number(faktor.value * ableitung.value)
        negative, magnitude = MathEngine.split_sign(ableitung)
        if negative:
            return scale(Number(-faktor.value), magnitude)
        if isinstance(ableitung, BinOp) and ableitung.operator == '*' and isinstance(ableitung.left, Number):
            return BinOp(Number(faktor.value * ableitung.left.value), '*', ableitung.right)
    return BinOp(faktor, '*', ableitung)


class Differentiator:
    """Holds the variable, the strictness and the trace of one differentiation call."""

    def __init__(self, variable="x", strict=False):
        self.variable = variable
        self.strict = strict
        self.steps = []
        self.rules = []

    def d(self, text):
        return f"d/d{self.variable}[{text}]"

    # -----------------------------
    # Single step
    # -----------------------------

    def differentiate(self, expression):
        """Differentiate an expression string once and return the result as a string."""
        try:
            baum = MathEngine.ast(expression, self.variable)
        except E.MathError as e:
            if self.strict:
                e.equation = expression
                raise e
            if debug == True:
                print(f"Parser gave up on '{expression}': {e.message}")
            baum = Unknown(expression, self.variable)

        terms = MathEngine.split_terms(baum)

        if is_polynomial(expression):
            ergebnis = self.differentiate_polynomial(expression, terms)
        elif len(terms) > 1:
            ergebnis = self.differentiate_sum(expression, terms)
        else:
            ergebnis = self.differentiate_single_term(terms[0])

        return str(ergebnis)

    def differentiate_polynomial(self, expression, terms):
        self.steps.append(f"**Differentiating Polynomial:** {expression}")
        self.steps.append("Using Sum Rule: (f + g)' = f' + g'")
        self.rules.append(SUM_RULE)

        ableitungen = []
        for i, term in enumerate(terms):
            self.steps.append(f"Term {i + 1}: {term}")
            ableitung = self.differentiate_single_term(term)
            ableitungen.append(ableitung)
            self.steps.append(f"→ {ableitung}")

        ergebnis = MathEngine.join_terms(ableitungen)
        self.steps.append(f"**Result:** {ergebnis}")
        return ergebnis

    def differentiate_sum(self, expression, terms):
        self.steps.append(f"**Applying Sum Rule to:** {expression}")
        self.rules.append(SUM_RULE)

        ableitungen = []
        for term in terms:
            ableitung = self.differentiate_single_term(term)
            ableitungen.append(ableitung)
            self.steps.append(f"{self.d(term)} = {ableitung}")

        return MathEngine.join_terms(ableitungen)

    def differentiate_single_term(self, term):
        """Apply the first matching rule; pass the term through if none matches."""
        ableitung = self.apply_rules(term)
        if ableitung is not None:
            return ableitung

        if self.strict:
            raise E.DerivativeError(f"No differentiation rule for term: {term}", code="6004", equation=str(term))

        self.steps.append(f"No rule matches {term} → left unchanged")
        return term

    # -----------------------------
    # Rule dispatch
    # -----------------------------

    def apply_rules(self, term):
        """Return the derivative node of term, or None when no rule applies."""
        variable = self.variable

        # --- 1. Constant Rule ---
        if not term.contains_variable():
            self.steps.append(f"{term} is constant → derivative = 0")
            self.rules.append(CONSTANT_RULE)
            return Number(0)

        # --- 2. x → 1, -x → -1 ---
        if isinstance(term, Variable):
            self.steps.append(f"{self.d(variable)} = 1")
            self.rules.append(POWER_RULE)
            return Number(1)

        if isinstance(term, Negation) and isinstance(term.operand, Variable):
            self.steps.append(f"{self.d('-' + variable)} = -1")
            self.rules.append(POWER_RULE)
            return Number(-1)

        # --- 3. Linear Rule: c*x ---
        if isinstance(term, BinOp) and term.operator == '*' and isinstance(term.left, Number) \
                and isinstance(term.right, Variable):
            self.steps.append(f"{self.d(term)} = {term.left} (coefficient becomes derivative)")
            self.rules.append(LINEAR_RULE)
            return Number(term.left.value)

        # --- 4. Power Rule: c*x^n, c/x^n ---
        potenz = self.match_power(term)
        if potenz is not None:
            koeffizient, exponent = potenz
            return self.apply_power_rule(term, koeffizient, exponent)

        # --- 5. sin, cos, tan, ln, exp of the bare variable ---
        ableitung = self.apply_function_rule(term)
        if ableitung is not None:
            return ableitung

        # --- 6. Parenthesized sum inside a term ---
        if isinstance(term, BinOp) and term.operator in ('+', '-'):
            return self.differentiate_sum(str(term), MathEngine.split_terms(term))

        # --- 7. Constant multiples: k*f, f*k, f/k, -f ---
        ableitung = self.apply_constant_multiple(term)
        if ableitung is not None:
            return ableitung

        # --- 8. Product Rule ---
        if isinstance(term, BinOp) and term.operator == '*':
            return self.apply_product_rule(term)

        return None

    def match_power(self, term):
        """Return (coefficient, exponent) for c*x^n, x^n, -x^n, c/x and c/x^n; else None."""

        def plain_power(node):
            if isinstance(node, BinOp) and node.operator == '^' and isinstance(node.left, Variable) \
                    and isinstance(node.right, Number):
                return node.right.value
            return None

        if plain_power(term) is not None:
            return (1.0, plain_power(term))

        if isinstance(term, Negation) and plain_power(term.operand) is not None:
            return (-1.0, plain_power(term.operand))

        if isinstance(term, BinOp) and isinstance(term.left, Number):
            if term.operator == '*' and plain_power(term.right) is not None:
                return (term.left.value, plain_power(term.right))
            if term.operator == '/' and isinstance(term.right, Variable):
                return (term.left.value, -1.0)
            if term.operator == '/' and plain_power(term.right) is not None:
                return (term.left.value, -plain_power(term.right))

        return None

    def apply_power_rule(self, term, koeffizient, exponent):
        variable = self.variable
        self.steps.append(f"**Power Rule Applied:** d/d{variable}[{variable}^n] = n·{variable}^(n-1)")
        self.steps.append(f"Original: {term}")
        self.steps.append(f"Coefficient: {MathEngine.format_number(koeffizient)}, "
                          f"Exponent: {MathEngine.format_number(exponent)}")

        neuer_koeffizient = koeffizient * exponent
        neuer_exponent = exponent - 1

        if neuer_koeffizient == 0 or neuer_exponent == 0:
            ergebnis = Number(neuer_koeffizient)
        elif neuer_exponent == 1:
            if neuer_koeffizient == 1:
                ergebnis = Variable(variable)
            elif neuer_koeffizient == -1:
                ergebnis = Negation(Variable(variable))
            else:
                ergebnis = BinOp(Number(neuer_koeffizient), '*', Variable(variable))
        else:
            potenz = BinOp(Variable(variable), '^', Number(neuer_exponent))
            if neuer_koeffizient == 1:
                ergebnis = potenz
            else:
                ergebnis = BinOp(Number(neuer_koeffizient), '*', potenz)

        self.steps.append(f"New coefficient: {MathEngine.format_number(koeffizient)} × "
                          f"{MathEngine.format_number(exponent)} = {MathEngine.format_number(neuer_koeffizient)}")
        self.steps.append(f"New exponent: {MathEngine.format_number(exponent)} - 1 = "
                          f"{MathEngine.format_number(neuer_exponent)}")
        self.steps.append(f"Result: {ergebnis}")
        self.rules.append(POWER_RULE)
        return ergebnis

    def apply_function_rule(self, term):
        """Fixed table for functions of the bare variable; no chain rule."""
        variable = self.variable
        x = Variable(variable)

        if isinstance(term, Function) and isinstance(term.argument, Variable):
            if term.name == "sin":
                self.steps.append(f"{self.d(f'sin({variable})')} = cos({variable})")
                self.rules.append(SINE_RULE)
                return Function("cos", x)

            if term.name == "cos":
                self.steps.append(f"{self.d(f'cos({variable})')} = -sin({variable})")
                self.rules.append(COSINE_RULE)
                return Negation(Function("sin", x))

            if term.name == "tan":
                self.steps.append(f"{self.d(f'tan({variable})')} = sec^2({variable})")
                self.rules.append(TANGENT_RULE)
                return BinOp(Function("sec", x), '^', Number(2))

            if term.name == "ln":
                self.steps.append(f"{self.d(f'ln({variable})')} = 1/{variable}")
                self.rules.append(LN_RULE)
                return BinOp(Number(1), '/', x)

            if term.name == "exp":
                self.steps.append(f"{self.d(term)} = {term}")
                self.rules.append(EXPONENTIAL_RULE)
                return term

        if isinstance(term, BinOp) and term.operator == '^' and isinstance(term.left, Constant) \
                and term.left.name == "e" and isinstance(term.right, Variable):
            self.steps.append(f"{self.d(term)} = {term}")
            self.rules.append(EXPONENTIAL_RULE)
            return term

        return None

    def apply_constant_multiple(self, term):
        """k*f, f*k, f/k and -f keep the constant and differentiate f."""
        if isinstance(term, Negation):
            faktor, funktion = Number(-1), term.operand
        elif isinstance(term, BinOp) and term.operator == '*' and not term.left.contains_variable():
            faktor, funktion = term.left, term.right
        elif isinstance(term, BinOp) and term.operator == '*' and not term.right.contains_variable():
            faktor, funktion = term.right, term.left
        elif isinstance(term, BinOp) and term.operator == '/' and not term.right.contains_variable():
            faktor, funktion = None, term.left
        else:
            return None

        innere_ableitung = self.apply_rules(funktion)
        if innere_ableitung is None:
            return None

        if faktor is None:
            if MathEngine.is_zero(innere_ableitung):
                ergebnis = Number(0)
            elif isinstance(innere_ableitung, Number) and isinstance(term.right, Number) \
                    and term.right.value != 0:
                ergebnis = Number(innere_ableitung.value / term.right.value)
            else:
                ergebnis = BinOp(innere_ableitung, '/', term.right)
        else:
            ergebnis = scale(faktor, innere_ableitung)

        self.steps.append(f"{self.d(term)} = {ergebnis}")
        return ergebnis

    def apply_product_rule(self, term):
        """(fg)' = f'g + fg', rendered without simplification."""
        markierung = (len(self.steps), len(self.rules))
        self.steps.append("**Product Rule:** (fg)' = f'g + fg'")
        self.rules.append(PRODUCT_RULE)

        f, g = term.left, term.right
        f_ableitung = self.apply_rules(f)
        g_ableitung = self.apply_rules(g) if f_ableitung is not None else None

        if f_ableitung is None or g_ableitung is None:
            # Roll the trace back; the caller reports the whole term as unmatched
            del self.steps[markierung[0]:]
            del self.rules[markierung[1]:]
            return None

        self.steps.append(f"f = {f}, g = {g}")
        self.steps.append(f"f' = {f_ableitung}, g' = {g_ableitung}")

        ergebnis = BinOp(BinOp(f_ableitung, '*', g), '+', BinOp(f, '*', g_ableitung))
        self.steps.append(f"Result: {ergebnis}")
        return ergebnis


# -----------------------------
# Input validation
# -----------------------------

def validate_request(expression, variable, order, x_value=None, max_order=None):
    """Check calculator input before differentiating.

    Returns:
        (expression, variable, order, x_value) with order as int and x_value as float or None.
    """
    if expression is None or str(expression).strip() == "":
        raise E.ValidationError("Please enter a function.", code="6003")
    expression = str(expression).strip()

    variable = str(variable).strip() if variable is not None else ""
    if len(variable) != 1 or not variable.isalpha():
        raise E.ValidationError(f"Variable must be a single letter: '{variable}'", code="6002", equation=expression)

    try:
        order = int(str(order).strip())
    except ValueError:
        raise E.ValidationError(f"Invalid derivative order: {order}", code="6000", equation=expression)

    if order < 1:
        raise E.ValidationError(f"Invalid derivative order: {order}", code="6000", equation=expression)

    if max_order is None:
        max_order = config_manager.load_setting_value("max_order")
    if order > max_order:
        raise E.ValidationError(f"Derivative order must be between 1 and {max_order}.", code="6001",
                                equation=expression)

    if x_value is None or str(x_value).strip() == "":
        x_value = None
    else:
        try:
            x_value = float(str(x_value).strip())
        except ValueError:
            raise E.ValidationError(f"Evaluation point is not a number: {x_value}", code="6005", equation=expression)
        if not math.isfinite(x_value):
            raise E.ValidationError(f"Evaluation point is not a number: {x_value}", code="6005", equation=expression)

    return expression, variable, order, x_value


# -----------------------------
# Public entry points
# -----------------------------

def compute_derivative(expression, variable="x", order=1, strict=None):
    """Main API: differentiate 'order' times and collect the step trace.

    Returns:
        DerivativeResult(derivative, steps, rules) with steps and rules as tuples.
    """
    if strict is None:
        strict = config_manager.load_setting_value("strict_mode") == True

    if isinstance(order, bool) or not isinstance(order, int) or order < 1:
        raise E.ValidationError(f"Invalid derivative order: {order}", code="6000", equation=expression)

    differentiator = Differentiator(variable, strict)
    steps = differentiator.steps

    steps.append("**STEP 1: Original Function**")
    steps.append(f"f({variable}) = {expression}")
    steps.append("")

    aktuelle_funktion = expression

    for i in range(order):
        steps.append(f"**STEP {i + 2}: Finding {ordinal(i + 1)} Derivative**")

        aktuelle_funktion = differentiator.differentiate(aktuelle_funktion)

        striche = "'" * (i + 1)
        steps.append(f"f{striche}({variable}) = {aktuelle_funktion}")
        steps.append("")

        if debug == True:
            print(f"{ordinal(i + 1)} derivative: {aktuelle_funktion}")

    return DerivativeResult(aktuelle_funktion, tuple(steps), tuple(differentiator.rules))


def evaluation_steps(variable, order, x_value, numeric_value):
    """Trace lines for evaluating the nth derivative at a point."""
    punkt = MathEngine.format_number(x_value)
    striche = "'" * order
    wert = "undefined" if numeric_value is None else MathEngine.format_number(numeric_value)
    return [
        f"**STEP {order + 2}: Evaluating at {variable} = {punkt}**",
        f"Substituting {variable} = {punkt}: f{striche}({punkt}) = {wert}",
        "",
    ]


def test_main():
    """Simple REPL-like runner for manual testing of the engine."""
    print("Enter the function: ")
    problem = input()
    print("Enter the order: ")
    order = int(input())
    result = compute_derivative(problem, "x", order)
    for step in result.steps:
        print(step)
    print("Rules: " + ", ".join(result.rules))
    print(result.derivative)


if __name__ == "__main__":
    test_main()
