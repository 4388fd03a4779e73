# MathEngine.py
"""""
Expression engine for the Derivative Calculator.

Pipeline
--------
1) Tokenizer: converts a raw input string into a flat list of tokens.
2) Parser (AST): builds an Abstract Syntax Tree (recursive-descent, precedence aware).
3) Renderer: every node prints itself back in the calculator's ASCII notation
   (x^2, 3*x, sin(x), 1/x), which is what the differentiator hands back to the user.
4) Point Evaluator: binds the variable to a float and evaluates the tree.
   No dynamic code execution is involved at any point.
"""""

import math
from decimal import Decimal, getcontext

from . import config_manager as config_manager
from . import ScientificEngine
from . import error as E

# Debug toggle for optional prints in this module
debug = False

# Supported operators (kept as a simple list for quick membership checks)
Operations = ["+", "-", "*", "/", "^"]

# Longest names first so 'sqrt' is not read as 's', 'q', ...
Function_Names = sorted(ScientificEngine.FUNCTIONS, key=len, reverse=True)

# Precedence levels used by the renderer to decide on parentheses
PREC_SUM = 1
PREC_PRODUCT = 2
PREC_UNARY = 3
PREC_POWER = 4
PREC_ATOM = 5

getcontext().prec = 50


# -----------------------------
# Utilities / small helpers
# -----------------------------

def isInt(zahl):
    """Return True if the given string can be parsed as int; else False."""
    try:
        int(zahl)
        return True
    except (TypeError, ValueError):
        return False


def isfloat(zahl):
    """Return True if the given string can be parsed as float; else False."""
    try:
        float(zahl)
        return True
    except (TypeError, ValueError):
        return False


def isolate_bracket(problem, b_anfang):
    """Return substring from the opening '(' at/after b_anfang up to its matching ')'.

    This walks forward and counts parentheses depth; raises on missing '('.
    Returns:
        (substring_including_brackets, position_after_closing_paren)
    """
    start = b_anfang
    start_klammer_index = problem.find('(', start)
    if start_klammer_index == -1:
        raise E.SyntaxError("Missing opening parenthesis.", code="3000")
    b = start_klammer_index + 1
    bracket_count = 1
    while bracket_count != 0 and b < len(problem):
        if problem[b] == '(':
            bracket_count += 1
        elif problem[b] == ')':
            bracket_count -= 1
        b += 1
    if bracket_count != 0:
        raise E.SyntaxError("Missing closing parenthesis ')'", code="3009")
    ergebnis = problem[start:b]
    return (ergebnis, b)


def format_number(value):
    """Render a float the way the calculator prints coefficients: 6 not 6.0, 2.5, -0.25."""
    if not math.isfinite(value):
        return repr(value)
    # 12 significant digits, so tiny coefficients survive
    value = float(f"{value:.12g}")
    if value == 0:
        return "0"
    if value == int(value) and abs(value) < 1e15:
        return str(int(value))
    text = repr(value)
    if "e" in text:
        # The tokenizer has no exponent notation, so spell the digits out
        text = f"{Decimal(text):f}"
    return text


def wrap(node, min_prec):
    """Render node, adding parentheses when it binds weaker than min_prec."""
    text = str(node)
    if node.precedence() < min_prec:
        return f"({text})"
    return text


# -----------------------------
# AST node types
# -----------------------------

class Number:
    """AST node for a numeric literal (float)."""
    def __init__(self, value):
        self.value = float(value)

    def evaluate(self, values=None):
        return self.value

    def contains_variable(self):
        return False

    def precedence(self):
        return PREC_UNARY if self.value < 0 else PREC_ATOM

    def __str__(self):
        return format_number(self.value)

    def __repr__(self):
        return f"Number({format_number(self.value)})"


class Constant:
    """Named mathematical constant: e, pi, π."""
    def __init__(self, name):
        self.name = name

    def evaluate(self, values=None):
        return ScientificEngine.constant_value(self.name)

    def contains_variable(self):
        return False

    def precedence(self):
        return PREC_ATOM

    def __str__(self):
        return self.name

    def __repr__(self):
        return f"Constant('{self.name}')"


class Symbol:
    """A letter other than the differentiation variable (treated as a constant, e.g. 'a' in a*x^2)."""
    def __init__(self, name):
        self.name = name

    def evaluate(self, values=None):
        if values and self.name in values:
            return float(values[self.name])
        raise E.CalculationError(f"No value for symbol: {self.name}", code="3015")

    def contains_variable(self):
        return False

    def precedence(self):
        return PREC_ATOM

    def __str__(self):
        return self.name

    def __repr__(self):
        return f"Symbol('{self.name}')"


class Variable:
    """AST node for the free variable the expression is differentiated by."""
    def __init__(self, name):
        self.name = name

    def evaluate(self, values=None):
        if values and self.name in values:
            return float(values[self.name])
        raise E.CalculationError(f"No value for variable: {self.name}", code="3015")

    def contains_variable(self):
        return True

    def precedence(self):
        return PREC_ATOM

    def __str__(self):
        return self.name

    def __repr__(self):
        return f"Variable('{self.name}')"


class Negation:
    """Unary minus applied to a non-numeric operand."""
    def __init__(self, operand):
        self.operand = operand

    def evaluate(self, values=None):
        return -self.operand.evaluate(values)

    def contains_variable(self):
        return self.operand.contains_variable()

    def precedence(self):
        return PREC_UNARY

    def __str__(self):
        return "-" + wrap(self.operand, PREC_PRODUCT)

    def __repr__(self):
        return f"Negation({self.operand!r})"


class BinOp:
    """AST node for a binary operation: left <operator> right."""
    def __init__(self, left, operator, right):
        self.left = left
        self.operator = operator
        self.right = right

    def evaluate(self, values=None):
        """Evaluate numeric subtree and apply the binary operator."""
        left_value = self.left.evaluate(values)
        right_value = self.right.evaluate(values)

        if self.operator == '+':
            return left_value + right_value
        elif self.operator == '-':
            return left_value - right_value
        elif self.operator == '*':
            return left_value * right_value
        elif self.operator == '^':
            try:
                return math.pow(left_value, right_value)
            except ValueError:
                raise E.CalculationError(f"{left_value}^{right_value} has no real value.", code="2001")
            except OverflowError:
                raise E.CalculationError("Number too big.", code="2002")
        elif self.operator == '/':
            if right_value == 0:
                raise E.CalculationError("Division by zero", code="3003")
            return left_value / right_value
        else:
            raise E.CalculationError(f"Unknown operator: {self.operator}", code="3004")

    def contains_variable(self):
        return self.left.contains_variable() or self.right.contains_variable()

    def precedence(self):
        if self.operator in ('+', '-'):
            return PREC_SUM
        if self.operator in ('*', '/'):
            return PREC_PRODUCT
        return PREC_POWER

    def __str__(self):
        if self.operator == '+':
            negative, magnitude = split_sign(self.right)
            if negative:
                return f"{self.left} - {wrap(magnitude, PREC_PRODUCT)}"
            return f"{self.left} + {self.right}"

        elif self.operator == '-':
            return f"{self.left} - {wrap(self.right, PREC_PRODUCT)}"

        elif self.operator == '*':
            return f"{wrap(self.left, PREC_PRODUCT)}*{wrap(self.right, PREC_UNARY)}"

        elif self.operator == '/':
            return f"{wrap(self.left, PREC_PRODUCT)}/{wrap(self.right, PREC_UNARY)}"

        # Powers: sec^2(x) style for a function raised to a whole number
        if isinstance(self.left, Function) and isinstance(self.right, Number) \
                and self.right.value > 0 and self.right.value == int(self.right.value):
            return f"{self.left.name}^{self.right}({self.left.argument})"

        if isinstance(self.right, Number) or self.right.precedence() == PREC_ATOM:
            exponent = str(self.right)
        else:
            exponent = f"({self.right})"
        return f"{wrap(self.left, PREC_ATOM)}^{exponent}"

    def __repr__(self):
        return f"BinOp({self.operator!r}, left={self.left!r}, right={self.right!r})"


class Function:
    """AST node for a recognized function call such as sin(x) or ln(x)."""
    def __init__(self, name, argument):
        self.name = name
        self.argument = argument

    def evaluate(self, values=None):
        return ScientificEngine.apply_function(self.name, self.argument.evaluate(values))

    def contains_variable(self):
        return self.argument.contains_variable()

    def precedence(self):
        return PREC_ATOM

    def __str__(self):
        return f"{self.name}({self.argument})"

    def __repr__(self):
        return f"Function({self.name!r}, {self.argument!r})"


class Unknown:
    """Raw text the parser could not make sense of; passed through untouched."""
    def __init__(self, raw, variable="x"):
        self.raw = raw
        self.variable = variable

    def evaluate(self, values=None):
        raise E.SyntaxError(f"Cannot evaluate unparsed text: {self.raw}", code="3011")

    def contains_variable(self):
        return self.variable in self.raw

    def precedence(self):
        return PREC_ATOM

    def __str__(self):
        return self.raw

    def __repr__(self):
        return f"Unknown({self.raw!r})"


# -----------------------------
# Node helpers (shared with the differentiator)
# -----------------------------

def is_zero(node):
    return isinstance(node, Number) and node.value == 0


def is_one(node):
    return isinstance(node, Number) and node.value == 1


def split_sign(node):
    """Return (is_negative, magnitude) so sums can print 'a - b' instead of 'a + -b'."""
    if isinstance(node, Number) and node.value < 0:
        return True, Number(-node.value)
    if isinstance(node, Negation):
        return True, node.operand
    if isinstance(node, BinOp) and node.operator in ('*', '/'):
        negative, magnitude = split_sign(node.left)
        if negative:
            if node.operator == '*' and is_one(magnitude):
                return True, node.right
            return True, BinOp(magnitude, node.operator, node.right)
    return False, node


def negate(node):
    """Negate a node, folding the sign into numbers and leading coefficients."""
    if isinstance(node, Number):
        return Number(-node.value) if node.value != 0 else Number(0)
    if isinstance(node, Negation):
        return node.operand
    if isinstance(node, BinOp) and node.operator in ('*', '/') and isinstance(node.left, Number):
        coefficient = -node.left.value
        if coefficient == 1 and node.operator == '*':
            return node.right
        return BinOp(Number(coefficient), node.operator, node.right)
    return Negation(node)


def split_terms(node):
    """Flatten the top-level sum into its signed terms (a leading '-' stays with its term)."""
    if isinstance(node, BinOp) and node.operator == '+':
        return split_terms(node.left) + split_terms(node.right)
    if isinstance(node, BinOp) and node.operator == '-':
        return split_terms(node.left) + [negate(term) for term in split_terms(node.right)]
    if isinstance(node, Negation) and isinstance(node.operand, BinOp) and node.operand.operator in ('+', '-'):
        return [negate(term) for term in split_terms(node.operand)]
    return [node]


def join_terms(terms):
    """Add terms back together, dropping zeros; an empty sum is 0."""
    remaining = [term for term in terms if not is_zero(term)]
    if not remaining:
        return Number(0)
    ergebnis = remaining[0]
    for term in remaining[1:]:
        ergebnis = BinOp(ergebnis, '+', term)
    return ergebnis


# -----------------------------
# Tokenizer
# -----------------------------

def split_letters(word, variable):
    """Break a run of letters into function names, constants, the variable and symbols.

    Function names and 'pi' win over single letters, so with variable 's' the word
    'sin' is still the sine function and with variable 'p' 'pi' is still the constant.
    """
    tokens = []
    b = 0
    while b < len(word):
        rest = word[b:]
        function_name = next((name for name in Function_Names if rest.startswith(name)), None)

        if function_name:
            tokens.append(function_name)
            b += len(function_name)
        elif rest.startswith("pi"):
            tokens.append("pi")
            b += 2
        elif word[b] == variable:
            tokens.append("var:" + word[b])
            b += 1
        elif word[b] in ScientificEngine.CONSTANTS:
            tokens.append(word[b])
            b += 1
        else:
            tokens.append("sym:" + word[b])
            b += 1
    return tokens


def translator(problem, variable="x"):
    """Convert raw input string into a token list (numbers, ops, parens, names).

    Notes:
    - '**' is read as '^'.
    - Inserts implicit multiplication where needed (e.g., '3x' -> 3.0, '*', 'var:x').
    """
    full_problem = []
    b = 0

    while b < len(problem):
        current_char = problem[b]

        # --- Numbers: digits and decimal separator ---
        if isInt(current_char) or current_char == ".":
            str_number = current_char
            hat_schon_komma = current_char == "."  # Only one dot allowed in a numeric literal

            while (b + 1 < len(problem)) and (isInt(problem[b + 1]) or problem[b + 1] == "."):
                if problem[b + 1] == ".":
                    if hat_schon_komma:
                        raise E.SyntaxError("Double comma sign.", code="3008")
                    hat_schon_komma = True

                b += 1
                str_number += problem[b]

            if not isfloat(str_number):
                raise E.SyntaxError(f"Unexpected token: {str_number}", code="3011")
            full_problem.append(float(str_number))

        # --- '**' is the same as '^' ---
        elif current_char == "*" and b + 1 < len(problem) and problem[b + 1] == "*":
            full_problem.append("^")
            b += 1

        # --- Operators ---
        elif current_char in Operations:
            full_problem.append(current_char)

        # --- Whitespace (ignored) ---
        elif current_char.isspace():
            pass

        # --- Parentheses ---
        elif current_char in ("(", ")"):
            full_problem.append(current_char)

        # --- Names: functions, constants, the variable, other letters ---
        elif current_char.isalpha():
            start = b
            while b + 1 < len(problem) and problem[b + 1].isalpha():
                b += 1
            full_problem.extend(split_letters(problem[start:b + 1], variable))

        else:
            raise E.SyntaxError(f"Unexpected character: {current_char}", code="3012")

        b = b + 1

    # --- Implicit multiplication pass ---
    # number/name/')' followed by '(' / number / name / function
    b = 0
    while b + 1 < len(full_problem):
        aktuelles_element = full_problem[b]
        nachfolger = full_problem[b + 1]

        links_ok = isinstance(aktuelles_element, float) or aktuelles_element == ")" or is_name(aktuelles_element)
        rechts_ok = (isinstance(nachfolger, float) or nachfolger == "(" or is_name(nachfolger)
                     or nachfolger in ScientificEngine.FUNCTIONS)

        # sec^2(x): the 2 belongs to the function name, not to a product
        ist_funktionspotenz = b >= 2 and full_problem[b - 1] == "^" and full_problem[b - 2] in ScientificEngine.FUNCTIONS

        if links_ok and rechts_ok and not ist_funktionspotenz:
            full_problem.insert(b + 1, "*")

        b += 1

    return full_problem


def is_name(token):
    """Variable, symbol or constant token (anything that stands for a value on its own)."""
    return isinstance(token, str) and (token.startswith("var:") or token.startswith("sym:")
                                       or token in ScientificEngine.CONSTANTS)


# -----------------------------
# Parser (recursive descent)
# -----------------------------

def ast(received_string, variable="x"):
    """Parse an expression string into an AST.
    Implements precedence via nested functions: factor → power → unary → term → sum.
    """
    analysed = translator(received_string, variable)

    if not analysed:
        raise E.SyntaxError("Empty expression.", code="3013", equation=received_string)

    if debug == True:
        print(analysed)

    # ---- Parsing functions in precedence order ----

    def parse_factor(tokens):
        """Numbers, names, sub-expressions in '()', and function calls."""
        if len(tokens) > 0:
            token = tokens.pop(0)
        else:
            raise E.SyntaxError("Unexpected end of expression.", code="3014")

        # Parenthesized sub-expression
        if token == "(":
            baum_in_der_klammer = parse_sum(tokens)
            if not tokens or tokens.pop(0) != ')':
                raise E.SyntaxError("Missing closing parenthesis ')'", code="3009")
            return baum_in_der_klammer

        # Function call, optionally written with a power prefix: sec^2(x)
        elif isinstance(token, str) and token in ScientificEngine.FUNCTIONS:
            potenz = None
            if len(tokens) >= 2 and tokens[0] == "^" and isinstance(tokens[1], float):
                tokens.pop(0)
                potenz = tokens.pop(0)

            if not tokens or tokens.pop(0) != '(':
                raise E.SyntaxError(f"Missing opening parenthesis after function {token}", code="3000")

            argument_baum = parse_sum(tokens)

            if not tokens or tokens.pop(0) != ')':
                raise E.SyntaxError(f"Missing closing parenthesis after function '{token}'", code="3009")

            baum = Function(token, argument_baum)
            if potenz is not None:
                baum = BinOp(baum, '^', Number(potenz))
            return baum

        # Literals / names
        elif isinstance(token, float):
            return Number(token)
        elif isinstance(token, str) and token.startswith("var:"):
            return Variable(token[4:])
        elif isinstance(token, str) and token.startswith("sym:"):
            return Symbol(token[4:])
        elif isinstance(token, str) and token in ScientificEngine.CONSTANTS:
            return Constant(token)
        else:
            raise E.SyntaxError(f"Unexpected token: {token}", code="3011")

    def parse_power(tokens):
        """Exponentiation '^' (right associative, binds tighter than unary minus on its left)."""
        basis = parse_factor(tokens)
        if tokens and tokens[0] == "^":
            tokens.pop(0)
            exponent = parse_unary(tokens)
            return BinOp(basis, '^', exponent)
        return basis

    def parse_unary(tokens):
        """Handle leading '+'/'-'."""
        if tokens and tokens[0] in ('+', '-'):
            operator = tokens.pop(0)
            operand = parse_unary(tokens)

            if operator == '-':
                # Optimize for literal: -Number → Number(-value)
                if isinstance(operand, Number):
                    return Number(-operand.value)
                return Negation(operand)
            else:
                return operand
        return parse_power(tokens)

    def parse_term(tokens):
        """Multiplication and division."""
        aktueller_baum = parse_unary(tokens)
        while tokens and tokens[0] in ("*", "/"):
            operator = tokens.pop(0)
            rechtes_teil = parse_unary(tokens)
            aktueller_baum = BinOp(aktueller_baum, operator, rechtes_teil)
        return aktueller_baum

    def parse_sum(tokens):
        """Addition and subtraction."""
        aktueller_baum = parse_term(tokens)
        while tokens and tokens[0] in ("+", "-"):
            operator = tokens.pop(0)
            rechte_seite = parse_term(tokens)
            aktueller_baum = BinOp(aktueller_baum, operator, rechte_seite)
        return aktueller_baum

    try:
        finaler_baum = parse_sum(analysed)
    except RecursionError:
        raise E.SyntaxError("Expression is nested too deeply.", code="3016", equation=received_string)

    if analysed:
        raise E.SyntaxError(f"Unexpected token: {analysed[0]}", code="3011", equation=received_string)

    if debug == True:
        print("Final AST:")
        print(repr(finaler_baum))

    return finaler_baum


# -----------------------------
# Point evaluation
# -----------------------------

def evaluate_at_point(expression, variable, value):
    """Substitute value for variable and evaluate; None (plus a printed diagnostic) on failure."""
    try:
        baum = ast(str(expression), variable)
        ergebnis = baum.evaluate({variable: float(value)})
        if not math.isfinite(ergebnis):
            raise E.CalculationError(f"Result is not finite: {ergebnis}", code="2003")
        return ergebnis

    except (E.MathError, ValueError, TypeError, OverflowError, ZeroDivisionError) as e:
        print(f"Error evaluating expression '{expression}' at {variable} = {value}: {e}")
        return None


# -----------------------------
# Result formatting
# -----------------------------

def cleanup(ergebnis, decimal_places=None):
    """Round a numeric result for display.

    Returns:
        (rendered_value, rounding_flag)
    where rounding_flag indicates whether rounding occurred.
    """
    rounding = False

    if decimal_places is None:
        decimal_places = config_manager.load_setting_value("decimal_places")

    if ergebnis == int(ergebnis):
        return format_number(ergebnis), rounding

    wert = Decimal(repr(ergebnis))

    # A temporary precision boost prevents Decimal.InvalidOperation during quantize()
    getcontext().prec = 128
    if decimal_places >= 0:
        rundungs_muster = Decimal('1e-' + str(decimal_places))
    else:
        rundungs_muster = Decimal('1')
    gerundetes_ergebnis = wert.quantize(rundungs_muster)
    getcontext().prec = 50

    if gerundetes_ergebnis != wert:
        rounding = True

    return f"{gerundetes_ergebnis.normalize():f}", rounding


def test_main():
    """Simple REPL-like runner for manual testing of the evaluator."""
    print("Enter the expression: ")
    problem = input()
    print("Enter the value of x: ")
    wert = input()
    print(evaluate_at_point(problem, "x", float(wert)))


if __name__ == "__main__":
    test_main()
