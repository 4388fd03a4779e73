# ScientificEngine
import math

from . import error as E


# Function names the parser recognizes, mapped to their math implementations.
# 'ln' is the natural logarithm, 'log' is base 10.
FUNCTIONS = {
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "sec": lambda value: 1 / math.cos(value),
    "ln": math.log,
    "log": math.log10,
    "sqrt": math.sqrt,
    "exp": math.exp,
}

CONSTANTS = {
    "e": math.e,
    "pi": math.pi,
    "π": math.pi,
}



def isPi(problem):
    if problem == "π" or problem.lower() == "pi":
        return math.pi
    else:
        return False


def isE(problem):
    if problem == "e":
        return math.e
    else:
        return False


def isFunction(name):
    return name in FUNCTIONS


def constant_value(name):
    """Return the value of a named constant ('e', 'pi', 'π')."""
    if isPi(name) is not False:
        return isPi(name)
    if isE(name) is not False:
        return isE(name)
    raise E.CalculationError(f"No value for symbol: {name}", code="3015")


def apply_function(name, value):
    """Evaluate a recognized function at a float argument.

    Domain problems (ln(-1), sqrt(-4), sec at a cosine zero) surface as
    CalculationError so the evaluator can report them uniformly.
    """
    if name not in FUNCTIONS:
        raise E.CalculationError(f"Unknown function: {name}", code="2000")

    try:
        ergebnis = FUNCTIONS[name](value)
    except ValueError:
        raise E.CalculationError(f"{name}({value}) is outside the function's domain.", code="2001")
    except ZeroDivisionError:
        raise E.CalculationError(f"{name}({value}) divides by zero.", code="3003")
    except OverflowError:
        raise E.CalculationError(f"{name}({value}) is too big.", code="2002")

    return ergebnis


def test_main():
    print("Enter function name and argument (e.g. 'sin 1.5'): ")
    received_string = input()
    name, argument = received_string.split(maxsplit=1)
    print(apply_function(name, float(argument)))


if __name__ == "__main__":
    test_main()
