# error.py


class MathError(Exception):
    def __init__(self, message, code="9999", equation=None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.equation = equation

class SyntaxError(MathError):
    pass

class CalculationError(MathError):
    pass

class DerivativeError(MathError):
    pass

class ValidationError(MathError):
    pass





Error_Dictionary= {

    "1" : "Missing Files",
    "2" : "Scientific Calculation Error",
    "3" : "Parser Error",
    "4" : "UI Error",
    "5" : "Configuration Error",
    "6" : "Differentiation Error",
    "9" : "Runtime Error"

}

#Error Messages are structured in:
# 1. Digit: Main Error
# 2. Digit: Specification
# 3. and 4. Digit: Error Number



ERROR_MESSAGES = {
    "2000" : "Unknown function: ", # + function name
    "2001" : "Function argument outside of its domain: ", # + function call
    "2002" : "Number too big.",
    "2003" : "Result is not a finite number.",


    "3000" : "Missing '(' after function: ", # + function name
    "3003" : "Division by Zero",
    "3004" : "Invalid Operator: ", # + operator
    "3008" : "More than one '.' in one number.",
    "3009" : "Missing ')'. ",
    "3011" : "Unexpected Token: ", # + Token
    "3012" : "Unexpected character: ", # + character
    "3013" : "Empty expression.",
    "3014" : "Unexpected end of expression.",
    "3015" : "No value for symbol: ", # + symbol
    "3016" : "Expression is nested too deeply.",


    "4002" : "Calculation already Running!",
    "4501" : "Not all Settings could be saved: ", # + Error raising setting


    "6000" : "Derivative order must be a whole number of at least 1.",
    "6001" : "Derivative order is above the configured maximum: ", # + max_order
    "6002" : "Variable must be a single letter: ", # + variable
    "6003" : "Please enter a function.",
    "6004" : "No differentiation rule for term: ", # + term
    "6005" : "Evaluation point must be a valid number.",


    "9999" : "Unexpected Error: " #+error
}
