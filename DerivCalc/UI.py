# UI.py
""""PySide6 user interface for the Derivative Calculator.

Structure
---------
- Calculator UI: main window with the input form, result area and step list
- Settings UI: modal dialog for user preferences

Responsibilities (Calculator)
-----------------------------
- Build window, input form, buttons and result views
- Validate and dispatch the request to DerivativeEngine in a worker thread
- Render the derivative, the value at a point and the step-by-step solution
- Show engine errors as dialogs
- Clipboard integration (Shift + copy copies the whole step list)


Responsibilities (Settings)
---------------------------

- Load Current Settings and Settings Descriptions via Config_Manager
- Validate user input (e.g. minimum decimal places, range of the highest order)
- Save and apply theme changes immediately


Threading Note
--------------
Differentiation runs off the UI thread in Worker(QObject), so the UI can still handle events like resizing.
Results (or errors) are emitted via a Qt signal and handled back in the UI.
"""""

from PySide6 import QtWidgets, QtGui
from PySide6.QtCore import Qt, QObject, Signal
import sys
import html
import re
from pathlib import Path
import threading
from collections import Counter
from pynput.keyboard import Controller
import pyperclip
from . import error as E  # Imports error.py as a module
from . import config_manager as config_manager
from . import DerivativeEngine as DerivativeEngine
from . import MathEngine as MathEngine
from . import DisplayFormatter as DisplayFormatter

# Resolve project root depending on run mode (Script or .exe)
if getattr(sys, 'frozen', False):
    # We are running in a PyInstaller bundle (.exe)
    PROJECT_ROOT = Path(sys._MEIPASS)
else:
    # We are running in a normal Python environment (.py)
    PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Limits for the integer settings: key -> (minimum, maximum)
INTEGER_LIMITS = {
    "decimal_places": (2, 15),
    "max_order": (1, 10),
}

BOLD_PATTERN = re.compile(r"\*\*(.+?)\*\*")


def is_shift_pressed():
    """""

    Small and simple check, whether shift is pressed or not.
    Used for the "shift to copy steps" behavior.

    """""

    keyboard_controller = Controller()
    return keyboard_controller.shift_pressed


def step_to_html(step, latex_output):
    """One trace line as HTML; '**...**' markers become bold."""
    if latex_output:
        step = DisplayFormatter.format_step_for_display(step)
    step = html.escape(step, quote=False)
    return BOLD_PATTERN.sub(r"<b>\1</b>", step)


class Worker(QObject):
    """""

    This Class is always run in a seperate thread, responsible for transmitting the request to DerivativeEngine.py
    and emits a Signal when the calculations are done / failed back to the Calculator UI for processing

    """""

    job_finished = Signal(object, object)

    def __init__(self, request):
        super().__init__()
        self.data = request

    def run_Calc(self):

        try:
            # --- 1. Validate ---
            expression, variable, order, x_value = DerivativeEngine.validate_request(
                self.data["function"], self.data["variable"], self.data["order"], self.data["x_value"])

            # --- 2. Differentiate ---
            result = DerivativeEngine.compute_derivative(expression, variable, order)
            steps = list(result.steps)

            # --- 3. Optional evaluation at a point ---
            numerical_result = None
            if x_value is not None:
                numerical_result = MathEngine.evaluate_at_point(result.derivative, variable, x_value)
                steps.extend(DerivativeEngine.evaluation_steps(variable, order, x_value, numerical_result))

            payload = {
                "function": expression,
                "variable": variable,
                "order": order,
                "x_value": x_value,
                "derivative": result.derivative,
                "numerical_result": numerical_result,
                "steps": steps,
                "rules": list(result.rules),
            }

            # --- 4. Send Success Signal ---
            self.job_finished.emit(payload, self.data)

        except E.MathError as e:
            # --- 5. Send Math Error Signal ---
            # Found a known, handled error (e.g., "Please enter a function.")
            self.job_finished.emit(e, self.data)

        except Exception as e:
            # --- 6. Send Critical Error Signal ---
            # Found an unexpected crash we didn't plan for (e.g., a bug in the code)
            critical_error = E.MathError(
                message=f"Unexpected crash: {e}",
                code="9999",
                equation=self.data.get("function")
            )
            self.job_finished.emit(critical_error, self.data)


class SettingsDialog(QtWidgets.QDialog):
    """""

    This class is responsible for managing the settings window, saving the new settings and opening an error
    message if something went wrong.

    All of the Settings can be seperated into two categories:
    1. Checkboxes   (Managed with True or False)
    2. Input Fields (Managed as an Integer)

    """""

    settings_saved = Signal()  # Signal to tell the main window to update

    def __init__(self, parent=None):
        super().__init__(parent)
        self.widgets = {}  # Dictionary, in which all of the Widgets (Setting options) are saved and stored.

        # --- 1. Window Setup ---
        self.setWindowTitle("Calculator Settings")
        self.setMinimumSize(340, 240)

        main_layout = QtWidgets.QVBoxLayout(self)

        # --- 2. Load Settings ---
        self.setting_value_list = config_manager.load_setting_value("all")
        self.setting_description_list = config_manager.load_setting_description("all")

        # --- 3. Build Widgets ---
        for key_value, value in self.setting_value_list.items():
            description = self.setting_description_list.get(key_value, key_value)

            # --- 3a. Checkbox Builder (for Boolean settings) ---
            if isinstance(value, bool):
                checkbox = QtWidgets.QCheckBox(description)
                checkbox.setChecked(value)
                main_layout.addWidget(checkbox)
                self.widgets[key_value] = checkbox

            # --- 3b. Input Field Builder (for Integer settings) ---
            elif MathEngine.isInt(value):
                minimum, maximum = INTEGER_LIMITS.get(key_value, (0, 100))
                row_h_layout = QtWidgets.QHBoxLayout()
                main_layout.addLayout(row_h_layout)
                label = QtWidgets.QLabel(f"{description} ({minimum}-{maximum}):")
                input_field = QtWidgets.QLineEdit()
                input_field.setPlaceholderText(str(value))  # Show current value as placeholder

                row_h_layout.addWidget(label)
                row_h_layout.addWidget(input_field)
                row_h_layout.setStretch(1, 1)
                self.widgets[key_value] = input_field

        # --- 4. OK / Cancel Buttons ---
        button_box = QtWidgets.QDialogButtonBox(QtWidgets.QDialogButtonBox.Ok | QtWidgets.QDialogButtonBox.Cancel)
        main_layout.addWidget(button_box)
        main_layout.addStretch(1)

        button_box.accepted.connect(lambda: self.save_settings(self.setting_value_list))
        button_box.rejected.connect(self.reject)

        self.update_darkmode()

    def save_settings(self, setting_value_list):
        for key_value, widget in self.widgets.items():

            # --- 1. Handle Checkboxes ---
            if isinstance(widget, QtWidgets.QCheckBox):
                setting_value_list[key_value] = widget.isChecked()

            # --- 2. Handle Input Fields (like 'decimal_places') ---
            elif isinstance(widget, QtWidgets.QLineEdit):
                new_value_str = widget.text().strip()

                # If user left it blank, keep the old value
                if new_value_str == "":
                    continue

                try:
                    # --- 3. Validation ---
                    new_value_int = int(new_value_str)
                    minimum, maximum = INTEGER_LIMITS.get(key_value, (0, 100))
                    if new_value_int < minimum or new_value_int > maximum:
                        raise ValueError(f"'{new_value_int}' is outside {minimum}-{maximum}.")
                    setting_value_list[key_value] = new_value_int

                except ValueError as e:
                    # --- 4. Input Validation Error ---
                    # Show an error box and STOP the save process
                    QtWidgets.QMessageBox.critical(self, "Invalid Input:",
                                                   f"Error in input for '{key_value}':\n\n{e}\n\nPlease correct your input.")
                    return

        # --- 5. Write to File ---
        saved_settings = config_manager.save_setting(setting_value_list)

        if saved_settings != {}:
            self.settings_saved.emit()
            self.accept()
        else:
            QtWidgets.QMessageBox.critical(self, "Error",
                                           f"Error 4501: {E.ERROR_MESSAGES['4501']}config.json")

    def update_darkmode(self):
        # Applies the darkmode stylesheet if the setting is True
        if self.setting_value_list["darkmode"] == True:
            self.setStyleSheet("""
                        QDialog {background-color: #121212;}
                        QLabel {color: white;}
                        QCheckBox {color: white;}
                        QLineEdit {background-color: #444444;color: white;border: 1px solid #666666;}
                        QDialogButtonBox QPushButton {background-color: #666666;color: white;}""")
        else:
            self.setStyleSheet("")


class DerivativeCalculator(QtWidgets.QWidget):

    def __init__(self):
        super().__init__()

        # --- 1. Load Settings ---
        self.setting_value_list = config_manager.load_setting_value("all")

        # --- 2. Instance State Variables ---
        self.thread_active = False  # Is a calculation running?
        self.worker_instance = None
        self.last_result = None  # Payload of the last successful calculation
        self.button_objects = {}

        # --- 3. Window Setup ---
        icon_path = PROJECT_ROOT / "icons" / "icon.svg"
        self.setWindowIcon(QtGui.QIcon(str(icon_path)))
        self.setWindowTitle("Derivative Calculator")
        self.resize(560, 640)
        main_v_layout = QtWidgets.QVBoxLayout(self)

        # --- 4. Input Form ---
        form_layout = QtWidgets.QFormLayout()
        main_v_layout.addLayout(form_layout)

        self.function_input = QtWidgets.QLineEdit()
        self.function_input.setPlaceholderText("e.g., x^3 + 2*x^2 + x + 1")
        self.function_input.returnPressed.connect(self.start_calculation)
        form_layout.addRow("Function f(x):", self.function_input)

        self.variable_input = QtWidgets.QLineEdit("x")
        self.variable_input.setMaxLength(1)
        form_layout.addRow("Variable:", self.variable_input)

        self.order_input = QtWidgets.QSpinBox()
        self.order_input.setRange(1, self.setting_value_list["max_order"])
        form_layout.addRow("Derivative order:", self.order_input)

        self.x_value_input = QtWidgets.QLineEdit()
        self.x_value_input.setPlaceholderText("e.g., 2 (optional)")
        self.x_value_input.returnPressed.connect(self.start_calculation)
        form_layout.addRow("Evaluate at:", self.x_value_input)

        self.show_steps_input = QtWidgets.QCheckBox("Show step-by-step solution")
        self.show_steps_input.setChecked(self.setting_value_list["show_steps"])
        self.show_steps_input.toggled.connect(self.update_steps_view)
        form_layout.addRow("", self.show_steps_input)

        # --- 5. Buttons ---
        button_row = QtWidgets.QHBoxLayout()
        main_v_layout.addLayout(button_row)
        for text in ['⚙️', '📋', 'C', '⏎']:
            button = QtWidgets.QPushButton(text)
            button.clicked.connect(lambda checked=False, val=text: self.handle_button_press(val))
            button_row.addWidget(button)
            self.button_objects[text] = button
        self.button_objects['📋'].setToolTip("Copy derivative (Shift: copy all steps)")

        # --- 6. Result Area ---
        self.display = QtWidgets.QLineEdit()
        self.display.setReadOnly(True)
        self.display.setAlignment(Qt.AlignmentFlag.AlignRight)
        font = self.display.font()
        font.setPointSize(18)
        self.display.setFont(font)
        main_v_layout.addWidget(self.display)

        self.value_label = QtWidgets.QLabel("")
        self.value_label.setAlignment(Qt.AlignmentFlag.AlignRight)
        main_v_layout.addWidget(self.value_label)

        self.rules_label = QtWidgets.QLabel("")
        self.rules_label.setWordWrap(True)
        main_v_layout.addWidget(self.rules_label)

        self.steps_view = QtWidgets.QTextBrowser()
        main_v_layout.addWidget(self.steps_view, 1)

        self.update_darkmode()
        self.update_return_button()

    # --- Button Handling ---
    def handle_button_press(self, value):
        if value == '⚙️':
            self.open_settings()

        elif value == '📋':
            if self.last_result is None:
                return
            if is_shift_pressed():
                pyperclip.copy("\n".join(self.last_result["steps"]))
            else:
                pyperclip.copy(self.last_result["derivative"])

        elif value == 'C':
            self.function_input.clear()
            self.x_value_input.clear()
            self.order_input.setValue(1)
            self.display.clear()
            self.value_label.clear()
            self.rules_label.clear()
            self.steps_view.clear()
            self.last_result = None

        elif value == '⏎':
            self.start_calculation()

    def start_calculation(self):
        if self.thread_active:
            QtWidgets.QMessageBox.warning(self, "Busy", f"Error 4002: {E.ERROR_MESSAGES['4002']}")
            return

        request = {
            "function": self.function_input.text(),
            "variable": self.variable_input.text(),
            "order": self.order_input.value(),
            "x_value": self.x_value_input.text(),
        }

        # --- Start Worker Thread ---
        # We give the calculation job to the Worker to keep the UI from freezing
        self.thread_active = True
        self.update_return_button()
        self.display.setText("...")
        QtWidgets.QApplication.processEvents()

        self.worker_instance = Worker(request)
        self.worker_instance.job_finished.connect(self.Calc_result)
        my_thread = threading.Thread(target=self.worker_instance.run_Calc, daemon=True)
        my_thread.start()

    def update_return_button(self):
        # --- Visual Feedback for Calculation ---
        return_button = self.button_objects.get('⏎')
        if not return_button:
            return

        if self.thread_active == True:
            return_button.setStyleSheet("background-color: #FF0000; color: white; font-weight: bold;")
            return_button.setText("X")
        else:
            return_button.setStyleSheet("background-color: #007bff; color: white; font-weight: bold;")
            return_button.setText("⏎")
        return_button.update()

    def update_darkmode(self):
        # --- Apply Dark/Light Mode ---
        if self.setting_value_list["darkmode"] == True:
            self.setStyleSheet("""
                QWidget {background-color: #121212; color: white;}
                QLineEdit, QSpinBox, QTextBrowser {background-color: #1e1e1e; color: white; border: 1px solid #444444;}
                QPushButton {background-color: #2e2e2e; color: white; font-weight: bold;}""")
        else:
            self.setStyleSheet("")
        self.update_return_button()

    def open_settings(self):
        # --- Open Settings Dialog ---
        settings_dialog = SettingsDialog(self)
        settings_dialog.exec()  # "exec" makes the dialog modal (blocks main window)

        # --- Reload settings after dialog closes ---
        self.setting_value_list = config_manager.load_setting_value("all")
        self.order_input.setMaximum(self.setting_value_list["max_order"])
        self.update_darkmode()
        self.update_steps_view()

    def get_message_box_stylesheet(self):
        # --- Error Box Styling ---
        if self.setting_value_list["darkmode"] == True:
            return """
                QMessageBox {
                    background-color: #121212;
                    color: white;
                }
                QLabel {
                    color: white;
                }
                QPushButton {
                    background-color: #2e2e2e;
                    color: white;
                    border: 1px solid #444444;
                    padding: 5px 15px;
                }
            """
        else:
            return ""

    def update_steps_view(self):
        # --- Step list and rule summary for the last result ---
        if self.last_result is None or not self.show_steps_input.isChecked():
            self.steps_view.clear()
            self.rules_label.clear()
            return

        latex_output = self.setting_value_list["latex_output"] == True
        lines = [step_to_html(step, latex_output) for step in self.last_result["steps"]]
        self.steps_view.setHtml("<br>".join(lines))

        rule_counts = Counter(self.last_result["rules"])
        summary = ", ".join(f"{name} ({count}×)" if count > 1 else name for name, count in rule_counts.items())
        self.rules_label.setText(f"Rules applied: {summary}")

    def Calc_result(self, result, request):
        self.thread_active = False  # Thread is no longer active
        self.update_return_button()

        if isinstance(result, E.MathError):
            error_obj = result
            error_box = QtWidgets.QMessageBox(self)
            error_code = error_obj.code
            additional_info = f"Details: {error_obj.message}\nFunction: {error_obj.equation}"

            error_box.setIcon(QtWidgets.QMessageBox.Critical)
            error_box.setWindowTitle("Calculation error")
            error_box.setText(f"Error {error_code}: {E.ERROR_MESSAGES.get(error_code, 'Unknown error')}")
            error_box.setInformativeText(additional_info)
            error_box.setStandardButtons(QtWidgets.QMessageBox.Ok)
            error_box.setStyleSheet(self.get_message_box_stylesheet())
            error_box.exec()
            self.display.clear()
            return

        self.last_result = result
        striche = "'" * result["order"]
        variable = result["variable"]

        if self.setting_value_list["latex_output"] == True:
            derivative_text = DisplayFormatter.format_math_display(result["derivative"])
        else:
            derivative_text = result["derivative"]
        self.display.setText(f"f{striche}({variable}) = {derivative_text}")

        # --- Value at the requested point ---
        if result["x_value"] is None:
            self.value_label.clear()
        elif result["numerical_result"] is None:
            self.value_label.setText(f"f{striche}({MathEngine.format_number(result['x_value'])}) is undefined")
        else:
            ausgabe, rounding = MathEngine.cleanup(result["numerical_result"],
                                                   self.setting_value_list["decimal_places"])
            approx_sign = "≈" if rounding else "="
            self.value_label.setText(f"f{striche}({MathEngine.format_number(result['x_value'])}) {approx_sign} {ausgabe}")

        self.update_steps_view()


def main():
    # --- Main Application Entry Point ---
    app = QtWidgets.QApplication(sys.argv)
    window = DerivativeCalculator()
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
