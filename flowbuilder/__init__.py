"""Visual flow builder: graph editing core and PySide6 desktop UI."""

__version__ = "1.0.0"
