"""Flow Builder application entry point."""

import sys


def main() -> int:
    """Application entry point.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    from flowbuilder.controller import create_application

    app, window, controller = create_application()
    window.show()

    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
