"""QApplication bootstrap."""

import logging
import sys

from PyQt6.QtWidgets import QApplication

from layerlab.config.constants import APP_NAME, APP_VERSION, ORG_DOMAIN, ORG_NAME
from layerlab.main_window import MainWindow


def main() -> None:
    """Launch the application."""
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    app = QApplication(sys.argv)
    app.setApplicationName(APP_NAME)
    app.setApplicationVersion(APP_VERSION)
    app.setOrganizationName(ORG_NAME)
    app.setOrganizationDomain(ORG_DOMAIN)
    window = MainWindow()
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
