"""
main.py — Entry point for PDF Canvas Editor
"""

import logging
import os
import sys

# High-DPI support
os.environ.setdefault("QT_ENABLE_HIGHDPI_SCALING", "1")

from PyQt6.QtGui import QFont
from PyQt6.QtWidgets import QApplication

from main_window import MainWindow
from settings import APPLICATION, ORGANIZATION, EditorSettings


def main():
    logging.basicConfig(
        level=os.environ.get("PDF_EDITOR_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = QApplication(sys.argv)
    app.setApplicationName(APPLICATION)
    app.setOrganizationName(ORGANIZATION)
    app.setStyle("Fusion")

    font = QFont("Segoe UI", 10)
    app.setFont(font)

    # Light style sheet
    app.setStyleSheet("""
        QMainWindow { background: #f0f0f0; }
        QScrollArea#pdfScrollArea { border: none; background: #444; }
        QPushButton {
            padding: 4px 12px;
            border-radius: 4px;
            border: 1px solid #ccc;
            background: white;
        }
        QPushButton:hover { background: #f0f0f0; }
        QPushButton:pressed { background: #e0e0e0; }
        QPushButton:disabled { color: #aaa; }
        QStatusBar { background: #fafafa; border-top: 1px solid #e0e0e0; }
    """)

    window = MainWindow(EditorSettings.load())

    # Open a PDF passed as a command-line argument
    for arg in sys.argv[1:]:
        if arg.lower().endswith(".pdf") and os.path.exists(arg):
            window.load_file(arg)
            break

    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
