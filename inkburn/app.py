"""
Application entry point.
"""
import argparse
import logging
import sys

from PyQt5.QtWidgets import QApplication

from .config import load_settings


def configure_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )


def main():
    """
    Run the PDF annotator.
    An optional file path can be passed on the command line.
    """
    parser = argparse.ArgumentParser(description="Annotate PDFs and burn the markup into them.")
    parser.add_argument('file', nargs='?', help="PDF file to open")
    parser.add_argument('-v', '--verbose', action='store_true', help="Enable debug logging")
    args, qt_args = parser.parse_known_args()

    settings = load_settings()
    configure_logging('DEBUG' if args.verbose else settings.log_level)

    # Imported after logging is configured
    from .ui import MainWindow

    app = QApplication([sys.argv[0]] + qt_args)
    window = MainWindow(settings, args.file)
    window.showMaximized()
    sys.exit(app.exec_())
