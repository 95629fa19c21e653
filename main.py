#!/usr/bin/env python3
"""
Funnel Builder - Main Entry Point

A visual editor for designing sales and marketing funnels: steps on a
canvas, connected by labeled, routed connections, saved per user to
local files or Supabase.

Usage:
    python main.py
    python main.py --debug               # Enable debug logging
    python main.py --store supabase      # Use the Supabase store this session
    python main.py --owner alice         # Save and list funnels as "alice"
    python main.py --config ./dev.json   # Use another settings file
"""

import sys
import logging
import argparse
from PyQt6.QtWidgets import QApplication
from PyQt6.QtCore import Qt
from PyQt6.QtGui import QFont, QPalette, QColor

from services import get_settings


def setup_logging(debug: bool = False):
    """Configure logging for the application."""
    level = logging.DEBUG if debug else logging.INFO

    # Create formatter
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)

    # Network chatter from the Supabase client stays at WARNING
    for name in ("httpx", "httpcore", "hpack"):
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized at {'DEBUG' if debug else 'INFO'} level")


def setup_application() -> QApplication:
    """Configure the Qt application."""
    # High DPI support
    QApplication.setHighDpiScaleFactorRoundingPolicy(
        Qt.HighDpiScaleFactorRoundingPolicy.PassThrough
    )

    app = QApplication(sys.argv)
    app.setApplicationName("Funnel Builder")
    app.setApplicationVersion("0.1.0")
    app.setOrganizationName("funnelbuilder")

    # Set default font
    font = QFont("SF Pro Display", 10)
    if not font.exactMatch():
        font = QFont("Segoe UI", 10)
    if not font.exactMatch():
        font = QFont("Helvetica Neue", 10)
    app.setFont(font)

    # Set up palette for consistent look
    palette = QPalette()
    palette.setColor(QPalette.ColorRole.Window, QColor("#F3F4F6"))
    palette.setColor(QPalette.ColorRole.WindowText, QColor("#111827"))
    palette.setColor(QPalette.ColorRole.Base, QColor("#FFFFFF"))
    palette.setColor(QPalette.ColorRole.AlternateBase, QColor("#F9FAFB"))
    palette.setColor(QPalette.ColorRole.Text, QColor("#374151"))
    palette.setColor(QPalette.ColorRole.Button, QColor("#FFFFFF"))
    palette.setColor(QPalette.ColorRole.ButtonText, QColor("#374151"))
    palette.setColor(QPalette.ColorRole.Highlight, QColor("#3B82F6"))
    palette.setColor(QPalette.ColorRole.HighlightedText, QColor("#FFFFFF"))
    app.setPalette(palette)

    return app


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description='Funnel Builder')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    parser.add_argument('--owner', metavar='ID', help='Owner the saved funnels belong to')
    parser.add_argument('--store', choices=['local', 'supabase'], help='Funnel store for this session')
    parser.add_argument('--config', metavar='PATH', help='Settings file to use')
    args = parser.parse_args()

    setup_logging(debug=args.debug)

    # First call decides the settings file for the whole session
    get_settings(args.config)

    app = setup_application()

    from views import MainWindow

    window = MainWindow(owner_id=args.owner, backend=args.store)
    window.show()

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
