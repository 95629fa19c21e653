"""
Node palette for adding funnel steps to the canvas.

Lists the template catalog grouped by category, a button for custom
nodes, and a summary of the current funnel.
"""

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtGui import QFont
from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QGridLayout,
    QPushButton, QFrame, QScrollArea
)

from models import FunnelStats, NodeCategory, NodeTemplate, templates_by_category


# Glyphs drawn for the symbolic icon names used by templates
ICON_GLYPHS = {
    "form": "✎",
    "megaphone": "📣",
    "share": "↗",
    "users": "👥",
    "database": "🗄",
    "target": "◎",
    "gauge": "◔",
    "mail": "✉",
    "message": "💬",
    "phone": "☎",
    "calendar": "📅",
    "dollar": "$",
    "check": "✓",
    "x": "✕",
    "circle": "●",
}

CATEGORY_TITLES = {
    NodeCategory.ACQUISITION: "Acquisition",
    NodeCategory.SYSTEM: "System",
    NodeCategory.COMMUNICATION: "Communication",
    NodeCategory.CONVERSION: "Conversion",
}


def icon_glyph(icon: str) -> str:
    return ICON_GLYPHS.get(icon, ICON_GLYPHS["circle"])


class TemplateButton(QPushButton):
    """
    A button representing one catalog template.

    Clicking it adds a node of that template to the canvas.
    """

    clicked_with_key = pyqtSignal(str)

    def __init__(self, template: NodeTemplate, parent=None):
        super().__init__(parent)
        self.template = template
        self._setup_ui()

        self.clicked.connect(lambda: self.clicked_with_key.emit(self.template.key))

    def _setup_ui(self):
        self.setFixedHeight(56)
        self.setCursor(Qt.CursorShape.PointingHandCursor)
        self.setToolTip(self.template.description)

        color = self.template.color

        self.setStyleSheet(f"""
            QPushButton {{
                background: white;
                border: 2px solid #E5E7EB;
                border-radius: 10px;
                text-align: left;
                padding: 8px 10px;
            }}
            QPushButton:hover {{
                border-color: {color};
                background: #F9FAFB;
            }}
            QPushButton:pressed {{
                background: #F3F4F6;
            }}
        """)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(8, 4, 8, 4)
        layout.setSpacing(10)

        # Icon square
        icon_frame = QFrame()
        icon_frame.setFixedSize(34, 34)
        icon_frame.setStyleSheet(f"""
            QFrame {{
                background: {color};
                border-radius: 8px;
            }}
        """)

        icon_layout = QVBoxLayout(icon_frame)
        icon_layout.setContentsMargins(0, 0, 0, 0)

        icon_label = QLabel(icon_glyph(self.template.icon))
        icon_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        icon_label.setStyleSheet("""
            color: white;
            font-size: 15px;
            font-weight: bold;
        """)
        icon_layout.addWidget(icon_label)

        layout.addWidget(icon_frame)

        # Text
        text_layout = QVBoxLayout()
        text_layout.setSpacing(1)

        name_label = QLabel(self.template.label)
        name_label.setStyleSheet("""
            color: #374151;
            font-size: 13px;
            font-weight: 600;
        """)
        text_layout.addWidget(name_label)

        desc_label = QLabel(self.template.description)
        desc_label.setStyleSheet("""
            color: #9CA3AF;
            font-size: 11px;
        """)
        text_layout.addWidget(desc_label)

        layout.addLayout(text_layout)
        layout.addStretch()


class StatsCard(QFrame):
    """Counters for the funnel being edited."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setStyleSheet("""
            QFrame {
                background: #F9FAFB;
                border-radius: 8px;
            }
            QLabel {
                background: transparent;
            }
        """)

        grid = QGridLayout(self)
        grid.setContentsMargins(12, 10, 12, 10)
        grid.setHorizontalSpacing(12)
        grid.setVerticalSpacing(6)

        self._values = {}
        rows = [
            ("nodes", "Steps"),
            ("connections", "Connections"),
            ("automated", "Automated"),
            ("labeled", "Labeled"),
        ]
        for i, (key, title) in enumerate(rows):
            name = QLabel(title)
            name.setStyleSheet("color: #6B7280; font-size: 12px;")
            value = QLabel("0")
            value.setAlignment(Qt.AlignmentFlag.AlignRight)
            value.setStyleSheet("color: #111827; font-size: 12px; font-weight: 600;")
            grid.addWidget(name, i, 0)
            grid.addWidget(value, i, 1)
            self._values[key] = value

    def set_stats(self, stats: FunnelStats):
        self._values["nodes"].setText(str(stats.nodes))
        self._values["connections"].setText(str(stats.connections))
        self._values["automated"].setText(str(stats.automated))
        self._values["labeled"].setText(str(stats.labeled))


class NodePalette(QWidget):
    """
    Palette panel containing the template catalog.
    """

    templateSelected = pyqtSignal(str)
    customNodeRequested = pyqtSignal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self._setup_ui()

    def _setup_ui(self):
        self.setMinimumWidth(270)

        outer = QVBoxLayout(self)
        outer.setContentsMargins(0, 0, 0, 0)

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setFrameShape(QFrame.Shape.NoFrame)
        outer.addWidget(scroll)

        content = QWidget()
        scroll.setWidget(content)

        layout = QVBoxLayout(content)
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(8)

        # Title
        title = QLabel("Funnel Steps")
        title_font = QFont("SF Pro Display", 14)
        title_font.setWeight(QFont.Weight.Bold)
        title.setFont(title_font)
        title.setStyleSheet("color: #111827;")
        layout.addWidget(title)

        subtitle = QLabel("Click a step to add it to the canvas")
        subtitle.setStyleSheet("color: #6B7280; font-size: 12px; margin-bottom: 8px;")
        layout.addWidget(subtitle)

        for category, templates in templates_by_category().items():
            header = QLabel(CATEGORY_TITLES.get(category, category.name.title()))
            header.setStyleSheet("""
                color: #374151;
                font-size: 12px;
                font-weight: 600;
                margin-top: 8px;
            """)
            layout.addWidget(header)

            for template in templates:
                btn = TemplateButton(template)
                btn.clicked_with_key.connect(self.templateSelected)
                layout.addWidget(btn)

        custom_btn = QPushButton("+ Custom Step")
        custom_btn.setCursor(Qt.CursorShape.PointingHandCursor)
        custom_btn.setStyleSheet("""
            QPushButton {
                background: white;
                color: #8B5CF6;
                border: 2px dashed #C4B5FD;
                border-radius: 10px;
                padding: 10px;
                font-weight: 600;
                margin-top: 8px;
            }
            QPushButton:hover {
                background: #F5F3FF;
            }
        """)
        custom_btn.clicked.connect(self.customNodeRequested)
        layout.addWidget(custom_btn)

        stats_title = QLabel("Summary")
        stats_title.setStyleSheet("color: #374151; font-size: 12px; font-weight: 600; margin-top: 12px;")
        layout.addWidget(stats_title)

        self.stats_card = StatsCard()
        layout.addWidget(self.stats_card)

        layout.addStretch()

        # Help text at bottom
        help_text = QLabel("Drag from a green port to another\nstep to connect them")
        help_text.setAlignment(Qt.AlignmentFlag.AlignCenter)
        help_text.setStyleSheet("""
            color: #9CA3AF;
            font-size: 11px;
            padding: 12px;
            background: #F9FAFB;
            border-radius: 6px;
        """)
        layout.addWidget(help_text)

    def set_stats(self, stats: FunnelStats):
        self.stats_card.set_stats(stats)
