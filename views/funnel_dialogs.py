"""
Funnel dialogs.

Provides dialogs for:
- Naming a funnel before it is saved
- Browsing, opening and deleting saved funnels
- Creating a custom step
"""

from datetime import datetime
from typing import Optional

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtGui import QColor
from PyQt6.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QFormLayout,
    QLabel, QLineEdit, QPushButton, QTextEdit, QComboBox,
    QDialogButtonBox, QMessageBox, QTreeWidget, QTreeWidgetItem,
    QHeaderView, QColorDialog
)

from services import SavedFunnel
from .node_palette import ICON_GLYPHS


def format_timestamp(value: Optional[str]) -> str:
    """ISO timestamp as a short local date, or '-' if unknown."""
    if not value:
        return "-"
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).astimezone().strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return value


class SaveFunnelDialog(QDialog):
    """Dialog asking for the name a funnel is saved under."""

    def __init__(self, default_name: str = "", parent=None):
        super().__init__(parent)
        self._setup_ui(default_name)

    def _setup_ui(self, default_name: str):
        self.setWindowTitle("Save Funnel")
        self.setMinimumWidth(400)

        layout = QVBoxLayout(self)

        form = QFormLayout()
        self._name_edit = QLineEdit(default_name)
        self._name_edit.setPlaceholderText("Enter funnel name...")
        self._name_edit.textChanged.connect(self._validate)
        form.addRow("Funnel Name:", self._name_edit)
        layout.addLayout(form)

        button_box = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Save |
            QDialogButtonBox.StandardButton.Cancel
        )
        button_box.accepted.connect(self.accept)
        button_box.rejected.connect(self.reject)
        self._save_btn = button_box.button(QDialogButtonBox.StandardButton.Save)
        layout.addWidget(button_box)

        self._validate()

    def _validate(self):
        self._save_btn.setEnabled(bool(self._name_edit.text().strip()))

    def get_name(self) -> str:
        return self._name_edit.text().strip()


class SavedFunnelsDialog(QDialog):
    """
    Dialog listing the user's saved funnels.

    The dialog does not talk to the store itself: the window fills it
    with set_funnels() and performs deletes requested through
    deleteRequested, calling remove_funnel() once they succeed.
    """

    deleteRequested = pyqtSignal(str)  # funnel id
    refreshRequested = pyqtSignal()

    def __init__(self, funnels: Optional[list[SavedFunnel]] = None, parent=None):
        super().__init__(parent)
        self._funnels: list[SavedFunnel] = []
        self._selected: Optional[SavedFunnel] = None
        self._setup_ui()
        self.set_funnels(funnels or [])

    def _setup_ui(self):
        self.setWindowTitle("Saved Funnels")
        self.setMinimumSize(560, 400)

        layout = QVBoxLayout(self)

        top = QHBoxLayout()
        self._count_label = QLabel()
        self._count_label.setStyleSheet("color: #6B7280;")
        top.addWidget(self._count_label, 1)

        refresh_btn = QPushButton("Refresh")
        refresh_btn.clicked.connect(self.refreshRequested)
        top.addWidget(refresh_btn)
        layout.addLayout(top)

        self._tree = QTreeWidget()
        self._tree.setHeaderLabels(["Name", "Steps", "Connections", "Updated"])
        self._tree.setRootIsDecorated(False)
        self._tree.setAlternatingRowColors(True)
        self._tree.itemDoubleClicked.connect(lambda *args: self._on_open())
        self._tree.itemSelectionChanged.connect(self._on_selection_changed)

        header = self._tree.header()
        header.setSectionResizeMode(0, QHeaderView.ResizeMode.Stretch)
        for col in (1, 2, 3):
            header.setSectionResizeMode(col, QHeaderView.ResizeMode.ResizeToContents)

        layout.addWidget(self._tree)

        btn_layout = QHBoxLayout()

        self._delete_btn = QPushButton("Delete Funnel")
        self._delete_btn.setEnabled(False)
        self._delete_btn.clicked.connect(self._on_delete)
        btn_layout.addWidget(self._delete_btn)

        btn_layout.addStretch()

        button_box = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Open |
            QDialogButtonBox.StandardButton.Cancel
        )
        button_box.accepted.connect(self._on_open)
        button_box.rejected.connect(self.reject)
        self._open_btn = button_box.button(QDialogButtonBox.StandardButton.Open)
        self._open_btn.setEnabled(False)
        btn_layout.addWidget(button_box)

        layout.addLayout(btn_layout)

    def set_funnels(self, funnels: list[SavedFunnel]):
        self._funnels = list(funnels)
        self._tree.clear()
        for funnel in self._funnels:
            item = QTreeWidgetItem([
                funnel.name,
                str(len(funnel.nodes)),
                str(len(funnel.connections)),
                format_timestamp(funnel.updated_at),
            ])
            item.setData(0, Qt.ItemDataRole.UserRole, funnel.id)
            self._tree.addTopLevelItem(item)

        if self._funnels:
            self._count_label.setText(f"{len(self._funnels)} saved funnel(s)")
        else:
            self._count_label.setText("No saved funnels yet")
        self._on_selection_changed()

    def remove_funnel(self, funnel_id: str):
        self.set_funnels([f for f in self._funnels if f.id != funnel_id])

    def _current(self) -> Optional[SavedFunnel]:
        items = self._tree.selectedItems()
        if not items:
            return None
        funnel_id = items[0].data(0, Qt.ItemDataRole.UserRole)
        return next((f for f in self._funnels if f.id == funnel_id), None)

    def _on_selection_changed(self):
        has_selection = self._current() is not None
        self._open_btn.setEnabled(has_selection)
        self._delete_btn.setEnabled(has_selection)

    def _on_open(self):
        funnel = self._current()
        if funnel is None:
            return
        self._selected = funnel
        self.accept()

    def _on_delete(self):
        funnel = self._current()
        if funnel is None:
            return
        reply = QMessageBox.question(
            self,
            "Delete Funnel",
            f"Delete '{funnel.name}'? This cannot be undone.",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No
        )
        if reply == QMessageBox.StandardButton.Yes:
            self.deleteRequested.emit(funnel.id)

    def get_funnel(self) -> Optional[SavedFunnel]:
        """The funnel chosen with Open."""
        return self._selected


class CustomNodeDialog(QDialog):
    """Dialog for creating a step that is not in the catalog."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self._color: Optional[str] = None
        self._setup_ui()

    def _setup_ui(self):
        self.setWindowTitle("Custom Step")
        self.setMinimumWidth(400)

        layout = QVBoxLayout(self)

        form = QFormLayout()

        self._label_edit = QLineEdit()
        self._label_edit.setPlaceholderText("e.g. Webinar")
        self._label_edit.textChanged.connect(self._validate)
        form.addRow("Name:", self._label_edit)

        self._desc_edit = QTextEdit()
        self._desc_edit.setPlaceholderText("Optional description...")
        self._desc_edit.setMaximumHeight(80)
        form.addRow("Description:", self._desc_edit)

        self._icon_combo = QComboBox()
        for name, glyph in ICON_GLYPHS.items():
            self._icon_combo.addItem(f"{glyph}  {name}", name)
        self._icon_combo.setCurrentIndex(self._icon_combo.findData("circle"))
        form.addRow("Icon:", self._icon_combo)

        color_row = QHBoxLayout()
        self._color_label = QLabel("Category default")
        self._color_label.setStyleSheet("color: #6B7280;")
        color_row.addWidget(self._color_label, 1)
        color_btn = QPushButton("Pick…")
        color_btn.clicked.connect(self._on_pick_color)
        color_row.addWidget(color_btn)
        form.addRow("Color:", color_row)

        layout.addLayout(form)

        button_box = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok |
            QDialogButtonBox.StandardButton.Cancel
        )
        button_box.accepted.connect(self.accept)
        button_box.rejected.connect(self.reject)
        self._ok_btn = button_box.button(QDialogButtonBox.StandardButton.Ok)
        self._ok_btn.setText("Add Step")
        layout.addWidget(button_box)

        self._validate()

    def _validate(self):
        self._ok_btn.setEnabled(bool(self._label_edit.text().strip()))

    def _on_pick_color(self):
        color = QColorDialog.getColor(QColor(self._color or "#8B5CF6"), self, "Step Color")
        if color.isValid():
            self._color = color.name()
            self._color_label.setText(self._color)
            self._color_label.setStyleSheet(f"color: {self._color}; font-weight: 600;")

    def get_values(self) -> dict:
        """Keyword arguments for InputController.add_custom_node."""
        return {
            "label": self._label_edit.text().strip(),
            "description": self._desc_edit.toPlainText().strip(),
            "icon": self._icon_combo.currentData(),
            "color": self._color,
        }
