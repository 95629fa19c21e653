"""
Property panel for editing the selected funnel item.

Shows node fields (label, description, color, automation, delay,
conditions, actions) for a selected node, or label, style and curvature
for the connection being edited. Every edit goes through the graph's
update methods so its validation applies.
"""

from typing import Optional, Union

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtGui import QColor, QFont
from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QFormLayout,
    QLabel, QLineEdit, QComboBox, QSpinBox, QDoubleSpinBox,
    QScrollArea, QFrame, QPushButton, QCheckBox, QTextEdit,
    QColorDialog
)

from models import Connection, EdgeStyle, FunnelNode, GraphModel, effective_color


class SectionHeader(QLabel):
    """Styled section header."""

    def __init__(self, text: str, parent=None):
        super().__init__(text, parent)
        font = QFont("SF Pro Display", 11)
        font.setWeight(QFont.Weight.DemiBold)
        self.setFont(font)
        self.setStyleSheet("""
            QLabel {
                color: #374151;
                padding: 2px 0 4px 0;
                border-bottom: 1px solid #E5E7EB;
                margin-top: 8px;
            }
        """)


def input_style() -> str:
    """Common input widget styling."""
    return """
        QLineEdit, QComboBox, QSpinBox, QDoubleSpinBox, QTextEdit {
            border: 1px solid #D1D5DB;
            border-radius: 6px;
            padding: 2px 4px;
            background: white;
            color: #374151;
            min-height: 20px;
        }
        QLineEdit:focus, QComboBox:focus, QSpinBox:focus, QDoubleSpinBox:focus, QTextEdit:focus {
            border-color: #3B82F6;
            outline: none;
        }
        QComboBox::drop-down {
            border: none;
            padding-right: 8px;
        }
        QCheckBox {
            color: #374151;
            spacing: 8px;
        }
    """


def split_list(text: str) -> list[str]:
    """Comma-separated text to a list of trimmed, non-empty items."""
    return [item.strip() for item in text.split(",") if item.strip()]


class NodePropertiesWidget(QWidget):
    """Editor for a funnel node."""

    propertiesChanged = pyqtSignal()
    deleteRequested = pyqtSignal(str)  # node_id

    def __init__(self, parent=None):
        super().__init__(parent)
        self._node: Optional[FunnelNode] = None
        self._graph: Optional[GraphModel] = None
        self._setup_ui()

    def _setup_ui(self):
        self.setStyleSheet(input_style())
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(4)

        layout.addWidget(SectionHeader("Step"))

        form = QFormLayout()
        form.setSpacing(6)

        self._type_label = QLabel()
        self._type_label.setStyleSheet("color: #6B7280;")
        form.addRow("Type:", self._type_label)

        self._label_edit = QLineEdit()
        self._label_edit.textChanged.connect(self._on_label_changed)
        form.addRow("Name:", self._label_edit)

        self._desc_edit = QTextEdit()
        self._desc_edit.setFixedHeight(60)
        self._desc_edit.textChanged.connect(self._on_desc_changed)
        form.addRow("Description:", self._desc_edit)

        color_row = QHBoxLayout()
        self._color_edit = QLineEdit()
        self._color_edit.setPlaceholderText("Template color")
        self._color_edit.editingFinished.connect(self._on_color_edited)
        color_row.addWidget(self._color_edit)
        self._color_btn = QPushButton("Pick…")
        self._color_btn.clicked.connect(self._on_pick_color)
        color_row.addWidget(self._color_btn)
        form.addRow("Color:", color_row)

        layout.addLayout(form)

        layout.addWidget(SectionHeader("Automation"))

        config_form = QFormLayout()
        config_form.setSpacing(6)

        self._automation_check = QCheckBox("Runs automatically")
        self._automation_check.stateChanged.connect(self._on_config_changed)
        config_form.addRow("", self._automation_check)

        self._delay_spin = QSpinBox()
        self._delay_spin.setRange(0, 365)
        self._delay_spin.setSuffix(" days")
        self._delay_spin.valueChanged.connect(self._on_config_changed)
        config_form.addRow("Delay:", self._delay_spin)

        self._conditions_edit = QLineEdit()
        self._conditions_edit.setPlaceholderText("Score > 50, Valid company")
        self._conditions_edit.editingFinished.connect(self._on_config_changed)
        config_form.addRow("Conditions:", self._conditions_edit)

        self._actions_edit = QLineEdit()
        self._actions_edit.setPlaceholderText("Send email, WhatsApp")
        self._actions_edit.editingFinished.connect(self._on_config_changed)
        config_form.addRow("Actions:", self._actions_edit)

        layout.addLayout(config_form)

        self._delete_btn = QPushButton("Delete Step")
        self._delete_btn.setStyleSheet("""
            QPushButton {
                background: white;
                color: #DC2626;
                border: 1px solid #FCA5A5;
                border-radius: 6px;
                padding: 6px;
                margin-top: 12px;
            }
            QPushButton:hover {
                background: #FEF2F2;
            }
        """)
        self._delete_btn.clicked.connect(self._on_delete)
        layout.addWidget(self._delete_btn)

        layout.addStretch()

    def set_graph(self, graph: GraphModel):
        self._graph = graph

    def set_node(self, node: Optional[FunnelNode]):
        self._node = node
        self._update_display()

    def _update_display(self):
        widgets = [
            self._label_edit, self._desc_edit, self._color_edit,
            self._automation_check, self._delay_spin,
            self._conditions_edit, self._actions_edit,
        ]
        for w in widgets:
            w.blockSignals(True)

        if self._node:
            config = self._node.config
            self._type_label.setText(self._node.type.replace("_", " ").title())
            self._label_edit.setText(self._node.label)
            self._desc_edit.setPlainText(self._node.description)
            self._color_edit.setText(self._node.color or "")
            self._automation_check.setChecked(bool(config.get("automation")))
            self._delay_spin.setValue(int(config.get("delay") or 0))
            self._conditions_edit.setText(", ".join(config.get("conditions") or []))
            self._actions_edit.setText(", ".join(config.get("actions") or []))
        else:
            self._type_label.clear()
            self._label_edit.clear()
            self._desc_edit.clear()
            self._color_edit.clear()
            self._automation_check.setChecked(False)
            self._delay_spin.setValue(0)
            self._conditions_edit.clear()
            self._actions_edit.clear()

        for w in widgets:
            w.blockSignals(False)

    def _update(self, **fields):
        if self._node and self._graph and self._graph.update_node(self._node.id, **fields):
            self.propertiesChanged.emit()

    def _on_label_changed(self, text):
        self._update(label=text)

    def _on_desc_changed(self):
        self._update(description=self._desc_edit.toPlainText())

    def _on_color_edited(self):
        text = self._color_edit.text().strip()
        if text and not QColor(text).isValid():
            self._color_edit.setText(self._node.color or "" if self._node else "")
            return
        self._update(color=text or None)

    def _on_pick_color(self):
        if not self._node:
            return
        color = QColorDialog.getColor(QColor(effective_color(self._node)), self, "Step Color")
        if color.isValid():
            self._color_edit.setText(color.name())
            self._update(color=color.name())

    def _on_config_changed(self, *args):
        if not self._node:
            return
        config = dict(self._node.config)
        config["automation"] = self._automation_check.isChecked()

        delay = self._delay_spin.value()
        if delay:
            config["delay"] = delay
        else:
            config.pop("delay", None)

        for key, edit in (("conditions", self._conditions_edit), ("actions", self._actions_edit)):
            items = split_list(edit.text())
            if items:
                config[key] = items
            else:
                config.pop(key, None)

        self._update(config=config)

    def _on_delete(self):
        if self._node:
            self.deleteRequested.emit(self._node.id)


class ConnectionPropertiesWidget(QWidget):
    """Editor for a connection."""

    propertiesChanged = pyqtSignal()
    deleteRequested = pyqtSignal(str)  # edge_id

    def __init__(self, parent=None):
        super().__init__(parent)
        self._edge: Optional[Connection] = None
        self._graph: Optional[GraphModel] = None
        self._setup_ui()

    def _setup_ui(self):
        self.setStyleSheet(input_style())
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(4)

        layout.addWidget(SectionHeader("Connection"))

        form = QFormLayout()
        form.setSpacing(6)

        self._endpoints_label = QLabel()
        self._endpoints_label.setWordWrap(True)
        self._endpoints_label.setStyleSheet("color: #6B7280;")
        form.addRow("From → To:", self._endpoints_label)

        self._label_edit = QLineEdit()
        self._label_edit.setPlaceholderText("No label")
        self._label_edit.textChanged.connect(self._on_label_changed)
        form.addRow("Label:", self._label_edit)

        self._style_combo = QComboBox()
        for style in EdgeStyle:
            self._style_combo.addItem(style.name.title(), style)
        self._style_combo.currentIndexChanged.connect(self._on_style_changed)
        form.addRow("Style:", self._style_combo)

        self._curvature_spin = QDoubleSpinBox()
        self._curvature_spin.setRange(0.05, 1.0)
        self._curvature_spin.setSingleStep(0.05)
        self._curvature_spin.setDecimals(2)
        self._curvature_spin.valueChanged.connect(self._on_curvature_changed)
        form.addRow("Curvature:", self._curvature_spin)

        layout.addLayout(form)

        self._delete_btn = QPushButton("Delete Connection")
        self._delete_btn.setStyleSheet("""
            QPushButton {
                background: white;
                color: #DC2626;
                border: 1px solid #FCA5A5;
                border-radius: 6px;
                padding: 6px;
                margin-top: 12px;
            }
            QPushButton:hover {
                background: #FEF2F2;
            }
        """)
        self._delete_btn.clicked.connect(self._on_delete)
        layout.addWidget(self._delete_btn)

        layout.addStretch()

    def set_graph(self, graph: GraphModel):
        self._graph = graph

    def set_edge(self, edge: Optional[Connection]):
        self._edge = edge
        self._update_display()

    def _update_display(self):
        for w in (self._label_edit, self._style_combo, self._curvature_spin):
            w.blockSignals(True)

        if self._edge:
            source = self._graph.get_node(self._edge.from_id) if self._graph else None
            target = self._graph.get_node(self._edge.to_id) if self._graph else None
            self._endpoints_label.setText(
                f"{source.label if source else self._edge.from_id} → "
                f"{target.label if target else self._edge.to_id}"
            )
            self._label_edit.setText(self._edge.label or "")
            idx = self._style_combo.findData(self._edge.style)
            self._style_combo.setCurrentIndex(idx if idx >= 0 else 0)
            self._curvature_spin.setValue(self._edge.curvature)
            self._curvature_spin.setEnabled(self._edge.style == EdgeStyle.CURVED)
        else:
            self._endpoints_label.clear()
            self._label_edit.clear()
            self._style_combo.setCurrentIndex(0)

        for w in (self._label_edit, self._style_combo, self._curvature_spin):
            w.blockSignals(False)

    def _update(self, **fields):
        if self._edge and self._graph and self._graph.update_edge(self._edge.id, **fields):
            self.propertiesChanged.emit()

    def _on_label_changed(self, text):
        self._update(label=text or None)

    def _on_style_changed(self, idx):
        style = self._style_combo.currentData()
        self._curvature_spin.setEnabled(style == EdgeStyle.CURVED)
        self._update(style=style)

    def _on_curvature_changed(self, value):
        self._update(curvature=value)

    def _on_delete(self):
        if self._edge:
            self.deleteRequested.emit(self._edge.id)


class FunnelPropertyPanel(QWidget):
    """Main property panel that switches between node and connection editors."""

    propertiesChanged = pyqtSignal()
    deleteNodeRequested = pyqtSignal(str)
    deleteEdgeRequested = pyqtSignal(str)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._graph: Optional[GraphModel] = None
        self._setup_ui()

    def _setup_ui(self):
        self.setMinimumWidth(300)
        self.setMaximumWidth(400)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(12, 12, 12, 12)
        layout.setSpacing(0)

        # Title
        title = QLabel("Properties")
        title_font = QFont("SF Pro Display", 14)
        title_font.setWeight(QFont.Weight.Bold)
        title.setFont(title_font)
        title.setStyleSheet("color: #111827; padding-bottom: 12px;")
        layout.addWidget(title)

        # Scroll area
        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setFrameShape(QFrame.Shape.NoFrame)
        scroll.setStyleSheet("QScrollArea { background: transparent; }")

        self._content = QWidget()
        self._content_layout = QVBoxLayout(self._content)
        self._content_layout.setContentsMargins(0, 0, 0, 0)

        self._node_props = NodePropertiesWidget()
        self._node_props.propertiesChanged.connect(self.propertiesChanged)
        self._node_props.deleteRequested.connect(self.deleteNodeRequested)
        self._node_props.hide()
        self._content_layout.addWidget(self._node_props)

        self._edge_props = ConnectionPropertiesWidget()
        self._edge_props.propertiesChanged.connect(self.propertiesChanged)
        self._edge_props.deleteRequested.connect(self.deleteEdgeRequested)
        self._edge_props.hide()
        self._content_layout.addWidget(self._edge_props)

        self._empty_label = QLabel("Select a step or connection\nto view and edit properties")
        self._empty_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._empty_label.setStyleSheet("color: #9CA3AF; font-size: 13px; padding: 4px 2px;")
        self._content_layout.addWidget(self._empty_label)

        self._content_layout.addStretch()

        scroll.setWidget(self._content)
        layout.addWidget(scroll)

    def set_graph(self, graph: GraphModel):
        self._graph = graph
        self._node_props.set_graph(graph)
        self._edge_props.set_graph(graph)

    def set_selection(self, item: Optional[Union[FunnelNode, Connection]]):
        self._node_props.hide()
        self._edge_props.hide()
        self._empty_label.hide()

        if item is None:
            self._empty_label.show()
            self._node_props.set_node(None)
            self._edge_props.set_edge(None)
        elif isinstance(item, FunnelNode):
            self._node_props.set_node(item)
            self._node_props.show()
        elif isinstance(item, Connection):
            self._edge_props.set_edge(item)
            self._edge_props.show()
