"""
Main application window.

Assembles all UI components and manages the application layout.
"""

import logging
from dataclasses import replace
from typing import Callable, Optional

from PyQt6.QtCore import Qt
from PyQt6.QtGui import QAction, QKeySequence
from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QHBoxLayout, QToolBar, QPushButton,
    QLabel, QSplitter, QStatusBar, QMessageBox, QScrollArea,
    QSizePolicy, QFrame, QApplication
)

from models import GraphModel
from services import (
    InputController, PersistenceGateway, PersistenceError,
    SavedFunnel, create_store, get_settings
)
from services.persistence_worker import PersistenceTask
from .funnel_canvas import FunnelCanvas
from .funnel_dialogs import CustomNodeDialog, SaveFunnelDialog, SavedFunnelsDialog
from .node_palette import NodePalette
from .property_panel import FunnelPropertyPanel
from .settings_dialog import SettingsDialog

logger = logging.getLogger(__name__)


class FunnelToolbar(QToolBar):
    """Toolbar with file and zoom controls."""

    def __init__(self, parent=None):
        super().__init__("Funnel", parent)
        self.setMovable(False)
        self._setup_ui()

    def _setup_ui(self):
        self.setStyleSheet("""
            QToolBar {
                background: #F9FAFB;
                border-bottom: 1px solid #E5E7EB;
                padding: 8px 16px;
                spacing: 8px;
            }
            QPushButton {
                padding: 8px 14px;
                border-radius: 6px;
                font-weight: 500;
                font-size: 13px;
                background: white;
                color: #374151;
                border: 1px solid #D1D5DB;
            }
            QPushButton:hover {
                background: #F3F4F6;
            }
            QPushButton:disabled {
                color: #9CA3AF;
            }
        """)

        self.new_btn = QPushButton("New")
        self.addWidget(self.new_btn)

        self.open_btn = QPushButton("Open…")
        self.addWidget(self.open_btn)

        self.save_btn = QPushButton("Save")
        self.save_btn.setStyleSheet("""
            QPushButton {
                background: #3B82F6;
                color: white;
                border: none;
            }
            QPushButton:hover {
                background: #2563EB;
            }
            QPushButton:disabled {
                background: #9CA3AF;
            }
        """)
        self.addWidget(self.save_btn)

        self.addSeparator()

        self.zoom_out_btn = QPushButton("−")
        self.zoom_out_btn.setToolTip("Zoom out")
        self.addWidget(self.zoom_out_btn)

        self.zoom_label = QLabel("100%")
        self.zoom_label.setFixedWidth(48)
        self.zoom_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.zoom_label.setStyleSheet("color: #374151; font-size: 12px;")
        self.addWidget(self.zoom_label)

        self.zoom_in_btn = QPushButton("+")
        self.zoom_in_btn.setToolTip("Zoom in")
        self.addWidget(self.zoom_in_btn)

        self.reset_btn = QPushButton("Reset View")
        self.addWidget(self.reset_btn)

        # Spacer
        spacer = QWidget()
        spacer.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Preferred)
        self.addWidget(spacer)

        self.status_label = QLabel("Ready")
        self.status_label.setStyleSheet("color: #6B7280; font-size: 12px;")
        self.addWidget(self.status_label)

    def set_zoom(self, zoom: float):
        self.zoom_label.setText(f"{round(zoom * 100)}%")

    def set_busy(self, busy: bool, text: str = "Ready"):
        """Disable file buttons while a store round-trip runs."""
        self.save_btn.setEnabled(not busy)
        self.open_btn.setEnabled(not busy)
        self.status_label.setText(text)


class MainWindow(QMainWindow):
    """
    Main application window for the funnel builder.

    Layout:
    ┌─────────────────────────────────────────────────────┐
    │  Toolbar: [New] [Open] [Save] [-] 100% [+]  Status  │
    ├─────────────┬───────────────────────┬───────────────┤
    │             │                       │               │
    │   Node      │                       │   Property    │
    │   Palette   │   Funnel Canvas       │   Panel       │
    │   + Stats   │   (scrollable)        │               │
    │             │                       │               │
    ├─────────────┴───────────────────────┴───────────────┤
    │  Status Bar                                         │
    └─────────────────────────────────────────────────────┘
    """

    def __init__(self, owner_id: Optional[str] = None, backend: Optional[str] = None):
        super().__init__()

        # Settings manager (JSON file based)
        self.settings_manager = get_settings()
        editor = self.settings_manager.editor

        # Command line overrides apply to this session only
        self._storage = self.settings_manager.storage
        if owner_id or backend:
            self._storage = replace(
                self._storage,
                owner_id=owner_id or self._storage.owner_id,
                backend=backend or self._storage.backend,
            )

        self.controller = InputController(zoom_step=editor.zoom_step)
        self._gateway: Optional[PersistenceGateway] = None
        self._current_name = ""
        self._tasks: list[PersistenceTask] = []
        self._funnels_dialog: Optional[SavedFunnelsDialog] = None

        if editor.starter_funnel:
            self.controller.new_funnel(starter=True)

        # Setup
        self._setup_window()
        self._setup_menu()
        self._setup_toolbar()
        self._setup_central_widget()
        self._setup_status_bar()
        self._connect_signals()
        self._apply_editor_settings()
        self._update_counts()

        # Restore window geometry
        self._load_window_settings()

    # ------------------------------------------------------------------
    # Window state
    # ------------------------------------------------------------------

    def _load_window_settings(self):
        """Restore window geometry and state."""
        geometry, state = self.settings_manager.get_window_geometry()
        if geometry:
            self.restoreGeometry(geometry)
        if state:
            self.restoreState(state)

    def _save_window_settings(self):
        """Save window geometry and state."""
        self.settings_manager.save_window_geometry(
            bytes(self.saveGeometry()),
            bytes(self.saveState())
        )

    def closeEvent(self, event):
        """Handle window close - save settings and wait for running saves."""
        self._save_window_settings()
        for task in list(self._tasks):
            task.wait()
        super().closeEvent(event)

    def _setup_window(self):
        """Configure window properties."""
        self._update_window_title()
        self.setMinimumSize(1200, 800)
        self.resize(1400, 900)

        self.setStyleSheet("""
            QMainWindow {
                background: #F3F4F6;
            }
            QSplitter::handle {
                background: #E5E7EB;
            }
            QSplitter::handle:horizontal {
                width: 1px;
            }
        """)

    def _update_window_title(self):
        """Update window title with the current funnel name."""
        base_title = "Funnel Builder"
        name = self._current_name or "Untitled"
        self.setWindowTitle(f"{name} - {base_title}")

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def _setup_menu(self):
        """Create menu bar."""
        menubar = self.menuBar()

        # File menu
        file_menu = menubar.addMenu("&File")

        new_action = QAction("&New Funnel", self)
        new_action.setShortcut(QKeySequence.StandardKey.New)
        new_action.triggered.connect(lambda: self._on_new_funnel(starter=False))
        file_menu.addAction(new_action)

        sample_action = QAction("New from &Sample", self)
        sample_action.triggered.connect(lambda: self._on_new_funnel(starter=True))
        file_menu.addAction(sample_action)

        file_menu.addSeparator()

        open_action = QAction("&Open Saved Funnel...", self)
        open_action.setShortcut(QKeySequence.StandardKey.Open)
        open_action.triggered.connect(self._on_open_funnels)
        file_menu.addAction(open_action)

        self._recent_menu = file_menu.addMenu("Open &Recent")
        self._rebuild_recent_menu()

        save_action = QAction("&Save...", self)
        save_action.setShortcut(QKeySequence.StandardKey.Save)
        save_action.triggered.connect(self._on_save_funnel)
        file_menu.addAction(save_action)

        export_action = QAction("Copy Connections as &SVG", self)
        export_action.triggered.connect(self._on_copy_svg)
        file_menu.addAction(export_action)

        file_menu.addSeparator()

        exit_action = QAction("E&xit", self)
        exit_action.setShortcut(QKeySequence.StandardKey.Quit)
        exit_action.triggered.connect(self.close)
        file_menu.addAction(exit_action)

        # Edit menu
        edit_menu = menubar.addMenu("&Edit")

        custom_action = QAction("Add &Custom Step...", self)
        custom_action.triggered.connect(self._on_custom_node)
        edit_menu.addAction(custom_action)

        delete_action = QAction("&Delete Selected", self)
        delete_action.triggered.connect(self._on_delete_selected)
        edit_menu.addAction(delete_action)

        edit_menu.addSeparator()

        settings_action = QAction("&Settings...", self)
        settings_action.setShortcut("Ctrl+,")
        settings_action.triggered.connect(self._on_show_settings)
        edit_menu.addAction(settings_action)

        # View menu
        view_menu = menubar.addMenu("&View")

        zoom_in_action = QAction("Zoom &In", self)
        zoom_in_action.setShortcut(QKeySequence.StandardKey.ZoomIn)
        zoom_in_action.triggered.connect(self._on_zoom_in)
        view_menu.addAction(zoom_in_action)

        zoom_out_action = QAction("Zoom &Out", self)
        zoom_out_action.setShortcut(QKeySequence.StandardKey.ZoomOut)
        zoom_out_action.triggered.connect(self._on_zoom_out)
        view_menu.addAction(zoom_out_action)

        reset_view_action = QAction("&Reset View", self)
        reset_view_action.setShortcut("Ctrl+0")
        reset_view_action.triggered.connect(self._on_reset_view)
        view_menu.addAction(reset_view_action)

        view_menu.addSeparator()

        self._grid_action = QAction("Show &Grid", self)
        self._grid_action.setCheckable(True)
        self._grid_action.triggered.connect(self._on_toggle_grid)
        view_menu.addAction(self._grid_action)

        # Help menu
        help_menu = menubar.addMenu("&Help")

        about_action = QAction("&About", self)
        about_action.triggered.connect(self._on_about)
        help_menu.addAction(about_action)

    def _setup_toolbar(self):
        """Create and add toolbar."""
        self.toolbar = FunnelToolbar()
        self.addToolBar(self.toolbar)

        self.toolbar.new_btn.clicked.connect(lambda: self._on_new_funnel(starter=False))
        self.toolbar.open_btn.clicked.connect(self._on_open_funnels)
        self.toolbar.save_btn.clicked.connect(self._on_save_funnel)
        self.toolbar.zoom_in_btn.clicked.connect(self._on_zoom_in)
        self.toolbar.zoom_out_btn.clicked.connect(self._on_zoom_out)
        self.toolbar.reset_btn.clicked.connect(self._on_reset_view)

    def _setup_central_widget(self):
        """Create the main layout with all panels."""
        central = QWidget()
        self.setCentralWidget(central)

        layout = QHBoxLayout(central)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        splitter = QSplitter(Qt.Orientation.Horizontal)

        # Left panel - Node palette
        self.node_palette = NodePalette()
        self.node_palette.setStyleSheet("""
            QWidget {
                background: white;
            }
        """)
        splitter.addWidget(self.node_palette)

        # Center - Funnel canvas in a scroll area
        self.canvas = FunnelCanvas(self.controller)
        self.scroll_area = QScrollArea()
        self.scroll_area.setFrameShape(QFrame.Shape.NoFrame)
        self.scroll_area.setWidget(self.canvas)
        splitter.addWidget(self.scroll_area)

        # Right panel - Properties
        self.property_panel = FunnelPropertyPanel()
        self.property_panel.set_graph(self.controller.graph)
        self.property_panel.setStyleSheet("""
            FunnelPropertyPanel {
                background: white;
            }
        """)
        splitter.addWidget(self.property_panel)

        # Set splitter sizes (left: 280, center: stretch, right: 320)
        splitter.setSizes([280, 800, 320])
        splitter.setStretchFactor(0, 0)
        splitter.setStretchFactor(1, 1)
        splitter.setStretchFactor(2, 0)

        layout.addWidget(splitter)

    def _setup_status_bar(self):
        """Create status bar."""
        status = QStatusBar()
        status.setStyleSheet("""
            QStatusBar {
                background: #F9FAFB;
                border-top: 1px solid #E5E7EB;
                padding: 4px 8px;
                color: #6B7280;
                font-size: 12px;
            }
        """)
        self.setStatusBar(status)

        self._count_label = QLabel("Steps: 0  Connections: 0")
        status.addWidget(self._count_label)

        status.addWidget(QWidget(), 1)

        self._instruction_label = QLabel(
            "Drag the green port to connect • Ctrl+scroll to zoom • Alt+drag or middle-drag to pan"
        )
        status.addWidget(self._instruction_label)

    def _connect_signals(self):
        """Connect all signals."""
        # Palette -> Controller
        self.node_palette.templateSelected.connect(self._on_template_selected)
        self.node_palette.customNodeRequested.connect(self._on_custom_node)

        # Canvas -> Property panel / status
        self.canvas.selectionChanged.connect(self.property_panel.set_selection)
        self.canvas.graphChanged.connect(self._update_counts)
        self.canvas.zoomChanged.connect(self.toolbar.set_zoom)
        self.canvas.noticeRaised.connect(self._show_notice)
        self.canvas.saveRequested.connect(self._on_save_funnel)

        # Property changes -> Canvas update
        self.property_panel.propertiesChanged.connect(self._on_properties_changed)
        self.property_panel.deleteNodeRequested.connect(self._on_delete_node)
        self.property_panel.deleteEdgeRequested.connect(self._on_delete_edge)

    def _apply_editor_settings(self):
        editor = self.settings_manager.editor
        self.canvas.show_grid = editor.show_grid
        self.canvas.grid_size = editor.grid_size
        self.controller.zoom_step = editor.zoom_step
        self._grid_action.setChecked(editor.show_grid)
        self.canvas.update()

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def _show_notice(self, message: str):
        self.statusBar().showMessage(message, 3000)

    def _update_counts(self):
        """Update the status bar counts and the palette summary."""
        stats = self.controller.graph.stats()
        self._count_label.setText(f"Steps: {stats.nodes}  Connections: {stats.connections}")
        self.node_palette.set_stats(stats)

    def _after_edit(self):
        self.canvas.refresh()
        self._update_counts()

    def _on_template_selected(self, template_key: str):
        node = self.controller.add_node_from_template(template_key, self.canvas.visible_center())
        if node:
            self._after_edit()
            self.canvas.setFocus()

    def _on_custom_node(self):
        dialog = CustomNodeDialog(self)
        if dialog.exec() != CustomNodeDialog.DialogCode.Accepted:
            return
        node = self.controller.add_custom_node(
            view_center=self.canvas.visible_center(), **dialog.get_values()
        )
        if node:
            self._after_edit()

    def _on_properties_changed(self):
        """Repaint after a property panel edit."""
        self.canvas.update()
        self._update_counts()

    def _on_delete_node(self, node_id: str):
        self.controller.delete_node(node_id)
        self._after_edit()

    def _on_delete_edge(self, edge_id: str):
        self.controller.delete_edge(edge_id)
        self._after_edit()

    def _on_delete_selected(self):
        self.controller.delete_selected()
        self._after_edit()

    def _on_zoom_in(self):
        self.canvas.zoom_in()

    def _on_zoom_out(self):
        self.canvas.zoom_out()

    def _on_reset_view(self):
        self.canvas.reset_view()
        self.scroll_area.horizontalScrollBar().setValue(0)
        self.scroll_area.verticalScrollBar().setValue(0)

    def _on_toggle_grid(self, checked: bool):
        self.settings_manager.editor.show_grid = checked
        self.settings_manager.save()
        self._apply_editor_settings()

    def _on_new_funnel(self, starter: bool = False):
        """Start a new funnel."""
        if self.controller.graph.nodes:
            reply = QMessageBox.question(
                self,
                "New Funnel",
                "Discard the current funnel and start a new one?",
                QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No
            )
            if reply != QMessageBox.StandardButton.Yes:
                return

        self.controller.new_funnel(starter=starter)
        self._current_name = ""
        self._update_window_title()
        self.toolbar.set_zoom(self.controller.viewport.zoom)
        self._after_edit()
        self.statusBar().showMessage("New funnel created", 2000)

    def _on_copy_svg(self):
        """Copy the connection paths as an SVG document."""
        paths = self.controller.router.export_svg(self.controller.graph)
        body = "\n".join(
            f'  <path id="{edge_id}" d="{data}" fill="none" stroke="#94A3B8" stroke-width="2"/>'
            for edge_id, data in paths.items()
        )
        svg = f'<svg xmlns="http://www.w3.org/2000/svg">\n{body}\n</svg>\n'
        QApplication.clipboard().setText(svg)
        self.statusBar().showMessage("Connections copied as SVG", 2000)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _get_gateway(self) -> Optional[PersistenceGateway]:
        """The gateway for the configured store, created on first use."""
        if self._gateway is None:
            try:
                store = create_store(self._storage)
            except PersistenceError as e:
                QMessageBox.critical(self, "Storage Unavailable", str(e))
                return None
            self._gateway = PersistenceGateway(store, self._storage.get_owner_id())
        return self._gateway

    def _run_task(self, operation: str, func: Callable, *args, on_success: Callable):
        """Run a store round-trip on a worker thread."""
        task = PersistenceTask(operation, func, *args)
        task.succeeded.connect(on_success)
        task.failed.connect(lambda message: self._on_task_failed(operation, message))
        task.finished.connect(lambda: self._on_task_finished(task))
        self._tasks.append(task)
        self.toolbar.set_busy(True, f"{operation.capitalize()}…")
        task.start()

    def _on_task_finished(self, task: PersistenceTask):
        if task in self._tasks:
            self._tasks.remove(task)
        if not self._tasks:
            self.toolbar.set_busy(False)

    def _on_task_failed(self, operation: str, message: str):
        QMessageBox.critical(self, "Error", f"Failed while {operation}:\n{message}")

    def _on_save_funnel(self):
        """Ask for a name and save the current funnel as a new record."""
        gateway = self._get_gateway()
        if gateway is None:
            return

        dialog = SaveFunnelDialog(self._current_name, self)
        if dialog.exec() != SaveFunnelDialog.DialogCode.Accepted:
            return

        # Snapshot on this thread; the worker only sends it
        try:
            record = gateway.prepare_record(self.controller.graph, dialog.get_name())
        except PersistenceError as e:
            QMessageBox.warning(self, "Cannot Save", str(e))
            return

        self._run_task("saving", gateway.submit, record, on_success=self._on_funnel_saved)

    def _on_funnel_saved(self, funnel: SavedFunnel):
        self._current_name = funnel.name
        self._update_window_title()
        self.settings_manager.add_recent_funnel(funnel.id, funnel.name)
        self._rebuild_recent_menu()
        self.statusBar().showMessage(f"Saved '{funnel.name}'", 3000)

    def _on_open_funnels(self):
        """List the saved funnels and let the user pick one."""
        gateway = self._get_gateway()
        if gateway is None:
            return
        self._run_task("listing funnels", gateway.list_funnels, on_success=self._show_funnels_dialog)

    def _show_funnels_dialog(self, funnels: list):
        if self._funnels_dialog is not None:
            self._funnels_dialog.set_funnels(funnels)
            return

        dialog = SavedFunnelsDialog(funnels, self)
        dialog.deleteRequested.connect(self._on_delete_funnel)
        dialog.refreshRequested.connect(self._on_refresh_funnels)
        self._funnels_dialog = dialog
        try:
            accepted = dialog.exec() == SavedFunnelsDialog.DialogCode.Accepted
        finally:
            self._funnels_dialog = None

        if accepted and dialog.get_funnel() is not None:
            self._load_funnel(dialog.get_funnel())

    def _on_refresh_funnels(self):
        gateway = self._get_gateway()
        if gateway is not None:
            self._run_task("listing funnels", gateway.list_funnels, on_success=self._show_funnels_dialog)

    def _on_delete_funnel(self, funnel_id: str):
        gateway = self._get_gateway()
        if gateway is None:
            return

        def deleted(ok):
            if not ok:
                self.statusBar().showMessage("Funnel was already deleted", 3000)
            if self._funnels_dialog is not None:
                self._funnels_dialog.remove_funnel(funnel_id)
            self.settings_manager.remove_recent_funnel(funnel_id)
            self._rebuild_recent_menu()

        self._run_task("deleting funnel", gateway.delete, funnel_id, on_success=deleted)

    def _load_funnel(self, funnel: SavedFunnel):
        """Parse a saved funnel on a worker and swap it in when ready."""
        gateway = self._get_gateway()
        if gateway is None:
            return

        def loaded(snapshot: GraphModel):
            self.controller.apply_loaded_graph(snapshot)
            self._current_name = funnel.name
            self._update_window_title()
            self.settings_manager.add_recent_funnel(funnel.id, funnel.name)
            self._rebuild_recent_menu()
            self._after_edit()
            self.statusBar().showMessage(f"Opened '{funnel.name}'", 3000)

        self._run_task("loading funnel", gateway.load, funnel, on_success=loaded)

    def _rebuild_recent_menu(self):
        self._recent_menu.clear()
        recent = self.settings_manager.get_recent_funnels()
        if not recent:
            empty = QAction("No recent funnels", self)
            empty.setEnabled(False)
            self._recent_menu.addAction(empty)
            return

        for entry in recent:
            action = QAction(entry.get("name") or entry.get("id"), self)
            action.triggered.connect(
                lambda checked=False, funnel_id=entry.get("id"): self._on_open_recent(funnel_id)
            )
            self._recent_menu.addAction(action)

    def _on_open_recent(self, funnel_id: str):
        """Open a funnel from the recent list; records only come with a listing."""
        gateway = self._get_gateway()
        if gateway is None:
            return

        def listed(funnels: list):
            funnel = next((f for f in funnels if f.id == funnel_id), None)
            if funnel is None:
                self.settings_manager.remove_recent_funnel(funnel_id)
                self._rebuild_recent_menu()
                QMessageBox.warning(self, "Not Found", "That funnel no longer exists.")
                return
            self._load_funnel(funnel)

        self._run_task("listing funnels", gateway.list_funnels, on_success=listed)

    # ------------------------------------------------------------------
    # Dialogs
    # ------------------------------------------------------------------

    def _on_show_settings(self):
        """Show the settings dialog."""
        dialog = SettingsDialog(self)
        dialog.settingsChanged.connect(self._on_settings_changed)
        dialog.exec()

    def _on_settings_changed(self):
        """Handle settings changes from dialog."""
        self._storage = self.settings_manager.storage
        # Reconnect with the new storage settings on next use
        self._gateway = None
        self._apply_editor_settings()
        self._rebuild_recent_menu()
        self.statusBar().showMessage("Settings updated", 2000)

    def _on_about(self):
        """Show about dialog."""
        backend = "Supabase" if self._storage.backend == "supabase" else "Local files"
        QMessageBox.about(
            self,
            "About Funnel Builder",
            "<h3>Funnel Builder</h3>"
            "<p>A visual editor for sales and marketing funnels.</p>"
            "<p><b>Features:</b></p>"
            "<ul>"
            "<li>Step catalog and custom steps</li>"
            "<li>Curved, straight and orthogonal connections</li>"
            "<li>Labels, automation and delays per step</li>"
            "<li>Saved funnels per user</li>"
            "</ul>"
            f"<p><b>Storage:</b> {backend}</p>"
            f"<p><b>Owner:</b> {self._storage.get_owner_id()}</p>"
        )
