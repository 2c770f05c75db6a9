"""
Graphical user interface for the Canvas Agent application.

Key capabilities
----------------
- Show the workspace through a pannable, zoomable viewport
- Let the user move and delete objects by hand while the agent works
- Creator tools: pencil, text, rectangle and circle in a chosen ink
- Chat with the agent, attach a reference image, abort the running task
- Draw the agent's virtual cursor, activity label and speech bubble
- Mirror the agent log and persist user preferences
"""

from __future__ import annotations

import base64
import mimetypes
import queue
import tkinter as tk
from pathlib import Path
from tkinter import filedialog, scrolledtext, simpledialog, ttk
from typing import Callable, Dict, Optional

from PIL import ImageTk

from agent_cursor import AgentCursorOverlay
from agent_engine import transform
from agent_engine.bridge import PlanningBridge
from agent_engine.context import RunContext
from agent_engine.planner import GeminiPlanner, ScriptedPlanner
from agent_engine.processor import ActionProcessor
from agent_engine.runtime import AgentRuntime
from agent_engine.speech import CallbackSpeech, NullSpeech
from agent_engine.state import AgentState
from hotkey_manager import HotkeyManager
from logger import LogEntry, StatusLogger
from models import AgentSettings, MessageRole, Point
from settings_manager import SettingsManager
from workspace.creator import DEFAULT_TEXT, INK_COLORS, CreatorTool, CreatorTools
from workspace.render import render_scene
from workspace.scene import SceneObject, Workspace
from workspace.shapes import ContentError, decode_image

OVERLAY_TAG = "overlay"
SELECTION_TAG = "selection"
STROKE_TAG = "stroke_preview"
MAX_BRUSH_WIDTH = 40
ZOOM_STEP = 1.1
OVERLAY_PREVIEW_CHARS = 400


class WorkspaceGUI:
    """Tkinter window that hosts the workspace and wires up the agent services."""

    REFRESH_MS = 33
    DEFAULT_WINDOW_SIZE = (1400, 860)
    MIN_WINDOW_SIZE = (960, 640)
    SIDE_PANEL_WIDTH = 360

    PALETTE: Dict[str, str] = {
        "app_bg": "#05050a",
        "card_bg": "#11111a",
        "text_primary": "#f0f4ff",
        "text_secondary": "#a5b4cf",
        "text_muted": "#6b7280",
        "border_color": "#1f2937",
        "accent_color": "#00f0ff",
        "accent_hover": "#5ff6ff",
        "accent_active": "#00b8c4",
        "accent_disabled": "#0e4a50",
        "text_on_accent": "#05050a",
        "danger_color": "#ff003c",
        "danger_hover": "#ff3d6a",
        "danger_active": "#c4002e",
        "ghost_bg": "#11111a",
        "ghost_hover": "#1b1b29",
        "ghost_active": "#262638",
        "text_area_bg": "#0b0b12",
        "entry_bg": "#0b0b12",
        "entry_fg": "#f0f4ff",
        "user_fg": "#7000ff",
        "model_fg": "#00f0ff",
    }

    def __init__(self, root: tk.Tk):
        self.root = root
        self.root.title("Canvas Agent")
        self._configure_window_geometry()

        # Services -------------------------------------------------------
        self.logger = StatusLogger()
        self._ui_events: "queue.Queue[Callable[[], None]]" = queue.Queue()
        self.logger.on_entry(lambda entry: self._ui_events.put(lambda: self._append_log(entry)))

        self.settings_manager = SettingsManager(logger=self.logger)
        self.settings: AgentSettings = self.settings_manager.load()

        self.style = ttk.Style()
        self._configure_styles()

        self.workspace = Workspace(1000, 800)
        self.creator = self._create_creator_tools()
        speech = CallbackSpeech(self._speak) if self.settings.speech_enabled else NullSpeech()
        self.state = AgentState(speech=speech, cursor=Point(500.0, 400.0))
        ctx = RunContext(logger=self.logger, frame_interval_ms=self.settings.frame_interval_ms)
        self.processor = ActionProcessor(self.state, self.workspace, ctx, self.settings)
        self.bridge = PlanningBridge(
            self.state, self.workspace, self._create_planner(), self.logger, background=self.settings.canvas_background
        )
        self.runtime = AgentRuntime(self.state, self.processor, self.bridge)
        self.runtime.on_done(lambda ok, msg: self._ui_events.put(lambda: self._on_plan_done(ok, msg)))
        self.hotkey_manager = HotkeyManager(abort_hotkey=self.settings.abort_hotkey)

        # Runtime UI state ------------------------------------------------
        self._photo: Optional[ImageTk.PhotoImage] = None
        self._rendered_key: Optional[tuple] = None
        self._shown_messages = 0
        self._showing_agent_status = False
        self._pan_anchor: Optional[Point] = None
        self._drag_offset: Optional[Point] = None
        self._dragged: Optional[SceneObject] = None
        self.refresh_job: Optional[str] = None

        # Tk variables ---------------------------------------------------
        self.instruction_var = tk.StringVar(value="")
        self.status_var = tk.StringVar(value="Status: Ready")
        self.zoom_var = tk.StringVar(value="Zoom: 100%")
        self.reference_var = tk.StringVar(value="No reference image")
        self.tool_var = tk.StringVar(value=CreatorTool.SELECT.value)
        self.brush_width_var = tk.IntVar(value=self.creator.brush_width)

        # UI --------------------------------------------------------------
        self._build_ui()
        self.cursor_overlay = AgentCursorOverlay(
            self.canvas, on_message_expired=lambda: self.state.set_agent_message(None)
        )

        self.runtime.start()
        self._setup_hotkeys()
        self._schedule_refresh()
        self.root.protocol("WM_DELETE_WINDOW", self._on_closing)

    def _configure_window_geometry(self) -> None:
        """Centre the main window on the primary screen."""
        try:
            screen_width = int(self.root.winfo_screenwidth())
            screen_height = int(self.root.winfo_screenheight())
        except tk.TclError:
            screen_width, screen_height = self.DEFAULT_WINDOW_SIZE

        default_width, default_height = self.DEFAULT_WINDOW_SIZE
        min_width, min_height = self.MIN_WINDOW_SIZE
        width = max(min(default_width, screen_width - 48), min_width)
        height = max(min(default_height, screen_height - 80), min_height)
        x = max((screen_width - width) // 2, 0)
        y = max((screen_height - height) // 2, 0)

        self.root.geometry(f"{int(width)}x{int(height)}+{int(x)}+{int(y)}")
        self.root.minsize(int(min_width), int(min_height))

    def _configure_styles(self) -> None:
        try:
            self.style.theme_use("clam")
        except tk.TclError:
            pass

        palette = self.PALETTE
        self.root.configure(background=palette["app_bg"])

        self.style.configure(".", font=("Segoe UI", 10))
        self.style.configure("TFrame", background=palette["card_bg"])
        self.style.configure("TLabel", background=palette["card_bg"], foreground=palette["text_primary"])
        self.style.configure("TEntry", fieldbackground=palette["entry_bg"], foreground=palette["entry_fg"])
        self.style.configure("Background.TFrame", background=palette["app_bg"])
        self.style.configure("Hint.TLabel", background=palette["card_bg"], foreground=palette["text_muted"])
        self.style.configure("Secondary.TLabel", background=palette["card_bg"], foreground=palette["text_secondary"])
        self.style.configure(
            "Card.TLabelframe",
            background=palette["card_bg"],
            borderwidth=1,
            relief="solid",
            lightcolor=palette["border_color"],
            darkcolor=palette["border_color"],
            bordercolor=palette["border_color"],
        )
        self.style.configure(
            "Card.TLabelframe.Label",
            font=("Segoe UI", 11, "bold"),
            background=palette["card_bg"],
            foreground=palette["text_primary"],
        )

        self.style.configure(
            "Accent.TButton", padding=(10, 7), borderwidth=0,
            background=palette["accent_color"], foreground=palette["text_on_accent"],
        )
        self.style.map(
            "Accent.TButton",
            background=[
                ("disabled", palette["accent_disabled"]),
                ("pressed", palette["accent_active"]),
                ("active", palette["accent_hover"]),
            ],
        )
        self.style.configure(
            "Danger.TButton", padding=(10, 7), borderwidth=0,
            background=palette["danger_color"], foreground=palette["text_primary"],
        )
        self.style.map(
            "Danger.TButton",
            background=[("pressed", palette["danger_active"]), ("active", palette["danger_hover"])],
        )
        self.style.configure(
            "Ghost.TButton", padding=(8, 6), borderwidth=0,
            background=palette["ghost_bg"], foreground=palette["text_primary"],
        )
        self.style.map(
            "Ghost.TButton",
            background=[("pressed", palette["ghost_active"]), ("active", palette["ghost_hover"])],
        )
        self.style.configure(
            "Toolbutton", padding=(8, 6), borderwidth=0,
            background=palette["ghost_bg"], foreground=palette["text_primary"],
        )
        self.style.map(
            "Toolbutton",
            background=[("selected", palette["accent_active"]), ("active", palette["ghost_hover"])],
            foreground=[("selected", palette["text_on_accent"])],
        )

    def _create_planner(self):
        try:
            return GeminiPlanner(self.settings)
        except RuntimeError as e:
            self.logger.log_warning(f"Planner unavailable: {e}")
            return ScriptedPlanner(e)

    def _create_creator_tools(self) -> CreatorTools:
        try:
            return CreatorTools(self.workspace, self.settings.brush_color, self.settings.brush_width, self.logger)
        except ValueError as e:
            self.logger.log_warning(f"Saved brush ignored: {e}")
            return CreatorTools(self.workspace, logger=self.logger)

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------
    def _build_ui(self) -> None:
        self.root.columnconfigure(0, weight=1)
        self.root.rowconfigure(0, weight=1)

        container = ttk.Frame(self.root, padding=12, style="Background.TFrame")
        container.grid(row=0, column=0, sticky="nsew")
        container.columnconfigure(0, weight=1)
        container.columnconfigure(1, weight=0, minsize=self.SIDE_PANEL_WIDTH)
        container.rowconfigure(0, weight=1)

        self._build_canvas_section(container)

        side = ttk.Frame(container, style="Background.TFrame")
        side.grid(row=0, column=1, sticky="nsew", padx=(12, 0))
        side.columnconfigure(0, weight=1)
        side.rowconfigure(0, weight=3)
        side.rowconfigure(1, weight=2)

        self._build_chat_section(side)
        self._build_status_section(side)

    def _build_canvas_section(self, parent: ttk.Frame) -> None:
        frame = ttk.Frame(parent, style="Background.TFrame")
        frame.grid(row=0, column=0, sticky="nsew")
        frame.columnconfigure(0, weight=1)
        frame.rowconfigure(1, weight=1)

        self._build_creator_toolbar(frame)

        self.canvas = tk.Canvas(
            frame,
            background=self.settings.canvas_background,
            highlightthickness=0,
            cursor="crosshair",
        )
        self.canvas.grid(row=1, column=0, sticky="nsew")
        self._image_item = self.canvas.create_image(0, 0, anchor="nw")

        hint_bar = ttk.Frame(frame, style="Background.TFrame")
        hint_bar.grid(row=2, column=0, sticky="ew", pady=(6, 0))
        ttk.Label(
            hint_bar,
            text="Wheel: zoom  |  Right-drag: pan  |  0: reset view  |  Del: delete selection  |  T: creator tools",
            style="Hint.TLabel",
        ).pack(side=tk.LEFT)
        ttk.Label(hint_bar, textvariable=self.zoom_var, style="Hint.TLabel").pack(side=tk.RIGHT)

        self.canvas.bind("<Configure>", self._on_canvas_resize)
        self.canvas.bind("<MouseWheel>", self._on_wheel)
        self.canvas.bind("<Button-4>", lambda e: self._zoom_at(e.x, e.y, ZOOM_STEP))
        self.canvas.bind("<Button-5>", lambda e: self._zoom_at(e.x, e.y, 1 / ZOOM_STEP))
        self.canvas.bind("<ButtonPress-3>", self._on_pan_start)
        self.canvas.bind("<B3-Motion>", self._on_pan_move)
        self.canvas.bind("<ButtonRelease-3>", lambda _e: setattr(self, "_pan_anchor", None))
        self.canvas.bind("<ButtonPress-1>", self._on_select)
        self.canvas.bind("<B1-Motion>", self._on_drag_object)
        self.canvas.bind("<ButtonRelease-1>", self._on_drop_object)
        self.canvas.bind("<Delete>", self._on_delete_selected)
        self.canvas.bind("<Key-0>", lambda _e: self.workspace.reset_view())
        self.canvas.bind("<Key-t>", lambda _e: self._toggle_creator())

    def _build_creator_toolbar(self, parent: ttk.Frame) -> None:
        toolbar = ttk.Frame(parent, style="Background.TFrame")
        toolbar.grid(row=0, column=0, sticky="ew", pady=(0, 6))

        self.creator_button = ttk.Button(
            toolbar, text="Creator tools [T]", command=self._toggle_creator, style="Ghost.TButton"
        )
        self.creator_button.pack(side=tk.LEFT)

        # hidden until creator mode is switched on
        self.creator_palette = ttk.Frame(toolbar, style="Background.TFrame")
        for tool in CreatorTool:
            ttk.Radiobutton(
                self.creator_palette,
                text=tool.value.title(),
                value=tool.value,
                variable=self.tool_var,
                command=self._on_tool_selected,
                style="Toolbutton",
            ).pack(side=tk.LEFT, padx=(0, 2))

        self._swatches: Dict[str, tk.Button] = {}
        for color in INK_COLORS:
            swatch = tk.Button(
                self.creator_palette,
                background=color,
                activebackground=color,
                width=2,
                relief=tk.FLAT,
                borderwidth=2,
                command=lambda c=color: self._on_brush_color(c),
            )
            swatch.pack(side=tk.LEFT, padx=(6 if color == INK_COLORS[0] else 0, 2))
            self._swatches[color] = swatch

        ttk.Label(self.creator_palette, text="Width", style="Hint.TLabel").pack(side=tk.LEFT, padx=(8, 4))
        width_box = ttk.Spinbox(
            self.creator_palette,
            from_=1,
            to=MAX_BRUSH_WIDTH,
            width=4,
            textvariable=self.brush_width_var,
            command=self._on_brush_width,
        )
        width_box.pack(side=tk.LEFT)
        width_box.bind("<Return>", lambda _e: self._on_brush_width())
        width_box.bind("<FocusOut>", lambda _e: self._on_brush_width())
        ttk.Button(
            self.creator_palette, text="Delete selection", command=self._on_delete_selected, style="Ghost.TButton"
        ).pack(side=tk.LEFT, padx=(8, 0))
        self._mark_swatch()

    def _build_chat_section(self, parent: ttk.Frame) -> None:
        palette = self.PALETTE
        frame = ttk.LabelFrame(parent, text="Ghost", padding=12, style="Card.TLabelframe")
        frame.grid(row=0, column=0, sticky="nsew")
        frame.columnconfigure(0, weight=1)
        frame.rowconfigure(0, weight=1)

        self.chat_text = scrolledtext.ScrolledText(
            frame,
            height=16,
            state=tk.DISABLED,
            wrap=tk.WORD,
            background=palette["text_area_bg"],
            foreground=palette["text_primary"],
            relief=tk.FLAT,
        )
        self.chat_text.grid(row=0, column=0, columnspan=3, sticky="nsew")
        self.chat_text.tag_configure(MessageRole.USER.value, foreground=palette["user_fg"])
        self.chat_text.tag_configure(MessageRole.MODEL.value, foreground=palette["model_fg"])

        self.instruction_entry = ttk.Entry(frame, textvariable=self.instruction_var)
        self.instruction_entry.grid(row=1, column=0, columnspan=3, sticky="ew", pady=(10, 6))
        self.instruction_entry.bind("<Return>", lambda _e: self._send_instruction())

        self.send_button = ttk.Button(frame, text="Send", command=self._send_instruction, style="Accent.TButton")
        self.send_button.grid(row=2, column=0, sticky="ew", padx=(0, 6))
        ttk.Button(frame, text="Abort", command=self._abort, style="Danger.TButton").grid(
            row=2, column=1, sticky="ew", padx=(0, 6)
        )
        ttk.Button(frame, text="Attach image…", command=self._attach_reference_image, style="Ghost.TButton").grid(
            row=2, column=2, sticky="ew"
        )
        ttk.Label(frame, textvariable=self.reference_var, style="Hint.TLabel").grid(
            row=3, column=0, columnspan=3, sticky="w", pady=(6, 0)
        )

    def _build_status_section(self, parent: ttk.Frame) -> None:
        palette = self.PALETTE
        frame = ttk.LabelFrame(parent, text="Status & Log", padding=12, style="Card.TLabelframe")
        frame.grid(row=1, column=0, sticky="nsew", pady=(12, 0))
        frame.columnconfigure(0, weight=1)
        frame.rowconfigure(1, weight=1)

        ttk.Label(frame, textvariable=self.status_var, style="Secondary.TLabel").grid(row=0, column=0, sticky="w")

        self.log_text = scrolledtext.ScrolledText(
            frame,
            height=8,
            state=tk.DISABLED,
            wrap=tk.WORD,
            background=palette["text_area_bg"],
            foreground=palette["text_secondary"],
            relief=tk.FLAT,
        )
        self.log_text.grid(row=1, column=0, sticky="nsew", pady=(8, 0))

        button_bar = ttk.Frame(frame, style="TFrame")
        button_bar.grid(row=2, column=0, sticky="e", pady=(10, 0))
        ttk.Button(button_bar, text="Copy log", command=self._copy_logs_to_clipboard, style="Ghost.TButton").grid(
            row=0, column=0, padx=(0, 6)
        )
        ttk.Button(button_bar, text="Clear log", command=self._clear_log_output, style="Ghost.TButton").grid(
            row=0, column=1
        )

    # ------------------------------------------------------------------
    # Agent interaction
    # ------------------------------------------------------------------
    def _send_instruction(self) -> None:
        text = self.instruction_var.get().strip()
        if not text or self.state.is_thinking:
            return
        self.instruction_var.set("")
        self.state.add_message(MessageRole.USER, text)
        if self.runtime.submit(text) is None:
            self._log_message("Agent runtime is not running.", level="ERROR")

    def _abort(self) -> None:
        self.runtime.abort()
        self.status_var.set("Status: Aborted")

    def _on_plan_done(self, ok: bool, msg: str) -> None:
        if not ok:
            self._log_message(f"Planning ended: {msg}", level="WARNING")

    def _speak(self, text: str) -> None:
        self.logger.update_status(f"Ghost: {text}")

    def _attach_reference_image(self) -> None:
        path = filedialog.askopenfilename(
            filetypes=[("Images", "*.png *.jpg *.jpeg *.gif *.webp"), ("All files", "*.*")],
        )
        if not path:
            return
        try:
            data = Path(path).read_bytes()
        except OSError as e:
            self._log_message(f"Reference image unreadable: {e}", level="WARNING")
            return
        mime_type = mimetypes.guess_type(path)[0] or "image/png"
        data_url = f"data:{mime_type};base64," + base64.b64encode(data).decode("ascii")
        try:
            decode_image(data_url)
        except ContentError as e:
            self._log_message(f"Reference image rejected: {e}", level="WARNING")
            return
        self.state.set_last_uploaded_image(data_url)
        self.reference_var.set(f"Reference: {Path(path).name}")
        self._log_message(f"Reference image attached: {Path(path).name}")

    # ------------------------------------------------------------------
    # Canvas interaction
    # ------------------------------------------------------------------
    def _screen_to_world(self, x: float, y: float) -> Point:
        return transform.to_world(x, y, self.workspace.viewport_transform)

    def _on_canvas_resize(self, event: tk.Event) -> None:
        self.workspace.resize(event.width, event.height)

    def _on_wheel(self, event: tk.Event) -> None:
        self._zoom_at(event.x, event.y, ZOOM_STEP if event.delta > 0 else 1 / ZOOM_STEP)

    def _zoom_at(self, x: float, y: float, factor: float) -> None:
        self.workspace.zoom_to_point(Point(x, y), self.workspace.zoom * factor)

    def _on_pan_start(self, event: tk.Event) -> None:
        self._pan_anchor = Point(event.x, event.y)

    def _on_pan_move(self, event: tk.Event) -> None:
        if self._pan_anchor is None:
            return
        self.workspace.pan(event.x - self._pan_anchor.x, event.y - self._pan_anchor.y)
        self._pan_anchor = Point(event.x, event.y)

    def _on_select(self, event: tk.Event) -> None:
        self.canvas.focus_set()
        world = self._screen_to_world(event.x, event.y)
        if self.creator.begin_stroke(world):
            return
        obj = self.workspace.find_at(world)
        self.workspace.set_active(obj)
        self._dragged = obj
        self._drag_offset = Point(world.x - obj.left, world.y - obj.top) if obj else None

    def _on_drag_object(self, event: tk.Event) -> None:
        if self.creator.drawing:
            self.creator.extend_stroke(self._screen_to_world(event.x, event.y))
            self._draw_stroke_preview()
            return
        obj, offset = self._dragged, self._drag_offset
        if obj is None or offset is None:
            return
        world = self._screen_to_world(event.x, event.y)
        x, y = world.x - offset.x, world.y - offset.y
        self.workspace.move_object(obj.id, x, y)
        if obj.is_overlay_placeholder:
            self.state.update_overlay(obj.id, x=x, y=y)
        self.workspace.request_render()

    def _on_drop_object(self, _event: tk.Event) -> None:
        self._dragged = None
        self._drag_offset = None
        if self.creator.drawing:
            self.canvas.delete(STROKE_TAG)
            self.creator.finish_stroke()

    def _on_delete_selected(self, _event: Optional[tk.Event] = None) -> None:
        obj = self.workspace.active_object
        if obj is None:
            return
        self.workspace.remove(obj)
        self.state.remove_overlay(obj.id)
        self.workspace.request_render()
        self._log_message(f"Deleted {obj.id}")

    def _draw_stroke_preview(self) -> None:
        viewport = self.workspace.viewport_transform
        points = self.creator.stroke_points
        self.canvas.delete(STROKE_TAG)
        if len(points) < 2:
            return
        coords = [c for p in points for c in transform.to_screen(p, viewport).to_tuple()]
        self.canvas.create_line(
            *coords,
            fill=self.creator.brush_color,
            width=max(1.0, self.creator.brush_width * self.workspace.zoom),
            capstyle=tk.ROUND,
            joinstyle=tk.ROUND,
            tags=STROKE_TAG,
        )

    # ------------------------------------------------------------------
    # Creator tools
    # ------------------------------------------------------------------
    def _toggle_creator(self) -> None:
        enabled = self.creator.toggle()
        self.tool_var.set(self.creator.active_tool.value)
        self.canvas.delete(STROKE_TAG)
        if enabled:
            self.creator_palette.pack(side=tk.LEFT, padx=(8, 0))
        else:
            self.creator_palette.pack_forget()
        self.creator_button.configure(style="Accent.TButton" if enabled else "Ghost.TButton")
        self._sync_canvas_cursor()

    def _on_tool_selected(self) -> None:
        tool = CreatorTool(self.tool_var.get())
        if not self.creator.select_tool(tool):
            return
        if tool.places_once:
            self._place_with_tool(tool)
        self.tool_var.set(self.creator.active_tool.value)
        self._sync_canvas_cursor()

    def _place_with_tool(self, tool: CreatorTool) -> None:
        text = None
        if tool is CreatorTool.TEXT:
            text = simpledialog.askstring("Add text", "Text:", initialvalue=DEFAULT_TEXT, parent=self.root)
            if text is None:
                self.creator.select_tool(CreatorTool.SELECT)
                return
        width, height = self.workspace.canvas_size
        self.creator.place(self._screen_to_world(width / 2.0, height / 2.0), text=text)

    def _on_brush_color(self, color: str) -> None:
        self.creator.set_brush_color(color)
        self._mark_swatch()

    def _on_brush_width(self) -> None:
        try:
            self.creator.set_brush_width(self.brush_width_var.get())
        except (tk.TclError, ValueError):
            self.brush_width_var.set(self.creator.brush_width)

    def _mark_swatch(self) -> None:
        for color, swatch in self._swatches.items():
            swatch.configure(relief=tk.SUNKEN if color == self.creator.brush_color else tk.FLAT)

    def _sync_canvas_cursor(self) -> None:
        self.canvas.configure(cursor="pencil" if self.creator.drawing else "crosshair")

    # ------------------------------------------------------------------
    # Refresh loop
    # ------------------------------------------------------------------
    def _schedule_refresh(self) -> None:
        def poll() -> None:
            self._drain_ui_events()
            self._refresh_scene()
            self._refresh_overlays()
            self._refresh_cursor()
            self._refresh_chat()
            self._refresh_controls()
            self.refresh_job = self.root.after(self.REFRESH_MS, poll)

        poll()

    def _drain_ui_events(self) -> None:
        while True:
            try:
                event = self._ui_events.get_nowait()
            except queue.Empty:
                return
            event()

    def _refresh_scene(self) -> None:
        key = (self.workspace.render_requests, self.workspace.viewport_transform, self.workspace.canvas_size)
        if key == self._rendered_key:
            return
        self._rendered_key = key
        image = render_scene(self.workspace, background=self.settings.canvas_background)
        self._photo = ImageTk.PhotoImage(image)
        self.canvas.itemconfigure(self._image_item, image=self._photo)
        self.zoom_var.set(f"Zoom: {self.workspace.zoom * 100:.0f}%")

    def _refresh_overlays(self) -> None:
        viewport = self.workspace.viewport_transform
        palette = self.PALETTE
        self.canvas.delete(OVERLAY_TAG)
        self.canvas.delete(SELECTION_TAG)
        for element in sorted(self.state.overlays.values(), key=lambda el: el.z_index):
            half_w = element.width * element.scale_x / 2.0
            half_h = element.height * element.scale_y / 2.0
            top_left = transform.to_screen(Point(element.x - half_w, element.y - half_h), viewport)
            bottom_right = transform.to_screen(Point(element.x + half_w, element.y + half_h), viewport)
            self.canvas.create_rectangle(
                top_left.x, top_left.y, bottom_right.x, bottom_right.y,
                fill=palette["card_bg"], outline=palette["accent_color"], tags=OVERLAY_TAG,
            )
            self.canvas.create_text(
                top_left.x + 8, top_left.y + 8,
                text=element.html[:OVERLAY_PREVIEW_CHARS],
                anchor="nw",
                width=max(bottom_right.x - top_left.x - 16, 20),
                fill=palette["text_secondary"],
                font=("Consolas", 8),
                tags=OVERLAY_TAG,
            )

        active = self.workspace.active_object
        if active is not None and self.workspace.get(active.id) is not None:
            half_w, half_h = (abs(v) / 2.0 for v in active.scaled_size)
            top_left = transform.to_screen(Point(active.left - half_w, active.top - half_h), viewport)
            bottom_right = transform.to_screen(Point(active.left + half_w, active.top + half_h), viewport)
            self.canvas.create_rectangle(
                top_left.x - 4, top_left.y - 4, bottom_right.x + 4, bottom_right.y + 4,
                outline=palette["accent_color"], dash=(4, 2), tags=SELECTION_TAG,
            )

    def _refresh_cursor(self) -> None:
        screen = transform.to_screen(self.state.cursor_position, self.workspace.viewport_transform)
        self.cursor_overlay.update(
            screen,
            clicking=self.state.is_clicking,
            thinking=self.state.is_thinking,
            label=self.state.current_action,
            message=self.state.agent_message,
        )

    def _refresh_chat(self) -> None:
        messages = self.state.messages
        if len(messages) == self._shown_messages:
            return
        self.chat_text.configure(state=tk.NORMAL)
        for message in messages[self._shown_messages:]:
            prefix = "You" if message.role == MessageRole.USER else "Ghost"
            self.chat_text.insert(tk.END, f"{prefix}: {message.text}\n\n", message.role.value)
        self.chat_text.see(tk.END)
        self.chat_text.configure(state=tk.DISABLED)
        self._shown_messages = len(messages)

    def _refresh_controls(self) -> None:
        thinking = self.state.is_thinking
        entry_state = tk.DISABLED if thinking else tk.NORMAL
        if str(self.instruction_entry.cget("state")) != entry_state:
            self.instruction_entry.configure(state=entry_state)
            self.send_button.configure(state=entry_state)

        if thinking:
            self.status_var.set("Status: Thinking...")
            self._showing_agent_status = True
        elif self.state.current_action:
            pending = len(self.state.queue)
            self.status_var.set(f"Status: {self.state.current_action} ({pending} queued)")
            self._showing_agent_status = True
        elif self._showing_agent_status and not self.state.is_busy:
            self.status_var.set("Status: Ready")
            self._showing_agent_status = False

    # ------------------------------------------------------------------
    # Log helpers
    # ------------------------------------------------------------------
    def _append_log(self, entry: LogEntry) -> None:
        self.log_text.configure(state=tk.NORMAL)
        self.log_text.insert(tk.END, f"{entry}\n")
        self.log_text.see(tk.END)
        self.log_text.configure(state=tk.DISABLED)

    def _log_message(self, message: str, level: str = "INFO") -> None:
        if level == "INFO":
            self.logger.log_info(message)
        elif level == "WARNING":
            self.logger.log_warning(message)
        else:
            self.logger.log_error(message)
        self.status_var.set(f"Status: {message}")

    def _clear_log_output(self) -> None:
        self.log_text.configure(state=tk.NORMAL)
        self.log_text.delete("1.0", tk.END)
        self.log_text.configure(state=tk.DISABLED)
        self.logger.clear_logs()
        self.status_var.set("Status: Log cleared.")

    def _copy_logs_to_clipboard(self) -> None:
        content = "\n".join(str(entry) for entry in self.logger.get_all_logs())
        if not content:
            self.status_var.set("Status: Log is empty.")
            return
        self.root.clipboard_clear()
        self.root.clipboard_append(content)
        self.status_var.set("Status: Log copied to clipboard.")

    # ------------------------------------------------------------------
    # Hotkeys & shutdown
    # ------------------------------------------------------------------
    def _setup_hotkeys(self) -> None:
        self.hotkey_manager.register_abort_callback(self.runtime.abort)
        if self.hotkey_manager.enable_hotkeys():
            self._log_message(f"Abort hotkey: {self.hotkey_manager.get_abort_hotkey()}")
        else:
            self._log_message(
                f"Abort hotkey unavailable: {self.hotkey_manager.last_error}", level="WARNING"
            )

    def _persist_settings(self) -> None:
        self.settings.abort_hotkey = self.hotkey_manager.get_abort_hotkey()
        self.settings.brush_color = self.creator.brush_color
        self.settings.brush_width = self.creator.brush_width
        try:
            self.settings_manager.save(self.settings)
        except OSError as e:
            self.logger.log_error(f"Settings could not be saved: {e}")

    def _on_closing(self) -> None:
        if self.refresh_job:
            self.root.after_cancel(self.refresh_job)
        self.hotkey_manager.disable_hotkeys()
        self.runtime.abort()
        self.runtime.stop()
        self._persist_settings()
        self.root.destroy()
