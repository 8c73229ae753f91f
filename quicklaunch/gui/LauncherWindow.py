import logging
import tkinter as tk
from typing import Callable, List, Optional, Sequence

from PIL import Image, ImageTk

from quicklaunch.LauncherState import DEFAULT_WINDOW_HEIGHT, MAX_VISIBLE_ROWS, ROW_HEIGHT, WINDOW_WIDTH
from quicklaunch.messages import (
    EscapePressed,
    Message,
    QueryChanged,
    RunAction,
    WindowCloseRequested,
    WindowFocusChanged,
)
from quicklaunch.types import (
    ClipboardContent,
    CopyToClipboard,
    Entry,
    Icon,
    describe_clipboard_content,
)


class LauncherWindow:
    """
    Borderless launcher window: a query field above a five-row viewport
    over the results (or clipboard history), scrolled with the arrow keys
    or the mouse wheel.

    Implements the WindowHost protocol. It never changes launcher state
    itself; keystrokes, clicks and focus changes are posted as messages
    and the state machine calls back into open/close/render/resize.
    """

    BG_COLOR = '#1E1E1E'
    ROW_COLOR = '#1E1E1E'
    SELECTED_COLOR = '#2F3B4D'
    TEXT_COLOR = '#FFFFFF'
    HINT_COLOR = '#AAAAAA'
    BORDER_COLOR = '#3D3D3D'

    FONT_QUERY = ('Segoe UI', 16)
    FONT_NAME = ('Segoe UI', 12)
    FONT_DESC = ('Segoe UI', 9)

    PADDING_X = 16
    ICON_SIZE = 32
    # Delay before a FocusOut is trusted; focus moves between child widgets
    FOCUS_CHECK_MS = 50

    def __init__(
        self,
        root: tk.Tk,
        post: Callable[[Message], None],
        placeholder: str = "",
        show_icons: bool = True,
        verbose: bool = False
    ) -> None:
        self._root = root
        self._post = post
        self._placeholder = placeholder
        self._show_icons = show_icons
        self._verbose = verbose

        self._height = DEFAULT_WINDOW_HEIGHT
        self._resize_job: Optional[str] = None
        self._suppress_query_events = False
        self._rows_data: List[tuple] = []
        self._row_actions: List = []
        self._selected = 0
        # Index of the first row shown in the viewport
        self._offset = 0
        # PhotoImage objects must stay referenced while displayed
        self._photos: List[ImageTk.PhotoImage] = []

        self._window = tk.Toplevel(root)
        self._window.withdraw()
        self._window.overrideredirect(True)
        self._window.attributes('-topmost', True)
        self._window.configure(bg=self.BG_COLOR)
        self._window.geometry(f"{WINDOW_WIDTH}x{self._height}")

        self._create_layout()
        self._bind_events()

        if verbose:
            logging.info("LauncherWindow: created")

    def _create_layout(self) -> None:
        self._frame = tk.Frame(
            self._window,
            bg=self.BG_COLOR,
            highlightthickness=1,
            highlightbackground=self.BORDER_COLOR
        )
        self._frame.pack(fill=tk.BOTH, expand=True)

        self._query_var = tk.StringVar(self._window)
        self._query_var.trace_add('write', self._on_query_written)

        self._entry = tk.Entry(
            self._frame,
            textvariable=self._query_var,
            font=self.FONT_QUERY,
            fg=self.TEXT_COLOR,
            bg=self.BG_COLOR,
            insertbackground=self.TEXT_COLOR,
            relief=tk.FLAT,
            highlightthickness=0
        )
        self._entry.place(x=self.PADDING_X, y=0, width=WINDOW_WIDTH - 2 * self.PADDING_X,
                          height=DEFAULT_WINDOW_HEIGHT)

        self._placeholder_label = tk.Label(
            self._frame,
            text=self._placeholder,
            font=self.FONT_QUERY,
            fg=self.HINT_COLOR,
            bg=self.BG_COLOR,
            anchor='w'
        )
        self._placeholder_label.bind('<Button-1>', lambda e: self._entry.focus_set())
        self._update_placeholder()

        self._rows = tk.Frame(self._frame, bg=self.BG_COLOR)
        self._rows.place(x=0, y=DEFAULT_WINDOW_HEIGHT, width=WINDOW_WIDTH,
                         height=ROW_HEIGHT * MAX_VISIBLE_ROWS)

    def _bind_events(self) -> None:
        self._window.bind('<Return>', self._handle_return)
        self._window.bind('<Escape>', lambda e: self._post(EscapePressed()))
        self._window.bind('<Up>', lambda e: self._move_selection(-1))
        self._window.bind('<Down>', lambda e: self._move_selection(1))
        self._window.bind('<MouseWheel>', self._on_mouse_wheel)
        self._window.bind('<Button-4>', lambda e: self._scroll(-1))
        self._window.bind('<Button-5>', lambda e: self._scroll(1))
        self._window.bind('<FocusIn>', self._handle_focus_in)
        self._window.bind('<FocusOut>', self._handle_focus_out)
        self._window.protocol('WM_DELETE_WINDOW', lambda: self._post(WindowCloseRequested()))

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def _on_query_written(self, *args) -> None:
        self._update_placeholder()
        if self._suppress_query_events:
            return
        self._post(QueryChanged(self._query_var.get()))

    def _update_placeholder(self) -> None:
        if self._query_var.get() or not self._placeholder:
            self._placeholder_label.place_forget()
        else:
            self._placeholder_label.place(x=self.PADDING_X + 2, y=0, height=DEFAULT_WINDOW_HEIGHT)

    def _handle_return(self, event=None) -> None:
        if not self._row_actions:
            return
        self._post(RunAction(self._row_actions[self._selected]))

    def _handle_click(self, index: int) -> None:
        if index < len(self._row_actions):
            self._post(RunAction(self._row_actions[index]))

    def _move_selection(self, delta: int) -> None:
        if not self._row_actions:
            return
        self._selected = (self._selected + delta) % len(self._row_actions)
        if self._selected < self._offset:
            self._show_from(self._selected)
        elif self._selected >= self._offset + MAX_VISIBLE_ROWS:
            self._show_from(self._selected - MAX_VISIBLE_ROWS + 1)
        else:
            self._highlight_selection()

    def _on_mouse_wheel(self, event) -> None:
        self._scroll(-1 if event.delta > 0 else 1)

    def _scroll(self, delta: int) -> None:
        """Move the viewport; the selection stays inside it."""
        last_offset = max(0, len(self._rows_data) - MAX_VISIBLE_ROWS)
        offset = min(max(self._offset + delta, 0), last_offset)
        if offset == self._offset:
            return
        self._selected = min(max(self._selected, offset), offset + MAX_VISIBLE_ROWS - 1)
        self._show_from(offset)

    def _handle_focus_in(self, event=None) -> None:
        self._post(WindowFocusChanged(True))

    def _handle_focus_out(self, event=None) -> None:
        self._window.after(self.FOCUS_CHECK_MS, self._check_focus_lost)

    def _check_focus_lost(self) -> None:
        try:
            focused = self._window.focus_get()
        except (KeyError, tk.TclError):
            focused = None
        if focused is None:
            self._post(WindowFocusChanged(False))

    # ------------------------------------------------------------------
    # WindowHost
    # ------------------------------------------------------------------

    def open(self) -> None:
        self._center_window()
        self._window.deiconify()
        self._window.lift()

        if self._verbose:
            logging.info("LauncherWindow: opened")

    def close(self) -> None:
        self._cancel_resize()
        self._window.withdraw()

        if self._verbose:
            logging.info("LauncherWindow: closed")

    def focus(self) -> None:
        self._window.focus_force()
        self._entry.focus_set()

    def resize(self, height: int) -> None:
        self._cancel_resize()
        self._apply_height(height)

    def schedule_resize(self, height: int, delay_ms: int) -> None:
        self._cancel_resize()
        self._resize_job = self._window.after(delay_ms, self._apply_scheduled, height)

    def set_query(self, text: str) -> None:
        if self._query_var.get() == text:
            return
        self._suppress_query_events = True
        try:
            self._query_var.set(text)
        finally:
            self._suppress_query_events = False
        self._entry.icursor(tk.END)

    def render(self, results: Sequence[Entry], clipboard: Sequence[ClipboardContent],
               show_clipboard: bool) -> None:
        if show_clipboard:
            rows = [(describe_clipboard_content(c), "Clipboard", None, CopyToClipboard(c))
                    for c in clipboard]
        else:
            rows = [(e.name, e.description, e.icon, e.action) for e in results]

        self._rows_data = rows
        self._row_actions = [action for _, _, _, action in rows]
        self._selected = 0
        self._show_from(0)

    def quit(self) -> None:
        self._cancel_resize()
        self._window.destroy()
        self._root.quit()

    # ------------------------------------------------------------------
    # Layout helpers
    # ------------------------------------------------------------------

    def _show_from(self, offset: int) -> None:
        """Rebuild the visible rows starting at row index offset."""
        for child in self._rows.winfo_children():
            child.destroy()
        self._photos = []

        self._offset = offset
        visible = self._rows_data[offset:offset + MAX_VISIBLE_ROWS]
        for slot, (name, description, icon, _) in enumerate(visible):
            self._create_row(slot, offset + slot, name, description, icon)
        self._highlight_selection()

    def _create_row(self, slot: int, index: int, name: str, description: str,
                    icon: Optional[Icon]) -> None:
        row = tk.Frame(self._rows, bg=self.ROW_COLOR, height=ROW_HEIGHT, cursor='hand2')
        row.place(x=0, y=slot * ROW_HEIGHT, width=WINDOW_WIDTH, height=ROW_HEIGHT)

        text_x = self.PADDING_X
        if self._show_icons and icon is not None:
            photo = self._photo_for(icon)
            if photo is not None:
                icon_label = tk.Label(row, image=photo, bg=self.ROW_COLOR)
                icon_label.place(x=self.PADDING_X, y=(ROW_HEIGHT - self.ICON_SIZE) // 2)
                text_x += self.ICON_SIZE + 12

        name_label = tk.Label(row, text=name, font=self.FONT_NAME, fg=self.TEXT_COLOR,
                              bg=self.ROW_COLOR, anchor='w')
        name_label.place(x=text_x, y=6, width=WINDOW_WIDTH - text_x - self.PADDING_X)
        desc_label = tk.Label(row, text=description, font=self.FONT_DESC, fg=self.HINT_COLOR,
                              bg=self.ROW_COLOR, anchor='w')
        desc_label.place(x=text_x, y=30, width=WINDOW_WIDTH - text_x - self.PADDING_X)

        for widget in (row, name_label, desc_label):
            widget.bind('<Button-1>', lambda e, i=index: self._handle_click(i))

    def _photo_for(self, icon: Icon) -> Optional[ImageTk.PhotoImage]:
        try:
            image = Image.frombytes("RGBA", (icon.width, icon.height), icon.rgba)
        except ValueError as e:
            logging.debug(f"LauncherWindow: bad icon data: {e}")
            return None
        if image.size != (self.ICON_SIZE, self.ICON_SIZE):
            image = image.resize((self.ICON_SIZE, self.ICON_SIZE))
        photo = ImageTk.PhotoImage(image, master=self._window)
        self._photos.append(photo)
        return photo

    def _highlight_selection(self) -> None:
        for slot, row in enumerate(self._rows.winfo_children()):
            color = self.SELECTED_COLOR if self._offset + slot == self._selected else self.ROW_COLOR
            row.configure(bg=color)
            for child in row.winfo_children():
                child.configure(bg=color)

    def _apply_scheduled(self, height: int) -> None:
        self._resize_job = None
        self._apply_height(height)

    def _apply_height(self, height: int) -> None:
        if height == self._height:
            return
        self._height = height
        x = self._window.winfo_x()
        y = self._window.winfo_y()
        self._window.geometry(f"{WINDOW_WIDTH}x{height}+{x}+{y}")

        if self._verbose:
            logging.info(f"LauncherWindow: resized to height {height}")

    def _cancel_resize(self) -> None:
        if self._resize_job is not None:
            self._window.after_cancel(self._resize_job)
            self._resize_job = None

    def _center_window(self) -> None:
        """Center the window horizontally, in the upper third of the screen."""
        self._window.update_idletasks()

        screen_width = self._window.winfo_screenwidth()
        screen_height = self._window.winfo_screenheight()

        x = (screen_width - WINDOW_WIDTH) // 2
        y = screen_height // 3 - DEFAULT_WINDOW_HEIGHT

        self._window.geometry(f"{WINDOW_WIDTH}x{self._height}+{x}+{y}")

    def is_visible(self) -> bool:
        """Check if the window is currently visible."""
        try:
            return self._window.winfo_viewable() == 1
        except tk.TclError:
            return False

    @property
    def height(self) -> int:
        return self._height

    @property
    def query_text(self) -> str:
        return self._query_var.get()
