"""OS integration - producers and collaborators that talk to the desktop.

Components:
- GlobalHotkeyListener: Listens for global hotkeys via pynput
- ClipboardPoller: Polls the clipboard via pyperclip and Pillow
- FocusTracker: Saves/restores the externally focused window
- CommandServer: Unix socket for single-instance control
"""
