import logging
import sys
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError

from quicklaunch.types import Icon

# Icons embedded as PE resources; Pillow cannot read these
_EXECUTABLE_SUFFIXES = ('.exe', '.dll')


class PillowIconResolver:
    """Loads icons into RGBA bitmaps.

    Icon files (.icns, .ico, .png, ...) are opened with Pillow. On Windows
    the first icon resource of an .exe or .dll is drawn through the shell
    (win32gui) and converted with Pillow. Anything unreadable yields None;
    icon lookup never fails an index build.

    Args:
        size: Icons are scaled down to fit size x size
        platform: sys.platform value, overridable for tests
    """

    def __init__(self, size: int = 32, platform: Optional[str] = None) -> None:
        self.size = size
        self._platform = platform or sys.platform

    def resolve(self, path: Path) -> Optional[Icon]:
        if self._platform == 'win32' and path.suffix.lower() in _EXECUTABLE_SUFFIXES:
            image = self._extract_executable_icon(path)
        else:
            image = self._open_image(path)
        if image is None:
            return None

        image.thumbnail((self.size, self.size))
        return Icon(width=image.width, height=image.height, rgba=image.tobytes())

    def _open_image(self, path: Path) -> Optional[Image.Image]:
        try:
            with Image.open(path) as image:
                image.load()
                return image.convert("RGBA")
        except (OSError, UnidentifiedImageError, ValueError) as e:
            logging.debug(f"PillowIconResolver: no icon for {path}: {e}")
            return None

    def _extract_executable_icon(self, path: Path) -> Optional[Image.Image]:
        import pywintypes
        import win32con
        import win32gui
        import win32ui

        try:
            large, small = win32gui.ExtractIconEx(str(path), 0)
        except pywintypes.error as e:
            logging.debug(f"PillowIconResolver: cannot read icons of {path}: {e}")
            return None

        handles = list(large) + list(small)
        if not handles:
            logging.debug(f"PillowIconResolver: {path} has no icon resources")
            return None
        hicon = handles[0]

        size = self.size
        screen_dc = win32gui.GetDC(0)
        try:
            dc = win32ui.CreateDCFromHandle(screen_dc)
            bitmap = win32ui.CreateBitmap()
            bitmap.CreateCompatibleBitmap(dc, size, size)
            memory_dc = dc.CreateCompatibleDC()
            memory_dc.SelectObject(bitmap)
            win32gui.DrawIconEx(memory_dc.GetHandleOutput(), 0, 0, hicon, size, size, 0, 0,
                                win32con.DI_NORMAL)
            info = bitmap.GetInfo()
            bits = bitmap.GetBitmapBits(True)
            memory_dc.DeleteDC()
            win32gui.DeleteObject(bitmap.GetHandle())
        except (pywintypes.error, win32ui.error) as e:
            logging.debug(f"PillowIconResolver: drawing icon of {path} failed: {e}")
            return None
        finally:
            win32gui.ReleaseDC(0, screen_dc)
            for handle in handles:
                win32gui.DestroyIcon(handle)

        image = Image.frombuffer("RGB", (info['bmWidth'], info['bmHeight']), bits, "raw", "BGRX", 0, 1)
        return image.convert("RGBA")
