import logging
import threading
from typing import Callable, Dict, FrozenSet, Optional, Set, Tuple, Union
from pynput import keyboard

HotkeyTarget = Union[keyboard.Key, keyboard.KeyCode]
Combination = Tuple[HotkeyTarget, FrozenSet[keyboard.Key]]

K = keyboard.Key

# Config names for modifiers; left variants stand for either side
MODIFIER_NAMES = {
    'ctrl': K.ctrl_l, 'control': K.ctrl_l,
    'alt': K.alt_l, 'option': K.alt_l,
    'shift': K.shift_l,
    'cmd': K.cmd_l, 'super': K.cmd_l, 'win': K.cmd_l,
}

NAMED_KEYS = {
    'space': K.space, 'enter': K.enter, 'tab': K.tab,
    'esc': K.esc, 'escape': K.esc,
}
NAMED_KEYS.update({f'f{n}': getattr(K, f'f{n}') for n in range(1, 13)})

# Generic and right-hand modifiers as pynput reports them -> left variant
_SIDE_ALIASES = {
    K.ctrl: K.ctrl_l, K.ctrl_r: K.ctrl_l, K.ctrl_l: K.ctrl_l,
    K.alt: K.alt_l, K.alt_r: K.alt_l, K.alt_l: K.alt_l,
    K.shift: K.shift_l, K.shift_r: K.shift_l, K.shift_l: K.shift_l,
    K.cmd: K.cmd_l, K.cmd_r: K.cmd_l, K.cmd_l: K.cmd_l,
}


class HotkeyRegistrationError(ValueError):
    """Raised when a hotkey string cannot be parsed or is already taken."""


def parse_hotkey(hotkey: str) -> Combination:
    """Parse 'ctrl+shift+v' style strings into (target key, modifiers).

    Exactly one non-modifier key is required: a named key or a single
    character. Matching is case insensitive.
    """
    names = [name.strip() for name in hotkey.lower().split('+')]
    modifiers = frozenset(MODIFIER_NAMES[n] for n in names if n in MODIFIER_NAMES)
    keys = [n for n in names if n not in MODIFIER_NAMES]

    unknown = [n for n in keys if n not in NAMED_KEYS and len(n) != 1]
    if unknown:
        raise HotkeyRegistrationError(f"Unknown key in hotkey: {unknown[0]!r}")
    if len(keys) != 1:
        raise HotkeyRegistrationError(f"Hotkey needs exactly one non-modifier key: {hotkey!r}")

    key = keys[0]
    target = NAMED_KEYS[key] if key in NAMED_KEYS else keyboard.KeyCode.from_char(key)
    return target, modifiers


class GlobalHotkeyListener:
    """System-wide hotkeys reported as (hotkey_id, pressed) events.

    Hotkeys are registered before start(); each registration returns an id
    that later events carry. A release event is reported only for a hotkey
    whose press was reported.
    """

    def __init__(
        self,
        callback: Callable[[int, bool], None],
        verbose: bool = False
    ) -> None:
        self._callback = callback
        self._verbose = verbose
        self._listener: Optional[keyboard.Listener] = None
        self._held_modifiers: Set[keyboard.Key] = set()
        self._active: Set[int] = set()
        self._lock = threading.Lock()

        self._hotkeys: Dict[int, Combination] = {}
        self._next_id = 1

    def register(self, hotkey: str) -> int:
        """Register a hotkey like 'alt+space' and return its id.

        Raises:
            HotkeyRegistrationError: if the string is invalid or the same
                combination is already registered
        """
        combination = parse_hotkey(hotkey)

        with self._lock:
            if combination in self._hotkeys.values():
                raise HotkeyRegistrationError(f"Hotkey already registered: {hotkey}")
            hotkey_id = self._next_id
            self._next_id += 1
            self._hotkeys[hotkey_id] = combination

        if self._verbose:
            target, modifiers = combination
            logging.info(f"GlobalHotkeyListener: registered '{hotkey}' as id={hotkey_id} -> "
                         f"key={target}, modifiers={sorted(str(m) for m in modifiers)}")
        return hotkey_id

    def start(self) -> None:
        if self._listener is not None:
            return

        self._listener = keyboard.Listener(on_press=self._on_press, on_release=self._on_release)
        self._listener.daemon = True
        self._listener.start()

        if self._verbose:
            logging.info(f"GlobalHotkeyListener: started with {len(self._hotkeys)} hotkeys")

    def stop(self) -> None:
        listener, self._listener = self._listener, None
        if listener is None:
            return
        listener.stop()

        with self._lock:
            self._held_modifiers.clear()
            self._active.clear()

        if self._verbose:
            logging.info("GlobalHotkeyListener: stopped")

    def _on_press(self, key) -> None:
        triggered = []
        with self._lock:
            modifier = _SIDE_ALIASES.get(key)
            if modifier is not None:
                self._held_modifiers.add(modifier)
                return

            for hotkey_id, (target, modifiers) in self._hotkeys.items():
                if hotkey_id in self._active:
                    # key repeat
                    continue
                if _same_key(key, target) and modifiers <= self._held_modifiers:
                    self._active.add(hotkey_id)
                    triggered.append(hotkey_id)

        # Callbacks run outside the lock; they may call back into the listener
        for hotkey_id in triggered:
            if self._verbose:
                logging.info(f"GlobalHotkeyListener: hotkey {hotkey_id} pressed")
            self._callback(hotkey_id, True)

    def _on_release(self, key) -> None:
        with self._lock:
            modifier = _SIDE_ALIASES.get(key)
            if modifier is not None:
                self._held_modifiers.discard(modifier)
                return

            released = [i for i in self._active if _same_key(key, self._hotkeys[i][0])]
            self._active.difference_update(released)

        for hotkey_id in released:
            self._callback(hotkey_id, False)


def _same_key(key, target: HotkeyTarget) -> bool:
    if key == target:
        return True
    if isinstance(target, keyboard.KeyCode) and isinstance(key, keyboard.KeyCode):
        return key.char is not None and key.char.lower() == target.char
    return False
