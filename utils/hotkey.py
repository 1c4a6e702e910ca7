"""
Shortcut parsing and format conversion.

One stored form ("Ctrl+Shift+R") is converted into every backend format:
- pynput GlobalHotKeys ("<ctrl>+<shift>+r")
- XDG GlobalShortcuts preferred trigger ("CTRL+SHIFT+r")
- GNOME dconf GVariant ("<Control><Shift>r") back to display form
"""

from __future__ import annotations

from dataclasses import dataclass

from config import SHORTCUT_ID
from utils.errors import InvalidShortcut

# =============================================================================
# Key tables
# =============================================================================

# Alias (lowercase) → canonical modifier name
MODIFIER_ALIASES = {
    "ctrl": "Ctrl",
    "control": "Ctrl",
    "primary": "Ctrl",
    "alt": "Alt",
    "option": "Alt",
    "shift": "Shift",
    "super": "Super",
    "meta": "Super",
    "logo": "Super",
    "cmd": "Super",
    "command": "Super",
    "win": "Super",
}

# Canonical display order, independent of input order
MODIFIER_ORDER = ("Ctrl", "Alt", "Shift", "Super")

PYNPUT_MODIFIERS = {
    "Ctrl": "<ctrl>",
    "Alt": "<alt>",
    "Shift": "<shift>",
    "Super": "<cmd>",
}

PORTAL_MODIFIERS = {
    "Ctrl": "CTRL",
    "Alt": "ALT",
    "Shift": "SHIFT",
    "Super": "LOGO",
}

# Canonical named key → (pynput key name, xkb keysym)
NAMED_KEYS = {
    "Space": ("space", "space"),
    "Enter": ("enter", "Return"),
    "Tab": ("tab", "Tab"),
    "Escape": ("esc", "Escape"),
    "Backspace": ("backspace", "BackSpace"),
    "Delete": ("delete", "Delete"),
    "Insert": ("insert", "Insert"),
    "Home": ("home", "Home"),
    "End": ("end", "End"),
    "PageUp": ("page_up", "Page_Up"),
    "PageDown": ("page_down", "Page_Down"),
    "Up": ("up", "Up"),
    "Down": ("down", "Down"),
    "Left": ("left", "Left"),
    "Right": ("right", "Right"),
}

KEY_ALIASES = {
    "space": "Space",
    "enter": "Enter",
    "return": "Enter",
    "tab": "Tab",
    "esc": "Escape",
    "escape": "Escape",
    "backspace": "Backspace",
    "delete": "Delete",
    "del": "Delete",
    "insert": "Insert",
    "home": "Home",
    "end": "End",
    "pageup": "PageUp",
    "page_up": "PageUp",
    "pagedown": "PageDown",
    "page_down": "PageDown",
    "up": "Up",
    "down": "Down",
    "left": "Left",
    "right": "Right",
}

MAX_FUNCTION_KEY = 24

# dconf GVariant modifier tokens → display prefix
GVARIANT_MODIFIERS = (
    ("<Control>", "Ctrl+"),
    ("<Primary>", "Ctrl+"),
    ("<Alt>", "Alt+"),
    ("<Shift>", "Shift+"),
    ("<Super>", "Super+"),
)


# =============================================================================
# ShortcutSpec
# =============================================================================


@dataclass(frozen=True)
class ShortcutSpec:
    """A chord: ordered modifier set plus one terminal key."""

    modifiers: tuple[str, ...]
    key: str

    def __str__(self) -> str:
        return "+".join((*self.modifiers, self.key))


def _is_function_key(name: str) -> bool:
    return (
        len(name) > 1
        and name[0] == "f"
        and name[1:].isdigit()
        and 1 <= int(name[1:]) <= MAX_FUNCTION_KEY
    )


def _canonical_key(part: str) -> str:
    lower = part.lower()
    if lower in MODIFIER_ALIASES:
        raise InvalidShortcut(f"Shortcut needs a key after the modifiers: {part}")
    if lower in KEY_ALIASES:
        return KEY_ALIASES[lower]
    if _is_function_key(lower):
        return lower.upper()
    if len(part) == 1 and part.isprintable() and not part.isspace():
        return part.upper()
    raise InvalidShortcut(f"Unknown key: {part}")


def parse_shortcut(text: str) -> ShortcutSpec:
    """Parses a stored shortcut ("Ctrl+Shift+R") into a ShortcutSpec.

    Raises:
        InvalidShortcut: empty input, unknown modifier or key
    """
    if not text or not text.strip():
        raise InvalidShortcut("Empty shortcut")

    parts = [p.strip() for p in text.strip().split("+")]
    if any(not p for p in parts):
        raise InvalidShortcut(f"Malformed shortcut: {text!r}")

    *raw_modifiers, raw_key = parts

    modifiers: set[str] = set()
    for mod in raw_modifiers:
        canonical = MODIFIER_ALIASES.get(mod.lower())
        if canonical is None:
            raise InvalidShortcut(f"Unknown modifier: {mod}")
        modifiers.add(canonical)

    key = _canonical_key(raw_key)
    ordered = tuple(m for m in MODIFIER_ORDER if m in modifiers)
    return ShortcutSpec(modifiers=ordered, key=key)


# =============================================================================
# Backend formats
# =============================================================================


def to_pynput_hotkey(spec: ShortcutSpec) -> str:
    """ShortcutSpec → pynput GlobalHotKeys format ("<ctrl>+<shift>+r")."""
    if spec.key in NAMED_KEYS:
        key = f"<{NAMED_KEYS[spec.key][0]}>"
    elif _is_function_key(spec.key.lower()):
        key = f"<{spec.key.lower()}>"
    else:
        key = spec.key.lower()
    return "+".join((*(PYNPUT_MODIFIERS[m] for m in spec.modifiers), key))


def to_portal_trigger(spec: ShortcutSpec) -> str:
    """ShortcutSpec → XDG shortcut trigger ("CTRL+SHIFT+r")."""
    if spec.key in NAMED_KEYS:
        key = NAMED_KEYS[spec.key][1]
    elif _is_function_key(spec.key.lower()):
        key = spec.key
    else:
        key = spec.key.lower()
    return "+".join((*(PORTAL_MODIFIERS[m] for m in spec.modifiers), key))


def gvariant_to_display(raw: str) -> str:
    """Converts a GVariant accelerator to display form.

    "<Control><Alt>m" -> "Ctrl+Alt+M". Only the key after the last "+"
    is upper-cased.
    """
    converted = raw
    for token, display in GVARIANT_MODIFIERS:
        converted = converted.replace(token, display)

    last_plus = converted.rfind("+")
    if last_plus == -1:
        return converted.upper()
    modifiers, key = converted[: last_plus + 1], converted[last_plus + 1 :]
    return f"{modifiers}{key.upper()}"


def parse_dconf_dump(dump: str, shortcut_id: str = SHORTCUT_ID) -> str | None:
    """Extracts the bound trigger for `shortcut_id` from a dconf dump.

    Expected line format:
        shortcuts=[('toggle-recording', {'shortcuts': <['<Control><Alt>m']>, ...})]
    """
    for line in dump.splitlines():
        if shortcut_id not in line or "shortcuts" not in line:
            continue
        start = line.find("<['")
        if start == -1:
            continue
        end = line.find("']>", start)
        if end == -1:
            continue
        raw = line[start + 3 : end]
        if raw:
            return gvariant_to_display(raw)
    return None


__all__ = [
    "ShortcutSpec",
    "parse_shortcut",
    "to_pynput_hotkey",
    "to_portal_trigger",
    "gvariant_to_display",
    "parse_dconf_dump",
]
