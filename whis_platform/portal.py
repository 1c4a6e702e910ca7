"""XDG Desktop Portal GlobalShortcuts backend (Wayland).

Two sources know the current binding and neither is fully reliable:
- GNOME's dconf database (readable even when the portal refuses to bind)
- the portal's own BindShortcuts/ListShortcuts responses

The dconf value is published first, the portal value overwrites it when
binding succeeds.

Protocol:
    Whis                              Portal
      │──── CreateSession ──────────────►│
      │◄─── Request.Response ────────────│ (session_handle)
      │──── BindShortcuts ──────────────►│
      │◄─── Request.Response ────────────│ (shortcuts + trigger_description)
      │◄─── Activated (per key press) ───│
"""

from __future__ import annotations

import asyncio
import logging
import subprocess
import uuid
from typing import AsyncIterator, Callable

from dbus_fast import BusType, Message, MessageType, Variant
from dbus_fast.aio import MessageBus

from config import (
    DCONF_SHORTCUTS_PATH,
    PORTAL_BUS_NAME,
    PORTAL_CONFIGURE_MIN_VERSION,
    PORTAL_OBJECT_PATH,
    PORTAL_REQUEST_INTERFACE,
    PORTAL_SHORTCUTS_INTERFACE,
    PROBE_TIMEOUT,
    SHORTCUT_DESCRIPTION,
    SHORTCUT_ID,
)
from utils.errors import (
    InvalidShortcut,
    ProtocolBindFailed,
    ProtocolBindRejected,
    UnsupportedProtocolVersion,
    WhisError,
)
from utils.hotkey import parse_dconf_dump, parse_shortcut, to_portal_trigger
from utils.state import AppState
from whis_platform.environment import get_portal_version

logger = logging.getLogger("whis.platform.portal")

# Portal request response codes
RESPONSE_SUCCESS = 0

# (id, description, preferred trigger or None)
NewShortcut = tuple[str, str, "str | None"]


# =============================================================================
# dconf (GNOME)
# =============================================================================


def read_portal_shortcut_from_dconf() -> str | None:
    """Reads the portal binding GNOME stored in dconf ("Ctrl+Alt+M")."""
    try:
        result = subprocess.run(
            ["dconf", "dump", DCONF_SHORTCUTS_PATH],
            capture_output=True,
            text=True,
            timeout=PROBE_TIMEOUT,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"dconf dump failed: {e}")
        return None
    if result.returncode != 0:
        return None
    return parse_dconf_dump(result.stdout)


def reset_portal_shortcuts() -> None:
    """Clears all portal bindings in dconf so the next start can rebind."""
    try:
        subprocess.run(
            ["dconf", "reset", "-f", DCONF_SHORTCUTS_PATH],
            check=True,
            capture_output=True,
            timeout=PROBE_TIMEOUT,
        )
    except (OSError, subprocess.SubprocessError) as e:
        raise WhisError(f"Could not reset portal shortcuts: {e}") from e
    logger.info("Portal shortcuts reset in dconf")


# =============================================================================
# D-Bus client
# =============================================================================


def _new_token() -> str:
    return f"whis_{uuid.uuid4().hex[:12]}"


def _parse_shortcuts(results: dict) -> dict[str, str]:
    """Maps shortcut id → trigger description from a portal response."""
    variant = results.get("shortcuts")
    if variant is None:
        return {}
    triggers: dict[str, str] = {}
    for shortcut_id, props in variant.value:
        trigger = props.get("trigger_description")
        triggers[shortcut_id] = trigger.value if trigger is not None else ""
    return triggers


class GlobalShortcutsPortal:
    """Minimal asyncio client for org.freedesktop.portal.GlobalShortcuts."""

    def __init__(self) -> None:
        self._bus: MessageBus | None = None
        self._pending: dict[str, asyncio.Future] = {}
        self._sessions: set[str] = set()
        self._activations: asyncio.Queue[str] = asyncio.Queue()

    async def connect(self) -> "GlobalShortcutsPortal":
        try:
            self._bus = await MessageBus(bus_type=BusType.SESSION).connect()
        except Exception as e:
            raise ProtocolBindFailed(f"Session bus unavailable: {e}") from e
        self._bus.add_message_handler(self._on_message)
        await self._add_match(
            f"type='signal',interface='{PORTAL_REQUEST_INTERFACE}',member='Response'"
        )
        await self._add_match(
            f"type='signal',interface='{PORTAL_SHORTCUTS_INTERFACE}',member='Activated'"
        )
        return self

    def close(self) -> None:
        if self._bus is not None:
            self._bus.disconnect()
            self._bus = None

    async def _add_match(self, rule: str) -> None:
        await self._bus.call(
            Message(
                destination="org.freedesktop.DBus",
                path="/org/freedesktop/DBus",
                interface="org.freedesktop.DBus",
                member="AddMatch",
                signature="s",
                body=[rule],
            )
        )

    def _on_message(self, message: Message) -> None:
        if message.message_type is not MessageType.SIGNAL:
            return None
        if message.interface == PORTAL_REQUEST_INTERFACE and message.member == "Response":
            future = self._pending.get(message.path)
            if future is not None and not future.done():
                future.set_result(message.body)
        elif (
            message.interface == PORTAL_SHORTCUTS_INTERFACE
            and message.member == "Activated"
        ):
            session_handle, shortcut_id = message.body[0], message.body[1]
            if session_handle in self._sessions:
                self._activations.put_nowait(shortcut_id)
        return None

    def _request_path(self, token: str) -> str:
        if self._bus is None:
            raise ProtocolBindFailed("Portal not connected")
        sender = self._bus.unique_name.lstrip(":").replace(".", "_")
        return f"{PORTAL_OBJECT_PATH}/request/{sender}/{token}"

    async def _call(self, member: str, signature: str, body: list) -> list:
        if self._bus is None:
            raise ProtocolBindFailed("Portal not connected")
        reply = await self._bus.call(
            Message(
                destination=PORTAL_BUS_NAME,
                path=PORTAL_OBJECT_PATH,
                interface=PORTAL_SHORTCUTS_INTERFACE,
                member=member,
                signature=signature,
                body=body,
            )
        )
        if reply.message_type is MessageType.ERROR:
            detail = reply.body[0] if reply.body else ""
            raise ProtocolBindFailed(f"{member} failed: {reply.error_name} {detail}".strip())
        return reply.body

    async def _request(
        self, member: str, signature: str, body: list, options: dict
    ) -> dict:
        """Calls a method that answers through an org.freedesktop.portal.Request."""
        token = _new_token()
        path = self._request_path(token)
        future = asyncio.get_running_loop().create_future()
        # Subscribe before calling, the response may arrive immediately
        self._pending[path] = future
        handle = path
        try:
            reply = await self._call(
                member, signature, [*body, {**options, "handle_token": Variant("s", token)}]
            )
            handle = reply[0]
            if handle != path:
                # Old portals ignore handle_token
                self._pending[handle] = future
            code, results = await future
        finally:
            self._pending.pop(path, None)
            self._pending.pop(handle, None)

        if code != RESPONSE_SUCCESS:
            raise ProtocolBindRejected(f"{member} rejected by portal (response {code})")
        return results

    async def create_session(self) -> str:
        results = await self._request(
            "CreateSession",
            "a{sv}",
            [],
            {"session_handle_token": Variant("s", _new_token())},
        )
        session_handle = str(results["session_handle"].value)
        self._sessions.add(session_handle)
        return session_handle

    async def bind_shortcuts(
        self, session_handle: str, shortcuts: list[NewShortcut]
    ) -> dict[str, str]:
        entries = []
        for shortcut_id, description, preferred in shortcuts:
            props = {"description": Variant("s", description)}
            if preferred:
                props["preferred_trigger"] = Variant("s", preferred)
            entries.append([shortcut_id, props])
        results = await self._request(
            "BindShortcuts", "oa(sa{sv})sa{sv}", [session_handle, entries, ""], {}
        )
        return _parse_shortcuts(results)

    async def list_shortcuts(self, session_handle: str) -> dict[str, str]:
        results = await self._request("ListShortcuts", "oa{sv}", [session_handle], {})
        return _parse_shortcuts(results)

    async def configure_shortcuts(self, session_handle: str) -> None:
        """Opens the system shortcut dialog (portal version 2+)."""
        await self._call("ConfigureShortcuts", "osa{sv}", [session_handle, "", {}])

    async def activations(self) -> AsyncIterator[str]:
        """Yields the shortcut id of every activation, forever."""
        while True:
            yield await self._activations.get()


# =============================================================================
# Backend
# =============================================================================


def _preferred_trigger(shortcut: str | None) -> str | None:
    if not shortcut:
        return None
    try:
        return to_portal_trigger(parse_shortcut(shortcut))
    except InvalidShortcut as e:
        logger.warning(f"Ignoring preferred trigger {shortcut!r}: {e}")
        return None


class PortalShortcutBackend:
    """Global shortcut through the XDG GlobalShortcuts portal."""

    def __init__(
        self,
        state: AppState,
        portal_factory: Callable[[], GlobalShortcutsPortal] = GlobalShortcutsPortal,
        dconf_reader: Callable[[], str | None] = read_portal_shortcut_from_dconf,
        version_probe: Callable[[], int] = get_portal_version,
    ) -> None:
        self.state = state
        self._portal_factory = portal_factory
        self._dconf_reader = dconf_reader
        self._version_probe = version_probe

    async def setup(self, shortcut: str, on_toggle: Callable[[], None]) -> None:
        """Binds the shortcut and forwards activations for the process lifetime."""
        # dconf works even if the portal bind fails below
        existing = await asyncio.to_thread(self._dconf_reader)
        if existing:
            logger.info(f"Found existing portal shortcut in dconf: {existing}")
            self.state.portal_shortcut = existing

        portal = await self._portal_factory().connect()
        session = await portal.create_session()

        # May fail on portal v1 if already registered under a different app id
        try:
            bound = await portal.bind_shortcuts(
                session,
                [(SHORTCUT_ID, SHORTCUT_DESCRIPTION, _preferred_trigger(shortcut))],
            )
        except (ProtocolBindFailed, ProtocolBindRejected) as e:
            logger.warning(f"Portal bind failed: {e}")
            logger.warning("Will use dconf shortcut if available")
            self.state.portal_bind_error = str(e)
        else:
            self.state.portal_bind_error = None
            trigger = bound.get(SHORTCUT_ID)
            if trigger:
                logger.info(f"Portal bound shortcut: {trigger}")
                self.state.portal_shortcut = trigger
            logger.info("Portal shortcuts registered, listening for activations")

        # Activations may still arrive even if binding failed
        async for shortcut_id in portal.activations():
            if shortcut_id == SHORTCUT_ID:
                logger.info("Portal shortcut triggered")
                on_toggle()

    async def open_configuration_dialog(self) -> str | None:
        """Opens the system shortcut dialog, returns the resulting binding.

        Raises:
            UnsupportedProtocolVersion: portal older than version 2
        """
        version = await asyncio.to_thread(self._version_probe)
        if version < PORTAL_CONFIGURE_MIN_VERSION:
            raise UnsupportedProtocolVersion(version, PORTAL_CONFIGURE_MIN_VERSION)
        return await self._rebind(preferred=None, configure=True)

    async def configure_with_preferred_trigger(self, trigger: str) -> str | None:
        """Re-binds with a trigger captured in the app ("Ctrl+Shift+R")."""
        return await self._rebind(preferred=_preferred_trigger(trigger), configure=False)

    async def _rebind(self, preferred: str | None, configure: bool) -> str | None:
        portal = await self._portal_factory().connect()
        try:
            session = await portal.create_session()
            # Re-bind our id so the session knows about it
            await portal.bind_shortcuts(
                session, [(SHORTCUT_ID, SHORTCUT_DESCRIPTION, preferred)]
            )
            if configure:
                # Returns once the user closes the dialog
                await portal.configure_shortcuts(session)
            trigger = (await portal.list_shortcuts(session)).get(SHORTCUT_ID)
        finally:
            portal.close()

        if trigger:
            self.state.portal_shortcut = trigger
            self.state.portal_bind_error = None
            logger.info(f"Portal shortcut updated to: {trigger}")
        return trigger or None


__all__ = [
    "GlobalShortcutsPortal",
    "PortalShortcutBackend",
    "read_portal_shortcut_from_dconf",
    "reset_portal_shortcuts",
]
