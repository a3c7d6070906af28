"""
Runtime state patched in-band by the control plane.

``setconfig`` commands may introduce fields that are not known up front, so the
state is a string-keyed mapping rather than a fixed set of attributes. The
``connected`` flag is reserved for the connection state machine.
"""

import logging
from typing import Any, Iterator, Mapping, Optional

logger = logging.getLogger(__name__)

RESERVED_KEYS = frozenset({"connected"})

INITIAL_FIELDS: dict[str, Any] = {
    "authDevice": "",
    "authDomain": "",
    "authenticated": False,
    "sn": "",
    "s2": "",
}


class RuntimeState(Mapping[str, Any]):
    def __init__(self, patchable_keys: Optional[frozenset[str]] = None):
        self._patchable_keys = patchable_keys
        self._fields: dict[str, Any] = {"connected": False, **INITIAL_FIELDS}

    def __getitem__(self, key: str) -> Any:
        return self._fields[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"RuntimeState({self._fields!r})"

    @property
    def connected(self) -> bool:
        return bool(self._fields["connected"])

    def set_connected(self, connected: bool) -> None:
        self._fields["connected"] = connected

    def is_patchable(self, key: str) -> bool:
        if key in RESERVED_KEYS:
            return False
        return self._patchable_keys is None or key in self._patchable_keys

    def apply_patch(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        """Overwrite state fields from a ``setconfig`` payload.

        The ``cmd`` key is skipped. Returns the fields that were written;
        applying the same patch again leaves the state unchanged.
        """
        applied: dict[str, Any] = {}
        for key, value in fields.items():
            if key == "cmd":
                continue
            if not self.is_patchable(key):
                logger.warning("Ignoring setconfig for non-patchable field %r", key)
                continue
            self._fields[key] = value
            applied[key] = value
        if applied:
            logger.debug("Runtime state patched: %s", sorted(applied))
        return applied

    def snapshot(self) -> dict[str, Any]:
        return dict(self._fields)
