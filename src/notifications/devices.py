"""Device token store — where the push sender finds a user's devices.

Tokens are registered by the client-facing profile service; this process only
reads them and forgets the ones the push provider reports as invalid.
"""

import threading

_store = None


class DeviceTokenStore:
    def __init__(self):
        self._tokens: dict[str, list[str]] = {}
        self._lock = threading.Lock()

    def register(self, user_id, token):
        with self._lock:
            tokens = self._tokens.setdefault(str(user_id), [])
            if token not in tokens:
                tokens.append(token)

    def tokens_for(self, user_id):
        with self._lock:
            return list(self._tokens.get(str(user_id), []))

    def remove(self, user_id, token):
        with self._lock:
            tokens = self._tokens.get(str(user_id), [])
            if token in tokens:
                tokens.remove(token)


def get_device_store():
    global _store
    if _store is None:
        _store = DeviceTokenStore()
    return _store


def reset_device_store():
    global _store
    _store = None
