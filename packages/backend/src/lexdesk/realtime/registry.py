"""Connected-user index: user id → ids of that user's open connections.

Owned by a ConnectionGateway instance. A user may have several tabs or
devices open; the entry disappears with the last one so is_online()
stays truthful. Process-local, so "online" means "online here".
"""


class ConnectionRegistry:
    def __init__(self):
        self._by_user: dict[int, set[str]] = {}

    def add(self, user_id: int, connection_id: str) -> None:
        self._by_user.setdefault(user_id, set()).add(connection_id)

    def remove(self, user_id: int, connection_id: str) -> bool:
        """Forget a connection. Returns True when the user went offline."""
        conns = self._by_user.get(user_id)
        if conns is None:
            return False
        conns.discard(connection_id)
        if not conns:
            del self._by_user[user_id]
            return True
        return False

    def is_online(self, user_id: int) -> bool:
        return user_id in self._by_user

    def connections_for(self, user_id: int) -> frozenset[str]:
        return frozenset(self._by_user.get(user_id, ()))

    def user_count(self) -> int:
        return len(self._by_user)

    def connection_count(self) -> int:
        return sum(len(c) for c in self._by_user.values())
