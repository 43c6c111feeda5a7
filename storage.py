"""
In-memory group store.

Readers get deep copies, so a balance computation always runs over a
consistent snapshot; writes are serialized behind one lock.
"""
from threading import Lock
from typing import Dict, List, Optional

from models import Group


class InMemoryStorage:
    def __init__(self):
        self._groups: Dict[str, Group] = {}
        self._lock = Lock()

    def create_group(self, group: Group) -> Group:
        with self._lock:
            if group.id in self._groups:
                raise KeyError(f"Group {group.id} already exists")
            self._groups[group.id] = group.model_copy(deep=True)
        return group

    def get_group(self, group_id: str) -> Optional[Group]:
        with self._lock:
            group = self._groups.get(group_id)
            return group.model_copy(deep=True) if group else None

    def update_group(self, group: Group) -> Group:
        with self._lock:
            self._groups[group.id] = group.model_copy(deep=True)
        return group

    def list_groups(self) -> List[Group]:
        with self._lock:
            snapshot = [g.model_copy(deep=True) for g in self._groups.values()]
        return sorted(snapshot, key=lambda g: g.created_at, reverse=True)

    def delete_group(self, group_id: str) -> bool:
        with self._lock:
            return self._groups.pop(group_id, None) is not None


storage = InMemoryStorage()
