from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .exceptions import RuleNotFoundError
from .models import Rule

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# One lock per store file, shared by every RuleStore pointing at it.
_LOCKS: Dict[str, threading.RLock] = {}
_LOCKS_GUARD = threading.Lock()


def _lock_for(path: str) -> threading.RLock:
    key = os.path.abspath(path)
    with _LOCKS_GUARD:
        lock = _LOCKS.get(key)
        if lock is None:
            lock = _LOCKS[key] = threading.RLock()
        return lock


class RuleStatusFilter(str, Enum):
    ALL = "all"
    ACTIVE = "active"
    INACTIVE = "inactive"


class RuleSortKey(str, Enum):
    NAME = "name"
    CATEGORY = "category"
    LAST_MODIFIED = "lastModified"
    PRIORITY = "priority"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


def _last_modified(rule: Rule) -> datetime:
    return rule.updated_at or rule.created_at or _EPOCH


_SORT_KEYS = {
    RuleSortKey.NAME: lambda r: r.name.lower(),
    RuleSortKey.CATEGORY: lambda r: r.category.lower(),
    RuleSortKey.LAST_MODIFIED: _last_modified,
    RuleSortKey.PRIORITY: lambda r: (r.priority, r.name.lower()),
}


class RuleStore:
    """Rules persisted as one JSON document (`{"rules": [...]}`); the last write wins.

    Each read-modify-write runs under a per-file lock, and the document is replaced atomically so readers
    never see a partial file.
    """

    def __init__(self, path: Union[str, os.PathLike]):
        self.path = os.fspath(path)
        self._lock = _lock_for(self.path)

    def _load(self) -> List[Rule]:
        with self._lock:
            if not os.path.exists(self.path):
                return []
            with open(self.path, "r", encoding="utf-8") as handle:
                raw = json.load(handle)
        if not isinstance(raw, dict):
            return []
        return [Rule.from_dict(item) for item in raw.get("rules", []) if isinstance(item, dict)]

    def _write(self, rules: List[Rule]) -> None:
        data: Dict[str, Any] = {
            "rules": [r.to_dict() for r in rules],
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        directory = os.path.dirname(os.path.abspath(self.path))
        with self._lock:
            fd, tmp_path = tempfile.mkstemp(prefix=".rules-", suffix=".json", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(data, handle, indent=2, ensure_ascii=False)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise

    def list(
        self,
        *,
        search: str = "",
        category: str = "all",
        status: Union[RuleStatusFilter, str] = RuleStatusFilter.ALL,
        sort_by: Union[RuleSortKey, str] = RuleSortKey.LAST_MODIFIED,
        order: Union[SortOrder, str] = SortOrder.DESC,
    ) -> List[Rule]:
        status = RuleStatusFilter(status)
        sort_by = RuleSortKey(sort_by)
        order = SortOrder(order)
        needle = search.strip().lower()

        def _matches(rule: Rule) -> bool:
            if needle and needle not in rule.name.lower() and needle not in rule.description.lower():
                return False
            if category != "all" and rule.category != category:
                return False
            if status == RuleStatusFilter.ACTIVE:
                return rule.is_active
            if status == RuleStatusFilter.INACTIVE:
                return not rule.is_active
            return True

        rules = [r for r in self._load() if _matches(r)]
        rules.sort(key=_SORT_KEYS[sort_by], reverse=order == SortOrder.DESC)
        return rules

    def get(self, rule_id: str) -> Rule:
        for rule in self._load():
            if rule.id == rule_id:
                return rule
        raise RuleNotFoundError(rule_id)

    def save(self, rule: Rule) -> Rule:
        now = datetime.now(timezone.utc)
        stored = rule.model_copy(deep=True)
        if not stored.id:
            stored.id = uuid.uuid4().hex
        if stored.created_at is None:
            stored.created_at = now
        stored.updated_at = now

        with self._lock:
            rules = self._load()
            for i, existing in enumerate(rules):
                if existing.id == stored.id:
                    stored.created_at = existing.created_at or stored.created_at
                    rules[i] = stored
                    break
            else:
                rules.append(stored)
            self._write(rules)
        logger.info("Saved rule %s (%r)", stored.id, stored.name)
        return stored

    def delete(self, rule_id: str) -> None:
        with self._lock:
            rules = self._load()
            remaining = [r for r in rules if r.id != rule_id]
            if len(remaining) == len(rules):
                raise RuleNotFoundError(rule_id)
            self._write(remaining)
        logger.info("Deleted rule %s", rule_id)

    def duplicate(self, rule_id: str) -> Rule:
        with self._lock:
            source = self.get(rule_id)
            copy = source.model_copy(
                deep=True,
                update={
                    "id": None,
                    "name": f"{source.name} (copy)",
                    "is_active": False,
                    "created_at": None,
                    "updated_at": None,
                },
            )
            return self.save(copy)

    def toggle_active(self, rule_id: str) -> Rule:
        with self._lock:
            rule = self.get(rule_id)
            rule.is_active = not rule.is_active
            return self.save(rule)

    def categories(self) -> List[str]:
        return sorted({r.category for r in self._load()})

    def active_rules(self, category: Optional[str] = None) -> List[Rule]:
        """Active rules in execution order: priority 1 first, ties by name."""
        rules = [r for r in self._load() if r.is_active and (category is None or r.category == category)]
        rules.sort(key=_SORT_KEYS[RuleSortKey.PRIORITY])
        return rules
