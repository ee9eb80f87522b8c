"""
phishguard/inference/verdicts.py
--------------------------------
Verdict type and the per-session store the service answers verdict
queries from.
"""

import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Hashable

from phishguard.utils.config import CONFIG


class Label(str, Enum):
    PHISHING = "Phishing"
    SAFE = "Safe"
    UNCERTAIN = "Uncertain"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class Verdict:
    label: Label
    probability: float
    p_url: float
    p_dom: float

    def as_dict(self) -> Dict[str, object]:
        return {
            "label": self.label.value,
            "probability": self.probability,
            "pUrl": self.p_url,
            "pDom": self.p_dom,
        }


UNKNOWN_VERDICT = Verdict(label=Label.UNKNOWN, probability=0.0, p_url=0.0, p_dom=0.0)


class VerdictStore(ABC):
    """
    Last verdict per session id. Eviction is up to the implementation;
    callers should discard() a session when it ends.
    """

    @abstractmethod
    def put(self, session_id: Hashable, verdict: Verdict) -> None:
        ...

    @abstractmethod
    def get(self, session_id: Hashable) -> Verdict:
        """The stored verdict, or UNKNOWN_VERDICT."""

    @abstractmethod
    def discard(self, session_id: Hashable) -> None:
        ...


class InMemoryVerdictStore(VerdictStore):
    """Bounded LRU; the least recently written/read session is evicted first."""

    def __init__(self, max_entries: int = CONFIG.VERDICT_STORE_SIZE):
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = max_entries
        self._entries: "OrderedDict[Hashable, Verdict]" = OrderedDict()
        self._lock = threading.Lock()

    def put(self, session_id: Hashable, verdict: Verdict) -> None:
        with self._lock:
            self._entries[session_id] = verdict
            self._entries.move_to_end(session_id)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def get(self, session_id: Hashable) -> Verdict:
        with self._lock:
            verdict = self._entries.get(session_id)
            if verdict is None:
                return UNKNOWN_VERDICT
            self._entries.move_to_end(session_id)
            return verdict

    def discard(self, session_id: Hashable) -> None:
        with self._lock:
            self._entries.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._entries)
