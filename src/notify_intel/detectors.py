"""
Duplicate and Spam Detection Strategies.

Both are pluggable into RuleFilter's trailing gate. Defaults:
- NoDuplicateDetector: never reports duplicates
- PhraseSpamDetector: flags text containing two or more spam phrases

FingerprintDuplicateDetector is an opt-in detector that remembers
normalized title+message fingerprints over a sliding window.
"""

from __future__ import annotations

import hashlib
import re
import threading
import unicodedata
from collections import OrderedDict
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from typing import Protocol, runtime_checkable

from .models import Notification, utc_now

DEFAULT_SPAM_PHRASES: tuple[str, ...] = ("urgent", "act now", "limited time", "click here")
DEFAULT_SPAM_THRESHOLD = 2


@runtime_checkable
class DuplicateDetector(Protocol):
    """Reports whether a notification repeats one already seen."""

    def is_duplicate(self, notification: Notification) -> bool:
        ...


@runtime_checkable
class SpamDetector(Protocol):
    """Reports whether a notification looks like spam."""

    def is_spam(self, notification: Notification) -> bool:
        ...


class NoDuplicateDetector:
    """Duplicate detector that never reports a duplicate."""

    def is_duplicate(self, notification: Notification) -> bool:
        return False


class PhraseSpamDetector:
    """
    Phrase-count spam heuristic.

    A notification is spam when at least ``threshold`` distinct phrases occur
    in its lower-cased title and message.
    """

    def __init__(
        self,
        phrases: Iterable[str] = DEFAULT_SPAM_PHRASES,
        threshold: int = DEFAULT_SPAM_THRESHOLD,
    ) -> None:
        self.phrases = tuple(p.lower() for p in phrases)
        self.threshold = threshold

    def matched_phrases(self, notification: Notification) -> list[str]:
        text = notification.text
        return [p for p in self.phrases if p in text]

    def is_spam(self, notification: Notification) -> bool:
        return len(self.matched_phrases(notification)) >= self.threshold


def normalize_text(text: str) -> str:
    """Normalize text: lowercase, strip punctuation, collapse whitespace."""
    text = unicodedata.normalize("NFKD", text.lower())
    text = re.sub(r"[^\w\s]", "", text)
    return re.sub(r"\s+", " ", text).strip()


def fingerprint(notification: Notification) -> str:
    """Stable fingerprint of a notification's normalized text and category."""
    basis = f"{notification.category.value}|{normalize_text(notification.title)}|{normalize_text(notification.message)}"
    return hashlib.sha1(basis.encode("utf-8")).hexdigest()


class FingerprintDuplicateDetector:
    """
    Sliding-window duplicate detector.

    Remembers the first notification id seen for each fingerprint. A later
    notification with the same fingerprint and a different id inside
    ``window`` is a duplicate. Re-checking the same id is never a duplicate.
    """

    def __init__(
        self,
        window: timedelta = timedelta(hours=1),
        max_entries: int = 10_000,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.window = window
        self.max_entries = max_entries
        self._clock = clock
        self._seen: OrderedDict[str, tuple[str, datetime]] = OrderedDict()
        self._lock = threading.Lock()

    def is_duplicate(self, notification: Notification) -> bool:
        key = fingerprint(notification)
        now = self._clock()

        with self._lock:
            self._expire(now)
            entry = self._seen.get(key)
            if entry is not None:
                first_id, _ = entry
                return first_id != notification.id

            self._seen[key] = (notification.id, now)
            while len(self._seen) > self.max_entries:
                self._seen.popitem(last=False)
            return False

    def _expire(self, now: datetime) -> None:
        cutoff = now - self.window
        while self._seen:
            oldest_key = next(iter(self._seen))
            if self._seen[oldest_key][1] >= cutoff:
                break
            del self._seen[oldest_key]

    def clear(self) -> None:
        with self._lock:
            self._seen.clear()

    def __len__(self) -> int:
        return len(self._seen)
