"""
In-process concurrent brute-force search.

N threads generate keypairs until one of them hits the pattern. The first
hit claims the rendezvous, sets the shared stop event and every sibling
exits at its next batch boundary.
"""

import logging
import os
import queue
import threading
from dataclasses import dataclass
from typing import Callable

from ..errors import EngineError
from ..keys import generate_keypair
from ..models import PatternSpec
from ..schemas import MatchResult

log = logging.getLogger("engine.bruteforce")

Keygen = Callable[[], tuple[str, str]]


@dataclass(frozen=True)
class MatchRule:
    """What a candidate address has to look like.

    prefix/suffix are compared against the lower-cased address. repeat_tail
    asks for the last N characters to be identical (the "5a".."8a" tasks).
    """
    prefix: str = ""
    suffix: str = ""
    repeat_tail: int = 0

    @classmethod
    def from_spec(cls, spec: PatternSpec) -> "MatchRule":
        if spec.template_list:
            return cls(repeat_tail=spec.suffix_count)
        return cls(prefix=spec.prefix.lower(), suffix=spec.suffix.lower())

    @property
    def is_empty(self) -> bool:
        return not (self.prefix or self.suffix or self.repeat_tail)

    def matches(self, address: str) -> bool:
        lowered = address.lower()
        if self.prefix and not lowered.startswith(self.prefix):
            return False
        if self.suffix and not lowered.endswith(self.suffix):
            return False
        if self.repeat_tail:
            tail = address[-self.repeat_tail:]
            if len(tail) < self.repeat_tail or tail != tail[0] * self.repeat_tail:
                return False
        return True


class _SearchState:
    """Shared by the threads of a single search() call."""

    def __init__(self, num_workers: int):
        self.stop = threading.Event()
        self.counts = [0] * num_workers
        self._lock = threading.Lock()
        self._rendezvous: queue.Queue = queue.Queue(maxsize=1)

    def offer(self, kind: str, value) -> bool:
        """Hand a value to the waiting search; only the first offer wins."""
        with self._lock:
            if self.stop.is_set():
                return False
            self.stop.set()
        self._rendezvous.put_nowait((kind, value))
        return True

    def take(self):
        return self._rendezvous.get()


class BruteForceSearcher:
    def __init__(
        self,
        num_workers: int = 0,
        keygen: Keygen = generate_keypair,
        batch_size: int = 256,
        join_timeout: float = 5.0,
    ):
        self.num_workers = num_workers if num_workers > 0 else max(1, (os.cpu_count() or 2) - 1)
        self.keygen = keygen
        self.batch_size = batch_size
        self.join_timeout = join_timeout
        self._active: set[_SearchState] = set()
        self._active_lock = threading.Lock()

    def search(self, spec: PatternSpec) -> MatchResult:
        rule = MatchRule.from_spec(spec)
        return self.search_rule(rule)

    def search_rule(self, rule: MatchRule) -> MatchResult:
        if rule.is_empty:
            raise EngineError("brute-force search needs a prefix, a suffix or a repeated tail")

        state = _SearchState(self.num_workers)
        with self._active_lock:
            self._active.add(state)

        threads = [
            threading.Thread(
                target=self._search_worker,
                args=(rule, state, i),
                daemon=True,
                name=f"vanity-search-{i}",
            )
            for i in range(self.num_workers)
        ]
        try:
            for t in threads:
                t.start()
            kind, value = state.take()
        finally:
            state.stop.set()
            for t in threads:
                if t.ident is not None:
                    t.join(timeout=self.join_timeout)
            with self._active_lock:
                self._active.discard(state)

        total = sum(state.counts)
        if kind == "error":
            raise EngineError(f"search worker failed: {value!r}") from value
        if kind == "cancelled":
            raise EngineError("search cancelled")

        private_key, address = value
        log.info(f"match {address} after ~{total} keys", extra={"event": "bruteforce_match"})
        return MatchResult(private_key=private_key, address=address, total_generated=total)

    def _search_worker(self, rule: MatchRule, state: _SearchState, index: int) -> None:
        keygen = self.keygen
        count = 0
        try:
            while not state.stop.is_set():
                for _ in range(self.batch_size):
                    private_key, address = keygen()
                    count += 1
                    if rule.matches(address):
                        state.counts[index] = count
                        state.offer("match", (private_key, address))
                        return
                state.counts[index] = count
        except Exception as e:
            state.counts[index] = count
            state.offer("error", e)

    def close(self) -> None:
        """Stop every in-flight search; their callers get an EngineError."""
        with self._active_lock:
            active = list(self._active)
        for state in active:
            state.offer("cancelled", None)
