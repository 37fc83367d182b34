from __future__ import annotations

from typing import Dict, Hashable, Optional

from ..cache_base import Cache

_HOT = "hot"
_COLD = "cold"
# non-resident page remembered for one test period
_TEST = "test"


class _Page:
    __slots__ = ("key", "kind", "referenced", "prev", "next")

    def __init__(self, key: Hashable, kind: str):
        self.key = key
        self.kind = kind
        self.referenced = False
        self.prev: Optional[_Page] = None
        self.next: Optional[_Page] = None


class ClockProCache(Cache):
    """CLOCK-Pro: a clock approximation of LIRS balancing recency and frequency.

    All pages live on one circular list swept by three hands. Resident pages
    are hot or cold; cold pages that are evicted stay on the list as test
    pages, and a test page referenced again comes back hot and widens the
    cold target. Test pages that expire shrink it.
    """

    def __init__(self, size: int):
        super().__init__(size)
        self.cold_target = size
        self.pages: Dict[Hashable, _Page] = {}
        self.hand_hot: Optional[_Page] = None
        self.hand_cold: Optional[_Page] = None
        self.hand_test: Optional[_Page] = None
        self.count_hot = 0
        self.count_cold = 0
        self.count_test = 0

    def lookup(self, key: Hashable) -> bool:
        page = self.pages.get(key)
        if page is None or page.kind == _TEST:
            return False
        page.referenced = True
        return True

    def record(self, key: Hashable) -> None:
        page = self.pages.get(key)
        if page is None:
            self._insert(_Page(key, _COLD))
            self.count_cold += 1
            return

        if page.kind != _TEST:
            page.referenced = True
            return

        # reuse distance was shorter than the test period
        if self.cold_target < self.size:
            self.cold_target += 1
        page.referenced = False
        page.kind = _HOT
        self.count_test -= 1
        self._unlink(page)
        self._insert(page)
        self.count_hot += 1

    def get_stats(self) -> Dict[str, int]:
        return {
            "hot": self.count_hot,
            "cold": self.count_cold,
            "test": self.count_test,
            "cold_target": self.cold_target,
        }

    # --- ring maintenance ---------------------------------------------------
    def _insert(self, page: _Page) -> None:
        self._evict()
        self.pages[page.key] = page
        if self.hand_hot is None:
            page.prev = page.next = page
            self.hand_hot = self.hand_cold = self.hand_test = page
        else:
            after = self.hand_hot.next
            page.prev = self.hand_hot
            page.next = after
            self.hand_hot.next = page
            after.prev = page

        if self.hand_cold is self.hand_hot:
            self.hand_cold = self.hand_cold.next
        if self.hand_test is self.hand_hot:
            self.hand_test = self.hand_test.next
        self.hand_hot = self.hand_hot.next

    def _unlink(self, page: _Page) -> None:
        del self.pages[page.key]
        if page.next is page:
            self.hand_hot = self.hand_cold = self.hand_test = None
        else:
            if page is self.hand_hot:
                self.hand_hot = page.prev
            if page is self.hand_cold:
                self.hand_cold = page.prev
            if page is self.hand_test:
                self.hand_test = page.prev
            page.prev.next = page.next
            page.next.prev = page.prev
        page.prev = page.next = None

    # --- clock hands --------------------------------------------------------
    def _evict(self) -> None:
        while self.size <= self.count_hot + self.count_cold:
            self._run_hand_cold()

    def _run_hand_cold(self) -> None:
        page = self.hand_cold
        if page.kind == _COLD:
            if page.referenced:
                page.kind = _HOT
                page.referenced = False
                self.count_cold -= 1
                self.count_hot += 1
            else:
                page.kind = _TEST
                self.count_cold -= 1
                self.count_test += 1
                while self.size < self.count_test:
                    self._run_hand_test()
        self.hand_cold = self.hand_cold.next
        while self.size - self.cold_target < self.count_hot:
            self._run_hand_hot()

    def _run_hand_hot(self) -> None:
        if self.hand_hot is self.hand_test:
            self._run_hand_test()
        page = self.hand_hot
        if page.kind == _HOT:
            if page.referenced:
                page.referenced = False
            else:
                page.kind = _COLD
                self.count_hot -= 1
                self.count_cold += 1
        self.hand_hot = self.hand_hot.next

    def _run_hand_test(self) -> None:
        # on a one-page ring the cold hand cannot make progress for us
        if self.hand_test is self.hand_cold and self.hand_cold.next is not self.hand_cold:
            self._run_hand_cold()
        page = self.hand_test
        if page.kind == _TEST:
            previous = page.prev
            self._unlink(page)
            self.hand_test = previous
            self.count_test -= 1
            if self.cold_target > 1:
                self.cold_target -= 1
        self.hand_test = self.hand_test.next
