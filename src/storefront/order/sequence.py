"""Order number sequence — a named, monotonically increasing counter.

Each call to ``next_value`` increments and saves the counter under the
series lock before returning, so a value is handed out once and never reused,
even when the order it was drawn for is later deleted.
"""

from protean.exceptions import ObjectNotFoundError
from protean.fields import Integer, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.utils.locks import KeyedLock

ORDER_SERIES = "orderId"


@storefront.aggregate
class Counter:
    name = String(identifier=True, max_length=50)
    seq = Integer(default=0, min_value=0)

    def increment(self) -> int:
        self.seq += 1
        return self.seq


class OrderNumberSequence:
    def __init__(self, locks: KeyedLock | None = None):
        self._locks = locks or KeyedLock()

    def next_value(self, series=ORDER_SERIES) -> int:
        repo = current_domain.repository_for(Counter)
        with self._locks.hold(f"counter:{series}"):
            try:
                counter = repo.get(series)
            except ObjectNotFoundError:
                counter = Counter(name=series, seq=0)
            value = counter.increment()
            repo.add(counter)
        return value

    def current(self, series=ORDER_SERIES) -> int:
        try:
            return current_domain.repository_for(Counter).get(series).seq
        except ObjectNotFoundError:
            return 0
