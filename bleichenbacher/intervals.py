"""
Intervals of candidate plaintexts.

An IntervalSet holds the attacker's current knowledge of where the (blinded) plaintext lies:
a sorted collection of pairwise disjoint, non-adjacent closed intervals.
"""
import bisect
from collections import namedtuple


class Interval(namedtuple("Interval", ["lower", "upper"])):
    """
    Inclusive range [lower, upper] of integers; compares equal to a plain (lower, upper) tuple.
    """
    __slots__ = ()

    def __new__(cls, lower, upper):
        if lower > upper:
            raise ValueError("empty interval [%d, %d]" % (lower, upper))
        return super().__new__(cls, lower, upper)

    def __contains__(self, item):
        return self.lower <= item <= self.upper

    def size(self):
        """
        Number of integers in the interval.
        """
        return self.upper - self.lower + 1

    def __repr__(self):
        return "[%#x, %#x]" % (self.lower, self.upper)


def merge_intervals(intervals):
    """
    Given a list of intervals, merge them into equivalent non-overlapping intervals
    :param intervals: list of tuples (a, b), where a <= b
    :return: list of Intervals (a, b), where a <= b and a_{i+1} > b_i + 1
    """
    intervals = sorted(intervals, key=lambda x: x[0])
    if not intervals:
        return []

    merged = []
    low, high = intervals[0]

    for a, b in intervals:
        if a > high + 1:
            merged.append(Interval(low, high))
            low, high = a, b
        else:
            high = max(high, b)
    merged.append(Interval(low, high))
    return merged


class IntervalSet:
    """
    Set of disjoint intervals M_i. Intervals that overlap or touch are merged on insertion.
    """

    def __init__(self, intervals=()):
        self._intervals = merge_intervals(intervals)
        self._lowers = [i.lower for i in self._intervals]

    def insert(self, interval):
        """
        Add an interval, merging it with every interval it overlaps or touches.
        :param interval: Interval or (a, b) tuple with a <= b
        """
        a, b = interval
        if a > b:
            raise ValueError("empty interval [%d, %d]" % (a, b))
        # first interval that may touch [a, b] from the left
        lo = bisect.bisect_left(self._lowers, a)
        if lo > 0 and self._intervals[lo - 1].upper + 1 >= a:
            lo -= 1
        hi = lo
        while hi < len(self._intervals) and self._intervals[hi].lower <= b + 1:
            hi += 1
        if hi > lo:
            a = min(a, self._intervals[lo].lower)
            b = max(b, self._intervals[hi - 1].upper)
        self._intervals[lo:hi] = [Interval(a, b)]
        self._lowers[lo:hi] = [a]

    merge = insert

    def update(self, intervals):
        for interval in intervals:
            self.insert(interval)

    def intersect(self, lower, upper):
        """
        :return: a new IntervalSet with every interval clipped to [lower, upper]
        """
        return IntervalSet((max(a, lower), min(b, upper)) for a, b in self._intervals
                           if a <= upper and b >= lower)

    def is_singleton(self):
        return len(self._intervals) == 1

    def width_one(self):
        """
        True once a single interval of a single value is left: the attack is solved.
        """
        return self.is_singleton() and self._intervals[0].lower == self._intervals[0].upper

    def width(self):
        """
        Number of candidate values left across all intervals.
        """
        return sum(i.size() for i in self._intervals)

    def __len__(self):
        return len(self._intervals)

    def __iter__(self):
        return iter(self._intervals)

    def __getitem__(self, idx):
        return self._intervals[idx]

    def __bool__(self):
        return bool(self._intervals)

    def __contains__(self, item):
        idx = bisect.bisect_right(self._lowers, item) - 1
        return idx >= 0 and item <= self._intervals[idx].upper

    def __eq__(self, other):
        if isinstance(other, IntervalSet):
            return self._intervals == other._intervals
        try:
            return self._intervals == [tuple(i) for i in other]
        except TypeError:
            return NotImplemented

    def __repr__(self):
        return "IntervalSet(%r)" % (self._intervals,)
