"""
Ordered table of intermediate survival counts (cut flow).
"""

from rich.table import Table


class CutCounters:
    """
    Ordered (label, count) pairs, one per selection stage.

    Insertion order follows the order of the selection stages. Two tables
    with identical labels can be added, which sums the counts entry by
    entry; this is how results from parallel workers are merged.
    """

    def __init__(self, entries=None):
        self._entries = []
        for label, count in entries or ():
            self.fill(label, count)

    def fill(self, label, count):
        self._entries.append((str(label), int(count)))

    @property
    def labels(self):
        return [label for label, _ in self._entries]

    @property
    def values(self):
        return [count for _, count in self._entries]

    def __iter__(self):
        return iter(self._entries)

    def __len__(self):
        return len(self._entries)

    def __getitem__(self, index):
        return self._entries[index]

    def __eq__(self, other):
        if not isinstance(other, CutCounters):
            return NotImplemented
        return self._entries == other._entries

    def __add__(self, other):
        if not isinstance(other, CutCounters):
            return NotImplemented
        if not self._entries:
            return CutCounters(other)
        if not other._entries:
            return CutCounters(self)
        if self.labels != other.labels:
            raise ValueError("Cannot merge cut flows with different stages")
        return CutCounters(
            (label, a + b) for (label, a), (_, b) in zip(self._entries, other._entries)
        )

    def __repr__(self):
        return f"CutCounters({self._entries!r})"

    def format_table(self):
        """
        Plain-text rendering, one `label:<TAB>count` line per stage.
        """
        return "\n".join(f"{label}:\t{count}" for label, count in self._entries)

    def to_rich_table(self, title="Cut flow"):
        table = Table(title=title)
        table.add_column("Selection")
        table.add_column("Events", justify="right")
        table.add_column("Fraction", justify="right")

        total = self._entries[0][1] if self._entries else 0
        for label, count in self._entries:
            fraction = f"{count / total:.4f}" if total else "-"
            table.add_row(label, str(count), fraction)
        return table
