import logging

import numpy as np
import pandas as pd

from jointseg.segments import Interval

logger = logging.getLogger(__name__)


class _PositionIndex(object):
    """
    Per-contig sorted positions supporting binary-search overlap queries.

    Attributes
    ----------
    contigs : np.array, size (n_points)
        Contig of each point.
    positions : np.array, size (n_points)
        Position used for overlap (site position or interval midpoint).
    """
    def __init__(self, contigs, positions):
        self.n_points = len(positions)
        self.sorted_index = {}
        self.sorted_positions = {}
        for c in pd.unique(contigs):
            idx = np.where(contigs == c)[0]
            order = np.argsort(positions[idx], kind="stable")
            self.sorted_index[c] = idx[order]
            self.sorted_positions[c] = positions[idx][order]

    def query(self, interval):
        """
        Indices (in input order) of the points falling in the inclusive interval.
        """
        if interval.contig not in self.sorted_positions:
            return np.zeros(0, dtype=int)
        pos = self.sorted_positions[interval.contig]
        left = np.searchsorted(pos, interval.start, side="left")
        right = np.searchsorted(pos, interval.end, side="right")
        return np.sort(self.sorted_index[interval.contig][left:right])

    def count(self, interval):
        if interval.contig not in self.sorted_positions:
            return 0
        pos = self.sorted_positions[interval.contig]
        return int(np.searchsorted(pos, interval.end, side="right") - np.searchsorted(pos, interval.start, side="left"))

    def assign(self, intervals):
        """
        Segment index of every point, -1 for points outside all intervals.
        """
        seg_index = -1 * np.ones(self.n_points, dtype=int)
        for s, interval in enumerate(intervals):
            seg_index[self.query(interval)] = s
        return seg_index


def _check_columns(table, required, description):
    missing = [c for c in required if c not in table.columns]
    if len(missing) > 0:
        raise ValueError(f"{description} table is missing columns {missing}.")


class CopyRatioCollection(object):
    """
    Denoised log2 copy ratios of one sample, one row per genomic bin.

    A point overlaps a segment when the midpoint of its bin falls inside the segment.
    """
    COLUMNS = ["CONTIG", "START", "END", "LOG2_COPY_RATIO"]

    def __init__(self, sample_name, table):
        if sample_name is None:
            raise ValueError("Sample name must not be None.")
        if table is None:
            raise ValueError("Copy-ratio table must not be None.")
        _check_columns(table, self.COLUMNS, "Copy-ratio")
        self.sample_name = sample_name
        self.table = table[self.COLUMNS].reset_index(drop=True)
        self.table["CONTIG"] = self.table["CONTIG"].astype(str)
        self.midpoints = ((self.table.START.values.astype(int) + self.table.END.values.astype(int)) // 2)
        self.log2_copy_ratios = self.table.LOG2_COPY_RATIO.values.astype(float)
        self._index = _PositionIndex(self.table.CONTIG.values, self.midpoints)

    def __len__(self):
        return self.table.shape[0]

    def get_overlaps(self, interval: Interval):
        return self.table.iloc[self._index.query(interval)]

    def count_overlaps(self, interval: Interval):
        return self._index.count(interval)

    def assign_segments(self, intervals):
        return self._index.assign(intervals)


class AllelicCountCollection(object):
    """
    Reference and alternate read counts at heterozygous sites of one sample.
    """
    COLUMNS = ["CONTIG", "POSITION", "REF_COUNT", "ALT_COUNT"]

    def __init__(self, sample_name, table):
        if sample_name is None:
            raise ValueError("Sample name must not be None.")
        if table is None:
            raise ValueError("Allelic-count table must not be None.")
        _check_columns(table, self.COLUMNS, "Allelic-count")
        self.sample_name = sample_name
        self.table = table[self.COLUMNS].reset_index(drop=True)
        self.table["CONTIG"] = self.table["CONTIG"].astype(str)
        self.positions = self.table.POSITION.values.astype(int)
        self.ref_counts = self.table.REF_COUNT.values.astype(np.int64)
        self.alt_counts = self.table.ALT_COUNT.values.astype(np.int64)
        if np.any(self.ref_counts < 0) or np.any(self.alt_counts < 0):
            raise ValueError("Allelic counts must be non-negative.")
        self._index = _PositionIndex(self.table.CONTIG.values, self.positions)

    def __len__(self):
        return self.table.shape[0]

    def get_overlaps(self, interval: Interval):
        return self.table.iloc[self._index.query(interval)]

    def count_overlaps(self, interval: Interval):
        return self._index.count(interval)

    def assign_segments(self, intervals):
        return self._index.assign(intervals)
