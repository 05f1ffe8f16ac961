import logging
from dataclasses import dataclass
from typing import List, NamedTuple, Sequence

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


class Interval(NamedTuple):
    """
    A genomic interval on a single contig, 1-based with both ends inclusive.

    Attributes
    ----------
    contig : str
        Contig name. Contigs are only ever compared for equality.
    start : int
        First position covered by the interval.
    end : int
        Last position covered by the interval, start <= end.
    """
    contig: str
    start: int
    end: int

    @classmethod
    def create(cls, contig, start, end):
        if contig is None:
            raise ValueError("Interval contig must not be None.")
        start, end = int(start), int(end)
        if start > end:
            raise ValueError(f"Interval start must not exceed end: {contig}:{start}-{end}.")
        return cls(str(contig), start, end)

    @property
    def midpoint(self):
        return (self.start + self.end) // 2

    def overlaps(self, other):
        return self.contig == other.contig and self.start <= other.end and other.start <= self.end

    def __str__(self):
        return f"{self.contig}:{self.start}-{self.end}"


def merge_intervals(interval1, interval2):
    """
    Join two intervals on the same contig into the smallest interval spanning both.
    """
    if interval1.contig != interval2.contig:
        raise ValueError(f"Cannot join segments {interval1} and {interval2} on different chromosomes.")
    return Interval(interval1.contig, min(interval1.start, interval2.start), max(interval1.end, interval2.end))


class PosteriorSummary(NamedTuple):
    """
    Summary of a one-dimensional marginal posterior.

    A NaN median marks a segment without usable data for the modality; use `is_missing` rather than
    comparing floats.
    """
    mode: float
    median: float
    decile10: float
    decile90: float

    @classmethod
    def missing(cls):
        return cls(np.nan, np.nan, np.nan, np.nan)

    @property
    def is_missing(self):
        return bool(np.isnan(self.median))

    @property
    def credible_interval_width(self):
        return self.decile90 - self.decile10


@dataclass(frozen=True)
class ModeledSegment:
    """
    A segment together with its point counts and the posterior summaries of both modalities.

    Attributes
    ----------
    interval : Interval
        Genomic extent of the segment.
    num_points_copy_ratio : int
        Number of copy-ratio points whose midpoint falls in the segment.
    num_points_allele_fraction : int
        Number of heterozygous sites in the segment.
    log2_copy_ratio_summary : PosteriorSummary
        Posterior summary of the segment mean log2 copy ratio.
    minor_allele_fraction_summary : PosteriorSummary
        Posterior summary of the segment minor allele fraction.
    """
    interval: Interval
    num_points_copy_ratio: int
    num_points_allele_fraction: int
    log2_copy_ratio_summary: PosteriorSummary
    minor_allele_fraction_summary: PosteriorSummary

    def __post_init__(self):
        if self.interval is None:
            raise ValueError("Modeled segment interval must not be None.")
        if self.log2_copy_ratio_summary is None or self.minor_allele_fraction_summary is None:
            raise ValueError("Modeled segment posterior summaries must not be None.")
        if self.num_points_copy_ratio < 0 or self.num_points_allele_fraction < 0:
            raise ValueError("Number of copy-ratio points and number of allele-fraction points must be non-negative.")
        if self.num_points_copy_ratio == 0 and self.num_points_allele_fraction == 0:
            raise ValueError("Number of copy-ratio points or number of allele-fraction points must be positive.")

    @property
    def contig(self):
        return self.interval.contig

    @property
    def start(self):
        return self.interval.start

    @property
    def end(self):
        return self.interval.end


def validate_segment_order(intervals: Sequence[Interval]):
    """
    Check that intervals on the same contig are ascending and pairwise non-overlapping.

    Contigs are only compared for equality; segments of different contigs may be interleaved in any order.
    """
    last_interval = {}
    for interval in intervals:
        previous = last_interval.get(interval.contig)
        if previous is not None and interval.start <= previous.end:
            raise ValueError(f"Segments {previous} and {interval} overlap or are out of order.")
        last_interval[interval.contig] = interval


class SegmentCollection(object):
    """
    Ordered segmentation of the genome for a single sample.
    """
    def __init__(self, sample_name, intervals):
        if sample_name is None:
            raise ValueError("Sample name must not be None.")
        if intervals is None:
            raise ValueError("Segments must not be None.")
        self.sample_name = sample_name
        self.intervals = [Interval.create(*x) for x in intervals]
        validate_segment_order(self.intervals)

    def __len__(self):
        return len(self.intervals)

    def __iter__(self):
        return iter(self.intervals)


class ModeledSegmentCollection(object):
    def __init__(self, sample_name, segments: List[ModeledSegment]):
        self.sample_name = sample_name
        self.segments = list(segments)

    def __len__(self):
        return len(self.segments)

    def __iter__(self):
        return iter(self.segments)

    def __getitem__(self, index):
        return self.segments[index]

    def to_dataframe(self):
        rows = []
        for seg in self.segments:
            cr = seg.log2_copy_ratio_summary
            af = seg.minor_allele_fraction_summary
            rows.append({
                "CONTIG": seg.contig,
                "START": seg.start,
                "END": seg.end,
                "NUM_POINTS_COPY_RATIO": seg.num_points_copy_ratio,
                "NUM_POINTS_ALLELE_FRACTION": seg.num_points_allele_fraction,
                "LOG2_COPY_RATIO_POSTERIOR_MODE": cr.mode,
                "LOG2_COPY_RATIO_POSTERIOR_10": cr.decile10,
                "LOG2_COPY_RATIO_POSTERIOR_50": cr.median,
                "LOG2_COPY_RATIO_POSTERIOR_90": cr.decile90,
                "MINOR_ALLELE_FRACTION_POSTERIOR_MODE": af.mode,
                "MINOR_ALLELE_FRACTION_POSTERIOR_10": af.decile10,
                "MINOR_ALLELE_FRACTION_POSTERIOR_50": af.median,
                "MINOR_ALLELE_FRACTION_POSTERIOR_90": af.decile90,
            })
        return pd.DataFrame(rows, columns=MODELED_SEGMENT_COLUMNS)


MODELED_SEGMENT_COLUMNS = [
    "CONTIG",
    "START",
    "END",
    "NUM_POINTS_COPY_RATIO",
    "NUM_POINTS_ALLELE_FRACTION",
    "LOG2_COPY_RATIO_POSTERIOR_MODE",
    "LOG2_COPY_RATIO_POSTERIOR_10",
    "LOG2_COPY_RATIO_POSTERIOR_50",
    "LOG2_COPY_RATIO_POSTERIOR_90",
    "MINOR_ALLELE_FRACTION_POSTERIOR_MODE",
    "MINOR_ALLELE_FRACTION_POSTERIOR_10",
    "MINOR_ALLELE_FRACTION_POSTERIOR_50",
    "MINOR_ALLELE_FRACTION_POSTERIOR_90",
]
