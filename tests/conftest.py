import numpy as np
import pandas as pd
import pytest
from jointseg.models import ModelFit
from jointseg.observations import AllelicCountCollection, CopyRatioCollection
from jointseg.segments import ModeledSegment, PosteriorSummary, SegmentCollection, Interval

SAMPLE = "SAMPLE1"


def make_summary(median, half_width=0.1):
    return PosteriorSummary(median, median, median - half_width, median + half_width)


def make_segment(contig, start, end, cr=(0.0, 0.1), af=(0.3, 0.05), num_points_copy_ratio=10, num_points_allele_fraction=2):
    return ModeledSegment(
        Interval(contig, start, end),
        num_points_copy_ratio,
        num_points_allele_fraction,
        make_summary(*cr),
        make_summary(*af),
    )


class StubModeller(object):
    """
    Sampler stand-in returning summary_fn(interval) for every segment.
    """
    def __init__(self, summary_fn=None, fail_on_fit=None):
        self.summary_fn = summary_fn if summary_fn is not None else (lambda interval: make_summary(0.0))
        self.fail_on_fit = fail_on_fit
        self.num_fits = 0
        self.fitted_segments = []

    def fit(self, segments, observations):
        self.num_fits += 1
        if self.fail_on_fit is not None and self.num_fits == self.fail_on_fit:
            raise RuntimeError("sampler failure")
        self.fitted_segments.append(list(segments))
        return ModelFit(
            [self.summary_fn(x) for x in segments],
            {"PARAMETER_A": make_summary(0.1, 0.01), "PARAMETER_B": make_summary(0.9, 0.01)},
        )


@pytest.fixture
def segments():
    return SegmentCollection(SAMPLE, [("chr1", 1, 100), ("chr1", 101, 200), ("chr1", 201, 300), ("chr2", 1, 100)])


@pytest.fixture
def copy_ratios():
    # 10bp bins, 10 midpoints per segment
    starts = np.concatenate([1 + 10 * np.arange(30), 1 + 10 * np.arange(10)])
    table = pd.DataFrame({
        "CONTIG": ["chr1"] * 30 + ["chr2"] * 10,
        "START": starts,
        "END": starts + 9,
        "LOG2_COPY_RATIO": np.zeros(40),
    })
    return CopyRatioCollection(SAMPLE, table)


@pytest.fixture
def allelic_counts():
    table = pd.DataFrame({
        "CONTIG": ["chr1"] * 5 + ["chr2"],
        "POSITION": [5, 55, 105, 155, 255, 50],
        "REF_COUNT": [10, 12, 8, 15, 9, 11],
        "ALT_COUNT": [9, 10, 11, 7, 10, 12],
    })
    return AllelicCountCollection(SAMPLE, table)
