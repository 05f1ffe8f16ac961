import numpy as np
import pytest
from jointseg.segments import (
    MODELED_SEGMENT_COLUMNS,
    Interval,
    ModeledSegment,
    ModeledSegmentCollection,
    PosteriorSummary,
    SegmentCollection,
    merge_intervals,
)

from conftest import make_segment, make_summary


def test_interval_rejects_start_after_end():
    with pytest.raises(ValueError):
        Interval.create("chr1", 200, 100)


def test_interval_midpoint_and_overlap():
    interval = Interval.create("chr1", 11, 20)
    assert interval.midpoint == 15
    assert interval.overlaps(Interval("chr1", 20, 30))
    assert not interval.overlaps(Interval("chr1", 21, 30))
    assert not interval.overlaps(Interval("chr2", 11, 20))


def test_merge_intervals_same_contig():
    assert merge_intervals(Interval("chr1", 101, 200), Interval("chr1", 1, 100)) == Interval("chr1", 1, 200)


def test_merge_intervals_different_contigs_fails():
    with pytest.raises(ValueError):
        merge_intervals(Interval("chr1", 1, 100), Interval("chr2", 101, 200))


def test_missing_summary():
    assert PosteriorSummary.missing().is_missing
    assert not make_summary(0.0).is_missing
    assert make_summary(0.0, 0.1).credible_interval_width == pytest.approx(0.2)


def test_modeled_segment_requires_points_in_one_modality():
    # copy-ratio points only is fine
    seg = make_segment("chr1", 1, 100, num_points_copy_ratio=5, num_points_allele_fraction=0)
    assert seg.num_points_allele_fraction == 0
    with pytest.raises(ValueError):
        make_segment("chr1", 1, 100, num_points_copy_ratio=0, num_points_allele_fraction=0)
    with pytest.raises(ValueError):
        make_segment("chr1", 1, 100, num_points_copy_ratio=-1, num_points_allele_fraction=3)


def test_segment_collection_validates_order():
    with pytest.raises(ValueError):
        SegmentCollection("S", [("chr1", 1, 100), ("chr1", 50, 150)])
    with pytest.raises(ValueError):
        SegmentCollection("S", [("chr1", 101, 200), ("chr1", 1, 100)])
    with pytest.raises(ValueError):
        SegmentCollection("S", [("chr1", 1, 100), ("chr2", 1, 100), ("chr1", 50, 200)])
    collection = SegmentCollection("S", [("chr2", 1, 100), ("chr1", 1, 100)])
    assert len(collection) == 2
    assert collection.intervals[0] == Interval("chr2", 1, 100)


def test_segment_collection_accepts_interleaved_contigs():
    collection = SegmentCollection("S", [("chr1", 1, 100), ("chr2", 1, 100), ("chr1", 101, 200)])
    assert [x.contig for x in collection] == ["chr1", "chr2", "chr1"]
    assert collection.intervals[2] == Interval("chr1", 101, 200)


def test_modeled_segment_collection_to_dataframe():
    collection = ModeledSegmentCollection("S", [
        make_segment("chr1", 1, 100, cr=(0.5, 0.1)),
        ModeledSegment(Interval("chr1", 101, 200), 4, 0, make_summary(-0.5), PosteriorSummary.missing()),
    ])
    df = collection.to_dataframe()
    assert list(df.columns) == MODELED_SEGMENT_COLUMNS
    assert df.shape[0] == 2
    np.testing.assert_allclose(df.LOG2_COPY_RATIO_POSTERIOR_50.values, [0.5, -0.5])
    assert np.isnan(df.MINOR_ALLELE_FRACTION_POSTERIOR_50.values[1])
