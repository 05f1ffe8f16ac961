import numpy as np
import pytest
from jointseg.segments import Interval, ModeledSegment, PosteriorSummary
from jointseg.similar_segments import (
    are_similar_summaries,
    merge_segments,
    merge_similar_segments,
    merge_summaries,
)

from conftest import make_segment, make_summary


@pytest.mark.parametrize("threshold", [0.0, 1.0, 100.0])
def test_missing_median_is_always_similar(threshold):
    missing = PosteriorSummary.missing()
    far = PosteriorSummary(1e6, 1e6, 1e6 - 1e-9, 1e6 + 1e-9)
    assert are_similar_summaries(missing, far, threshold)
    assert are_similar_summaries(far, missing, threshold)
    assert are_similar_summaries(missing, missing, threshold)


def test_similarity_uses_either_credible_interval():
    narrow = PosteriorSummary(0.0, 0.0, -0.01, 0.01)
    wide = PosteriorSummary(0.5, 0.5, 0.0, 1.0)
    # difference 0.5 is within one width of the wide posterior only
    assert are_similar_summaries(narrow, wide, 1.0)
    assert are_similar_summaries(wide, narrow, 1.0)
    assert not are_similar_summaries(narrow, wide, 0.4)
    # strict inequality
    assert not are_similar_summaries(narrow, PosteriorSummary(0.02, 0.02, 0.01, 0.03), 1.0)


def test_merge_two_similar_segments():
    segments = [
        ModeledSegment(Interval("chr1", 1, 100), 10, 3,
                       PosteriorSummary(0.0, 0.0, -0.1, 0.1), PosteriorSummary(0.3, 0.3, 0.25, 0.35)),
        ModeledSegment(Interval("chr1", 101, 200), 20, 4,
                       PosteriorSummary(0.01, 0.01, -0.09, 0.11), PosteriorSummary(0.31, 0.31, 0.26, 0.36)),
    ]
    merged = merge_similar_segments(segments, 1.0, 1.0)
    assert len(merged) == 1
    assert merged[0].interval == Interval("chr1", 1, 200)
    assert merged[0].num_points_copy_ratio == 30
    assert merged[0].num_points_allele_fraction == 7
    # input list is untouched
    assert len(segments) == 2


def test_no_merge_across_contigs():
    segments = [
        make_segment("chr1", 1, 100, cr=(0.0, 0.1)),
        make_segment("chr2", 101, 200, cr=(0.01, 0.1)),
    ]
    merged = merge_similar_segments(segments, 1.0, 1.0)
    assert [x.interval for x in merged] == [x.interval for x in segments]


def test_interleaved_contigs_merge_only_adjacent_runs():
    segments = [
        make_segment("chr1", 1, 100),
        make_segment("chr1", 101, 200),
        make_segment("chr2", 1, 100),
        make_segment("chr1", 201, 300),
    ]
    merged = merge_similar_segments(segments, 1.0, 1.0)
    assert [x.interval for x in merged] == [
        Interval("chr1", 1, 200),
        Interval("chr2", 1, 100),
        Interval("chr1", 201, 300),
    ]


def test_both_modalities_must_be_similar():
    segments = [
        make_segment("chr1", 1, 100, cr=(0.0, 0.1), af=(0.1, 0.01)),
        make_segment("chr1", 101, 200, cr=(0.0, 0.1), af=(0.4, 0.01)),
    ]
    assert len(merge_similar_segments(segments, 1.0, 1.0)) == 2


def test_merged_segment_is_compared_with_new_neighbor():
    segments = [make_segment("chr1", 100 * i + 1, 100 * (i + 1)) for i in range(5)]
    merged = merge_similar_segments(segments, 1.0, 1.0)
    assert len(merged) == 1
    assert merged[0].interval == Interval("chr1", 1, 500)
    assert merged[0].num_points_copy_ratio == 50


def test_merge_preserves_order():
    segments = [
        make_segment("chr1", 1, 100, cr=(0.0, 0.1)),
        make_segment("chr1", 101, 200, cr=(1.0, 0.1)),
        make_segment("chr1", 201, 300, cr=(1.01, 0.1)),
        make_segment("chr1", 301, 400, cr=(-1.0, 0.1)),
        make_segment("chr2", 1, 100, cr=(-1.0, 0.1)),
    ]
    merged = merge_similar_segments(segments, 1.0, 1.0)
    assert [x.interval for x in merged] == [
        Interval("chr1", 1, 100),
        Interval("chr1", 101, 300),
        Interval("chr1", 301, 400),
        Interval("chr2", 1, 100),
    ]


def test_merge_random_segments_is_non_increasing_and_ordered():
    np.random.seed(0)
    segments = []
    for c in ["chr1", "chr2", "chr3"]:
        for i in range(30):
            segments.append(make_segment(c, 100 * i + 1, 100 * (i + 1),
                                         cr=(np.random.choice([0.0, 1.0]), 0.1), af=(np.random.choice([0.2, 0.5]), 0.02)))
    merged = merge_similar_segments(segments, 1.0, 1.0)
    assert len(merged) <= len(segments)
    for c in ["chr1", "chr2", "chr3"]:
        starts = [x.start for x in merged if x.contig == c]
        assert starts == sorted(starts)
        assert starts[0] == 1
    assert sum(x.num_points_copy_ratio for x in merged) == sum(x.num_points_copy_ratio for x in segments)


def test_merge_summaries_identical_inputs_keep_central_tendency():
    summary = PosteriorSummary(0.2, 0.2, 0.1, 0.3)
    merged = merge_summaries(summary, summary)
    assert merged.median == pytest.approx(0.2)
    assert merged.mode == pytest.approx(0.2)
    # combined standard deviation is 0.1 / sqrt(2)
    assert merged.decile10 == pytest.approx(0.2 - 0.1 / np.sqrt(2))
    assert merged.decile90 == pytest.approx(0.2 + 0.1 / np.sqrt(2))


def test_merge_summaries_inverse_variance_weighting():
    merged = merge_summaries(PosteriorSummary(0.0, 0.0, -0.1, 0.1), PosteriorSummary(1.0, 1.0, 0.8, 1.2))
    # variances 0.01 and 0.04
    variance = 1.0 / (1.0 / 0.01 + 1.0 / 0.04)
    mean = variance * (0.0 / 0.01 + 1.0 / 0.04)
    assert merged.median == pytest.approx(mean)
    assert merged.mode == pytest.approx(mean)
    assert merged.decile10 == pytest.approx(mean - np.sqrt(variance))
    assert merged.decile90 == pytest.approx(mean + np.sqrt(variance))


def test_merge_summaries_with_missing():
    summary = PosteriorSummary(0.21, 0.2, 0.1, 0.3)
    assert merge_summaries(PosteriorSummary.missing(), summary) == summary
    assert merge_summaries(summary, PosteriorSummary.missing()) == summary
    assert merge_summaries(PosteriorSummary.missing(), PosteriorSummary.missing()).is_missing


def test_merge_segments_rejects_different_contigs():
    with pytest.raises(ValueError):
        merge_segments(make_segment("chr1", 1, 100), make_segment("chr2", 1, 100))


def test_merge_similar_segments_speed(benchmark):
    segments = [make_segment("chr1", 100 * i + 1, 100 * (i + 1), cr=(float(i // 2 % 2), 0.1)) for i in range(2_000)]

    merged = benchmark(merge_similar_segments, segments, 1.0, 1.0)

    assert len(merged) == 1_000
