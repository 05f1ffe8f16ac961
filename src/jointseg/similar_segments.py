"""
Similar-segment merging.

Adjacent segments on the same contig are merged when the posteriors of both the log2 copy ratio and the minor allele
fraction are similar, i.e. the difference between the posterior medians is less than a threshold number of
credible-interval widths of either summary.
"""
import logging

import numpy as np

from jointseg.segments import ModeledSegment, PosteriorSummary, merge_intervals

logger = logging.getLogger(__name__)


def are_similar_summaries(summary1, summary2, interval_threshold):
    # absence of data for the modality never blocks a merge
    if summary1.is_missing or summary2.is_missing:
        return True
    absolute_difference = abs(summary1.median - summary2.median)
    return absolute_difference < interval_threshold * summary1.credible_interval_width or \
        absolute_difference < interval_threshold * summary2.credible_interval_width


def are_similar_segments(segment1, segment2, interval_threshold_copy_ratio, interval_threshold_allele_fraction):
    return are_similar_summaries(segment1.log2_copy_ratio_summary, segment2.log2_copy_ratio_summary, interval_threshold_copy_ratio) and \
        are_similar_summaries(segment1.minor_allele_fraction_summary, segment2.minor_allele_fraction_summary, interval_threshold_allele_fraction)


def merge_summaries(summary1, summary2):
    """
    Combine two posterior summaries by approximating each posterior as a Gaussian.

    The credible half-interval is used as the standard deviation and the two Gaussians are combined by inverse-variance
    weighting; the resulting mean is reported as both mode and median.
    """
    if summary1.is_missing:
        return summary2
    if summary2.is_missing:
        return summary1
    variance1 = (summary1.credible_interval_width / 2.0) ** 2
    variance2 = (summary2.credible_interval_width / 2.0) ** 2
    if variance1 == 0 or variance2 == 0:
        # a zero-width posterior is a point mass and dominates the combination
        if variance1 == 0 and variance2 == 0:
            mean = 0.5 * (summary1.median + summary2.median)
        else:
            mean = summary1.median if variance1 == 0 else summary2.median
        return PosteriorSummary(mean, mean, mean, mean)
    variance = 1.0 / (1.0 / variance1 + 1.0 / variance2)
    mean = variance * (summary1.median / variance1 + summary2.median / variance2)
    std = np.sqrt(variance)
    return PosteriorSummary(mean, mean, mean - std, mean + std)


def merge_segments(segment1, segment2):
    return ModeledSegment(
        merge_intervals(segment1.interval, segment2.interval),
        segment1.num_points_copy_ratio + segment2.num_points_copy_ratio,
        segment1.num_points_allele_fraction + segment2.num_points_allele_fraction,
        merge_summaries(segment1.log2_copy_ratio_summary, segment2.log2_copy_ratio_summary),
        merge_summaries(segment1.minor_allele_fraction_summary, segment2.minor_allele_fraction_summary),
    )


def merge_similar_segments(segments, interval_threshold_copy_ratio, interval_threshold_allele_fraction):
    """
    Return a new list of modeled segments with similar adjacent segments merged.

    The list is traversed once from left to right; after a merge the merged segment is compared with its new right
    neighbor before the scan moves on.

    Attributes
    ----------
    segments : list of ModeledSegment
        Current segments, in genomic order within each contig. Not modified.
    interval_threshold_copy_ratio : float
        Threshold number of credible intervals for log2 copy-ratio similarity.
    interval_threshold_allele_fraction : float
        Threshold number of credible intervals for minor-allele-fraction similarity.
    """
    merged = list(segments)
    index = 0
    while index < len(merged) - 1:
        segment1 = merged[index]
        segment2 = merged[index + 1]
        if segment1.contig == segment2.contig and \
                are_similar_segments(segment1, segment2, interval_threshold_copy_ratio, interval_threshold_allele_fraction):
            merged[index] = merge_segments(segment1, segment2)
            del merged[index + 1]
            # stay on the merged segment
            index -= 1
        index += 1
    return merged
