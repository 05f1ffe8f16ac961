import enum
import logging

from jointseg.models import AlleleFractionModeller, CopyRatioModeller
from jointseg.segments import ModeledSegment, ModeledSegmentCollection
from jointseg.similar_segments import merge_similar_segments
from jointseg.utils_IO import write_parameter_file

logger = logging.getLogger(__name__)


class FitState(enum.Enum):
    # posterior summaries of the modeled segments are exact for the current segmentation
    FRESH = "fresh"
    # segments were merged and summaries are Gaussian approximations
    STALE = "stale"


class JointSegmentModeller(object):
    """
    Segmented model for copy ratio and allele fraction.

    An initial MCMC fit of both modalities is performed at construction. The segmentation can then be smoothed by
    merging similar adjacent segments; results are only handed out after a complete fit of the current segmentation.

    Attributes
    ----------
    segments : SegmentCollection
        Initial segmentation.
    copy_ratios : CopyRatioCollection
        Denoised log2 copy ratios.
    allelic_counts : AllelicCountCollection
        Allelic counts at heterozygous sites.
    allele_fraction_prior : AlleleFractionPrior
        Hyperparameters of the allele-fraction model.
    num_samples_copy_ratio, num_burn_in_copy_ratio : int
        Total and burn-in MCMC samples of the copy-ratio model.
    num_samples_allele_fraction, num_burn_in_allele_fraction : int
        Total and burn-in MCMC samples of the allele-fraction model.
    copy_ratio_modeller, allele_fraction_modeller : SegmentedModeller, optional
        Sampling engines; built from the sample counts when omitted.
    """
    def __init__(self, segments, copy_ratios, allelic_counts, allele_fraction_prior,
                 num_samples_copy_ratio=100, num_burn_in_copy_ratio=50,
                 num_samples_allele_fraction=100, num_burn_in_allele_fraction=50,
                 random_state=0, copy_ratio_modeller=None, allele_fraction_modeller=None):
        for name, value in [("Segments", segments), ("Copy ratios", copy_ratios),
                            ("Allelic counts", allelic_counts), ("Allele-fraction prior", allele_fraction_prior)]:
            if value is None:
                raise ValueError(f"{name} must not be None.")
        if len({segments.sample_name, copy_ratios.sample_name, allelic_counts.sample_name}) != 1:
            raise ValueError("Sample names from all inputs must match.")
        if len(segments) <= 0:
            raise ValueError("Number of segments must be positive.")

        self.sample_name = segments.sample_name
        self.copy_ratios = copy_ratios
        self.allelic_counts = allelic_counts
        self.allele_fraction_prior = allele_fraction_prior
        if copy_ratio_modeller is None:
            copy_ratio_modeller = CopyRatioModeller(num_samples_copy_ratio, num_burn_in_copy_ratio, random_state=random_state)
        if allele_fraction_modeller is None:
            allele_fraction_modeller = AlleleFractionModeller(
                allele_fraction_prior, num_samples_allele_fraction, num_burn_in_allele_fraction, random_state=random_state
            )
        self.copy_ratio_modeller = copy_ratio_modeller
        self.allele_fraction_modeller = allele_fraction_modeller

        self._current_segments = list(segments.intervals)
        self._modeled_segments = []
        self._copy_ratio_global_summaries = {}
        self._allele_fraction_global_summaries = {}
        self._fit_state = FitState.STALE

        logger.info("Fitting initial model...")
        self._fit_model()

    @property
    def fit_state(self):
        return self._fit_state

    @property
    def is_model_fit(self):
        return self._fit_state is FitState.FRESH

    @property
    def current_segments(self):
        return list(self._current_segments)

    @property
    def modeled_segments(self):
        self._ensure_model_is_fit("Requested modeled segments")
        return ModeledSegmentCollection(self.sample_name, self._modeled_segments)

    def _fit_model(self, segments=None):
        """
        Fit both models and rebuild the modeled segments.

        Attributes
        ----------
        segments : list of Interval, optional
            Segmentation to fit; defaults to the current segmentation. It becomes the current segmentation only after
            both samplers and the aggregation succeed.
        """
        if segments is None:
            segments = self._current_segments
        logger.info(f"Fitting copy-ratio model over {len(segments)} segments...")
        copy_ratio_fit = self.copy_ratio_modeller.fit(segments, self.copy_ratios)
        logger.info(f"Fitting allele-fraction model over {len(segments)} segments...")
        allele_fraction_fit = self.allele_fraction_modeller.fit(segments, self.allelic_counts)
        if len(copy_ratio_fit.segment_summaries) != len(segments) or len(allele_fraction_fit.segment_summaries) != len(segments):
            raise RuntimeError(
                f"Samplers returned {len(copy_ratio_fit.segment_summaries)} copy-ratio and "
                f"{len(allele_fraction_fit.segment_summaries)} allele-fraction summaries for {len(segments)} segments."
            )

        modeled_segments = []
        for i, interval in enumerate(segments):
            modeled_segments.append(ModeledSegment(
                interval,
                self.copy_ratios.count_overlaps(interval),
                self.allelic_counts.count_overlaps(interval),
                copy_ratio_fit.segment_summaries[i],
                allele_fraction_fit.segment_summaries[i],
            ))

        self._current_segments = list(segments)
        self._modeled_segments = modeled_segments
        self._copy_ratio_global_summaries = dict(copy_ratio_fit.global_parameter_summaries)
        self._allele_fraction_global_summaries = dict(allele_fraction_fit.global_parameter_summaries)
        self._fit_state = FitState.FRESH

    def smooth_segments(self, max_num_smoothing_iterations, num_smoothing_iterations_per_fit,
                        smoothing_credible_interval_threshold_copy_ratio,
                        smoothing_credible_interval_threshold_allele_fraction):
        """
        Merge similar adjacent segments until no more merges occur or the iteration limit is reached.

        Attributes
        ----------
        max_num_smoothing_iterations : int
            Maximum number of merge passes; 0 disables smoothing.
        num_smoothing_iterations_per_fit : int
            Refit the model after every this many passes; 0 never refits between passes.
        smoothing_credible_interval_threshold_copy_ratio : float
            Threshold number of credible intervals for log2 copy-ratio similarity.
        smoothing_credible_interval_threshold_allele_fraction : float
            Threshold number of credible intervals for minor-allele-fraction similarity.
        """
        if max_num_smoothing_iterations < 0:
            raise ValueError("The maximum number of smoothing iterations must be non-negative.")
        if num_smoothing_iterations_per_fit < 0:
            raise ValueError("The number of smoothing iterations per fit must be non-negative.")
        if smoothing_credible_interval_threshold_copy_ratio < 0:
            raise ValueError("The copy-ratio credible-interval threshold for segmentation smoothing must be non-negative.")
        if smoothing_credible_interval_threshold_allele_fraction < 0:
            raise ValueError("The allele-fraction credible-interval threshold for segmentation smoothing must be non-negative.")

        logger.info(f"Initial number of segments before smoothing: {len(self._modeled_segments)}")
        for n_iter in range(1, max_num_smoothing_iterations + 1):
            logger.info(f"Smoothing iteration: {n_iter}")
            prev_num_segments = len(self._modeled_segments)
            do_model_fit = num_smoothing_iterations_per_fit > 0 and n_iter % num_smoothing_iterations_per_fit == 0
            self._perform_smoothing_iteration(
                smoothing_credible_interval_threshold_copy_ratio,
                smoothing_credible_interval_threshold_allele_fraction,
                do_model_fit,
            )
            if len(self._modeled_segments) == prev_num_segments:
                break
        if not self.is_model_fit:
            # posterior modes of merged segments are only approximations
            self._fit_model()
        logger.info(f"Final number of segments after smoothing: {len(self._modeled_segments)}")

    def _perform_smoothing_iteration(self, threshold_copy_ratio, threshold_allele_fraction, do_model_fit):
        logger.info(f"Number of segments before smoothing iteration: {len(self._modeled_segments)}")
        merged_segments = merge_similar_segments(self._modeled_segments, threshold_copy_ratio, threshold_allele_fraction)
        logger.info(f"Number of segments after smoothing iteration: {len(merged_segments)}")
        if do_model_fit:
            self._fit_model([x.interval for x in merged_segments])
        else:
            self._current_segments = [x.interval for x in merged_segments]
            self._modeled_segments = merged_segments
            self._fit_state = FitState.STALE

    def _ensure_model_is_fit(self, reason):
        if not self.is_model_fit:
            logger.warning(f"{reason} when model was not completely fit. Performing model fit now.")
            self._fit_model()

    def get_global_parameter_summaries(self):
        self._ensure_model_is_fit("Requested global parameters")
        return dict(self._copy_ratio_global_summaries), dict(self._allele_fraction_global_summaries)

    def write_model_parameter_files(self, copy_ratio_parameter_file, allele_fraction_parameter_file):
        """
        Write posterior summaries of the global parameters of both models.
        """
        if copy_ratio_parameter_file is None or allele_fraction_parameter_file is None:
            raise ValueError("Parameter output files must not be None.")
        self._ensure_model_is_fit("Attempted to write parameter files")
        logger.info(f"Writing posterior summaries for copy-ratio global parameters to {copy_ratio_parameter_file}")
        write_parameter_file(self._copy_ratio_global_summaries, copy_ratio_parameter_file, sample_name=self.sample_name)
        logger.info(f"Writing posterior summaries for allele-fraction global parameters to {allele_fraction_parameter_file}")
        write_parameter_file(self._allele_fraction_global_summaries, allele_fraction_parameter_file, sample_name=self.sample_name)
