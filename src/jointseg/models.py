import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, NamedTuple

import numpy as np
import scipy.stats
from numba import njit
from scipy.special import gammaln
from tqdm import trange

from jointseg.posterior import summarize_sample_matrix, summarize_samples
from jointseg.segments import PosteriorSummary

logger = logging.getLogger(__name__)


class ModelFit(NamedTuple):
    """
    Result of one MCMC fit over a segmentation.

    Attributes
    ----------
    segment_summaries : list of PosteriorSummary
        One summary per segment, in the order of the segments that were fit.
    global_parameter_summaries : dict
        Posterior summary of each global parameter, keyed by parameter name.
    """
    segment_summaries: List[PosteriorSummary]
    global_parameter_summaries: Dict[str, PosteriorSummary]


class SegmentedModeller(ABC):
    """
    An ABC for MCMC samplers of a per-segment quantity.

    Attributes
    ----------
    num_samples : int
        Total number of MCMC samples, burn-in included.
    num_burn_in : int
        Number of initial samples discarded before summarizing.
    random_state : int
        Seed of the sampler's random number generator. Every fit restarts from this seed.
    """
    def __init__(self, num_samples, num_burn_in, random_state=0):
        if num_samples <= 0:
            raise ValueError("Number of MCMC samples must be positive.")
        if num_burn_in < 0 or num_burn_in >= num_samples:
            raise ValueError("Number of burn-in samples must be non-negative and less than the number of samples.")
        self.num_samples = num_samples
        self.num_burn_in = num_burn_in
        self.random_state = random_state

    @abstractmethod
    def fit(self, segments, observations):
        """
        Sample the posterior over the given segments and return a ModelFit.
        """
        pass

    @abstractmethod
    def get_global_parameter_names(self):
        pass

    def _missing_fit(self, n_segments):
        return ModelFit(
            [PosteriorSummary.missing()] * n_segments,
            {name: PosteriorSummary.missing() for name in self.get_global_parameter_names()},
        )


############################################################
# copy ratio
############################################################

class CopyRatioModeller(SegmentedModeller):
    """
    Gibbs sampler for segment means of denoised log2 copy ratios.

    Each point is Gaussian around its segment mean with a shared variance, or with a shared outlier probability is
    drawn uniformly over the observed range of log2 copy ratios.
    """
    VARIANCE_PRIOR_ALPHA = 1.0
    VARIANCE_PRIOR_BETA = 1e-3
    OUTLIER_PROBABILITY_PRIOR_ALPHA = 5.0
    OUTLIER_PROBABILITY_PRIOR_BETA = 95.0

    def get_global_parameter_names(self):
        return ["VARIANCE", "OUTLIER_PROBABILITY"]

    def fit(self, segments, observations):
        n_segments = len(segments)
        seg_index = observations.assign_segments(segments)
        mask = seg_index >= 0
        y = observations.log2_copy_ratios[mask]
        s = seg_index[mask]
        if len(y) == 0:
            logger.warning("No copy-ratio points overlap the segmentation; all copy-ratio summaries are missing.")
            return self._missing_fit(n_segments)

        np.random.seed(self.random_state)
        n_per_segment = np.bincount(s, minlength=n_segments)
        data_range = np.max(y) - np.min(y)
        log_outlier_density = -np.log(data_range) if data_range > 0 else 0.0

        # initial state
        means = np.full(n_segments, np.nan)
        has_data = n_per_segment > 0
        means[has_data] = np.bincount(s, weights=y, minlength=n_segments)[has_data] / n_per_segment[has_data]
        variance = np.var(y - means[s])
        if not variance > 0:
            variance = 1e-2
        outlier_prob = self.OUTLIER_PROBABILITY_PRIOR_ALPHA / (self.OUTLIER_PROBABILITY_PRIOR_ALPHA + self.OUTLIER_PROBABILITY_PRIOR_BETA)

        n_kept = self.num_samples - self.num_burn_in
        mean_samples = np.full((n_kept, n_segments), np.nan)
        variance_samples = np.zeros(n_kept)
        outlier_samples = np.zeros(n_kept)

        for it in trange(self.num_samples, desc="copy-ratio MCMC"):
            # outlier indicators
            log_inlier = np.log(1.0 - outlier_prob) + scipy.stats.norm.logpdf(y, loc=means[s], scale=np.sqrt(variance))
            log_outlier = np.log(outlier_prob) + log_outlier_density
            prob_outlier = np.exp(log_outlier - np.logaddexp(log_outlier, log_inlier))
            is_outlier = np.random.uniform(size=len(y)) < prob_outlier
            inlier = ~is_outlier

            # segment means, flat prior; segments without inliers keep their previous value
            n_in = np.bincount(s[inlier], minlength=n_segments)
            sum_in = np.bincount(s[inlier], weights=y[inlier], minlength=n_segments)
            update = n_in > 0
            means[update] = np.random.normal(sum_in[update] / n_in[update], np.sqrt(variance / n_in[update]))

            # shared variance, inverse-gamma conditional
            resid = y[inlier] - means[s[inlier]]
            shape = self.VARIANCE_PRIOR_ALPHA + 0.5 * len(resid)
            scale = self.VARIANCE_PRIOR_BETA + 0.5 * np.sum(resid**2)
            variance = scale / np.random.gamma(shape)

            # outlier probability, beta conditional
            n_outliers = int(np.sum(is_outlier))
            outlier_prob = np.random.beta(
                self.OUTLIER_PROBABILITY_PRIOR_ALPHA + n_outliers,
                self.OUTLIER_PROBABILITY_PRIOR_BETA + len(y) - n_outliers,
            )

            if it >= self.num_burn_in:
                k = it - self.num_burn_in
                mean_samples[k, :] = means
                variance_samples[k] = variance
                outlier_samples[k] = outlier_prob

        return ModelFit(
            summarize_sample_matrix(mean_samples),
            {
                "VARIANCE": summarize_samples(variance_samples),
                "OUTLIER_PROBABILITY": summarize_samples(outlier_samples),
            },
        )


############################################################
# allele fraction
############################################################

@dataclass(frozen=True)
class AlleleFractionPrior:
    """
    Hyperparameters of the allele-fraction model.

    Attributes
    ----------
    minor_allele_fraction_prior_alpha : float
        Alpha of the Beta(alpha, 1) prior on the minor allele fraction, rescaled to [0, 1/2].
    outlier_probability_prior_alpha : float
        Alpha of the beta prior on the outlier probability.
    outlier_probability_prior_beta : float
        Beta of the beta prior on the outlier probability.
    mean_bias_prior_mean : float
        Mean of the Gaussian prior on the reference bias.
    mean_bias_prior_std : float
        Standard deviation of the Gaussian prior on the reference bias.
    """
    minor_allele_fraction_prior_alpha: float = 25.0
    outlier_probability_prior_alpha: float = 5.0
    outlier_probability_prior_beta: float = 95.0
    mean_bias_prior_mean: float = 1.0
    mean_bias_prior_std: float = 0.1

    def __post_init__(self):
        if self.minor_allele_fraction_prior_alpha < 1:
            raise ValueError("Alpha hyperparameter for the minor-allele-fraction prior must be at least 1.")
        if self.outlier_probability_prior_alpha <= 0 or self.outlier_probability_prior_beta <= 0:
            raise ValueError("Hyperparameters of the outlier-probability prior must be positive.")
        if self.mean_bias_prior_mean <= 0 or self.mean_bias_prior_std <= 0:
            raise ValueError("Mean and standard deviation of the reference-bias prior must be positive.")

    @classmethod
    def from_config(cls, config):
        return cls(
            minor_allele_fraction_prior_alpha=config["minor_allele_fraction_prior_alpha"],
            outlier_probability_prior_alpha=config["outlier_probability_prior_alpha"],
            outlier_probability_prior_beta=config["outlier_probability_prior_beta"],
            mean_bias_prior_mean=config["mean_bias_prior_mean"],
            mean_bias_prior_std=config["mean_bias_prior_std"],
        )


@njit(cache=True)
def _logaddexp(a, b):
    m = max(a, b)
    return m + math.log(math.exp(a - m) + math.exp(b - m))


@njit(cache=True)
def site_log_likelihoods(alt_counts, ref_counts, log_binom_coef, log_outlier_density, f_per_site, bias, outlier_prob):
    """
    Log-likelihood of each heterozygous site.

    The alternate allele is either the minor (fraction f) or the major allele with equal probability; reference reads
    are over- or under-sampled by the bias factor; with the outlier probability the alternate count is uniform.
    """
    n_sites = len(alt_counts)
    out = np.empty(n_sites)
    log_inlier_weight = math.log(1.0 - outlier_prob)
    log_outlier_weight = math.log(outlier_prob)
    for i in range(n_sites):
        f = f_per_site[i]
        a = alt_counts[i]
        r = ref_counts[i]
        # alt is minor
        norm1 = math.log(f + (1.0 - f) * bias)
        l1 = a * (math.log(f) - norm1) + r * (math.log((1.0 - f) * bias) - norm1)
        # alt is major
        norm2 = math.log((1.0 - f) + f * bias)
        l2 = a * (math.log(1.0 - f) - norm2) + r * (math.log(f * bias) - norm2)
        l_het = math.log(0.5) + _logaddexp(l1, l2) + log_binom_coef[i]
        out[i] = _logaddexp(log_inlier_weight + l_het, log_outlier_weight + log_outlier_density[i])
    return out


class AlleleFractionModeller(SegmentedModeller):
    """
    Metropolis-within-Gibbs sampler for segment minor allele fractions at heterozygous sites.

    Global parameters are the reference bias (MEAN_BIAS) and the probability that a site is an outlier
    (OUTLIER_PROBABILITY).
    """
    MIN_MINOR_ALLELE_FRACTION = 1e-4
    MAX_MINOR_ALLELE_FRACTION = 0.5
    BIAS_PROPOSAL_WIDTH = 0.02
    OUTLIER_PROBABILITY_PROPOSAL_WIDTH = 0.01

    def __init__(self, prior, num_samples, num_burn_in, random_state=0):
        super().__init__(num_samples, num_burn_in, random_state=random_state)
        if prior is None:
            raise ValueError("Allele-fraction prior must not be None.")
        self.prior = prior

    def get_global_parameter_names(self):
        return ["MEAN_BIAS", "OUTLIER_PROBABILITY"]

    def log_prior_minor_fraction(self, f):
        return (self.prior.minor_allele_fraction_prior_alpha - 1.0) * np.log(2.0 * f)

    def log_prior_bias(self, bias):
        return scipy.stats.norm.logpdf(bias, loc=self.prior.mean_bias_prior_mean, scale=self.prior.mean_bias_prior_std)

    def log_prior_outlier(self, outlier_prob):
        return scipy.stats.beta.logpdf(outlier_prob, self.prior.outlier_probability_prior_alpha, self.prior.outlier_probability_prior_beta)

    def fit(self, segments, observations):
        n_segments = len(segments)
        seg_index = observations.assign_segments(segments)
        mask = seg_index >= 0
        alt = observations.alt_counts[mask]
        ref = observations.ref_counts[mask]
        s = seg_index[mask]
        if len(alt) == 0:
            logger.warning("No allelic counts overlap the segmentation; all allele-fraction summaries are missing.")
            return self._missing_fit(n_segments)

        np.random.seed(self.random_state)
        total = alt + ref
        log_binom_coef = gammaln(total + 1) - gammaln(alt + 1) - gammaln(ref + 1)
        log_outlier_density = -np.log(total + 1.0)
        has_data = np.bincount(s, minlength=n_segments) > 0
        reads_per_segment = np.bincount(s, weights=total, minlength=n_segments)
        # proposal width on the scale of the posterior standard deviation
        step = np.clip(1.0 / np.sqrt(np.maximum(reads_per_segment, 1.0)), 1e-3, 0.1)

        # initial state
        f = np.full(n_segments, 0.25)
        minor_reads = np.bincount(s, weights=np.minimum(alt, ref), minlength=n_segments)
        informative = reads_per_segment > 0
        f[informative] = minor_reads[informative] / reads_per_segment[informative]
        f = np.clip(f, 0.01, self.MAX_MINOR_ALLELE_FRACTION)
        bias = self.prior.mean_bias_prior_mean
        outlier_prob = self.prior.outlier_probability_prior_alpha / (self.prior.outlier_probability_prior_alpha + self.prior.outlier_probability_prior_beta)

        site_ll = site_log_likelihoods(alt, ref, log_binom_coef, log_outlier_density, f[s], bias, outlier_prob)
        segment_ll = np.bincount(s, weights=site_ll, minlength=n_segments)

        n_kept = self.num_samples - self.num_burn_in
        f_samples = np.full((n_kept, n_segments), np.nan)
        bias_samples = np.zeros(n_kept)
        outlier_samples = np.zeros(n_kept)

        for it in trange(self.num_samples, desc="allele-fraction MCMC"):
            # minor allele fractions: independent random-walk proposals, one accept/reject per segment
            proposal = f + step * np.random.normal(size=n_segments)
            valid = has_data & (proposal >= self.MIN_MINOR_ALLELE_FRACTION) & (proposal <= self.MAX_MINOR_ALLELE_FRACTION)
            proposal = np.where(valid, proposal, f)
            new_site_ll = site_log_likelihoods(alt, ref, log_binom_coef, log_outlier_density, proposal[s], bias, outlier_prob)
            new_segment_ll = np.bincount(s, weights=new_site_ll, minlength=n_segments)
            log_ratio = new_segment_ll - segment_ll + self.log_prior_minor_fraction(proposal) - self.log_prior_minor_fraction(f)
            accept = valid & (np.log(np.random.uniform(size=n_segments)) < log_ratio)
            f = np.where(accept, proposal, f)
            site_ll = np.where(accept[s], new_site_ll, site_ll)
            segment_ll = np.where(accept, new_segment_ll, segment_ll)

            # reference bias
            bias_proposal = bias + self.BIAS_PROPOSAL_WIDTH * np.random.normal()
            if bias_proposal > 0:
                new_site_ll = site_log_likelihoods(alt, ref, log_binom_coef, log_outlier_density, f[s], bias_proposal, outlier_prob)
                log_ratio = np.sum(new_site_ll) - np.sum(site_ll) + self.log_prior_bias(bias_proposal) - self.log_prior_bias(bias)
                if np.log(np.random.uniform()) < log_ratio:
                    bias = bias_proposal
                    site_ll = new_site_ll

            # outlier probability
            outlier_proposal = outlier_prob + self.OUTLIER_PROBABILITY_PROPOSAL_WIDTH * np.random.normal()
            if 0 < outlier_proposal < 1:
                new_site_ll = site_log_likelihoods(alt, ref, log_binom_coef, log_outlier_density, f[s], bias, outlier_proposal)
                log_ratio = np.sum(new_site_ll) - np.sum(site_ll) + self.log_prior_outlier(outlier_proposal) - self.log_prior_outlier(outlier_prob)
                if np.log(np.random.uniform()) < log_ratio:
                    outlier_prob = outlier_proposal
                    site_ll = new_site_ll
            segment_ll = np.bincount(s, weights=site_ll, minlength=n_segments)

            if it >= self.num_burn_in:
                k = it - self.num_burn_in
                f_samples[k, has_data] = f[has_data]
                bias_samples[k] = bias
                outlier_samples[k] = outlier_prob

        return ModelFit(
            summarize_sample_matrix(f_samples),
            {
                "MEAN_BIAS": summarize_samples(bias_samples),
                "OUTLIER_PROBABILITY": summarize_samples(outlier_samples),
            },
        )
