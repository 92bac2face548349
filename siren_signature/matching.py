import numpy as np
from siren_signature import config


def no_match(method, deviations=None):
    return {
        'matched': False,
        'similarity': 0.0,
        'deviations': [] if deviations is None else deviations,
        'method': method
    }


def harmonic_deviations(learned_ratios, live_ratios, ratio_floor=config.RATIO_FLOOR):
    """
    Relative deviation per overtone (index >= 1) over the overlapping length.
    The fundamental is skipped since both sides hold 1.0 there.
    """
    n = min(len(learned_ratios), len(live_ratios))
    deviations = []
    for i in range(1, n):
        learned = float(learned_ratios[i])
        live = float(live_ratios[i])
        deviations.append(abs(learned - live) / max(learned, ratio_floor))
    return deviations


def match_harmonics(signature, profile, magnitude,
                    tolerance=config.TOLERANCE, min_magnitude=config.MIN_MAGNITUDE):
    """
    Scores a live harmonic profile against the learned ratios.
    similarity = max(0, 1 - mean deviation) * 100, matched when
    similarity >= 100 - tolerance.
    """
    if signature is None or magnitude < min_magnitude:
        return no_match('harmonic')

    deviations = harmonic_deviations(signature.harmonic_ratios, profile['ratios'])
    avg_deviation = float(np.mean(deviations)) if deviations else 1.0

    similarity = max(0.0, 1.0 - avg_deviation) * 100.0
    return {
        'matched': similarity >= 100 - tolerance,
        'similarity': similarity,
        'deviations': deviations,
        'method': 'harmonic'
    }


def pearson_correlation(a, b):
    """
    Pearson correlation over the common prefix of a and b, clipped at 0.
    Zero variance on either side gives 0.
    """
    n = min(len(a), len(b))
    if n == 0:
        return 0.0
    a = np.asarray(a[:n], dtype=np.float64)
    b = np.asarray(b[:n], dtype=np.float64)
    if np.all(a == a[0]) or np.all(b == b[0]):
        return 0.0

    a_c = a - a.mean()
    b_c = b - b.mean()
    denominator = np.sqrt(np.dot(a_c, a_c) * np.dot(b_c, b_c))
    if not np.isfinite(denominator) or denominator <= 0:
        return 0.0
    return max(0.0, float(np.dot(a_c, b_c) / denominator))


def match_correlation(signature, band_spectrum, magnitude,
                      tolerance=config.TOLERANCE, min_magnitude=config.MIN_MAGNITUDE):
    """
    Full-band alternative: correlates the peak-normalized live band with the
    learned band. Matched when correlation >= 1 - tolerance/100, i.e. the
    same percent threshold as match_harmonics.
    """
    if signature is None or magnitude < min_magnitude or not signature.band_spectrum:
        return no_match('correlation')

    band = np.asarray(band_spectrum, dtype=np.float64)
    peak = np.max(band) if len(band) else 0.0
    if peak <= 0:
        return no_match('correlation')

    correlation = pearson_correlation(band / peak, signature.band_spectrum)
    return {
        'matched': correlation >= 1 - tolerance / 100.0,
        'similarity': correlation * 100.0,
        'deviations': [],
        'method': 'correlation'
    }
