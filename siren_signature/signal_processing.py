import math
import numpy as np
from siren_signature import config


def bin_width(sample_rate=config.SAMPLE_RATE, fft_size=config.FFT_SIZE):
    """Width of one FFT bin in Hz."""
    return sample_rate / fft_size


def band_bins(width, min_freq=config.MIN_FREQ, max_freq=config.MAX_FREQ):
    """Returns (min_bin, max_bin) covering [min_freq, max_freq]."""
    min_bin = int(math.floor(min_freq / width))
    max_bin = int(math.ceil(max_freq / width))
    return min_bin, max_bin


def convert_to_linear(db_spectrum):
    """
    Maps analyser decibel values to the linear 0..~100 scale used for analysis.
    -100 dB -> 10, -60 dB -> 100, anything at -inf -> 0.
    """
    db = np.asarray(db_spectrum, dtype=np.float64)
    with np.errstate(over='ignore', invalid='ignore'):
        linear = np.power(10.0, (db + 100.0) / 40.0) * 10.0
    linear = np.nan_to_num(linear, nan=0.0, posinf=np.finfo(np.float64).max)
    return np.maximum(0.0, linear)


def extract_band(spectrum, width, min_freq=config.MIN_FREQ, max_freq=config.MAX_FREQ):
    """Slice of the spectrum between the band bins (upper bin excluded)."""
    min_bin, max_bin = band_bins(width, min_freq, max_freq)
    return np.asarray(spectrum, dtype=np.float64)[min_bin:max_bin]


def parabolic_interpolation(y, i):
    """
    Fits a parabola through y[i-1], y[i], y[i+1].
    Returns (delta, peak_value) where delta is the vertex offset in bins.
    A flat neighbourhood (zero curvature) returns (0.0, y[i]).
    """
    y0, y1, y2 = float(y[i - 1]), float(y[i]), float(y[i + 1])
    denom = y0 - 2 * y1 + y2
    if denom == 0:
        return 0.0, y1
    delta = 0.5 * (y0 - y2) / denom
    peak = y1 - 0.25 * (y0 - y2) * delta
    return delta, peak


def find_dominant_frequency(spectrum, width, min_freq=config.MIN_FREQ, max_freq=config.MAX_FREQ):
    """
    Finds the strongest bin inside the band and refines its frequency.
    Returns: dict {'freq': Hz, 'magnitude': m, 'idx': bin}

    An empty band still returns a peak at min_bin with magnitude 0; callers
    compare the magnitude against their own threshold.
    """
    spectrum = np.asarray(spectrum, dtype=np.float64)
    min_bin, max_bin = band_bins(width, min_freq, max_freq)
    last_bin = min(max_bin, len(spectrum) - 1)

    max_magnitude = 0.0
    dominant_bin = min_bin

    # Strictly greater keeps the lowest bin on ties
    for i in range(min_bin, last_bin + 1):
        if spectrum[i] > max_magnitude:
            max_magnitude = float(spectrum[i])
            dominant_bin = i

    freq = dominant_bin * width
    if min_bin < dominant_bin < last_bin:
        delta, _ = parabolic_interpolation(spectrum, dominant_bin)
        freq = (dominant_bin + delta) * width

    return {
        'freq': max(0.0, freq),
        'magnitude': max_magnitude,
        'idx': dominant_bin
    }
