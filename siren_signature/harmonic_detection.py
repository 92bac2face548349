import numpy as np
from siren_signature import config


def local_maximum(spectrum, center_bin, radius=config.HARMONIC_SEARCH_RADIUS):
    """
    Strongest bin within +/- radius of center_bin, clipped to the spectrum.
    Returns (bin, magnitude); (center_bin, 0.0) when the window is empty.
    """
    lo = max(0, center_bin - radius)
    hi = min(len(spectrum) - 1, center_bin + radius)
    if lo > hi:
        return center_bin, 0.0

    best_bin = lo
    best_mag = float(spectrum[lo])
    for k in range(lo + 1, hi + 1):
        if spectrum[k] > best_mag:
            best_mag = float(spectrum[k])
            best_bin = k
    return best_bin, best_mag


def analyze_harmonics(spectrum, fundamental_freq, width,
                      num_harmonics=config.NUM_HARMONICS,
                      search_radius=config.HARMONIC_SEARCH_RADIUS):
    """
    Measures the fundamental and its first num_harmonics overtones.
    Harmonic order h runs 2..num_harmonics+1; each overtone is the local maximum
    around round(f0*h/width), which tolerates slight inharmonicity.

    Returns: dict {'fundamental_freq', 'freqs', 'magnitudes', 'ratios'}
    where ratios are relative to the fundamental bin and ratios[0] == 1.0.
    """
    spectrum = np.asarray(spectrum, dtype=np.float64)
    n_bins = len(spectrum)

    fundamental_bin = int(round(fundamental_freq / width))
    if 0 <= fundamental_bin < n_bins:
        fundamental_mag = float(spectrum[fundamental_bin])
    else:
        fundamental_mag = 0.0

    # Silent fundamental: use 1 so ratios stay finite
    reference = fundamental_mag if fundamental_mag != 0 else 1.0

    freqs = [fundamental_freq]
    magnitudes = [fundamental_mag]

    for h in range(2, num_harmonics + 2):
        expected_bin = int(round(fundamental_freq * h / width))
        peak_bin, peak_mag = local_maximum(spectrum, expected_bin, search_radius)
        freqs.append(peak_bin * width)
        magnitudes.append(peak_mag)

    ratios = np.array(magnitudes, dtype=np.float64) / reference
    ratios[0] = 1.0

    return {
        'fundamental_freq': fundamental_freq,
        'freqs': np.array(freqs, dtype=np.float64),
        'magnitudes': np.array(magnitudes, dtype=np.float64),
        'ratios': ratios
    }
