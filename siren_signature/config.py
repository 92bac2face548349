# Configuration parameters for the siren signature detector
import json

# Audio
SAMPLE_RATE = 44100
FFT_SIZE = 4096
SMOOTHING_FACTOR = 0.8   # analyser time smoothing (0 = none)

# Siren band
MIN_FREQ = 300.0         # Minimum frequency to consider
MAX_FREQ = 3000.0        # Maximum frequency to consider

# Harmonic Analysis
NUM_HARMONICS = 4            # overtones measured above the fundamental
HARMONIC_SEARCH_RADIUS = 3   # bins searched around each expected harmonic

# Learning
LEARN_DURATION_MS = 5000
MIN_LEARNING_SAMPLES = 10

# Matching
# Tolerance is a percentage: a frame matches when similarity >= 100 - TOLERANCE.
TOLERANCE = 50
TOLERANCE_MIN = 10
TOLERANCE_MAX = 90
TOLERANCE_STEP = 10

# Magnitudes are on the linear 0..~100 scale produced by convert_to_linear.
MIN_MAGNITUDE = 10
MIN_MAGNITUDE_MIN = 1
MIN_MAGNITUDE_MAX = 50
MIN_MAGNITUDE_STEP = 2

RATIO_FLOOR = 0.1        # lower bound on the learned ratio when scoring deviations
MATCH_METHOD = 'harmonic'  # 'harmonic' or 'correlation'

# Keys accepted in config_params overrides
DEFAULTS = {
    'sample_rate': SAMPLE_RATE,
    'fft_size': FFT_SIZE,
    'min_freq': MIN_FREQ,
    'max_freq': MAX_FREQ,
    'learn_duration_ms': LEARN_DURATION_MS,
    'num_harmonics': NUM_HARMONICS,
    'tolerance': TOLERANCE,
    'min_magnitude': MIN_MAGNITUDE,
    'match_method': MATCH_METHOD,
}


def load_config(filepath):
    """Loads a JSON file of parameter overrides (e.g. {"tolerance": 40})."""
    with open(filepath, 'r') as f:
        params = json.load(f)
    if not isinstance(params, dict):
        raise ValueError(f"Config file {filepath} must contain a JSON object")
    return params


def resolve_params(config_params=None):
    """Merges overrides onto the defaults and validates the result."""
    params = dict(DEFAULTS)
    if config_params:
        unknown = set(config_params) - set(params)
        if unknown:
            raise ValueError(f"Unknown config keys: {sorted(unknown)}")
        params.update(config_params)

    if params['sample_rate'] <= 0:
        raise ValueError(f"Invalid sample rate: {params['sample_rate']}")
    if params['fft_size'] <= 0:
        raise ValueError(f"Invalid FFT size: {params['fft_size']}")
    if not 0 <= params['min_freq'] < params['max_freq']:
        raise ValueError(f"Invalid band: {params['min_freq']}-{params['max_freq']} Hz")
    # JSON files may give whole numbers as floats (4.0)
    num_harmonics = params['num_harmonics']
    if isinstance(num_harmonics, bool) or float(num_harmonics) != int(num_harmonics) or num_harmonics < 0:
        raise ValueError(f"Invalid harmonic count: {num_harmonics}")
    params['num_harmonics'] = int(num_harmonics)
    if params['learn_duration_ms'] <= 0:
        raise ValueError(f"Invalid learning duration: {params['learn_duration_ms']} ms")
    if params['match_method'] not in ('harmonic', 'correlation'):
        raise ValueError(f"Unknown match method: {params['match_method']}")
    return params
