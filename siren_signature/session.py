from siren_signature import config, signal_processing, harmonic_detection, matching
from siren_signature.learning import SignatureLearner

IDLE = 'idle'
LEARNING = 'learning'
DETECTING = 'detecting'


def clamp(value, low, high):
    return max(low, min(high, value))


class DetectionSession:
    """
    Per-stream detector state: the learned signature, the learning run in
    progress and the two runtime knobs (tolerance, minimum magnitude).

    Detecting is just idle with a signature present.
    """

    def __init__(self, config_params=None, clock=None, signature=None):
        params = config.resolve_params(config_params)
        self.params = params

        self.sample_rate = params['sample_rate']
        self.fft_size = params['fft_size']
        self.bin_width = signal_processing.bin_width(self.sample_rate, self.fft_size)
        self.min_freq = params['min_freq']
        self.max_freq = params['max_freq']
        self.num_harmonics = params['num_harmonics']
        self.match_method = params['match_method']

        self.tolerance = clamp(params['tolerance'], config.TOLERANCE_MIN, config.TOLERANCE_MAX)
        self.min_magnitude = clamp(params['min_magnitude'], config.MIN_MAGNITUDE_MIN, config.MIN_MAGNITUDE_MAX)

        self.learner = SignatureLearner(min_freq=self.min_freq,
                                        max_freq=self.max_freq,
                                        learn_duration_ms=params['learn_duration_ms'],
                                        clock=clock)
        self._signature = None
        self.signature = signature

    @property
    def signature(self):
        return self._signature

    @signature.setter
    def signature(self, signature):
        """Replaces the signature; correlation matching needs its band spectrum."""
        if signature is not None and self.match_method == 'correlation' and not signature.band_spectrum:
            raise ValueError("Signature has no band spectrum; correlation matching needs one")
        self._signature = signature

    @property
    def state(self):
        if self.learner.is_learning:
            return LEARNING
        if self.signature is not None:
            return DETECTING
        return IDLE

    # --- Learning ---

    def start_learning(self, now_ms=None):
        """
        Starts a fresh learning window. Ignored while a run is in progress.
        Returns True when a new run was started.
        """
        if self.learner.is_learning:
            return False
        self.learner.start(now_ms)
        return True

    def finish_learning(self):
        """
        Closes the learning window. On success the signature is replaced
        wholesale; with too few samples the previous one is kept.
        Returns 'learned' or 'insufficient_samples'.
        """
        new_signature = self.learner.finish()
        if new_signature is None:
            return 'insufficient_samples'
        self.signature = new_signature
        return 'learned'

    def cancel_learning(self):
        self.learner.cancel()

    def stop(self):
        """Capture stopped: abandon any learning run, keep the signature."""
        self.cancel_learning()

    # --- Runtime knobs ---

    def set_tolerance(self, value):
        self.tolerance = clamp(value, config.TOLERANCE_MIN, config.TOLERANCE_MAX)
        return self.tolerance

    def adjust_tolerance(self, steps):
        return self.set_tolerance(self.tolerance + steps * config.TOLERANCE_STEP)

    def set_min_magnitude(self, value):
        self.min_magnitude = clamp(value, config.MIN_MAGNITUDE_MIN, config.MIN_MAGNITUDE_MAX)
        return self.min_magnitude

    def adjust_min_magnitude(self, steps):
        return self.set_min_magnitude(self.min_magnitude + steps * config.MIN_MAGNITUDE_STEP)


def process_frame(session, db_frame, now_ms=None):
    """
    Runs one full analysis pass on a decibel magnitude frame:
    convert -> dominant peak -> harmonics -> learn or match.

    Returns a dict for the presentation layer:
      state, status, freq, magnitude, bin, profile, match,
      progress, sample_count, learning_outcome
    """
    spectrum = signal_processing.convert_to_linear(db_frame)
    peak = signal_processing.find_dominant_frequency(spectrum, session.bin_width,
                                                     session.min_freq, session.max_freq)
    profile = harmonic_detection.analyze_harmonics(spectrum, peak['freq'], session.bin_width,
                                                   session.num_harmonics)
    band = signal_processing.extract_band(spectrum, session.bin_width,
                                          session.min_freq, session.max_freq)

    result = {
        'state': session.state,
        'status': None,
        'freq': peak['freq'],
        'magnitude': peak['magnitude'],
        'bin': peak['idx'],
        'profile': profile,
        'match': None,
        'progress': 0.0,
        'sample_count': 0,
        'learning_outcome': None
    }

    signature = session.signature  # stable reference for this frame

    if session.learner.is_learning:
        done = session.learner.observe(profile, peak['freq'], peak['magnitude'],
                                       min_magnitude=session.min_magnitude,
                                       band=band, now_ms=now_ms)
        result['progress'] = session.learner.progress(now_ms)
        result['sample_count'] = len(session.learner.samples)
        result['status'] = LEARNING
        if done:
            outcome = session.finish_learning()
            result['learning_outcome'] = outcome
            result['status'] = outcome
            result['state'] = session.state
        return result

    if signature is None:
        result['status'] = 'no_signature' if peak['magnitude'] > session.min_magnitude else 'weak_signal'
        return result

    if peak['magnitude'] < session.min_magnitude:
        result['match'] = matching.no_match(session.match_method)
        result['status'] = 'weak_signal'
        return result

    if session.match_method == 'correlation':
        match = matching.match_correlation(signature, band, peak['magnitude'],
                                           session.tolerance, session.min_magnitude)
    else:
        match = matching.match_harmonics(signature, profile, peak['magnitude'],
                                         session.tolerance, session.min_magnitude)

    result['match'] = match
    result['status'] = 'match' if match['matched'] else 'no_match'
    return result
