import json
import time
from collections import namedtuple

import numpy as np
from siren_signature import config

# Immutable learned fingerprint. A new learning run replaces it, never edits it.
Signature = namedtuple('Signature', ['harmonic_ratios', 'sample_count', 'created_at', 'band_spectrum'])


def monotonic_ms():
    # Elapsed-time clock for the learning window; unaffected by system clock changes
    return time.monotonic() * 1000.0


def average_ratios(samples):
    """Per-harmonic arithmetic mean of the samples' ratio vectors."""
    if not samples:
        return np.zeros(0)
    length = min(len(s['ratios']) for s in samples)
    stacked = np.array([np.asarray(s['ratios'][:length], dtype=np.float64) for s in samples])
    return stacked.mean(axis=0)


def average_band(samples):
    """Mean band spectrum normalized to a 0-1 peak; empty when unavailable."""
    bands = [s['band'] for s in samples if s.get('band') is not None]
    if len(bands) != len(samples) or not bands:
        return np.zeros(0)
    length = min(len(b) for b in bands)
    avg = np.mean([np.asarray(b[:length], dtype=np.float64) for b in bands], axis=0)
    peak = np.max(avg) if len(avg) else 0.0
    if peak <= 0:
        return np.zeros(len(avg))
    return avg / peak


class SignatureLearner:
    """
    Collects harmonic measurements over a fixed wall-clock window and reduces
    them to a Signature.

    Idle -> start() -> Learning -> finish() -> Idle
    """

    def __init__(self, min_freq=config.MIN_FREQ, max_freq=config.MAX_FREQ,
                 learn_duration_ms=config.LEARN_DURATION_MS,
                 min_samples=config.MIN_LEARNING_SAMPLES, clock=None):
        self.min_freq = min_freq
        self.max_freq = max_freq
        self.learn_duration_ms = learn_duration_ms
        self.min_samples = min_samples
        self.clock = clock or monotonic_ms

        self.is_learning = False
        self.samples = []
        self.start_time = 0.0

    def _now(self, now_ms):
        return self.clock() if now_ms is None else now_ms

    def start(self, now_ms=None):
        self.samples = []
        self.start_time = self._now(now_ms)
        self.is_learning = True

    def elapsed_ms(self, now_ms=None):
        if not self.is_learning:
            return 0.0
        return self._now(now_ms) - self.start_time

    def is_complete(self, now_ms=None):
        return self.is_learning and self.elapsed_ms(now_ms) >= self.learn_duration_ms

    def progress(self, now_ms=None):
        """Percent of the learning window elapsed (0-100)."""
        if not self.is_learning:
            return 0.0
        return min(100.0, self.elapsed_ms(now_ms) / self.learn_duration_ms * 100.0)

    def observe(self, profile, freq, magnitude, min_magnitude=config.MIN_MAGNITUDE,
                band=None, now_ms=None):
        """
        Records one frame. Weak or off-band frames are dropped.
        Returns True once the learning window has elapsed.
        """
        if not self.is_learning:
            return False

        elapsed = self.elapsed_ms(now_ms)
        if magnitude > min_magnitude and self.min_freq <= freq <= self.max_freq:
            self.samples.append({
                'ratios': np.array(profile['ratios'], dtype=np.float64),
                'freq': freq,
                'magnitude': magnitude,
                'elapsed_ms': elapsed,
                'band': None if band is None else np.array(band, dtype=np.float64)
            })

        return elapsed >= self.learn_duration_ms

    def finish(self):
        """
        Ends the run. Returns the new Signature, or None when fewer than
        min_samples frames were accepted.
        """
        samples = self.samples
        self.is_learning = False
        self.samples = []

        if len(samples) < self.min_samples:
            return None

        ratios = average_ratios(samples)
        band = average_band(samples)
        return Signature(
            harmonic_ratios=tuple(float(r) for r in ratios),
            sample_count=len(samples),
            created_at=time.time(),
            band_spectrum=tuple(float(v) for v in band)
        )

    def cancel(self):
        """Abandons the run without producing a signature."""
        self.is_learning = False
        self.samples = []


def signature_to_dict(signature):
    return {
        'harmonic_ratios': list(signature.harmonic_ratios),
        'sample_count': signature.sample_count,
        'timestamp': signature.created_at,
        'band_spectrum': list(signature.band_spectrum)
    }


def signature_from_dict(data):
    try:
        ratios = tuple(float(r) for r in data['harmonic_ratios'])
        sample_count = int(data['sample_count'])
        created_at = float(data.get('timestamp', 0.0))
        band = tuple(float(v) for v in data.get('band_spectrum', []))
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"Malformed signature: {e}") from e

    if not ratios:
        raise ValueError("Malformed signature: empty harmonic_ratios")
    return Signature(ratios, sample_count, created_at, band)


def save_signature(signature, filepath):
    with open(filepath, 'w') as f:
        json.dump(signature_to_dict(signature), f, indent=2)


def load_signature(filepath):
    with open(filepath, 'r') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Malformed signature file {filepath}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Malformed signature file {filepath}: expected an object")
    return signature_from_dict(data)
