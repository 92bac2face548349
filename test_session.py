import unittest
import numpy as np
from siren_signature import session as session_mod
from siren_signature.session import DetectionSession, process_frame
from siren_signature.learning import Signature

N_BINS = 2048
BACKGROUND_DB = -200.0

# 1000 Hz fundamental and overtones 2..5 at 44.1 kHz / 4096
SIREN_BINS = [93, 186, 279, 372, 464]
SIREN_RATIOS = [1.0, 0.5, 0.3, 0.1, 0.05]


def linear_to_db(linear):
    """Inverse of convert_to_linear for positive values."""
    return 40.0 * np.log10(linear / 10.0) - 100.0


def siren_frame(level=100.0, ratios=SIREN_RATIOS):
    db = np.full(N_BINS, BACKGROUND_DB)
    for b, r in zip(SIREN_BINS, ratios):
        db[b] = linear_to_db(level * r)
    return db


def silent_frame():
    return np.full(N_BINS, BACKGROUND_DB)


def learn(session, frame, duration_ms=5000, step_ms=100):
    session.start_learning(now_ms=0)
    results = []
    for t in range(0, duration_ms + step_ms, step_ms):
        res = process_frame(session, frame, now_ms=t)
        results.append(res)
        if res['learning_outcome']:
            break
    return results


class TestDetectionSession(unittest.TestCase):
    def setUp(self):
        self.session = DetectionSession()

    def test_initial_state(self):
        self.assertEqual(self.session.state, session_mod.IDLE)
        self.assertIsNone(self.session.signature)
        self.assertEqual(self.session.tolerance, 50)
        self.assertEqual(self.session.min_magnitude, 10)

    def test_learn_then_match_pure_tone(self):
        results = learn(self.session, siren_frame())
        last = results[-1]
        self.assertEqual(last['learning_outcome'], 'learned')
        self.assertEqual(last['status'], 'learned')
        self.assertEqual(last['state'], session_mod.DETECTING)

        sig = self.session.signature
        self.assertEqual(sig.sample_count, 51)
        np.testing.assert_allclose(sig.harmonic_ratios, SIREN_RATIOS, rtol=1e-6)

        res = process_frame(self.session, siren_frame(), now_ms=5100)
        self.assertEqual(res['status'], 'match')
        self.assertTrue(res['match']['matched'])
        self.assertGreaterEqual(res['match']['similarity'], 95.0)
        self.assertLess(abs(res['freq'] - 1000.0), 44100 / 4096)

    def test_learning_progress_reported(self):
        self.session.start_learning(now_ms=0)
        res = process_frame(self.session, siren_frame(), now_ms=2500)
        self.assertEqual(res['state'], session_mod.LEARNING)
        self.assertEqual(res['status'], 'learning')
        self.assertAlmostEqual(res['progress'], 50.0)
        self.assertEqual(res['sample_count'], 1)
        self.assertIsNone(res['match'])

    def test_different_timbre_is_rejected(self):
        learn(self.session, siren_frame())
        flat = siren_frame(ratios=[1.0, 0.9, 0.9, 0.8, 0.8])
        res = process_frame(self.session, flat, now_ms=6000)
        self.assertEqual(res['status'], 'no_match')
        self.assertLess(res['match']['similarity'], 50.0)

    def test_failed_learning_keeps_previous_signature(self):
        learn(self.session, siren_frame())
        previous = self.session.signature

        results = learn(self.session, silent_frame())
        self.assertEqual(results[-1]['learning_outcome'], 'insufficient_samples')
        self.assertIs(self.session.signature, previous)
        self.assertEqual(self.session.state, session_mod.DETECTING)

    def test_failed_first_learning_stays_idle(self):
        results = learn(self.session, silent_frame())
        self.assertEqual(results[-1]['status'], 'insufficient_samples')
        self.assertIsNone(self.session.signature)
        self.assertEqual(self.session.state, session_mod.IDLE)

    def test_new_learning_replaces_signature(self):
        learn(self.session, siren_frame())
        first = self.session.signature
        learn(self.session, siren_frame(ratios=[1.0, 0.2, 0.2, 0.2, 0.2]))
        self.assertIsNot(self.session.signature, first)
        self.assertAlmostEqual(self.session.signature.harmonic_ratios[1], 0.2)
        self.assertAlmostEqual(first.harmonic_ratios[1], 0.5)

    def test_stop_aborts_learning(self):
        self.session.start_learning(now_ms=0)
        for t in range(0, 3000, 100):
            process_frame(self.session, siren_frame(), now_ms=t)
        self.session.stop()
        self.assertEqual(self.session.state, session_mod.IDLE)
        self.assertIsNone(self.session.signature)

        res = process_frame(self.session, siren_frame(), now_ms=9000)
        self.assertEqual(res['status'], 'no_signature')

    def test_weak_signal(self):
        learn(self.session, siren_frame())
        res = process_frame(self.session, siren_frame(level=5.0), now_ms=6000)
        self.assertEqual(res['status'], 'weak_signal')
        self.assertFalse(res['match']['matched'])
        self.assertEqual(res['match']['similarity'], 0.0)

    def test_no_signature_reports_frequency_only(self):
        res = process_frame(self.session, siren_frame(), now_ms=0)
        self.assertEqual(res['status'], 'no_signature')
        self.assertIsNone(res['match'])
        self.assertGreater(res['freq'], 900.0)

        res = process_frame(self.session, silent_frame(), now_ms=0)
        self.assertEqual(res['status'], 'weak_signal')

    def test_correlation_method(self):
        session = DetectionSession(config_params={'match_method': 'correlation'})
        learn(session, siren_frame())
        self.assertTrue(len(session.signature.band_spectrum) > 0)

        res = process_frame(session, siren_frame(), now_ms=6000)
        self.assertEqual(res['match']['method'], 'correlation')
        self.assertTrue(res['match']['matched'])

    def test_tolerance_is_clamped(self):
        self.assertEqual(self.session.set_tolerance(5), 10)
        self.assertEqual(self.session.set_tolerance(95), 90)
        self.session.set_tolerance(50)
        self.assertEqual(self.session.adjust_tolerance(1), 60)
        self.assertEqual(self.session.adjust_tolerance(-10), 10)

    def test_min_magnitude_is_clamped(self):
        self.assertEqual(self.session.set_min_magnitude(0), 1)
        self.assertEqual(self.session.set_min_magnitude(60), 50)
        self.session.set_min_magnitude(10)
        self.assertEqual(self.session.adjust_min_magnitude(1), 12)
        self.assertEqual(self.session.adjust_min_magnitude(-1), 10)

    def test_config_overrides(self):
        session = DetectionSession(config_params={'tolerance': 30, 'learn_duration_ms': 1000})
        self.assertEqual(session.tolerance, 30)
        self.assertEqual(session.learner.learn_duration_ms, 1000)
        results = learn(session, siren_frame(), duration_ms=1000)
        self.assertEqual(results[-1]['learning_outcome'], 'learned')
        self.assertEqual(session.signature.sample_count, 11)

    def test_invalid_config(self):
        with self.assertRaises(ValueError):
            DetectionSession(config_params={'bogus': 1})
        with self.assertRaises(ValueError):
            DetectionSession(config_params={'min_freq': 3000, 'max_freq': 300})
        with self.assertRaises(ValueError):
            DetectionSession(config_params={'match_method': 'neural'})
        with self.assertRaises(ValueError):
            DetectionSession(config_params={'learn_duration_ms': 0})
        with self.assertRaises(ValueError):
            DetectionSession(config_params={'learn_duration_ms': -100})
        with self.assertRaises(ValueError):
            DetectionSession(config_params={'num_harmonics': 4.5})
        with self.assertRaises(ValueError):
            DetectionSession(config_params={'num_harmonics': -1})

    def test_whole_float_harmonic_count(self):
        session = DetectionSession(config_params={'num_harmonics': 4.0})
        self.assertEqual(session.num_harmonics, 4)
        self.assertIsInstance(session.num_harmonics, int)
        res = process_frame(session, siren_frame(), now_ms=0)
        self.assertEqual(len(res['profile']['ratios']), 5)

    def test_start_learning_ignored_while_learning(self):
        self.assertTrue(self.session.start_learning(now_ms=0))
        for t in range(0, 1000, 100):
            process_frame(self.session, siren_frame(), now_ms=t)
        self.assertFalse(self.session.start_learning(now_ms=1000))
        self.assertEqual(len(self.session.learner.samples), 10)
        res = process_frame(self.session, siren_frame(), now_ms=2500)
        self.assertAlmostEqual(res['progress'], 50.0)

    def test_correlation_needs_band_spectrum(self):
        bandless = Signature(tuple(SIREN_RATIOS), 30, 0.0, ())
        with self.assertRaises(ValueError):
            DetectionSession(config_params={'match_method': 'correlation'}, signature=bandless)
        session = DetectionSession(config_params={'match_method': 'correlation'})
        with self.assertRaises(ValueError):
            session.signature = bandless
        self.assertIsNone(session.signature)

    def test_preloaded_signature(self):
        sig = Signature(tuple(SIREN_RATIOS), 30, 0.0, ())
        session = DetectionSession(signature=sig)
        self.assertEqual(session.state, session_mod.DETECTING)
        res = process_frame(session, siren_frame(), now_ms=0)
        self.assertEqual(res['status'], 'match')


if __name__ == '__main__':
    unittest.main()
