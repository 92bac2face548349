import os
import sys
import argparse

from siren_signature import config, frames
from siren_signature.learning import save_signature, load_signature
from siren_signature.session import DetectionSession, process_frame

# ==========================================
# ⚙️ CONFIGURATION
# ==========================================
HOP_SIZE = config.FFT_SIZE // 4
SIGNATURE_FILE = 'models/signature.json'
# ==========================================


def build_session(args):
    params = {}
    if args.config:
        if not os.path.exists(args.config):
            print(f"❌ Error: config '{args.config}' not found.")
            return None
        params = config.load_config(args.config)
        print(f"Loaded config overrides: {params}")

    if getattr(args, 'tolerance', None) is not None:
        params['tolerance'] = args.tolerance
    if getattr(args, 'min_magnitude', None) is not None:
        params['min_magnitude'] = args.min_magnitude
    if getattr(args, 'method', None):
        params['match_method'] = args.method

    try:
        return DetectionSession(config_params=params)
    except ValueError as e:
        print(f"❌ Error: {e}")
        return None


def replay(session, filename):
    """Feeds a recording to the session frame by frame at its real cadence."""
    audio, fs = frames.load_audio(filename, target_fs=session.sample_rate)
    if audio is None:
        return None
    if len(audio) < session.fft_size:
        print(f"❌ Error: '{filename}' is shorter than one FFT frame.")
        return None

    print(f"Audio: FS={fs}, Duration={len(audio)/fs:.2f}s, FFT: {session.fft_size}")
    step_ms = frames.frame_interval_ms(HOP_SIZE, fs)
    return ((i * step_ms, db) for i, db in
            enumerate(frames.iter_db_frames(audio, session.fft_size, HOP_SIZE)))


def run_learn(args):
    session = build_session(args)
    if session is None:
        return 1
    stream = replay(session, args.input)
    if stream is None:
        return 1

    print("Learning started - play the siren")
    session.start_learning(now_ms=0.0)
    outcome = None
    for t_ms, db in stream:
        res = process_frame(session, db, now_ms=t_ms)
        if res['learning_outcome']:
            outcome = res['learning_outcome']
            break

    if outcome is None:
        # Recording ended before the window closed
        n = len(session.learner.samples)
        session.cancel_learning()
        print(f"❌ Recording too short for a {session.learner.learn_duration_ms} ms window ({n} samples) - learning aborted")
        return 1

    if outcome == 'insufficient_samples':
        print("❌ Too few samples - learning failed, please try again")
        return 1

    sig = session.signature
    ratios = ", ".join(f"{r:.2f}" for r in sig.harmonic_ratios)
    print(f"✅ Signature learned: {sig.sample_count} samples, ratios [{ratios}]")

    out_dir = os.path.dirname(args.output)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    save_signature(sig, args.output)
    print(f"Saved signature -> {args.output}")
    return 0


def run_detect(args):
    session = build_session(args)
    if session is None:
        return 1
    try:
        session.signature = load_signature(args.signature)
    except (OSError, ValueError) as e:
        print(f"❌ Error loading signature: {e}")
        return 1

    stream = replay(session, args.input)
    if stream is None:
        return 1

    print(f"Detecting with tolerance {session.tolerance}%, min magnitude {session.min_magnitude}, method {session.match_method}")
    print(f"{'Time (s)':<10} | {'Freq (Hz)':<10} | {'Magnitude':<10} | {'Status'}")
    print("-" * 60)

    detected = 0
    total = 0
    for t_ms, db in stream:
        res = process_frame(session, db, now_ms=t_ms)
        total += 1
        if res['status'] == 'weak_signal':
            line = "---"
        elif res['status'] == 'match':
            detected += 1
            line = f"✓ SIREN ({res['match']['similarity']:.0f}%)"
        else:
            line = f"✗ Not detected ({res['match']['similarity']:.0f}%)"

        if args.verbose or res['status'] == 'match':
            print(f"{t_ms/1000:<10.2f} | {res['freq']:<10.0f} | {res['magnitude']:<10.1f} | {line}")

    session.stop()
    print("-" * 60)
    print(f"Siren detected in {detected}/{total} frames")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(description="Learn a siren signature and detect it in recordings")
    parser.add_argument('--config', help="JSON file with parameter overrides")
    sub = parser.add_subparsers(dest='command', required=True)

    p_learn = sub.add_parser('learn', help="Learn a signature from a recording")
    p_learn.add_argument('--input', required=True, help="WAV file containing the siren")
    p_learn.add_argument('--output', default=SIGNATURE_FILE, help="Where to save the signature")
    p_learn.add_argument('--min-magnitude', type=float)

    p_detect = sub.add_parser('detect', help="Detect a learned signature in a recording")
    p_detect.add_argument('--input', required=True, help="WAV file to analyze")
    p_detect.add_argument('--signature', default=SIGNATURE_FILE)
    p_detect.add_argument('--tolerance', type=float)
    p_detect.add_argument('--min-magnitude', type=float)
    p_detect.add_argument('--method', choices=['harmonic', 'correlation'])
    p_detect.add_argument('--verbose', action='store_true', help="Print every frame")

    args = parser.parse_args(argv)
    if args.command == 'learn':
        return run_learn(args)
    return run_detect(args)


if __name__ == "__main__":
    sys.exit(main())
