import sys
import numpy as np
from siren_signature import config, frames, signal_processing, harmonic_detection


def debug_file(filename):
    print(f"DEBUG: Processing {filename}")
    audio, fs = frames.load_audio(filename)
    if audio is None:
        print("Failed to load audio.")
        return
    if len(audio) < config.FFT_SIZE:
        print("Audio shorter than one FFT frame.")
        return

    print(f"Audio: FS={fs}, Duration={len(audio)/fs:.2f}s, Min={audio.min():.2f}, Max={audio.max():.2f}")

    db_frames = list(frames.iter_db_frames(audio, config.FFT_SIZE))
    db = db_frames[len(db_frames) // 2]
    print(f"Frames: {len(db_frames)}, middle frame dB: Min={db.min():.2f}, Max={db.max():.2f}")

    width = signal_processing.bin_width(fs, config.FFT_SIZE)
    spectrum = signal_processing.convert_to_linear(db)
    peak = signal_processing.find_dominant_frequency(spectrum, width)
    print(f"Dominant: {peak['freq']:.1f}Hz (bin {peak['idx']}), Magnitude={peak['magnitude']:.1f}")

    profile = harmonic_detection.analyze_harmonics(spectrum, peak['freq'], width)
    for h, (f, m, r) in enumerate(zip(profile['freqs'], profile['magnitudes'], profile['ratios']), start=1):
        print(f"  - H{h}: {f:.1f}Hz: Magnitude={m:.1f}, Ratio={r:.2f}")

    band = signal_processing.extract_band(spectrum, width)
    print(f"Band energy above threshold: {np.sum(band > config.MIN_MAGNITUDE)} of {len(band)} bins")


if __name__ == "__main__":
    debug_file(sys.argv[1] if len(sys.argv) > 1 else "data/siren/siren_000.wav")
