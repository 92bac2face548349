import numpy as np
import scipy.signal as signal
import scipy.io.wavfile as wavfile
from siren_signature import config


def load_audio(filepath, target_fs=config.SAMPLE_RATE):
    """Loads a wav file as normalized mono float audio at target_fs."""
    try:
        fs, audio = wavfile.read(filepath)
    except (OSError, ValueError) as e:
        print(f"Error loading {filepath}: {e}")
        return None, None

    # Convert to mono
    if len(audio.shape) > 1:
        audio = audio[:, 0]

    # Normalize
    audio = audio.astype(np.float32)
    max_val = np.max(np.abs(audio)) if len(audio) else 0
    if max_val > 0:
        audio = audio / max_val

    # Resample if needed
    if fs != target_fs and len(audio):
        num_samples = int(len(audio) * target_fs / fs)
        audio = signal.resample(audio, num_samples)
        fs = target_fs

    return audio, fs


def frame_interval_ms(hop, fs):
    """Playback time between consecutive frames."""
    return hop / fs * 1000.0


def iter_db_frames(audio, fft_size=config.FFT_SIZE, hop=None,
                   smoothing=config.SMOOTHING_FACTOR, min_db=-100.0):
    """
    Yields decibel magnitude frames (fft_size // 2 bins) over the audio.

    Mirrors a realtime analyser: Blackman window, |X|/N magnitudes,
    exponential smoothing across frames, then 20*log10. Silent bins are
    floored at min_db - 100 so they convert to near zero.
    """
    if hop is None:
        hop = fft_size // 4
    window = signal.get_window('blackman', fft_size)
    n_bins = fft_size // 2

    smoothed = np.zeros(n_bins)
    floor = 10 ** ((min_db - 100.0) / 20.0)

    for start in range(0, len(audio) - fft_size + 1, hop):
        chunk = audio[start:start + fft_size] * window
        magnitude = np.abs(np.fft.rfft(chunk))[:n_bins] / fft_size
        smoothed = smoothing * smoothed + (1 - smoothing) * magnitude
        yield 20 * np.log10(np.maximum(smoothed, floor))
