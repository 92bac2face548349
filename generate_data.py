import numpy as np
import scipy.io.wavfile as wavfile
import os
import random

from siren_signature import config


def ensure_dir(directory):
    if not os.path.exists(directory):
        os.makedirs(directory)


def generate_siren_signal(fs, duration, f_low, f_high, sweep_period, ratios, snr_db):
    """
    Wailing siren: the fundamental sweeps between f_low and f_high and each
    overtone follows it with a fixed amplitude ratio.
    """
    t = np.linspace(0, duration, int(fs * duration), endpoint=False)

    # Instantaneous frequency (slow sinusoidal wail) integrated to phase
    f_inst = f_low + (f_high - f_low) * 0.5 * (1 - np.cos(2 * np.pi * t / sweep_period))
    phase = 2 * np.pi * np.cumsum(f_inst) / fs

    signal = np.zeros_like(t)
    for i, amplitude in enumerate(ratios):
        signal += amplitude * np.sin((i + 1) * phase)

    return add_noise(signal, snr_db)


def generate_noise_signal(fs, duration):
    t = np.linspace(0, duration, int(fs * duration), endpoint=False)
    noise = np.random.normal(0, 1, len(t))
    return noise / np.max(np.abs(noise))


def add_noise(signal, snr_db):
    # Normalize signal power to 1
    signal_power = np.mean(signal ** 2)
    if signal_power > 0:
        signal = signal / np.sqrt(signal_power)

    noise = np.random.normal(0, 1, len(signal))
    noise_power = np.mean(noise ** 2)
    target_noise_power = 1.0 / (10 ** (snr_db / 10))
    noise = noise * np.sqrt(target_noise_power / noise_power)

    final_signal = signal + noise

    # Normalize to -1 to 1 for wav file
    max_val = np.max(np.abs(final_signal))
    if max_val > 0:
        final_signal = final_signal / max_val
    return final_signal


def main():
    fs = config.SAMPLE_RATE
    ensure_dir("data/siren")
    ensure_dir("data/other")

    siren_ratios = [1.0, 0.5, 0.3, 0.1, 0.05]

    print("Generating siren samples...")
    for i in range(5):
        duration = random.uniform(7.0, 10.0)
        snr = random.uniform(10, 25)  # dB
        sig = generate_siren_signal(fs, duration, 650, 1100, 4.0, siren_ratios, snr)
        wavfile.write(f"data/siren/siren_{i:03d}.wav", fs, np.float32(sig))

    print("Generating other samples...")
    for i in range(5):
        duration = random.uniform(5.0, 8.0)
        if random.random() > 0.5:
            # Different timbre: flat overtone series, different band
            ratios = [1.0, 0.9, 0.9, 0.8, 0.8]
            sig = generate_siren_signal(fs, duration, 400, 500, 2.0, ratios, 20)
        else:
            sig = generate_noise_signal(fs, duration)
        wavfile.write(f"data/other/other_{i:03d}.wav", fs, np.float32(sig))

    print("Done.")


if __name__ == "__main__":
    main()
