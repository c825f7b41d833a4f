"""PCM decoding and signal measurements.

Shared by the voice activity classifier, the interrupt monitor and the
audio backends.
"""

import numpy as np

# Spectral level mapping, matching a browser AnalyserNode's byte output
FFT_SIZE: int = 256
MIN_DECIBELS: float = -100.0
MAX_DECIBELS: float = -30.0


def decode_pcm16(data: bytes, channels: int = 1, sample_width: int = 2) -> np.ndarray:
    """Decode 16-bit little-endian PCM into floats in [-1, 1].

    Interleaved multi-channel audio is reduced to its first channel.

    Args:
        data: Raw PCM bytes
        channels: Number of interleaved channels
        sample_width: Bytes per sample; only 2 is supported

    Returns:
        float64 array of normalized amplitudes

    Raises:
        ValueError: If the buffer is empty or not valid 16-bit PCM
    """
    if sample_width != 2:
        raise ValueError(f"Unsupported sample width: {sample_width}")
    if channels < 1:
        raise ValueError(f"Invalid channel count: {channels}")
    if not data:
        raise ValueError("Empty audio buffer")
    if len(data) % (sample_width * channels) != 0:
        raise ValueError(f"Buffer length {len(data)} is not a whole number of frames")

    samples = np.frombuffer(data, dtype="<i2")
    if channels > 1:
        samples = samples[::channels]
    return samples.astype(np.float64) / 32768.0


def encode_pcm16(samples: np.ndarray) -> bytes:
    """Encode normalized float samples as 16-bit little-endian PCM."""
    clipped = np.clip(samples, -1.0, 1.0)
    return (clipped * 32767).astype("<i2").tobytes()


def rms(samples: np.ndarray) -> float:
    """Root-mean-square energy of normalized samples."""
    if samples.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(samples))))


def spectral_level(samples: np.ndarray, fft_size: int = FFT_SIZE) -> float:
    """Average byte-scaled frequency magnitude of the latest audio.

    Uses the most recent fft_size samples with a Blackman window, converts
    magnitudes to decibels and maps [MIN_DECIBELS, MAX_DECIBELS] onto
    0-255. Silence reads 0; broadband speech typically reads well above 30.

    Args:
        samples: Normalized samples, most recent last
        fft_size: FFT length

    Returns:
        Mean level over fft_size / 2 bins, in the range 0-255
    """
    frame = np.zeros(fft_size)
    tail = samples[-fft_size:]
    if tail.size:
        frame[fft_size - tail.size :] = tail

    spectrum = np.abs(np.fft.rfft(frame * np.blackman(fft_size)))[: fft_size // 2] / fft_size
    decibels = 20.0 * np.log10(np.maximum(spectrum, 1e-12))
    scaled = (decibels - MIN_DECIBELS) * (255.0 / (MAX_DECIBELS - MIN_DECIBELS))
    return float(np.mean(np.floor(np.clip(scaled, 0.0, 255.0))))


__all__ = [
    "FFT_SIZE",
    "decode_pcm16",
    "encode_pcm16",
    "rms",
    "spectral_level",
]
