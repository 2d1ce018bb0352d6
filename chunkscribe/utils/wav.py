from __future__ import annotations

import io
import wave

import numpy as np


PCM_SAMPLE_WIDTH = 2


def downmix_to_mono(frames: np.ndarray) -> np.ndarray:
    """Average interleaved (n_frames, n_channels) int16 samples into one channel."""
    if frames.ndim == 1:
        return frames.astype(np.int16, copy=False)
    if frames.ndim != 2:
        raise ValueError("frames must be 1-D (mono) or 2-D (n_frames, n_channels)")
    if frames.shape[1] == 1:
        return frames[:, 0].astype(np.int16, copy=False)
    mixed = frames.astype(np.float64).mean(axis=1)
    return np.clip(np.rint(mixed), -32768, 32767).astype(np.int16)


def pcm_bytes_to_frames(pcm: bytes, channels: int) -> np.ndarray:
    if channels <= 0:
        raise ValueError("channels must be > 0")
    usable = len(pcm) - (len(pcm) % (PCM_SAMPLE_WIDTH * channels))
    samples = np.frombuffer(pcm[:usable], dtype="<i2")
    return samples.reshape(-1, channels)


def encode_wav(samples: np.ndarray, sample_rate: int) -> bytes:
    """Encode mono int16 samples as a 16-bit PCM RIFF/WAVE blob."""
    if sample_rate <= 0:
        raise ValueError("sample_rate must be > 0")
    mono = downmix_to_mono(np.asarray(samples))
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav_file:
        wav_file.setnchannels(1)
        wav_file.setsampwidth(PCM_SAMPLE_WIDTH)
        wav_file.setframerate(sample_rate)
        wav_file.writeframes(mono.astype("<i2", copy=False).tobytes())
    return buffer.getvalue()


__all__ = ["PCM_SAMPLE_WIDTH", "downmix_to_mono", "encode_wav", "pcm_bytes_to_frames"]
